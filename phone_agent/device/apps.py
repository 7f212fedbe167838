"""
App Package Mapping
===================

Maps the app names the model uses (mostly Chinese display names) to Android
package ids, and back again for the "当前应用" line of the prompt.
"""

from typing import Optional

from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

# Name the agent should use for anything not listed below
SYSTEM_APP_NAME = "System"

APP_PACKAGES: dict[str, str] = {
    # 社交通讯
    "微信": "com.tencent.mm",
    "QQ": "com.tencent.mobileqq",
    "微博": "com.sina.weibo",
    "钉钉": "com.alibaba.android.rimet",
    "飞书": "com.ss.android.lark",
    "企业微信": "com.tencent.wework",
    # 外卖购物
    "美团": "com.sankuai.meituan",
    "大众点评": "com.dianping.v1",
    "饿了么": "me.ele",
    "淘宝": "com.taobao.taobao",
    "京东": "com.jingdong.app.mall",
    "拼多多": "com.xunmeng.pinduoduo",
    "天猫": "com.tmall.wireless",
    "肯德基": "com.yek.android.kfc.activitys",
    # 出行导航
    "高德地图": "com.autonavi.minimap",
    "百度地图": "com.baidu.BaiduMap",
    "滴滴出行": "com.sdu.didi.psnger",
    "12306": "com.MobileTicket",
    "携程": "ctrip.android.view",
    # 视频娱乐
    "抖音": "com.ss.android.ugc.aweme",
    "bilibili": "tv.danmaku.bili",
    "快手": "com.smile.gifmaker",
    "腾讯视频": "com.tencent.qqlive",
    # 音乐
    "网易云音乐": "com.netease.cloudmusic",
    "QQ音乐": "com.tencent.qqmusic",
    # 生活服务
    "支付宝": "com.eg.android.AlipayGphone",
    "小红书": "com.xingin.xhs",
    "知乎": "com.zhihu.android",
    "豆瓣": "com.douban.frodo",
    # 系统
    "设置": "com.android.settings",
    "Chrome": "com.android.chrome",
}

_KNOWN_PACKAGES = frozenset(APP_PACKAGES.values())


def _looks_like_package(name: str) -> bool:
    parts = name.split(".")
    return len(parts) >= 2 and " " not in name and all(parts)


def resolve_package_name(app_name: str) -> Optional[str]:
    """
    Resolve an app name to its package id.

    Display names are matched exactly, then case-insensitively. Strings that
    already look like a package id (``com.tencent.mm``) are returned as is.

    Args:
        app_name: Display name or package id.

    Returns:
        The package id, or None when the app is unknown.
    """
    name = app_name.strip()
    if not name:
        return None

    if name in APP_PACKAGES:
        return APP_PACKAGES[name]

    lowered = name.lower()
    for display_name, package in APP_PACKAGES.items():
        if display_name.lower() == lowered:
            return package

    if name in _KNOWN_PACKAGES or _looks_like_package(name):
        return name

    logger.debug("Unknown app name", app_name=app_name)
    return None


def app_name_for_window(window_dump: str) -> str:
    """
    Find the display name of the app mentioned in a window focus dump.

    Args:
        window_dump: Output of ``dumpsys window`` (or its mCurrentFocus line).

    Returns:
        Display name of the first known package found, else ``System``.
    """
    for display_name, package in APP_PACKAGES.items():
        if package in window_dump:
            return display_name
    return SYSTEM_APP_NAME
