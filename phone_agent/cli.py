"""
Command Line Interface
======================

Run a single task from the terminal, or serve the web API.

Usage:
    # Run one task and print its progress
    phone-agent "打开微信，给文件传输助手发消息：你好"

    # Pick a model endpoint and device
    phone-agent --base-url http://localhost:8000/v1 --model autoglm-phone -d emulator-5554 "打开设置"

    # List attached devices
    phone-agent --list-devices

    # Serve the web API (no task given)
    phone-agent --port 3000
"""

import argparse
import asyncio
import json
import signal
import sys
from typing import Any, Optional, Sequence

from phone_agent import __version__
from phone_agent.agent.events import (
    TaskAction,
    TaskCancelled,
    TaskCompleted,
    TaskFailed,
    TaskStarted,
    TaskStep,
    TaskThinking,
    action_to_dict,
)
from phone_agent.agent.step_engine import AgentConfig, PhoneAgent
from phone_agent.agent.task_loop import TaskRunner
from phone_agent.config import Settings, get_settings
from phone_agent.device.adb_device import ADBDevice
from phone_agent.llm import create_llm_client
from phone_agent.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

# Model and key fields per provider
_MODEL_FIELDS = {"openai": "autoglm_model", "groq": "groq_model", "gemini": "gemini_model"}
_KEY_FIELDS = {"openai": "autoglm_api_key", "groq": "groq_api_key", "gemini": "gemini_api_key"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="phone-agent",
        description="Operate an Android phone with a vision-language model.",
    )
    parser.add_argument("task", nargs="?", help="Task to run. Without one, the web API is served.")
    parser.add_argument("--base-url", help="OpenAI-compatible endpoint base URL")
    parser.add_argument("--model", help="Model name for the selected provider")
    parser.add_argument("--apikey", help="API key for the selected provider")
    parser.add_argument("--provider", choices=sorted(_MODEL_FIELDS), help="Model provider")
    parser.add_argument("--max-steps", type=int, help="Maximum steps per task")
    parser.add_argument("-d", "--device", help="ADB device serial")
    parser.add_argument("--port", type=int, help="Web API port")
    parser.add_argument("--list-devices", action="store_true", help="List attached devices and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """
    Build a settings copy with command line overrides applied.

    Args:
        settings: Settings loaded from the environment.
        args: Parsed command line.

    Returns:
        New Settings; the input is left untouched.
    """
    llm: dict[str, Any] = {}
    if args.provider:
        llm["llm_provider"] = args.provider
    provider = args.provider or settings.llm.llm_provider
    if args.base_url:
        llm["autoglm_base_url"] = args.base_url
    if args.model:
        llm[_MODEL_FIELDS[provider]] = args.model
    if args.apikey:
        llm[_KEY_FIELDS[provider]] = args.apikey

    update: dict[str, Any] = {"llm": settings.llm.model_copy(update=llm)}
    if args.device:
        update["device"] = settings.device.model_copy(update={"adb_device_serial": args.device})
    if args.port is not None:
        update["server"] = settings.server.model_copy(update={"server_port": args.port})
    if args.max_steps is not None:
        if args.max_steps < 1:
            raise ValueError("--max-steps must be positive")
        update["agent"] = settings.agent.model_copy(update={"autoglm_max_steps": args.max_steps})

    return settings.model_copy(update=update)


def _build_device(settings: Settings) -> ADBDevice:
    return ADBDevice(
        device_id=settings.device.adb_device_serial or None,
        adb_path=settings.device.adb_path or None,
    )


async def list_devices(settings: Settings) -> int:
    device = _build_device(settings)
    try:
        devices = await device.list_devices()
    except (RuntimeError, OSError) as e:
        print(f"❌ 无法获取设备列表: {e}")
        return 1

    if not devices:
        print("📱 未发现设备")
        return 0

    for info in devices:
        name = info.market_name or info.model or "unknown"
        version = f"Android {info.android_version}" if info.android_version else ""
        print(f"📱 {info.device_id}  [{info.status}]  {name} {version}".rstrip())
    return 0


async def _confirm_in_terminal(message: str) -> bool:
    answer = await asyncio.to_thread(input, f"⚠️  敏感操作: {message}，是否继续? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


class ProgressPrinter:
    """Prints task events as they arrive."""

    def __init__(self) -> None:
        self._thinking = ""

    def __call__(self, event: Any) -> None:
        if isinstance(event, TaskStarted):
            print(f"🚀 任务: {event.task}")
        elif isinstance(event, TaskThinking):
            # Thinking arrives as growing snapshots; print only the new tail
            if event.thinking.startswith(self._thinking):
                delta = event.thinking[len(self._thinking):]
            else:
                delta = "\n" + event.thinking
            if not self._thinking:
                print(f"\n💭 [{event.step_index}] ", end="")
            print(delta, end="", flush=True)
            self._thinking = event.thinking
        elif isinstance(event, TaskAction):
            print(f"\n🎯 {json.dumps(action_to_dict(event.action), ensure_ascii=False)}")
        elif isinstance(event, TaskStep):
            self._thinking = ""
            mark = "✓" if event.step.success else "✗"
            if event.step.message:
                print(f"   {mark} {event.step.message}")
        elif isinstance(event, TaskCompleted):
            print(f"\n✅ 完成: {event.result}")
        elif isinstance(event, TaskCancelled):
            print("\n⚠️  任务已取消")
        elif isinstance(event, TaskFailed):
            print(f"\n❌ 任务失败: {event.error}")


async def run_task(settings: Settings, task: str) -> int:
    """
    Run one task against the configured device and model.

    Returns:
        Process exit code: 0 when the task completed, 1 otherwise.
    """
    try:
        llm = create_llm_client(settings.llm)
    except ValueError as e:
        print(f"❌ 模型配置错误: {e}")
        return 1

    device = _build_device(settings)
    agent = PhoneAgent(
        device=device,
        llm=llm,
        config=AgentConfig(
            max_parse_retries=settings.agent.max_parse_retries,
            action_delay=settings.agent.action_delay,
        ),
        device_id=settings.device.adb_device_serial or None,
        on_confirm=_confirm_in_terminal,
    )
    runner = TaskRunner(agent, max_steps=settings.agent.autoglm_max_steps)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, runner.cancel)
    except NotImplementedError:
        # Windows event loops have no signal handlers
        pass

    printer = ProgressPrinter()
    exit_code = 1
    try:
        async for event in runner.run_task(task):
            printer(event)
            if isinstance(event, TaskCompleted):
                exit_code = 0
    finally:
        await llm.close()

    return exit_code


def serve(settings: Settings) -> int:
    import uvicorn

    from phone_agent.main import create_app

    uvicorn.run(
        create_app(settings),
        host=settings.server.server_host,
        port=settings.server.server_port,
        log_level=settings.server.log_level.lower(),
    )
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = apply_overrides(get_settings(), args)
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2

    setup_logging(level=settings.server.log_level, json_logs=not settings.server.debug)

    if args.list_devices:
        return asyncio.run(list_devices(settings))
    if args.task:
        return asyncio.run(run_task(settings, args.task))
    return serve(settings)


if __name__ == "__main__":
    sys.exit(main())
