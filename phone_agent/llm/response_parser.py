"""
Response Parser
===============

Parse model replies into structured actions.

Response Format:
    <think>Free-text reasoning</think>
    <answer>do(action="Tap", element=[500,320])</answer>

Grammar:
    finish(message="...")
    do(action="Name", key=value, ...)

    Arguments are unordered ``identifier=value`` pairs. A value is a
    quoted string (double or single quotes, escapes ``\\n \\t \\" \\' \\\\``),
    a bracketed number list ``[a,b]``, a bare number, or one of the
    literals ``True``/``False``/``None``. Bare words are rejected.

The coerced argument map is validated against the ``ParsedAction`` union.
Neither ``parse_action`` nor ``parse_response`` raises: failures come back
as a ``ParseError`` with a field path and a message.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from phone_agent.agent.actions.base import ActionModel, first_validation_error
from phone_agent.agent.actions.registry import ACTION_TAGS, PARSED_ACTION_ADAPTER
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

# Literal substrings that separate thinking from the action invocation
ACTION_MARKERS: tuple[str, ...] = ("do(", "finish(")

_TAG_RE = re.compile(r"</?[a-z_]+>", re.IGNORECASE)
_HEAD_RE = re.compile(r"\s*(do|finish)\s*\(")
_IDENT_RE = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*)\s*=\s*")
_NUMBER = r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"
_DQ_STRING_RE = re.compile(r'"((?:[^"\\]|\\.)*)"', re.DOTALL)
_SQ_STRING_RE = re.compile(r"'((?:[^'\\]|\\.)*)'", re.DOTALL)
_LIST_RE = re.compile(rf"\[\s*((?:{_NUMBER})(?:\s*,\s*(?:{_NUMBER}))*)?\s*,?\s*\]")
_NUMBER_RE = re.compile(rf"({_NUMBER})(?![\w.])")
_LITERAL_RE = re.compile(r"(True|False|None)\b")
_SEPARATOR_RE = re.compile(r"\s*(,|\Z)")
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)

_ESCAPES = {"n": "\n", "t": "\t", '"': '"', "'": "'", "\\": "\\"}
_LITERALS = {"True": True, "False": False, "None": None}


@dataclass(frozen=True)
class ParseError:
    """
    Structured parse/validation failure.

    Attributes:
        path: Dotted field path (``element.0``), empty for syntax errors.
        message: Human-readable reason.
    """

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


@dataclass(frozen=True)
class ParseResult:
    """Either a validated action or a parse error."""

    action: Optional[ActionModel] = None
    error: Optional[ParseError] = None

    @property
    def ok(self) -> bool:
        return self.action is not None


@dataclass(frozen=True)
class ParsedResponse:
    """
    A full model reply split into thinking and action.

    Attributes:
        thinking: Text before the invocation, tags stripped.
        action: Parsed action, if an invocation was found and valid.
        error: Parse error, if an invocation was found but invalid.
    """

    thinking: str
    action: Optional[ActionModel] = None
    error: Optional[ParseError] = None


class _SyntaxError(Exception):
    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path
        self.message = message


def strip_tags(text: str) -> str:
    """Remove ``<think>``/``<answer>``-style tags and surrounding whitespace."""
    return _TAG_RE.sub("", text).strip()


def _unescape(raw: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(0)), raw)


def _to_number(token: str) -> int | float:
    try:
        return int(token)
    except ValueError:
        return float(token)


def _parse_value(text: str, pos: int, key: str) -> tuple[Any, int]:
    """Parse one argument value at ``pos``; returns ``(value, end)``."""
    for string_re in (_DQ_STRING_RE, _SQ_STRING_RE):
        match = string_re.match(text, pos)
        if match:
            return _unescape(match.group(1)), match.end()

    match = _LIST_RE.match(text, pos)
    if match:
        body = match.group(1)
        items = [] if not body else [_to_number(part.strip()) for part in body.split(",")]
        return items, match.end()

    match = _NUMBER_RE.match(text, pos)
    if match:
        return _to_number(match.group(1)), match.end()

    match = _LITERAL_RE.match(text, pos)
    if match:
        return _LITERALS[match.group(1)], match.end()

    if pos >= len(text):
        raise _SyntaxError(key, "缺少参数值")
    if text[pos] in "\"'":
        raise _SyntaxError(key, "字符串未闭合")
    raise _SyntaxError(key, f"无效的参数值: {text[pos:].split(',')[0].strip()}")


def _parse_arguments(body: str) -> dict[str, Any]:
    """Parse ``key=value, ...`` into a dict."""
    args: dict[str, Any] = {}
    pos = 0
    if not body.strip():
        return args

    while pos < len(body):
        match = _IDENT_RE.match(body, pos)
        if not match:
            raise _SyntaxError("", f"参数格式错误: {body[pos:].strip()}")
        key = match.group(1)
        if key in args:
            raise _SyntaxError(key, "参数重复")

        value, pos = _parse_value(body, match.end(), key)
        args[key] = value

        separator = _SEPARATOR_RE.match(body, pos)
        if not separator:
            raise _SyntaxError(key, f"参数之间缺少逗号: {body[pos:].strip()}")
        pos = separator.end()
        if separator.group(1) == "," and not body[pos:].strip():
            # Trailing comma
            break

    return args


def parse_action(text: str) -> ParseResult:
    """
    Parse a single action invocation.

    Args:
        text: ``do(...)`` or ``finish(...)`` text.

    Returns:
        ParseResult holding either the action or the error.
    """
    head = _HEAD_RE.match(text)
    if not head:
        return ParseResult(error=ParseError("", f"无法识别的操作: {text.strip()[:50]}"))

    stripped = text.rstrip()
    if not stripped.endswith(")"):
        return ParseResult(error=ParseError("", "操作未闭合"))

    body = stripped[head.end():-1]
    try:
        args = _parse_arguments(body)
    except _SyntaxError as e:
        return ParseResult(error=ParseError(e.path, e.message))

    if head.group(1) == "finish":
        args["action"] = "finish"
    elif "action" not in args:
        return ParseResult(error=ParseError("action", "缺少 action 参数"))

    tag = args["action"]
    if not isinstance(tag, str):
        return ParseResult(error=ParseError("action", "action 必须是字符串"))
    if tag not in ACTION_TAGS:
        return ParseResult(error=ParseError("action", f"未知操作: {tag}"))

    try:
        action = PARSED_ACTION_ADAPTER.validate_python(args)
    except ValidationError as e:
        path, message = first_validation_error(e, tag=tag)
        return ParseResult(error=ParseError(path, message))

    return ParseResult(action=action)


def find_invocation(content: str, start: int) -> int:
    """
    Index just past the parenthesis closing the invocation at ``start``.

    Parentheses inside quoted strings are skipped. Returns -1 if the
    invocation is never closed.
    """
    depth = 0
    quote: Optional[str] = None
    i = start
    while i < len(content):
        ch = content[i]
        if quote:
            if ch == "\\":
                i += 1
            elif ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return -1


def parse_response(content: str) -> ParsedResponse:
    """
    Split a complete model reply into thinking and action.

    The earliest marker starts the invocation; anything after its closing
    parenthesis is ignored.

    Args:
        content: Full raw reply.

    Returns:
        ParsedResponse with thinking and either an action or an error.
    """
    positions = [idx for idx in (content.find(m) for m in ACTION_MARKERS) if idx != -1]
    if not positions:
        return ParsedResponse(thinking=strip_tags(content))

    start = min(positions)
    thinking = strip_tags(content[:start])
    end = find_invocation(content, start)
    if end == -1:
        logger.warning("Unclosed action invocation", content=content[start:start + 100])
        return ParsedResponse(thinking=thinking, error=ParseError("", "操作未闭合"))

    result = parse_action(content[start:end])
    if not result.ok:
        logger.warning("Action parse failed", error=str(result.error))
        return ParsedResponse(thinking=thinking, error=result.error)

    return ParsedResponse(thinking=thinking, action=result.action)
