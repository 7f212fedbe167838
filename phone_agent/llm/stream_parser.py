"""
Stream Parser
=============

Incrementally split a streamed model reply into thinking and action.

Fragments arrive in arbitrary pieces, so a marker such as ``do(`` may be
split over several of them. ``MarkerScanner`` tracks, character by
character, how much of the buffer's tail could still grow into a marker:

    NO_MATCH          the tail is not a prefix of any marker
    PARTIAL_PREFIX    the last ``depth`` characters are a strict prefix
    CONFIRMED         a full marker was seen at ``match_start``

Thinking updates are emitted only in ``NO_MATCH`` so a half-received
marker never shows up as thinking text.

Usage:
    async for event in interpret_stream(llm.stream_chat(messages)):
        if isinstance(event, ThinkingDelta):
            print(event.thinking)
"""

from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterable, AsyncIterator, Optional, Sequence, Union

from phone_agent.llm.response_parser import ACTION_MARKERS, strip_tags


class ScanState(str, Enum):
    NO_MATCH = "no_match"
    PARTIAL_PREFIX = "partial_prefix"
    CONFIRMED = "confirmed"


class MarkerScanner:
    """
    Incremental matcher for a fixed set of markers.

    Attributes:
        state: Current scan state.
        depth: Length of the buffered tail that prefixes a marker.
        match_start: Offset of the confirmed marker in the fed text.
        matched: The confirmed marker.
    """

    def __init__(self, markers: Sequence[str] = ACTION_MARKERS) -> None:
        if not markers or any(not m for m in markers):
            raise ValueError("markers must be non-empty strings")
        self.markers = tuple(markers)
        self.state = ScanState.NO_MATCH
        self.depth = 0
        self.match_start: Optional[int] = None
        self.matched: Optional[str] = None
        self._tail = ""
        self._consumed = 0

    def feed(self, text: str) -> ScanState:
        """Advance over ``text``; stops consuming once a marker is confirmed."""
        for ch in text:
            if self.state is ScanState.CONFIRMED:
                break
            self._consumed += 1
            self._advance(self._tail + ch)
        return self.state

    def _advance(self, window: str) -> None:
        # The tail is the longest marker prefix, so any marker ending here fits in it
        for marker in self.markers:
            if window.endswith(marker):
                self.state = ScanState.CONFIRMED
                self.matched = marker
                self.match_start = self._consumed - len(marker)
                self._tail = ""
                self.depth = 0
                return

        for size in range(len(window), 0, -1):
            suffix = window[-size:]
            if any(marker.startswith(suffix) for marker in self.markers):
                self._tail = suffix
                self.depth = size
                self.state = ScanState.PARTIAL_PREFIX
                return

        self._tail = ""
        self.depth = 0
        self.state = ScanState.NO_MATCH


@dataclass(frozen=True)
class ThinkingDelta:
    """Cumulative thinking text, emitted whenever it changes."""

    thinking: str


@dataclass(frozen=True)
class StreamDone:
    """End of stream; ``content`` is the full raw reply."""

    content: str


StreamEvent = Union[ThinkingDelta, StreamDone]


async def interpret_stream(
    fragments: AsyncIterable[str],
    markers: Sequence[str] = ACTION_MARKERS,
) -> AsyncIterator[StreamEvent]:
    """
    Turn a fragment stream into thinking updates and a final done event.

    Errors raised by ``fragments`` propagate unchanged.

    Args:
        fragments: Raw text fragments from the model.
        markers: Substrings that start the action invocation.

    Yields:
        Zero or more ThinkingDelta, then exactly one StreamDone.
    """
    scanner = MarkerScanner(markers)
    parts: list[str] = []
    last_thinking = ""

    async for fragment in fragments:
        parts.append(fragment)
        if scanner.state is ScanState.CONFIRMED:
            continue

        state = scanner.feed(fragment)
        if state is ScanState.PARTIAL_PREFIX:
            continue

        buffer = "".join(parts)
        if state is ScanState.CONFIRMED:
            thinking = strip_tags(buffer[: scanner.match_start])
        else:
            thinking = strip_tags(buffer)

        if thinking and thinking != last_thinking:
            last_thinking = thinking
            yield ThinkingDelta(thinking)

    yield StreamDone("".join(parts))
