"""
Tests for the Stream Interpreter
================================

Tests for:
- MarkerScanner prefix holdback and confirmation
- Thinking updates from fragment streams (cumulative, deduplicated)
- Markers split across fragments never leaking into thinking
- The terminal done event and error propagation
"""

from typing import AsyncIterator, Sequence

import pytest

from phone_agent.llm.models import LLMError
from phone_agent.llm.stream_parser import (
    MarkerScanner,
    ScanState,
    StreamDone,
    ThinkingDelta,
    interpret_stream,
)


async def _fragments(items: Sequence[str]) -> AsyncIterator[str]:
    for item in items:
        yield item


async def _collect(items: Sequence[str]) -> tuple[list[str], StreamDone]:
    thinking: list[str] = []
    done = None
    async for event in interpret_stream(_fragments(items)):
        assert done is None, "no events after done"
        if isinstance(event, ThinkingDelta):
            thinking.append(event.thinking)
        else:
            done = event
    assert isinstance(done, StreamDone)
    return thinking, done


class TestMarkerScanner:
    """Tests for the incremental marker matcher."""

    def test_partial_then_confirmed(self):
        scanner = MarkerScanner()

        assert scanner.feed("d") is ScanState.PARTIAL_PREFIX
        assert scanner.depth == 1
        assert scanner.feed("o") is ScanState.PARTIAL_PREFIX
        assert scanner.depth == 2
        assert scanner.feed("(") is ScanState.CONFIRMED
        assert scanner.matched == "do("
        assert scanner.match_start == 0

    def test_match_offset(self):
        scanner = MarkerScanner()

        assert scanner.feed("ok finish(") is ScanState.CONFIRMED
        assert scanner.matched == "finish("
        assert scanner.match_start == 3

    def test_broken_prefix_resets(self):
        scanner = MarkerScanner()

        assert scanner.feed("don") is ScanState.NO_MATCH
        assert scanner.depth == 0

    def test_restarts_prefix_on_repeated_char(self):
        scanner = MarkerScanner()

        assert scanner.feed("dd") is ScanState.PARTIAL_PREFIX
        assert scanner.depth == 1

    def test_stops_after_confirmation(self):
        scanner = MarkerScanner()
        scanner.feed("do(")

        assert scanner.feed("finish(") is ScanState.CONFIRMED
        assert scanner.matched == "do("

    def test_rejects_empty_markers(self):
        with pytest.raises(ValueError):
            MarkerScanner([])
        with pytest.raises(ValueError):
            MarkerScanner(["do(", ""])


class TestInterpretStream:
    """Tests for thinking updates over a fragment stream."""

    @pytest.mark.asyncio
    async def test_marker_split_across_fragments(self):
        fragments = ["I think ", "we should", " tap. d", 'o(action="Tap"']
        thinking, done = await _collect(fragments)

        assert thinking.count("I think we should tap.") == 1
        assert thinking[-1] == "I think we should tap."
        assert not any(t.endswith(("d", "do")) for t in thinking)
        assert done.content == "".join(fragments)

    @pytest.mark.asyncio
    async def test_marker_split_across_three_fragments(self):
        thinking, _ = await _collect(["Tap it ", "d", "o", '(action="Back")'])

        assert thinking == ["Tap it"]

    @pytest.mark.asyncio
    async def test_finish_marker(self):
        thinking, done = await _collect(["All done. fin", 'ish(message="ok")'])

        assert thinking == ["All done."]
        assert done.content == 'All done. finish(message="ok")'

    @pytest.mark.asyncio
    async def test_no_marker_streams_everything(self):
        thinking, done = await _collect(["Hello", " there"])

        assert thinking == ["Hello", "Hello there"]
        assert done.content == "Hello there"

    @pytest.mark.asyncio
    async def test_unchanged_thinking_is_not_repeated(self):
        thinking, _ = await _collect(["abc", "", "   "])

        assert thinking == ["abc"]

    @pytest.mark.asyncio
    async def test_tags_are_stripped(self):
        thinking, _ = await _collect(["<think>plan", "</think><answer>", 'do(action="Home")</answer>'])

        assert thinking == ["plan"]

    @pytest.mark.asyncio
    async def test_nothing_after_marker(self):
        thinking, done = await _collect(['do(action="Back")', " more text"])

        assert thinking == []
        assert done.content == 'do(action="Back") more text'

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        thinking, done = await _collect([])

        assert thinking == []
        assert done.content == ""

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        async def failing() -> AsyncIterator[str]:
            yield "partial"
            raise LLMError("网络错误: reset")

        events = []
        with pytest.raises(LLMError):
            async for event in interpret_stream(failing()):
                events.append(event)

        assert events == [ThinkingDelta("partial")]
