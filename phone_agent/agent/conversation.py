"""
Conversation
============

Ordered, role-tagged turns sent to the model.

The first turn is always the system prompt. A user turn may carry one
screenshot; once the action of a step has run, that screenshot is dropped
from history so only the newest image is ever resent.
"""

from dataclasses import dataclass, replace
from typing import Any, Iterator, Literal, Optional

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class Turn:
    """
    One conversation turn.

    Attributes:
        role: Speaker.
        text: Text content.
        image_b64: Base64 PNG attached to a user turn.
    """

    role: Role
    text: str
    image_b64: Optional[str] = None

    def to_message(self) -> dict[str, Any]:
        """Render in OpenAI chat format."""
        if self.image_b64 is None:
            return {"role": self.role, "content": self.text}
        return {
            "role": self.role,
            "content": [
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:image/png;base64,{self.image_b64}"},
                },
                {"type": "text", "text": self.text},
            ],
        }


class Conversation:
    """
    Turn list owned by one step engine.
    """

    def __init__(self) -> None:
        self._turns: list[Turn] = []

    def add_system(self, text: str) -> None:
        """
        Add the system prompt.

        Raises:
            ValueError: If the conversation already has turns.
        """
        if self._turns:
            raise ValueError("System prompt must be the first turn")
        self._turns.append(Turn("system", text))

    def add_user(self, text: str, image_b64: Optional[str] = None) -> None:
        self._require_system()
        self._turns.append(Turn("user", text, image_b64))

    def add_assistant(self, text: str) -> None:
        self._require_system()
        self._turns.append(Turn("assistant", text))

    def _require_system(self) -> None:
        if not self._turns:
            raise ValueError("Conversation must start with a system turn")

    def strip_latest_image(self) -> bool:
        """
        Drop the image of the most recent image-bearing user turn.

        Returns:
            True if an image was removed.
        """
        for index in range(len(self._turns) - 1, -1, -1):
            turn = self._turns[index]
            if turn.role == "user" and turn.image_b64 is not None:
                self._turns[index] = replace(turn, image_b64=None)
                return True
        return False

    def to_messages(self) -> list[dict[str, Any]]:
        return [turn.to_message() for turn in self._turns]

    def reset(self) -> None:
        self._turns.clear()

    @property
    def is_empty(self) -> bool:
        return not self._turns

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(self._turns)
