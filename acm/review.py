"""Review - Let the user accept, edit or abort a commit message before committing."""

from dataclasses import dataclass
from typing import Protocol, Union


@dataclass(frozen=True)
class Accept:
    """Commit with `text`, which may differ from the proposed message."""
    text: str


@dataclass(frozen=True)
class Abort:
    """Do not commit."""
    reason: str = ""


Decision = Union[Accept, Abort]


class Reviewer(Protocol):
    """Decides what gets committed. Injected into the pipeline so it can run headless."""

    def choose(self, messages: list[str]) -> int | None:
        """Pick one of several candidate messages. None aborts."""
        ...

    def review(self, message: str) -> Decision:
        ...


class AutoAcceptReviewer:
    """Takes the first candidate and commits it unchanged."""

    def choose(self, messages: list[str]) -> int | None:
        return 0 if messages else None

    def review(self, message: str) -> Decision:
        if not message.strip():
            return Abort("Empty commit message")
        return Accept(message)
