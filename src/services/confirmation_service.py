"""
Tag Confirmation Module

Lets a person accept or decline suggested tags before they are written.
"""

from __future__ import annotations

import sys
import threading
from typing import Callable, List, Optional, Protocol, TextIO, runtime_checkable

from models.tagging import SuggestionRecord

TITLE_DISPLAY_LENGTH = 60
ACCEPT_ANSWERS = ("y", "yes")


@runtime_checkable
class ConfirmationGate(Protocol):
    """Returns the tags to apply, or None to decline"""

    def __call__(self, record: SuggestionRecord) -> Optional[List[str]]:
        ...


def shorten_title(title: str, limit: int = TITLE_DISPLAY_LENGTH) -> str:
    if len(title) > limit:
        return title[:limit] + "…"
    return title


class ConsoleConfirmationGate:
    """
    Asks on the terminal whether to apply a suggestion.

    Several workers may ask at once; prompts are serialized so answers
    cannot get mixed up.
    """

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output: Optional[TextIO] = None,
    ):
        self._input = input_fn
        self._output = output
        self._lock = threading.Lock()

    def __call__(self, record: SuggestionRecord) -> Optional[List[str]]:
        with self._lock:
            out = self._output or sys.stdout
            out.write(self.format_suggestion(record))
            out.flush()
            try:
                answer = self._input("Apply all tags? [y/N] ")
            except EOFError:
                answer = ""

        if answer.strip().lower() in ACCEPT_ANSWERS:
            return list(record.suggested_tags)
        return None

    @staticmethod
    def format_suggestion(record: SuggestionRecord) -> str:
        lines = [
            "",
            f"Suggested tags for: {shorten_title(record.title)}",
            "",
        ]
        lines.extend(f"  • {tag}" for tag in record.suggested_tags)
        if record.reasoning:
            lines.extend(["", f"Reasoning: {record.reasoning}"])
        lines.append("")
        return "\n".join(lines) + "\n"
