"""Single-line text entry field state: text, caret and focus."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

BLINK_INTERVAL = 0.5
TEXT_PADDING = 5.0


@dataclass
class TextBox:
    """Editable text with a caret, a length limit and a blinking cursor.

    The editing methods change the text whether or not the box has focus;
    callers decide when input reaches the box.
    """

    x: float
    y: float
    width: float
    height: float
    max_length: int
    text: str = ""
    cursor_pos: int = 0
    focused: bool = False
    show_cursor: bool = True
    cursor_blink: float = field(default_factory=time.monotonic)

    def _contains(self, px: float, py: float) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height

    def focus_at(self, x: float, y: float, measure: Callable[[str], float]) -> bool:
        """Handle a click at (x, y); place the caret using ``measure`` for text widths."""
        self.focused = self._contains(x, y)
        if not self.focused:
            self.show_cursor = False
            return False
        relative_x = x - (self.x + TEXT_PADDING)
        self.cursor_pos = next(
            (
                i - 1
                for i in range(1, len(self.text) + 1)
                if measure(self.text[:i]) >= relative_x
            ),
            len(self.text),
        )
        return True

    def insert(self, text: str) -> bool:
        """Insert characters at the caret while there is room; return whether anything changed."""
        changed = False
        for char in text:
            if len(self.text) >= self.max_length:
                continue
            self.text = self.text[: self.cursor_pos] + char + self.text[self.cursor_pos :]
            self.cursor_pos += 1
            changed = True
        return changed

    def backspace(self) -> bool:
        """Remove the character before the caret."""
        if self.cursor_pos <= 0 or not self.text:
            return False
        self.text = self.text[: self.cursor_pos - 1] + self.text[self.cursor_pos :]
        self.cursor_pos -= 1
        return True

    def delete_forward(self) -> bool:
        """Remove the character after the caret."""
        if self.cursor_pos >= len(self.text):
            return False
        self.text = self.text[: self.cursor_pos] + self.text[self.cursor_pos + 1 :]
        return True

    def move_left(self) -> None:
        if self.cursor_pos > 0:
            self.cursor_pos -= 1

    def move_right(self) -> None:
        if self.cursor_pos < len(self.text):
            self.cursor_pos += 1

    def update_blink(self, now: float) -> None:
        """Toggle the caret once more than half a second has passed since the last toggle."""
        if now - self.cursor_blink > BLINK_INTERVAL:
            self.show_cursor = not self.show_cursor
            self.cursor_blink = now