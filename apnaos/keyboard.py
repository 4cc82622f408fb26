"""Decoding of PS/2 set-1 scancodes into an editable line of input."""

from __future__ import annotations

from typing import Callable, Iterable

BUFFER_SIZE = 256
MAX_INPUT_LENGTH = 128
KBD_DATA_PORT = 0x60
KBD_STATUS_PORT = 0x64
SCANCODE_RELEASE = 0x80

LEFT_SHIFT = 0x2A
RIGHT_SHIFT = 0x36
LEFT_SHIFT_RELEASE = 0xAA
RIGHT_SHIFT_RELEASE = 0xB6
CAPS_LOCK = 0x3A

_NO_KEY = "\0"


def _table(chars: str) -> str:
    return chars.ljust(128, _NO_KEY)


_PLAIN = _table(
    "\0\x1b1234567890-=\b\tqwertyuiop[]\n\0asdfghjkl;'`\0\\zxcvbnm,./\0*\0 "
)
_SHIFTED = _table(
    "\0\x1b!@#$%^&*()_+\b\tQWERTYUIOP{}\n\0ASDFGHJKL:\"~\0|ZXCVBNM<>?\0*\0 "
)


class Keyboard:
    """Tracks modifier state and assembles typed characters into lines.

    Each completed line replaces any line not yet read.  Every accepted
    keystroke is echoed through ``echo`` when one is given.
    """

    def __init__(self, echo: Callable[[str], None] | None = None) -> None:
        self._echo = echo
        self.shift_pressed = False
        self.caps_lock_on = False
        self._buffer: list[str] = []
        self._line: str | None = None

    @property
    def input_ready(self) -> bool:
        """Whether a completed line is waiting to be read."""
        return self._line is not None

    def _emit(self, text: str) -> None:
        if self._echo is not None:
            self._echo(text)

    def handle_scancode(self, scancode: int) -> None:
        """Process one byte read from the keyboard data port."""
        if not 0 <= scancode <= 0xFF:
            raise ValueError(f"scancode out of range: {scancode!r}")

        if scancode in (LEFT_SHIFT, RIGHT_SHIFT):
            self.shift_pressed = True
            return
        if scancode in (LEFT_SHIFT_RELEASE, RIGHT_SHIFT_RELEASE):
            self.shift_pressed = False
            return
        if scancode == CAPS_LOCK:
            self.caps_lock_on = not self.caps_lock_on
            return
        if scancode & SCANCODE_RELEASE:
            return

        key = (_SHIFTED if self.shift_pressed else _PLAIN)[scancode]
        if "a" <= key <= "z" and self.caps_lock_on != self.shift_pressed:
            key = key.upper()

        if key == _NO_KEY:
            return
        if key == "\n":
            self._line = "".join(self._buffer)
            self._buffer.clear()
            self._emit("\n")
        elif key == "\b":
            if self._buffer:
                self._buffer.pop()
                self._emit("\b \b")
        elif len(self._buffer) < BUFFER_SIZE - 1:
            self._buffer.append(key)
            self._emit(key)

    def feed(self, scancodes: Iterable[int]) -> None:
        """Process a sequence of scancodes in order."""
        for scancode in scancodes:
            self.handle_scancode(scancode)

    def read_line(self, max_length: int = MAX_INPUT_LENGTH) -> str | None:
        """Take the pending line, cut to ``max_length - 1`` characters.

        Returns ``None`` when no line has been completed yet.
        """
        if max_length < 1:
            raise ValueError("max_length must be at least 1")
        if self._line is None:
            return None
        line, self._line = self._line, None
        return line[:max_length - 1]