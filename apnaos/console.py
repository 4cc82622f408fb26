"""Text-mode screen and serial debug output."""

from __future__ import annotations

import sys
from typing import TextIO

from .numfmt import int_to_hex

VGA_WIDTH = 80
VGA_HEIGHT = 25
DEFAULT_ATTRIBUTE = 0x07


class VgaScreen:
    """An 80x25 text screen held as character/attribute byte pairs."""

    def __init__(self) -> None:
        self.memory = bytearray(b" \x07" * (VGA_WIDTH * VGA_HEIGHT))
        self.row = 0
        self.col = 0

    @property
    def cursor(self) -> tuple[int, int]:
        return self.row, self.col

    def putchar(self, c: str) -> None:
        """Write one character at the cursor and advance it."""
        if len(c) != 1:
            raise ValueError("putchar takes exactly one character")
        if c == "\n":
            self.row += 1
            self.col = 0
        else:
            offset = (self.row * VGA_WIDTH + self.col) * 2
            self.memory[offset] = ord(c) & 0xFF
            self.memory[offset + 1] = DEFAULT_ATTRIBUTE
            self.col += 1
            if self.col >= VGA_WIDTH:
                self.row += 1
                self.col = 0
        if self.row >= VGA_HEIGHT:
            self.scroll()

    def print(self, message: str) -> None:
        """Write a string at the cursor."""
        for c in message:
            self.putchar(c)

    def scroll(self) -> None:
        """Move every row up by one and blank the bottom row."""
        line = VGA_WIDTH * 2
        self.memory[:-line] = self.memory[line:]
        self.memory[-line:] = b" \x07" * VGA_WIDTH
        self.row = VGA_HEIGHT - 1
        self.col = 0

    def row_text(self, row: int) -> str:
        """The characters shown on ``row``."""
        if not 0 <= row < VGA_HEIGHT:
            raise IndexError(f"row out of range: {row}")
        start = row * VGA_WIDTH * 2
        return bytes(self.memory[start:start + VGA_WIDTH * 2:2]).decode("latin-1")


class SerialConsole:
    """Debug output over the first serial port, written to a text stream."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream

    def print(self, message: str) -> None:
        """Send ``message`` unchanged."""
        stream = self.stream if self.stream is not None else sys.stdout
        stream.write(message)
        stream.flush()

    def debug_print(self, msg: str) -> None:
        """Send ``msg`` followed by CR LF."""
        self.print(msg)
        self.print("\r\n")

    def debug_int(self, val: int) -> None:
        """Send ``val`` as eight hex digits on a line of its own."""
        self.debug_print(int_to_hex(val))