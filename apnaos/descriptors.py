"""Global and interrupt descriptor table entries in their packed layouts."""

from __future__ import annotations

import struct
from dataclasses import dataclass

GDT_ENTRY_COUNT = 3
IDT_ENTRIES = 256
KERNEL_CODE_SELECTOR = 0x08
INTERRUPT_GATE_FLAGS = 0x8E
EXCEPTION_COUNT = 32

_GDT_ENTRY = struct.Struct("<HHBBBB")
_IDT_ENTRY = struct.Struct("<HHBBH")
_POINTER = struct.Struct("<HI")

GDT_LIMIT = _GDT_ENTRY.size * GDT_ENTRY_COUNT - 1
IDT_LIMIT = _IDT_ENTRY.size * IDT_ENTRIES - 1


@dataclass(frozen=True)
class GdtEntry:
    """One segment descriptor."""

    limit_low: int = 0
    base_low: int = 0
    base_middle: int = 0
    access: int = 0
    granularity: int = 0
    base_high: int = 0

    def pack(self) -> bytes:
        return _GDT_ENTRY.pack(
            self.limit_low,
            self.base_low,
            self.base_middle,
            self.access,
            self.granularity,
            self.base_high,
        )


@dataclass(frozen=True)
class IdtEntry:
    """One interrupt gate."""

    base_low: int = 0
    sel: int = 0
    always0: int = 0
    flags: int = 0
    base_high: int = 0

    def pack(self) -> bytes:
        return _IDT_ENTRY.pack(
            self.base_low, self.sel, self.always0, self.flags, self.base_high
        )


@dataclass(frozen=True)
class DescriptorPointer:
    """The limit/base pair loaded by lgdt and lidt."""

    limit: int
    base: int

    def pack(self) -> bytes:
        return _POINTER.pack(self.limit & 0xFFFF, self.base & 0xFFFFFFFF)


def gdt_entry(base: int, limit: int, access: int, gran: int) -> GdtEntry:
    """Build a segment descriptor from a base, a 20-bit limit and flags."""
    return GdtEntry(
        limit_low=limit & 0xFFFF,
        base_low=base & 0xFFFF,
        base_middle=(base >> 16) & 0xFF,
        access=access & 0xFF,
        granularity=((limit >> 16) & 0x0F) | (gran & 0xF0),
        base_high=(base >> 24) & 0xFF,
    )


def build_gdt() -> list[GdtEntry]:
    """The null descriptor and flat 4 GiB kernel code and data segments."""
    return [
        gdt_entry(0, 0, 0, 0),
        gdt_entry(0, 0xFFFFFFFF, 0x9A, 0xCF),
        gdt_entry(0, 0xFFFFFFFF, 0x92, 0xCF),
    ]


class Idt:
    """A table of 256 interrupt gates, all empty at first."""

    def __init__(self) -> None:
        self.entries = [IdtEntry() for _ in range(IDT_ENTRIES)]

    def set_gate(self, num: int, base: int, sel: int, flags: int) -> None:
        """Point gate ``num`` at handler address ``base``."""
        if not 0 <= num < IDT_ENTRIES:
            raise IndexError(f"gate number out of range: {num}")
        self.entries[num] = IdtEntry(
            base_low=base & 0xFFFF,
            sel=sel & 0xFFFF,
            always0=0,
            flags=flags & 0xFF,
            base_high=(base >> 16) & 0xFFFF,
        )

    def install(self, stub_address: int) -> None:
        """Route every CPU exception vector to one stub."""
        for num in range(EXCEPTION_COUNT):
            self.set_gate(num, stub_address, KERNEL_CODE_SELECTOR, INTERRUPT_GATE_FLAGS)

    def to_bytes(self) -> bytes:
        """The whole table as the CPU would read it."""
        return b"".join(entry.pack() for entry in self.entries)