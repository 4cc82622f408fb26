"""I/O port access, PIC initialisation and IRQ dispatch."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Callable

from .descriptors import IDT_ENTRIES, INTERRUPT_GATE_FLAGS, KERNEL_CODE_SELECTOR, Idt

FLOATING_BUS = 0xFF
PIC1_COMMAND = 0x20
PIC1_DATA = 0x21
PIC2_COMMAND = 0xA0
PIC2_DATA = 0xA1
PIC_EOI = 0x20
IRQ_BASE = 32
IRQ_COUNT = 16

InterruptHandler = Callable[[], None]


class PortBus:
    """An x86 I/O port space that records writes and serves scripted reads.

    ``inputs`` maps a port to either a constant byte or an iterable of bytes
    returned one per read.  Ports without input, or whose input has run out,
    read as ``FLOATING_BUS``.
    """

    def __init__(self, inputs: Mapping[int, int | Iterable[int]] | None = None) -> None:
        self._constants: dict[int, int] = {}
        self._streams: dict[int, Iterator[int]] = {}
        for port, value in (inputs or {}).items():
            if isinstance(value, int):
                self._constants[port] = value & 0xFF
            else:
                self._streams[port] = iter(value)
        self.writes: list[tuple[int, int]] = []

    @staticmethod
    def _check_port(port: int) -> None:
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port out of range: {port:#x}")

    def outb(self, port: int, value: int) -> None:
        """Write one byte to ``port``."""
        self._check_port(port)
        self.writes.append((port, value & 0xFF))

    def inb(self, port: int) -> int:
        """Read one byte from ``port``."""
        self._check_port(port)
        if port in self._streams:
            return next(self._streams[port], FLOATING_BUS) & 0xFF
        return self._constants.get(port, FLOATING_BUS)


def pic_remap(ports: PortBus) -> None:
    """Reinitialise the two 8259 PICs and unmask the keyboard line."""
    a1 = ports.inb(PIC1_DATA)
    a2 = ports.inb(PIC2_DATA)

    ports.outb(PIC1_COMMAND, 0x11)
    ports.outb(PIC2_COMMAND, 0x11)

    ports.outb(PIC1_DATA, 0x20)
    ports.outb(PIC2_COMMAND, 0x28)

    ports.outb(PIC1_DATA, 0x04)
    ports.outb(PIC2_COMMAND, 0x02)

    ports.outb(PIC1_DATA, 0x01)
    ports.outb(PIC2_COMMAND, 0x01)

    ports.outb(PIC1_DATA, a1 & ~(1 << 1))
    ports.outb(PIC2_COMMAND, a2)


class InterruptController:
    """Holds the handler table and acknowledges IRQs on the PICs."""

    def __init__(self, ports: PortBus) -> None:
        self.ports = ports
        self.handlers: list[InterruptHandler | None] = [None] * IDT_ENTRIES

    def register_interrupt_handler(self, n: int, handler: InterruptHandler) -> None:
        """Install ``handler`` for interrupt vector ``n``."""
        if not 0 <= n < IDT_ENTRIES:
            raise IndexError(f"interrupt vector out of range: {n}")
        self.handlers[n] = handler

    def irq_handler(self, irq: int) -> None:
        """Run the handler registered for hardware line ``irq``, if any."""
        vector = irq + IRQ_BASE
        if not 0 <= vector < IDT_ENTRIES:
            raise IndexError(f"IRQ out of range: {irq}")
        handler = self.handlers[vector]
        if handler is not None:
            handler()

    def common_irq_handler(self, irq_num: int) -> None:
        """Dispatch an IRQ and send end-of-interrupt to the PICs."""
        irq = irq_num & 0xFF
        self.irq_handler(irq)
        if irq >= 8:
            self.ports.outb(PIC2_COMMAND, PIC_EOI)
        self.ports.outb(PIC1_COMMAND, PIC_EOI)

    def irq_install(self, idt: Idt, stub_addresses: Sequence[int]) -> None:
        """Point the sixteen IRQ vectors at their entry stubs."""
        if len(stub_addresses) != IRQ_COUNT:
            raise ValueError(f"expected {IRQ_COUNT} stub addresses")
        for line, address in enumerate(stub_addresses):
            idt.set_gate(
                IRQ_BASE + line, address, KERNEL_CODE_SELECTOR, INTERRUPT_GATE_FLAGS
            )