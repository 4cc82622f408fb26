import pytest

from apnaos.descriptors import Idt
from apnaos.interrupts import FLOATING_BUS, InterruptController, PortBus, pic_remap
from apnaos.keyboard import KBD_DATA_PORT, Keyboard


def test_port_bus_records_writes_masked():
    ports = PortBus()
    ports.outb(0x3F8, 0x141)
    assert ports.writes == [(0x3F8, 0x41)]


def test_port_bus_reads():
    ports = PortBus({0x64: 0x20, 0x60: [1, 2]})
    assert ports.inb(0x64) == 0x20
    assert ports.inb(0x64) == 0x20
    assert [ports.inb(0x60), ports.inb(0x60)] == [1, 2]
    assert ports.inb(0x60) == FLOATING_BUS
    assert ports.inb(0x70) == FLOATING_BUS


def test_port_bus_rejects_bad_port():
    with pytest.raises(ValueError):
        PortBus().outb(0x10000, 0)


def test_pic_remap_sequence():
    ports = PortBus({0x21: 0xB8, 0xA1: 0x8E})
    pic_remap(ports)
    assert ports.writes == [
        (0x20, 0x11), (0xA0, 0x11),
        (0x21, 0x20), (0xA0, 0x28),
        (0x21, 0x04), (0xA0, 0x02),
        (0x21, 0x01), (0xA0, 0x01),
        (0x21, 0xB8), (0xA0, 0x8E),
    ]


def test_pic_remap_unmasks_keyboard_line():
    ports = PortBus({0x21: 0xFF, 0xA1: 0xFF})
    pic_remap(ports)
    port, mask = ports.writes[-2]
    assert port == 0x21
    assert mask & 0x02 == 0
    assert mask | 0x02 == 0xFF


def test_low_irq_dispatches_and_acknowledges_master():
    calls = []
    ctl = InterruptController(PortBus())
    ctl.register_interrupt_handler(33, lambda: calls.append(33))
    ctl.common_irq_handler(1)
    assert calls == [33]
    assert ctl.ports.writes == [(0x20, 0x20)]


def test_high_irq_acknowledges_both_pics():
    calls = []
    ctl = InterruptController(PortBus())
    ctl.register_interrupt_handler(41, lambda: calls.append(41))
    ctl.common_irq_handler(9)
    assert calls == [41]
    assert ctl.ports.writes == [(0xA0, 0x20), (0x20, 0x20)]


def test_irq_number_is_masked_to_a_byte():
    calls = []
    ctl = InterruptController(PortBus())
    ctl.register_interrupt_handler(33, lambda: calls.append(1))
    ctl.common_irq_handler(0x101)
    assert calls == [1]


def test_unhandled_irq_only_sends_eoi():
    ctl = InterruptController(PortBus())
    ctl.common_irq_handler(0)
    assert ctl.ports.writes == [(0x20, 0x20)]


def test_register_out_of_range():
    ctl = InterruptController(PortBus())
    with pytest.raises(IndexError):
        ctl.register_interrupt_handler(256, lambda: None)


def test_irq_install_sets_sixteen_gates():
    idt = Idt()
    ctl = InterruptController(PortBus())
    stubs = [0x1000 + 0x10 * n for n in range(16)]
    ctl.irq_install(idt, stubs)
    for n, stub in enumerate(stubs):
        entry = idt.entries[32 + n]
        assert entry.base_low | entry.base_high << 16 == stub
        assert (entry.sel, entry.flags) == (0x08, 0x8E)
    assert idt.entries[31].pack() == bytes(8)
    assert idt.entries[48].pack() == bytes(8)


def test_irq_install_requires_sixteen_stubs():
    with pytest.raises(ValueError):
        InterruptController(PortBus()).irq_install(Idt(), [0] * 15)


def test_keyboard_driven_by_irq1():
    ports = PortBus({KBD_DATA_PORT: [0x23, 0x1C]})
    ctl = InterruptController(ports)
    kb = Keyboard()
    ctl.register_interrupt_handler(33, lambda: kb.handle_scancode(ports.inb(KBD_DATA_PORT)))
    ctl.common_irq_handler(1)
    ctl.common_irq_handler(1)
    assert kb.read_line() == "h"