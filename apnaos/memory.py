"""Bump-pointer kernel heap over a flat byte arena."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass

logger = logging.getLogger(__name__)

KERNEL_MEMORY_SIZE = 16 * 1024 * 1024
PAGE_SIZE = 4096
ALIGNMENT = 4

_HEADER = struct.Struct("<IB3x")
HEADER_SIZE = _HEADER.size


class OutOfMemoryError(MemoryError):
    """Raised when the arena cannot satisfy an allocation."""


@dataclass
class MemoryBlock:
    """Header stored in front of every allocation."""

    size: int
    is_free: bool = False


class KernelHeap:
    """A never-compacting allocator handing out addresses inside one arena.

    Addresses are offsets into ``memory``.  Each allocation is preceded by a
    header recording its size and whether it has been freed; freed space is
    never reused until the heap is reset.
    """

    def __init__(self, size: int = KERNEL_MEMORY_SIZE) -> None:
        if size <= 0:
            raise ValueError("heap size must be positive")
        self.size = size
        self.memory = bytearray(size)
        self._offset = 0
        self._addresses: set[int] = set()

    @property
    def used(self) -> int:
        """Number of arena bytes consumed so far, including headers."""
        return self._offset

    def reset(self) -> None:
        """Zero the arena and forget every allocation."""
        self.memory = bytearray(self.size)
        self._offset = 0
        self._addresses.clear()
        logger.debug("Kernel memory initialized.")

    def kmalloc(self, size: int) -> int:
        """Allocate ``size`` bytes and return the address of the payload."""
        if size < 0:
            raise ValueError("allocation size must not be negative")
        total = size + HEADER_SIZE
        if self._offset + total > self.size:
            raise OutOfMemoryError(
                f"cannot allocate {size} bytes: {self.size - self._offset} left"
            )
        header = self._offset
        self._write_header(header, MemoryBlock(size))
        address = header + HEADER_SIZE
        self._addresses.add(address)
        self._offset += total
        self._offset += -self._offset % ALIGNMENT
        return address

    def kfree(self, address: int | None) -> None:
        """Mark the block at ``address`` as free; ``None`` is ignored."""
        if address is None:
            return
        block = self.block_at(address)
        block.is_free = True
        self._write_header(address - HEADER_SIZE, block)
        logger.debug("Memory freed")

    def block_at(self, address: int) -> MemoryBlock:
        """Return the header of the allocation whose payload starts at ``address``."""
        if address not in self._addresses:
            raise ValueError(f"no allocation at address {address:#x}")
        size, is_free = _HEADER.unpack_from(self.memory, address - HEADER_SIZE)
        return MemoryBlock(size, bool(is_free))

    def allocate_pages(self, num_pages: int) -> int:
        """Allocate ``num_pages`` contiguous pages."""
        return self.kmalloc(num_pages * PAGE_SIZE)

    def read(self, address: int, size: int) -> bytes:
        """Return ``size`` bytes starting at ``address``."""
        self._check_range(address, size)
        return bytes(self.memory[address:address + size])

    def write(self, address: int, data: bytes) -> None:
        """Store ``data`` starting at ``address``."""
        self._check_range(address, len(data))
        self.memory[address:address + len(data)] = data

    def copy_memory(self, dest: int, src: int, size: int) -> None:
        """Copy ``size`` bytes from ``src`` to ``dest``."""
        self._check_range(src, size)
        self._check_range(dest, size)
        self.memory[dest:dest + size] = self.memory[src:src + size]

    def copy_page_tables(self, parent_cr3: int, child_cr3: int) -> None:
        """Duplicate one page of page-table data from parent to child."""
        self.copy_memory(child_cr3, parent_cr3, PAGE_SIZE)

    def _write_header(self, offset: int, block: MemoryBlock) -> None:
        _HEADER.pack_into(self.memory, offset, block.size, int(block.is_free))

    def _check_range(self, address: int, size: int) -> None:
        if address < 0 or size < 0 or address + size > self.size:
            raise IndexError(
                f"range {address:#x}+{size} lies outside the {self.size}-byte heap"
            )