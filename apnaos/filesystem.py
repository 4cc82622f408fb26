"""A flat, in-memory, single-directory block file system."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

MAGIC = 0x12345678
BLOCK_COUNT = 1024
BLOCK_SIZE = 4096
MAX_BLOCKS_PER_FILE = 2
MAX_FILENAME_LEN = 255
MAX_FILES = 512
INODE_BLOCK_SLOTS = 12


class FileSystemError(Exception):
    """Raised when a file system operation fails."""


@dataclass
class Superblock:
    magic: int = MAGIC
    total_blocks: int = BLOCK_COUNT
    free_blocks: int = BLOCK_COUNT
    block_size: int = BLOCK_SIZE


@dataclass
class Inode:
    """Metadata of one file; an ``inode_number`` of 0 means the slot is free."""

    inode_number: int = 0
    size: int = 0
    blocks: list[int | None] = field(
        default_factory=lambda: [None] * INODE_BLOCK_SLOTS
    )
    indirect_block: int | None = None

    def clear(self) -> None:
        self.inode_number = 0
        self.size = 0
        self.blocks = [None] * INODE_BLOCK_SLOTS
        self.indirect_block = None


@dataclass
class DirectoryEntry:
    """One name in the root directory; ``inode_number`` 0 marks an empty slot."""

    filename: str = ""
    inode_number: int = 0


def _as_bytes(data: bytes | str) -> bytes:
    return data.encode() if isinstance(data, str) else bytes(data)


class FileSystem:
    """Root directory, inode table and block storage held in memory.

    Only the first block of a file holds data, so a file never exceeds
    ``BLOCK_SIZE`` bytes.  Names are compared on their first
    ``MAX_FILENAME_LEN`` characters and need not be unique; lookups find the
    first matching entry.
    """

    def __init__(self) -> None:
        self.superblock = Superblock()
        self.inodes = [Inode() for _ in range(MAX_FILES)]
        self.directory = [DirectoryEntry() for _ in range(MAX_FILES)]
        self.block_bitmap = [False] * BLOCK_COUNT
        self._storage: dict[int, bytearray] = {}
        self.format_disk()
        logger.debug("File system created.")

    def format_disk(self) -> None:
        """Reset the superblock, inodes, directory and block bitmap."""
        self.superblock = Superblock()
        for inode in self.inodes:
            inode.clear()
        for entry in self.directory:
            entry.inode_number = 0
        self.block_bitmap = [False] * BLOCK_COUNT
        logger.debug("Disk formatted and file system reset.")

    def _allocate_inode(self) -> int | None:
        for index, inode in enumerate(self.inodes):
            if inode.inode_number == 0:
                inode.inode_number = index + 1
                return index
        return None

    def _allocate_block(self) -> int | None:
        for index, used in enumerate(self.block_bitmap):
            if not used:
                self.block_bitmap[index] = True
                self.superblock.free_blocks -= 1
                return index
        return None

    def _free_block(self, index: int) -> None:
        self.block_bitmap[index] = False
        self.superblock.free_blocks += 1

    def _block(self, index: int) -> bytearray:
        return self._storage.setdefault(index, bytearray(BLOCK_SIZE))

    def allocate_blocks(self, inode_index: int, required_blocks: int) -> int:
        """Fill empty block slots of an inode; return how many were allocated."""
        inode = self.inodes[inode_index]
        allocated = 0
        for slot in range(MAX_BLOCKS_PER_FILE):
            if allocated >= required_blocks:
                break
            if inode.blocks[slot] is None:
                block = self._allocate_block()
                if block is None:
                    break
                inode.blocks[slot] = block
                allocated += 1
        return allocated

    def create_file(self, filename: str) -> int:
        """Create an empty file and return its inode index."""
        inode_index = self._allocate_inode()
        if inode_index is None:
            raise FileSystemError("No free inodes available.")
        inode = self.inodes[inode_index]
        block = self._allocate_block()
        if block is None:
            inode.inode_number = 0
            raise FileSystemError("No free disk space.")
        inode.size = 0
        inode.blocks[0] = block

        for entry in self.directory:
            if entry.inode_number == 0:
                entry.filename = filename[:MAX_FILENAME_LEN]
                entry.inode_number = inode_index + 1
                logger.debug("File created.")
                return inode_index

        self._free_block(block)
        inode.clear()
        raise FileSystemError("Root directory full.")

    def _find(self, filename: str) -> DirectoryEntry:
        key = filename[:MAX_FILENAME_LEN]
        for entry in self.directory:
            if entry.inode_number != 0 and entry.filename == key:
                return entry
        raise FileSystemError("File not found.")

    def _inode_of(self, entry: DirectoryEntry) -> Inode:
        return self.inodes[entry.inode_number - 1]

    def delete_file(self, filename: str) -> None:
        """Remove a file and release its blocks."""
        entry = self._find(filename)
        inode = self._inode_of(entry)
        for block in inode.blocks[:MAX_BLOCKS_PER_FILE]:
            if block is not None:
                self._free_block(block)
        inode.clear()
        entry.inode_number = 0
        entry.filename = ""
        logger.debug("File deleted successfully.")

    def read_file(self, filename: str, size: int) -> bytes:
        """Return up to ``size`` bytes from the start of a file."""
        inode = self._inode_of(self._find(filename))
        block = inode.blocks[0]
        if block is None:
            raise FileSystemError("File has no allocated blocks.")
        read_size = min(size, inode.size)
        logger.debug("File read.")
        return bytes(self._block(block)[:read_size])

    def write_file(self, filename: str, data: bytes | str) -> int:
        """Replace a file's contents; data beyond one block is dropped."""
        payload = _as_bytes(data)
        inode = self._inode_of(self._find(filename))
        block = inode.blocks[0]
        if block is None:
            raise FileSystemError("File has no allocated blocks.")
        write_size = min(len(payload), BLOCK_SIZE)
        self._block(block)[:write_size] = payload[:write_size]
        inode.size = write_size
        logger.debug("File written.")
        return write_size

    def append_to_file(self, filename: str, data: bytes | str) -> int:
        """Add data to the end of a file; the result must fit in one block."""
        payload = _as_bytes(data)
        inode = self._inode_of(self._find(filename))
        current = inode.size
        if current + len(payload) > BLOCK_SIZE:
            raise FileSystemError("File size exceeds block limit.")
        block = inode.blocks[0]
        if block is None:
            raise FileSystemError("File has no allocated blocks.")
        self._block(block)[current:current + len(payload)] = payload
        inode.size += len(payload)
        logger.debug("Data appended to file.")
        return len(payload)

    def list_files(self) -> list[str]:
        """Names in the root directory, in slot order."""
        logger.debug("Listing files.")
        return [e.filename for e in self.directory if e.inode_number != 0]