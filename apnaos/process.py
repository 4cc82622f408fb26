"""Process control blocks and ordered ready queues."""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Iterator
from dataclasses import dataclass, field
from enum import IntEnum
from itertools import islice
from operator import attrgetter
from typing import Any

logger = logging.getLogger(__name__)

ProcessEntry = Callable[[Any], object]


class ProcessState(IntEnum):
    READY = 0
    RUNNING = 1
    BLOCKED = 2
    NEW = 3
    EXIT = 4
    ZOMBIE = 5


@dataclass(eq=False)
class PCB:
    """Everything the kernel keeps about one process.

    A lower ``priority`` number means a more urgent process.  Stack and
    record fields hold heap addresses.
    """

    pid: int
    entry: ProcessEntry | None = None
    priority: int = 1
    deadline: int = 0
    time_to_run: int = 0
    state: ProcessState = ProcessState.NEW
    parent: PCB | None = field(default=None, repr=False)
    exit_status: int = 0
    is_new_child: bool = False
    cr3: int = 0
    address: int | None = None
    user_stack_base: int | None = None
    user_stack_ptr: int | None = None
    kernel_stack_base: int | None = None
    kernel_stack_ptr: int | None = None
    task: Generator[None, None, Any] | None = field(default=None, repr=False)


class ProcessQueue:
    """A queue kept ordered by insertion on one key of its processes.

    A newcomer goes in front only when its key is strictly smaller than the
    front's; otherwise it is placed after every following process whose key
    does not exceed its own, so equal keys stay first-come first-served.
    """

    def __init__(self) -> None:
        self._items: list[PCB] = []

    def is_empty(self) -> bool:
        return not self._items

    def _insert(self, process: PCB, key: Callable[[PCB], int]) -> None:
        items = self._items
        value = key(process)
        if not items or value < key(items[0]):
            items.insert(0, process)
            return
        position = next(
            (
                index
                for index, queued in enumerate(islice(items, 1, None), start=1)
                if key(queued) > value
            ),
            len(items),
        )
        items.insert(position, process)

    def enqueue(self, process: PCB) -> None:
        """Insert ordered by priority."""
        self._insert(process, attrgetter("priority"))

    def enqueue_edf(self, process: PCB) -> None:
        """Insert ordered by deadline (earliest deadline first)."""
        self._insert(process, attrgetter("deadline"))

    def enqueue_sjf(self, process: PCB) -> None:
        """Insert ordered by run time (shortest job first)."""
        self._insert(process, attrgetter("time_to_run"))

    def dequeue(self) -> PCB:
        """Remove and return the front process."""
        if not self._items:
            raise IndexError("dequeue from an empty process queue")
        process = self._items.pop(0)
        logger.debug("Dequeued process has pid: %d", process.pid)
        return process

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[PCB]:
        return iter(list(self._items))