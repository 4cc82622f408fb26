"""Priority scheduling and the fork, wait, exit and yield system calls."""

from __future__ import annotations

import logging
from collections.abc import Generator
from typing import NoReturn

from .memory import PAGE_SIZE, KernelHeap
from .process import PCB, ProcessEntry, ProcessQueue, ProcessState

logger = logging.getLogger(__name__)

KERNEL_STACK_SIZE = 4096
USER_STACK_SIZE = 4096
PCB_SIZE = 64
_INITIAL_FRAME = 8


class _ProcessExit(BaseException):
    """Unwinds a process that called exit."""

    def __init__(self, status: int) -> None:
        super().__init__(status)
        self.status = status


class Scheduler:
    """Runs processes on one simulated CPU.

    A process entry is called with the scheduler.  It may be a plain
    function, or a generator function that gives up the CPU with
    ``yield from scheduler.yield_syscall()`` and waits for children with
    ``pid, status = yield from scheduler.wait_syscall()``.  Returning from
    the entry counts as exiting with status 0.
    """

    def __init__(self, heap: KernelHeap | None = None) -> None:
        self.heap = heap if heap is not None else KernelHeap()
        self.ready_queue = ProcessQueue()
        self.current_process: PCB | None = None
        self.process_table: list[PCB] = []
        self._next_pid = 1
        logger.debug("Process management system initialized.")

    def get_new_pid(self) -> int:
        pid = self._next_pid
        self._next_pid += 1
        return pid

    def _allocate_kernel_stack(self, process: PCB) -> None:
        base = self.heap.kmalloc(KERNEL_STACK_SIZE)
        process.kernel_stack_base = base
        process.kernel_stack_ptr = base + KERNEL_STACK_SIZE

    def _require_current(self, call: str) -> PCB:
        if self.current_process is None:
            raise RuntimeError(f"{call} failed - no current process")
        return self.current_process

    def create_process(
        self,
        pid: int,
        entry: ProcessEntry,
        priority: int = 1,
        deadline: int = 0,
        time_to_run: int = 0,
    ) -> PCB:
        """Allocate stacks for a new process and make it ready."""
        stack = self.heap.kmalloc(USER_STACK_SIZE)
        address = self.heap.kmalloc(PCB_SIZE)
        process = PCB(
            pid=pid,
            entry=entry,
            priority=priority,
            deadline=deadline,
            time_to_run=time_to_run,
            address=address,
            user_stack_base=stack,
            user_stack_ptr=stack + USER_STACK_SIZE - _INITIAL_FRAME,
        )
        self._allocate_kernel_stack(process)
        self.process_table.insert(0, process)
        process.state = ProcessState.READY
        self.ready_queue.enqueue(process)
        return process

    def schedule(self) -> PCB | None:
        """Pick the next process to run and make it current.

        A process still running is put back in the ready queue first.
        Returns ``None`` when nothing is ready.
        """
        current = self.current_process
        if current is not None and current.state == ProcessState.RUNNING:
            current.state = ProcessState.READY
            self.ready_queue.enqueue(current)

        if self.ready_queue.is_empty():
            logger.debug("No more processes in ready queue")
            self.current_process = None
            return None

        process = self.ready_queue.dequeue()
        process.state = ProcessState.RUNNING
        process.is_new_child = False
        logger.debug("Switching to process: %d", process.pid)
        self.current_process = process
        return process

    def fork_syscall(self, child_entry: ProcessEntry) -> int:
        """Create a child of the current process and return its pid.

        The child starts at ``child_entry`` with a copy of the parent's stack
        and page tables, and the parent carries on without a switch.
        """
        parent = self._require_current("fork")
        address = self.heap.kmalloc(PCB_SIZE)
        child = PCB(
            pid=self.get_new_pid(),
            entry=child_entry,
            priority=parent.priority,
            parent=parent,
            address=address,
        )
        stack = self.heap.kmalloc(USER_STACK_SIZE)
        if parent.user_stack_base is not None:
            self.heap.copy_memory(stack, parent.user_stack_base, USER_STACK_SIZE)
            offset = (parent.user_stack_ptr or parent.user_stack_base) - parent.user_stack_base
            child.user_stack_ptr = stack + offset
        else:
            child.user_stack_ptr = stack + USER_STACK_SIZE - _INITIAL_FRAME
        child.user_stack_base = stack

        if parent.cr3:
            child.cr3 = self.heap.kmalloc(PAGE_SIZE)
            self.heap.copy_page_tables(parent.cr3, child.cr3)

        self._allocate_kernel_stack(child)
        child.state = ProcessState.READY
        child.is_new_child = True
        self.process_table.insert(0, child)
        self.ready_queue.enqueue(child)
        logger.debug("Fork created new process with PID: %d", child.pid)
        return child.pid

    def _reap(self, parent: PCB) -> PCB | None:
        for process in self.process_table:
            if process.parent is parent and process.state == ProcessState.ZOMBIE:
                self.process_table.remove(process)
                return process
        return None

    def wait_syscall(self) -> Generator[None, None, tuple[int, int]]:
        """Collect a finished child, blocking once if none has finished.

        Yields ``(pid, exit_status)``; raises ``ChildProcessError`` when no
        finished child is found after being woken.
        """
        parent = self._require_current("wait")
        child = self._reap(parent)
        if child is None:
            logger.debug("No zombie children; blocking pid %d", parent.pid)
            parent.state = ProcessState.BLOCKED
            yield from self.yield_syscall()
            child = self._reap(parent)
            if child is None:
                raise ChildProcessError("no children found after blocking")
        self.heap.kfree(child.address)
        return child.pid, child.exit_status

    def _terminate(self, process: PCB, status: int) -> None:
        process.exit_status = status
        process.state = ProcessState.ZOMBIE
        parent = process.parent
        if parent is not None and parent.state == ProcessState.BLOCKED:
            parent.state = ProcessState.READY
            self.ready_queue.enqueue(parent)

    def exit_syscall(self, status: int) -> NoReturn:
        """End the current process, waking its parent if it is waiting."""
        process = self._require_current("exit")
        logger.debug("Exiting process %d with status %d", process.pid, status)
        self._terminate(process, status)
        raise _ProcessExit(status)

    def yield_syscall(self) -> Generator[None, None, None]:
        """Give up the CPU until the scheduler picks this process again."""
        process = self._require_current("yield")
        logger.debug("Process yielding CPU has PID: %d", process.pid)
        yield

    def _finish(self, process: PCB) -> None:
        if process.state == ProcessState.RUNNING:
            self._terminate(process, 0)

    def _dispatch(self, process: PCB) -> None:
        try:
            if process.task is None:
                if process.entry is None:
                    self._finish(process)
                    return
                result = process.entry(self)
                if not isinstance(result, Generator):
                    self._finish(process)
                    return
                process.task = result
            process.task.send(None)
        except StopIteration:
            self._finish(process)
        except _ProcessExit:
            pass

    def run(self) -> None:
        """Run ready processes until none is left."""
        while (process := self.schedule()) is not None:
            self._dispatch(process)