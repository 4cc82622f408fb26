"""The kernel command line and the built-in demonstration processes."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable, Generator, Iterable
from typing import Any, Protocol

from .console import SerialConsole, VgaScreen
from .descriptors import Idt, build_gdt
from .filesystem import FileSystem, FileSystemError
from .interrupts import InterruptController, PortBus, pic_remap
from .keyboard import KBD_DATA_PORT, Keyboard
from .memory import KernelHeap, OutOfMemoryError
from .numfmt import atoi, int_to_str
from .process import ProcessState
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

PROMPT = "CLI> "
READ_BUFFER_SIZE = 128
KEYBOARD_VECTOR = 33
_DELIMITERS = " \t"

PROCESS_USAGE = (
    "Usage: process <dummy1|dummy2|dummy3|syscall test|process test|start> [priority]\n"
)
FILE_USAGE = "Usage: file <operation> <filename> [args]\n"
UNKNOWN_FILE_OPERATION = (
    "Unknown file operation. Use 'make', 'read', 'write', 'append', 'rm', or 'ls'.\n"
)
UNKNOWN_COMMAND = "Unknown command. Use 'process', 'file', 'ls', or 'exit'.\n"


class _Output(Protocol):
    def print(self, message: str) -> None: ...


KernelTask = Callable[["Shell"], Any]


def dummy_process_1(kernel: Shell) -> None:
    """Announce itself on the screen and exit with status 0."""
    kernel.screen.print("Dummy Process 1 is running.\n")
    kernel.scheduler.exit_syscall(0)


def dummy_process_2(kernel: Shell) -> None:
    """Announce itself on the screen and exit with status 0."""
    kernel.screen.print("Dummy Process 2 is running.\n")
    kernel.scheduler.exit_syscall(0)


def dummy_process_3(kernel: Shell) -> None:
    """Announce itself on the screen and exit with status 0."""
    kernel.screen.print("Dummy Process 3 is running.\n")
    kernel.scheduler.exit_syscall(0)


def _fork_child(kernel: Shell) -> None:
    logger.debug("Child process running")
    logger.debug("Child process exiting")
    kernel.scheduler.exit_syscall(42)


def _test_simple_fork(kernel: Shell) -> Generator[None, None, None]:
    scheduler = kernel.scheduler
    logger.debug("Testing simple fork")
    child_pid = scheduler.fork_syscall(kernel.entry(_fork_child))
    logger.debug("Fork returned with PID: %d", child_pid)
    try:
        pid, status = yield from scheduler.wait_syscall()
    except ChildProcessError:
        pid, status = -1, 0
    logger.debug("Wait returned with PID: %d, child exit status: %d", pid, status)
    if pid == child_pid and status == 42:
        logger.debug("Simple fork test PASSED")
    else:
        logger.debug("Simple fork test FAILED")
    scheduler.current_process.state = ProcessState.EXIT
    yield from scheduler.yield_syscall()


def _syscall_test(kernel: Shell) -> None:
    logger.debug("Starting fork and wait syscall tests")
    scheduler = kernel.scheduler
    scheduler.create_process(
        scheduler.get_new_pid(), kernel.entry(_test_simple_fork), 1, 2, 3
    )
    logger.debug("Fork and wait syscall tests complete")
    scheduler.exit_syscall(0)


def _looping_test(number: int, iterations: int) -> KernelTask:
    def task(kernel: Shell) -> Generator[None, None, None]:
        scheduler = kernel.scheduler
        logger.debug("Test process %d running", number)
        for iteration in range(iterations):
            logger.debug("Test process %d iteration %d", number, iteration)
            yield from scheduler.yield_syscall()
        logger.debug("Test process %d complete", number)
        scheduler.current_process.state = ProcessState.EXIT
        yield from scheduler.yield_syscall()

    return task


def _test_scheduler(kernel: Shell) -> Generator[None, None, None]:
    scheduler = kernel.scheduler
    logger.debug("Testing scheduler started.")
    scheduler.ready_queue.clear()
    for number, iterations, deadline, run_time in ((1, 3, 2, 3), (2, 2, 4, 5), (3, 0, 6, 7)):
        scheduler.create_process(
            scheduler.get_new_pid(),
            kernel.entry(_looping_test(number, iterations)),
            1,
            deadline,
            run_time,
        )
    logger.debug("Created test processes")
    for _ in range(5):
        logger.debug("Scheduler iteration")
        yield from scheduler.yield_syscall()
    logger.debug("Scheduler test complete")
    scheduler.current_process.state = ProcessState.EXIT
    yield from scheduler.yield_syscall()


def _process_test(kernel: Shell) -> Generator[None, None, None]:
    scheduler = kernel.scheduler
    logger.debug("Starting comprehensive process management test")
    scheduler.create_process(
        scheduler.get_new_pid(), kernel.entry(_test_scheduler), 1, 2, 3
    )
    yield from scheduler.yield_syscall()
    logger.debug("Comprehensive process management test complete")


PROCESS_COMMANDS: dict[str, KernelTask] = {
    "dummy1": dummy_process_1,
    "dummy2": dummy_process_2,
    "dummy3": dummy_process_3,
}


class _Tokens:
    """Successive tokens of one line, each taken with its own delimiters."""

    def __init__(self, text: str) -> None:
        self._rest: str | None = text

    def next(self, delimiters: str = _DELIMITERS) -> str | None:
        if self._rest is None:
            return None
        text = self._rest.lstrip(delimiters)
        if not text:
            self._rest = None
            return None
        end = next((i for i, c in enumerate(text) if c in delimiters), None)
        if end is None:
            self._rest = None
            return text
        self._rest = text[end + 1:]
        return text[:end]


class Shell:
    """Interprets the kernel's command line against its subsystems."""

    def __init__(
        self,
        screen: _Output | None = None,
        filesystem: FileSystem | None = None,
        scheduler: Scheduler | None = None,
        heap: KernelHeap | None = None,
    ) -> None:
        if heap is None:
            heap = scheduler.heap if scheduler is not None else KernelHeap()
        self.heap = heap
        self.screen = screen if screen is not None else VgaScreen()
        self.filesystem = filesystem if filesystem is not None else FileSystem()
        self.scheduler = scheduler if scheduler is not None else Scheduler(heap)

    def entry(self, task: KernelTask) -> Callable[[Scheduler], Any]:
        """Wrap ``task`` as a process entry that receives this shell."""
        return lambda _scheduler: task(self)

    def _queue(self, task: KernelTask, priority: int) -> None:
        try:
            self.scheduler.create_process(
                self.scheduler.get_new_pid(), self.entry(task), priority, 1, 2
            )
        except OutOfMemoryError:
            self.screen.print("Error: Unable to allocate process stack.\n")

    def _list_files(self) -> None:
        for name in self.filesystem.list_files():
            self.screen.print(name)
            self.screen.print("\n")

    def execute(self, line: str) -> bool:
        """Run one command line; return False once the CLI should stop."""
        tokens = _Tokens(line)
        command = tokens.next()
        if command is None:
            return True
        if command == "exit":
            self.screen.print("Exiting kernel CLI...\n")
            return False
        if command == "process":
            self._process_command(tokens)
        elif command == "file":
            self._file_command(tokens)
        elif command == "ls":
            self._list_files()
        else:
            self.screen.print(UNKNOWN_COMMAND)
        return True

    def _process_command(self, tokens: _Tokens) -> None:
        name = tokens.next()
        if name is None:
            self.screen.print(PROCESS_USAGE)
            return
        if name == "start":
            self.screen.print("Starting scheduled processes...\n")
            self.scheduler.run()
            return

        argument = tokens.next()
        extra = tokens.next()
        special = {"syscall": ("syscall_test", _syscall_test), "process": ("process_test", _process_test)}
        if name in special and argument == "test":
            label, task = special[name]
            priority = atoi(extra) if extra is not None else 1
            self.screen.print(f"Queueing {label} process...\n")
            self._queue(task, priority)
            return

        priority = atoi(argument) if argument is not None else 1
        task = PROCESS_COMMANDS.get(name)
        if task is None:
            self.screen.print("Error: Unknown process name.\n")
            return
        self.screen.print("Queueing process...\n")
        self._queue(task, priority)

    def _file_command(self, tokens: _Tokens) -> None:
        operation = tokens.next()
        if operation is None:
            self.screen.print(FILE_USAGE)
            return
        fs = self.filesystem
        if operation == "make":
            filename = tokens.next()
            if filename is None:
                self.screen.print("Usage: file make <filename>\n")
                return
            try:
                fs.create_file(filename)
            except FileSystemError:
                self.screen.print("Error: Failed to create file.\n")
            else:
                self.screen.print("File created successfully.\n")
        elif operation == "read":
            filename = tokens.next()
            if filename is None:
                self.screen.print("Usage: file read <filename>\n")
                return
            try:
                content = fs.read_file(filename, READ_BUFFER_SIZE)
            except FileSystemError:
                self.screen.print("Error: Failed to read file.\n")
            else:
                text = content.decode("utf-8", errors="replace").split("\0", 1)[0]
                self.screen.print("File content: ")
                self.screen.print(text)
                self.screen.print("\n")
        elif operation in ("write", "append"):
            filename = tokens.next()
            data = tokens.next("\n")
            if filename is None or data is None:
                self.screen.print(f"Usage: file {operation} <filename> <data>\n")
                return
            try:
                if operation == "write":
                    fs.write_file(filename, data)
                else:
                    fs.append_to_file(filename, data)
            except FileSystemError:
                verb = "write to" if operation == "write" else "append to"
                self.screen.print(f"Error: Failed to {verb} file.\n")
            else:
                verb = "written to" if operation == "write" else "appended to"
                self.screen.print(f"Data {verb} file successfully.\n")
        elif operation == "rm":
            filename = tokens.next()
            if filename is None:
                self.screen.print("Usage: file rm <filename>\n")
                return
            try:
                fs.delete_file(filename)
            except FileSystemError:
                self.screen.print("Error: Failed to delete file.\n")
            else:
                self.screen.print("File deleted successfully.\n")
        elif operation == "ls":
            self._list_files()
        else:
            self.screen.print(UNKNOWN_FILE_OPERATION)

    def run(self, lines: Iterable[str]) -> bool:
        """Prompt for and execute lines until ``exit``; True if exit was given."""
        self.screen.print(PROMPT)
        for raw in lines:
            line = raw.rstrip("\r\n")
            self.screen.print(line + "\n")
            if not self.execute(line):
                return True
            self.screen.print(PROMPT)
        return False


class _Terminal:
    """Screen output written straight to a text stream."""

    def __init__(self, stream: Any) -> None:
        self.stream = stream

    def print(self, message: str) -> None:
        self.stream.write(message)
        self.stream.flush()


def main(argv: list[str] | None = None) -> int:
    """Boot the kernel and run its command line on standard input."""
    parser = argparse.ArgumentParser(
        prog="apnaos", description="Run the kernel command line on standard input."
    )
    parser.parse_args(argv)

    serial = SerialConsole(sys.stderr)
    screen = _Terminal(sys.stdout)
    serial.debug_print("DEBUG: Entering kernel_main.")
    for number in range(1, 31):
        screen.print(f"Debug: line {int_to_str(number)}\n")

    heap = KernelHeap()
    serial.debug_print("DEBUG: Memory initialized.")
    filesystem = FileSystem()
    serial.debug_print("DEBUG: Filesystem initialized.")

    build_gdt()
    screen.print("DEBUG: GDT installed.\n")
    ports = PortBus()
    pic_remap(ports)
    idt = Idt()
    idt.install(0)
    controller = InterruptController(ports)
    controller.irq_install(idt, [0] * 16)
    screen.print("DEBUG: IDT and IRQ handlers installed.\n")
    keyboard = Keyboard(echo=screen.print)
    controller.register_interrupt_handler(
        KEYBOARD_VECTOR, lambda: keyboard.handle_scancode(ports.inb(KBD_DATA_PORT))
    )
    screen.print("DEBUG: Keyboard interrupt handler registered.\n")
    screen.print("DEBUG: Keyboard initialized. Press keys!\n")
    serial.debug_print("DEBUG: System calls initialized.")
    scheduler = Scheduler(heap)
    serial.debug_print("DEBUG: Process management initialized.")

    shell = Shell(screen, filesystem, scheduler, heap)
    shell.run(sys.stdin)
    screen.print("Kernel execution terminated.\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())