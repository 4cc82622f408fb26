# apnaos

apnaos models a small hobby kernel in plain Python. It has these parts:

- a bump-allocated kernel heap (`apnaos.memory`)
- a flat, block-based in-memory filesystem (`apnaos.filesystem`)
- a scancode-driven keyboard line editor (`apnaos.keyboard`)
- GDT and IDT descriptor tables in their packed byte layouts (`apnaos.descriptors`)
- an I/O port bus, PIC remapping and IRQ dispatch (`apnaos.interrupts`)
- an 80x25 VGA text screen and a serial debug console (`apnaos.console`)
- a priority scheduler with fork, wait, exit and yield system calls (`apnaos.process`, `apnaos.scheduler`)
- a small command shell on top of all of these (`apnaos.shell`)

It has no dependencies beyond the standard library.

## Installation

```
pip install .
```

To run the tests, install the test extra:

```
pip install ".[test]"
pytest
```

## The shell

Start the kernel shell:

```
apnaos
```

The command first prints its boot messages: thirty `Debug: line N` lines and the
`DEBUG:` set-up notes on standard output, and serial debug lines on standard error.
It then reads commands from standard input, one per line, after a `CLI> ` prompt.
It stops at `exit` or at the end of input, and then prints `Kernel execution terminated.`

These commands are understood:

| Command | Effect |
| --- | --- |
| `process dummy1 [priority]` | queue a demo process (`dummy1`, `dummy2` or `dummy3`) |
| `process syscall test [priority]` | queue a process that exercises fork and wait |
| `process process test [priority]` | queue a process that exercises the scheduler |
| `process start` | run the queued processes until none is ready |
| `file make <name>` | create an empty file |
| `file write <name> <data>` | replace the file's contents with the rest of the line |
| `file append <name> <data>` | add the rest of the line to the end of the file |
| `file read <name>` | print up to 128 bytes of the file |
| `file rm <name>` | delete a file |
| `file ls` or `ls` | list files |
| `exit` | leave the shell |

The priority defaults to 1. A lower number runs first.

Example session:

```
CLI> file make notes
File created successfully.
CLI> file write notes hello there
Data written to file successfully.
CLI> file read notes
File content: hello there
CLI> process dummy2 3
Queueing process...
CLI> process start
Starting scheduled processes...
Dummy Process 2 is running.
CLI> exit
Exiting kernel CLI...
```

## Using the pieces from Python

```python
from apnaos.memory import KernelHeap
from apnaos.filesystem import FileSystem
from apnaos.console import VgaScreen
from apnaos.scheduler import Scheduler
from apnaos.shell import Shell

heap = KernelHeap(16 * 1024 * 1024)
fs = FileSystem()
screen = VgaScreen()
scheduler = Scheduler(heap)

shell = Shell(screen, fs, scheduler, heap)
shell.run(["file make a.txt", "file write a.txt hi", "file read a.txt", "exit"])
print(screen.row_text(0))
```

Some notes on how the parts behave:

- `FileSystem` raises `FileSystemError` when an operation fails. Each file holds at
  most one 4 KiB block of data. `list_files()` returns the names in directory order.
- `KernelHeap.kmalloc()` returns an address inside the heap's byte arena. It raises
  `OutOfMemoryError` when the arena is exhausted. `kfree()` marks a block as free, but
  the space is not reused until `reset()`.
- `Keyboard.feed()` takes set-1 scancodes. `read_line()` returns the last completed
  line, or `None` if there is none yet.
- `ProcessQueue` keeps processes ordered by priority (`enqueue`), by earliest deadline
  (`enqueue_edf`) or by shortest run time (`enqueue_sjf`).
- A `Scheduler` process entry is called with the scheduler. It can be a plain function
  or a generator function. A generator gives up the CPU with
  `yield from scheduler.yield_syscall()` and collects a finished child with
  `pid, status = yield from scheduler.wait_syscall()`.
- `Scheduler.run()` runs ready processes until none is left.

## What it does not do

- Nothing here boots or touches real hardware. Port I/O goes to a `PortBus` that only
  records writes and returns scripted reads.
- The descriptor tables are built as bytes but never loaded.
- Processes are Python callables switched cooperatively. Nothing preempts them.
- The `apnaos` command reads its input from standard input rather than from the
  keyboard model.
- The filesystem lives only in memory and is lost when the program ends.