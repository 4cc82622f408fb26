import io
import logging

import pytest

from apnaos.console import VGA_HEIGHT, VgaScreen
from apnaos.memory import KernelHeap
from apnaos.process import ProcessState
from apnaos.shell import (
    FILE_USAGE,
    PROCESS_USAGE,
    UNKNOWN_COMMAND,
    UNKNOWN_FILE_OPERATION,
    Shell,
    dummy_process_1,
    main,
)


def screen_lines(shell):
    return [shell.screen.row_text(row).rstrip() for row in range(VGA_HEIGHT)]


def screen_text(shell):
    return "\n".join(line for line in screen_lines(shell) if line)


@pytest.fixture
def shell():
    return Shell(heap=KernelHeap(1024 * 1024))


def test_unknown_command(shell):
    assert shell.execute("frobnicate") is True
    assert UNKNOWN_COMMAND.rstrip("\n") in screen_lines(shell)


def test_exit_stops(shell):
    assert shell.execute("exit") is False
    assert "Exiting kernel CLI..." in screen_lines(shell)


def test_blank_line_prints_nothing(shell):
    assert shell.execute("  \t ") is True
    assert screen_text(shell) == ""


def test_file_round_trip(shell):
    shell.execute("file make notes")
    shell.execute("file write notes hello world")
    shell.execute("file read notes")
    lines = screen_lines(shell)
    assert "File created successfully." in lines
    assert "Data written to file successfully." in lines
    assert "File content: hello world" in lines
    assert shell.filesystem.read_file("notes", 128) == b"hello world"


def test_write_keeps_text_after_single_delimiter(shell):
    shell.execute("file make a")
    shell.execute("file write a  spaced")
    assert shell.filesystem.read_file("a", 128) == b" spaced"


def test_append(shell):
    shell.execute("file make log")
    shell.execute("file write log abc")
    shell.execute("file append log def")
    assert "Data appended to file successfully." in screen_lines(shell)
    assert shell.filesystem.read_file("log", 128) == b"abcdef"


def test_read_missing_file(shell):
    shell.execute("file read ghost")
    assert "Error: Failed to read file." in screen_lines(shell)


def test_write_missing_file(shell):
    shell.execute("file write ghost data")
    assert "Error: Failed to write to file." in screen_lines(shell)


def test_remove_and_list(shell):
    shell.execute("file make one")
    shell.execute("file make two")
    shell.execute("file rm one")
    assert "File deleted successfully." in screen_lines(shell)
    assert shell.filesystem.list_files() == ["two"]
    shell.execute("ls")
    assert screen_lines(shell).count("two") == 1
    assert "one" not in screen_lines(shell)


def test_remove_missing_file(shell):
    shell.execute("file rm ghost")
    assert "Error: Failed to delete file." in screen_lines(shell)


@pytest.mark.parametrize(
    "line, message",
    [
        ("file", FILE_USAGE),
        ("file make", "Usage: file make <filename>\n"),
        ("file read", "Usage: file read <filename>\n"),
        ("file write name", "Usage: file write <filename> <data>\n"),
        ("file append", "Usage: file append <filename> <data>\n"),
        ("file rm", "Usage: file rm <filename>\n"),
        ("file chmod x", UNKNOWN_FILE_OPERATION),
        ("process", PROCESS_USAGE),
    ],
)
def test_usage_messages(shell, line, message):
    assert shell.execute(line) is True
    assert message.rstrip("\n") in screen_lines(shell)


def test_unknown_process(shell):
    shell.execute("process dummy9")
    assert "Error: Unknown process name." in screen_lines(shell)
    assert shell.scheduler.ready_queue.is_empty()


def test_dummy_process_runs_and_exits(shell):
    shell.execute("process dummy1")
    assert "Queueing process..." in screen_lines(shell)
    shell.execute("process start")
    lines = screen_lines(shell)
    assert "Starting scheduled processes..." in lines
    assert "Dummy Process 1 is running." in lines
    [process] = shell.scheduler.process_table
    assert process.state == ProcessState.ZOMBIE
    assert process.exit_status == 0


def test_priority_orders_execution(shell):
    shell.execute("process dummy2 5")
    shell.execute("process dummy3 2")
    shell.execute("process start")
    lines = screen_lines(shell)
    assert lines.index("Dummy Process 3 is running.") < lines.index(
        "Dummy Process 2 is running."
    )
    priorities = {p.pid: p.priority for p in shell.scheduler.process_table}
    assert priorities == {1: 5, 2: 2}


def test_dummy_process_direct(shell):
    shell.scheduler.create_process(1, shell.entry(dummy_process_1))
    shell.scheduler.run()
    assert "Dummy Process 1 is running." in screen_lines(shell)


def test_out_of_memory_reports_error():
    shell = Shell(heap=KernelHeap(64))
    shell.execute("process dummy1")
    assert "Error: Unable to allocate process stack." in screen_lines(shell)
    assert shell.scheduler.process_table == []


def test_syscall_test(shell, caplog):
    caplog.set_level(logging.DEBUG, logger="apnaos")
    shell.execute("process syscall test")
    assert "Queueing syscall_test process..." in screen_lines(shell)
    shell.execute("process start")
    assert "Simple fork test PASSED" in caplog.text
    assert "Simple fork test FAILED" not in caplog.text
    states = {p.pid: p.state for p in shell.scheduler.process_table}
    assert states == {1: ProcessState.ZOMBIE, 2: ProcessState.EXIT}


def test_process_test(shell, caplog):
    caplog.set_level(logging.DEBUG, logger="apnaos")
    shell.execute("process process test 3")
    assert "Queueing process_test process..." in screen_lines(shell)
    shell.execute("process start")
    assert "Scheduler test complete" in caplog.text
    for number in (1, 2, 3):
        assert f"Test process {number} complete" in caplog.text
    assert shell.scheduler.ready_queue.is_empty()


def test_syscall_without_test_is_unknown(shell):
    shell.execute("process syscall other")
    assert "Error: Unknown process name." in screen_lines(shell)


def test_run_stops_at_exit(shell):
    assert shell.run(["file make kept", "exit", "file make lost"]) is True
    assert shell.filesystem.list_files() == ["kept"]
    assert screen_lines(shell)[0] == "CLI> file make kept"


def test_run_without_exit(shell):
    assert shell.run(["file make a\n"]) is False
    assert shell.filesystem.list_files() == ["a"]


def test_default_screen_is_vga():
    shell = Shell(heap=KernelHeap(4096))
    assert isinstance(shell.screen, VgaScreen)
    shell.execute("bogus")
    assert shell.screen.row_text(0).rstrip() == UNKNOWN_COMMAND.rstrip("\n")


def test_main(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("file make a\nls\nexit\n"))
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "Debug: line 30" in out
    assert "File created successfully." in out
    assert "Exiting kernel CLI..." in out
    assert out.endswith("Kernel execution terminated.\n")