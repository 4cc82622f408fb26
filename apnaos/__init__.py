"""A small teaching kernel modelled in Python: heap, filesystem, devices, scheduler and shell."""

__version__ = "0.1.0"

__all__ = [
    "console",
    "descriptors",
    "filesystem",
    "interrupts",
    "keyboard",
    "memory",
    "numfmt",
    "process",
    "scheduler",
    "shell",
]