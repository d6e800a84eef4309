"""Utilities for edit_guard."""

from edit_guard.utils.diff_generator import (
    compute_file_diff,
    detect_code_style,
    format_diff_for_display,
)
from edit_guard.utils.file_io import read_file, write_file
from edit_guard.utils.process import run_shell_command

__all__ = [
    "compute_file_diff",
    "detect_code_style",
    "format_diff_for_display",
    "read_file",
    "run_shell_command",
    "write_file",
]
