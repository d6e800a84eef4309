"""Text file I/O that round-trips line endings unchanged.

Backups, snapshots and restores must give back the exact bytes that were on
disk, so newline translation is disabled on both read and write.
"""

from pathlib import Path


def read_file(path: str | Path, encoding: str = "utf-8") -> str:
    with open(path, "r", encoding=encoding, newline="") as f:
        return f.read()


def write_file(path: str | Path, content: str, encoding: str = "utf-8") -> None:
    with open(path, "w", encoding=encoding, newline="") as f:
        f.write(content)
