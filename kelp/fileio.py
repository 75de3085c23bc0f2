"""
Reading and writing files for the Kelp text editor.

Files are handled as raw bytes, one row per line. Both functions let
OSError propagate; the caller decides whether the failure is fatal.
"""
import os

def load(path: str) -> list:
    """Return the lines of `path` without their trailing newline or CR."""
    lines = []
    with open(path, 'rb') as f:
        for line in f:
            lines.append(line.rstrip(b"\r\n"))
    return lines

def save(path: str, data: bytes) -> int:
    """
    Overwrite `path` with `data` and return the number of bytes written.
    A new file is created with mode 0644; an existing file keeps its mode
    and is truncated to the new length before writing.
    """
    fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o644)
    try:
        os.ftruncate(fd, len(data))
        written = 0
        while written < len(data):
            written += os.write(fd, data[written:])
    finally:
        os.close(fd)
    return written
