# Shared fixtures for the Kelp pytest suite.
#
# Nothing here touches a real terminal: FakeSession stands in for
# kelp.terminal.TerminalSession wherever the editor needs one.

import os
import sys

import pytest

# Ensure kelp is importable from the project root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from kelp import buffer, config, logger  # noqa: E402
from kelp.__main__ import EditorContext  # noqa: E402


class FakeSession:
    """Records writes and hands out scripted keys instead of reading a tty."""

    def __init__(self, rows=24, cols=80, keys=()):
        self.rows = rows
        self.cols = cols
        self.keys = list(keys)
        self.output = []
        self.active = False
        self.entered = 0
        self.exited = 0

    def enter(self):
        self.active = True
        self.entered += 1

    def exit(self):
        if self.active:
            self.exited += 1
        self.active = False

    def get_window_size(self):
        return self.rows, self.cols

    def write(self, data):
        self.output.append(data)

    def read_key(self):
        return self.keys.pop(0)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_files(tmp_path, monkeypatch):
    """Keep the log file and config lookups inside the test's tmp_path."""
    log_path = tmp_path / "kelp.log"
    conf_path = tmp_path / "kelp.conf"
    conf_path.write_text(f"log_file={log_path}\n", encoding="utf-8")
    monkeypatch.setenv("KELP_CONFIG", str(conf_path))
    monkeypatch.setattr(logger, "LOG_FILE_PATH", str(log_path))
    yield


@pytest.fixture
def make_context():
    """Factory: an EditorContext over a FakeSession, optionally pre-filled."""

    def _make(lines=None, filename=None, rows=24, cols=80, cfg=None):
        ctx = EditorContext(FakeSession(rows, cols), cfg or config.Config())
        if lines is not None:
            ctx.buffer = buffer.Buffer.from_lines(filename, lines, ctx.config.tab_stop)
        elif filename is not None:
            ctx.buffer.filename = filename
        return ctx

    return _make
