"""
Terminal session for the Kelp text editor.

Owns the switch between the terminal's normal (cooked) mode and raw mode,
turns raw input bytes into key codes, and reports the window size.

Keys are plain ints: 0-255 for a literal byte, Key.* for the special keys
decoded from escape sequences. decode_key() is a pure function over the
bytes of one key press so it can be tested without a terminal; read_key()
wraps it in the timed read loop.

Unix only: termios raw mode with VMIN=0/VTIME=1, so every read returns
after at most 100ms. That timeout is what tells a lone Escape press apart
from the start of an escape sequence.
"""
import atexit
import os
import re
import signal
import sys
import termios

from kelp import logger

ESC = 0x1b

# VTIME is in tenths of a second
READ_TIMEOUT_DECISECONDS = 1

# Longest cursor position report we are willing to read
_CURSOR_REPORT_MAX = 31

class TerminalError(Exception):
    """A terminal failure the editor cannot recover from."""
    def __init__(self, where: str, cause):
        super().__init__(f"{where}: {cause}")
        self.where = where
        self.cause = cause

class Key:
    """Codes for keys that do not map to a single byte."""
    BACKSPACE = 127
    ARROW_LEFT = 1000
    ARROW_RIGHT = 1001
    ARROW_UP = 1002
    ARROW_DOWN = 1003
    DELETE = 1004
    HOME = 1005
    END = 1006
    PAGE_UP = 1007
    PAGE_DOWN = 1008
    # Not a key press: the window changed size
    RESIZE = 1009

def ctrl_key(ch: str) -> int:
    """Return the byte a terminal sends for Ctrl + `ch`."""
    return ord(ch) & 0x1f

# ---------------------------------------------------------------------------
# Escape sequence decoding
# ---------------------------------------------------------------------------

_ESCAPE_SEQUENCES = {
    # Arrow keys
    b"\x1b[A": Key.ARROW_UP,
    b"\x1b[B": Key.ARROW_DOWN,
    b"\x1b[C": Key.ARROW_RIGHT,
    b"\x1b[D": Key.ARROW_LEFT,
    # Home / End
    b"\x1b[H": Key.HOME,  # xterm
    b"\x1b[F": Key.END,
    b"\x1bOH": Key.HOME,  # application mode
    b"\x1bOF": Key.END,
    b"\x1b[1~": Key.HOME,  # linux console, tmux
    b"\x1b[7~": Key.HOME,  # rxvt
    b"\x1b[4~": Key.END,
    b"\x1b[8~": Key.END,
    # Paging
    b"\x1b[5~": Key.PAGE_UP,
    b"\x1b[6~": Key.PAGE_DOWN,
    b"\x1b[3~": Key.DELETE,
}

# ESC [ <digit> ~ is always read to the end, even for digits we do not
# know, so the trailing '~' is never mistaken for typed text.
for _digit in b"0123456789":
    _ESCAPE_SEQUENCES.setdefault(b"\x1b[" + bytes((_digit,)) + b"~", ESC)
del _digit

def _build_trie(sequences):
    """Build a trie (nested dict keyed by byte value) from the sequence table."""
    root = {}
    for seq, key in sequences.items():
        node = root
        for b in seq[:-1]:
            node = node.setdefault(b, {})
        node[seq[-1]] = key
    return root

_ESCAPE_TRIE = _build_trie(_ESCAPE_SEQUENCES)

def decode_key(seq: bytes, final: bool = False):
    """
    Decode the bytes of one key press.

    Returns the key code, or None while `seq` is still a proper prefix of a
    known escape sequence. `final` means no more bytes are coming (the read
    timed out), in which case an unfinished sequence is a lone Escape.
    Bytes that lead nowhere in the table decode as Escape too.
    """
    if not seq:
        return None
    if seq[0] != ESC:
        return seq[0]

    node = _ESCAPE_TRIE[ESC]
    for b in seq[1:]:
        node = node.get(b)
        if node is None:
            return ESC
        if not isinstance(node, dict):
            return node
    return ESC if final else None

_CURSOR_REPORT_RE = re.compile(rb"\x1b\[(\d+);(\d+)R?")

def parse_cursor_report(reply: bytes):
    """Parse an `ESC [ rows ; cols R` reply into (rows, cols), or None."""
    match = _CURSOR_REPORT_RE.fullmatch(reply)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))

def make_raw(attrs):
    """Return a copy of the tcgetattr() list `attrs` switched to raw mode."""
    iflag, oflag, cflag, lflag, ispeed, ospeed, cc = attrs
    iflag &= ~(termios.BRKINT | termios.ICRNL | termios.INPCK | termios.ISTRIP | termios.IXON)
    oflag &= ~termios.OPOST
    cflag |= termios.CS8
    lflag &= ~(termios.ECHO | termios.ICANON | termios.IEXTEN | termios.ISIG)
    cc = list(cc)
    cc[termios.VMIN] = 0
    cc[termios.VTIME] = READ_TIMEOUT_DECISECONDS
    return [iflag, oflag, cflag, lflag, ispeed, ospeed, cc]

# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class TerminalSession:
    """
    Raw-mode session on a pair of terminal file descriptors.

    enter() switches to raw mode and registers exit() with atexit, so the
    original attributes come back however the process ends: a normal quit,
    an uncaught exception, or SIGTERM/SIGHUP (turned into SystemExit here).
    """
    def __init__(self, stdin_fd: int = None, stdout_fd: int = None):
        self.stdin_fd = sys.stdin.fileno() if stdin_fd is None else stdin_fd
        self.stdout_fd = sys.stdout.fileno() if stdout_fd is None else stdout_fd
        self._orig_termios = None
        self._old_handlers = {}
        self._resize_pending = False
        self._exit_registered = False

    @property
    def active(self) -> bool:
        return self._orig_termios is not None

    def enter(self):
        """Capture the current attributes and switch the terminal to raw mode."""
        try:
            self._orig_termios = termios.tcgetattr(self.stdin_fd)
        except termios.error as e:
            raise TerminalError("tcgetattr", e.args[-1]) from e

        if not self._exit_registered:
            atexit.register(self.exit)
            self._exit_registered = True
        self._install_signal_handlers()

        try:
            termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, make_raw(self._orig_termios))
        except termios.error as e:
            raise TerminalError("tcsetattr", e.args[-1]) from e
        logger.log("Raw mode enabled.")

    def exit(self):
        """
        Restore the attributes captured by enter(). Calling it again is a no-op.
        Runs during teardown, so a failed restore is logged rather than raised
        and cannot replace the error that is already unwinding.
        """
        if self._orig_termios is None:
            return
        orig, self._orig_termios = self._orig_termios, None
        self._restore_signal_handlers()
        try:
            termios.tcsetattr(self.stdin_fd, termios.TCSAFLUSH, orig)
        except termios.error as e:
            logger.log(f"Failed to restore terminal: {TerminalError('tcsetattr', e.args[-1])}")
            return
        logger.log("Raw mode disabled.")

    def _install_signal_handlers(self):
        for signum in (signal.SIGTERM, signal.SIGHUP):
            self._old_handlers[signum] = signal.signal(signum, self._terminate_handler)
        self._old_handlers[signal.SIGWINCH] = signal.signal(signal.SIGWINCH, self._sigwinch_handler)

    def _restore_signal_handlers(self):
        for signum, handler in self._old_handlers.items():
            signal.signal(signum, handler)
        self._old_handlers = {}

    def _terminate_handler(self, signum, frame):
        """SIGTERM/SIGHUP: unwind through SystemExit so exit() still runs."""
        logger.log(f"Terminated by signal {signum}.")
        sys.exit(128 + signum)

    def _sigwinch_handler(self, signum, frame):
        """SIGWINCH: set flag, read_key() reports it between key presses."""
        self._resize_pending = True

    # --- Input ---

    def read_byte(self) -> bytes:
        """Read one byte; b"" when the read timed out with nothing available."""
        try:
            return os.read(self.stdin_fd, 1)
        except (BlockingIOError, InterruptedError):
            return b""
        except OSError as e:
            raise TerminalError("read", e.strerror) from e

    def read_key(self) -> int:
        """Block until a whole key press has been read and return its code."""
        seq = b""
        while True:
            if not seq and self._resize_pending:
                self._resize_pending = False
                return Key.RESIZE
            c = self.read_byte()
            if not c:
                if seq:
                    return decode_key(seq, final=True)
                continue
            seq += c
            key = decode_key(seq)
            if key is not None:
                return key

    # --- Output ---

    def write(self, data: bytes):
        """Write all of `data` to the terminal."""
        try:
            while data:
                n = os.write(self.stdout_fd, data)
                data = data[n:]
        except OSError as e:
            raise TerminalError("write", e.strerror) from e

    def get_cursor_position(self):
        """Ask the terminal where the cursor is; returns (row, col), 1-based."""
        self.write(b"\x1b[6n")
        reply = b""
        while len(reply) < _CURSOR_REPORT_MAX:
            c = self.read_byte()
            if not c or c == b"R":
                break
            reply += c
        pos = parse_cursor_report(reply)
        if pos is None:
            raise TerminalError("getWindowSize", f"unexpected cursor position report {reply!r}")
        return pos

    def get_window_size(self):
        """
        Return (rows, cols) of the terminal.
        Asks the driver first; if that gives nothing, pushes the cursor to the
        bottom-right corner and reads back its position.
        """
        try:
            size = os.get_terminal_size(self.stdout_fd)
        except OSError:
            size = None
        if size is not None and size.columns > 0:
            return size.lines, size.columns
        self.write(b"\x1b[999C\x1b[999B")
        return self.get_cursor_position()
