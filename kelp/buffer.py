"""
Buffer module for Kelp text editor.

Defines the Row and Buffer classes that hold the text being edited.
Each Row keeps the raw bytes of one line next to its rendered form (tabs
expanded to spaces); the render form is rebuilt on every change so drawing
a frame never has to look at tabs again.

The Buffer does not own a cursor. Operations that move the cursor take the
current (cy, cx) and return the new one.
"""

TAB_STOP = 8

def expand_tabs(chars: bytes, tab_stop: int = TAB_STOP) -> bytes:
    """Return `chars` with every tab expanded up to the next tab stop."""
    out = bytearray()
    for c in chars:
        if c == ord('\t'):
            out.append(ord(' '))
            while len(out) % tab_stop != 0:
                out.append(ord(' '))
        else:
            out.append(c)
    return bytes(out)

class Row:
    """One line of text: raw `chars` plus the derived `render` bytes."""
    def __init__(self, chars: bytes = b"", tab_stop: int = TAB_STOP):
        self.tab_stop = tab_stop
        self.chars = bytes(chars)
        self.render = b""
        self.update()

    @property
    def size(self) -> int:
        return len(self.chars)

    def update(self):
        """Recompute the render form. Must run after every change to chars."""
        self.render = expand_tabs(self.chars, self.tab_stop)

    def insert_char(self, at: int, c: int):
        if at < 0 or at > self.size:
            at = self.size
        self.chars = self.chars[:at] + bytes((c,)) + self.chars[at:]
        self.update()

    def append_bytes(self, data: bytes):
        self.chars += data
        self.update()

    def delete_char(self, at: int):
        if at < 0 or at >= self.size:
            return
        self.chars = self.chars[:at] + self.chars[at + 1:]
        self.update()

    def truncate(self, at: int):
        self.chars = self.chars[:at]
        self.update()

    def __repr__(self):
        return f"Row({self.chars!r})"

class Buffer:
    """Represents a text buffer (file content) with editing operations."""
    def __init__(self, filename: str = None, tab_stop: int = TAB_STOP):
        self.filename = filename  # Path to file or None for a new, unnamed buffer
        self.tab_stop = tab_stop
        self.rows = []
        # Bumped by every mutation, reset to 0 by a successful save
        self.dirty = 0

    @classmethod
    def from_lines(cls, filename: str, lines, tab_stop: int = TAB_STOP) -> "Buffer":
        """Build a clean (not dirty) buffer from already-loaded lines."""
        buf = cls(filename, tab_stop)
        for line in lines:
            buf.append_row(line)
        buf.dirty = 0
        return buf

    @property
    def num_rows(self) -> int:
        return len(self.rows)

    def row_size(self, at: int) -> int:
        """Length of row `at`, or 0 for the virtual row past the end."""
        if 0 <= at < self.num_rows:
            return self.rows[at].size
        return 0

    def clamp_col(self, cy: int, cx: int) -> int:
        """Clamp a column into [0, row size] for row `cy`."""
        return max(0, min(cx, self.row_size(cy)))

    ##########################################
    # ROW OPERATIONS
    ##########################################
    def insert_row(self, at: int, chars: bytes = b""):
        """Insert a new row at index `at`, shifting later rows down."""
        if at < 0 or at > self.num_rows:
            return
        self.rows.insert(at, Row(chars, self.tab_stop))
        self.dirty += 1

    def append_row(self, chars: bytes = b""):
        """Add a new last row."""
        self.insert_row(self.num_rows, chars)

    def delete_row(self, at: int):
        """Remove row `at`; the rows below move up by one."""
        if at < 0 or at >= self.num_rows:
            return
        del self.rows[at]
        self.dirty += 1

    ##########################################
    # EDITING OPERATIONS
    ##########################################
    def insert_char(self, cy: int, cx: int, c: int):
        """
        Insert byte `c` at (cy, cx) and return the new cursor position.
        Typing on the virtual row past the end first appends an empty row.
        """
        if cy == self.num_rows:
            self.append_row(b"")
        row = self.rows[cy]
        cx = self.clamp_col(cy, cx)
        row.insert_char(cx, c)
        self.dirty += 1
        return cy, cx + 1

    def insert_newline(self, cy: int, cx: int):
        """Split the row at (cy, cx); the cursor lands at the start of the next row."""
        if cy > self.num_rows:
            return cy, cx
        cx = self.clamp_col(cy, cx)
        if cx == 0:
            self.insert_row(cy, b"")
        else:
            row = self.rows[cy]
            self.insert_row(cy + 1, row.chars[cx:])
            row.truncate(cx)
        return cy + 1, 0

    def delete_char(self, cy: int, cx: int):
        """
        Delete the character before (cy, cx) and return the new cursor position.
        At column 0 the row is joined onto the end of the previous row.
        """
        if cy >= self.num_rows:
            return cy, cx
        cx = self.clamp_col(cy, cx)
        if cx == 0 and cy == 0:
            return cy, cx

        row = self.rows[cy]
        if cx > 0:
            row.delete_char(cx - 1)
            self.dirty += 1
            return cy, cx - 1

        prev = self.rows[cy - 1]
        new_cx = prev.size
        prev.append_bytes(row.chars)
        self.dirty += 1
        self.delete_row(cy)
        return cy - 1, new_cx

    ##########################################
    # SERIALIZATION
    ##########################################
    def rows_to_bytes(self) -> bytes:
        """Every row followed by a newline, in order: the exact save payload."""
        return b"".join(row.chars + b"\n" for row in self.rows)

    def mark_saved(self):
        self.dirty = 0
