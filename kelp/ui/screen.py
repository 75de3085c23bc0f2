"""
kelp/ui/screen.py

Implements all drawing for the Kelp text editor: keeping the cursor inside
the visible window, and turning the buffer plus the status and message bars
into one stream of VT100 escape sequences.

A frame is assembled in a list of byte strings, joined, and handed to the
terminal in a single write so the screen never shows a half-drawn frame.
"""

import time
from wcwidth import wcswidth, wcwidth

from kelp.buffer import TAB_STOP

KELP_VERSION = "0.1.0"

# VT100 escape sequences
CLEAR_SCREEN = b"\x1b[2J"
CURSOR_HOME = b"\x1b[H"
CLEAR_LINE = b"\x1b[K"
HIDE_CURSOR = b"\x1b[?25l"
SHOW_CURSOR = b"\x1b[?25h"
REVERSE_VIDEO = b"\x1b[7m"
RESET_ATTRS = b"\x1b[m"

# Longest filename shown in the status bar
STATUS_FILENAME_MAX = 20

def move_cursor_to(row: int, col: int) -> bytes:
    """Escape sequence placing the cursor at 0-based (row, col)."""
    return f"\x1b[{row + 1};{col + 1}H".encode()

###############################################################################
# TEXT MEASUREMENT
###############################################################################

def text_width(text: str) -> int:
    """Width of `text` in terminal cells (length if it holds control chars)."""
    width = wcswidth(text)
    return len(text) if width < 0 else width

def fit_text(text: str, width: int) -> str:
    """Trim a string so it takes at most `width` cells."""
    used = 0
    for i, ch in enumerate(text):
        w = max(wcwidth(ch), 0)
        if used + w > width:
            return text[:i]
        used += w
    return text

###############################################################################
# SCROLLING
###############################################################################

def cx_to_rx(chars: bytes, cx: int, tab_stop: int = TAB_STOP) -> int:
    """Map a column in `chars` to the matching column in its render form."""
    rx = 0
    for c in chars[:cx]:
        if c == ord('\t'):
            rx += (tab_stop - 1) - (rx % tab_stop)
        rx += 1
    return rx

def scroll_offset(pos: int, offset: int, size: int) -> int:
    """Smallest change to `offset` that puts `pos` inside [offset, offset + size)."""
    if pos < offset:
        return pos
    if pos >= offset + size:
        return pos - size + 1
    return offset

def scroll(context):
    """Recompute rx and jump the row/column offsets so the cursor is visible."""
    buf = context.buffer
    context.rx = 0
    if context.cy < buf.num_rows:
        context.rx = cx_to_rx(buf.rows[context.cy].chars, context.cx, buf.tab_stop)
    context.row_offset = scroll_offset(context.cy, context.row_offset, context.screen_rows)
    context.col_offset = scroll_offset(context.rx, context.col_offset, context.screen_cols)

###############################################################################
# DRAWING
###############################################################################

def draw_welcome(context, ab: list):
    """Centered version banner, with the usual '~' in the left margin."""
    welcome = fit_text(f"Kelp editor -- version {KELP_VERSION}", context.screen_cols)
    padding = (context.screen_cols - text_width(welcome)) // 2
    if padding:
        ab.append(b"~")
        padding -= 1
    ab.append(b" " * padding)
    ab.append(welcome.encode())

def draw_rows(context, ab: list):
    """One line per screen row: buffer text, the banner, or '~' past the end."""
    buf = context.buffer
    for y in range(context.screen_rows):
        filerow = y + context.row_offset
        if filerow >= buf.num_rows:
            if buf.num_rows == 0 and y == context.screen_rows // 3:
                draw_welcome(context, ab)
            else:
                ab.append(b"~")
        else:
            render = buf.rows[filerow].render
            ab.append(render[context.col_offset:context.col_offset + context.screen_cols])
        ab.append(CLEAR_LINE)
        ab.append(b"\r\n")

def draw_status_bar(context, ab: list):
    """
    Reverse-video bar: filename, line count and modified flag on the left,
    current line / total lines flush right.
    """
    buf = context.buffer
    width = context.screen_cols
    name = (buf.filename or "[No Name]")[:STATUS_FILENAME_MAX]
    modified = " (modified)" if buf.dirty else ""
    status = fit_text(f"{name} - {buf.num_rows} lines{modified}", width)
    rstatus = f"{context.cy + 1}/{buf.num_rows}"

    remaining = width - text_width(status)
    if remaining >= text_width(rstatus):
        status += " " * (remaining - text_width(rstatus)) + rstatus
    else:
        status += " " * remaining

    ab.append(REVERSE_VIDEO)
    ab.append(status.encode("utf-8", "replace"))
    ab.append(RESET_ATTRS)
    ab.append(b"\r\n")

def draw_message_bar(context, ab: list):
    """The status message, until it is older than the configured timeout."""
    ab.append(CLEAR_LINE)
    message = context.status_message
    if message and time.time() - context.status_message_time < context.config.message_timeout:
        ab.append(fit_text(message, context.screen_cols).encode("utf-8", "replace"))

def render_frame(context) -> bytes:
    """Scroll to the cursor and build the bytes of one full frame."""
    scroll(context)

    ab = [HIDE_CURSOR, CURSOR_HOME]
    draw_rows(context, ab)
    draw_status_bar(context, ab)
    draw_message_bar(context, ab)
    ab.append(move_cursor_to(context.cy - context.row_offset,
                             context.rx - context.col_offset))
    ab.append(SHOW_CURSOR)
    return b"".join(ab)

def refresh_screen(context):
    """Re-draw the entire screen with a single write."""
    context.session.write(render_frame(context))

def clear_screen(session):
    session.write(CLEAR_SCREEN + CURSOR_HOME)
