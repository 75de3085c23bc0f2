# Rendering tests: tab-aware cursor columns, scroll-to-cursor, and the
# byte layout of a full frame.

import time

from kelp.buffer import Row
from kelp.ui import screen
from kelp.ui.screen import cx_to_rx, render_frame, scroll

PREFIX = screen.HIDE_CURSOR + screen.CURSOR_HOME


def _frame_lines(ctx):
    """Render a frame and split it into screen lines (rows, status, message)."""
    frame = render_frame(ctx)
    assert frame.startswith(PREFIX)
    assert frame.endswith(screen.SHOW_CURSOR)
    return frame[len(PREFIX):].split(b"\r\n")


def _status_text(line):
    assert line.startswith(screen.REVERSE_VIDEO)
    assert line.endswith(screen.RESET_ATTRS)
    return line[len(screen.REVERSE_VIDEO):-len(screen.RESET_ATTRS)].decode()


# ---------------------------------------------------------------------------
# cx -> rx
# ---------------------------------------------------------------------------


def test_cx_to_rx_without_tabs_is_identity():
    for cx in range(4):
        assert cx_to_rx(b"abc", cx) == cx


def test_cx_to_rx_jumps_over_tabs():
    assert cx_to_rx(b"\tx", 1) == 8
    assert cx_to_rx(b"\tx", 2) == 9
    assert cx_to_rx(b"ab\tc", 3) == 8
    assert cx_to_rx(b"\t\t", 2) == 16
    assert cx_to_rx(b"\t", 1, tab_stop=4) == 4


def test_cx_to_rx_monotonic_and_never_below_cx():
    for chars in (b"", b"plain", b"\t", b"a\tb\t\tc", b"1234567\t8", b"\t\t\t"):
        previous = -1
        for cx in range(len(chars) + 1):
            rx = cx_to_rx(chars, cx)
            assert rx >= cx
            assert rx >= previous
            previous = rx


def test_cx_to_rx_matches_render_length():
    row = Row(b"a\tbc\td")
    assert cx_to_rx(row.chars, row.size) == len(row.render)


# ---------------------------------------------------------------------------
# Scrolling
# ---------------------------------------------------------------------------


def test_scroll_follows_cursor_down_and_back_up(make_context):
    ctx = make_context([b"line %d" % i for i in range(100)], rows=12, cols=40)
    assert ctx.screen_rows == 10

    ctx.cy = 50
    scroll(ctx)
    assert ctx.row_offset == 41

    ctx.cy = 45
    scroll(ctx)
    assert ctx.row_offset == 41

    ctx.cy = 5
    scroll(ctx)
    assert ctx.row_offset == 5


def test_scroll_uses_render_column(make_context):
    ctx = make_context([b"\t\t\tabc"], rows=12, cols=10)
    ctx.cx = 3
    scroll(ctx)
    assert ctx.rx == 24
    assert ctx.col_offset == 15
    assert ctx.col_offset <= ctx.rx < ctx.col_offset + ctx.screen_cols

    ctx.cx = 0
    scroll(ctx)
    assert ctx.rx == 0
    assert ctx.col_offset == 0


def test_scroll_on_virtual_row_has_zero_rx(make_context):
    ctx = make_context([b"abc"])
    ctx.cy = 1
    ctx.cx = 0
    ctx.rx = 7
    scroll(ctx)
    assert ctx.rx == 0


# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------


def test_empty_buffer_shows_banner_and_tildes(make_context):
    ctx = make_context(rows=12, cols=40)
    lines = _frame_lines(ctx)
    rows = lines[:ctx.screen_rows]

    banner_row = ctx.screen_rows // 3
    for y, line in enumerate(rows):
        assert line.endswith(screen.CLEAR_LINE)
        assert line.startswith(b"~")
        if y != banner_row:
            assert line == b"~" + screen.CLEAR_LINE
    banner = rows[banner_row]
    assert b"Kelp editor -- version " + screen.KELP_VERSION.encode() in banner
    # Centered: roughly as much space before as after
    text = banner[:-len(screen.CLEAR_LINE)]
    assert len(text) <= ctx.screen_cols
    assert abs((ctx.screen_cols - len(text)) - (len(text) - len(text.lstrip(b"~ ")))) <= 2


def test_banner_hidden_once_buffer_has_rows(make_context):
    ctx = make_context([b"hello"])
    frame = render_frame(ctx)
    assert b"Kelp editor" not in frame


def test_rows_are_clipped_to_screen_width(make_context):
    ctx = make_context([b"a" * 100, b"\tb"], rows=6, cols=20)
    lines = _frame_lines(ctx)
    assert lines[0] == b"a" * 20 + screen.CLEAR_LINE
    assert lines[1] == b" " * 8 + b"b" + screen.CLEAR_LINE
    assert lines[2] == b"~" + screen.CLEAR_LINE


def test_rows_start_at_column_offset(make_context):
    ctx = make_context([b"0123456789abcdef"], rows=6, cols=10)
    ctx.cx = 15
    lines = _frame_lines(ctx)
    assert ctx.col_offset == 6
    assert lines[0] == b"6789abcdef" + screen.CLEAR_LINE


def test_frame_has_one_line_per_row_plus_bars(make_context):
    ctx = make_context([b"x"] * 3, rows=8, cols=30)
    lines = _frame_lines(ctx)
    assert len(lines) == ctx.screen_rows + 2


def test_status_bar_layout(make_context):
    ctx = make_context([b"one", b"two", b"three"], filename="notes.txt", cols=50)
    ctx.cy = 1
    status = _status_text(_frame_lines(ctx)[ctx.screen_rows])
    assert len(status) == 50
    assert status.startswith("notes.txt - 3 lines")
    assert "(modified)" not in status
    assert status.endswith("2/3")


def test_status_bar_marks_modified_and_truncates_name(make_context):
    name = "a_really_long_file_name_for_testing.txt"
    ctx = make_context([b"x"], filename=name, cols=60)
    ctx.buffer.insert_char(0, 0, ord("y"))
    status = _status_text(_frame_lines(ctx)[ctx.screen_rows])
    assert status.startswith(name[:20] + " - 1 lines (modified)")
    assert name[:21] not in status


def test_status_bar_without_filename(make_context):
    ctx = make_context(cols=40)
    status = _status_text(_frame_lines(ctx)[ctx.screen_rows])
    assert status.startswith("[No Name] - 0 lines")
    assert status.endswith("1/0")


def test_status_bar_drops_right_part_when_narrow(make_context):
    ctx = make_context([b"x"], filename="notes.txt", cols=12)
    status = _status_text(_frame_lines(ctx)[ctx.screen_rows])
    assert len(status) == 12
    assert status == "notes.txt - "


def test_message_bar_shows_fresh_message(make_context):
    ctx = make_context()
    ctx.set_status_message("hello there")
    message = _frame_lines(ctx)[-1]
    assert message.startswith(screen.CLEAR_LINE + b"hello there")


def test_message_bar_hides_expired_message(make_context):
    ctx = make_context()
    ctx.status_message = "stale"
    ctx.status_message_time = time.time() - ctx.config.message_timeout - 1
    frame = render_frame(ctx)
    assert b"stale" not in frame
    # Still stored, only not drawn
    assert ctx.status_message == "stale"


def test_cursor_is_placed_relative_to_offsets(make_context):
    ctx = make_context([b"\tabc"] + [b""] * 40, rows=12, cols=80)
    ctx.cy = 0
    ctx.cx = 2
    frame = render_frame(ctx)
    assert frame.endswith(b"\x1b[1;10H" + screen.SHOW_CURSOR)

    ctx.cy = 30
    ctx.cx = 0
    frame = render_frame(ctx)
    assert frame.endswith(b"\x1b[10;1H" + screen.SHOW_CURSOR)


def test_refresh_screen_is_a_single_write(make_context):
    ctx = make_context([b"abc"])
    screen.refresh_screen(ctx)
    assert len(ctx.session.output) == 1
    assert ctx.session.output[0] == render_frame(ctx)
