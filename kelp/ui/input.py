"""
Input handling for Kelp text editor.

There are no modes: every key is dispatched straight to a cursor move, a
buffer edit, or one of the save/quit commands, and updates the context
accordingly.
"""
from kelp import commands, logger
from kelp.terminal import ESC, Key, ctrl_key

ARROW_KEYS = (Key.ARROW_LEFT, Key.ARROW_RIGHT, Key.ARROW_UP, Key.ARROW_DOWN)

def is_insertable(key: int) -> bool:
    """Bytes that go into the buffer as typed: tab, printable ASCII, and 8-bit bytes."""
    return key == ord('\t') or (32 <= key <= 255 and key != Key.BACKSPACE)

def move_cursor(context, key: int):
    """Move the cursor one cell, wrapping at line ends, then clamp the column."""
    buf = context.buffer
    row_exists = context.cy < buf.num_rows

    if key == Key.ARROW_LEFT:
        if context.cx > 0:
            context.cx -= 1
        elif context.cy > 0:
            # Wrap to the end of the previous line (column 0 if it is empty)
            context.cy -= 1
            context.cx = buf.row_size(context.cy)
    elif key == Key.ARROW_RIGHT:
        if row_exists and context.cx < buf.row_size(context.cy):
            context.cx += 1
        elif row_exists and context.cx == buf.row_size(context.cy):
            context.cy += 1
            context.cx = 0
    elif key == Key.ARROW_UP:
        if context.cy > 0:
            context.cy -= 1
    elif key == Key.ARROW_DOWN:
        if context.cy < buf.num_rows:
            context.cy += 1

    context.cx = buf.clamp_col(context.cy, context.cx)

def handle_keypress(context, key: int):
    """Handle one decoded key."""
    buf = context.buffer

    if key == Key.RESIZE:
        context.update_window_size()
        logger.log(f"Window resized to {context.screen_rows}x{context.screen_cols}.")
        return

    # The only key that keeps the quit confirmation count going
    if key == ctrl_key('q'):
        commands.request_quit(context)
        return

    if key == ord('\r'):
        context.cy, context.cx = buf.insert_newline(context.cy, context.cx)
    elif key == ctrl_key('s'):
        commands.save_file(context)
    elif key == Key.HOME:
        context.cx = 0
    elif key == Key.END:
        context.cx = buf.row_size(context.cy)
    elif key in (Key.BACKSPACE, ctrl_key('h'), Key.DELETE):
        if key == Key.DELETE:
            move_cursor(context, Key.ARROW_RIGHT)
        context.cy, context.cx = buf.delete_char(context.cy, context.cx)
    elif key == Key.PAGE_UP:
        context.cy = 0
        context.cx = buf.clamp_col(context.cy, context.cx)
    elif key == Key.PAGE_DOWN:
        if context.cy < buf.num_rows:
            context.cy = buf.num_rows - 1
        context.cx = buf.clamp_col(context.cy, context.cx)
    elif key in ARROW_KEYS:
        move_cursor(context, key)
    elif key in (ctrl_key('l'), ESC):
        pass
    elif is_insertable(key):
        context.cy, context.cx = buf.insert_char(context.cy, context.cx, key)

    context.quit_times = context.config.quit_times
