"""
Save and quit actions for Kelp text editor.

These are the two key bindings that reach outside the buffer: Ctrl-S writes
the file through kelp.fileio, Ctrl-Q ends the session (after asking for
confirmation while there are unsaved changes).
"""
from kelp import fileio, logger
from kelp.ui import screen

def save_file(context):
    """
    Write the buffer to its file. A buffer without a filename is left alone.
    On failure the buffer and its dirty counter are untouched so the user
    can try again.
    """
    buf = context.buffer
    if not buf.filename:
        logger.log("Save skipped: buffer has no filename.")
        return

    try:
        written = fileio.save(buf.filename, buf.rows_to_bytes())
    except OSError as e:
        context.set_status_message(f"Can't save! I/O error: {e.strerror or e}")
        logger.log(f"Save of {buf.filename} failed: {e}")
        return

    buf.mark_saved()
    context.set_status_message(f"{written} bytes written to disk")
    logger.log(f"Saved {buf.filename} ({written} bytes).")

def request_quit(context):
    """
    Quit, unless the buffer is dirty and confirmations are still owed:
    then warn and count one down. With quit_times = N a dirty buffer takes
    N warned presses, and the press after them quits (N + 1 in all).
    """
    if context.buffer.dirty and context.quit_times > 0:
        context.set_status_message(
            "WARNING!!! File has unsaved changes. "
            f"Press Ctrl-Q {context.quit_times} more times to quit."
        )
        context.quit_times -= 1
        return

    screen.clear_screen(context.session)
    context.graceful_exit()
