"""
Main entry point and editor context for the Kelp text editor.
"""
import sys
import time

from kelp import buffer, config, fileio, logger, terminal
from kelp.ui import input as keyboard
from kelp.ui import screen

HELP_MESSAGE = "HELP: Ctrl-S = save | Ctrl-Q = quit"

class EditorContext:
    """
    Holds the state of the editor: the buffer, the cursor and scroll
    offsets, the screen size, and the status message. The drawing and
    key handling functions in kelp.ui take it as their first argument.
    """
    def __init__(self, session, cfg: config.Config = None):
        self.session = session
        self.config = cfg if cfg is not None else config.Config()

        self.buffer = buffer.Buffer(tab_stop=self.config.tab_stop)

        # Cursor: cx indexes chars of the current row, rx the rendered row
        self.cx = 0
        self.cy = 0
        self.rx = 0
        # Top-left corner of the visible window
        self.row_offset = 0
        self.col_offset = 0
        self.screen_rows = 0
        self.screen_cols = 0

        # Ctrl-Q presses still needed to quit with unsaved changes
        self.quit_times = self.config.quit_times

        self.status_message = ""
        self.status_message_time = 0.0

        # Running flag
        self.exit_flag = False

        self.update_window_size()

    def update_window_size(self):
        """Re-query the terminal size, keeping two lines for the status and message bars."""
        rows, cols = self.session.get_window_size()
        self.screen_rows = max(1, rows - 2)
        self.screen_cols = max(1, cols)

    def open_file(self, filename: str):
        """Replace the buffer with the contents of `filename`. OSError propagates."""
        lines = fileio.load(filename)
        self.buffer = buffer.Buffer.from_lines(filename, lines, self.config.tab_stop)
        self.cx = self.cy = self.rx = 0
        self.row_offset = self.col_offset = 0
        logger.log(f"Opened {filename} ({len(lines)} lines).")

    def set_status_message(self, msg: str):
        self.status_message = msg
        self.status_message_time = time.time()

    def graceful_exit(self):
        """Stop the main loop; main() restores the terminal on the way out."""
        logger.log("Editor exited.")
        self.exit_flag = True

def describe_error(err: Exception) -> str:
    """Diagnostic text for a fatal error, in the style of perror()."""
    if isinstance(err, OSError) and err.filename is not None:
        return f"{err.filename}: {err.strerror}"
    return str(err)

def fatal(session, err: Exception):
    """Clear the screen, leave raw mode, and report `err` on stderr."""
    message = describe_error(err)
    logger.log(f"Fatal: {message}")
    if session.active:
        try:
            screen.clear_screen(session)
        finally:
            session.exit()
    print(f"kelp: {message}", file=sys.stderr)

def main(argv=None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    session = terminal.TerminalSession()
    try:
        cfg = config.load_config()
        logger.set_log_file(cfg.log_file)
        session.enter()
        context = EditorContext(session, cfg)
        if argv:
            context.open_file(argv[0])
        context.set_status_message(HELP_MESSAGE)
        logger.log("Editor started.")

        # Main loop
        while not context.exit_flag:
            screen.refresh_screen(context)
            key = session.read_key()
            keyboard.handle_keypress(context, key)
    except (terminal.TerminalError, OSError) as e:
        fatal(session, e)
        return 1
    finally:
        session.exit()
    return 0

def run():
    """Console script entry point."""
    sys.exit(main())

if __name__ == "__main__":
    run()
