"""
debug_trace.py

Trace log for WardleySync sessions.

Off by default. Switch it on with WARDLEYSYNC_TRACE=1 or ``trace = true``
under ``[debug]`` in settings.toml; lines go to stderr and to a log file in
the platform log directory. Each line carries a category so a session can
be filtered with grep:

    CANVAS    pointer gestures and tool changes on the map canvas
    PAINT     every repaint (needs ``trace_paint`` as well)
    HISTORY   undo/redo commits
    PARSER    map text that failed to parse
    SEQUENCE  reveal recording and playback state changes
    CHANNEL   presenter window messages
    PROJECT   project save/load
    EXPORT    PNG and map-text export
    STORAGE   project directory access
    PROPS     style panel edits
    SETTINGS  settings.toml values replaced by defaults
    MAIN      window start-up and shutdown
    ERROR     exceptions caught by trace_call / trace_exception
    CRASH     uncaught exceptions from the Qt event loop
"""

import os
import sys
import time
import traceback
from datetime import datetime
from functools import wraps
from pathlib import Path

import platformdirs

CATEGORIES = (
    "CANVAS", "PAINT", "HISTORY", "PARSER", "SEQUENCE", "CHANNEL", "PROJECT",
    "EXPORT", "STORAGE", "PROPS", "SETTINGS", "MAIN", "ERROR", "CRASH", "INFO",
)

DEBUG_TRACE = os.environ.get("WARDLEYSYNC_TRACE", "") not in ("", "0")
TRACE_PAINT = False

LOG_FILE = Path(platformdirs.user_log_dir("wardleysync")) / "wardleysync_debug.log"

_log_file = None


def configure(enabled: bool, trace_paint: bool = False, log_file=LOG_FILE):
    """Apply the ``[debug]`` settings; the environment switch stays on if set."""
    global DEBUG_TRACE, TRACE_PAINT, LOG_FILE
    DEBUG_TRACE = DEBUG_TRACE or enabled
    TRACE_PAINT = trace_paint
    if log_file != LOG_FILE:
        close_log()
        LOG_FILE = log_file


def _get_log_file():
    global _log_file
    if LOG_FILE and _log_file is None:
        try:
            Path(LOG_FILE).parent.mkdir(parents=True, exist_ok=True)
            _log_file = open(LOG_FILE, "w", encoding="utf-8")
        except OSError:
            pass
    return _log_file


def format_line(msg: str, category: str) -> str:
    stamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    return f"[{stamp}] [{category}] {msg}"


def trace(msg: str, category: str = "INFO"):
    """Write one trace line if tracing (and, for PAINT, paint tracing) is on."""
    if not DEBUG_TRACE or (category == "PAINT" and not TRACE_PAINT):
        return
    line = format_line(msg, category)
    print(line, file=sys.stderr, flush=True)

    log_file = _get_log_file()
    if log_file:
        try:
            log_file.write(line + "\n")
            log_file.flush()
        except OSError:
            pass


def trace_exception(msg: str = "Exception", category: str = "ERROR"):
    """Trace the exception currently being handled, with its traceback."""
    if DEBUG_TRACE:
        trace(f"{msg}: {traceback.format_exc()}", category)


def _describe_target(args) -> str:
    # _save_as(name) and friends: the project name or file follows self
    for arg in args[1:2]:
        if isinstance(arg, (str, Path)):
            return f" {Path(arg).name}"
    return ""


def trace_call(category: str = "MAIN"):
    """Decorator tracing entry, exit and duration of a window action.

    Used on the project and export handlers of the main window. A string or
    path argument right after ``self`` names the project or file involved
    and is added to the entry line. A raised exception is traced under
    ERROR and re-raised unchanged.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not DEBUG_TRACE:
                return func(*args, **kwargs)
            name = func.__qualname__
            trace(f">>> {name}{_describe_target(args)}", category)
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                trace(f"!!! {name} raised {type(e).__name__}: {e}", "ERROR")
                raise
            trace(f"<<< {name} ({(time.perf_counter() - started) * 1000:.1f} ms)", category)
            return result
        return wrapper
    return decorator


def close_log():
    global _log_file
    if _log_file:
        try:
            _log_file.close()
        except OSError:
            pass
        _log_file = None
