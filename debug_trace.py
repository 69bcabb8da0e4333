"""
debug_trace.py

Categorized tracing of editing-state transitions (slide switches, restores,
history replay). Enable by setting SLIDEKIT_TRACE=1 in the environment;
SLIDEKIT_TRACE_FILE optionally mirrors the trace to a file.
"""

import logging
import os
import sys
import traceback
from datetime import datetime
from functools import wraps

# Set to True to enable debug tracing
DEBUG_TRACE = os.environ.get("SLIDEKIT_TRACE", "") not in ("", "0")

# Log file (None for stderr only)
LOG_FILE = os.environ.get("SLIDEKIT_TRACE_FILE") or None

_log = logging.getLogger("slidekit.trace")
_log_file = None


def _get_log_file():
    global _log_file
    if LOG_FILE and _log_file is None:
        try:
            _log_file = open(LOG_FILE, "w", encoding="utf-8")
        except OSError as e:
            _log.warning("Cannot open trace file %s: %s", LOG_FILE, e)
    return _log_file


def trace(msg: str, category: str = "INFO"):
    """Emit a trace message with timestamp."""
    if not DEBUG_TRACE:
        return

    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{timestamp}] [{category}] {msg}"

    print(line, file=sys.stderr, flush=True)

    log_file = _get_log_file()
    if log_file:
        log_file.write(line + "\n")
        log_file.flush()


def trace_exception(msg: str = "Exception"):
    """Trace the exception currently being handled."""
    if not DEBUG_TRACE:
        return
    trace(f"{msg}: {traceback.format_exc()}", "ERROR")


def trace_call(category: str = "CALL"):
    """Decorator to trace function calls."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not DEBUG_TRACE:
                return func(*args, **kwargs)
            func_name = func.__qualname__
            trace(f">>> {func_name}", category)
            try:
                result = func(*args, **kwargs)
                trace(f"<<< {func_name}", category)
                return result
            except Exception as e:
                trace(f"!!! {func_name} raised {type(e).__name__}: {e}", "ERROR")
                raise
        return wrapper
    return decorator
