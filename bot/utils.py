"""
Module: bot/utils.py

Provides utility functions for logging and parsing intervals.
"""
import inspect, os, re
from datetime import datetime, timedelta, UTC
from colorama import init, Fore, Style

init(autoreset=True)

_log_file = None

def set_log_file(path):
    """
    Mirror every log line (without colors) into the given file.
    Pass None or an empty string to disable file logging.
    """
    global _log_file
    _log_file = path or None


def log_message(message, level="info"):
    """
    Print a timestamped, colored log message with the caller's relative source path.

    Parameters:
    - message: The log message string.
    - level: One of "info", "debug", "warning", or "error" for coloring.
    """

    frame    = inspect.currentframe().f_back
    fullpath = frame.f_code.co_filename
    cwd      = os.getcwd()
    if fullpath.startswith(cwd + os.sep):
        filename = fullpath[len(cwd)+1:]
    else:
        filename = fullpath
    lineno   = frame.f_lineno

    timestamp = f"[{datetime.now(UTC).strftime('%Y-%m-%d %H:%M:%S')}]"
    color_map = {
        "info": Fore.GREEN,
        "debug": Fore.BLUE,
        "warning": Fore.YELLOW,
        "error": Fore.RED
    }
    level_prefix = f"{level.upper():<7}"
    level_color = color_map.get(level.lower(), Fore.WHITE)

    prefix = f"[{timestamp}] {filename}({lineno}):"
    print(f"{prefix} {level_color}{level_prefix} {message}{Style.RESET_ALL}")

    if _log_file:
        try:
            with open(_log_file, "a", encoding="utf-8") as fh:
                fh.write(f"{prefix} {level_prefix} {message}\n")
        except OSError as e:
            print(f"{prefix} {Fore.RED}{'ERROR':<7} Cannot write log file {_log_file}: {e}{Style.RESET_ALL}")


def log_loop_exception(loop, context):
    """
    asyncio exception handler: turn any unhandled task failure into a log line.
    """
    error = context.get("exception")
    detail = error if error is not None else context.get("message", "unknown error")
    log_message(f"Unhandled asynchronous error: {detail}", "error")


def parse_interval(interval_str):
    """
    Parse an interval string into a (value, unit) tuple.

    Supported formats: digits + unit, where unit is one of
    s, m, h, d, w, optionally with suffixes like "hours", "days".

    Returns (int(value), str(unit)) if valid, otherwise (None, None).
    """
    pattern = r'^(\d+)\s*([smhdw])(?:ec(?:ond)?|in(?:ute)?|our|ay|(?:ee)?k)?s?$'
    match = re.match(pattern, interval_str, re.IGNORECASE)
    if not match:
        return None, None
    return int(match.group(1)), match.group(2).lower()


def interval_to_timedelta(value, unit):
    """
    Convert an interval value and unit into a timedelta.

    Supported units:
      s - seconds
      m - minutes
      h - hours
      d - days
      w - weeks

    Returns a datetime.timedelta or None if the unit is invalid.
    """

    # Guard against missing or invalid inputs
    if value is None or unit is None:
        return None

    delta_map = {
        's': timedelta(seconds=value),
        'm': timedelta(minutes=value),
        'h': timedelta(hours=value),
        'd': timedelta(days=value),
        'w': timedelta(weeks=value)
    }
    return delta_map.get(unit)


def parse_poll_interval(raw, default=timedelta(milliseconds=5000)):
    """
    Parse the polling period.

    A bare integer is milliseconds ("5000"); anything else goes through
    parse_interval ("5s", "1min"). Zero, negative or unparsable values
    fall back to the default.
    """
    raw = (raw or "").strip()
    if raw.isdigit():
        delta = timedelta(milliseconds=int(raw))
    else:
        delta = interval_to_timedelta(*parse_interval(raw))
    if not delta or delta.total_seconds() <= 0:
        return default
    return delta


def parse_timestamp(value):
    """
    Normalize a stored timestamp (datetime, ISO string, or None) to an aware UTC datetime.
    Naive values are taken to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bytes):
        value = value.decode()
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
