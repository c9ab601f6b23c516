"""Terminal Output Formatting Package

Color is decided per stream at call time: NO_COLOR wins, then FORCE_COLOR,
then whether the stream is a terminal. Errors and warnings go to stderr and
are colored only when stderr is a terminal.
"""

import functools
import os
import re
import sys
import threading

from acm import COMMIT_TYPES


class Colors:
    """ANSI escape codes for terminal colors."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'


@functools.lru_cache(maxsize=None)
def _enable_windows_ansi() -> bool:
    try:
        import ctypes
        kernel32 = ctypes.windll.kernel32
        kernel32.SetConsoleMode(kernel32.GetStdHandle(-11), 7)
        return True
    except (AttributeError, OSError):
        return False


def supports_color(stream=None) -> bool:
    """Whether ANSI codes should be written to `stream` (stdout by default)."""
    if os.environ.get('NO_COLOR'):
        return False
    if os.environ.get('FORCE_COLOR'):
        return True
    stream = stream or sys.stdout
    isatty = getattr(stream, 'isatty', None)
    if isatty is None or not isatty():
        return False
    if sys.platform == 'win32':
        return _enable_windows_ansi()
    return True


def _supports_unicode() -> bool:
    if sys.platform == 'win32':
        try:
            '✓⚠─'.encode(sys.stdout.encoding or 'utf-8')
            return True
        except (UnicodeEncodeError, LookupError):
            return False
    return True


UNICODE_ENABLED = _supports_unicode()

CHECK = '✓' if UNICODE_ENABLED else '[OK]'
CROSS = '✗' if UNICODE_ENABLED else '[X]'
WARN = '⚠' if UNICODE_ENABLED else '[!]'
RULE = '─' if UNICODE_ENABLED else '-'


def _paint(text: str, codes: tuple[str, ...], stream=None) -> str:
    if not supports_color(stream):
        return text
    return f"{''.join(codes)}{text}{Colors.RESET}"


def success(text: str, stream=None) -> str:
    return _paint(text, (Colors.GREEN,), stream)


def error(text: str, stream=None) -> str:
    return _paint(text, (Colors.RED,), stream)


def warning(text: str, stream=None) -> str:
    return _paint(text, (Colors.YELLOW,), stream)


def info(text: str, stream=None) -> str:
    return _paint(text, (Colors.CYAN,), stream)


def dim(text: str, stream=None) -> str:
    return _paint(text, (Colors.DIM,), stream)


def bold(text: str, stream=None) -> str:
    return _paint(text, (Colors.BOLD,), stream)


def print_success(message: str) -> None:
    print(f"{success(CHECK)} {message}")


def print_error(message: str) -> None:
    print(f"{error(CROSS, sys.stderr)} {error(message, sys.stderr)}", file=sys.stderr)


def print_warning(message: str) -> None:
    print(f"{warning(WARN, sys.stderr)} {warning(message, sys.stderr)}", file=sys.stderr)


# One color per entry of COMMIT_TYPES
TYPE_COLORS = {
    'feat': Colors.GREEN,
    'perf': Colors.GREEN,
    'fix': Colors.RED,
    'refactor': Colors.YELLOW,
    'test': Colors.MAGENTA,
    'docs': Colors.CYAN,
    'build': Colors.CYAN,
    'ci': Colors.CYAN,
    'style': Colors.DIM,
    'chore': Colors.DIM,
}

_SUBJECT_TYPE_RE = re.compile(r'^(?P<type>\w+)(\([^)]*\))?!?:')


def colorize_commit_type(message: str) -> str:
    """Color a conventional `type(scope):` prefix on the subject line.

    Prefixes whose type is not one of COMMIT_TYPES are left as they are.
    """
    if not supports_color():
        return message
    subject, newline, body = message.partition('\n')
    match = _SUBJECT_TYPE_RE.match(subject)
    if not match or match.group('type') not in COMMIT_TYPES:
        return message
    color = TYPE_COLORS.get(match.group('type'), Colors.CYAN)
    prefix = match.group(0)
    return _paint(prefix, (Colors.BOLD, color)) + subject[len(prefix):] + newline + body


class Spinner:
    """Animated spinner on stderr while waiting for the model. Use as context manager.

    Nothing is drawn unless the stream is a terminal, so piped output stays clean.
    """
    FRAMES_UNICODE = ['⠋', '⠙', '⠹', '⠸', '⠼', '⠴', '⠦', '⠧', '⠇', '⠏']
    FRAMES_ASCII = ['-', '\\', '|', '/']

    def __init__(self, text: str = "", stream=None):
        self.text = text
        self.stream = stream or sys.stderr
        self._thread = None
        self._stop_event = threading.Event()
        self._frames = self.FRAMES_UNICODE if UNICODE_ENABLED else self.FRAMES_ASCII

    @property
    def active(self) -> bool:
        isatty = getattr(self.stream, 'isatty', None)
        return bool(isatty and isatty())

    def _spin(self):
        idx = 0
        while not self._stop_event.is_set():
            frame = self._frames[idx % len(self._frames)]
            self.stream.write(f'\r\033[K{frame} {self.text}')
            self.stream.flush()
            idx += 1
            self._stop_event.wait(0.08)

    def __enter__(self):
        if self.active:
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._spin, daemon=True)
            self._thread.start()
        return self

    def __exit__(self, *args):
        self._stop_event.set()
        if self._thread:
            self._thread.join()
            self._thread = None
            self.stream.write('\r\033[K')
            self.stream.flush()


__all__ = [
    "Colors", "UNICODE_ENABLED", "supports_color",
    "CHECK", "CROSS", "WARN", "RULE",
    "success", "error", "warning", "info", "dim", "bold",
    "print_success", "print_error", "print_warning",
    "TYPE_COLORS", "colorize_commit_type", "Spinner",
]
