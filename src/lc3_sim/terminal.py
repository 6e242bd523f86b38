"""Host terminal handling for interactive runs.

GETC and the KBSR poll expect raw console semantics: characters arrive
one at a time and are not echoed by the terminal. raw_mode() switches
canonical mode and echo off for the duration of a run and puts the saved
settings back afterwards; install_interrupt_handler() does the same when
the user hits Ctrl-C.

Unix only (termios). When the descriptor is not a terminal, for example
when input is piped in, raw_mode() does nothing.
"""

import logging
import os
import signal
import sys
import termios
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

logger = logging.getLogger(__name__)

# exit(-2) as seen by the shell
EXIT_INTERRUPTED = 254


def disable_input_buffering(fd: int) -> Optional[List]:
    """Turn off ICANON and ECHO on fd.

    Returns:
        The previous attributes, or None if fd is not a terminal
    """
    if not os.isatty(fd):
        return None
    original = termios.tcgetattr(fd)
    attrs = termios.tcgetattr(fd)
    attrs[3] &= ~(termios.ICANON | termios.ECHO)
    termios.tcsetattr(fd, termios.TCSANOW, attrs)
    logger.debug("Input buffering disabled on fd %d", fd)
    return original


def restore_input_buffering(fd: int, original: Optional[List]) -> None:
    if original is not None:
        termios.tcsetattr(fd, termios.TCSANOW, original)


@contextmanager
def raw_mode(fd: Optional[int] = None) -> Iterator[Callable[[], None]]:
    """Context manager running its body with the terminal in raw mode.

    Yields:
        A restore callback, for use by signal handlers
    """
    if fd is None:
        fd = sys.stdin.fileno()
    original = disable_input_buffering(fd)

    def restore() -> None:
        restore_input_buffering(fd, original)

    try:
        yield restore
    finally:
        restore()


def install_interrupt_handler(restore: Callable[[], None]):
    """Restore the terminal and exit with EXIT_INTERRUPTED on SIGINT.

    Returns:
        The previously installed SIGINT handler
    """

    def handle_interrupt(signum, frame):
        restore()
        sys.stderr.write("\n")
        sys.stderr.flush()
        sys.exit(EXIT_INTERRUPTED)

    return signal.signal(signal.SIGINT, handle_interrupt)
