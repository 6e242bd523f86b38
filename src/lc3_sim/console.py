"""Console collaborators: keyboard input sources and the output sink.

The simulator needs two things from the keyboard:
    key_ready()  - non-blocking "is a character waiting?" (used by KBSR reads)
    read_char()  - blocking read of exactly one character (GETC / IN traps)

TerminalInput talks to a real file descriptor and expects the host to have
put the terminal in raw mode (see lc3_sim.terminal). ScriptedInput replays a
fixed byte string, which is what the tests and the demo use.

Output goes to any binary stream with write() and flush().
"""

import os
import select
import sys
from typing import BinaryIO, Optional, Union

# getchar() returns EOF (-1) at end of input; stored in a 16-bit register
EOF_CHAR = 0xFFFF


class TerminalInput:
    """Keyboard backed by a terminal file descriptor (stdin by default).

    At end of input the descriptor stays readable, so key_ready() keeps
    returning True and every read_char() returns EOF_CHAR.
    """

    def __init__(self, fd: Optional[int] = None):
        self.fd = sys.stdin.fileno() if fd is None else fd

    def key_ready(self) -> bool:
        readable, _, _ = select.select([self.fd], [], [], 0)
        return bool(readable)

    def read_char(self) -> int:
        data = os.read(self.fd, 1)
        if not data:
            return EOF_CHAR
        return data[0]


class ScriptedInput:
    """Keyboard that replays a fixed sequence of bytes.

    Once the script is exhausted key_ready() is False and read_char()
    returns EOF_CHAR. This differs from TerminalInput, which keeps
    reporting a key after its input is closed.
    """

    def __init__(self, data: Union[bytes, str] = b""):
        if isinstance(data, str):
            data = data.encode("latin-1")
        self._data = bytes(data)
        self._pos = 0

    def key_ready(self) -> bool:
        return self._pos < len(self._data)

    def read_char(self) -> int:
        if self._pos >= len(self._data):
            return EOF_CHAR
        char = self._data[self._pos]
        self._pos += 1
        return char

    @property
    def remaining(self) -> bytes:
        """Bytes not yet consumed."""
        return self._data[self._pos:]


def terminal_output() -> BinaryIO:
    """Binary stdout stream used as the default output sink."""
    return sys.stdout.buffer
