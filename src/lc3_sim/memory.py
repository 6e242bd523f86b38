"""AddressSpace: 64K-word memory with memory-mapped keyboard registers.

Memory map:
    0x0000-0xFFFF  Flat word-addressed RAM (65536 x 16-bit cells)
    0xFE00         KBSR - keyboard status, bit 15 set when a key is ready
    0xFE02         KBDR - keyboard data, last character read

Only reads of KBSR are intercepted: each one polls the keyboard without
blocking and refreshes both mapped cells. Writes to KBSR/KBDR are plain
stores and are overwritten by the next KBSR read.
"""

import logging
from array import array
from typing import Iterable, List

from .errors import StringOverrunError
from .state import WORD_MASK

logger = logging.getLogger(__name__)

MEMORY_SIZE = 1 << 16

KBSR = 0xFE00  # keyboard status
KBDR = 0xFE02  # keyboard data

KEY_READY = 1 << 15


class AddressSpace:
    """Word-addressable 64K memory.

    Attributes:
        keyboard: Input source polled on KBSR reads (None means no keyboard,
            so the status register always reads back 0)
    """

    def __init__(self, keyboard=None):
        self.keyboard = keyboard
        self._cells = array("H", [0]) * MEMORY_SIZE

    def __len__(self) -> int:
        return MEMORY_SIZE

    # --- Core read/write ---

    def read(self, address: int) -> int:
        """Read a word, polling the keyboard first if address is KBSR."""
        address &= WORD_MASK
        if address == KBSR:
            self._poll_keyboard()
        return self._cells[address]

    def write(self, address: int, value: int) -> None:
        self._cells[address & WORD_MASK] = value & WORD_MASK

    def peek(self, address: int) -> int:
        """Read a word without any device side effects."""
        return self._cells[address & WORD_MASK]

    def _poll_keyboard(self) -> None:
        if self.keyboard is not None and self.keyboard.key_ready():
            self._cells[KBSR] = KEY_READY
            self._cells[KBDR] = self.keyboard.read_char() & WORD_MASK
        else:
            self._cells[KBSR] = 0

    # --- Bulk access ---

    def load(self, origin: int, words: Iterable[int]) -> int:
        """Store words at consecutive addresses starting at origin.

        Words that would run past 0xFFFF are dropped.

        Returns:
            Number of words stored
        """
        address = origin & WORD_MASK
        count = 0
        for word in words:
            if address >= MEMORY_SIZE:
                logger.debug("Image truncated at top of memory after %d words", count)
                break
            self._cells[address] = word & WORD_MASK
            address += 1
            count += 1
        return count

    def read_string(self, address: int) -> List[int]:
        """Collect cells from address up to (not including) the first zero.

        The walk does not wrap and does not poll the keyboard.

        Raises:
            StringOverrunError: If 0xFFFF is reached without a zero cell
        """
        start = address & WORD_MASK
        words = []
        for addr in range(start, MEMORY_SIZE):
            value = self._cells[addr]
            if value == 0:
                return words
            words.append(value)
        raise StringOverrunError(start)

