"""TrapDispatcher: the LC-3 trap-vector console routines.

Trap Vectors:
    0x20 GETC   Read one character (no echo) into R0
    0x21 OUT    Write the low byte of R0
    0x22 PUTS   Write a word string (one character per cell) starting at R0
    0x23 IN     Prompt, read one character with echo into R0
    0x24 PUTSP  Write a byte string (two characters per cell) starting at R0
    0x25 HALT   Print a notice and stop the machine

Each routine only touches R0 and the console. Any other vector raises
UnknownTrapVectorError.
"""

import logging
from typing import BinaryIO, Callable, Dict, Optional

from .console import ScriptedInput
from .errors import UnknownTrapVectorError
from .memory import AddressSpace
from .state import RegisterFile

logger = logging.getLogger(__name__)

TRAP_GETC = 0x20
TRAP_OUT = 0x21
TRAP_PUTS = 0x22
TRAP_IN = 0x23
TRAP_PUTSP = 0x24
TRAP_HALT = 0x25

TRAP_NAMES = {
    TRAP_GETC: "GETC",
    TRAP_OUT: "OUT",
    TRAP_PUTS: "PUTS",
    TRAP_IN: "IN",
    TRAP_PUTSP: "PUTSP",
    TRAP_HALT: "HALT",
}

IN_PROMPT = b"Enter a character: "
HALT_MESSAGE = b"HALT\n"

TrapHandler = Callable[[RegisterFile, AddressSpace], bool]


class TrapDispatcher:
    """Table of trap routines bound to a keyboard and an output stream.

    Attributes:
        keyboard: Input source for GETC/IN (blocking reads)
        output: Binary stream for all console output
    """

    def __init__(self, keyboard=None, output: Optional[BinaryIO] = None):
        self.keyboard = keyboard if keyboard is not None else ScriptedInput()
        self.output = output
        self._handlers: Dict[int, TrapHandler] = {
            TRAP_GETC: self._trap_getc,
            TRAP_OUT: self._trap_out,
            TRAP_PUTS: self._trap_puts,
            TRAP_IN: self._trap_in,
            TRAP_PUTSP: self._trap_putsp,
            TRAP_HALT: self._trap_halt,
        }

    def get_valid_vectors(self) -> set:
        return set(self._handlers.keys())

    def dispatch(self, vector: int, registers: RegisterFile, memory: AddressSpace,
                 address: Optional[int] = None) -> bool:
        """Run the routine for a trap vector.

        Args:
            vector: Low 8 bits of the TRAP instruction
            registers: Register file (R0 is the only register touched)
            memory: Address space (read by PUTS/PUTSP)
            address: Address of the TRAP instruction, for error reports

        Returns:
            True if the routine halted the machine

        Raises:
            UnknownTrapVectorError: If vector has no routine
        """
        handler = self._handlers.get(vector)
        if handler is None:
            raise UnknownTrapVectorError(vector, address)
        logger.debug("TRAP %s", TRAP_NAMES[vector])
        return handler(registers, memory)

    # =========================================================================
    # Input
    # =========================================================================

    def _trap_getc(self, registers: RegisterFile, memory: AddressSpace) -> bool:
        registers.set_register(0, self.keyboard.read_char())
        return False

    def _trap_in(self, registers: RegisterFile, memory: AddressSpace) -> bool:
        """IN - prompt, then read and echo a single character."""
        self._write(IN_PROMPT)
        char = self.keyboard.read_char()
        self._write(bytes([char & 0xFF]))
        self._flush()
        registers.set_register(0, char)
        return False

    # =========================================================================
    # Output
    # =========================================================================

    def _trap_out(self, registers: RegisterFile, memory: AddressSpace) -> bool:
        self._write(bytes([registers.get_register(0) & 0xFF]))
        self._flush()
        return False

    def _trap_puts(self, registers: RegisterFile, memory: AddressSpace) -> bool:
        """PUTS - one character per cell, low byte only."""
        words = memory.read_string(registers.get_register(0))
        self._write(bytes(word & 0xFF for word in words))
        self._flush()
        return False

    def _trap_putsp(self, registers: RegisterFile, memory: AddressSpace) -> bool:
        """PUTSP - low byte then high byte per cell; a zero high byte is skipped."""
        words = memory.read_string(registers.get_register(0))
        out = bytearray()
        for word in words:
            out.append(word & 0xFF)
            high = word >> 8
            if high:
                out.append(high)
        self._write(bytes(out))
        self._flush()
        return False

    def _trap_halt(self, registers: RegisterFile, memory: AddressSpace) -> bool:
        self._write(HALT_MESSAGE)
        self._flush()
        logger.debug("HALT trap executed")
        return True

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _write(self, data: bytes) -> None:
        if self.output is not None and data:
            self.output.write(data)

    def _flush(self) -> None:
        if self.output is not None:
            self.output.flush()
