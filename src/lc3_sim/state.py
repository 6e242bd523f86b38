"""RegisterFile: register state for the LC-3 simulator.

State Components:
    - Registers: R0-R7 (8 general-purpose 16-bit unsigned words)
    - PC: Program counter (16-bit, wraps)
    - COND: Condition register, exactly one of P, Z, N

Unlike memory, the register file is small enough to snapshot on every
step, which is what the execution trace uses.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List


WORD_MASK = 0xFFFF
REGISTER_COUNT = 8

# Fixed start address of user programs
PC_START = 0x3000


class Flag(IntEnum):
    """Condition flag values. Bit positions match the BR nzp mask."""
    POSITIVE = 1 << 0
    ZERO = 1 << 1
    NEGATIVE = 1 << 2


def sign_extend(value: int, bit_count: int) -> int:
    """Sign-extend a bit_count-wide two's-complement field to 16 bits.

    Args:
        value: Field value (only the low bit_count bits are meaningful)
        bit_count: Width of the field

    Returns:
        16-bit word with the field's sign bit copied into every higher bit
    """
    if (value >> (bit_count - 1)) & 1:
        value |= (WORD_MASK << bit_count)
    return value & WORD_MASK


@dataclass
class RegisterFile:
    """General-purpose registers, program counter and condition register.

    Attributes:
        registers: Values of R0-R7, each 0..0xFFFF
        pc: Program counter
        cond: Current condition flag
    """
    registers: List[int] = field(default_factory=lambda: [0] * REGISTER_COUNT)
    pc: int = PC_START
    cond: Flag = Flag.ZERO

    def get_register(self, index: int) -> int:
        """Get value of a general-purpose register.

        Raises:
            KeyError: If index is not 0-7
        """
        self._check_index(index)
        return self.registers[index]

    def set_register(self, index: int, value: int) -> None:
        """Store value (reduced to 16 bits) into a general-purpose register.

        Raises:
            KeyError: If index is not 0-7
        """
        self._check_index(index)
        self.registers[index] = value & WORD_MASK

    def update_flags(self, index: int) -> Flag:
        """Set the condition register from the value of register index.

        Returns:
            The flag now held by the condition register
        """
        value = self.get_register(index)
        if value == 0:
            self.cond = Flag.ZERO
        elif value >> 15:
            self.cond = Flag.NEGATIVE
        else:
            self.cond = Flag.POSITIVE
        return self.cond

    def increment_pc(self) -> None:
        self.pc = (self.pc + 1) & WORD_MASK

    def set_pc(self, new_pc: int) -> None:
        self.pc = new_pc & WORD_MASK

    def snapshot(self) -> dict:
        """Copy of the register state for tracing."""
        return {
            "registers": self.dump_registers(),
            "pc": self.pc,
            "cond": Flag(self.cond).name,
        }

    def validate(self) -> bool:
        """Validate register file integrity.

        Checks:
            - Exactly 8 registers, each a 16-bit unsigned int
            - PC within 0..0xFFFF
            - Condition register holds a single flag

        Returns:
            True if state is valid, False otherwise
        """
        if len(self.registers) != REGISTER_COUNT:
            return False

        for value in self.registers:
            if not isinstance(value, int) or not 0 <= value <= WORD_MASK:
                return False

        if not 0 <= self.pc <= WORD_MASK:
            return False

        # A combination of flags is not a valid condition
        if self.cond not in (Flag.POSITIVE, Flag.ZERO, Flag.NEGATIVE):
            return False

        return True

    def dump_registers(self) -> Dict[str, int]:
        """Get a copy of all register values keyed R0-R7."""
        return {f"R{i}": value for i, value in enumerate(self.registers)}

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or not 0 <= index < REGISTER_COUNT:
            raise KeyError(f"Invalid register: {index!r}")

    def __str__(self) -> str:
        """Human-readable register state."""
        regs = " ".join(f"R{i}=0x{v:04X}" for i, v in enumerate(self.registers))
        return f"PC=0x{self.pc:04X} {regs} COND={Flag(self.cond).name[0]}"
