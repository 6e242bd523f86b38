"""Exception hierarchy for the LC-3 simulator.

LoadError is raised before execution starts. The remaining errors are
raised from Simulator.step() and reported by Simulator.run() as a
StopReason.FAULT result.
"""

from typing import Optional


class SimulatorError(Exception):
    """Base class for all simulator failures."""


class LoadError(SimulatorError):
    """Program image could not be opened, read, or is missing its origin."""


class UnimplementedOpcodeError(SimulatorError):
    """RES or RTI encountered during execution.

    Attributes:
        opcode: 4-bit opcode value
        address: Address the instruction was fetched from
        instruction: Full 16-bit instruction word
    """

    def __init__(self, opcode: int, address: int, instruction: int, name: Optional[str] = None):
        self.opcode = opcode
        self.address = address
        self.instruction = instruction
        label = name or f"opcode {opcode}"
        super().__init__(
            f"Unimplemented {label} (0x{instruction:04X}) at 0x{address:04X}"
        )


class UnknownTrapVectorError(SimulatorError):
    """TRAP instruction with a vector outside GETC..HALT."""

    def __init__(self, vector: int, address: Optional[int] = None):
        self.vector = vector
        self.address = address
        where = f" at 0x{address:04X}" if address is not None else ""
        super().__init__(f"Unknown trap vector 0x{vector:02X}{where}")


class StringOverrunError(SimulatorError):
    """String walk reached the top of memory without a terminating zero."""

    def __init__(self, start: int):
        self.start = start
        super().__init__(
            f"String starting at 0x{start:04X} has no terminator before 0xFFFF"
        )
