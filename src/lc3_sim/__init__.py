"""LC3-SIM: Instruction-set simulator for the LC-3 educational computer.

The LC-3 is a 16-bit machine with 16 opcodes, 8 general-purpose
registers, a single-valued condition register (N, Z or P), memory-mapped
keyboard registers and a small trap-vector console "operating system".

Architecture:
    IMAGE -> LOADER -> MEMORY -> FETCH -> PC+1 -> DECODE -> REGISTRY -> EXECUTE
                                  |                              |
                            [KBSR polling]                 [TRAP vectors]

Modules:
    state: RegisterFile, condition flags and sign extension
    memory: AddressSpace with KBSR/KBDR interception
    loader: Big-endian object image loading
    registry: Opcode handler registry (InstructionSet)
    traps: TRAP vector console routines
    cpu: Simulator fetch-decode-execute loop
    console: Keyboard input sources
    terminal: Raw terminal mode and SIGINT handling for the CLI
    errors: Exception hierarchy
"""

__version__ = "0.1.0"
__author__ = "LC3-SIM Project"

from .state import RegisterFile, Flag, sign_extend
from .memory import AddressSpace
from .loader import load_image, load_image_file
from .registry import InstructionSet
from .traps import TrapDispatcher
from .cpu import Simulator, RunResult, StopReason
from .console import ScriptedInput, TerminalInput
from .errors import (
    SimulatorError,
    LoadError,
    UnimplementedOpcodeError,
    UnknownTrapVectorError,
    StringOverrunError,
)

__all__ = [
    "RegisterFile",
    "Flag",
    "sign_extend",
    "AddressSpace",
    "load_image",
    "load_image_file",
    "InstructionSet",
    "TrapDispatcher",
    "Simulator",
    "RunResult",
    "StopReason",
    "ScriptedInput",
    "TerminalInput",
    "SimulatorError",
    "LoadError",
    "UnimplementedOpcodeError",
    "UnknownTrapVectorError",
    "StringOverrunError",
]
