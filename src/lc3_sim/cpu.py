"""Simulator: fetch-decode-execute loop for the LC-3.

This module ties the components together:
    AddressSpace -> FETCH -> PC+1 -> DECODE (opcode) -> InstructionSet -> STATE

The simulator has two states, running and halted. Only the HALT trap
moves it to halted. Faults (unimplemented opcodes, unknown trap vectors,
unterminated strings) stop the loop and are handed back to the caller in
a RunResult rather than aborting the process.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, TextIO, Union

from .errors import SimulatorError
from .loader import load_image, load_image_file
from .memory import AddressSpace
from .registry import OPCODE_NAMES, InstructionSet, opcode_of
from .state import Flag, RegisterFile
from .traps import TrapDispatcher

logger = logging.getLogger(__name__)


class StopReason(Enum):
    HALTED = "HALTED"
    FAULT = "FAULT"
    CYCLE_LIMIT = "CYCLE_LIMIT"


@dataclass
class RunResult:
    """Outcome of Simulator.run().

    Attributes:
        reason: Why the loop stopped
        cycles: Total instructions executed so far
        error: The fault, when reason is FAULT
    """
    reason: StopReason
    cycles: int
    error: Optional[SimulatorError] = None

    @property
    def halted(self) -> bool:
        return self.reason is StopReason.HALTED


@dataclass
class ExecutionTraceEntry:
    """Single entry in the execution trace.

    Attributes:
        cycle: Cycle number (0-indexed)
        address: Address the instruction was fetched from
        instruction: 16-bit instruction word
        opcode: Opcode mnemonic
        pre_state: Register snapshot before execution
        post_state: Register snapshot after execution
        error: Error message if execution faulted
    """
    cycle: int
    address: int
    instruction: int
    opcode: str
    pre_state: dict
    post_state: dict = field(default_factory=dict)
    error: Optional[str] = None


class Simulator:
    """LC-3 instruction-set simulator.

    Attributes:
        registers: RegisterFile (R0-R7, PC, COND)
        memory: AddressSpace with memory-mapped keyboard
        traps: TrapDispatcher for the console routines
        instruction_set: Frozen opcode registry
        max_cycles: Optional safety limit on executed instructions
        trace: Execution trace entries (only recorded when tracing)
    """

    DEFAULT_MAX_CYCLES = None

    def __init__(
        self,
        keyboard=None,
        output: Optional[BinaryIO] = None,
        max_cycles: Optional[int] = DEFAULT_MAX_CYCLES,
        trace: bool = False,
    ):
        """Initialize the simulator.

        Args:
            keyboard: Input source with key_ready()/read_char()
            output: Binary stream for console output (None discards it)
            max_cycles: Stop with CYCLE_LIMIT after this many instructions
            trace: Record an ExecutionTraceEntry for every step
        """
        self.registers = RegisterFile()
        self.memory = AddressSpace(keyboard)
        self.traps = TrapDispatcher(keyboard, output)
        self.instruction_set = InstructionSet(self.traps)
        self.max_cycles = max_cycles
        self.tracing = trace
        self.trace: List[ExecutionTraceEntry] = []
        self.running = True
        self.fault: Optional[SimulatorError] = None
        self.cycle_count = 0
        self._loaded = False

    # =========================================================================
    # Loading
    # =========================================================================

    def load_image(self, source: Union[str, Path, BinaryIO]) -> int:
        """Load an object image from a path or an open binary stream.

        Returns:
            The image origin

        Raises:
            LoadError: If the image cannot be read
        """
        if isinstance(source, (str, Path)):
            origin = load_image_file(self.memory, source)
        else:
            origin = load_image(self.memory, source)
        self._loaded = True
        return origin

    def load_words(self, origin: int, words: Iterable[int]) -> int:
        """Load a program already split into host-order words.

        Returns:
            Number of words stored
        """
        count = self.memory.load(origin, words)
        self._loaded = True
        return count

    # =========================================================================
    # Execution
    # =========================================================================

    def step(self) -> bool:
        """Execute a single fetch-decode-execute cycle.

        Returns:
            True if the machine is still running afterwards

        Raises:
            RuntimeError: If no program loaded or the simulator is halted
            SimulatorError: If the instruction faults
        """
        if not self._loaded:
            raise RuntimeError("No program loaded")
        if not self.running:
            raise RuntimeError("Simulator is halted")

        address = self.registers.pc
        instruction = self.memory.read(address)
        self.registers.increment_pc()

        entry = None
        if self.tracing:
            # Snapshot after the fetch so the PC matches what handlers see
            entry = ExecutionTraceEntry(
                cycle=self.cycle_count,
                address=address,
                instruction=instruction,
                opcode=OPCODE_NAMES[opcode_of(instruction)],
                pre_state=self.registers.snapshot(),
            )
            self.trace.append(entry)

        try:
            halted = self.instruction_set.execute(self.registers, self.memory, instruction)
        except SimulatorError as e:
            self.running = False
            self.fault = e
            if entry is not None:
                entry.error = str(e)
                entry.post_state = self.registers.snapshot()
            raise

        self.cycle_count += 1
        if halted:
            self.running = False
        if entry is not None:
            entry.post_state = self.registers.snapshot()
        return self.running

    def run(self, max_cycles: Optional[int] = None) -> RunResult:
        """Run until HALT, a fault, or the cycle limit.

        Args:
            max_cycles: Override the instance cycle limit

        Returns:
            RunResult describing why execution stopped

        Raises:
            RuntimeError: If no program loaded
        """
        if not self._loaded:
            raise RuntimeError("No program loaded")

        limit = max_cycles if max_cycles is not None else self.max_cycles
        logger.debug("Running from PC=0x%04X (limit=%s)", self.registers.pc, limit)

        while self.running:
            if limit is not None and self.cycle_count >= limit:
                logger.debug("Cycle limit %d reached", limit)
                return RunResult(StopReason.CYCLE_LIMIT, self.cycle_count)
            try:
                self.step()
            except SimulatorError as e:
                logger.debug("Execution fault after %d cycles: %s", self.cycle_count, e)
                return RunResult(StopReason.FAULT, self.cycle_count, error=e)

        if self.fault is not None:
            return RunResult(StopReason.FAULT, self.cycle_count, error=self.fault)
        return RunResult(StopReason.HALTED, self.cycle_count)

    # =========================================================================
    # Accessors
    # =========================================================================

    def get_register(self, index: int) -> int:
        return self.registers.get_register(index)

    def dump_registers(self) -> Dict[str, int]:
        return self.registers.dump_registers()

    def get_flag(self) -> Flag:
        return self.registers.cond

    def get_pc(self) -> int:
        return self.registers.pc

    def get_cycle_count(self) -> int:
        return self.cycle_count

    def is_halted(self) -> bool:
        return not self.running

    def get_summary(self) -> Dict:
        """Get execution summary.

        Returns:
            Dictionary with execution statistics and final state
        """
        return {
            "cycles": self.cycle_count,
            "halted": self.is_halted(),
            "registers": self.dump_registers(),
            "cond": self.registers.cond.name,
            "pc": self.registers.pc,
            "trace_length": len(self.trace),
            "errors": [e.error for e in self.trace if e.error],
        }

    def print_trace(self, stream: Optional[TextIO] = None) -> None:
        """Print execution trace in human-readable format.

        Args:
            stream: Text stream to print to (default stdout)
        """
        emit = partial(print, file=stream)
        emit("=" * 70)
        emit("LC-3 EXECUTION TRACE")
        emit("=" * 70)

        for entry in self.trace:
            status = "OK" if not entry.error else f"ERROR: {entry.error}"
            emit(f"\n[Cycle {entry.cycle}] {status}")
            emit(f"  0x{entry.address:04X}: 0x{entry.instruction:04X} {entry.opcode}")

            pre_regs = entry.pre_state.get("registers", {})
            post_regs = entry.post_state.get("registers", {})
            changes = []
            for reg in sorted(pre_regs.keys()):
                if pre_regs[reg] != post_regs.get(reg, pre_regs[reg]):
                    changes.append(f"{reg}: 0x{pre_regs[reg]:04X} -> 0x{post_regs[reg]:04X}")
            if changes:
                emit(f"  Changes: {', '.join(changes)}")

            pre_pc = entry.pre_state.get("pc", 0)
            post_pc = entry.post_state.get("pc", pre_pc)
            if pre_pc != post_pc:
                emit(f"  PC: 0x{pre_pc:04X} -> 0x{post_pc:04X}")

        emit("\n" + "=" * 70)
        emit("FINAL STATE")
        emit("=" * 70)
        emit(f"  {self.registers}")
        emit(f"  Cycles: {self.cycle_count}")
        emit(f"  Halted: {self.is_halted()}")
