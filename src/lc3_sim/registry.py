"""InstructionSet: opcode handlers for the LC-3 simulator.

This module implements the registry pattern for the 16 LC-3 opcodes.
Each handler decodes its own operand fields from the instruction word
and mutates the register file and address space in place.

Instruction Layout (bit 15 = most significant):
    [15:12] opcode
    [11:9]  DR / SR / nzp mask
    [8:6]   SR1 / BaseR
    [5]     immediate-mode bit (ADD, AND)
    [4:0]   imm5, [5:0] offset6, [8:0] PCoffset9, [10:0] PCoffset11
    [7:0]   trap vector

Opcodes:
    OP_BR    0  conditional branch
    OP_ADD   1  add (sets flags)
    OP_LD    2  load PC-relative (sets flags)
    OP_ST    3  store PC-relative
    OP_JSR   4  jump to subroutine (JSR / JSRR)
    OP_AND   5  bitwise and (sets flags)
    OP_LDR   6  load base+offset (sets flags)
    OP_STR   7  store base+offset
    OP_RTI   8  unimplemented
    OP_NOT   9  bitwise complement (sets flags)
    OP_LDI  10  load indirect (sets flags)
    OP_STI  11  store indirect
    OP_JMP  12  jump / RET
    OP_RES  13  reserved, unimplemented
    OP_LEA  14  load effective address (sets flags)
    OP_TRAP 15  trap dispatch

Every handler has the signature (registers, memory, instruction) -> bool,
returning True only when the instruction halted the machine. The PC has
already been advanced past the instruction when a handler runs.
"""

from typing import Callable, Dict

from .errors import UnimplementedOpcodeError
from .memory import AddressSpace
from .state import WORD_MASK, RegisterFile, sign_extend
from .traps import TrapDispatcher

OP_BR = 0
OP_ADD = 1
OP_LD = 2
OP_ST = 3
OP_JSR = 4
OP_AND = 5
OP_LDR = 6
OP_STR = 7
OP_RTI = 8
OP_NOT = 9
OP_LDI = 10
OP_STI = 11
OP_JMP = 12
OP_RES = 13
OP_LEA = 14
OP_TRAP = 15

OPCODE_NAMES = {
    OP_BR: "BR",
    OP_ADD: "ADD",
    OP_LD: "LD",
    OP_ST: "ST",
    OP_JSR: "JSR",
    OP_AND: "AND",
    OP_LDR: "LDR",
    OP_STR: "STR",
    OP_RTI: "RTI",
    OP_NOT: "NOT",
    OP_LDI: "LDI",
    OP_STI: "STI",
    OP_JMP: "JMP",
    OP_RES: "RES",
    OP_LEA: "LEA",
    OP_TRAP: "TRAP",
}

Handler = Callable[[RegisterFile, AddressSpace, int], bool]


def opcode_of(instruction: int) -> int:
    """Top 4 bits of an instruction word."""
    return (instruction >> 12) & 0xF


def _dr(instruction: int) -> int:
    return (instruction >> 9) & 0x7


def _sr1(instruction: int) -> int:
    return (instruction >> 6) & 0x7


def _pc_offset9(instruction: int) -> int:
    return sign_extend(instruction & 0x1FF, 9)


def _offset6(instruction: int) -> int:
    return sign_extend(instruction & 0x3F, 6)


class InstructionSet:
    """Registry of opcode handlers.

    The registry is frozen after initialization so the dispatch table
    cannot change while a program runs.

    Attributes:
        traps: TrapDispatcher used by OP_TRAP
        _handlers: Dictionary mapping opcode values to handler functions
        _frozen: Whether the registry is locked against modifications
    """

    def __init__(self, traps: TrapDispatcher):
        """Initialize registry with all 16 opcode handlers."""
        self.traps = traps
        self._handlers: Dict[int, Handler] = {}
        self._frozen = False
        self._register_all_handlers()
        self.freeze()

    def _register_all_handlers(self) -> None:
        # Operate
        self.register(OP_ADD, self._op_add)
        self.register(OP_AND, self._op_and)
        self.register(OP_NOT, self._op_not)

        # Data movement
        self.register(OP_LD, self._op_ld)
        self.register(OP_LDI, self._op_ldi)
        self.register(OP_LDR, self._op_ldr)
        self.register(OP_LEA, self._op_lea)
        self.register(OP_ST, self._op_st)
        self.register(OP_STI, self._op_sti)
        self.register(OP_STR, self._op_str)

        # Control flow
        self.register(OP_BR, self._op_br)
        self.register(OP_JMP, self._op_jmp)
        self.register(OP_JSR, self._op_jsr)
        self.register(OP_TRAP, self._op_trap)

        # Unimplemented
        self.register(OP_RTI, self._op_unimplemented)
        self.register(OP_RES, self._op_unimplemented)

    def register(self, opcode: int, handler: Handler) -> None:
        """Register an opcode handler.

        Raises:
            RuntimeError: If registry is frozen
            ValueError: If opcode already registered or out of range
        """
        if self._frozen:
            raise RuntimeError("Cannot register handlers: registry is frozen")
        if not 0 <= opcode <= 0xF:
            raise ValueError(f"Opcode out of range: {opcode}")
        if opcode in self._handlers:
            raise ValueError(f"Handler already registered: {OPCODE_NAMES[opcode]}")
        self._handlers[opcode] = handler

    def freeze(self) -> None:
        """Freeze the registry to prevent further modifications."""
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    def get_valid_opcodes(self) -> set:
        return set(self._handlers.keys())

    def execute(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        """Execute one already-fetched instruction.

        Args:
            registers: Register file (PC already incremented)
            memory: Address space
            instruction: 16-bit instruction word

        Returns:
            True if the instruction halted the machine

        Raises:
            UnimplementedOpcodeError: For RTI and RES
            UnknownTrapVectorError: For TRAP with an undefined vector
            StringOverrunError: For PUTS/PUTSP on an unterminated string
        """
        handler = self._handlers[opcode_of(instruction)]
        return handler(registers, memory, instruction)

    # =========================================================================
    # Operate Instructions
    # =========================================================================

    def _second_operand(self, registers: RegisterFile, instruction: int) -> int:
        """imm5 when bit 5 is set, otherwise SR2."""
        if (instruction >> 5) & 0x1:
            return sign_extend(instruction & 0x1F, 5)
        return registers.get_register(instruction & 0x7)

    def _op_add(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        """ADD DR, SR1, SR2 / ADD DR, SR1, imm5."""
        dr = _dr(instruction)
        value = registers.get_register(_sr1(instruction)) + self._second_operand(registers, instruction)
        registers.set_register(dr, value)
        registers.update_flags(dr)
        return False

    def _op_and(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        """AND DR, SR1, SR2 / AND DR, SR1, imm5."""
        dr = _dr(instruction)
        value = registers.get_register(_sr1(instruction)) & self._second_operand(registers, instruction)
        registers.set_register(dr, value)
        registers.update_flags(dr)
        return False

    def _op_not(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        dr = _dr(instruction)
        registers.set_register(dr, ~registers.get_register(_sr1(instruction)))
        registers.update_flags(dr)
        return False

    # =========================================================================
    # Data Movement Instructions
    # =========================================================================

    def _op_ld(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        """LD DR, PCoffset9 - DR = mem[PC + offset]."""
        dr = _dr(instruction)
        registers.set_register(dr, memory.read(registers.pc + _pc_offset9(instruction)))
        registers.update_flags(dr)
        return False

    def _op_ldi(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        """LDI DR, PCoffset9 - DR = mem[mem[PC + offset]]."""
        dr = _dr(instruction)
        pointer = memory.read(registers.pc + _pc_offset9(instruction))
        registers.set_register(dr, memory.read(pointer))
        registers.update_flags(dr)
        return False

    def _op_ldr(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        """LDR DR, BaseR, offset6 - DR = mem[BaseR + offset]."""
        dr = _dr(instruction)
        base = registers.get_register(_sr1(instruction))
        registers.set_register(dr, memory.read(base + _offset6(instruction)))
        registers.update_flags(dr)
        return False

    def _op_lea(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        """LEA DR, PCoffset9 - DR = PC + offset (no memory access)."""
        dr = _dr(instruction)
        registers.set_register(dr, registers.pc + _pc_offset9(instruction))
        registers.update_flags(dr)
        return False

    def _op_st(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        memory.write(registers.pc + _pc_offset9(instruction), registers.get_register(_dr(instruction)))
        return False

    def _op_sti(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        pointer = memory.read(registers.pc + _pc_offset9(instruction))
        memory.write(pointer, registers.get_register(_dr(instruction)))
        return False

    def _op_str(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        base = registers.get_register(_sr1(instruction))
        memory.write(base + _offset6(instruction), registers.get_register(_dr(instruction)))
        return False

    # =========================================================================
    # Control Flow Instructions
    # =========================================================================

    def _op_br(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        """BRnzp PCoffset9 - branch when the nzp mask matches COND."""
        mask = (instruction >> 9) & 0x7
        if mask & registers.cond:
            registers.set_pc(registers.pc + _pc_offset9(instruction))
        return False

    def _op_jmp(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        """JMP BaseR (RET is JMP R7)."""
        registers.set_pc(registers.get_register(_sr1(instruction)))
        return False

    def _op_jsr(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        """JSR PCoffset11 / JSRR BaseR - R7 holds the return address."""
        return_address = registers.pc
        if (instruction >> 11) & 0x1:
            target = return_address + sign_extend(instruction & 0x7FF, 11)
        else:
            # Base is read before R7 is overwritten, so JSRR R7 works
            target = registers.get_register(_sr1(instruction))
        registers.set_register(7, return_address)
        registers.set_pc(target)
        return False

    def _op_trap(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        address = (registers.pc - 1) & WORD_MASK
        return self.traps.dispatch(instruction & 0xFF, registers, memory, address=address)

    def _op_unimplemented(self, registers: RegisterFile, memory: AddressSpace, instruction: int) -> bool:
        opcode = opcode_of(instruction)
        raise UnimplementedOpcodeError(
            opcode,
            (registers.pc - 1) & WORD_MASK,
            instruction,
            name=OPCODE_NAMES[opcode],
        )
