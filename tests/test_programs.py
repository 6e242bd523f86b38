"""Integration tests running whole programs on the Simulator."""

import io
import struct
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from lc3_sim import ScriptedInput, Simulator, StopReason
from lc3_sim.errors import StringOverrunError, UnimplementedOpcodeError, UnknownTrapVectorError
from lc3_sim.memory import KBDR, KBSR
from lc3_sim.state import Flag


MULTIPLY_7_BY_6 = [
    0x5020,  # AND R0, R0, #0
    0x5260,  # AND R1, R1, #0
    0x1267,  # ADD R1, R1, #7
    0x54A0,  # AND R2, R2, #0
    0x14A6,  # ADD R2, R2, #6
    0x1001,  # LOOP ADD R0, R0, R1
    0x14BF,  #      ADD R2, R2, #-1
    0x03FD,  #      BRp LOOP
    0xF025,  # HALT
]


def make_sim(keyboard=b"", **kwargs):
    output = io.BytesIO()
    sim = Simulator(keyboard=ScriptedInput(keyboard), output=output, **kwargs)
    return sim, output


class TestLeaHalt:
    """LEA R0, #1 ; HALT at x3000."""

    def test_two_cycles(self):
        sim, output = make_sim()
        sim.load_words(0x3000, [0xE001, 0xF025])
        result = sim.run()

        assert result.reason is StopReason.HALTED
        assert result.halted is True
        assert result.cycles == 2
        assert sim.get_register(0) == 0x3002
        assert sim.get_flag() is Flag.POSITIVE
        assert sim.is_halted() is True
        assert output.getvalue() == b"HALT\n"

    def test_from_image_stream(self):
        sim, _ = make_sim()
        sim.load_image(io.BytesIO(struct.pack(">3H", 0x3000, 0xE001, 0xF025)))
        assert sim.run().cycles == 2
        assert sim.get_register(0) == 0x3002


class TestMultiplyProgram:
    """7 * 6 via repeated addition."""

    def test_result(self):
        sim, _ = make_sim()
        sim.load_words(0x3000, MULTIPLY_7_BY_6)
        sim.run()
        assert sim.get_register(0) == 42
        assert sim.get_register(2) == 0
        assert sim.get_flag() is Flag.ZERO

    def test_cycle_count(self):
        # 5 setup + 6 * 3 loop + HALT
        sim, _ = make_sim()
        sim.load_words(0x3000, MULTIPLY_7_BY_6)
        assert sim.run().cycles == 24


class TestConsolePrograms:
    """Programs using the trap routines."""

    def test_hello_puts(self):
        sim, output = make_sim()
        message = [ord(c) for c in "Hi"] + [0]
        sim.load_words(0x3000, [0xE002, 0xF022, 0xF025] + message)
        sim.run()
        assert output.getvalue() == b"HiHALT\n"

    def test_echo_until_newline(self):
        program = [
            0xF020,  # LOOP GETC
            0x1421,  #      ADD R2, R0, #1
            0x0403,  #      BRz DONE
            0xF021,  #      OUT
            0x1236,  #      ADD R1, R0, #-10
            0x0BFA,  #      BRnp LOOP
            0xF025,  # DONE HALT
        ]
        sim, output = make_sim(b"ok\nignored")
        sim.load_words(0x3000, program)
        result = sim.run()
        assert result.reason is StopReason.HALTED
        assert output.getvalue() == b"ok\nHALT\n"

    def test_echo_stops_at_eof(self):
        program = [0xF020, 0x1421, 0x0403, 0xF021, 0x1236, 0x0BFA, 0xF025]
        sim, output = make_sim(b"ab")
        sim.load_words(0x3000, program)
        assert sim.run().reason is StopReason.HALTED
        assert output.getvalue() == b"abHALT\n"

    def test_poll_keyboard_status(self):
        """Busy-wait on KBSR then read KBDR, as an OS keyboard routine does."""
        program = [
            0xA203,  # POLL LDI R1, KBSR_PTR
            0x07FE,  #      BRzp POLL
            0xA002,  #      LDI R0, KBDR_PTR
            0xF025,  #      HALT
            KBSR,
            KBDR,
        ]
        sim, _ = make_sim(b"k")
        sim.load_words(0x3000, program)
        sim.run()
        assert sim.get_register(1) == 0x8000
        assert sim.get_register(0) == ord("k")

    def test_subroutine_call_and_return(self):
        program = [
            0x4802,  # JSR SUB
            0x1021,  # ADD R0, R0, #1
            0xF025,  # HALT
            0x1025,  # SUB ADD R0, R0, #5
            0xC1C0,  #     RET
        ]
        sim, _ = make_sim()
        sim.load_words(0x3000, program)
        sim.run()
        assert sim.get_register(0) == 6
        assert sim.get_register(7) == 0x3001


class TestFaults:
    """Faults are returned, not raised, by run()."""

    def test_rti_fault(self):
        sim, _ = make_sim()
        sim.load_words(0x3000, [0x1021, 0x8000, 0xF025])
        result = sim.run()
        assert result.reason is StopReason.FAULT
        assert isinstance(result.error, UnimplementedOpcodeError)
        assert result.error.address == 0x3001
        assert result.cycles == 1
        assert sim.is_halted() is True

    def test_reserved_fault(self):
        sim, _ = make_sim()
        sim.load_words(0x3000, [0xD000])
        assert isinstance(sim.run().error, UnimplementedOpcodeError)

    def test_unknown_trap_fault(self):
        sim, _ = make_sim()
        sim.load_words(0x3000, [0xF030])
        result = sim.run()
        assert result.reason is StopReason.FAULT
        assert isinstance(result.error, UnknownTrapVectorError)

    def test_unterminated_string_fault(self):
        sim, output = make_sim()
        sim.load_words(0x3000, [0x2001, 0xF022, 0xFFFE])  # LD R0, PTR ; PUTS
        sim.memory.load(0xFFFE, [0x41, 0x42])
        result = sim.run()
        assert isinstance(result.error, StringOverrunError)
        assert output.getvalue() == b""

    def test_step_raises_fault(self):
        sim, _ = make_sim()
        sim.load_words(0x3000, [0xD000])
        with pytest.raises(UnimplementedOpcodeError):
            sim.step()

    def test_run_after_fault_reports_fault(self):
        sim, _ = make_sim()
        sim.load_words(0x3000, [0xD000])
        sim.run()
        assert sim.run().reason is StopReason.FAULT


class TestLifecycle:
    """Loading, stepping and cycle limits."""

    def test_run_without_program(self):
        sim, _ = make_sim()
        with pytest.raises(RuntimeError, match="No program loaded"):
            sim.run()

    def test_step_after_halt(self):
        sim, _ = make_sim()
        sim.load_words(0x3000, [0xF025])
        assert sim.step() is False
        with pytest.raises(RuntimeError, match="halted"):
            sim.step()

    def test_cycle_limit(self):
        sim, _ = make_sim(max_cycles=10)
        sim.load_words(0x3000, [0x0FFF])  # BRnzp #-1
        result = sim.run()
        assert result.reason is StopReason.CYCLE_LIMIT
        assert result.cycles == 10
        assert sim.is_halted() is False

    def test_run_limit_override(self):
        sim, _ = make_sim()
        sim.load_words(0x3000, [0x0FFF])
        assert sim.run(max_cycles=3).cycles == 3

    def test_execution_starts_at_x3000(self):
        """An image at another origin is not jumped to."""
        sim, _ = make_sim()
        sim.load_words(0x4000, [0xF025])
        sim.load_words(0x3000, [0xC000 | (1 << 6)])  # JMP R1
        sim.registers.set_register(1, 0x4000)
        assert sim.run().cycles == 2

    def test_pc_wraps_at_top_of_memory(self):
        sim, _ = make_sim()
        sim.load_words(0xFFFF, [0x1021])  # ADD R0, R0, #1
        sim.load_words(0x0000, [0xF025])
        sim.registers.set_pc(0xFFFF)
        sim.run()
        assert sim.get_register(0) == 1
        assert sim.get_pc() == 0x0001


class TestExecutionTrace:
    """Optional execution trace."""

    def test_trace_records_each_step(self):
        sim, _ = make_sim(trace=True)
        sim.load_words(0x3000, [0xE001, 0xF025])
        sim.run()
        assert [e.opcode for e in sim.trace] == ["LEA", "TRAP"]
        assert sim.trace[0].address == 0x3000
        assert sim.trace[0].pre_state["registers"]["R0"] == 0
        assert sim.trace[0].post_state["registers"]["R0"] == 0x3002

    def test_trace_records_fault(self):
        sim, _ = make_sim(trace=True)
        sim.load_words(0x3000, [0x8000])
        sim.run()
        assert sim.get_summary()["errors"] == [sim.trace[0].error]
        assert "RTI" in sim.trace[0].error

    def test_trace_disabled_by_default(self):
        sim, _ = make_sim()
        sim.load_words(0x3000, [0xF025])
        sim.run()
        assert sim.trace == []

    def test_print_trace(self):
        sim, _ = make_sim(trace=True)
        sim.load_words(0x3000, [0xE001, 0xF025])
        sim.run()
        stream = io.StringIO()
        sim.print_trace(stream)
        text = stream.getvalue()
        assert "0x3000: 0xE001 LEA" in text
        assert "R0: 0x0000 -> 0x3002" in text


class TestSummary:

    def test_summary(self):
        sim, _ = make_sim()
        sim.load_words(0x3000, MULTIPLY_7_BY_6)
        sim.run()
        summary = sim.get_summary()
        assert summary["cycles"] == 24
        assert summary["halted"] is True
        assert summary["registers"]["R0"] == 42
        assert summary["cond"] == "ZERO"
