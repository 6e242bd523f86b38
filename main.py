#!/usr/bin/env python3
"""LC3-SIM Command Line Interface.

Run LC-3 object images on the simulator.

Usage:
    python main.py programs/2048.obj
    python main.py os.obj program.obj --stats
"""

import argparse
import logging
import signal
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from lc3_sim import LoadError, Simulator, StopReason, TerminalInput
from lc3_sim.console import terminal_output

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAULT = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="LC3-SIM: LC-3 Instruction-Set Simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Run a single object image (execution starts at 0x3000)
    python main.py programs/rogue.obj

    # Load several images; later images overwrite earlier ones
    python main.py lib.obj main.obj

    # Stop after a million instructions and print a summary
    python main.py programs/loop.obj --max-cycles 1000000 --stats
        """
    )

    parser.add_argument(
        "images",
        nargs="+",
        metavar="IMAGE",
        help="Object image(s) to load, big-endian with a leading origin word"
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=None,
        help="Maximum executed instructions (safety limit). Default: unlimited"
    )
    parser.add_argument(
        "--stats", "-s",
        action="store_true",
        help="Print cycles, registers and condition flag to stderr after the run"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging on stderr"
    )
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    keyboard = TerminalInput()
    sim = Simulator(
        keyboard=keyboard,
        output=terminal_output(),
        max_cycles=args.max_cycles,
    )

    for image in args.images:
        try:
            origin = sim.load_image(image)
        except LoadError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_USAGE
        logger.debug("Loaded %s at 0x%04X", image, origin)

    # terminal is imported late: termios is not available everywhere
    from lc3_sim.terminal import install_interrupt_handler, raw_mode

    with raw_mode(keyboard.fd) as restore:
        previous_handler = install_interrupt_handler(restore)
        try:
            result = sim.run()
        finally:
            if previous_handler is not None:
                signal.signal(signal.SIGINT, previous_handler)

    if args.stats:
        summary = sim.get_summary()
        print(f"Stopped: {result.reason.value}", file=sys.stderr)
        print(f"Cycles: {summary['cycles']}", file=sys.stderr)
        print(f"Registers: {sim.registers}", file=sys.stderr)

    if result.reason is StopReason.FAULT:
        print(f"Fault: {result.error}", file=sys.stderr)
        return EXIT_FAULT
    if result.reason is StopReason.CYCLE_LIMIT:
        print(f"Execution stopped: max cycles ({args.max_cycles}) exceeded", file=sys.stderr)
        return EXIT_FAULT
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
