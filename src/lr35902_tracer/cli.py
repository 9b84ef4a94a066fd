# lr35902_tracer/cli.py
"""
コマンドラインエントリポイント。

    lr35902-tracer run IMAGE [--config FILE] [--max-steps N] [--trace] [--break ADDR] [--log-level L]
    lr35902-tracer disasm IMAGE [--start ADDR] [--length N] [--base ADDR]
"""
import argparse
import logging
import sys
from typing import List, Optional

from lr35902_tracer.config.loader import ConfigLoader
from lr35902_tracer.config.builder import SystemBuilder
from lr35902_tracer.config.models import default_config
from lr35902_tracer.debugger.debugger import Debugger, BreakpointCondition, BreakpointConditionType, StopReason
from lr35902_tracer.loader.loader import load_image
from lr35902_tracer.common.errors import Lr35902Error

logger = logging.getLogger(__name__)


# @intent:responsibility アドレス引数を解釈します。"$0100"、"0x0100"、"0100" はいずれも16進数として扱います。
def _address(text: str) -> int:
    text = text.strip().lower()
    if text.startswith("$"):
        text = text[1:]
    elif text.startswith("0x"):
        text = text[2:]
    try:
        return int(text, 16)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid address: {text!r}") from None


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--log-level', default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help='logging level')

    parser = argparse.ArgumentParser(prog="lr35902-tracer", description="LR35902 instruction-level tracer.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", parents=[common], help="execute a program image")
    run.add_argument("image", help="raw binary or Intel HEX image")
    run.add_argument("--config", help="YAML system configuration")
    run.add_argument("--base", type=_address, default=0x0000, help="load address for raw binaries (hex)")
    run.add_argument("--max-steps", type=int, default=100000, help="instruction limit")
    run.add_argument("--trace", action="store_true", help="print every executed instruction")
    run.add_argument("--break", dest="breakpoints", type=_address, action="append", default=[],
                     help="stop when PC reaches ADDR, in hex (repeatable)")

    disasm = subparsers.add_parser("disasm", parents=[common], help="disassemble a program image")
    disasm.add_argument("image", help="raw binary or Intel HEX image")
    disasm.add_argument("--base", type=_address, default=0x0000, help="load address for raw binaries (hex)")
    disasm.add_argument("--start", type=_address, default=0x0000, help="first address (hex)")
    disasm.add_argument("--length", type=_address, default=0x40, help="number of bytes (hex)")
    return parser


def _format_state(state) -> str:
    regs = state.registers
    flags = "".join(
        name if on else "-"
        for name, on in zip("ZNHC", (regs.f.zero, regs.f.subtract, regs.f.half_carry, regs.f.carry))
    )
    return (f"AF={regs.af:04X} BC={regs.bc:04X} DE={regs.de:04X} HL={regs.hl:04X} "
            f"SP={state.sp:04X} PC={state.pc:04X} {flags}")


def _run(args: argparse.Namespace) -> int:
    config = ConfigLoader().load_from_file(args.config) if args.config else default_config()
    cpu, bus = SystemBuilder().build_system(config)
    load_image(args.image, bus, args.base)
    debugger = Debugger(cpu, config.illegal_opcode)
    for address in args.breakpoints:
        debugger.add_breakpoint(BreakpointCondition(BreakpointConditionType.PC_MATCH, value=address))

    reason = debugger.run(max_steps=args.max_steps)
    if args.trace:
        for snapshot in debugger.get_history():
            op = snapshot.operation
            print(f"{op.address:04X}  {op.opcode_hex:<6} {op.text:<18} {_format_state(snapshot.state)}")

    print(f"Stopped: {reason.value}")
    print(_format_state(cpu.get_state()))
    return 1 if reason == StopReason.ILLEGAL_OPCODE else 0


def _disasm(args: argparse.Namespace) -> int:
    cpu, bus = SystemBuilder().build_system(default_config())
    load_image(args.image, bus, args.base)
    for address, hex_bytes, text in cpu.disassemble(args.start, args.length):
        print(f"{address:04X}  {hex_bytes:<9} {text}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    try:
        if args.command == "run":
            return _run(args)
        return _disasm(args)
    except (Lr35902Error, OSError) as e:
        logger.error("%s", e)
        return 2


if __name__ == '__main__':
    sys.exit(main())
