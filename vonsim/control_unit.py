"""Five-stage pipelined control unit of the simulated CPU."""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from vonsim.alu import ALU, Operation
from vonsim.hash_register import RegisterMapper, global_register_mapper
from vonsim.io_manager import IORequest
from vonsim.pcb import PCB, State
from vonsim.register_bank import RegisterBank

_MASK32 = 0xFFFFFFFF

END_SENTINEL = 0xFC000000
FATAL_PC_LIMIT = 10000
PIPELINE_DEPTH = 5
BUBBLE = "BUBBLE"
DEFAULT_LOG_DIR = Path("output") / "trace_logs"

_log_lock = threading.Lock()


class MemoryManager(Protocol):
    """Memory hierarchy the pipeline reads instructions and data from."""

    def read(self, address: int, process: PCB) -> int: ...

    def write(self, address: int, value: int, process: PCB) -> None: ...


_OPCODES = {
    0x02: "J",
    0x03: "JAL",
    0x04: "BEQ",
    0x05: "BNE",
    0x08: "ADDI",
    0x09: "ADDIU",
    0x0F: "LUI",
    0x0C: "ANDI",
    0x0A: "SLTI",
    0x23: "LW",
    0x2B: "SW",
    0x0E: "LI",
    0x10: "PRINT",
    0x3F: "END",
    0x07: "BGT",
    0x01: "BLT",
}

_FUNCTS = {0x20: "ADD", 0x22: "SUB", 0x18: "MULT", 0x1A: "DIV"}

_ARITHMETIC_OPS = frozenset({"ADD", "SUB", "MULT", "DIV"})
_IMMEDIATE_FORMAT_OPS = frozenset(
    {"ADDI", "ADDIU", "LI", "LW", "LA", "SW", "BGTI", "BLTI", "BEQ", "BNE",
     "BGT", "BLT", "SLTI", "LUI"}
)
_READS_RS_AND_RT = _ARITHMETIC_OPS | {"BEQ", "BNE", "BGT", "BLT", "SW"}
_READS_RS = frozenset({"ADDI", "ADDIU", "LW", "SLTI"})
_WRITES_RT = frozenset({"ADDI", "ADDIU", "LW", "LI", "LUI", "SLTI", "LA"})
_IMMEDIATE_OPS = frozenset({"ADDI", "ADDIU", "SLTI", "LUI", "LI"})
_BRANCH_OPS = frozenset({"BEQ", "J", "BNE", "BGT", "BGTI", "BLT", "BLTI"})
_BRANCH_ALU_OPS = {
    "BEQ": Operation.BEQ,
    "BNE": Operation.BNE,
    "BLT": Operation.BLT,
    "BGT": Operation.BGT,
}
_ARITHMETIC_ALU_OPS = {
    "ADD": Operation.ADD,
    "SUB": Operation.SUB,
    "MULT": Operation.MUL,
    "DIV": Operation.DIV,
}


def _bits_to_int(bits: str) -> int:
    if not bits:
        return 0
    if not set(bits) <= {"0", "1"}:
        raise ValueError(f"not a binary string: {bits!r}")
    return int(bits, 2)


def _signed32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


def _sign_extend16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _register_bits(index: int) -> str:
    return format(index & 0x1F, "05b")


def get_immediate(instruction: int) -> str:
    """Low 16 bits of ``instruction`` as a binary string."""
    return format(instruction & 0xFFFF, "016b")


def get_destination_register(instruction: int) -> str:
    """The rd field (bits 15..11) as a 5-bit binary string."""
    return _register_bits(instruction >> 11)


def get_target_register(instruction: int) -> str:
    """The rt field (bits 20..16) as a 5-bit binary string."""
    return _register_bits(instruction >> 16)


def get_source_register(instruction: int) -> str:
    """The rs field (bits 25..21) as a 5-bit binary string."""
    return _register_bits(instruction >> 21)


@dataclass
class InstructionData:
    """Decoded fields of one instruction travelling through the pipeline."""

    source_register: str = ""
    target_register: str = ""
    destination_register: str = ""
    op: str = ""
    address_ram_result: str = ""
    raw_instruction: int = 0
    immediate: int = 0

    @property
    def idle(self) -> bool:
        """Whether this slot does no work (empty or a bubble)."""
        return not self.op or self.op == BUBBLE


def _hazard_destination(instr: InstructionData) -> str:
    if instr.op in _ARITHMETIC_OPS:
        return instr.destination_register
    if instr.op in _WRITES_RT:
        return instr.target_register
    return ""


@dataclass(eq=False)
class ControlContext:
    """State shared by the pipeline stages while one process runs."""

    registers: RegisterBank
    memory_manager: MemoryManager
    io_requests: list[IORequest]
    print_lock: bool
    process: PCB
    counter: int = 0
    counter_for_end: int = PIPELINE_DEPTH
    end_program: bool = False
    end_execution: bool = False


def _account_stage(process: PCB) -> None:
    process.stage_invocations += 1


class ControlUnit:
    """Fetch, decode, execute, memory and write-back stages.

    ``data`` holds one :class:`InstructionData` per fetched slot; the stages
    work on entries at fixed distances behind the newest one.
    """

    def __init__(self, log_dir: str | Path = DEFAULT_LOG_DIR) -> None:
        self.data: list[InstructionData] = []
        self.map: RegisterMapper = global_register_mapper()
        self.log_dir = Path(log_dir)

    def _name(self, bits: str) -> str:
        return self.map.get_register_name(_bits_to_int(bits))

    def identify_instruction(self, instruction: int) -> str:
        """Mnemonic for ``instruction``; empty for unknown or no-op words."""
        opcode = (instruction >> 26) & 0x3F
        if opcode == 0:
            return _FUNCTS.get(instruction & 0x3F, "")
        return _OPCODES.get(opcode, "")

    def log_operation(self, msg: str, pid: int) -> None:
        """Append ``msg`` to the trace log of process ``pid``, if it can be opened."""
        path = self.log_dir / f"temp_{pid}.log"
        with _log_lock:
            try:
                with open(path, "a", encoding="utf-8") as handle:
                    handle.write(f"{msg} [PID:{pid}]\n")
            except OSError:
                pass

    def fetch(self, context: ControlContext) -> None:
        """Load the word at PC into IR and advance PC, stopping at END."""
        registers = context.registers
        _account_stage(context.process)
        registers.mar.write(registers.pc.read())
        instr = context.memory_manager.read(registers.mar.read(), context.process)
        registers.ir.write(instr)
        instr = registers.ir.read()

        if instr == 0 and registers.pc.read() > FATAL_PC_LIMIT:
            print(
                f"[CPU] FATAL ERROR: PC strayed into empty memory "
                f"({registers.pc.read()}). Terminating PID {context.process.pid}",
                file=sys.stderr,
            )
            context.end_program = True
            return
        if instr == END_SENTINEL:
            context.end_program = True
            return
        registers.pc.write(registers.pc.read() + 4)

    def decode(self, registers: RegisterBank, data: InstructionData) -> None:
        """Split IR into ``data`` and stall on a read-after-write hazard."""
        instruction = registers.ir.read()
        data.raw_instruction = instruction
        data.op = self.identify_instruction(instruction)
        print(
            f"[DECODE] PC-4: {(registers.pc.read() - 4) & _MASK32} "
            f"Raw: {instruction:x} OP: {data.op}"
        )
        if data.idle:
            return

        if data.op in _ARITHMETIC_OPS:
            data.source_register = get_source_register(instruction)
            data.target_register = get_target_register(instruction)
            data.destination_register = get_destination_register(instruction)
        elif data.op in _IMMEDIATE_FORMAT_OPS:
            data.source_register = get_source_register(instruction)
            data.target_register = get_target_register(instruction)
            data.address_ram_result = get_immediate(instruction)
            data.immediate = _sign_extend16(instruction)
        elif data.op == "J":
            target = instruction & 0x03FFFFFF
            data.address_ram_result = format(target, "026b")
            data.immediate = target
        elif data.op == "PRINT":
            data.target_register = get_target_register(instruction)
            imm = get_immediate(instruction)
            if "1" in imm:
                data.address_ram_result = imm
                data.immediate = _sign_extend16(_bits_to_int(imm))
            else:
                data.address_ram_result = ""
                data.immediate = 0

        if data.op in _READS_RS_AND_RT:
            reads = (data.source_register, data.target_register)
        elif data.op in _READS_RS:
            reads = (data.source_register,)
        elif data.op == "PRINT":
            reads = (data.target_register,)
        else:
            reads = ()
        reads = tuple(r for r in reads if r)

        current = len(self.data) - 1
        for distance in (1, 2):
            index = current - distance
            if index < 0:
                continue
            older = self.data[index]
            if older.idle:
                continue
            dest = _hazard_destination(older)
            if dest and dest != "00000" and dest in reads:
                data.op = BUBBLE
                data.raw_instruction = 0
                registers.pc.write(registers.pc.read() - 4)
                return

    def execute_immediate_operation(
        self, context: ControlContext, data: InstructionData
    ) -> None:
        """Run ADDI, ADDIU, SLTI, LUI or LI."""
        if data.idle:
            return
        registers = context.registers
        name_rs = self._name(data.source_register)
        name_rt = self._name(data.target_register)
        val_rs = _signed32(registers.read_register(name_rs))
        imm = data.immediate
        pid = context.process.pid

        if data.op in ("ADDI", "ADDIU"):
            alu = ALU(val_rs, imm, Operation.ADD)
            alu.calculate()
            registers.write_register(name_rt, alu.result)
            self.log_operation(
                f"[IMM] {data.op} {name_rt} = {name_rs}({val_rs}) + {imm} -> {alu.result}",
                pid,
            )
        elif data.op == "SLTI":
            result = int(val_rs < imm)
            registers.write_register(name_rt, result)
            self.log_operation(
                f"[IMM] SLTI {name_rt} = ({name_rs}({val_rs}) < {imm}) ? 1 : 0 -> {result}",
                pid,
            )
        elif data.op == "LUI":
            value = _signed32((imm & 0xFFFF) << 16)
            registers.write_register(name_rt, value)
            self.log_operation(
                f"[IMM] LUI {name_rt} = (0x{imm & _MASK32:x} << 16) -> 0x{value & _MASK32:x}",
                pid,
            )
        elif data.op == "LI":
            registers.write_register(name_rt, imm)
            self.log_operation(f"[IMM] LI {name_rt} = {imm}", pid)

    def execute_arithmetic_operation(
        self, context: ControlContext, data: InstructionData
    ) -> None:
        """Run ADD, SUB, MULT or DIV on rs and rt into rd."""
        if data.idle:
            return
        alu_op = _ARITHMETIC_ALU_OPS.get(data.op)
        if alu_op is None:
            return
        registers = context.registers
        name_rs = self._name(data.source_register)
        name_rt = self._name(data.target_register)
        name_rd = self._name(data.destination_register)
        val_rs = _signed32(registers.read_register(name_rs))
        val_rt = _signed32(registers.read_register(name_rt))
        alu = ALU(val_rs, val_rt, alu_op)
        alu.calculate()
        registers.write_register(name_rd, alu.result)
        self.log_operation(
            f"[ARIT] {data.op} {name_rd} = {name_rs}({val_rs}) {data.op} "
            f"{name_rt}({val_rt}) = {alu.result}",
            context.process.pid,
        )

    def _request_print(self, context: ControlContext, value: int) -> None:
        context.io_requests.append(IORequest(msg=str(value), process=context.process))
        if context.print_lock:
            context.process.state = State.BLOCKED
            context.end_execution = True

    def execute_operation(self, data: InstructionData, context: ControlContext) -> None:
        """Queue a print request for PRINT of a register."""
        if data.op != "PRINT" or not data.target_register:
            return
        name = self._name(data.target_register)
        value = _signed32(context.registers.read_register(name))
        print(
            f"[PRINT-REQ] PRINT REG {name} value={value} (pid={context.process.pid})"
        )
        self._request_print(context, value)

    def execute_loop_operation(
        self, context: ControlContext, data: InstructionData
    ) -> None:
        """Resolve a branch or jump, redirecting PC and flushing when taken."""
        if data.idle:
            return
        registers = context.registers
        name_rs = self._name(data.source_register)
        name_rt = self._name(data.target_register)
        a = registers.read_register(name_rs)
        b = registers.read_register(name_rt)

        if data.op == "J":
            taken = True
        elif data.op in _BRANCH_ALU_OPS:
            taken = ALU(a, b, _BRANCH_ALU_OPS[data.op]).calculate() == 1
        else:
            taken = False
        if not taken:
            return

        target = data.immediate & _MASK32
        print(
            f"[BRANCH] OP={data.op} taken. Old PC={registers.pc.read()} -> New PC={target}"
        )
        registers.pc.write(target)
        index = context.counter - 1
        if 0 <= index < len(self.data):
            self.data[index].op = BUBBLE
        registers.ir.write(0)

    def execute(self, data: InstructionData, context: ControlContext) -> None:
        """Execute stage: dispatch on the instruction kind."""
        _account_stage(context.process)
        if data.idle:
            return
        if data.op in _IMMEDIATE_OPS:
            self.execute_immediate_operation(context, data)
        elif data.op in _ARITHMETIC_OPS:
            self.execute_arithmetic_operation(context, data)
        elif data.op in _BRANCH_OPS:
            self.execute_loop_operation(context, data)
        elif data.op == "PRINT":
            self.execute_operation(data, context)

    def memory_access(self, data: InstructionData, context: ControlContext) -> None:
        """Memory stage: LW, LA, LI and PRINT of a memory word."""
        _account_stage(context.process)
        if data.idle:
            return
        registers = context.registers
        name_rt = self._name(data.target_register)

        if data.op == "LW":
            address = _bits_to_int(data.address_ram_result)
            value = context.memory_manager.read(address, context.process)
            registers.write_register(name_rt, value)
            print(f"[MEMORY] LW addr={address} value={value} -> {name_rt}")
        elif data.op in ("LA", "LI"):
            value = _bits_to_int(data.address_ram_result)
            registers.write_register(name_rt, value)
            print(f"[MEMORY] {data.op} -> {name_rt} value={_signed32(value)}")
        elif data.op == "PRINT" and not data.target_register:
            address = _bits_to_int(data.address_ram_result)
            value = context.memory_manager.read(address, context.process)
            print(
                f"[PRINT-REQ] PRINT MEM addr={address} value={value} "
                f"(pid={context.process.pid})"
            )
            self._request_print(context, value)

    def write_back(self, data: InstructionData, context: ControlContext) -> None:
        """Write-back stage: SW stores rt to memory."""
        _account_stage(context.process)
        if data.idle or data.op != "SW":
            return
        address = _bits_to_int(data.address_ram_result)
        name_rt = self._name(data.target_register)
        value = _signed32(context.registers.read_register(name_rt))
        context.memory_manager.write(address, value, context.process)
        print(f"[WRITE-BACK] SW addr={address} value={value} from reg {name_rt}")


def core(
    memory_manager: MemoryManager,
    process: PCB,
    io_requests: list[IORequest],
    print_lock: bool,
) -> ControlContext:
    """Run ``process`` through the pipeline for one quantum or until it ends.

    The pipeline drains after the quantum expires, END is fetched or a print
    blocks the process. A process that reached END is marked finished.
    Returns the final pipeline context.
    """
    unit = ControlUnit()
    context = ControlContext(
        registers=process.reg_bank,
        memory_manager=memory_manager,
        io_requests=io_requests,
        print_lock=print_lock,
        process=process,
    )
    clock = 0

    while context.counter_for_end > 0:
        counter = context.counter
        if counter >= 4 and context.counter_for_end >= 1:
            unit.write_back(unit.data[counter - 4], context)
        if counter >= 3 and context.counter_for_end >= 2:
            unit.memory_access(unit.data[counter - 3], context)
        if counter >= 2 and context.counter_for_end >= 3:
            unit.execute(unit.data[counter - 2], context)
        if counter >= 1 and context.counter_for_end >= 4:
            _account_stage(process)
            unit.decode(context.registers, unit.data[counter - 1])
        if context.counter_for_end == PIPELINE_DEPTH:
            unit.data.append(InstructionData())
            unit.fetch(context)

        context.counter += 1
        clock += 1
        process.pipeline_cycles += 1

        if clock >= process.quantum or context.end_program:
            context.end_execution = True
        if context.end_execution:
            context.counter_for_end -= 1

    if context.end_program:
        process.state = State.FINISHED
    return context