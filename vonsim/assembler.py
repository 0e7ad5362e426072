"""Assembler turning JSON-described MIPS programs into words in main memory."""

from __future__ import annotations

import argparse
import json
import sys
from itertools import takewhile
from pathlib import Path
from typing import Any

from vonsim.main_memory import MainMemory
from vonsim.pcb import PCB

INSTRUCTION_OPCODES = {
    "add": 0, "sub": 0, "and": 0, "or": 0, "mult": 0, "div": 0,
    "sll": 0, "srl": 0, "jr": 0,
    "addi": 0b001000, "andi": 0b001100, "ori": 0b001101, "slti": 0b001010,
    "lw": 0b100011, "sw": 0b101011, "beq": 0b000100, "bne": 0b000101,
    "bgt": 0b000111, "blt": 0b001001, "li": 0b001111,
    "print": 0b111110, "end": 0b111111,
    "j": 0b000010, "jal": 0b000011,
}

FUNCT_CODES = {
    "add": 0b100000, "sub": 0b100010, "and": 0b100100, "or": 0b100101,
    "mult": 0b011000, "div": 0b011010, "sll": 0b000000, "srl": 0b000010,
    "jr": 0b001000,
}

REGISTER_CODES = {
    "$zero": 0, "$at": 1, "$v0": 2, "$v1": 3,
    "$a0": 4, "$a1": 5, "$a2": 6, "$a3": 7,
    "$t0": 8, "$t1": 9, "$t2": 10, "$t3": 11, "$t4": 12, "$t5": 13, "$t6": 14, "$t7": 15,
    "$s0": 16, "$s1": 17, "$s2": 18, "$s3": 19, "$s4": 20, "$s5": 21, "$s6": 22, "$s7": 23,
    "$t8": 24, "$t9": 25, "$k0": 26, "$k1": 27, "$gp": 28, "$sp": 29, "$fp": 30, "$ra": 31,
}

_J_OPCODES = (0b000010, 0b000011)
_BRANCHES = ("beq", "bne", "bgt", "blt")
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_MASK32 = 0xFFFFFFFF


class AssemblerError(ValueError):
    """Raised for malformed programs, unknown names and unreadable files."""


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _int32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


def _parse_c_integer(text: str, base: int) -> int:
    """Parse the leading integer of ``text``; base 0 detects 0x and octal prefixes."""
    s = text.lstrip()
    sign = 1
    if s and s[0] in "+-":
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    if base in (0, 16) and s[:2].lower() == "0x" and s[2:3].lower() in _DIGITS[:16] and s[2:3]:
        s = s[2:]
        base = 16
    elif base == 0:
        base = 8 if s.startswith("0") else 10
    digits = _DIGITS[:base]
    prefix = "".join(takewhile(lambda c: c.lower() in digits, s))
    if not prefix:
        raise AssemblerError(f"Invalid number: {text!r}")
    return sign * int(prefix, base)


def _json_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AssemblerError(f"Expected a number, got {value!r}")
    return int(value)


def _field(instr: Any, key: str) -> Any:
    if not isinstance(instr, dict) or key not in instr:
        raise AssemblerError(f"Missing field '{key}' in {instr!r}")
    return instr[key]


def _str_field(instr: Any, key: str) -> str:
    value = _field(instr, key)
    if not isinstance(value, str):
        raise AssemblerError(f"Field '{key}' must be a string, got {value!r}")
    return value


def _trunc_div4(value: int) -> int:
    quotient = abs(value) // 4
    return -quotient if value < 0 else quotient


def get_register_code(reg: str) -> int:
    """Number of a register written like ``$t0`` (case-insensitive)."""
    try:
        return REGISTER_CODES[reg.lower()]
    except KeyError:
        raise AssemblerError(f"Unknown register: {reg}") from None


def get_opcode(instr: str) -> int:
    """Opcode of a mnemonic (case-insensitive)."""
    try:
        return INSTRUCTION_OPCODES[instr.lower()]
    except KeyError:
        raise AssemblerError(f"Unknown instruction: {instr}") from None


def get_funct(instr: str) -> int:
    """Function code of an R-type mnemonic, 0 for anything else."""
    return FUNCT_CODES.get(instr.lower(), 0)


def build_binary_instruction(
    opcode: int,
    rs: int,
    rt: int,
    rd: int,
    shamt: int,
    funct: int,
    immediate: int,
    address: int,
) -> int:
    """Pack fields into a 32-bit word in R, I or J format chosen by ``opcode``."""
    word = (opcode & 0x3F) << 26
    if opcode == 0:
        word |= (rs & 0x1F) << 21
        word |= (rt & 0x1F) << 16
        word |= (rd & 0x1F) << 11
        word |= (shamt & 0x1F) << 6
        word |= funct & 0x3F
    elif opcode in _J_OPCODES:
        word |= address & 0x03FFFFFF
    else:
        word |= (rs & 0x1F) << 21
        word |= (rt & 0x1F) << 16
        word |= immediate & 0xFFFF
    return word


def parse_immediate(value: Any) -> int:
    """16-bit signed immediate from a number or a decimal/``0x`` string."""
    if isinstance(value, str):
        s = value.lower()
        base = 16 if s.startswith("0x") else 10
        return _int16(_parse_c_integer(s, base))
    return _int16(_json_int(value))


def parse_offset_base(addr_expr: str) -> tuple[int, int]:
    """Split ``offset(base)`` into a 16-bit offset and a register number."""
    left = addr_expr.find("(")
    right = addr_expr.find(")")
    if left < 0 or right < 0 or right <= left + 1:
        raise AssemblerError(f"Invalid address (expected offset(base)): {addr_expr}")
    offset = _int16(_parse_c_integer(addr_expr[:left], 10))
    base = addr_expr[left + 1:right]
    code = REGISTER_CODES.get(base.lower())
    if code is None:
        raise AssemblerError(f"Invalid base register: {base}")
    return offset, code


class Assembler:
    """Encodes instructions, resolving data and code labels it has seen."""

    def __init__(self) -> None:
        self.data_map: dict[str, int] = {}
        self.label_map: dict[str, int] = {}

    def reset(self) -> None:
        """Forget all labels."""
        self.data_map.clear()
        self.label_map.clear()

    def _code_label(self, label: str) -> int:
        try:
            return self.label_map[label]
        except KeyError:
            raise AssemblerError(f"Unknown label: {label}") from None

    def encode_r_type(self, instr: dict[str, Any]) -> int:
        """Encode an R-format instruction."""
        mnem = _str_field(instr, "instruction")
        opcode = get_opcode(mnem)
        funct = get_funct(mnem)
        rs = rt = rd = shamt = 0
        if mnem in ("sll", "srl"):
            rd = get_register_code(_str_field(instr, "rd"))
            rt = get_register_code(_str_field(instr, "rt"))
            shamt = parse_immediate(_field(instr, "shamt"))
        elif mnem == "jr":
            rs = get_register_code(_str_field(instr, "rs"))
        else:
            rd = get_register_code(_str_field(instr, "rd"))
            rs = get_register_code(_str_field(instr, "rs"))
            rt = get_register_code(_str_field(instr, "rt"))
        return build_binary_instruction(opcode, rs, rt, rd, shamt, funct, 0, 0)

    def encode_i_type(self, instr: dict[str, Any], pc_index: int, start_addr: int) -> int:
        """Encode an I-format instruction; ``li`` becomes ``addi rt, $zero, imm``."""
        mnem = _str_field(instr, "instruction")
        opcode = get_opcode(mnem)

        if mnem == "li":
            rt = get_register_code(_str_field(instr, "rt"))
            imm = parse_immediate(_field(instr, "immediate"))
            return build_binary_instruction(get_opcode("addi"), 0, rt, 0, 0, 0, imm, 0)

        if mnem in ("lw", "sw"):
            rt = get_register_code(_str_field(instr, "rt"))
            if "addr" in instr:
                imm, rs = parse_offset_base(_str_field(instr, "addr"))
            elif "baseReg" in instr:
                rs = get_register_code(_str_field(instr, "baseReg"))
                imm = parse_immediate(instr["offset"]) if "offset" in instr else 0
            elif "base" in instr:
                rs = 0
                label = _str_field(instr, "base")
                if label not in self.data_map:
                    raise AssemblerError(f"Unknown data label: {label}")
                imm = _int16(self.data_map[label])
            else:
                raise AssemblerError("lw/sw need 'addr', 'baseReg' or 'base'")
            return build_binary_instruction(opcode, rs, rt, 0, 0, 0, imm, 0)

        if mnem in _BRANCHES:
            rs = get_register_code(_str_field(instr, "rs"))
            rt = get_register_code(_str_field(instr, "rt"))
            if "label" in instr:
                target = self._code_label(_str_field(instr, "label"))
                next_pc = start_addr + pc_index * 4 + 4
                imm = _int16(_trunc_div4(target - next_pc))
            elif "offset" in instr:
                imm = parse_immediate(instr["offset"])
            else:
                raise AssemblerError(f"{mnem} requires 'label' or 'offset'")
            return build_binary_instruction(opcode, rs, rt, 0, 0, 0, imm, 0)

        rt = get_register_code(_str_field(instr, "rt"))
        rs = get_register_code(_str_field(instr, "rs"))
        imm = parse_immediate(_field(instr, "immediate"))
        return build_binary_instruction(opcode, rs, rt, 0, 0, 0, imm, 0)

    def encode_j_type(self, instr: dict[str, Any]) -> int:
        """Encode ``j``/``jal`` to a label or an explicit address."""
        mnem = _str_field(instr, "instruction")
        opcode = get_opcode(mnem)
        if "label" in instr:
            address = self._code_label(_str_field(instr, "label")) & 0x03FFFFFF
            return build_binary_instruction(opcode, 0, 0, 0, 0, 0, 0, address)
        if "address" in instr:
            raw = instr["address"]
            if isinstance(raw, str):
                s = raw.lower()
                address = _parse_c_integer(s, 16 if s.startswith("0x") else 10)
            else:
                address = _json_int(raw)
            address &= _MASK32
            return build_binary_instruction(opcode, 0, 0, 0, 0, 0, 0, address & 0x03FFFFFF)
        raise AssemblerError("J-type requires 'label' or 'address'")

    def parse_instruction(self, instr: dict[str, Any], pc_index: int, start_addr: int) -> int:
        """Encode one instruction object into a 32-bit word."""
        mnem = _str_field(instr, "instruction")
        if mnem in ("end", "print"):
            return get_opcode(mnem) << 26
        if mnem in FUNCT_CODES:
            return self.encode_r_type(instr)
        if mnem in ("j", "jal"):
            return self.encode_j_type(instr)
        return self.encode_i_type(instr, pc_index, start_addr)

    @staticmethod
    def _word(value: Any) -> int:
        if isinstance(value, str):
            return _int32(_parse_c_integer(value, 0))
        return _int32(_json_int(value))

    @staticmethod
    def _byte(value: Any) -> int:
        if isinstance(value, str):
            return _parse_c_integer(value, 0) & 0xFF
        return _json_int(value) & 0xFF

    def parse_data(self, data: Any, ram: MainMemory, start_addr: int) -> int:
        """Write a data section into ``ram``; returns the next free address.

        An object maps names to words or word lists (names taken in sorted
        order). A list holds ``{label, type, value}`` items; consecutive
        bytes are packed four to a word, most significant first.
        """
        addr = start_addr

        if isinstance(data, dict):
            for key in sorted(data):
                value = data[key]
                self.data_map[key] = addr
                if isinstance(value, list):
                    for element in value:
                        word = self._word(element)
                        print(f"[DEBUG DATA] Writing value {word} at address {addr}")
                        ram.write(addr, word)
                        addr += 1
                else:
                    ram.write(addr, self._word(value))
                    addr += 1
            return addr

        if isinstance(data, list):
            pending: list[int] = []

            def flush() -> None:
                nonlocal addr
                for i in range(0, len(pending), 4):
                    word = 0
                    for byte in pending[i:i + 4]:
                        word = (word << 8) | byte
                    ram.write(addr, word)
                    addr += 1
                pending.clear()

            for item in data:
                if not isinstance(item, dict):
                    raise AssemblerError(f"Data item must be an object: {item!r}")
                kind = item.get("type", "word")
                label = item.get("label", "")
                if not isinstance(kind, str) or not isinstance(label, str):
                    raise AssemblerError(f"Invalid data item: {item!r}")
                kind = kind.lower()
                if label:
                    self.data_map[label] = addr
                if kind == "word":
                    flush()
                    value = _field(item, "value")
                    if isinstance(value, list):
                        for element in value:
                            ram.write(addr, self._word(element))
                            addr += 1
                    else:
                        word = self._word(value)
                        print(f"[DEBUG DATA] Writing value {word} at address {addr}")
                        ram.write(addr, word)
                        addr += 1
                elif kind == "byte":
                    value = _field(item, "value")
                    values = value if isinstance(value, list) else [value]
                    pending.extend(self._byte(v) for v in values)
            flush()
        return addr

    def parse_program(
        self,
        program: Any,
        ram: MainMemory,
        start_addr: int,
        pcb: PCB | None = None,
    ) -> int:
        """Encode a program section into ``ram``; returns the next free address.

        Code labels get byte addresses (4 per instruction) while words are
        stored one per memory address. ``pcb.burst_time`` is set to the
        number of instructions.
        """
        if not isinstance(program, list):
            return start_addr

        byte_addr = start_addr
        for node in program:
            if not isinstance(node, dict):
                continue
            if "label" in node:
                self.label_map[_str_field(node, "label")] = byte_addr
            if "instruction" in node:
                byte_addr += 4
        if pcb is not None:
            pcb.burst_time = (byte_addr - start_addr) // 4

        mem_addr = start_addr
        instructions = (n for n in program if isinstance(n, dict) and "instruction" in n)
        for index, node in enumerate(instructions):
            ram.write(mem_addr, self.parse_instruction(node, index, start_addr))
            mem_addr += 1
        return mem_addr

    def load(self, document: Any, ram: MainMemory, start_addr: int) -> int:
        """Load the data then program sections of a parsed document."""
        self.reset()
        addr = start_addr
        if isinstance(document, dict):
            if "data" in document:
                addr = self.parse_data(document["data"], ram, addr)
            if "program" in document:
                addr = self.parse_program(document["program"], ram, addr)
        return addr


def load_json_program(filename: str | Path, ram: MainMemory, start_addr: int = 0) -> int:
    """Assemble the JSON program in ``filename`` into ``ram``; returns the end address."""
    try:
        with open(filename, encoding="utf-8") as handle:
            document = json.load(handle)
    except OSError:
        raise AssemblerError(f"Could not open: {filename}") from None
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise AssemblerError(f"Invalid JSON in {filename}: {exc}") from None
    return Assembler().load(document, ram, start_addr)


def main(argv: list[str] | None = None) -> int:
    """Assemble a program file and dump the resulting memory."""
    parser = argparse.ArgumentParser(description="Assemble a JSON program into memory.")
    parser.add_argument("program", nargs="?", default="tasks/tasks.json")
    parser.add_argument("--start", type=int, default=0, help="first memory address")
    args = parser.parse_args(argv)

    ram = MainMemory()
    try:
        end = load_json_program(args.program, ram, args.start)
    except AssemblerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Program loaded up to address: {end}")
    ram.dump()
    return 0