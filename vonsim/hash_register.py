"""Mapping between MIPS register names and their 5-bit binary codes."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from enum import IntEnum

UNKNOWN = "UNKNOWN"


class RegisterType(IntEnum):
    """Category a register belongs to."""

    GENERAL_PURPOSE = 0
    SPECIAL_PURPOSE = 1
    SYSTEM_CONTROL = 2


_TYPE_TITLES = {
    RegisterType.GENERAL_PURPOSE: "General Purpose Registers",
    RegisterType.SPECIAL_PURPOSE: "Special Purpose Registers",
    RegisterType.SYSTEM_CONTROL: "System Control Registers",
}


@dataclass(frozen=True)
class RegisterInfo:
    """Metadata describing one register."""

    name: str = ""
    type: RegisterType = RegisterType.GENERAL_PURPOSE
    read_only: bool = False
    description: str = ""


_GP = RegisterType.GENERAL_PURPOSE

_MIPS_REGISTERS = (
    ("00000", "zero", True, "Always contains zero"),
    ("00001", "at", False, "Assembler temporary"),
    ("00010", "v0", False, "Function result 0"),
    ("00011", "v1", False, "Function result 1"),
    ("00100", "a0", False, "Function argument 0"),
    ("00101", "a1", False, "Function argument 1"),
    ("00110", "a2", False, "Function argument 2"),
    ("00111", "a3", False, "Function argument 3"),
    ("01000", "t0", False, "Temporary 0"),
    ("01001", "t1", False, "Temporary 1"),
    ("01010", "t2", False, "Temporary 2"),
    ("01011", "t3", False, "Temporary 3"),
    ("01100", "t4", False, "Temporary 4"),
    ("01101", "t5", False, "Temporary 5"),
    ("01110", "t6", False, "Temporary 6"),
    ("01111", "t7", False, "Temporary 7"),
    ("10000", "s0", False, "Saved register 0"),
    ("10001", "s1", False, "Saved register 1"),
    ("10010", "s2", False, "Saved register 2"),
    ("10011", "s3", False, "Saved register 3"),
    ("10100", "s4", False, "Saved register 4"),
    ("10101", "s5", False, "Saved register 5"),
    ("10110", "s6", False, "Saved register 6"),
    ("10111", "s7", False, "Saved register 7"),
    ("11000", "t8", False, "Temporary 8"),
    ("11001", "t9", False, "Temporary 9"),
    ("11010", "k0", False, "Kernel reserved 0"),
    ("11011", "k1", False, "Kernel reserved 1"),
    ("11100", "gp", False, "Global pointer"),
    ("11101", "sp", False, "Stack pointer"),
    ("11110", "fp", False, "Frame pointer"),
    ("11111", "ra", False, "Return address"),
)


def bin_from_index(idx: int) -> str:
    """Return the 5-bit binary string for a register index in 0..31."""
    if not 0 <= idx <= 31:
        raise IndexError(f"Register index must be in range 0-31, got: {idx}")
    return format(idx, "05b")


def index_from_binary(binary: str) -> int:
    """Return the register index encoded by a 5-bit binary string."""
    if len(binary) != 5:
        raise ValueError(f"Binary code must be 5 bits, got: {binary}")
    for bit in binary:
        if bit not in "01":
            raise ValueError(f"Invalid binary character: {bit}")
    return int(binary, 2)


class RegisterMapper:
    """Bidirectional lookup between register names and binary codes."""

    def __init__(self) -> None:
        self._binary_to_name: dict[str, str] = {}
        self._name_to_binary: dict[str, str] = {}
        self._metadata: dict[str, RegisterInfo] = {}
        for binary, name, read_only, desc in _MIPS_REGISTERS:
            self._add_register(binary, name, _GP, read_only, desc)

    def _add_register(
        self,
        binary: str,
        name: str,
        register_type: RegisterType,
        read_only: bool,
        description: str,
    ) -> None:
        if len(binary) != 5:
            raise ValueError(f"Binary code must be 5 bits: {binary}")
        if binary in self._binary_to_name:
            raise ValueError(f"Duplicate binary code: {binary}")
        if name in self._name_to_binary:
            raise ValueError(f"Duplicate register name: {name}")
        self._binary_to_name[binary] = name
        self._name_to_binary[name] = binary
        self._metadata[name] = RegisterInfo(name, register_type, read_only, description)

    def get_register_name(self, code: str | int) -> str:
        """Return the register name for a binary code or an index.

        Unknown codes and out-of-range indices give ``"UNKNOWN"``; a binary
        string whose length is not 5 raises ``ValueError``.
        """
        if isinstance(code, int):
            if not 0 <= code <= 31:
                return UNKNOWN
            code = bin_from_index(code)
        if len(code) != 5:
            raise ValueError("Binary code must be 5 bits")
        return self._binary_to_name.get(code, UNKNOWN)

    def get_register_binary(self, register_name: str) -> str:
        """Return the binary code for a name, or an empty string if unknown."""
        return self._name_to_binary.get(register_name, "")

    def is_read_only(self, register_name: str) -> bool:
        """Whether the register is read-only; unknown names are writable."""
        info = self._metadata.get(register_name)
        return info.read_only if info else False

    def get_register_info(self, register_name: str) -> RegisterInfo:
        """Return the metadata of a register."""
        try:
            return self._metadata[register_name]
        except KeyError:
            raise ValueError(f"Unknown register: {register_name}") from None

    def get_register_type(self, register_name: str) -> RegisterType:
        """Return the category of a register."""
        return self.get_register_info(register_name).type

    def get_registers_by_type(self, register_type: RegisterType) -> list[str]:
        """Names of all registers of the given category."""
        return [name for name, info in self._metadata.items() if info.type == register_type]

    def is_valid_register(self, register_name: str) -> bool:
        return register_name in self._name_to_binary

    def is_valid_binary_code(self, binary_code: str) -> bool:
        return binary_code in self._binary_to_name

    def print_all_registers(self) -> None:
        """Print the register table grouped by category."""
        print("\n=== Register Mapping (Von Neumann CPU Simulator) ===")
        print("Based on MIPS R3000 architecture\n")
        for register_type in RegisterType:
            print(f"--- {_TYPE_TITLES[register_type]} ---")
            for name, info in self._metadata.items():
                if info.type != register_type:
                    continue
                mode = "RO" if info.read_only else "RW"
                binary = self._name_to_binary[name]
                print(f"{name:>6} | {binary} | {mode} | {info.description}")
            print()


@functools.lru_cache(maxsize=None)
def global_register_mapper() -> RegisterMapper:
    """Shared mapper instance."""
    return RegisterMapper()


def get_register_name(code: str | int) -> str:
    return global_register_mapper().get_register_name(code)


def get_register_binary(register_name: str) -> str:
    return global_register_mapper().get_register_binary(register_name)


def is_read_only_register(register_name: str) -> bool:
    return global_register_mapper().is_read_only(register_name)