"""Named register file of the simulated MIPS CPU."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, fields

_MASK32 = 0xFFFFFFFF


@dataclass
class Register:
    """A single 32-bit register."""

    value: int = 0

    def __post_init__(self) -> None:
        self.value &= _MASK32

    def read(self) -> int:
        """Current value as an unsigned 32-bit word."""
        return self.value

    def write(self, value: int) -> None:
        """Store ``value`` truncated to 32 bits."""
        self.value = value & _MASK32

    def reverse_read(self) -> int:
        """Current value with its four bytes in reverse order."""
        return int.from_bytes(self.value.to_bytes(4, "big"), "little")


def _reg() -> Register:
    return field(default_factory=Register)


def _signed(value: int) -> int:
    return value - (1 << 32) if value & 0x80000000 else value


_SEPARATOR = "-" * 40
_BORDER = "=" * 40

_LAYOUT = (
    ("pc", "ir", "mar", "sr", "hi", "lo"),
    ("zero", "at", "v0", "v1", "a0", "a1", "a2", "a3"),
    ("t0", "t1", "t2", "t3", "t4", "t5", "t6", "t7", "t8", "t9"),
    ("s0", "s1", "s2", "s3", "s4", "s5", "s6", "s7"),
    ("gp", "sp", "fp", "ra", "k0", "k1"),
)


@dataclass(eq=False)
class RegisterBank:
    """All CPU registers, addressable by attribute or by name.

    Writes to ``zero`` through :meth:`write_register` are ignored.
    """

    pc: Register = _reg()
    mar: Register = _reg()
    cr: Register = _reg()
    epc: Register = _reg()
    sr: Register = _reg()
    hi: Register = _reg()
    lo: Register = _reg()
    ir: Register = _reg()
    zero: Register = _reg()
    at: Register = _reg()
    v0: Register = _reg()
    v1: Register = _reg()
    a0: Register = _reg()
    a1: Register = _reg()
    a2: Register = _reg()
    a3: Register = _reg()
    t0: Register = _reg()
    t1: Register = _reg()
    t2: Register = _reg()
    t3: Register = _reg()
    t4: Register = _reg()
    t5: Register = _reg()
    t6: Register = _reg()
    t7: Register = _reg()
    t8: Register = _reg()
    t9: Register = _reg()
    s0: Register = _reg()
    s1: Register = _reg()
    s2: Register = _reg()
    s3: Register = _reg()
    s4: Register = _reg()
    s5: Register = _reg()
    s6: Register = _reg()
    s7: Register = _reg()
    k0: Register = _reg()
    k1: Register = _reg()
    gp: Register = _reg()
    sp: Register = _reg()
    fp: Register = _reg()
    ra: Register = _reg()

    def __post_init__(self) -> None:
        self._by_name: dict[str, Register] = {
            f.name: getattr(self, f.name) for f in fields(self)
        }

    @property
    def names(self) -> tuple[str, ...]:
        """Names of every register in the bank."""
        return tuple(self._by_name)

    def _lookup(self, name: str, action: str) -> Register:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(
                f"Attempt to {action} a register that does not exist: {name}"
            ) from None

    def read_register(self, name: str) -> int:
        """Value of the register called ``name``."""
        return self._lookup(name, "read").read()

    def write_register(self, name: str, value: int) -> None:
        """Store ``value`` in the register called ``name``; ``zero`` stays 0."""
        register = self._lookup(name, "write")
        if name != "zero":
            register.write(value)

    def reset(self) -> None:
        """Set every register to zero."""
        for register in self._by_name.values():
            register.write(0)

    def _table_lines(self) -> list[str]:
        lines = [_BORDER, "====== Register Bank State ======", _BORDER]
        for index, group in enumerate(_LAYOUT):
            if index:
                lines.append(_SEPARATOR)
            for name in group:
                value = self._by_name[name].read()
                lines.append(f"{name:<6}: 0x{value:08x}  (Decimal: {_signed(value)})")
        lines.append(_BORDER)
        return lines

    def registers_as_string(self) -> str:
        """Formatted table of all register values."""
        return "\n".join(self._table_lines()) + "\n"

    def print_registers(self) -> str:
        """Write the register table to standard output and return it."""
        text = self.registers_as_string()
        sys.stdout.write(text)
        sys.stdout.flush()
        return text