"""Arithmetic and logic unit working on 32-bit words."""

from __future__ import annotations

from enum import IntEnum

_MASK32 = 0xFFFFFFFF
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class Operation(IntEnum):
    """Operations the ALU can perform."""

    ADD = 0
    SUB = 1
    MUL = 2
    DIV = 3
    AND_OP = 4
    BEQ = 5
    BNE = 6
    BLT = 7
    BGT = 8
    BGTI = 9
    BLTI = 10
    LW = 11
    LA = 12
    ST = 13


def _as_i32(value: int) -> int:
    """Interpret the low 32 bits of ``value`` as a signed integer."""
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


def _fits_i32(value: int) -> bool:
    return INT32_MIN <= value <= INT32_MAX


def _trunc_div(dividend: int, divisor: int) -> int:
    quotient = abs(dividend) // abs(divisor)
    return -quotient if (dividend < 0) != (divisor < 0) else quotient


class ALU:
    """Holds inputs ``a``, ``b`` and ``op``; ``calculate`` sets ``result`` and ``overflow``.

    Inputs are 32-bit words; arithmetic and comparisons treat them as signed.
    Comparisons yield 1 or 0. Memory operations give the effective address
    ``a + b``. Division by zero sets ``overflow`` and yields 0.
    """

    def __init__(self, a: int = 0, b: int = 0, op: Operation = Operation.ADD) -> None:
        self.a = a
        self.b = b
        self.op = op
        self.result = 0
        self.overflow = False

    def _checked(self, value: int) -> int:
        if not _fits_i32(value):
            self.overflow = True
        return _as_i32(value)

    def calculate(self) -> int:
        """Run the current operation and return the result."""
        self.overflow = False
        self.result = 0
        a = _as_i32(self.a)
        b = _as_i32(self.b)
        op = self.op

        if op == Operation.ADD:
            self.result = self._checked(a + b)
        elif op == Operation.SUB:
            self.result = self._checked(a - b)
        elif op == Operation.MUL:
            self.result = self._checked(a * b)
        elif op == Operation.DIV:
            if b == 0:
                self.overflow = True
                self.result = 0
            elif a == INT32_MIN and b == -1:
                self.overflow = True
                self.result = INT32_MIN
            else:
                self.result = _trunc_div(a, b)
        elif op == Operation.AND_OP:
            self.result = _as_i32(self.a & self.b)
        elif op == Operation.BEQ:
            self.result = int(a == b)
        elif op == Operation.BNE:
            self.result = int(a != b)
        elif op in (Operation.BLT, Operation.BLTI):
            self.result = int(a < b)
        elif op in (Operation.BGT, Operation.BGTI):
            self.result = int(a > b)
        elif op in (Operation.LW, Operation.LA, Operation.ST):
            self.result = self._checked(a + b)
        else:
            self.overflow = True
            self.result = 0
        return self.result

    def execute(self, op: Operation, a: int, b: int, shamt: int = 0) -> int:
        """Load the inputs, run ``op`` and return the result."""
        self.op = op
        self.a = a
        self.b = b
        return self.calculate()