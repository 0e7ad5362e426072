"""Sparse word-addressed main memory."""

from __future__ import annotations

from collections.abc import Iterator

_MASK32 = 0xFFFFFFFF


def _to_int32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


class MainMemory:
    """Maps addresses to signed 32-bit words; unwritten addresses read as 0."""

    def __init__(self) -> None:
        self._mem: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._mem)

    def __contains__(self, addr: object) -> bool:
        return addr in self._mem

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._mem))

    def write(self, addr: int, value: int) -> None:
        """Store ``value`` at ``addr`` as a signed 32-bit word."""
        self._mem[addr] = _to_int32(value)

    def read(self, addr: int) -> int:
        """Word at ``addr``, or 0 if nothing was written there."""
        return self._mem.get(addr, 0)

    def clear(self) -> None:
        """Forget every stored word."""
        self._mem.clear()

    def dump(self) -> None:
        """Print every stored word in address order."""
        print("=== Memory dump (32-bit words) ===")
        for addr in sorted(self._mem):
            print(f"Addr {addr} : 0x{self._mem[addr] & _MASK32:08x}")