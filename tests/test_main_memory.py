import pytest

from vonsim.main_memory import MainMemory


def test_unwritten_address_reads_zero():
    ram = MainMemory()
    assert ram.read(1234) == 0
    assert len(ram) == 0


def test_write_then_read_round_trip():
    ram = MainMemory()
    ram.write(4, 10)
    ram.write(8, -7)
    assert ram.read(4) == 10
    assert ram.read(8) == -7
    assert 4 in ram
    assert 5 not in ram


def test_overwrite_replaces_value():
    ram = MainMemory()
    ram.write(0, 1)
    ram.write(0, 2)
    assert ram.read(0) == 2
    assert len(ram) == 1


@pytest.mark.parametrize("value", [0xFC000000, 0xFFFFFFFF, 2**31])
def test_large_words_wrap_to_signed(value):
    ram = MainMemory()
    ram.write(0, value)
    assert ram.read(0) < 0
    assert ram.read(0) & 0xFFFFFFFF == value


def test_clear_forgets_everything():
    ram = MainMemory()
    ram.write(1, 5)
    ram.write(2, 6)
    ram.clear()
    assert len(ram) == 0
    assert ram.read(1) == 0


def test_iteration_is_sorted():
    ram = MainMemory()
    for addr in (9, 3, 7):
        ram.write(addr, addr)
    assert list(ram) == [3, 7, 9]


def test_dump_format_and_order(capsys):
    ram = MainMemory()
    ram.write(8, -1)
    ram.write(4, 10)
    ram.dump()
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "=== Memory dump (32-bit words) ==="
    assert lines[1] == "Addr 4 : 0x0000000a"
    assert lines[2] == "Addr 8 : 0xffffffff"
    assert len(lines) == 3