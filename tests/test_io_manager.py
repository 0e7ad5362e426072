import time

from vonsim.io_manager import METRICS_FILE, RESULT_FILE, IOManager, IORequest
from vonsim.pcb import PCB, State


class AlwaysRequest:
    """Every device asks for work every loop; cost is the minimum."""

    def randrange(self, stop):
        return 0

    def randint(self, a, b):
        return a


class NeverRequest:
    def randrange(self, stop):
        return 1

    def randint(self, a, b):
        return a


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


def blocked(pid):
    return PCB(pid=pid, state=State.BLOCKED)


def test_waiting_process_becomes_ready(tmp_path):
    proc = blocked(7)
    with IOManager(tmp_path, rng=AlwaysRequest(), time_scale=0.001) as manager:
        manager.register_process_waiting_for_io(proc)
        assert wait_for(lambda: proc.state == State.READY)
    text = (tmp_path / RESULT_FILE).read_text()
    assert text == "Process 7 -> print_job : Printing document...\n"


def test_metrics_line_format(tmp_path):
    proc = blocked(3)
    with IOManager(tmp_path, rng=AlwaysRequest(), time_scale=0.001) as manager:
        manager.register_process_waiting_for_io(proc)
        assert wait_for(lambda: proc.state == State.READY)
    line = (tmp_path / METRICS_FILE).read_text().splitlines()[0]
    pid, operation, duration = line.split(",")
    assert pid == "3"
    assert operation == "print_job"
    assert duration.endswith("ms")
    assert proc.io_cycles == 1 + int(duration[:-2])


def test_processes_served_in_fifo_order_printer_first(tmp_path):
    first, second = blocked(1), blocked(2)
    with IOManager(tmp_path, rng=AlwaysRequest(), time_scale=0.001) as manager:
        manager.register_process_waiting_for_io(first)
        manager.register_process_waiting_for_io(second)
        assert wait_for(
            lambda: first.state == State.READY and second.state == State.READY
        )
    lines = (tmp_path / RESULT_FILE).read_text().splitlines()
    assert lines[0] == "Process 1 -> print_job : Printing document..."
    assert lines[1].startswith("Process 2 -> ")
    assert len(lines) == 2


def test_no_device_request_leaves_process_blocked(tmp_path):
    proc = blocked(5)
    with IOManager(tmp_path, rng=NeverRequest(), time_scale=0.001) as manager:
        manager.register_process_waiting_for_io(proc)
        time.sleep(0.1)
        assert proc.state == State.BLOCKED
    assert (tmp_path / RESULT_FILE).read_text() == ""
    assert proc.io_cycles == 1


def test_close_stops_thread(tmp_path):
    manager = IOManager(tmp_path, rng=NeverRequest(), time_scale=0.001)
    assert manager.is_running
    manager.close()
    assert not manager.is_running
    manager.close()
    assert not manager.is_running


def test_result_file_is_appended(tmp_path):
    (tmp_path / RESULT_FILE).write_text("earlier\n")
    proc = blocked(9)
    with IOManager(tmp_path, rng=AlwaysRequest(), time_scale=0.001) as manager:
        manager.register_process_waiting_for_io(proc)
        assert wait_for(lambda: proc.state == State.READY)
    lines = (tmp_path / RESULT_FILE).read_text().splitlines()
    assert lines[0] == "earlier"
    assert lines[1].startswith("Process 9 -> ")


def test_io_request_defaults():
    request = IORequest()
    assert request.process is None
    assert request.cost_ms == 0
    assert request.operation == ""