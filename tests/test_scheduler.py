import pytest

from vonsim.pcb import PCB, State
from vonsim.scheduler import Scheduler, SchedulingPolicy


def drain(scheduler, now=0):
    result = []
    while (proc := scheduler.get_next_process(now)) is not None:
        result.append(proc.pid)
    return result


def test_empty_queue_returns_none():
    scheduler = Scheduler()
    assert scheduler.get_next_process(0) is None
    assert not scheduler.has_processes()


def test_fcfs_keeps_arrival_order():
    scheduler = Scheduler(SchedulingPolicy.FCFS)
    for pid in (3, 1, 2):
        scheduler.add_process(PCB(pid=pid), 0)
    assert drain(scheduler) == [3, 1, 2]


def test_priority_orders_highest_first():
    scheduler = Scheduler(SchedulingPolicy.PRIORITY)
    for pid, prio in ((1, 2), (2, 9), (3, 5)):
        scheduler.add_process(PCB(pid=pid, priority=prio), 0)
    assert drain(scheduler) == [2, 3, 1]


def test_sjn_orders_shortest_first():
    scheduler = Scheduler(SchedulingPolicy.SJN)
    for pid, burst in ((1, 30), (2, 10), (3, 20)):
        scheduler.add_process(PCB(pid=pid, burst_time=burst), 0)
    assert drain(scheduler) == [2, 3, 1]


def test_add_process_marks_ready_and_records_time():
    scheduler = Scheduler()
    proc = PCB(pid=1, state=State.BLOCKED)
    scheduler.add_process(proc, 42)
    assert proc.state == State.READY
    assert proc.last_ready_in == 42
    assert scheduler.has_processes()
    assert len(scheduler) == 1


def test_waiting_time_and_first_start():
    scheduler = Scheduler()
    proc = PCB(pid=1)
    scheduler.add_process(proc, 10)
    assert scheduler.get_next_process(25) is proc
    assert proc.waiting_time == 15
    assert proc.first_start_time == 25
    scheduler.add_process(proc, 40)
    scheduler.get_next_process(50)
    assert proc.waiting_time == 25
    assert proc.first_start_time == 25


def test_set_policy_reorders_queue():
    scheduler = Scheduler(SchedulingPolicy.FCFS)
    for pid, prio in ((1, 1), (2, 3), (3, 2)):
        scheduler.add_process(PCB(pid=pid, priority=prio), 0)
    scheduler.set_policy(SchedulingPolicy.PRIORITY)
    assert scheduler.policy is SchedulingPolicy.PRIORITY
    assert drain(scheduler) == [2, 3, 1]


def test_push_front_goes_to_head():
    scheduler = Scheduler(SchedulingPolicy.FCFS)
    scheduler.add_process(PCB(pid=1), 0)
    scheduler.push_front(PCB(pid=9))
    assert drain(scheduler) == [9, 1]


@pytest.mark.parametrize(
    "policy, expected",
    [
        (SchedulingPolicy.RR, True),
        (SchedulingPolicy.FCFS, False),
        (SchedulingPolicy.SJN, False),
        (SchedulingPolicy.PRIORITY, False),
    ],
)
def test_is_preemptive(policy, expected):
    assert Scheduler(policy).is_preemptive() is expected


def test_default_quantum():
    scheduler = Scheduler()
    assert scheduler.time_slice == 20
    assert scheduler.is_preemptive()