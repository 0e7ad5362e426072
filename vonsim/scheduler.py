"""Ready queue with selectable scheduling policy."""

from __future__ import annotations

import threading
from collections import deque
from enum import Enum

from vonsim.pcb import PCB, State


class SchedulingPolicy(Enum):
    """Order in which ready processes are handed out."""

    FCFS = "fcfs"
    SJN = "sjn"
    RR = "rr"
    PRIORITY = "priority"


_SORTED_POLICIES = (SchedulingPolicy.PRIORITY, SchedulingPolicy.SJN)


class Scheduler:
    """Thread-safe ready queue.

    FCFS and RR keep arrival order; PRIORITY puts higher priority first and
    SJN puts shorter ``burst_time`` first.
    """

    def __init__(
        self, policy: SchedulingPolicy = SchedulingPolicy.RR, quantum: int = 20
    ) -> None:
        self._ready: deque[PCB] = deque()
        self._lock = threading.Lock()
        self._policy = policy
        self.time_slice = quantum

    @property
    def policy(self) -> SchedulingPolicy:
        return self._policy

    def __len__(self) -> int:
        with self._lock:
            return len(self._ready)

    def _sort_queue(self) -> None:
        if self._policy is SchedulingPolicy.PRIORITY:
            ordered = sorted(self._ready, key=lambda p: p.priority, reverse=True)
        elif self._policy is SchedulingPolicy.SJN:
            ordered = sorted(self._ready, key=lambda p: p.burst_time)
        else:
            return
        self._ready = deque(ordered)

    def add_process(self, process: PCB, now: int) -> None:
        """Mark ``process`` ready at time ``now`` and queue it."""
        with self._lock:
            process.state = State.READY
            process.last_ready_in = now
            self._ready.append(process)
            if self._policy in _SORTED_POLICIES:
                self._sort_queue()

    def get_next_process(self, now: int) -> PCB | None:
        """Take the next process, updating its waiting and first-start times."""
        with self._lock:
            if not self._ready:
                return None
            process = self._ready.popleft()
        process.waiting_time += now - process.last_ready_in
        if process.first_start_time == 0:
            process.first_start_time = now
        return process

    def has_processes(self) -> bool:
        with self._lock:
            return bool(self._ready)

    def set_policy(self, policy: SchedulingPolicy) -> None:
        """Switch policy, reordering the queue if the new one needs it."""
        with self._lock:
            self._policy = policy
            if policy in _SORTED_POLICIES:
                self._sort_queue()

    def is_preemptive(self) -> bool:
        """Only round robin preempts."""
        return self._policy is SchedulingPolicy.RR

    def push_front(self, process: PCB) -> None:
        """Put ``process`` back at the head of the queue."""
        with self._lock:
            self._ready.appendleft(process)