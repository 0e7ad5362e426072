"""Process control block and its related types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from vonsim.register_bank import RegisterBank


class State(Enum):
    """Lifecycle state of a process."""

    READY = "ready"
    RUNNING = "running"
    BLOCKED = "blocked"
    FINISHED = "finished"


@dataclass
class MemWeights:
    """Cost, in cycles, of one access to each memory level."""

    cache: int = 1
    primary: int = 5
    secondary: int = 10


@dataclass(eq=False)
class PCB:
    """Identity, scheduling data, registers and metrics of one process."""

    pid: int = 0
    name: str = ""
    program_path: str = ""
    quantum: int = 0
    priority: int = 0
    burst_time: int = 0

    state: State = State.READY
    reg_bank: RegisterBank = field(default_factory=RegisterBank)
    page_table: dict[int, int] = field(default_factory=dict)

    arrival_time: int = 0
    first_start_time: int = 0
    finish_time: int = 0
    waiting_time: int = 0
    last_ready_in: int = 0
    cpu_time: int = 0

    primary_mem_accesses: int = 0
    secondary_mem_accesses: int = 0
    memory_cycles: int = 0
    mem_accesses_total: int = 0
    extra_cycles: int = 0
    cache_mem_accesses: int = 0

    pipeline_cycles: int = 0
    stage_invocations: int = 0
    mem_reads: int = 0
    mem_writes: int = 0

    cache_hits: int = 0
    cache_misses: int = 0
    io_cycles: int = 1

    mem_weights: MemWeights = field(default_factory=MemWeights)


def record_cache_access(pcb: PCB, hit: bool) -> None:
    """Count a cache hit or miss on the process."""
    if hit:
        pcb.cache_hits += 1
    else:
        pcb.cache_misses += 1