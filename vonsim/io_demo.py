"""Round-robin CPU loop that hands blocked processes to the I/O manager."""

from __future__ import annotations

import argparse
import random
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from vonsim.io_manager import IOManager
from vonsim.pcb import State

QUANTUM = 5
IO_ODDS = 8
TICK_SECONDS = 0.1


class _RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


@dataclass(eq=False)
class DemoProcess:
    """A process that needs ``total_cycles`` CPU cycles to finish."""

    pid: int
    total_cycles: int
    state: State = State.READY
    cycles_executed: int = 0
    io_cycles: int = 0


def run_simulation(
    processes: Sequence[DemoProcess],
    io_manager: IOManager,
    quantum: int = QUANTUM,
    rng: _RandomSource | None = None,
    tick: float = TICK_SECONDS,
) -> int:
    """Run ``processes`` until all have finished; returns the simulated clock.

    The first ready process runs for up to ``quantum`` cycles, each lasting
    ``tick`` seconds. Every cycle it asks for I/O with a 1 in 8 chance, in
    which case it blocks and waits on ``io_manager``. When nothing is ready
    the CPU idles for one cycle. Rounds are ``2 * tick`` seconds apart.
    """
    rng = rng if rng is not None else random.Random()
    clock = 0

    while True:
        if all(p.state is State.FINISHED for p in processes):
            print("\nAll processes finished. Shutting down.")
            break

        process = next((p for p in processes if p.state is State.READY), None)
        if process is not None:
            process.state = State.RUNNING
            print(f"\n[Clock: {clock}] CPU: Running process {process.pid}")
            for _ in range(quantum):
                time.sleep(tick)
                process.cycles_executed += 1
                clock += 1
                if rng.randrange(IO_ODDS) == 0:
                    print(
                        f"CPU: Process {process.pid} requested I/O. "
                        "BLOCKED, waiting for a device."
                    )
                    process.state = State.BLOCKED
                    io_manager.register_process_waiting_for_io(process)
                    break
                if process.cycles_executed >= process.total_cycles:
                    process.state = State.FINISHED
                    print(f"CPU: Process {process.pid} FINISHED.")
                    break
            if process.state is State.RUNNING:
                process.state = State.READY
                print(f"CPU: Quantum of process {process.pid} expired. State: READY.")
        else:
            print(f"\n[Clock: {clock}] CPU idle... waiting for processes to become ready.")
            clock += 1

        time.sleep(2 * tick)

    return clock


def main(argv: list[str] | None = None) -> int:
    """Run the three-process demonstration."""
    parser = argparse.ArgumentParser(description="CPU and I/O manager demonstration.")
    parser.add_argument("--quantum", type=int, default=QUANTUM)
    parser.add_argument("--time-scale", type=float, default=1.0)
    parser.add_argument("--output-dir", default="output")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args(argv)

    print("Starting operating system simulation.")
    processes = [DemoProcess(1, 50), DemoProcess(2, 40), DemoProcess(3, 60)]
    with IOManager(
        output_dir=args.output_dir,
        rng=random.Random(args.seed),
        time_scale=args.time_scale,
    ) as io_manager:
        run_simulation(
            processes,
            io_manager,
            args.quantum,
            random.Random(args.seed),
            TICK_SECONDS * args.time_scale,
        )
    return 0