"""Background I/O manager that pairs waiting processes with simulated devices."""

from __future__ import annotations

import random
import sys
import threading
import time
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Protocol

from vonsim.pcb import PCB, State

RESULT_FILE = "result.dat"
METRICS_FILE = "output.dat"

PRINTER_ODDS = 100
DISK_ODDS = 50
IDLE_MS = 20


class _RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...

    def randint(self, a: int, b: int) -> int: ...


@dataclass
class IORequest:
    """A device operation to be carried out on behalf of a process."""

    operation: str = ""
    msg: str = ""
    process: PCB | None = None
    cost_ms: int = 0


class IOManager:
    """Services blocked processes on a worker thread.

    Each loop the printer asks for work with a 1 in 100 chance and the disk
    with a 1 in 50 chance. When a device is requesting and a process is
    waiting, the first waiting process gets a request (printer first) costing
    100, 200 or 300 ms. Requests are served one at a time; when done the
    process's ``io_cycles`` grows by the elapsed milliseconds, the result is
    logged and the process becomes ready again.

    ``time_scale`` multiplies every sleep, which keeps tests fast.
    """

    def __init__(
        self,
        output_dir: str | Path = ".",
        rng: _RandomSource | None = None,
        time_scale: float = 1.0,
    ) -> None:
        self._rng: _RandomSource = rng if rng is not None else random.Random()
        self._time_scale = time_scale

        self._requests: deque[IORequest] = deque()
        self._queue_lock = threading.Lock()
        self._waiting: deque[PCB] = deque()
        self._waiting_lock = threading.Lock()
        self._printer_requesting = False
        self._disk_requesting = False
        self._device_lock = threading.Lock()
        self._shutdown = threading.Event()

        directory = Path(output_dir)
        self._result_file: IO[str] | None = None
        self._metrics_file: IO[str] | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            self._result_file = open(directory / RESULT_FILE, "a", encoding="utf-8")
            self._metrics_file = open(directory / METRICS_FILE, "a", encoding="utf-8")
        except OSError:
            print("Error: could not open output files.", file=sys.stderr)

        self._thread = threading.Thread(target=self._manager_loop, daemon=True)
        self._thread.start()

    def __enter__(self) -> IOManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def is_running(self) -> bool:
        """Whether the worker thread is still alive."""
        return self._thread.is_alive()

    def register_process_waiting_for_io(self, process: PCB) -> None:
        """Put ``process`` at the end of the queue waiting for a device."""
        with self._waiting_lock:
            self._waiting.append(process)

    def close(self) -> None:
        """Stop the worker thread and close the output files."""
        self._shutdown.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join()
        for handle in (self._result_file, self._metrics_file):
            if handle is not None and not handle.closed:
                handle.close()

    def _add_request(self, request: IORequest) -> None:
        with self._queue_lock:
            self._requests.append(request)

    def _poll_devices(self) -> None:
        with self._device_lock:
            if self._rng.randrange(PRINTER_ODDS) == 0:
                self._printer_requesting = True
            if self._rng.randrange(DISK_ODDS) == 0:
                self._disk_requesting = True

    def _match_request(self) -> IORequest | None:
        with self._waiting_lock:
            if not self._waiting:
                return None
            with self._device_lock:
                if self._printer_requesting:
                    request = IORequest("print_job", "Printing document...")
                    self._printer_requesting = False
                elif self._disk_requesting:
                    request = IORequest("read_from_disk", "Reading data from disk...")
                    self._disk_requesting = False
                else:
                    return None
                request.process = self._waiting.popleft()
                request.cost_ms = self._rng.randint(1, 3) * 100
                return request

    def _next_request(self) -> IORequest | None:
        with self._queue_lock:
            return self._requests.popleft() if self._requests else None

    def _serve(self, request: IORequest) -> None:
        process = request.process
        start = time.monotonic()
        time.sleep(request.cost_ms * self._time_scale / 1000)
        duration = int((time.monotonic() - start) * 1000)

        if process is None:
            return
        process.io_cycles += duration
        print(f"I/O Manager: Process {process.pid} executed '{request.operation}'")
        if self._result_file is not None:
            self._result_file.write(
                f"Process {process.pid} -> {request.operation} : {request.msg}\n"
            )
            self._result_file.flush()
        if self._metrics_file is not None:
            self._metrics_file.write(f"{process.pid},{request.operation},{duration}ms\n")
            self._metrics_file.flush()
        process.state = State.READY

    def _manager_loop(self) -> None:
        while not self._shutdown.is_set():
            self._poll_devices()
            new_request = self._match_request()
            if new_request is not None:
                self._add_request(new_request)
            request = self._next_request()
            if request is not None:
                self._serve(request)
            else:
                self._shutdown.wait(IDLE_MS * self._time_scale / 1000)