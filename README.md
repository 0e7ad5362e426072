# vonsim

Building blocks for simulating a Von Neumann machine with a MIPS-flavoured
instruction set, meant for studying how a CPU and an operating system fit
together. Pure Python, no dependencies.

## Modules

- `vonsim.hash_register`: the MIPS register naming table. `RegisterMapper`
  maps 5-bit binary codes (or indices 0..31) to names and back, with
  `RegisterInfo` metadata and a `RegisterType` category. Module helpers:
  `bin_from_index`, `index_from_binary`, `global_register_mapper`,
  `get_register_name`, `get_register_binary`, `is_read_only_register`.
- `vonsim.register_bank`: a 32-bit `Register` (`read`, `write`,
  `reverse_read` for a byte swap) and a `RegisterBank` holding `pc`, `mar`,
  `ir`, `hi`, `lo` and the rest, plus the 32 general registers. It is
  addressed by name through `read_register` and `write_register`. Writes to
  `zero` are ignored, and unknown names raise `KeyError`. `reset`,
  `registers_as_string` and `print_registers` are also provided.
- `vonsim.alu`: an `ALU` with signed 32-bit add, subtract, multiply and
  divide, with overflow detection. Division by zero sets `overflow` and
  yields 0. It also does bitwise AND, the branch comparisons, and
  effective-address sums, all selected through `Operation`.
- `vonsim.pcb`: the process control block `PCB`, its `State`, the memory
  access costs `MemWeights`, and `record_cache_access`.
- `vonsim.pcb_loader`: `load_pcb_from_json(path, pcb)` reads `pid`, `name`,
  `priority`, `program_path` and `mem_weights` into a `PCB`. It returns
  `False` if the file cannot be opened or is invalid.
- `vonsim.scheduler`: a thread-safe ready queue, `Scheduler`, with
  `SchedulingPolicy.FCFS`, `SJN`, `RR` and `PRIORITY`. `get_next_process`
  updates the waiting time and first start time. Only RR reports
  `is_preemptive()`.
- `vonsim.cache`: a 16-entry `Cache` that counts hits and misses and keeps
  dirty entries (`update`, `dirty_data`). When it is full, `CachePolicy`
  evicts the clean entry with the smallest timestamp.
- `vonsim.io_manager`: `IOManager` runs a worker thread. The thread pairs
  waiting processes with randomly requesting printer and disk devices,
  sleeps for the request's cost, adds the elapsed milliseconds to
  `io_cycles`, and makes the process ready again. Results are appended to
  `result.dat` and `output.dat` in its output directory. It is a context
  manager, and `time_scale` shortens every sleep.
- `vonsim.control_unit`: `ControlUnit` with fetch, decode (with
  read-after-write hazard bubbles), execute, memory access and write-back
  stages. `core(memory_manager, process, io_requests, print_lock)` runs one
  process for its quantum or until END, and returns the final
  `ControlContext`. Trace lines go to `output/trace_logs/temp_<pid>.log`
  when that directory exists.
- `vonsim.main_memory`: `MainMemory`, a sparse map of addresses to signed
  32-bit words. Unwritten addresses read as 0.
- `vonsim.assembler`: `Assembler` and `load_json_program` turn a JSON
  program description into 32-bit words in a `MainMemory`. Errors raise
  `AssemblerError`.
- `vonsim.io_demo`: `DemoProcess` and `run_simulation`, a round-robin CPU
  loop that hands processes that block on I/O to an `IOManager`.

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Quick tour

```python
from vonsim.alu import ALU, Operation
from vonsim.register_bank import RegisterBank

alu = ALU()
alu.execute(Operation.ADD, 2, 3, 0)
print(alu.result, alu.overflow)      # 5 False

bank = RegisterBank()
bank.write_register("t0", 42)
bank.write_register("zero", 7)       # ignored
print(bank.read_register("t0"), bank.read_register("zero"))   # 42 0
print(bank.registers_as_string())
```

Scheduling:

```python
from vonsim.pcb import PCB
from vonsim.scheduler import Scheduler, SchedulingPolicy

sched = Scheduler(SchedulingPolicy.PRIORITY, 20)
sched.add_process(PCB(pid=1, priority=1), 0)
sched.add_process(PCB(pid=2, priority=5), 0)
print(sched.get_next_process(10).pid)    # 2, the higher priority
```

Assembling:

```python
from vonsim.main_memory import MainMemory
from vonsim.assembler import load_json_program

ram = MainMemory()
end = load_json_program("tasks/tasks.json", ram, 0)
print("loaded up to", end)
ram.dump()
```

A program document may have a `"data"` section in one of two forms:

- an object mapping names to words or lists of words, with the names taken
  in sorted order;
- a list of `{label, type, value}` items, where `type` is `word` or `byte`.
  Consecutive bytes are packed four to a word, most significant first.

It also has a `"program"` list of instructions, such as
`{"instruction": "addi", "rt": "$t0", "rs": "$zero", "immediate": 5}`.
Code labels resolve to byte addresses (4 per instruction), while the words
themselves are stored one per memory address.

## Commands

```
vonsim-assemble [program] [--start N]
```

Assembles `program` (default `tasks/tasks.json`) into a fresh memory,
starting at address `N` (default 0). It then prints the end address and
dumps the memory. The exit status is 1 when the program cannot be read or
assembled.

```
vonsim-io-demo [--quantum N] [--time-scale F] [--output-dir DIR] [--seed S]
```

Runs three processes round robin. Each process blocks on I/O at random and
is released by the I/O manager. Every CPU step is printed, and the I/O
results are written under `DIR` (default `output`).

## What it does not do

The package has no memory manager, cache hierarchy driver or secondary
storage. `core` accepts any object with `read(address, process)` and
`write(address, value, process)`, and you must supply one. There is no
command that loads a batch of processes and runs them through the scheduler
and the pipeline together, and no report of per-process metrics. The
pieces above are meant to be combined by your own driver.