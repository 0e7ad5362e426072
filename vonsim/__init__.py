"""Von Neumann / MIPS-style CPU simulator: registers, ALU, pipeline, cache, scheduler, I/O and assembler."""

__version__ = "0.1.0"