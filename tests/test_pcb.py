from vonsim.pcb import PCB, MemWeights, State, record_cache_access


def test_default_mem_weights():
    weights = MemWeights()
    assert (weights.cache, weights.primary, weights.secondary) == (1, 5, 10)


def test_pcb_defaults():
    pcb = PCB()
    assert pcb.state is State.READY
    assert pcb.pid == 0
    assert pcb.io_cycles == 1
    assert pcb.cache_hits == 0 and pcb.cache_misses == 0


def test_record_hit():
    pcb = PCB()
    record_cache_access(pcb, True)
    record_cache_access(pcb, True)
    assert pcb.cache_hits == 2
    assert pcb.cache_misses == 0


def test_record_miss():
    pcb = PCB()
    record_cache_access(pcb, False)
    assert pcb.cache_misses == 1
    assert pcb.cache_hits == 0


def test_pcbs_do_not_share_registers():
    first = PCB(pid=1)
    second = PCB(pid=2)
    first.reg_bank.write_register("t0", 9)
    assert second.reg_bank.read_register("t0") == 0


def test_pcbs_do_not_share_page_tables():
    first = PCB()
    second = PCB()
    first.page_table[0] = 3
    assert second.page_table == {}


def test_pcbs_with_same_fields_are_distinct_processes():
    first = PCB(pid=1)
    second = PCB(pid=1)
    assert len({first, second}) == 2
    assert [first, second].index(second) == 1
    record_cache_access(first, True)
    assert (first.cache_hits, second.cache_hits) == (1, 0)