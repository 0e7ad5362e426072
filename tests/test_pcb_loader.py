import json

from vonsim.pcb import PCB
from vonsim.pcb_loader import load_pcb_from_json


def _write(tmp_path, payload):
    path = tmp_path / "process.json"
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload))
    return path


def test_loads_all_fields(tmp_path):
    path = _write(
        tmp_path,
        {
            "pid": 7,
            "name": "worker",
            "priority": 3,
            "program_path": "tasks/worker.json",
            "mem_weights": {"primary": 4, "secondary": 20},
        },
    )
    pcb = PCB()
    assert load_pcb_from_json(path, pcb) is True
    assert pcb.pid == 7
    assert pcb.name == "worker"
    assert pcb.priority == 3
    assert pcb.program_path == "tasks/worker.json"
    assert pcb.mem_weights.primary == 4
    assert pcb.mem_weights.secondary == 20


def test_missing_keys_use_defaults(tmp_path):
    path = _write(tmp_path, {})
    pcb = PCB(pid=99, name="old", priority=8)
    assert load_pcb_from_json(path, pcb) is True
    assert (pcb.pid, pcb.name, pcb.priority, pcb.program_path) == (0, "", 0, "")


def test_weights_untouched_without_section(tmp_path):
    path = _write(tmp_path, {"pid": 1})
    pcb = PCB()
    assert load_pcb_from_json(path, pcb)
    assert (pcb.mem_weights.primary, pcb.mem_weights.secondary) == (5, 10)


def test_empty_weights_section_uses_loader_defaults(tmp_path):
    path = _write(tmp_path, {"mem_weights": {}})
    pcb = PCB()
    assert load_pcb_from_json(path, pcb)
    assert pcb.mem_weights.primary == 1
    assert pcb.mem_weights.secondary == 10
    assert pcb.mem_weights.cache == 1


def test_missing_file_returns_false(tmp_path):
    pcb = PCB(pid=5)
    assert load_pcb_from_json(tmp_path / "absent.json", pcb) is False
    assert pcb.pid == 5


def test_invalid_json_returns_false(tmp_path, capsys):
    path = _write(tmp_path, "{not json")
    assert load_pcb_from_json(path, PCB()) is False
    assert "process.json" in capsys.readouterr().err


def test_wrong_type_returns_false(tmp_path):
    path = _write(tmp_path, {"pid": "seven"})
    assert load_pcb_from_json(path, PCB()) is False


def test_non_object_document_returns_false(tmp_path):
    path = _write(tmp_path, [1, 2, 3])
    assert load_pcb_from_json(path, PCB()) is False