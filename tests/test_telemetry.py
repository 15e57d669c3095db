import sys
import threading
from unittest.mock import MagicMock

import pytest

from pi_vision import config
from pi_vision.errors import TelemetryError
from pi_vision.telemetry import DEFAULT_VALUES, MemoryTable, NetworkTablesStore, result_values
from pi_vision.vision import TargetResult


@pytest.mark.unit
def test_defaults_written_on_creation():
    table = MemoryTable()
    assert table.snapshot() == DEFAULT_VALUES
    assert table.name == config.TABLE_NAME


@pytest.mark.unit
def test_result_values_types():
    values = result_values(TargetResult(count=1, center=(170, 130), offset=(10, 10)))
    assert values == {
        "targetCount": 1,
        "centerX": 170.0,
        "centerY": 130.0,
        "offsetX": 10.0,
        "offsetY": 10.0,
    }
    assert isinstance(values["targetCount"], int)
    assert isinstance(values["centerX"], float)


@pytest.mark.unit
def test_publish_overwrites_all_keys():
    table = MemoryTable()
    table.publish(TargetResult(count=1, center=(100.0, 50.0), offset=(-60.0, -70.0)))
    table.publish(TargetResult(count=3))
    assert table.snapshot() == DEFAULT_VALUES | {config.KEY_TARGET_COUNT: 3}


@pytest.mark.unit
def test_listener_called_immediately_and_on_change():
    table = MemoryTable()
    seen = []
    table.put("/SmartDashboard/camera", "front")
    table.add_listener("/SmartDashboard/camera", lambda key, value: seen.append(value))
    table.put("/SmartDashboard/camera", 1.0)
    table.put("other", 5)
    assert seen == ["front", 1.0]


@pytest.mark.unit
def test_listener_not_called_for_missing_key():
    table = MemoryTable()
    seen = []
    table.add_listener("selector", lambda key, value: seen.append(value))
    assert seen == []
    assert table.get("selector") is None


@pytest.mark.integration
def test_readers_never_see_partial_publish():
    """Every field of a publish carries the same number, so a mixed snapshot means a torn write."""
    table = MemoryTable()
    done = threading.Event()
    torn = []

    def writer():
        for i in range(2000):
            table.publish(TargetResult(count=i, center=(i, i), offset=(i, i)))
        done.set()

    thread = threading.Thread(target=writer)
    thread.start()
    while not done.is_set():
        snap = table.snapshot()
        if len({float(v) for v in snap.values()}) != 1:
            torn.append(snap)
    thread.join()

    assert torn == []


@pytest.mark.unit
def test_networktables_store_requires_pyntcore(monkeypatch):
    monkeypatch.setitem(sys.modules, "ntcore", None)
    with pytest.raises(TelemetryError):
        NetworkTablesStore(team=1234)


@pytest.mark.unit
def test_networktables_publishes_every_key_as_double(monkeypatch):
    ntcore = MagicMock()
    entries = {}
    table = ntcore.NetworkTableInstance.getDefault.return_value.getTable.return_value
    table.getEntry.side_effect = lambda key: entries.setdefault(key, MagicMock(name=key))
    monkeypatch.setitem(sys.modules, "ntcore", ntcore)

    store = NetworkTablesStore(team=2429)
    store.publish(TargetResult(count=1, center=(170, 130), offset=(10, 10)))

    assert set(entries) == set(DEFAULT_VALUES)
    for entry in entries.values():
        entry.setDefaultDouble.assert_called_once_with(0.0)
        entry.setInteger.assert_not_called()
    entries["targetCount"].setDouble.assert_called_once_with(1.0)
    assert isinstance(entries["targetCount"].setDouble.call_args[0][0], float)
    entries["centerX"].setDouble.assert_called_once_with(170.0)
    entries["offsetY"].setDouble.assert_called_once_with(10.0)
