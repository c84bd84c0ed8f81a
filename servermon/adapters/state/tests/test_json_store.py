"""
Tests for the JSON state store adapter.
"""

import json
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from servermon.adapters.state.json_store import AdapterJsonStateStore
from servermon.core.entities import ProbeResult, RunRecord
from servermon.core.exceptions import StateError

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestJsonStateStore:
    """Tests for AdapterJsonStateStore load/save."""

    @pytest.fixture
    def temp_dir(self):
        """Create temporary directory for tests."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    @pytest.fixture
    def store(self, temp_dir):
        """Create a store with a fixed clock."""
        return AdapterJsonStateStore(temp_dir / "status.json", clock=lambda: NOW)

    def test_load_not_exist(self, store):
        """Test first execution returns an empty record stamped now."""
        record = store.load()
        assert record.down_servers == ()
        assert record.run_time_start == NOW
        assert record.run_time_end == NOW

    def test_load_not_exist_default_clock(self, temp_dir):
        """Test bootstrap timestamps are never missing."""
        record = AdapterJsonStateStore(temp_dir / "status.json").load()
        assert record.run_time_start is not None
        assert record.run_time_end is not None

    def test_save_and_load(self, store):
        """Test a saved record loads back equal."""
        record = RunRecord(
            [
                ProbeResult(1, False, "500", "a.example", NOW),
                ProbeResult("db", False, "connection refused", "b.example", NOW),
            ],
            NOW,
            NOW + timedelta(minutes=3),
        )
        store.save(record)

        loaded = store.load()
        assert loaded == record
        assert {s.id for s in loaded.down_servers} == {1, "db"}

    def test_save_overwrites(self, store):
        """Test save replaces the previous state wholesale."""
        store.save(RunRecord([ProbeResult(1, False, "500", "a", NOW)], NOW, NOW))
        store.save(RunRecord([], NOW, NOW))
        assert store.load().down_servers == ()

    def test_save_creates_parent_dirs(self, temp_dir):
        """Test missing directories are created."""
        store = AdapterJsonStateStore(temp_dir / "nested" / "status.json")
        store.save(RunRecord.empty(NOW))
        assert (temp_dir / "nested" / "status.json").exists()

    def test_save_leaves_no_temp_files(self, store, temp_dir):
        """Test the temporary file is replaced into place."""
        store.save(RunRecord.empty(NOW))
        assert [p.name for p in temp_dir.iterdir()] == ["status.json"]

    def test_saved_format(self, store, temp_dir):
        """Test the on-disk field names."""
        store.save(RunRecord([ProbeResult(7, False, "404", "x", NOW)], NOW, NOW))
        data = json.loads((temp_dir / "status.json").read_text())
        assert set(data) == {"downServers", "runTimeStart", "runTimeEnd"}
        assert data["downServers"][0] == {
            "id": 7,
            "isUp": False,
            "error": "404",
            "url": "x",
            "date": NOW.isoformat(),
        }

    def test_load_invalid_json(self, store, temp_dir):
        """Test unparseable state is fatal."""
        (temp_dir / "status.json").write_text("{not json")
        with pytest.raises(StateError):
            store.load()

    def test_load_invalid_utf8(self, store, temp_dir):
        """Test undecodable bytes are reported as malformed state."""
        (temp_dir / "status.json").write_bytes(b'{"x": "\xff\xfe"}')
        with pytest.raises(StateError):
            store.load()

    def test_load_down_entry_marked_up(self, store, temp_dir):
        """Test a down-list entry claiming to be up is rejected."""
        entry = {"id": 1, "isUp": True, "error": "", "url": "a", "date": NOW.isoformat()}
        (temp_dir / "status.json").write_text(
            json.dumps(
                {
                    "downServers": [entry],
                    "runTimeStart": NOW.isoformat(),
                    "runTimeEnd": NOW.isoformat(),
                }
            )
        )
        with pytest.raises(StateError):
            store.load()

    def test_load_missing_field(self, store, temp_dir):
        """Test a missing key is fatal."""
        (temp_dir / "status.json").write_text(
            json.dumps({"downServers": [], "runTimeStart": NOW.isoformat()})
        )
        with pytest.raises(StateError):
            store.load()

    def test_load_bad_timestamp(self, store, temp_dir):
        """Test an unparseable timestamp is fatal."""
        (temp_dir / "status.json").write_text(
            json.dumps({"downServers": [], "runTimeStart": "yesterday", "runTimeEnd": "now"})
        )
        with pytest.raises(StateError):
            store.load()

    def test_load_duplicate_ids(self, store, temp_dir):
        """Test duplicate endpoint IDs violate the record invariant."""
        entry = {"id": 1, "isUp": False, "error": "500", "url": "a", "date": NOW.isoformat()}
        (temp_dir / "status.json").write_text(
            json.dumps(
                {
                    "downServers": [entry, entry],
                    "runTimeStart": NOW.isoformat(),
                    "runTimeEnd": NOW.isoformat(),
                }
            )
        )
        with pytest.raises(StateError):
            store.load()

    def test_load_not_an_object(self, store, temp_dir):
        """Test a JSON list is rejected."""
        (temp_dir / "status.json").write_text("[]")
        with pytest.raises(StateError):
            store.load()
