"""Unit tests for snapshot stores."""

import json

import httpx
import pytest

from vaxnotify.monitor import (
    CountValue,
    LabelValue,
    SnapshotFetchError,
    SnapshotNotFoundError,
    SnapshotWriteError,
)
from vaxnotify.persistence import FileSnapshotStore, HttpSnapshotStore, SqliteSnapshotStore
from tests.helpers import FIXED_TIME, counts, labels


class TestFileSnapshotStore:
    """Test local JSON snapshot file."""

    @pytest.mark.asyncio
    async def test_save_then_load(self, tmp_path):
        store = FileSnapshotStore(tmp_path / "data" / "freeDates.json")

        await store.save(counts(Dresden=4, Leipzig=0))
        loaded = await store.load()

        assert loaded.entries == {"Dresden": CountValue(4), "Leipzig": CountValue(0)}
        assert loaded.observed_at == FIXED_TIME

    @pytest.mark.asyncio
    async def test_written_layout(self, tmp_path):
        path = tmp_path / "eligibleGroups.json"

        await FileSnapshotStore(path).save(labels(g1="Lehrer"))

        assert json.loads(path.read_text(encoding="utf-8")) == {
            "entries": {"g1": {"label": "Lehrer"}},
            "lastUpdated": "2021-05-01T12:00:00+00:00",
        }
        assert list(tmp_path.iterdir()) == [path]

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(SnapshotNotFoundError):
            await FileSnapshotStore(tmp_path / "missing.json").load()

    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(SnapshotFetchError) as exc_info:
            await FileSnapshotStore(path).load()

        assert exc_info.value.code == "snapshot_malformed"

    @pytest.mark.asyncio
    async def test_legacy_layout(self, tmp_path):
        path = tmp_path / "eligibleGroups.json"
        path.write_text(json.dumps({"groups": {"g1": {"label": "Lehrer"}}}), encoding="utf-8")

        loaded = await FileSnapshotStore(path).load()

        assert loaded.entries == {"g1": LabelValue("Lehrer")}

    @pytest.mark.asyncio
    async def test_write_failure(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("")

        with pytest.raises(SnapshotWriteError):
            await FileSnapshotStore(blocker / "snapshot.json").save(counts(A=1))


class TestHttpSnapshotStore:
    """Test published snapshot over HTTP."""

    def make_store(self, handler, tmp_path):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        local = FileSnapshotStore(tmp_path / "freeDates.json")
        return client, HttpSnapshotStore(client, "https://bucket.example.test/data/freeDates.json", local)

    @pytest.mark.asyncio
    async def test_load(self, tmp_path):
        client, store = self.make_store(
            lambda request: httpx.Response(200, json={"dates": {"Dresden": 3}, "lastUpdated": "2021-05-01T12:00:00Z"}),
            tmp_path,
        )
        async with client:
            loaded = await store.load()

        assert loaded.entries == {"Dresden": CountValue(3)}

    @pytest.mark.asyncio
    async def test_404_is_not_found(self, tmp_path):
        client, store = self.make_store(lambda request: httpx.Response(404), tmp_path)
        async with client:
            with pytest.raises(SnapshotNotFoundError):
                await store.load()

    @pytest.mark.asyncio
    async def test_server_error_is_fetch_error(self, tmp_path):
        client, store = self.make_store(lambda request: httpx.Response(503), tmp_path)
        async with client:
            with pytest.raises(SnapshotFetchError) as exc_info:
                await store.load()

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_non_json_body(self, tmp_path):
        client, store = self.make_store(lambda request: httpx.Response(200, text="<html>"), tmp_path)
        async with client:
            with pytest.raises(SnapshotFetchError):
                await store.load()

    @pytest.mark.asyncio
    async def test_save_writes_local_file(self, tmp_path):
        client, store = self.make_store(lambda request: httpx.Response(500), tmp_path)
        async with client:
            await store.save(counts(A=2))

        assert json.loads((tmp_path / "freeDates.json").read_text(encoding="utf-8"))["entries"] == {"A": 2}


class TestSqliteSnapshotStore:
    """Test snapshot history in SQLite."""

    @pytest.mark.asyncio
    async def test_missing_snapshot(self, db_manager):
        with pytest.raises(SnapshotNotFoundError):
            await SqliteSnapshotStore(db_manager, "free_dates").load()

    @pytest.mark.asyncio
    async def test_latest_row_wins(self, db_manager):
        store = SqliteSnapshotStore(db_manager, "free_dates")

        await store.save(counts(A=1))
        await store.save(counts(A=3, B=5))

        loaded = await store.load()
        assert loaded.entries == {"A": CountValue(3), "B": CountValue(5)}

    @pytest.mark.asyncio
    async def test_domains_are_isolated(self, db_manager):
        await SqliteSnapshotStore(db_manager, "free_dates").save(counts(A=1))
        await SqliteSnapshotStore(db_manager, "eligible_groups").save(labels(g1="Lehrer"))

        loaded = await SqliteSnapshotStore(db_manager, "free_dates").load()

        assert loaded.entries == {"A": CountValue(1)}
