import json
import threading

import pytest

from clipstash.core import ClipItem
from clipstash.core.storage import (
    DatabaseStorage, InMemoryStorage, JSONFileStorage, StorageUnavailableError,
    create_storage, register_backend
)
from clipstash.core.storage.database import ClipItemDB

from conftest import make_items


@pytest.fixture(params=['sqlite', 'json', 'memory'])
def backend(request, tmp_path):
    if request.param == 'sqlite':
        storage = DatabaseStorage(tmp_path / "history.sqlite")
    elif request.param == 'json':
        storage = JSONFileStorage(tmp_path / "history.json")
    else:
        storage = InMemoryStorage()
    yield storage
    storage.close()


class TestBackendContract:
    def test_empty_storage_loads_empty(self, backend):
        assert backend.load_items() == []

    def test_save_then_load_keeps_order_and_fields(self, backend):
        items = make_items(5)
        items[0] = ClipItem.create("with metadata", {'source_app_name': 'Editor'})

        assert backend.save_items(items)
        loaded = backend.load_items()

        assert loaded == items
        assert [i.content for i in loaded] == [i.content for i in items]
        assert loaded[0].metadata == {'source_app_name': 'Editor'}

    def test_save_replaces_whole_snapshot(self, backend):
        backend.save_items(make_items(10))
        replacement = make_items(2, prefix="New")

        backend.save_items(replacement)

        assert [i.content for i in backend.load_items()] == ["New 2", "New 1"]

    def test_clear_storage(self, backend):
        backend.save_items(make_items(3))

        assert backend.clear_storage()
        assert backend.load_items() == []

    def test_clear_empty_storage_succeeds(self, backend):
        assert backend.clear_storage()

    def test_concurrent_saves_leave_a_consistent_snapshot(self, backend):
        snapshots = [make_items(n + 1, prefix=f"S{n}") for n in range(8)]
        threads = [threading.Thread(target=backend.save_items, args=(s,)) for s in snapshots]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        loaded = backend.load_items()
        assert any(loaded == snapshot for snapshot in snapshots)


class TestDurability:
    def test_sqlite_survives_reopen(self, tmp_path):
        path = tmp_path / "history.sqlite"
        items = make_items(150)
        first = DatabaseStorage(path)
        first.save_items(items)
        first.close()

        second = DatabaseStorage(path)

        assert second.load_items() == items
        assert second.get_item_count() == 150
        assert second.get_size() > 0
        second.close()

    def test_sqlite_vacuum_keeps_rows(self, tmp_path):
        storage = DatabaseStorage(tmp_path / "history.sqlite")
        items = make_items(20)
        storage.save_items(items)

        assert storage.vacuum()
        assert storage.load_items() == items
        storage.close()

    def test_sqlite_clear_reclaims_space(self, tmp_path):
        storage = DatabaseStorage(tmp_path / "history.sqlite")
        storage.save_items([ClipItem.create("secret " * 2000 + str(n)) for n in range(50)])
        filled = storage.get_size()

        assert storage.clear_storage()
        assert storage.get_size() < filled
        assert storage.get_item_count() == 0
        storage.close()

    def test_json_survives_reopen(self, tmp_path):
        path = tmp_path / "history.json"
        items = make_items(4)
        JSONFileStorage(path).save_items(items)

        assert JSONFileStorage(path).load_items() == items

    def test_json_layout(self, tmp_path):
        path = tmp_path / "history.json"
        item = ClipItem.create("hello")
        JSONFileStorage(path).save_items([item])

        records = json.loads(path.read_text(encoding='utf-8'))

        assert records == [item.to_record()]

    def test_json_leaves_no_temp_files(self, tmp_path):
        path = tmp_path / "history.json"
        storage = JSONFileStorage(path)
        storage.save_items(make_items(3))
        storage.save_items(make_items(2))

        assert [p.name for p in tmp_path.iterdir()] == ["history.json"]


class TestFailureHandling:
    def test_corrupt_json_loads_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("{not json", encoding='utf-8')

        assert JSONFileStorage(path).load_items() == []

    def test_unexpected_json_layout_loads_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text('{"items": []}', encoding='utf-8')

        assert JSONFileStorage(path).load_items() == []

    def test_empty_json_file_loads_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("", encoding='utf-8')

        assert JSONFileStorage(path).load_items() == []

    def test_bad_records_are_skipped(self, tmp_path):
        path = tmp_path / "history.json"
        good = ClipItem.create("good")
        path.write_text(json.dumps([
            {'id': 'a', 'content': '', 'captured_at': 0},
            {'content': 'no id', 'captured_at': 0},
            good.to_record(),
        ]), encoding='utf-8')

        assert JSONFileStorage(path).load_items() == [good]

    def test_non_utf8_json_loads_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_bytes(b'[{"id": "a", "content": "\xff\xfe", "captured_at": 0}]')

        assert JSONFileStorage(path).load_items() == []

    @pytest.mark.parametrize("captured_at", ["Infinity", "-Infinity", "1e300", "NaN"])
    def test_out_of_range_timestamp_skips_only_that_record(self, tmp_path, captured_at):
        path = tmp_path / "history.json"
        good = ClipItem.create("y")
        path.write_text(
            f'[{{"id": "bad", "content": "x", "captured_at": {captured_at}}}, '
            f'{json.dumps(good.to_record())}]',
            encoding='utf-8'
        )

        loaded = JSONFileStorage(path).load_items()

        assert [item.content for item in loaded] == ["y"]

    def test_sqlite_out_of_range_row_skips_only_that_row(self, tmp_path):
        storage = DatabaseStorage(tmp_path / "history.sqlite")
        items = make_items(3)
        storage.save_items(items)
        with storage.get_session() as session:
            session.query(ClipItemDB).filter(ClipItemDB.id == items[1].id).update(
                {ClipItemDB.captured_at: 1e300}
            )

        assert storage.load_items() == [items[0], items[2]]
        storage.close()

    def test_json_save_into_removed_directory_fails_softly(self, tmp_path):
        directory = tmp_path / "gone"
        storage = JSONFileStorage(directory / "history.json")
        directory.rmdir()

        assert storage.save_items(make_items(1)) is False

    def test_sqlite_unavailable_for_directory_path(self, tmp_path):
        with pytest.raises(StorageUnavailableError):
            DatabaseStorage(tmp_path)

    def test_sqlite_unavailable_for_corrupt_file(self, tmp_path):
        path = tmp_path / "history.sqlite"
        path.write_bytes(b"this is not a database" * 100)

        with pytest.raises(StorageUnavailableError):
            DatabaseStorage(path)

    def test_json_unavailable_when_parent_is_a_file(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")

        with pytest.raises(StorageUnavailableError):
            JSONFileStorage(blocker / "history.json")


class TestFallbackChain:
    def test_prefers_sqlite(self, tmp_path):
        storage = create_storage(data_dir=tmp_path)

        assert isinstance(storage, DatabaseStorage)
        assert (tmp_path / "clipboard_history.sqlite").exists()
        storage.close()

    def test_falls_back_to_json(self, tmp_path):
        (tmp_path / "clipboard_history.sqlite").mkdir()

        storage = create_storage(data_dir=tmp_path)

        assert isinstance(storage, JSONFileStorage)

    def test_falls_back_to_memory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")

        storage = create_storage(data_dir=blocker)

        assert isinstance(storage, InMemoryStorage)

    def test_memory_always_terminal(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")

        storage = create_storage(backends=['json'], data_dir=blocker)

        assert isinstance(storage, InMemoryStorage)

    def test_unknown_backend_skipped(self, tmp_path):
        storage = create_storage(backends=['redis', 'json'], data_dir=tmp_path)

        assert isinstance(storage, JSONFileStorage)

    def test_configured_order_and_file_names(self, tmp_path):
        storage = create_storage(backends=['json', 'sqlite'], data_dir=tmp_path,
                                 options={'json_file': 'custom.json'})

        assert isinstance(storage, JSONFileStorage)
        assert storage.file_path == tmp_path / "custom.json"

    def test_registered_backend(self, tmp_path):
        created = []

        def factory(data_dir, options):
            created.append(data_dir)
            return InMemoryStorage()

        register_backend('custom', factory)
        storage = create_storage(backends=['custom'], data_dir=tmp_path)

        assert isinstance(storage, InMemoryStorage)
        assert created == [tmp_path]

    def test_default_data_dir(self, data_dir):
        storage = create_storage(backends=['json'])

        assert isinstance(storage, JSONFileStorage)
        assert storage.file_path.parent == data_dir
