from datetime import datetime, timedelta, timezone
from pathlib import Path

from src.queue_finder.persistence.filesystem import FileStorage, SpreadsheetCache
from src.queue_finder.services.location import UserLocation


def test_file_storage_writes_json_and_bytes(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    assert storage.cache_root == tmp_path / "cache"

    summary_path = storage.cache_root / "summary.json"
    blob_path = storage.cache_root / "nested" / "blob.bin"
    storage.write_json(summary_path, {"hello": "świat"})
    storage.write_bytes(blob_path, b"\x00\x01")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "hello": "świat"\n}'
    assert storage.read_json(summary_path) == {"hello": "świat"}
    assert blob_path.read_bytes() == b"\x00\x01"


def test_spreadsheet_cache_honours_max_age(tmp_path: Path) -> None:
    cache = SpreadsheetCache(FileStorage(root=tmp_path), max_age=timedelta(hours=24))
    saved_at = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

    assert cache.is_fresh("opolskie") is False
    cache.save("opolskie", b"PK\x03\x04", now=saved_at)

    assert cache.metadata_path("opolskie").name == "opolskie.xlsx.metadata"
    assert cache.last_update("opolskie") == saved_at
    assert cache.is_fresh("opolskie", now=saved_at + timedelta(hours=23)) is True
    assert cache.is_fresh("opolskie", now=saved_at + timedelta(hours=25)) is False
    assert cache.load("opolskie") == b"PK\x03\x04"

    cache.delete("opolskie")
    assert not cache.file_path("opolskie").exists()
    assert cache.last_update("opolskie") is None


def test_spreadsheet_cache_ignores_corrupt_metadata(tmp_path: Path) -> None:
    cache = SpreadsheetCache(FileStorage(root=tmp_path))
    cache.save("lubuskie", b"data")
    cache.metadata_path("lubuskie").write_text("not json", encoding="utf-8")

    assert cache.last_update("lubuskie") is None
    assert cache.is_fresh("lubuskie") is False


def test_last_known_location_survives_restart(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    location = UserLocation(storage)
    assert location.for_distance is None

    location.update(52.23, 21.01)
    location.clear_current()

    restored = UserLocation(storage)
    assert restored.current is None
    assert restored.last_known is not None
    assert restored.for_distance.latitude == 52.23
