import os

import pytest

from bookstore_cart.services.storage import FileLocalStore, MemoryLocalStore, StorageError


@pytest.mark.asyncio
class TestFileLocalStore:
    async def test_set_get_remove(self, tmp_path):
        store = FileLocalStore(str(tmp_path / "guest"))

        await store.set("kenyas-bookstore-cart:guest-1", b"[]")
        assert await store.get("kenyas-bookstore-cart:guest-1") == b"[]"

        await store.remove("kenyas-bookstore-cart:guest-1")
        assert await store.get("kenyas-bookstore-cart:guest-1") is None

    async def test_missing_key(self, tmp_path):
        store = FileLocalStore(str(tmp_path))

        assert await store.get("nothing") is None
        await store.remove("nothing")

    async def test_overwrite_replaces_value(self, tmp_path):
        store = FileLocalStore(str(tmp_path))

        await store.set("k", b"first value")
        await store.set("k", b"2")

        assert await store.get("k") == b"2"
        assert not [name for name in os.listdir(tmp_path) if name.endswith(".tmp")]

    async def test_failed_write_leaves_no_temp_file(self, tmp_path, monkeypatch):
        store = FileLocalStore(str(tmp_path))
        await store.set("k", b"old")

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)

        with pytest.raises(StorageError):
            await store.set("k", b"new")

        monkeypatch.undo()
        assert await store.get("k") == b"old"
        assert not [name for name in os.listdir(tmp_path) if name.endswith(".tmp")]

    async def test_keys_cannot_escape_directory(self, tmp_path):
        root = tmp_path / "guest"
        store = FileLocalStore(str(root))

        await store.set("../escape/key", b"x")

        assert os.listdir(tmp_path) == ["guest"]
        assert await store.get("../escape/key") == b"x"


@pytest.mark.asyncio
async def test_memory_store():
    store = MemoryLocalStore()

    await store.set("k", b"v")
    assert "k" in store
    assert await store.get("k") == b"v"

    await store.remove("k")
    await store.remove("k")
    assert await store.get("k") is None
