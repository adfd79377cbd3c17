"""
Tests for the folder path cache.
"""

import pytest

from cloudcore.cache.dual_cache import DualSidedCache
from cloudcore.cache.folder_cache import FolderPathCache


class CountingLookup:
    """Remote folder tree: {(name, parent_id): child_id}."""

    def __init__(self, tree):
        self.tree = tree
        self.calls = []

    async def __call__(self, name, parent_id):
        self.calls.append((name, parent_id))
        return self.tree.get((name, parent_id))


TREE = {
    ("a", "root"): "id-a",
    ("b", "id-a"): "id-b",
    ("c", "id-b"): "id-c",
}


class TestDualSidedCache:
    """Tests for DualSidedCache."""

    def test_both_directions(self):
        cache = DualSidedCache()
        cache.set("root/a", "id-a")
        assert cache.get("root/a") == "id-a"
        assert cache.get_key("id-a") == "root/a"

    def test_evicts_least_recently_used(self):
        cache = DualSidedCache(max_entries=2)
        cache.set("x", "1")
        cache.set("y", "2")
        cache.get("x")
        cache.set("z", "3")

        assert "y" not in cache
        assert cache.get_key("2") is None
        assert cache.get("x") == "1"
        assert cache.get("z") == "3"

    def test_value_moves_to_new_key(self):
        cache = DualSidedCache()
        cache.set("old", "1")
        cache.set("new", "1")
        assert "old" not in cache
        assert cache.get_key("1") == "new"

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            DualSidedCache(max_entries=0)


class TestFolderPathCache:
    """Tests for FolderPathCache."""

    def test_normalize(self):
        assert FolderPathCache.normalize("/a//b/") == "a/b"
        assert FolderPathCache.normalize("a\\b") == "a/b"

    @pytest.mark.asyncio
    async def test_second_resolution_is_free(self):
        cache = FolderPathCache()
        lookup = CountingLookup(TREE)

        first = await cache.resolve(["a", "b", "c"], "root", lookup)
        assert first == ["id-a", "id-b", "id-c"]
        assert len(lookup.calls) == 3

        second = await cache.resolve(["a", "b", "c"], "root", lookup)
        assert second == first
        assert len(lookup.calls) == 3

    @pytest.mark.asyncio
    async def test_stops_at_first_missing_segment(self):
        cache = FolderPathCache()
        lookup = CountingLookup(TREE)

        chain = await cache.resolve(["a", "x", "c"], "root", lookup)

        assert chain == ["id-a"]
        assert lookup.calls == [("a", "root"), ("x", "id-a")]
        assert cache.get_id("a", "root") == "id-a"
        assert cache.get_id("a/x", "root") is None

    @pytest.mark.asyncio
    async def test_cached_prefix_skips_lookup(self):
        cache = FolderPathCache()
        cache.remember("a", "id-a", "root")
        lookup = CountingLookup(TREE)

        chain = await cache.resolve(["a", "b"], "root", lookup)

        assert chain == ["id-a", "id-b"]
        assert lookup.calls == [("b", "id-a")]

    @pytest.mark.asyncio
    async def test_start_folders_are_separate_namespaces(self):
        cache = FolderPathCache()
        cache.remember("a", "id-a", "root")
        lookup = CountingLookup({("a", "other"): "id-other-a"})

        chain = await cache.resolve(["a"], "other", lookup)
        assert chain == ["id-other-a"]
        assert cache.get_id("a", "root") == "id-a"

    def test_invalidate_drops_descendants(self):
        cache = FolderPathCache()
        cache.remember("a", "id-a")
        cache.remember("a/b", "id-b")
        cache.remember("a/b/c", "id-c")
        cache.remember("ab", "id-ab")

        removed = cache.invalidate("a/b")

        assert removed == 2
        assert cache.get_id("a") == "id-a"
        assert cache.get_id("a/b") is None
        assert cache.get_path("id-c") is None
        assert cache.get_id("ab") == "id-ab"

    def test_invalidate_scoped_to_start_folder(self):
        cache = FolderPathCache()
        cache.remember("a", "id-a", "root")
        cache.remember("a", "id-a2", "other")

        cache.invalidate("a", start_id="other")

        assert cache.get_id("a", "root") == "id-a"
        assert cache.get_id("a", "other") is None

    def test_remember_child_under_cached_parent(self):
        cache = FolderPathCache()
        cache.remember("a", "id-a")
        cache.remember_child("id-a", "new", "id-new")
        cache.remember_child("root", "top", "id-top")

        assert cache.get_id("a/new") == "id-new"
        assert cache.get_id("top") == "id-top"

    def test_bounded(self):
        cache = FolderPathCache(max_entries=2)
        cache.remember("a", "1")
        cache.remember("b", "2")
        cache.remember("c", "3")
        assert len(cache) == 2
        assert cache.get_id("a") is None
