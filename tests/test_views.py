import unittest
from datetime import datetime, timedelta, timezone

from clouddrive.cache import ViewCache
from clouddrive.errors import InvalidArgumentError
from clouddrive.models import Item, ItemKind, View
from clouddrive.store import InMemoryItemStore
from clouddrive.tree import TreeResolver
from clouddrive.views import ViewFilter


class TestViewFilter(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryItemStore()
        self.views = ViewFilter(self.store, TreeResolver(self.store))

    def _file(self, name: str, parent_id=None, **flags) -> Item:
        item = self.store.insert(
            Item.new_file(name, "u1", blob_ref=f"u1/{name}", size_bytes=1, parent_id=parent_id)
        )
        if flags:
            item = self.store.update(ItemKind.FILE, item.id, "u1", **flags)
        return item

    def _folder(self, name: str, parent_id=None, **flags) -> Item:
        item = self.store.insert(Item.new_folder(name, "u1", parent_id))
        if flags:
            item = self.store.update(ItemKind.FOLDER, item.id, "u1", **flags)
        return item

    def test_all_is_folder_scoped(self) -> None:
        docs = self._folder("Docs")
        a = self._file("a.txt")
        b = self._file("b.txt", docs.id)

        self.assertEqual([x.id for x in self.views.select_view("all", "u1")], [docs.id, a.id])
        self.assertEqual([x.id for x in self.views.select_view(View.ALL, "u1", docs.id)], [b.id])

    def test_starred_excludes_trashed_and_orders_folders_first(self) -> None:
        f = self._file("a.txt", starred=True)
        d = self._folder("Docs", starred=True)
        self._file("b.txt", starred=True, trashed=True)
        self._file("c.txt")

        self.assertEqual([x.id for x in self.views.select_view("starred", "u1")], [d.id, f.id])

    def test_shared_view(self) -> None:
        f = self._file("a.txt", shared=True)
        self._file("b.txt", shared=True, trashed=True)
        self.assertEqual([x.id for x in self.views.select_view("shared", "u1")], [f.id])

    def test_trash_view_includes_everything_trashed(self) -> None:
        d = self._folder("Docs", trashed=True)
        f = self._file("a.txt", d.id, trashed=True, starred=True)
        self._file("b.txt")
        self.assertEqual([x.id for x in self.views.select_view("trash", "u1")], [d.id, f.id])

    def test_recent_orders_by_updated_at_across_kinds(self) -> None:
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        items = []
        for i in range(12):
            if i % 2:
                item = self._folder(f"d{i}", updated_at=base + timedelta(minutes=i))
            else:
                item = self._file(f"f{i}", updated_at=base + timedelta(minutes=i))
            items.append(item)
        self._file("old-trashed", updated_at=base + timedelta(days=1), trashed=True)

        recent = self.views.select_view("recent", "u1")
        self.assertEqual(len(recent), 10)
        self.assertEqual([x.id for x in recent], [x.id for x in reversed(items)][:10])

    def test_live_records_under_trashed_folder_are_hidden(self) -> None:
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        archive = self._folder("Archive", trashed=True)
        inner = self._folder("Inner", archive.id, starred=True, shared=True)
        self._file(
            "late.txt", inner.id, starred=True, shared=True, updated_at=base + timedelta(days=1)
        )
        kept = self._file("a.txt", starred=True, shared=True, updated_at=base)

        for view in ("starred", "shared", "recent"):
            with self.subTest(view=view):
                self.assertEqual([x.id for x in self.views.select_view(view, "u1")], [kept.id])

    def test_recent_fills_limit_past_hidden_records(self) -> None:
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        views = ViewFilter(self.store, TreeResolver(self.store), recent_limit=2)
        archive = self._folder("Archive", trashed=True, updated_at=base)
        older = [self._file(f"f{i}", updated_at=base + timedelta(minutes=i)) for i in range(2)]
        for i in range(3):
            self._file(f"late{i}", archive.id, updated_at=base + timedelta(days=1, minutes=i))

        self.assertEqual(
            [x.id for x in views.select_view("recent", "u1")], [older[1].id, older[0].id]
        )

    def test_recent_limit_configurable(self) -> None:
        views = ViewFilter(self.store, TreeResolver(self.store), recent_limit=0)
        self._file("a.txt")
        self.assertEqual(views.select_view("recent", "u1"), [])

        with self.assertRaises(ValueError):
            ViewFilter(self.store, TreeResolver(self.store), recent_limit=-1)

    def test_unknown_view(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            self.views.select_view("archive", "u1")

    def test_cache_serves_repeat_reads(self) -> None:
        cache = ViewCache()
        views = ViewFilter(self.store, TreeResolver(self.store), cache=cache)
        self._file("a.txt", starred=True)

        first = views.select_view("starred", "u1")
        self._file("b.txt", starred=True)
        second = views.select_view("starred", "u1")
        self.assertEqual([x.id for x in first], [x.id for x in second])
        self.assertEqual(cache.hits, 1)

        cache.invalidate("u1")
        self.assertEqual(len(views.select_view("starred", "u1")), 2)

    def test_cache_key_ignores_folder_for_unscoped_views(self) -> None:
        cache = ViewCache()
        views = ViewFilter(self.store, TreeResolver(self.store), cache=cache)
        views.select_view("trash", "u1", "some-folder")
        views.select_view("trash", "u1")
        self.assertEqual(cache.hits, 1)
        self.assertIn(("u1", "trash", None), cache)


if __name__ == "__main__":
    unittest.main()
