import unittest
from unittest.mock import patch

from clouddrive.errors import CorruptTreeError
from clouddrive.models import Item, ItemKind, PathEntry
from clouddrive.store import InMemoryItemStore
from clouddrive.tree import ROOT_PATH_ID, TreeResolver


def _folder(store: InMemoryItemStore, name: str, parent: Item | None = None) -> Item:
    return store.insert(Item.new_folder(name, "u1", parent.id if parent else None))


def _file(store: InMemoryItemStore, name: str, parent: Item | None = None) -> Item:
    return store.insert(
        Item.new_file(
            name, "u1", blob_ref=f"u1/{name}", size_bytes=1, parent_id=parent.id if parent else None
        )
    )


class TestTreeResolverPaths(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryItemStore()
        self.tree = TreeResolver(self.store)

    def test_root_resolves_to_empty_path(self) -> None:
        self.assertEqual(self.tree.resolve_path(None, "u1"), [])

    def test_path_length_is_depth_plus_one(self) -> None:
        parent = None
        chain = []
        for i in range(5):
            parent = _folder(self.store, f"d{i}", parent)
            chain.append(parent)

        for depth, folder in enumerate(chain):
            path = self.tree.resolve_path(folder.id, "u1")
            self.assertEqual(len(path), depth + 1)
            self.assertEqual(path[-1].id, folder.id)
            self.assertEqual([p.name for p in path], [f"d{i}" for i in range(depth + 1)])

    def test_breadcrumbs_prepend_root_label(self) -> None:
        docs = _folder(self.store, "Docs")
        crumbs = self.tree.breadcrumbs(docs.id, "u1")
        self.assertEqual(crumbs[0], PathEntry(id=ROOT_PATH_ID, name="My Drive"))
        self.assertEqual(crumbs[1], PathEntry(id=docs.id, name="Docs"))

        self.assertEqual(
            self.tree.breadcrumbs(None, "u1", root_label="Home"),
            [PathEntry(id=ROOT_PATH_ID, name="Home")],
        )

    def test_dangling_parent_truncates_path(self) -> None:
        orphan = self.store.insert(Item.new_folder("Orphan", "u1", parent_id="ghost"))
        child = _folder(self.store, "Child", orphan)

        with self.assertLogs("clouddrive.tree", level="WARNING"):
            path = self.tree.resolve_path(child.id, "u1")
        self.assertEqual([p.name for p in path], ["Orphan", "Child"])

    def test_other_owner_is_invisible(self) -> None:
        docs = _folder(self.store, "Docs")
        with self.assertLogs("clouddrive.tree", level="WARNING"):
            self.assertEqual(self.tree.resolve_path(docs.id, "u2"), [])

    def test_cycle_raises(self) -> None:
        a = _folder(self.store, "A")
        b = _folder(self.store, "B", a)
        self.store.update(ItemKind.FOLDER, a.id, "u1", parent_id=b.id)

        with self.assertRaises(CorruptTreeError) as ctx:
            self.tree.resolve_path(b.id, "u1")
        self.assertIn("repeated_id", ctx.exception.details)

    def test_max_depth_exceeded_raises(self) -> None:
        tree = TreeResolver(self.store, max_depth=2)
        a = _folder(self.store, "A")
        b = _folder(self.store, "B", a)
        c = _folder(self.store, "C", b)

        self.assertEqual(len(tree.resolve_path(b.id, "u1")), 2)
        with self.assertRaises(CorruptTreeError):
            tree.resolve_path(c.id, "u1")

    def test_invalid_max_depth(self) -> None:
        with self.assertRaises(ValueError):
            TreeResolver(self.store, max_depth=0)


class TestTreeResolverListing(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryItemStore()
        self.tree = TreeResolver(self.store)

    def test_list_children_folders_first_in_insertion_order(self) -> None:
        f1 = _file(self.store, "z.txt")
        d1 = _folder(self.store, "B")
        f2 = _file(self.store, "a.txt")
        d2 = _folder(self.store, "A")

        listing = self.tree.list_children(None, "u1")
        self.assertEqual([x.id for x in listing.folders], [d1.id, d2.id])
        self.assertEqual([x.id for x in listing.files], [f1.id, f2.id])
        self.assertEqual([x.id for x in listing.items], [d1.id, d2.id, f1.id, f2.id])

    def test_list_children_excludes_trashed_and_other_parents(self) -> None:
        docs = _folder(self.store, "Docs")
        inside = _file(self.store, "in.txt", docs)
        gone = _file(self.store, "gone.txt", docs)
        self.store.update(ItemKind.FILE, gone.id, "u1", trashed=True)
        _file(self.store, "root.txt")

        listing = self.tree.list_children(docs.id, "u1")
        self.assertEqual([x.id for x in listing.items], [inside.id])

    def test_list_children_of_trashed_subtree_is_empty(self) -> None:
        docs = _folder(self.store, "Docs")
        sub = _folder(self.store, "Sub", docs)
        _file(self.store, "x.txt", sub)
        self.store.update(ItemKind.FOLDER, docs.id, "u1", trashed=True)

        self.assertTrue(self.tree.in_trashed_subtree(sub.id, "u1"))
        self.assertEqual(len(self.tree.list_children(sub.id, "u1")), 0)

    def test_iter_descendants_breadth_first_with_depth(self) -> None:
        docs = _folder(self.store, "Docs")
        sub = _folder(self.store, "Sub", docs)
        f1 = _file(self.store, "a.txt", docs)
        f2 = _file(self.store, "b.txt", sub)

        walked = [(item.id, depth) for item, depth in self.tree.iter_descendants(docs.id, "u1")]
        self.assertEqual(walked, [(sub.id, 1), (f1.id, 1), (f2.id, 2)])

    def test_iter_descendants_detects_cycle(self) -> None:
        a = _folder(self.store, "A")
        b = _folder(self.store, "B", a)
        self.store.update(ItemKind.FOLDER, a.id, "u1", parent_id=b.id)

        with self.assertRaises(CorruptTreeError):
            list(self.tree.iter_descendants(a.id, "u1"))

    def test_drop_trashed_subtrees_checks_each_parent_once(self) -> None:
        docs = _folder(self.store, "Docs")
        sub = _folder(self.store, "Sub", docs)
        hidden = [_file(self.store, f"h{i}.txt", sub) for i in range(3)]
        top = _file(self.store, "top.txt")
        self.store.update(ItemKind.FOLDER, docs.id, "u1", trashed=True)

        with patch.object(
            self.tree, "in_trashed_subtree", wraps=self.tree.in_trashed_subtree
        ) as check:
            kept = self.tree.drop_trashed_subtrees([*hidden, top], "u1")

        self.assertEqual([x.id for x in kept], [top.id])
        check.assert_called_once_with(sub.id, "u1")

    def test_is_ancestor(self) -> None:
        a = _folder(self.store, "A")
        b = _folder(self.store, "B", a)
        c = _folder(self.store, "C")

        self.assertTrue(self.tree.is_ancestor(a.id, b.id, "u1"))
        self.assertTrue(self.tree.is_ancestor(b.id, b.id, "u1"))
        self.assertFalse(self.tree.is_ancestor(b.id, a.id, "u1"))
        self.assertFalse(self.tree.is_ancestor(a.id, c.id, "u1"))
        self.assertFalse(self.tree.is_ancestor(a.id, None, "u1"))


if __name__ == "__main__":
    unittest.main()
