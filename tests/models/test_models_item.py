import unittest

from clouddrive.models.item import Item, ItemKind, Listing, split_by_kind


class TestModelsItem(unittest.TestCase):
    def test_new_folder_defaults(self) -> None:
        folder = Item.new_folder("Docs", "u1")
        self.assertTrue(folder.is_folder)
        self.assertIsNone(folder.parent_id)
        self.assertFalse(folder.starred)
        self.assertFalse(folder.trashed)
        self.assertIsNone(folder.trash_root_id)
        self.assertEqual(folder.created_at, folder.updated_at)

    def test_new_file_requires_blob(self) -> None:
        f = Item.new_file("a.txt", "u1", blob_ref="u1/x-a.txt", size_bytes=3)
        self.assertTrue(f.is_file)
        self.assertEqual(f.size_bytes, 3)

        with self.assertRaises(ValueError):
            Item(id="f", name="a.txt", kind=ItemKind.FILE, owner_id="u1")

    def test_kind_accepts_string(self) -> None:
        folder = Item(id="x", name="X", kind="folder", owner_id="u1")
        self.assertIs(folder.kind, ItemKind.FOLDER)

    def test_validation(self) -> None:
        with self.assertRaises(ValueError):
            Item.new_folder("   ", "u1")
        with self.assertRaises(ValueError):
            Item.new_folder("A", "")
        with self.assertRaises(ValueError):
            Item(id="x", name="X", kind=ItemKind.FOLDER, owner_id="u1", parent_id="x")
        with self.assertRaises(ValueError):
            Item(id="x", name="X", kind=ItemKind.FOLDER, owner_id="u1", blob_ref="b")
        with self.assertRaises(ValueError):
            Item(id="x", name="X", kind=ItemKind.FOLDER, owner_id="u1", size_bytes=10)
        with self.assertRaises(ValueError):
            Item.new_file("a", "u1", blob_ref="b", size_bytes=-1)

    def test_with_changes_returns_copy(self) -> None:
        folder = Item.new_folder("Docs", "u1")
        starred = folder.with_changes(starred=True)
        self.assertTrue(starred.starred)
        self.assertFalse(folder.starred)
        self.assertEqual(starred.id, folder.id)

    def test_listing_and_split(self) -> None:
        f1 = Item.new_file("a", "u1", blob_ref="b1", size_bytes=1)
        d1 = Item.new_folder("D", "u1")
        f2 = Item.new_file("c", "u1", blob_ref="b2", size_bytes=1)

        listing = split_by_kind([f1, d1, f2])
        self.assertEqual([x.id for x in listing.folders], [d1.id])
        self.assertEqual([x.id for x in listing.files], [f1.id, f2.id])
        self.assertEqual([x.id for x in listing.items], [d1.id, f1.id, f2.id])
        self.assertEqual(len(listing), 3)
        self.assertEqual(len(Listing()), 0)


if __name__ == "__main__":
    unittest.main()
