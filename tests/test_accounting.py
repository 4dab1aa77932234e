import unittest

from clouddrive.accounting import StorageAccountant
from clouddrive.errors import QuotaExceededError
from clouddrive.models import Item, ItemKind
from clouddrive.store import InMemoryItemStore
from clouddrive.util.units import GIB


class TestStorageAccountant(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryItemStore()
        self.accountant = StorageAccountant(self.store)

    def _file(self, name: str, size: int, mime, owner: str = "u1") -> Item:
        return self.store.insert(
            Item.new_file(name, owner, blob_ref=f"{owner}/{name}", size_bytes=size, mime_type=mime)
        )

    def test_empty_owner(self) -> None:
        usage = self.accountant.compute_usage("u1")
        self.assertEqual(usage.used_bytes, 0)
        self.assertEqual(usage.total_bytes, 15 * GIB)
        self.assertEqual(
            [(c.category, c.label, c.bytes) for c in usage.breakdown],
            [
                ("image", "Images", 0),
                ("video", "Videos", 0),
                ("audio", "Audio", 0),
                ("document", "Documents", 0),
                ("other", "Others", 0),
            ],
        )

    def test_sums_non_trashed_files_by_category(self) -> None:
        self._file("a.png", 100, "image/png")
        self._file("b.mp4", 200, "video/mp4")
        self._file("c.pdf", 30, "application/pdf")
        self._file("d.bin", 7, None)
        gone = self._file("e.png", 1000, "image/png")
        self.store.update(ItemKind.FILE, gone.id, "u1", trashed=True)
        self._file("f.png", 5000, "image/png", owner="u2")
        self.store.insert(Item.new_folder("Docs", "u1"))

        usage = self.accountant.compute_usage("u1")
        self.assertEqual(usage.used_bytes, 337)
        self.assertEqual(usage.file_count, 4)
        self.assertEqual(usage.folder_count, 1)
        self.assertEqual(usage.used_bytes, sum(c.bytes for c in usage.breakdown))
        by_cat = {c.category: c.bytes for c in usage.breakdown}
        self.assertEqual(
            by_cat, {"image": 100, "video": 200, "audio": 0, "document": 30, "other": 7}
        )

    def test_ignores_live_files_under_trashed_folder(self) -> None:
        folder = self.store.insert(Item.new_folder("Archive", "u1"))
        self.store.update(ItemKind.FOLDER, folder.id, "u1", trashed=True)
        inner = self.store.insert(Item.new_folder("Inner", "u1", folder.id))
        self.store.insert(
            Item.new_file("late.txt", "u1", blob_ref="u1/late", size_bytes=5, parent_id=inner.id)
        )

        usage = self.accountant.compute_usage("u1")
        self.assertEqual(usage.used_bytes, 0)
        self.assertEqual(usage.file_count, 0)
        self.assertEqual(usage.folder_count, 0)

    def test_check_quota(self) -> None:
        accountant = StorageAccountant(self.store, total_bytes=100)
        self._file("a", 60, None)
        accountant.check_quota("u1", 40)

        with self.assertRaises(QuotaExceededError) as ctx:
            accountant.check_quota("u1", 41)
        self.assertEqual(ctx.exception.details["used_bytes"], 60)
        self.assertEqual(ctx.exception.details["required_bytes"], 41)

    def test_zero_total_disables_quota(self) -> None:
        accountant = StorageAccountant(self.store, total_bytes=0)
        accountant.check_quota("u1", 10 ** 12)

        with self.assertRaises(ValueError):
            StorageAccountant(self.store, total_bytes=-1)


if __name__ == "__main__":
    unittest.main()
