import unittest
import uuid

from clouddrive.util.ids import new_blob_path, new_item_id, new_share_id


class TestUtilIds(unittest.TestCase):
    def test_ids_are_uuid4_strings(self) -> None:
        for value in (new_item_id(), new_share_id()):
            self.assertEqual(uuid.UUID(value).version, 4)

    def test_ids_are_unique(self) -> None:
        self.assertNotEqual(new_item_id(), new_item_id())

    def test_blob_path_is_owner_scoped_and_unique(self) -> None:
        a = new_blob_path("u1", "a.txt")
        b = new_blob_path("u1", "a.txt")
        self.assertTrue(a.startswith("u1/"))
        self.assertTrue(a.endswith("-a.txt"))
        self.assertNotEqual(a, b)

    def test_blob_path_sanitizes_slashes(self) -> None:
        path = new_blob_path("u1", "dir/evil.txt")
        self.assertEqual(path.count("/"), 1)
        self.assertTrue(path.endswith("-dir_evil.txt"))


if __name__ == "__main__":
    unittest.main()
