import tempfile
import unittest
from pathlib import Path

from bucket_sync.storage import LocalStorage


class LocalStorageTests(unittest.TestCase):
    def test_reads_file_size_and_existence(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "a.bin"
            path.write_bytes(b"12345")
            storage = LocalStorage()

            self.assertTrue(storage.exists(path))
            self.assertFalse(storage.exists(Path(tmp) / "missing"))
            self.assertEqual(5, storage.size_of(path))

    def test_directory_has_no_file_size(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(IsADirectoryError):
                LocalStorage().size_of(tmp)

    def test_create_directories_for_parent(self):
        with tempfile.TemporaryDirectory() as tmp:
            storage = LocalStorage()
            target = Path(tmp) / "x" / "y" / "z.txt"

            storage.create_directories(storage.parent_directory_of(target))
            storage.create_directories(storage.parent_directory_of(target))

            self.assertTrue((Path(tmp) / "x" / "y").is_dir())


if __name__ == "__main__":
    unittest.main()
