# --- tests/move_test.py ---

import errno
import os
import tempfile
import unittest
from unittest import mock

from tree_helpers import OLD_TIMESTAMP, RecordingTrash, make_old, make_tree, read_tree

from errors import AlreadyExists, FileSystemIOError, InvalidOperation, NotFound, TypeMismatch
from filesystem import FileSystemNode
import transfer_ops
from utils import path_to_uri


class MoveTest(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = os.path.realpath(self._tmp.name)
        # Trashed entries really disappear so that moves look complete.
        self.trash = RecordingTrash(remove=True)
        self.fs = FileSystemNode(trash=self.trash)

    def tearDown(self):
        self._tmp.cleanup()

    def path(self, *parts):
        return os.path.join(self.root, *parts)

    def uri(self, *parts):
        return path_to_uri(self.path(*parts))

    async def test_move_file(self):
        make_tree(self.root, {"a.txt": "content"})
        stat = await self.fs.move(self.uri("a.txt"), self.uri("b.txt"))
        self.assertEqual(stat.uri, self.uri("b.txt"))
        self.assertEqual(stat.size, len("content"))
        self.assertFalse(await self.fs.exists(self.uri("a.txt")))
        _, content = await self.fs.read_content(self.uri("b.txt"))
        self.assertEqual(content, "content")

    async def test_move_directory_creates_missing_ancestors(self):
        tree = {"x.txt": "1", "sub": {"y.txt": "2", "deeper": {"z.txt": "3"}}}
        make_tree(self.path("src"), tree)
        stat = await self.fs.move(self.uri("src"), self.uri("new", "parent", "dst"))
        self.assertTrue(stat.is_directory)
        self.assertEqual(len(stat.children), 2)
        self.assertFalse(os.path.exists(self.path("src")))
        self.assertEqual(read_tree(self.path("new", "parent", "dst")), tree)

    async def test_missing_source(self):
        with self.assertRaises(NotFound):
            await self.fs.move(self.uri("missing"), self.uri("b"))

    async def test_existing_target_without_overwrite(self):
        make_tree(self.root, {"a.txt": "a", "b.txt": "b"})
        with self.assertRaises(AlreadyExists):
            await self.fs.move(self.uri("a.txt"), self.uri("b.txt"))
        self.assertEqual(read_tree(self.root), {"a.txt": "a", "b.txt": "b"})

    async def test_overwrite_file(self):
        make_tree(self.root, {"a.txt": "a", "b.txt": "b"})
        await self.fs.move(self.uri("a.txt"), self.uri("b.txt"), overwrite=True)
        self.assertEqual(read_tree(self.root), {"b.txt": "a"})

    async def test_type_mismatch_regardless_of_overwrite(self):
        make_tree(self.root, {"file.txt": "f", "dir": {"inner.txt": "i"}})
        for overwrite in (False, True):
            with self.assertRaises(TypeMismatch):
                await self.fs.move(self.uri("file.txt"), self.uri("dir"), overwrite=overwrite)
            with self.assertRaises(TypeMismatch):
                await self.fs.move(self.uri("dir"), self.uri("file.txt"), overwrite=overwrite)
        self.assertEqual(read_tree(self.root), {"file.txt": "f", "dir": {"inner.txt": "i"}})

    async def test_move_into_itself(self):
        make_tree(self.root, {"dir": {"a.txt": "a"}})
        with self.assertRaises(InvalidOperation):
            await self.fs.move(self.uri("dir"), self.uri("dir", "inside"))
        with self.assertRaises(InvalidOperation):
            await self.fs.move(self.uri("dir"), self.uri("dir"), overwrite=True)
        self.assertEqual(read_tree(self.root), {"dir": {"a.txt": "a"}})

    async def test_empty_directory_onto_empty_directory(self):
        make_tree(self.root, {"src": {}, "dst": {}})
        make_old(self.path("dst"))
        with mock.patch.object(transfer_ops, "rename", side_effect=AssertionError("rename used")):
            stat = await self.fs.move(self.uri("src"), self.uri("dst"), overwrite=True)
        self.assertTrue(stat.is_directory)
        self.assertEqual(stat.children, ())
        self.assertGreater(stat.last_modification, OLD_TIMESTAMP * 1000)
        self.assertEqual(sorted(os.listdir(self.root)), ["dst"])
        self.assertEqual(self.trash.calls, [])

    async def test_full_directory_onto_empty_directory(self):
        tree = {"a.txt": "a", "sub": {"b.txt": "b", "empty": {}}}
        make_tree(self.path("src"), tree)
        make_tree(self.path("dst"), {})
        with mock.patch.object(transfer_ops, "rename", side_effect=AssertionError("rename used")):
            stat = await self.fs.move(self.uri("src"), self.uri("dst"), overwrite=True)
        self.assertEqual([os.path.basename(c.uri) for c in stat.children], ["a.txt", "sub"])
        self.assertEqual(read_tree(self.path("dst")), tree)
        self.assertFalse(os.path.exists(self.path("src")))
        # The source is removed the way delete() removes by default
        self.assertEqual(self.trash.trashed, [self.path("src")])

    async def test_empty_directory_onto_full_directory_fails(self):
        make_tree(self.root, {"src": {}, "dst": {"keep.txt": "k"}})
        with self.assertRaises(FileSystemIOError):
            await self.fs.move(self.uri("src"), self.uri("dst"), overwrite=True)
        self.assertEqual(read_tree(self.path("dst")), {"keep.txt": "k"})
        self.assertTrue(os.path.isdir(self.path("src")))

    async def test_move_then_stat(self):
        make_tree(self.path("src"), {"a.txt": "a"})
        before = read_tree(self.path("src"))
        await self.fs.move(self.uri("src"), self.uri("dst"))
        with self.assertRaises(NotFound):
            await self.fs.stat(self.uri("src"))
        self.assertEqual(read_tree(self.path("dst")), before)


class RenamePrimitiveTest(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = os.path.realpath(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def path(self, *parts):
        return os.path.join(self.root, *parts)

    def test_refuses_existing_target(self):
        make_tree(self.root, {"a.txt": "a", "b.txt": "b"})
        with self.assertRaises(FileExistsError):
            transfer_ops.rename(self.path("a.txt"), self.path("b.txt"))

    def test_without_ancestors(self):
        make_tree(self.root, {"a.txt": "a"})
        with self.assertRaises(FileNotFoundError):
            transfer_ops.rename(self.path("a.txt"), self.path("x", "a.txt"), create_missing_ancestors=False)

    def test_cross_device_fallback(self):
        make_tree(self.root, {"a.txt": "a", "dir": {"b.txt": "b"}, "old.txt": "old"})
        cross_device = OSError(errno.EXDEV, os.strerror(errno.EXDEV))
        with mock.patch("os.replace", side_effect=cross_device), \
                mock.patch("os.rename", side_effect=cross_device):
            transfer_ops.rename(self.path("dir"), self.path("moved"))
            transfer_ops.rename(self.path("a.txt"), self.path("old.txt"), replace_existing=True)
        self.assertEqual(read_tree(self.root), {"moved": {"b.txt": "b"}, "old.txt": "a"})

    def test_cross_device_keeps_full_target_directory(self):
        make_tree(self.root, {"src": {"new.txt": "n"}, "dst": {"stale.txt": "s"}})
        cross_device = OSError(errno.EXDEV, os.strerror(errno.EXDEV))
        with mock.patch("os.replace", side_effect=cross_device):
            with self.assertRaises(OSError) as ctx:
                transfer_ops.rename(self.path("src"), self.path("dst"), replace_existing=True)
        self.assertEqual(ctx.exception.errno, errno.ENOTEMPTY)
        self.assertEqual(read_tree(self.root), {"dst": {"stale.txt": "s"}, "src": {"new.txt": "n"}})

    def test_cross_device_replaces_empty_target_directory(self):
        make_tree(self.root, {"src": {"new.txt": "n"}, "dst": {}})
        cross_device = OSError(errno.EXDEV, os.strerror(errno.EXDEV))
        with mock.patch("os.replace", side_effect=cross_device):
            transfer_ops.rename(self.path("src"), self.path("dst"), replace_existing=True)
        self.assertEqual(read_tree(self.root), {"dst": {"new.txt": "n"}})


class CrossDeviceMoveTest(MoveTest):
    """Moves where every rename reports that source and target are on different devices."""

    def setUp(self):
        super().setUp()
        cross_device = OSError(errno.EXDEV, os.strerror(errno.EXDEV))
        patcher = mock.patch("os.replace", side_effect=cross_device)
        patcher.start()
        self.addCleanup(patcher.stop)


if __name__ == "__main__":
    unittest.main()
