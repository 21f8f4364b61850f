import os
import tempfile
import unittest
from pathlib import Path

from src.common.config import ChecksumConfig
from src.common.errors import InvalidDirectoryCycle, UnreadableDirectory
from src.walker.walker import ExclusionRules, exclusion_rules, walk


def _touch(path: Path, content: bytes = b"") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


class WalkTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self.tmpdir.name)
        _touch(self.root / "b.txt", b"bb")
        _touch(self.root / "a.txt", b"a")
        _touch(self.root / "sub" / "c.log", b"ccc")
        _touch(self.root / "sub" / "deeper" / "d.txt")
        _touch(self.root / ".git" / "HEAD", b"ref")

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def _paths(self, *args, **kwargs):
        return [entry.path for entry in walk(self.root, *args, **kwargs)]

    def test_yields_relative_slash_paths_in_stable_order(self) -> None:
        first = self._paths()
        self.assertEqual(
            sorted(first),
            [".git/HEAD", "a.txt", "b.txt", "sub/c.log", "sub/deeper/d.txt"],
        )
        self.assertEqual(first, self._paths())

    def test_entries_carry_size_and_absolute_path(self) -> None:
        entries = {entry.path: entry for entry in walk(self.root)}
        self.assertEqual(entries["sub/c.log"].size, 3)
        self.assertEqual(entries["sub/c.log"].absolute.read_bytes(), b"ccc")

    def test_returns_lazy_iterator(self) -> None:
        iterator = walk(self.root)
        self.assertNotIsInstance(iterator, (list, tuple))
        self.assertIs(iter(iterator), iterator)
        self.assertTrue(next(iterator).path)

    def test_glob_and_directory_exclusions(self) -> None:
        paths = self._paths([".git", "*.log"])
        self.assertEqual(sorted(paths), ["a.txt", "b.txt", "sub/deeper/d.txt"])

    def test_exact_path_and_prefix_forms(self) -> None:
        paths = self._paths(["./sub/deeper/", "b.txt"])
        self.assertEqual(sorted(paths), [".git/HEAD", "a.txt", "sub/c.log"])

    def test_missing_root_is_fatal(self) -> None:
        with self.assertRaises(UnreadableDirectory):
            walk(self.root / "nope")

    def test_file_root_is_fatal(self) -> None:
        with self.assertRaises(UnreadableDirectory):
            walk(self.root / "a.txt")

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    def test_symlinked_directory_is_followed(self) -> None:
        target = Path(tempfile.mkdtemp(dir=self.root.parent))
        try:
            _touch(target / "linked.txt", b"x")
            os.symlink(target, self.root / "link")
            self.assertIn("link/linked.txt", self._paths())
        finally:
            (target / "linked.txt").unlink()
            target.rmdir()

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    def test_symlink_cycle_is_reported_not_followed(self) -> None:
        os.symlink(self.root / "sub", self.root / "sub" / "deeper" / "loop")
        issues = []
        paths = self._paths(issues=issues)
        self.assertEqual(paths.count("sub/c.log"), 1)
        self.assertEqual(len(issues), 1)
        self.assertEqual(issues[0].path, "sub/deeper/loop")
        self.assertIsInstance(issues[0].error, InvalidDirectoryCycle)

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    def test_dangling_symlink_is_skipped(self) -> None:
        os.symlink(self.root / "gone.txt", self.root / "dangling")
        self.assertNotIn("dangling", self._paths())

    @unittest.skipIf(not hasattr(os, "geteuid") or os.geteuid() == 0, "permission checks need a non-root user")
    def test_unreadable_subdirectory_is_skipped(self) -> None:
        locked = self.root / "locked"
        _touch(locked / "secret.txt")
        locked.chmod(0)
        try:
            issues = []
            paths = self._paths(issues=issues)
            self.assertNotIn("locked/secret.txt", paths)
            self.assertIn("a.txt", paths)
            self.assertEqual([issue.path for issue in issues], ["locked"])
            self.assertIsInstance(issues[0].error, UnreadableDirectory)
        finally:
            locked.chmod(0o755)


class ExclusionRulesTests(unittest.TestCase):
    def test_basename_patterns_apply_at_any_depth(self) -> None:
        rules = ExclusionRules(["*.tmp", "build"])
        self.assertTrue(rules.matches("x.tmp"))
        self.assertTrue(rules.matches("a/b/x.tmp"))
        self.assertTrue(rules.matches("a/build"))
        self.assertFalse(rules.matches("a/builder"))

    def test_slash_patterns_anchor_at_root(self) -> None:
        rules = ExclusionRules(["docs/*.md"])
        self.assertTrue(rules.matches("docs/readme.md"))
        self.assertFalse(rules.matches("readme.md"))
        self.assertFalse(rules.matches("other/docs/readme.md"))

    def test_manifest_inside_root_is_excluded(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = ChecksumConfig(mode="generate", root=Path(tmp), manifest=str(Path(tmp) / "sums" / "c.txt"))
            self.assertTrue(exclusion_rules(config).matches("sums/c.txt"))
            outside = ChecksumConfig(mode="generate", root=Path(tmp) / "sums", manifest=str(Path(tmp) / "c.txt"))
            self.assertFalse(exclusion_rules(outside))
            stdio = ChecksumConfig(mode="generate", root=Path(tmp), manifest="-")
            self.assertFalse(exclusion_rules(stdio))

    def test_manifest_path_is_matched_literally(self) -> None:
        rules = ExclusionRules(["*.log"], exact=["checksums.txt", "sums[1].txt"])
        self.assertTrue(rules.matches("checksums.txt"))
        self.assertFalse(rules.matches("sub/checksums.txt"))
        self.assertTrue(rules.matches("sums[1].txt"))
        self.assertFalse(rules.matches("sums1.txt"))
        self.assertTrue(rules.matches("x.log"))

    def test_manifest_at_root_does_not_exclude_nested_namesakes(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            _touch(root / "checksums.txt")
            _touch(root / "sub" / "checksums.txt")
            config = ChecksumConfig(mode="generate", root=root, manifest=str(root / "checksums.txt"))
            paths = [entry.path for entry in walk(root, exclusion_rules(config))]
            self.assertEqual(paths, ["sub/checksums.txt"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
