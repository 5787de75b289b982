"""Integration tests for the scan / hash / changes / update protocol."""

import json
from pathlib import Path

import pytest

from codemap.config import ScanConfig
from codemap.manifest import IndexStore, IndexWriteError, get_index_path
from codemap.tracker import FolderError, FolderTracker, leaf_first
from tests.conftest import write_files


class TestFolderResolution:
    """Tests for mapping folder arguments to index keys."""

    def test_root_key(self, tracker: FolderTracker, project: Path):
        path, key = tracker.resolve_folder(None)

        assert path == project.resolve()
        assert key == "."
        assert tracker.resolve_folder(".")[1] == "."

    def test_nested_key_is_posix(self, tracker: FolderTracker):
        assert tracker.resolve_folder("src/utils")[1] == "src/utils"

    def test_absolute_path(self, tracker: FolderTracker, project: Path):
        assert tracker.resolve_folder(project / "src")[1] == "src"

    def test_missing_folder(self, tracker: FolderTracker):
        with pytest.raises(FolderError):
            tracker.resolve_folder("does/not/exist")

    def test_file_is_not_a_folder(self, tracker: FolderTracker):
        with pytest.raises(FolderError):
            tracker.resolve_folder("index.ts")

    def test_outside_root(self, tracker: FolderTracker, tmp_path: Path):
        outside = tmp_path / "elsewhere"
        outside.mkdir()

        with pytest.raises(FolderError):
            tracker.resolve_folder(outside)


class TestReadOnlyOperations:
    """scan, hash and changes never touch the index."""

    def test_scan(self, tracker: FolderTracker):
        assert tracker.scan() == ["index.ts", "src/app.ts", "src/utils/strings.ts"]
        assert tracker.scan("src") == ["app.ts", "utils/strings.ts"]

    def test_hash(self, tracker: FolderTracker, project: Path):
        result = tracker.hash("src")

        assert result.folder_key == "src"
        assert list(result.digests()) == ["app.ts", "utils/strings.ts"]
        assert not get_index_path(project).exists()

    def test_first_run_changes(self, tracker: FolderTracker, project: Path):
        report = tracker.changes()

        assert report.has_changes
        assert report.file_count == 3
        assert report.changes.changed == ["index.ts", "src/app.ts", "src/utils/strings.ts"]
        assert not get_index_path(project).exists()

    def test_changes_does_not_write(self, tracker: FolderTracker, project: Path):
        tracker.update("src")
        before = get_index_path(project).read_bytes()

        (project / "src" / "app.ts").write_text("changed")
        tracker.changes("src")
        tracker.changes("src/utils")

        assert get_index_path(project).read_bytes() == before

    def test_ignored_paths_never_reported(self, project: Path):
        write_files(project, {"src/generated/api.ts": "gen"})
        tracker = FolderTracker(project, ScanConfig(extensions=[".ts"], exclude_patterns=["generated"]))

        assert "node_modules/lib/index.ts" not in tracker.scan()
        assert "src/generated/api.ts" not in tracker.scan()
        assert "src/generated/api.ts" not in tracker.hash().digests()
        assert "src/generated/api.ts" not in tracker.changes().changes.changed
        assert "src/generated/api.ts" not in tracker.update().changes.changed


class TestUpdate:
    """Tests for committing folders."""

    @pytest.fixture
    def ab_folder(self, tmp_path: Path) -> Path:
        root = tmp_path / "ab"
        write_files(root, {"a.ts": "1", "b.ts": "2"})
        return root

    def test_scenario_edit_then_settle(self, ab_folder: Path):
        tracker = FolderTracker(ab_folder, ScanConfig(extensions=["ts"]))

        first = tracker.update()
        assert first.updated
        assert first.changes.changed == ["a.ts", "b.ts"]

        (ab_folder / "b.ts").write_text("3")
        second = tracker.update()
        assert second.updated
        assert second.changes.changed == ["b.ts"]
        assert second.changes.modified == ["b.ts"]

        third = tracker.update()
        assert not third.updated
        assert third.changes.changed == []

    def test_idempotent(self, tracker: FolderTracker):
        assert tracker.update().updated
        again = tracker.update()

        assert not again.updated
        assert not again.changes.has_changes

    def test_round_trip(self, tracker: FolderTracker):
        tracker.update("src")
        report = tracker.changes("src")

        assert not report.has_changes
        assert report.changes.changed == []

    def test_deletion_flips_digest(self, ab_folder: Path):
        tracker = FolderTracker(ab_folder, ScanConfig(extensions=[".ts"]))
        tracker.update()
        before = tracker.store.load().get(".").composite_digest

        (ab_folder / "a.ts").unlink()
        result = tracker.update()

        assert result.updated
        assert result.changes.removed == ["a.ts"]
        assert result.changes.changed == ["a.ts"]
        assert tracker.store.load().get(".").composite_digest != before

    def test_isolation(self, tracker: FolderTracker, project: Path):
        tracker.update("src/utils")
        utils_before = json.loads(get_index_path(project).read_text())["folders"]["src/utils"]

        (project / "src" / "app.ts").write_text("changed")
        tracker.update("src")

        data = json.loads(get_index_path(project).read_text())
        assert data["folders"]["src/utils"] == utils_before
        assert set(data["folders"]) == {"src", "src/utils"}

    def test_entry_matches_scan(self, tracker: FolderTracker):
        tracker.update("src")
        entry = tracker.store.load().get("src")
        result = tracker.hash("src")

        assert entry.composite_digest == result.composite_digest
        assert [f.path for f in entry.files] == ["app.ts", "utils/strings.ts"]

    def test_malformed_entry_is_replaced(self, tracker: FolderTracker, project: Path):
        get_index_path(project).write_text(json.dumps({"folders": {"src": {"bad": 1}}}))

        result = tracker.update("src")

        assert result.updated
        assert result.changes.added == ["app.ts", "utils/strings.ts"]
        assert tracker.store.load().get("src") is not None

    def test_corrupt_index_is_cold_start(self, tracker: FolderTracker, project: Path):
        get_index_path(project).write_text("garbage")

        result = tracker.update()

        assert result.updated
        assert result.changes.added == ["index.ts", "src/app.ts", "src/utils/strings.ts"]

    def test_write_failure_propagates(self, project: Path, tmp_path: Path):
        store = IndexStore(tmp_path / "no_such_dir" / ".codemap.json")
        tracker = FolderTracker(project, ScanConfig(extensions=[".ts"]), store=store)

        with pytest.raises(IndexWriteError):
            tracker.update()

    def test_update_many_commits_leaf_first(self, tracker: FolderTracker, project: Path):
        results = tracker.update_many([".", "src", "src/utils"])

        assert [r.folder_key for r in results] == ["src/utils", "src", "."]
        assert all(r.updated for r in results)
        assert tracker.store.load().keys() == [".", "src", "src/utils"]

    def test_parallel_hashing_same_digest(self, project: Path):
        sequential = FolderTracker(project, ScanConfig(extensions=[".ts"]))
        parallel = FolderTracker(project, ScanConfig(extensions=[".ts"], hash_workers=4))

        assert sequential.hash().composite_digest == parallel.hash().composite_digest


class TestLeafFirst:
    """Tests for dependency ordering of folder keys."""

    def test_children_before_parents(self):
        order = leaf_first([".", "src", "src/a/b", "src/a", "lib"])

        assert order == ["src/a/b", "src/a", "lib", "src", "."]

    def test_duplicates_removed(self):
        assert leaf_first(["src", "src", "."]) == ["src", "."]
