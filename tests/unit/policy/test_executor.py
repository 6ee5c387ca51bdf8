"""Unit tests for the trash executor."""

import os
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from conftest import RecordingBackend, write
from safecmd.policy.executor import (
    FallbackTrashBackend,
    Send2TrashBackend,
    TrashExecutor,
    default_backend,
    execute,
    unique_destination,
)
from safecmd.policy.models import OperationPlan, RootPlan, TrashStatus
from safecmd.policy.resolver import GITIGNORE_FILENAME, ProtectionResolver, ResolutionContext
from safecmd.policy.walker import RecursiveProtectionWalker


def _plan(
    context: ResolutionContext,
    root: Path,
    recursive: bool = True,
    force: bool = False,
) -> RootPlan:
    walker = RecursiveProtectionWalker(ProtectionResolver(context))
    return walker.plan(root, recursive=recursive, force=force)


class TestSend2TrashBackend:
    """Tests for Send2TrashBackend."""

    def test_delegates_to_send2trash(self, tmp_path: Path) -> None:
        """Moves are delegated to send2trash with a string path."""
        path = tmp_path / "file.txt"

        with patch("safecmd.policy.executor.send2trash") as mock_send:
            Send2TrashBackend().move_to_trash(path)

        mock_send.assert_called_once_with(str(path))

    def test_supports_tree_moves(self) -> None:
        """The system trash moves directories with their contents."""
        assert Send2TrashBackend.supports_tree_moves is True


class TestExecuteFiles:
    """Tests for executing single-path plans."""

    def test_moves_file(
        self, workspace: Path, context: ResolutionContext, backend: RecordingBackend
    ) -> None:
        """An approved file is moved to the trash."""
        path = write(workspace / "notes.txt")
        plan = OperationPlan(roots=[_plan(context, path, recursive=False)])

        results = TrashExecutor(backend).execute(plan)

        assert [r.status for r in results] == [TrashStatus.MOVED]
        assert backend.moved == [path]
        assert not path.exists()

    def test_missing_without_force_fails(
        self, workspace: Path, context: ResolutionContext, backend: RecordingBackend
    ) -> None:
        """A missing path fails without force."""
        plan = OperationPlan(roots=[_plan(context, workspace / "missing.txt", recursive=False)])

        results = TrashExecutor(backend).execute(plan)

        assert results[0].failed
        assert "No such file or directory" in (results[0].error or "")

    def test_missing_with_force_skipped(
        self, workspace: Path, context: ResolutionContext, backend: RecordingBackend
    ) -> None:
        """A missing path is skipped with force."""
        root_plan = _plan(context, workspace / "missing.txt", recursive=False, force=True)

        results = TrashExecutor(backend).execute(OperationPlan(roots=[root_plan], force=True))

        assert results[0].skipped
        assert backend.moved == []

    def test_vanished_between_plan_and_move(
        self, workspace: Path, context: ResolutionContext, backend: RecordingBackend
    ) -> None:
        """A path removed after planning is reported as missing."""
        path = write(workspace / "notes.txt")
        plan = OperationPlan(roots=[_plan(context, path, recursive=False)])
        path.unlink()

        results = TrashExecutor(backend).execute(plan)

        assert results[0].failed

    def test_backend_failure_recorded(
        self, workspace: Path, context: ResolutionContext, backend: RecordingBackend
    ) -> None:
        """A failing move is recorded and does not abort siblings."""
        first = write(workspace / "a.txt")
        second = write(workspace / "b.txt")
        backend.fail_on.add(first)
        plan = OperationPlan(
            roots=[_plan(context, first, recursive=False), _plan(context, second, recursive=False)]
        )

        results = TrashExecutor(backend).execute(plan)

        assert results[0].failed
        assert results[0].error == f"failed to remove '{first}': Permission denied"
        assert results[1].moved
        assert first.exists()
        assert not second.exists()

    def test_dry_run_moves_nothing(
        self, workspace: Path, context: ResolutionContext, backend: RecordingBackend
    ) -> None:
        """Dry-run reports moves without calling the backend."""
        path = write(workspace / "notes.txt")
        plan = OperationPlan(roots=[_plan(context, path, recursive=False)])

        results = TrashExecutor(backend, dry_run=True).execute(plan)

        assert results[0].moved
        assert results[0].dry_run is True
        assert backend.moved == []
        assert path.exists()


class TestExecuteTrees:
    """Tests for executing directory plans."""

    def test_intact_tree_moved_through_root(
        self, workspace: Path, context: ResolutionContext, backend: RecordingBackend
    ) -> None:
        """An intact tree is moved in one operation."""
        root = workspace / "tree"
        write(root / "a" / "1.txt")
        write(root / "b.txt")
        plan = OperationPlan(roots=[_plan(context, root)])

        results = TrashExecutor(backend).execute(plan)

        assert backend.moved == [root]
        assert all(r.moved for r in results)
        assert len(results) == 4
        assert results[1].reason == f"moved with {root}"
        assert not root.exists()

    def test_intact_tree_file_backend_deepest_first(
        self, workspace: Path, context: ResolutionContext, file_backend: RecordingBackend
    ) -> None:
        """Backends without tree moves get children before parents."""
        root = workspace / "tree"
        write(root / "a" / "1.txt")
        write(root / "b.txt")
        plan = OperationPlan(roots=[_plan(context, root)])

        results = TrashExecutor(file_backend).execute(plan)

        assert file_backend.moved == [root / "b.txt", root / "a" / "1.txt", root / "a", root]
        assert [r.path for r in results] == [root, root / "a", root / "a" / "1.txt", root / "b.txt"]
        assert all(r.moved for r in results)

    def test_forced_tree_keeps_protected_entries(
        self, workspace: Path, context: ResolutionContext, backend: RecordingBackend
    ) -> None:
        """Excluded entries stay in place together with every ancestor."""
        root = workspace / "project"
        write(root / GITIGNORE_FILENAME, ".env\n")
        write(root / "src" / "main.py")
        secret = write(root / "src" / ".env")
        write(root / "README.md")
        plan = OperationPlan(roots=[_plan(context, root, force=True)], force=True)

        results = TrashExecutor(backend).execute(plan)
        by_path = {r.path: r for r in results}

        assert secret.exists()
        assert by_path[secret].status == TrashStatus.SKIPPED
        assert by_path[root / "src"].status == TrashStatus.SKIPPED
        assert by_path[root].status == TrashStatus.SKIPPED
        assert by_path[root / "src" / "main.py"].moved
        assert by_path[root / "README.md"].moved
        assert by_path[root / GITIGNORE_FILENAME].moved
        assert root not in backend.moved

    def test_failed_child_blocks_parent(
        self, workspace: Path, context: ResolutionContext, file_backend: RecordingBackend
    ) -> None:
        """A directory is not moved when one of its children failed."""
        root = workspace / "tree"
        stuck = write(root / "stuck.txt")
        write(root / "ok.txt")
        file_backend.fail_on.add(stuck)
        plan = OperationPlan(roots=[_plan(context, root)])

        results = TrashExecutor(file_backend).execute(plan)
        by_path = {r.path: r for r in results}

        assert by_path[stuck].failed
        assert by_path[root / "ok.txt"].moved
        assert by_path[root].skipped
        assert root.exists()

    def test_failed_tree_root_reports_every_entry(
        self, workspace: Path, context: ResolutionContext, backend: RecordingBackend
    ) -> None:
        """When the root of an intact tree fails, its descendants are skipped."""
        root = workspace / "tree"
        write(root / "a" / "1.txt")
        write(root / "b.txt")
        backend.fail_on.add(root)
        root_plan = _plan(context, root)

        results = TrashExecutor(backend).execute(OperationPlan(roots=[root_plan]))

        assert [r.path for r in results] == [entry.path for entry in root_plan.entries]
        assert results[0].failed
        assert all(r.skipped for r in results[1:])
        assert results[1].reason == f"{root} was not moved"
        assert (root / "a" / "1.txt").exists()

    def test_module_level_execute(
        self, workspace: Path, context: ResolutionContext, backend: RecordingBackend
    ) -> None:
        """execute() runs a plan with a fresh executor."""
        path = write(workspace / "notes.txt")

        results = execute(OperationPlan(roots=[_plan(context, path, recursive=False)]), backend)

        assert results[0].moved


class TestFallbackTrashBackend:
    """Tests for FallbackTrashBackend and unique_destination."""

    def test_primary_used_when_it_succeeds(self, tmp_path: Path, backend: RecordingBackend) -> None:
        """Nothing lands in the fallback directory when the primary works."""
        path = write(tmp_path / "report.txt")
        fallback = FallbackTrashBackend(backend, tmp_path / "fallback")

        fallback.move_to_trash(path)

        assert backend.moved == [path]
        assert not (tmp_path / "fallback").exists()

    def test_falls_back_when_primary_fails(
        self, tmp_path: Path, backend: RecordingBackend
    ) -> None:
        """A path the primary rejects is moved into the fallback directory."""
        path = write(tmp_path / "report.txt", "data")
        backend.fail_on.add(path)
        fallback = FallbackTrashBackend(backend, tmp_path / "fallback")

        fallback.move_to_trash(path)

        assert not path.exists()
        assert (tmp_path / "fallback" / "report.txt").read_text() == "data"

    def test_name_collision_gets_suffix(self, tmp_path: Path, backend: RecordingBackend) -> None:
        """An occupied name in the fallback directory is never overwritten."""
        trash_dir = tmp_path / "fallback"
        earlier = write(trash_dir / "report.txt", "old")
        (trash_dir / "report.txt.1").symlink_to(tmp_path / "gone")
        path = write(tmp_path / "src" / "report.txt", "new")
        backend.fail_on.add(path)

        FallbackTrashBackend(backend, trash_dir).move_to_trash(path)

        assert earlier.read_text() == "old"
        assert (trash_dir / "report.txt.2").read_text() == "new"

    def test_both_moves_failing_raises(self, tmp_path: Path, backend: RecordingBackend) -> None:
        """If the fallback move fails too, both reasons are reported."""
        path = write(tmp_path / "report.txt")
        backend.fail_on.add(path)
        blocker = write(tmp_path / "fallback")

        with pytest.raises(OSError) as exc_info:
            FallbackTrashBackend(backend, blocker).move_to_trash(path)

        assert exc_info.value.strerror.startswith("Permission denied; fallback trash: ")
        assert path.exists()

    def test_both_moves_failing_recorded_by_executor(
        self, workspace: Path, tmp_path: Path, context: ResolutionContext, backend: RecordingBackend
    ) -> None:
        """The executor records a failure when no trash accepts the path."""
        path = write(workspace / "notes.txt")
        backend.fail_on.add(path)
        fallback = FallbackTrashBackend(backend, write(tmp_path / "fallback"))
        plan = OperationPlan(roots=[_plan(context, path, recursive=False)])

        results = TrashExecutor(fallback).execute(plan)

        assert results[0].failed
        assert "Permission denied; fallback trash:" in (results[0].error or "")
        assert path.exists()

    def test_missing_path_not_retried(self, tmp_path: Path) -> None:
        """A vanished path is reported as missing instead of retried."""
        primary = Mock(supports_tree_moves=True)
        primary.move_to_trash.side_effect = FileNotFoundError(2, "No such file or directory")
        fallback = FallbackTrashBackend(primary, tmp_path / "fallback")

        with pytest.raises(FileNotFoundError):
            fallback.move_to_trash(tmp_path / "ghost.txt")

        assert not (tmp_path / "fallback").exists()

    def test_unique_destination_exhausted(self, tmp_path: Path) -> None:
        """Running out of suffixes raises instead of overwriting."""
        write(tmp_path / "a.txt")
        write(tmp_path / "a.txt.1")

        with (
            patch("safecmd.policy.executor.MAX_NAME_SUFFIX", 1),
            pytest.raises(FileExistsError),
        ):
            unique_destination(tmp_path, "a.txt")

    def test_default_backend_uses_data_dir(self, tmp_path: Path) -> None:
        """The default backend falls back to the XDG data directory."""
        with patch.dict(os.environ, {"XDG_DATA_HOME": str(tmp_path)}):
            fallback = default_backend()

        assert isinstance(fallback, FallbackTrashBackend)
        assert fallback.trash_dir == tmp_path / "safecmd" / "trash"
        assert fallback.supports_tree_moves is True
