"""Trash executor.

Moves the entries of an already-approved OperationPlan to the trash. Each
move is attempted independently: one failure is recorded and never aborts
its siblings.
"""

import errno
import logging
import os
import shutil
from pathlib import Path
from typing import Protocol

from send2trash import send2trash

from safecmd.core.paths import get_fallback_trash_dir
from safecmd.policy.errors import MissingPathError, TrashMoveFailedError
from safecmd.policy.models import OperationPlan, RootPlan, TrashResult, TrashStatus

logger = logging.getLogger(__name__)

# Highest numeric suffix tried when picking a fallback trash name.
MAX_NAME_SUFFIX = 9999


class TrashBackend(Protocol):
    """Primitive that moves one path to the trash.

    Attributes:
        supports_tree_moves: True if a directory is moved with its contents
            in one operation.
    """

    supports_tree_moves: bool

    def move_to_trash(self, path: Path) -> None:
        """Move a file, symlink or directory to the trash.

        Raises:
            OSError: If the path cannot be moved.
        """
        ...


class Send2TrashBackend:
    """Trash backend using the platform trash via send2trash.

    On Linux this follows the freedesktop.org trash specification; whole
    directories are moved in one operation.
    """

    supports_tree_moves = True

    def move_to_trash(self, path: Path) -> None:
        send2trash(str(path))


class FallbackTrashBackend:
    """Trash backend retrying failed moves in a private trash directory.

    Every path goes to the primary backend first. If that fails for any
    reason other than the path having vanished, the path is moved into
    trash_dir under a name that does not collide with earlier entries.

    Attributes:
        supports_tree_moves: Same as the primary backend.
        trash_dir: Directory receiving paths the primary backend rejected.
    """

    def __init__(self, primary: TrashBackend, trash_dir: Path) -> None:
        self._primary = primary
        self.trash_dir = trash_dir
        self.supports_tree_moves = primary.supports_tree_moves

    def move_to_trash(self, path: Path) -> None:
        try:
            self._primary.move_to_trash(path)
            return
        except FileNotFoundError:
            raise
        except OSError as e:
            primary_error = e

        logger.debug("System trash failed for %s: %s", path, primary_error)
        try:
            self.trash_dir.mkdir(parents=True, exist_ok=True)
            destination = unique_destination(self.trash_dir, path.name)
            shutil.move(str(path), str(destination))
        except OSError as e:
            reason = f"{_describe(primary_error)}; fallback trash: {_describe(e)}"
            raise OSError(e.errno, reason) from e

        logger.info("Moved %s to fallback trash as %s", path, destination)


def unique_destination(directory: Path, name: str) -> Path:
    """Pick a path in directory that no existing entry occupies.

    Tries name, then name.1 up to name.9999. A dangling symlink counts
    as occupied.

    Args:
        directory: Directory the path will be created in.
        name: Preferred file name.

    Returns:
        Unused path inside directory.

    Raises:
        FileExistsError: If every candidate name is taken.
    """
    candidate = directory / name
    if not os.path.lexists(candidate):
        return candidate
    for suffix in range(1, MAX_NAME_SUFFIX + 1):
        candidate = directory / f"{name}.{suffix}"
        if not os.path.lexists(candidate):
            return candidate
    raise FileExistsError(errno.EEXIST, f"no free name for {name} in {directory}")


def default_backend() -> TrashBackend:
    """System trash with the XDG data directory as fallback."""
    return FallbackTrashBackend(Send2TrashBackend(), get_fallback_trash_dir())


class TrashExecutor:
    """Executes operation plans against a trash backend.

    Attributes:
        _backend: Trash primitive used for every move.
        _dry_run: If True, report what would be moved without moving.
    """

    def __init__(self, backend: TrashBackend | None = None, dry_run: bool = False) -> None:
        """Initialize the TrashExecutor.

        Args:
            backend: Trash primitive. Defaults to the system trash with a
                fallback directory.
            dry_run: If True, report what would be moved without moving.
        """
        self._backend = backend if backend is not None else default_backend()
        self._dry_run = dry_run

    def execute(self, plan: OperationPlan) -> list[TrashResult]:
        """Move every approved entry of a plan to the trash.

        Args:
            plan: Fully resolved plan; contains no protected entries other
                than ones excluded under force.

        Returns:
            One TrashResult per plan entry, grouped by root in plan order.
        """
        results: list[TrashResult] = []
        for root_plan in plan.roots:
            results.extend(self.execute_root(root_plan, plan.force))
        return results

    def execute_root(self, root_plan: RootPlan, force: bool) -> list[TrashResult]:
        """Execute one root plan.

        An intact tree is moved through its root when the backend supports
        tree moves; descendants share the fate of the root. Exactly one
        result is returned per plan entry.
        """
        root = root_plan.root_entry
        if not root.exists:
            return [self._missing(root.path, force)]

        single = len(root_plan.entries) == 1
        if root_plan.intact and (single or self._backend.supports_tree_moves):
            result = self._move(root.path, force)
            results = [result]
            for entry in root_plan.entries[1:]:
                if result.moved:
                    results.append(
                        TrashResult(
                            path=entry.path,
                            status=TrashStatus.MOVED,
                            reason=f"moved with {root.path}",
                            dry_run=self._dry_run,
                        )
                    )
                else:
                    results.append(
                        TrashResult(
                            path=entry.path,
                            status=TrashStatus.SKIPPED,
                            reason=f"{root.path} was not moved",
                        )
                    )
            return results

        return self._execute_deepest_first(root_plan, force)

    def _execute_deepest_first(self, root_plan: RootPlan, force: bool) -> list[TrashResult]:
        """Move entries one by one, children before their directory.

        A directory is only moved once everything below it was moved, so
        excluded or failed entries are never carried into the trash.
        """
        outcomes: dict[Path, TrashResult] = {}
        blocked: set[Path] = set()

        # Reversed pre-order visits every child before its parent.
        for entry in reversed(root_plan.entries):
            if entry.skipped:
                result = TrashResult(
                    path=entry.path,
                    status=TrashStatus.SKIPPED,
                    reason=f"protected by {entry.verdict.describe()}",
                )
            elif entry.is_dir and entry.path in blocked:
                result = TrashResult(
                    path=entry.path,
                    status=TrashStatus.SKIPPED,
                    reason="contains entries that were not moved",
                )
            else:
                result = self._move(entry.path, force)

            outcomes[entry.path] = result
            if entry.depth > 0 and not result.moved:
                blocked.add(entry.path.parent)

        return [outcomes[entry.path] for entry in root_plan.entries]

    def _move(self, path: Path, force: bool) -> TrashResult:
        """Move a single path, isolating failures."""
        if not os.path.lexists(path):
            return self._missing(path, force)

        if self._dry_run:
            logger.info("Dry-run: would move %s to trash", path)
            return TrashResult(path=path, status=TrashStatus.MOVED, dry_run=True)

        try:
            self._backend.move_to_trash(path)
        except FileNotFoundError:
            return self._missing(path, force)
        except OSError as e:
            error = TrashMoveFailedError(path, e.strerror or str(e))
            logger.debug("%s", error)
            return TrashResult(path=path, status=TrashStatus.FAILED, error=str(error))

        logger.info("Moved %s to trash", path)
        return TrashResult(path=path, status=TrashStatus.MOVED)

    def _missing(self, path: Path, force: bool) -> TrashResult:
        if force:
            return TrashResult(
                path=path,
                status=TrashStatus.SKIPPED,
                reason="No such file or directory",
            )
        return TrashResult(path=path, status=TrashStatus.FAILED, error=str(MissingPathError(path)))


def execute(plan: OperationPlan, backend: TrashBackend | None = None) -> list[TrashResult]:
    """Execute a plan with a fresh executor.

    Args:
        plan: Fully resolved plan.
        backend: Trash primitive. Defaults to the system trash with a
            fallback directory.

    Returns:
        Per-path results.
    """
    return TrashExecutor(backend).execute(plan)


def _describe(error: OSError) -> str:
    return error.strerror or str(error)
