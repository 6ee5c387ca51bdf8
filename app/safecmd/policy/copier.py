"""Trash-first cp.

Copies sources after the same scope checks as rm. A target that already
exists is moved to the trash (subject to protection rules) before it is
overwritten, so a copy never destroys data that cannot be recovered.

Stages run strictly in order:

1. Scope check of every source and every final target (any denial aborts
   everything).
2. Per source: validation, trashing of the existing target, copy. A
   failure affects only that source.
"""

import logging
import os
import shutil
from collections.abc import Callable, Sequence
from pathlib import Path

from safecmd.policy.errors import (
    CopyError,
    OmittedDirectoryError,
    PolicyError,
    TargetNotDirectoryError,
)
from safecmd.policy.executor import TrashBackend, TrashExecutor
from safecmd.policy.models import CopyResult, CopyStatus, OperationPlan, ScopeConfig
from safecmd.policy.resolver import ProtectionResolver, ResolutionContext
from safecmd.policy.scope import DirectoryScopeGuard
from safecmd.policy.walker import RecursiveProtectionWalker

logger = logging.getLogger(__name__)

CopyFunction = Callable[..., object]


class Copier:
    """Trash-first replacement for `cp`.

    Attributes:
        _scope: Directories the invocation may operate within.
        _context: Global allow patterns and rule search boundary.
        _executor: Executor trashing targets that are about to be replaced.
    """

    def __init__(
        self,
        scope: ScopeConfig,
        context: ResolutionContext | None = None,
        backend: TrashBackend | None = None,
    ) -> None:
        """Initialize the Copier.

        Args:
            scope: Scope settings of the invocation.
            context: Global patterns and search boundary.
            backend: Trash primitive for replaced targets. Defaults to the
                system trash with a fallback directory.
        """
        self._scope = scope
        self._context = context or ResolutionContext()
        self._executor = TrashExecutor(backend)

    def copy(
        self,
        sources: Sequence[Path],
        target: Path,
        recursive: bool = False,
        no_clobber: bool = False,
    ) -> list[CopyResult]:
        """Copy sources to a target.

        A target that is an existing directory receives each source under
        its own name. Otherwise there must be exactly one source and the
        target is the path to create.

        Args:
            sources: Files or directories to copy.
            target: Destination file or directory.
            recursive: Copy directories with their contents.
            no_clobber: Never replace an existing file.

        Returns:
            One CopyResult per source, in request order.

        Raises:
            ScopeDeniedError: If a source or final target is outside scope.
                Raised before anything is copied or trashed.
            TargetNotDirectoryError: If several sources are given and the
                target is not a directory.
            PatternSyntaxError: If a rule file is malformed.
            RuleSourceError: If a rule file cannot be read.
        """
        guard = DirectoryScopeGuard(self._scope)
        canonical_sources = [guard.require(source, action="copy") for source in sources]
        destination = guard.require(target, action="copy")

        into_directory = destination.is_dir()
        if len(canonical_sources) > 1 and not into_directory:
            raise TargetNotDirectoryError(target)

        pairs: list[tuple[Path, Path]] = []
        for source in canonical_sources:
            final = destination / source.name if into_directory else destination
            pairs.append((source, guard.require(final, action="copy")))

        walker = RecursiveProtectionWalker(ProtectionResolver(self._context))
        return [
            self._copy_one(walker, source, final, recursive, no_clobber) for source, final in pairs
        ]

    def _copy_one(
        self,
        walker: RecursiveProtectionWalker,
        source: Path,
        target: Path,
        recursive: bool,
        no_clobber: bool,
    ) -> CopyResult:
        """Copy one source, turning per-path errors into a FAILED result."""
        try:
            is_dir = self._validate(source, target, recursive)
            target_exists = os.path.lexists(target)

            if target_exists and no_clobber and not is_dir:
                logger.debug("Not overwriting existing %s", target)
                return CopyResult(
                    source=source,
                    target=target,
                    status=CopyStatus.SKIPPED,
                    reason="target exists",
                )

            replaced = None
            if target_exists and not no_clobber:
                self._trash_target(walker, source, target)
                replaced = target

            self._copy(source, target, is_dir, recursive, no_clobber)
        except PolicyError as e:
            logger.debug("Copy of %s failed: %s", source, e)
            return CopyResult(source=source, target=target, status=CopyStatus.FAILED, error=str(e))

        logger.info("Copied %s to %s", source, target)
        return CopyResult(
            source=source, target=target, status=CopyStatus.COPIED, replaced=replaced
        )

    def _validate(self, source: Path, target: Path, recursive: bool) -> bool:
        """Check that source may be copied to target.

        Returns:
            True if the source is copied as a directory tree.

        Raises:
            CopyError: If the source is missing, unsupported, or the same
                file as the target.
            OmittedDirectoryError: If the source is a directory and
                recursive is not set.
        """
        if not os.path.lexists(source):
            raise CopyError(source, "No such file or directory")

        # With -r a symlink is copied as a link, never followed.
        is_dir = source.is_dir() and not (recursive and source.is_symlink())
        if is_dir and not recursive:
            raise OmittedDirectoryError(source)
        if not is_dir and not (source.is_file() or source.is_symlink()):
            raise CopyError(source, "not a regular file")

        if source == target or (target.exists() and os.path.samefile(source, target)):
            raise CopyError(source, f"'{source}' and '{target}' are the same file")
        if is_dir and target.is_relative_to(source):
            raise CopyError(source, f"cannot copy a directory into itself, '{target}'")
        if source.is_relative_to(target):
            raise CopyError(source, f"cannot overwrite '{target}', it contains the source")
        return is_dir

    def _trash_target(self, walker: RecursiveProtectionWalker, source: Path, target: Path) -> None:
        """Move an existing target to the trash before it is replaced.

        Raises:
            ProtectedPathError: If the target or anything below it is protected.
            CopyError: If the target could not be moved to the trash.
        """
        root_plan = walker.plan(target, recursive=True, force=False)
        results = self._executor.execute(OperationPlan(roots=[root_plan]))
        failed = next((result for result in results if result.failed), None)
        if failed is not None:
            raise CopyError(source, failed.error or f"cannot replace '{target}'")
        logger.debug("Moved existing %s to trash", target)

    def _copy(
        self, source: Path, target: Path, is_dir: bool, recursive: bool, no_clobber: bool
    ) -> None:
        copy_function: CopyFunction = _copy_if_absent if no_clobber else shutil.copy2
        try:
            if is_dir:
                shutil.copytree(
                    source,
                    target,
                    symlinks=True,
                    copy_function=copy_function,
                    dirs_exist_ok=True,
                )
            else:
                shutil.copy2(source, target, follow_symlinks=not recursive)
        except shutil.Error as e:
            raise CopyError(source, _describe_tree_errors(e)) from e
        except OSError as e:
            raise CopyError(source, e.strerror or str(e)) from e


def copy(
    sources: Sequence[Path],
    target: Path,
    recursive: bool = False,
    no_clobber: bool = False,
    *,
    scope: ScopeConfig,
    context: ResolutionContext | None = None,
    backend: TrashBackend | None = None,
) -> list[CopyResult]:
    """Copy sources to a target with a fresh Copier.

    Args:
        sources: Files or directories to copy.
        target: Destination file or directory.
        recursive: Copy directories with their contents.
        no_clobber: Never replace an existing file.
        scope: Scope settings of the invocation.
        context: Global patterns and search boundary.
        backend: Trash primitive for replaced targets.

    Returns:
        Per-source results in request order.
    """
    return Copier(scope, context, backend).copy(sources, target, recursive, no_clobber)


# === Private helper functions ===


def _copy_if_absent(source: str, target: str, *, follow_symlinks: bool = True) -> str:
    """copy2 that leaves an existing target untouched."""
    if os.path.lexists(target):
        return target
    return shutil.copy2(source, target, follow_symlinks=follow_symlinks)


def _describe_tree_errors(error: shutil.Error) -> str:
    """Summarize the per-file failures collected by copytree."""
    failures = error.args[0] if error.args else []
    if isinstance(failures, list) and failures:
        return "; ".join(str(why) for _, _, why in failures)
    return str(error)
