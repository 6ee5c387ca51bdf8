"""Operation planning with recursive protection checks.

For every requested path the walker builds a complete RootPlan before any
mutation happens. Recursive requests resolve a verdict for every
descendant; one protected descendant rejects the whole tree unless force
is set, in which case protected entries are excluded from the plan.
"""

import logging
import os
from collections.abc import Iterator
from dataclasses import replace
from pathlib import Path

from safecmd.policy.errors import (
    NotEmptyDirectoryError,
    ProtectedPathError,
    UnreadableDirectoryError,
)
from safecmd.policy.models import PathVerdict, PlanEntry, RootPlan, Tier, VerdictKind
from safecmd.policy.resolver import ProtectionResolver, ResolutionContext, canonical_path

logger = logging.getLogger(__name__)


def _is_real_dir(path: Path) -> bool:
    """Check for a directory that is not a symlink."""
    return os.path.isdir(path) and not os.path.islink(path)


class RecursiveProtectionWalker:
    """Builds root plans from requested paths.

    Attributes:
        _resolver: Resolver shared by every plan of the invocation.
    """

    def __init__(self, resolver: ProtectionResolver) -> None:
        """Initialize the RecursiveProtectionWalker.

        Args:
            resolver: Protection resolver for the current invocation.
        """
        self._resolver = resolver

    def plan(
        self,
        root_path: Path,
        recursive: bool,
        force: bool,
        allow_empty_dirs: bool = False,
    ) -> RootPlan:
        """Plan the removal of one requested path.

        Args:
            root_path: Requested path.
            recursive: Whether directories are removed with their contents.
            force: Whether protected descendants are excluded instead of
                rejecting the whole tree.
            allow_empty_dirs: Whether empty directories may be removed
                without recursion.

        Returns:
            RootPlan with entries in depth-first pre-order. A missing root
            yields a single entry with exists=False.

        Raises:
            ProtectedPathError: If the root is protected, or a descendant is
                protected and force is not set.
            NotEmptyDirectoryError: If a directory is requested without
                recursion and without allow_empty_dirs, or is not empty.
            UnreadableDirectoryError: If a directory cannot be listed.
            PatternSyntaxError: If a rule file is malformed.
        """
        root = canonical_path(root_path)

        if not os.path.lexists(root):
            verdict = PathVerdict(path=root, kind=VerdictKind.ALLOWED, tier=Tier.DEFAULT)
            missing = PlanEntry(path=root, verdict=verdict, exists=False)
            return RootPlan(root=root, entries=[missing])

        is_dir = _is_real_dir(root)
        verdict = self._resolver.resolve(root, is_dir)
        if verdict.protected:
            raise ProtectedPathError(root, [root], verdict.describe())

        plan = RootPlan(root=root, entries=[PlanEntry(path=root, verdict=verdict, is_dir=is_dir)])
        if not is_dir:
            return plan

        if not recursive:
            if not allow_empty_dirs or self._has_children(root):
                raise NotEmptyDirectoryError(root, allow_empty_dirs=allow_empty_dirs)
            return plan

        protected: list[PlanEntry] = []
        for entry in self._walk(root, {os.path.realpath(root)}, depth=1):
            if entry.verdict.protected:
                entry = replace(entry, skipped=True)
                protected.append(entry)
            plan.entries.append(entry)

        if protected and not force:
            raise ProtectedPathError(
                root,
                [entry.path for entry in protected],
                protected[0].verdict.describe(),
            )

        for entry in protected:
            logger.warning("Excluding protected path %s (%s)", entry.path, entry.verdict.describe())

        return plan

    def _walk(self, directory: Path, visited: set[str], depth: int) -> Iterator[PlanEntry]:
        """Yield entries below directory in depth-first pre-order.

        Symlinked directories are leaves. Protected directories are not
        descended into: everything below them stays with them.
        """
        try:
            with os.scandir(directory) as it:
                children = sorted(it, key=lambda child: child.name)
        except OSError as e:
            raise UnreadableDirectoryError(directory, e.strerror or str(e)) from e

        for child in children:
            path = Path(child.path)
            child_is_dir = child.is_dir(follow_symlinks=False)
            verdict = self._resolver.resolve(path, child_is_dir)
            yield PlanEntry(path=path, verdict=verdict, is_dir=child_is_dir, depth=depth)

            if not child_is_dir or verdict.protected:
                continue

            real = os.path.realpath(path)
            if real in visited:
                logger.warning("Not descending into %s again (cycle via %s)", real, path)
                continue
            visited.add(real)
            yield from self._walk(path, visited, depth + 1)

    def _has_children(self, directory: Path) -> bool:
        try:
            with os.scandir(directory) as it:
                return next(it, None) is not None
        except OSError as e:
            raise UnreadableDirectoryError(directory, e.strerror or str(e)) from e


def plan(
    root_path: Path,
    recursive: bool,
    force: bool,
    allow_empty_dirs: bool = False,
    context: ResolutionContext | None = None,
) -> RootPlan:
    """Plan the removal of one path with a fresh resolver.

    Args:
        root_path: Requested path.
        recursive: Whether directories are removed with their contents.
        force: Whether protected descendants are excluded instead of fatal.
        allow_empty_dirs: Whether empty directories may be removed.
        context: Global patterns and search boundary.

    Returns:
        RootPlan for the path.
    """
    walker = RecursiveProtectionWalker(ProtectionResolver(context))
    return walker.plan(root_path, recursive, force, allow_empty_dirs)
