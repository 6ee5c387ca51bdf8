"""Directory scope restriction.

Bounds the blast radius of the tool: a path may only be operated on if it
lies inside the current working directory or one of the additional
directories configured by the user, independently of protection rules.
"""

import logging
from pathlib import Path

from safecmd.policy.errors import ScopeDeniedError, ScopeRootError
from safecmd.policy.models import ScopeConfig, ScopeDecision
from safecmd.policy.resolver import canonical_path

logger = logging.getLogger(__name__)


class DirectoryScopeGuard:
    """Checks candidate paths against the allowed directory trees.

    Attributes:
        _scope: Scope settings of the current invocation.
        _roots: Canonical allowed directories.
    """

    def __init__(self, scope: ScopeConfig) -> None:
        """Initialize the DirectoryScopeGuard.

        Args:
            scope: Working directory, additional directories and enabled flag.
        """
        self._scope = scope
        self._roots = self._allowed_roots()

    @property
    def enabled(self) -> bool:
        return self._scope.enabled

    @property
    def roots(self) -> list[Path]:
        """Canonical directories paths must fall within."""
        return list(self._roots)

    def canonicalize(self, candidate: Path) -> Path:
        """Resolve a candidate path against the working directory.

        Existing parent directories are resolved through symlinks; a symlink
        leaf is kept, so the link's own location decides the scope.

        Args:
            candidate: Absolute or working-directory-relative path.

        Returns:
            Canonical absolute path.
        """
        absolute = candidate if candidate.is_absolute() else self._scope.working_dir / candidate
        return canonical_path(absolute)

    def check(self, candidate: Path) -> ScopeDecision:
        """Decide whether a path is within scope.

        Args:
            candidate: Path to check.

        Returns:
            ScopeDecision.ALLOWED or ScopeDecision.DENIED.
        """
        if not self._scope.enabled:
            return ScopeDecision.ALLOWED

        target = self.canonicalize(candidate)
        for root in self._roots:
            if target.is_relative_to(root):
                return ScopeDecision.ALLOWED

        logger.debug("%s is outside allowed scope %s", target, self._roots)
        return ScopeDecision.DENIED

    def require(self, candidate: Path, action: str = "remove") -> Path:
        """Return the canonical path or raise if it is out of scope.

        Args:
            candidate: Path to check.
            action: Verb used in the error message.

        Returns:
            Canonical absolute path of the candidate.

        Raises:
            ScopeDeniedError: If the path is outside every allowed directory.
        """
        if self.check(candidate) == ScopeDecision.DENIED:
            raise ScopeDeniedError(candidate, action)
        return self.canonicalize(candidate)

    def require_removable(self, candidate: Path) -> Path:
        """Like require, but also refuse an allowed directory or its ancestors.

        Applies even when the scope restriction is disabled.

        Raises:
            ScopeDeniedError: If the path is outside every allowed directory.
            ScopeRootError: If an allowed directory lies at or below the path.
        """
        target = self.require(candidate)
        if any(root.is_relative_to(target) for root in self._roots):
            raise ScopeRootError(candidate)
        return target

    def _allowed_roots(self) -> list[Path]:
        roots = [self._scope.working_dir.resolve()]
        roots.extend(directory.resolve() for directory in self._scope.additional_dirs)
        return roots


def check(candidate: Path, scope: ScopeConfig) -> ScopeDecision:
    """Check a single path against a scope configuration.

    Args:
        candidate: Path to check.
        scope: Scope settings.

    Returns:
        ScopeDecision for the path.
    """
    return DirectoryScopeGuard(scope).check(candidate)
