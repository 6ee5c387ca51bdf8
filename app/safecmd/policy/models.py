"""Policy domain models for trash-first deletion.

This module defines the core data structures shared by the policy
engine: compiled ignore-style patterns, rule tiers, scope settings,
per-path verdicts, operation plans, trash results and copy results.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class Tier(str, Enum):
    """Rule source deciding a verdict, in precedence order.

    Attributes:
        GLOBAL_ALLOW: Allow patterns declared in the config file.
        LOCAL_OVERRIDE: Patterns from the nearest `.allowsafecmd` file.
        PROTECTION: Patterns from the nearest `.gitignore` file.
        DEFAULT: No rule matched; paths are allowed by default.
    """

    GLOBAL_ALLOW = "global_allow"
    LOCAL_OVERRIDE = "local_override"
    PROTECTION = "protection"
    DEFAULT = "default"


class VerdictKind(str, Enum):
    """Outcome of resolving one path against the rule tiers."""

    ALLOWED = "allowed"
    PROTECTED = "protected"


class ScopeDecision(str, Enum):
    """Outcome of the directory scope check."""

    ALLOWED = "allowed"
    DENIED = "denied"


class TrashStatus(str, Enum):
    """Per-path outcome of the trash executor.

    Attributes:
        MOVED: The path was moved to the trash (directly or with its parent).
        SKIPPED: The path was deliberately left in place.
        FAILED: Moving the path was attempted or required and did not succeed.
    """

    MOVED = "moved"
    SKIPPED = "skipped"
    FAILED = "failed"


class CopyStatus(str, Enum):
    """Per-source outcome of a copy.

    Attributes:
        COPIED: The source was copied to its target.
        SKIPPED: The target already existed and no-clobber was requested.
        FAILED: The copy, or trashing the old target, did not succeed.
    """

    COPIED = "copied"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Pattern:
    """A compiled ignore-style rule derived from one source line.

    Attributes:
        raw: The source line the pattern was compiled from.
        regex: Compiled expression matched against base-relative paths.
        tier: Rule tier the pattern belongs to.
        anchored: True if the pattern only matches relative to the base directory.
        dir_only: True if the pattern had a trailing slash.
        negated: True if the pattern started with `!`.
    """

    raw: str
    regex: re.Pattern[str]
    tier: Tier
    anchored: bool = False
    dir_only: bool = False
    negated: bool = False


@dataclass(frozen=True, slots=True)
class PatternSet:
    """Ordered patterns of one rule source.

    Attributes:
        tier: Tier shared by every pattern in the set.
        base: Directory that relative matching is evaluated against.
        patterns: Patterns in source order (last match wins).
        source: File the patterns were read from, None for config patterns.
    """

    tier: Tier
    base: Path
    patterns: tuple[Pattern, ...] = ()
    source: Path | None = None

    def __len__(self) -> int:
        return len(self.patterns)

    def __bool__(self) -> bool:
        return bool(self.patterns)


@dataclass(frozen=True, slots=True)
class ScopeConfig:
    """Directories the tool may operate within.

    Attributes:
        working_dir: Current working directory, always in scope.
        additional_dirs: Extra absolute directories from the config file.
        enabled: False disables scope restriction entirely.
    """

    working_dir: Path
    additional_dirs: tuple[Path, ...] = ()
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class PathVerdict:
    """Resolution result for one candidate path.

    Attributes:
        path: Absolute path that was resolved.
        kind: Allowed or protected.
        tier: Tier that decided the verdict.
        source: Rule file that decided, None for config or default verdicts.
    """

    path: Path
    kind: VerdictKind
    tier: Tier
    source: Path | None = None

    @property
    def allowed(self) -> bool:
        """Check if the path may be deleted."""
        return self.kind == VerdictKind.ALLOWED

    @property
    def protected(self) -> bool:
        """Check if the path is protected from deletion."""
        return self.kind == VerdictKind.PROTECTED

    def describe(self) -> str:
        """Human-readable name of the deciding rule source."""
        if self.source is not None:
            return str(self.source)
        if self.tier == Tier.GLOBAL_ALLOW:
            return "config allowed_gitignores"
        return self.tier.value


@dataclass(frozen=True, slots=True)
class PlanEntry:
    """A single path scheduled (or excluded) by a root plan.

    Attributes:
        path: Absolute path of the entry.
        verdict: Resolved verdict for the path.
        is_dir: True for real directories (symlinks are never directories here).
        exists: False if the path was missing while planning.
        depth: Distance from the plan root (root is 0).
        skipped: True for protected descendants excluded under force.
    """

    path: Path
    verdict: PathVerdict
    is_dir: bool = False
    exists: bool = True
    depth: int = 0
    skipped: bool = False


@dataclass(slots=True)
class RootPlan:
    """Fully resolved plan for one requested path.

    Entries are stored in depth-first pre-order, root first.
    """

    root: Path
    entries: list[PlanEntry] = field(default_factory=list)

    @property
    def root_entry(self) -> PlanEntry:
        return self.entries[0]

    @property
    def intact(self) -> bool:
        """True if no entry of the tree was excluded from the plan."""
        return not any(entry.skipped for entry in self.entries)

    @property
    def skipped(self) -> list[PlanEntry]:
        return [entry for entry in self.entries if entry.skipped]


@dataclass(slots=True)
class OperationPlan:
    """Accepted root plans of one delete request.

    Attributes:
        roots: Root plans that passed every planning check.
        force: Whether missing paths are tolerated at execution time.
    """

    roots: list[RootPlan] = field(default_factory=list)
    force: bool = False

    def __post_init__(self) -> None:
        """Reject plans carrying protected entries that were not excluded."""
        for root in self.roots:
            for entry in root.entries:
                if entry.verdict.protected and not entry.skipped:
                    msg = f"Plan contains protected entry: {entry.path}"
                    raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class TrashResult:
    """Outcome of one path handled by the trash executor.

    Attributes:
        path: Path that was operated on.
        status: Moved, skipped or failed.
        reason: Why the path was skipped or how it was moved.
        error: Error message if the operation failed.
        dry_run: Whether this was a dry-run (nothing moved).
    """

    path: Path
    status: TrashStatus
    reason: str | None = None
    error: str | None = None
    dry_run: bool = False

    @property
    def moved(self) -> bool:
        return self.status == TrashStatus.MOVED

    @property
    def skipped(self) -> bool:
        return self.status == TrashStatus.SKIPPED

    @property
    def failed(self) -> bool:
        return self.status == TrashStatus.FAILED


@dataclass(frozen=True, slots=True)
class CopyResult:
    """Outcome of copying one source.

    Attributes:
        source: Canonical source path.
        target: Canonical path the source was copied to.
        status: Copied, skipped or failed.
        replaced: Existing target moved to the trash before copying.
        reason: Why the source was skipped.
        error: Error message if the copy failed.
    """

    source: Path
    target: Path
    status: CopyStatus
    replaced: Path | None = None
    reason: str | None = None
    error: str | None = None

    @property
    def copied(self) -> bool:
        return self.status == CopyStatus.COPIED

    @property
    def skipped(self) -> bool:
        return self.status == CopyStatus.SKIPPED

    @property
    def failed(self) -> bool:
        return self.status == CopyStatus.FAILED


def invocation_succeeded(results: list[TrashResult] | list[CopyResult]) -> bool:
    """Check that no result of an invocation failed.

    Args:
        results: Results returned by a delete or copy request.

    Returns:
        True if there are zero failed results.
    """
    return not any(result.failed for result in results)
