"""Three-tier protection resolution.

A path is resolved by an ordered chain of stages, each returning either a
definitive verdict or None to defer to the next stage:

1. Global allow patterns from the config file -> Allowed.
2. Nearest `.allowsafecmd` override file -> Allowed.
3. Nearest `.gitignore` file -> Protected. A directory matched by any
   `.gitignore` up the tree protects its contents, even when a nearer file
   negates the path itself.

A path no stage decides is Allowed by default. A lower stage never runs
once a higher one has allowed the path.
"""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from safecmd.policy.models import PathVerdict, PatternSet, Tier, VerdictKind
from safecmd.policy.patterns import (
    MatchOutcome,
    ancestor_matched,
    load_pattern_file,
    match_outcome,
)

logger = logging.getLogger(__name__)

ALLOWLIST_FILENAME = ".allowsafecmd"
GITIGNORE_FILENAME = ".gitignore"

GLOBAL_PATTERN_BASE = Path("/")

Stage = Callable[[Path, bool], PathVerdict | None]


def _empty_global_patterns() -> PatternSet:
    return PatternSet(tier=Tier.GLOBAL_ALLOW, base=GLOBAL_PATTERN_BASE)


@dataclass(frozen=True, slots=True)
class ResolutionContext:
    """Inputs shared by every resolution of one invocation.

    Attributes:
        global_allow: Allow patterns from the config file, based at `/`.
        boundary: Highest directory searched for rule files. None searches
            up to the filesystem root.
    """

    global_allow: PatternSet = field(default_factory=_empty_global_patterns)
    boundary: Path | None = None


def canonical_path(path: Path) -> Path:
    """Make a path absolute and resolve symlinks in its parent directories.

    A symlink in the final component is kept as-is, since trashing a link
    only affects the link itself.

    Args:
        path: Absolute or cwd-relative path.

    Returns:
        Canonical absolute path.
    """
    absolute = Path(os.path.abspath(path))
    if absolute.is_symlink():
        return absolute.parent.resolve() / absolute.name
    return absolute.resolve()


def rule_source_chain(directory: Path, filename: str, boundary: Path | None = None) -> list[Path]:
    """Collect rule files named filename from directory upward.

    Args:
        directory: Directory to start the search in.
        filename: Rule file name (e.g. `.gitignore`).
        boundary: Directory at which the search stops (inclusive).

    Returns:
        Existing rule files, nearest first.
    """
    chain: list[Path] = []
    current = directory
    while True:
        if boundary is not None and not current.is_relative_to(boundary):
            break
        candidate = current / filename
        if candidate.is_file():
            chain.append(candidate)
        if current == boundary:
            break
        parent = current.parent
        if parent == current:
            break
        current = parent
    return chain


class ProtectionResolver:
    """Resolves paths to allow/protect verdicts.

    Rule files are loaded at most once per resolver, so a resolver should
    live for a single invocation and be discarded afterwards.

    Attributes:
        _context: Shared resolution inputs.
        _sources: Loaded rule files keyed by path.
        _stages: Resolution stages in precedence order.
    """

    def __init__(self, context: ResolutionContext | None = None) -> None:
        """Initialize the ProtectionResolver.

        Args:
            context: Global patterns and search boundary. Defaults to no
                global patterns and an unbounded search.
        """
        self._context = context or ResolutionContext()
        self._sources: dict[Path, PatternSet] = {}
        self._stages: list[Stage] = [
            self._global_allow_stage,
            self._local_override_stage,
            self._protection_stage,
        ]

    def resolve(self, path: Path, is_dir: bool | None = None) -> PathVerdict:
        """Resolve a single path.

        Args:
            path: Path to resolve (made absolute and canonical).
            is_dir: Whether the path is a directory. Looked up when None.

        Returns:
            PathVerdict carrying the deciding tier.

        Raises:
            PatternSyntaxError: If a rule file contains a malformed pattern.
            RuleSourceError: If a rule file cannot be read.
        """
        target = canonical_path(path)
        if is_dir is None:
            is_dir = os.path.isdir(target) and not os.path.islink(target)

        for stage in self._stages:
            verdict = stage(target, is_dir)
            if verdict is not None:
                logger.debug(
                    "%s: %s by %s", target, verdict.kind.value, verdict.describe()
                )
                return verdict

        return PathVerdict(path=target, kind=VerdictKind.ALLOWED, tier=Tier.DEFAULT)

    def _global_allow_stage(self, target: Path, is_dir: bool) -> PathVerdict | None:
        global_allow = self._context.global_allow
        if match_outcome(target, global_allow, is_dir) == MatchOutcome.MATCHED:
            return PathVerdict(path=target, kind=VerdictKind.ALLOWED, tier=Tier.GLOBAL_ALLOW)
        return None

    def _local_override_stage(self, target: Path, is_dir: bool) -> PathVerdict | None:
        return self._file_tier_stage(
            target, is_dir, ALLOWLIST_FILENAME, Tier.LOCAL_OVERRIDE, VerdictKind.ALLOWED
        )

    def _protection_stage(self, target: Path, is_dir: bool) -> PathVerdict | None:
        # An ignored parent directory cannot be re-included by any nearer file.
        chain = rule_source_chain(target.parent, GITIGNORE_FILENAME, self._context.boundary)
        for source in chain:
            if ancestor_matched(target, self._load(source, Tier.PROTECTION)):
                return PathVerdict(
                    path=target, kind=VerdictKind.PROTECTED, tier=Tier.PROTECTION, source=source
                )
        return self._file_tier_stage(
            target, is_dir, GITIGNORE_FILENAME, Tier.PROTECTION, VerdictKind.PROTECTED
        )

    def _file_tier_stage(
        self,
        target: Path,
        is_dir: bool,
        filename: str,
        tier: Tier,
        kind: VerdictKind,
    ) -> PathVerdict | None:
        """Evaluate rule files of one tier, nearest first.

        The first file with a decisive outcome decides the tier: a positive
        match yields the verdict, a negation defers to the next tier. Files
        without a matching rule defer to the next farther file.
        """
        for source in rule_source_chain(target.parent, filename, self._context.boundary):
            outcome = match_outcome(target, self._load(source, tier), is_dir)
            if outcome == MatchOutcome.MATCHED:
                return PathVerdict(path=target, kind=kind, tier=tier, source=source)
            if outcome == MatchOutcome.NEGATED:
                return None
        return None

    def _load(self, source: Path, tier: Tier) -> PatternSet:
        pattern_set = self._sources.get(source)
        if pattern_set is None:
            pattern_set = load_pattern_file(source, tier)
            self._sources[source] = pattern_set
        return pattern_set


def resolve(path: Path, context: ResolutionContext | None = None) -> PathVerdict:
    """Resolve a path with a fresh resolver.

    Args:
        path: Path to resolve.
        context: Global patterns and search boundary.

    Returns:
        PathVerdict for the path.
    """
    return ProtectionResolver(context).resolve(path)
