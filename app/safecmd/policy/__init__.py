"""Deletion-safety policy engine.

This module provides ignore-style pattern matching, three-tier
protection resolution, directory scope checks, recursive operation
planning, and the trash executor and copier behind `safecmd rm` and
`safecmd cp`.
"""

from safecmd.policy.copier import Copier, copy
from safecmd.policy.errors import (
    CopyError,
    MissingPathError,
    NotEmptyDirectoryError,
    OmittedDirectoryError,
    PatternSyntaxError,
    PolicyError,
    ProtectedPathError,
    RuleSourceError,
    SafecmdError,
    ScopeDeniedError,
    ScopeRootError,
    TargetNotDirectoryError,
    TrashMoveFailedError,
    UnreadableDirectoryError,
)
from safecmd.policy.executor import (
    FallbackTrashBackend,
    Send2TrashBackend,
    TrashBackend,
    TrashExecutor,
    default_backend,
)
from safecmd.policy.models import (
    CopyResult,
    CopyStatus,
    OperationPlan,
    PathVerdict,
    Pattern,
    PatternSet,
    PlanEntry,
    RootPlan,
    ScopeConfig,
    ScopeDecision,
    Tier,
    TrashResult,
    TrashStatus,
    VerdictKind,
    invocation_succeeded,
)
from safecmd.policy.patterns import ancestor_matched, compile_patterns, load_pattern_file, matches
from safecmd.policy.remover import Remover, delete
from safecmd.policy.resolver import ProtectionResolver, ResolutionContext
from safecmd.policy.scope import DirectoryScopeGuard
from safecmd.policy.walker import RecursiveProtectionWalker

__all__ = [
    "Copier",
    "CopyError",
    "CopyResult",
    "CopyStatus",
    "DirectoryScopeGuard",
    "FallbackTrashBackend",
    "MissingPathError",
    "NotEmptyDirectoryError",
    "OmittedDirectoryError",
    "OperationPlan",
    "PathVerdict",
    "Pattern",
    "PatternSet",
    "PatternSyntaxError",
    "PlanEntry",
    "PolicyError",
    "ProtectedPathError",
    "ProtectionResolver",
    "RecursiveProtectionWalker",
    "Remover",
    "ResolutionContext",
    "RootPlan",
    "RuleSourceError",
    "SafecmdError",
    "ScopeConfig",
    "ScopeDecision",
    "ScopeDeniedError",
    "ScopeRootError",
    "Send2TrashBackend",
    "TargetNotDirectoryError",
    "Tier",
    "TrashBackend",
    "TrashExecutor",
    "TrashMoveFailedError",
    "TrashResult",
    "TrashStatus",
    "UnreadableDirectoryError",
    "VerdictKind",
    "ancestor_matched",
    "compile_patterns",
    "copy",
    "default_backend",
    "delete",
    "invocation_succeeded",
    "load_pattern_file",
    "matches",
]
