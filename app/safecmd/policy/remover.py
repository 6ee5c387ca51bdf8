"""Delete entry point tying the policy stages together.

Stages run strictly in order, each on the complete output of the
previous one:

1. Scope check of every requested path (any denial aborts everything).
2. Planning of every requested path (rejections affect only that path).
3. Execution of the accepted plans.
"""

import logging
from collections.abc import Sequence
from itertools import islice
from pathlib import Path

from safecmd.policy.errors import PolicyError
from safecmd.policy.executor import TrashBackend, TrashExecutor
from safecmd.policy.models import OperationPlan, RootPlan, ScopeConfig, TrashResult, TrashStatus
from safecmd.policy.resolver import ProtectionResolver, ResolutionContext
from safecmd.policy.scope import DirectoryScopeGuard
from safecmd.policy.walker import RecursiveProtectionWalker

logger = logging.getLogger(__name__)


class Remover:
    """Trash-first replacement for `rm`.

    Attributes:
        _scope: Directories the invocation may operate within.
        _context: Global allow patterns and rule search boundary.
        _executor: Executor performing the moves.
    """

    def __init__(
        self,
        scope: ScopeConfig,
        context: ResolutionContext | None = None,
        backend: TrashBackend | None = None,
        dry_run: bool = False,
    ) -> None:
        """Initialize the Remover.

        Args:
            scope: Scope settings of the invocation.
            context: Global patterns and search boundary.
            backend: Trash primitive. Defaults to the system trash with a
                fallback directory.
            dry_run: If True, report what would be moved without moving.
        """
        self._scope = scope
        self._context = context or ResolutionContext()
        self._executor = TrashExecutor(backend, dry_run=dry_run)

    def delete(
        self,
        paths: Sequence[Path],
        recursive: bool = False,
        force: bool = False,
        allow_empty_dirs: bool = False,
    ) -> list[TrashResult]:
        """Move the requested paths to the trash.

        Args:
            paths: Requested paths, absolute or relative to the working directory.
            recursive: Remove directories with their contents.
            force: Tolerate missing paths and exclude protected descendants.
            allow_empty_dirs: Allow removing empty directories without recursion.

        Returns:
            Results grouped by requested path in request order, one per
            planned entry. A rejected path contributes a single FAILED result
            and nothing below it is touched.

        Raises:
            ScopeDeniedError: If any path is outside scope, or is itself an
                allowed directory or one of its ancestors. Raised before any
                planning or mutation.
            PatternSyntaxError: If a rule file is malformed.
            RuleSourceError: If a rule file cannot be read.
        """
        guard = DirectoryScopeGuard(self._scope)
        targets = [guard.require_removable(path) for path in paths]

        walker = RecursiveProtectionWalker(ProtectionResolver(self._context))
        planned: list[RootPlan | TrashResult] = []
        for target in targets:
            try:
                planned.append(walker.plan(target, recursive, force, allow_empty_dirs))
            except PolicyError as e:
                logger.debug("Rejected %s: %s", target, e)
                planned.append(TrashResult(path=target, status=TrashStatus.FAILED, error=str(e)))

        plan = OperationPlan(
            roots=[item for item in planned if isinstance(item, RootPlan)],
            force=force,
        )
        logger.debug("Executing plan with %d root(s)", len(plan.roots))
        executed = iter(self._executor.execute(plan))

        results: list[TrashResult] = []
        for item in planned:
            if isinstance(item, RootPlan):
                results.extend(islice(executed, len(item.entries)))
            else:
                results.append(item)
        return results


def delete(
    paths: Sequence[Path],
    recursive: bool = False,
    force: bool = False,
    allow_empty_dirs: bool = False,
    *,
    scope: ScopeConfig,
    context: ResolutionContext | None = None,
    backend: TrashBackend | None = None,
) -> list[TrashResult]:
    """Move paths to the trash with a fresh Remover.

    Args:
        paths: Requested paths.
        recursive: Remove directories with their contents.
        force: Tolerate missing paths and exclude protected descendants.
        allow_empty_dirs: Allow removing empty directories without recursion.
        scope: Scope settings of the invocation.
        context: Global patterns and search boundary.
        backend: Trash primitive. Defaults to the system trash with a
            fallback directory.

    Returns:
        Per-path results in request order.
    """
    remover = Remover(scope, context, backend)
    return remover.delete(paths, recursive, force, allow_empty_dirs)
