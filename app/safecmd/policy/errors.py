"""Exceptions raised by the deletion policy engine."""

from pathlib import Path


class SafecmdError(Exception):
    """Base exception for all safecmd errors."""


class PolicyError(SafecmdError):
    """Base exception for errors tied to a single path."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(message)
        self.path = path


class ScopeDeniedError(PolicyError):
    """Raised when a path lies outside every allowed directory."""

    def __init__(self, path: Path, action: str = "remove") -> None:
        super().__init__(path, f"cannot {action} '{path}': path is outside allowed scope")


class ScopeRootError(PolicyError):
    """Raised when removing a path would take an allowed directory with it."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            path, f"refusing to remove '{path}': it is or contains an allowed directory"
        )


class ProtectedPathError(PolicyError):
    """Raised when a plan contains paths protected by ignore rules.

    Attributes:
        path: Requested root whose plan was rejected.
        protected: Every protected path found for the root.
    """

    def __init__(self, path: Path, protected: list[Path], source: str | None = None) -> None:
        self.protected = protected
        first = protected[0] if protected else path
        via = f" ({source})" if source else ""
        if first == path:
            message = f"cannot remove '{path}': protected by .gitignore{via}"
        else:
            extra = f" and {len(protected) - 1} more" if len(protected) > 1 else ""
            message = (
                f"cannot remove '{path}': contains '{first}'{extra} protected by .gitignore{via}"
            )
        super().__init__(path, message)


class NotEmptyDirectoryError(PolicyError):
    """Raised when a directory is removed without the matching flag."""

    def __init__(self, path: Path, *, allow_empty_dirs: bool) -> None:
        self.allow_empty_dirs = allow_empty_dirs
        if allow_empty_dirs:
            message = f"{path}: Directory not empty"
        else:
            message = f"{path}: is a directory"
        super().__init__(path, message)


class UnreadableDirectoryError(PolicyError):
    """Raised when a directory cannot be listed while planning."""

    def __init__(self, path: Path, reason: str) -> None:
        self.reason = reason
        super().__init__(path, f"cannot access '{path}': {reason}")


class MissingPathError(PolicyError):
    """Raised when a target path does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(path, f"cannot remove '{path}': No such file or directory")


class TrashMoveFailedError(PolicyError):
    """Raised when the trash primitive fails for a path."""

    def __init__(self, path: Path, reason: str) -> None:
        self.reason = reason
        super().__init__(path, f"failed to remove '{path}': {reason}")


class CopyError(PolicyError):
    """Raised when a source cannot be copied to its target."""

    def __init__(self, path: Path, reason: str) -> None:
        self.reason = reason
        super().__init__(path, f"cannot copy '{path}': {reason}")


class OmittedDirectoryError(PolicyError):
    """Raised when a directory is copied without -r."""

    def __init__(self, path: Path) -> None:
        super().__init__(path, f"-r not specified; omitting directory '{path}'")


class TargetNotDirectoryError(PolicyError):
    """Raised when several sources are copied to a target that is not a directory."""

    def __init__(self, path: Path) -> None:
        super().__init__(path, f"target '{path}' is not a directory")


class RuleSourceError(SafecmdError):
    """Raised when a rule file exists but cannot be read."""

    def __init__(self, source: Path, reason: str) -> None:
        self.source = source
        super().__init__(f"Cannot read rule file {source}: {reason}")


class PatternSyntaxError(SafecmdError):
    """Raised when a rule source contains a malformed pattern.

    Attributes:
        pattern: The offending source line.
        source: File the line was read from, if any.
        line: 1-based line number, if known.
    """

    def __init__(
        self,
        pattern: str,
        reason: str,
        source: Path | None = None,
        line: int | None = None,
    ) -> None:
        self.pattern = pattern
        self.reason = reason
        self.source = source
        self.line = line
        location = ""
        if source is not None:
            location = f" in {source}" + (f":{line}" if line is not None else "")
        super().__init__(f"Invalid pattern {pattern!r}{location}: {reason}")
