"""Unit tests for three-tier protection resolution."""

from pathlib import Path

import pytest
from conftest import write
from safecmd.policy.errors import PatternSyntaxError
from safecmd.policy.models import PatternSet, Tier, VerdictKind
from safecmd.policy.patterns import compile_patterns
from safecmd.policy.resolver import (
    ALLOWLIST_FILENAME,
    GITIGNORE_FILENAME,
    GLOBAL_PATTERN_BASE,
    ProtectionResolver,
    ResolutionContext,
    canonical_path,
    resolve,
    rule_source_chain,
)


def _global(*patterns: str) -> PatternSet:
    return compile_patterns(patterns, Tier.GLOBAL_ALLOW, GLOBAL_PATTERN_BASE)


class TestRuleSourceChain:
    """Tests for rule_source_chain function."""

    def test_nearest_first(self, workspace: Path) -> None:
        """Rule files are listed from the nearest directory upward."""
        outer = write(workspace / GITIGNORE_FILENAME)
        inner = write(workspace / "a" / "b" / GITIGNORE_FILENAME)
        (workspace / "a" / "b" / "c").mkdir()

        chain = rule_source_chain(workspace / "a" / "b" / "c", GITIGNORE_FILENAME, workspace)

        assert chain == [inner, outer]

    def test_stops_at_boundary(self, workspace: Path) -> None:
        """Directories above the boundary are not searched."""
        write(workspace / GITIGNORE_FILENAME)
        sub = workspace / "sub"
        sub.mkdir()

        assert rule_source_chain(sub, GITIGNORE_FILENAME, boundary=sub) == []

    def test_directory_outside_boundary(self, workspace: Path, tmp_path: Path) -> None:
        """A start directory outside the boundary yields nothing."""
        write(tmp_path / "elsewhere" / GITIGNORE_FILENAME)

        chain = rule_source_chain(tmp_path.resolve() / "elsewhere", GITIGNORE_FILENAME, workspace)

        assert chain == []


class TestCanonicalPath:
    """Tests for canonical_path function."""

    def test_resolves_parent_symlinks(self, workspace: Path) -> None:
        """Symlinked parent directories are resolved."""
        real = workspace / "real"
        real.mkdir()
        (workspace / "alias").symlink_to(real)

        assert canonical_path(workspace / "alias" / "file.txt") == real / "file.txt"

    def test_keeps_symlink_leaf(self, workspace: Path) -> None:
        """A symlink in the last component is not followed."""
        target = write(workspace / "target.txt")
        link = workspace / "link.txt"
        link.symlink_to(target)

        assert canonical_path(link) == link


class TestProtectionResolver:
    """Tests for ProtectionResolver.resolve."""

    def test_default_allow(self, workspace: Path, context: ResolutionContext) -> None:
        """A path matched by no tier is allowed by default."""
        path = write(workspace / "notes.txt")

        verdict = ProtectionResolver(context).resolve(path)

        assert verdict.kind == VerdictKind.ALLOWED
        assert verdict.tier == Tier.DEFAULT
        assert verdict.source is None

    def test_gitignore_protects(self, workspace: Path, context: ResolutionContext) -> None:
        """A .gitignore match protects the path."""
        gitignore = write(workspace / GITIGNORE_FILENAME, "*.log\n")
        path = write(workspace / "app.log")

        verdict = ProtectionResolver(context).resolve(path)

        assert verdict.protected
        assert verdict.tier == Tier.PROTECTION
        assert verdict.source == gitignore
        assert verdict.describe() == str(gitignore)

    def test_local_override_beats_protection(
        self, workspace: Path, context: ResolutionContext
    ) -> None:
        """A .allowsafecmd match allows a path the .gitignore protects."""
        write(workspace / GITIGNORE_FILENAME, "build/\n")
        override = write(workspace / ALLOWLIST_FILENAME, "build/\n")
        path = write(workspace / "build" / "output.bin")

        verdict = ProtectionResolver(context).resolve(path)

        assert verdict.allowed
        assert verdict.tier == Tier.LOCAL_OVERRIDE
        assert verdict.source == override

    def test_global_allow_beats_everything(self, workspace: Path) -> None:
        """Config patterns win over both rule files."""
        write(workspace / GITIGNORE_FILENAME, "*.log\n")
        write(workspace / ALLOWLIST_FILENAME, "!*.log\n")
        path = write(workspace / "app.log")
        context = ResolutionContext(global_allow=_global("*.log"), boundary=workspace)

        verdict = ProtectionResolver(context).resolve(path)

        assert verdict.allowed
        assert verdict.tier == Tier.GLOBAL_ALLOW
        assert verdict.describe() == "config allowed_gitignores"

    def test_nearest_gitignore_decides(self, workspace: Path, context: ResolutionContext) -> None:
        """A negation in the nearest .gitignore re-includes the path."""
        write(workspace / GITIGNORE_FILENAME, "*.env\n")
        write(workspace / "sub" / GITIGNORE_FILENAME, "!example.env\n")
        path = write(workspace / "sub" / "example.env")

        assert ProtectionResolver(context).resolve(path).allowed

    def test_farther_gitignore_applies_without_nearer_match(
        self, workspace: Path, context: ResolutionContext
    ) -> None:
        """Rule files without a matching rule defer to farther files."""
        write(workspace / GITIGNORE_FILENAME, "*.env\n")
        write(workspace / "sub" / GITIGNORE_FILENAME, "*.tmp\n")
        path = write(workspace / "sub" / "prod.env")

        verdict = ProtectionResolver(context).resolve(path)

        assert verdict.protected
        assert verdict.source == workspace / GITIGNORE_FILENAME

    def test_negated_override_defers_to_protection(
        self, workspace: Path, context: ResolutionContext
    ) -> None:
        """A negated override match falls through to the .gitignore tier."""
        write(workspace / GITIGNORE_FILENAME, "*.log\n")
        write(workspace / ALLOWLIST_FILENAME, "*.log\n!keep.log\n")
        kept = write(workspace / "keep.log")
        other = write(workspace / "debug.log")
        resolver = ProtectionResolver(context)

        assert resolver.resolve(kept).protected
        assert resolver.resolve(other).allowed

    def test_dir_only_rule_uses_filesystem_type(
        self, workspace: Path, context: ResolutionContext
    ) -> None:
        """Directory-only rules apply to directories, not to files of that name."""
        write(workspace / GITIGNORE_FILENAME, "cache/\n")
        directory = workspace / "cache"
        directory.mkdir()
        file_path = write(workspace / "nested" / "cache")
        resolver = ProtectionResolver(context)

        assert resolver.resolve(directory).protected
        assert resolver.resolve(file_path).allowed

    def test_ancestor_directory_match_protects_contents(
        self, workspace: Path, context: ResolutionContext
    ) -> None:
        """Files inside an ignored directory are protected."""
        write(workspace / GITIGNORE_FILENAME, "node_modules/\n")
        path = write(workspace / "node_modules" / "pkg" / "index.js")

        assert ProtectionResolver(context).resolve(path).protected

    def test_nearer_negation_cannot_reinclude_ignored_directory(
        self, workspace: Path, context: ResolutionContext
    ) -> None:
        """A nested .gitignore cannot re-include a file below an ignored directory."""
        root_gitignore = write(workspace / GITIGNORE_FILENAME, "build/\n")
        write(workspace / "build" / GITIGNORE_FILENAME, "!keep.txt\n")
        path = write(workspace / "build" / "keep.txt")

        verdict = ProtectionResolver(context).resolve(path)

        assert verdict.protected
        assert verdict.tier == Tier.PROTECTION
        assert verdict.source == root_gitignore

    def test_override_still_allows_below_ignored_directory(
        self, workspace: Path, context: ResolutionContext
    ) -> None:
        """A .allowsafecmd match wins over an ignored ancestor directory."""
        write(workspace / GITIGNORE_FILENAME, "build/\n")
        write(workspace / "build" / GITIGNORE_FILENAME, "!keep.txt\n")
        write(workspace / ALLOWLIST_FILENAME, "build/\n")
        path = write(workspace / "build" / "keep.txt")

        verdict = ProtectionResolver(context).resolve(path)

        assert verdict.allowed
        assert verdict.tier == Tier.LOCAL_OVERRIDE

    def test_idempotent(self, workspace: Path, context: ResolutionContext) -> None:
        """Resolving the same path twice yields the same verdict."""
        write(workspace / GITIGNORE_FILENAME, "*.log\n")
        path = write(workspace / "app.log")
        resolver = ProtectionResolver(context)

        assert resolver.resolve(path) == resolver.resolve(path)
        assert resolve(path, context) == resolver.resolve(path)

    def test_missing_path_resolves(self, workspace: Path, context: ResolutionContext) -> None:
        """Paths that do not exist can still be resolved."""
        write(workspace / GITIGNORE_FILENAME, "*.log\n")

        assert ProtectionResolver(context).resolve(workspace / "ghost.log").protected

    def test_malformed_rule_file_raises(self, workspace: Path, context: ResolutionContext) -> None:
        """A malformed .gitignore aborts resolution instead of being ignored."""
        write(workspace / GITIGNORE_FILENAME, "ok\n[broken\n")
        path = write(workspace / "file.txt")

        with pytest.raises(PatternSyntaxError) as exc_info:
            ProtectionResolver(context).resolve(path)

        assert exc_info.value.line == 2

    def test_rule_files_loaded_once(self, workspace: Path, context: ResolutionContext) -> None:
        """A resolver reuses rule files it has already loaded."""
        gitignore = write(workspace / GITIGNORE_FILENAME, "*.log\n")
        path = write(workspace / "app.log")
        resolver = ProtectionResolver(context)

        resolver.resolve(path)
        gitignore.write_text("[broken\n")

        assert resolver.resolve(path).protected
