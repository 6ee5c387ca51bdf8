"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import shutil
from pathlib import Path

import pytest
from safecmd.policy.models import ScopeConfig
from safecmd.policy.resolver import ResolutionContext


class RecordingBackend:
    """Trash backend moving paths into a plain directory.

    Records every moved path and raises PermissionError for paths listed
    in fail_on.
    """

    def __init__(self, trash_dir: Path, supports_tree_moves: bool = True) -> None:
        self.trash_dir = trash_dir
        self.supports_tree_moves = supports_tree_moves
        self.moved: list[Path] = []
        self.fail_on: set[Path] = set()

    def move_to_trash(self, path: Path) -> None:
        if path in self.fail_on:
            raise PermissionError(13, "Permission denied", str(path))
        self.trash_dir.mkdir(parents=True, exist_ok=True)
        destination = self.trash_dir / f"{len(self.moved)}-{path.name}"
        shutil.move(str(path), str(destination))
        self.moved.append(path)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Canonical working directory for policy tests."""
    work = tmp_path.resolve() / "work"
    work.mkdir()
    return work


@pytest.fixture
def context(workspace: Path) -> ResolutionContext:
    """Resolution context whose rule search stops at the workspace."""
    return ResolutionContext(boundary=workspace)


@pytest.fixture
def scope(workspace: Path) -> ScopeConfig:
    """Scope restricted to the workspace."""
    return ScopeConfig(working_dir=workspace)


@pytest.fixture
def backend(tmp_path: Path) -> RecordingBackend:
    """Tree-capable recording backend."""
    return RecordingBackend(tmp_path.resolve() / "trash")


@pytest.fixture
def file_backend(tmp_path: Path) -> RecordingBackend:
    """Recording backend that moves one entry at a time."""
    return RecordingBackend(tmp_path.resolve() / "trash", supports_tree_moves=False)


def write(path: Path, content: str = "") -> Path:
    """Create a file with its parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path
