"""Config file I/O and models.

This module loads the safecmd config file (TOML) into a validated
Pydantic model and converts it into the scope settings and global allow
patterns consumed by the policy engine. A commented default config is
created on first use.
"""

import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from safecmd.core.paths import ensure_parent_dir, get_config_path, is_scope_disabled
from safecmd.policy.errors import SafecmdError
from safecmd.policy.models import PatternSet, ScopeConfig, Tier
from safecmd.policy.patterns import compile_patterns
from safecmd.policy.resolver import GLOBAL_PATTERN_BASE, ResolutionContext

DEFAULT_CONFIG_HEADER = """\
# safecmd configuration file
# The current working directory is always allowed.
# Add extra allowed directories (absolute paths) under
# [additional_allowed_directories], and gitignore-style patterns that may
# always be deleted under [allowed_gitignores].

"""


class ConfigError(SafecmdError):
    """Base exception for config-related errors."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


class ConfigValidationError(ConfigError):
    """Raised when the config content is invalid."""


class AdditionalAllowedDirectories(BaseModel):
    """Directories outside the working directory the tool may operate in.

    Attributes:
        paths: Absolute directory paths.
    """

    model_config = ConfigDict(extra="forbid")

    paths: Annotated[
        list[Path],
        Field(default_factory=list, description="Additional allowed directories"),
    ]

    @field_validator("paths")
    @classmethod
    def validate_absolute(cls, paths: list[Path]) -> list[Path]:
        """Validate that every directory is an absolute path."""
        for index, path in enumerate(paths):
            if not path.is_absolute():
                msg = (
                    f"additional_allowed_directories.paths[{index}] "
                    f"must be an absolute path: {path}"
                )
                raise ValueError(msg)
        return paths


class AllowedGitignores(BaseModel):
    """Patterns that are always allowed, even if a .gitignore protects them.

    Attributes:
        patterns: gitignore-style patterns evaluated from `/`.
    """

    model_config = ConfigDict(extra="forbid")

    patterns: Annotated[
        list[str],
        Field(default_factory=list, description="Globally allowed patterns"),
    ]


class SafecmdConfig(BaseModel):
    """Root of the safecmd config file."""

    model_config = ConfigDict(extra="forbid")

    additional_allowed_directories: Annotated[
        AdditionalAllowedDirectories,
        Field(default_factory=AdditionalAllowedDirectories),
    ]
    allowed_gitignores: Annotated[
        AllowedGitignores,
        Field(default_factory=AllowedGitignores),
    ]

    def global_patterns(self) -> PatternSet:
        """Compile the globally allowed patterns.

        Raises:
            PatternSyntaxError: If a pattern is malformed.
        """
        return compile_patterns(
            self.allowed_gitignores.patterns,
            Tier.GLOBAL_ALLOW,
            GLOBAL_PATTERN_BASE,
        )

    def to_scope_config(self, working_dir: Path | None = None) -> ScopeConfig:
        """Build the scope settings of an invocation.

        Args:
            working_dir: Working directory. Defaults to the process cwd.

        Returns:
            ScopeConfig, disabled only if SAFECMD_DISABLE_SCOPE is set.
        """
        return ScopeConfig(
            working_dir=working_dir if working_dir is not None else Path.cwd(),
            additional_dirs=tuple(self.additional_allowed_directories.paths),
            enabled=not is_scope_disabled(),
        )

    def resolution_context(self) -> ResolutionContext:
        """Build the resolution context carrying the global patterns."""
        return ResolutionContext(global_allow=self.global_patterns())


def load_config(path: Path | None = None, create: bool = True) -> SafecmdConfig:
    """Load and validate the config file.

    Args:
        path: Path to the config file. If None, uses the default path.
        create: Create a default config file if none exists.

    Returns:
        Validated SafecmdConfig. Defaults if the file is missing and
        create is False.

    Raises:
        ConfigParseError: If the TOML syntax is invalid.
        ConfigValidationError: If the content doesn't match the schema.
        ConfigError: If the file cannot be read or created.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        if not create:
            return SafecmdConfig()
        create_default_config(config_path)

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Failed to parse config file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config file {config_path}: {e}") from e

    try:
        return SafecmdConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid config {config_path}: {e}") from e


def create_default_config(path: Path | None = None) -> Path:
    """Write a default config file.

    The file is written atomically by first writing to a temporary file
    in the same directory and then using os.replace() for atomic rename.

    Args:
        path: Destination. If None, uses the default config path.

    Returns:
        Path where the config was written.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()

    try:
        ensure_parent_dir(config_path, "config")
    except RuntimeError as e:
        raise ConfigError(str(e)) from e

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(DEFAULT_CONFIG_HEADER.encode("utf-8"))
            tomli_w.dump(_config_to_dict(SafecmdConfig()), f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to create config file {config_path}: {e}") from e

    return config_path


def require_config(config_path: Path | None = None) -> SafecmdConfig:
    """Load config or exit with helpful error message.

    Args:
        config_path: Optional custom config path.

    Returns:
        Loaded and validated SafecmdConfig.

    Raises:
        typer.Exit: If the config cannot be loaded.
    """
    import typer

    from safecmd.utils.formatting import print_error

    try:
        return load_config(config_path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def _config_to_dict(config: SafecmdConfig) -> dict[str, Any]:
    """Convert a SafecmdConfig to a dictionary for TOML serialization."""
    return {
        "additional_allowed_directories": {
            "paths": [str(path) for path in config.additional_allowed_directories.paths],
        },
        "allowed_gitignores": {
            "patterns": list(config.allowed_gitignores.patterns),
        },
    }
