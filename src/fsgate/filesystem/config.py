"""
Configuration for sandboxed filesystem access.
"""

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PermissionTier(str, Enum):
    """
    Which class of operations is exposed.

    The tiers form a chain: DESTRUCTIVE implies WRITE implies READ_ONLY.
    """

    READ_ONLY = "read_only"
    WRITE = "write"
    DESTRUCTIVE = "destructive"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]

    def includes(self, other: "PermissionTier") -> bool:
        """True if this tier grants everything ``other`` grants."""
        return self.rank >= other.rank

    @classmethod
    def from_flags(
        cls, allow_write: bool = False, allow_destructive: bool = False
    ) -> "PermissionTier":
        """Map the ``--allow-write`` / ``--allow-destructive`` flags to a tier."""
        if allow_destructive:
            return cls.DESTRUCTIVE
        if allow_write:
            return cls.WRITE
        return cls.READ_ONLY


_TIER_RANK = {
    PermissionTier.READ_ONLY: 0,
    PermissionTier.WRITE: 1,
    PermissionTier.DESTRUCTIVE: 2,
}

_TRUE_VALUES = {"1", "true", "yes", "on"}


class FileSystemAccessConfig(BaseModel):
    """
    Startup configuration for the filesystem sandbox.

    Immutable once built: the allowed roots and the permission tier stay
    fixed for the lifetime of the process. Every allowed directory is
    canonicalized (symlinks resolved) and must exist.

    Usage:
        config = FileSystemAccessConfig(
            allowed_directories=[Path("/srv/sandbox")],
            permission_tier=PermissionTier.WRITE,
        )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed_directories: tuple[Path, ...] = Field(
        default=(),
        description="Allowed root directories (canonical absolute paths)",
    )

    permission_tier: PermissionTier = Field(
        default=PermissionTier.READ_ONLY,
        description="Which operations are exposed",
    )

    max_read_size_bytes: int = Field(
        default=10_485_760,  # 10 MiB
        ge=0,
        description="Maximum file size for a full (unbounded) read",
    )

    max_depth: int = Field(
        default=10,
        ge=0,
        description="Maximum directory traversal depth for tree and search",
    )

    max_list_entries: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of entries returned by list_directory",
    )

    max_tree_entries: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of nodes emitted by directory_tree",
    )

    default_search_results: int = Field(
        default=50,
        ge=1,
        description="Search result cap when the caller does not supply one",
    )

    max_search_results: int = Field(
        default=200,
        ge=1,
        le=10000,
        description="Hard upper bound on search results",
    )

    @model_validator(mode="before")
    @classmethod
    def tier_from_flags(cls, data: Any) -> Any:
        """Accept ``allow_write`` / ``allow_destructive`` in place of a tier."""
        if not isinstance(data, dict):
            return data
        if "allow_write" not in data and "allow_destructive" not in data:
            return data
        data = dict(data)
        allow_write = bool(data.pop("allow_write", False))
        allow_destructive = bool(data.pop("allow_destructive", False))
        if "permission_tier" not in data:
            data["permission_tier"] = PermissionTier.from_flags(
                allow_write, allow_destructive
            )
        return data

    @field_validator("allowed_directories", mode="before")
    @classmethod
    def resolve_directories(cls, v):
        """Canonicalize every directory; reject missing paths and files."""
        if not v:
            return ()
        if isinstance(v, (str, Path)):
            v = [v]
        resolved: list[Path] = []
        for entry in v:
            try:
                canonical = Path(entry).expanduser().resolve(strict=True)
            except (OSError, RuntimeError) as e:
                raise ValueError(f"Failed to resolve directory '{entry}': {e}")
            if not canonical.is_dir():
                raise ValueError(f"'{entry}' is not a directory")
            if canonical not in resolved:
                resolved.append(canonical)
        return tuple(resolved)

    @model_validator(mode="after")
    def check_search_bounds(self) -> "FileSystemAccessConfig":
        if self.default_search_results > self.max_search_results:
            raise ValueError(
                "default_search_results must not exceed max_search_results"
            )
        return self

    @property
    def allow_write(self) -> bool:
        return self.permission_tier.includes(PermissionTier.WRITE)

    @property
    def allow_destructive(self) -> bool:
        return self.permission_tier.includes(PermissionTier.DESTRUCTIVE)

    @classmethod
    def from_dict(cls, data: dict) -> "FileSystemAccessConfig":
        """
        Create configuration from a dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            FileSystemAccessConfig instance
        """
        return cls(**data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "FileSystemAccessConfig":
        """
        Load configuration from a YAML or JSON file.

        File format (YAML):
            ```yaml
            allowed_directories:
              - ~/projects/sandbox
            allow_write: true
            max_read_size_bytes: 2097152
            max_depth: 6
            ```

        Raises:
            FileNotFoundError: If the config file doesn't exist
        """
        return cls.from_dict(read_config_file(path))

    @classmethod
    def from_env(cls, prefix: str = "FSGATE_") -> "FileSystemAccessConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            FSGATE_ALLOWED_DIRECTORIES - os.pathsep-separated list of roots
            FSGATE_ALLOW_WRITE - Enable write operations
            FSGATE_ALLOW_DESTRUCTIVE - Enable delete/move operations
            FSGATE_MAX_READ_SIZE - Maximum full-read size in bytes
            FSGATE_MAX_DEPTH - Maximum traversal depth
        """
        return cls.from_dict(env_settings(prefix))

    def to_dict(self) -> dict[str, Any]:
        """Export configuration to a plain dictionary."""
        return {
            "allowed_directories": [str(d) for d in self.allowed_directories],
            "permission_tier": self.permission_tier.value,
            "max_read_size_bytes": self.max_read_size_bytes,
            "max_depth": self.max_depth,
            "max_list_entries": self.max_list_entries,
            "max_tree_entries": self.max_tree_entries,
            "default_search_results": self.default_search_results,
            "max_search_results": self.max_search_results,
        }

    def __repr__(self) -> str:
        return (
            f"FileSystemAccessConfig("
            f"allowed_dirs={len(self.allowed_directories)}, "
            f"tier={self.permission_tier.value}, "
            f"max_read_size={self.max_read_size_bytes}, "
            f"max_depth={self.max_depth})"
        )


def read_config_file(path: Union[str, Path]) -> dict[str, Any]:
    """Read a YAML or JSON configuration file into a dictionary."""
    path = Path(path).expanduser().resolve()

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    content = path.read_text()

    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(content)
    elif path.suffix == ".json":
        data = json.loads(content)
    else:
        # Try YAML first, then JSON
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError:
            data = json.loads(content)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def env_settings(prefix: str = "FSGATE_") -> dict[str, Any]:
    """Collect configuration values present in the environment."""
    data: dict[str, Any] = {}

    directories = os.environ.get(f"{prefix}ALLOWED_DIRECTORIES")
    if directories:
        data["allowed_directories"] = [
            d for d in directories.split(os.pathsep) if d.strip()
        ]

    for flag in ("allow_write", "allow_destructive"):
        value = os.environ.get(f"{prefix}{flag.upper()}")
        if value is not None:
            data[flag] = value.strip().lower() in _TRUE_VALUES

    max_read_size = os.environ.get(f"{prefix}MAX_READ_SIZE")
    if max_read_size:
        data["max_read_size_bytes"] = int(max_read_size)

    max_depth = os.environ.get(f"{prefix}MAX_DEPTH")
    if max_depth:
        data["max_depth"] = int(max_depth)

    return data
