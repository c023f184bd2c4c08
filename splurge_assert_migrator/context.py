"""Pipeline context and migration configuration helpers.

This module defines immutable dataclasses and helpers used to carry
configuration and execution context through the migration pipeline. It
exposes ``MigrationConfig`` for migration options and ``PipelineContext``
for passing runtime information (paths, run id, and metadata) between
pipeline stages. Utility functions for loading and validating
configuration are provided by ``ContextManager``.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .config_validation import validate_migration_config_object
from .exceptions import ConfigurationError
from .result import Result
from .targets import AssertionTargets
from .type_oracle import DEFAULT_VOCABULARY, TypeVocabulary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MigrationConfig:
    """Migration behavior configuration.

    This dataclass centralizes options that control file discovery, the
    migration table and output handling. It is serializable so callers
    can construct it from dictionaries or configuration files.
    """

    # Migration table
    targets: AssertionTargets = field(default_factory=AssertionTargets)
    extra_floating_point_types: list[str] = field(default_factory=list)
    """Additional qualified type names treated as floating point"""
    extra_string_types: list[str] = field(default_factory=list)
    """Additional qualified type names treated as textual strings"""

    # File discovery
    file_patterns: list[str] = field(default_factory=lambda: ["*.py"])
    recurse_directories: bool = True
    target_root: str | None = None
    # Suffix appended to target filename stem (default: '')
    target_suffix: str = ""

    # Output settings
    dry_run: bool = False
    backup_originals: bool = True
    backup_root: str | None = None
    format_output: bool = False
    """Whether to format output code with black and isort. Off by default so
    code outside rewritten calls is left byte for byte as it was."""
    line_length: int | None = 120

    # Processing options
    continue_on_error: bool = False
    """Whether to continue processing other files when one fails"""
    max_concurrent_files: int = 1
    """Maximum number of files to process concurrently (1 = sequential)"""
    io_retries: int = 2
    """Extra attempts for a file read or write that fails with OSError"""
    max_file_size_mb: int = 10
    """Maximum file size in MB to process"""

    log_level: str = "INFO"
    """Default logging level (DEBUG, INFO, WARNING, ERROR)"""

    def with_override(self, **kwargs: Any) -> "MigrationConfig":
        """Return a new ``MigrationConfig`` with specified overrides.

        A ``targets`` override may be given as a mapping; it is merged
        over the current table.
        """
        targets = kwargs.get("targets")
        if isinstance(targets, dict):
            kwargs["targets"] = self.targets.with_override(**targets)
        return dataclasses.replace(self, **kwargs)

    def vocabulary(self) -> TypeVocabulary:
        """Return the type vocabulary extended with the configured extras."""
        if not self.extra_floating_point_types and not self.extra_string_types:
            return DEFAULT_VOCABULARY
        return DEFAULT_VOCABULARY.extended(self.extra_floating_point_types, self.extra_string_types)

    def validate(self) -> None:
        """Validate the configuration.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        validate_migration_config_object(self)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "MigrationConfig":
        """Create config from dictionary.

        Unknown keys are ignored so that configuration files written for
        other versions still load.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        filtered = {k: v for k, v in config_dict.items() if k in cls.__dataclass_fields__}
        targets = filtered.get("targets")
        if targets is not None and not isinstance(targets, AssertionTargets):
            if not isinstance(targets, dict):
                raise ConfigurationError("targets must be a mapping", config_key="targets")
            filtered["targets"] = AssertionTargets.from_dict(targets)
        config = cls(**filtered)
        config.validate()
        return config

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


@dataclass(frozen=True)
class PipelineContext:
    """Immutable context object passed through the migration pipeline.

    The context bundles the source and target file paths, the active
    :class:`MigrationConfig`, a stable ``run_id`` for correlation, and
    an optional metadata mapping.
    """

    source_file: str
    target_file: str
    config: MigrationConfig
    run_id: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not Path(self.source_file).exists():
            # In-memory runs construct contexts without an on-disk file;
            # steps that need the file report the error themselves.
            logger.debug("PipelineContext created with non-existent source_file: %s", self.source_file)

    @classmethod
    def create(
        cls,
        source_file: str,
        target_file: str | None = None,
        config: MigrationConfig | None = None,
        run_id: str | None = None,
    ) -> "PipelineContext":
        """Construct a ``PipelineContext`` from call-site information.

        Args:
            source_file: Path to the source file.
            target_file: Optional output path. When omitted it is derived
                from ``target_root`` and ``target_suffix`` on the config,
                or is the source path itself (in-place migration).
            config: Optional ``MigrationConfig``; defaults are used when
                omitted.
            run_id: Optional run identifier; if omitted a UUID is
                generated.
        """
        if not config:
            config = MigrationConfig()

        if not target_file:
            target_file = str(derive_target_path(source_file, config))

        if not run_id:
            run_id = str(uuid.uuid4())

        return cls(source_file=source_file, target_file=target_file, config=config, run_id=run_id, metadata={})

    def with_metadata(self, key: str, value: Any) -> "PipelineContext":
        new_metadata = {**self.metadata, key: value}
        return dataclasses.replace(self, metadata=new_metadata)

    def with_config(self, **config_overrides: Any) -> "PipelineContext":
        new_config = self.config.with_override(**config_overrides)
        return dataclasses.replace(self, config=new_config)

    def get_source_path(self) -> Path:
        return Path(self.source_file)

    def get_target_path(self) -> Path:
        return Path(self.target_file)

    def is_dry_run(self) -> bool:
        return self.config.dry_run

    def should_format_code(self) -> bool:
        return self.config.format_output

    def get_line_length(self) -> int:
        return self.config.line_length or 120

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_file": self.source_file,
            "target_file": self.target_file,
            "config": self.config.to_dict(),
            "run_id": self.run_id,
            "metadata": self.metadata,
        }

    def __str__(self) -> str:
        return f"PipelineContext(source={self.source_file}, target={self.target_file}, run_id={self.run_id[:8]}...)"


def derive_target_path(source_file: str | Path, config: MigrationConfig) -> Path:
    """Compute where the migrated copy of ``source_file`` is written.

    With neither ``target_root`` nor ``target_suffix`` set the source is
    migrated in place.
    """
    source_path = Path(source_file)
    name = f"{source_path.stem}{config.target_suffix}{source_path.suffix}"
    directory = Path(config.target_root) if config.target_root else source_path.parent
    return directory / name


class ContextManager:
    """Helper utilities for loading and validating pipeline configuration.

    Methods return ``Result`` instances so callers can react to failures
    or warnings in a structured way.
    """

    @staticmethod
    def load_config_from_file(config_file: str) -> Result[MigrationConfig]:
        """Load a ``MigrationConfig`` from a YAML file.

        Unknown top-level keys are ignored. A nested ``targets`` mapping
        supplies the migration table.

        Args:
            config_file: Path to the YAML configuration file.

        Returns:
            A ``Result`` containing the constructed ``MigrationConfig`` on
            success or an error describing the problem.
        """
        try:
            with open(config_file, encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except FileNotFoundError:
            return Result.failure(
                FileNotFoundError(f"Configuration file not found: {config_file}"), {"config_file": config_file}
            )
        except (OSError, yaml.YAMLError) as e:
            return Result.failure(
                ConfigurationError(f"Error loading configuration: {e}"), {"config_file": config_file}
            )

        if not isinstance(config_data, dict):
            return Result.failure(
                ConfigurationError("Configuration file must contain a mapping"), {"config_file": config_file}
            )

        try:
            config = MigrationConfig.from_dict(config_data)
        except (ConfigurationError, TypeError) as e:
            return Result.failure(
                e if isinstance(e, ConfigurationError) else ConfigurationError(str(e)),
                {"config_file": config_file},
            )
        return Result.success(config, {"config_file": config_file})

    @staticmethod
    def validate_config(config: MigrationConfig) -> Result[MigrationConfig]:
        """Validate a ``MigrationConfig`` instance.

        Hard errors become a failure result. Settings that are valid but
        probably not what the caller wants come back as warnings.
        """
        try:
            config.validate()
        except ConfigurationError as e:
            return Result.failure(e)

        issues = []
        if config.dry_run and config.target_root:
            issues.append("dry_run ignores target_root")
        if config.format_output and config.max_concurrent_files > 1:
            issues.append("formatting runs black and isort once per file and may slow concurrent runs")

        if issues:
            return Result.warning(config, [f"Configuration issues: {', '.join(issues)}"])

        return Result.success(config)
