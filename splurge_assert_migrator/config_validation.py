"""Configuration validation using pydantic schemas.

This module provides runtime validation for configuration objects so a
bad migration table (for example a reserved word as a method name) is
rejected before any file is touched.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

from __future__ import annotations

import keyword
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from typing_extensions import Self

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .context import MigrationConfig


def _check_identifier(value: str, what: str) -> str:
    if not isinstance(value, str) or not value.isidentifier():
        raise ValueError(f"{what} must be a valid Python identifier, got {value!r}")
    if keyword.iskeyword(value):
        raise ValueError(f"{what} cannot be the reserved word {value!r}")
    return value


def _check_dotted_name(value: str, what: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{what} must be a dotted name such as 'package.module', got {value!r}")
    for part in value.split("."):
        _check_identifier(part, what)
    return value


class ValidatedAssertionTargets(BaseModel):
    """Validated version of AssertionTargets."""

    model_config = ConfigDict(extra="ignore")

    legacy_type: str = Field(default="junit.Assertions", description="Module declaring the legacy function")
    legacy_method: str = Field(default="assertEquals", description="Name of the legacy function")
    fluent_type: str = Field(default="assertj.Assertions", description="Module declaring the fluent entry point")
    entry_point: str = Field(default="assertThat", description="Fluent entry point")
    equality_method: str = Field(default="isEqualTo", description="Terminal equality method")
    labelled_message_method: str = Field(default="describedAs", description="Method attaching a textual message")
    deferred_message_method: str = Field(
        default="withFailureMessage", description="Method attaching a lazily built message"
    )
    tolerance_method: str = Field(default="isCloseTo", description="Terminal tolerance comparison")
    tolerance_wrapper: str = Field(default="within", description="Function wrapping the tolerance")
    four_arg_message_index: int = Field(default=2, ge=2, le=3, description="Message position in 4-arg calls")
    four_arg_delta_index: int = Field(default=3, ge=2, le=3, description="Delta position in 4-arg calls")

    @field_validator("legacy_type", "fluent_type")
    @classmethod
    def validate_dotted(cls, v, info):
        return _check_dotted_name(v, info.field_name)

    @field_validator(
        "legacy_method",
        "entry_point",
        "equality_method",
        "labelled_message_method",
        "deferred_message_method",
        "tolerance_method",
        "tolerance_wrapper",
    )
    @classmethod
    def validate_method_names(cls, v, info):
        return _check_identifier(v, info.field_name)

    @model_validator(mode="after")
    def validate_four_arg_layout(self) -> Self:
        if {self.four_arg_message_index, self.four_arg_delta_index} != {2, 3}:
            raise ValueError(
                "four_arg_message_index and four_arg_delta_index must be 2 and 3 in some order, "
                f"got {self.four_arg_message_index} and {self.four_arg_delta_index}"
            )
        if self.legacy_type == self.fluent_type and self.legacy_method == self.entry_point:
            raise ValueError("The fluent entry point cannot be the legacy function itself")
        return self


class ValidatedMigrationConfig(BaseModel):
    """Validated version of MigrationConfig with runtime validation."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    targets: ValidatedAssertionTargets = Field(
        default_factory=ValidatedAssertionTargets, description="Legacy-to-fluent migration table"
    )
    extra_floating_point_types: list[str] = Field(
        default_factory=list, description="Additional type names treated as floating point"
    )
    extra_string_types: list[str] = Field(default_factory=list, description="Additional type names treated as text")

    # Discovery
    file_patterns: list[str] = Field(default_factory=lambda: ["*.py"], description="File patterns to match")
    recurse_directories: bool = Field(default=True, description="Whether to recurse into subdirectories")
    target_root: str | None = Field(default=None, description="Root directory for output files")
    target_suffix: str = Field(default="", description="Suffix to append to target filenames")

    # Output
    dry_run: bool = Field(default=False, description="Whether to perform a dry run")
    backup_originals: bool = Field(default=True, description="Whether to backup original files")
    backup_root: str | None = Field(default=None, description="Root directory for backups")
    format_output: bool = Field(default=False, description="Whether to format output code with black and isort")
    line_length: int | None = Field(default=120, ge=60, le=200, description="Maximum line length")

    # Processing
    continue_on_error: bool = Field(default=False, description="Whether to continue on individual file errors")
    max_concurrent_files: int = Field(default=1, ge=1, le=50, description="Maximum concurrent file processing")
    io_retries: int = Field(default=2, ge=0, le=10, description="Retries for file reads and writes")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Maximum file size in MB")
    log_level: str = Field(default="INFO", description="Default logging level")

    @field_validator("file_patterns")
    @classmethod
    def validate_file_patterns(cls, v):
        if not v:
            raise ValueError(
                "At least one file pattern must be specified. Use glob patterns like '*.py' or 'test_*.py'."
            )

        for i, pattern in enumerate(v):
            if not isinstance(pattern, str):
                raise ValueError(f"File pattern at index {i} must be a string, got {type(pattern).__name__}")
            if not pattern.strip():
                raise ValueError(f"File pattern at index {i} cannot be empty or whitespace-only.")
        return v

    @field_validator("extra_floating_point_types", "extra_string_types")
    @classmethod
    def validate_type_names(cls, v, info):
        return [_check_dotted_name(name, info.field_name) for name in v]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if not isinstance(v, str):
            raise ValueError("log_level must be a string (DEBUG, INFO, WARNING, ERROR)")

        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}, got '{v}'.")
        return upper_v

    @field_validator("target_root", "backup_root")
    @classmethod
    def validate_directory(cls, v, info):
        if v is None:
            return v
        path = Path(v)
        # Missing directories are created on first write.
        if path.exists() and not path.is_dir():
            raise ValueError(f"{info.field_name} must be a directory, got: {v}")
        return v

    @model_validator(mode="after")
    def validate_cross_field_compatibility(self) -> Self:
        """Validate combinations of configuration options for compatibility."""
        errors = []

        if self.backup_root and not self.backup_originals:
            errors.append(
                {
                    "field": "backup_root",
                    "message": "backup_root specified but backup_originals is disabled",
                    "suggestion": "Enable backup_originals or remove backup_root",
                }
            )

        if errors:
            error_messages = [f"{e['field']}: {e['message']} - {e['suggestion']}" for e in errors]
            raise ValueError(f"Configuration conflicts detected: {'; '.join(error_messages)}")

        return self


def validate_migration_config(config_dict: dict[str, Any]) -> ValidatedMigrationConfig:
    """Validate a migration configuration dictionary.

    Raises:
        ConfigurationError: If configuration is invalid. ``config_key``
            names the first offending field when pydantic reports one.
    """
    try:
        return ValidatedMigrationConfig(**config_dict)
    except PydanticValidationError as e:
        errors = e.errors()
        key = ".".join(str(part) for part in errors[0]["loc"]) if errors and errors[0].get("loc") else None
        raise ConfigurationError(f"Invalid migration configuration: {e}", config_key=key) from e


def validate_migration_config_object(config: MigrationConfig) -> ValidatedMigrationConfig:
    """Validate an existing MigrationConfig object by converting it to a dict."""
    return validate_migration_config(config.to_dict())
