"""Tests for pydantic-backed configuration validation."""

import pytest

from splurge_assert_migrator.config_validation import (
    ValidatedAssertionTargets,
    ValidatedMigrationConfig,
    validate_migration_config,
    validate_migration_config_object,
)
from splurge_assert_migrator.context import MigrationConfig
from splurge_assert_migrator.exceptions import ConfigurationError
from splurge_assert_migrator.targets import AssertionTargets


def test_defaults_are_valid():
    validated = validate_migration_config({})
    assert isinstance(validated, ValidatedMigrationConfig)
    assert validated.targets.labelled_message_method == "describedAs"
    assert validated.format_output is False
    assert validated.io_retries == 2


def test_config_object_round_trip():
    config = MigrationConfig(line_length=100, extra_string_types=["myapp.Text"])
    validated = validate_migration_config_object(config)
    assert validated.line_length == 100
    assert validated.extra_string_types == ["myapp.Text"]


def test_log_level_is_normalised():
    assert validate_migration_config({"log_level": "debug"}).log_level == "DEBUG"


@pytest.mark.parametrize(
    "overrides,key",
    [
        ({"line_length": 20}, "line_length"),
        ({"max_concurrent_files": 0}, "max_concurrent_files"),
        ({"io_retries": 11}, "io_retries"),
        ({"max_file_size_mb": 0}, "max_file_size_mb"),
        ({"file_patterns": []}, "file_patterns"),
        ({"file_patterns": ["  "]}, "file_patterns"),
        ({"log_level": "TRACE"}, "log_level"),
        ({"extra_floating_point_types": ["not a name"]}, "extra_floating_point_types"),
    ],
)
def test_field_errors_name_the_key(overrides, key):
    with pytest.raises(ConfigurationError) as exc_info:
        validate_migration_config(overrides)
    assert exc_info.value.details["config_key"] == key


@pytest.mark.parametrize(
    "field,value",
    [
        ("labelled_message_method", "as"),
        ("entry_point", "assert-that"),
        ("tolerance_wrapper", ""),
        ("legacy_type", "junit..Assertions"),
        ("fluent_type", "assertj.class"),
    ],
)
def test_table_names_must_be_usable_identifiers(field, value):
    with pytest.raises(ConfigurationError) as exc_info:
        validate_migration_config({"targets": {field: value}})
    assert exc_info.value.details["config_key"] == f"targets.{field}"


@pytest.mark.parametrize("message_index,delta_index", [(2, 2), (3, 3), (1, 3), (2, 4)])
def test_four_arg_indices_must_be_two_and_three(message_index, delta_index):
    with pytest.raises(ConfigurationError):
        validate_migration_config(
            {"targets": {"four_arg_message_index": message_index, "four_arg_delta_index": delta_index}}
        )


def test_swapped_four_arg_indices_are_accepted():
    targets = ValidatedAssertionTargets(four_arg_message_index=3, four_arg_delta_index=2)
    assert targets.four_arg_message_index == 3


def test_entry_point_cannot_be_the_legacy_function():
    with pytest.raises(ConfigurationError):
        validate_migration_config(
            {"targets": {"fluent_type": "junit.Assertions", "entry_point": "assertEquals"}}
        )


def test_backup_root_requires_backups(tmp_path):
    with pytest.raises(ConfigurationError, match="backup_root specified but backup_originals is disabled"):
        validate_migration_config({"backup_root": str(tmp_path), "backup_originals": False})


def test_target_root_must_not_be_a_file(tmp_path):
    existing = tmp_path / "file.txt"
    existing.write_text("x")
    with pytest.raises(ConfigurationError) as exc_info:
        validate_migration_config({"target_root": str(existing)})
    assert exc_info.value.details["config_key"] == "target_root"

    # A directory that does not exist yet is fine.
    assert validate_migration_config({"target_root": str(tmp_path / "new")}).target_root == str(tmp_path / "new")


def test_migration_config_validate_uses_targets_table():
    config = MigrationConfig(targets=AssertionTargets(equality_method="class"))
    with pytest.raises(ConfigurationError):
        config.validate()
