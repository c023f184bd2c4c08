"""End-to-end tests for the ``main.migrate`` entry point."""

import yaml

from splurge_assert_migrator import main
from splurge_assert_migrator.context import ContextManager, MigrationConfig
from splurge_assert_migrator.events import EventBus, PipelineCompletedEvent

LEGACY = "from junit.Assertions import assertEquals\n\n\ndef test_sum():\n    assertEquals(3, 1 + 2)\n"


def test_dry_run_returns_generated_code_without_writing(tmp_path):
    source = tmp_path / "test_sum.py"
    source.write_text(LEGACY, encoding="utf-8")

    result = main.migrate(str(source), MigrationConfig(dry_run=True))

    assert result.is_success()
    generated = result.metadata["generated_code"][str(source)]
    assert "assertThat(1 + 2).isEqualTo(3)" in generated
    assert "from assertj.Assertions import assertThat" in generated
    assert source.read_text(encoding="utf-8") == LEGACY
    assert not (tmp_path / "test_sum.py.backup").exists()


def test_directory_argument_is_expanded(tmp_path):
    (tmp_path / "pkg").mkdir()
    nested = tmp_path / "pkg" / "test_nested.py"
    nested.write_text(LEGACY, encoding="utf-8")
    (tmp_path / "test_other.py").write_text("x = 1\n", encoding="utf-8")

    result = main.migrate([str(tmp_path)], MigrationConfig(backup_originals=False))

    assert result.data == [str(nested)]
    assert "assertThat" in nested.read_text(encoding="utf-8")
    assert (tmp_path / "test_other.py").read_text(encoding="utf-8") == "x = 1\n"


def test_backups_go_to_backup_root(tmp_path):
    source = tmp_path / "test_sum.py"
    source.write_text(LEGACY, encoding="utf-8")
    backups = tmp_path / "backups"

    result = main.migrate([str(source)], MigrationConfig(backup_root=str(backups)))

    assert result.is_success()
    assert (backups / "test_sum.py.backup").read_text(encoding="utf-8") == LEGACY
    assert not (tmp_path / "test_sum.py.backup").exists()


def test_event_bus_sees_each_file(tmp_path):
    bus = EventBus()
    completed = []
    bus.subscribe(PipelineCompletedEvent, completed.append)
    files = []
    for i in range(3):
        path = tmp_path / f"test_{i}.py"
        path.write_text(LEGACY, encoding="utf-8")
        files.append(str(path))

    main.migrate(files, MigrationConfig(backup_originals=False), event_bus=bus)

    assert len(completed) == 3


def test_yaml_config_with_custom_targets(tmp_path):
    config_file = tmp_path / "migrate.yaml"
    config_file.write_text(
        yaml.safe_dump(
            {
                "backup_originals": False,
                "targets": {"fluent_type": "fluent.api", "entry_point": "expect", "equality_method": "toEqual"},
                "unknown_option": True,
            }
        ),
        encoding="utf-8",
    )
    loaded = ContextManager.load_config_from_file(str(config_file))
    assert loaded.is_success()

    source = tmp_path / "test_sum.py"
    source.write_text(LEGACY, encoding="utf-8")
    result = main.migrate([str(source)], loaded.data)

    assert result.is_success()
    migrated = source.read_text(encoding="utf-8")
    assert "from fluent.api import expect" in migrated
    assert "expect(1 + 2).toEqual(3)" in migrated
    assert "junit" not in migrated


def test_invalid_yaml_config(tmp_path):
    config_file = tmp_path / "bad.yaml"
    config_file.write_text("- just\n- a list\n", encoding="utf-8")
    assert ContextManager.load_config_from_file(str(config_file)).is_error()
    assert ContextManager.load_config_from_file(str(tmp_path / "missing.yaml")).is_error()


def test_migrate_source_round_trip_is_stable():
    once = main.migrate_source(LEGACY)
    assert main.migrate_source(once) == once
