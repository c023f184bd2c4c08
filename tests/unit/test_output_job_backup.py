from splurge_assert_migrator.context import MigrationConfig, PipelineContext
from splurge_assert_migrator.events import EventBus
from splurge_assert_migrator.jobs import CollectorJob, FormatterJob, OutputJob
from tests.test_utils import LEGACY_IMPORT


def make_context(tmp_path, code, **overrides):
    source = tmp_path / "test_job.py"
    source.write_text(code, encoding="utf-8")
    context = PipelineContext.create(str(source), config=MigrationConfig(**overrides))
    return context.with_metadata("original_code", code)


def test_backup_created_only_when_content_changes(tmp_path):
    context = make_context(tmp_path, "x = 1\n")
    job = OutputJob(EventBus())

    unchanged = job.execute(context, "x = 1\n")
    assert unchanged.is_success()
    assert "backup_file" not in unchanged.metadata
    assert not (tmp_path / "test_job.py.backup").exists()

    changed = job.execute(context, "x = 2\n")
    assert changed.metadata["backup_file"] == str(tmp_path / "test_job.py.backup")
    assert (tmp_path / "test_job.py.backup").read_text() == "x = 1\n"
    assert (tmp_path / "test_job.py").read_text() == "x = 2\n"


def test_no_backup_in_dry_run_or_when_disabled(tmp_path):
    for overrides in ({"dry_run": True}, {"backup_originals": False}):
        context = make_context(tmp_path, "x = 1\n", **overrides)
        OutputJob(EventBus()).execute(context, "x = 2\n")
        assert not (tmp_path / "test_job.py.backup").exists()


def test_backup_failure_stops_the_write(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    context = make_context(tmp_path, "x = 1\n", backup_root=str(blocker / "sub"))

    result = OutputJob(EventBus()).execute(context, "x = 2\n")

    assert result.is_error()
    assert (tmp_path / "test_job.py").read_text() == "x = 1\n"


def test_collector_and_formatter_jobs(tmp_path):
    code = LEGACY_IMPORT + "assertEquals(1, a)\n"
    context = make_context(tmp_path, code)
    bus = EventBus()

    collected = CollectorJob(bus).execute(context, code)
    assert collected.is_success()
    assert "assertThat(a).isEqualTo(1)" in collected.data
    assert collected.metadata["migration_report"]["rewritten"] == 1

    formatted = FormatterJob(bus).execute(context, collected.data)
    assert formatted.data == collected.data


def test_collector_rejects_non_text_input(tmp_path):
    context = make_context(tmp_path, "x = 1\n")
    assert CollectorJob(EventBus()).execute(context, None).is_error()
