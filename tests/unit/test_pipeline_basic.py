from splurge_assert_migrator.context import PipelineContext
from splurge_assert_migrator.events import EventBus, StepCompletedEvent, TaskCompletedEvent
from splurge_assert_migrator.pipeline import Job, Pipeline, PipelineFactory, Step, Task
from splurge_assert_migrator.result import Result


class DummyEventBus:
    def __init__(self):
        self.published = []

    def publish(self, event):
        self.published.append(event)


class AddOneStep(Step):
    def execute(self, context: PipelineContext, input_data: int) -> Result[int]:
        return Result.success(input_data + 1)


class ReportStep(Step):
    """Attach metadata the way GenerateCodeStep attaches the migration report."""

    def execute(self, context: PipelineContext, input_data: int) -> Result[int]:
        return Result.success(input_data, metadata={"migration_report": {"rewritten": input_data}})


class FailStep(Step):
    def execute(self, context: PipelineContext, input_data: int) -> Result[int]:
        return Result.failure(RuntimeError("boom"))


class ExceptionStep(Step):
    def execute(self, context: PipelineContext, input_data: int) -> Result[int]:
        raise RuntimeError("Test exception in step")


class WarningStep(Step):
    def execute(self, context: PipelineContext, input_data: int) -> Result[int]:
        return Result.warning(input_data + 1, ["Test warning"])


def make_context(tmp_path):
    p = tmp_path / "s.py"
    p.write_text("x=1\n")
    return PipelineContext.create(source_file=str(p), run_id="test")


def test_task_happy_path(tmp_path):
    eb = DummyEventBus()
    task = Task("t", [AddOneStep("s1", eb), AddOneStep("s2", eb)], eb)
    res = task.execute(make_context(tmp_path), 0)
    assert res.is_success()
    assert res.data == 2


def test_task_failure_short_circuits(tmp_path):
    eb = DummyEventBus()
    ok = AddOneStep("ok", eb)
    t = Task("t2", [ok, FailStep("bad", eb), ok], eb)
    res = t.execute(make_context(tmp_path), 0)
    assert res.is_error()
    assert res.metadata["failed_step"] == "bad"
    assert res.metadata["step_index"] == 1


def test_step_exception_becomes_failure(tmp_path):
    eb = DummyEventBus()
    context = make_context(tmp_path)
    result = ExceptionStep("failing_step", eb).run(context, 5)

    assert result.is_error()
    assert "Test exception in step" in str(result.error)
    assert result.metadata == {"step": "failing_step", "context": context.run_id}
    assert len(eb.published) == 2


def test_warnings_propagate_through_job(tmp_path):
    eb = DummyEventBus()
    warning_task = Task("warning_task", [WarningStep("warning", eb)], eb)
    normal_task = Task("normal_task", [AddOneStep("normal", eb)], eb)

    result = Job("test_job", [warning_task, normal_task], eb).execute(make_context(tmp_path), 0)

    assert result.is_warning()
    assert result.data == 2
    assert result.warnings == ["Test warning"]


def test_metadata_is_merged_forward_to_pipeline_result(tmp_path):
    eb = DummyEventBus()
    collect = Job("collect", [Task("rewrite", [ReportStep("generate", eb)], eb)], eb)
    output = Job("output", [Task("write", [AddOneStep("write", eb)], eb)], eb)

    result = Pipeline("migration", [collect, output], eb).execute(make_context(tmp_path), 3)

    assert result.is_success()
    assert result.data == 4
    assert result.metadata["migration_report"] == {"rewritten": 3}


def test_failure_keeps_earlier_metadata(tmp_path):
    eb = DummyEventBus()
    collect = Job("collect", [Task("rewrite", [ReportStep("generate", eb)], eb)], eb)
    output = Job("output", [Task("write", [FailStep("write", eb)], eb)], eb)

    result = Pipeline("migration", [collect, output], eb).execute(make_context(tmp_path), 1)

    assert result.is_error()
    assert result.metadata["migration_report"] == {"rewritten": 1}
    assert result.metadata["failed_job"] == "output"
    assert result.metadata["job_index"] == 1
    assert result.metadata["failed_task"] == "write"


def test_events_published_on_real_bus(tmp_path):
    bus = EventBus()
    seen = []
    bus.subscribe(StepCompletedEvent, lambda e: seen.append(("step", e.step_name, e.result.status.value)))
    bus.subscribe(TaskCompletedEvent, lambda e: seen.append(("task", e.task_name, e.final_result.status.value)))

    Task("t", [AddOneStep("one", bus)], bus).execute(make_context(tmp_path), 0)

    assert seen == [("step", "one", "success"), ("task", "t", "success")]


def test_factory_and_counts(tmp_path):
    eb = DummyEventBus()
    factory = PipelineFactory(eb)
    step = factory.create_step("s", AddOneStep)
    task = factory.create_task("t", [step])
    task.add_step(factory.create_step("s2", AddOneStep))
    job = factory.create_job("j", [task])
    pipeline = factory.create_pipeline("p", [job])

    assert task.get_step_count() == 2
    assert job.get_task_count() == 1
    assert pipeline.get_job_count() == 1
    assert pipeline.execute(make_context(tmp_path), 0).data == 2
