"""splurge_assert_migrator package.

Migrates calls to a legacy overloaded ``assertEquals`` function into
fluent ``assertThat(...)`` chains, choosing the target form per call from
the argument count and argument types, and keeps each file's imports
consistent.

Submodules are imported lazily when a public name is first accessed, so
importing the package itself stays cheap and free of import cycles.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

__version__ = "2025.1.0"
__author__ = "Jim Schilling"
__description__ = "Automated legacy assertEquals to fluent assertion migration tool"

__all__ = [
    "main",
    "migrate",
    "migrate_source",
    "MigrationOrchestrator",
    "PipelineContext",
    "MigrationConfig",
    "ContextManager",
    "AssertionTargets",
    "AssertEqualsRewriter",
    "LocalTypeOracle",
    "TypeVocabulary",
    "Result",
    "ResultStatus",
    "EventBus",
    "LoggingSubscriber",
    "Step",
    "Task",
    "Job",
    "Pipeline",
    # Exceptions
    "MigrationError",
    "ParseError",
    "TransformationError",
    "UnsupportedCallShapeError",
    "ImportReconciliationError",
    "TransformationValidationError",
    "ValidationError",
    "ConfigurationError",
]

_MAPPING = {
    "main": "splurge_assert_migrator.main",
    "migrate": "splurge_assert_migrator.main",
    "migrate_source": "splurge_assert_migrator.transformers.assert_equals_transformer",
    "MigrationOrchestrator": "splurge_assert_migrator.migration_orchestrator",
    "PipelineContext": "splurge_assert_migrator.context",
    "MigrationConfig": "splurge_assert_migrator.context",
    "ContextManager": "splurge_assert_migrator.context",
    "AssertionTargets": "splurge_assert_migrator.targets",
    "AssertEqualsRewriter": "splurge_assert_migrator.transformers.assert_equals_transformer",
    "LocalTypeOracle": "splurge_assert_migrator.type_oracle",
    "TypeVocabulary": "splurge_assert_migrator.type_oracle",
    "Result": "splurge_assert_migrator.result",
    "ResultStatus": "splurge_assert_migrator.result",
    "EventBus": "splurge_assert_migrator.events",
    "LoggingSubscriber": "splurge_assert_migrator.events",
    "Step": "splurge_assert_migrator.pipeline",
    "Task": "splurge_assert_migrator.pipeline",
    "Job": "splurge_assert_migrator.pipeline",
    "Pipeline": "splurge_assert_migrator.pipeline",
    "MigrationError": "splurge_assert_migrator.exceptions",
    "ParseError": "splurge_assert_migrator.exceptions",
    "TransformationError": "splurge_assert_migrator.exceptions",
    "UnsupportedCallShapeError": "splurge_assert_migrator.exceptions",
    "ImportReconciliationError": "splurge_assert_migrator.exceptions",
    "TransformationValidationError": "splurge_assert_migrator.exceptions",
    "ValidationError": "splurge_assert_migrator.exceptions",
    "ConfigurationError": "splurge_assert_migrator.exceptions",
}


def __getattr__(name: str):
    """Lazily import submodules/attributes on demand to avoid circular imports."""
    import importlib

    if name not in _MAPPING:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module = importlib.import_module(_MAPPING[name])
    if name == "main":
        return module
    return getattr(module, name)


def __dir__():
    return sorted(list(globals().keys()) + __all__)
