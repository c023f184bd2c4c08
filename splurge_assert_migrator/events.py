"""Event system for pipeline observability.

This module provides a lightweight, thread-safe publish/subscribe
mechanism and a set of strongly-typed event dataclasses used to
observe pipeline execution. Besides the lifecycle events for pipelines,
jobs, tasks and steps, the rewrite step publishes one event per matched
call so callers can see which calls were migrated and which were left
alone.

Copyright (c) 2025 Jim Schilling
This software is released under the MIT License.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from .context import PipelineContext
from .result import Result

T = TypeVar("T")
EventHandler = Callable[[Any], None]


@dataclass(frozen=True)
class BaseEvent:
    """Base event class that carries common event metadata."""

    timestamp: float
    run_id: str

    def __post_init__(self) -> None:
        if self.timestamp < 0:
            raise ValueError("Timestamp cannot be negative")


@dataclass(frozen=True)
class PipelineStartedEvent(BaseEvent):
    """Event fired when pipeline execution starts."""

    context: PipelineContext


@dataclass(frozen=True)
class PipelineCompletedEvent(BaseEvent):
    """Event fired when pipeline execution completes."""

    context: PipelineContext
    final_result: Result[Any]
    duration_ms: float


@dataclass(frozen=True)
class StepStartedEvent(BaseEvent):
    context: PipelineContext
    step_name: str
    step_type: str


@dataclass(frozen=True)
class StepCompletedEvent(BaseEvent):
    context: PipelineContext
    step_name: str
    step_type: str
    result: Result[Any]
    duration_ms: float


@dataclass(frozen=True)
class TaskStartedEvent(BaseEvent):
    context: PipelineContext
    task_name: str
    task_type: str
    step_count: int


@dataclass(frozen=True)
class TaskCompletedEvent(BaseEvent):
    context: PipelineContext
    task_name: str
    task_type: str
    final_result: Result[Any]
    duration_ms: float


@dataclass(frozen=True)
class JobStartedEvent(BaseEvent):
    context: PipelineContext
    job_name: str
    job_type: str
    task_count: int


@dataclass(frozen=True)
class JobCompletedEvent(BaseEvent):
    context: PipelineContext
    job_name: str
    job_type: str
    final_result: Result[Any]
    duration_ms: float


@dataclass(frozen=True)
class CallRewrittenEvent(BaseEvent):
    """Event fired for each legacy call replaced by a fluent chain."""

    context: PipelineContext
    position: str | None
    shape: str
    message_style: str | None


@dataclass(frozen=True)
class CallSkippedEvent(BaseEvent):
    """Event fired for each matched legacy call left untouched."""

    context: PipelineContext
    position: str | None
    reason: str


@dataclass(frozen=True)
class ErrorEvent(BaseEvent):
    """Event fired when an error occurs."""

    context: PipelineContext
    error: Exception
    error_type: str
    component: str


class EventBus:
    """Thread-safe event publication and subscription system.

    The EventBus maintains per-event-type subscriber lists and
    guarantees that handlers are invoked outside the internal lock to
    avoid blocking publishers. One bus may be shared by files migrated
    on different worker threads.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def clear_subscribers(self, event_type: type[T] | None = None) -> None:
        """Clear subscribers for a specific event type or all subscribers."""
        with self._lock:
            if event_type:
                self._subscribers[event_type].clear()
                self._logger.debug(f"Cleared subscribers for {event_type.__name__}")
            else:
                self._subscribers.clear()
                self._logger.debug("Cleared all subscribers")

    def get_subscriber_count(self, event_type: type[T]) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, []))

    def subscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        """Register a handler for events of a specific type.

        Args:
            event_type: The event dataclass/type to subscribe to.
            handler: Callable that accepts a single event instance.
        """
        with self._lock:
            self._subscribers[event_type].append(handler)
            self._logger.debug(f"Subscribed handler {handler} to {event_type.__name__}")

    def unsubscribe(self, event_type: type[T], handler: Callable[[T], None]) -> None:
        with self._lock:
            if event_type in self._subscribers and handler in self._subscribers[event_type]:
                self._subscribers[event_type].remove(handler)
                self._logger.debug(f"Unsubscribed handler {handler} from {event_type.__name__}")

    def publish(self, event: Any) -> None:
        """Publish an event to all matching subscribers.

        Handlers registered for the concrete type of ``event`` are invoked
        synchronously. Errors raised by handlers are logged but do not
        interrupt delivery to other handlers.
        """
        event_type = type(event)

        with self._lock:
            handlers = self._subscribers.get(event_type, []).copy()

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # A broken handler must not fail the migration.
                self._logger.error(f"Event handler error for {event_type.__name__}: {e}", exc_info=True)


class EventSubscriber(ABC):
    """Base class for event subscribers.

    Subclasses implement ``_setup_subscriptions`` to register handlers
    and ``unsubscribe_all`` to remove them.
    """

    def __init__(self, event_bus: EventBus):
        self.event_bus = event_bus
        self._setup_subscriptions()

    @abstractmethod
    def _setup_subscriptions(self) -> None:
        pass

    @abstractmethod
    def unsubscribe_all(self) -> None:
        pass


class LoggingSubscriber(EventSubscriber):
    """Event subscriber that logs pipeline events using the logging module.

    Skipped calls are logged at INFO so a best-effort migration still
    tells the user which calls need manual attention.
    """

    def _handlers(self) -> list[tuple[type, EventHandler]]:
        return [
            (PipelineStartedEvent, self._on_pipeline_started),
            (PipelineCompletedEvent, self._on_pipeline_completed),
            (StepStartedEvent, self._on_step_started),
            (StepCompletedEvent, self._on_step_completed),
            (CallRewrittenEvent, self._on_call_rewritten),
            (CallSkippedEvent, self._on_call_skipped),
            (ErrorEvent, self._on_error),
        ]

    def _setup_subscriptions(self) -> None:
        for event_type, handler in self._handlers():
            self.event_bus.subscribe(event_type, handler)

    def unsubscribe_all(self) -> None:
        for event_type, handler in self._handlers():
            self.event_bus.unsubscribe(event_type, handler)

    def _on_pipeline_started(self, event: PipelineStartedEvent) -> None:
        self.event_bus._logger.info(
            f"Pipeline started: {event.context.source_file} -> {event.context.target_file} (run_id: {event.run_id})"
        )

    def _on_pipeline_completed(self, event: PipelineCompletedEvent) -> None:
        status = "SUCCESS" if event.final_result.is_ok() else "FAILED"
        self.event_bus._logger.info(f"Pipeline completed in {event.duration_ms:.2f}ms: {status}")

    def _on_step_started(self, event: StepStartedEvent) -> None:
        self.event_bus._logger.debug(f"Step started: {event.step_name} ({event.step_type})")

    def _on_step_completed(self, event: StepCompletedEvent) -> None:
        status = event.result.status.value.upper()
        self.event_bus._logger.debug(f"Step completed in {event.duration_ms:.2f}ms: {event.step_name} ({status})")

    def _on_call_rewritten(self, event: CallRewrittenEvent) -> None:
        self.event_bus._logger.debug(
            f"Rewrote call at {event.context.source_file}:{event.position} as {event.shape}"
        )

    def _on_call_skipped(self, event: CallSkippedEvent) -> None:
        self.event_bus._logger.info(f"Skipped call at {event.context.source_file}:{event.position}: {event.reason}")

    def _on_error(self, event: ErrorEvent) -> None:
        self.event_bus._logger.error(f"Error in {event.component}: {event.error}")
