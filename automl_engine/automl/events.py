"""Typed publish/subscribe surface for job and artifact notifications."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Dict, List, Type

from pydantic import BaseModel

from .schemas import FeatureEngineeringStep, HyperparameterOptimization, Job, ModelSelection

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    JOB_CREATED = "job_created"
    JOB_STARTED = "job_started"
    JOB_CANCELLED = "job_cancelled"
    JOB_COMPLETED = "job_completed"
    JOB_FAILED = "job_failed"
    FEATURE_ENGINEERING_CREATED = "feature_engineering_created"
    HYPERPARAMETER_OPTIMIZATION_CREATED = "hyperparameter_optimization_created"
    MODEL_SELECTION_CREATED = "model_selection_created"


EVENT_PAYLOADS: Dict[EventType, Type[BaseModel]] = {
    EventType.JOB_CREATED: Job,
    EventType.JOB_STARTED: Job,
    EventType.JOB_CANCELLED: Job,
    EventType.JOB_COMPLETED: Job,
    EventType.JOB_FAILED: Job,
    EventType.FEATURE_ENGINEERING_CREATED: FeatureEngineeringStep,
    EventType.HYPERPARAMETER_OPTIMIZATION_CREATED: HyperparameterOptimization,
    EventType.MODEL_SELECTION_CREATED: ModelSelection,
}

EventHandler = Callable[[EventType, BaseModel], None]


class EventBus:
    """Synchronous, at-most-once event delivery.

    Each subscriber receives its own copy of the payload. A subscriber that
    raises is logged and skipped; the publisher never sees the error.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: Dict[EventType, List[EventHandler]] = {}

    def subscribe(self, event_type: EventType, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` and return a callable that removes it again."""

        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

        def _unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(event_type, [])
                if handler in handlers:
                    handlers.remove(handler)

        return _unsubscribe

    def publish(self, event_type: EventType, payload: BaseModel) -> None:
        expected = EVENT_PAYLOADS[event_type]
        if not isinstance(payload, expected):
            raise TypeError(
                f"Event '{event_type.value}' expects {expected.__name__}, got {type(payload).__name__}"
            )

        with self._lock:
            handlers = list(self._handlers.get(event_type, []))

        for handler in handlers:
            try:
                handler(event_type, payload.model_copy(deep=True))
            except Exception:
                logger.exception("Subscriber %r failed while handling %s", handler, event_type.value)


__all__ = ["EVENT_PAYLOADS", "EventBus", "EventHandler", "EventType"]
