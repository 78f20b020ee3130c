from __future__ import annotations

from typing import Protocol

from invoicer.app.events.models import PipelineEvent


class PipelineEventEmitter(Protocol):
    """
    Interface for broadcasting pipeline stage transitions.

    Implementations must be:
    - non-blocking (or minimally blocking)
    - fail-safe (emission failures must not fail the request)
    - observational only
    """

    def emit(self, event: PipelineEvent) -> None:
        ...


class NullEventEmitter:
    """A safe no-op emitter, used when nobody observes the pipeline."""

    def emit(self, event: PipelineEvent) -> None:
        return
