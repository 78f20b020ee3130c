from .models import PipelineEvent, PipelineEventType
from .emitter import PipelineEventEmitter, NullEventEmitter

__all__ = [
    "PipelineEvent",
    "PipelineEventType",
    "PipelineEventEmitter",
    "NullEventEmitter",
]
