from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# ----------------------------------------------------------------------
# Event Types
# ----------------------------------------------------------------------
class PipelineEventType(str, Enum):
    """
    Stage transitions of one invoice generation request.

    Order of a successful run:
        NORMALIZING -> MERGING -> PERSISTING -> PREVIEWING -> DONE
    """

    NORMALIZING = "normalizing"
    MERGING = "merging"
    PERSISTING = "persisting"
    PREVIEWING = "previewing"
    DONE = "done"

    # Terminal failure of any stage
    FAILED = "failed"

    # Non-terminal conditions
    PERSISTENCE_WARNING = "persistence_warning"
    PREVIEW_FAILED = "preview_failed"


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class PipelineEvent(BaseModel):
    """
    An immutable observation of a stage transition.

    Events are observational only and never influence execution.
    """

    event_id: UUID = Field(default_factory=uuid4)
    request_id: str = Field(..., description="Identifier of the generation request")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: PipelineEventType

    # Optional contextual metadata (invoice_id, error kind, etc.)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
