"""Change notifications emitted by the state store."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pyfarmbot.models.state import StateTree


class ChangeKind(StrEnum):
    MERGE = "merge"
    REPLACE = "replace"


class StateChange(BaseModel):
    """Delivered to store observers after a merge or replace is installed."""

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    previous: StateTree
    current: StateTree
    version: int = Field(..., description="Store version after the change")
    epoch: int = Field(..., description="Connection epoch (bumped by every replace)")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
