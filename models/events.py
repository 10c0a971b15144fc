"""
Spectator sync event model

Three event kinds make up the whole spectator contract. snapshot and update
both carry the full session state (never a diff), so a subscriber that missed
any number of updates is consistent again after the next one.
"""
import json
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from models.base import DraftBaseModel
from models.draft_session import DraftSession


class SyncEventKind(str, Enum):
    """Spectator event kinds."""
    SNAPSHOT = "snapshot"
    UPDATE = "update"
    NOT_FOUND = "not_found"


class SyncEvent(DraftBaseModel):
    """One server-to-spectator event."""

    kind: SyncEventKind = Field(..., description="Event kind")
    key: str = Field(..., description="Session key")
    revision: int = Field(-1, description="Session revision carried by the payload")
    data: Optional[Dict[str, Any]] = Field(None, description="Full session state")

    @classmethod
    def snapshot(cls, session: DraftSession) -> 'SyncEvent':
        return cls(
            kind=SyncEventKind.SNAPSHOT,
            key=session.key,
            revision=session.revision,
            data=session.model_dump(mode="json"),
        )

    @classmethod
    def update(cls, session: DraftSession) -> 'SyncEvent':
        return cls(
            kind=SyncEventKind.UPDATE,
            key=session.key,
            revision=session.revision,
            data=session.model_dump(mode="json"),
        )

    @classmethod
    def not_found(cls, key: str) -> 'SyncEvent':
        return cls(kind=SyncEventKind.NOT_FOUND, key=key)

    @classmethod
    def from_wire(cls, event: str, payload: str, key: str = "") -> 'SyncEvent':
        """
        Rebuild an event from an event-stream frame.

        Args:
            event: The frame's event name
            payload: The frame's data line(s)
            key: Session key to use when the payload does not carry one
        """
        kind = SyncEventKind(event)
        if kind == SyncEventKind.NOT_FOUND:
            return cls.not_found(key)
        data = json.loads(payload) if payload else None
        if not isinstance(data, dict):
            raise ValueError(f"{event} frame carries no session state")
        return cls(
            kind=kind,
            key=str(data.get('key') or key),
            revision=int(data.get('revision', -1)),
            data=data,
        )

    @property
    def is_terminal(self) -> bool:
        return self.kind == SyncEventKind.NOT_FOUND

    def session(self) -> Optional[DraftSession]:
        """Materialise the carried state, or None for not_found."""
        if self.data is None:
            return None
        return DraftSession.model_validate(self.data)

    def __str__(self):
        return f"{self.kind}({self.key}, rev={self.revision})"
