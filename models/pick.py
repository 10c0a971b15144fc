"""
Pick model

Occupies one resolved draft slot: the unit taken (or banned), its level, and
an optional attachment with its phase.

API FIELD MAPPING:
Spectator payloads use camelCase keys (characterCode, eidolon, lightconeId,
superimpose; wengineId on the zzz side). from_api_data() accepts both shapes.
"""
from typing import Any, Dict, Optional

from pydantic import Field

from models.base import DraftBaseModel


class Pick(DraftBaseModel):
    """A resolved draft slot."""

    unit_id: str = Field(..., description="Picked or banned unit")
    level: int = Field(0, ge=0, le=6, description="Primary upgrade level (0-6)")
    attachment_id: Optional[str] = Field(None, description="Equipped attachment")
    attachment_level: int = Field(1, ge=1, le=5, description="Attachment phase (1-5)")

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'Pick':
        """Create Pick from either the engine or the spectator payload shape."""
        if not data:
            raise ValueError("Cannot create Pick from empty data")

        if 'unit_id' in data:
            return cls(**data)

        attachment_id = data.get('lightconeId', data.get('wengineId'))
        return cls(
            unit_id=str(data['characterCode']),
            level=int(data.get('eidolon', 0)),
            attachment_id=str(attachment_id) if attachment_id is not None else None,
            attachment_level=int(data.get('superimpose', 1)),
        )

    @property
    def has_attachment(self) -> bool:
        return self.attachment_id is not None

    def __str__(self):
        if self.has_attachment:
            return f"{self.unit_id} L{self.level} + {self.attachment_id} P{self.attachment_level}"
        return f"{self.unit_id} L{self.level}"
