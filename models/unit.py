"""
Unit model

Represents draftable reference data: primary units (characters / agents) and
attachments (light cones / W-engines).

API FIELD MAPPING:
Catalog sources are loosely typed. Characters are keyed by 'code', attachments
by 'id' (numeric or string). Rarity arrives as a star count (5/4), a letter
grade (S/A/B) or not at all. from_api_data() normalises all of these.
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from models.base import DraftBaseModel


class UnitKind(str, Enum):
    """Kinds of draftable units."""
    PRIMARY = "primary"
    ATTACHMENT = "attachment"


class Rarity(str, Enum):
    """Rarity tiers that drive the rule-based cost formula."""
    COMMON = "common"
    RARE = "rare"


PRIMARY_LEVEL_RANGE = (0, 6)
ATTACHMENT_LEVEL_RANGE = (1, 5)


def _coerce_rarity(value: Any) -> Rarity:
    """Map catalog rarity values onto the two engine tiers."""
    if value is None or value == "":
        return Rarity.RARE
    if isinstance(value, str):
        text = value.strip().upper()
        if text in (Rarity.RARE.value.upper(), "S", "SSR"):
            return Rarity.RARE
        if text in (Rarity.COMMON.value.upper(), "A", "B", "SR", "R"):
            return Rarity.COMMON
        try:
            value = float(text)
        except ValueError:
            return Rarity.RARE
    try:
        return Rarity.RARE if float(value) >= 5 else Rarity.COMMON
    except (TypeError, ValueError):
        return Rarity.RARE


class Unit(DraftBaseModel):
    """Draftable unit (primary or attachment)."""

    id: str = Field(..., description="Stable unit identifier")
    name: str = Field("", description="Display name")
    kind: UnitKind = Field(UnitKind.PRIMARY, description="Primary unit or attachment")
    rarity: Rarity = Field(Rarity.RARE, description="Rarity tier")
    limited: bool = Field(False, description="Limited units follow the steeper cost curve")
    subname: Optional[str] = Field(None, description="Secondary display name")
    image_url: Optional[str] = Field(None, description="Portrait URL")

    @classmethod
    def from_api_data(cls, data: Dict[str, Any], kind: Optional[UnitKind] = None) -> 'Unit':
        """
        Create Unit from catalog data.

        Args:
            data: Raw catalog record
            kind: Force a unit kind (catalog endpoints are split by kind)

        Raises:
            ValueError: If the record carries no usable identifier
        """
        if not data:
            raise ValueError("Cannot create Unit from empty data")

        unit_id = data.get('code')
        if unit_id in (None, ""):
            unit_id = data.get('id')
        if unit_id in (None, ""):
            raise ValueError(f"Unit record has no identifier: {data}")

        if kind is None:
            kind = UnitKind(data.get('kind', UnitKind.PRIMARY.value))

        return cls(
            id=str(unit_id),
            name=str(data.get('name') or ""),
            kind=kind,
            rarity=_coerce_rarity(data.get('rarity')),
            limited=bool(data.get('limited', False)),
            subname=data.get('subname'),
            image_url=data.get('image_url') or data.get('imageUrl'),
        )

    @property
    def is_rare(self) -> bool:
        return self.rarity == Rarity.RARE

    @property
    def is_attachment(self) -> bool:
        return self.kind == UnitKind.ATTACHMENT

    @property
    def level_range(self) -> tuple:
        """Inclusive (min, max) upgrade level for this unit kind."""
        return ATTACHMENT_LEVEL_RANGE if self.is_attachment else PRIMARY_LEVEL_RANGE

    def clamp_level(self, level: int) -> int:
        """Clamp a level into this unit's upgrade range."""
        low, high = self.level_range
        return max(low, min(high, int(level)))

    def __str__(self):
        return f"{self.name or self.id} ({self.rarity}{', limited' if self.limited else ''})"
