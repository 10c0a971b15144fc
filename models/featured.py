"""
Featured override models

Per-unit session configuration: a ban/pick rule and an optional custom base
cost. Modelled as a tagged union on 'kind' so primary-only rules can never be
attached to an attachment by accident.
"""
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter, model_validator

from models.base import DraftBaseModel


class FeaturedRule(str, Enum):
    """Featured ban/pick rules."""
    NONE = "none"
    UNIVERSAL_BAN = "universalBan"
    UNIVERSAL_PICK = "universalPick"


# Legacy rule names still stored in older session configs
_LEGACY_RULES = {
    "globalBan": FeaturedRule.UNIVERSAL_BAN.value,
    "globalPick": FeaturedRule.UNIVERSAL_PICK.value,
}


class _FeaturedBase(DraftBaseModel):
    unit_id: str = Field(..., description="Featured unit")
    rule: FeaturedRule = Field(FeaturedRule.NONE, description="Ban/pick rule")
    custom_cost: Optional[float] = Field(None, ge=0, description="Replacement base cost")

    @model_validator(mode="after")
    def require_effect(self):
        if self.rule == FeaturedRule.NONE and self.custom_cost is None:
            raise ValueError(f"Featured {self.unit_id} needs a rule or a custom cost")
        return self

    @property
    def is_universal_ban(self) -> bool:
        return self.rule == FeaturedRule.UNIVERSAL_BAN

    @property
    def is_universal_pick(self) -> bool:
        return self.rule == FeaturedRule.UNIVERSAL_PICK


class FeaturedPrimary(_FeaturedBase):
    """Featured configuration for a primary unit."""

    kind: Literal["primary"] = "primary"


class FeaturedAttachment(_FeaturedBase):
    """Featured configuration for an attachment. Attachments cannot be universal picks."""

    kind: Literal["attachment"] = "attachment"

    @model_validator(mode="after")
    def reject_universal_pick(self) -> 'FeaturedAttachment':
        if self.rule == FeaturedRule.UNIVERSAL_PICK:
            raise ValueError(f"Attachment {self.unit_id} cannot be a universal pick")
        return self


FeaturedOverride = Annotated[
    Union[FeaturedPrimary, FeaturedAttachment],
    Field(discriminator="kind"),
]

_featured_adapter = TypeAdapter(FeaturedOverride)


def parse_featured(data: Dict[str, Any]) -> Union[FeaturedPrimary, FeaturedAttachment]:
    """
    Build a featured override from session configuration data.

    Accepts both the engine shape ({"kind": "primary", "unit_id": ...}) and the
    legacy front-end shape ({"kind": "character"|"lightcone", "code"|"id": ...,
    "rule": "globalBan", "customCost": ...}).
    """
    parsed = dict(data)
    kind = parsed.get('kind')
    if kind == 'character':
        parsed['kind'] = 'primary'
    elif kind == 'lightcone' or (kind is None and parsed.get('id') is not None and 'code' not in parsed):
        parsed['kind'] = 'attachment'
    elif kind is None:
        parsed['kind'] = 'primary'

    if 'unit_id' not in parsed:
        unit_id = parsed.pop('code', None) if parsed['kind'] == 'primary' else parsed.pop('id', None)
        if unit_id is not None:
            parsed['unit_id'] = str(unit_id)

    if 'customCost' in parsed and 'custom_cost' not in parsed:
        parsed['custom_cost'] = parsed.pop('customCost')

    rule = parsed.get('rule')
    if rule in _LEGACY_RULES:
        parsed['rule'] = _LEGACY_RULES[rule]

    for extra in ('name', 'image_url', 'code', 'id', 'customCost'):
        parsed.pop(extra, None)

    return _featured_adapter.validate_python(parsed)


def parse_featured_list(items: List[Dict[str, Any]]) -> List[Union[FeaturedPrimary, FeaturedAttachment]]:
    """Parse a list of featured overrides."""
    return [parse_featured(item) for item in (items or [])]
