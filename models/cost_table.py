"""
Cost table models

A CostTable holds per-level costs for one unit; a CostPreset groups the tables
a session was configured with. Both are immutable for the session lifetime.
"""
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from models.base import DraftBaseModel
from models.unit import UnitKind

PRIMARY_TABLE_LENGTH = 7      # Levels 0..6
ATTACHMENT_TABLE_LENGTH = 5   # Phases 1..5


class CostTable(DraftBaseModel):
    """Per-level cost row for a single unit."""

    unit_id: str = Field(..., description="Unit this row applies to")
    kind: UnitKind = Field(UnitKind.PRIMARY, description="Primary unit or attachment")
    costs: List[float] = Field(..., description="Costs by level (7 for primary, 5 for attachments)")

    @model_validator(mode="after")
    def check_length(self) -> 'CostTable':
        expected = ATTACHMENT_TABLE_LENGTH if self.kind == UnitKind.ATTACHMENT else PRIMARY_TABLE_LENGTH
        if len(self.costs) != expected:
            raise ValueError(
                f"Cost table for {self.unit_id} has {len(self.costs)} entries, expected {expected}"
            )
        return self

    @classmethod
    def from_api_data(cls, data: Dict[str, Any], kind: Optional[UnitKind] = None) -> 'CostTable':
        """
        Create CostTable from a catalog balance row.

        Balance rows are shaped {"id"|"code": ..., "costs": [...]}; non-numeric
        entries count as 0 like the balance sheets do.
        """
        if not data:
            raise ValueError("Cannot create CostTable from empty data")

        unit_id = data.get('unit_id') or data.get('code') or data.get('id')
        if unit_id in (None, ""):
            raise ValueError(f"Cost row has no unit identifier: {data}")

        raw_costs = data.get('costs')
        if not isinstance(raw_costs, list):
            raise ValueError(f"Cost row for {unit_id} has no cost list")

        costs = []
        for value in raw_costs:
            try:
                costs.append(float(value))
            except (TypeError, ValueError):
                costs.append(0.0)

        if kind is None:
            kind = UnitKind(data.get('kind', UnitKind.PRIMARY.value))

        return cls(unit_id=str(unit_id), kind=kind, costs=costs)

    @property
    def base(self) -> float:
        """Cost at the lowest level."""
        return self.costs[0]


class CostPreset(DraftBaseModel):
    """Named group of cost tables selected for a session."""

    name: Optional[str] = Field(None, description="Preset display name")
    tables: List[CostTable] = Field(default_factory=list, description="Cost rows in this preset")

    def lookup(self, unit_id: str, kind: UnitKind) -> Optional[CostTable]:
        """Find the row for a unit of the given kind, or None."""
        for table in self.tables:
            if table.unit_id == unit_id and table.kind == kind:
                return table
        return None

    def __len__(self):
        return len(self.tables)
