"""
Turn token model

One slot in a draft sequence. The wire tags match what spectator clients
already render: "B"/"R" for picks, "BB"/"RR" for bans, "B(ACE)"/"R(ACE)" for
ace picks.
"""
from enum import Enum

from pydantic import Field

from models.base import DraftBaseModel


class DraftFamily(str, Enum):
    """Supported draft format families."""
    HSR = "hsr"
    ZZZ = "zzz"


class Side(str, Enum):
    """Draft sides."""
    BLUE = "B"
    RED = "R"

    @property
    def opponent(self) -> 'Side':
        return Side.RED if self is Side.BLUE else Side.BLUE


class TurnKind(str, Enum):
    """Kinds of draft turns."""
    PICK = "pick"
    BAN = "ban"
    ACE = "ace"


class TurnToken(DraftBaseModel):
    """A single turn in the draft sequence."""

    side: Side = Field(..., description="Side that acts on this turn")
    kind: TurnKind = Field(TurnKind.PICK, description="Pick, ban, or ace pick")

    @classmethod
    def parse(cls, tag: str) -> 'TurnToken':
        """
        Parse a wire tag into a TurnToken.

        Args:
            tag: One of "B", "R", "BB", "RR", "B(ACE)", "R(ACE)" (case-insensitive ACE)

        Returns:
            TurnToken instance

        Raises:
            ValueError: If the tag is not recognised
        """
        raw = (tag or "").strip()
        if raw in ("BB", "RR"):
            return cls(side=Side(raw[0]), kind=TurnKind.BAN)
        if raw.upper() in ("B(ACE)", "R(ACE)"):
            return cls(side=Side(raw[0].upper()), kind=TurnKind.ACE)
        if raw in ("B", "R"):
            return cls(side=Side(raw), kind=TurnKind.PICK)
        raise ValueError(f"Unknown turn token: {tag!r}")

    @property
    def tag(self) -> str:
        """Wire tag for this token."""
        side = Side(self.side).value
        if self.kind == TurnKind.BAN:
            return side * 2
        if self.kind == TurnKind.ACE:
            return f"{side}(ACE)"
        return side

    @property
    def is_ban(self) -> bool:
        return self.kind == TurnKind.BAN

    @property
    def is_ace(self) -> bool:
        return self.kind == TurnKind.ACE

    def __str__(self):
        return self.tag
