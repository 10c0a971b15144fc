"""
Draft utility functions for the draft session engine

Provides the turn sequence layouts, turn lookups and the shared rounding
helpers used by cost and penalty arithmetic.
"""
import math
from typing import List, Optional, Sequence, Union

from config import SUPPORTED_FAMILIES, SUPPORTED_TEAM_SIZES
from exceptions import ConfigurationException
from models.turn import DraftFamily, Side, TurnToken
from utils.logging import get_contextual_logger

logger = get_contextual_logger(__name__)

# Wire layouts keyed by players per side. Both families share them; bans sit
# at the 5th and 6th tokens so nobody can ban before each side has picked twice.
_LAYOUTS = {
    2: (
        "B", "R", "R", "B", "RR", "BB", "R", "B",
        "B", "R", "R(ACE)", "B(ACE)", "B", "R",
    ),
    3: (
        "B", "R", "R", "B", "RR", "BB", "R", "B",
        "B(ACE)", "R(ACE)", "R", "B", "B", "R",
        "R", "B", "B(ACE)", "R(ACE)", "R", "B",
    ),
}


def build_draft_sequence(family: Union[DraftFamily, str], team_size: int) -> List[TurnToken]:
    """
    Build the fixed turn order for a session.

    Args:
        family: Draft family ("hsr" or "zzz")
        team_size: Players per side (2 or 3)

    Returns:
        Fresh list of TurnTokens

    Raises:
        ConfigurationException: If the (family, team_size) pair is unsupported

    Examples:
        >>> [t.tag for t in build_draft_sequence("zzz", 2)][:6]
        ['B', 'R', 'R', 'B', 'RR', 'BB']

        >>> len(build_draft_sequence("hsr", 3))
        20
    """
    family_value = family.value if isinstance(family, DraftFamily) else str(family)
    if family_value not in SUPPORTED_FAMILIES or team_size not in SUPPORTED_TEAM_SIZES:
        raise ConfigurationException(
            f"Unsupported draft format: family={family_value!r}, team_size={team_size!r}"
        )

    return [TurnToken.parse(tag) for tag in _LAYOUTS[team_size]]


def is_ban_token(token: Union[TurnToken, str]) -> bool:
    """
    Check whether a token (or wire tag) is a ban.

    Examples:
        >>> is_ban_token("RR")
        True

        >>> is_ban_token("B(ACE)")
        False
    """
    if isinstance(token, str):
        token = TurnToken.parse(token)
    return token.is_ban


def is_first_ban_for_side(index: int, sequence: Sequence[TurnToken]) -> bool:
    """
    Check whether the token at index is the first ban of its side.

    The first ban of each side is exempt from clock burn.
    """
    if index < 0 or index >= len(sequence):
        return False
    token = sequence[index]
    if not token.is_ban:
        return False
    for earlier in sequence[:index]:
        if earlier.is_ban and earlier.side == token.side:
            return False
    return True


def side_of_turn(index: int, sequence: Sequence[TurnToken]) -> Optional[Side]:
    """Side acting at index, or None once the sequence is exhausted."""
    if index < 0 or index >= len(sequence):
        return None
    return Side(sequence[index].side)


def is_draft_complete(current_turn: int, sequence: Sequence[TurnToken]) -> bool:
    """
    Check if draft is complete.

    Args:
        current_turn: Cursor into the sequence
        sequence: Turn sequence

    Returns:
        True once every slot has been resolved
    """
    return current_turn >= len(sequence)


def count_side_slots(sequence: Sequence[TurnToken], side: Union[Side, str], include_bans: bool = False) -> int:
    """Number of slots a side owns, bans excluded unless asked for."""
    key = Side(side).value
    return sum(
        1 for token in sequence
        if token.side == key and (include_bans or not token.is_ban)
    )


def format_turn_display(index: int, sequence: Sequence[TurnToken]) -> str:
    """
    Format a turn for display.

    Examples:
        >>> format_turn_display(4, build_draft_sequence("zzz", 2))
        'Turn 5/14: Red ban'

        >>> format_turn_display(14, build_draft_sequence("zzz", 2))
        'Draft complete'
    """
    if is_draft_complete(index, sequence):
        return "Draft complete"

    token = sequence[index]
    side_name = "Blue" if token.side == Side.BLUE.value else "Red"
    if token.is_ban:
        action = "ban"
    elif token.is_ace:
        action = "ace pick"
    else:
        action = "pick"
    return f"Turn {index + 1}/{len(sequence)}: {side_name} {action}"


def round2(value: float) -> float:
    """
    Round half away from zero to 2 decimal places.

    Examples:
        >>> round2(1.005)
        1.01

        >>> round2(2.3333)
        2.33
    """
    # Nudge past binary representation error before flooring
    scaled = abs(value) * 100 + 1e-9
    return math.copysign(math.floor(scaled + 0.5) / 100, value)


def snap_quarter(value: float) -> float:
    """
    Snap a cost to the nearest 0.25; halves round up.

    Examples:
        >>> snap_quarter(1.1)
        1.0

        >>> snap_quarter(1.125)
        1.25
    """
    return math.floor(value * 4 + 0.5) / 4
