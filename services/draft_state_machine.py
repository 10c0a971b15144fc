"""
Draft State Machine

Applies pick / ban / ace / undo / edit / lock operations to a DraftSession.

Every operation returns (ok, reason). Rejected operations leave the session
untouched; illegal actions are never raised as exceptions. Revision bumps,
clock burn and persistence belong to the draft service.
"""
import logging
from typing import Optional, Set, Tuple, Union

from pydantic import ValidationError

from config import get_config
from models.draft_session import DraftSession
from models.pick import Pick
from models.turn import Side

logger = logging.getLogger(f'{__name__}.DraftStateMachine')

Actor = Optional[Union[Side, str]]

# Opponent-held units an ace pick may take over the whole draft, per side
MAX_ACE_STEALS = 1


def _side_value(side: Union[Side, str]) -> str:
    return Side(side).value


def _side_name(side: Union[Side, str]) -> str:
    return "Blue" if _side_value(side) == Side.BLUE.value else "Red"


class DraftStateMachine:
    """Turn-order and pick-legality rules for one draft session."""

    def __init__(self, session: DraftSession, score_max: Optional[int] = None):
        """
        Args:
            session: Session to operate on (mutated in place)
            score_max: Per-player score ceiling (defaults to the family's configured bound)
        """
        self.session = session
        if score_max is None:
            score_max = get_config().score_max_for(session.config.family)
        self.score_max = score_max

    # Derived state

    def banned_unit_ids(self) -> Set[str]:
        """Units taken by a ban slot plus featured universal bans."""
        session = self.session
        banned = set(session.config.universal_bans)
        for token, pick in zip(session.sequence, session.picks):
            if token.is_ban and pick is not None:
                banned.add(pick.unit_id)
        return banned

    def _held_slots(self, side: str, unit_id: str, before: Optional[int] = None):
        """Indices of non-ban slots of a side holding a unit."""
        session = self.session
        limit = len(session.sequence) if before is None else before
        return [
            index for index in range(limit)
            if session.sequence[index].side == side
            and not session.sequence[index].is_ban
            and session.picks[index] is not None
            and session.picks[index].unit_id == unit_id
        ]

    def ace_steals_used(self, side: Union[Side, str]) -> int:
        """
        Count the side's ace slots that took a unit the opponent already held.

        Universal-pick units never count.
        """
        session = self.session
        side = _side_value(side)
        opponent = Side(side).opponent.value
        universal_picks = session.config.universal_picks

        steals = 0
        for index, (token, pick) in enumerate(zip(session.sequence, session.picks)):
            if token.side != side or not token.is_ace or pick is None:
                continue
            if pick.unit_id in universal_picks:
                continue
            if self._held_slots(opponent, pick.unit_id, before=index):
                steals += 1
        return steals

    def available_for(self, side: Union[Side, str], unit_id: str,
                      slot: Optional[int] = None) -> Tuple[bool, str]:
        """
        Check whether a side may take a unit at a slot.

        Args:
            side: Acting side
            unit_id: Unit to pick or ban
            slot: Target slot (defaults to the current turn)

        Returns:
            (allowed, reason)
        """
        session = self.session
        slot = session.current_turn if slot is None else slot
        if slot < 0 or slot >= len(session.sequence):
            return False, f"Slot {slot} is outside the draft"

        side = _side_value(side)
        token = session.sequence[slot]
        universal_picks = session.config.universal_picks

        if unit_id in self.banned_unit_ids():
            return False, f"{unit_id} is banned"

        if token.is_ban:
            if unit_id in universal_picks:
                return False, f"{unit_id} is a universal pick and cannot be banned"
            return True, ""

        if self._held_slots(side, unit_id):
            return False, f"{_side_name(side)} already picked {unit_id}"

        opponent = Side(side).opponent.value
        if unit_id not in universal_picks and self._held_slots(opponent, unit_id):
            if not token.is_ace:
                return False, f"{unit_id} was picked by {_side_name(opponent)}; only an ace pick can take it"
            if self.ace_steals_used(side) >= MAX_ACE_STEALS:
                return False, f"{_side_name(side)} already used its ace steal"

        return True, ""

    # Gating

    def _check_actor_turn(self, actor: Actor, owner: str) -> Tuple[bool, str]:
        """Player actors may only act for their own side; actor=None is the session owner."""
        if actor is None:
            return True, ""
        if _side_value(actor) != owner:
            return False, f"It is {_side_name(owner)}'s turn"
        return True, ""

    # Operations

    def apply_pick(
        self,
        slot: int,
        unit_id: str,
        level: int = 0,
        attachment_id: Optional[str] = None,
        attachment_level: int = 1,
        actor: Actor = None
    ) -> Tuple[bool, str]:
        """
        Resolve the current slot and advance the cursor.

        Args:
            slot: Slot the caller believes is current (stale callers are rejected)
            unit_id: Unit to pick or ban
            level: Primary level (0-6)
            attachment_id: Optional attachment
            attachment_level: Attachment phase (1-5)
            actor: Acting side for player-submitted picks, None for the owner

        Returns:
            (success, reason)
        """
        session = self.session
        if session.draft_complete:
            return False, "Draft is already complete"
        if slot != session.current_turn:
            return False, f"Slot {slot} is not the current turn ({session.current_turn})"

        token = session.sequence[slot]
        ok, reason = self._check_actor_turn(actor, token.side)
        if not ok:
            return ok, reason

        ok, reason = self.available_for(token.side, unit_id, slot)
        if not ok:
            return ok, reason

        if token.is_ban:
            attachment_id = None
        elif attachment_id is not None and attachment_id in session.config.banned_attachments:
            return False, f"Attachment {attachment_id} is banned"

        try:
            pick = Pick(
                unit_id=unit_id,
                level=0 if token.is_ban else level,
                attachment_id=attachment_id,
                attachment_level=attachment_level if attachment_id is not None else 1,
            )
        except ValidationError as e:
            return False, f"Invalid pick: {e.errors()[0]['msg']}"

        session.picks[slot] = pick
        session.current_turn = slot + 1

        logger.debug(f"Draft {session.key}: slot {slot} ({token.tag}) -> {pick}")
        return True, f"{_side_name(token.side)} {'banned' if token.is_ban else 'picked'} {unit_id}"

    def undo(self, actor: Actor = None) -> Tuple[bool, str]:
        """
        Revert the most recent resolved slot.

        Players may only undo their own side's last move while unlocked.
        """
        session = self.session
        if session.current_turn == 0:
            return False, "Nothing to undo"

        last = session.current_turn - 1
        token = session.sequence[last]
        if actor is not None:
            if _side_value(actor) != token.side:
                return False, "You can only undo your own last move"
            if session.is_locked(actor):
                return False, f"{_side_name(actor)} is locked"

        removed = session.picks[last]
        session.picks[last] = None
        session.current_turn = last

        logger.debug(f"Draft {session.key}: undid slot {last} ({removed})")
        return True, f"Undid slot {last + 1}"

    def edit_slot(
        self,
        slot: int,
        level: Optional[int] = None,
        attachment_id: Optional[str] = None,
        attachment_level: Optional[int] = None,
        clear_attachment: bool = False,
        actor: Actor = None
    ) -> Tuple[bool, str]:
        """
        Change level or attachment of a filled non-ban slot. The unit never changes.
        """
        session = self.session
        if slot < 0 or slot >= len(session.sequence):
            return False, f"Slot {slot} is outside the draft"

        token = session.sequence[slot]
        current = session.picks[slot]
        if current is None:
            return False, f"Slot {slot} is empty"
        if token.is_ban:
            return False, "Ban slots cannot be edited"

        if actor is not None:
            if _side_value(actor) != token.side:
                return False, "You can only edit your own slots"
            if session.is_locked(actor):
                return False, f"{_side_name(actor)} is locked"

        new_attachment = current.attachment_id
        new_phase = current.attachment_level
        if clear_attachment:
            new_attachment, new_phase = None, 1
        elif attachment_id is not None:
            if attachment_id in session.config.banned_attachments:
                return False, f"Attachment {attachment_id} is banned"
            if attachment_id != current.attachment_id:
                new_phase = 1
            new_attachment = attachment_id
        if attachment_level is not None and new_attachment is not None:
            new_phase = attachment_level

        try:
            updated = Pick(
                unit_id=current.unit_id,
                level=current.level if level is None else level,
                attachment_id=new_attachment,
                attachment_level=new_phase,
            )
        except ValidationError as e:
            return False, f"Invalid edit: {e.errors()[0]['msg']}"

        session.picks[slot] = updated
        logger.debug(f"Draft {session.key}: edited slot {slot} -> {updated}")
        return True, f"Updated slot {slot + 1}"

    def lock_side(self, side: Union[Side, str]) -> Tuple[bool, str]:
        return self._set_lock(side, True)

    def unlock_side(self, side: Union[Side, str]) -> Tuple[bool, str]:
        return self._set_lock(side, False)

    def _set_lock(self, side: Union[Side, str], locked: bool) -> Tuple[bool, str]:
        if _side_value(side) == Side.BLUE.value:
            self.session.blue_locked = locked
        else:
            self.session.red_locked = locked
        return True, f"{_side_name(side)} {'locked' if locked else 'unlocked'}"

    def set_score(self, side: Union[Side, str], player_index: int, value: int) -> Tuple[bool, str]:
        """Record one player's score, clamped to the family bounds."""
        scores = list(self.session.scores_for(side))
        if player_index < 0 or player_index >= len(scores):
            return False, f"Player index {player_index} out of range"

        scores[player_index] = max(0, min(self.score_max, int(value)))
        if _side_value(side) == Side.BLUE.value:
            self.session.blue_scores = scores
        else:
            self.session.red_scores = scores
        return True, f"{_side_name(side)} player {player_index + 1} score set to {scores[player_index]}"

    def can_finalize(self) -> Tuple[bool, str]:
        """A match can be finalized once the draft is complete and every score is in."""
        session = self.session
        if not session.draft_complete:
            return False, "Draft is not complete"
        if any(score <= 0 for score in session.blue_scores + session.red_scores):
            return False, "Every player needs a score"
        return True, ""
