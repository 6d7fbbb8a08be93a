"""
geostats/game_mode.py
=====================
Game mode labels derived from the three movement restrictions.

Forward mapping (classify_mode) is total over all eight restriction
triples. The inverse is lossy: only "Moving", "No Move" and "NMPZ" name a
single triple, synthesized codes ("NMNZ", "NZNR", ...) can be decoded bit by
bit, and anything else is an opaque custom label.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

MOVING = "Moving"
NO_MOVE = "No Move"
NMPZ = "NMPZ"
CUSTOM = "Custom"

# Abbreviation order is fixed: moving, zooming, rotating.
RESTRICTION_CODES = (
    ("forbid_moving", "NM"),
    ("forbid_zooming", "NZ"),
    ("forbid_rotating", "NR"),
)

SLUGS = {
    "moving": "move",
    "no move": "no move",
    "nmpz": "nmpz",
}
CUSTOM_SLUG = "custom"


@dataclass(frozen=True)
class ModeRestrictions:
    forbid_moving: bool = False
    forbid_zooming: bool = False
    forbid_rotating: bool = False

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "ModeRestrictions":
        """Build from the camelCase `restrictions` object of a game payload."""
        payload = payload or {}
        return cls(
            forbid_moving=bool(payload.get("forbidMoving")),
            forbid_zooming=bool(payload.get("forbidZooming")),
            forbid_rotating=bool(payload.get("forbidRotating")),
        )

    def as_tuple(self) -> tuple[bool, bool, bool]:
        return (self.forbid_moving, self.forbid_zooming, self.forbid_rotating)


MOVING_RESTRICTIONS = ModeRestrictions()
NO_MOVE_RESTRICTIONS = ModeRestrictions(forbid_moving=True)
NMPZ_RESTRICTIONS = ModeRestrictions(True, True, True)

_CANONICAL_RESTRICTIONS = {
    MOVING: MOVING_RESTRICTIONS,
    NO_MOVE: NO_MOVE_RESTRICTIONS,
    NMPZ: NMPZ_RESTRICTIONS,
}


@dataclass(frozen=True)
class GameMode:
    """A parsed mode label.

    kind is "canonical" for Moving / No Move / NMPZ and "custom" otherwise.
    restrictions is None when a custom label cannot be decoded.
    """

    kind: str
    label: str
    restrictions: Optional[ModeRestrictions]

    @property
    def is_canonical(self) -> bool:
        return self.kind == "canonical"


def classify_mode(restrictions: ModeRestrictions) -> str:
    """Return the display label for a restriction triple."""
    moving, zooming, rotating = restrictions.as_tuple()

    if moving and not zooming and not rotating:
        return NO_MOVE
    if moving and zooming and rotating:
        return NMPZ
    if not moving and not zooming and not rotating:
        return MOVING

    codes = [
        code for attr, code in RESTRICTION_CODES
        if getattr(restrictions, attr)
    ]
    return "".join(codes) if codes else CUSTOM


def mode_slug(label: Any) -> str:
    """Lower-case slug used in report table names ("move", "no move", "nmpz", "custom")."""
    text = str(label or "").strip().lower()
    return SLUGS.get(text, CUSTOM_SLUG)


def restrictions_for_label(label: Any) -> ModeRestrictions:
    """Map a stored mode label back to restrictions.

    Only the three canonical labels are recognised; every other label falls
    back to the all-false default, so it re-classifies as "Moving".
    """
    return _CANONICAL_RESTRICTIONS.get(str(label or ""), MOVING_RESTRICTIONS)


def _decode_codes(label: str) -> Optional[ModeRestrictions]:
    if not label or len(label) % 2:
        return None
    chunks = [label[i:i + 2] for i in range(0, len(label), 2)]
    order = [code for _, code in RESTRICTION_CODES]
    try:
        positions = [order.index(chunk) for chunk in chunks]
    except ValueError:
        return None
    if positions != sorted(set(positions)):
        return None
    flags = {attr: code in chunks for attr, code in RESTRICTION_CODES}
    return ModeRestrictions(**flags)


def parse_mode_label(label: Any) -> GameMode:
    """Parse a stored label into a tagged GameMode.

    Synthesized codes decode to their exact restriction bits; labels that
    cannot be decoded keep restrictions=None instead of guessing.
    """
    text = str(label or "").strip()
    if text in _CANONICAL_RESTRICTIONS:
        return GameMode("canonical", text, _CANONICAL_RESTRICTIONS[text])

    decoded = _decode_codes(text)
    if decoded is not None and classify_mode(decoded) == text:
        return GameMode("custom", text, decoded)
    return GameMode("custom", text or CUSTOM, None)


def normalized_slug(label: Any) -> str:
    """Slug of a stored label after a round trip through its restrictions.

    Labels whose restrictions are unknown stay "custom" rather than being
    re-read as "Moving".
    """
    mode = parse_mode_label(label)
    if mode.restrictions is None:
        return CUSTOM_SLUG
    return mode_slug(classify_mode(mode.restrictions))
