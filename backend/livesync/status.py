"""
External fixture status codes (API-Sports short codes) mapped to internal game status.
"""
from __future__ import annotations

from typing import Optional

from livesync.models import DecidedBy, GameStatus

# Short code -> internal status. Unknown codes map to UPCOMING.
EXTERNAL_STATUS_TO_GAME_STATUS: dict[str, GameStatus] = {
    "TBD": GameStatus.UPCOMING,
    "NS": GameStatus.UPCOMING,
    "1H": GameStatus.LIVE,
    "HT": GameStatus.LIVE,
    "2H": GameStatus.LIVE,
    "ET": GameStatus.LIVE,
    "BT": GameStatus.LIVE,
    "P": GameStatus.LIVE,
    "LIVE": GameStatus.LIVE,
    "INT": GameStatus.LIVE,
    "FT": GameStatus.FINISHED,
    "AET": GameStatus.FINISHED,
    "PEN": GameStatus.FINISHED,
    "PST": GameStatus.CANCELLED,
    "CANC": GameStatus.CANCELLED,
    "SUSP": GameStatus.CANCELLED,
    "ABD": GameStatus.CANCELLED,
    "AWD": GameStatus.FINISHED,
    "WO": GameStatus.FINISHED,
}

# Codes that never justify moving a game out of UPCOMING.
NOT_STARTED_CODES = frozenset({"NS", "TBD", "PST", "CANC", "SUSP", "ABD", "POST"})

# In-play codes that must never be read as FINISHED, whatever a provider mapping says.
IN_PLAY_CODES = frozenset({"1H", "HT", "2H", "ET", "BT", "P", "LIVE", "INT"})

HALF_TIME_CODE = "HT"

# Codes fetched from the same-day date range to catch games that ended between passes.
FINISHED_CODES = frozenset({"FT", "AET", "PEN"})


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def map_status(code: Optional[str]) -> GameStatus:
    """Map a provider short code to an internal status; HT and other in-play codes stay LIVE."""
    c = normalize_code(code)
    if c in IN_PLAY_CODES:
        return GameStatus.LIVE
    return EXTERNAL_STATUS_TO_GAME_STATUS.get(c, GameStatus.UPCOMING)


def is_not_started(code: Optional[str]) -> bool:
    return normalize_code(code) in NOT_STARTED_CODES


def is_half_time(code: Optional[str]) -> bool:
    return normalize_code(code) == HALF_TIME_CODE


def is_finished(code: Optional[str]) -> bool:
    return normalize_code(code) in FINISHED_CODES


def decided_by_for(code: Optional[str]) -> DecidedBy:
    """AET for extra time and penalties (the 120-minute score is kept), FT otherwise."""
    if normalize_code(code) in ("AET", "PEN"):
        return DecidedBy.AET
    return DecidedBy.FT
