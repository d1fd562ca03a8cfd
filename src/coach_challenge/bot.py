"""
Coach bot ("Chip"): one-ply, rule-based opponent that makes believable mistakes.

- decide(position, profile, rng) is the whole policy; it keeps no state and takes
  its randomness from the rng argument only.
- Profiles:
  - naive (chip_l0): 30% of the time hangs a pawn or queen, otherwise a random safe move.
  - opportunistic (chip_l1): grabs the most valuable undefended player piece, else
    30% of the time hangs a knight or bishop, otherwise a random safe move.

No search and no evaluation beyond the material helpers in evaluation.py.
"""
from __future__ import annotations

import logging
import random
from typing import Callable, Optional

import chess

from .evaluation import is_hanging, is_square_defended, piece_value
from .position import Move, Position

log = logging.getLogger("coach_bot")

NAIVE = "naive"
OPPORTUNISTIC = "opportunistic"

# Challenge configs name profiles by bot tier; the policy names work too.
PROFILE_ALIASES = {
    "chip_l0": NAIVE,
    "chip_l1": OPPORTUNISTIC,
    NAIVE: NAIVE,
    OPPORTUNISTIC: OPPORTUNISTIC,
}

MISTAKE_RATE = 0.30

GIFT_PIECES = frozenset({chess.PAWN, chess.QUEEN})
MINOR_PIECES = frozenset({chess.KNIGHT, chess.BISHOP})
GUARDED_PIECES = frozenset({chess.QUEEN, chess.KING})

Policy = Callable[[Position, str, random.Random], Optional[Move]]

def resolve_profile(profile: str) -> str:
    try:
        return PROFILE_ALIASES[profile]
    except KeyError:
        raise ValueError(f"Unknown bot profile {profile!r}; expected one of {sorted(PROFILE_ALIASES)}")

def _lands_hanging(position: Position, move: Move) -> bool:
    after = position.apply_move(move)
    return is_hanging(after, move.to_square, move.color)

def hanging_moves(position: Position, moves: list[Move], pieces: frozenset) -> list[Move]:
    """Moves of the given piece types that leave the moved piece attacked and undefended."""
    return [m for m in moves if m.piece in pieces and _lands_hanging(position, m)]

def safe_moves(position: Position, moves: list[Move]) -> list[Move]:
    """Moves that do not put the bot's queen or king on an attacked, undefended square."""
    return [m for m in moves if m.piece not in GUARDED_PIECES or not _lands_hanging(position, m)]

def undefended_captures(position: Position, moves: list[Move]) -> list[Move]:
    """Captures the opponent cannot recapture, most valuable victim first (stable on ties)."""
    found = []
    for m in moves:
        if not m.is_capture:
            continue
        after = position.apply_move(m)
        if not is_square_defended(after, m.to_square, not m.color):
            found.append(m)
    return sorted(found, key=lambda m: piece_value(m.captured), reverse=True)

def _safe_or_any(position: Position, moves: list[Move], rng: random.Random) -> Move:
    pool = safe_moves(position, moves) or moves
    return rng.choice(pool)

def _decide_naive(position: Position, moves: list[Move], rng: random.Random) -> Move:
    if rng.random() < MISTAKE_RATE:
        gifts = hanging_moves(position, moves, GIFT_PIECES)
        if gifts:
            return rng.choice(gifts)
    return _safe_or_any(position, moves, rng)

def _decide_opportunistic(position: Position, moves: list[Move], rng: random.Random) -> Move:
    captures = undefended_captures(position, moves)
    if captures:
        return captures[0]
    if rng.random() < MISTAKE_RATE:
        hangs = hanging_moves(position, moves, MINOR_PIECES)
        if hangs:
            return rng.choice(hangs)
    return _safe_or_any(position, moves, rng)

_POLICIES = {
    NAIVE: _decide_naive,
    OPPORTUNISTIC: _decide_opportunistic,
}

def decide(position: Position, profile: str, rng: random.Random) -> Optional[Move]:
    """Pick the bot's move for the side to move, or None when it has no legal move."""
    policy = _POLICIES[resolve_profile(profile)]
    moves = position.legal_moves()
    if not moves:
        return None
    move = policy(position, moves, rng)
    log.debug("profile=%s picked %s from %d legal moves", profile, move.uci, len(moves))
    return move

__all__ = [
    "decide",
    "resolve_profile",
    "hanging_moves",
    "safe_moves",
    "undefended_captures",
    "Policy",
    "NAIVE",
    "OPPORTUNISTIC",
    "MISTAKE_RATE",
]
