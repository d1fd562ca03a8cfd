"""
Material scoring and blunder detection for Coach's Challenges.

All functions are pure: they read Positions and build speculative clones through
the adapter, never touching a board directly.
"""
from __future__ import annotations

import chess

from .position import Move, Position

PIECE_VALUES: dict[chess.PieceType, int] = {
    chess.PAWN: 1,
    chess.KNIGHT: 3,
    chess.BISHOP: 3,
    chess.ROOK: 5,
    chess.QUEEN: 9,
    chess.KING: 0,
}

QUEEN_VALUE = PIECE_VALUES[chess.QUEEN]
BLUNDER_SWING = 3


def piece_value(piece_type: chess.PieceType | None) -> int:
    return PIECE_VALUES.get(piece_type, 0) if piece_type else 0


def material_for(position: Position, color: chess.Color) -> int:
    """Sum of piece values for color."""
    return sum(PIECE_VALUES[p.piece_type] for p in position.piece_map().values() if p.color == color)


def material_score(position: Position, player_color: chess.Color) -> int:
    """player material minus opponent material; positive means the player is ahead."""
    return material_for(position, player_color) - material_for(position, not player_color)


def _covers(position: Position, square: str, by_color: chess.Color) -> bool:
    probe = position.with_turn(by_color)
    occupant = probe.piece_at(square)
    if occupant is None or occupant.color == by_color:
        # an enemy stands on the square so pawn captures count and pawn pushes do not
        probe = probe.with_piece(square, chess.Piece(chess.PAWN, not by_color))
    return bool(probe.moves_to(square))


def is_square_defended(position: Position, square: str, by_color: chess.Color) -> bool:
    """True if a by_color piece could legally recapture on square, whoever is to move."""
    return _covers(position, square, by_color)


def is_square_attacked(position: Position, square: str, by_color: chess.Color) -> bool:
    """True if a by_color piece could legally capture on square, whoever is to move."""
    return _covers(position, square, by_color)


def is_hanging(position: Position, square: str, owner: chess.Color) -> bool:
    """Attacked by the other side and not defended by owner."""
    return is_square_attacked(position, square, not owner) and not is_square_defended(position, square, owner)


def is_queen_blunder(before: Position, after: Position, player_color: chess.Color, move: Move) -> bool:
    """
    A queen blunder needs all of:
    1. the moved piece was the player's queen
    2. whatever it captured is worth less than a queen
    3. the player does not defend the destination
    4. the opponent can legally take the queen there
    """
    moved = before.piece_at(move.from_square)
    if moved is None or moved.piece_type != chess.QUEEN or moved.color != player_color:
        return False
    if piece_value(move.captured) >= QUEEN_VALUE:
        return False
    if is_square_defended(after, move.to_square, player_color):
        return False
    replies = after.with_turn(not player_color).moves_to(move.to_square)
    return any(r.captured == chess.QUEEN for r in replies)


def is_net_blunder(prev_score: int, new_score: int) -> bool:
    return new_score <= prev_score - BLUNDER_SWING


def capture_gain(position: Position, move: Move) -> int:
    """Material won by a capture, less the capturer's value when the victim's side can recapture."""
    if not move.is_capture:
        return 0
    gain = piece_value(move.captured)
    after = position.apply_move(move)
    if is_square_defended(after, move.to_square, not move.color):
        gain -= piece_value(move.piece)
    return gain


def exposed_score(position: Position, player_color: chess.Color) -> int:
    """
    Player's material score after the opponent's most damaging immediate capture.

    One ply only: a capture on a defended square is charged the capturer's value,
    and captures that lose material are ignored.
    """
    score = material_score(position, player_color)
    opponent_view = position.with_turn(not player_color)
    worst = max((capture_gain(opponent_view, r) for r in opponent_view.legal_moves() if r.is_capture), default=0)
    return score - max(worst, 0)


def best_exposed_score(position: Position, player_color: chess.Color) -> int:
    """Best exposed_score the side to move (the player) can keep with any legal move."""
    return max(
        (exposed_score(position.apply_move(m), player_color) for m in position.legal_moves()),
        default=exposed_score(position, player_color),
    )


__all__ = [
    "PIECE_VALUES",
    "piece_value",
    "material_for",
    "material_score",
    "is_square_defended",
    "is_square_attacked",
    "is_hanging",
    "is_queen_blunder",
    "is_net_blunder",
    "capture_gain",
    "exposed_score",
    "best_exposed_score",
]
