"""
Position adapter over python-chess.

- Position wraps a private chess.Board and never mutates it; every operation that
  changes the board (apply_move, with_turn, with_piece) returns a new Position.
- Move is the engine-facing view of a chess.Move: square names, moving piece,
  captured piece type and optional SAN.
- with_turn() is the turn-override clone: it lets callers ask what the side that
  is NOT to move could legally do, which defense checks depend on.

Legality (check, castling, en passant, promotion) is entirely python-chess.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

import chess


class InvalidPosition(ValueError):
    """Raised for a FEN that python-chess rejects or reports as not valid."""


class IllegalMove(ValueError):
    """Raised when a requested move is unparseable or not legal in the position."""


@dataclass(frozen=True)
class Move:
    uci: str
    from_square: str
    to_square: str
    color: chess.Color
    piece: chess.PieceType
    captured: Optional[chess.PieceType] = None
    promotion: Optional[chess.PieceType] = None
    san: Optional[str] = None

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    def to_chess(self) -> chess.Move:
        return chess.Move.from_uci(self.uci)

    def to_dict(self) -> dict:
        return {
            "uci": self.uci,
            "san": self.san,
            "from": self.from_square,
            "to": self.to_square,
            "color": "white" if self.color == chess.WHITE else "black",
            "piece": chess.piece_symbol(self.piece),
            "captured": chess.piece_symbol(self.captured) if self.captured else None,
            "promotion": chess.piece_symbol(self.promotion) if self.promotion else None,
        }


def _describe(board: chess.Board, mv: chess.Move) -> Move:
    """Build a Move for a legal chess.Move on board (SAN left empty)."""
    piece = board.piece_at(mv.from_square)
    if board.is_en_passant(mv):
        captured = chess.PAWN
    else:
        target = board.piece_at(mv.to_square)
        captured = target.piece_type if target and target.color != piece.color else None
    return Move(
        uci=mv.uci(),
        from_square=chess.square_name(mv.from_square),
        to_square=chess.square_name(mv.to_square),
        color=piece.color,
        piece=piece.piece_type,
        captured=captured,
        promotion=mv.promotion,
    )


def _parse_square(name) -> chess.Square:
    if isinstance(name, int) and name in chess.SQUARES:
        return name
    try:
        return chess.parse_square(str(name).strip().lower())
    except ValueError:
        raise IllegalMove(f"Unknown square {name!r}")


class Position:
    """Read-only chess position; python-chess does the rules."""

    def __init__(self, board: chess.Board):
        self._board = board

    @classmethod
    def from_fen(cls, fen: str) -> "Position":
        try:
            board = chess.Board(fen=fen)
        except ValueError as e:
            raise InvalidPosition(f"Malformed FEN {fen!r}: {e}")
        if not board.is_valid():
            raise InvalidPosition(f"FEN {fen!r} is not a valid position (status={board.status()!r})")
        return cls(board)

    # ---------------- Inspection -----------------
    def fen(self) -> str:
        return self._board.fen()

    @property
    def turn(self) -> chess.Color:
        return self._board.turn

    @property
    def board(self) -> chess.Board:
        """A detached copy of the underlying board."""
        return self._board.copy()

    def piece_at(self, square) -> Optional[chess.Piece]:
        return self._board.piece_at(_parse_square(square))

    def piece_map(self) -> dict[chess.Square, chess.Piece]:
        return self._board.piece_map()

    def is_check(self) -> bool:
        return self._board.is_check()

    def is_checkmate(self) -> bool:
        return self._board.is_checkmate()

    def is_stalemate(self) -> bool:
        return self._board.is_stalemate()

    def has_legal_moves(self) -> bool:
        return any(True for _ in self._board.legal_moves)

    # ---------------- Move generation -----------------
    def legal_moves(self, square=None) -> list[Move]:
        """Legal moves for the side to move, optionally only those starting on square."""
        from_mask = chess.BB_ALL if square is None else chess.BB_SQUARES[_parse_square(square)]
        board = self._board
        return [_describe(board, mv) for mv in board.generate_legal_moves(from_mask=from_mask)]

    def moves_to(self, square) -> list[Move]:
        """Legal moves for the side to move that land on square."""
        to_mask = chess.BB_SQUARES[_parse_square(square)]
        board = self._board
        return [_describe(board, mv) for mv in board.generate_legal_moves(to_mask=to_mask)]

    def resolve(self, from_square, to_square, promotion: Optional[str] = None) -> Move:
        """Turn a (from, to[, promotion]) request into a legal Move with SAN, or raise IllegalMove."""
        src = _parse_square(from_square)
        dst = _parse_square(to_square)
        promo = None
        piece = self._board.piece_at(src)
        # promotion only applies to a pawn reaching the last rank
        if piece and piece.piece_type == chess.PAWN and chess.square_rank(dst) in (0, 7):
            promo = chess.QUEEN
            if promotion:
                try:
                    promo = chess.Piece.from_symbol(str(promotion).strip().lower()).piece_type
                except ValueError:
                    raise IllegalMove(f"Unknown promotion piece {promotion!r}")
        mv = chess.Move(src, dst, promotion=promo)
        if not self._board.is_legal(mv):
            raise IllegalMove(f"Illegal move {mv.uci()} in {self.fen()}")
        return replace(_describe(self._board, mv), san=self._board.san(mv))

    def san(self, move: Move) -> str:
        return self._board.san(move.to_chess())

    # ---------------- Derived positions -----------------
    def apply_move(self, move: Move) -> "Position":
        mv = move.to_chess()
        if not self._board.is_legal(mv):
            raise IllegalMove(f"Illegal move {mv.uci()} in {self.fen()}")
        board = self._board.copy(stack=False)
        board.push(mv)
        return Position(board)

    def clone(self) -> "Position":
        return Position(self._board.copy(stack=False))

    def with_turn(self, color: chess.Color) -> "Position":
        """Clone with the side to move forced to color (en passant rights dropped)."""
        board = self._board.copy(stack=False)
        if board.turn != color:
            board.turn = color
            board.ep_square = None
        return Position(board)

    def with_piece(self, square, piece: Optional[chess.Piece]) -> "Position":
        """Clone with square set to piece (or emptied when piece is None)."""
        board = self._board.copy(stack=False)
        sq = _parse_square(square)
        if piece is None:
            board.remove_piece_at(sq)
        else:
            board.set_piece_at(sq, piece)
        return Position(board)

    def __eq__(self, other) -> bool:
        return isinstance(other, Position) and self.fen() == other.fen()

    def __hash__(self) -> int:
        return hash(self.fen())

    def __repr__(self) -> str:
        return f"Position({self.fen()!r})"


__all__ = ["Position", "Move", "IllegalMove", "InvalidPosition"]
