"""
Coach's Challenge engine: match state and the turn cycle.

- ChallengeState: frozen per-session counters and outcome.
- Match: frozen snapshot (config, position, state, move list); new_match() starts one.
- attempt(match, from, to, rng): pure transition returning (next_match, MoveResult).
  Rejections return the same Match object. Termination is judged only right after
  a player ply, in this order: queen blunder (level 0), net blunder, timeout, win.
- ChallengeEngine: the mutable per-session holder used by the CLI and the web layer,
  plus PGN export.
"""
from __future__ import annotations

import datetime
import logging
import random
from dataclasses import asdict, dataclass, replace
from typing import Optional

import chess
import chess.pgn

from .bot import Policy, decide
from .challenges import CAPTURES, MATERIAL_LEAD, ChallengeConfig
from .evaluation import best_exposed_score, exposed_score, is_net_blunder, is_queen_blunder, material_score
from .position import IllegalMove, Move, Position

log = logging.getLogger("ChallengeEngine")

# Fail reasons
QUEEN_BLUNDER = "queenBlunder"
BLUNDER = "blunder"
TIMEOUT = "timeout"
CHECKMATED = "checkmated"
STALEMATE = "stalemate"

# Rejection reasons
ALREADY_FINISHED = "already_finished"
NOT_PLAYER_TURN = "not_player_turn"
ILLEGAL_MOVE = "illegal_move"

_REJECTION_MESSAGES = {
    ALREADY_FINISHED: "Challenge already finished",
    NOT_PLAYER_TURN: "Not your turn",
    ILLEGAL_MOVE: "Illegal move",
}


@dataclass(frozen=True)
class ChallengeState:
    challenge_id: str
    moves_played: int = 0  # player plies only
    captures_by_player: int = 0
    material_score: int = 0  # player - bot
    has_blundered: bool = False
    has_queen_blundered: bool = False
    is_finished: bool = False
    passed: Optional[bool] = None
    fail_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MoveResult:
    success: bool
    state: ChallengeState
    move: Optional[Move] = None
    fen: Optional[str] = None
    bot_move: Optional[Move] = None
    bot_fen: Optional[str] = None
    reason: Optional[str] = None  # rejection reason when success is False
    message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "move": self.move.to_dict() if self.move else None,
            "fen": self.fen,
            "bot_move": self.bot_move.to_dict() if self.bot_move else None,
            "bot_fen": self.bot_fen,
            "reason": self.reason,
            "message": self.message,
            "state": self.state.to_dict(),
        }


@dataclass(frozen=True)
class Match:
    config: ChallengeConfig
    position: Position
    state: ChallengeState
    moves: tuple[Move, ...] = ()

    @property
    def player(self) -> chess.Color:
        return self.config.player

    @property
    def moves_remaining(self) -> int:
        return self.config.max_plies - self.state.moves_played

    def is_player_turn(self) -> bool:
        return self.position.turn == self.player


def new_match(config: ChallengeConfig) -> Match:
    """Fresh match for config; configs are validated once when their registry is built."""
    position = Position.from_fen(config.starting_fen)
    state = ChallengeState(
        challenge_id=config.id,
        material_score=material_score(position, config.player),
    )
    return Match(config=config, position=position, state=state)


def _reject(match: Match, reason: str) -> tuple[Match, MoveResult]:
    return match, MoveResult(success=False, state=match.state, reason=reason, message=_REJECTION_MESSAGES[reason])


def _finish(state: ChallengeState, passed: bool, fail_reason: Optional[str] = None, **flags) -> ChallengeState:
    return replace(state, is_finished=True, passed=passed, fail_reason=None if passed else fail_reason, **flags)


def _win_condition_met(config: ChallengeConfig, state: ChallengeState) -> bool:
    win = config.win_condition
    if win.kind == CAPTURES:
        return state.captures_by_player >= win.target
    if win.kind == MATERIAL_LEAD:
        return state.material_score >= win.target
    return False


def _judge_player_ply(config: ChallengeConfig, before: Position, after: Position, move: Move,
                      prev_score: int, state: ChallengeState) -> ChallengeState:
    """Apply the termination rules to the state right after a player ply."""
    player = config.player
    if config.level == 0 and is_queen_blunder(before, after, player, move):
        return _finish(state, False, QUEEN_BLUNDER, has_blundered=True, has_queen_blundered=True)
    # losses the player could not have avoided on this ply are not charged to it
    baseline = min(prev_score, best_exposed_score(before, player))
    if is_net_blunder(baseline, exposed_score(after, player)):
        return _finish(state, False, BLUNDER, has_blundered=True)
    if state.moves_played >= config.max_plies:
        return _finish(state, False, TIMEOUT)
    if _win_condition_met(config, state):
        return _finish(state, True)
    return state


def attempt(match: Match, from_square, to_square, rng: random.Random,
            promotion: Optional[str] = None, policy: Policy = decide) -> tuple[Match, MoveResult]:
    """
    Play one player ply and, if the match goes on, one bot reply.

    Never mutates match; rejected requests return it as-is so callers can retry.
    """
    if match.state.is_finished:
        return _reject(match, ALREADY_FINISHED)
    if not match.is_player_turn():
        return _reject(match, NOT_PLAYER_TURN)
    try:
        move = match.position.resolve(from_square, to_square, promotion)
    except IllegalMove:
        return _reject(match, ILLEGAL_MOVE)

    config, player = match.config, match.player
    before = match.position
    after = before.apply_move(move)
    state = replace(
        match.state,
        moves_played=match.state.moves_played + 1,
        captures_by_player=match.state.captures_by_player + (1 if move.is_capture else 0),
        material_score=material_score(after, player),
    )
    state = _judge_player_ply(config, before, after, move, match.state.material_score, state)
    moves = match.moves + (move,)

    if not state.is_finished and not after.has_legal_moves():
        # the bot cannot reply; python-chess decides whether that is mate
        state = _finish(state, True) if after.is_checkmate() else _finish(state, False, STALEMATE)

    if state.is_finished:
        finished = Match(config=config, position=after, state=state, moves=moves)
        return finished, MoveResult(success=True, state=state, move=move, fen=after.fen())

    bot_move = policy(after, config.bot_profile, rng)
    position = after
    if bot_move is not None:
        bot_move = replace(bot_move, san=after.san(bot_move))
        position = after.apply_move(bot_move)
        moves = moves + (bot_move,)
        state = replace(state, material_score=material_score(position, player))
        if not position.has_legal_moves():
            state = _finish(state, False, CHECKMATED if position.is_check() else STALEMATE)

    next_match = Match(config=config, position=position, state=state, moves=moves)
    return next_match, MoveResult(
        success=True,
        state=state,
        move=move,
        fen=after.fen(),
        bot_move=bot_move,
        bot_fen=position.fen() if bot_move is not None else None,
    )


class ChallengeEngine:
    """One learner's session: holds the current Match, the bot RNG and the policy."""

    def __init__(self, config: ChallengeConfig, seed: int | None = None,
                 rng: random.Random | None = None, policy: Policy | None = None):
        self.log = log
        self.seed = seed
        self._rng = rng or random.Random(seed)
        self._policy = policy or decide
        self._match = new_match(config)

    # ---------------- Read accessors -----------------
    def get_fen(self) -> str:
        return self._match.position.fen()

    def get_state(self) -> ChallengeState:
        return self._match.state

    def get_config(self) -> ChallengeConfig:
        return self._match.config

    def get_material_score(self) -> int:
        return self._match.state.material_score

    def get_moves_remaining(self) -> int:
        return self._match.moves_remaining

    def get_legal_moves(self, square) -> list[Move]:
        """Legal moves from square for the side to move (empty for an unknown square)."""
        try:
            return self._match.position.legal_moves(square)
        except IllegalMove:
            return []

    def is_player_turn(self) -> bool:
        return self._match.is_player_turn()

    def snapshot(self) -> Match:
        return self._match

    def history(self) -> list[Move]:
        return list(self._match.moves)

    # ---------------- Turn cycle -----------------
    def attempt_move(self, from_square, to_square, promotion: Optional[str] = None) -> MoveResult:
        self._match, result = attempt(self._match, from_square, to_square, self._rng,
                                      promotion=promotion, policy=self._policy)
        if not result.success:
            self.log.debug("Rejected %s-%s: %s", from_square, to_square, result.reason)
            return result
        self.log.debug("Player %s, bot %s", result.move.uci, result.bot_move.uci if result.bot_move else "-")
        if result.state.is_finished:
            self.log.info(
                "Challenge %s finished: pass=%s reason=%s after %d plies",
                self._match.config.id, result.state.passed, result.state.fail_reason, result.state.moves_played,
            )
        return result

    # ---------------- PGN -----------------
    def result(self) -> str:
        """PGN result: '*' while active; a pass is a student win, stalemate a draw, any other fail a coach win."""
        state = self._match.state
        if not state.is_finished:
            return "*"
        if state.fail_reason == STALEMATE:
            return "1/2-1/2"
        student_won = bool(state.passed)
        white_won = student_won == (self._match.player == chess.WHITE)
        return "1-0" if white_won else "0-1"

    def pgn(self) -> str:
        cfg = self._match.config
        game = chess.pgn.Game()
        game.setup(chess.Board(cfg.starting_fen))
        game.headers["Event"] = cfg.narrative.title or cfg.id
        game.headers["Site"] = "Coach's Challenge"
        game.headers["Date"] = datetime.date.today().strftime("%Y.%m.%d")
        student, coach = "Student", "Coach Chip"
        game.headers["White"] = student if cfg.player == chess.WHITE else coach
        game.headers["Black"] = coach if cfg.player == chess.WHITE else student
        game.headers["Result"] = self.result()
        node = game
        for mv in self._match.moves:
            node = node.add_variation(mv.to_chess())
        state = self._match.state
        if state.is_finished:
            game.comment = f"Termination: {'pass' if state.passed else state.fail_reason}"
        exporter = chess.pgn.StringExporter(headers=True, variations=False, comments=state.is_finished)
        return game.accept(exporter)


__all__ = [
    "ChallengeState",
    "MoveResult",
    "Match",
    "ChallengeEngine",
    "new_match",
    "attempt",
    "QUEEN_BLUNDER",
    "BLUNDER",
    "TIMEOUT",
    "CHECKMATED",
    "STALEMATE",
    "ALREADY_FINISHED",
    "NOT_PLAYER_TURN",
    "ILLEGAL_MOVE",
]
