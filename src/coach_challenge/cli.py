"""
Terminal player for a Coach's Challenge.

- Interactive: prompts for moves (UCI like e2e4, or SAN like Qd7) until the match ends.
- Scripted: --moves e2e3,d1d3,... plays the given moves and stops when they run out.
Prints the outcome, final state and PGN.
"""
from __future__ import annotations

import argparse
import logging
from typing import Callable, Optional, Sequence

import chess

from .challenges import build_registry
from .config import SETTINGS
from .engine import ChallengeEngine


def _split_request(raw: str, engine: ChallengeEngine) -> Optional[tuple[str, str, Optional[str]]]:
    """Read 'e2e4' / 'e7e8q' / SAN into (from, to, promotion) for the current position."""
    raw = raw.strip()
    if not raw:
        return None
    if len(raw) in (4, 5):
        try:
            mv = chess.Move.from_uci(raw.lower())
            promo = chess.piece_symbol(mv.promotion) if mv.promotion else None
            return chess.square_name(mv.from_square), chess.square_name(mv.to_square), promo
        except ValueError:
            pass
    try:
        mv = engine.snapshot().position.board.parse_san(raw)
    except ValueError:
        return None
    promo = chess.piece_symbol(mv.promotion) if mv.promotion else None
    return chess.square_name(mv.from_square), chess.square_name(mv.to_square), promo


def play(engine: ChallengeEngine, next_move: Callable[[], Optional[str]], out: Callable[[str], None] = print) -> None:
    """Drive engine with moves from next_move() until the match ends or next_move() returns None."""
    cfg = engine.get_config()
    out(f"{cfg.narrative.title or cfg.id}: {cfg.narrative.intro_heading}")
    for bullet in cfg.narrative.intro_bullets:
        out(f"  - {bullet}")
    while not engine.get_state().is_finished:
        out(f"\nFEN: {engine.get_fen()}  (moves left: {engine.get_moves_remaining()})")
        raw = next_move()
        if raw is None:
            break
        request = _split_request(raw, engine)
        if request is None:
            out(f"Could not read move {raw!r}. Try UCI (e2e4) or SAN (Qd7).")
            continue
        result = engine.attempt_move(*request)
        if not result.success:
            out(f"{result.message}. Please try again.")
            continue
        out(f"You played {result.move.san}")
        if result.bot_move:
            out(f"Coach played {result.bot_move.san}")

    state = engine.get_state()
    if state.is_finished:
        if state.passed:
            out(f"\n{cfg.narrative.success_heading} {cfg.narrative.success_body}".rstrip())
        else:
            heading, body = cfg.failure_copy(state.fail_reason)
            out(f"\n{heading} {body}".strip() or f"\nChallenge failed: {state.fail_reason}")


def main(argv: Sequence[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Play a Coach's Challenge in the terminal.")
    ap.add_argument("--challenge", default="level0_challenge", help="Challenge id (default: level0_challenge)")
    ap.add_argument("--challenges-file", default=None, help="Optional YAML file with extra challenges")
    ap.add_argument("--seed", type=int, default=None, help="Seed for the coach's choices (reproducible games)")
    ap.add_argument("--moves", default=None, help="Comma-separated moves to play instead of prompting")
    ap.add_argument("--pgn-out", default=None, help="Optional path to write PGN at end")
    ap.add_argument("--log-level", default=None, help="Python logging level (e.g., INFO, DEBUG)")
    args = ap.parse_args(argv)

    log_level = (args.log_level or SETTINGS.log_level).upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log = logging.getLogger("coach_cli")

    registry = build_registry(args.challenges_file or SETTINGS.challenges_file or None)
    cfg = registry.get(args.challenge)
    if cfg is None:
        ap.error(f"Unknown challenge {args.challenge!r}; choose from {sorted(registry)}")
    seed = args.seed if args.seed is not None else SETTINGS.bot_seed
    engine = ChallengeEngine(cfg, seed=seed)
    log.info("Starting %s (bot=%s seed=%s)", cfg.id, cfg.bot_profile, seed)

    if args.moves is not None:
        scripted = iter([m.strip() for m in args.moves.split(",") if m.strip()])
        next_move = lambda: next(scripted, None)
    else:
        def next_move():
            try:
                return input("Your move: ")
            except EOFError:
                return None

    play(engine, next_move)
    state = engine.get_state()
    print("State:", state.to_dict())
    print("PGN:\n", engine.pgn())
    if args.pgn_out:
        with open(args.pgn_out, "w", encoding="utf-8") as f:
            f.write(engine.pgn())
        log.info("Wrote PGN to %s", args.pgn_out)
    return 0 if state.passed else 1


if __name__ == "__main__":
    raise SystemExit(main())
