"""
Minimal Flask API that hosts Coach's Challenge sessions for the UI.

Endpoints:
- GET    /api/challenges                               -> list challenge definitions
- GET    /api/challenges/<id>                          -> one challenge definition
- POST   /api/challenge-sessions                       -> start a session {challenge_id, seed?}
- GET    /api/challenge-sessions/<id>                  -> current fen/state
- GET    /api/challenge-sessions/<id>/legal-moves      -> legal moves from ?square=
- POST   /api/challenge-sessions/<id>/move             -> player move {from, to, promotion?} and the coach reply
- GET    /api/challenge-sessions/<id>/pgn              -> PGN of the moves so far
- DELETE /api/challenge-sessions/<id>                  -> drop a session

Sessions live in memory only: one ChallengeEngine per session id, each guarded by its own lock.
Idle sessions are dropped after SETTINGS.session_ttl_s.
"""
from __future__ import annotations

import logging
import random
import threading
import time
import uuid
from typing import Dict

from flask import Flask, jsonify, request

from .challenges import build_registry
from .config import SETTINGS
from .engine import ChallengeEngine

logging.basicConfig(level=getattr(logging, SETTINGS.log_level, logging.INFO),
                    format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = Flask(__name__)
sessions_lock = threading.Lock()

# Fails at startup on a malformed challenge file
CHALLENGES = build_registry(SETTINGS.challenges_file or None)
SESSIONS: Dict[str, dict] = {}


def _cleanup_stale_sessions(max_age_s: float | None = None):
    max_age_s = SETTINGS.session_ttl_s if max_age_s is None else max_age_s
    now = time.time()
    with sessions_lock:
        expired = [sid for sid, sess in SESSIONS.items() if now - sess.get("updated_at", now) > max_age_s]
        for sid in expired:
            SESSIONS.pop(sid, None)
    if expired:
        logging.info("Dropped %d idle challenge session(s)", len(expired))


def _get_session(session_id: str) -> dict | None:
    with sessions_lock:
        return SESSIONS.get(session_id)


def _serialize_session(session: dict) -> dict:
    engine: ChallengeEngine = session["engine"]
    state = engine.get_state()
    payload = {
        "session_id": session["id"],
        "challenge_id": engine.get_config().id,
        "seed": session["seed"],
        "fen": engine.get_fen(),
        "is_player_turn": engine.is_player_turn(),
        "moves_remaining": engine.get_moves_remaining(),
        "state": state.to_dict(),
    }
    if state.is_finished:
        cfg = engine.get_config()
        if state.passed:
            heading, body = cfg.narrative.success_heading, cfg.narrative.success_body
        else:
            heading, body = cfg.failure_copy(state.fail_reason)
        payload["outcome"] = {"heading": heading, "body": body}
    return payload


@app.route("/api/challenges", methods=["GET"])
def list_challenges():
    return jsonify([cfg.to_dict() for cfg in sorted(CHALLENGES.values(), key=lambda c: (c.level, c.id))])


@app.route("/api/challenges/<challenge_id>", methods=["GET"])
def get_challenge(challenge_id: str):
    cfg = CHALLENGES.get(challenge_id)
    if not cfg:
        return jsonify({"error": "not_found"}), 404
    return jsonify(cfg.to_dict())


@app.route("/api/challenge-sessions", methods=["POST"])
def create_session():
    """Start a fresh match for a challenge; replaying always means a new session."""
    _cleanup_stale_sessions()
    data = request.get_json(silent=True) or {}
    challenge_id = data.get("challenge_id")
    if not challenge_id:
        return jsonify({"error": "challenge_id is required"}), 400
    cfg = CHALLENGES.get(challenge_id)
    if not cfg:
        return jsonify({"error": "not_found"}), 404
    seed = data.get("seed", SETTINGS.bot_seed)
    if seed is None:
        seed = random.SystemRandom().randrange(2**32)
    # bool is an int subclass
    if isinstance(seed, bool) or not isinstance(seed, (int, str)):
        return jsonify({"error": "seed must be an integer"}), 400
    if isinstance(seed, str):
        if not seed.strip().removeprefix("-").isdecimal():
            return jsonify({"error": "seed must be an integer"}), 400
        seed = int(seed)

    session_id = f"challenge_{int(time.time())}_{uuid.uuid4().hex[:6]}"
    session = {
        "id": session_id,
        "engine": ChallengeEngine(cfg, seed=seed),
        "seed": seed,
        "created_at": time.time(),
        "updated_at": time.time(),
        "lock": threading.Lock(),
    }
    with sessions_lock:
        SESSIONS[session_id] = session
    logging.info("Started session %s for %s (seed=%s)", session_id, challenge_id, seed)
    return jsonify(_serialize_session(session)), 201


@app.route("/api/challenge-sessions/<session_id>", methods=["GET"])
def session_status(session_id: str):
    session = _get_session(session_id)
    if not session:
        return jsonify({"error": "not_found"}), 404
    with session["lock"]:
        return jsonify(_serialize_session(session))


@app.route("/api/challenge-sessions/<session_id>/legal-moves", methods=["GET"])
def session_legal_moves(session_id: str):
    session = _get_session(session_id)
    if not session:
        return jsonify({"error": "not_found"}), 404
    square = request.args.get("square")
    if not square:
        return jsonify({"error": "square is required"}), 400
    with session["lock"]:
        moves = session["engine"].get_legal_moves(square)
    return jsonify({"square": square, "moves": [m.to_dict() for m in moves]})


@app.route("/api/challenge-sessions/<session_id>/move", methods=["POST"])
def session_move(session_id: str):
    _cleanup_stale_sessions()
    session = _get_session(session_id)
    if not session:
        return jsonify({"error": "not_found"}), 404
    data = request.get_json(silent=True) or {}
    from_square, to_square = data.get("from"), data.get("to")
    if not from_square or not to_square:
        return jsonify({"error": "from and to are required"}), 400

    with session["lock"]:
        engine: ChallengeEngine = session["engine"]
        result = engine.attempt_move(from_square, to_square, promotion=data.get("promotion"))
        session["updated_at"] = time.time()
        body = {**_serialize_session(session), "result": result.to_dict()}
    if not result.success:
        body["error"] = result.reason
        return jsonify(body), 400
    return jsonify(body)


@app.route("/api/challenge-sessions/<session_id>/pgn", methods=["GET"])
def session_pgn(session_id: str):
    session = _get_session(session_id)
    if not session:
        return jsonify({"error": "not_found"}), 404
    with session["lock"]:
        return jsonify({"session_id": session_id, "pgn": session["engine"].pgn()})


@app.route("/api/challenge-sessions/<session_id>", methods=["DELETE"])
def delete_session(session_id: str):
    with sessions_lock:
        session = SESSIONS.pop(session_id, None)
    if not session:
        return jsonify({"error": "not_found"}), 404
    return jsonify({"status": "deleted", "session_id": session_id})


@app.after_request
def add_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
    response.headers["Access-Control-Allow-Credentials"] = "true"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
    # Match state changes every move
    response.headers["Cache-Control"] = "no-store, max-age=0"
    return response


@app.route("/api/<path:path>", methods=["OPTIONS"])
def cors_preflight(path: str):
    resp = app.make_response(("", 204))
    resp.headers["Access-Control-Allow-Origin"] = request.headers.get("Origin", "*")
    resp.headers["Access-Control-Allow-Credentials"] = "true"
    resp.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    resp.headers["Access-Control-Allow-Methods"] = "GET, POST, DELETE, OPTIONS"
    return resp


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000, debug=True)
