"""
Coach's Challenge package.

Components:
- challenges: immutable challenge definitions and their validation
- position: python-chess adapter (legal moves, move application, turn-override clones)
- evaluation: material scoring, defended-square probes, blunder rules
- bot: rule-based coach opponent with injectable randomness
- engine: match state, the pure attempt() transition and the per-session ChallengeEngine
- server/cli: Flask session API and terminal player
"""
# Package exports are intentionally minimal; import modules directly as needed.
