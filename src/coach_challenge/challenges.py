"""
Coach's Challenge definitions.

- ChallengeConfig/WinCondition/Narrative: frozen, shared by every session of a challenge.
- BUILTIN_CHALLENGES: the level 0 and level 1 graduation matches.
- validate_challenge() fails loudly on authoring errors (bad FEN, unknown profile,
  player not to move at the start, ...). The built-in registry is validated at import.
- load_challenges_yaml() reads extra challenges from a YAML file (same schema as to_dict()).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

import chess
import yaml

from .bot import PROFILE_ALIASES
from .position import InvalidPosition, Position

log = logging.getLogger("challenges")

CAPTURES = "captures"
MATERIAL_LEAD = "materialLead"
WIN_KINDS = (CAPTURES, MATERIAL_LEAD)
COLORS = {"white": chess.WHITE, "black": chess.BLACK}


class ChallengeConfigError(ValueError):
    """A challenge definition that cannot be played."""


@dataclass(frozen=True)
class WinCondition:
    kind: str
    target: int
    max_plies: int


@dataclass(frozen=True)
class Narrative:
    title: str = ""
    subtitle: str = ""
    intro_heading: str = ""
    intro_body: str = ""
    intro_bullets: tuple[str, ...] = ()
    success_heading: str = ""
    success_body: str = ""
    failure_headings: Mapping[str, str] = field(default_factory=dict)
    failure_bodies: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # keep the mappings read-only so shared configs stay immutable
        object.__setattr__(self, "intro_bullets", tuple(self.intro_bullets))
        object.__setattr__(self, "failure_headings", MappingProxyType(dict(self.failure_headings)))
        object.__setattr__(self, "failure_bodies", MappingProxyType(dict(self.failure_bodies)))

    def __hash__(self) -> int:
        return hash((self.title, self.subtitle, self.intro_heading, self.intro_bullets))


@dataclass(frozen=True)
class ChallengeConfig:
    id: str
    level: int
    starting_fen: str
    player_color: str
    bot_profile: str
    win_condition: WinCondition
    narrative: Narrative = field(default_factory=Narrative)

    @property
    def player(self) -> chess.Color:
        return COLORS[self.player_color]

    @property
    def max_plies(self) -> int:
        return self.win_condition.max_plies

    def failure_copy(self, reason: str) -> tuple[str, str]:
        """(heading, body) shown for a fail reason; empty strings when not authored."""
        return self.narrative.failure_headings.get(reason, ""), self.narrative.failure_bodies.get(reason, "")

    def to_dict(self) -> dict:
        n = self.narrative
        return {
            "id": self.id,
            "level": self.level,
            "starting_fen": self.starting_fen,
            "player_color": self.player_color,
            "bot_profile": self.bot_profile,
            "win_condition": {
                "kind": self.win_condition.kind,
                "target": self.win_condition.target,
                "max_plies": self.win_condition.max_plies,
            },
            "narrative": {
                "title": n.title,
                "subtitle": n.subtitle,
                "intro_heading": n.intro_heading,
                "intro_body": n.intro_body,
                "intro_bullets": list(n.intro_bullets),
                "success_heading": n.success_heading,
                "success_body": n.success_body,
                "failure_headings": dict(n.failure_headings),
                "failure_bodies": dict(n.failure_bodies),
            },
        }


def challenge_from_dict(data: dict) -> ChallengeConfig:
    """Build (and validate) a ChallengeConfig from its to_dict() form."""
    if not isinstance(data, dict):
        raise ChallengeConfigError(f"Challenge entry must be a mapping, got {type(data).__name__}")
    try:
        win = data["win_condition"]
        config = ChallengeConfig(
            id=str(data["id"]),
            level=int(data["level"]),
            starting_fen=str(data["starting_fen"]),
            player_color=str(data.get("player_color", "white")).lower(),
            bot_profile=str(data["bot_profile"]),
            win_condition=WinCondition(
                kind=str(win["kind"]),
                target=int(win["target"]),
                max_plies=int(win["max_plies"]),
            ),
            narrative=Narrative(**(data.get("narrative") or {})),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ChallengeConfigError(f"Malformed challenge entry {data.get('id', '?')!r}: {e}")
    return validate_challenge(config)


def validate_challenge(config: ChallengeConfig) -> ChallengeConfig:
    """Return config unchanged, or raise ChallengeConfigError describing what is wrong."""
    cid = config.id
    if not cid:
        raise ChallengeConfigError("Challenge id must be non-empty")
    if config.player_color not in COLORS:
        raise ChallengeConfigError(f"{cid}: player_color must be 'white' or 'black', got {config.player_color!r}")
    if config.bot_profile not in PROFILE_ALIASES:
        raise ChallengeConfigError(f"{cid}: unknown bot profile {config.bot_profile!r}")
    win = config.win_condition
    if win.kind not in WIN_KINDS:
        raise ChallengeConfigError(f"{cid}: win condition kind must be one of {WIN_KINDS}, got {win.kind!r}")
    if win.target <= 0:
        raise ChallengeConfigError(f"{cid}: win target must be positive, got {win.target}")
    if win.max_plies <= 0:
        raise ChallengeConfigError(f"{cid}: max_plies must be positive, got {win.max_plies}")
    try:
        position = Position.from_fen(config.starting_fen)
    except InvalidPosition as e:
        raise ChallengeConfigError(f"{cid}: {e}")
    if position.turn != config.player:
        raise ChallengeConfigError(f"{cid}: the player ({config.player_color}) must be to move in the starting position")
    if not position.has_legal_moves():
        raise ChallengeConfigError(f"{cid}: the player has no legal move in the starting position")
    return config


# Level 0: K+Q+3P each side. Capture three pieces without hanging the queen.
LEVEL_0_CHALLENGE = ChallengeConfig(
    id="level0_challenge",
    level=0,
    starting_fen="3qk3/ppp5/8/8/8/8/PPP5/3QK3 w - - 0 1",
    player_color="white",
    bot_profile="chip_l0",
    win_condition=WinCondition(kind=CAPTURES, target=3, max_plies=15),
    narrative=Narrative(
        title="Level 0 Challenge",
        subtitle="Prove you're ready!",
        intro_heading="Show me what you've learned!",
        intro_body="I've set up a special board. Can you find the captures?",
        intro_bullets=("Capture 3 pieces", "Don't lose your Queen", "Time limit: 15 moves"),
        success_heading="You did it!",
        success_body="Your Queen is safe, and you dominated the board. That's excellent piece awareness!",
        failure_headings={
            "queenBlunder": "Oops!",
            "blunder": "So close!",
            "timeout": "So close!",
        },
        failure_bodies={
            "queenBlunder": "You left your Queen undefended. She's too valuable to lose!",
            "blunder": "You lost a valuable piece for nothing. Remember to keep your pieces safe!",
            "timeout": "You played safe, but we need to be faster! Look for captures.",
        },
    ),
)

# Level 1: minors added. Build a 3 point lead against a bot that punishes loose pieces.
LEVEL_1_CHALLENGE = ChallengeConfig(
    id="level1_challenge",
    level=1,
    starting_fen="1nbqk3/ppp5/8/8/8/8/PPP5/1NBQK3 w - - 0 1",
    player_color="white",
    bot_profile="chip_l1",
    win_condition=WinCondition(kind=MATERIAL_LEAD, target=3, max_plies=20),
    narrative=Narrative(
        title="Level 1 Challenge",
        subtitle="Prove you're ready!",
        intro_heading="Time for a real match!",
        intro_body="You vs. me. I'll play fair, but I won't go easy!",
        intro_bullets=("Get a 3-point lead", "Don't lose pieces for free", "Time limit: 20 moves"),
        success_heading="Fantastic!",
        success_body="You outplayed the Coach! That's a solid tactical win.",
        failure_headings={
            "blunder": "Let's try again",
            "timeout": "Let's try again",
        },
        failure_bodies={
            "blunder": "I got the better of you this time. Watch out for my tricky moves!",
            "timeout": "Time ran out! Try to find winning moves faster.",
        },
    ),
)


def _build_registry(configs) -> dict[str, ChallengeConfig]:
    registry: dict[str, ChallengeConfig] = {}
    for cfg in configs:
        validate_challenge(cfg)
        if cfg.id in registry:
            raise ChallengeConfigError(f"Duplicate challenge id {cfg.id!r}")
        registry[cfg.id] = cfg
    return registry


BUILTIN_CHALLENGES: Mapping[str, ChallengeConfig] = MappingProxyType(
    _build_registry([LEVEL_0_CHALLENGE, LEVEL_1_CHALLENGE])
)


def get_challenge_config(challenge_id: str) -> ChallengeConfig:
    try:
        return BUILTIN_CHALLENGES[challenge_id]
    except KeyError:
        raise ChallengeConfigError(f"No challenge with id {challenge_id!r}")


def get_challenge_by_level(level: int) -> ChallengeConfig:
    for cfg in BUILTIN_CHALLENGES.values():
        if cfg.level == level:
            return cfg
    raise ChallengeConfigError(f"No challenge for level {level}")


def load_challenges_yaml(path: str) -> dict[str, ChallengeConfig]:
    """Read a YAML file with a top-level 'challenges' list; every entry is validated."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    entries = data.get("challenges") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise ChallengeConfigError(f"{path}: expected a top-level 'challenges' list")
    registry = _build_registry(challenge_from_dict(e) for e in entries)
    log.info("Loaded %d challenge(s) from %s", len(registry), path)
    return registry


def build_registry(extra_path: str | None = None) -> dict[str, ChallengeConfig]:
    """Built-in challenges plus those from extra_path (ids must not collide)."""
    registry = dict(BUILTIN_CHALLENGES)
    if extra_path:
        for cid, cfg in load_challenges_yaml(extra_path).items():
            if cid in registry:
                raise ChallengeConfigError(f"{extra_path}: challenge id {cid!r} already defined")
            registry[cid] = cfg
    return registry


__all__ = [
    "ChallengeConfig",
    "WinCondition",
    "Narrative",
    "ChallengeConfigError",
    "CAPTURES",
    "MATERIAL_LEAD",
    "LEVEL_0_CHALLENGE",
    "LEVEL_1_CHALLENGE",
    "BUILTIN_CHALLENGES",
    "get_challenge_config",
    "get_challenge_by_level",
    "challenge_from_dict",
    "validate_challenge",
    "load_challenges_yaml",
    "build_registry",
]
