# modchess/config.py
from dataclasses import dataclass, field
from typing import Dict, Optional
import os
import tomllib

from modchess.errors import InvalidConfigError

# Defaults (centipawns)
PIECE_VALUES = {
    "PAWN": 100,
    "KNIGHT": 320,
    "BISHOP": 330,
    "ROOK": 500,
    "QUEEN": 900,
    "KING": 0,
}

# Registry order of the evaluation modules. Names are the public keys used by
# set_module() and by the breakdown.
MODULE_NAMES = (
    "mate",
    "material",
    "centre",
    "passed_pawns",
    "pawn_structure",
    "mobility",
    "king_safety",
    "draw_penalty",
)

@dataclass
class SearchConfig:
    depth: int = 3  # plies
    max_depth: int = 8
    auto_deepen_ceiling: int = 6  # auto-deepen never goes past this many plies
    # From the start position this threshold is first met at depth 5, about
    # 127k evaluations and roughly a minute of search. Lower it for faster play.
    min_evals: int = 20000

@dataclass
class EvalConfig:
    piece_values: Dict[str, int] = field(default_factory=lambda: PIECE_VALUES.copy())
    mate_score: int = 100000
    check_penalty: int = 50
    centre_weights: Dict[str, int] = field(default_factory=lambda: {
        "attack": 15, "occupy": 20, "extended_attack": 30
    })
    passed_pawn_weights: Dict[str, int] = field(default_factory=lambda: {
        "base": 20, "quadratic": 30, "advance": 0
    })
    pawn_structure_weights: Dict[str, int] = field(default_factory=lambda: {
        "doubled_penalty": 30, "isolated_penalty": 20
    })
    mobility_weights: Dict[str, int] = field(default_factory=lambda: {
        "KNIGHT": 4, "BISHOP": 4, "ROOK": 2, "QUEEN": 1
    })
    king_safety_weights: Dict[str, int] = field(default_factory=lambda: {
        "missing_shield": 20, "lost_castling": 40
    })
    repeat_penalty: int = 1000

@dataclass
class UIConfig:
    engine_name: str = "modchess"
    api_port: int = 8000
    human_plays_white: bool = True

@dataclass
class Config:
    search: SearchConfig = field(default_factory=SearchConfig)
    eval: EvalConfig = field(default_factory=EvalConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "config.toml") -> "Config":
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        for section in ("search", "eval", "ui"):
            if section in raw:
                target = getattr(cfg, section)
                for k, v in raw[section].items():
                    if hasattr(target, k):
                        setattr(target, k, v)
        if "log_level" in raw:
            cfg.log_level = str(raw["log_level"])
        return cfg

# single globally importable config instance
CONFIG = Config.load_from_toml(os.environ.get("MODCHESS_CONFIG_TOML", "config.toml"))
# allow env override of depth for quick debugging
override_depth = os.environ.get("MODCHESS_SEARCH_DEPTH")
if override_depth and override_depth.isdigit() and int(override_depth) > 0:
    CONFIG.search.depth = int(override_depth)


def _check_int(name: str, value) -> int:
    # bool is an int subclass; True is not a depth
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidConfigError(f"{name} must be an integer, got {value!r}")
    return value


@dataclass
class EngineConfig:
    """Per-game engine settings, changed only through the setters below.

    Every setter validates first and leaves the current values untouched on
    failure.
    """

    depth: int = 3
    modules: Dict[str, bool] = field(default_factory=lambda: dict.fromkeys(MODULE_NAMES, True))
    auto_deepen: bool = False
    min_evals: int = 20000
    max_depth: int = 8

    @classmethod
    def from_defaults(cls, cfg: Optional[Config] = None) -> "EngineConfig":
        cfg = cfg or CONFIG
        return cls(depth=cfg.search.depth, min_evals=cfg.search.min_evals,
                   max_depth=cfg.search.max_depth)

    def check_depth(self, depth) -> int:
        _check_int("depth", depth)
        if not 1 <= depth <= self.max_depth:
            raise InvalidConfigError(f"depth must be between 1 and {self.max_depth}, got {depth}")
        return depth

    def set_module(self, name: str, enabled: bool):
        if name not in self.modules:
            raise InvalidConfigError(
                f"Unknown evaluation module {name!r}; expected one of {', '.join(MODULE_NAMES)}")
        self.modules[name] = bool(enabled)

    def set_depth(self, depth: int):
        self.depth = self.check_depth(depth)

    def set_auto_deepen(self, enabled: bool, min_evals: int):
        _check_int("min_evals", min_evals)
        if min_evals < 1:
            raise InvalidConfigError(f"min_evals must be at least 1, got {min_evals}")
        self.auto_deepen = bool(enabled)
        self.min_evals = min_evals

    def enabled_modules(self):
        return tuple(name for name in MODULE_NAMES if self.modules[name])

    def copy(self) -> "EngineConfig":
        return EngineConfig(self.depth, dict(self.modules), self.auto_deepen,
                            self.min_evals, self.max_depth)
