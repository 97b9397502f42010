"""modchess: a modular chess engine with a pluggable evaluator."""

from modchess.errors import (
    ChessEngineError,
    IllegalMoveError,
    InvalidConfigError,
    InvalidFenError,
    InvalidSquareError,
    InvariantViolation,
)
from modchess.game import AiMoveResult, BoardState, Game

__version__ = "0.1.0"


def build_identifier() -> str:
    """Identifies the running build to hosts (sent in the worker's init message)."""
    return f"modchess-{__version__}"
