"""Exceptions raised by the engine.

Recoverable conditions (illegal moves, bad configuration, bad coordinates,
malformed FEN) derive from ``ValueError`` so hosts can report them and carry
on. ``InvariantViolation`` signals a bug in move application or generation
and is never caught inside the engine.
"""


class ChessEngineError(Exception):
    """Base class for every error raised by modchess."""


class IllegalMoveError(ChessEngineError, ValueError):
    """The requested move is not in the legal-move set of the current position."""


class InvalidConfigError(ChessEngineError, ValueError):
    """Unknown module name, depth out of range or bad auto-deepen threshold."""


class InvalidSquareError(ChessEngineError, ValueError):
    """Board coordinates outside 0..7."""


class InvalidFenError(ChessEngineError, ValueError):
    """A FEN string that cannot describe a reachable position."""


class InvariantViolation(ChessEngineError, RuntimeError):
    """Internal state broke a board invariant (e.g. a king was captured)."""
