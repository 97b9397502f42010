"""Modular static evaluator.

The evaluation is a fixed, ordered registry of named modules. Each module is
a pure function of the position (and the evaluation weights) returning a
centipawn contribution from White's point of view; the evaluator flips the
sign for Black so that every total and breakdown is expressed from the
perspective of the side to move. Which modules run is decided per call from
a name -> enabled mapping, the registry itself never changes.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, NamedTuple, Optional

from modchess.config import CONFIG, MODULE_NAMES, EvalConfig
from modchess.core.board import (
    Color,
    PieceType,
    Position,
    is_attacked,
)
from modchess.core.movegen import has_legal_move, pseudo_legal_moves
from modchess.errors import InvalidConfigError

CENTRE_SQUARES = (27, 28, 35, 36)  # d4 e4 d5 e5
EXTENDED_CENTRE = (18, 19, 20, 21, 26, 29, 34, 37, 42, 43, 44, 45)  # c3-f3 ring to c6-f6


@dataclass(frozen=True)
class EvaluationBreakdown:
    """Per-module contributions for one position.

    ``contributions`` holds enabled modules only, in registry order; a module
    that was disabled is absent rather than zero.
    """

    total: int
    contributions: Dict[str, int] = field(default_factory=dict)
    perspective: Color = Color.WHITE

    def __getitem__(self, name: str) -> int:
        return self.contributions[name]

    def __contains__(self, name: str) -> bool:
        return name in self.contributions

    def as_dict(self) -> Dict[str, int]:
        return {**self.contributions, "total": self.total}


class EvalModule(NamedTuple):
    name: str
    func: Callable[[Position, EvalConfig], int]
    # False when the function already scores from the side-to-move's perspective
    white_relative: bool = True


# ---------------------------------------------------------------------------
# Modules (White's perspective unless noted)
# ---------------------------------------------------------------------------

def eval_mate(position: Position, cfg: EvalConfig) -> int:
    """Checkmate scores +-mate_score, stalemate 0, a plain check costs the
    checked side check_penalty."""
    in_check = position.is_check()
    sign = -1 if position.turn == Color.WHITE else 1
    if not has_legal_move(position):
        return sign * cfg.mate_score if in_check else 0
    if in_check:
        return sign * cfg.check_penalty
    return 0


def eval_material(position: Position, cfg: EvalConfig) -> int:
    values = [0] + [cfg.piece_values.get(PieceType(k).name, 0) for k in range(1, 7)]
    score = 0
    for p in position.squares:
        if p is not None:
            score += values[p.kind] if p.color == Color.WHITE else -values[p.kind]
    return score


def eval_centre(position: Position, cfg: EvalConfig) -> int:
    """Attack and occupation of the four centre squares, attack of the ring
    around them."""
    w = cfg.centre_weights
    squares = position.squares
    score = 0
    for sq in CENTRE_SQUARES:
        if is_attacked(squares, sq, Color.WHITE):
            score += w["attack"]
        if is_attacked(squares, sq, Color.BLACK):
            score -= w["attack"]
        p = squares[sq]
        if p is not None:
            score += w["occupy"] if p.color == Color.WHITE else -w["occupy"]
    for sq in EXTENDED_CENTRE:
        if is_attacked(squares, sq, Color.WHITE):
            score += w["extended_attack"]
        if is_attacked(squares, sq, Color.BLACK):
            score -= w["extended_attack"]
    return score


def is_passed_pawn(position: Position, sq: int, color: int) -> bool:
    """No enemy pawn ahead on the same or an adjacent file."""
    row, col = sq >> 3, sq & 7
    rows = range(row + 1, 8) if color == Color.WHITE else range(row - 1, -1, -1)
    enemy = 1 - color
    for r in rows:
        for c in (col - 1, col, col + 1):
            if 0 <= c < 8:
                p = position.squares[r * 8 + c]
                if p is not None and p.kind == PieceType.PAWN and p.color == enemy:
                    return False
    return True


def eval_passed_pawns(position: Position, cfg: EvalConfig) -> int:
    """Passed pawns earn base + advancement^2 * quadratic; other pawns earn a
    linear advancement bonus (zero by default)."""
    w = cfg.passed_pawn_weights
    score = 0
    for sq, p in enumerate(position.squares):
        if p is None or p.kind != PieceType.PAWN:
            continue
        row = sq >> 3
        advancement = row - 1 if p.color == Color.WHITE else 6 - row
        if is_passed_pawn(position, sq, p.color):
            value = w["base"] + advancement * advancement * w["quadratic"]
        else:
            value = advancement * w["advance"]
        score += value if p.color == Color.WHITE else -value
    return score


def eval_pawn_structure(position: Position, cfg: EvalConfig) -> int:
    """Penalise doubled and isolated pawns."""
    w = cfg.pawn_structure_weights
    score = 0
    for color, sign in ((Color.WHITE, 1), (Color.BLACK, -1)):
        files = [0] * 8
        for sq in position.pieces(PieceType.PAWN, color):
            files[sq & 7] += 1
        for f, count in enumerate(files):
            if count == 0:
                continue
            if count > 1:
                score -= sign * w["doubled_penalty"] * (count - 1)
            left = files[f - 1] if f > 0 else 0
            right = files[f + 1] if f < 7 else 0
            if left == 0 and right == 0:
                score -= sign * w["isolated_penalty"] * count
    return score


def eval_mobility(position: Position, cfg: EvalConfig) -> int:
    """Reward minor and major pieces for the squares they can move to."""
    weights = {PieceType[name]: v for name, v in cfg.mobility_weights.items()}
    score = 0
    for color, sign in ((Color.WHITE, 1), (Color.BLACK, -1)):
        for move in pseudo_legal_moves(position, color):
            weight = weights.get(move.piece)
            if weight:
                score += sign * weight
    return score


def _shield_squares(king_sq: int, color: int):
    row, col = king_sq >> 3, king_sq & 7
    front = row + 1 if color == Color.WHITE else row - 1
    if not 0 <= front < 8:
        return ()
    return tuple(front * 8 + c for c in (col - 1, col, col + 1) if 0 <= c < 8)


def eval_king_safety(position: Position, cfg: EvalConfig) -> int:
    """Penalise a king stuck on its start square without castling rights and
    a missing pawn shield."""
    w = cfg.king_safety_weights
    score = 0
    for color, sign in ((Color.WHITE, 1), (Color.BLACK, -1)):
        king_sq = position.kings[color]
        home = 4 if color == Color.WHITE else 60
        if king_sq == home and not (position.castling.kingside(color)
                                    or position.castling.queenside(color)):
            score -= sign * w["lost_castling"]
        pawns_in_shield = 0
        for sq in _shield_squares(king_sq, color):
            p = position.squares[sq]
            if p is not None and p.kind == PieceType.PAWN and p.color == color:
                pawns_in_shield += 1
        if pawns_in_shield < 2:
            score -= sign * (2 - pawns_in_shield) * w["missing_shield"]
    return score


def eval_draw_penalty(position: Position, cfg: EvalConfig) -> int:
    """Side-to-move perspective: a position seen before was produced by the
    opponent, so it counts against them."""
    if position.repetition_count() >= 2:
        return cfg.repeat_penalty
    return 0


REGISTRY = (
    EvalModule("mate", eval_mate),
    EvalModule("material", eval_material),
    EvalModule("centre", eval_centre),
    EvalModule("passed_pawns", eval_passed_pawns),
    EvalModule("pawn_structure", eval_pawn_structure),
    EvalModule("mobility", eval_mobility),
    EvalModule("king_safety", eval_king_safety),
    EvalModule("draw_penalty", eval_draw_penalty, white_relative=False),
)


class Evaluator:
    def __init__(self, cfg: Optional[EvalConfig] = None):
        self.cfg = cfg or CONFIG.eval

    def _active(self, enabled: Optional[Mapping[str, bool]]):
        if enabled is None:
            return REGISTRY
        unknown = set(enabled) - set(MODULE_NAMES)
        if unknown:
            raise InvalidConfigError(f"Unknown evaluation module(s): {', '.join(sorted(unknown))}")
        return tuple(m for m in REGISTRY if enabled.get(m.name, True))

    def _contribution(self, module: EvalModule, position: Position) -> int:
        value = module.func(position, self.cfg)
        if module.white_relative and position.turn == Color.BLACK:
            return -value
        return value

    def evaluate(self, position: Position,
                 enabled: Optional[Mapping[str, bool]] = None) -> EvaluationBreakdown:
        """Score ``position`` from the side to move's perspective, keeping the
        contribution of every enabled module."""
        contributions = {m.name: self._contribution(m, position) for m in self._active(enabled)}
        return EvaluationBreakdown(sum(contributions.values()), contributions, position.turn)

    def score(self, position: Position, enabled: Optional[Mapping[str, bool]] = None) -> int:
        """Same total as evaluate() without building the breakdown."""
        return self.scorer(enabled)(position)

    def scorer(self, enabled: Optional[Mapping[str, bool]] = None) -> Callable[[Position], int]:
        """Bind the enabled module set once; used by the search at every leaf."""
        active = self._active(enabled)

        def score(position: Position) -> int:
            return sum(self._contribution(m, position) for m in active)

        return score
