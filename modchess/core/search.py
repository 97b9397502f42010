import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from modchess.config import CONFIG, EngineConfig, SearchConfig
from modchess.core.board import GameStatus, Move, Position
from modchess.core.evaluator import Evaluator
from modchess.core.movegen import legal_moves
from modchess.core.transposition import TT_ALPHA, TT_BETA, TT_EXACT, TranspositionTable
from modchess.core.utils import log_info

logger = logging.getLogger(__name__)

INF = 10_000_000

_ORDER_VALUES = (0, 1, 3, 3, 5, 9, 0)  # indexed by PieceType


@dataclass(frozen=True)
class SearchResult:
    """Outcome of one search call.

    ``move`` is None when the root has no legal move (checkmate or
    stalemate); ``score`` is then the static evaluation of the root.
    ``evals`` and ``nodes`` describe the last completed iteration only.
    """

    move: Optional[Move]
    score: int
    evals: int
    nodes: int
    depth: int
    status: GameStatus = GameStatus.ONGOING


def move_priority(move: Move) -> int:
    """Promotions first (queen highest), then captures by MVV-LVA, then quiet moves."""
    score = 0
    if move.promotion is not None:
        score += 900 + _ORDER_VALUES[move.promotion]
    if move.captured is not None:
        score += 100 + _ORDER_VALUES[move.captured] * 10 - _ORDER_VALUES[move.piece]
    return score


def order_moves(moves: List[Move], tt_move: Optional[Move] = None) -> List[Move]:
    """Sort by priority; Python's sort is stable so ties keep generation order."""
    ordered = sorted(moves, key=move_priority, reverse=True)
    if tt_move is not None and tt_move in ordered:
        ordered.remove(tt_move)
        ordered.insert(0, tt_move)
    return ordered


class SearchEngine:
    """Negamax with alpha-beta pruning over the legal move generator.

    The engine keeps no state between calls: counters and the transposition
    table live for the duration of one search() or hint() and are reset at
    the start of the next.
    """

    def __init__(self, evaluator: Optional[Evaluator] = None,
                 cfg: Optional[SearchConfig] = None):
        self.evaluator = evaluator or Evaluator()
        self.cfg = cfg or CONFIG.search
        self.nodes = 0
        self.evals = 0
        self._score: Optional[Callable[[Position], int]] = None
        self._tt: Optional[TranspositionTable] = None

    # -- public API --------------------------------------------------------

    def search(self, position: Position, config: EngineConfig) -> SearchResult:
        """Pick a move for the side to move using the configured depth.

        With auto-deepen on, the search is repeated one ply deeper while the
        last iteration evaluated fewer than ``config.min_evals`` positions and
        the depth ceiling has not been reached.
        """
        ceiling = max(config.depth, self.cfg.auto_deepen_ceiling)
        result = self._run(position, config, config.depth)
        while (config.auto_deepen and result.move is not None
               and result.evals < config.min_evals and result.depth < ceiling):
            logger.debug("auto-deepen: %d evals at depth %d below %d, searching deeper",
                         result.evals, result.depth, config.min_evals)
            result = self._run(position, config, result.depth + 1)
        return result

    def hint(self, position: Position, config: EngineConfig, depth: int) -> SearchResult:
        """Same algorithm at an explicit depth, auto-deepen off for this call."""
        return self._run(position, config, depth)

    # -- internals ---------------------------------------------------------

    def _run(self, position: Position, config: EngineConfig, depth: int) -> SearchResult:
        self.nodes = 0
        self.evals = 0
        self._score = self.evaluator.scorer(config.modules)
        self._tt = TranspositionTable()
        start_time = time.monotonic()
        try:
            moves = legal_moves(position)
            if not moves:
                self.evals += 1
                status = GameStatus.CHECKMATE if position.is_check() else GameStatus.STALEMATE
                return SearchResult(None, self._score(position), self.evals, 1, 0, status)

            best_move, best_score = self._root(position, moves, depth)
            log_info(depth, best_score, self.evals, self.nodes,
                     time.monotonic() - start_time, best_move, self.evaluator.cfg.mate_score)
            return SearchResult(best_move, best_score, self.evals, self.nodes, depth)
        finally:
            self._tt = None
            self._score = None

    def _root(self, position: Position, moves: List[Move], depth: int):
        """Score root moves in priority order; the first move reaching the best
        score is kept, later moves must be strictly better to replace it."""
        self.nodes += 1
        alpha = -INF
        best_move = None
        for move in order_moves(moves):
            score = -self._negamax(position.apply(move), depth - 1, -INF, -alpha, 1)
            if best_move is None or score > alpha:
                alpha = score
                best_move = move
        return best_move, alpha

    def _leaf(self, position: Position, ply: int) -> int:
        self.evals += 1
        score = self._score(position)
        # prefer shorter mates, postpone being mated
        bound = self.evaluator.cfg.mate_score // 2
        if score <= -bound:
            score += ply
        elif score >= bound:
            score -= ply
        return score

    def _negamax(self, position: Position, depth: int, alpha: int, beta: int, ply: int) -> int:
        self.nodes += 1
        if depth <= 0:
            return self._leaf(position, ply)

        moves = legal_moves(position)
        if not moves or position.halfmove_clock >= 100 or position.repetition_count() >= 3 \
                or position.is_insufficient_material():
            return self._leaf(position, ply)

        alpha_orig = alpha
        entry = self._tt.get(position)
        tt_move = entry.best_move if entry is not None else None

        best_score = -INF
        best_move = None
        for move in order_moves(moves, tt_move):
            score = -self._negamax(position.apply(move), depth - 1, -beta, -alpha, ply + 1)
            if score > best_score:
                best_score = score
                best_move = move
            if score > alpha:
                alpha = score
                if alpha >= beta:
                    break

        if best_score <= alpha_orig:
            flag = TT_ALPHA
        elif best_score >= beta:
            flag = TT_BETA
        else:
            flag = TT_EXACT
        self._tt.store(position, depth, best_score, flag, best_move)
        return best_score
