"""The stateful game handle a host drives with discrete commands."""

import copy
import logging
from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple

from modchess.config import CONFIG, Config, EngineConfig
from modchess.core.board import (
    Color,
    GameStatus,
    Move,
    Piece,
    PieceType,
    Position,
    square,
    square_name,
)
from modchess.core.evaluator import EvaluationBreakdown, Evaluator
from modchess.core.movegen import legal_moves, legal_moves_for_square
from modchess.core.search import SearchEngine, SearchResult
from modchess.errors import IllegalMoveError, InvalidSquareError

logger = logging.getLogger(__name__)

DRAW_RESULTS = {
    GameStatus.STALEMATE: "Draw",
    GameStatus.FIFTY_MOVE_RULE: "Draw - 50 move rule",
    GameStatus.THREEFOLD_REPETITION: "Draw by repetition",
    GameStatus.INSUFFICIENT_MATERIAL: "Draw - insufficient material",
}


def result_text(position: Position, status: GameStatus) -> Optional[str]:
    if status is GameStatus.CHECKMATE:
        return f"{position.turn.opponent.label} wins"
    if status.is_draw:
        return DRAW_RESULTS[status]
    return None


class SquareMove(NamedTuple):
    to_row: int
    to_col: int
    promotion: Optional[PieceType] = None


@dataclass(frozen=True)
class BoardState:
    squares: Tuple[Tuple[Optional[Piece], ...], ...]
    turn: Color
    status: GameStatus
    game_over: bool
    result: Optional[str]
    in_check: bool
    legal_moves: Tuple[Move, ...]
    # pieces of each color that have been captured so far
    captured_white: Tuple[PieceType, ...]
    captured_black: Tuple[PieceType, ...]
    last_move: Optional[Move]
    fen: str
    halfmove_clock: int
    fullmove_number: int


@dataclass(frozen=True)
class AiMoveResult:
    state: BoardState
    search: SearchResult

    @property
    def move(self) -> Optional[Move]:
        return self.search.move


class Game:
    """Owns the current position, the move history and the engine settings.

    Every command runs to completion on the caller's thread. A Game must not
    be driven from two threads at once; hosts serialise access.
    """

    def __init__(self, fen: Optional[str] = None, config: Optional[Config] = None):
        self._defaults = copy.deepcopy(config or CONFIG)
        self.search_engine = SearchEngine(Evaluator(self._defaults.eval), self._defaults.search)
        self.config = EngineConfig.from_defaults(self._defaults)
        self.last_evals = 0
        self._reset(Position.from_fen(fen) if fen else Position.initial())

    def _reset(self, position: Position):
        self.position = position
        # (position before the move, move) per ply
        self._played: List[Tuple[Position, Move]] = []

    # -- lifecycle ---------------------------------------------------------

    def new_game(self):
        """Back to the starting position; engine settings are kept."""
        self._reset(Position.initial())
        self.last_evals = 0

    def load_fen(self, fen: str):
        """Replace the position and clear the history. Raises InvalidFenError."""
        self._reset(Position.from_fen(fen))
        self.last_evals = 0

    def undo_move(self):
        if self._played:
            self.position, move = self._played.pop()
            logger.info("Took back %s", move.uci())

    @property
    def history(self) -> Tuple[Move, ...]:
        return tuple(move for _, move in self._played)

    def status(self) -> GameStatus:
        return self.position.is_terminal()

    # -- moves -------------------------------------------------------------

    def make_move(self, from_row: int, from_col: int, to_row: int, to_col: int,
                  promotion=None) -> BoardState:
        """Play a move given by coordinates. A promotion without an explicit
        piece promotes to a queen."""
        status = self.status()
        if status.is_over:
            raise IllegalMoveError(f"Game is already over ({result_text(self.position, status)})")
        try:
            fr = square(from_row, from_col)
            to = square(to_row, to_col)
        except InvalidSquareError as e:
            raise IllegalMoveError(f"Illegal move: {e}") from e

        promo = None
        if promotion is not None:
            try:
                promo = PieceType.parse(promotion)
            except ValueError as e:
                raise IllegalMoveError(f"Illegal move: {e}") from e

        candidates = [m for m in legal_moves_for_square(self.position, fr) if m.to_square == to]
        if promo is None and any(m.promotion is not None for m in candidates):
            promo = PieceType.QUEEN
        move = next((m for m in candidates if m.promotion == promo), None)
        if move is None:
            suffix = promo.symbol if promo else ""
            raise IllegalMoveError(f"Illegal move: {square_name(fr)}{square_name(to)}{suffix}")

        self._play(move)
        return self.get_board_state()

    def make_ai_move(self) -> AiMoveResult:
        """Search the current position and play the chosen move. When the game
        is over nothing is played and the state is left untouched."""
        status = self.status()
        if status.is_over:
            return AiMoveResult(self.get_board_state(), self._terminal_result(status))
        result = self.search_engine.search(self.position, self.config)
        self.last_evals = result.evals
        if result.move is not None:
            self._play(result.move)
        return AiMoveResult(self.get_board_state(), result)

    def _play(self, move: Move):
        mover = self.position.turn
        self._played.append((self.position, move))
        self.position = self.position.apply(move)
        logger.info("%s plays %s", mover.label, move.uci())

    def _terminal_result(self, status: GameStatus) -> SearchResult:
        score = self.search_engine.evaluator.score(self.position, self.config.modules)
        return SearchResult(None, score, 0, 0, 0, status)

    # -- reads -------------------------------------------------------------

    def get_board_state(self) -> BoardState:
        position = self.position
        status = position.is_terminal()
        captured = ([], [])
        for before, move in self._played:
            if move.captured is not None:
                captured[before.turn.opponent].append(move.captured)
        return BoardState(
            squares=tuple(tuple(row) for row in position.rows()),
            turn=position.turn,
            status=status,
            game_over=status.is_over,
            result=result_text(position, status),
            in_check=position.is_check(),
            legal_moves=tuple(legal_moves(position)) if not status.is_over else (),
            captured_white=tuple(captured[Color.WHITE]),
            captured_black=tuple(captured[Color.BLACK]),
            last_move=self._played[-1][1] if self._played else None,
            fen=position.fen(),
            halfmove_clock=position.halfmove_clock,
            fullmove_number=position.fullmove_number,
        )

    def get_legal_moves_for_square(self, row: int, col: int) -> List[SquareMove]:
        sq = square(row, col)
        return [SquareMove(m.to_square >> 3, m.to_square & 7, m.promotion)
                for m in legal_moves_for_square(self.position, sq)]

    def get_eval_breakdown(self) -> EvaluationBreakdown:
        return self.search_engine.evaluator.evaluate(self.position, self.config.modules)

    def get_last_evals(self) -> int:
        return self.last_evals

    def get_hint(self, depth: int) -> Optional[SearchResult]:
        """Suggest a move without playing it. Position, history and settings
        are left as they were."""
        depth = self.config.check_depth(depth)
        status = self.status()
        if status.is_over:
            return self._terminal_result(status)
        return self.search_engine.hint(self.position, self.config.copy(), depth)

    # -- settings ----------------------------------------------------------

    def set_module(self, name: str, enabled: bool):
        self.config.set_module(name, enabled)

    def set_depth(self, depth: int):
        self.config.set_depth(depth)

    def set_auto_deepen(self, enabled: bool, min_evals: int):
        self.config.set_auto_deepen(enabled, min_evals)
