"""Transport shapes for hosts (HTTP API and worker replies)."""

from typing import Dict, List, Optional

from pydantic import BaseModel

from modchess.core.board import Move, Piece
from modchess.core.evaluator import EvaluationBreakdown
from modchess.core.search import SearchResult
from modchess.game import AiMoveResult, BoardState, SquareMove


class PieceModel(BaseModel):
    kind: str
    color: str

    @classmethod
    def from_piece(cls, piece: Piece) -> "PieceModel":
        return cls(kind=piece.kind.label, color=piece.color.label)


class MoveModel(BaseModel):
    from_row: int
    from_col: int
    to_row: int
    to_col: int
    promotion: Optional[str] = None
    uci: str

    @classmethod
    def from_move(cls, move: Move) -> "MoveModel":
        fr, fc = move.from_coords
        tr, tc = move.to_coords
        return cls(from_row=fr, from_col=fc, to_row=tr, to_col=tc,
                   promotion=move.promotion.label if move.promotion else None,
                   uci=move.uci())


class TargetModel(BaseModel):
    to_row: int
    to_col: int
    promotion: Optional[str] = None

    @classmethod
    def from_square_move(cls, target: SquareMove) -> "TargetModel":
        return cls(to_row=target.to_row, to_col=target.to_col,
                   promotion=target.promotion.label if target.promotion else None)


class BoardStateModel(BaseModel):
    squares: List[List[Optional[PieceModel]]]
    turn: str
    status: str
    game_over: bool
    result: Optional[str] = None
    in_check: bool
    legal_moves: List[MoveModel]
    captured_white: List[str]
    captured_black: List[str]
    last_move: Optional[MoveModel] = None
    fen: str
    halfmove_clock: int
    fullmove_number: int

    @classmethod
    def from_state(cls, state: BoardState) -> "BoardStateModel":
        return cls(
            squares=[[PieceModel.from_piece(p) if p else None for p in row] for row in state.squares],
            turn=state.turn.label,
            status=state.status.value,
            game_over=state.game_over,
            result=state.result,
            in_check=state.in_check,
            legal_moves=[MoveModel.from_move(m) for m in state.legal_moves],
            captured_white=[k.label for k in state.captured_white],
            captured_black=[k.label for k in state.captured_black],
            last_move=MoveModel.from_move(state.last_move) if state.last_move else None,
            fen=state.fen,
            halfmove_clock=state.halfmove_clock,
            fullmove_number=state.fullmove_number,
        )


class SearchResultModel(BaseModel):
    move: Optional[MoveModel] = None
    score: int
    evals: int
    nodes: int
    depth: int
    status: str

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResultModel":
        return cls(move=MoveModel.from_move(result.move) if result.move else None,
                   score=result.score, evals=result.evals, nodes=result.nodes,
                   depth=result.depth, status=result.status.value)


class EvalBreakdownModel(BaseModel):
    total: int
    perspective: str
    contributions: Dict[str, int]

    @classmethod
    def from_breakdown(cls, breakdown: EvaluationBreakdown) -> "EvalBreakdownModel":
        return cls(total=breakdown.total, perspective=breakdown.perspective.label,
                   contributions=dict(breakdown.contributions))


class AiMoveModel(BaseModel):
    state: BoardStateModel
    search: SearchResultModel

    @classmethod
    def from_ai_move(cls, result: AiMoveResult) -> "AiMoveModel":
        return cls(state=BoardStateModel.from_state(result.state),
                   search=SearchResultModel.from_result(result.search))
