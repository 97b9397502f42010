"""Core engine components: board, move generation, evaluator, search and transposition table."""

from .board import Color, GameStatus, Move, Piece, PieceType, Position
from .evaluator import EvaluationBreakdown, Evaluator
from .movegen import legal_moves, perft
from .search import SearchEngine, SearchResult
from .transposition import TranspositionTable
