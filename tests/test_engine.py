"""
Test suite for the modchess engine core.

Covers:
- Position (FEN parsing, move application, castling, en passant, promotion, clocks)
- Draw detection (fifty-move rule, repetition, insufficient material)
- Move generation (legality, per-square moves, perft against python-chess)
- Evaluator (breakdown consistency, perspective, individual modules)
- Transposition table and zobrist keys
- Search (mates, terminal roots, determinism, auto-deepen)
- Engine configuration (validation, TOML loading)
"""

import chess
import pytest

from modchess.config import MODULE_NAMES, Config, EngineConfig, EvalConfig
from modchess.core.board import (
    STARTING_FEN,
    Color,
    GameStatus,
    Move,
    PieceType,
    Position,
    is_attacked,
    parse_square,
    square,
)
from modchess.core.evaluator import Evaluator
from modchess.core.movegen import (
    legal_destinations,
    legal_moves,
    legal_moves_for_square,
    perft,
)
from modchess.core.search import SearchEngine, move_priority, order_moves
from modchess.core.transposition import (
    TT_ALPHA,
    TT_EXACT,
    ZOBRIST,
    TranspositionTable,
    make_zobrist_table,
)
from modchess.core.utils import format_score
from modchess.errors import (
    IllegalMoveError,
    InvalidConfigError,
    InvalidFenError,
    InvalidSquareError,
)

FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"
STALEMATE = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"


def play(position, *ucis):
    """Apply moves given in UCI form, picking them from the legal move list."""
    for text in ucis:
        fr, to = parse_square(text[:2]), parse_square(text[2:4])
        promo = PieceType.parse(text[4]) if len(text) == 5 else None
        move = next(m for m in legal_moves(position)
                    if m.from_square == fr and m.to_square == to and m.promotion == promo)
        position = position.apply(move)
    return position


def reference_perft(board, depth):
    if depth == 0:
        return 1
    total = 0
    for move in board.legal_moves:
        board.push(move)
        total += reference_perft(board, depth - 1)
        board.pop()
    return total


# ════════════════════════════════════════════════════════════════════════════
#  POSITION TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestPosition:
    def test_initial_position(self):
        pos = Position.initial()
        assert pos.fen() == STARTING_FEN
        assert pos.turn == Color.WHITE
        assert pos.piece_at(0, 4).kind == PieceType.KING
        assert pos.piece_at(7, 3).kind == PieceType.QUEEN
        assert pos.piece_at(7, 3).color == Color.BLACK

    def test_fen_round_trip(self):
        assert Position.from_fen(KIWIPETE).fen() == KIWIPETE

    def test_four_field_fen_gets_default_clocks(self):
        pos = Position.from_fen("4k3/8/8/8/8/8/8/4K3 w - -")
        assert pos.halfmove_clock == 0
        assert pos.fullmove_number == 1

    @pytest.mark.parametrize("fen", [
        "",
        "8/8/8/8/8/8/8/8 w - - 0 1",
        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP w KQkq - 0 1",
        "4k3/8/8/8/8/8/8/4K3 x - - 0 1",
        "4k3/8/8/8/8/8/8/4K2X w - - 0 1",
        "4k3/8/8/8/8/8/8/4K3 w Z - 0 1",
        "4k3/8/8/8/8/8/8/4K3 w - e3 0 1",
        "4k3/8/8/8/8/8/8/4K3 w - - a 1",
        "4k3/4Q3/8/8/8/8/8/4K3 w - - 0 1",
        "4k3/8/8/8/8/8/8/4K3K w - - 0 1",
        "P3k3/8/8/8/8/8/8/4K3 w - - 0 1",
    ])
    def test_invalid_fen(self, fen):
        with pytest.raises(InvalidFenError):
            Position.from_fen(fen)

    def test_invalid_fen_is_value_error(self):
        with pytest.raises(ValueError):
            Position.from_fen("not a fen")

    def test_castling_rights_dropped_without_rook(self):
        pos = Position.from_fen("4k3/8/8/8/8/8/8/4K3 w KQkq - 0 1")
        assert pos.castling.fen() == "-"

    def test_square_out_of_range(self):
        with pytest.raises(InvalidSquareError):
            square(8, 0)
        with pytest.raises(InvalidSquareError):
            square(0, -1)

    def test_apply_is_pure(self):
        pos = Position.initial()
        move = Move(square(1, 4), square(3, 4))
        a = pos.apply(move)
        b = pos.apply(move)
        assert a == b
        assert hash(a) == hash(b)
        assert pos.fen() == STARTING_FEN

    def test_transpositions_are_equal(self):
        a = play(Position.initial(), "g1f3", "g8f6", "b1c3")
        b = play(Position.initial(), "b1c3", "g8f6", "g1f3")
        assert a == b
        assert a.key == b.key

    def test_double_push_sets_en_passant(self):
        pos = play(Position.initial(), "e2e4")
        assert pos.ep_square == parse_square("e3")
        assert pos.turn == Color.BLACK

    def test_en_passant_capture(self):
        pos = Position.from_fen("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 2")
        ep = [m for m in legal_moves(pos) if m.en_passant]
        assert len(ep) == 1
        after = pos.apply(ep[0])
        assert after.piece_at(4, 3) is None
        assert after.piece_at(5, 3).kind == PieceType.PAWN
        assert after.halfmove_clock == 0

    @pytest.mark.parametrize("fen", [
        "8/8/8/3Pk3/8/8/8/4K3 w - e6 0 1",   # king behind the target square
        "4k3/8/8/3Pn3/8/8/8/4K3 w - e6 0 1",  # knight behind the target square
        "4k3/8/8/3P4/8/8/8/4K3 w - e6 0 1",   # nothing behind it
        "4k3/4p3/8/3Pp3/8/8/8/4K3 w - e6 0 1",  # origin square still occupied
    ])
    def test_en_passant_square_needs_pawn_behind(self, fen):
        with pytest.raises(InvalidFenError):
            Position.from_fen(fen)

    def test_diagonal_pawn_move_needs_a_victim(self):
        pos = Position.from_fen("4k3/8/8/3P4/8/8/8/4K3 w - - 0 1")
        with pytest.raises(IllegalMoveError):
            pos.apply(Move(parse_square("d5"), parse_square("e6")))
        assert parse_square("e6") not in legal_destinations(pos, parse_square("d5"))

    def test_kingside_castling_moves_rook(self):
        pos = Position.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
        assert legal_destinations(pos, square(0, 4)) >= {square(0, 6), square(0, 2)}
        after = play(pos, "e1g1")
        assert after.piece_at(0, 5).kind == PieceType.ROOK
        assert after.piece_at(0, 7) is None
        assert after.castling.fen() == "kq"

    def test_queenside_castling_moves_rook(self):
        pos = Position.from_fen("r3k2r/8/8/8/8/8/8/R3K2R b KQkq - 0 1")
        after = play(pos, "e8c8")
        assert after.piece_at(7, 3).kind == PieceType.ROOK
        assert after.piece_at(7, 0) is None
        assert after.castling.fen() == "KQ"

    def test_no_castling_through_attack(self):
        pos = Position.from_fen("4k3/8/8/8/8/8/5r2/R3K2R w KQ - 0 1")
        dests = legal_destinations(pos, square(0, 4))
        assert square(0, 6) not in dests
        assert square(0, 2) in dests

    def test_rook_move_loses_one_right(self):
        pos = Position.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
        assert play(pos, "h1h2").castling.fen() == "Qkq"

    def test_capturing_corner_rook_loses_right(self):
        pos = Position.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
        assert play(pos, "a1a8").castling.fen() == "Kk"

    def test_promotion_moves(self):
        pos = Position.from_fen("8/4P3/8/8/8/8/k7/4K3 w - - 0 1")
        promos = [m.promotion for m in legal_moves_for_square(pos, square(6, 4))]
        assert promos == [PieceType.QUEEN, PieceType.ROOK, PieceType.BISHOP, PieceType.KNIGHT]

    def test_promotion_defaults_to_queen(self):
        pos = Position.from_fen("8/4P3/8/8/8/8/k7/4K3 w - - 0 1")
        after = pos.apply(Move(square(6, 4), square(7, 4)))
        assert after.piece_at(7, 4).kind == PieceType.QUEEN

    def test_apply_rejects_bad_moves(self):
        pos = Position.initial()
        with pytest.raises(IllegalMoveError):
            pos.apply(Move(square(3, 3), square(4, 3)))  # empty origin
        with pytest.raises(IllegalMoveError):
            pos.apply(Move(square(6, 4), square(5, 4)))  # black pawn, white to move
        with pytest.raises(IllegalMoveError):
            pos.apply(Move(square(0, 0), square(1, 0)))  # own piece on target
        with pytest.raises(IllegalMoveError):
            pos.apply(Move(square(1, 4), square(2, 4), PieceType.QUEEN))

    def test_clocks(self):
        pos = play(Position.initial(), "g1f3")
        assert pos.halfmove_clock == 1
        assert pos.fullmove_number == 1
        pos = play(pos, "g8f6")
        assert pos.halfmove_clock == 2
        assert pos.fullmove_number == 2
        pos = play(pos, "e2e4")
        assert pos.halfmove_clock == 0


# ════════════════════════════════════════════════════════════════════════════
#  TERMINAL STATUS TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestTerminalStatus:
    def test_initial_is_ongoing(self):
        assert Position.initial().is_terminal() == GameStatus.ONGOING

    def test_checkmate(self):
        pos = Position.from_fen(FOOLS_MATE)
        assert pos.is_check()
        assert pos.is_terminal() == GameStatus.CHECKMATE

    def test_stalemate(self):
        pos = Position.from_fen(STALEMATE)
        assert not pos.is_check()
        assert pos.is_terminal() == GameStatus.STALEMATE

    def test_fifty_move_rule(self):
        pos = Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 100 80")
        assert pos.is_terminal() == GameStatus.FIFTY_MOVE_RULE

    def test_fifty_move_rule_not_before_100(self):
        pos = Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 99 80")
        assert pos.is_terminal() == GameStatus.ONGOING

    def test_threefold_repetition(self):
        shuffle = ("g1f3", "g8f6", "f3g1", "f6g8")
        pos = play(Position.initial(), *shuffle)
        assert pos.repetition_count() == 2
        assert pos.is_terminal() == GameStatus.ONGOING
        pos = play(pos, *shuffle)
        assert pos.repetition_count() == 3
        assert pos.is_terminal() == GameStatus.THREEFOLD_REPETITION

    @pytest.mark.parametrize("fen", [
        "4k3/8/8/8/8/8/8/4K3 w - - 0 1",
        "4k3/8/8/8/8/8/8/4KB2 w - - 0 1",
        "4k3/8/8/8/8/8/8/4KN2 b - - 0 1",
    ])
    def test_insufficient_material(self, fen):
        assert Position.from_fen(fen).is_terminal() == GameStatus.INSUFFICIENT_MATERIAL

    def test_rook_is_sufficient(self):
        pos = Position.from_fen("4k3/8/8/8/8/8/8/4KR2 b - - 0 1")
        assert not pos.is_insufficient_material()


# ════════════════════════════════════════════════════════════════════════════
#  MOVE GENERATION TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestMoveGeneration:
    def test_initial_move_count(self):
        assert len(legal_moves(Position.initial())) == 20

    def test_generation_is_deterministic(self):
        pos = Position.from_fen(KIWIPETE)
        assert legal_moves(pos) == legal_moves(pos)

    @pytest.mark.parametrize("fen", [STARTING_FEN, KIWIPETE, FOOLS_MATE,
                                     "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1"])
    def test_moves_never_leave_king_in_check(self, fen):
        pos = Position.from_fen(fen)
        for move in legal_moves(pos):
            after = pos.apply(move)
            assert not is_attacked(after.squares, after.king_square(pos.turn), after.turn)

    def test_pinned_piece_cannot_move(self):
        pos = Position.from_fen("4k3/4r3/8/8/8/8/4B3/4K3 w - - 0 1")
        assert legal_moves_for_square(pos, square(1, 4)) == []

    def test_per_square_matches_full_list(self):
        pos = Position.from_fen(KIWIPETE)
        everything = legal_moves(pos)
        for sq in range(64):
            assert legal_moves_for_square(pos, sq) == [m for m in everything if m.from_square == sq]

    def test_piece_of_side_not_to_move_has_no_moves(self):
        pos = play(Position.initial(), "e2e4", "e7e5", "g1f3")
        assert legal_moves_for_square(pos, parse_square("f3")) == []

    def test_knight_destinations(self):
        pos = play(Position.initial(), "e2e4", "e7e5", "g1f3", "b8c6")
        expected = {parse_square(s) for s in ("d4", "e5", "g5", "h4", "g1")}
        assert legal_destinations(pos, parse_square("f3")) == expected

        board = chess.Board(pos.fen())
        reference = {m.to_square for m in board.legal_moves if m.from_square == chess.F3}
        assert legal_destinations(pos, parse_square("f3")) == reference

    @pytest.mark.parametrize("fen,depth,expected", [
        (STARTING_FEN, 1, 20),
        (STARTING_FEN, 2, 400),
        (STARTING_FEN, 3, 8902),
        (KIWIPETE, 1, 48),
        (KIWIPETE, 2, 2039),
        ("8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1", 3, 2812),
        ("r3k2r/Pppp1ppp/1b3nbN/nP6/BBP1P3/q4N2/Pp1P2PP/R2Q1RK1 w kq - 0 1", 2, 264),
        ("rnbq1k1r/pp1Pbppp/2p5/8/2B5/8/PPP1NnPP/RNBQK2R w KQ - 1 8", 2, 1486),
    ])
    def test_perft(self, fen, depth, expected):
        assert perft(Position.from_fen(fen), depth) == expected
        assert reference_perft(chess.Board(fen), depth) == expected


# ════════════════════════════════════════════════════════════════════════════
#  EVALUATOR TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestEvaluator:
    def setup_method(self):
        self.ev = Evaluator(EvalConfig())

    def test_starting_position_is_balanced(self):
        breakdown = self.ev.evaluate(Position.initial())
        assert breakdown.total == 0

    def test_breakdown_sums_to_total(self):
        for fen in (STARTING_FEN, KIWIPETE, FOOLS_MATE):
            breakdown = self.ev.evaluate(Position.from_fen(fen))
            assert sum(breakdown.contributions.values()) == breakdown.total
            assert list(breakdown.contributions) == list(MODULE_NAMES)

    def test_score_matches_breakdown(self):
        pos = Position.from_fen(KIWIPETE)
        assert self.ev.score(pos) == self.ev.evaluate(pos).total

    def test_disabled_module_is_absent(self):
        enabled = dict.fromkeys(MODULE_NAMES, True)
        enabled["mobility"] = False
        breakdown = self.ev.evaluate(Position.from_fen(KIWIPETE), enabled)
        assert "mobility" not in breakdown
        assert sum(breakdown.contributions.values()) == breakdown.total

    def test_disabling_shifts_total_by_contribution(self):
        pos = Position.from_fen(KIWIPETE)
        full = self.ev.evaluate(pos)
        enabled = dict.fromkeys(MODULE_NAMES, True)
        enabled["centre"] = False
        assert self.ev.evaluate(pos, enabled).total == full.total - full["centre"]

    def test_unknown_module_rejected(self):
        with pytest.raises(InvalidConfigError):
            self.ev.evaluate(Position.initial(), {"tempo": True})

    def test_side_to_move_perspective(self):
        white = Position.from_fen("4k3/8/8/8/8/8/8/4KQ2 w - - 0 1")
        black = Position.from_fen("4k3/8/8/8/8/8/8/4KQ2 b - - 0 1")
        assert self.ev.evaluate(white)["material"] == 900
        assert self.ev.evaluate(black)["material"] == -900

    def test_checkmated_side(self):
        breakdown = self.ev.evaluate(Position.from_fen(FOOLS_MATE))
        assert breakdown["mate"] == -self.ev.cfg.mate_score

    def test_stalemate_scores_zero(self):
        assert self.ev.evaluate(Position.from_fen(STALEMATE))["mate"] == 0

    def test_check_penalty(self):
        pos = Position.from_fen("4k3/8/8/8/8/8/8/4K2r w - - 0 1")
        assert self.ev.evaluate(pos)["mate"] == -self.ev.cfg.check_penalty

    def test_passed_pawn(self):
        pos = Position.from_fen("4k3/8/8/3P4/8/8/8/4K3 w - - 0 1")
        # advanced three ranks: base + 3^2 * quadratic
        assert self.ev.evaluate(pos)["passed_pawns"] == 20 + 9 * 30

    def test_doubled_isolated_pawns(self):
        pos = Position.from_fen("4k3/8/8/8/8/3P4/3P4/4K3 w - - 0 1")
        assert self.ev.evaluate(pos)["pawn_structure"] == -(30 + 2 * 20)

    def test_repeated_position_penalty(self):
        pos = play(Position.initial(), "g1f3", "g8f6", "f3g1", "f6g8")
        assert self.ev.evaluate(pos)["draw_penalty"] == self.ev.cfg.repeat_penalty
        assert self.ev.evaluate(Position.initial())["draw_penalty"] == 0

    def test_repeated_position_penalty_for_black(self):
        # Black to move at a position already seen twice: same sign, no flip
        pos = play(Position.initial(), "g1f3", "g8f6", "f3g1", "f6g8", "g1f3")
        assert pos.turn == Color.BLACK
        assert pos.repetition_count() >= 2
        assert self.ev.evaluate(pos)["draw_penalty"] == self.ev.cfg.repeat_penalty

    def test_lost_castling_rights(self):
        pos = Position.from_fen("r3k2r/pppppppp/8/8/8/8/PPPPPPPP/R3K2R w kq - 0 1")
        assert self.ev.evaluate(pos)["king_safety"] == -40


# ════════════════════════════════════════════════════════════════════════════
#  TRANSPOSITION TABLE TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestTranspositionTable:
    def test_store_and_get(self):
        tt = TranspositionTable()
        pos = Position.initial()
        move = Move(square(1, 4), square(3, 4))
        tt.store(pos, depth=5, value=100, flag=TT_EXACT, best_move=move)
        entry = tt.get(pos)
        assert entry is not None
        assert entry.depth == 5
        assert entry.value == 100
        assert entry.best_move == move

    def test_miss_returns_none(self):
        assert TranspositionTable().get(Position.initial()) is None

    def test_depth_preferred_keeps_deeper(self):
        tt = TranspositionTable()
        pos = Position.initial()
        tt.store(pos, depth=5, value=100, flag=TT_EXACT, best_move=None)
        tt.store(pos, depth=3, value=50, flag=TT_ALPHA, best_move=None)
        assert tt.get(pos).depth == 5

    def test_full_table_drops_new_keys(self):
        tt = TranspositionTable(max_entries=1)
        a = Position.initial()
        b = play(a, "e2e4")
        tt.store(a, depth=1, value=0, flag=TT_EXACT, best_move=None)
        tt.store(b, depth=1, value=0, flag=TT_EXACT, best_move=None)
        assert len(tt) == 1
        assert tt.get(b) is None

    def test_clear(self):
        tt = TranspositionTable()
        tt.store(Position.initial(), depth=1, value=0, flag=TT_EXACT, best_move=None)
        tt.clear()
        assert len(tt) == 0

    def test_zobrist_table_is_reproducible(self):
        assert make_zobrist_table(7) == make_zobrist_table(7)
        assert make_zobrist_table(7) != make_zobrist_table(8)

    def test_position_key_matches_full_hash(self):
        pos = Position.from_fen(KIWIPETE)
        assert ZOBRIST.hash(pos) == pos.key

    def test_side_to_move_changes_key(self):
        a = Position.from_fen("4k3/8/8/8/8/8/8/4K3 w - - 0 1")
        b = Position.from_fen("4k3/8/8/8/8/8/8/4K3 b - - 0 1")
        assert a.key != b.key


# ════════════════════════════════════════════════════════════════════════════
#  SEARCH TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestSearchEngine:
    def setup_method(self):
        self.engine = SearchEngine(Evaluator(EvalConfig()))

    def test_finds_back_rank_mate(self):
        pos = Position.from_fen("6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1")
        result = self.engine.search(pos, EngineConfig(depth=2))
        assert result.move == Move(square(0, 0), square(7, 0))
        assert result.score > self.engine.evaluator.cfg.mate_score // 2

    def test_captures_hanging_queen(self):
        pos = Position.from_fen("4k3/8/8/3q4/8/8/8/3RK3 w - - 0 1")
        result = self.engine.search(pos, EngineConfig(depth=2))
        assert result.move == Move(square(0, 3), square(4, 3))

    def test_checkmate_root_returns_none(self):
        result = self.engine.search(Position.from_fen(FOOLS_MATE), EngineConfig(depth=2))
        assert result.move is None
        assert result.status == GameStatus.CHECKMATE
        assert result.depth == 0

    def test_stalemate_root_returns_none(self):
        result = self.engine.search(Position.from_fen(STALEMATE), EngineConfig(depth=2))
        assert result.move is None
        assert result.status == GameStatus.STALEMATE

    def test_returns_legal_move(self):
        pos = Position.from_fen(KIWIPETE)
        result = self.engine.search(pos, EngineConfig(depth=1))
        assert result.move in legal_moves(pos)

    def test_search_is_deterministic(self):
        pos = Position.initial()
        first = self.engine.search(pos, EngineConfig(depth=2))
        second = self.engine.search(pos, EngineConfig(depth=2))
        assert first == second

    def test_depth_one_evaluates_each_root_move(self):
        result = self.engine.search(Position.initial(), EngineConfig(depth=1))
        assert result.evals == 20
        assert result.depth == 1

    def test_auto_deepen_reaches_threshold_or_ceiling(self):
        pos = Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
        config = EngineConfig(depth=1, auto_deepen=True, min_evals=60)
        result = self.engine.search(pos, config)
        assert result.depth > 1
        assert result.evals >= 60 or result.depth == self.engine.cfg.auto_deepen_ceiling

    def test_auto_deepen_depth_grows_with_threshold(self):
        pos = Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
        low = self.engine.search(pos, EngineConfig(depth=1, auto_deepen=True, min_evals=30))
        high = self.engine.search(pos, EngineConfig(depth=1, auto_deepen=True, min_evals=200))
        assert high.depth >= low.depth

    def test_auto_deepen_off_keeps_depth(self):
        pos = Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 0 1")
        result = self.engine.search(pos, EngineConfig(depth=1, min_evals=10_000))
        assert result.depth == 1

    def test_hint_uses_given_depth(self):
        pos = Position.initial()
        config = EngineConfig(depth=3, auto_deepen=True)
        assert self.engine.hint(pos, config, 1).depth == 1

    def test_all_modules_disabled_picks_first_ordered_move(self):
        config = EngineConfig(depth=1)
        for name in MODULE_NAMES:
            config.set_module(name, False)
        result = self.engine.search(Position.initial(), config)
        assert result.score == 0
        # every move scores 0, so the first move in priority order wins
        assert result.move == order_moves(legal_moves(Position.initial()))[0]


# ════════════════════════════════════════════════════════════════════════════
#  MOVE ORDERING TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestMoveOrdering:
    def test_promotion_before_capture(self):
        promo = Move(52, 60, PieceType.QUEEN, piece=PieceType.PAWN)
        capture = Move(0, 8, piece=PieceType.ROOK, captured=PieceType.QUEEN)
        assert move_priority(promo) > move_priority(capture)

    def test_mvv_lva(self):
        pxq = Move(27, 36, piece=PieceType.PAWN, captured=PieceType.QUEEN)
        qxp = Move(3, 11, piece=PieceType.QUEEN, captured=PieceType.PAWN)
        assert move_priority(pxq) > move_priority(qxp)

    def test_quiet_moves_keep_generation_order(self):
        moves = legal_moves(Position.initial())
        assert order_moves(moves) == moves

    def test_tt_move_goes_first(self):
        moves = legal_moves(Position.initial())
        assert order_moves(moves, moves[-1])[0] == moves[-1]


# ════════════════════════════════════════════════════════════════════════════
#  CONFIGURATION TESTS
# ════════════════════════════════════════════════════════════════════════════

class TestEngineConfig:
    def test_defaults(self):
        config = EngineConfig()
        assert config.depth == 3
        assert config.auto_deepen is False
        assert all(config.modules.values())
        assert config.enabled_modules() == MODULE_NAMES

    def test_search_defaults(self):
        search = Config().search
        assert search.depth == 3
        assert search.auto_deepen_ceiling == 6
        assert search.min_evals == 20000

    @pytest.mark.parametrize("depth", [0, 9, -1, True, "3", 2.0])
    def test_bad_depth_rejected(self, depth):
        config = EngineConfig()
        with pytest.raises(InvalidConfigError):
            config.set_depth(depth)
        assert config.depth == 3

    def test_depth_bounds_accepted(self):
        config = EngineConfig()
        config.set_depth(1)
        assert config.depth == 1
        config.set_depth(8)
        assert config.depth == 8

    def test_unknown_module_rejected(self):
        config = EngineConfig()
        with pytest.raises(InvalidConfigError):
            config.set_module("tempo", False)
        assert "tempo" not in config.modules

    def test_module_toggle(self):
        config = EngineConfig()
        config.set_module("mobility", False)
        assert "mobility" not in config.enabled_modules()

    def test_bad_threshold_rejected(self):
        config = EngineConfig()
        with pytest.raises(InvalidConfigError):
            config.set_auto_deepen(True, 0)
        assert config.auto_deepen is False
        assert config.min_evals == 20000

    def test_copy_is_independent(self):
        config = EngineConfig()
        clone = config.copy()
        clone.set_module("centre", False)
        assert config.modules["centre"] is True

    def test_load_from_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('log_level = "DEBUG"\n[search]\ndepth = 2\n[eval]\nrepeat_penalty = 5\n')
        cfg = Config.load_from_toml(str(path))
        assert cfg.search.depth == 2
        assert cfg.eval.repeat_penalty == 5
        assert cfg.log_level == "DEBUG"
        assert EngineConfig.from_defaults(cfg).depth == 2

    def test_missing_toml_gives_defaults(self, tmp_path):
        cfg = Config.load_from_toml(str(tmp_path / "absent.toml"))
        assert cfg.search.depth == 3


class TestFormatScore:
    def test_centipawns(self):
        assert format_score(50, 100000) == "cp 50"

    def test_mate(self):
        assert format_score(100000 - 3, 100000) == "mate 2"
        assert format_score(-(100000 - 2), 100000) == "mate -1"
