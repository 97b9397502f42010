"""Position representation and the rules of chess.

Coordinates: square index = row * 8 + col, row 0 = rank 1, col 0 = file a.
A Position is immutable; apply() returns the successor.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import List, Optional, Tuple

from modchess.core.transposition import ZOBRIST
from modchess.errors import (
    IllegalMoveError,
    InvalidFenError,
    InvalidSquareError,
    InvariantViolation,
)

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
FILE_NAMES = "abcdefgh"


class Color(IntEnum):
    WHITE = 0
    BLACK = 1

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self == Color.WHITE else Color.WHITE

    @property
    def label(self) -> str:
        return self.name.capitalize()


class PieceType(IntEnum):
    PAWN = 1
    KNIGHT = 2
    BISHOP = 3
    ROOK = 4
    QUEEN = 5
    KING = 6

    @property
    def symbol(self) -> str:
        return "pnbrqk"[self - 1]

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value) -> "PieceType":
        """Accept a PieceType, a name ("queen", "Queen") or a symbol ("q")."""
        if isinstance(value, PieceType):
            return value
        if isinstance(value, str):
            text = value.strip()
            if len(text) == 1 and text.lower() in "pnbrqk":
                return cls("pnbrqk".index(text.lower()) + 1)
            try:
                return cls[text.upper()]
            except KeyError:
                pass
        raise ValueError(f"Unknown piece type: {value!r}")


PROMOTION_KINDS = (PieceType.QUEEN, PieceType.ROOK, PieceType.BISHOP, PieceType.KNIGHT)


@dataclass(frozen=True)
class Piece:
    kind: PieceType
    color: Color

    def symbol(self) -> str:
        s = self.kind.symbol
        return s.upper() if self.color == Color.WHITE else s


# shared instances, indexed [color][kind]
PIECES = [[None] + [Piece(PieceType(k), Color(c)) for k in range(1, 7)] for c in range(2)]


class GameStatus(Enum):
    ONGOING = "ongoing"
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    FIFTY_MOVE_RULE = "fifty_move_rule"
    INSUFFICIENT_MATERIAL = "insufficient_material"
    THREEFOLD_REPETITION = "threefold_repetition"

    @property
    def is_over(self) -> bool:
        return self is not GameStatus.ONGOING

    @property
    def is_draw(self) -> bool:
        return self.is_over and self is not GameStatus.CHECKMATE


# ---------------------------------------------------------------------------
# Squares
# ---------------------------------------------------------------------------

def square(row: int, col: int) -> int:
    """Square index for (row, col); raises InvalidSquareError when off the board."""
    if not (isinstance(row, int) and isinstance(col, int)) or not (0 <= row < 8 and 0 <= col < 8):
        raise InvalidSquareError(f"Square out of range: ({row}, {col})")
    return row * 8 + col


def square_row(sq: int) -> int:
    return sq >> 3


def square_name(sq: int) -> str:
    return f"{FILE_NAMES[sq & 7]}{(sq >> 3) + 1}"


def parse_square(name: str) -> int:
    if len(name) != 2 or name[0] not in FILE_NAMES or name[1] not in "12345678":
        raise InvalidSquareError(f"Bad square name: {name!r}")
    return square(int(name[1]) - 1, FILE_NAMES.index(name[0]))


# ---------------------------------------------------------------------------
# Pre-computed attack tables
# ---------------------------------------------------------------------------

KNIGHT_OFFSETS = ((-2, -1), (-2, 1), (-1, -2), (-1, 2), (1, -2), (1, 2), (2, -1), (2, 1))
KING_OFFSETS = ((-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1))
ROOK_DIRECTIONS = ((0, 1), (0, -1), (1, 0), (-1, 0))
BISHOP_DIRECTIONS = ((1, 1), (1, -1), (-1, 1), (-1, -1))


def _step_targets(offsets) -> List[Tuple[int, ...]]:
    table = []
    for sq in range(64):
        r, c = sq >> 3, sq & 7
        table.append(tuple((r + dr) * 8 + c + dc for dr, dc in offsets
                           if 0 <= r + dr < 8 and 0 <= c + dc < 8))
    return table


def _rays(directions) -> List[Tuple[Tuple[int, ...], ...]]:
    table = []
    for sq in range(64):
        r, c = sq >> 3, sq & 7
        rays = []
        for dr, dc in directions:
            ray = []
            rr, cc = r + dr, c + dc
            while 0 <= rr < 8 and 0 <= cc < 8:
                ray.append(rr * 8 + cc)
                rr += dr
                cc += dc
            if ray:
                rays.append(tuple(ray))
        table.append(tuple(rays))
    return table


KNIGHT_TARGETS = _step_targets(KNIGHT_OFFSETS)
KING_TARGETS = _step_targets(KING_OFFSETS)
ROOK_RAYS = _rays(ROOK_DIRECTIONS)
BISHOP_RAYS = _rays(BISHOP_DIRECTIONS)
QUEEN_RAYS = [ROOK_RAYS[sq] + BISHOP_RAYS[sq] for sq in range(64)]
# squares a pawn of the given color standing on sq attacks
PAWN_ATTACKS = [_step_targets(((1, -1), (1, 1))), _step_targets(((-1, -1), (-1, 1)))]


def is_attacked(squares, sq: int, by: int) -> bool:
    """True if any piece of color ``by`` attacks ``sq`` on the given board."""
    for t in KNIGHT_TARGETS[sq]:
        p = squares[t]
        if p is not None and p.color == by and p.kind == PieceType.KNIGHT:
            return True
    for t in KING_TARGETS[sq]:
        p = squares[t]
        if p is not None and p.color == by and p.kind == PieceType.KING:
            return True
    # a pawn of `by` attacks sq from where an opposite-colored pawn on sq would attack
    for t in PAWN_ATTACKS[1 - by][sq]:
        p = squares[t]
        if p is not None and p.color == by and p.kind == PieceType.PAWN:
            return True
    for ray in ROOK_RAYS[sq]:
        for t in ray:
            p = squares[t]
            if p is not None:
                if p.color == by and (p.kind == PieceType.ROOK or p.kind == PieceType.QUEEN):
                    return True
                break
    for ray in BISHOP_RAYS[sq]:
        for t in ray:
            p = squares[t]
            if p is not None:
                if p.color == by and (p.kind == PieceType.BISHOP or p.kind == PieceType.QUEEN):
                    return True
                break
    return False


def en_passant_victim(squares, ep_square: Optional[int], color: int) -> Optional[int]:
    """Square of the enemy pawn an en-passant capture by ``color`` onto
    ``ep_square`` would remove, or None when no such pawn stands there."""
    if ep_square is None:
        return None
    victim = ep_square - 8 if color == Color.WHITE else ep_square + 8
    if not 0 <= victim < 64:
        return None
    p = squares[victim]
    if p is None or p.kind != PieceType.PAWN or p.color == color:
        return None
    return victim


# ---------------------------------------------------------------------------
# Moves and castling rights
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Move:
    """A move as produced by the move generator.

    Equality covers origin, destination and promotion only; the remaining
    fields are context flags filled in by the generator.
    """

    from_square: int
    to_square: int
    promotion: Optional[PieceType] = None
    piece: Optional[PieceType] = field(default=None, compare=False)
    captured: Optional[PieceType] = field(default=None, compare=False)
    en_passant: bool = field(default=False, compare=False)
    castle: bool = field(default=False, compare=False)
    double_push: bool = field(default=False, compare=False)

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    @property
    def from_coords(self) -> Tuple[int, int]:
        return self.from_square >> 3, self.from_square & 7

    @property
    def to_coords(self) -> Tuple[int, int]:
        return self.to_square >> 3, self.to_square & 7

    def uci(self) -> str:
        promo = self.promotion.symbol if self.promotion else ""
        return f"{square_name(self.from_square)}{square_name(self.to_square)}{promo}"

    def __str__(self) -> str:
        return self.uci()


@dataclass(frozen=True)
class CastlingRights:
    white_kingside: bool = False
    white_queenside: bool = False
    black_kingside: bool = False
    black_queenside: bool = False

    @property
    def index(self) -> int:
        return (self.white_kingside | self.white_queenside << 1
                | self.black_kingside << 2 | self.black_queenside << 3)

    def kingside(self, color: int) -> bool:
        return self.white_kingside if color == Color.WHITE else self.black_kingside

    def queenside(self, color: int) -> bool:
        return self.white_queenside if color == Color.WHITE else self.black_queenside

    def fen(self) -> str:
        text = "".join(ch for ch, on in zip("KQkq", (
            self.white_kingside, self.white_queenside,
            self.black_kingside, self.black_queenside)) if on)
        return text or "-"


NO_CASTLING = CastlingRights()
ALL_CASTLING = CastlingRights(True, True, True, True)

# rights lost when anything moves from or to these corners
_CORNER_RIGHTS = {0: "white_queenside", 7: "white_kingside",
                  56: "black_queenside", 63: "black_kingside"}
_KING_RIGHTS = (("white_kingside", "white_queenside"), ("black_kingside", "black_queenside"))


# ---------------------------------------------------------------------------
# Position
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Position:
    squares: Tuple[Optional[Piece], ...]
    turn: Color = Color.WHITE
    castling: CastlingRights = NO_CASTLING
    ep_square: Optional[int] = None
    halfmove_clock: int = 0
    fullmove_number: int = 1
    # zobrist keys of the positions that preceded this one in the game
    history: Tuple[int, ...] = field(default=(), compare=False, repr=False)
    key: int = field(init=False, compare=False, repr=False)
    kings: Tuple[int, int] = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        if len(self.squares) != 64:
            raise InvariantViolation(f"Board must have 64 squares, got {len(self.squares)}")
        kings = ([], [])
        for sq, p in enumerate(self.squares):
            if p is not None and p.kind == PieceType.KING:
                kings[p.color].append(sq)
        for color in (Color.WHITE, Color.BLACK):
            if len(kings[color]) != 1:
                raise InvariantViolation(
                    f"{color.label} must have exactly one king, found {len(kings[color])}")
        object.__setattr__(self, "kings", (kings[0][0], kings[1][0]))
        object.__setattr__(self, "key", ZOBRIST.hash_parts(
            self.squares, self.turn == Color.WHITE, self.castling.index, self.ep_square))

    # -- construction ------------------------------------------------------

    @classmethod
    def initial(cls) -> "Position":
        return cls.from_fen(STARTING_FEN)

    @classmethod
    def from_fen(cls, fen: str) -> "Position":
        """Parse a FEN string. Four-field FENs get default clocks."""
        parts = fen.split()
        if len(parts) == 4:
            parts += ["0", "1"]
        if len(parts) != 6:
            raise InvalidFenError(f"FEN must have 6 fields: {fen!r}")
        placement, side, rights, ep, half, full = parts

        ranks = placement.split("/")
        if len(ranks) != 8:
            raise InvalidFenError(f"FEN placement must have 8 ranks: {placement!r}")
        board: List[Optional[Piece]] = [None] * 64
        for i, rank in enumerate(ranks):
            row = 7 - i
            col = 0
            for ch in rank:
                if ch.isdigit():
                    col += int(ch)
                elif ch.lower() in "pnbrqk":
                    if col > 7:
                        raise InvalidFenError(f"Rank {8 - i} has too many files: {rank!r}")
                    color = Color.WHITE if ch.isupper() else Color.BLACK
                    kind = PieceType("pnbrqk".index(ch.lower()) + 1)
                    if kind == PieceType.PAWN and row in (0, 7):
                        raise InvalidFenError(f"Pawn on back rank in {fen!r}")
                    board[row * 8 + col] = PIECES[color][kind]
                    col += 1
                else:
                    raise InvalidFenError(f"Bad character {ch!r} in {fen!r}")
            if col != 8:
                raise InvalidFenError(f"Rank {8 - i} does not have 8 files: {rank!r}")

        if side not in ("w", "b"):
            raise InvalidFenError(f"Bad side to move {side!r}")
        turn = Color.WHITE if side == "w" else Color.BLACK

        if rights != "-" and (not rights or any(ch not in "KQkq" for ch in rights)):
            raise InvalidFenError(f"Bad castling field {rights!r}")
        castling = _clean_castling(board, CastlingRights(
            "K" in rights, "Q" in rights, "k" in rights, "q" in rights))

        ep_square = None
        if ep != "-":
            try:
                ep_square = parse_square(ep)
            except InvalidSquareError as e:
                raise InvalidFenError(f"Bad en-passant square {ep!r}") from e
            if square_row(ep_square) != (5 if turn == Color.WHITE else 2):
                raise InvalidFenError(f"En-passant square {ep!r} on the wrong rank")
            origin = ep_square + 8 if turn == Color.WHITE else ep_square - 8
            if (board[ep_square] is not None or board[origin] is not None
                    or en_passant_victim(board, ep_square, turn) is None):
                raise InvalidFenError(f"En-passant square {ep!r} does not follow a double pawn push")

        if not (half.isdigit() and full.isdigit()) or int(full) < 1:
            raise InvalidFenError(f"Bad move counters {half!r} {full!r}")

        try:
            position = cls(tuple(board), turn, castling, ep_square, int(half), int(full))
        except InvariantViolation as e:
            raise InvalidFenError(str(e)) from e
        if is_attacked(position.squares, position.kings[turn.opponent], turn):
            raise InvalidFenError("Side not to move is in check")
        return position

    def fen(self) -> str:
        rows = []
        for row in range(7, -1, -1):
            text, empty = "", 0
            for col in range(8):
                p = self.squares[row * 8 + col]
                if p is None:
                    empty += 1
                    continue
                if empty:
                    text += str(empty)
                    empty = 0
                text += p.symbol()
            if empty:
                text += str(empty)
            rows.append(text)
        ep = square_name(self.ep_square) if self.ep_square is not None else "-"
        side = "w" if self.turn == Color.WHITE else "b"
        return (f"{'/'.join(rows)} {side} {self.castling.fen()} {ep} "
                f"{self.halfmove_clock} {self.fullmove_number}")

    # -- queries -----------------------------------------------------------

    def piece_at(self, row: int, col: int) -> Optional[Piece]:
        return self.squares[square(row, col)]

    def pieces(self, kind: PieceType, color: Color) -> List[int]:
        return [sq for sq, p in enumerate(self.squares)
                if p is not None and p.kind == kind and p.color == color]

    def king_square(self, color: Color) -> int:
        return self.kings[color]

    def is_square_attacked(self, sq: int, by: Color) -> bool:
        return is_attacked(self.squares, sq, by)

    def is_check(self) -> bool:
        return is_attacked(self.squares, self.kings[self.turn], 1 - self.turn)

    def repetition_count(self) -> int:
        """How many times this position has occurred, counting itself."""
        return self.history.count(self.key) + 1

    def is_insufficient_material(self) -> bool:
        """Bare kings, or a lone minor piece against a bare king."""
        others = [p for p in self.squares if p is not None and p.kind != PieceType.KING]
        if not others:
            return True
        return len(others) == 1 and others[0].kind in (PieceType.KNIGHT, PieceType.BISHOP)

    def is_terminal(self) -> GameStatus:
        from modchess.core.movegen import has_legal_move

        if not has_legal_move(self):
            return GameStatus.CHECKMATE if self.is_check() else GameStatus.STALEMATE
        if self.halfmove_clock >= 100:
            return GameStatus.FIFTY_MOVE_RULE
        if self.repetition_count() >= 3:
            return GameStatus.THREEFOLD_REPETITION
        if self.is_insufficient_material():
            return GameStatus.INSUFFICIENT_MATERIAL
        return GameStatus.ONGOING

    # -- successor ---------------------------------------------------------

    def apply(self, move: Move) -> "Position":
        """Return the position after ``move``.

        Legality against the full rule set is the caller's contract (moves
        come from the generator); this only rejects moves that cannot belong
        to the side to move.
        """
        fr, to = move.from_square, move.to_square
        if not (0 <= fr < 64 and 0 <= to < 64) or fr == to:
            raise IllegalMoveError(f"Illegal move: {fr} -> {to}")
        piece = self.squares[fr]
        if piece is None or piece.color != self.turn:
            raise IllegalMoveError(
                f"Illegal move: {move.uci()} (no {self.turn.label.lower()} piece on {square_name(fr)})")
        target = self.squares[to]
        if target is not None:
            if target.color == piece.color:
                raise IllegalMoveError(f"Illegal move: {move.uci()} (own piece on target)")
            if target.kind == PieceType.KING:
                raise InvariantViolation(f"{move.uci()} would capture the {target.color.label} king")

        board = list(self.squares)
        board[fr] = None
        placed = piece
        captured = target is not None
        ep_square = None
        to_row = to >> 3

        if piece.kind == PieceType.PAWN:
            if target is None and (fr & 7) != (to & 7):
                victim = en_passant_victim(self.squares, self.ep_square, piece.color)
                if to != self.ep_square or victim is None:
                    raise IllegalMoveError(f"Illegal move: {move.uci()} (nothing to capture)")
                board[victim] = None
                captured = True
            elif abs(to - fr) == 16:
                ep_square = (fr + to) // 2
            if to_row in (0, 7):
                if move.promotion is not None and move.promotion not in PROMOTION_KINDS:
                    raise IllegalMoveError(f"Illegal move: cannot promote to {move.promotion.label}")
                placed = PIECES[piece.color][move.promotion or PieceType.QUEEN]
            elif move.promotion is not None:
                raise IllegalMoveError(f"Illegal move: {move.uci()} (not a promotion)")
        elif move.promotion is not None:
            raise IllegalMoveError(f"Illegal move: {move.uci()} (not a promotion)")

        if piece.kind == PieceType.KING and abs((to & 7) - (fr & 7)) == 2:
            if to > fr:
                board[fr + 1], board[fr + 3] = board[fr + 3], None
            else:
                board[fr - 1], board[fr - 4] = board[fr - 4], None
        board[to] = placed

        lost = {}
        if piece.kind == PieceType.KING:
            lost.update(dict.fromkeys(_KING_RIGHTS[piece.color], False))
        for sq in (fr, to):
            if sq in _CORNER_RIGHTS:
                lost[_CORNER_RIGHTS[sq]] = False
        castling = replace(self.castling, **lost) if lost else self.castling

        halfmove = 0 if (piece.kind == PieceType.PAWN or captured) else self.halfmove_clock + 1
        fullmove = self.fullmove_number + (1 if self.turn == Color.BLACK else 0)
        return Position(tuple(board), self.turn.opponent, castling, ep_square,
                        halfmove, fullmove, self.history + (self.key,))

    # -- display -----------------------------------------------------------

    def rows(self) -> List[List[Optional[Piece]]]:
        """Board as 8 lists of 8 cells, row 0 = rank 1."""
        return [list(self.squares[r * 8:r * 8 + 8]) for r in range(8)]

    def __str__(self) -> str:
        lines = []
        for row in range(7, -1, -1):
            cells = [p.symbol() if p else "." for p in self.squares[row * 8:row * 8 + 8]]
            lines.append(" ".join(cells))
        return "\n".join(lines)


def _clean_castling(board, rights: CastlingRights) -> CastlingRights:
    """Drop rights whose king or rook is not on its home square."""
    def has(sq, kind, color):
        p = board[sq]
        return p is not None and p.kind == kind and p.color == color

    w_king = has(4, PieceType.KING, Color.WHITE)
    b_king = has(60, PieceType.KING, Color.BLACK)
    return CastlingRights(
        rights.white_kingside and w_king and has(7, PieceType.ROOK, Color.WHITE),
        rights.white_queenside and w_king and has(0, PieceType.ROOK, Color.WHITE),
        rights.black_kingside and b_king and has(63, PieceType.ROOK, Color.BLACK),
        rights.black_queenside and b_king and has(56, PieceType.ROOK, Color.BLACK),
    )
