"""Legal move generation.

Pseudo-legal moves are generated per piece kind, then every move that would
leave the mover's own king attacked is filtered out by simulating it on a
scratch copy of the board. Generation order is deterministic: origin squares
a1..h8, then the piece's direction order, then promotion kinds Q, R, B, N.
"""

from typing import Iterator, List, Optional, Set

from modchess.core.board import (
    BISHOP_RAYS,
    KING_TARGETS,
    KNIGHT_TARGETS,
    PAWN_ATTACKS,
    PROMOTION_KINDS,
    QUEEN_RAYS,
    ROOK_RAYS,
    Color,
    Move,
    PieceType,
    Position,
    en_passant_victim,
    is_attacked,
)

_SLIDER_RAYS = {
    PieceType.BISHOP: BISHOP_RAYS,
    PieceType.ROOK: ROOK_RAYS,
    PieceType.QUEEN: QUEEN_RAYS,
}


def pseudo_legal_moves(position: Position, color: Optional[int] = None) -> Iterator[Move]:
    """Yield moves that follow piece movement rules, ignoring king safety.

    ``color`` defaults to the side to move. Castling and en passant are only
    produced for the side to move, since both depend on whose turn it is.
    """
    if color is None:
        color = position.turn
    squares = position.squares
    to_move = color == position.turn

    for sq, piece in enumerate(squares):
        if piece is None or piece.color != color:
            continue
        kind = piece.kind
        if kind == PieceType.PAWN:
            yield from _pawn_moves(position, sq, color, to_move)
        elif kind == PieceType.KNIGHT or kind == PieceType.KING:
            targets = KNIGHT_TARGETS[sq] if kind == PieceType.KNIGHT else KING_TARGETS[sq]
            for t in targets:
                occupant = squares[t]
                if occupant is None:
                    yield Move(sq, t, piece=kind)
                elif occupant.color != color:
                    yield Move(sq, t, piece=kind, captured=occupant.kind)
            if kind == PieceType.KING and to_move:
                yield from _castling_moves(position, sq, color)
        else:
            for ray in _SLIDER_RAYS[kind][sq]:
                for t in ray:
                    occupant = squares[t]
                    if occupant is None:
                        yield Move(sq, t, piece=kind)
                        continue
                    if occupant.color != color:
                        yield Move(sq, t, piece=kind, captured=occupant.kind)
                    break


def _pawn_moves(position: Position, sq: int, color: int, to_move: bool) -> Iterator[Move]:
    squares = position.squares
    step = 8 if color == Color.WHITE else -8
    start_row = 1 if color == Color.WHITE else 6
    promo_row = 7 if color == Color.WHITE else 0

    forward = sq + step
    if 0 <= forward < 64 and squares[forward] is None:
        if forward >> 3 == promo_row:
            for kind in PROMOTION_KINDS:
                yield Move(sq, forward, kind, piece=PieceType.PAWN)
        else:
            yield Move(sq, forward, piece=PieceType.PAWN)
            double = forward + step
            if sq >> 3 == start_row and squares[double] is None:
                yield Move(sq, double, piece=PieceType.PAWN, double_push=True)

    for t in PAWN_ATTACKS[color][sq]:
        occupant = squares[t]
        if occupant is not None and occupant.color != color:
            if t >> 3 == promo_row:
                for kind in PROMOTION_KINDS:
                    yield Move(sq, t, kind, piece=PieceType.PAWN, captured=occupant.kind)
            else:
                yield Move(sq, t, piece=PieceType.PAWN, captured=occupant.kind)
        elif (occupant is None and to_move and t == position.ep_square
              and en_passant_victim(squares, t, color) is not None):
            yield Move(sq, t, piece=PieceType.PAWN, captured=PieceType.PAWN, en_passant=True)


def _castling_moves(position: Position, sq: int, color: int) -> Iterator[Move]:
    home = 4 if color == Color.WHITE else 60
    if sq != home:
        return
    squares = position.squares
    enemy = 1 - color
    rights = position.castling
    if not (rights.kingside(color) or rights.queenside(color)):
        return
    if is_attacked(squares, sq, enemy):
        return

    rook_ok = _own_rook(squares, home + 3, color)
    if (rights.kingside(color) and rook_ok
            and squares[home + 1] is None and squares[home + 2] is None
            and not is_attacked(squares, home + 1, enemy)
            and not is_attacked(squares, home + 2, enemy)):
        yield Move(sq, home + 2, piece=PieceType.KING, castle=True)

    rook_ok = _own_rook(squares, home - 4, color)
    if (rights.queenside(color) and rook_ok
            and squares[home - 1] is None and squares[home - 2] is None
            and squares[home - 3] is None
            and not is_attacked(squares, home - 1, enemy)
            and not is_attacked(squares, home - 2, enemy)):
        yield Move(sq, home - 2, piece=PieceType.KING, castle=True)


def _own_rook(squares, sq: int, color: int) -> bool:
    p = squares[sq]
    return p is not None and p.kind == PieceType.ROOK and p.color == color


def leaves_king_safe(position: Position, move: Move) -> bool:
    """Simulate ``move`` on a scratch board and test the mover's king."""
    board = list(position.squares)
    piece = board[move.from_square]
    color = piece.color
    board[move.from_square] = None
    board[move.to_square] = piece
    if move.en_passant:
        board[move.to_square - 8 if color == Color.WHITE else move.to_square + 8] = None
    king_sq = move.to_square if piece.kind == PieceType.KING else position.kings[color]
    return not is_attacked(board, king_sq, 1 - color)


def legal_moves(position: Position) -> List[Move]:
    """Every legal move for the side to move, in generation order."""
    return [m for m in pseudo_legal_moves(position) if leaves_king_safe(position, m)]


def has_legal_move(position: Position) -> bool:
    return any(leaves_king_safe(position, m) for m in pseudo_legal_moves(position))


def legal_moves_for_square(position: Position, sq: int) -> List[Move]:
    """The legal moves originating at ``sq``; empty for squares not holding a
    piece of the side to move."""
    piece = position.squares[sq]
    if piece is None or piece.color != position.turn:
        return []
    return [m for m in legal_moves(position) if m.from_square == sq]


def legal_destinations(position: Position, sq: int) -> Set[int]:
    return {m.to_square for m in legal_moves_for_square(position, sq)}


def perft(position: Position, depth: int) -> int:
    """Count leaf nodes of the legal move tree; used to validate generation."""
    if depth == 0:
        return 1
    moves = legal_moves(position)
    if depth == 1:
        return len(moves)
    return sum(perft(position.apply(m), depth - 1) for m in moves)
