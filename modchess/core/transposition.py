"""Zobrist hashing and a per-search transposition table.

- Zobrist: builds fixed-seed zobrist keys and computes a 64-bit key for any
  Position from scratch. The seed is constant so keys are identical across
  runs and processes, which keeps repetition detection and search ordering
  reproducible.

- TranspositionTable: a bounded dict keyed by zobrist keys. Each entry stores
  the full key for collision detection, the search depth, stored value and
  flag, plus the best move. The search creates one table per call and drops it
  when the call returns.

Usage (example):

    from modchess.core.transposition import TranspositionTable

    tt = TranspositionTable()
    tt.store(position, depth=3, value=123, flag=TT_EXACT, best_move=move)
    entry = tt.get(position)
    if entry is not None:
        print(entry.depth, entry.value, entry.flag, entry.best_move)

"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from modchess.core.board import Move, Position

ZOBRIST_SEED = 0x5EED_C4E55

TT_EXACT = 0
TT_ALPHA = 1
TT_BETA = 2


def make_zobrist_table(seed: int = ZOBRIST_SEED) -> Dict[str, object]:
    """Create a zobrist table from a deterministic generator.

    Structure returned:
      {
        "piece": [[64 ints] for each of the 12 (color, kind) pairs],
        "side": int,
        "castling": [16 ints],
        "ep": [8 ints]
      }
    The piece table is indexed by ``color * 6 + (kind - 1)``.
    """
    rng = random.Random(seed)

    def rand64() -> int:
        return rng.getrandbits(64)

    piece_table = [[rand64() for _ in range(64)] for _ in range(12)]
    side_key = rand64()
    castling_table = [rand64() for _ in range(16)]
    ep_table = [rand64() for _ in range(8)]
    return {"piece": piece_table, "side": side_key, "castling": castling_table, "ep": ep_table}


@dataclass
class TTEntry:
    key: int
    depth: int
    value: int
    flag: int
    best_move: Optional["Move"]


class Zobrist:
    """Zobrist hash utilities over Position objects."""

    def __init__(self, seed: int = ZOBRIST_SEED):
        self.table = make_zobrist_table(seed)
        self.piece_keys: List[List[int]] = self.table["piece"]

    def hash_parts(self, squares, white_to_move: bool, castling_index: int,
                   ep_square: Optional[int]) -> int:
        t = self.table
        h = 0
        for sq, p in enumerate(squares):
            if p is not None:
                h ^= self.piece_keys[p.color * 6 + p.kind - 1][sq]
        # side: xor when black to move (convention)
        if not white_to_move:
            h ^= t["side"]
        h ^= t["castling"][castling_index]
        if ep_square is not None:
            h ^= t["ep"][ep_square % 8]
        return h

    def hash(self, position: "Position") -> int:
        return self.hash_parts(
            position.squares,
            position.turn == 0,
            position.castling.index,
            position.ep_square,
        )


# shared read-only key table
ZOBRIST = Zobrist()


class TranspositionTable:
    """Bounded transposition table keyed by zobrist hash.

    Replacement is depth-preferred: an entry is only overwritten by a search
    of equal or greater depth. When the table is full, new keys are dropped.
    Methods:
      - get(position) -> Optional[TTEntry]
      - store(position, depth, value, flag, best_move)
      - clear()
    """

    def __init__(self, max_entries: int = 200_000):
        self.max_entries = max_entries
        self._table: Dict[int, TTEntry] = {}

    def __len__(self) -> int:
        return len(self._table)

    def get(self, position: "Position") -> Optional[TTEntry]:
        return self._table.get(position.key)

    def store(self, position: "Position", depth: int, value: int, flag: int,
              best_move: Optional["Move"]):
        k = position.key
        existing = self._table.get(k)
        if existing is not None and existing.depth > depth:
            return
        if existing is None and len(self._table) >= self.max_entries:
            return
        self._table[k] = TTEntry(k, depth, value, flag, best_move)

    def clear(self):
        self._table.clear()
