"""
Nine Men's Morris - Board Model
Board topology, piece counts, phases and move types shared by both game models.

Cells are numbered row by row:

    0-----------1-----------2
    |           |           |
    |     3-----4-----5     |
    |     |     |     |     |
    |     |  6--7--8  |     |
    |     |  |     |  |     |
    9----10-11    12-13----14
    |     |  |     |  |     |
    |     | 15-16-17  |     |
    |     |     |     |     |
    |    18----19----20     |
    |           |           |
   21----------22----------23
"""

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np


NUM_CELLS = 24
PIECES_PER_PLAYER = 9

EMPTY = 0
HUMAN = 1
AI = 2
PLAYERS = (HUMAN, AI)


class InvalidPositionError(ValueError):
    """Raised when a board, line set or piece count cannot be searched."""


def opponent_of(player: int) -> int:
    return HUMAN if player == AI else AI


# ============================================================================
# BOARD TOPOLOGY AND CONSTANTS
# ============================================================================

# All 16 possible mills
MILLS: Tuple[Tuple[int, int, int], ...] = (
    # Outer square sides
    (0, 1, 2), (0, 9, 21), (2, 14, 23), (21, 22, 23),
    # Middle square sides
    (3, 4, 5), (3, 10, 18), (5, 13, 20), (18, 19, 20),
    # Inner square sides
    (6, 7, 8), (6, 11, 15), (8, 12, 17), (15, 16, 17),
    # Cross connections
    (1, 4, 7), (9, 10, 11), (12, 13, 14), (16, 19, 22),
)

ADJACENCY: Tuple[Tuple[int, ...], ...] = (
    (1, 9),          # 0
    (0, 2, 4),       # 1
    (1, 14),         # 2
    (4, 10),         # 3
    (1, 3, 5, 7),    # 4
    (4, 13),         # 5
    (7, 11),         # 6
    (4, 6, 8),       # 7
    (7, 12),         # 8
    (0, 10, 21),     # 9
    (3, 9, 11, 18),  # 10
    (6, 10, 15),     # 11
    (8, 13, 17),     # 12
    (5, 12, 14, 20), # 13
    (2, 13, 23),     # 14
    (11, 16),        # 15
    (15, 17, 19),    # 16
    (12, 16),        # 17
    (10, 19),        # 18
    (16, 18, 20, 22),# 19
    (13, 19),        # 20
    (9, 22),         # 21
    (19, 21, 23),    # 22
    (14, 22),        # 23
)


@dataclass(frozen=True)
class BoardTopology:
    """
    Immutable description of the playing field.

    Built once from a line set (and, for the classic model, an adjacency map)
    and shared read-only by every component, including worker processes.
    """
    lines: Tuple[Tuple[int, int, int], ...] = MILLS
    adjacency: Tuple[Tuple[int, ...], ...] = ADJACENCY
    line_array: np.ndarray = field(init=False, repr=False, compare=False)
    incidence: np.ndarray = field(init=False, repr=False, compare=False)
    lines_per_cell: Tuple[Tuple[Tuple[int, int, int], ...], ...] = field(
        init=False, repr=False, compare=False)
    line_count: np.ndarray = field(init=False, repr=False, compare=False)
    strategic: Tuple[int, ...] = field(init=False, compare=False)
    strategic_mask: np.ndarray = field(init=False, repr=False, compare=False)
    adjacency_matrix: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        lines = tuple(tuple(int(c) for c in line) for line in self.lines)
        adjacency = tuple(tuple(int(n) for n in nbrs) for nbrs in self.adjacency)
        _check_topology(lines, adjacency)

        line_array = np.array(lines, dtype=np.intp).reshape(-1, 3)
        # incidence[cell, line] is 1 when the cell lies on the line
        incidence = np.zeros((NUM_CELLS, len(lines)), dtype=np.int16)
        for idx, line in enumerate(lines):
            incidence[list(line), idx] = 1
        line_count = incidence.sum(axis=1)

        # Connectivity = lines through the cell + neighbours; strategic cells
        # are the ones above the board minimum (midpoints on the standard board)
        connectivity = line_count + np.array([len(n) for n in adjacency])
        strategic = tuple(int(c) for c in np.flatnonzero(connectivity > connectivity.min()))
        strategic_mask = np.zeros(NUM_CELLS, dtype=bool)
        strategic_mask[list(strategic)] = True

        adjacency_matrix = np.zeros((NUM_CELLS, NUM_CELLS), dtype=np.int16)
        for cell, nbrs in enumerate(adjacency):
            adjacency_matrix[cell, list(nbrs)] = 1

        object.__setattr__(self, 'lines', lines)
        object.__setattr__(self, 'adjacency', adjacency)
        object.__setattr__(self, 'line_array', line_array)
        object.__setattr__(self, 'incidence', incidence)
        object.__setattr__(self, 'lines_per_cell', tuple(
            tuple(line for line in lines if cell in line) for cell in range(NUM_CELLS)
        ))
        object.__setattr__(self, 'line_count', line_count)
        object.__setattr__(self, 'strategic', strategic)
        object.__setattr__(self, 'strategic_mask', strategic_mask)
        object.__setattr__(self, 'adjacency_matrix', adjacency_matrix)

    @classmethod
    def from_inputs(cls, lines: Optional[Iterable[Sequence[int]]] = None,
                    adjacency=None) -> 'BoardTopology':
        """Build a topology from caller-supplied lines/adjacency, defaulting to the standard board."""
        if lines is None and adjacency is None:
            return STANDARD_TOPOLOGY
        try:
            line_tuple = MILLS if lines is None else tuple(tuple(line) for line in lines)
            if adjacency is None:
                adj_tuple = ADJACENCY
            elif isinstance(adjacency, dict):
                adj_tuple = tuple(tuple(adjacency.get(cell, adjacency.get(str(cell), ())))
                                  for cell in range(NUM_CELLS))
            else:
                adj_tuple = tuple(tuple(nbrs) for nbrs in adjacency)
            return cls(lines=line_tuple, adjacency=adj_tuple)
        except InvalidPositionError:
            raise
        except (TypeError, ValueError) as e:
            raise InvalidPositionError(f"Malformed topology: {e}") from e


def _check_topology(lines, adjacency):
    if not lines:
        raise InvalidPositionError("Winning line set is empty")
    for line in lines:
        if len(line) != 3 or len(set(line)) != 3:
            raise InvalidPositionError(f"Line {line} must hold three distinct cells")
        if any(c < 0 or c >= NUM_CELLS for c in line):
            raise InvalidPositionError(f"Line {line} is out of range")
    if len(adjacency) != NUM_CELLS:
        raise InvalidPositionError("Adjacency map must cover all 24 cells")
    for cell, nbrs in enumerate(adjacency):
        for n in nbrs:
            if n < 0 or n >= NUM_CELLS or n == cell:
                raise InvalidPositionError(f"Bad neighbour {n} for cell {cell}")


STANDARD_TOPOLOGY = BoardTopology()


# ============================================================================
# BOARD HELPERS
# ============================================================================

def new_board() -> np.ndarray:
    return np.zeros(NUM_CELLS, dtype=np.int8)


def to_board(cells: Sequence) -> np.ndarray:
    """
    Normalise an external board (list with None/0 for empty, 1/2 for players)
    into an int8 array. Raises InvalidPositionError when malformed.
    """
    if cells is None:
        raise InvalidPositionError("Board is missing")
    try:
        values = [EMPTY if c is None else int(c) for c in cells]
    except (TypeError, ValueError) as e:
        raise InvalidPositionError(f"Board holds a non-integer cell: {e}") from e
    if any(v not in (EMPTY, HUMAN, AI) for v in values):
        raise InvalidPositionError("Board cells must be empty, 1 or 2")
    board = np.array(values, dtype=np.int8)
    validate_board(board)
    return board


def validate_board(board: np.ndarray):
    if board.shape != (NUM_CELLS,):
        raise InvalidPositionError(f"Board must have {NUM_CELLS} cells, got {board.size}")
    if not np.isin(board, (EMPTY, HUMAN, AI)).all():
        raise InvalidPositionError("Board cells must be empty, 1 or 2")


def empty_cells(board: np.ndarray) -> List[int]:
    return np.flatnonzero(board == EMPTY).tolist()


def count_pieces(board: np.ndarray, player: int) -> int:
    return int(np.count_nonzero(board == player))


def check_winner(board: np.ndarray, topology: BoardTopology = STANDARD_TOPOLOGY) -> Optional[int]:
    """Return the owner of the first fully owned line, or None."""
    cells = board[topology.line_array]
    full = (cells[:, 0] != EMPTY) & (cells[:, 0] == cells[:, 1]) & (cells[:, 1] == cells[:, 2])
    hits = np.flatnonzero(full)
    if hits.size == 0:
        return None
    return int(cells[hits[0], 0])


def forms_mill(board: np.ndarray, to: int, player: int,
               topology: BoardTopology = STANDARD_TOPOLOGY,
               source: Optional[int] = None) -> bool:
    """Would `player` own a full line through `to` after moving there (from `source`)?"""
    for line in topology.lines_per_cell[to]:
        if source is not None and source in line:
            continue
        if all(board[c] == player for c in line if c != to):
            return True
    return False


def in_mill(board: np.ndarray, cell: int, topology: BoardTopology = STANDARD_TOPOLOGY) -> bool:
    owner = board[cell]
    if owner == EMPTY:
        return False
    return any(all(board[c] == owner for c in line) for line in topology.lines_per_cell[cell])


def removable_pieces(board: np.ndarray, victim: int,
                     topology: BoardTopology = STANDARD_TOPOLOGY) -> List[int]:
    """
    Pieces of `victim` that may be removed after a mill: those outside any
    completed mill, or every piece when all of them sit in mills.
    """
    pieces = np.flatnonzero(board == victim).tolist()
    free = [cell for cell in pieces if not in_mill(board, cell, topology)]
    return free if free else pieces


# ============================================================================
# PIECE COUNTS AND PHASES
# ============================================================================

class Phase(IntEnum):
    PLACING = 0
    MOVING = 1
    FLYING = 2


@dataclass
class PieceCounts:
    """Per-player counters for the classic model."""
    to_place: int = PIECES_PER_PLAYER
    on_board: int = 0

    def validate(self, limit: int = PIECES_PER_PLAYER):
        if self.to_place < 0 or self.on_board < 0:
            raise InvalidPositionError("Piece counts must be non-negative")
        if self.to_place + self.on_board > limit:
            raise InvalidPositionError(
                f"to_place + on_board exceeds {limit} ({self.to_place} + {self.on_board})")


def game_phase(counts: Dict[int, PieceCounts], player: int) -> Phase:
    """Phase for `player`, derived from the counters."""
    if counts[HUMAN].to_place > 0 or counts[AI].to_place > 0:
        return Phase.PLACING
    if counts[player].on_board == 3:
        return Phase.FLYING
    return Phase.MOVING


def parse_counts(raw, board: np.ndarray) -> Dict[int, PieceCounts]:
    """
    Accept counts as {player: PieceCounts | {'to_place', 'on_board'}} with int
    or str keys. `on_board` defaults to what the board shows and must agree
    with it.
    """
    if raw is None:
        raise InvalidPositionError("Piece counts are required for the classic model")
    counts = {}
    for player in PLAYERS:
        entry = raw.get(player, raw.get(str(player))) if isinstance(raw, dict) else None
        if entry is None:
            raise InvalidPositionError(f"Missing piece counts for player {player}")
        if isinstance(entry, PieceCounts):
            pc = PieceCounts(entry.to_place, entry.on_board)
        else:
            try:
                to_place = int(entry.get('to_place', entry.get('piecesLeftToPlace', 0)))
                on_board = entry.get('on_board', entry.get('piecesOnBoard'))
                on_board = count_pieces(board, player) if on_board is None else int(on_board)
            except (AttributeError, TypeError, ValueError) as e:
                raise InvalidPositionError(f"Malformed counts for player {player}: {e}") from e
            pc = PieceCounts(to_place, on_board)
        pc.validate()
        if pc.on_board != count_pieces(board, player):
            raise InvalidPositionError(
                f"Player {player} reports {pc.on_board} pieces on board, board shows "
                f"{count_pieces(board, player)}")
        counts[player] = pc
    return counts


# ============================================================================
# MOVES
# ============================================================================

@dataclass(frozen=True)
class Placement:
    """Put a piece from hand on `to`; optionally remove an opponent piece."""
    to: int
    remove: Optional[int] = None
    creates_mill: bool = field(default=False, compare=False)

    @property
    def source(self) -> Optional[int]:
        return None

    def with_removal(self, cell: Optional[int]) -> 'Placement':
        return replace(self, remove=cell)

    def to_dict(self) -> Dict[str, Optional[int]]:
        return {'from': None, 'to': self.to, 'remove': self.remove}


@dataclass(frozen=True)
class Relocation:
    """Move a piece from `source` to `to` (adjacent, or anywhere when flying)."""
    source: int
    to: int
    remove: Optional[int] = None
    creates_mill: bool = field(default=False, compare=False)

    def with_removal(self, cell: Optional[int]) -> 'Relocation':
        return replace(self, remove=cell)

    def to_dict(self) -> Dict[str, Optional[int]]:
        return {'from': self.source, 'to': self.to, 'remove': self.remove}


ClassicMove = Union[Placement, Relocation]


def move_from_dict(data: Dict) -> ClassicMove:
    source = data.get('from')
    remove = data.get('remove')
    remove = None if remove is None else int(remove)
    if source is None:
        return Placement(int(data['to']), remove)
    return Relocation(int(source), int(data['to']), remove)
