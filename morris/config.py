"""
Nine Men's Morris - Configuration
Difficulty tiers and engine settings
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union


class Difficulty(IntEnum):
    """Agent strength tiers."""
    TRIVIAL = 0   # Immediate win, else uniform random legal move
    BASIC = 1     # One-ply rule cascade
    DEEP = 2      # Iterative deepening, single process
    MAXIMAL = 3   # Parallel root split across worker processes


@dataclass
class DifficultyConfig:
    """Search budget for a single difficulty tier."""
    difficulty: Difficulty
    description: str

    use_search: bool = False
    use_parallel: bool = False

    # Iterative deepening schedule
    start_depth: int = 1
    depth_step: int = 1
    max_depth: int = 4

    # Wall-clock budget per move decision (seconds)
    max_time: float = 2.0

    # Per-round worker timeout (seconds), capped by what is left of max_time
    worker_timeout: float = 2.0


@dataclass
class EngineConfig:
    """Settings shared by the sequential and the parallel search."""

    # Quiescence extension
    use_quiescence: bool = True
    quiescence_depth: int = 2

    # Clock is consulted every N nodes
    node_check_interval: int = 512

    # None = unbounded (table lives for one decision only)
    tt_max_entries: Optional[int] = 2_000_000

    # Simple model: pieces each side places before the game is drawn
    pieces_per_player: int = 9

    # Parallelism
    max_workers: int = 8
    min_moves_per_worker: int = 2
    ping_timeout: float = 1.0
    worker_start_timeout: float = 30.0
    mp_start_method: Optional[str] = None


DIFFICULTY_CONFIGS = {
    Difficulty.TRIVIAL: DifficultyConfig(
        difficulty=Difficulty.TRIVIAL,
        description="Immediate win, else random legal move",
    ),
    Difficulty.BASIC: DifficultyConfig(
        difficulty=Difficulty.BASIC,
        description="Win, block, setup, strategic cell, random",
    ),
    Difficulty.DEEP: DifficultyConfig(
        difficulty=Difficulty.DEEP,
        description="Iterative deepening alpha-beta",
        use_search=True,
        start_depth=2,
        depth_step=1,
        max_depth=6,
        max_time=2.0,
    ),
    Difficulty.MAXIMAL: DifficultyConfig(
        difficulty=Difficulty.MAXIMAL,
        description="Parallel iterative deepening alpha-beta",
        use_search=True,
        use_parallel=True,
        start_depth=2,
        depth_step=1,
        max_depth=10,
        max_time=6.0,
        worker_timeout=6.0,
    ),
}

# Names used by the game front-end
DIFFICULTY_ALIASES = {
    'easy': Difficulty.TRIVIAL,
    'medium': Difficulty.BASIC,
    'hard': Difficulty.DEEP,
    'expert': Difficulty.MAXIMAL,
}


def parse_difficulty(value: Union[str, int, Difficulty]) -> Difficulty:
    """Accept a Difficulty, its int value, its name or a front-end alias."""
    if isinstance(value, Difficulty):
        return value
    if isinstance(value, int):
        return Difficulty(value)
    name = str(value).strip().lower()
    if name in DIFFICULTY_ALIASES:
        return DIFFICULTY_ALIASES[name]
    try:
        return Difficulty[name.upper()]
    except KeyError:
        raise ValueError(f"Unknown difficulty: {value!r}") from None


def get_difficulty_config(difficulty: Union[str, int, Difficulty]) -> DifficultyConfig:
    return DIFFICULTY_CONFIGS[parse_difficulty(difficulty)]
