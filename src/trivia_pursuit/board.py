"""
Board topology for Trivia Pursuit.

The board is a hub-and-spoke graph:
- 1 hub in the center (id 0)
- 6 spokes of 5 spaces each, ending in a wedge headquarters (HQ)
- a rim of 6 spaces between each pair of neighbouring HQs

Total spaces: 1 (hub) + 30 (spokes) + 6 (HQs) + 36 (rim) = 73.

Spaces are stored in a flat mapping keyed by id; neighbour relations are ids,
never object references.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Set, Tuple


logger = logging.getLogger(__name__)


class Category(Enum):
    GEOGRAPHY = "Geography"
    ENTERTAINMENT = "Entertainment"
    HISTORY = "History"
    ART_LITERATURE = "Art & Literature"
    SCIENCE_NATURE = "Science & Nature"
    SPORT_LEISURE = "Sport & Leisure"
    HUB = "Hub"
    ROLL_AGAIN = "Roll Again"


# Order matters: it fixes both the HQ of each spoke and the "opposite" colour
# ((index + 3) % 6) used around every HQ.
SCORABLE_CATEGORIES = (
    Category.GEOGRAPHY,       # Blue
    Category.ENTERTAINMENT,   # Pink
    Category.HISTORY,         # Yellow
    Category.ART_LITERATURE,  # Brown
    Category.SCIENCE_NATURE,  # Green
    Category.SPORT_LEISURE,   # Orange
)

CATEGORY_COLORS = {
    Category.GEOGRAPHY: "#3b82f6",
    Category.ENTERTAINMENT: "#ec4899",
    Category.HISTORY: "#eab308",
    Category.ART_LITERATURE: "#a16207",
    Category.SCIENCE_NATURE: "#22c55e",
    Category.SPORT_LEISURE: "#f97316",
    Category.HUB: "#f3f4f6",
    Category.ROLL_AGAIN: "#1f2937",
}

HUB_ID = 0
SPOKE_LENGTH = 5      # spaces between hub and HQ
RIM_SEGMENT_LENGTH = 6  # spaces between two HQs
CENTER = (50.0, 50.0)
RADIUS_STEP = 7.0


@dataclass(frozen=True)
class BoardSpace:
    """A single space on the board."""
    id: int
    category: Category
    is_wedge_hq: bool
    position: Tuple[float, float]  # percentage coordinates, rendering only
    neighbors: frozenset

    @property
    def is_roll_again(self) -> bool:
        return self.category == Category.ROLL_AGAIN


class Board:
    """Immutable board graph with the hub id and an id -> space mapping."""

    def __init__(self, spaces: Mapping[int, BoardSpace], hub_id: int = HUB_ID):
        if hub_id not in spaces:
            raise ValueError(f"Hub id {hub_id} is not a space on the board")
        self._spaces = MappingProxyType(dict(spaces))
        self.hub_id = hub_id

    @property
    def spaces(self) -> Mapping[int, BoardSpace]:
        return self._spaces

    def __len__(self) -> int:
        return len(self._spaces)

    def __contains__(self, space_id) -> bool:
        return space_id in self._spaces

    def get_space(self, space_id: int) -> BoardSpace:
        """Get a space by id. Unknown ids are a programming error."""
        try:
            return self._spaces[space_id]
        except KeyError:
            raise ValueError(f"Space {space_id} is not on the board") from None

    def get_hq(self, category: Category) -> Optional[BoardSpace]:
        """Get the wedge headquarters for a scorable category."""
        for space in self._spaces.values():
            if space.is_wedge_hq and space.category == category:
                return space
        return None

    def reachable(self, start_id: int, steps: int) -> Set[int]:
        return reachable_spaces(self, start_id, steps)


def _polar(angle_deg: float, distance: float) -> Tuple[float, float]:
    angle_rad = math.radians(angle_deg)
    return (
        CENTER[0] + math.cos(angle_rad) * distance,
        CENTER[1] + math.sin(angle_rad) * distance,
    )


def _opposite(index: int) -> Category:
    """Colour surrounding the HQ of SCORABLE_CATEGORIES[index]."""
    return SCORABLE_CATEGORIES[(index + 3) % 6]


def generate_board() -> Board:
    """
    Build the fixed Trivia Pursuit board.

    Deterministic: the same ids, categories, positions and edges every call.

    Category rules:
    - Spoke space j (1-5) on spoke i is SCORABLE_CATEGORIES[(i + j) % 6],
      except space 5, which takes the opposite colour of that spoke's HQ.
    - Rim space k (1-6) between HQ i and HQ i+1: k=1 takes HQ i's opposite,
      k=6 takes HQ i+1's opposite, k=2 and k=5 are Roll Again, k=3 and k=4
      are SCORABLE_CATEGORIES[(i + k + 2) % 6].
    """
    categories: Dict[int, Category] = {HUB_ID: Category.HUB}
    positions: Dict[int, Tuple[float, float]] = {HUB_ID: CENTER}
    hq_flags: Dict[int, bool] = {HUB_ID: False}
    edges: Dict[int, Set[int]] = {HUB_ID: set()}

    def add_space(space_id, category, position, is_hq=False):
        categories[space_id] = category
        positions[space_id] = position
        hq_flags[space_id] = is_hq
        edges[space_id] = set()

    def connect(a, b):
        edges[a].add(b)
        edges[b].add(a)

    next_id = HUB_ID + 1
    hq_ids = []

    # Spokes + HQs
    for i in range(6):
        angle = i * 60 - 90
        previous_id = HUB_ID

        for j in range(1, SPOKE_LENGTH + 1):
            category = SCORABLE_CATEGORIES[(i + j) % 6]
            if j == SPOKE_LENGTH:
                category = _opposite(i)
            add_space(next_id, category, _polar(angle, j * RADIUS_STEP))
            connect(previous_id, next_id)
            previous_id = next_id
            next_id += 1

        hq_id = next_id
        next_id += 1
        add_space(hq_id, SCORABLE_CATEGORIES[i],
                  _polar(angle, (SPOKE_LENGTH + 1) * RADIUS_STEP), is_hq=True)
        connect(previous_id, hq_id)
        hq_ids.append(hq_id)

    # Rim segments
    rim_radius = (SPOKE_LENGTH + 1) * RADIUS_STEP
    angle_step = 60 / (RIM_SEGMENT_LENGTH + 1)
    for i in range(6):
        start_hq = hq_ids[i]
        end_hq = hq_ids[(i + 1) % 6]
        previous_id = start_hq
        start_angle = i * 60 - 90

        for k in range(1, RIM_SEGMENT_LENGTH + 1):
            if k == 1:
                category = _opposite(i)
            elif k == RIM_SEGMENT_LENGTH:
                category = _opposite(i + 1)
            elif k in (2, 5):
                category = Category.ROLL_AGAIN
            else:
                category = SCORABLE_CATEGORIES[(i + k + 2) % 6]

            add_space(next_id, category, _polar(start_angle + k * angle_step, rim_radius))
            connect(previous_id, next_id)
            previous_id = next_id
            next_id += 1

        connect(previous_id, end_hq)

    spaces = {
        space_id: BoardSpace(
            id=space_id,
            category=categories[space_id],
            is_wedge_hq=hq_flags[space_id],
            position=positions[space_id],
            neighbors=frozenset(edges[space_id]),
        )
        for space_id in sorted(categories)
    }
    logger.debug(f"Generated board with {len(spaces)} spaces")
    return Board(spaces, hub_id=HUB_ID)


@lru_cache(maxsize=None)
def get_board() -> Board:
    """The process-wide board, generated once."""
    return generate_board()


def build_board(adjacency: Mapping[int, Iterable[int]],
                categories: Optional[Mapping[int, Category]] = None,
                hub_id: int = HUB_ID) -> Board:
    """
    Build a board from a plain adjacency mapping.

    Edges are made bidirectional. Spaces without an explicit category default
    to Geography (the hub defaults to Hub).
    """
    categories = categories or {}
    edges: Dict[int, Set[int]] = {space_id: set() for space_id in adjacency}
    for space_id, neighbors in adjacency.items():
        for other in neighbors:
            if other == space_id:
                raise ValueError(f"Space {space_id} cannot neighbour itself")
            edges.setdefault(other, set())
            edges[space_id].add(other)
            edges[other].add(space_id)

    spaces = {}
    for space_id, neighbors in edges.items():
        default = Category.HUB if space_id == hub_id else Category.GEOGRAPHY
        spaces[space_id] = BoardSpace(
            id=space_id,
            category=categories.get(space_id, default),
            is_wedge_hq=False,
            position=CENTER,
            neighbors=frozenset(neighbors),
        )
    return Board(spaces, hub_id=hub_id)


# ============================================================================
# REACHABILITY
# ============================================================================

def reachable_spaces(board: Board, start_id: int, steps: int) -> Set[int]:
    """
    All spaces a player can land on from ``start_id`` with a roll of ``steps``.

    Explores every walk of exactly ``steps`` edges where no step goes straight
    back to the space just left. Longer loops that revisit an earlier space are
    allowed, so this is an exhaustive walk, not a shortest-path search. The
    start space is never a valid landing spot, so the result may be empty.

    Raises:
        ValueError: if steps < 1 or start_id is not on the board.
    """
    if steps < 1:
        raise ValueError(f"steps must be >= 1, got {steps}")
    if start_id not in board:
        raise ValueError(f"Space {start_id} is not on the board")

    spaces = board.spaces
    reachable: Set[int] = set()

    def traverse(current_id: int, steps_left: int, previous_id: Optional[int]) -> None:
        if steps_left == 0:
            reachable.add(current_id)
            return
        for neighbor_id in spaces[current_id].neighbors:
            if neighbor_id != previous_id:
                traverse(neighbor_id, steps_left - 1, current_id)

    traverse(start_id, steps, None)
    reachable.discard(start_id)
    return reachable
