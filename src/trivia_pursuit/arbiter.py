"""
Computer player policy.

Stands in for a human when the active player is automated: picks a space
after a roll and decides whether the simulated answer is right. Win and wedge
bookkeeping stay in the game state; this module only returns choices.
"""

import logging
import random
from typing import Iterable, Optional

from trivia_pursuit.board import Board
from trivia_pursuit.questions import Question


logger = logging.getLogger(__name__)


def choose_destination(board: Board, player, destinations: Iterable[int],
                       rng: random.Random) -> Optional[int]:
    """
    Pick a space among the legal destinations of the current roll.

    Priority:
    1. any Roll Again space
    2. any wedge HQ whose wedge the player has not collected yet
    3. a uniformly random destination

    Returns None when there is nothing to choose from.
    """
    candidates = sorted(destinations)
    if not candidates:
        return None

    for space_id in candidates:
        if board.get_space(space_id).is_roll_again:
            return space_id

    for space_id in candidates:
        space = board.get_space(space_id)
        if space.is_wedge_hq and space.category not in player.wedges:
            return space_id

    return rng.choice(candidates)


def decide_answer(player, question: Question, rng: random.Random) -> int:
    """
    Simulate an answer for a computer player.

    A value is drawn uniformly from [0, 100); the answer is correct when it is
    at or below the player's accuracy level. Wrong answers pick uniformly among
    the incorrect options.
    """
    roll = rng.random() * 100
    if roll <= int(player.accuracy):
        return question.correct_option_index

    wrong = [i for i in range(len(question.options)) if i != question.correct_option_index]
    if not wrong:
        # Single-option question: the only option is the correct one
        return question.correct_option_index
    choice = rng.choice(wrong)
    logger.debug(f"{player.name} misses ({roll:.1f} > {int(player.accuracy)}), picks option {choice}")
    return choice
