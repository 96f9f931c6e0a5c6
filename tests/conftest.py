"""
Shared test helpers.
"""

import os
import random

# Set environment variable before crewai gets imported
os.environ["CREWAI_TRACING_ENABLED"] = "false"

import pytest

from trivia_pursuit.board import Category, get_board
from trivia_pursuit.game_state import AccuracyLevel, PlayerConfig, TriviaGame
from trivia_pursuit.questions import Question


def make_question(category=Category.GEOGRAPHY, correct=0, num_options=4):
    return Question(
        category=category,
        text="What is the capital of Denmark?",
        options=tuple(f"Option {i}" for i in range(num_options)),
        correct_option_index=correct,
    )


class InstantSource:
    """Question source that answers immediately and records its calls."""

    def __init__(self):
        self.calls = []

    async def __call__(self, category, language, accuracy):
        self.calls.append((category, language, accuracy))
        return make_question(category)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def source():
    return InstantSource()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def game(source, clock):
    return TriviaGame(board=get_board(), question_source=source,
                      rng=random.Random(1234), clock=clock)


@pytest.fixture
def two_player_game(game):
    game.new_match(
        [PlayerConfig("Alice"), PlayerConfig("Bob", accuracy=AccuracyLevel.UNBEATABLE)],
        first_player_index=0,
    )
    return game
