#!/usr/bin/env python
"""
Trivia Pursuit with an LLM Quizmaster
Main entry point for playing a match in the terminal.
"""

import os
import sys
import asyncio
import logging
from typing import Optional

# Disable CrewAI tracing before importing crewai
os.environ["CREWAI_TRACING_ENABLED"] = "false"

from dotenv import load_dotenv

from trivia_pursuit.board import Category
from trivia_pursuit.game_state import (
    AccuracyLevel,
    GamePhase,
    MAX_PLAYERS,
    PlayerConfig,
    TriviaGame,
)
from trivia_pursuit.questions import CATEGORY_NAMES, CrewQuestionSource, SUPPORTED_LANGUAGES


# Load environment variables
load_dotenv()

logging.basicConfig(
    level=logging.DEBUG if os.environ.get("TRIVIA_DEBUG") else logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


COMPUTER_NAMES = ["Ada", "Babbage", "Turing", "Hopper", "Lovelace", "Shannon"]


def load_settings() -> dict:
    """Read runtime settings from the environment (and .env)."""
    language = os.environ.get("TRIVIA_LANGUAGE", "en").lower()
    if language not in SUPPORTED_LANGUAGES:
        logger.warning(f"Unsupported TRIVIA_LANGUAGE {language!r}, using English")
        language = "en"
    return {
        "language": language,
        "max_retries": int(os.environ.get("TRIVIA_QUESTION_RETRIES", "2")),
        "base_delay": float(os.environ.get("TRIVIA_RETRY_DELAY", "2")),
        "question_timeout": float(os.environ.get("TRIVIA_QUESTION_TIMEOUT", "60")),
    }


def category_label(category: Category, language: str) -> str:
    names = CATEGORY_NAMES.get(category)
    return names[language] if names else category.value


def print_status(game: TriviaGame) -> None:
    sys.stdout.write("\n" + game.get_game_summary())
    sys.stdout.flush()


def print_results(game: TriviaGame) -> None:
    state = game.state
    print("\n" + "=" * 60)
    print("🏁 GAME OVER!")
    print("=" * 60)
    if state.winner_id is not None:
        print(f"🏆 The winner is {state.players[state.winner_id].name}")
    else:
        print("No winner (match stopped)")
    print("\n📊 Statistics (time spent):")
    print("-" * 40)
    for player in state.players:
        print(f"{player.name}: {round(player.total_time_ms / 1000)}s, "
              f"{len(player.wedges)} wedges")


def ask_int(prompt: str, low: int, high: int, default: int = None) -> int:
    while True:
        raw = input(prompt).strip()
        if not raw and default is not None:
            return default
        try:
            value = int(raw)
        except ValueError:
            print(f"Please enter a number between {low} and {high}")
            continue
        if low <= value <= high:
            return value
        print(f"Please enter a number between {low} and {high}")


def ask_accuracy(name: str) -> AccuracyLevel:
    levels = list(AccuracyLevel)
    choice = ask_int(
        f"Difficulty for {name} (1=Walk In The Park, 2=On And On, 3=Unbeatable) [2]: ",
        1, len(levels), default=2,
    )
    return levels[choice - 1]


def setup_players() -> list:
    """Ask for the roster on stdin."""
    num_players = ask_int(f"Number of players (1-{MAX_PLAYERS}): ", 1, MAX_PLAYERS)
    configs = []
    for i in range(num_players):
        name = input(f"Name of player {i + 1} [Player {i + 1}]: ").strip() or f"Player {i + 1}"
        configs.append(PlayerConfig(name=name, accuracy=ask_accuracy(name)))

    if num_players < MAX_PLAYERS:
        if input("Add a computer player? [y/N]: ").strip().lower() in ("y", "yes"):
            configs.append(PlayerConfig(
                name="Computer",
                accuracy=ask_accuracy("Computer"),
                is_automated=True,
            ))
    return configs


async def human_turn(game: TriviaGame) -> None:
    """Handle whatever the active human player has to do next."""
    state = game.state
    player = game.get_current_player()
    language = state.language

    if state.phase == GamePhase.AWAITING_ROLL:
        input(f"\n🎲 {player.name}, press Enter to roll the dice...")
        roll = game.roll_dice()
        sys.stdout.write(f"    🎲 {player.name} rolled: {roll}\n")
        sys.stdout.flush()

    elif state.phase == GamePhase.AWAITING_MOVE:
        options = sorted(state.legal_destinations)
        print("Select a space to move to:")
        for space_id in options:
            space = game.board.get_space(space_id)
            hq = " ⭐ HQ" if space.is_wedge_hq else ""
            print(f"   • {space_id}: {category_label(space.category, language)}{hq}")
        while True:
            raw = input("Space: ").strip()
            if raw.isdigit() and await game.move_to(int(raw)):
                break
            print("That space is not reachable with this roll.")

    elif state.phase == GamePhase.AWAITING_ANSWER:
        question = state.current_question
        if question is None:
            await game.fetch_question()
            return
        print(f"\n❓ [{category_label(question.category, language)}] {question.text}")
        for i, option in enumerate(question.options, start=1):
            print(f"   {i}. {option}")
        choice = ask_int("Your answer: ", 1, len(question.options)) - 1
        correct = question.is_correct(choice)
        game.answer_question(choice)
        if correct:
            print("✅ Correct!")
        else:
            print(f"❌ Wrong! The answer was: {question.correct_option}")


def announce(snapshot) -> None:
    """Print what a computer player just did."""
    if snapshot is None:
        return
    player = snapshot.players[snapshot.current_player_index]
    if not player.is_automated:
        return
    if snapshot.phase == GamePhase.AWAITING_MOVE:
        sys.stdout.write(f"    🤖 {player.name} rolled: {snapshot.dice_value}\n")
    elif snapshot.phase == GamePhase.AWAITING_ANSWER and snapshot.current_question is not None:
        sys.stdout.write(f"    🤖 {player.name} is answering: {snapshot.current_question.text}\n")
    sys.stdout.flush()


async def run_match(game: TriviaGame, configs: list, language: str, max_turns: Optional[int] = None):
    """Play a match until somebody wins, or until max_turns events when a cap is given."""
    game.new_match(configs, language=language)
    game.subscribe(announce)

    print("\n" + "=" * 60)
    print("🎮 GAME BEGINS!")
    print(f"   {game.get_current_player().name} starts. Answer correctly on all 6 colors to win!")
    print("=" * 60)

    turns = 0
    while game.state.phase != GamePhase.FINISHED and (max_turns is None or turns < max_turns):
        turns += 1
        player = game.get_current_player()
        if player.is_automated:
            await game.advance_automated()
        else:
            print_status(game)
            await human_turn(game)

    print_results(game)
    return game.state


def main():
    """Main entry point."""
    if not os.getenv("GOOGLE_API_KEY"):
        print("❌ Error: GOOGLE_API_KEY environment variable not set.")
        print("Please create a .env file with your Google API key:")
        print("  GOOGLE_API_KEY=your-key-here")
        sys.exit(1)

    settings = load_settings()
    source = CrewQuestionSource(max_retries=settings["max_retries"], base_delay=settings["base_delay"])
    game = TriviaGame(question_source=source, question_timeout=settings["question_timeout"])

    if len(sys.argv) > 1 and sys.argv[1] == "simulate":
        num_players = int(sys.argv[2]) if len(sys.argv) > 2 else 2
        if not 1 <= num_players <= MAX_PLAYERS:
            print(f"❌ Error: Number of players must be between 1 and {MAX_PLAYERS}")
            sys.exit(1)
        levels = list(AccuracyLevel)
        configs = [
            PlayerConfig(name=COMPUTER_NAMES[i], accuracy=levels[i % len(levels)], is_automated=True)
            for i in range(num_players)
        ]
        asyncio.run(run_match(game, configs, settings["language"]))
    elif len(sys.argv) == 1 or sys.argv[1] == "play":
        asyncio.run(run_match(game, setup_players(), settings["language"]))
    else:
        print("Usage: python -m trivia_pursuit.main [play|simulate [num_players]]")
        print(f"  num_players: 1-{MAX_PLAYERS} (default: 2)")


if __name__ == "__main__":
    main()
