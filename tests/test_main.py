"""
Tests for Main Module
Settings, terminal helpers and running a match end to end.
"""

import asyncio
import os
import random
import sys
from unittest.mock import Mock, patch

import pytest

# Set environment variable before importing
os.environ["CREWAI_TRACING_ENABLED"] = "false"

from trivia_pursuit import main as trivia_main
from trivia_pursuit.board import Category, get_board
from trivia_pursuit.game_state import AccuracyLevel, GamePhase, PlayerConfig, TriviaGame

from conftest import FakeClock, InstantSource


class TestLoadSettings:
    """Test reading settings from the environment."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TRIVIA_LANGUAGE", raising=False)
        monkeypatch.delenv("TRIVIA_QUESTION_RETRIES", raising=False)
        monkeypatch.delenv("TRIVIA_RETRY_DELAY", raising=False)
        monkeypatch.delenv("TRIVIA_QUESTION_TIMEOUT", raising=False)
        settings = trivia_main.load_settings()
        assert settings == {"language": "en", "max_retries": 2, "base_delay": 2.0,
                            "question_timeout": 60.0}

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("TRIVIA_LANGUAGE", "DA")
        monkeypatch.setenv("TRIVIA_QUESTION_RETRIES", "5")
        monkeypatch.setenv("TRIVIA_RETRY_DELAY", "0.5")
        monkeypatch.setenv("TRIVIA_QUESTION_TIMEOUT", "15")
        settings = trivia_main.load_settings()
        assert settings == {"language": "da", "max_retries": 5, "base_delay": 0.5,
                            "question_timeout": 15.0}

    def test_unknown_language_falls_back(self, monkeypatch):
        monkeypatch.setenv("TRIVIA_LANGUAGE", "klingon")
        assert trivia_main.load_settings()["language"] == "en"


class TestHelpers:
    """Test small display helpers."""

    def test_category_label(self):
        assert trivia_main.category_label(Category.HISTORY, "da") == "Historie"
        assert trivia_main.category_label(Category.ROLL_AGAIN, "en") == "Roll Again"

    def test_ask_int_retries_until_valid(self, monkeypatch):
        answers = iter(["abc", "9", "2"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
        assert trivia_main.ask_int("? ", 1, 3) == 2

    def test_ask_int_default(self, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt="": "")
        assert trivia_main.ask_int("? ", 1, 3, default=2) == 2

    def test_setup_players_with_computer(self, monkeypatch):
        answers = iter(["2", "Alice", "3", "", "1", "y", "2"])
        monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
        configs = trivia_main.setup_players()
        assert [c.name for c in configs] == ["Alice", "Player 2", "Computer"]
        assert configs[0].accuracy == AccuracyLevel.UNBEATABLE
        assert configs[1].accuracy == AccuracyLevel.WALK_IN_THE_PARK
        assert configs[2].is_automated


class TestRunMatch:
    """Test a full match driven by the terminal loop."""

    def test_computer_match_runs_to_the_end(self, capsys):
        game = TriviaGame(board=get_board(), question_source=InstantSource(),
                          rng=random.Random(99), clock=FakeClock())
        configs = [
            PlayerConfig("Ada", accuracy=AccuracyLevel.UNBEATABLE, is_automated=True),
            PlayerConfig("Turing", accuracy=AccuracyLevel.UNBEATABLE, is_automated=True),
        ]
        state = asyncio.run(trivia_main.run_match(game, configs, "en"))

        assert state.phase == GamePhase.FINISHED
        output = capsys.readouterr().out
        assert "GAME OVER" in output
        assert "The winner is" in output

    @pytest.mark.parametrize("seed", range(5))
    def test_weak_computers_finish_without_a_cap(self, seed, capsys):
        game = TriviaGame(board=get_board(), question_source=InstantSource(),
                          rng=random.Random(seed), clock=FakeClock())
        configs = [
            PlayerConfig("Ada", accuracy=AccuracyLevel.WALK_IN_THE_PARK, is_automated=True),
            PlayerConfig("Babbage", accuracy=AccuracyLevel.ON_AND_ON, is_automated=True),
        ]
        state = asyncio.run(trivia_main.run_match(game, configs, "en"))

        assert state.phase == GamePhase.FINISHED
        assert state.winner_id is not None
        assert "The winner is" in capsys.readouterr().out

    def test_reused_game_announces_once(self, capsys):
        game = TriviaGame(board=get_board(), question_source=InstantSource(),
                          rng=random.Random(99), clock=FakeClock())
        configs = [PlayerConfig("Ada", is_automated=True)]
        listener = Mock()
        with patch.object(trivia_main, "announce", listener):
            asyncio.run(trivia_main.run_match(game, configs, "en", max_turns=1))
            asyncio.run(trivia_main.run_match(game, configs, "en", max_turns=1))

        # One roll per match, each seen by a single listener
        assert listener.call_count == 2

    def test_max_turns_stops_match(self, capsys):
        game = TriviaGame(board=get_board(), question_source=InstantSource(),
                          rng=random.Random(99), clock=FakeClock())
        configs = [PlayerConfig("Ada", is_automated=True)]
        state = asyncio.run(trivia_main.run_match(game, configs, "en", max_turns=3))

        assert state.phase != GamePhase.FINISHED
        assert "No winner" in capsys.readouterr().out


class TestMain:
    """Test the command line entry point."""

    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        monkeypatch.setattr(sys, "argv", ["trivia-pursuit"])
        with pytest.raises(SystemExit):
            trivia_main.main()

    def test_invalid_player_count(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "test-key")
        monkeypatch.setattr(sys, "argv", ["trivia-pursuit", "simulate", "9"])
        with pytest.raises(SystemExit):
            trivia_main.main()

    def test_usage_for_unknown_command(self, monkeypatch, capsys):
        monkeypatch.setenv("GOOGLE_API_KEY", "test-key")
        monkeypatch.setattr(sys, "argv", ["trivia-pursuit", "dance"])
        trivia_main.main()
        assert "Usage" in capsys.readouterr().out
