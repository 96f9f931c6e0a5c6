"""Trivia Pursuit board game engine with an LLM quizmaster."""

__version__ = "0.1.0"
