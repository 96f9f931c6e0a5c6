"""
Question source for Trivia Pursuit.

The game engine only needs an async callable
``(category, language, accuracy) -> Question``. The default implementation
asks a CrewAI quizmaster for a question in JSON, shuffles the options and
retries with exponential backoff when the LLM fails.
"""

import asyncio
import json
import logging
import random
import re
import sys
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from trivia_pursuit.board import Category
from trivia_pursuit.crew import TriviaCrew, create_question_crew


logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = ("en", "da")

LANGUAGE_NAMES = {
    "en": "English",
    "da": "Danish",
}

# Category names used when talking to the quizmaster
CATEGORY_NAMES = {
    Category.GEOGRAPHY: {"en": "Geography", "da": "Geografi"},
    Category.ENTERTAINMENT: {"en": "Entertainment", "da": "Underholdning"},
    Category.HISTORY: {"en": "History", "da": "Historie"},
    Category.ART_LITERATURE: {"en": "Art & Literature", "da": "Kunst & Litteratur"},
    Category.SCIENCE_NATURE: {"en": "Science & Nature", "da": "Videnskab & Natur"},
    Category.SPORT_LEISURE: {"en": "Sport & Leisure", "da": "Sport & Fritid"},
}

DIFFICULTY_TEXT = {
    30: "easy (for children)",
    50: "medium",
    80: "very hard (expert level)",
}

FALLBACK_TEXT = {
    "en": "Could not fetch question. Try again.",
    "da": "Kunne ikke hente spørgsmål. Prøv igen.",
}


@dataclass(frozen=True)
class Question:
    """A multiple-choice question with exactly one correct option."""
    category: Category
    text: str
    options: Tuple[str, ...]
    correct_option_index: int

    def __post_init__(self):
        if not self.options:
            raise ValueError("A question needs at least one option")
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError(
                f"correct_option_index {self.correct_option_index} is out of range "
                f"for {len(self.options)} options"
            )

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_option_index]

    def is_correct(self, option_index: int) -> bool:
        return option_index == self.correct_option_index


def question_category(category: Category) -> Category:
    """Category actually asked about. The hub (and anything unscorable) falls back to Geography."""
    if category in CATEGORY_NAMES:
        return category
    return Category.GEOGRAPHY


def difficulty_text(accuracy: int) -> str:
    return DIFFICULTY_TEXT.get(int(accuracy), "medium")


def fallback_question(category: Category, language: str = "en") -> Question:
    """A single-option question that is always answered correctly."""
    return Question(
        category=question_category(category),
        text=FALLBACK_TEXT.get(language, FALLBACK_TEXT["en"]),
        options=("OK",),
        correct_option_index=0,
    )


def _extract_json(raw: str) -> dict:
    """Pull the JSON object out of an LLM reply, tolerating code fences and prose."""
    text = raw.strip()
    fenced = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if fenced:
        text = fenced.group(1).strip()
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ValueError(f"No JSON object in quizmaster reply: {raw[:200]!r}")
    return json.loads(text[start:end + 1])


def parse_question(raw: str, category: Category, rng: Optional[random.Random] = None) -> Question:
    """
    Turn the quizmaster's JSON reply into a Question with shuffled options.

    Raises:
        ValueError: if the reply is not valid JSON or misses required keys
    """
    rng = rng or random.Random()
    data = _extract_json(raw)

    try:
        text = str(data["question"]).strip()
        correct = str(data["correctAnswer"]).strip()
        incorrect_raw = data["incorrectAnswers"]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Quizmaster reply is missing a field: {e}") from e

    if not isinstance(incorrect_raw, list):
        raise ValueError("Quizmaster reply has incorrectAnswers that is not a list")
    incorrect = [str(a).strip() for a in incorrect_raw]

    if not text or not correct:
        raise ValueError("Quizmaster reply has an empty question or answer")

    # Drop duplicates of the correct answer so exactly one option is right
    incorrect = [a for a in incorrect if a and a.lower() != correct.lower()]
    options = [correct] + incorrect
    rng.shuffle(options)

    return Question(
        category=category,
        text=text,
        options=tuple(options),
        correct_option_index=options.index(correct),
    )


# ============================================================================
# ERROR REPORTING & RETRIES
# ============================================================================

def get_error_details(exception):
    """
    Extract detailed error information from an exception.

    Args:
        exception: The exception to analyze

    Returns:
        A formatted string with error details
    """
    error_info = []
    error_info.append(f"Type: {type(exception).__name__}")
    error_info.append(f"Message: {str(exception)}")

    if exception.__cause__ is not None:
        error_info.append(f"Caused by: {type(exception.__cause__).__name__}: {exception.__cause__}")

    # HTTP status codes (common in API errors)
    if hasattr(exception, 'status_code'):
        error_info.append(f"Status Code: {exception.status_code}")
    if hasattr(exception, 'response'):
        response = exception.response
        if hasattr(response, 'status_code'):
            error_info.append(f"Response Status: {response.status_code}")
        if hasattr(response, 'text'):
            text = str(response.text)
            error_info.append(f"Response Body: {text[:500]}")

    if hasattr(exception, 'code'):
        error_info.append(f"Error Code: {exception.code}")

    if "None or empty" in str(exception) or "empty response" in str(exception).lower():
        error_info.append("Possible causes: Safety filter blocked response, quota exceeded, or model overloaded")

    return " | ".join(error_info)


def retry_with_backoff(func, max_retries=2, base_delay=2):
    """
    Retry a function with exponential backoff.

    Args:
        func: Callable to retry
        max_retries: Maximum number of retry attempts
        base_delay: Base delay in seconds (doubled after every failure)

    Returns:
        The result of the function call

    Raises:
        The last exception if all retries fail
    """
    last_exception = None

    for attempt in range(max_retries + 1):
        try:
            result = func()
            if result is None or (hasattr(result, 'raw') and not result.raw):
                raise ValueError("Empty or None response from LLM")
            return result
        except Exception as e:
            last_exception = e
            error_details = get_error_details(e)
            logger.debug(f"Attempt {attempt + 1} failed with exception:", exc_info=True)

            if attempt < max_retries:
                delay = base_delay * (2 ** attempt)
                sys.stdout.write(f"\n⚠️ Attempt {attempt + 1}/{max_retries + 1} failed\n")
                sys.stdout.write(f"   📋 Error: {error_details}\n")
                sys.stdout.write(f"🔄 Retrying in {delay} seconds...\n")
                sys.stdout.flush()
                time.sleep(delay)
            else:
                logger.warning(f"All {max_retries + 1} attempts failed: {error_details}")
    raise last_exception


# ============================================================================
# CREWAI QUESTION SOURCE
# ============================================================================

class CrewQuestionSource:
    """
    Async question source backed by a CrewAI quizmaster.

    The crew call is blocking, so it runs in a worker thread to keep the game's
    event loop free while the question is being written.
    """

    def __init__(self, max_retries: int = 2, base_delay: float = 2,
                 rng: Optional[random.Random] = None):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.rng = rng or random.Random()
        self._quizmaster = None

    @property
    def quizmaster(self):
        if self._quizmaster is None:
            self._quizmaster = TriviaCrew().quizmaster()
        return self._quizmaster

    def generate(self, category: Category, language: str, accuracy: int) -> Question:
        """Blocking question generation. Raises once all retries are used up."""
        active_category = question_category(category)
        if language not in SUPPORTED_LANGUAGES:
            language = "en"

        question_crew = create_question_crew(
            self.quizmaster,
            category_name=CATEGORY_NAMES[active_category][language],
            language_name=LANGUAGE_NAMES[language],
            difficulty=difficulty_text(accuracy),
        )
        result = retry_with_backoff(
            question_crew.kickoff,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
        )
        raw = result.raw if hasattr(result, 'raw') else str(result)
        question = parse_question(raw, active_category, rng=self.rng)
        logger.debug(f"Generated {active_category.value} question: {question.text}")
        return question

    async def __call__(self, category: Category, language: str, accuracy: int) -> Question:
        return await asyncio.to_thread(self.generate, category, language, accuracy)
