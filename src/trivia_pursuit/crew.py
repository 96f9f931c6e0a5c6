"""
Trivia Pursuit Crew - question generation with CrewAI.
This module defines the quizmaster agent that writes trivia questions.
"""

from crewai import Agent, Crew, Process, Task
from crewai.project import CrewBase, agent
from crewai.agents.agent_builder.base_agent import BaseAgent
from typing import List


@CrewBase
class TriviaCrew:
    """Trivia Pursuit crew with a single quizmaster."""

    agents_config = "config/agents.yaml"

    agents: List[BaseAgent]

    @agent
    def quizmaster(self) -> Agent:
        """The quizmaster who writes one multiple-choice question at a time."""
        return Agent(
            config=self.agents_config["quizmaster"],  # type: ignore[index]
            verbose=False,
        )


def create_question_crew(quizmaster: Agent, category_name: str, language_name: str,
                         difficulty: str) -> Crew:
    """
    Create a mini-crew that writes a single question.

    Args:
        quizmaster: The quizmaster agent
        category_name: Display name of the category, in the target language
        language_name: Language the question must be written in
        difficulty: Difficulty description, e.g. "very hard (expert level)"

    Returns:
        A crew whose raw output is a JSON object with the keys
        question, correctAnswer and incorrectAnswers
    """
    question_task = Task(
        description=f"""
        Generate a {difficulty} Trivial Pursuit question for the category: {category_name}.
        Language: {language_name}.

        Provide 1 correct answer and 5 incorrect answers.
        The answers should be short (1-4 words).
        """,
        expected_output="""
        Only a JSON object, no prose and no code fences:
        {"question": "...", "correctAnswer": "...", "incorrectAnswers": ["...", "...", "...", "...", "..."]}
        """,
        agent=quizmaster,
    )

    return Crew(
        agents=[quizmaster],
        tasks=[question_task],
        process=Process.sequential,
        verbose=False,
        tracing=False,
    )
