"""Shared builders for controller and API tests"""
from unittest.mock import AsyncMock, MagicMock

from math_tutor.models.quiz import QuizQuestion
from math_tutor.services.content_service import ContentService


def make_question(prompt="What is 1 + 1?", options=("1", "2", "3", "4"), correct=1, explanation=""):
    return QuizQuestion(
        prompt=prompt,
        options=tuple(options),
        correct_option_index=correct,
        explanation=explanation or f"The answer is {options[correct]}."
    )


def make_questions(count=3):
    return [
        make_question(prompt=f"Question {i + 1}", correct=i % 4)
        for i in range(count)
    ]


def make_content_service(questions=None, solution="# Step 1\n**x = 1**"):
    service = MagicMock(spec=ContentService)
    service.generate_quiz = AsyncMock(return_value=list(questions or []))
    service.solve = AsyncMock(return_value=solution)
    return service
