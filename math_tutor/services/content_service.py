"""
Content Service
Boundary to the content-generation backend: quiz questions and problem solutions
FILE: math_tutor/services/content_service.py
"""
import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import List, Optional, Sequence

from math_tutor.core.config import settings
from math_tutor.models.quiz import Difficulty, QuizQuestion, Topic
from math_tutor.prompts.solver_prompt import SOLVER_SYSTEM_INSTRUCTION, build_solver_prompt
from math_tutor.services import llm_client
from math_tutor.services.llm_client import LLMClientError
from math_tutor.utils.quiz_parser import QuizParseError, parse_quiz_json
from math_tutor.utils.quiz_prompt import build_quiz_prompt

logger = logging.getLogger(__name__)


# ==================== CUSTOM EXCEPTIONS ====================

class ContentServiceError(Exception):
    """Base exception for content service errors"""
    pass


class GenerationError(ContentServiceError):
    """Raised when quiz content could not be produced or was structurally invalid"""
    pass


class SolveError(ContentServiceError):
    """Raised when a solve request failed"""
    pass


def validate_quiz_questions(questions: Sequence[QuizQuestion]) -> List[QuizQuestion]:
    """
    Check a generated question list before it reaches a quiz session

    Args:
        questions: Questions returned by a content service

    Returns:
        The questions as a list

    Raises:
        GenerationError: If the list is empty or any question is malformed
    """
    if not questions:
        raise GenerationError("Content service returned no questions")

    for idx, question in enumerate(questions):
        options = question.options
        if len(options) < 2:
            raise GenerationError(f"Question {idx + 1}: fewer than 2 options")
        if any(not isinstance(opt, str) or not opt.strip() for opt in options):
            raise GenerationError(f"Question {idx + 1}: option text is empty")
        if not 0 <= question.correct_option_index < len(options):
            raise GenerationError(
                f"Question {idx + 1}: correct option index "
                f"{question.correct_option_index} out of range"
            )

    return list(questions)


# ==================== CONTENT SERVICE ====================

class ContentService(ABC):
    """Two request/response operations consumed by the controllers"""

    @abstractmethod
    async def generate_quiz(self, topic: Topic, difficulty: Difficulty) -> List[QuizQuestion]:
        """Produce an ordered list of questions; raises GenerationError"""

    @abstractmethod
    async def solve(self, problem_text: str) -> str:
        """Produce a free-form solution; raises SolveError"""


class LLMContentService(ContentService):
    """
    Content service backed by an LLM provider

    Builds the prompts, calls the LLM client and parses the reply. All
    provider, transport and parse failures leave this class as
    GenerationError or SolveError.
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        num_questions: Optional[int] = None
    ):
        self.provider = provider or settings.llm_provider
        self.num_questions = num_questions or settings.quiz_question_count

    async def generate_quiz(self, topic: Topic, difficulty: Difficulty) -> List[QuizQuestion]:
        """
        Generate a quiz for a topic and difficulty

        Args:
            topic: Math topic
            difficulty: Difficulty level

        Returns:
            Validated list of QuizQuestion objects

        Raises:
            GenerationError: On LLM, parse, or validation failure
        """
        logger.info(f"🎯 Generating {self.num_questions} {difficulty.value} questions on {topic.value}")

        system, prompt = build_quiz_prompt(topic, difficulty, self.num_questions)

        try:
            raw_response = await llm_client.complete(prompt, system=system, provider=self.provider)
        except LLMClientError as e:
            raise GenerationError(f"LLM request failed: {e}")
        except ValueError as e:
            raise GenerationError(f"LLM configuration error: {e}")

        try:
            questions = parse_quiz_json(raw_response)
        except QuizParseError as e:
            logger.error(f"❌ Failed to parse quiz: {e}")
            logger.debug(f"Raw response: {raw_response[:500]}...")
            raise GenerationError(f"Failed to parse quiz response: {e}")

        return validate_quiz_questions(questions)

    async def solve(self, problem_text: str) -> str:
        """
        Solve a free-form math problem

        Args:
            problem_text: Problem as typed by the user

        Returns:
            Solution text (may contain **bold** spans and # heading lines)

        Raises:
            SolveError: On LLM failure or an empty reply
        """
        logger.info(f"🧮 Solving problem ({len(problem_text)} chars)")

        try:
            solution = await llm_client.complete(
                build_solver_prompt(problem_text),
                system=SOLVER_SYSTEM_INSTRUCTION,
                provider=self.provider
            )
        except LLMClientError as e:
            raise SolveError(f"LLM request failed: {e}")
        except ValueError as e:
            raise SolveError(f"LLM configuration error: {e}")

        if not solution or not solution.strip():
            raise SolveError("LLM returned an empty solution")

        return solution.strip()


@lru_cache(maxsize=1)
def get_content_service() -> ContentService:
    """Return the process-wide content service"""
    return LLMContentService()
