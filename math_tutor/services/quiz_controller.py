"""
Quiz Controller
State machine for a single multiple-choice quiz session
FILE: math_tutor/services/quiz_controller.py
"""
import logging
from typing import Optional

from math_tutor.models.errors import ErrorKind
from math_tutor.models.quiz import (
    ActiveState,
    Difficulty,
    FinishedState,
    LoadFailedState,
    LoadingState,
    QuizQuestion,
    QuizState,
    Topic,
    UnconfiguredState,
)
from math_tutor.services.content_service import ContentService, validate_quiz_questions
from math_tutor.services.request_guard import GenerationTag, run_guarded

logger = logging.getLogger(__name__)


class QuizController:
    """
    Owns the lifecycle of one quiz session

    States: unconfigured -> loading -> active -> finished, with load_failed
    as the observable outcome of a failed generation request. Every
    operation is defined in every state; operations that do not apply are
    ignored rather than raised.

    Each generation request carries the generation tag current when it was
    issued. `start_quiz` and `restart` advance the tag, so a response that
    arrives for a superseded session is dropped.
    """

    def __init__(self, content_service: ContentService):
        self.content_service = content_service
        self._state: QuizState = UnconfiguredState()
        self._generation = GenerationTag()

    # ==================== READ SIDE ====================

    @property
    def state(self) -> QuizState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation.value

    @property
    def last_error(self) -> Optional[ErrorKind]:
        if isinstance(self._state, LoadFailedState):
            return self._state.error
        return None

    @property
    def current_question(self) -> Optional[QuizQuestion]:
        if isinstance(self._state, ActiveState):
            return self._state.current_question
        return None

    # ==================== TRANSITIONS ====================

    async def start_quiz(self, topic: Topic, difficulty: Difficulty) -> QuizState:
        """
        Reset the session and load questions for `topic` / `difficulty`

        Ignored while a quiz is active. Starting while a previous request is
        still loading supersedes it.

        Returns:
            The state after the request resolved (or was superseded)
        """
        if isinstance(self._state, ActiveState):
            logger.debug("start_quiz ignored: quiz in progress, restart first")
            return self._state

        tag = self._generation.advance()
        self._state = LoadingState(topic=topic, difficulty=difficulty)
        logger.info(f"🎬 Loading quiz - Topic: {topic.value}, Difficulty: {difficulty.value} (generation {tag})")

        outcome = await run_guarded(
            self._load_questions(topic, difficulty),
            ErrorKind.QUIZ_LOAD_FAILED
        )

        if not self._generation.is_current(tag):
            logger.info(f"⏭️ Discarding stale quiz response (generation {tag})")
            return self._state

        if outcome.ok:
            self._state = ActiveState(
                topic=topic,
                difficulty=difficulty,
                questions=tuple(outcome.value)
            )
            logger.info(f"✅ Quiz ready with {len(outcome.value)} questions")
        else:
            self._state = LoadFailedState(
                topic=topic,
                difficulty=difficulty,
                error=outcome.error,
                detail=outcome.detail
            )
            logger.warning(f"⚠️ Quiz load failed: {outcome.detail}")

        return self._state

    async def _load_questions(self, topic: Topic, difficulty: Difficulty):
        questions = await self.content_service.generate_quiz(topic, difficulty)
        return validate_quiz_questions(questions)

    async def retry(self) -> QuizState:
        """Re-run the failed load with the same topic and difficulty"""
        if not isinstance(self._state, LoadFailedState):
            logger.debug("retry ignored: no failed load")
            return self._state
        return await self.start_quiz(self._state.topic, self._state.difficulty)

    def select_option(self, index: int) -> QuizState:
        """Select an option of the current question until the answer is revealed"""
        state = self._state
        if not isinstance(state, ActiveState) or state.answer_revealed:
            logger.debug("select_option ignored: no open question")
            return state
        if not 0 <= index < len(state.current_question.options):
            logger.debug(f"select_option ignored: index {index} out of range")
            return state

        self._state = state.model_copy(update={"selected_option": index})
        return self._state

    def check_answer(self) -> QuizState:
        """Reveal the answer and score the selection; a second call is a no-op"""
        state = self._state
        if (
            not isinstance(state, ActiveState)
            or state.selected_option is None
            or state.answer_revealed
        ):
            logger.debug("check_answer ignored")
            return state

        is_correct = state.selected_option == state.current_question.correct_option_index
        self._state = state.model_copy(update={
            "answer_revealed": True,
            "score": state.score + 1 if is_correct else state.score,
        })
        logger.info(
            f"📝 Question {state.current_index + 1}/{len(state.questions)} "
            f"answered {'correctly' if is_correct else 'incorrectly'}"
        )
        return self._state

    def next_question(self) -> QuizState:
        """Advance after the answer was revealed; past the last question the quiz finishes"""
        state = self._state
        if not isinstance(state, ActiveState) or not state.answer_revealed:
            logger.debug("next_question ignored: answer not revealed")
            return state

        if state.is_last_question:
            self._state = FinishedState(
                topic=state.topic,
                difficulty=state.difficulty,
                questions=state.questions,
                score=state.score
            )
            logger.info(f"🏁 Quiz finished - Score: {state.score}/{len(state.questions)}")
        else:
            self._state = state.model_copy(update={
                "current_index": state.current_index + 1,
                "selected_option": None,
                "answer_revealed": False,
            })
        return self._state

    def restart(self) -> QuizState:
        """Discard the session and return to unconfigured"""
        self._generation.advance()
        self._state = UnconfiguredState()
        logger.info("🔄 Quiz restarted")
        return self._state
