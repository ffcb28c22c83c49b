"""
Quiz API Routes
FastAPI endpoints exposing the quiz state machine
"""
from functools import lru_cache
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from math_tutor.models.errors import ErrorKind
from math_tutor.models.quiz import (
    ActiveState,
    Difficulty,
    FinishedState,
    LoadFailedState,
    LoadingState,
    Topic,
)
from math_tutor.services.content_service import get_content_service
from math_tutor.services.quiz_controller import QuizController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quiz", tags=["Quiz"])


# ==================== DEPENDENCY INJECTION ====================

@lru_cache(maxsize=1)
def _get_quiz_controller_singleton() -> QuizController:
    return QuizController(content_service=get_content_service())


def get_quiz_controller() -> QuizController:
    """Dependency returning the process-wide quiz controller"""
    return _get_quiz_controller_singleton()


# ==================== REQUEST/RESPONSE MODELS ====================

class StartQuizRequest(BaseModel):
    """Request model for starting a quiz"""
    topic: Topic = Field(..., description="Math topic")
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM, description="Difficulty level")

    class Config:
        json_schema_extra = {
            "example": {
                "topic": "Algebra",
                "difficulty": "Medium"
            }
        }


class SelectOptionRequest(BaseModel):
    """Request model for selecting an answer option"""
    index: int = Field(..., ge=0, description="0-based option index")


class QuestionView(BaseModel):
    """
    Current question as shown to the learner

    The correct index and explanation stay hidden until the answer is checked.
    """
    prompt: str
    options: List[str]
    correct_option_index: Optional[int] = None
    explanation: Optional[str] = None


class QuizStateResponse(BaseModel):
    """Snapshot of the quiz controller after a transition"""
    status: str
    generation: int
    topic: Optional[Topic] = None
    difficulty: Optional[Difficulty] = None
    error: Optional[ErrorKind] = None
    detail: Optional[str] = None
    question: Optional[QuestionView] = None
    position: Optional[int] = Field(default=None, description="1-based question number")
    total: Optional[int] = None
    selected_option: Optional[int] = None
    answer_revealed: bool = False
    is_last_question: bool = False
    score: int = 0
    percentage: Optional[int] = None

    class Config:
        json_schema_extra = {
            "example": {
                "status": "active",
                "generation": 1,
                "topic": "Algebra",
                "difficulty": "Medium",
                "question": {
                    "prompt": "Solve for x: 2x + 6 = 14",
                    "options": ["x = 2", "x = 4", "x = 6", "x = 10"],
                    "correct_option_index": None,
                    "explanation": None
                },
                "position": 1,
                "total": 5,
                "selected_option": 1,
                "answer_revealed": False,
                "is_last_question": False,
                "score": 0
            }
        }


class QuizOptionsResponse(BaseModel):
    """Selectable topics and difficulties"""
    topics: List[Topic]
    difficulties: List[Difficulty]


def build_state_response(controller: QuizController) -> QuizStateResponse:
    """Flatten the tagged quiz state into the response model"""
    state = controller.state
    response = QuizStateResponse(status=state.status, generation=controller.generation)

    if isinstance(state, (LoadingState, LoadFailedState, ActiveState, FinishedState)):
        response.topic = state.topic
        response.difficulty = state.difficulty

    if isinstance(state, LoadFailedState):
        response.error = state.error
        response.detail = state.detail

    elif isinstance(state, ActiveState):
        question = state.current_question
        response.question = QuestionView(
            prompt=question.prompt,
            options=list(question.options),
            correct_option_index=question.correct_option_index if state.answer_revealed else None,
            explanation=question.explanation if state.answer_revealed else None
        )
        response.position = state.current_index + 1
        response.total = len(state.questions)
        response.selected_option = state.selected_option
        response.answer_revealed = state.answer_revealed
        response.is_last_question = state.is_last_question
        response.score = state.score

    elif isinstance(state, FinishedState):
        response.total = len(state.questions)
        response.score = state.score
        response.percentage = state.percentage

    return response


# ==================== ENDPOINTS ====================

@router.get(
    "/options",
    response_model=QuizOptionsResponse,
    summary="Quiz Options",
    description="List the topics and difficulty levels a quiz can be started with"
)
async def get_quiz_options():
    return QuizOptionsResponse(topics=list(Topic), difficulties=list(Difficulty))


@router.get(
    "/state",
    response_model=QuizStateResponse,
    summary="Quiz State",
    description="Current quiz state; poll this while a quiz is loading"
)
async def get_quiz_state(controller: QuizController = Depends(get_quiz_controller)):
    return build_state_response(controller)


@router.post(
    "/start",
    response_model=QuizStateResponse,
    summary="Start Quiz",
    description="""
    Reset the session and generate a new quiz.

    **Workflow:**
    1. Session enters `loading` immediately (visible to `GET /quiz/state`)
    2. Questions are generated by the configured LLM provider
    3. Session becomes `active`, or `load_failed` with an error to retry

    Ignored while a quiz is `active`; call `/quiz/restart` first.
    """
)
async def start_quiz(
    request: StartQuizRequest,
    controller: QuizController = Depends(get_quiz_controller)
):
    await controller.start_quiz(request.topic, request.difficulty)
    return build_state_response(controller)


@router.post(
    "/retry",
    response_model=QuizStateResponse,
    summary="Retry Quiz Load",
    description="Retry a failed quiz load with the same topic and difficulty"
)
async def retry_quiz(controller: QuizController = Depends(get_quiz_controller)):
    await controller.retry()
    return build_state_response(controller)


@router.post("/select", response_model=QuizStateResponse, summary="Select Option")
async def select_option(
    request: SelectOptionRequest,
    controller: QuizController = Depends(get_quiz_controller)
):
    controller.select_option(request.index)
    return build_state_response(controller)


@router.post("/check", response_model=QuizStateResponse, summary="Check Answer")
async def check_answer(controller: QuizController = Depends(get_quiz_controller)):
    controller.check_answer()
    return build_state_response(controller)


@router.post("/next", response_model=QuizStateResponse, summary="Next Question")
async def next_question(controller: QuizController = Depends(get_quiz_controller)):
    controller.next_question()
    return build_state_response(controller)


@router.post("/restart", response_model=QuizStateResponse, summary="Restart Quiz")
async def restart_quiz(controller: QuizController = Depends(get_quiz_controller)):
    controller.restart()
    return build_state_response(controller)
