"""
Quiz Models
Question payloads and the tagged quiz state variants
FILE: math_tutor/models/quiz.py
"""
from enum import Enum
from typing import Annotated, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from math_tutor.models.errors import ErrorKind


class Topic(str, Enum):
    ARITHMETIC = "Arithmetic"
    ALGEBRA = "Algebra"
    GEOMETRY = "Geometry"
    TRIGONOMETRY = "Trigonometry"
    CALCULUS = "Calculus"
    STATISTICS = "Probability & Statistics"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class QuizQuestion(BaseModel):
    """
    A single multiple-choice question produced by the content service

    Immutable once created. The correct option is identified by index.
    """
    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., min_length=1, description="Question text")
    options: Tuple[str, ...] = Field(..., min_length=2, description="Answer options in display order")
    correct_option_index: int = Field(..., ge=0, description="Index of the correct option")
    explanation: str = Field(default="", description="Worked explanation shown after checking")

    @field_validator("options")
    @classmethod
    def validate_options(cls, v):
        """Every option must carry non-empty text"""
        for i, opt in enumerate(v):
            if not opt or not opt.strip():
                raise ValueError(f"Option {i + 1} must be a non-empty string")
        return v

    @model_validator(mode="after")
    def validate_correct_index(self):
        if self.correct_option_index >= len(self.options):
            raise ValueError(
                f"correct_option_index {self.correct_option_index} out of range "
                f"for {len(self.options)} options"
            )
        return self


# ==================== QUIZ STATE VARIANTS ====================

class UnconfiguredState(BaseModel):
    """No quiz selected yet"""
    model_config = ConfigDict(frozen=True)

    status: Literal["unconfigured"] = "unconfigured"


class LoadingState(BaseModel):
    """Waiting for the content service to produce questions"""
    model_config = ConfigDict(frozen=True)

    status: Literal["loading"] = "loading"
    topic: Topic
    difficulty: Difficulty


class LoadFailedState(BaseModel):
    """Question generation failed; the caller may retry with the same selection"""
    model_config = ConfigDict(frozen=True)

    status: Literal["load_failed"] = "load_failed"
    topic: Topic
    difficulty: Difficulty
    error: ErrorKind = ErrorKind.QUIZ_LOAD_FAILED
    detail: str = ""


class ActiveState(BaseModel):
    """Questions loaded and being answered one at a time"""
    model_config = ConfigDict(frozen=True)

    status: Literal["active"] = "active"
    topic: Topic
    difficulty: Difficulty
    questions: Tuple[QuizQuestion, ...] = Field(..., min_length=1)
    current_index: int = Field(default=0, ge=0)
    selected_option: Optional[int] = None
    answer_revealed: bool = False
    score: int = Field(default=0, ge=0)

    @property
    def current_question(self) -> QuizQuestion:
        return self.questions[self.current_index]

    @property
    def is_last_question(self) -> bool:
        return self.current_index == len(self.questions) - 1


class FinishedState(BaseModel):
    """Advanced past the last question; score and questions stay readable"""
    model_config = ConfigDict(frozen=True)

    status: Literal["finished"] = "finished"
    topic: Topic
    difficulty: Difficulty
    questions: Tuple[QuizQuestion, ...]
    score: int = Field(default=0, ge=0)

    @property
    def percentage(self) -> int:
        if not self.questions:
            return 0
        return round(self.score / len(self.questions) * 100)


QuizState = Annotated[
    Union[UnconfiguredState, LoadingState, LoadFailedState, ActiveState, FinishedState],
    Field(discriminator="status"),
]
