"""
Error Kinds
Observable failure flags surfaced on controller state
"""
from enum import Enum


class ErrorKind(str, Enum):
    QUIZ_LOAD_FAILED = "quiz_load_failed"
    SOLVE_FAILED = "solve_failed"
