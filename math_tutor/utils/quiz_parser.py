"""
Quiz Parser
Parses and validates LLM-generated quiz JSON responses
"""
import json
import re
import logging
from typing import List, Dict, Any

from pydantic import ValidationError

from math_tutor.models.quiz import QuizQuestion

logger = logging.getLogger(__name__)


class QuizParseError(Exception):
    """Base exception for quiz parsing errors"""
    pass


class InvalidJSONError(QuizParseError):
    """Raised when JSON cannot be parsed even after cleanup"""
    pass


class QuizStructureError(QuizParseError):
    """Raised when quiz structure validation fails"""
    pass


LETTER_ANSWERS = "ABCDEFGH"
MIN_OPTIONS_COUNT = 2


def _strip_markdown(text: str) -> str:
    """
    Remove markdown code block formatting

    Args:
        text: Raw text possibly containing markdown

    Returns:
        Text with markdown code blocks removed
    """
    # Remove ```json ... ``` or ``` ... ```
    pattern = r"```(?:json)?\s*([\s\S]*?)\s*```"
    match = re.search(pattern, text)
    if match:
        return match.group(1).strip()

    # Remove standalone ``` markers
    text = re.sub(r"```", "", text)

    return text.strip()


def _extract_json_array(text: str) -> str:
    """
    Extract JSON array from text by finding outermost brackets

    Raises:
        InvalidJSONError: If no valid array brackets found
    """
    first_bracket = text.find("[")
    last_bracket = text.rfind("]")

    if first_bracket == -1 or last_bracket == -1:
        raise InvalidJSONError("No JSON array found in response")

    if first_bracket >= last_bracket:
        raise InvalidJSONError("Invalid JSON array brackets")

    return text[first_bracket:last_bracket + 1]


def _fix_common_json_issues(text: str) -> str:
    """
    Fix common JSON formatting issues from LLM output

    Quotes are left alone: math text legitimately contains apostrophes (f'(x)).
    """
    # Remove trailing commas before ] or }
    text = re.sub(r",\s*([}\]])", r"\1", text)

    # Remove any control characters except newlines and tabs
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f]", "", text)

    return text


def _clean_response(raw_response: str) -> str:
    """Apply all cleanup rules to extract valid JSON"""
    text = raw_response.strip()
    text = _strip_markdown(text)
    text = _extract_json_array(text)
    text = _fix_common_json_issues(text)
    return text


def _resolve_correct_index(item: Dict[str, Any], index: int) -> int:
    """
    Read the correct option index from either `correctAnswerIndex` or a letter `answer`

    Raises:
        QuizStructureError: If neither field holds a usable value
    """
    if "correctAnswerIndex" in item:
        value = item["correctAnswerIndex"]
        if isinstance(value, bool) or not isinstance(value, int):
            raise QuizStructureError(
                f"Question {index + 1}: 'correctAnswerIndex' must be an integer"
            )
        return value

    answer = item.get("answer")
    if isinstance(answer, str) and len(answer.strip()) == 1:
        letter = answer.strip().upper()
        if letter in LETTER_ANSWERS:
            return LETTER_ANSWERS.index(letter)

    raise QuizStructureError(
        f"Question {index + 1}: Missing 'correctAnswerIndex' (or letter 'answer')"
    )


def _build_question(item: Dict[str, Any], index: int) -> QuizQuestion:
    """
    Validate a single raw question and convert it to a QuizQuestion

    Raises:
        QuizStructureError: If validation fails
    """
    question = item.get("question")
    if not isinstance(question, str) or not question.strip():
        raise QuizStructureError(
            f"Question {index + 1}: 'question' must be a non-empty string"
        )

    options = item.get("options")
    if not isinstance(options, list):
        raise QuizStructureError(f"Question {index + 1}: 'options' must be a list")

    if len(options) < MIN_OPTIONS_COUNT:
        raise QuizStructureError(
            f"Question {index + 1}: Expected at least {MIN_OPTIONS_COUNT} options, "
            f"got {len(options)}"
        )

    for i, opt in enumerate(options):
        if not isinstance(opt, str) or not opt.strip():
            raise QuizStructureError(
                f"Question {index + 1}: Option {i + 1} must be a non-empty string"
            )

    explanation = item.get("explanation") or ""
    if not isinstance(explanation, str):
        raise QuizStructureError(f"Question {index + 1}: 'explanation' must be a string")

    try:
        return QuizQuestion(
            prompt=question.strip(),
            options=tuple(opt.strip() for opt in options),
            correct_option_index=_resolve_correct_index(item, index),
            explanation=explanation.strip()
        )
    except ValidationError as e:
        raise QuizStructureError(f"Question {index + 1}: {e.errors()[0]['msg']}")


def parse_quiz_json(raw_response: str) -> List[QuizQuestion]:
    """
    Parse and validate quiz JSON from LLM response

    Attempts direct JSON parsing first, then applies cleanup rules
    if initial parsing fails.

    Args:
        raw_response: Raw string response from LLM

    Returns:
        List of validated QuizQuestion objects

    Raises:
        InvalidJSONError: If JSON cannot be parsed after cleanup
        QuizStructureError: If quiz structure is invalid or empty

    Example:
        >>> raw = '[{"question": "2+2?", "options": ["3","4"], "correctAnswerIndex": 1}]'
        >>> parse_quiz_json(raw)[0].correct_option_index
        1
    """
    if not raw_response or not raw_response.strip():
        raise InvalidJSONError("Empty response received")

    logger.debug(f"Parsing quiz response ({len(raw_response)} chars)")

    # Attempt 1: Direct JSON parse
    try:
        data = json.loads(raw_response.strip())
        logger.debug("Direct JSON parse successful")
    except json.JSONDecodeError as e:
        logger.debug(f"Direct parse failed: {e}. Attempting cleanup...")

        # Attempt 2: Clean and retry
        try:
            cleaned = _clean_response(raw_response)
            data = json.loads(cleaned)
            logger.debug("JSON parse successful after cleanup")
        except json.JSONDecodeError as e2:
            logger.error(f"JSON parse failed after cleanup: {e2}")
            raise InvalidJSONError(
                f"Failed to parse JSON: {e2}. "
                f"Original error: {e}"
            )

    # Some models wrap the array in {"questions": [...]}
    if isinstance(data, dict) and isinstance(data.get("questions"), list):
        data = data["questions"]

    if not isinstance(data, list):
        raise QuizStructureError(
            f"Expected a JSON array, got {type(data).__name__}"
        )

    if len(data) == 0:
        raise QuizStructureError("Quiz array is empty")

    questions = []

    for idx, item in enumerate(data):
        if not isinstance(item, dict):
            raise QuizStructureError(
                f"Question {idx + 1}: Expected object, got {type(item).__name__}"
            )
        questions.append(_build_question(item, idx))

    logger.info(f"✅ Successfully parsed {len(questions)} quiz questions")

    return questions
