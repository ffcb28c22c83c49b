"""
Quiz Prompt Builder
Constructs prompts for generating math quiz questions for a topic and difficulty
"""
from typing import Tuple

from math_tutor.models.quiz import Difficulty, Topic


SYSTEM_INSTRUCTION = "Return ONLY valid JSON."

EXAMPLE_SCHEMA = """[
  {
    "question": "Solve for x: 2x + 6 = 14",
    "options": ["x = 2", "x = 4", "x = 6", "x = 10"],
    "correctAnswerIndex": 1,
    "explanation": "Subtract 6 from both sides to get 2x = 8, then divide by 2: x = 4."
  }
]"""


def build_quiz_prompt(
    topic: Topic,
    difficulty: Difficulty,
    num_questions: int = 5
) -> Tuple[str, str]:
    """
    Build quiz prompt with separate system and user messages

    Args:
        topic: Math topic the questions must cover
        difficulty: Difficulty level
        num_questions: Number of questions to generate (default: 5)

    Returns:
        Tuple of (system_message, user_message)
    """
    user_message = f"""You are a math teacher writing a practice quiz. Generate exactly {num_questions} multiple-choice questions.

TOPIC: {topic.value}
DIFFICULTY: {difficulty.value}

STRICT FORMATTING RULES:
- Output ONLY a valid JSON array
- Do NOT include markdown code blocks (no ```)
- Do NOT include any preamble or additional text
- Do NOT include trailing commas
- Each question must have exactly 4 non-empty options
- "correctAnswerIndex" is the 0-based index of the single correct option
- "explanation" briefly shows how to reach the correct answer

REQUIRED OUTPUT SCHEMA:
{EXAMPLE_SCHEMA}

Generate {num_questions} questions as a JSON array. Output ONLY the JSON array, nothing else."""

    return SYSTEM_INSTRUCTION, user_message
