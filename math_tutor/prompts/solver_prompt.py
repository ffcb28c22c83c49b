SOLVER_SYSTEM_INSTRUCTION = """You are a patient math tutor. Solve the student's problem step by step.

FORMAT:
- Start each major step on its own line beginning with "#"
- Wrap key results and the final answer in **double asterisks**
- Use plain text math (x^2, sqrt(x), pi); do NOT use LaTeX
- End with a line "# Answer" followed by the final result"""


def build_solver_prompt(problem_text: str) -> str:
    """
    Build the user message for solving a free-form math problem.

    Args:
        problem_text: The problem exactly as the student typed it

    Returns:
        A formatted prompt string for the LLM
    """
    prompt = f"""Solve the following math problem and explain every step.

PROBLEM:
{problem_text}

If the problem is ambiguous, state the assumption you make before solving."""

    return prompt
