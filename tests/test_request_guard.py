import unittest

from math_tutor.models.errors import ErrorKind
from math_tutor.services.content_service import GenerationError
from math_tutor.services.request_guard import GenerationTag, run_guarded


async def succeed():
    return 42


async def fail_with(error):
    raise error


class TestGenerationTag(unittest.TestCase):
    def test_advance_invalidates_previous_tag(self):
        tag = GenerationTag()
        first = tag.value

        second = tag.advance()

        self.assertFalse(tag.is_current(first))
        self.assertTrue(tag.is_current(second))
        self.assertEqual(second, first + 1)


class TestRunGuarded(unittest.IsolatedAsyncioTestCase):
    async def test_success(self):
        outcome = await run_guarded(succeed(), ErrorKind.SOLVE_FAILED)

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.value, 42)

    async def test_content_error_is_captured(self):
        outcome = await run_guarded(fail_with(GenerationError("no quiz")), ErrorKind.QUIZ_LOAD_FAILED)

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.error, ErrorKind.QUIZ_LOAD_FAILED)
        self.assertEqual(outcome.detail, "no quiz")

    async def test_unexpected_error_is_captured_without_details(self):
        outcome = await run_guarded(fail_with(KeyError("secret")), ErrorKind.SOLVE_FAILED)

        self.assertEqual(outcome.error, ErrorKind.SOLVE_FAILED)
        self.assertNotIn("secret", outcome.detail)


if __name__ == "__main__":
    unittest.main()
