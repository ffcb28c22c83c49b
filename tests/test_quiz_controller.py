import asyncio
import random
import unittest
from unittest.mock import AsyncMock

from fakes import make_content_service, make_question, make_questions

from math_tutor.models.errors import ErrorKind
from math_tutor.models.quiz import (
    ActiveState,
    Difficulty,
    FinishedState,
    LoadFailedState,
    QuizQuestion,
    Topic,
    UnconfiguredState,
)
from math_tutor.services.content_service import GenerationError
from math_tutor.services.quiz_controller import QuizController


class QuizControllerTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.questions = make_questions(3)
        self.service = make_content_service(questions=self.questions)
        self.controller = QuizController(content_service=self.service)

    async def start(self, topic=Topic.ALGEBRA, difficulty=Difficulty.MEDIUM):
        return await self.controller.start_quiz(topic, difficulty)

    async def answer_current(self, correct=True):
        question = self.controller.current_question
        index = question.correct_option_index
        if not correct:
            index = (index + 1) % len(question.options)
        self.controller.select_option(index)
        self.controller.check_answer()


class TestQuizLifecycle(QuizControllerTestCase):
    async def test_initial_state_is_unconfigured(self):
        self.assertIsInstance(self.controller.state, UnconfiguredState)
        self.assertIsNone(self.controller.current_question)
        self.assertIsNone(self.controller.last_error)

    async def test_round_trip_all_correct(self):
        await self.start(Topic.ALGEBRA, Difficulty.MEDIUM)

        self.service.generate_quiz.assert_awaited_once_with(Topic.ALGEBRA, Difficulty.MEDIUM)
        self.assertIsInstance(self.controller.state, ActiveState)

        for _ in range(3):
            await self.answer_current(correct=True)
            self.controller.next_question()

        state = self.controller.state
        self.assertIsInstance(state, FinishedState)
        self.assertEqual(state.score, 3)
        self.assertEqual(len(state.questions), 3)
        self.assertEqual(state.percentage, 100)

    async def test_start_resets_fields(self):
        state = await self.start()

        self.assertEqual(state.current_index, 0)
        self.assertEqual(state.score, 0)
        self.assertIsNone(state.selected_option)
        self.assertFalse(state.answer_revealed)
        self.assertEqual(state.topic, Topic.ALGEBRA)
        self.assertEqual(state.difficulty, Difficulty.MEDIUM)

    async def test_start_is_ignored_while_active(self):
        await self.start()
        self.controller.select_option(0)

        state = await self.start(Topic.GEOMETRY, Difficulty.HARD)

        self.assertIsInstance(state, ActiveState)
        self.assertEqual(state.topic, Topic.ALGEBRA)
        self.assertEqual(state.selected_option, 0)
        self.assertEqual(self.service.generate_quiz.await_count, 1)

    async def test_start_again_from_finished(self):
        self.service.generate_quiz.return_value = make_questions(1)
        await self.start()
        await self.answer_current(correct=True)
        self.controller.next_question()
        self.assertIsInstance(self.controller.state, FinishedState)

        state = await self.start(Topic.CALCULUS, Difficulty.EASY)

        self.assertIsInstance(state, ActiveState)
        self.assertEqual(state.score, 0)
        self.assertEqual(state.topic, Topic.CALCULUS)

    async def test_restart_mid_quiz_resets_score(self):
        await self.start()
        for _ in range(2):
            await self.answer_current(correct=True)
            self.controller.next_question()
        self.assertEqual(self.controller.state.score, 2)

        self.controller.restart()
        self.assertIsInstance(self.controller.state, UnconfiguredState)

        state = await self.start()
        self.assertEqual(state.score, 0)
        self.assertEqual(state.current_index, 0)

    async def test_finished_percentage_rounds(self):
        await self.start()
        await self.answer_current(correct=True)
        self.controller.next_question()
        await self.answer_current(correct=False)
        self.controller.next_question()
        await self.answer_current(correct=False)
        self.controller.next_question()

        self.assertEqual(self.controller.state.score, 1)
        self.assertEqual(self.controller.state.percentage, 33)


class TestAnswering(QuizControllerTestCase):
    async def test_wrong_answer_reveals_without_scoring(self):
        self.service.generate_quiz.return_value = [
            make_question(options=("1", "2", "3", "4"), correct=2)
        ]
        await self.start()

        self.controller.select_option(0)
        state = self.controller.check_answer()

        self.assertEqual(state.score, 0)
        self.assertTrue(state.answer_revealed)
        self.assertEqual(state.selected_option, 0)

    async def test_check_answer_twice_does_not_change_score(self):
        await self.start()
        self.controller.select_option(self.controller.current_question.correct_option_index)

        self.controller.check_answer()
        state = self.controller.check_answer()

        self.assertEqual(state.score, 1)

    async def test_check_without_selection_is_ignored(self):
        await self.start()

        state = self.controller.check_answer()

        self.assertFalse(state.answer_revealed)
        self.assertEqual(state.score, 0)

    async def test_select_after_reveal_is_ignored(self):
        await self.start()
        self.controller.select_option(0)
        self.controller.check_answer()

        state = self.controller.select_option(2)

        self.assertEqual(state.selected_option, 0)

    async def test_select_out_of_range_is_ignored(self):
        await self.start()

        self.assertIsNone(self.controller.select_option(4).selected_option)
        self.assertIsNone(self.controller.select_option(-1).selected_option)

    async def test_select_can_change_before_check(self):
        await self.start()
        self.controller.select_option(0)

        state = self.controller.select_option(3)

        self.assertEqual(state.selected_option, 3)

    async def test_operations_ignored_when_unconfigured(self):
        self.controller.select_option(1)
        self.controller.check_answer()
        self.controller.next_question()

        self.assertIsInstance(self.controller.state, UnconfiguredState)

    async def test_next_before_reveal_is_ignored(self):
        await self.start()
        self.controller.select_option(1)

        state = self.controller.next_question()

        self.assertEqual(state.current_index, 0)
        self.assertEqual(state.selected_option, 1)

    async def test_next_clears_selection_and_reveal(self):
        await self.start()
        await self.answer_current(correct=False)

        state = self.controller.next_question()

        self.assertEqual(state.current_index, 1)
        self.assertIsNone(state.selected_option)
        self.assertFalse(state.answer_revealed)


class TestLoadFailures(QuizControllerTestCase):
    async def test_generation_error_surfaces_as_load_failed(self):
        self.service.generate_quiz.side_effect = GenerationError("service unavailable")

        state = await self.start()

        self.assertIsInstance(state, LoadFailedState)
        self.assertEqual(state.error, ErrorKind.QUIZ_LOAD_FAILED)
        self.assertIn("service unavailable", state.detail)
        self.assertEqual(self.controller.last_error, ErrorKind.QUIZ_LOAD_FAILED)

    async def test_empty_result_is_a_load_failure(self):
        self.service.generate_quiz.return_value = []

        state = await self.start()

        self.assertIsInstance(state, LoadFailedState)

    async def test_out_of_range_answer_index_is_a_load_failure(self):
        bad = QuizQuestion.model_construct(
            prompt="Broken", options=("a", "b"), correct_option_index=5, explanation=""
        )
        self.service.generate_quiz.return_value = [bad]

        state = await self.start()

        self.assertIsInstance(state, LoadFailedState)

    async def test_unexpected_error_does_not_leave_loading(self):
        self.service.generate_quiz.side_effect = RuntimeError("boom")

        state = await self.start()

        self.assertIsInstance(state, LoadFailedState)

    async def test_retry_after_failure(self):
        self.service.generate_quiz.side_effect = [GenerationError("timeout"), self.questions]
        await self.start(Topic.GEOMETRY, Difficulty.HARD)

        state = await self.controller.retry()

        self.assertIsInstance(state, ActiveState)
        self.assertEqual(state.topic, Topic.GEOMETRY)
        self.assertEqual(state.difficulty, Difficulty.HARD)
        self.assertIsNone(self.controller.last_error)
        self.assertEqual(self.service.generate_quiz.await_count, 2)

    async def test_retry_is_ignored_without_failure(self):
        state = await self.controller.retry()

        self.assertIsInstance(state, UnconfiguredState)
        self.service.generate_quiz.assert_not_awaited()

    async def test_start_again_from_load_failed(self):
        self.service.generate_quiz.side_effect = [GenerationError("bad json"), self.questions]
        await self.start()

        state = await self.start(Topic.ARITHMETIC, Difficulty.EASY)

        self.assertIsInstance(state, ActiveState)
        self.assertEqual(state.topic, Topic.ARITHMETIC)


class TestStaleResponses(QuizControllerTestCase):
    async def test_superseded_response_is_discarded(self):
        old_questions = [make_question(prompt="old")]
        new_questions = [make_question(prompt="new"), make_question(prompt="new 2")]
        gate = asyncio.Event()

        async def generate(topic, difficulty):
            if topic == Topic.ALGEBRA:
                await gate.wait()
                return old_questions
            return new_questions

        self.service.generate_quiz = AsyncMock(side_effect=generate)

        first = asyncio.create_task(self.start(Topic.ALGEBRA, Difficulty.EASY))
        await asyncio.sleep(0)
        self.assertEqual(self.controller.state.status, "loading")

        await self.start(Topic.GEOMETRY, Difficulty.HARD)
        gate.set()
        await first

        state = self.controller.state
        self.assertIsInstance(state, ActiveState)
        self.assertEqual(state.topic, Topic.GEOMETRY)
        self.assertEqual([q.prompt for q in state.questions], ["new", "new 2"])

    async def test_superseded_failure_is_discarded(self):
        gate = asyncio.Event()

        async def generate(topic, difficulty):
            if topic == Topic.ALGEBRA:
                await gate.wait()
                raise GenerationError("late failure")
            return self.questions

        self.service.generate_quiz = AsyncMock(side_effect=generate)

        first = asyncio.create_task(self.start(Topic.ALGEBRA, Difficulty.EASY))
        await asyncio.sleep(0)
        await self.start(Topic.GEOMETRY, Difficulty.MEDIUM)
        gate.set()
        await first

        self.assertIsInstance(self.controller.state, ActiveState)
        self.assertIsNone(self.controller.last_error)

    async def test_response_after_restart_is_discarded(self):
        gate = asyncio.Event()

        async def generate(topic, difficulty):
            await gate.wait()
            return self.questions

        self.service.generate_quiz = AsyncMock(side_effect=generate)

        pending = asyncio.create_task(self.start())
        await asyncio.sleep(0)
        self.controller.restart()
        gate.set()
        await pending

        self.assertIsInstance(self.controller.state, UnconfiguredState)


class TestInvariants(QuizControllerTestCase):
    async def test_random_walk_keeps_invariants(self):
        rng = random.Random(1234)
        previous_score = 0

        for _ in range(400):
            op = rng.choice(["start", "select", "check", "next", "restart"])
            if op == "start":
                self.service.generate_quiz.return_value = make_questions(rng.randint(1, 5))
                await self.start()
            elif op == "select":
                self.controller.select_option(rng.randint(-1, 4))
            elif op == "check":
                self.controller.check_answer()
            elif op == "next":
                self.controller.next_question()
            else:
                self.controller.restart()

            state = self.controller.state
            if isinstance(state, ActiveState):
                self.assertTrue(0 <= state.current_index < len(state.questions))
                self.assertLessEqual(state.score, state.current_index + 1)
                if state.answer_revealed:
                    self.assertIsNotNone(state.selected_option)
                if op == "start":
                    previous_score = 0
                self.assertGreaterEqual(state.score, previous_score)
                previous_score = state.score
            elif isinstance(state, FinishedState):
                self.assertLessEqual(state.score, len(state.questions))
            else:
                previous_score = 0


if __name__ == "__main__":
    unittest.main()
