"""
Chat Controller
Transcript and single-flight solve requests for the problem solver
FILE: math_tutor/services/chat_controller.py
"""
import itertools
import logging
from typing import List, Optional

from math_tutor.models.chat import ChatMessage, ChatRole
from math_tutor.models.errors import ErrorKind
from math_tutor.services.content_service import ContentService
from math_tutor.services.request_guard import GenerationTag, run_guarded

logger = logging.getLogger(__name__)


class ChatController:
    """
    Owns the solver transcript

    At most one solve request is outstanding at a time. Submissions made
    while it is pending are rejected, not queued. `clear` empties the
    transcript and advances the generation tag; a response for the cleared
    transcript is dropped when it arrives.
    """

    def __init__(self, content_service: ContentService):
        self.content_service = content_service
        self._messages: List[ChatMessage] = []
        self._pending_request = False
        self._draft = ""
        self._last_error: Optional[ErrorKind] = None
        self._error_detail = ""
        self._generation = GenerationTag()
        self._ids = itertools.count(1)

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    @property
    def pending_request(self) -> bool:
        return self._pending_request

    @property
    def draft(self) -> str:
        return self._draft

    @property
    def last_error(self) -> Optional[ErrorKind]:
        return self._last_error

    @property
    def error_detail(self) -> str:
        return self._error_detail

    @property
    def generation(self) -> int:
        return self._generation.value

    def can_submit(self, problem_text: Optional[str] = None) -> bool:
        text = self._draft if problem_text is None else problem_text
        return bool(text.strip()) and not self._pending_request

    def update_draft(self, text: str) -> None:
        self._draft = text

    def _append(self, role: ChatRole, text: str) -> ChatMessage:
        message = ChatMessage(id=next(self._ids), role=role, text=text)
        self._messages.append(message)
        return message

    async def submit(self, problem_text: Optional[str] = None) -> bool:
        """
        Send a problem to the solver

        Args:
            problem_text: Problem to solve; the draft is used when omitted

        Returns:
            True if the submission was accepted, False if it was ignored
            (blank text, or a request already in flight)
        """
        text = self._draft if problem_text is None else problem_text

        if not text.strip():
            logger.debug("submit ignored: empty problem")
            return False

        if self._pending_request:
            logger.debug("submit ignored: solve request already in flight")
            return False

        self._append(ChatRole.USER, text)
        self._draft = ""
        self._last_error = None
        self._error_detail = ""
        self._pending_request = True
        tag = self._generation.value

        try:
            outcome = await run_guarded(self.content_service.solve(text), ErrorKind.SOLVE_FAILED)
        finally:
            self._pending_request = False

        if not self._generation.is_current(tag):
            logger.info(f"⏭️ Discarding solve response for cleared transcript (generation {tag})")
            return True

        if outcome.ok:
            self._append(ChatRole.ASSISTANT, outcome.value)
            logger.info(f"✅ Solution appended ({len(self._messages)} messages)")
        else:
            self._last_error = outcome.error
            self._error_detail = outcome.detail

        return True

    def clear(self) -> None:
        """Empty the transcript; an in-flight request still holds the single-flight guard"""
        self._messages = []
        self._last_error = None
        self._error_detail = ""
        self._generation.advance()
        logger.info("🧹 Transcript cleared")
