"""
Solver API Routes
FastAPI endpoints exposing the problem-solver chat
"""
from functools import lru_cache
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from math_tutor.models.chat import ChatStateResponse, DraftRequest, SubmitProblemRequest
from math_tutor.services.chat_controller import ChatController
from math_tutor.services.content_service import get_content_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/solver", tags=["Solver"])


# ==================== DEPENDENCY INJECTION ====================

@lru_cache(maxsize=1)
def _get_chat_controller_singleton() -> ChatController:
    return ChatController(content_service=get_content_service())


def get_chat_controller() -> ChatController:
    """Dependency returning the process-wide chat controller"""
    return _get_chat_controller_singleton()


def build_chat_response(controller: ChatController) -> ChatStateResponse:
    return ChatStateResponse(
        messages=controller.messages,
        pending_request=controller.pending_request,
        draft=controller.draft,
        can_submit=controller.can_submit(),
        error=controller.last_error,
        detail=controller.error_detail or None
    )


# ==================== ENDPOINTS ====================

@router.get(
    "/state",
    response_model=ChatStateResponse,
    summary="Chat State",
    description="Transcript, pending flag and last error of the solver chat"
)
async def get_chat_state(controller: ChatController = Depends(get_chat_controller)):
    return build_chat_response(controller)


@router.put("/draft", response_model=ChatStateResponse, summary="Update Draft")
async def update_draft(
    request: DraftRequest,
    controller: ChatController = Depends(get_chat_controller)
):
    controller.update_draft(request.text)
    return build_chat_response(controller)


@router.post(
    "/submit",
    response_model=ChatStateResponse,
    summary="Submit Problem",
    description="""
    Send a problem to the solver and wait for the solution.

    The user message is appended immediately. Only one problem can be in
    flight; a submission made while another is pending is rejected with 409.
    On failure no assistant message is added and `error` is set.
    """,
    responses={
        400: {"description": "Problem text is empty"},
        409: {"description": "A solve request is already in flight"}
    }
)
async def submit_problem(
    request: SubmitProblemRequest,
    controller: ChatController = Depends(get_chat_controller)
):
    text = controller.draft if request.problem is None else request.problem

    if not text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Problem text cannot be empty"
        )

    if controller.pending_request:
        logger.warning("⚠️ Rejected submission while a solve request is in flight")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A problem is already being solved"
        )

    await controller.submit(text)
    return build_chat_response(controller)


@router.delete("/messages", response_model=ChatStateResponse, summary="Clear Transcript")
async def clear_messages(controller: ChatController = Depends(get_chat_controller)):
    controller.clear()
    return build_chat_response(controller)
