"""
Chat Models
Transcript messages for the problem solver
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from math_tutor.models.errors import ErrorKind


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """
    One transcript entry

    `id` only keys the message for display; order is the position in the
    transcript. `text` is raw and may contain **bold** spans and `#` heading
    lines, left for the client to render.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="Monotonically increasing message id")
    role: ChatRole
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SubmitProblemRequest(BaseModel):
    """Request model for submitting a problem; the stored draft is used when omitted"""
    problem: Optional[str] = Field(default=None, description="Problem text as typed")

    class Config:
        json_schema_extra = {
            "example": {
                "problem": "Solve x^2 + 2x + 1 = 0"
            }
        }


class DraftRequest(BaseModel):
    """Request model for updating the input buffer"""
    text: str = Field(default="", description="Current contents of the input box")


class ChatStateResponse(BaseModel):
    """Snapshot of the chat controller after a transition"""
    messages: List[ChatMessage]
    pending_request: bool
    draft: str
    can_submit: bool
    error: Optional[ErrorKind] = None
    detail: Optional[str] = None
