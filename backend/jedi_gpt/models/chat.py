"""
Chat-related Pydantic models
"""
from typing import Any, List, Optional

from pydantic import BaseModel


class CompletionRequest(BaseModel):
    """Request model for the /api/jedi endpoint"""
    prompt: Optional[Any] = None


class CompletionResponse(BaseModel):
    """Successful reply from the proxy"""
    reply: str


class ErrorResponse(BaseModel):
    """Error body returned by the proxy"""
    error: str
    details: Optional[Any] = None


class UpstreamMessage(BaseModel):
    """Role-tagged message sent to the chat-completion API"""
    role: str  # "system", "user" or "assistant"
    content: Any


class ChatCompletionPayload(BaseModel):
    """Request body for the upstream chat-completion API"""
    messages: List[UpstreamMessage]
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
