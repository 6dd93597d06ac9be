from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from utils.constant import ALLOWED_MODELS
from utils.security import MAX_MESSAGE_LENGTH


class ChatMessageSchema(BaseModel):
    role: str = Field(..., min_length=1)
    content: Any

    @field_validator("content")
    @classmethod
    def check_content(cls, v):
        if not v:
            raise ValueError("Each message must have role and content")
        if isinstance(v, str) and len(v) > MAX_MESSAGE_LENGTH:
            raise ValueError("Message content too long")
        return v


class ChatCompletionRequestSchema(BaseModel):
    messages: List[ChatMessageSchema]
    model: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=1)
    max_tokens: Optional[int] = Field(default=None, ge=1, le=4000)
    response_format: Optional[Dict[str, Any]] = None

    @field_validator("messages")
    @classmethod
    def check_messages(cls, v):
        if not v:
            raise ValueError("Messages must be a non-empty array")
        return v

    @field_validator("model")
    @classmethod
    def check_model(cls, v):
        if v is not None and v not in ALLOWED_MODELS:
            raise ValueError("Invalid model specified")
        return v
