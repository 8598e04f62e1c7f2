from typing import Optional

from pydantic import BaseModel


class ChatReply(BaseModel):
    reply: str


class ErrorBody(BaseModel):
    error: str
    detail: Optional[str] = None
