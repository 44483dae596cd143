from typing import Optional
from pydantic import BaseModel, Field


class Queue(BaseModel):
    """
    Queue reference attached to received messages.
    ``visibility_timeout`` is how long a claimed message stays hidden.
    """
    url: str
    visibility_timeout: Optional[int] = Field(default=None, ge=0)


class Message(BaseModel):
    """
    Internal representation of a received message.
    """
    id: str
    queue: Optional[Queue] = None
