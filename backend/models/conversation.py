"""Conversation data models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from models.document import ProcessedDocument

USER = "user"
ASSISTANT = "assistant"


@dataclass
class Message:
    """Represents a single message in a session transcript."""
    role: str  # "user" | "assistant"
    content: str
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class Session:
    """A chat session bound to exactly one processed document."""
    session_id: str
    name: str
    filename: str
    document: ProcessedDocument
    messages: List[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
