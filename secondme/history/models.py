"""
History Models
==============

StoredMessage is written by the ingestion side as a JSON member of a
per-contact sorted set (score = timestamp in ms). It is validated strictly
when read back; anything else is a ParseError.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Literal, Set, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr, ValidationError

from secondme.errors import ParseError


class HistoryMethod(str, Enum):
    CHUNKED = "chunked"
    DISABLED = "disabled"


class StoredMessage(BaseModel):
    """
    One stored chat message.

    Attributes:
        id: Message id from the channel
        role: "user" (the contact) or "assistant" (the bot / owner)
        content: Message text
        timestamp: Epoch milliseconds
        source_type: Direction as recorded by ingestion ("type" on the wire)
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    id: StrictStr
    role: Literal["user", "assistant"]
    content: StrictStr
    timestamp: Union[StrictInt, StrictFloat]
    source_type: Literal["incoming", "outgoing", "fromMe"] = Field(alias="type")

    @classmethod
    def from_json(cls, raw: str) -> "StoredMessage":
        """
        Parse one sorted-set member.

        Raises:
            ParseError: Not JSON, or not a StoredMessage shape
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ParseError(f"Stored message is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ParseError("Stored message is not a JSON object")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ParseError(f"Invalid stored message: {e.error_count()} error(s)") from e

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


@dataclass(frozen=True)
class ConversationMessage:
    """Role/content pair ready for the language-model prompt."""
    role: str
    content: str


@dataclass
class ConversationChunk:
    """
    Contiguous run of messages on one topic.

    Attributes:
        messages: Chronological, contiguous slice of the input
        keywords: Union of the messages' keywords
        start_time: Timestamp of the first message
        end_time: Timestamp of the last message
        token_count: Sum of per-message token estimates
    """
    messages: List[StoredMessage]
    keywords: Set[str] = field(default_factory=set)
    start_time: float = 0
    end_time: float = 0
    token_count: int = 0


@dataclass
class HistoryResult:
    messages: List[ConversationMessage] = field(default_factory=list)
    token_estimate: int = 0
    method: HistoryMethod = HistoryMethod.CHUNKED

    @property
    def message_count(self) -> int:
        return len(self.messages)
