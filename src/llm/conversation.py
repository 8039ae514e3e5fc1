# src/llm/conversation.py - v1
"""Conversation history with rollback of failed turns and file persistence."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from occlaude.codec.json_codec import decode, encode
from occlaude.core.errors import ClientError, ConversationFileError, ParseError
from occlaude.core.models import ChatResult, Message
from occlaude.llm.api_client import ClaudeApiClient

logger = logging.getLogger(__name__)

DEFAULT_CONVERSATION_FILE = Path("/tmp/occlaude_conversation.json")


class Conversation:
    """Ordered list of turns sent with every request."""

    def __init__(self, messages: list[Message] | None = None) -> None:
        self.messages: list[Message] = list(messages or [])

    def __len__(self) -> int:
        return len(self.messages)

    async def send(self, client: ClaudeApiClient, config: Any, text: str) -> ChatResult:
        """Append a user turn, ask the API, append the reply.

        On any ClientError the user turn is removed again so a failed
        exchange leaves the history unchanged.
        """
        self.messages.append(Message(role="user", content=text))
        try:
            result = await client.chat(config, self.messages)
        except ClientError:
            self.messages.pop()
            raise
        self.messages.append(Message(role="assistant", content=result.text))
        return result

    def clear(self) -> None:
        self.messages.clear()

    def save(self, path: Path = DEFAULT_CONVERSATION_FILE) -> Path:
        """Write the history as a JSON array of {role, content} objects."""
        path = Path(path).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(encode([m.model_dump() for m in self.messages]), encoding="utf-8")
        except OSError as e:
            raise ConversationFileError(f"Failed to open file: {e}") from e
        logger.debug("Saved %d messages to %s", len(self.messages), path)
        return path

    @classmethod
    def load(cls, path: Path = DEFAULT_CONVERSATION_FILE) -> Conversation:
        """Read a history written by save().

        Raises:
            ConversationFileError: If the file is missing or malformed.
        """
        path = Path(path).expanduser()
        if not path.exists():
            raise ConversationFileError(f"File not found: {path}")
        try:
            data = decode(path.read_text(encoding="utf-8"))
            if not isinstance(data, list):
                raise ConversationFileError("Invalid conversation file")
            messages = [Message.model_validate(item) for item in data]
        except (OSError, ParseError, ValidationError) as e:
            raise ConversationFileError(f"Invalid conversation file: {e}") from e
        return cls(messages)
