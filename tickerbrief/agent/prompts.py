from typing import List
from enum import Enum
from pydantic import BaseModel, Field


class MessageType(Enum):
    """Enumeration for different message types."""
    TASK = "task"
    INIT = "init"


class MessageMetadata(BaseModel):
    """Metadata for a prompt message including type and size."""
    message_type: str = Field(description="Type of the message")
    characters: int = Field(description="Number of characters in the message")


class Message(BaseModel):
    message: str
    metadata: MessageMetadata


class SystemPrompt:
    """Default system prompt for the ticker news summarizer."""

    def __init__(self, additional_instructions: str = ""):
        self.base_prompt = """You are a senior financial analyst producing daily briefings on individual stock tickers from the latest news coverage.

Your primary responsibilities include:
1. Selecting the most relevant and credible news about a ticker
2. Summarizing developments concisely and factually
3. Highlighting what changed today compared with the previous days
4. Assessing sentiment and likely market impact without speculation
"""

        if additional_instructions:
            self.base_prompt += f"\n\nAdditional Instructions:\n{additional_instructions}"

    def get_prompt(self) -> str:
        """Get the complete system prompt."""
        return self.base_prompt


class AIPrompt:
    """Manager for stacking prompt messages into a single prompt."""

    def __init__(self, system_prompt: SystemPrompt):
        self.system_prompt = system_prompt
        self.messages: List[Message] = []

        self._add_message(self.system_prompt.get_prompt(), MessageType.INIT)

    def _add_message(self, message: str, message_type: MessageType) -> MessageMetadata:
        metadata = MessageMetadata(
            message_type=message_type.value,
            characters=len(message)
        )

        self.messages.append(Message(message=message, metadata=metadata))

        return metadata

    def add_task_prompt(self, message: str) -> MessageMetadata:
        formatted_message = f"<Your current task>\n{message}\n</Your current task>"
        return self._add_message(formatted_message, MessageType.TASK)

    def get_prompt(self) -> str:
        return "\n".join([message.message for message in self.messages])
