"""Chat completion schemas: the backend bodies and the normalised result handed to services."""

from pydantic import BaseModel


class ChatCompletion(BaseModel):
    """Backend-independent chat result."""

    content: str
    model: str | None = None
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


################ OPENAI ##################
class OpenAIChatMessage(BaseModel):
    role: str = "assistant"
    content: str | None = None


class OpenAIChatChoice(BaseModel):
    index: int = 0
    message: OpenAIChatMessage
    finish_reason: str | None = None


class OpenAIChatUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class OpenAIChatResponse(BaseModel):
    choices: list[OpenAIChatChoice]
    model: str | None = None
    usage: OpenAIChatUsage | None = None


################ OLLAMA ##################
class OllamaChatMessage(BaseModel):
    role: str = "assistant"
    content: str | None = None


class OllamaChatResponse(BaseModel):
    message: OllamaChatMessage
    model: str | None = None
    prompt_eval_count: int = 0
    eval_count: int = 0
