"""Provider-agnostic AI request model."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActionType(str, Enum):
    """AI actions that produce an artifact on a grant."""

    DRAFT = "draft"
    RESEARCH = "research"
    FITSCORE = "fitscore"
    FOLLOWUP = "followup"
    WINLOSS = "winloss"


class AIRequest(BaseModel):
    """Transient request handed to a provider. Never persisted."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    system_prompt: str = ""
    user_prompt: str
    search_enabled: bool = False
    max_output_tokens: int = 1500

    @field_validator("user_prompt")
    @classmethod
    def _user_prompt_non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("user_prompt must be non-empty")
        return v

    @field_validator("max_output_tokens")
    @classmethod
    def _tokens_ge_1(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_output_tokens must be >= 1")
        return v


class AIResponse(BaseModel):
    """Normalised provider reply."""

    text_blocks: list[str] = Field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def text(self) -> str:
        return "\n\n".join(b for b in self.text_blocks if b)
