"""
Data models for the Workflow Service.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048


class ResultSource(str, Enum):
    """Where a workflow result came from."""
    CACHE = "cache"
    AI = "ai"


class StepStatus(str, Enum):
    """Outcome of a non-critical workflow step."""
    OK = "ok"
    DEGRADED = "degraded"


T = TypeVar("T")


@dataclass(frozen=True)
class StepResult(Generic[T]):
    """Result of a best-effort step: either ok with a value, or degraded."""
    status: StepStatus
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "StepResult[T]":
        return cls(StepStatus.OK, value)

    @classmethod
    def degraded(cls, error: str, fallback: Optional[T] = None) -> "StepResult[T]":
        return cls(StepStatus.DEGRADED, fallback, error)

    @property
    def is_degraded(self) -> bool:
        return self.status is StepStatus.DEGRADED


@dataclass(frozen=True)
class CacheEntry:
    """Cached model output with an absolute expiry (epoch seconds)."""
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class GenerationParams:
    """Parameters handed to the model runner after merging."""
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        payload = dict(self.extra)
        payload["temperature"] = self.temperature
        payload["max_tokens"] = self.max_tokens
        return payload


@dataclass(frozen=True)
class WorkflowRecord:
    """Append-only record of a fresh computation."""
    prompt: str
    result: str
    model: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prompt": self.prompt,
            "result": self.result,
            "model": self.model,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class WorkflowResult:
    """What the orchestrator hands back for a successful request."""
    result: str
    source: ResultSource
    model: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    degraded: List[str] = field(default_factory=list)


class WorkflowRequest(BaseModel):
    """Request model for a workflow run.

    ``prompt`` is deliberately not length-constrained here: an empty prompt
    is rejected by the orchestrator as invalid input, not by schema checks.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, protected_namespaces=())

    prompt: Optional[str] = Field(None, description="Natural-language prompt")
    model: Optional[str] = Field(None, description="Model identifier or alias")
    temperature: Optional[float] = Field(None, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: Optional[int] = Field(None, gt=0, description="Maximum tokens to generate")


class WorkflowResponse(BaseModel):
    """Response model for a workflow run."""
    model_config = ConfigDict(protected_namespaces=())

    result: str
    source: ResultSource
    model: str
    timestamp: str

    @classmethod
    def from_result(cls, result: WorkflowResult) -> "WorkflowResponse":
        return cls(
            result=result.result,
            source=result.source,
            model=result.model,
            timestamp=result.timestamp.isoformat()
        )


class EmbedRequest(BaseModel):
    """Request model for text embedding."""
    text: Optional[str] = Field(None, description="Text to embed")


class EmbedResponse(BaseModel):
    """Response model for text embedding."""
    embeddings: List[float]
    timestamp: str
