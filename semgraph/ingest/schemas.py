"""
Response schemas for the extraction collaborator.

Model output is untrusted: every payload is validated here before the
pipeline touches it. Validation never coerces or partially accepts data;
callers get either ParseOk(payload) or ParseError(issues).
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from semgraph.models import NodeType

logger = logging.getLogger(__name__)

# Raw payload excerpt size for debug logging
RAW_EXCERPT_CHARS = 4000


class _StrictModel(BaseModel):
    # Unknown keys are ignored; scalar fields are never coerced
    model_config = ConfigDict(extra="ignore")


# =============================================================================
# Chunk Graph (per-chunk extraction)
# =============================================================================


class ChunkNodePayload(_StrictModel):
    local_id: str = Field(alias="localId", min_length=1, strict=True)
    block_id: str = Field(alias="blockId", min_length=1, strict=True)
    from_: Optional[int] = Field(default=None, alias="from", ge=0, strict=True)
    to: Optional[int] = Field(default=None, ge=0, strict=True)
    type: NodeType
    text: str = Field(min_length=1, strict=True)


class ChunkEdgePayload(_StrictModel):
    from_: str = Field(alias="from", min_length=1, strict=True)
    to: str = Field(min_length=1, strict=True)
    weight: float = Field(strict=True)


class ChunkGraphPayload(_StrictModel):
    nodes: list[ChunkNodePayload]
    edges: list[ChunkEdgePayload] = Field(default_factory=list)


# =============================================================================
# Canonical Graph (global merge pass)
# =============================================================================


class CanonicalNodePayload(_StrictModel):
    key: str = Field(min_length=1, strict=True)
    type: NodeType
    text: str = Field(min_length=1, strict=True)
    member_ids: list[str] = Field(alias="memberIds", min_length=1)


class CanonicalEdgePayload(_StrictModel):
    from_key: str = Field(alias="fromKey", min_length=1, strict=True)
    to_key: str = Field(alias="toKey", min_length=1, strict=True)
    weight: float = Field(strict=True)


class CanonicalGraphPayload(_StrictModel):
    canonical_nodes: list[CanonicalNodePayload] = Field(alias="canonicalNodes")
    canonical_edges: list[CanonicalEdgePayload] = Field(
        default_factory=list, alias="canonicalEdges"
    )


# =============================================================================
# Parse Result
# =============================================================================

T = TypeVar("T", bound=BaseModel)


@dataclass
class ParseOk(Generic[T]):
    """Validated payload."""

    payload: T


@dataclass
class ParseError:
    """Schema violation with human-readable issues and the offending raw value."""

    issues: list[str] = field(default_factory=list)
    raw: Any = None

    def summary(self, limit: int = 5) -> str:
        shown = "; ".join(self.issues[:limit])
        extra = len(self.issues) - limit
        if extra > 0:
            shown += f"; (+{extra} more)"
        return shown


ParseResult = Union[ParseOk[T], ParseError]


class SchemaValidationError(ValueError):
    """Raised when a collaborator response fails schema validation."""

    def __init__(self, message: str, error: Optional[ParseError] = None):
        super().__init__(message)
        self.error = error

    @property
    def issues(self) -> list[str]:
        return self.error.issues if self.error else []


def _format_issue(err: dict) -> str:
    loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
    return f"{loc}: {err.get('msg', 'invalid')}"


def parse_payload(schema: type[T], raw: Any) -> "ParseResult[T]":
    """
    Validate a raw collaborator payload against a schema.

    Args:
        schema: Pydantic model class
        raw: Decoded JSON from the collaborator

    Returns:
        ParseOk with the validated model, or ParseError with issues
    """
    if not isinstance(raw, dict):
        return ParseError(
            issues=[f"<root>: expected JSON object, got {type(raw).__name__}"],
            raw=raw,
        )

    try:
        return ParseOk(schema.model_validate(raw))
    except ValidationError as e:
        return ParseError(issues=[_format_issue(err) for err in e.errors()], raw=raw)


def raw_excerpt(raw: Any) -> str:
    """Truncated JSON rendering of a raw payload for debug logs."""
    try:
        text = json.dumps(raw, default=str)
    except (TypeError, ValueError):
        text = repr(raw)
    return text[:RAW_EXCERPT_CHARS]
