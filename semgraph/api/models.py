"""
Request models for the SG API.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from semgraph.models import Block


class BlockIn(BaseModel):
    """A content block as sent by the client."""

    id: str = Field(..., min_length=1, description="Block id")
    type: str = Field(..., description="Block type (paragraph, heading, table, ...)")
    text: str = Field(..., description="Block source text")

    def to_block(self) -> Block:
        return Block(id=self.id, type=self.type, text=self.text)


class BootstrapRequest(BaseModel):
    """Request model for starting a bootstrap job."""

    model_config = ConfigDict(populate_by_name=True)

    document_id: str = Field(..., alias="documentId", min_length=1)
    blocks: list[BlockIn] = Field(default_factory=list)
    model: Optional[str] = Field(None, description="Extraction model override")


class EmbeddingsRequest(BaseModel):
    """Request model for ad-hoc text embeddings."""

    texts: list[str] = Field(default_factory=list)
    model: Optional[str] = Field(None, description="Embedding model override")


class BuildRequest(BaseModel):
    """Request model for a synchronous graph build over a bounded slice."""

    blocks: list[BlockIn] = Field(default_factory=list)
    model: Optional[str] = Field(None, description="Extraction model override")
