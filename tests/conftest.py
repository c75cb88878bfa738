"""
Pytest configuration and fixtures for semgraph tests.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from semgraph.llm.service import AIService
from semgraph.models import Block


# =============================================================================
# Fake collaborator
# =============================================================================


class FakeAIService(AIService):
    """
    Scripted collaborator.

    chat_json returns the next scripted response (or calls `responder`
    with the user prompt); embed_texts returns one deterministic vector
    per text and records every call.
    """

    name = "fake"

    def __init__(self, responses=None, responder=None, dim: int = 4):
        self.responses = list(responses or [])
        self.responder = responder
        self.dim = dim
        self.chat_calls = []
        self.embed_calls = []

    async def chat_json(self, system, user, temperature, model=None):
        self.chat_calls.append({"system": system, "user": user, "temperature": temperature, "model": model})
        if self.responder is not None:
            return self.responder(user)
        if not self.responses:
            raise AssertionError("FakeAIService ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def embed_texts(self, texts, model=None):
        self.embed_calls.append(list(texts))
        return [[float(len(t)), float(i)] + [0.0] * (self.dim - 2) for i, t in enumerate(texts)]

    @property
    def embedded_texts(self):
        return [t for call in self.embed_calls for t in call]


@pytest.fixture
def fake_service():
    """Fake collaborator with no scripted responses."""
    return FakeAIService()


# =============================================================================
# Sample data fixtures
# =============================================================================


@pytest.fixture
def sample_blocks():
    """Short document: heading, two paragraphs, a table."""
    return [
        Block(id="b1", type="heading", text="Spatial transcriptomics"),
        Block(id="b2", type="paragraph", text="We aim to predict gene expression from H&E images."),
        Block(id="b3", type="paragraph", text="Our model reaches 0.82 correlation on Visium HD."),
        Block(id="b4", type="table", text="| model | r |\n| ours | 0.82 |"),
    ]


@pytest.fixture
def twelve_blocks():
    """Twelve equal-cost blocks (8 text tokens + 8 overhead each)."""
    return [Block(id=f"b{i}", type="paragraph", text="x" * 32) for i in range(12)]


def chunk_payload_for(user_prompt: str) -> dict:
    """
    Build a valid chunk-graph response covering every block in the prompt.

    One claim node per block, plus a support edge between consecutive nodes.
    """
    import re

    block_ids = list(dict.fromkeys(re.findall(r'"id": "(b\d+)"', user_prompt)))
    nodes = [
        {"localId": f"N{i}", "blockId": bid, "type": "claim", "text": f"claim about {bid}"}
        for i, bid in enumerate(block_ids)
    ]
    edges = [
        {"from": f"N{i}", "to": f"N{i + 1}", "weight": 0.5}
        for i in range(len(block_ids) - 1)
    ]
    return {"nodes": nodes, "edges": edges}


def canonical_payload_for(user_prompt: str) -> dict:
    """
    Build a canonical response that merges mini-nodes by their text.

    Mini-nodes extracted from the same block (overlapping chunks) share a
    canonical key.
    """
    import json

    nodes_json = user_prompt.split("MINI_NODES_JSON:", 1)[1].split("MINI_EDGES_JSON:", 1)[0]
    mini_nodes = json.loads(nodes_json)

    groups = {}
    for n in mini_nodes:
        groups.setdefault(n["text"], []).append(n["id"])

    keys = list(groups)
    return {
        "canonicalNodes": [
            {"key": key, "type": "claim", "text": key, "memberIds": members}
            for key, members in groups.items()
        ],
        "canonicalEdges": [
            {"fromKey": keys[i], "toKey": keys[i + 1], "weight": 0.7}
            for i in range(len(keys) - 1)
        ],
    }


def pipeline_responder(user_prompt: str) -> dict:
    """Answer chunk prompts and canonicalization prompts alike."""
    if "MINI_NODES_JSON:" in user_prompt:
        return canonical_payload_for(user_prompt)
    return chunk_payload_for(user_prompt)


@pytest.fixture
def pipeline_service():
    """Fake collaborator that answers every pipeline prompt with valid output."""
    return FakeAIService(responder=pipeline_responder)


# =============================================================================
# Pytest markers
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (require DB)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with -m 'not slow')"
    )


# =============================================================================
# Mock fixtures
# =============================================================================


@pytest.fixture
def mock_pg_connection():
    """Mock async Postgres connection; yields the cursor."""
    from unittest.mock import AsyncMock, MagicMock, patch

    with patch("semgraph.db.postgres_async.get_async_connection") as mock:
        mock_conn = MagicMock()
        mock_conn.commit = AsyncMock()
        mock_cursor = AsyncMock()
        mock_cursor.fetchall.return_value = []
        mock_cursor.rowcount = 1

        mock.return_value.__aenter__.return_value = mock_conn
        mock_conn.cursor.return_value.__aenter__.return_value = mock_cursor

        yield mock_cursor
