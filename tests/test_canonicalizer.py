"""
Tests for global graph canonicalization.
"""

import pytest

from conftest import FakeAIService
from semgraph.ingest.canonicalizer import GraphCanonicalizer
from semgraph.ingest.node_identity import stable_canonical_node_id
from semgraph.ingest.schemas import SchemaValidationError
from semgraph.models import BgSpanRef, SemanticEdge, SemanticNode


@pytest.fixture
def mini_nodes():
    """Three mini-nodes from two overlapping chunks; m1 and m2 are the same claim."""
    return [
        SemanticNode(id="m1", type="claim", text="Model works", bg_refs=[BgSpanRef("b1", 0, 10)]),
        SemanticNode(id="m2", type="claim", text="The model works", bg_refs=[BgSpanRef("b1", 0, 10), BgSpanRef("b2")]),
        SemanticNode(id="m3", type="evidence", text="r = 0.82", bg_refs=[BgSpanRef("b3")]),
    ]


@pytest.fixture
def mini_edges():
    return [SemanticEdge(from_="m3", to="m1", weight=0.8)]


def _canon(nodes, edges=None):
    return {"canonicalNodes": nodes, "canonicalEdges": edges or []}


class TestCanonicalIds:
    """Canonical ids depend on (type, key) only."""

    def test_id_format(self):
        node_id = stable_canonical_node_id("claim", "model-works")
        assert node_id.startswith("sg:canon:claim:")
        assert len(node_id.rsplit(":", 1)[1]) == 12

    def test_key_whitespace_ignored(self):
        assert stable_canonical_node_id("claim", "  k1 ") == stable_canonical_node_id("claim", "k1")

    def test_type_is_part_of_identity(self):
        assert stable_canonical_node_id("claim", "k1") != stable_canonical_node_id("gap", "k1")

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, mini_nodes, mini_edges):
        response = _canon([{"key": "model-works", "type": "claim", "text": "The model works", "memberIds": ["m1", "m2"]}])
        service = FakeAIService(responses=[response, response])
        canonicalizer = GraphCanonicalizer(service)

        a = await canonicalizer.canonicalize(mini_nodes, mini_edges)
        b = await canonicalizer.canonicalize(mini_nodes, mini_edges)

        assert [n.id for n in a.nodes] == [n.id for n in b.nodes]


class TestProvenance:
    """Canonical nodes carry the union of their members' provenance."""

    @pytest.mark.asyncio
    async def test_members_refs_unioned_and_deduped(self, mini_nodes, mini_edges):
        service = FakeAIService(responses=[_canon([
            {"key": "model-works", "type": "claim", "text": "The model works", "memberIds": ["m1", "m2"]},
            {"key": "r-082", "type": "evidence", "text": "r = 0.82", "memberIds": ["m3"]},
        ])])
        canonicalizer = GraphCanonicalizer(service)

        sg = await canonicalizer.canonicalize(mini_nodes, mini_edges)

        by_key = {n.id: n for n in sg.nodes}
        claim = by_key[stable_canonical_node_id("claim", "model-works")]
        assert [r.key for r in claim.bg_refs] == [("b1", 0, 10), ("b2", None, None)]

    @pytest.mark.asyncio
    async def test_unknown_member_ids_ignored(self, mini_nodes, mini_edges):
        service = FakeAIService(responses=[_canon([
            {"key": "k", "type": "claim", "text": "t", "memberIds": ["m1", "ghost"]},
        ])])
        canonicalizer = GraphCanonicalizer(service)

        sg = await canonicalizer.canonicalize(mini_nodes, mini_edges)

        assert [r.block_id for r in sg.nodes[0].bg_refs] == ["b1"]

    @pytest.mark.asyncio
    async def test_colliding_keys_merge(self, mini_nodes, mini_edges):
        """Two entries with the same (type, key) become one node."""
        service = FakeAIService(responses=[_canon([
            {"key": "k", "type": "claim", "text": "first", "memberIds": ["m1"]},
            {"key": " k", "type": "claim", "text": "second", "memberIds": ["m2"]},
        ])])
        canonicalizer = GraphCanonicalizer(service)

        sg = await canonicalizer.canonicalize(mini_nodes, mini_edges)

        assert len(sg.nodes) == 1
        assert sg.nodes[0].text == "first"
        assert {r.block_id for r in sg.nodes[0].bg_refs} == {"b1", "b2"}

    @pytest.mark.asyncio
    async def test_unreferenced_mini_nodes_dropped(self, mini_nodes, mini_edges):
        service = FakeAIService(responses=[_canon([
            {"key": "k", "type": "claim", "text": "t", "memberIds": ["m1", "m2"]},
        ])])
        canonicalizer = GraphCanonicalizer(service)

        sg = await canonicalizer.canonicalize(mini_nodes, mini_edges)

        assert len(sg.nodes) == 1
        assert all(r.block_id != "b3" for r in sg.nodes[0].bg_refs)


class TestEdges:
    """Canonical edge sanitation."""

    @pytest.mark.asyncio
    async def test_malformed_edges_sanitized(self, mini_nodes, mini_edges):
        service = FakeAIService(responses=[_canon(
            [
                {"key": "a", "type": "claim", "text": "A", "memberIds": ["m1", "m2"]},
                {"key": "b", "type": "evidence", "text": "B", "memberIds": ["m3"]},
            ],
            [
                {"fromKey": "b", "toKey": "a", "weight": 1.7},
                {"fromKey": "b", "toKey": "a", "weight": 0.1},
                {"fromKey": "a", "toKey": "a", "weight": 0.5},
                {"fromKey": "a", "toKey": "nowhere", "weight": 0.5},
                {"fromKey": "a", "toKey": "b", "weight": -0.4},
            ],
        )])
        canonicalizer = GraphCanonicalizer(service)

        sg = await canonicalizer.canonicalize(mini_nodes, mini_edges)

        a = stable_canonical_node_id("claim", "a")
        b = stable_canonical_node_id("evidence", "b")
        assert [(e.from_, e.to, e.weight) for e in sg.edges] == [(b, a, 1.0), (a, b, -0.4)]
        ids = {n.id for n in sg.nodes}
        assert all(e.from_ in ids and e.to in ids and e.from_ != e.to for e in sg.edges)
        assert all(-1.0 <= e.weight <= 1.0 for e in sg.edges)


class TestCanonicalizeCalls:
    """Collaborator usage and failure handling."""

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_call(self, fake_service):
        canonicalizer = GraphCanonicalizer(fake_service)

        sg = await canonicalizer.canonicalize([], [])

        assert sg.nodes == [] and sg.edges == []
        assert sg.version == 1
        assert fake_service.chat_calls == []

    @pytest.mark.asyncio
    async def test_prompt_carries_mini_graph(self, mini_nodes, mini_edges):
        service = FakeAIService(responses=[_canon([
            {"key": "k", "type": "claim", "text": "t", "memberIds": ["m1"]},
        ])])
        canonicalizer = GraphCanonicalizer(service, temperature=0.0)

        await canonicalizer.canonicalize(mini_nodes, mini_edges)

        call = service.chat_calls[0]
        assert call["temperature"] == 0.0
        assert '"id": "m3"' in call["user"]
        assert '"from": "m3"' in call["user"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [
        {"canonicalNodes": [{"key": "k", "type": "claim", "text": "t", "memberIds": []}]},
        {"canonicalNodes": [{"key": "k", "type": "topic", "text": "t", "memberIds": ["m1"]}]},
        {"canonicalEdges": []},
        "not json object",
    ])
    async def test_invalid_payload_raises(self, mini_nodes, mini_edges, raw):
        service = FakeAIService(responses=[raw])
        canonicalizer = GraphCanonicalizer(service, debug=True)

        with pytest.raises(SchemaValidationError) as exc:
            await canonicalizer.canonicalize(mini_nodes, mini_edges)

        assert "canonicalization parse failed" in str(exc.value)
