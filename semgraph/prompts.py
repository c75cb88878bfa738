"""
Centralized prompt templates for semgraph.

All LLM prompts are defined here to make prompt engineering easier
and to ensure consistency across the codebase.
"""

# =============================================================================
# Chunk Graph Extraction Prompts
# =============================================================================

CHUNK_GRAPH_SYSTEM_PROMPT = """You extract a Semantic Graph (SG) from document blocks.
Return ONLY JSON (no prose)."""


CHUNK_GRAPH_PROMPT = """From the provided blocks, extract:
1) nodes: claims, gaps, goals, evidences, definitions
2) edges: a directed graph mapping node->node with weight in [-1,1] (positive=support, negative=contradiction).

NODE TYPES (use exactly these): {node_types}
- goal: an intended objective, question to investigate, or directive.
- claim: an assertion presented as true (a thesis, conclusion, or strong statement).
- evidence: an observation, datum, citation-like support, or result backing a claim.
- definition: a term explanation or a concept being defined/clarified.
- gap: an explicit uncertainty, open question, contradiction, or missing explanation.

Return ONLY valid JSON in this exact shape:
{{
  "nodes":[{{"localId":"N1","blockId":"...","from":0,"to":12,"type":"goal|claim|evidence|definition|gap","text":"..."}}],
  "edges":[{{"from":"N1","to":"N2","weight":0.4}}]
}}

Rules:
- Be comprehensive (prefer missing fewer over missing more), but avoid duplicates.
- Node text must be self-contained and concise (<= 280 chars).
- Each node MUST reference exactly one blockId, with optional from/to offsets within that block.
- Edges reference nodes by localId from this response only.
- Use consistent direction patterns when relevant: evidence->claim, definition->claim, gap->goal/claim.

BLOCKS_JSON:
{blocks_json}"""


# =============================================================================
# Canonicalization Prompts
# =============================================================================

CANONICALIZE_SYSTEM_PROMPT = """You canonicalize and merge Semantic Graph nodes across chunks.
Return ONLY JSON (no prose)."""


CANONICALIZE_PROMPT = """Unify the mini-graphs into one consistent document graph.

Do:
- Merge duplicates / synonyms / coreference ONLY when they truly mean the same thing (be conservative: avoid over-merging).
- Rewrite node text to be self-contained (resolve "this/it/the method" by naming the referent).
- Assign a canonical key per node (stable, machine-friendly).
- Produce a consistent canonical edge list with weights in [-1,1].

Return ONLY valid JSON in this exact shape:
{{
  "canonicalNodes":[{{"key":"...","type":"goal|claim|evidence|definition|gap","text":"...","memberIds":["..."]}}],
  "canonicalEdges":[{{"fromKey":"...","toKey":"...","weight":0.4}}]
}}

Rules:
- Keep canonical node text concise (<= 280 chars).
- Every canonical node lists at least one member id from MINI_NODES_JSON.
- Do NOT drop nodes unless they are exact duplicates after merging.
- Edges reference declared canonical keys only. Avoid duplicates and self-loops.

MINI_NODES_JSON:
{nodes_json}

MINI_EDGES_JSON:
{edges_json}"""


# =============================================================================
# Helper Functions
# =============================================================================

def format_prompt(template: str, **kwargs) -> str:
    """
    Format a prompt template with the given arguments.

    Args:
        template: Prompt template string
        **kwargs: Values to substitute

    Returns:
        Formatted prompt string
    """
    return template.format(**kwargs)
