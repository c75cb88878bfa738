#!/usr/bin/env python3
"""
semgraph CLI.

Usage:
    semgraph chunk blocks.json
    semgraph bootstrap blocks.json --document-id doc-1
    semgraph serve --port 8000
    semgraph config
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

sys.path.insert(0, str(Path(__file__).parent.parent))

from semgraph import __version__


def load_blocks(path: str):
    """Read blocks from a JSON array or a {"blocks": [...]} object."""
    from semgraph.models import Block

    data = json.loads(Path(path).read_text())
    if isinstance(data, dict):
        data = data.get("blocks", [])
    if not isinstance(data, list):
        raise click.BadParameter(f"{path} does not contain a block list")
    return [Block.from_dict(b) for b in data]


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """semgraph - Semantic Graph bootstrap CLI."""
    from semgraph.config import config

    logging.basicConfig(
        level=logging.DEBUG if verbose else config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ============================================================================
# Pipeline Commands
# ============================================================================

@cli.command()
@click.argument("blocks_path", type=click.Path(exists=True))
@click.option("--target-tokens", type=int, help="Chunk token budget")
@click.option("--overlap-tokens", type=int, help="Backward overlap budget")
def chunk(blocks_path: str, target_tokens: int, overlap_tokens: int):
    """Show how a block file would be chunked."""
    from semgraph.config import config
    from semgraph.ingest.chunking import block_cost, chunk_blocks

    blocks = load_blocks(blocks_path)
    chunks = chunk_blocks(
        blocks,
        target_tokens=target_tokens or config.CHUNK_TARGET_TOKENS,
        overlap_tokens=overlap_tokens if overlap_tokens is not None else config.CHUNK_OVERLAP_TOKENS,
        block_overhead=config.BLOCK_OVERHEAD_TOKENS,
    )

    click.echo(f"\n{len(blocks)} blocks -> {len(chunks)} chunks\n")
    for c in chunks:
        tokens = sum(block_cost(b, config.BLOCK_OVERHEAD_TOKENS) for b in c.blocks)
        click.echo(click.style(f"{c.chunk_id}", fg="green", bold=True) + f"  blocks [{c.start}, {c.end})  ~{tokens} tokens")


@cli.command()
@click.argument("blocks_path", type=click.Path(exists=True))
@click.option("--document-id", required=True, help="Document being bootstrapped")
@click.option("--model", help="Extraction model override")
@click.option("--json", "output_json", is_flag=True, help="Output final status and graph as JSON")
def bootstrap(blocks_path: str, document_id: str, model: str, output_json: bool):
    """Run a bootstrap job locally and poll it to completion."""
    from semgraph.documents import InMemoryDocumentStore
    from semgraph.jobs.bootstrap import build_orchestrator

    blocks = load_blocks(blocks_path)

    async def run():
        orchestrator = build_orchestrator()
        job_id = orchestrator.start_bootstrap_job(document_id, blocks, model=model)
        if not output_json:
            click.echo(f"\nStarted job {job_id} ({len(blocks)} blocks)")

        last = None
        while job_id in orchestrator.running_jobs:
            job = orchestrator.get_job_status(job_id)
            state = (job.stage, job.done_blocks)
            if not output_json and state != last:
                click.echo(f"  [{job.stage.value}] {job.done_blocks}/{job.total_blocks} blocks")
                last = state
            await asyncio.sleep(0.2)

        job = await orchestrator.wait_for_job(job_id)
        graph = None
        if isinstance(orchestrator.documents, InMemoryDocumentStore):
            record = orchestrator.documents.get(document_id)
            graph = record.graph if record else None
        return job, graph

    job, graph = asyncio.run(run())

    if output_json:
        out = {"job": job.to_dict()}
        if graph is not None:
            out["sg"] = graph
        click.echo(json.dumps(out, indent=2))
    elif job.stage.value == "done":
        click.echo(click.style("✓ Bootstrap complete!", fg="green"))
        click.echo(f"  Nodes: {job.node_count}")
        click.echo(f"  Edges: {job.edge_count}")
    else:
        click.echo(click.style("✗ Bootstrap failed!", fg="red"))
        click.echo(f"  Error: {job.error}")

    if job.stage.value != "done":
        sys.exit(1)


# ============================================================================
# Service & Admin Commands
# ============================================================================

@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8000, help="Bind port")
def serve(host: str, port: int):
    """Run the SG HTTP API."""
    import uvicorn

    click.echo(f"\nServing semgraph API on http://{host}:{port}")
    uvicorn.run("semgraph.api.main:create_app", factory=True, host=host, port=port)


@cli.command(name="config")
def show_config():
    """Show effective configuration."""
    from semgraph.config import config

    click.echo(f"\n{config!r}\n")
    problems = config.validate()
    if not problems:
        click.echo(click.style("✓ Configuration OK", fg="green"))
        return
    for problem in problems:
        click.echo(click.style(f"✗ {problem}", fg="yellow"))


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
