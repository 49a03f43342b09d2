"""Command line interface for DocAnswer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.panel import Panel

from docanswer.config import AppConfig
from docanswer.embedding.encoder import EmbeddingError, create_embedder
from docanswer.index.indexer import Indexer, summarize_errors
from docanswer.index.search import Searcher
from docanswer.index.store import InMemoryChunkStore
from docanswer.web.app import app as web_app


console = Console()
app = typer.Typer(help="DocAnswer - answer questions from PDF, TXT and DOCX documents")
_defaults = AppConfig()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


@app.command()
def ask(
    query: str = typer.Argument(..., help="Question to answer"),
    inputs: List[Path] = typer.Argument(
        ..., help="Documents or directories to load.", resolve_path=True
    ),
    backend: str = typer.Option(
        _defaults.embedding_backend, help="Embedding backend: sentence-transformers or openai"
    ),
    model: str = typer.Option(_defaults.model_name, help="Sentence-transformer model name"),
    chunk_chars: int = typer.Option(_defaults.chunk_chars, help="Chunk size in characters"),
    overlap: int = typer.Option(_defaults.overlap, help="Chunk overlap"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Load documents into a fresh store and answer one question."""
    _setup_logging(verbose)
    if backend not in ("sentence-transformers", "openai"):
        raise typer.BadParameter(f"Unknown embedding backend: {backend}")
    config = AppConfig(
        model_name=model,
        embedding_backend=backend,  # type: ignore[arg-type]
        chunk_chars=chunk_chars,
        overlap=overlap,
    )

    store = InMemoryChunkStore()
    try:
        embedder = create_embedder(config)
        indexer = Indexer(embedder, store, chunk_chars=config.chunk_chars, overlap=config.overlap)
        stats = indexer.index(inputs)
    except EmbeddingError as exc:
        console.print(f"[red]Embedding failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        f"Loaded: {stats.inserted + stats.updated}, failed: {stats.failed}, chunks: {stats.chunks}"
    )
    for line in summarize_errors(stats):
        console.print(f"[yellow]{line}[/yellow]")

    try:
        answer = Searcher(embedder, store).search(query)
    except (EmbeddingError, ValueError) as exc:
        console.print(f"[red]Search failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(Panel(answer.answer, title="Answer"))
    console.print(f"Source: [bold]{answer.source or '-'}[/bold]  Confidence: {answer.confidence:.2f}")
    if answer.explanation:
        console.print(f"[dim]{answer.explanation}[/dim]")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    console.print(f"Starting DocAnswer API on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
