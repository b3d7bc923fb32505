# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Pattern library CLI for searching, inspecting and verifying patterns.

Usage:
    artcade-patterns search <prompt> [--kind KIND] [--threshold T] [--limit N] [--json]
    artcade-patterns list [--kind KIND] [--limit N] [--json]
    artcade-patterns get <pattern_id> [--json]
    artcade-patterns tags <pattern.json> [--json]
    artcade-patterns decode <semantic_id>
    artcade-patterns verify <pattern.json> <output.html> [--json]
    artcade-patterns cleanup [--days N] [--yes]
    artcade-patterns health

``tags``, ``decode`` and ``verify`` work offline on local files. The other
commands need the ARTCADE_STORAGE_* settings (and ARTCADE_EMBEDDING_* for
search).

See Also:
    - sql/migrations/001_create_vector_patterns.sql for schema
"""

from __future__ import annotations

import asyncio
import json as json_module
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from artcade import __version__
from artcade.config.settings import get_settings
from artcade.embeddings.client import EmbeddingClient
from artcade.lib.errors import PatternLibraryError, PatternValidationError
from artcade.patterns.models import EnumPatternKind, ModelPattern, parse_pattern
from artcade.patterns.semantic_id import decode_semantic_id, encode_semantic_id
from artcade.patterns.tag_extractor import extract_semantic_tags
from artcade.retrieval.service import PatternRetrievalService, RetrievalOptions
from artcade.storage.config import ConfigPatternStorage
from artcade.storage.pattern_store import PatternStore
from artcade.verification.models import ModelGeneratedOutput
from artcade.verification.verifier import ReuseVerifier

T = TypeVar("T")

# =============================================================================
# Console Setup
# =============================================================================

console = Console()
error_console = Console(stderr=True)

KIND_CHOICES = [kind.value for kind in EnumPatternKind]


# =============================================================================
# Service Construction
# =============================================================================


def build_store() -> PatternStore:
    """Create a store from ARTCADE_STORAGE_* settings.

    Raises:
        click.ClickException: If required settings are missing.
    """
    try:
        config = ConfigPatternStorage()
    except ValidationError as e:
        raise click.ClickException(
            "Pattern store not configured. Set ARTCADE_STORAGE_DATABASE_URL or "
            "ARTCADE_STORAGE_POSTGRES_PASSWORD "
            f"in .env or environment. ({e.error_count()} settings errors)"
        ) from e
    return PatternStore(config)


def build_embedder() -> EmbeddingClient:
    return EmbeddingClient()


def run_with_store(action: Callable[[PatternStore], Awaitable[T]]) -> T:
    """Open the store, run an async action against it and close it again."""

    async def runner() -> T:
        store = build_store()
        await store.initialize()
        try:
            return await action(store)
        finally:
            await store.close()

    try:
        return asyncio.run(runner())
    except PatternLibraryError as e:
        raise click.ClickException(str(e)) from e


def load_patterns(path: Path) -> list[ModelPattern]:
    """Load one pattern object or a list of them from a JSON file.

    Raises:
        click.ClickException: If the file is not valid JSON or a pattern is invalid.
    """
    try:
        payload = json_module.loads(path.read_text(encoding="utf-8"))
    except json_module.JSONDecodeError as e:
        raise click.ClickException(f"{path} is not valid JSON: {e}") from e
    items = payload if isinstance(payload, list) else [payload]
    try:
        return [parse_pattern(item) for item in items]
    except PatternValidationError as e:
        raise click.ClickException(str(e)) from e


def _pattern_summary(pattern: ModelPattern) -> dict[str, Any]:
    return {
        "id": pattern.id,
        "type": pattern.kind.value,
        "pattern_name": pattern.pattern_name,
        "effectiveness_score": pattern.effectiveness_score,
        "usage_count": pattern.usage_count,
        "semantic_id": pattern.semantic_id,
    }


# =============================================================================
# CLI Group
# =============================================================================


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit.")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """Artcade pattern library CLI.

    Examples:

        # Find patterns for a request
        artcade-patterns search "racing game with drifting"

        # Show the tags a pattern would be stored with
        artcade-patterns tags pattern.json

        # Measure how much of a pattern a generated page reused
        artcade-patterns verify pattern.json output.html
    """
    if version:
        click.echo(f"artcade-patterns {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# =============================================================================
# Search / List / Get
# =============================================================================


@cli.command("search")
@click.argument("prompt")
@click.option("--kind", type=click.Choice(KIND_CHOICES), help="Filter by pattern kind.")
@click.option("--threshold", type=click.FloatRange(0.0, 1.0), help="Minimum similarity.")
@click.option("--limit", type=click.IntRange(min=1), help="Maximum patterns to return.")
@click.option("--no-boost", is_flag=True, help="Disable tag-overlap boosting.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def cmd_search(
    prompt: str,
    kind: str | None,
    threshold: float | None,
    limit: int | None,
    no_boost: bool,
    as_json: bool,
) -> None:
    """Find patterns similar to PROMPT."""
    embedder = build_embedder()
    options = RetrievalOptions(boost_enabled=False) if no_boost else None

    async def action(store: PatternStore) -> list[Any]:
        service = PatternRetrievalService(store, embedder, options=options)
        return await service.find_similar(
            prompt,
            threshold=threshold,
            kind=EnumPatternKind(kind) if kind else None,
            limit=limit,
        )

    matches = run_with_store(action)

    if as_json:
        output = [
            {
                **_pattern_summary(m.pattern),
                "similarity": m.similarity,
                "raw_similarity": m.raw_similarity,
                "semantic_boost": m.semantic_boost,
            }
            for m in matches
        ]
        click.echo(json_module.dumps(output, indent=2))
        return

    if not matches:
        console.print("[yellow]No matching patterns found.[/yellow]")
        return

    table = Table(title=f"Matching Patterns ({len(matches)} results)")
    table.add_column("ID", style="dim", max_width=12)
    table.add_column("Name", style="cyan", max_width=40)
    table.add_column("Type", style="blue")
    table.add_column("Similarity", justify="right")
    table.add_column("Boost", justify="right")
    table.add_column("Score", justify="right")
    for m in matches:
        table.add_row(
            m.pattern.id[:8] + "...",
            m.pattern.pattern_name[:40],
            m.pattern.kind.value,
            f"{m.similarity:.3f}",
            f"{m.semantic_boost:.2f}",
            f"{m.pattern.effectiveness_score:.2f}",
        )
    console.print(table)


@cli.command("list")
@click.option("--kind", type=click.Choice(KIND_CHOICES), help="Filter by pattern kind.")
@click.option("--limit", default=50, type=click.IntRange(min=1), help="Maximum patterns.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def cmd_list(kind: str | None, limit: int, as_json: bool) -> None:
    """List stored patterns, most effective first."""
    patterns = run_with_store(
        lambda store: store.list_patterns(
            kind=EnumPatternKind(kind) if kind else None, limit=limit
        )
    )

    if as_json:
        click.echo(json_module.dumps([_pattern_summary(p) for p in patterns], indent=2))
        return

    if not patterns:
        console.print("[yellow]No patterns found.[/yellow]")
        return

    table = Table(title=f"Patterns ({len(patterns)} results)")
    table.add_column("ID", style="dim", max_width=12)
    table.add_column("Name", style="cyan", max_width=40)
    table.add_column("Type", style="blue")
    table.add_column("Score", justify="right")
    table.add_column("Uses", justify="right")
    table.add_column("Semantic ID", style="dim")
    for p in patterns:
        table.add_row(
            p.id[:8] + "...",
            p.pattern_name[:40],
            p.kind.value,
            f"{p.effectiveness_score:.2f}",
            str(p.usage_count),
            p.semantic_id or "N/A",
        )
    console.print(table)


@cli.command("get")
@click.argument("pattern_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def cmd_get(pattern_id: str, as_json: bool) -> None:
    """Show one pattern in full."""
    pattern = run_with_store(lambda store: store.get_pattern(pattern_id))
    if pattern is None:
        error_console.print(f"[red]Pattern not found: {pattern_id}[/red]")
        raise SystemExit(1)

    if as_json:
        click.echo(pattern.model_dump_json(by_alias=True, exclude={"embedding"}, indent=2))
        return

    console.print(f"[bold cyan]{pattern.pattern_name}[/bold cyan] ({pattern.kind.value})")
    console.print(f"  ID:            {pattern.id}")
    console.print(f"  Semantic ID:   {pattern.semantic_id or 'N/A'}")
    console.print(f"  Effectiveness: {pattern.effectiveness_score:.2f}")
    console.print(f"  Usage count:   {pattern.usage_count}")
    if pattern.usage_stats:
        stats = pattern.usage_stats
        console.print(
            f"  Reuse:         {stats.successful_uses}/{stats.total_uses} successful, "
            f"avg similarity {stats.average_similarity:.2f}"
        )
    console.print(f"  Description:   {pattern.description}")


# =============================================================================
# Offline Commands
# =============================================================================


@cli.command("tags")
@click.argument("pattern_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def cmd_tags(pattern_file: Path, as_json: bool) -> None:
    """Show the semantic tags and identifier for patterns in PATTERN_FILE."""
    results = []
    for pattern in load_patterns(pattern_file):
        tags = extract_semantic_tags(pattern)
        results.append(
            {
                "id": pattern.id,
                "pattern_name": pattern.pattern_name,
                "semantic_tags": tags.model_dump(),
                "semantic_id": encode_semantic_id(tags),
            }
        )

    if as_json:
        click.echo(json_module.dumps(results, indent=2))
        return

    table = Table(title="Semantic Tags")
    table.add_column("Pattern", style="cyan", max_width=30)
    table.add_column("Use cases")
    table.add_column("Mechanics")
    table.add_column("Interactions")
    table.add_column("Visual style")
    table.add_column("Semantic ID", style="dim")
    for result in results:
        tags = result["semantic_tags"]
        table.add_row(
            result["pattern_name"][:30],
            ", ".join(tags["use_cases"]) or "-",
            ", ".join(tags["mechanics"]) or "-",
            ", ".join(tags["interactions"]) or "-",
            ", ".join(tags["visual_style"]) or "-",
            result["semantic_id"],
        )
    console.print(table)


@cli.command("decode")
@click.argument("semantic_id")
def cmd_decode(semantic_id: str) -> None:
    """Decode a semantic identifier back into (possibly truncated) tags."""
    try:
        tags = decode_semantic_id(semantic_id)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    click.echo(json_module.dumps(tags.model_dump(), indent=2))


@cli.command("verify")
@click.argument("pattern_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def cmd_verify(pattern_file: Path, output_file: Path, as_json: bool) -> None:
    """Measure how much of each pattern in PATTERN_FILE appears in OUTPUT_FILE."""
    patterns = load_patterns(pattern_file)
    output = ModelGeneratedOutput.from_document(output_file.read_text(encoding="utf-8"))
    report = ReuseVerifier().verify(patterns, output)

    if as_json:
        click.echo(report.model_dump_json(indent=2))
        return

    table = Table(title="Pattern Reuse")
    table.add_column("Pattern", style="cyan", max_width=40)
    table.add_column("Found", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Usage", justify="right")
    for check in report.checks:
        usage = f"{check.usage_percentage:.0f}%"
        if check.usage_percentage >= report.reuse_threshold:
            usage = f"[green]{usage}[/green]"
        table.add_row(
            check.pattern_name[:40],
            str(len(check.found_snippets)),
            str(check.total_snippets),
            usage,
        )
    console.print(table)
    if not report.meaningful_reuse:
        console.print(
            f"[yellow]No pattern reached {report.reuse_threshold:.0f}% reuse.[/yellow]"
        )


# =============================================================================
# Maintenance
# =============================================================================


@cli.command("cleanup")
@click.option(
    "--days",
    type=click.IntRange(min=1),
    help="Age cutoff in days. Defaults to ARTCADE_STALE_PATTERN_DAYS.",
)
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
def cmd_cleanup(days: int | None, yes: bool) -> None:
    """Delete never-used patterns older than --days."""
    days = days or get_settings().stale_pattern_days
    if not yes:
        click.confirm(
            f"Delete unused patterns last touched more than {days} days ago?", abort=True
        )
    deleted = run_with_store(lambda store: store.delete_stale_patterns(cutoff_days=days))
    console.print(f"[green]Deleted {deleted} stale patterns.[/green]")


@cli.command("health")
def cmd_health() -> None:
    """Check store and embedding provider connectivity."""

    async def action(store: PatternStore) -> tuple[bool, bool]:
        return await store.health_check(), await build_embedder().health_check()

    store_ok, embedder_ok = run_with_store(action)
    for name, ok in (("store", store_ok), ("embedding provider", embedder_ok)):
        status = "[green]ok[/green]" if ok else "[red]unavailable[/red]"
        console.print(f"{name}: {status}")
    if not (store_ok and embedder_ok):
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
