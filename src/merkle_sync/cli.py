"""CLI for merkle-sync."""

import json
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import MSYNC_DIR, __version__
from .collection_file import load_collection, save_collection
from .compare import find_divergent_nodes_at_level, trace_descent
from .config import (
    SyncConfig,
    create_default_config,
    get_msync_dir,
    load_config,
    save_config,
)
from .differ import diff_leaves
from .errors import MerkleSyncError
from .hasher import short_label
from .merkle import MerkleTree, root_fingerprint, tree_stats
from .models import Divergence, EditKind, Record
from .reconcile import apply_edit_script
from .session import SyncSession

console = Console()
error_console = Console(stderr=True)

EVENT_STYLES = {
    "info": "cyan",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}

EDIT_STYLES = {
    EditKind.MODIFIED: "yellow",
    EditKind.ADDED: "green",
    EditKind.DELETED: "red",
}


def get_project_root() -> Path:
    """Get the project root directory (current working directory)."""
    return Path.cwd()


def configure_logging(config: SyncConfig, verbose: bool) -> None:
    """Route library logging through rich."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def fail(message: str) -> None:
    """Print an error and exit with status 1."""
    error_console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(1)


def load_trees(
    config: SyncConfig, source_path: Path, replica_path: Path
) -> tuple[tuple[Record, ...], tuple[Record, ...], MerkleTree | None, MerkleTree | None]:
    """Load both collection files and build their trees."""
    try:
        source = load_collection(source_path)
        replica = load_collection(replica_path)
        source_tree = MerkleTree.build(source, config.canonical_order)
        replica_tree = MerkleTree.build(replica, config.canonical_order)
    except MerkleSyncError as e:
        fail(str(e))
    return source, replica, source_tree, replica_tree


@click.group()
@click.version_option(version=__version__, prog_name="msync")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """merkle-sync - Reconcile keyed collections with Merkle trees."""
    try:
        config = load_config(get_project_root())
    except (json.JSONDecodeError, ValidationError) as e:
        fail(f"Invalid configuration: {e}")
    configure_logging(config, verbose)
    ctx.obj = config


@main.command()
@click.option(
    "--canonical-order",
    is_flag=True,
    help="Sort leaves by key before building trees",
)
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite existing configuration",
)
def init(canonical_order: bool, force: bool) -> None:
    """Write a default configuration for the current project."""
    project_root = get_project_root()
    msync_dir = get_msync_dir(project_root)

    if msync_dir.exists() and not force:
        error_console.print(
            f"[yellow]Warning:[/yellow] {MSYNC_DIR}/ already exists. Use --force to reinitialize."
        )
        sys.exit(1)

    config = create_default_config(canonical_order)
    save_config(config, project_root)

    console.print(
        Panel(
            f"[green]Initialized merkle-sync[/green]\n\n"
            f"Canonical leaf order: [bold]{config.canonical_order}[/bold]\n"
            f"Config directory: [dim]{escape(str(msync_dir))}[/dim]",
            title="msync init",
        )
    )


@main.command()
@click.argument("collection", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def stats(config: SyncConfig, collection: Path) -> None:
    """Show tree statistics for a collection file."""
    try:
        records = load_collection(collection)
        tree = MerkleTree.build(records, config.canonical_order)
    except MerkleSyncError as e:
        fail(str(e))

    tree_info = tree_stats(tree, config.label_length)

    table = Table(title=f"Tree: {escape(collection.name)}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Records", str(len(records)))
    table.add_row("Nodes", str(tree_info.node_count))
    table.add_row("Height", str(tree_info.height))
    table.add_row("Root fingerprint", tree_info.root_fingerprint or "[dim]no tree[/dim]")

    console.print(table)


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("replica", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--level", "-l", type=click.IntRange(min=0), default=None, help="Compare a single level")
@click.pass_obj
def compare(config: SyncConfig, source: Path, replica: Path, level: int | None) -> None:
    """Compare two collections level by level from the root down."""
    _, _, source_tree, replica_tree = load_trees(config, source, replica)

    if level is not None:
        divergences = find_divergent_nodes_at_level(source_tree, replica_tree, level)
        _print_divergences(config, level, divergences)
        return

    trace = trace_descent(source_tree, replica_tree)
    if trace.roots_match:
        console.print("[green]Root hashes match! No synchronization needed.[/green]")
        return

    console.print(
        f"[yellow]Root hashes differ:[/yellow] "
        f"{short_label(root_fingerprint(source_tree), config.label_length)} vs "
        f"{short_label(root_fingerprint(replica_tree), config.label_length)}"
    )
    if not trace.congruent:
        console.print(
            "[yellow]Trees have different heights; level comparison is unreliable. "
            "Use [bold]msync diff[/bold] for an exact result.[/yellow]"
        )
    for report in trace.levels:
        _print_divergences(config, report.level, list(report.divergences))


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("replica", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print the edit script as JSON")
@click.pass_obj
def diff(config: SyncConfig, source: Path, replica: Path, as_json: bool) -> None:
    """Show the edit script that brings REPLICA in line with SOURCE."""
    _, _, source_tree, replica_tree = load_trees(config, source, replica)
    script = diff_leaves(source_tree, replica_tree)

    if as_json:
        click.echo(json.dumps(script.to_dict(), indent=2))
        return

    if script.is_empty:
        console.print("[green]Collections are in agreement.[/green]")
        return

    table = Table(title="Edit Script")
    table.add_column("Kind")
    table.add_column("Key", justify="right")
    table.add_column("Replica")
    table.add_column("Source")

    for edit in script:
        style = EDIT_STYLES[edit.kind]
        table.add_row(
            f"[{style}]{edit.kind.value}[/{style}]",
            escape(str(edit.key)),
            escape(edit.old_content or ""),
            escape(edit.new_content or ""),
        )

    console.print(table)


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("replica", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to write the reconciled replica",
)
@click.option("--in-place", is_flag=True, help="Overwrite REPLICA with the result")
@click.pass_obj
def reconcile(
    config: SyncConfig,
    source: Path,
    replica: Path,
    output: Path | None,
    in_place: bool,
) -> None:
    """Apply the diff to REPLICA and write the result."""
    if output is None and not in_place:
        fail("Pass --output or --in-place")
    if output is not None and in_place:
        fail("--output and --in-place are mutually exclusive")

    _, replica_records, source_tree, replica_tree = load_trees(config, source, replica)
    script = diff_leaves(source_tree, replica_tree)
    result = apply_edit_script(replica_records, script)

    for warning in result.warnings:
        error_console.print(f"[yellow]Warning:[/yellow] {escape(warning.message)}")

    target = replica if in_place else output
    save_collection(result.collection, target)

    rebuilt = MerkleTree.build(result.collection, config.canonical_order)
    remaining = diff_leaves(source_tree, rebuilt)

    console.print(
        f"Applied {result.applied} of {len(script)} edits to [bold]{escape(str(target))}[/bold]"
    )
    if remaining.is_empty:
        console.print("[green]Replica now matches source.[/green]")
    else:
        console.print(f"[red]{len(remaining)} differences remain.[/red]")
        sys.exit(1)


@main.command()
@click.pass_obj
def demo(config: SyncConfig) -> None:
    """Walk through a full sync on sample data."""
    session = SyncSession(config=config)
    session.generate_sample_data()
    session.create_differences()
    session.build_trees()

    if not session.compare_roots():
        while session.state.current_level:
            session.drill_down()
        session.identify_changes()
        session.sync_changes()

    for event in session.events:
        style = EVENT_STYLES[event.level]
        console.print(f"[{style}]{escape(event.message)}[/{style}]")

    table = Table(title="Trees")
    table.add_column("Tree", style="cyan")
    table.add_column("Nodes", justify="right")
    table.add_column("Height", justify="right")
    table.add_column("Root")
    for side, info in session.stats().items():
        table.add_row(side, str(info.node_count), str(info.height), info.root_label)
    console.print(table)


def _print_divergences(config: SyncConfig, level: int, divergences: list[Divergence]) -> None:
    if not divergences:
        console.print(f"Level {level}: [green]no mismatches[/green]")
        return
    console.print(f"Level {level}: [yellow]{len(divergences)} mismatched nodes[/yellow]")
    for item in divergences:
        console.print(
            f"  - path {item.path or '(root)'}: "
            f"{short_label(item.node_a.fingerprint, config.label_length)} vs "
            f"{short_label(item.node_b.fingerprint, config.label_length)}"
        )


if __name__ == "__main__":
    main()
