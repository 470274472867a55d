"""
deepproxy CLI

Command-line interface for inspecting how a document is observed
through a deep proxy and for tracing mediated edits.
"""

import fnmatch
import logging
from pathlib import Path
from typing import Any

import structlog
import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from deepproxy.config import get_settings
from deepproxy.proxy.deep_proxy import DeepProxy
from deepproxy.proxy.models import (
    ProxyEvent,
    ProxyHandler,
    ProxyOperationType,
    ProxyOptions,
)
from deepproxy.proxy.policy_engine import PolicyEvaluator
from deepproxy.proxy.wrappers import MappingProxy, SequenceProxy, unwrap

app = typer.Typer(
    name="deepproxy",
    help="Deep object graph interception toolkit",
    add_completion=False,
)

console = Console()


@app.callback()
def main():
    """Configure logging from the environment settings."""
    settings = get_settings()
    level = "DEBUG" if settings.debug else settings.log_level
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
    )


def load_document(path: Path) -> Any:
    """Load a YAML or JSON document."""
    if not path.exists():
        raise FileNotFoundError(f"Document not found: {path}")
    with open(path) as f:
        return yaml.safe_load(f)


def build_options(
    policy: str | None,
    max_depth: int | None,
    proxy_arrays: bool = False,
) -> ProxyOptions:
    """Options from a policy file or the settings, with CLI overrides."""
    settings = get_settings()
    if policy:
        options = PolicyEvaluator.from_file(settings.policy_file(policy)).options
    else:
        options = ProxyOptions.from_settings(settings)

    overrides: dict[str, Any] = {}
    if max_depth is not None:
        overrides["max_depth"] = max_depth
    if proxy_arrays:
        overrides["proxy_arrays"] = True
    return options.model_copy(update=overrides) if overrides else options


def walk(node: Any, seen: set[int] | None = None) -> None:
    """Read every reachable value through the proxy."""
    seen = set() if seen is None else seen
    marker = id(unwrap(node))
    if marker in seen:
        return
    seen.add(marker)

    if isinstance(node, MappingProxy):
        for key in list(node):
            walk(node[key], seen)
    elif isinstance(node, SequenceProxy):
        for index in range(len(node)):
            walk(node[index], seen)


def _key_for(node: Any, segment: str) -> Any:
    if isinstance(node, (SequenceProxy, list, tuple)):
        return int(segment)
    return segment


def resolve_parent(root: Any, dotted: str) -> tuple[Any, Any]:
    """Container holding the last segment of a dotted path, and that key."""
    segments = dotted.split(".")
    node = root
    for segment in segments[:-1]:
        node = node[_key_for(node, segment)]
    return node, _key_for(node, segments[-1])


def _parse_assignment(assignment: str) -> tuple[str, Any]:
    if "=" not in assignment:
        raise typer.BadParameter(f"Expected PATH=VALUE, got: {assignment}")
    dotted, raw_value = assignment.split("=", 1)
    return dotted.strip(), yaml.safe_load(raw_value)


def _events_table(events: list[ProxyEvent]) -> Table:
    table = Table(title="Intercepted Operations")
    table.add_column("Operation", style="cyan")
    table.add_column("Path")
    table.add_column("Value")
    table.add_column("Wrapped")
    table.add_column("Allowed")

    for event in events:
        table.add_row(
            event.operation.value,
            ".".join(event.path),
            event.value_type or "-",
            "yes" if event.wrapped else "-",
            "[green]yes[/green]" if event.allowed else "[red]vetoed[/red]",
        )
    return table


@app.command()
def paths(
    document: Path = typer.Argument(..., help="YAML or JSON document"),
    policy: str = typer.Option(None, "--policy", "-p", help="Policy file or name"),
    max_depth: int = typer.Option(None, "--max-depth", "-d", help="Maximum wrapping depth"),
    proxy_arrays: bool = typer.Option(False, "--proxy-arrays", help="Wrap lists"),
):
    """
    Show the path of every node that gets a wrapper.

    Examples:
        deepproxy paths save.yaml
        deepproxy paths save.yaml --max-depth 2 --proxy-arrays
    """
    try:
        data = load_document(document)
        options = build_options(policy, max_depth, proxy_arrays)
    except (FileNotFoundError, yaml.YAMLError, ValidationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    deep = DeepProxy(data, options=options)
    wrapped: list[tuple[str, str]] = []

    def collect(event: ProxyEvent) -> None:
        if event.wrapped:
            wrapped.append((".".join(event.path), event.value_type or "-"))

    deep.engine.event_callback = collect
    root = deep.create()
    walk(root)

    table = Table(title=f"Wrapped Nodes ({options.name})")
    table.add_column("Path", style="cyan")
    table.add_column("Type")
    if deep.is_proxied(root):
        table.add_row("<root>", type(data).__name__)
    for path, type_name in wrapped:
        table.add_row(path, type_name)

    console.print(table)
    console.print(f"\n[dim]Wrappers: {deep.stats['wrap_count']}[/dim]")


@app.command()
def trace(
    document: Path = typer.Argument(..., help="YAML or JSON document"),
    assignments: list[str] = typer.Option(None, "--set", "-s", help="PATH=VALUE to assign"),
    deletions: list[str] = typer.Option(None, "--delete", "-x", help="PATH to delete"),
    protect: list[str] = typer.Option(None, "--protect", help="Glob of paths that reject edits"),
    policy: str = typer.Option(None, "--policy", "-p", help="Policy file or name"),
    max_depth: int = typer.Option(None, "--max-depth", "-d", help="Maximum wrapping depth"),
    proxy_arrays: bool = typer.Option(False, "--proxy-arrays", help="Wrap lists"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the edited document here"),
):
    """
    Apply edits through a deep proxy and show what was intercepted.

    Examples:
        deepproxy trace save.yaml -s player.hp=7 -x player.buffs
        deepproxy trace save.yaml -s meta.version=2 --protect "meta.*"
    """
    try:
        data = load_document(document)
        options = build_options(policy, max_depth, proxy_arrays)
        edits = [_parse_assignment(a) for a in assignments or []]
    except (FileNotFoundError, yaml.YAMLError, ValidationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    patterns = list(protect or [])

    def editable(target: Any, key: Any) -> bool:
        dotted = ".".join([*(deep.get_path(target) or []), str(key)])
        return not any(fnmatch.fnmatchcase(dotted, p) for p in patterns)

    handler = ProxyHandler(
        on_write=lambda target, key, value: editable(target, key),
        on_delete=editable,
    )
    events: list[ProxyEvent] = []
    deep = DeepProxy(data, handler, options, event_callback=events.append)
    root = deep.create()

    try:
        for dotted, value in edits:
            parent, key = resolve_parent(root, dotted)
            parent[key] = value
        for dotted in deletions or []:
            parent, key = resolve_parent(root, dotted)
            del parent[key]
    except (LookupError, TypeError, ValueError) as e:
        console.print(f"[red]Error: cannot edit document: {e}[/red]")
        raise typer.Exit(1)

    edits_only = [e for e in events if e.operation != ProxyOperationType.READ]
    console.print(_events_table(edits_only))

    stats = deep.stats
    console.print(Panel.fit(
        f"Operations: {stats['operation_count']}\n"
        f"Vetoed: {stats['blocked_count']}\n"
        f"Wrappers: {stats['wrap_count']}",
        title="Trace Summary"
    ))

    if output:
        output.write_text(yaml.safe_dump(data, sort_keys=False))
        console.print(f"\n[dim]Document saved to: {output}[/dim]")


@app.command()
def validate(
    policy: Path = typer.Argument(..., help="Policy file to validate"),
):
    """Validate a policy file."""
    try:
        evaluator = PolicyEvaluator.from_file(policy)
    except FileNotFoundError:
        console.print(f"[red]✗ {policy}: File not found[/red]")
        raise typer.Exit(1)
    except yaml.YAMLError as e:
        console.print(f"[red]✗ {policy}: Invalid YAML - {e}[/red]")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print(f"[red]✗ {policy}: Invalid policy - {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ {policy}: Valid policy '{evaluator.options.name}'[/green]")


@app.command()
def version():
    """Show version information."""
    from deepproxy import __version__
    console.print(f"deepproxy v{__version__}")


if __name__ == "__main__":
    app()
