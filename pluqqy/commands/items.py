"""Item commands: init, list, show, archive, restore, delete, clone, rename, usage."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..composer import compose_pipeline, estimate_tokens, format_token_count
from ..models import COMPONENT_KINDS, KIND_LABELS, Component, normalize_kind
from ..operations import OperationService
from ..settings import load_settings, save_settings, settings_path
from ..store.references import count_component_usage, find_referring_pipelines
from ..store.store import Store
from .common import resolve_item


def _print_messages(console: Console, messages: list[str]) -> None:
    for message in messages:
        console.print(escape(message), highlight=False)


def run_init(root: Path) -> int:
    console = Console()
    store = Store(root)
    created = store.init()
    if not settings_path(root).exists():
        save_settings(root, load_settings(root))
    if created:
        console.print(f"Initialised pluqqy repository in {escape(str(root))}", style="green")
    else:
        console.print(f"Repository already initialised at {escape(str(root))}", style="dim")
    return 0


def _list_rows(store: Store, archived: bool, kind: str | None) -> list[dict]:
    rows = []
    if kind != "pipeline":
        kinds = [normalize_kind(kind)] if kind else list(COMPONENT_KINDS)
        usage = count_component_usage(store)
        for k in kinds:
            for path in store.component_paths(archived=archived, kind=k):
                component = store.read_component(path)
                rows.append(
                    {
                        "name": component.name,
                        "kind": KIND_LABELS[component.kind],
                        "path": path,
                        "tags": component.tags,
                        "tokens": estimate_tokens(component.body),
                        "usage": usage.get(path, 0),
                    }
                )
    if kind in (None, "pipeline"):
        for path in store.pipeline_paths(archived=archived):
            pipeline = store.read_pipeline(path)
            rows.append(
                {
                    "name": pipeline.name,
                    "kind": "pipeline",
                    "path": path,
                    "tags": pipeline.tags,
                    "tokens": None,
                    "usage": len(pipeline.components),
                }
            )
    return rows


def run_list(root: Path, *, archived: bool = False, kind: str | None = None, output_json: bool = False) -> int:
    console = Console()
    store = Store(root)
    rows = _list_rows(store, archived, kind)

    if output_json:
        print(json.dumps(rows, indent=2))
        return 0

    if not rows:
        console.print("No archived items." if archived else "No items found.", style="yellow")
        return 0

    table = Table(title="Archived items" if archived else "Items")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Tags")
    table.add_column("Tokens", justify="right")
    table.add_column("Used / refs", justify="right")
    table.add_column("Path", style="dim")
    for row in rows:
        table.add_row(
            escape(row["name"]),
            row["kind"],
            escape(", ".join(row["tags"])),
            format_token_count(row["tokens"]) if row["tokens"] is not None else "",
            str(row["usage"]),
            escape(row["path"]),
        )
    console.print(table)
    return 0


def run_show(root: Path, ref: str, *, metadata: bool = False, output_json: bool = False) -> int:
    store = Store(root)
    path = resolve_item(store, ref)
    item = store.read_item(path)

    if isinstance(item, Component):
        text = item.body
        info = {"name": item.name, "kind": KIND_LABELS[item.kind], "path": path, "tags": item.tags, "archived": item.archived}
    else:
        text = compose_pipeline(store, item, load_settings(root)).text
        info = {"name": item.name, "kind": "pipeline", "path": path, "tags": item.tags, "archived": item.archived}
        info["components"] = [r.to_dict() for r in item.sorted_components()]

    if output_json:
        print(json.dumps({**info, "content": text, "tokens": estimate_tokens(text)}, indent=2))
        return 0

    if metadata:
        console = Console()
        console.print(f"[bold]Name:[/] {escape(item.name)}", highlight=False)
        console.print(f"[bold]Kind:[/] {info['kind']}", highlight=False)
        console.print(f"[bold]Path:[/] {escape(path)}", highlight=False)
        console.print(f"[bold]Tags:[/] {escape(', '.join(item.tags)) or '-'}", highlight=False)
        console.print(f"[bold]Tokens:[/] {format_token_count(estimate_tokens(text))}", highlight=False)
        console.print()
    print(text, end="" if text.endswith("\n") else "\n")
    return 0


def run_archive(root: Path, ref: str) -> int:
    with OperationService(root) as service:
        result = service.archive(resolve_item(service.store, ref, archived=False))
    _print_messages(Console(), result.messages)
    return 0


def run_restore(root: Path, ref: str) -> int:
    with OperationService(root) as service:
        result = service.unarchive(resolve_item(service.store, ref, archived=True))
    _print_messages(Console(), result.messages)
    return 0


def run_delete(root: Path, ref: str, *, remove_references: bool = False) -> int:
    with OperationService(root) as service:
        result = service.delete(resolve_item(service.store, ref), remove_references=remove_references)
    _print_messages(Console(), result.messages)
    return 0


def run_clone(root: Path, ref: str, new_name: str, *, to_archive: bool = False) -> int:
    with OperationService(root) as service:
        result = service.clone(resolve_item(service.store, ref), new_name, to_archive=to_archive)
    _print_messages(Console(), result.messages)
    return 0


def run_rename(root: Path, ref: str, new_name: str) -> int:
    with OperationService(root) as service:
        result = service.rename(resolve_item(service.store, ref), new_name)
    _print_messages(Console(), result.messages)
    return 0


def run_usage(root: Path, ref: str | None = None, *, output_json: bool = False) -> int:
    """Show which pipelines use a component, or usage counts for all components."""
    console = Console()
    store = Store(root)

    if ref:
        path = resolve_item(store, ref)
        pipelines = find_referring_pipelines(store, path)
        if output_json:
            print(json.dumps({"component": path, "pipelines": pipelines}, indent=2))
            return 0
        if not pipelines:
            console.print(f"{escape(path)} is not used by any pipeline", style="yellow")
            return 0
        console.print(f"{escape(path)} is used by {len(pipelines)} pipeline(s):", highlight=False)
        for pipeline_path in pipelines:
            console.print(f"  {escape(pipeline_path)}", highlight=False)
        return 0

    counts = count_component_usage(store)
    rows = [{"path": path, "pipelines": counts.get(path, 0)} for path in store.component_paths()]
    if output_json:
        print(json.dumps(rows, indent=2))
        return 0

    table = Table(title="Component usage")
    table.add_column("Component", style="cyan")
    table.add_column("Pipelines", justify="right")
    for row in rows:
        style = "dim" if not row["pipelines"] else None
        table.add_row(escape(row["path"]), str(row["pipelines"]), style=style)
    console.print(table)
    return 0
