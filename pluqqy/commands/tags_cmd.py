"""Tag commands: list, add, remove, delete, reload."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from ..operations import OperationService
from ..tags.usage import all_tag_usage
from .common import resolve_item


def run_tags_list(root: Path, *, output_json: bool = False) -> int:
    with OperationService(root) as service:
        tags = service.registry.list_tags()
        usage = all_tag_usage(service.store)

    rows = [
        {
            "name": tag.name,
            "display_name": tag.display_name,
            "color": tag.color,
            "components": usage[tag.name].component_count if tag.name in usage else 0,
            "pipelines": usage[tag.name].pipeline_count if tag.name in usage else 0,
        }
        for tag in tags
    ]
    unregistered = sorted(name for name in usage if name not in {tag.name for tag in tags})

    if output_json:
        print(json.dumps({"tags": rows, "unregistered": unregistered}, indent=2))
        return 0

    console = Console()
    if not rows:
        console.print("No tags registered.", style="yellow")
    else:
        table = Table(title="Tags")
        table.add_column("Tag")
        table.add_column("Display name")
        table.add_column("Components", justify="right")
        table.add_column("Pipelines", justify="right")
        for row in rows:
            table.add_row(
                f"[{row['color']}]{escape(row['name'])}[/]",
                escape(row["display_name"]),
                str(row["components"]),
                str(row["pipelines"]),
            )
        console.print(table)

    if unregistered:
        console.print(
            f"Tags in use but not registered: {escape(', '.join(unregistered))} (run 'pluqqy tags reload')",
            style="yellow",
            highlight=False,
        )
    return 0


def _edit(root: Path, ref: str, add: list[str], remove: list[str]) -> int:
    console = Console()
    with OperationService(root) as service:
        session = service.edit_tags(resolve_item(service.store, ref))
        for name in add:
            if not session.add(name):
                console.print(f"'{escape(name)}' is already on {escape(session.path)}", style="dim", highlight=False)
        for name in remove:
            if not session.remove(name):
                console.print(f"'{escape(name)}' is not on {escape(session.path)}", style="dim", highlight=False)
        if not session.dirty:
            console.print("No changes.", style="yellow")
            return 0
        result = session.commit(schedule=service.schedule)
        swept = result.sweep.result() if result.sweep is not None else []

    for message in result.messages:
        console.print(escape(message), highlight=False)
    if swept:
        console.print(f"Removed unused tag(s) from registry: {escape(', '.join(swept))}", style="dim", highlight=False)
    return 0


def run_tags_add(root: Path, ref: str, names: list[str]) -> int:
    return _edit(root, ref, add=names, remove=[])


def run_tags_remove(root: Path, ref: str, names: list[str]) -> int:
    return _edit(root, ref, add=[], remove=names)


def run_tags_delete(root: Path, tag: str) -> int:
    """Strip a tag from every file (active and archived) and unregister it."""
    console = Console()
    with OperationService(root) as service:
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=Console(stderr=True),
            transient=True,
        ) as progress:
            task = progress.add_task(f"Removing '{escape(tag)}'", total=None)

            def report(current: str, scanned: int, total: int) -> None:
                progress.update(task, completed=scanned, total=total)

            result = service.delete_tag_now(tag, progress=report)

    for message in result.messages:
        console.print(escape(message), highlight=False)
    for path, error in result.errors.items():
        console.print(f"  {escape(path)}: {escape(error)}", style="red", highlight=False)
    return 1 if result.errors else 0


def run_tags_reload(root: Path, *, output_json: bool = False) -> int:
    with OperationService(root) as service:
        report = service.reload_tags()

    if output_json:
        print(
            json.dumps(
                {
                    "components_scanned": report.components_scanned,
                    "pipelines_scanned": report.pipelines_scanned,
                    "new_tags": report.new_tags,
                    "failed_files": report.failed_files,
                },
                indent=2,
            )
        )
        return 0

    console = Console()
    console.print(
        f"Scanned {report.components_scanned} component(s) and {report.pipelines_scanned} pipeline(s)",
        highlight=False,
    )
    if report.new_tags:
        console.print(f"New tags: {escape(', '.join(report.new_tags))}", style="green", highlight=False)
    else:
        console.print("No new tags.", style="dim")
    for path, error in report.failed_files.items():
        console.print(f"  failed: {escape(path)}: {escape(error)}", style="red", highlight=False)
    return 0
