"""Search command."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..composer import format_token_count
from ..search import build_items, search
from ..settings import load_settings
from ..store.store import Store


def run_search(root: Path, query: str, *, limit: int = 1000, output_json: bool = False) -> int:
    store = Store(root)
    results = search(query, build_items(store, load_settings(root)), limit=limit)

    if output_json:
        data = {
            "query": query,
            "prompts": [i.to_dict() for i in results.prompts],
            "contexts": [i.to_dict() for i in results.contexts],
            "rules": [i.to_dict() for i in results.rules],
            "pipelines": [i.to_dict() for i in results.pipelines],
        }
        print(json.dumps(data, indent=2))
        return 0

    console = Console()
    if not len(results):
        console.print(f"No results for '{escape(query)}'", style="yellow", highlight=False)
        return 0

    table = Table(title=f"Search: {escape(query)}")
    table.add_column("Name", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Tags")
    table.add_column("Tokens", justify="right")
    table.add_column("Path", style="dim")
    for item in results.all():
        name = escape(item.name) + (" [dim](archived)[/]" if item.archived else "")
        table.add_row(
            name,
            item.kind,
            escape(", ".join(item.tags)),
            format_token_count(item.token_count),
            escape(item.path),
        )
    console.print(table)
    return 0
