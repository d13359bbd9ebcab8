"""Export command - compose a pipeline to its output file or stdout."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from ..composer import (
    compose_component,
    compose_pipeline,
    estimate_tokens,
    format_token_count,
    token_limit_status,
    write_composed_output,
)
from ..models import Component
from ..settings import load_settings
from ..store.store import Store
from .common import resolve_item

_STATUS_STYLE = {"good": "green", "warning": "yellow", "danger": "red"}


def run_export(
    root: Path,
    ref: str,
    *,
    out_file: Path | None = None,
    to_stdout: bool = False,
    output_json: bool = False,
) -> int:
    """Compose a pipeline (or a single component) and write it out.

    Without ``--file`` or ``--stdout`` a pipeline goes to its own output path,
    or to the configured export path.
    """
    err = Console(stderr=True)
    store = Store(root)
    settings = load_settings(root)
    item = store.read_item(resolve_item(store, ref))

    broken: list[str] = []
    if isinstance(item, Component):
        text = compose_component(item, settings)
    else:
        composition = compose_pipeline(store, item, settings)
        text, broken = composition.text, composition.broken_references

    for path in broken:
        err.print(f"missing component: {escape(path)}", style="yellow")

    if to_stdout:
        print(text, end="")
        return 0

    if out_file is not None:
        target = out_file if out_file.is_absolute() else Path.cwd() / out_file
        store.write_text(target, text)
    elif isinstance(item, Component):
        err.print("Components can only be exported with --file or --stdout", style="bold red")
        return 1
    else:
        target = write_composed_output(store, text, item, settings)

    tokens = estimate_tokens(text)
    if output_json:
        print(json.dumps({"path": str(target), "tokens": tokens, "broken_references": broken}, indent=2))
        return 0

    percentage, limit, status = token_limit_status(tokens)
    Console().print(
        f"Exported {escape(item.name)} to {escape(str(target))} "
        f"([{_STATUS_STYLE[status]}]~{format_token_count(tokens)} tokens, {percentage}% of {format_token_count(limit)}[/])",
        highlight=False,
    )
    return 0
