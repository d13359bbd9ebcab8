"""Log command - show the operation journal."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console

from ..audit_log import format_entry, read_operations


def run_log(root: Path, *, last_n: int | None = None, output_json: bool = False) -> int:
    entries = read_operations(root, last_n)

    if output_json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return 0

    if not entries:
        Console().print("No operations recorded.", style="yellow")
        return 0

    for entry in entries:
        print(format_entry(entry))
    return 0
