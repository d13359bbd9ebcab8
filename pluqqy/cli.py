"""CLI entrypoint for pluqqy."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .errors import PluqqyError
from .store.paths import PLUQQY_DIR


def _auto_detect_root(start: Path) -> Path | None:
    """Find a .pluqqy folder by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if p.is_dir() and p.name == PLUQQY_DIR:
            return p
        candidate = p / PLUQQY_DIR
        if candidate.is_dir():
            return candidate
    return None


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _run(fn, *args, **kwargs) -> None:
    """Call a command implementation, mapping pluqqy errors to a clean exit."""
    try:
        exit_code = fn(*args, **kwargs)
    except PluqqyError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@click.group()
@click.version_option(__version__, prog_name="pluqqy")
@click.option(
    "--root",
    "-r",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    envvar="PLUQQY_ROOT",
    help="Path to the .pluqqy repository (defaults to auto-detected ./.pluqqy)",
)
@click.option("--verbose", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, root: Path | None, verbose: bool) -> None:
    """pluqqy - compose LLM prompts from reusable components.

    Components (contexts, prompts, rules) are markdown files; pipelines are
    ordered lists of components composed into a single document.
    """
    _setup_logging(verbose)
    ctx.ensure_object(dict)

    if ctx.invoked_subcommand == "init":
        ctx.obj["root"] = (root or Path.cwd() / PLUQQY_DIR).resolve()
        return

    if root is None:
        detected = _auto_detect_root(Path.cwd())
        if detected is None:
            raise click.ClickException("No .pluqqy directory found. Run 'pluqqy init' first or pass --root.")
        root = detected

    if not root.exists() or not root.is_dir():
        raise click.BadParameter(f"Directory '{root}' does not exist.", param_hint="--root / -r")

    ctx.obj["root"] = root.resolve()


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create the .pluqqy directory layout and default settings."""
    from .commands.items import run_init

    _run(run_init, ctx.obj["root"])


@cli.command("list")
@click.option("--archived", "-a", is_flag=True, help="Show archived items instead of active ones")
@click.option(
    "--kind",
    "-k",
    type=click.Choice(["context", "prompt", "rules", "pipeline"]),
    default=None,
    help="Only list one kind of item",
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_items(ctx: click.Context, archived: bool, kind: str | None, output_json: bool) -> None:
    """List components and pipelines."""
    from .commands.items import run_list

    _run(run_list, ctx.obj["root"], archived=archived, kind=kind, output_json=output_json)


@cli.command()
@click.argument("item")
@click.option("--metadata", "-m", is_flag=True, help="Show name, kind, tags and token estimate")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def show(ctx: click.Context, item: str, metadata: bool, output_json: bool) -> None:
    """Display a component's content or a pipeline's composed output.

    Examples:

        pluqqy show cli-development

        pluqqy show prompts/user-story --metadata
    """
    from .commands.items import run_show

    _run(run_show, ctx.obj["root"], item, metadata=metadata, output_json=output_json)


@cli.command()
@click.argument("item")
@click.option(
    "--file",
    "-f",
    "out_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to this file instead of the configured output path",
)
@click.option("--stdout", "to_stdout", is_flag=True, help="Print the composed output instead of writing a file")
@click.option("--json", "output_json", is_flag=True, help="Report the written path as JSON")
@click.pass_context
def export(ctx: click.Context, item: str, out_file: Path | None, to_stdout: bool, output_json: bool) -> None:
    """Compose a pipeline and write the result.

    Examples:

        pluqqy export cli-development

        pluqqy export cli-development --stdout
    """
    from .commands.export_cmd import run_export

    _run(run_export, ctx.obj["root"], item, out_file=out_file, to_stdout=to_stdout, output_json=output_json)


@cli.command()
@click.argument("query")
@click.option("--limit", type=int, default=1000, show_default=True, help="Maximum number of results")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def search(ctx: click.Context, query: str, limit: int, output_json: bool) -> None:
    """Search components and pipelines.

    Filters: tag:, type:, status:, name:, content:, modified:. Prefix a
    filter with - to negate it; separate values with commas to match any.

    Examples:

        pluqqy search "tag:api type:prompt"

        pluqqy search "status:archived -tag:draft"
    """
    from .commands.search_cmd import run_search

    _run(run_search, ctx.obj["root"], query, limit=limit, output_json=output_json)


@cli.command()
@click.argument("item")
@click.pass_context
def archive(ctx: click.Context, item: str) -> None:
    """Move a component or pipeline into the archive."""
    from .commands.items import run_archive

    _run(run_archive, ctx.obj["root"], item)


@cli.command()
@click.argument("item")
@click.pass_context
def restore(ctx: click.Context, item: str) -> None:
    """Restore an archived component or pipeline."""
    from .commands.items import run_restore

    _run(run_restore, ctx.obj["root"], item)


@cli.command()
@click.argument("item")
@click.option(
    "--remove-references",
    is_flag=True,
    help="Also remove references to a deleted component from every pipeline",
)
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete(ctx: click.Context, item: str, remove_references: bool, yes: bool) -> None:
    """Delete a component or pipeline permanently."""
    from .commands.items import run_delete

    if not yes and not click.confirm(f"Delete '{item}'?"):
        raise click.Abort()
    _run(run_delete, ctx.obj["root"], item, remove_references=remove_references)


@cli.command()
@click.argument("item")
@click.argument("name")
@click.option("--to-archive", is_flag=True, help="Create the copy in the archive")
@click.pass_context
def clone(ctx: click.Context, item: str, name: str, to_archive: bool) -> None:
    """Copy a component or pipeline under a new name."""
    from .commands.items import run_clone

    _run(run_clone, ctx.obj["root"], item, name, to_archive=to_archive)


@cli.command()
@click.argument("item")
@click.argument("name")
@click.pass_context
def rename(ctx: click.Context, item: str, name: str) -> None:
    """Rename a component or pipeline, updating pipelines that reference it."""
    from .commands.items import run_rename

    _run(run_rename, ctx.obj["root"], item, name)


@cli.command()
@click.argument("item", required=False)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def usage(ctx: click.Context, item: str | None, output_json: bool) -> None:
    """Show which pipelines use a component (or counts for all components)."""
    from .commands.items import run_usage

    _run(run_usage, ctx.obj["root"], item, output_json=output_json)


@cli.command()
@click.option("--last", "last_n", type=int, default=None, help="Show only the last N operations")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def log(ctx: click.Context, last_n: int | None, output_json: bool) -> None:
    """Show the operation journal."""
    from .commands.log_cmd import run_log

    _run(run_log, ctx.obj["root"], last_n=last_n, output_json=output_json)


@cli.group()
def tags() -> None:
    """Tag registry commands."""
    pass


@tags.command("list")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def tags_list(ctx: click.Context, output_json: bool) -> None:
    """List registered tags with usage counts."""
    from .commands.tags_cmd import run_tags_list

    _run(run_tags_list, ctx.obj["root"], output_json=output_json)


@tags.command("add")
@click.argument("item")
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def tags_add(ctx: click.Context, item: str, names: tuple[str, ...]) -> None:
    """Add tags to a component or pipeline."""
    from .commands.tags_cmd import run_tags_add

    _run(run_tags_add, ctx.obj["root"], item, list(names))


@tags.command("remove")
@click.argument("item")
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def tags_remove(ctx: click.Context, item: str, names: tuple[str, ...]) -> None:
    """Remove tags from a component or pipeline."""
    from .commands.tags_cmd import run_tags_remove

    _run(run_tags_remove, ctx.obj["root"], item, list(names))


@tags.command("delete")
@click.argument("tag")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def tags_delete(ctx: click.Context, tag: str, yes: bool) -> None:
    """Remove a tag from every file, archived ones included, and unregister it."""
    from .commands.tags_cmd import run_tags_delete

    if not yes and not click.confirm(f"Remove tag '{tag}' from every component and pipeline?"):
        raise click.Abort()
    _run(run_tags_delete, ctx.obj["root"], tag)


@tags.command("reload")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def tags_reload(ctx: click.Context, output_json: bool) -> None:
    """Register every tag used by active components and pipelines."""
    from .commands.tags_cmd import run_tags_reload

    _run(run_tags_reload, ctx.obj["root"], output_json=output_json)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
