"""CLI entrypoint for artledger."""

import logging
import sys
from pathlib import Path
from typing import IO

import click

from . import __version__
from .config import CONFIG_DIRNAME, LOG_LEVELS, load_config
from .records import FORMATS, MESSAGE_ROLES
from .status import STATUSES


def _auto_detect_root(start: Path) -> Path:
    """Find the nearest directory holding ``.artledger`` by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if (p / CONFIG_DIRNAME).is_dir():
            return p
    return cur


def _configure_logging(level: str) -> None:
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _read_content(content: str | None, content_file: IO[str] | None) -> str:
    if content is not None and content_file is not None:
        raise click.UsageError("Pass either --content or --file, not both.")
    if content_file is not None:
        return content_file.read()
    if content is None:
        raise click.UsageError("Missing content: pass --content or --file.")
    return content


project_option = click.option(
    "--project",
    "-p",
    "project_id",
    type=str,
    default=None,
    help="Project id (defaults to default_project from config.toml)",
)
json_option = click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results as JSON",
)
content_options = [
    click.option("--content", "-c", type=str, default=None, help="Content text"),
    click.option(
        "--file",
        "-f",
        "content_file",
        type=click.File("r", encoding="utf-8"),
        default=None,
        help="Read content from a file ('-' for stdin)",
    ),
]


def with_content(func):
    for option in reversed(content_options):
        func = option(func)
    return func


@click.group()
@click.version_option(__version__, prog_name="artledger")
@click.option(
    "--root",
    "-r",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Workspace root holding .artledger/ (defaults to auto-detected)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level (defaults to log_level from config.toml)",
)
@click.pass_context
def cli(ctx: click.Context, root: Path | None, log_level: str | None) -> None:
    """artledger - Versioned, status-gated artifact store.

    Create artifacts from generation results, edit them with whole-content
    updates or structural ops, and track their lifecycle and sources.
    """
    ctx.ensure_object(dict)
    if root is None:
        root = _auto_detect_root(Path.cwd())
    elif not root.is_dir():
        raise click.BadParameter(f"Directory '{root}' does not exist.", param_hint="--root / -r")

    try:
        config = load_config(root)
    except ValueError as e:
        raise click.ClickException(f"Invalid config: {e}")

    _configure_logging((log_level or config.log_level).upper())
    ctx.obj["root"] = root.resolve()


@cli.command("create")
@click.argument("artifact_key")
@project_option
@click.option("--type", "artifact_type", required=True, help="Artifact type (e.g. diagram, table, prose)")
@click.option("--title", required=True, help="Human-readable title")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(sorted(FORMATS)),
    default="freeform-text",
    show_default=True,
    help="Content format",
)
@with_content
@json_option
@click.pass_context
def create(
    ctx: click.Context,
    artifact_key: str,
    project_id: str | None,
    artifact_type: str,
    title: str,
    fmt: str,
    content: str | None,
    content_file: IO[str] | None,
    output_json: bool,
) -> None:
    """Create an artifact under ARTIFACT_KEY.

    Examples:

        artledger create plot-map -p novel --type diagram --title "Plot" --format structured -f plot.json
    """
    from .commands.artifact_cmd import run_create

    exit_code = run_create(
        ctx.obj["root"],
        project_id,
        artifact_key,
        artifact_type=artifact_type,
        title=title,
        fmt=fmt,
        content=_read_content(content, content_file),
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command("from-execution")
@click.argument("execution_id")
@project_option
@click.option("--type", "artifact_type", required=True, help="Artifact type")
@click.option("--title", required=True, help="Human-readable title")
@json_option
@click.pass_context
def from_execution(
    ctx: click.Context,
    execution_id: str,
    project_id: str | None,
    artifact_type: str,
    title: str,
    output_json: bool,
) -> None:
    """Create (or find) the artifact for an execution result.

    Idempotent: running it twice returns the same artifact.
    """
    from .commands.artifact_cmd import run_from_execution

    exit_code = run_from_execution(
        ctx.obj["root"],
        project_id,
        execution_id,
        title=title,
        artifact_type=artifact_type,
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command("update")
@click.argument("artifact_key")
@project_option
@click.option(
    "--format",
    "fmt",
    type=click.Choice(sorted(FORMATS)),
    default=None,
    help="New content format (defaults to the current one)",
)
@with_content
@json_option
@click.pass_context
def update(
    ctx: click.Context,
    artifact_key: str,
    project_id: str | None,
    fmt: str | None,
    content: str | None,
    content_file: IO[str] | None,
    output_json: bool,
) -> None:
    """Replace the content of an artifact (appends a version)."""
    from .commands.artifact_cmd import run_update

    exit_code = run_update(
        ctx.obj["root"],
        project_id,
        artifact_key,
        _read_content(content, content_file),
        fmt=fmt,
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command("apply-op")
@click.argument("artifact_key")
@click.argument("op_json")
@project_option
@click.option("--base-rev", type=int, default=None, help="Envelope revision the op was derived from")
@json_option
@click.pass_context
def apply_op(
    ctx: click.Context,
    artifact_key: str,
    op_json: str,
    project_id: str | None,
    base_rev: int | None,
    output_json: bool,
) -> None:
    """Apply a structural operation to a structured artifact.

    Examples:

        artledger apply-op plot-map '{"type": "node.add", "node": {"id": "n2"}}'
    """
    from .commands.artifact_cmd import run_apply_op

    exit_code = run_apply_op(
        ctx.obj["root"],
        project_id,
        artifact_key,
        op_json,
        base_rev=base_rev,
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command("status")
@click.argument("artifact_key")
@click.argument("status", type=click.Choice(STATUSES))
@project_option
@click.option("--document", "document_id", default=None, help="Document the artifact was applied to")
@click.option("--entity", "entity_id", default=None, help="Entity the artifact was saved to")
@json_option
@click.pass_context
def status(
    ctx: click.Context,
    artifact_key: str,
    status: str,
    project_id: str | None,
    document_id: str | None,
    entity_id: str | None,
    output_json: bool,
) -> None:
    """Move an artifact to STATUS."""
    from .commands.artifact_cmd import run_status

    context = {}
    if document_id:
        context["applied_to_document_id"] = document_id
    if entity_id:
        context["saved_to_entity_id"] = entity_id

    exit_code = run_status(
        ctx.obj["root"],
        project_id,
        artifact_key,
        status,
        context=context or None,
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.group()
def sources() -> None:
    """Manually attach or detach artifact sources."""
    pass


@sources.command("add")
@click.argument("artifact_key")
@click.argument("source", nargs=-1, required=True)
@project_option
@json_option
@click.pass_context
def sources_add(
    ctx: click.Context,
    artifact_key: str,
    source: tuple[str, ...],
    project_id: str | None,
    output_json: bool,
) -> None:
    """Attach SOURCE(s) given as type:id (document, entity, memory)."""
    from .commands.artifact_cmd import run_sources

    exit_code = run_sources(ctx.obj["root"], project_id, artifact_key, add=source, output_json=output_json)
    sys.exit(exit_code)


@sources.command("remove")
@click.argument("artifact_key")
@click.argument("source", nargs=-1, required=True)
@project_option
@json_option
@click.pass_context
def sources_remove(
    ctx: click.Context,
    artifact_key: str,
    source: tuple[str, ...],
    project_id: str | None,
    output_json: bool,
) -> None:
    """Detach SOURCE(s) given as type:id."""
    from .commands.artifact_cmd import run_sources

    exit_code = run_sources(ctx.obj["root"], project_id, artifact_key, remove=source, output_json=output_json)
    sys.exit(exit_code)


@cli.command("staleness")
@click.argument("artifact_key")
@project_option
@json_option
@click.pass_context
def staleness(ctx: click.Context, artifact_key: str, project_id: str | None, output_json: bool) -> None:
    """Check whether an artifact's sources changed since it was built."""
    from .commands.artifact_cmd import run_staleness

    sys.exit(run_staleness(ctx.obj["root"], project_id, artifact_key, output_json=output_json))


@cli.command("show")
@click.argument("artifact_key")
@project_option
@click.option("--messages", "message_limit", type=int, default=None, help="Max messages to include")
@click.option("--after", "message_cursor", default=None, help="Message cursor from a previous page")
@json_option
@click.pass_context
def show(
    ctx: click.Context,
    artifact_key: str,
    project_id: str | None,
    message_limit: int | None,
    message_cursor: str | None,
    output_json: bool,
) -> None:
    """Show an artifact with its history."""
    from .commands.artifact_cmd import run_show

    exit_code = run_show(
        ctx.obj["root"],
        project_id,
        artifact_key,
        message_limit=message_limit,
        message_cursor=message_cursor,
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command("list")
@project_option
@click.option("--type", "artifact_type", default=None, help="Filter by artifact type")
@click.option("--status", type=click.Choice(STATUSES), default=None, help="Filter by status")
@click.option("--limit", type=int, default=None, help="Max artifacts to list")
@click.option("--cursor", default=None, help="Cursor from a previous page")
@json_option
@click.pass_context
def list_cmd(
    ctx: click.Context,
    project_id: str | None,
    artifact_type: str | None,
    status: str | None,
    limit: int | None,
    cursor: str | None,
    output_json: bool,
) -> None:
    """List artifacts, most recently updated first."""
    from .commands.artifact_cmd import run_list

    exit_code = run_list(
        ctx.obj["root"],
        project_id,
        artifact_type=artifact_type,
        status=status,
        limit=limit,
        cursor=cursor,
        output_json=output_json,
    )
    sys.exit(exit_code)


@cli.command("message")
@click.argument("artifact_key")
@click.argument("content")
@project_option
@click.option("--role", type=click.Choice(sorted(MESSAGE_ROLES)), default="user", show_default=True)
@click.pass_context
def message(ctx: click.Context, artifact_key: str, content: str, project_id: str | None, role: str) -> None:
    """Attach a conversational message to an artifact."""
    from .commands.artifact_cmd import run_message

    sys.exit(run_message(ctx.obj["root"], project_id, artifact_key, role, content))


@cli.command("diff")
@click.argument("artifact_key")
@click.argument("from_version", type=int)
@click.argument("to_version", type=int)
@project_option
@click.pass_context
def diff(ctx: click.Context, artifact_key: str, from_version: int, to_version: int, project_id: str | None) -> None:
    """Show a unified diff between two versions."""
    from .commands.artifact_cmd import run_diff

    sys.exit(run_diff(ctx.obj["root"], project_id, artifact_key, from_version, to_version))


if __name__ == "__main__":
    cli()
