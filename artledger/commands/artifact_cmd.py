"""Artifact CLI commands."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from ..engine import ArtifactEngine
from ..errors import ArtifactError
from ..records import Artifact
from ..sources import STALENESS_FRESH, STALENESS_MISSING, STALENESS_STALE

_STALENESS_STYLE = {
    STALENESS_FRESH: "green",
    STALENESS_STALE: "yellow",
    STALENESS_MISSING: "red",
}


def _engine(root: Path) -> ArtifactEngine:
    return ArtifactEngine.open(root)


def _fail(err: ArtifactError) -> int:
    Console(stderr=True).print(f"{err.code}: {err.message}", style="bold red", markup=False)
    return 1


def _project(engine: ArtifactEngine, project_id: str | None) -> str | None:
    project_id = project_id or engine.config.default_project
    if not project_id:
        Console(stderr=True).print(
            "No project given. Pass --project or set default_project in .artledger/config.toml",
            style="bold red",
        )
        return None
    return project_id


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def _ts(value: int | None) -> str:
    if not value:
        return ""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _parse_source(value: str) -> tuple[str, str]:
    source_type, sep, source_id = value.partition(":")
    if not sep or not source_type or not source_id:
        raise ValueError(f"Invalid source {value!r} (expected type:id)")
    return (source_type, source_id)


def _artifact_table(title: str, artifacts: Sequence[Artifact]) -> Table:
    table = Table(title=title)
    table.add_column("artifact_key", style="cyan", no_wrap=True)
    table.add_column("type", style="magenta")
    table.add_column("format")
    table.add_column("status")
    table.add_column("title")
    table.add_column("updated", style="dim")
    for a in artifacts:
        table.add_row(a.artifact_key, a.type, a.format, a.status, a.title, _ts(a.updated_at))
    return table


def run_create(
    root: Path,
    project_id: str | None,
    artifact_key: str,
    *,
    artifact_type: str,
    title: str,
    fmt: str,
    content: str,
    output_json: bool = False,
) -> int:
    engine = _engine(root)
    project = _project(engine, project_id)
    if project is None:
        return 1
    try:
        result = engine.create(project, artifact_key, artifact_type, title, fmt, content)
    except ArtifactError as e:
        return _fail(e)

    if output_json:
        _print_json(result.to_dict())
    else:
        Console().print(f"Created {result.artifact_key} ({result.artifact_id})", style="green")
    return 0


def run_from_execution(
    root: Path,
    project_id: str | None,
    execution_id: str,
    *,
    title: str,
    artifact_type: str,
    output_json: bool = False,
) -> int:
    engine = _engine(root)
    project = _project(engine, project_id)
    if project is None:
        return 1
    try:
        result = engine.create_from_execution(project, execution_id, title, artifact_type)
    except ArtifactError as e:
        return _fail(e)

    if output_json:
        _print_json(result.to_dict())
    elif result.created:
        Console().print(f"Created {result.artifact_key} from execution {execution_id}", style="green")
    else:
        Console().print(f"{result.artifact_key} already exists (version {result.version})", style="dim")
    return 0


def run_update(
    root: Path,
    project_id: str | None,
    artifact_key: str,
    content: str,
    *,
    fmt: str | None = None,
    output_json: bool = False,
) -> int:
    engine = _engine(root)
    project = _project(engine, project_id)
    if project is None:
        return 1
    try:
        result = engine.update_content(project, artifact_key, content, fmt=fmt)
    except ArtifactError as e:
        return _fail(e)

    if output_json:
        _print_json(result.to_dict())
    else:
        Console().print(f"{result.artifact_key}: version {result.version}", style="green")
    return 0


def run_apply_op(
    root: Path,
    project_id: str | None,
    artifact_key: str,
    op_text: str,
    *,
    base_rev: int | None = None,
    output_json: bool = False,
) -> int:
    err = Console(stderr=True)
    engine = _engine(root)
    project = _project(engine, project_id)
    if project is None:
        return 1
    try:
        op = json.loads(op_text)
    except json.JSONDecodeError as e:
        err.print(f"Invalid op JSON: {e}", style="bold red")
        return 1
    try:
        result = engine.apply_op(project, artifact_key, op, base_rev=base_rev)
    except ArtifactError as e:
        return _fail(e)

    if output_json:
        _print_json(result.to_dict())
    else:
        entry = result.log_entry
        Console().print(
            f"{entry.artifact_key}: {entry.op['type']} applied (rev {entry.base_rev} -> {entry.next_rev})",
            style="green",
        )
    return 0


def run_status(
    root: Path,
    project_id: str | None,
    artifact_key: str,
    status: str,
    *,
    context: dict[str, Any] | None = None,
    output_json: bool = False,
) -> int:
    engine = _engine(root)
    project = _project(engine, project_id)
    if project is None:
        return 1
    try:
        result = engine.set_status(project, artifact_key, status, context)
    except ArtifactError as e:
        return _fail(e)

    if output_json:
        _print_json(result.to_dict())
    elif result.changed:
        Console().print(f"{result.artifact_key}: {result.status}", style="green")
    else:
        Console().print(f"{result.artifact_key}: already {result.status}", style="dim")
    return 0


def run_sources(
    root: Path,
    project_id: str | None,
    artifact_key: str,
    *,
    add: Sequence[str] = (),
    remove: Sequence[str] = (),
    output_json: bool = False,
) -> int:
    err = Console(stderr=True)
    engine = _engine(root)
    project = _project(engine, project_id)
    if project is None:
        return 1
    try:
        add_keys = [_parse_source(s) for s in add]
        remove_keys = [_parse_source(s) for s in remove]
    except ValueError as e:
        err.print(str(e), style="bold red")
        return 1
    try:
        artifact = engine.get(project, artifact_key)
        sources = engine.update_sources(artifact.artifact_id, add=add_keys, remove=remove_keys)
    except ArtifactError as e:
        return _fail(e)

    if output_json:
        _print_json([s.to_dict() for s in sources])
        return 0

    table = Table(title=f"Sources of {artifact.artifact_key}")
    table.add_column("type", style="magenta")
    table.add_column("id", style="cyan")
    table.add_column("title")
    table.add_column("manual")
    table.add_column("baseline", style="dim")
    for s in sources:
        table.add_row(s.source_type, s.source_id, s.title or "", "yes" if s.manual else "", _ts(s.source_updated_at))
    Console().print(table)
    return 0


def run_staleness(root: Path, project_id: str | None, artifact_key: str, *, output_json: bool = False) -> int:
    engine = _engine(root)
    project = _project(engine, project_id)
    if project is None:
        return 1
    try:
        artifact = engine.get(project, artifact_key)
        report = engine.check_staleness(artifact.artifact_id)
    except ArtifactError as e:
        return _fail(e)

    if output_json:
        _print_json(report.to_dict())
        return 0

    console = Console()
    console.print(f"{artifact.artifact_key}: {report.status}", style=_STALENESS_STYLE.get(report.status, ""))
    for s in report.sources:
        style = _STALENESS_STYLE.get(s.status, "dim")
        console.print(f"  {s.source.source_type}:{s.source.source_id} {s.status}", style=style)
    return 0


def run_show(
    root: Path,
    project_id: str | None,
    artifact_key: str,
    *,
    message_limit: int | None = None,
    message_cursor: str | None = None,
    output_json: bool = False,
) -> int:
    engine = _engine(root)
    project = _project(engine, project_id)
    if project is None:
        return 1
    try:
        view = engine.get_by_key(
            project,
            artifact_key,
            message_limit=message_limit,
            message_cursor=message_cursor,
        )
    except ArtifactError as e:
        return _fail(e)
    except ValueError as e:
        Console(stderr=True).print(str(e), style="bold red", markup=False)
        return 1

    if output_json:
        _print_json(view.to_dict())
        return 0

    a = view.artifact
    console = Console()
    console.print(f"[bold]{escape(a.title)}[/] [cyan]{a.artifact_key}[/] ({escape(a.type)}, {a.format})")
    console.print(f"  status: {a.status} (since {_ts(a.status_changed_at)} by {a.status_by})")
    if a.status_context:
        console.print(f"  context: {json.dumps(a.status_context, sort_keys=True)}", style="dim")
    console.print(f"  staleness: {view.staleness.status}", style=_STALENESS_STYLE.get(view.staleness.status, "dim"))
    console.print(f"  versions: {len(view.versions)}  ops: {len(view.ops)}  messages: {len(view.messages)}")
    if view.next_message_cursor:
        console.print(f"  more messages after cursor {view.next_message_cursor}", style="dim")
    console.print()
    lexer = "json" if a.format == "structured" else "markdown"
    console.print(Syntax(a.content, lexer, theme="monokai", word_wrap=True))
    return 0


def run_list(
    root: Path,
    project_id: str | None,
    *,
    artifact_type: str | None = None,
    status: str | None = None,
    limit: int | None = None,
    cursor: str | None = None,
    output_json: bool = False,
) -> int:
    err = Console(stderr=True)
    engine = _engine(root)
    project = _project(engine, project_id)
    if project is None:
        return 1
    next_cursor: str | None = None
    try:
        if artifact_type or status:
            artifacts = engine.list(project, artifact_type=artifact_type, status=status, limit=limit)
        else:
            page = engine.list_by_project(project, limit=limit, cursor=cursor)
            artifacts, next_cursor = page.artifacts, page.next_cursor
    except ArtifactError as e:
        return _fail(e)
    except ValueError as e:
        err.print(str(e), style="bold red")
        return 1

    if output_json:
        data: dict[str, Any] = {"artifacts": [a.to_dict() for a in artifacts]}
        if next_cursor is not None:
            data["next_cursor"] = next_cursor
        _print_json(data)
        return 0

    console = Console()
    console.print(_artifact_table(f"Artifacts in {project}", artifacts))
    if next_cursor:
        console.print(f"Next page: --cursor {next_cursor}", style="dim")
    return 0


def run_message(
    root: Path,
    project_id: str | None,
    artifact_key: str,
    role: str,
    content: str,
) -> int:
    engine = _engine(root)
    project = _project(engine, project_id)
    if project is None:
        return 1
    try:
        message_id = engine.append_message(project, artifact_key, role, content)
    except ArtifactError as e:
        return _fail(e)

    Console().print(message_id)
    return 0


def run_diff(
    root: Path,
    project_id: str | None,
    artifact_key: str,
    from_version: int,
    to_version: int,
) -> int:
    engine = _engine(root)
    project = _project(engine, project_id)
    if project is None:
        return 1
    try:
        diff_text = engine.version_diff(project, artifact_key, from_version, to_version)
    except ArtifactError as e:
        return _fail(e)

    console = Console()
    if not diff_text:
        console.print("No differences", style="green")
        return 0
    console.print(Syntax(diff_text, "diff", theme="monokai"))
    return 0
