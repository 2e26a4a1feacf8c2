"""
dockerize — CLI entrypoint.

Usage:
    dockerize --help
    dockerize stacks
    dockerize detect path/to/project --explain
    dockerize render path/to/project --set COOLIFY_FQDN=app.example.com
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from dockerize import __version__
from dockerize.core.observability.logging_config import configure_logging, resolve_settings


def _registry(ctx: click.Context):
    """Load the registry for this invocation or exit with the error."""
    from dockerize.core.config.stack_loader import registry_for
    from dockerize.core.errors import RegistryError

    try:
        return registry_for(ctx.obj["stacks_dirs"])
    except RegistryError as e:
        click.secho(f"❌ Invalid stack registry: {e}", fg="red", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="dockerize")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--stacks-dir",
    "stacks_dirs",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Extra stacks directory (repeatable, overrides built-ins by id).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    stacks_dirs: tuple[Path, ...],
) -> None:
    """dockerize — generate container artifacts for a project."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["stacks_dirs"] = tuple(stacks_dirs)

    configure_logging(
        resolve_settings(debug=debug, verbose=verbose, quiet=quiet, environ=os.environ)
    )


# ── Stacks ──────────────────────────────────────────────────────


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def stacks(ctx: click.Context, as_json: bool) -> None:
    """List registered stacks in detection order."""
    from dockerize.core.use_cases.stacks import list_stacks

    rows = list_stacks(_registry(ctx))

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    click.secho(f"\n📚 Stacks ({len(rows)})", fg="cyan", bold=True)
    for row in rows:
        parent = f" ← {row['parent']}" if row["parent"] else ""
        click.echo(f"   • {row['id']}{parent}  (port {row['default_port']})")
        if row["description"] and not ctx.obj.get("quiet"):
            click.echo(f"     {row['description']}")
    click.echo()


@cli.command()
@click.argument("stack_id")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def show(ctx: click.Context, stack_id: str, as_json: bool) -> None:
    """Show markers, variables and artifacts of one stack."""
    from dockerize.core.errors import UnknownStack
    from dockerize.core.use_cases.stacks import describe_stack

    try:
        info = describe_stack(_registry(ctx), stack_id)
    except UnknownStack as e:
        if as_json:
            click.echo(json.dumps({"error": str(e)}, indent=2))
        else:
            click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(info, indent=2))
        return

    click.secho(f"\n📦 {info['id']}", fg="cyan", bold=True)
    if info["description"]:
        click.echo(f"   {info['description']}")
    click.echo(f"   Port: {info['default_port']}   Priority: {info['priority']}")

    click.secho("\n   Detection:", fg="white", bold=True)
    for marker in info["markers"]:
        click.echo(f"     • {marker}")

    click.secho("\n   Variables:", fg="white", bold=True)
    for var in info["variables"]:
        flag = " (required)" if var["required"] else ""
        default = f" = {var['default']}" if var["default"] else ""
        click.echo(f"     • {var['name']}{flag}{default}")

    click.secho("\n   Artifacts:", fg="white", bold=True)
    for art in info["artifacts"]:
        exe = " [x]" if art["executable"] else ""
        click.echo(f"     • {art['path']}{exe}  ({art['role']})")
    click.echo()


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def validate(ctx: click.Context, as_json: bool) -> None:
    """Load and validate the stack registry."""
    from dockerize.core.use_cases.stacks import validate_stacks

    result = validate_stacks(ctx.obj["stacks_dirs"])

    if as_json:
        click.echo(json.dumps(result, indent=2))
    elif result["valid"]:
        click.secho(f"✅ Registry valid: {len(result['stacks'])} stacks", fg="green")
    else:
        click.secho(f"❌ {result['error']}", fg="red")

    if not result["valid"]:
        sys.exit(1)


# ── Detect ──────────────────────────────────────────────────────


@cli.command("detect")
@click.argument(
    "project_dir",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--explain", is_flag=True, help="Show every marker outcome.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def detect_cmd(ctx: click.Context, project_dir: Path, explain: bool, as_json: bool) -> None:
    """Detect the stack of a project."""
    from dockerize.core.use_cases.stacks import detect_stack

    result = detect_stack(project_dir.resolve(), _registry(ctx), with_explain=explain)

    if as_json:
        click.echo(json.dumps(result, indent=2))
    else:
        if result["stack"]:
            click.secho(f"🔍 {result['stack']}", fg="green", bold=True)
        else:
            click.secho(f"❌ {result['error']}", fg="red")

        for match in result.get("explain", []):
            mark = "✓" if match["matched"] else "✗"
            click.echo(f"   {mark} {match['stack']}")
            for m in match["markers"]:
                ok = "✓" if m["holds"] else "✗"
                click.echo(f"       {ok} {m['marker']}")

    if not result["stack"]:
        sys.exit(1)


# ── Render ──────────────────────────────────────────────────────


@cli.command()
@click.argument(
    "project_dir",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option("--stack", "stack_id", default=None, help="Use this stack instead of detecting.")
@click.option("--set", "assignments", multiple=True, metavar="KEY=VALUE", help="Set a variable (repeatable).")
@click.option(
    "--env-file",
    "env_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read variables from an env file (repeatable).",
)
@click.option("--no-environ", is_flag=True, help="Ignore the process environment.")
@click.option(
    "--out",
    "output",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Destination directory (default: dockerize.yml 'output' or the project).",
)
@click.option("--dry-run", is_flag=True, help="Resolve and print, write nothing.")
@click.option("--no-overwrite", is_flag=True, help="Refuse to replace files that differ.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def render(
    ctx: click.Context,
    project_dir: Path,
    stack_id: str | None,
    assignments: tuple[str, ...],
    env_files: tuple[Path, ...],
    no_environ: bool,
    output: Path | None,
    dry_run: bool,
    no_overwrite: bool,
    as_json: bool,
) -> None:
    """Detect, resolve and write the artifacts of a project."""
    from dockerize.core.config.env_file import parse_assignments
    from dockerize.core.errors import ConfigError
    from dockerize.core.use_cases.dockerize import run_dockerize

    try:
        overrides = parse_assignments(assignments)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(2)

    result = run_dockerize(
        project_dir,
        stack_id=stack_id,
        overrides=overrides,
        environ={} if no_environ else None,
        env_files=env_files,
        output=output,
        dry_run=dry_run,
        overwrite=not no_overwrite,
        stacks_dirs=ctx.obj["stacks_dirs"],
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(include_content=dry_run), indent=2))
        if not result.ok:
            sys.exit(1)
        return

    if result.stack_id:
        how = "detected" if result.detected else "selected"
        click.secho(f"📦 Stack: {result.stack_id} ({how})", fg="cyan", bold=True)

    if not result.ok:
        click.secho(f"❌ {result.error}", fg="red")
        for name in result.missing:
            click.echo(f"   • {name}  (use --set {name}=...)")
        sys.exit(1)

    if dry_run and result.resolution is not None:
        for artifact in result.resolution.artifacts:
            click.secho(f"\n── {artifact.path} ──", fg="white", bold=True)
            click.echo(artifact.content, nl=False)
        click.echo()
        return

    outcome = result.outcome
    assert outcome is not None
    for path in outcome.written:
        click.secho(f"   ✍  {path}", fg="green")
    if not ctx.obj.get("quiet"):
        for path in outcome.unchanged:
            click.echo(f"   =  {path}")
    click.secho(
        f"✅ {len(outcome.written)} written, {len(outcome.unchanged)} unchanged",
        fg="green",
    )


if __name__ == "__main__":
    cli()
