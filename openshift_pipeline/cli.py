"""Thin CLI wrapper for openshift_pipeline.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import asyncio
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from openshift_pipeline import __version__
from openshift_pipeline.client.client import OpenShiftClient
from openshift_pipeline.config import Settings, get_settings, print_settings_json
from openshift_pipeline.errors import PipelineError

app = typer.Typer(
    name="ospipe",
    help="OpenShift pipeline - build images once and roll out deployments",
    no_args_is_help=True,
)
console = Console()


def configure_logging(level: str) -> None:
    """Send package log records to stderr through rich."""
    logger = logging.getLogger("openshift_pipeline")
    logger.handlers.clear()
    logger.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    )
    logger.setLevel(level.upper())
    logger.propagate = False


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"openshift-pipeline version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override the configured log level"),
    ] = None,
) -> None:
    """OpenShift pipeline - build images once and roll out deployments."""
    configure_logging(log_level or get_settings().log_level)


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]Error: {escape(message)}[/red]")
    return typer.Exit(code=1)


async def _make_client(namespace: str | None, settings: Settings) -> OpenShiftClient:
    """Create a client bound to a namespace, defaulting to the current project."""
    namespace = namespace or settings.namespace
    if namespace is None:
        bootstrap = OpenShiftClient(executable=settings.oc_binary)
        namespace = await bootstrap.current_namespace()
    return OpenShiftClient(namespace, cwd=settings.workdir, executable=settings.oc_binary)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings))
    else:
        workdir_display = str(settings.workdir) if settings.workdir else "(git top level)"
        namespace_display = settings.namespace or "(current project)"
        timeout_display = (
            f"{settings.rollout_timeout}" if settings.rollout_timeout else "(none)"
        )
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Cluster:[/bold]")
        console.print(f"  Namespace:           {namespace_display}")
        console.print(f"  oc binary:           {settings.oc_binary}")
        console.print(f"  git binary:          {settings.git_binary}")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Working tree:        {workdir_display}")
        console.print(f"  Temp directory:      {settings.tmp_dir}")
        console.print()
        console.print("[bold]Builds:[/bold]")
        console.print(f"  Wait for builds:     {settings.wait_for_builds}")
        console.print(f"  Max builds:          {settings.max_concurrent_builds}")
        console.print(f"  Build hash env:      {settings.build_hash_env}")
        console.print(f"  Template hash label: {settings.template_hash_label}")
        console.print()
        console.print("[bold]Rollouts:[/bold]")
        console.print(f"  App label:           {settings.app_label}")
        console.print(f"  Rollout timeout:     {timeout_display}")
        console.print()
        console.print(f"[bold]Log level:[/bold] {settings.log_level}")


builds_app = typer.Typer(help="Build images")
app.add_typer(builds_app, name="build")


@builds_app.command("start")
def build_start(
    refs: Annotated[
        list[str],
        typer.Argument(help="Build definitions ([namespace/]kind/name)"),
    ],
    namespace: Annotated[
        str | None,
        typer.Option("--namespace", "-n", help="Namespace for refs without one"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Build or reuse images for build definitions in dependency order.

    Build definitions consuming another one's output image stream are only
    started once that producer has been built or matched to an existing
    image.
    """
    from openshift_pipeline.builds.service import start_builds

    settings = get_settings()

    async def _run():
        client = await _make_client(namespace, settings)
        return await start_builds(client, refs, settings=settings)

    try:
        result = asyncio.run(_run())
    except PipelineError as e:
        raise _fail(str(e)) from None

    if json_output:
        output = {
            "identifiers": result.identifiers,
            "outcomes": [asdict(outcome) for outcome in result.outcomes],
            "failed": [entry.key for entry in result.failed],
            "stalled": [entry.key for entry in result.stalled],
            "rounds": result.rounds,
        }
        console.print(json.dumps(output, indent=2))
    else:
        for outcome in result.outcomes:
            action = "Reused" if outcome.reused else "Built"
            console.print(
                f"  [green]{action}[/green] {outcome.entry_key}: "
                f"{', '.join(outcome.identifiers)}"
            )
        for entry in result.failed:
            console.print(f"  [red]Failed[/red] {entry.key}: {escape(str(entry.error))}")
        for entry in result.stalled:
            console.print(f"  [yellow]Not started[/yellow] {entry.key}")

    if not result.ok:
        raise typer.Exit(code=1)


@builds_app.command("hash-dir")
def build_hash_dir(
    path: Annotated[str, typer.Argument(help="Directory to hash")],
) -> None:
    """Print the content hash of a local directory."""
    from openshift_pipeline.builds.build_hash import hash_directory

    try:
        console.print(hash_directory(Path(path)))
    except PipelineError as e:
        raise _fail(str(e)) from None


deploy_app = typer.Typer(help="Apply resources and follow rollouts")
app.add_typer(deploy_app, name="deploy")


def _parse_params(params: list[str]) -> dict[str, str]:
    parsed = {}
    for param in params:
        key, sep, value = param.partition("=")
        if not sep or not key:
            raise _fail(f"Invalid template parameter {param!r}, expected KEY=VALUE")
        parsed[key] = value
    return parsed


@deploy_app.command("apply")
def deploy_apply(
    app_name: Annotated[str, typer.Option("--app", "-a", help="Application name")],
    path: Annotated[
        str | None,
        typer.Argument(help="YAML/JSON manifest file"),
    ] = None,
    template: Annotated[
        str | None,
        typer.Option("--template", "-t", help="Template file to process instead"),
    ] = None,
    params: Annotated[
        list[str] | None,
        typer.Option("--param", "-p", help="Template parameter KEY=VALUE"),
    ] = None,
    namespace: Annotated[
        str | None,
        typer.Option("--namespace", "-n", help="Target namespace"),
    ] = None,
    env_name: Annotated[
        str | None,
        typer.Option("--env-name", help="Environment name (enables labelling)"),
    ] = None,
    env_id: Annotated[
        str | None,
        typer.Option("--env-id", help="Environment instance id"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Apply manifests and wait for changed deployments to roll out.

    The resources come from a manifest file, or from processing a template
    with --template and --param. With --env-name and --env-id the resources
    are labelled with the application and environment identity first, and
    the deployments are selected by the resulting instance label.
    """
    from openshift_pipeline.resources.copies import copy_secrets_and_config_maps
    from openshift_pipeline.resources.labels import apply_recommended_labels
    from openshift_pipeline.resources.manifests import load_manifests
    from openshift_pipeline.rollout.monitor import RolloutMonitor

    if (path is None) == (template is None):
        raise _fail("Give either a manifest file or --template")
    if params and template is None:
        raise _fail("--param requires --template")
    if (env_name is None) != (env_id is None):
        raise _fail("--env-name and --env-id must be given together")
    template_params = _parse_params(params or [])

    settings = get_settings()
    instance = app_name
    if env_name and env_id:
        instance = f"{app_name}-{env_name}-{env_id}"

    async def _run():
        client = await _make_client(namespace, settings)
        if template is not None:
            resources = await client.process(Path(template), template_params)
        else:
            resources = load_manifests(Path(path))
        if instance != app_name:
            apply_recommended_labels(resources, app_name, env_name, env_id, instance)
        await copy_secrets_and_config_maps(client, resources, client.namespace)
        monitor = RolloutMonitor(client, settings=settings)
        return await monitor.apply_and_wait(resources, instance)

    try:
        report = asyncio.run(_run())
    except PipelineError as e:
        raise _fail(str(e)) from None

    if json_output:
        console.print(json.dumps(asdict(report), indent=2))
    elif not report.changed:
        console.print("[yellow]No deployment changed[/yellow]")
    elif report.converged:
        console.print(f"[green]Rollout of {instance} complete[/green]")
    else:
        console.print(
            f"[red]Rollout of {instance} incomplete: {', '.join(report.pending)}[/red]"
        )

    if not report.converged:
        raise typer.Exit(code=1)


@deploy_app.command("import-images")
def deploy_import_images(
    path: Annotated[str, typer.Argument(help="YAML/JSON manifest file")],
    tag: Annotated[str, typer.Option("--tag", "-t", help="Tag to create")],
    from_namespace: Annotated[
        str,
        typer.Option("--from-namespace", help="Namespace to promote from"),
    ],
    from_tag: Annotated[
        str,
        typer.Option("--from-tag", help="Tag to promote from"),
    ],
    namespace: Annotated[
        str | None,
        typer.Option("--namespace", "-n", help="Target namespace"),
    ] = None,
) -> None:
    """Promote the image streams of a manifest from another namespace."""
    from openshift_pipeline.resources.images import import_image_streams
    from openshift_pipeline.resources.manifests import load_manifests

    settings = get_settings()

    async def _run():
        client = await _make_client(namespace, settings)
        resources = load_manifests(Path(path))
        await import_image_streams(client, resources, tag, from_namespace, from_tag)

    try:
        asyncio.run(_run())
    except PipelineError as e:
        raise _fail(str(e)) from None

    console.print(f"[green]Promoted image streams to tag {tag}[/green]")


if __name__ == "__main__":
    app()
