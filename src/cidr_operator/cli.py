"""VPC CIDR block operator CLI (cidrctl).

Usage:
    cidrctl validate --spec network.yaml
    cidrctl reconcile --spec network.yaml --target direct --region eu-west-1
    cidrctl reconcile --spec network.yaml --target terraform --out ./out
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from .config import Config, ConfigurationError, DeploymentTarget
from .dispatcher import require_fields
from .errors import ReconcileError
from .main import run_operator, setup_logging
from .spec_loader import SpecLoadError, load_spec

TARGETS = tuple(t.value for t in DeploymentTarget)


@click.group()
@click.version_option(package_name="vpc-cidr-operator", prog_name="cidrctl")
def cli() -> None:
    """Reconcile VPC CIDR block associations."""


@cli.command()
@click.option(
    "--spec",
    "spec_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Desired-state YAML file.",
)
def validate(spec_file: Path) -> None:
    """Validate a spec without contacting the provider."""
    try:
        spec = load_spec(spec_file)
    except SpecLoadError as e:
        raise click.ClickException(str(e)) from e

    failed = False
    for task in spec.to_tasks():
        try:
            require_fields(task)
        except ReconcileError as e:
            failed = True
            click.secho(f"  FAIL {task.name}: {e}", fg="red")
            continue
        vpc = task.vpc.vpc_id or f"<unresolved {task.vpc.name}>"
        click.echo(f"  ok   {task.name}: {list(task.cidr_blocks or ())} -> {vpc}")

    if failed:
        raise click.ClickException("spec has invalid resources")
    click.secho("Spec is valid", fg="green")


@cli.command()
@click.option(
    "--spec",
    "spec_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Desired-state YAML file.",
)
@click.option("--target", type=click.Choice(TARGETS), default="direct", show_default=True)
@click.option("--region", envvar="AWS_REGION", help="AWS region.")
@click.option("--cluster-name", envvar="CLUSTER_NAME", help="Cluster tag for discovery.")
@click.option(
    "--out",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("out"),
    show_default=True,
    help="Output directory for document targets.",
)
@click.option(
    "--check-existing/--no-check-existing",
    default=None,
    help="Query the provider for actual state (default depends on target).",
)
@click.option("--once/--loop", default=True, show_default=True, help="Single pass or loop.")
@click.option("--interval", type=int, default=300, show_default=True, help="Loop interval.")
@click.option("--json-logs/--plain-logs", default=False, show_default=True)
@click.option("--log-level", default="INFO", show_default=True)
def reconcile(
    spec_file: Path,
    target: str,
    region: str | None,
    cluster_name: str | None,
    output_dir: Path,
    check_existing: bool | None,
    once: bool,
    interval: int,
    json_logs: bool,
    log_level: str,
) -> None:
    """Reconcile the spec against the selected target."""
    deployment_target = DeploymentTarget(target)
    if deployment_target.is_document:
        output_dir.mkdir(parents=True, exist_ok=True)

    try:
        config = Config(
            target=deployment_target,
            region=region,
            cluster_name=cluster_name,
            spec_file=spec_file,
            output_dir=output_dir,
            check_existing=check_existing,
            run_once=once,
            reconcile_interval_seconds=interval,
            log_level=log_level.upper(),
            json_logging=json_logs,
        )
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    setup_logging(config.log_level, config.json_logging)
    exit_code = asyncio.run(run_operator(config))
    if exit_code != 0:
        raise click.ClickException("reconciliation failed, see log output")


def main() -> None:
    """Entry point for the cidrctl CLI."""
    cli()


if __name__ == "__main__":
    main()
