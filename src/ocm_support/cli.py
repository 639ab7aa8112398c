"""Typer CLI entrypoint of ocm-support."""

import json
import logging
from pathlib import Path
from typing import List, Optional

import click
import typer
from typer.core import TyperCommand

from ocm_support.cluster.clusters import (
    ClusterQueryError,
    ClustersManagementClient,
    get_presented_clusters,
)
from ocm_support.config import load_config
from ocm_support.errors import StepFailedError, SyncError
from ocm_support.helpers.process import ProcessExecutor
from ocm_support.sync_cloud_resources import SyncRequest, sync_cloud_resources

log = logging.getLogger(__name__)

TRUE_VALUES = {"true", "t", "1", "yes", "y"}
FALSE_VALUES = {"false", "f", "0", "no", "n"}

app = typer.Typer(help="Support tooling for OCM", no_args_is_help=True)


def parse_bool(value: str) -> bool:
    """Parse the value of a `--flag=true|false` style option."""
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise typer.BadParameter(f"expected true or false, got {value!r}")


class DryRunCommand(TyperCommand):
    """Command reading a bare `--dry-run` as `--dry-run=true`."""

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        if "--" in args:
            end = args.index("--")
        else:
            end = len(args)
        options = ["--dry-run=true" if arg == "--dry-run" else arg for arg in args[:end]]
        return super().parse_args(ctx, options + args[end:])


@app.callback()
def main_callback(
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level."),
) -> None:
    """Configure logging for every command."""
    level = log_level.upper()
    if level not in logging.getLevelNamesMapping():
        raise typer.BadParameter(
            f"unknown logging level {log_level!r}", param_hint="--log-level"
        )

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("sync-cloud-resources", cls=DryRunCommand)
def sync_cloud_resources_command(
    branch_name: str = typer.Argument(..., help="Branch to create with the changes."),
    csv_path: str = typer.Argument(..., help="Path to the CSV with the cloud resources."),
    dry_run: str = typer.Option(
        "true",
        "--dry-run",
        metavar="[true|false]",
        help="If false, the generated cloud resources and quota rules are pushed to the "
        "remote branch of the upstream repository.",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        envvar="OCM_SUPPORT_CONFIG",
        help="YAML file overriding the sync configuration.",
    ),
) -> None:
    """Sync cloud resources in AMS and generate quota rules for them."""
    try:
        request = SyncRequest(
            branch_name=branch_name, csv_path=csv_path, dry_run=parse_bool(dry_run)
        )
        sync_config = load_config(config)
        executor = ProcessExecutor(timeout=sync_config.command_timeout)
        result = sync_cloud_resources(request, sync_config, executor)
    except StepFailedError as e:
        log.error("Sync failed at step %s (%s error)", e.step, e.kind)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    except SyncError as e:
        log.error("Sync failed (%s error)", e.kind)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if result.pushed:
        typer.echo(f"Pushed branch {result.branch}")
    else:
        typer.echo(f"DRY RUN: branch {result.branch} was committed in {result.work_dir}")


@app.command("clusters")
def clusters_command(
    key: str = typer.Argument(
        ..., help="Cluster, external cluster, organization or subscription ID."
    ),
    search: str = typer.Option("", "--search", help="Extra search expression."),
    limit: int = typer.Option(100, "--limit", min=1, help="Maximum number of clusters."),
    machine_pools: bool = typer.Option(
        False, "--machine-pools/--no-machine-pools", help="Also fetch machine pools."
    ),
    url: str = typer.Option("https://api.openshift.com", "--url", envvar="OCM_URL"),
    token: str = typer.Option(..., "--token", envvar="OCM_TOKEN", help="Bearer token."),
) -> None:
    """Print the clusters matching KEY as JSON."""
    if not key:
        raise typer.BadParameter("organization ID cannot be empty", param_hint="KEY")

    client = ClustersManagementClient(url, token)
    try:
        clusters = get_presented_clusters(key, search, limit, machine_pools, client)
    except ClusterQueryError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps([c.to_dict() for c in clusters], indent=2))


def main() -> None:
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    main()
