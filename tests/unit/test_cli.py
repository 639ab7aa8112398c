import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from ocm_support.cli import app, parse_bool
from ocm_support.cluster.classes import Cluster
from ocm_support.cluster.clusters import ClusterQueryError
from ocm_support.config import SyncConfig
from ocm_support.errors import ExternalToolError, StepFailedError
from ocm_support.sync_cloud_resources import SyncResult, SyncStep


@pytest.fixture()
def runner():
    return CliRunner()


@pytest.fixture()
def mocked_sync():
    """Mock the sync in cli.py."""
    with patch("ocm_support.cli.sync_cloud_resources") as mocked_sync:
        mocked_sync.return_value = SyncResult(
            work_dir=Path("/tmp/sync-2024-01-abc"),
            branch="sync-2024-01",
            commit_message="Syncing cloud resources and quota rules for sync-2024-01",
            pushed=False,
            steps=[SyncStep.COMMIT],
        )
        yield mocked_sync


@pytest.mark.parametrize(
    "value,expected",
    [
        ("true", True),
        ("True", True),
        ("1", True),
        ("false", False),
        ("FALSE", False),
        ("0", False),
    ],
)
def test_parse_bool(value, expected):
    assert parse_bool(value) == expected


def test_sync_defaults_to_dry_run(runner, mocked_sync):
    result = runner.invoke(app, ["sync-cloud-resources", "sync-2024-01", "resources.csv"])

    assert result.exit_code == 0
    request = mocked_sync.call_args.args[0]
    assert request.branch_name == "sync-2024-01"
    assert request.csv_path == "resources.csv"
    assert request.dry_run
    assert mocked_sync.call_args.args[1] == SyncConfig()
    assert "DRY RUN" in result.output


def test_sync_without_dry_run(runner, mocked_sync):
    result = runner.invoke(
        app, ["sync-cloud-resources", "sync-2024-01", "resources.csv", "--dry-run=false"]
    )

    assert result.exit_code == 0
    assert not mocked_sync.call_args.args[0].dry_run


def test_sync_invalid_dry_run_value(runner, mocked_sync):
    result = runner.invoke(
        app, ["sync-cloud-resources", "sync-2024-01", "resources.csv", "--dry-run=maybe"]
    )

    assert result.exit_code == 2
    mocked_sync.assert_not_called()


@pytest.mark.parametrize("args", [[], ["sync-2024-01"]])
def test_sync_requires_two_arguments(runner, mocked_sync, args):
    result = runner.invoke(app, ["sync-cloud-resources", *args])

    assert result.exit_code == 2
    mocked_sync.assert_not_called()


def test_sync_failure_exits_non_zero(runner, mocked_sync):
    cause = ExternalToolError("git checkout -b sync-2024-01", 128, "fatal: branch exists\n")
    mocked_sync.side_effect = StepFailedError(
        SyncStep.BRANCH, "an error occurred while creating a new branch", cause
    )

    result = runner.invoke(app, ["sync-cloud-resources", "sync-2024-01", "resources.csv"])

    assert result.exit_code == 1
    assert "an error occurred while creating a new branch" in result.output
    assert "fatal: branch exists" in result.output


def test_sync_invalid_config(runner, mocked_sync, tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("unknown: field\n")

    result = runner.invoke(
        app,
        ["sync-cloud-resources", "sync-2024-01", "resources.csv", "--config", str(config_file)],
    )

    assert result.exit_code == 1
    mocked_sync.assert_not_called()


def test_sync_empty_branch_name_fails(runner, tmp_path):
    csv_file = tmp_path / "resources.csv"
    csv_file.write_text("id\n")

    with patch("ocm_support.helpers.process.subprocess.Popen") as mocked_popen:
        result = runner.invoke(app, ["sync-cloud-resources", "", str(csv_file)])

    assert result.exit_code == 1
    mocked_popen.assert_not_called()


def test_clusters(runner):
    with patch("ocm_support.cli.get_presented_clusters") as mocked_get:
        mocked_get.return_value = [Cluster(id="1a2b3c", name="my-cluster")]
        result = runner.invoke(app, ["clusters", "1a2b3c", "--token", "secret", "--machine-pools"])

    assert result.exit_code == 0
    clusters = json.loads(result.stdout)
    assert clusters[0]["id"] == "1a2b3c"
    assert "machine_pools" not in clusters[0]
    assert mocked_get.call_args.args[:4] == ("1a2b3c", "", 100, True)


def test_clusters_query_failure(runner):
    with patch("ocm_support.cli.get_presented_clusters") as mocked_get:
        mocked_get.side_effect = ClusterQueryError("failed to retrieve clusters: 401")
        result = runner.invoke(app, ["clusters", "1a2b3c", "--token", "secret"])

    assert result.exit_code == 1


def test_clusters_empty_key(runner):
    result = runner.invoke(app, ["clusters", "", "--token", "secret"])

    assert result.exit_code == 2


@pytest.mark.parametrize(
    "args",
    [
        ["sync-2024-01", "resources.csv", "--dry-run"],
        ["--dry-run", "sync-2024-01", "resources.csv"],
    ],
)
def test_sync_bare_dry_run_flag(runner, mocked_sync, args):
    result = runner.invoke(app, ["sync-cloud-resources", *args])

    assert result.exit_code == 0
    assert mocked_sync.call_args.args[0].dry_run


def test_unknown_log_level_is_a_usage_error(runner, mocked_sync):
    result = runner.invoke(
        app, ["--log-level", "bogus", "sync-cloud-resources", "sync-2024-01", "resources.csv"]
    )

    assert result.exit_code == 2
    mocked_sync.assert_not_called()


def test_sync_rejected_branch_name_shows_git_output(runner, tmp_path):
    csv_file = tmp_path / "resources.csv"
    csv_file.write_text("id\n")

    with patch("ocm_support.cli.ProcessExecutor") as mocked_executor:
        mocked_executor.return_value.execute.side_effect = ExternalToolError(
            "git check-ref-format --branch bad..name",
            128,
            "fatal: 'bad..name' is not a valid branch name\n",
        )
        result = runner.invoke(app, ["sync-cloud-resources", "bad..name", str(csv_file)])

    assert result.exit_code == 1
    assert "is not a valid branch name" in result.output
    assert "incorrect branch name: incorrect branch name" not in result.output
