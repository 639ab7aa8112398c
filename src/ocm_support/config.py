"""Configuration of the cloud resources sync."""

import logging
from enum import StrEnum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, PositiveFloat, ValidationError

from ocm_support.errors import InputValidationError

log = logging.getLogger(__name__)

AMS_UPSTREAM_REPO = "git@gitlab.cee.redhat.com:service/uhc-account-manager.git"
CLOUD_RESOURCES_FILE = "config/quota-cloud-resources.csv"


class CleanupPolicy(StrEnum):
    """Class representing when the temporary clone is removed."""

    NEVER = "never"
    ON_SUCCESS = "on-success"
    ALWAYS = "always"


class SyncConfig(BaseModel):
    """Class holding everything about a sync that is not given per run.

    Args:
        upstream_repo: The repository to clone and push the new branch to.
        cloud_resources_file: Path of the cloud resources CSV, relative to the clone.
        build_command: Shell command that builds the repository's binary.
        generate_command: Shell command that regenerates the quota rules. `{work_dir}`
                          is replaced with the absolute path of the clone.
        remote: Name of the remote to push to.
        commit_message: Message of the commit. `{branch}` is replaced with the branch name.
        work_dir_root: Parent directory of the temporary clone. Defaults to the system one.
        cleanup: When the temporary clone is removed.
        command_timeout: Seconds after which any external command is killed.

    Raises:
        ValidationError: From pydantic if the validation failed.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    upstream_repo: str = AMS_UPSTREAM_REPO
    cloud_resources_file: str = CLOUD_RESOURCES_FILE
    build_command: str = "make install && make binary"
    # The binary is run by absolute path, from inside the clone, so that it
    # detects the project root by the presence of .git
    generate_command: str = "{work_dir}/account-manager generate quota"
    remote: str = "origin"
    commit_message: str = "Syncing cloud resources and quota rules for {branch}"
    work_dir_root: Path | None = None
    cleanup: CleanupPolicy = CleanupPolicy.NEVER
    command_timeout: PositiveFloat | None = None


def load_config(path: str | Path | None) -> SyncConfig:
    """Return the SyncConfig from a YAML file, or the defaults if no path is given.

    Args:
        path: Path to a YAML file holding a mapping of SyncConfig fields.

    Raises:
        InputValidationError: If the file can't be read, isn't YAML or has invalid fields.
    """
    if path is None:
        return SyncConfig()

    log.info("Loading configuration from %s", path)
    try:
        loaded_yaml = yaml.safe_load(Path(path).read_text())
    except OSError as e:
        raise InputValidationError("could not read config file %s: %s" % (path, e)) from e
    except yaml.YAMLError as e:
        raise InputValidationError("config file %s is not valid YAML: %s" % (path, e)) from e

    if loaded_yaml is None:
        return SyncConfig()

    if not isinstance(loaded_yaml, dict):
        raise InputValidationError("config file %s must contain a mapping" % path)

    try:
        return SyncConfig.model_validate(loaded_yaml)
    except ValidationError as e:
        log.warning("ValidationError while loading config: %s", e.errors())
        raise InputValidationError("invalid config file %s: %s" % (path, e)) from e
