"""Helpers for the local files touched by the sync workflow."""

import logging
import os
import shutil
import tempfile
from pathlib import Path

from ocm_support.errors import FilesystemError

log = logging.getLogger(__name__)


def replace_file_content(target: str | os.PathLike, source: str | os.PathLike) -> None:
    """Overwrite the contents of an existing file with the contents of another file.

    The target is truncated, every byte of the source is copied over and the
    target is fsynced before returning. No backup of the target is kept.

    Args:
        target: The existing file to overwrite.
        source: The file to read the new contents from.

    Raises:
        FilesystemError: If the target does not exist, or reading, writing or syncing failed.
    """
    log.info("Replacing contents of %s with %s", target, source)
    try:
        # No O_CREAT, the target is expected to be tracked in the clone
        fd = os.open(target, os.O_WRONLY | os.O_TRUNC)
        with os.fdopen(fd, "wb") as target_file, open(source, "rb") as source_file:
            shutil.copyfileobj(source_file, target_file)
            target_file.flush()
            os.fsync(target_file.fileno())
    except OSError as e:
        raise FilesystemError("could not replace %s with %s: %s" % (target, source, e)) from e


def create_work_dir(prefix: str, root: str | os.PathLike | None = None) -> Path:
    """Create a new, empty temporary directory.

    Args:
        prefix: Prefix of the directory name. Path separators are replaced with '-'.
        root: Parent directory. Defaults to the system temporary directory.

    Raises:
        FilesystemError: If the directory could not be created.
    """
    safe_prefix = prefix.replace(os.sep, "-")
    if os.altsep:
        safe_prefix = safe_prefix.replace(os.altsep, "-")

    try:
        return Path(tempfile.mkdtemp(prefix=f"{safe_prefix}-", dir=root))
    except OSError as e:
        raise FilesystemError("could not create temporary directory: %s" % e) from e


def remove_work_dir(path: str | os.PathLike) -> None:
    """Remove a work directory and everything in it."""
    log.info("Removing work directory %s", path)
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError("could not remove %s: %s" % (path, e)) from e
