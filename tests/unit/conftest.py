from unittest.mock import MagicMock

import pytest

from ocm_support.helpers.process import CommandResult, ProcessExecutor


@pytest.fixture()
def executor():
    """Mock a ProcessExecutor whose commands all succeed."""
    mocked_executor = MagicMock(spec=ProcessExecutor)
    mocked_executor.execute.return_value = CommandResult(command="", output="", returncode=0)
    return mocked_executor
