import os
import subprocess

import pytest

OLD_CSV = "id,provider,category\nold-instance,aws,compute\n"


@pytest.fixture(autouse=True)
def isolated_git(monkeypatch):
    """Run git without the user's configuration and with a fixed identity."""
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", os.devnull)
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for variable in ("AUTHOR", "COMMITTER"):
        monkeypatch.setenv(f"GIT_{variable}_NAME", "ocm-support tests")
        monkeypatch.setenv(f"GIT_{variable}_EMAIL", "ocm-support@example.com")


@pytest.fixture()
def upstream(tmp_path, isolated_git):
    """Create an upstream repository with a cloud resources CSV."""
    path = tmp_path / "upstream"
    (path / "config").mkdir(parents=True)
    (path / "config" / "quota-cloud-resources.csv").write_text(OLD_CSV)
    for args in (["init", "--quiet"], ["add", "--all"], ["commit", "--quiet", "-m", "Initial"]):
        subprocess.run(["git", *args], cwd=path, check=True, capture_output=True)
    return path


@pytest.fixture()
def work_root(tmp_path):
    root = tmp_path / "work"
    root.mkdir()
    return root
