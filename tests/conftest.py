import pytest

from dolt_flake.config import Settings
from dolt_flake.environment import Tools


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def tools() -> Tools:
    return Tools(nix="/usr/bin/nix", go="/usr/bin/go", unzip="/usr/bin/unzip")


@pytest.fixture
def all_tools_on_path(monkeypatch):
    monkeypatch.setattr("dolt_flake.environment.shutil.which", lambda prog: f"/usr/bin/{prog}")
