import pytest

from helpers import make_registry, make_settings


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def registry_dir(tmp_path, settings):
    return make_registry(tmp_path / "TestRegistry", settings)


@pytest.fixture
def packages_dir(tmp_path):
    path = tmp_path / "packages"
    path.mkdir()
    return path
