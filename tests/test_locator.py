"""Tests for finding registries and getting a git working copy of them."""

import shutil
import tarfile
import tempfile

import pytest
from git import Repo

from helpers import REGISTRY_UUID
from regforge.errors import AmbiguousRegistry, NoRegistry, RegistryNotFound
from regforge.package.manifest import PackageManifest
from regforge.registry.create import create_registry
from regforge.registry.discovery import discover_registries, read_packed_registry
from regforge.registry.locator import check_git_registry, find_registry_path
from regforge.registry.models import KnownRegistry, PackageRecord
from regforge.versions import Version

FOO = "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"
MANIFEST = PackageManifest("Foo", FOO, Version.parse("1.0.0"))


def _known(name, path, *uuids):
    return KnownRegistry(name, f"uuid-{name}", path, {u: PackageRecord("Foo", "F/Foo") for u in uuids})


@pytest.fixture
def upstream(tmp_path, settings):
    """A bare upstream holding a pushed registry; returns its file URL."""
    bare = tmp_path / "upstream.git"
    Repo.init(bare, bare=True)
    create_registry(
        tmp_path / "Pushed" / "TestRegistry", bare.as_uri(), push=True, uuid=REGISTRY_UUID, settings=settings
    )
    return bare.as_uri()


@pytest.fixture
def scratch(tmp_path, monkeypatch):
    path = tmp_path / "scratch"
    path.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(path))
    return path


def test_find_by_name_before_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "Local").mkdir()
    known = [_known("Local", tmp_path / "depot" / "Local")]
    assert find_registry_path("Local", MANIFEST, known) == tmp_path / "depot" / "Local"


def test_find_by_path_then_url(tmp_path):
    assert find_registry_path(str(tmp_path), MANIFEST, []) == tmp_path.resolve()
    url = "https://example.com/Registry.git"
    assert find_registry_path(url, MANIFEST, []) == url


def test_find_registry_holding_package(tmp_path):
    known = [_known("General", tmp_path / "G"), _known("A", tmp_path / "A", FOO), _known("B", tmp_path / "B")]
    assert find_registry_path(None, MANIFEST, known) == tmp_path / "A"

    known.append(_known("C", tmp_path / "C", FOO))
    with pytest.raises(AmbiguousRegistry):
        find_registry_path(None, MANIFEST, known)


def test_auto_select_single_non_default(tmp_path):
    known = [_known("General", tmp_path / "G"), _known("Mine", tmp_path / "M")]
    assert find_registry_path(None, MANIFEST, known) == tmp_path / "M"

    with pytest.raises(AmbiguousRegistry):
        find_registry_path(None, MANIFEST, known + [_known("Other", tmp_path / "O")])
    with pytest.raises(NoRegistry):
        find_registry_path(None, MANIFEST, known[:1])
    with pytest.raises(NoRegistry):
        find_registry_path(None, MANIFEST, [])


def test_local_working_copy_used_in_place(registry_dir, settings):
    with check_git_registry(registry_dir, settings) as handle:
        assert handle.local_path == registry_dir.resolve()
        assert not handle.is_temp_clone
    assert registry_dir.is_dir()


def test_directory_without_registry(tmp_path, settings):
    with pytest.raises(RegistryNotFound):
        check_git_registry(tmp_path, settings)
    Repo.init(tmp_path / "empty")
    with pytest.raises(RegistryNotFound):
        check_git_registry(tmp_path / "empty", settings)


def test_url_cloned_temporarily(upstream, settings, scratch):
    with check_git_registry(upstream, settings) as handle:
        assert handle.is_temp_clone
        assert handle.display_path == upstream
        assert (handle.local_path / "Registry.toml").is_file()
        assert handle.local_path.parent == scratch
    assert list(scratch.iterdir()) == []


def test_unreachable_url(tmp_path, settings, scratch):
    with pytest.raises(RegistryNotFound):
        check_git_registry((tmp_path / "missing.git").as_uri(), settings)
    assert list(scratch.iterdir()) == []


def test_snapshot_cloned_from_recorded_repo(tmp_path, upstream, settings, scratch):
    snapshot_dir = tmp_path / "snapshot"
    shutil.copytree(tmp_path / "Pushed" / "TestRegistry", snapshot_dir, ignore=shutil.ignore_patterns(".git"))

    with check_git_registry(snapshot_dir, settings) as handle:
        assert handle.is_temp_clone
        assert handle.source_url == upstream
    assert list(scratch.iterdir()) == []


def _pack(registry_dir, registries_dir):
    registries_dir.mkdir(parents=True, exist_ok=True)
    with tarfile.open(registries_dir / "TestRegistry.tar.gz", "w:gz") as tar:
        tar.add(registry_dir / "Registry.toml", arcname="Registry.toml")
    descriptor = registries_dir / "TestRegistry.toml"
    descriptor.write_text(f'uuid = "{REGISTRY_UUID}"\npath = "TestRegistry.tar.gz"\n')
    return descriptor


def test_packed_registry_cloned(tmp_path, upstream, settings, scratch):
    descriptor = _pack(tmp_path / "Pushed" / "TestRegistry", tmp_path / "packed")
    assert read_packed_registry(descriptor).repo == upstream

    with check_git_registry(descriptor, settings) as handle:
        assert handle.is_temp_clone
        assert (handle.local_path / "Registry.toml").is_file()
    assert list(scratch.iterdir()) == []


def test_discover_registries(tmp_path, registry_dir, settings):
    registries_dir = settings.registries_dir
    shutil.copytree(registry_dir, registries_dir / "Unpacked")
    _pack(registry_dir, registries_dir)
    (registries_dir / "notes.txt").write_text("not a registry\n")

    known = discover_registries(settings)

    assert [(r.name, r.path.name) for r in known] == [
        ("TestRegistry", "TestRegistry.toml"),
        ("TestRegistry", "Unpacked"),
    ]
    assert all(r.uuid == REGISTRY_UUID for r in known)


def test_discover_without_depot(settings):
    assert discover_registries(settings) == []


def test_corrupt_archive_rejected(tmp_path, registry_dir, settings):
    descriptor = _pack(registry_dir, tmp_path / "packed")
    (tmp_path / "packed" / "TestRegistry.tar.gz").write_bytes(b"not a gzip archive")

    with pytest.raises(RegistryNotFound, match="not a registry descriptor"):
        check_git_registry(descriptor, settings)


def test_unparseable_descriptor_rejected(tmp_path, settings):
    descriptor = tmp_path / "Broken.toml"
    descriptor.write_text("path = \n")

    with pytest.raises(RegistryNotFound, match="not a registry descriptor"):
        check_git_registry(descriptor, settings)


def test_discover_skips_broken_descriptors(registry_dir, settings):
    registries_dir = settings.registries_dir
    _pack(registry_dir, registries_dir)
    (registries_dir / "Broken.toml").write_text("path = \n")
    (registries_dir / "Corrupt.tar.gz").write_bytes(b"not a gzip archive")
    (registries_dir / "Corrupt.toml").write_text('path = "Corrupt.tar.gz"\n')

    known = discover_registries(settings)

    assert [r.path.name for r in known] == ["TestRegistry.toml"]
