from __future__ import annotations

import os

import pytest

from s3source.modules.errors import SourceURIError
from s3source.modules.paths import SourcePaths, parse_source_uri


def _paths(tmp_path, uri: str) -> SourcePaths:
    return SourcePaths(uri, home=str(tmp_path / "home"), cache_root=str(tmp_path / "bundle"),
                       app_cache_root=str(tmp_path / "vendor" / "cache"))


def test_install_path_is_derived_from_bucket_and_path(tmp_path) -> None:
    paths = _paths(tmp_path, "s3://mybucket/team/gems")
    expected = os.path.join(str(tmp_path / "home"), "s3-gems", "mybucket", "team", "gems")
    assert paths.install_path == expected
    assert _paths(tmp_path, "s3://mybucket/team/gems").install_path == expected


def test_mirror_and_metadata_locations(tmp_path) -> None:
    paths = _paths(tmp_path, "s3://mybucket/team/gems")
    mirror = os.path.join(str(tmp_path / "bundle"), "bundler-source-aws-s3", "mybucket", "team", "gems")
    assert paths.s3_gems_path == mirror
    assert paths.archives_dir == os.path.join(mirror, "gems")
    assert paths.mirror_archive_for("foo-1.0") == os.path.join(mirror, "gems", "foo-1.0.gem")
    assert paths.loaded_from_for("foo-1.0") == os.path.join(
        paths.install_path, "foo-1.0", "foo-1.0.gemspec")


def test_uri_normalization() -> None:
    assert parse_source_uri("s3://MyBucket/team/gems/") == ("mybucket", "team/gems")
    assert parse_source_uri("S3://bucket//a/./b") == ("bucket", "a/b")


@pytest.mark.parametrize("uri", ["s3://bucket", "s3://bucket/"])
def test_root_bucket_uses_empty_prefix(tmp_path, uri: str) -> None:
    paths = _paths(tmp_path, uri)
    assert paths.path == ""
    assert paths.install_path == os.path.join(str(tmp_path / "home"), "s3-gems", "bucket")
    assert paths.remote_uri == "s3://bucket/"
    assert paths.object_uri("specs.json.gz") == "s3://bucket/specs.json.gz"


def test_object_uri_keeps_prefix(tmp_path) -> None:
    paths = _paths(tmp_path, "s3://pkgs.example.com/prod")
    assert paths.remote_uri == "s3://pkgs.example.com/prod/"
    assert paths.object_uri("specs.json.gz") == "s3://pkgs.example.com/prod/specs.json.gz"


def test_app_cache_paths(tmp_path) -> None:
    paths = _paths(tmp_path, "s3://pkgs.example.com/prod")
    assert paths.app_cache_dirname == "s3-pkgs.example.com"
    assert paths.app_cache_path() == os.path.join(str(tmp_path / "vendor" / "cache"), "s3-pkgs.example.com")
    custom = str(tmp_path / "elsewhere")
    assert paths.app_cache_path(custom) == os.path.join(custom, "s3-pkgs.example.com")


@pytest.mark.parametrize("uri", ["https://bucket/prefix", "s3:///prefix", "bucket/prefix"])
def test_invalid_uris(uri: str) -> None:
    with pytest.raises(SourceURIError):
        parse_source_uri(uri)
