from __future__ import annotations

import os

import pytest

from s3source.modules import sync as _sync
from s3source.modules.errors import S3AccessError
from s3source.modules.logger import Logger
from s3source.modules.paths import SourcePaths
from s3source.modules.spec import PackageSpec
from s3source.modules.sync import SyncManager, SyncOutcome

from conftest import write_remote_index


@pytest.fixture
def manager(tmp_path, cfg) -> SyncManager:
    paths = SourcePaths("s3://mybucket/team/gems", home=str(tmp_path / "home"),
                        cache_root=str(tmp_path / "bundle"), app_cache_root=str(tmp_path / "vendor"))
    return SyncManager(paths, aws_cli="aws", aws_config_file=str(tmp_path / "aws" / "config"),
                       log=Logger("test", cfg))


def _enable_sso(tmp_path) -> None:
    (tmp_path / "aws").mkdir(exist_ok=True)
    (tmp_path / "aws" / "config").write_text(
        "[profile dev]\nsso_start_url = https://example.awsapps.com/start\nregion = us-east-1\n")


def test_sync_command_shape(manager) -> None:
    assert manager.sync_cmd == ["aws", "s3", "sync", "--delete", "s3://mybucket/team/gems/",
                                manager.paths.s3_gems_path]


def test_pull_runs_sync_once(manager, fake_aws, make_package, bucket_dir) -> None:
    make_package(bucket_dir / "gems", "foo", "1.0")
    assert manager.pull() is True
    assert manager.pull() is True
    assert manager.pulled
    assert fake_aws.count("s3", "sync") == 1
    assert os.path.isfile(os.path.join(manager.paths.archives_dir, "foo-1.0.gem"))


def test_failure_without_sso_does_not_retry(manager, fake_aws) -> None:
    fake_aws.sync_codes = [1, 0]
    with pytest.raises(S3AccessError) as info:
        manager.pull()
    assert fake_aws.count("s3", "sync") == 1
    assert fake_aws.count("sso", "login") == 0
    assert info.value.uri == "s3://mybucket/team/gems/"
    assert "ExpiredToken" in info.value.aws_error
    assert info.value.status_code == 40
    assert "aws sso login" in str(info.value)


def test_sso_login_then_single_retry(tmp_path, manager, fake_aws) -> None:
    _enable_sso(tmp_path)
    fake_aws.sync_codes = [1, 0]
    result = manager.sync_gems()
    assert result.outcome is SyncOutcome.RETRIED
    assert result.ok
    assert fake_aws.count("sso", "login") == 1
    assert fake_aws.count("s3", "sync") == 2


def test_sso_retry_failure_raises(tmp_path, manager, fake_aws) -> None:
    _enable_sso(tmp_path)
    fake_aws.sync_codes = [1, 1, 0]
    with pytest.raises(S3AccessError):
        manager.pull()
    assert fake_aws.count("sso", "login") == 1
    assert fake_aws.count("s3", "sync") == 2


def test_sso_session_marker_is_recognised(tmp_path, manager) -> None:
    (tmp_path / "aws").mkdir()
    (tmp_path / "aws" / "config").write_text("[profile dev]\nsso_session = corp\n")
    assert manager.sso_configured()


def test_no_aws_config_means_no_sso(manager) -> None:
    assert not manager.sso_configured()


def test_fetch_object_decodes_blob_and_removes_tempfile(manager, fake_aws, bucket_dir) -> None:
    write_remote_index(bucket_dir, [PackageSpec(name="foo", version="1.0")])
    idx = manager.fetch_object("specs.json.gz")
    assert idx.full_names() == ["foo-1.0"]
    cp = [c for c in fake_aws.calls if c[1:3] == ["s3", "cp"]]
    assert cp[0][3] == "s3://mybucket/team/gems/specs.json.gz"
    assert not os.path.exists(cp[0][4])


def test_fetch_object_failure_raises_and_cleans_up(manager, fake_aws) -> None:
    with pytest.raises(S3AccessError) as info:
        manager.fetch_object("specs.json.gz")
    assert "404" in info.value.aws_error
    cp = [c for c in fake_aws.calls if c[1:3] == ["s3", "cp"]]
    assert not os.path.exists(cp[0][4])


def test_sync_output_is_captured(manager, monkeypatch) -> None:
    seen = {}

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        return _sync.subprocess.CompletedProcess(cmd, 0, stdout="")

    monkeypatch.setattr(_sync.subprocess, "run", fake_run)
    manager.pull()
    assert seen["stdout"] == _sync.subprocess.PIPE
    assert seen["stderr"] == _sync.subprocess.STDOUT
    assert os.path.isdir(manager.paths.s3_gems_path)


def _missing_cli(cmd, **kwargs):
    raise FileNotFoundError(2, "No such file or directory", cmd[0])


def test_missing_aws_cli_is_an_access_error(manager, monkeypatch) -> None:
    monkeypatch.setattr(_sync.subprocess, "run", _missing_cli)
    with pytest.raises(S3AccessError) as info:
        manager.pull()
    assert info.value.status_code == 40
    assert info.value.uri == "s3://mybucket/team/gems/"
    assert "cannot run 'aws'" in info.value.aws_error
    assert not manager.pulled


def test_missing_aws_cli_on_fetch_and_sso_login(manager, monkeypatch) -> None:
    monkeypatch.setattr(_sync.subprocess, "run", _missing_cli)
    with pytest.raises(S3AccessError) as info:
        manager.fetch_object("specs.json.gz")
    assert info.value.uri == "s3://mybucket/team/gems/specs.json.gz"
    with pytest.raises(S3AccessError):
        manager.sso_login()
