from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from s3source.modules import index as _index
from s3source.modules import sync as _sync
from s3source.modules.archive import create_archive
from s3source.modules.config import SourceConfig
from s3source.modules.spec import PackageSpec


class FakeAws:
    """Stands in for the aws cli; `bucket_dir` plays the bucket prefix."""

    def __init__(self, bucket_dir: Path) -> None:
        self.bucket_dir = bucket_dir
        self.calls: list[list[str]] = []
        self.sync_codes: list[int] = []

    def __call__(self, cmd, **kwargs):
        cmd = list(cmd)
        self.calls.append(cmd)
        if cmd[1:3] == ["s3", "sync"]:
            rc = self.sync_codes.pop(0) if self.sync_codes else 0
            if rc != 0:
                return subprocess.CompletedProcess(cmd, rc, stdout="An error occurred (ExpiredToken)")
            if self.bucket_dir.is_dir():
                shutil.copytree(self.bucket_dir, cmd[-1], dirs_exist_ok=True)
            return subprocess.CompletedProcess(cmd, 0, stdout="")
        if cmd[1:3] == ["s3", "cp"]:
            name = cmd[3].rsplit("/", 1)[-1]
            src = self.bucket_dir / name
            if not src.is_file():
                return subprocess.CompletedProcess(cmd, 1, stdout="fatal error: 404 Not Found")
            shutil.copyfile(src, cmd[4])
            return subprocess.CompletedProcess(cmd, 0, stdout="")
        if cmd[1:3] == ["sso", "login"]:
            return subprocess.CompletedProcess(cmd, 0)
        raise AssertionError(f"unexpected command {cmd}")

    def count(self, *prefix: str) -> int:
        return sum(1 for c in self.calls if c[1:1 + len(prefix)] == list(prefix))


@pytest.fixture
def cfg(tmp_path: Path) -> SourceConfig:
    c = SourceConfig([str(tmp_path / "missing.conf")])
    c.set("paths", "home", tmp_path / "home")
    c.set("paths", "cache_root", tmp_path / "bundle")
    c.set("paths", "app_cache", tmp_path / "app" / "vendor" / "cache")
    c.set("aws", "config_file", tmp_path / "aws" / "config")
    c.set("logging", "log_to_console", "false")
    return c


@pytest.fixture
def bucket_dir(tmp_path: Path) -> Path:
    d = tmp_path / "bucket"
    (d / "gems").mkdir(parents=True)
    return d


@pytest.fixture
def fake_aws(monkeypatch, bucket_dir: Path) -> FakeAws:
    fake = FakeAws(bucket_dir)
    monkeypatch.setattr(_sync.subprocess, "run", fake)
    return fake


@pytest.fixture
def make_package(tmp_path: Path):
    """make_package(out_dir, name, version, summary="", files=None) -> archive path"""
    counter = {"n": 0}

    def _make(out_dir, name, version, summary="", files=None) -> str:
        counter["n"] += 1
        content = tmp_path / "content" / f"{name}-{version}-{counter['n']}"
        files = files if files is not None else {"lib/" + name + ".py": f"VERSION = '{version}'\n"}
        for rel, text in files.items():
            p = content / rel
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(text, encoding="utf-8")
        content.mkdir(parents=True, exist_ok=True)
        spec = PackageSpec(name=name, version=version, summary=summary)
        return create_archive(str(content), spec, str(out_dir))

    return _make


def write_remote_index(bucket_dir: Path, specs, name: str = "specs.json.gz") -> None:
    blob = _index.dump_index(_index.SourceIndex(specs), name)
    (bucket_dir / name).write_bytes(blob)


def tree(root: str) -> dict[str, bytes]:
    out = {}
    for dirpath, _, files in os.walk(root):
        for fn in files:
            p = os.path.join(dirpath, fn)
            with open(p, "rb") as fh:
                out[os.path.relpath(p, root)] = fh.read()
    return out
