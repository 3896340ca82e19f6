# s3source/modules/sync.py
"""
sync.py - local mirror of the bucket prefix, driven by the aws cli.

- `pull()` mirrors `s3://bucket/path/` into the sync mirror directory with
  `aws s3 sync --delete`, at most once per SyncManager.
- When the sync fails and the aws cli config uses SSO, `aws sso login` is run
  once and the sync retried once. Anything else is an S3AccessError.
- `fetch_object()` copies a single object (the remote index blob) through a
  temporary file and decodes it.
"""

import configparser
import enum
import os
import subprocess
import tempfile
from dataclasses import dataclass
from typing import List, Optional

from s3source.modules import index as _index
from s3source.modules import logger as _logger
from s3source.modules.errors import S3AccessError
from s3source.modules.paths import SourcePaths

SSO_KEYS = ("sso_start_url", "sso_session")


class SyncOutcome(enum.Enum):
    SUCCESS = "success"
    RETRIED = "success-after-retry"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncResult:
    outcome: SyncOutcome
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is not SyncOutcome.FAILED


class SyncManager:
    def __init__(self,
                 paths: SourcePaths,
                 aws_cli: str = "aws",
                 aws_config_file: str = "~/.aws/config",
                 log: Optional[_logger.Logger] = None):
        self.paths = paths
        self.aws_cli = aws_cli
        self.aws_config_file = os.path.expanduser(aws_config_file)
        self.log = log or _logger.Logger("sync")
        self._pulled: Optional[bool] = None

    @property
    def sync_cmd(self) -> List[str]:
        return [self.aws_cli, "s3", "sync", "--delete",
                self.paths.remote_uri, self.paths.s3_gems_path]

    def _capture(self, cmd: List[str], uri: Optional[str] = None) -> subprocess.CompletedProcess:
        self.log.debug(f"Running: {' '.join(cmd)}")
        try:
            return subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
        except OSError as e:
            raise S3AccessError(uri or self.paths.remote_uri, f"cannot run {cmd[0]!r}: {e}") from e

    # ------------------------
    # Mirror
    # ------------------------
    @property
    def pulled(self) -> bool:
        return self._pulled is not None

    def pull(self) -> bool:
        """Mirror the bucket prefix locally; runs the sync once per instance."""
        if self._pulled is not None:
            return self._pulled

        os.makedirs(self.paths.s3_gems_path, exist_ok=True)
        result = self.sync_gems()
        if not result.ok:
            raise S3AccessError(self.paths.remote_uri,
                                f"{' '.join(self.sync_cmd)!r} failed. {result.output}")
        if result.outcome is SyncOutcome.RETRIED:
            self.log.info("Sync succeeded after sso login")
        self.log.debug(f"Mirror ready at {self.paths.s3_gems_path}")
        self._pulled = True
        return self._pulled

    def sync_gems(self) -> SyncResult:
        res = self._capture(self.sync_cmd)
        if res.returncode == 0:
            return SyncResult(SyncOutcome.SUCCESS, res.stdout or "")

        if not self.sso_configured():
            return SyncResult(SyncOutcome.FAILED, res.stdout or "")

        self.log.info(f"`{' '.join(self.sync_cmd)}` failed. Trying `{self.aws_cli} sso login`...")
        self.sso_login()
        res = self._capture(self.sync_cmd)
        if res.returncode == 0:
            return SyncResult(SyncOutcome.RETRIED, res.stdout or "")
        return SyncResult(SyncOutcome.FAILED, res.stdout or "")

    def sso_configured(self) -> bool:
        if not os.path.isfile(self.aws_config_file):
            return False
        parser = configparser.ConfigParser(interpolation=None)
        try:
            parser.read(self.aws_config_file)
        except configparser.Error as e:
            self.log.warning(f"Cannot parse {self.aws_config_file}: {e}")
            return False
        return any(
            key in parser[section]
            for section in parser.sections()
            for key in SSO_KEYS
        )

    def sso_login(self) -> int:
        # interactive: output goes straight to the user's terminal
        try:
            return subprocess.run([self.aws_cli, "sso", "login"]).returncode
        except OSError as e:
            raise S3AccessError(self.paths.remote_uri, f"cannot run {self.aws_cli!r}: {e}") from e

    # ------------------------
    # Single object fetch
    # ------------------------
    def fetch_object(self, path: str) -> _index.SourceIndex:
        full_path = self.paths.object_uri(path)
        with tempfile.NamedTemporaryFile(prefix=f"aws-s3-{self.paths.bucket}-specs") as tmp:
            cmd = [self.aws_cli, "s3", "cp", full_path, tmp.name]
            res = self._capture(cmd, full_path)
            if res.returncode != 0:
                raise S3AccessError(full_path, f"{' '.join(cmd)!r} failed. {res.stdout or ''}")
            with open(tmp.name, "rb") as fh:
                data = fh.read()
        self.log.debug(f"Fetched {full_path} ({len(data)} bytes)")
        return _index.load_index(_index.inflate(path, data))
