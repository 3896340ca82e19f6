# s3source/modules/source.py
"""
S3Source - a package source backed by an S3 bucket prefix.

specs() merges three indices, later ones overriding earlier ones:

    remote    (remote() called)              decoded specs.json.gz from the bucket
    cached    (cached() or remote() called)  archives in the app cache dir
    installed (always)                       archives / .gemspec files in the install tree

so what is already on disk always wins over the bucket catalog. The merged
index is memoized in SourceState until remote(), cached() or unlock().
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from typing import List, Optional

from s3source.modules import logger as _logger
from s3source.modules.archive import PackageArchive, list_archives
from s3source.modules.cache import CacheManager
from s3source.modules.config import SourceConfig, config as default_config
from s3source.modules.hooks import HookManager
from s3source.modules.index import SourceIndex
from s3source.modules.installer import Installer
from s3source.modules.paths import METADATA_EXT, SourcePaths
from s3source.modules.spec import PackageSpec
from s3source.modules.sync import SyncManager


@dataclass
class SourceState:
    allow_remote: bool = False
    allow_cached: bool = False
    specs: Optional[SourceIndex] = None
    remote_specs: Optional[SourceIndex] = None
    cached_specs: Optional[SourceIndex] = None
    installed_specs: Optional[SourceIndex] = None
    packages: Optional[List[PackageArchive]] = None

    def invalidate(self, installed: bool = False) -> None:
        self.specs = None
        self.cached_specs = None
        self.packages = None
        if installed:
            self.installed_specs = None


class S3Source:
    def __init__(self,
                 uri: str,
                 cfg: Optional[SourceConfig] = None,
                 hooks: Optional[HookManager] = None,
                 log: Optional[_logger.Logger] = None):
        cfg = cfg or default_config
        self.uri = uri
        self.config = cfg
        self.log = log or _logger.Logger("aws-s3", cfg)
        self.paths = SourcePaths(
            uri,
            home=cfg.getpath("paths", "home"),
            cache_root=cfg.getpath("paths", "cache_root"),
            app_cache_root=cfg.getpath("paths", "app_cache"),
        )
        self.remote_blob = cfg.get("index", "remote_blob", fallback="specs.json.gz")
        self.state = SourceState()
        self.sync = SyncManager(
            self.paths,
            aws_cli=cfg.get("aws", "cli", fallback="aws"),
            aws_config_file=cfg.get("aws", "config_file", fallback="~/.aws/config"),
            log=self.log,
        )
        self.hooks = hooks or HookManager.from_config(cfg, log=self.log)
        self.installer = Installer(self)
        self.cache_manager = CacheManager(self.paths, log=self.log)

    def __str__(self) -> str:
        return f"aws-s3 plugin with uri {self.uri}"

    @property
    def install_path(self) -> str:
        return self.paths.install_path

    @property
    def app_cache_dirname(self) -> str:
        return self.paths.app_cache_dirname

    # ------------------------
    # Lifecycle
    # ------------------------
    def remote(self) -> None:
        """Allow fetching the remote index and syncing the bucket."""
        self.state.invalidate()
        self.state.allow_remote = True

    def cached(self) -> None:
        self.state.invalidate()
        self.state.allow_cached = True

    def unlock(self) -> None:
        """Remove every installed package of this source."""
        if os.path.isdir(self.install_path):
            shutil.rmtree(self.install_path)
        self.state.invalidate(installed=True)
        self.log.info(f"Removed {self.install_path}")

    # ------------------------
    # Indices
    # ------------------------
    def specs(self) -> SourceIndex:
        if self.state.specs is None:
            # start from the (usually largest) remote index and layer the rest on it
            idx = self.remote_specs().dup() if self.state.allow_remote else SourceIndex()
            if self.state.allow_cached or self.state.allow_remote:
                idx.use(self.cached_specs(), override_dupes=True)
            idx.use(self.installed_specs(), override_dupes=True)
            self.state.specs = idx
        return self.state.specs

    def _own(self, spec: PackageSpec) -> PackageSpec:
        spec.source = self
        spec.loaded_from = self.paths.loaded_from_for(spec.full_name)
        return spec

    def remote_specs(self) -> SourceIndex:
        if self.state.remote_specs is None:
            self.sync.pull()
            self.state.packages = None
            fetched = self.sync.fetch_object(self.remote_blob)
            self.state.remote_specs = SourceIndex(self._own(s) for s in fetched)
            self.log.debug(f"Remote index: {len(self.state.remote_specs)} spec(s)")
        return self.state.remote_specs

    def cached_specs(self) -> SourceIndex:
        if self.state.cached_specs is None:
            archives = list_archives(self.paths.app_cache_path())
            self.state.cached_specs = SourceIndex(
                self._own(PackageArchive(p).spec.copy()) for p in archives
            )
        return self.state.cached_specs

    def installed_specs(self) -> SourceIndex:
        if self.state.installed_specs is None:
            idx = SourceIndex()
            for p in list_archives(self.install_path):
                idx.add(self._own(PackageArchive(p).spec.copy()))
            for metadata in self._installed_metadata_files():
                idx.add(self._own(PackageSpec.load(metadata)))
            self.state.installed_specs = idx
        return self.state.installed_specs

    def _installed_metadata_files(self) -> List[str]:
        found = []
        if not os.path.isdir(self.install_path):
            return found
        for entry in sorted(os.listdir(self.install_path)):
            metadata = os.path.join(self.install_path, entry, entry + METADATA_EXT)
            if os.path.isfile(metadata):
                found.append(metadata)
        return found

    def packages(self) -> List[PackageArchive]:
        """Archives that can back an install: the sync mirror, then the install tree."""
        if self.state.packages is None:
            paths = list_archives(self.paths.archives_dir) + list_archives(self.install_path)
            self.state.packages = [PackageArchive(p) for p in paths]
        return self.state.packages

    # ------------------------
    # Install / cache
    # ------------------------
    def _ensure_mirror(self) -> None:
        if self.state.allow_remote and not self.sync.pulled:
            self.sync.pull()
            self.state.packages = None

    def install(self, spec: PackageSpec) -> str:
        self._ensure_mirror()
        return self.installer.install(spec)

    def cache(self, spec: PackageSpec, custom_path: Optional[str] = None) -> str:
        self._ensure_mirror()
        return self.cache_manager.cache(spec, custom_path)
