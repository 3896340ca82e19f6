# s3source/modules/paths.py
"""
Deterministic on-disk locations for one S3 source.

Everything is derived from the bucket and the bucket-relative path parsed out
of the source URI, so a later run recomputes exactly the same directories:

  install path  <home>/s3-gems/<bucket>/<path>
  sync mirror   <cache_root>/bundler-source-aws-s3/<bucket>/<path>
  app cache     <app_cache or custom>/s3-<bucket>
"""

from __future__ import annotations

import os
import posixpath
from typing import Optional, Tuple
from urllib.parse import urlsplit

from s3source.modules.archive import ARCHIVE_EXT
from s3source.modules.errors import SourceURIError

INSTALL_DIRNAME = "s3-gems"
MIRROR_DIRNAME = "bundler-source-aws-s3"
ARCHIVES_DIRNAME = "gems"
CACHE_MARKER = ".bundlecache"
METADATA_EXT = ".gemspec"


def parse_source_uri(uri: str) -> Tuple[str, str]:
    """
    Return (bucket, path) for `s3://bucket/path/to/prefix`.

    The bucket is the lower-cased host; the path loses its leading slash and
    any trailing slash. A URI without a path maps to the empty prefix.
    """
    parts = urlsplit(uri.strip())
    if parts.scheme.lower() != "s3":
        raise SourceURIError(f"Unsupported source uri (expected s3://): {uri}")
    bucket = parts.hostname
    if not bucket:
        raise SourceURIError(f"Source uri has no bucket: {uri}")
    path = posixpath.normpath("/" + parts.path.lstrip("/"))
    return bucket, path[1:]


class SourcePaths:
    def __init__(self, uri: str, home: str, cache_root: str, app_cache_root: str):
        self.uri = uri
        self.bucket, self.path = parse_source_uri(uri)
        self.home = os.path.abspath(home)
        self.cache_root = os.path.abspath(cache_root)
        self.app_cache_root = os.path.abspath(app_cache_root)

    def _under(self, root: str, *parts: str) -> str:
        segments = [root, *parts, self.bucket]
        if self.path:
            segments.extend(self.path.split("/"))
        return os.path.join(*segments)

    @property
    def remote_uri(self) -> str:
        """Normalized `s3://bucket/path/` prefix, always with a trailing slash."""
        if self.path:
            return f"s3://{self.bucket}/{self.path}/"
        return f"s3://{self.bucket}/"

    def object_uri(self, name: str) -> str:
        return self.remote_uri + name.lstrip("/")

    # ------------------------
    # Install tree
    # ------------------------
    @property
    def install_path(self) -> str:
        return self._under(self.home, INSTALL_DIRNAME)

    def install_dir_for(self, full_name: str) -> str:
        return os.path.join(self.install_path, full_name)

    def loaded_from_for(self, full_name: str) -> str:
        # path of the installed package's metadata file
        return os.path.join(self.install_dir_for(full_name), full_name + METADATA_EXT)

    # ------------------------
    # Sync mirror
    # ------------------------
    @property
    def s3_gems_path(self) -> str:
        return self._under(self.cache_root, MIRROR_DIRNAME)

    @property
    def archives_dir(self) -> str:
        return os.path.join(self.s3_gems_path, ARCHIVES_DIRNAME)

    def mirror_archive_for(self, full_name: str) -> str:
        return os.path.join(self.archives_dir, full_name + ARCHIVE_EXT)

    # ------------------------
    # App cache
    # ------------------------
    @property
    def app_cache_dirname(self) -> str:
        return "s3-" + os.path.basename(self.bucket)

    def app_cache_root_for(self, custom_path: Optional[str] = None) -> str:
        return os.path.abspath(custom_path) if custom_path else self.app_cache_root

    def app_cache_path(self, custom_path: Optional[str] = None) -> str:
        return os.path.join(self.app_cache_root_for(custom_path), self.app_cache_dirname)
