# s3source/modules/cache.py
"""
CacheManager - copies archives out of the sync mirror into the app cache
(`vendor/cache/s3-<bucket>` by default) so later runs can reuse them without
syncing again. That directory is tagged with a `.bundlecache` marker.
"""

import os
import shutil
from typing import Optional

from s3source.modules import logger as _logger
from s3source.modules.errors import MissingArchiveError
from s3source.modules.paths import CACHE_MARKER, SourcePaths


class CacheManager:
    def __init__(self, paths: SourcePaths, log: Optional[_logger.Logger] = None):
        self.paths = paths
        self.log = log or _logger.Logger("cache")

    def cache(self, spec, custom_path: Optional[str] = None) -> str:
        """Copy the archive for `spec` into the app cache. Returns its new path."""
        src = self.paths.mirror_archive_for(spec.full_name)
        if not os.path.isfile(src):
            raise MissingArchiveError(
                f"[aws-s3] Nothing to cache: {spec.full_name} not found in {self.paths.archives_dir}"
            )

        cache_dir = self.paths.app_cache_path(custom_path)
        os.makedirs(cache_dir, exist_ok=True)
        marker = os.path.join(cache_dir, CACHE_MARKER)
        with open(marker, "a", encoding="utf-8"):
            os.utime(marker, None)

        dest = os.path.join(cache_dir, os.path.basename(src))
        shutil.copy2(src, dest)
        self.log.info(f"Cached {spec.full_name}: {dest}")
        return dest
