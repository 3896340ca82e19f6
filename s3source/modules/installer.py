# s3source/modules/installer.py
"""
installer.py - materialize a resolved spec into the install tree.

Flow for install(spec):
 - announce "Using <name> <version> from <source>"
 - validate ownership (spec.source is ours, loaded_from is our computed path)
 - refuse a full_name that would place the package outside the install tree
 - find the archive with the same full_name
 - extract into <install_path>/<full_name>/ (overwrites in place)
 - write <full_name>.gemspec so later runs see the package as installed
 - run post_install hooks

Re-installing the same spec yields the same tree.
"""

from __future__ import annotations

import os
from typing import Optional

from s3source.modules.archive import PackageArchive
from s3source.modules.errors import ArchiveError, MissingArchiveError, ValidationError
from s3source.modules.spec import PackageSpec


class Installer:
    def __init__(self, source):
        self.source = source
        self.paths = source.paths
        self.log = source.log

    # ------------------------
    # Validation
    # ------------------------
    def owns(self, spec: PackageSpec) -> bool:
        return (
            spec.source is self.source
            and spec.loaded_from == self.paths.loaded_from_for(spec.full_name)
        )

    def validate(self, spec: PackageSpec) -> None:
        if not self.owns(spec):
            raise ValidationError(f"[aws-s3] Error {spec.full_name} spec is not valid")

    # ------------------------
    # Install
    # ------------------------
    def package_for(self, spec: PackageSpec) -> Optional[PackageArchive]:
        # first match wins; duplicate identities in the archive dirs are unsupported
        for package in self.source.packages():
            if package.spec.full_name == spec.full_name:
                return package
        return None

    def install(self, spec: PackageSpec) -> str:
        self.log.info(f"Using {spec.name} {spec.version} from {self.source}")

        self.validate(spec)
        destination = self.paths.install_dir_for(spec.full_name)
        root = os.path.realpath(self.paths.install_path)
        if os.path.dirname(os.path.realpath(destination)) != root:
            raise ArchiveError(f"[aws-s3] Refusing to install {spec.full_name!r} outside {root}")

        package = self.package_for(spec)
        if package is None:
            raise MissingArchiveError(
                f"[aws-s3] Nothing to install: no archive for {spec.full_name} "
                f"in {self.paths.archives_dir}"
            )

        os.makedirs(destination, exist_ok=True)
        files = package.extract_files(destination)
        self.log.debug(f"Extracted {len(files)} file(s) from {package.path} to {destination}")
        with open(spec.loaded_from, "w", encoding="utf-8") as fh:
            fh.write(spec.to_metadata())

        self.source.hooks.run_hooks("post_install", spec, destination)
        return destination
