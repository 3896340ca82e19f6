# s3source/modules/archive.py
"""
archive.py - package archives (read spec, extract, pack)

Archive layout (tar.gz named `<full_name>.gem`):
 - top-level directory: <full_name>/
 - <full_name>/metadata.json   serialized PackageSpec
 - <full_name>/<files...>      package contents, relative paths
"""

from __future__ import annotations

import io
import os
import tarfile
import time
from typing import List, Optional

from s3source.modules.errors import ArchiveError
from s3source.modules.spec import PackageSpec

ARCHIVE_EXT = ".gem"
METADATA_NAME = "metadata.json"


def list_archives(directory: str) -> List[str]:
    """Archive files directly inside `directory`, sorted; [] if it does not exist."""
    if not os.path.isdir(directory):
        return []
    found = []
    for fn in sorted(os.listdir(directory)):
        path = os.path.join(directory, fn)
        if fn.endswith(ARCHIVE_EXT) and os.path.isfile(path):
            found.append(path)
    return found


class PackageArchive:
    def __init__(self, path: str):
        self.path = os.path.abspath(path)
        self._spec: Optional[PackageSpec] = None

    def _open(self) -> tarfile.TarFile:
        if not os.path.isfile(self.path):
            raise ArchiveError(f"Archive not found: {self.path}")
        try:
            return tarfile.open(self.path, "r:gz")
        except (tarfile.TarError, OSError) as e:
            raise ArchiveError(f"Cannot open archive {self.path}: {e}") from e

    @staticmethod
    def _prefix(members: List[tarfile.TarInfo]) -> str:
        for m in members:
            parts = m.name.split("/", 1)
            if len(parts) > 1:
                return parts[0]
        raise ArchiveError("Archive structure unexpected (no top-level dir)")

    @property
    def spec(self) -> PackageSpec:
        if self._spec is None:
            self._spec = self._read_spec()
        return self._spec

    def _read_spec(self) -> PackageSpec:
        with self._open() as tar:
            try:
                members = tar.getmembers()
            except (tarfile.TarError, OSError, EOFError) as e:
                raise ArchiveError(f"Corrupt archive {self.path}: {e}") from e
            meta = None
            for member in members:
                if os.path.basename(member.name) == METADATA_NAME and member.isfile():
                    meta = member
                    break
            if meta is None:
                raise ArchiveError(f"{METADATA_NAME} not found inside {self.path}")
            f = tar.extractfile(meta)
            if f is None:
                raise ArchiveError(f"Failed to read {METADATA_NAME} from {self.path}")
            try:
                text = f.read().decode("utf-8")
            except (tarfile.TarError, OSError, EOFError, UnicodeDecodeError) as e:
                raise ArchiveError(f"Corrupt archive {self.path}: {e}") from e
        return PackageSpec.from_metadata(text)

    def extract_files(self, dest: str) -> List[str]:
        """
        Extract package files into `dest`, stripping the top-level directory.
        Existing files are overwritten. Returns the extracted relative paths.
        """
        dest = os.path.abspath(dest)
        extracted = []
        with self._open() as tar:
            try:
                members = tar.getmembers()
            except (tarfile.TarError, OSError, EOFError) as e:
                raise ArchiveError(f"Corrupt archive {self.path}: {e}") from e
            prefix = self._prefix(members)
            for m in members:
                if not m.name.startswith(prefix + "/"):
                    continue
                rel = m.name[len(prefix) + 1:]
                if rel == "" or rel == METADATA_NAME:
                    continue
                target = os.path.abspath(os.path.join(dest, rel))
                if os.path.commonpath([dest, target]) != dest:
                    raise ArchiveError(f"Refusing to extract {m.name} outside of {dest}")
                if m.issym() or m.islnk():
                    raise ArchiveError(f"Refusing to extract link {m.name}")
                m.name = rel
                try:
                    if hasattr(tarfile, "data_filter"):
                        tar.extract(m, path=dest, filter="data")
                    else:
                        tar.extract(m, path=dest)
                except (tarfile.TarError, OSError, EOFError) as e:
                    raise ArchiveError(f"Failed extracting {rel} from {self.path}: {e}") from e
                if m.isfile():
                    extracted.append(rel)
        return extracted


# ------------------------
# Packing
# ------------------------
def create_archive(content_dir: str, spec: PackageSpec, output_dir: str) -> str:
    """
    Pack `content_dir` into `<output_dir>/<full_name>.gem`.
    The spec's `files` list is replaced by what was actually packed.
    """
    content_dir = os.path.abspath(content_dir)
    if not os.path.isdir(content_dir):
        raise ArchiveError(f"Directory not found: {content_dir}")

    files_list = []
    for root, _, files in os.walk(content_dir):
        for fn in files:
            rel = os.path.relpath(os.path.join(root, fn), content_dir)
            files_list.append(rel.replace(os.sep, "/"))
    spec.files = sorted(files_list)

    outdir = os.path.abspath(output_dir)
    os.makedirs(outdir, exist_ok=True)
    pkg_dirname = spec.full_name
    archive_name = os.path.join(outdir, pkg_dirname + ARCHIVE_EXT)

    with tarfile.open(archive_name, "w:gz") as tar:
        for rel in spec.files:
            tar.add(os.path.join(content_dir, rel), arcname=f"{pkg_dirname}/{rel}")
        meta_bytes = spec.to_metadata().encode("utf-8")
        meta_info = tarfile.TarInfo(name=f"{pkg_dirname}/{METADATA_NAME}")
        meta_info.size = len(meta_bytes)
        meta_info.mtime = int(time.time())
        tar.addfile(meta_info, io.BytesIO(meta_bytes))
    return archive_name
