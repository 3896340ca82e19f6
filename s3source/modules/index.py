# s3source/modules/index.py
"""
SourceIndex - mapping of package identity (full_name) to PackageSpec.

Remote index blob format (optionally gzip `.gz` or zlib `.rz` compressed):

    {"format": "s3source-index", "version": 1, "specs": [<spec dict>, ...]}
"""

from __future__ import annotations

import gzip
import json
import os
import zlib
from typing import Dict, Iterable, Iterator, List, Optional

from s3source.modules.archive import PackageArchive, list_archives
from s3source.modules.errors import ArchiveError
from s3source.modules.spec import PackageSpec

INDEX_FORMAT = "s3source-index"
INDEX_VERSION = 1


class SourceIndex:
    def __init__(self, specs: Optional[Iterable[PackageSpec]] = None):
        self._specs: Dict[str, PackageSpec] = {}
        for spec in specs or []:
            self.add(spec)

    def add(self, spec: PackageSpec) -> None:
        self._specs[spec.full_name] = spec

    def use(self, other: "SourceIndex", override_dupes: bool = False) -> "SourceIndex":
        """Merge `other` into this index; with override_dupes its entries win."""
        for full_name, spec in other.items():
            if override_dupes or full_name not in self._specs:
                self._specs[full_name] = spec
        return self

    def dup(self) -> "SourceIndex":
        return SourceIndex(self._specs.values())

    def get(self, full_name: str) -> Optional[PackageSpec]:
        return self._specs.get(full_name)

    def search(self, name: str, version: Optional[str] = None) -> List[PackageSpec]:
        return [
            s for s in self._specs.values()
            if s.name == name and (version is None or s.version == version)
        ]

    def items(self):
        return self._specs.items()

    def full_names(self) -> List[str]:
        return sorted(self._specs)

    def __iter__(self) -> Iterator[PackageSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, full_name: str) -> bool:
        return full_name in self._specs

    def __repr__(self) -> str:
        return f"SourceIndex({self.full_names()!r})"


# ------------------------
# Remote index blob
# ------------------------
def inflate(path: str, data: bytes) -> bytes:
    """Decompress `data` according to the extension of `path`."""
    try:
        if path.endswith(".gz"):
            return gzip.decompress(data)
        if path.endswith(".rz"):
            return zlib.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        raise ArchiveError(f"cannot decompress {path}: {e}") from e
    return data


def load_index(data: bytes) -> SourceIndex:
    try:
        obj = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ArchiveError(f"invalid index blob: {e}") from e
    if not isinstance(obj, dict):
        raise ArchiveError("index must be a JSON object")
    if obj.get("format") != INDEX_FORMAT or obj.get("version") != INDEX_VERSION:
        raise ArchiveError("unsupported index format/version")
    raw_specs = obj.get("specs")
    if not isinstance(raw_specs, list):
        raise ArchiveError("index missing specs list")
    return SourceIndex(PackageSpec.from_dict(raw) for raw in raw_specs)


def dump_index(index: SourceIndex, path: str) -> bytes:
    """Serialize `index`, compressing according to the extension of `path`."""
    payload = {
        "format": INDEX_FORMAT,
        "version": INDEX_VERSION,
        "specs": [index.get(n).to_dict() for n in index.full_names()],
    }
    data = json.dumps(payload, indent=2, sort_keys=True).encode("utf-8")
    if path.endswith(".gz"):
        return gzip.compress(data)
    if path.endswith(".rz"):
        return zlib.compress(data)
    return data


def build_index(archives_dir: str, out_path: str) -> SourceIndex:
    """Write a remote index blob describing every archive in `archives_dir`."""
    index = SourceIndex(PackageArchive(p).spec for p in list_archives(archives_dir))
    out_dir = os.path.dirname(os.path.abspath(out_path))
    os.makedirs(out_dir, exist_ok=True)
    with open(out_path, "wb") as fh:
        fh.write(dump_index(index, out_path))
    return index
