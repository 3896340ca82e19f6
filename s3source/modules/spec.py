# s3source/modules/spec.py
"""
PackageSpec - identity and metadata of one package.

The serialized form is the JSON written to `<full_name>.gemspec` next to an
installed package and stored as `metadata.json` inside every archive:

    {
      "name": "foo",
      "version": "1.0",
      "platform": "any",
      "summary": "...",
      "dependencies": ["bar >= 2.0"],
      "files": ["lib/foo.py", ...]
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from s3source.modules.errors import ArchiveError

DEFAULT_PLATFORM = "any"


def _path_safe(value: str) -> bool:
    # identities become directory names under the install tree
    return bool(value) and not value.startswith(".") and not any(c in value for c in "/\\\0")


@dataclass(eq=False)
class PackageSpec:
    name: str
    version: str
    platform: str = DEFAULT_PLATFORM
    summary: str = ""
    dependencies: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    # runtime only, never serialized
    source: Any = field(default=None, repr=False)
    loaded_from: Optional[str] = None

    @property
    def full_name(self) -> str:
        if self.platform and self.platform != DEFAULT_PLATFORM:
            return f"{self.name}-{self.version}-{self.platform}"
        return f"{self.name}-{self.version}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "platform": self.platform,
            "summary": self.summary,
            "dependencies": list(self.dependencies),
            "files": list(self.files),
        }

    def to_metadata(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageSpec":
        if not isinstance(data, dict):
            raise ArchiveError("package metadata must be an object")
        name = data.get("name")
        version = data.get("version")
        if not name or not version:
            raise ArchiveError("package metadata missing name/version")
        platform = str(data.get("platform") or DEFAULT_PLATFORM)
        for field_name, value in (("name", str(name)), ("version", str(version)), ("platform", platform)):
            if not _path_safe(value):
                raise ArchiveError(f"package metadata has an unsafe {field_name}: {value!r}")
        return cls(
            name=str(name),
            version=str(version),
            platform=platform,
            summary=str(data.get("summary") or ""),
            dependencies=[str(d) for d in data.get("dependencies") or []],
            files=[str(f) for f in data.get("files") or []],
        )

    @classmethod
    def from_metadata(cls, text: str) -> "PackageSpec":
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ArchiveError(f"invalid package metadata: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: str) -> "PackageSpec":
        """Read a spec back from a metadata file written by an install."""
        try:
            with open(path, "r", encoding="utf-8") as fh:
                text = fh.read()
        except OSError as e:
            raise ArchiveError(f"cannot read package metadata {path}: {e}") from e
        spec = cls.from_metadata(text)
        spec.loaded_from = path
        return spec

    def copy(self) -> "PackageSpec":
        return PackageSpec(
            name=self.name,
            version=self.version,
            platform=self.platform,
            summary=self.summary,
            dependencies=list(self.dependencies),
            files=list(self.files),
            source=self.source,
            loaded_from=self.loaded_from,
        )

    def __str__(self) -> str:
        return self.full_name
