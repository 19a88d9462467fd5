"""Package store and relationship registry used by the shift engine."""

import io
import posixpath
import zipfile
from typing import Optional

from pydantic import BaseModel, Field

from .models import Relationship

TABLE_RELATIONSHIP_TYPE = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships/table"
)
HYPERLINK_RELATIONSHIP_TYPE = (
    "http://schemas.openxmlformats.org/officeDocument/2006/relationships/hyperlink"
)


def resolve_part_path(target: str) -> str:
    """Resolve a worksheet relationship target to a package path.

    ``"../tables/table1.xml"`` becomes ``"xl/tables/table1.xml"`` and
    absolute targets such as ``"/xl/tables/table1.xml"`` lose their slash.
    """
    if target.startswith("/"):
        return target[1:]
    return posixpath.normpath(posixpath.join("xl/worksheets", target))


class PackageStore:
    """In-memory map of package part paths to their bytes."""

    def __init__(self, parts: Optional[dict[str, bytes]] = None):
        self._parts: dict[str, bytes] = dict(parts or {})

    def load(self, path: str) -> Optional[bytes]:
        """Return the content of a part, or None when it does not exist."""
        return self._parts.get(path)

    def save(self, path: str, content: bytes):
        """Create or replace a part."""
        self._parts[path] = content

    def delete(self, path: str):
        """Remove a part if present."""
        self._parts.pop(path, None)

    def paths(self) -> list[str]:
        return sorted(self._parts)

    def __contains__(self, path: str) -> bool:
        return path in self._parts

    def __len__(self) -> int:
        return len(self._parts)

    @classmethod
    def from_zip(cls, data: bytes) -> "PackageStore":
        """Read every part of a zip container into a new store."""
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            return cls({name: zf.read(name) for name in zf.namelist()})

    def to_zip(self) -> bytes:
        """Write the parts back into a zip container."""
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
            for path in self.paths():
                zf.writestr(path, self._parts[path])
        return buf.getvalue()


class RelationshipRegistry(BaseModel):
    """Relationships of one worksheet part (``xl/worksheets/_rels/...``)."""

    relationships: list[Relationship] = Field(default_factory=list)

    def get(self, rid: str) -> Optional[Relationship]:
        for rel in self.relationships:
            if rel.id == rid:
                return rel
        return None

    def get_target(self, rid: str) -> str:
        """Return the target of a relationship, or an empty string."""
        rel = self.get(rid)
        return rel.target if rel else ""

    def add(self, rel_type: str, target: str, target_mode: Optional[str] = None) -> str:
        """Register a relationship and return its new id."""
        next_id = 1
        for rel in self.relationships:
            if rel.id.startswith("rId") and rel.id[3:].isdigit():
                next_id = max(next_id, int(rel.id[3:]) + 1)
        rid = f"rId{next_id}"
        self.relationships.append(
            Relationship(id=rid, type=rel_type, target=target, target_mode=target_mode)
        )
        return rid

    def remove(self, rid: str) -> bool:
        """Unregister a relationship; returns False if it was unknown."""
        before = len(self.relationships)
        self.relationships = [rel for rel in self.relationships if rel.id != rid]
        return len(self.relationships) != before
