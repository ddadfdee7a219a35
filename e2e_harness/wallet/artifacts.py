"""Artifact store for failure reports and screenshots.

Every payload is written next to a small `.meta.json` sidecar so a CI job can
list what a failed run left behind without parsing the payloads themselves.
"""

from __future__ import annotations

import json
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

_ID_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]{0,127}$")


def _repo_root() -> Path:
    # e2e_harness/wallet/artifacts.py -> repo root is parents[2]
    return Path(__file__).resolve().parents[2]


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _make_id(prefix: str) -> str:
    suffix = f"{int(time.time() * 1000)}_{os.getpid()}"
    safe_prefix = re.sub(r"[^a-zA-Z0-9_-]+", "_", (prefix or "artifact")).strip("_") or "artifact"
    return f"{safe_prefix}_{suffix}"[:128]


@dataclass(frozen=True)
class ArtifactRef:
    id: str
    kind: str
    mime_type: str
    bytes: int
    created_at: str
    path: str


class ArtifactStore:
    def __init__(self, base_dir: Path | str | None = None) -> None:
        self.base_dir = Path(base_dir) if base_dir else (_repo_root() / "data" / "artifacts")
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _validate_id(self, artifact_id: str) -> str:
        if not _ID_RE.match(artifact_id):
            raise ValueError(f"invalid artifact id: {artifact_id!r}")
        return artifact_id

    def _meta_path(self, artifact_id: str) -> Path:
        return self.base_dir / f"{artifact_id}.meta.json"

    def _content_path(self, artifact_id: str, ext: str) -> Path:
        ext = ext if ext.startswith(".") else f".{ext}"
        return self.base_dir / f"{artifact_id}{ext}"

    def _write_meta(
        self,
        artifact_id: str,
        *,
        kind: str,
        mime_type: str,
        ext: str,
        size: int,
        metadata: dict[str, Any] | None,
    ) -> str:
        created = _now_iso()
        meta = {
            "id": artifact_id,
            "kind": kind,
            "mimeType": mime_type,
            "ext": ext,
            "bytes": size,
            "createdAt": created,
            **({"meta": metadata} if isinstance(metadata, dict) and metadata else {}),
        }
        self._meta_path(artifact_id).write_text(json.dumps(meta, ensure_ascii=False, indent=2), encoding="utf-8")
        return created

    def put_json(self, *, kind: str, obj: Any, metadata: dict[str, Any] | None = None) -> ArtifactRef:
        artifact_id = self._validate_id(_make_id(kind or "json"))
        content_path = self._content_path(artifact_id, ".json")
        content_path.write_text(json.dumps(obj, ensure_ascii=False, indent=2, default=str), encoding="utf-8")
        size = content_path.stat().st_size
        created = self._write_meta(
            artifact_id, kind=kind, mime_type="application/json", ext=".json", size=size, metadata=metadata
        )
        return ArtifactRef(artifact_id, kind, "application/json", size, created, str(content_path))

    def put_bytes(
        self,
        *,
        kind: str,
        data: bytes,
        mime_type: str = "image/png",
        metadata: dict[str, Any] | None = None,
    ) -> ArtifactRef:
        artifact_id = self._validate_id(_make_id(kind or "binary"))
        ext = ".png" if mime_type == "image/png" else ".bin"
        content_path = self._content_path(artifact_id, ext)
        content_path.write_bytes(data)
        size = content_path.stat().st_size
        created = self._write_meta(artifact_id, kind=kind, mime_type=mime_type, ext=ext, size=size, metadata=metadata)
        return ArtifactRef(artifact_id, kind, mime_type, size, created, str(content_path))

    def list(self) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        for meta_path in sorted(self.base_dir.glob("*.meta.json")):
            try:
                out.append(json.loads(meta_path.read_text(encoding="utf-8")))
            except (OSError, ValueError):
                continue
        return out


__all__ = ["ArtifactRef", "ArtifactStore"]
