"""
Turn an OBJ mesh payload from the analysis service into renderable geometry.

The service may pack several objects into one payload. Only the first object
(an unnamed leading block, or the first ``o`` block) that carries faces is
kept; materials and textures are dropped. Every failure is soft: the caller
gets ``None`` and the workflow carries on with the volume metrics.
"""

import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import trimesh

from analysis_errors import MeshParseError

logger = logging.getLogger(__name__)

# Element statements that belong to an object; everything else (vertex data,
# comments, material lines) is kept so global vertex indices stay valid.
_ELEMENT_KEYWORDS = ("f", "l", "p")


@dataclass
class NormalizedMesh:
    """A single sub-mesh ready for the viewer."""
    geometry: trimesh.Trimesh
    name: str = ""

    @property
    def vertex_count(self) -> int:
        return int(len(self.geometry.vertices))

    @property
    def face_count(self) -> int:
        return int(len(self.geometry.faces))


def _keyword(line: str) -> str:
    parts = line.split(None, 1)
    return parts[0] if parts else ""


def _object_blocks(payload: str) -> List[Tuple[str, int]]:
    """Return ``(name, face_count)`` per object block in payload order.

    Lines before the first ``o`` statement form an unnamed block.
    """
    blocks = [("", 0)]
    for line in payload.splitlines():
        key = _keyword(line)
        if key == "o":
            parts = line.split(None, 1)
            blocks.append((parts[1].strip() if len(parts) > 1 else "", 0))
        elif key == "f":
            name, faces = blocks[-1]
            blocks[-1] = (name, faces + 1)
    return blocks


def _isolate_block(payload: str, index: int) -> str:
    """Drop element statements outside block ``index``; keep vertex data."""
    kept = []
    block = 0
    for line in payload.splitlines():
        key = _keyword(line)
        if key == "o":
            block += 1
            continue
        if key in _ELEMENT_KEYWORDS and block != index:
            continue
        kept.append(line)
    return "\n".join(kept) + "\n"


def _parse_obj(text: str) -> trimesh.Scene:
    try:
        return trimesh.load(
            io.BytesIO(text.encode("utf-8")),
            file_type="obj",
            force="scene",
            skip_materials=True,
        )
    except Exception as exc:
        raise MeshParseError(f"OBJ payload could not be parsed: {exc}") from exc


def _first_submesh(payload: str) -> Tuple[NormalizedMesh, int]:
    blocks = _object_blocks(payload)
    index = next((i for i, (_, faces) in enumerate(blocks) if faces > 0), None)
    if index is None:
        raise MeshParseError("OBJ payload contains no faces")

    scene = _parse_obj(_isolate_block(payload, index))
    # usemtl switches may still split one object into several geometries
    parts = [
        geom for geom in scene.geometry.values()
        if isinstance(geom, trimesh.Trimesh) and len(geom.faces) > 0
    ]
    if not parts:
        raise MeshParseError("OBJ payload contains no triangle meshes")

    geometry = parts[0] if len(parts) == 1 else trimesh.util.concatenate(parts)
    geometry.remove_unreferenced_vertices()
    objects = sum(1 for _, faces in blocks if faces > 0)
    return NormalizedMesh(geometry=geometry, name=blocks[index][0]), objects


def normalize(mesh_payload: Optional[str]) -> Optional[NormalizedMesh]:
    """Return the first sub-mesh of ``mesh_payload`` or ``None``.

    ``None`` means either "the service sent no mesh" or "the mesh was
    unusable"; the latter is logged as a warning.
    """
    if mesh_payload is None:
        return None

    try:
        mesh, objects = _first_submesh(mesh_payload)
    except MeshParseError as exc:
        logger.warning("Mesh normalization failed: %s", exc)
        return None

    logger.debug(
        "Normalized mesh '%s': %d vertices, %d faces (%d objects in payload)",
        mesh.name, mesh.vertex_count, mesh.face_count, objects,
    )
    return mesh
