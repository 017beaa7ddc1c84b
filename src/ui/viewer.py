"""
Helpers for showing a normalized heart mesh in a NiceGUI scene.

NiceGUI scene API notes:
- gltf(url) is a method on the Scene object and loads a served file.
- three.js uses Y-up; the service meshes are in voxel-space millimetres.
"""

import os

import numpy as np
import trimesh
from nicegui import ui

from clinical_report import NO_MESH_MESSAGE
from mesh_normalizer import NormalizedMesh

HEART_RGBA = (255, 68, 68, 255)

# Conversion factor: service meshes are in mm, three.js scenes use metres
MM_TO_M = 0.001


def export_for_viewer(mesh: NormalizedMesh, output_dir: str, basename: str) -> str:
    """Centre a copy of the mesh on the origin and export it as GLB.

    The source geometry is left untouched. Returns the path to the GLB file.
    """
    geometry = mesh.geometry.copy()
    bounds = geometry.bounds  # [[min_x, min_y, min_z], [max_x, max_y, max_z]]
    center = (bounds[0] + bounds[1]) / 2.0
    geometry.apply_translation(-center)
    geometry.apply_scale(MM_TO_M)
    colors = np.tile(np.array(HEART_RGBA, dtype=np.uint8), (len(geometry.vertices), 1))
    geometry.visual = trimesh.visual.ColorVisuals(geometry, vertex_colors=colors)

    os.makedirs(output_dir, exist_ok=True)
    out_path = os.path.join(output_dir, f"{basename}.glb")
    geometry.export(out_path, file_type="glb")
    return out_path


def render_heart(scene: ui.scene, mesh_url: str) -> None:
    """Load an exported GLB heart mesh into a NiceGUI scene."""
    with scene:
        scene.gltf(mesh_url)


def build_mesh_placeholder() -> None:
    ui.label(NO_MESH_MESSAGE).classes(
        "text-gray-400 italic text-sm p-8 text-center w-full"
    )
