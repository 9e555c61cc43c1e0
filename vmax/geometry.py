"""
Mesh and color helpers for turning decoded voxels into renderable geometry.
"""

import numpy as np
from typing import Optional, Sequence

try:
    import trimesh
    HAS_TRIMESH = True
except ImportError:
    HAS_TRIMESH = False

from vmax.scene_info import MaterialSettings

# Unit cube corners and triangles (2 per face)
_BOX_VERTS = np.array([
    [0, 0, 0],  # 0
    [1, 0, 0],  # 1
    [1, 1, 0],  # 2
    [0, 1, 0],  # 3
    [0, 0, 1],  # 4
    [1, 0, 1],  # 5
    [1, 1, 1],  # 6
    [0, 1, 1],  # 7
], dtype=np.float32)

_BOX_FACES = np.array([
    # Front
    [0, 2, 1], [0, 3, 2],
    # Back
    [4, 5, 6], [4, 6, 7],
    # Left
    [0, 4, 7], [0, 7, 3],
    # Right
    [1, 2, 6], [1, 6, 5],
    # Bottom
    [0, 1, 5], [0, 5, 4],
    # Top
    [3, 6, 2], [3, 7, 6],
], dtype=np.int64)


def srgb_to_linear(value: float) -> float:
    """Convert one sRGB channel in [0, 1] to linear."""
    if value <= 0.04045:
        return value / 12.92
    return ((value + 0.055) / 1.055) ** 2.4


def palette_color(
    palette: Optional[np.ndarray],
    color: int,
    linear: bool = False,
) -> np.ndarray:
    """
    Look up a palette index as RGBA floats in [0, 1].

    Args:
        palette: (256, 4) uint8 RGBA array, or None
        color: 0-based palette index
        linear: Convert RGB from sRGB to linear (alpha is left as is)

    Returns:
        Length-4 float array; mid grey when there is no palette
    """
    if palette is None or not (0 <= color < len(palette)):
        return np.array([0.5, 0.5, 0.5, 1.0])

    rgba = palette[color].astype(np.float64) / 255.0
    if linear:
        rgba[:3] = [srgb_to_linear(c) for c in rgba[:3]]
    return rgba


def voxel_box_arrays(
    positions: np.ndarray,
    voxel_size: float = 1.0,
    fill: float = 1.0,
):
    """
    Build vertex and face arrays for one box per voxel.

    Args:
        positions: Nx3 integer voxel positions
        voxel_size: Edge length of one voxel
        fill: Box size relative to the voxel (< 1 leaves gaps)

    Returns:
        Tuple of (vertices (8N, 3) float32, faces (12N, 3) int64)
    """
    positions = np.asarray(positions, dtype=np.float32).reshape(-1, 3)
    margin = (1.0 - fill) / 2.0
    corners = _BOX_VERTS * fill + margin

    vertices = (positions[:, None, :] + corners[None, :, :]) * voxel_size
    faces = _BOX_FACES[None, :, :] + (np.arange(len(positions)) * 8)[:, None, None]
    return vertices.reshape(-1, 3), faces.reshape(-1, 3)


def create_voxel_mesh(
    positions: np.ndarray,
    voxel_size: float = 1.0,
    fill: float = 1.0,
    rgba: Optional[Sequence[float]] = None,
    material: Optional[MaterialSettings] = None,
) -> "trimesh.Trimesh":
    """
    Create one mesh holding a box for every voxel of a group.

    Args:
        positions: Nx3 integer voxel positions
        voxel_size: Edge length of one voxel
        fill: Box size relative to the voxel
        rgba: Base color as floats in [0, 1]
        material: Material settings for the PBR parameters

    Returns:
        trimesh.Trimesh mesh
    """
    if not HAS_TRIMESH:
        raise ImportError("trimesh is required for mesh export. Install with: pip install trimesh")

    vertices, faces = voxel_box_arrays(positions, voxel_size, fill)
    mesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=False)

    if rgba is not None or material is not None:
        mesh.visual = trimesh.visual.TextureVisuals(material=make_pbr_material(rgba, material))

    return mesh


def make_pbr_material(
    rgba: Optional[Sequence[float]],
    material: Optional[MaterialSettings] = None,
) -> "trimesh.visual.material.PBRMaterial":
    """Map a palette color and material settings to a glTF PBR material."""
    base = list(rgba) if rgba is not None else [0.5, 0.5, 0.5, 1.0]
    settings = material or MaterialSettings()
    kind = settings.kind()

    metallic = 1.0 if kind == "metal" else 0.0
    emissive = None
    if kind == "emitter":
        strength = min(settings.emission, 1.0)
        emissive = [base[0] * strength, base[1] * strength, base[2] * strength]
    if kind in ("glass", "liquid", "dielectric"):
        transmission = 1.0 if kind != "dielectric" else min(settings.transmission, 1.0)
        base[3] = min(base[3], 1.0 - 0.5 * transmission)

    return trimesh.visual.material.PBRMaterial(
        name=f"{kind}{settings.index}",
        baseColorFactor=base,
        metallicFactor=metallic,
        roughnessFactor=float(np.clip(settings.roughness, 0.0, 1.0)),
        emissiveFactor=emissive,
        alphaMode="BLEND" if base[3] < 1.0 else "OPAQUE",
    )
