"""
VoxelMax export directory to 3D scene pipeline.

Reads scene.json, decodes each unique content file once, and writes a scene
with one mesh per (material, color) group, instanced per model.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np

try:
    import trimesh
    HAS_TRIMESH = True
except ImportError:
    HAS_TRIMESH = False

from vmax.container import read_materials, read_palette_png
from vmax.decoder import DecodeResult, DecoderConfig, decode_vmaxb
from vmax.geometry import create_voxel_mesh, palette_color
from vmax.scene_info import MATERIAL_COUNT, MaterialSettings, ModelInfo, read_scene_info


@dataclass
class DecodedContent:
    """One decoded content file with its palette and materials."""
    data_file: str
    instances: List[ModelInfo]
    result: DecodeResult
    palette: Optional[np.ndarray]
    materials: List[MaterialSettings]


def load_materials(path: Path) -> List[MaterialSettings]:
    """Read material settings, falling back to defaults when the file is absent."""
    if not path.exists():
        print(f"Warning: No material settings at {path}, using defaults")
        return [MaterialSettings(index=i) for i in range(MATERIAL_COUNT)]
    return read_materials(path)


def decode_vmax_dir(
    vmax_dir: Union[str, Path],
    config: Optional[DecoderConfig] = None,
) -> Dict[str, DecodedContent]:
    """
    Decode every unique content file referenced by a scene.json.

    Args:
        vmax_dir: VoxelMax export directory
        config: Decoder settings

    Returns:
        Dict mapping data file name to DecodedContent, in scene order.
        Content files that cannot be read or decoded are skipped with a warning.

    Raises:
        FileNotFoundError: If the directory or scene.json is missing
        ValueError: If scene.json fails validation
    """
    vmax_dir = Path(vmax_dir)
    scene_path = vmax_dir / "scene.json"
    if not scene_path.exists():
        raise FileNotFoundError(f"scene.json not found in: {vmax_dir}")

    scene = read_scene_info(scene_path)
    errors = scene.validate()
    if errors:
        raise ValueError(f"Invalid scene.json: {'; '.join(errors)}")

    contents: Dict[str, DecodedContent] = {}
    for data_file, instances in scene.models_by_content().items():
        info = instances[0]
        print(f"Decoding model: {info.name or data_file} ({data_file}, {len(instances)} instances)")

        try:
            result = decode_vmaxb(vmax_dir / data_file, config=config)
        except (ValueError, FileNotFoundError) as e:
            print(f"Warning: Skipping {data_file}: {e}")
            continue

        for warning in result.resolved.warnings:
            print(f"Warning: {warning}")
        print(
            f"Snapshots: {result.resolved.total}, chunks: {len(result.resolved.chunks)}, "
            f"voxels: {len(result.model)}"
        )
        if result.dropped_voxels:
            print(f"Warning: Dropped {result.dropped_voxels} out-of-range voxels")

        palette = read_palette_png(vmax_dir / info.palette_file)
        if palette is None:
            print(f"Warning: Could not read palette {info.palette_file}, using grey")

        contents[data_file] = DecodedContent(
            data_file=data_file,
            instances=instances,
            result=result,
            palette=palette,
            materials=load_materials(vmax_dir / info.settings_file),
        )

    return contents


def instance_transform(model: ModelInfo) -> np.ndarray:
    """4x4 transform from a model's position, rotation (x, y, z, w) and scale."""
    x, y, z, w = model.rotation
    matrix = trimesh.transformations.quaternion_matrix([w, x, y, z])
    matrix[:3, :3] = matrix[:3, :3] @ np.diag(model.scale)
    matrix[:3, 3] = model.position
    return matrix


def build_scene(
    contents: Dict[str, DecodedContent],
    voxel_size: float = 1.0,
    fill: float = 0.99,
    linear_colors: bool = False,
) -> "trimesh.Scene":
    """
    Build a trimesh scene from decoded contents.

    Each (material, color) group becomes one geometry, shared by every
    instance of its content; each instance gets its own node per geometry.
    """
    if not HAS_TRIMESH:
        raise ImportError("trimesh is required for scene export. Install with: pip install trimesh")

    scene = trimesh.Scene()

    for content in contents.values():
        model = content.result.model
        stem = Path(content.data_file).stem

        meshes = {}
        for material, colors in model.used_materials_and_colors().items():
            for color in colors:
                rgba = palette_color(content.palette, color, linear=linear_colors)
                meshes[f"{stem}_mat{material}_color{color}"] = create_voxel_mesh(
                    model.positions_for(material, color),
                    voxel_size=voxel_size,
                    fill=fill,
                    rgba=rgba,
                    material=content.materials[material],
                )

        for instance in content.instances:
            transform = instance_transform(instance)
            label = instance.name or stem
            for geom_name, mesh in meshes.items():
                node_name = f"{label}_{instance.id}_{geom_name}"
                if geom_name in scene.geometry:
                    scene.graph.update(
                        frame_to=node_name,
                        frame_from=scene.graph.base_frame,
                        matrix=transform,
                        geometry=geom_name,
                    )
                else:
                    scene.add_geometry(mesh, geom_name=geom_name, node_name=node_name, transform=transform)

    return scene


def convert_vmax(
    vmax_dir: Union[str, Path],
    output_path: Union[str, Path],
    config: Optional[DecoderConfig] = None,
    voxel_size: float = 1.0,
    fill: float = 0.99,
    linear_colors: bool = False,
) -> str:
    """
    Convert a VoxelMax export directory to a 3D scene file.

    Args:
        vmax_dir: VoxelMax export directory (with scene.json)
        output_path: Output file; format follows the extension (.glb, .gltf, .obj, ...)
        config: Decoder settings
        voxel_size: Edge length of one voxel in scene units
        fill: Box size relative to the voxel
        linear_colors: Convert palette colors from sRGB to linear

    Returns:
        Path to the written file

    Raises:
        FileNotFoundError: If the directory or scene.json is missing
        ValueError: If scene.json is invalid or no content file decodes

    Example:
        >>> convert_vmax("castle.vmax", "castle.glb")
    """
    if not HAS_TRIMESH:
        raise ImportError("trimesh is required for scene export. Install with: pip install trimesh")

    vmax_dir = Path(vmax_dir)
    output_path = Path(output_path)
    if not vmax_dir.exists():
        raise FileNotFoundError(f"Input directory not found: {vmax_dir}")

    print(f"Loading VoxelMax scene: {vmax_dir}")
    contents = decode_vmax_dir(vmax_dir, config=config)
    if not contents:
        raise ValueError(f"No content file in {vmax_dir} could be decoded")

    print("Building scene...")
    scene = build_scene(contents, voxel_size=voxel_size, fill=fill, linear_colors=linear_colors)
    total = sum(len(c.result.model) for c in contents.values())
    print(f"Scene built: {len(contents)} models, {total} voxels, {len(scene.geometry)} geometries")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    scene.export(str(output_path))
    print(f"Created: {output_path}")

    return str(output_path)
