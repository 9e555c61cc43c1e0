"""
Decode a VMAX document into a WorldModel.

snapshots -> resolve_snapshots -> decode_voxels (per chunk) -> to_world
-> WorldModel.add_voxel
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, FrozenSet, Optional, Union

from vmax.container import get_dict_item, node_type, read_vmaxb
from vmax.coords import CHUNK_SIZE, is_valid_local, to_world
from vmax.model import MATERIAL_COUNT, WorldModel
from vmax.snapshot import (
    DEFAULT_INCLUDE_TYPES,
    ResolvePolicy,
    ResolveResult,
    Snapshot,
    resolve_snapshots,
)
from vmax.stream import DecodeStrategy, decode_voxels


class VmaxDecodeError(ValueError):
    """The document cannot be decoded at all."""


@dataclass
class DecoderConfig:
    """
    Decoder settings.

    - strategy: stream position mapping (see vmax.stream)
    - policy: snapshot history walk order
    - include_types: snapshot types that may be authoritative
    - chunk_size: chunk edge length used for world placement
    - default_material: material used when the layer byte carries none
    """
    strategy: DecodeStrategy = DecodeStrategy.SEQUENTIAL_MORTON
    policy: ResolvePolicy = ResolvePolicy.LAST_WRITE_WINS
    include_types: FrozenSet[int] = field(default_factory=lambda: DEFAULT_INCLUDE_TYPES)
    chunk_size: int = CHUNK_SIZE
    default_material: int = 0


@dataclass
class DecodeResult:
    """A decoded model plus how it was obtained."""
    model: WorldModel
    resolved: ResolveResult
    decoded_chunks: int = 0
    dropped_voxels: int = 0


def stream_offset(snapshot: Snapshot, strategy: DecodeStrategy) -> int:
    """Starting traversal index for a snapshot's stream."""
    if strategy is DecodeStrategy.SEQUENTIAL_MORTON:
        return 0
    return snapshot.stats.morton_offset


def decode_document(
    root: Any,
    config: Optional[DecoderConfig] = None,
    name: str = "",
) -> DecodeResult:
    """
    Decode a parsed .vmaxb document.

    Args:
        root: Root dictionary of the document
        config: Decoder settings (defaults to DecoderConfig())
        name: Model name

    Returns:
        DecodeResult; a model with zero voxels is a valid outcome

    Raises:
        VmaxDecodeError: If "snapshots" is missing or not an array
    """
    config = config or DecoderConfig()

    if node_type(root) != "dict":
        raise VmaxDecodeError(f"Document root is {node_type(root)}, expected dict")

    snapshots = get_dict_item(root, "snapshots")
    if snapshots is None:
        raise VmaxDecodeError("Document has no 'snapshots' key")
    if node_type(snapshots) != "array":
        raise VmaxDecodeError(f"'snapshots' is {node_type(snapshots)}, expected array")

    resolved = resolve_snapshots(snapshots, policy=config.policy, include_types=config.include_types)
    result = DecodeResult(model=WorldModel(name), resolved=resolved)

    for chunk_id, snapshot in resolved.chunks.items():
        offset = stream_offset(snapshot, config.strategy)
        for voxel in decode_voxels(snapshot.data, offset, config.strategy):
            if not is_valid_local(voxel.x, voxel.y, voxel.z, config.chunk_size):
                result.dropped_voxels += 1
                continue

            material = config.default_material
            if config.strategy.is_morton and voxel.layer < MATERIAL_COUNT:
                material = voxel.layer

            x, y, z = to_world(chunk_id, voxel.x, voxel.y, voxel.z, config.chunk_size)
            if not result.model.add_voxel(x, y, z, material, voxel.color - 1, chunk_id):
                result.dropped_voxels += 1
        result.decoded_chunks += 1

    return result


def decode_vmaxb(
    path: Union[str, Path],
    config: Optional[DecoderConfig] = None,
) -> DecodeResult:
    """Read and decode a contentsN.vmaxb file."""
    path = Path(path)
    root = read_vmaxb(path)
    return decode_document(root, config=config, name=path.stem)
