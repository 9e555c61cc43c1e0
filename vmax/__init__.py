"""
VMAX voxel decoder - rebuild voxel models from VoxelMax exports.

A VoxelMax export directory contains:
- scene.json (model instances)
- contentsN.vmaxb (LZFSE-compressed property list of chunk snapshots)
- paletteN.png (256x1 palette)
- paletteN.settings.vmaxpsb (material settings)
"""

__version__ = "0.1.0"

from vmax.morton import encode_morton3d, decode_morton3d, encode_subspace, decode_subspace
from vmax.stream import DecodeStrategy, LocalVoxel, decode_voxels, analyze_stream
from vmax.snapshot import Snapshot, SnapshotType, ResolvePolicy, resolve_snapshots
from vmax.coords import to_world, chunk_origin
from vmax.model import Voxel, WorldModel
from vmax.decoder import DecoderConfig, DecodeResult, VmaxDecodeError, decode_document, decode_vmaxb

__all__ = [
    "encode_morton3d",
    "decode_morton3d",
    "encode_subspace",
    "decode_subspace",
    "DecodeStrategy",
    "LocalVoxel",
    "decode_voxels",
    "analyze_stream",
    "Snapshot",
    "SnapshotType",
    "ResolvePolicy",
    "resolve_snapshots",
    "to_world",
    "chunk_origin",
    "Voxel",
    "WorldModel",
    "DecoderConfig",
    "DecodeResult",
    "VmaxDecodeError",
    "decode_document",
    "decode_vmaxb",
]
