"""
Decoding of a chunk's voxel data stream (the "ds" field of a snapshot).

Stream format:
- Sequence of 2-byte pairs: (layer/position byte, color byte)
- A trailing odd byte is ignored
- Pair k maps to traversal index (morton_offset + k)
- Color 0 = no voxel; the index still advances
- Colors 1..255 are palette index + 1

Traversal strategies:
- SEQUENTIAL_MORTON: the traversal index IS the 24-bit Morton code of the
  local position inside the 32^3 chunk
- MIN_OFFSET_MORTON: as above, with the offset taken from st.min[3]
- HYBRID_SUBSPACE: the chunk is tiled into 8x8x4 subspaces laid out
  sequentially (x fastest, then y, then z); index // 256 picks the
  subspace and the position byte is the 8-bit Morton code within it

A stream may end before all 32,768 slots are covered; this is sparse
truncation, not an error.
"""

from enum import Enum
from typing import Iterator, List, NamedTuple, Tuple, Union

import numpy as np

from vmax.morton import (
    SUBSPACE_DIMS,
    SUBSPACE_SIZE,
    decode_morton3d,
    decode_morton3d_array,
    decode_subspace,
)

CHUNK_EDGE = 32
CHUNK_SLOTS = CHUNK_EDGE ** 3

# Subspace tiling of a chunk: 4 x 4 x 8 blocks of 8 x 8 x 4
SUBSPACES_PER_AXIS = (
    CHUNK_EDGE // SUBSPACE_DIMS[0],
    CHUNK_EDGE // SUBSPACE_DIMS[1],
    CHUNK_EDGE // SUBSPACE_DIMS[2],
)

BytesLike = Union[bytes, bytearray, memoryview]


class DecodeStrategy(Enum):
    """How a stream position maps to a local voxel position."""
    SEQUENTIAL_MORTON = "sequential_morton"
    HYBRID_SUBSPACE = "hybrid_subspace"
    MIN_OFFSET_MORTON = "min_offset_morton"

    @property
    def is_morton(self) -> bool:
        return self is not DecodeStrategy.HYBRID_SUBSPACE


class LocalVoxel(NamedTuple):
    """A decoded voxel inside a chunk. color is the raw stored byte (>= 1)."""
    x: int
    y: int
    z: int
    color: int
    layer: int


def _subspace_origin(number: int) -> Tuple[int, int, int]:
    nx, ny, _ = SUBSPACES_PER_AXIS
    sx = number % nx
    sy = (number // nx) % ny
    sz = number // (nx * ny)
    return (
        sx * SUBSPACE_DIMS[0],
        sy * SUBSPACE_DIMS[1],
        sz * SUBSPACE_DIMS[2],
    )


def decode_voxels(
    data: BytesLike,
    morton_offset: int = 0,
    strategy: DecodeStrategy = DecodeStrategy.SEQUENTIAL_MORTON,
) -> Iterator[LocalVoxel]:
    """
    Lazily decode a voxel data stream into local voxels.

    Args:
        data: Raw stream bytes (pairs of layer/position byte, color byte)
        morton_offset: Starting traversal index
        strategy: Position mapping to use

    Yields:
        LocalVoxel for each non-empty slot, in stream order. Slots whose
        index falls outside the 32^3 chunk are dropped.

    Example:
        >>> list(decode_voxels(b"\\x00\\x26\\x00\\x00"))
        [LocalVoxel(x=0, y=0, z=0, color=38, layer=0)]
    """
    view = memoryview(bytes(data))
    n_pairs = len(view) // 2

    for k in range(n_pairs):
        layer = view[2 * k]
        color = view[2 * k + 1]
        if color == 0:
            continue

        index = morton_offset + k
        if index < 0 or index >= CHUNK_SLOTS:
            continue

        if strategy is DecodeStrategy.HYBRID_SUBSPACE:
            ox, oy, oz = _subspace_origin(index // SUBSPACE_SIZE)
            px, py, pz = decode_subspace(layer)
            yield LocalVoxel(ox + px, oy + py, oz + pz, color, layer)
        else:
            x, y, z = decode_morton3d(index)
            yield LocalVoxel(x, y, z, color, layer)


def decode_voxels_array(
    data: BytesLike,
    morton_offset: int = 0,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Vectorised decode for the Morton strategies.

    Args:
        data: Raw stream bytes
        morton_offset: Starting traversal index

    Returns:
        Tuple of:
        - positions: Nx3 int32 array of local [x, y, z]
        - colors: N uint8 array of raw color bytes (all >= 1)
        - layers: N uint8 array of layer bytes
    """
    raw = np.frombuffer(bytes(data), dtype=np.uint8)
    pairs = raw[: (len(raw) // 2) * 2].reshape(-1, 2)

    indices = morton_offset + np.arange(len(pairs), dtype=np.int64)
    keep = (pairs[:, 1] != 0) & (indices >= 0) & (indices < CHUNK_SLOTS)

    positions = decode_morton3d_array(indices[keep])
    return positions, pairs[keep, 1].copy(), pairs[keep, 0].copy()


def _color_runs(colors: List[int]) -> List[Tuple[int, int, int]]:
    if not colors:
        return []

    runs = []
    current = colors[0]
    start = 0
    for i in range(1, len(colors)):
        if colors[i] != current:
            runs.append((start, i - 1, current))
            current = colors[i]
            start = i
    runs.append((start, len(colors) - 1, current))
    return runs


def analyze_stream(data: BytesLike) -> dict:
    """
    Summarise a voxel data stream for inspection.

    Args:
        data: Raw stream bytes

    Returns:
        Dict with pair count, colored/empty slot counts, whether all
        layer bytes are zero, runs of identical colors as
        (start, end, color) tuples, and whether the stream is a single
        color filling the whole chunk
    """
    raw = bytes(data)
    n_pairs = len(raw) // 2
    layers = [raw[2 * k] for k in range(n_pairs)]
    colors = [raw[2 * k + 1] for k in range(n_pairs)]
    runs = _color_runs(colors)

    colored = sum(1 for c in colors if c != 0)
    solid = (
        len(runs) == 1
        and runs[0][2] != 0
        and runs[0][1] - runs[0][0] + 1 == CHUNK_SLOTS
    )

    return {
        "pairs": n_pairs,
        "colored_slots": colored,
        "empty_slots": n_pairs - colored,
        "all_layers_zero": all(layer == 0 for layer in layers),
        "color_runs": runs,
        "single_color_fill": solid,
        "truncated_byte": len(raw) % 2 == 1,
    }
