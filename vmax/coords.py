"""
Chunk-local to world coordinate mapping.

World position = decode_morton3d(chunk_id) * chunk_size + local position.
"""

from typing import Tuple

from vmax.morton import CODE_MASK, decode_morton3d, encode_morton3d

CHUNK_SIZE = 32
GRID_CHUNKS = 256


def is_valid_chunk_id(chunk_id: int) -> bool:
    return 0 <= chunk_id <= CODE_MASK


def is_valid_local(lx: int, ly: int, lz: int, chunk_size: int = CHUNK_SIZE) -> bool:
    return 0 <= lx < chunk_size and 0 <= ly < chunk_size and 0 <= lz < chunk_size


def chunk_origin(chunk_id: int, chunk_size: int = CHUNK_SIZE) -> Tuple[int, int, int]:
    """World position of a chunk's (0, 0, 0) voxel."""
    cx, cy, cz = decode_morton3d(chunk_id)
    return cx * chunk_size, cy * chunk_size, cz * chunk_size


def to_world(
    chunk_id: int,
    lx: int,
    ly: int,
    lz: int,
    chunk_size: int = CHUNK_SIZE,
) -> Tuple[int, int, int]:
    """
    Convert a chunk-local voxel position to world coordinates.

    Args:
        chunk_id: 24-bit Morton chunk id
        lx, ly, lz: Local position, each in [0, chunk_size)
        chunk_size: Chunk edge length in voxels

    Returns:
        (x, y, z) world position
    """
    ox, oy, oz = chunk_origin(chunk_id, chunk_size)
    return ox + lx, oy + ly, oz + lz


def world_to_chunk(
    x: int,
    y: int,
    z: int,
    chunk_size: int = CHUNK_SIZE,
) -> Tuple[int, int, int, int]:
    """
    Split a world position into its chunk id and local position.

    Returns:
        (chunk_id, lx, ly, lz)

    Raises:
        ValueError: If the position lies outside the 256^3 chunk grid
    """
    cx, lx = divmod(x, chunk_size)
    cy, ly = divmod(y, chunk_size)
    cz, lz = divmod(z, chunk_size)
    if not (0 <= cx < GRID_CHUNKS and 0 <= cy < GRID_CHUNKS and 0 <= cz < GRID_CHUNKS):
        raise ValueError(f"Position ({x}, {y}, {z}) outside chunk grid")
    return encode_morton3d(cx, cy, cz), lx, ly, lz
