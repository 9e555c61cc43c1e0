"""
Morton (Z-order) codecs used by the VMAX format.

Two granularities are used:

- Chunk addressing: 24-bit codes, 8 bits per axis. Bits are interleaved
  x, y, z per bit-plane, so x bit i lands at bit 3i, y at 3i+1, z at 3i+2.
  The same codec addresses voxels inside a 32^3 chunk (15 significant bits).
- Subspace addressing: 8-bit codes over an 8x8x4 block (3 bits x, 3 bits y,
  2 bits z). Layout, low to high: x0 y0 z0 x1 y1 z1 x2 y2.

Out-of-range axis values are masked to the codec's field width: bits beyond
the width are dropped. Callers that must not wrap check ranges first.
"""

from typing import Tuple

import numpy as np

# 24-bit codec: 8 bits per axis
AXIS_BITS = 8
AXIS_MASK = (1 << AXIS_BITS) - 1
CODE_BITS = 3 * AXIS_BITS
CODE_MASK = (1 << CODE_BITS) - 1

# 8-bit subspace codec
SUBSPACE_DIMS = (8, 8, 4)
SUBSPACE_SIZE = SUBSPACE_DIMS[0] * SUBSPACE_DIMS[1] * SUBSPACE_DIMS[2]


def part_bits(n: int) -> int:
    """Spread the low 8 bits of n so that two zero bits follow each bit."""
    n &= 0x000003FF
    n = (n | (n << 16)) & 0x030000FF
    n = (n | (n << 8)) & 0x0300F00F
    n = (n | (n << 4)) & 0x030C30C3
    n = (n | (n << 2)) & 0x09249249
    return n & 0x00249249


def compact_bits(n: int) -> int:
    """Inverse of part_bits: gather every third bit of n, starting at bit 0."""
    n &= 0x09249249
    n = (n ^ (n >> 2)) & 0x030C30C3
    n = (n ^ (n >> 4)) & 0x0300F00F
    n = (n ^ (n >> 8)) & 0xFF0000FF
    n = (n ^ (n >> 16)) & 0x000003FF
    return n & AXIS_MASK


def encode_morton3d(x: int, y: int, z: int) -> int:
    """
    Interleave three 8-bit axis values into a 24-bit Morton code.

    Args:
        x, y, z: Axis values in [0, 255]; higher bits are dropped

    Returns:
        Morton code in [0, 2**24)

    Example:
        >>> encode_morton3d(3, 1, 2)
        43
    """
    return (
        part_bits(x & AXIS_MASK)
        | (part_bits(y & AXIS_MASK) << 1)
        | (part_bits(z & AXIS_MASK) << 2)
    )


def decode_morton3d(code: int) -> Tuple[int, int, int]:
    """
    Split a 24-bit Morton code back into (x, y, z).

    Bits above bit 23 are ignored.

    Example:
        >>> decode_morton3d(73)
        (7, 0, 0)
    """
    code &= CODE_MASK
    return compact_bits(code), compact_bits(code >> 1), compact_bits(code >> 2)


def decode_morton3d_array(codes: np.ndarray) -> np.ndarray:
    """
    Vectorised decode of 24-bit Morton codes.

    Args:
        codes: 1D integer array of Morton codes

    Returns:
        Nx3 int32 array of [x, y, z]
    """
    codes = np.asarray(codes, dtype=np.int64) & CODE_MASK
    out = np.zeros((len(codes), 3), dtype=np.int32)
    for bit in range(AXIS_BITS):
        for axis in range(3):
            out[:, axis] |= (((codes >> (3 * bit + axis)) & 1) << bit).astype(np.int32)
    return out


# (axis, bit) for each bit of the 8-bit subspace code, low to high
_SUBSPACE_LAYOUT = (
    (0, 0), (1, 0), (2, 0),
    (0, 1), (1, 1), (2, 1),
    (0, 2), (1, 2),
)


def _build_subspace_table():
    table = []
    for code in range(SUBSPACE_SIZE):
        xyz = [0, 0, 0]
        for position, (axis, bit) in enumerate(_SUBSPACE_LAYOUT):
            if code & (1 << position):
                xyz[axis] |= 1 << bit
        table.append(tuple(xyz))
    return tuple(table)


_SUBSPACE_DECODE = _build_subspace_table()


def encode_subspace(x: int, y: int, z: int) -> int:
    """
    Encode a position inside an 8x8x4 subspace as an 8-bit Morton code.

    Args:
        x: Axis value in [0, 7]
        y: Axis value in [0, 7]
        z: Axis value in [0, 3]

    Returns:
        Code in [0, 255]
    """
    values = (x & 0x7, y & 0x7, z & 0x3)
    code = 0
    for position, (axis, bit) in enumerate(_SUBSPACE_LAYOUT):
        if values[axis] & (1 << bit):
            code |= 1 << position
    return code


def decode_subspace(code: int) -> Tuple[int, int, int]:
    """Decode an 8-bit subspace code to (x, y, z) with ranges 8, 8, 4."""
    return _SUBSPACE_DECODE[code & 0xFF]
