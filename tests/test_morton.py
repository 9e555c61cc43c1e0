"""Tests for morton.py - chunk and subspace Morton codecs."""

import numpy as np
import pytest

from vmax.morton import (
    CODE_MASK,
    encode_morton3d,
    decode_morton3d,
    decode_morton3d_array,
    encode_subspace,
    decode_subspace,
    part_bits,
    compact_bits,
)


class TestChunkCodec:
    """Test the 24-bit, 8-bits-per-axis codec."""

    def test_known_vectors(self):
        """Test codes for hand-computed positions."""
        assert encode_morton3d(0, 0, 0) == 0
        assert encode_morton3d(1, 0, 0) == 1
        assert encode_morton3d(0, 1, 0) == 2
        assert encode_morton3d(0, 0, 1) == 4
        assert encode_morton3d(2, 0, 0) == 8
        assert encode_morton3d(3, 1, 2) == 43
        assert encode_morton3d(255, 255, 255) == CODE_MASK

    def test_decode_known_vectors(self):
        """Test decoding hand-computed codes."""
        assert decode_morton3d(73) == (7, 0, 0)
        assert decode_morton3d(43) == (3, 1, 2)
        assert decode_morton3d(CODE_MASK) == (255, 255, 255)

    def test_encode_is_spread_axes(self):
        """Test that encode is the OR of the per-axis spread values."""
        for x, y, z in [(0, 0, 0), (3, 1, 2), (255, 0, 17), (128, 64, 255), (255, 255, 255)]:
            assert encode_morton3d(x, y, z) == part_bits(x) | part_bits(y) << 1 | part_bits(z) << 2

    def test_roundtrip_positions(self):
        """Test decode(encode(p)) == p for every position in the 256^3 grid."""
        spread = np.array([part_bits(n) for n in range(256)], dtype=np.int64)
        y, z = np.mgrid[0:256, 0:256]
        y, z = y.ravel(), z.ravel()

        for x in range(256):
            codes = spread[x] | spread[y] << 1 | spread[z] << 2
            decoded = decode_morton3d_array(codes)

            assert (decoded[:, 0] == x).all()
            np.testing.assert_array_equal(decoded[:, 1], y)
            np.testing.assert_array_equal(decoded[:, 2], z)

    def test_roundtrip_codes(self):
        """Test encode(decode(c)) == c for every 24-bit code."""
        spread = np.array([part_bits(n) for n in range(256)], dtype=np.int64)

        for start in range(0, 1 << 24, 1 << 16):
            codes = np.arange(start, start + (1 << 16), dtype=np.int64)
            xyz = decode_morton3d_array(codes)
            encoded = spread[xyz[:, 0]] | spread[xyz[:, 1]] << 1 | spread[xyz[:, 2]] << 2

            np.testing.assert_array_equal(encoded, codes)

    def test_scalar_matches_array(self):
        for code in range(0, 1 << 24, 4099):
            assert decode_morton3d(code) == tuple(decode_morton3d_array([code])[0])
            assert encode_morton3d(*decode_morton3d(code)) == code

    def test_out_of_range_axis_is_masked(self):
        """Test that bits beyond 8 per axis are dropped."""
        assert encode_morton3d(256, 0, 0) == 0
        assert encode_morton3d(257, 0, 0) == encode_morton3d(1, 0, 0)
        assert decode_morton3d(1 << 24) == (0, 0, 0)

    def test_part_compact_inverse(self):
        """Test that compact_bits undoes part_bits."""
        for n in range(256):
            assert compact_bits(part_bits(n)) == n


class TestArrayDecode:
    """Test vectorised decode against the scalar codec."""

    def test_matches_scalar(self):
        codes = np.arange(0, 1 << 24, 7919)
        decoded = decode_morton3d_array(codes)

        assert decoded.shape == (len(codes), 3)
        for code, row in zip(codes[:500], decoded[:500]):
            assert tuple(row) == decode_morton3d(int(code))

    def test_empty(self):
        assert decode_morton3d_array(np.array([], dtype=np.int64)).shape == (0, 3)


class TestSubspaceCodec:
    """Test the 8-bit 8x8x4 subspace codec."""

    def test_bit_layout(self):
        """Test the x0 y0 z0 x1 y1 z1 x2 y2 layout."""
        assert encode_subspace(1, 0, 0) == 1
        assert encode_subspace(0, 1, 0) == 2
        assert encode_subspace(0, 0, 1) == 4
        assert encode_subspace(2, 0, 0) == 8
        assert encode_subspace(0, 0, 2) == 32
        assert encode_subspace(4, 0, 0) == 64
        assert encode_subspace(0, 4, 0) == 128
        assert encode_subspace(7, 7, 3) == 255

    def test_bijection(self):
        """Test that every code in [0, 255] maps to a distinct position."""
        positions = {decode_subspace(code) for code in range(256)}
        assert len(positions) == 256

        for x, y, z in positions:
            assert 0 <= x < 8
            assert 0 <= y < 8
            assert 0 <= z < 4

    def test_roundtrip(self):
        for x in range(8):
            for y in range(8):
                for z in range(4):
                    assert decode_subspace(encode_subspace(x, y, z)) == (x, y, z)

    def test_out_of_range_masked(self):
        assert encode_subspace(8, 0, 0) == 0
        assert encode_subspace(0, 0, 4) == 0
        assert decode_subspace(256) == (0, 0, 0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
