"""Tests for coords.py - chunk-local to world mapping."""

import pytest

from vmax.coords import (
    chunk_origin,
    is_valid_chunk_id,
    is_valid_local,
    to_world,
    world_to_chunk,
)
from vmax.morton import decode_morton3d, encode_morton3d


class TestToWorld:
    """Test world position composition."""

    def test_chunk_zero(self):
        assert to_world(0, 0, 0, 0) == (0, 0, 0)
        assert to_world(0, 31, 2, 7) == (31, 2, 7)

    def test_composition(self):
        """Test to_world == chunk coord * 32 + local for sampled inputs."""
        for chunk_id in (1, 2, 4, 43, 73, 4095, (1 << 24) - 1):
            cx, cy, cz = decode_morton3d(chunk_id)
            for local in ((0, 0, 0), (31, 31, 31), (5, 17, 30)):
                expected = (cx * 32 + local[0], cy * 32 + local[1], cz * 32 + local[2])
                assert to_world(chunk_id, *local) == expected

    def test_chunk_origin(self):
        assert chunk_origin(encode_morton3d(1, 2, 3)) == (32, 64, 96)
        assert chunk_origin(encode_morton3d(1, 2, 3), chunk_size=24) == (24, 48, 72)

    def test_world_to_chunk_inverse(self):
        for chunk_id in (0, 43, 73, 99999):
            for local in ((0, 0, 0), (31, 1, 16)):
                world = to_world(chunk_id, *local)
                assert world_to_chunk(*world) == (chunk_id, *local)

    def test_world_to_chunk_outside_grid(self):
        with pytest.raises(ValueError, match="outside chunk grid"):
            world_to_chunk(256 * 32, 0, 0)
        with pytest.raises(ValueError):
            world_to_chunk(-1, 0, 0)


class TestRangeChecks:
    """Test chunk id and local position range checks."""

    def test_chunk_id(self):
        assert is_valid_chunk_id(0)
        assert is_valid_chunk_id((1 << 24) - 1)
        assert not is_valid_chunk_id(1 << 24)
        assert not is_valid_chunk_id(-1)

    def test_local(self):
        assert is_valid_local(0, 0, 0)
        assert is_valid_local(31, 31, 31)
        assert not is_valid_local(32, 0, 0)
        assert not is_valid_local(0, -1, 0)
        assert not is_valid_local(30, 0, 0, chunk_size=24)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
