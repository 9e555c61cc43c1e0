"""
Sparse voxel model assembled from resolved chunks.

Voxels are indexed three ways, each populated independently:
- by world position (authoritative, one voxel per position)
- by chunk id
- by (material, color) for batched scene output

Colors are 0-based palette indices (stored byte - 1).
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

MATERIAL_COUNT = 8
COLOR_COUNT = 255
DENSE_LIMIT = 256

Position = Tuple[int, int, int]


@dataclass(frozen=True)
class Voxel:
    """A voxel in world space."""
    x: int
    y: int
    z: int
    material: int
    color: int
    chunk_id: int

    @property
    def position(self) -> Position:
        return (self.x, self.y, self.z)


class WorldModel:
    """
    Sparse voxel set for one model.

    A later add_voxel for the same world position replaces the earlier
    voxel in every index.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._voxels: Dict[Position, Voxel] = {}
        self._by_chunk: Dict[int, Dict[Position, Voxel]] = {}
        self._by_group: Dict[Tuple[int, int], Dict[Position, Voxel]] = {}

    def __len__(self) -> int:
        return len(self._voxels)

    def __iter__(self) -> Iterator[Voxel]:
        return iter(self._voxels.values())

    def __contains__(self, position) -> bool:
        return tuple(position) in self._voxels

    def add_voxel(
        self,
        x: int,
        y: int,
        z: int,
        material: int,
        color: int,
        chunk_id: int,
    ) -> bool:
        """
        Insert or overwrite the voxel at a world position.

        Args:
            x, y, z: World position
            material: Material slot in [0, 7]
            color: Palette index in [0, 254]
            chunk_id: Chunk the voxel was decoded from

        Returns:
            True if stored, False if material or color is out of range
        """
        if not (0 <= material < MATERIAL_COUNT and 0 <= color < COLOR_COUNT):
            return False

        position = (x, y, z)
        previous = self._voxels.get(position)
        if previous is not None:
            self._remove(previous)

        voxel = Voxel(x, y, z, material, color, chunk_id)
        self._voxels[position] = voxel
        self._by_chunk.setdefault(chunk_id, {})[position] = voxel
        self._by_group.setdefault((material, color), {})[position] = voxel
        return True

    def _remove(self, voxel: Voxel) -> None:
        position = voxel.position
        del self._voxels[position]

        chunk = self._by_chunk[voxel.chunk_id]
        del chunk[position]
        if not chunk:
            del self._by_chunk[voxel.chunk_id]

        key = (voxel.material, voxel.color)
        group = self._by_group[key]
        del group[position]
        if not group:
            del self._by_group[key]

    def voxel_at(self, x: int, y: int, z: int) -> Optional[Voxel]:
        return self._voxels.get((x, y, z))

    def voxels_for(self, material: int, color: int) -> Tuple[Voxel, ...]:
        """All voxels sharing a (material, color) pair, in insertion order."""
        return tuple(self._by_group.get((material, color), {}).values())

    def voxels_in_chunk(self, chunk_id: int) -> Tuple[Voxel, ...]:
        return tuple(self._by_chunk.get(chunk_id, {}).values())

    def chunk_ids(self) -> List[int]:
        return sorted(self._by_chunk)

    def used_materials_and_colors(self) -> Dict[int, List[int]]:
        """
        Distinct (material, color) pairs present.

        Returns:
            Dict mapping material to its ascending color list, with
            materials in ascending order
        """
        used: Dict[int, List[int]] = {}
        for material, color in sorted(self._by_group):
            used.setdefault(material, []).append(color)
        return used

    def positions_for(self, material: int, color: int) -> np.ndarray:
        """Nx3 int32 array of world positions for one (material, color) group."""
        voxels = self.voxels_for(material, color)
        if not voxels:
            return np.zeros((0, 3), dtype=np.int32)
        return np.array([v.position for v in voxels], dtype=np.int32)

    def bounds(self) -> Optional[Tuple[Position, Position]]:
        """Inclusive (min, max) world positions, or None for an empty model."""
        if not self._voxels:
            return None
        points = np.array(list(self._voxels), dtype=np.int64)
        lo = points.min(axis=0)
        hi = points.max(axis=0)
        return tuple(int(v) for v in lo), tuple(int(v) for v in hi)

    def to_dense_grid(self) -> np.ndarray:
        """
        Dense [x, y, z] uint8 grid of palette index + 1 (0 = empty).

        The grid starts at world (0, 0, 0) and is clipped to 256 voxels per
        axis; voxels outside are left out.
        """
        extent = self.bounds()
        if extent is None:
            return np.zeros((1, 1, 1), dtype=np.uint8)

        dims = [min(int(v) + 1, DENSE_LIMIT) for v in extent[1]]
        dims = [max(d, 1) for d in dims]
        grid = np.zeros(dims, dtype=np.uint8)

        for voxel in self._voxels.values():
            if 0 <= voxel.x < dims[0] and 0 <= voxel.y < dims[1] and 0 <= voxel.z < dims[2]:
                grid[voxel.x, voxel.y, voxel.z] = voxel.color + 1
        return grid

    def get_model_stats(self) -> dict:
        """
        Get statistics about the model.

        Returns:
            Dict with voxel, chunk and group counts and world bounds
        """
        used = self.used_materials_and_colors()
        extent = self.bounds()
        return {
            "name": self.name,
            "voxels": len(self._voxels),
            "chunks": len(self._by_chunk),
            "materials": sorted(used),
            "groups": sum(len(colors) for colors in used.values()),
            "bounds": extent,
            "size": tuple(hi - lo + 1 for lo, hi in zip(*extent)) if extent else (0, 0, 0),
        }
