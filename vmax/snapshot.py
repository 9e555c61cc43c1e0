"""
Snapshot records and edit-history resolution.

Each element of a document's "snapshots" array is one recorded edit of one
32^3 chunk:

    {"s": {"id": {"c": chunk_id, "t": type, "s": session_id},
           "ds": <voxel stream>,
           "lc": <256 bytes>, "dlc": <256 bytes>,
           "st": {"min": [x, y, z, morton_offset], "max": [...], ...}}}

The same chunk may appear many times. Later entries in the array are later
edits, so the last authoritative entry per chunk is the current state.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from vmax.container import get_array_item, get_data, get_dict_item, get_uint, node_type
from vmax.coords import is_valid_chunk_id


class SnapshotType(IntEnum):
    """Value of the "t" field of a snapshot id."""
    UNDO_RESTORE = 0
    REDO_RESTORE = 1
    UNDO = 2
    REDO = 3
    CHECKPOINT = 4
    SELECTION = 5


DEFAULT_INCLUDE_TYPES = frozenset({
    SnapshotType.CHECKPOINT,
    SnapshotType.UNDO_RESTORE,
    SnapshotType.REDO_RESTORE,
})


class ResolvePolicy(Enum):
    """Order in which the snapshot history is walked."""
    LAST_WRITE_WINS = "last_write_wins"
    REVERSE_FIRST_SEEN = "reverse_first_seen"


class SnapshotError(ValueError):
    """A snapshot record is missing required fields."""


@dataclass
class ChunkStats:
    """The optional "st" statistics of a snapshot."""
    min: Optional[List[int]] = None
    max: Optional[List[int]] = None
    count: Optional[int] = None

    @property
    def morton_offset(self) -> int:
        """Packed stream start offset (4th element of "min"), 0 if absent."""
        if self.min is not None and len(self.min) > 3:
            return self.min[3]
        return 0

    @classmethod
    def from_node(cls, node: Any) -> "ChunkStats":
        def int_list(value):
            if node_type(value) != "array":
                return None
            items = [get_uint(get_array_item(value, i)) for i in range(len(value))]
            if any(item is None for item in items):
                return None
            return items

        return cls(
            min=int_list(get_dict_item(node, "min")),
            max=int_list(get_dict_item(node, "max")),
            count=get_uint(get_dict_item(node, "count")),
        )


@dataclass
class Snapshot:
    """One edit-history entry for one chunk."""
    chunk_id: int
    type: int
    data: bytes
    index: int = 0
    session_id: Optional[int] = None
    stats: ChunkStats = field(default_factory=ChunkStats)
    layer_colors: Optional[bytes] = None
    deselected_layer_colors: Optional[bytes] = None

    @property
    def snapshot_type(self) -> Optional[SnapshotType]:
        try:
            return SnapshotType(self.type)
        except ValueError:
            return None

    def used_colors(self) -> List[int]:
        """Raw color bytes flagged in the "lc" usage table, if present."""
        if not self.layer_colors:
            return []
        return [color for color, used in enumerate(self.layer_colors) if used and color > 0]


def parse_snapshot(node: Any, index: int = 0) -> Snapshot:
    """
    Build a Snapshot from one element of the "snapshots" array.

    Args:
        node: Snapshot dictionary
        index: Position of the element in the array

    Returns:
        Snapshot instance

    Raises:
        SnapshotError: If "s", "s.id.c" or "s.ds" is missing or mistyped
    """
    body = get_dict_item(node, "s")
    if node_type(body) != "dict":
        raise SnapshotError(f"Snapshot {index}: missing 's' dictionary")

    ident = get_dict_item(body, "id")
    if node_type(ident) != "dict":
        raise SnapshotError(f"Snapshot {index}: missing 'id' dictionary")

    chunk_node = get_dict_item(ident, "c")
    if node_type(chunk_node) != "uint":
        raise SnapshotError(f"Snapshot {index}: missing chunk id 'c'")
    chunk_id = int(chunk_node)

    data = get_data(get_dict_item(body, "ds"))
    if data is None:
        raise SnapshotError(f"Snapshot {index}: missing voxel stream 'ds'")

    type_node = get_dict_item(ident, "t")
    if type_node is None:
        snapshot_type = int(SnapshotType.CHECKPOINT)
    else:
        snapshot_type = get_uint(type_node)
        if snapshot_type is None:
            raise SnapshotError(f"Snapshot {index}: invalid snapshot type {type_node!r}")

    stats_node = get_dict_item(body, "st")
    stats = ChunkStats.from_node(stats_node) if node_type(stats_node) == "dict" else ChunkStats()

    return Snapshot(
        chunk_id=chunk_id,
        type=snapshot_type,
        data=data,
        index=index,
        session_id=get_uint(get_dict_item(ident, "s")),
        stats=stats,
        layer_colors=get_data(get_dict_item(body, "lc")),
        deselected_layer_colors=get_data(get_dict_item(body, "dlc")),
    )


@dataclass
class ResolveResult:
    """Outcome of resolving a snapshot history."""
    chunks: Dict[int, Snapshot] = field(default_factory=dict)
    total: int = 0
    skipped: int = 0
    excluded: int = 0
    superseded: int = 0
    warnings: List[str] = field(default_factory=list)


def _parse_all(nodes: Sequence[Any], result: ResolveResult) -> List[Optional[Snapshot]]:
    parsed: List[Optional[Snapshot]] = []
    for i, node in enumerate(nodes):
        try:
            snapshot = parse_snapshot(node, index=i)
        except SnapshotError as e:
            result.skipped += 1
            result.warnings.append(str(e))
            parsed.append(None)
            continue

        if not is_valid_chunk_id(snapshot.chunk_id):
            result.skipped += 1
            result.warnings.append(f"Snapshot {i}: chunk id {snapshot.chunk_id} outside 24-bit range")
            parsed.append(None)
            continue

        parsed.append(snapshot)
    return parsed


def resolve_snapshots(
    nodes: Sequence[Any],
    policy: ResolvePolicy = ResolvePolicy.LAST_WRITE_WINS,
    include_types: Optional[Iterable[int]] = None,
) -> ResolveResult:
    """
    Pick the authoritative snapshot for every chunk.

    Args:
        nodes: The "snapshots" array, in document order
        policy: LAST_WRITE_WINS walks forward and lets each entry replace
                the previous one for its chunk; REVERSE_FIRST_SEEN walks
                backward and keeps the first entry found. Both select the
                latest entry.
        include_types: Snapshot types that may be authoritative
                       (default: checkpoint, undo-restore, redo-restore)

    Returns:
        ResolveResult with chunks ordered by chunk id
    """
    allowed = frozenset(int(t) for t in (include_types if include_types is not None else DEFAULT_INCLUDE_TYPES))
    result = ResolveResult(total=len(nodes))
    parsed = _parse_all(nodes, result)

    candidates = []
    for snapshot in parsed:
        if snapshot is None:
            continue
        if snapshot.type not in allowed:
            result.excluded += 1
            continue
        candidates.append(snapshot)

    chosen: Dict[int, Snapshot] = {}
    if policy is ResolvePolicy.LAST_WRITE_WINS:
        for snapshot in candidates:
            if snapshot.chunk_id in chosen:
                result.superseded += 1
            chosen[snapshot.chunk_id] = snapshot
    else:
        for snapshot in reversed(candidates):
            if snapshot.chunk_id in chosen:
                result.superseded += 1
                continue
            chosen[snapshot.chunk_id] = snapshot

    result.chunks = {chunk_id: chosen[chunk_id] for chunk_id in sorted(chosen)}
    return result
