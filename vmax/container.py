"""
Read VMAX container files.

A VoxelMax export directory holds:
- scene.json (model instances and groups)
- contentsN.vmaxb (property list, usually LZFSE-compressed, with "snapshots")
- paletteN.png (256x1 RGBA palette)
- paletteN.settings.vmaxpsb (property list with 8 material definitions)

Property lists are parsed with plistlib into plain Python trees
(dict / list / bytes / int / float / str). The accessors below are the only
way the decoder navigates those trees.
"""

import plistlib
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

try:
    import cv2
    HAS_CV2 = True
except ImportError:
    HAS_CV2 = False

try:
    import liblzfse
    HAS_LZFSE = True
except ImportError:
    HAS_LZFSE = False

from vmax.scene_info import MaterialSettings, MATERIAL_COUNT

LZFSE_MAGIC = b"bvx"
PALETTE_SIZE = 256


# Tree accessors

def node_type(node: Any) -> str:
    """Name the plist type of a node: dict, array, data, uint, real, string, bool, date, none."""
    if node is None:
        return "none"
    if isinstance(node, dict):
        return "dict"
    if isinstance(node, (list, tuple)):
        return "array"
    if isinstance(node, (bytes, bytearray)):
        return "data"
    if isinstance(node, bool):
        return "bool"
    if isinstance(node, int):
        return "uint"
    if isinstance(node, float):
        return "real"
    if isinstance(node, str):
        return "string"
    return "date" if hasattr(node, "isoformat") else "unknown"


def get_dict_item(node: Any, key: str) -> Any:
    """Return node[key] if node is a dict holding key, else None."""
    if not isinstance(node, dict):
        return None
    return node.get(key)


def get_array_item(node: Any, index: int) -> Any:
    """Return node[index] if node is an array and index is in range, else None."""
    if not isinstance(node, (list, tuple)):
        return None
    if index < 0 or index >= len(node):
        return None
    return node[index]


def get_nested(node: Any, path: Sequence[str]) -> Any:
    """Follow a sequence of dict keys; None if any step is missing."""
    current = node
    for key in path:
        current = get_dict_item(current, key)
        if current is None:
            return None
    return current


def get_uint(node: Any) -> Optional[int]:
    """Return a non-negative integer node's value, or None otherwise."""
    if node_type(node) != "uint" or node < 0:
        return None
    return int(node)


def get_data(node: Any) -> Optional[bytes]:
    """Return a data node's bytes, or None for any other type."""
    if node_type(node) != "data":
        return None
    return bytes(node)


def format_plist_tree(node: Any, indent: int = 0) -> str:
    """
    Render a plist tree as indented text for inspection.

    Data nodes are summarised by their length, not dumped.
    """
    pad = "  " * indent
    kind = node_type(node)

    if kind == "dict":
        lines = [f"{pad}Dictionary:"]
        for key, value in node.items():
            lines.append(f"{pad}  {key}:")
            lines.append(format_plist_tree(value, indent + 2))
        return "\n".join(lines)
    if kind == "array":
        lines = [f"{pad}Array:"]
        for i, item in enumerate(node):
            lines.append(f"{pad}  [{i}]:")
            lines.append(format_plist_tree(item, indent + 2))
        return "\n".join(lines)
    if kind == "data":
        return f"{pad}Data: <{len(node)} bytes>"
    if kind == "uint":
        return f"{pad}Integer: {node}"
    if kind == "real":
        return f"{pad}Real: {node}"
    if kind == "string":
        return f"{pad}String: {node}"
    if kind == "bool":
        return f"{pad}Boolean: {'true' if node else 'false'}"
    if kind == "date":
        return f"{pad}Date: {node.isoformat()}"
    return f"{pad}Unknown type"


# Files

def decompress_lzfse(data: bytes) -> bytes:
    """Decompress an LZFSE buffer."""
    if not HAS_LZFSE:
        raise ImportError("pyliblzfse is required for compressed .vmaxb files. Install with: pip install pyliblzfse")
    return liblzfse.decompress(data)


def parse_plist(data: bytes) -> Any:
    """
    Parse property list bytes, decompressing LZFSE first if needed.

    Raises:
        ValueError: If the bytes are not a valid property list
    """
    if data[:3] == LZFSE_MAGIC:
        data = decompress_lzfse(data)
    try:
        return plistlib.loads(data)
    except (plistlib.InvalidFileException, ValueError) as e:
        raise ValueError(f"Invalid property list: {e}") from e


def read_plist(path: Union[str, Path]) -> Any:
    """Read a property list file (binary, XML or LZFSE-compressed)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Property list not found: {path}")
    return parse_plist(path.read_bytes())


def read_vmaxb(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a contentsN.vmaxb file.

    Returns:
        Root dictionary of the document

    Raises:
        ValueError: If the root is not a dictionary
    """
    root = read_plist(path)
    if not isinstance(root, dict):
        raise ValueError(f"Invalid .vmaxb file: root is {node_type(root)}, expected dict")
    return root


def read_palette_png(path: Union[str, Path]) -> Optional[np.ndarray]:
    """
    Read a 256x1 palette image.

    Args:
        path: Path to paletteN.png

    Returns:
        (256, 4) uint8 RGBA array, or None if the image cannot be read.
        Narrower images are padded with opaque black; wider ones are cut.
    """
    if not HAS_CV2:
        raise ImportError("opencv-python is required to read palettes. Install with: pip install opencv-python")

    image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if image is None:
        return None

    if image.ndim == 2:
        rgba = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    elif image.shape[2] == 3:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    else:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)

    row = rgba[0, :PALETTE_SIZE].astype(np.uint8)
    palette = np.zeros((PALETTE_SIZE, 4), dtype=np.uint8)
    palette[:, 3] = 255
    palette[: len(row)] = row
    return palette


def read_materials(source: Union[str, Path, Dict[str, Any]]) -> List[MaterialSettings]:
    """
    Read the 8 material definitions of a palette.

    Args:
        source: Path to paletteN.settings.vmaxpsb, or its parsed root

    Returns:
        List of exactly 8 MaterialSettings; missing or malformed entries
        fall back to defaults
    """
    root = source if isinstance(source, dict) else read_plist(source)

    entries = get_dict_item(root, "materials")
    if node_type(entries) != "array":
        entries = []

    materials = []
    for i in range(MATERIAL_COUNT):
        entry = get_array_item(entries, i)
        if isinstance(entry, dict):
            materials.append(MaterialSettings.from_dict(entry, index=i))
        else:
            materials.append(MaterialSettings(index=i))
    return materials
