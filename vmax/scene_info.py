"""
Scene description (scene.json) and material settings for VMAX exports.

This module provides dataclasses and helpers for reading and validating the
scene.json file of a VoxelMax export directory, and the per-palette
material definitions stored in paletteN.settings.vmaxpsb.
"""

from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any, Optional
import json

MATERIAL_COUNT = 8

# Material dictionary keys in .settings.vmaxpsb
MATERIAL_KEYS = {
    "name": "mi",
    "metalness": "mc",
    "roughness": "rc",
    "transmission": "tc",
    "emission": "sic",
}

GLASS_MATERIAL = 6
LIQUID_MATERIAL = 7


@dataclass
class ModelInfo:
    """
    One model instance in scene.json ("objects" array).

    Several instances may share the same data file; the voxels are decoded
    once per data file and instanced at the scene level.
    """
    id: str
    data_file: str
    palette_file: str
    name: str = ""
    parent_id: Optional[str] = None
    history_file: Optional[str] = None
    position: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    rotation: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 1.0])
    scale: List[float] = field(default_factory=lambda: [1.0, 1.0, 1.0])
    extent_center: Optional[List[float]] = None
    extent_min: Optional[List[float]] = None
    extent_max: Optional[List[float]] = None

    @property
    def settings_file(self) -> str:
        """Material settings file paired with the palette image."""
        if self.palette_file.endswith(".png"):
            return self.palette_file[: -len(".png")] + ".settings.vmaxpsb"
        return self.palette_file + ".settings.vmaxpsb"

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "id": self.id,
            "n": self.name,
            "data": self.data_file,
            "pal": self.palette_file,
            "t_p": self.position,
            "t_r": self.rotation,
            "t_s": self.scale,
        }
        optional = {
            "pid": self.parent_id,
            "hist": self.history_file,
            "e_c": self.extent_center,
            "e_mi": self.extent_min,
            "e_ma": self.extent_max,
        }
        d.update({k: v for k, v in optional.items() if v is not None})
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelInfo":
        return cls(
            id=str(d.get("id", "")),
            name=d.get("n", ""),
            data_file=d.get("data", ""),
            palette_file=d.get("pal", ""),
            parent_id=d.get("pid"),
            history_file=d.get("hist"),
            position=list(d.get("t_p", [0.0, 0.0, 0.0])),
            rotation=list(d.get("t_r", [0.0, 0.0, 0.0, 1.0])),
            scale=list(d.get("t_s", [1.0, 1.0, 1.0])),
            extent_center=d.get("e_c"),
            extent_min=d.get("e_mi"),
            extent_max=d.get("e_ma"),
        )


@dataclass
class GroupInfo:
    """A transform group in scene.json ("groups" array)."""
    id: str
    name: str = ""
    parent_id: Optional[str] = None
    position: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    rotation: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 1.0])
    scale: List[float] = field(default_factory=lambda: [1.0, 1.0, 1.0])
    hidden: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GroupInfo":
        return cls(
            id=str(d.get("id", "")),
            name=d.get("n", ""),
            parent_id=d.get("pid"),
            position=list(d.get("t_p", [0.0, 0.0, 0.0])),
            rotation=list(d.get("t_r", [0.0, 0.0, 0.0, 1.0])),
            scale=list(d.get("t_s", [1.0, 1.0, 1.0])),
            hidden=bool(d.get("h", False)),
        )


@dataclass
class SceneInfo:
    """
    Parsed scene.json of a VoxelMax export.

    Fields:
    - models: model instances, in file order
    - groups: transform groups, in file order
    """
    models: List[ModelInfo] = field(default_factory=list)
    groups: List[GroupInfo] = field(default_factory=list)

    def models_by_content(self) -> Dict[str, List[ModelInfo]]:
        """
        Group model instances by their data file.

        Returns:
            Dict mapping data file name to its instances, in first-seen order
        """
        grouped: Dict[str, List[ModelInfo]] = {}
        for model in self.models:
            grouped.setdefault(model.data_file, []).append(model)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "objects": [m.to_dict() for m in self.models],
            "groups": [
                {
                    "id": g.id,
                    "n": g.name,
                    "t_p": g.position,
                    "t_r": g.rotation,
                    "t_s": g.scale,
                    "h": g.hidden,
                    **({"pid": g.parent_id} if g.parent_id is not None else {}),
                }
                for g in self.groups
            ],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SceneInfo":
        models = [ModelInfo.from_dict(obj) for obj in d.get("objects", []) if isinstance(obj, dict)]
        groups = [GroupInfo.from_dict(grp) for grp in d.get("groups", []) if isinstance(grp, dict)]
        return cls(models=models, groups=groups)

    @classmethod
    def from_json(cls, json_str: str) -> "SceneInfo":
        return cls.from_dict(json.loads(json_str))

    def validate(self) -> List[str]:
        """
        Validate scene for required fields.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.models:
            errors.append("Scene must contain at least one model")

        for model in self.models:
            label = model.name or model.id or "unnamed"
            if not model.data_file:
                errors.append(f"Model {label} missing required 'data' field")
            if not model.palette_file:
                errors.append(f"Model {label} missing required 'pal' field")
            if len(model.position) != 3:
                errors.append(f"Model {label} has invalid position: {model.position}")
            if len(model.rotation) != 4:
                errors.append(f"Model {label} has invalid rotation: {model.rotation}")
            if len(model.scale) != 3:
                errors.append(f"Model {label} has invalid scale: {model.scale}")

        return errors


@dataclass
class MaterialSettings:
    """One of the 8 material slots of a palette."""
    index: int = 0
    name: str = ""
    metalness: float = 0.0
    roughness: float = 0.5
    transmission: float = 0.0
    emission: float = 0.0

    def kind(self) -> str:
        """
        Classify the material for rendering.

        Slot 7 is always liquid and slot 6 always glass; otherwise the first
        matching property wins: metal, dielectric, emitter, else plastic.
        """
        if self.index == LIQUID_MATERIAL:
            return "liquid"
        if self.index == GLASS_MATERIAL:
            return "glass"
        if self.metalness > 0.1:
            return "metal"
        if self.transmission > 0.0:
            return "dielectric"
        if self.emission > 0.0:
            return "emitter"
        return "plastic"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any], index: int = 0) -> "MaterialSettings":
        def number(attr: str, default: float) -> float:
            value = d.get(MATERIAL_KEYS[attr], default)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return default
            return float(value)

        name = d.get(MATERIAL_KEYS["name"], "")
        return cls(
            index=index,
            name=name if isinstance(name, str) else str(name),
            metalness=number("metalness", 0.0),
            roughness=number("roughness", 0.5),
            transmission=number("transmission", 0.0),
            emission=number("emission", 0.0),
        )


def read_scene_info(path) -> SceneInfo:
    """Read and parse a scene.json file."""
    with open(path, "r", encoding="utf-8") as f:
        return SceneInfo.from_json(f.read())
