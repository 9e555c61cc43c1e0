"""Tests for scene_info.py - scene.json and material settings."""

import json
import os
import tempfile

import pytest

from vmax.scene_info import (
    GroupInfo,
    MaterialSettings,
    ModelInfo,
    SceneInfo,
    read_scene_info,
)


SCENE = {
    "groups": [
        {"id": "g1", "n": "Root", "t_p": [0, 0, 0], "h": False},
    ],
    "objects": [
        {
            "id": "a", "pid": "g1", "n": "castle",
            "data": "contents1.vmaxb", "pal": "palette1.png", "hist": "history1.vmaxhb",
            "t_p": [1.0, 2.0, 3.0], "t_r": [0, 0, 0, 1], "t_s": [1, 1, 1],
            "e_mi": [0, 0, 0], "e_ma": [31, 31, 31],
        },
        {"id": "b", "n": "castle copy", "data": "contents1.vmaxb", "pal": "palette1.png"},
        {"id": "c", "n": "tree", "data": "contents2.vmaxb", "pal": "palette2.png"},
    ],
}


class TestSceneInfo:
    """Test scene.json parsing."""

    def test_from_dict(self):
        scene = SceneInfo.from_dict(SCENE)

        assert len(scene.models) == 3
        assert len(scene.groups) == 1

        castle = scene.models[0]
        assert castle.name == "castle"
        assert castle.data_file == "contents1.vmaxb"
        assert castle.palette_file == "palette1.png"
        assert castle.parent_id == "g1"
        assert castle.history_file == "history1.vmaxhb"
        assert castle.position == [1.0, 2.0, 3.0]
        assert castle.extent_max == [31, 31, 31]

    def test_defaults(self):
        model = SceneInfo.from_dict(SCENE).models[1]

        assert model.position == [0.0, 0.0, 0.0]
        assert model.rotation == [0.0, 0.0, 0.0, 1.0]
        assert model.scale == [1.0, 1.0, 1.0]
        assert model.parent_id is None

    def test_models_by_content(self):
        grouped = SceneInfo.from_dict(SCENE).models_by_content()

        assert list(grouped) == ["contents1.vmaxb", "contents2.vmaxb"]
        assert [m.id for m in grouped["contents1.vmaxb"]] == ["a", "b"]

    def test_settings_file(self):
        model = ModelInfo(id="x", data_file="contents1.vmaxb", palette_file="palette3.png")

        assert model.settings_file == "palette3.settings.vmaxpsb"

    def test_json_roundtrip(self):
        scene = SceneInfo.from_dict(SCENE)
        restored = SceneInfo.from_json(scene.to_json())

        assert restored == scene

    def test_read_file(self):
        with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False) as f:
            json.dump(SCENE, f)
            path = f.name

        try:
            scene = read_scene_info(path)
            assert len(scene.models) == 3
        finally:
            os.unlink(path)

    def test_group(self):
        group = GroupInfo.from_dict({"id": 5, "n": "G", "h": 1})

        assert group.id == "5"
        assert group.hidden is True


class TestSceneValidation:
    """Test scene validation."""

    def test_valid(self):
        assert SceneInfo.from_dict(SCENE).validate() == []

    def test_empty(self):
        errors = SceneInfo().validate()

        assert any("at least one model" in e for e in errors)

    def test_missing_files(self):
        scene = SceneInfo.from_dict({"objects": [{"id": "a", "n": "broken"}]})
        errors = scene.validate()

        assert "Model broken missing required 'data' field" in errors
        assert "Model broken missing required 'pal' field" in errors

    def test_bad_transform(self):
        scene = SceneInfo.from_dict({"objects": [
            {"id": "a", "data": "c.vmaxb", "pal": "p.png", "t_p": [1, 2], "t_r": [0, 0, 1], "t_s": [1, 1]},
        ]})

        errors = scene.validate()

        assert len(errors) == 3
        assert "Model a has invalid scale: [1, 1]" in errors


class TestMaterialSettings:
    """Test material classification."""

    @pytest.mark.parametrize("index,kwargs,kind", [
        (7, {"metalness": 1.0}, "liquid"),
        (6, {"emission": 1.0}, "glass"),
        (0, {"metalness": 0.5, "transmission": 0.5}, "metal"),
        (0, {"metalness": 0.1, "transmission": 0.2}, "dielectric"),
        (1, {"emission": 0.3}, "emitter"),
        (2, {}, "plastic"),
    ])
    def test_kind(self, index, kwargs, kind):
        assert MaterialSettings(index=index, **kwargs).kind() == kind

    def test_from_dict_ignores_bad_values(self):
        material = MaterialSettings.from_dict({"mi": 3, "mc": "shiny", "rc": True, "tc": 0.25}, index=4)

        assert material.index == 4
        assert material.name == "3"
        assert material.metalness == 0.0
        assert material.roughness == 0.5
        assert material.transmission == 0.25


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
