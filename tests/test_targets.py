"""Tests for the target registry."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
import yaml

from upwatch.monitor.targets import TargetRegistry


class TestTargetRegistry:
    def test_trims_and_dedupes_in_order(self):
        reg = TargetRegistry.from_string(" https://b.example ,https://a.example,https://b.example,, ")
        assert reg.targets == ("https://b.example", "https://a.example")
        assert len(reg) == 2

    def test_iteration_and_membership(self):
        reg = TargetRegistry(["https://a.example", "https://b.example"])
        assert list(reg) == ["https://a.example", "https://b.example"]
        assert "https://a.example" in reg
        assert "https://z.example" not in reg

    def test_empty_is_rejected(self):
        with pytest.raises(ValueError):
            TargetRegistry.from_string(" , ,")

    def test_targets_is_a_tuple(self):
        reg = TargetRegistry(["https://a.example"])
        assert isinstance(reg.targets, tuple)
        assert not hasattr(reg, "add")

    def test_source_list_changes_do_not_leak(self):
        source = ["https://a.example"]
        reg = TargetRegistry(source)
        source.append("https://b.example")
        assert reg.targets == ("https://a.example",)


class TestTargetsFromYaml:
    def test_load(self, tmp_path: Path):
        path = tmp_path / "targets.yaml"
        path.write_text(textwrap.dedent("""\
            targets:
              - https://a.example
              - " https://b.example "
              - https://a.example
        """))
        reg = TargetRegistry.from_yaml(path)
        assert reg.targets == ("https://a.example", "https://b.example")

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ValueError):
            TargetRegistry.from_yaml(tmp_path / "nope.yaml")

    def test_wrong_shape(self, tmp_path: Path):
        path = tmp_path / "targets.yaml"
        path.write_text(yaml.safe_dump({"targets": "https://a.example"}))
        with pytest.raises(ValueError):
            TargetRegistry.from_yaml(path)

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "targets.yaml"
        path.write_text("")
        with pytest.raises(ValueError):
            TargetRegistry.from_yaml(path)
