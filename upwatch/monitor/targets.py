"""Target registry — the fixed list of monitored URLs.

Built once from configuration (a comma-separated string or a YAML file);
the checker and aggregator share it for the lifetime of the process.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


class TargetRegistry:
    """Immutable, ordered, de-duplicated sequence of target identifiers."""

    __slots__ = ("_targets",)

    def __init__(self, targets: Iterable[str]) -> None:
        seen: dict[str, None] = {}
        for raw in targets:
            target = raw.strip()
            if target and target not in seen:
                seen[target] = None
        if not seen:
            raise ValueError("No monitoring targets configured")
        self._targets: tuple[str, ...] = tuple(seen)

    @classmethod
    def from_string(cls, raw: str, sep: str = ",") -> TargetRegistry:
        """Parse a separated list such as ``"https://a, https://b"``."""
        registry = cls(raw.split(sep))
        logger.info("Monitoring %d targets: %s", len(registry), ", ".join(registry))
        return registry

    @classmethod
    def from_yaml(cls, path: Path) -> TargetRegistry:
        """Load ``targets:`` (a list of URLs) from a YAML file."""
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ValueError(f"Failed to read targets from {path}: {e}") from e
        entries = raw.get("targets") if isinstance(raw, dict) else None
        if not isinstance(entries, list):
            raise ValueError(f"{path}: expected a 'targets' list")
        registry = cls(str(e) for e in entries)
        logger.info("Loaded %d targets from %s", len(registry), path)
        return registry

    @property
    def targets(self) -> tuple[str, ...]:
        return self._targets

    def __iter__(self) -> Iterator[str]:
        return iter(self._targets)

    def __len__(self) -> int:
        return len(self._targets)

    def __contains__(self, target: object) -> bool:
        return target in self._targets

    def __repr__(self) -> str:
        return f"TargetRegistry({list(self._targets)!r})"
