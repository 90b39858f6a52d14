"""
Free disk space checks for cached artifacts.

The free space ratio is computed per volume, so two cached files living
on different partitions can get different answers.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable


@dataclass(frozen=True)
class VolumeStat:
    """Free and total bytes of the volume holding a path."""

    free_bytes: int
    total_bytes: int

    @property
    def ratio(self) -> float:
        """Free/total ratio; 1.0 when the total is unknown (zero)."""
        if self.total_bytes <= 0:
            return 1.0
        return self.free_bytes / self.total_bytes

    @property
    def percent_free(self) -> float:
        return 100.0 * self.ratio


def _nearest_existing(path: Path) -> Path:
    """Walk up from path until something that exists on disk is found."""
    for candidate in (path, *path.parents):
        if candidate.exists():
            return candidate
    return Path(path.anchor or ".")


def volume_stat(path: str | Path) -> VolumeStat:
    """Read free and total space of the volume containing path.

    A path that no longer exists is measured at its nearest existing
    ancestor, which lives on the same volume.
    """
    usage = shutil.disk_usage(_nearest_existing(Path(path)))
    return VolumeStat(free_bytes=usage.free, total_bytes=usage.total)


class SpaceGuard:
    """Compares the free space ratio of a path's volume to a target."""

    def __init__(self, stat_fn: Callable[[Path], VolumeStat] | None = None) -> None:
        """Initialize the guard.

        Args:
            stat_fn: Function returning the VolumeStat for a path. Defaults
                to reading the real file system.
        """
        self._stat_fn = stat_fn or volume_stat

    def stat(self, path: str | Path) -> VolumeStat:
        """Get the VolumeStat for the volume holding path."""
        return self._stat_fn(Path(path))

    def is_below_target(self, path: str | Path, target_ratio: float) -> bool:
        """Return True when the free space ratio of path's volume is below target_ratio."""
        return self.falls_short(self.stat(path), target_ratio)

    @staticmethod
    def falls_short(stat: VolumeStat, target_ratio: float) -> bool:
        """Return True when an already read VolumeStat is below target_ratio."""
        return stat.ratio < target_ratio
