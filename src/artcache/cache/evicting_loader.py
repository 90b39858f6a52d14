"""
Disk-space-aware LRU eviction around a resource loader.

EvictingResourceLoader wraps another ResourceLoader, assumed to hand out
resources stored on the local file system, and deletes the least
recently used of them once free disk space is getting low.

It is typically put in front of a repository-layout cache (one artifact
per directory, e.g. ``<root>/group/artifact/version/``) but works with
plain files too:
- entries below ``repository_root`` are evicted with their whole parent
  directory;
- any other entry is evicted as a single file.

Every resolution records the returned file as most recently used and then
sweeps the whole registry, oldest first. The free space ratio is computed
per volume, so the sweep never stops at the first survivor. The entry
that was just resolved is never evicted.
"""

from __future__ import annotations

import math
import shutil
from dataclasses import dataclass
from pathlib import Path

from artcache.cache.disk_space import SpaceGuard
from artcache.cache.lru import AccessTracker
from artcache.exceptions import ConfigurationError, NotFileBackedError
from artcache.logging import get_logger, log_context
from artcache.resources import Resource, ResourceLoader

logger = get_logger(__name__)


@dataclass(frozen=True)
class EvictionRecord:
    """Outcome of evicting one registry entry.

    Attributes:
        path: The tracked file.
        unit: What was deleted: the file itself or its parent directory.
        success: Whether the deletion went through.
        error: Error message when it did not.
    """

    path: Path
    unit: Path
    success: bool
    error: str | None = None


class EvictingResourceLoader:
    """ResourceLoader that evicts LRU files when disk space runs low."""

    def __init__(
        self,
        delegate: ResourceLoader,
        target_free_space_ratio: float,
        repository_root: str | Path | None = None,
        *,
        space_guard: SpaceGuard | None = None,
        tracker: AccessTracker | None = None,
    ) -> None:
        """Initialize the loader.

        Args:
            delegate: The ResourceLoader to wrap, assumed file system based.
            target_free_space_ratio: Target free disk space ratio, between
                0 and 1 inclusive.
            repository_root: Directory of a repository-layout cache. Need
                not exist yet.
            space_guard: Source of free space figures.
            tracker: Access registry; its lock guards touch plus sweep.

        Raises:
            ConfigurationError: If delegate is None or the ratio is out of range.
        """
        if delegate is None:
            raise ConfigurationError("delegate cannot be None")
        if math.isnan(target_free_space_ratio) or not 0 <= target_free_space_ratio <= 1:
            raise ConfigurationError(
                "target_free_space_ratio should be between [0, 1] inclusive",
                context={"target_free_space_ratio": target_free_space_ratio},
            )

        self._delegate = delegate
        self._target_free_space_ratio = float(target_free_space_ratio)
        self._repository_root = (
            Path(repository_root).absolute() if repository_root is not None else None
        )
        self._space_guard = space_guard or SpaceGuard()
        self._tracker = tracker or AccessTracker()

    @property
    def delegate(self) -> ResourceLoader:
        return self._delegate

    @property
    def target_free_space_ratio(self) -> float:
        return self._target_free_space_ratio

    @property
    def repository_root(self) -> Path | None:
        return self._repository_root

    def tracked(self) -> list[Path]:
        """Tracked files, least recently used first."""
        return self._tracker.oldest_first()

    def get_resource(self, location: str) -> Resource:
        """Resolve location through the delegate and reclaim space if needed.

        Eviction is best-effort: deletion failures are logged and never
        prevent the resolved resource from being returned.

        Raises:
            FetchError: If the delegate's resource cannot be materialized.
        """
        resource = self._delegate.get_resource(location)
        try:
            file = resource.as_file()
        except NotFileBackedError:
            logger.debug(
                "Resource is not stored on the local filesystem, skipping",
                location=location,
            )
            return resource

        with log_context(location=location):
            with self._tracker.lock:
                self._tracker.touch(file.absolute())
                self.sweep()

        return resource

    def sweep(self) -> list[EvictionRecord]:
        """Evict tracked entries, oldest first, while their volume is short of space.

        The most recently used entry is always kept.

        Returns:
            One record per eviction attempted.
        """
        records: list[EvictionRecord] = []
        target_percent = 100.0 * self._target_free_space_ratio

        with log_context(operation="evict"), self._tracker.lock:
            candidates = self._tracker.oldest_first()
            totals_seen: set[int] = set()

            newest = candidates[-1] if candidates else None

            for path in candidates:
                stat = self._space_guard.stat(path)
                # total space is a rough identifier of the partition
                if stat.total_bytes not in totals_seen:
                    totals_seen.add(stat.total_bytes)
                    logger.info(
                        f"Free Disk Space = {stat.percent_free:.2f}%, "
                        f"Target Free Space >{target_percent:.2f}%",
                        free_bytes=stat.free_bytes,
                        total_bytes=stat.total_bytes,
                    )
                logger.debug(
                    f"Looking at LRU entry {path}",
                    free_bytes=stat.free_bytes,
                    total_bytes=stat.total_bytes,
                )

                if path != newest and self._space_guard.falls_short(
                    stat, self._target_free_space_ratio
                ):
                    unit = self.eviction_unit(path)
                    if newest is not None and newest.is_relative_to(unit):
                        logger.debug(f"Keeping {unit}, it holds the most recent entry")
                        continue
                    records.append(self._evict(path, unit))
                    self._tracker.remove(path)
                else:
                    logger.debug(f"No action taken for LRU entry {path}")

        return records

    def eviction_unit(self, path: Path) -> Path:
        """What gets deleted to evict path.

        Files below a sub-directory of the repository root take their
        parent directory with them. Files directly in the root, or outside
        it, are deleted on their own.
        """
        root = self._repository_root
        if root is not None and path.is_relative_to(root) and path.parent != root:
            return path.parent
        return path

    def _evict(self, path: Path, unit: Path) -> EvictionRecord:
        try:
            if unit != path:
                shutil.rmtree(unit)
            else:
                path.unlink(missing_ok=True)
        except FileNotFoundError:
            # already gone, which is what we wanted
            pass
        except OSError as e:
            logger.warning(
                f"[FAILED] Deleting {unit} to regain free disk space",
                path=str(path),
                error=str(e),
            )
            return EvictionRecord(path=path, unit=unit, success=False, error=str(e))

        if unit != path:
            logger.info(f"[SUCCESS] Deleting {path} parent directory to regain free disk space")
        else:
            logger.info(f"[SUCCESS] Deleting {path} to regain free disk space")
        return EvictionRecord(path=path, unit=unit, success=True)
