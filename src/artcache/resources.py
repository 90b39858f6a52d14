"""
Resources and resource loaders.

A ResourceLoader turns a location string into a Resource. Some resources
live on the local file system and can hand out a Path through as_file();
others (package data, for instance) can only be read and raise
NotFileBackedError instead.

Locations are dispatched on their URL scheme:
- ``/abs/path`` or ``file:///abs/path`` -> FileResource
- ``http://...`` / ``https://...``     -> DownloadingUrlResource
- ``package:some.pkg/data/file.bin``   -> PackageResource
"""

from __future__ import annotations

from importlib import resources as importlib_resources
from pathlib import Path
from typing import Mapping, Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

from artcache.cache.file_cache import ContentAddressedFetcher
from artcache.exceptions import ConfigurationError, NotFileBackedError


@runtime_checkable
class Resource(Protocol):
    """A located piece of content."""

    location: str

    def exists(self) -> bool:
        """Check whether the content can be read."""
        ...

    def as_file(self) -> Path:
        """Get the local file backing this resource.

        Raises:
            NotFileBackedError: If the resource has no local file.
        """
        ...

    def read_bytes(self) -> bytes:
        """Read the whole content."""
        ...


@runtime_checkable
class ResourceLoader(Protocol):
    """Turns location strings into resources."""

    def get_resource(self, location: str) -> Resource:
        """Get the resource for location."""
        ...


class FileResource:
    """Resource backed by a path on the local file system."""

    def __init__(self, path: str | Path, location: str | None = None) -> None:
        self.path = Path(path).absolute()
        self.location = location or str(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def as_file(self) -> Path:
        return self.path

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def __repr__(self) -> str:
        return f"FileResource({str(self.path)!r})"


class DownloadingUrlResource:
    """Remote resource materialized through the content-addressed fetcher.

    as_file() downloads on first use and returns the same path afterwards.
    """

    def __init__(self, url: str, fetcher: ContentAddressedFetcher) -> None:
        self.location = url
        self.url = url
        self.fetcher = fetcher

    def exists(self) -> bool:
        """True once the artifact has been downloaded."""
        return self.fetcher.local_path_for(self.url).is_file()

    def as_file(self) -> Path:
        """Download if needed.

        Raises:
            FetchError: If the download fails.
        """
        return self.fetcher.resolve(self.url)

    def read_bytes(self) -> bytes:
        return self.as_file().read_bytes()

    def __repr__(self) -> str:
        return f"DownloadingUrlResource({self.url!r})"


class PackageResource:
    """Data file shipped inside an importable package.

    Package data may live in a zip or wheel, and deleting it would damage
    the installation, so it is never exposed as a file.
    """

    def __init__(self, package: str, name: str) -> None:
        self.package = package
        self.name = name
        self.location = f"package:{package}/{name}"

    def _traversable(self) -> importlib_resources.abc.Traversable:
        return importlib_resources.files(self.package).joinpath(self.name)

    def exists(self) -> bool:
        try:
            return self._traversable().is_file()
        except ModuleNotFoundError:
            return False

    def as_file(self) -> Path:
        raise NotFileBackedError(
            "Package resources are not stored as cache files",
            context={"location": self.location},
        )

    def read_bytes(self) -> bytes:
        return self._traversable().read_bytes()

    def __repr__(self) -> str:
        return f"PackageResource({self.location!r})"


class FileResourceLoader:
    """Loads plain paths and ``file:`` URLs."""

    def get_resource(self, location: str) -> FileResource:
        parsed = urlparse(location)
        if parsed.scheme == "file":
            return FileResource(unquote(parsed.path), location=location)
        return FileResource(location)


class UrlResourceLoader:
    """Loads ``http``/``https`` URLs through a ContentAddressedFetcher."""

    def __init__(self, fetcher: ContentAddressedFetcher) -> None:
        self.fetcher = fetcher

    def get_resource(self, location: str) -> DownloadingUrlResource:
        return DownloadingUrlResource(location, self.fetcher)


class PackageResourceLoader:
    """Loads ``package:<dotted.package>/<relative/name>`` locations."""

    def get_resource(self, location: str) -> PackageResource:
        remainder = location.split(":", 1)[1]
        package, sep, name = remainder.partition("/")
        if not package or not sep or not name:
            raise ConfigurationError(
                "Package location must look like package:<package>/<name>",
                context={"location": location},
            )
        return PackageResource(package, name)


class DelegatingResourceLoader:
    """Dispatches locations to per-scheme loaders.

    Locations without a scheme (plain paths) go to the default loader.
    Single-letter schemes are treated as Windows drive letters, not schemes.
    """

    def __init__(
        self,
        loaders: Mapping[str, ResourceLoader],
        default: ResourceLoader | None = None,
    ) -> None:
        """Initialize the loader.

        Args:
            loaders: Loader per lower-case URL scheme.
            default: Loader for locations without a scheme. Defaults to
                a FileResourceLoader.
        """
        self.loaders = {scheme.lower(): loader for scheme, loader in loaders.items()}
        self.default = default or FileResourceLoader()

    def get_resource(self, location: str) -> Resource:
        """Get the resource for location.

        Raises:
            ConfigurationError: If no loader handles the location's scheme.
        """
        scheme = urlparse(location).scheme.lower()
        if len(scheme) <= 1:
            return self.default.get_resource(location)

        loader = self.loaders.get(scheme)
        if loader is None:
            raise ConfigurationError(
                f"No resource loader registered for scheme '{scheme}'",
                context={"location": location, "schemes": sorted(self.loaders)},
            )
        return loader.get_resource(location)


def default_loaders(fetcher: ContentAddressedFetcher) -> dict[str, ResourceLoader]:
    """Scheme mapping used by the stock configuration."""
    url_loader = UrlResourceLoader(fetcher)
    return {
        "http": url_loader,
        "https": url_loader,
        "file": FileResourceLoader(),
        "package": PackageResourceLoader(),
    }
