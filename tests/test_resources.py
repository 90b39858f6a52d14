"""
Tests for resources, scheme dispatch and loader wiring.
"""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from artcache.cache.evicting_loader import EvictingResourceLoader
from artcache.cache.file_cache import ContentAddressedFetcher
from artcache.config import Settings
from artcache.exceptions import ConfigurationError, NotFileBackedError
from artcache.factory import build_resource_loader
from artcache.resources import (
    DelegatingResourceLoader,
    DownloadingUrlResource,
    FileResource,
    FileResourceLoader,
    PackageResource,
    PackageResourceLoader,
    Resource,
    ResourceLoader,
    default_loaders,
)


@pytest.fixture
def fetcher(temp_dir: Path) -> ContentAddressedFetcher:
    """Create a fetcher whose every download returns a small body."""
    client = httpx.Client(
        transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"remote"))
    )
    return ContentAddressedFetcher(temp_dir / "downloads", client=client)


class TestFileResource:
    """Test file system resources."""

    def test_as_file_is_absolute(self, temp_dir: Path) -> None:
        """Test that as_file returns an absolute path."""
        artifact = temp_dir / "app.jar"
        artifact.write_bytes(b"jar")

        resource = FileResource(artifact)

        assert resource.as_file().is_absolute()
        assert resource.exists()
        assert resource.read_bytes() == b"jar"
        assert isinstance(resource, Resource)

    def test_file_url(self, temp_dir: Path) -> None:
        """Test that file: URLs map to their path."""
        artifact = temp_dir / "my app.jar"
        artifact.write_bytes(b"jar")

        resource = FileResourceLoader().get_resource(artifact.as_uri())

        assert resource.as_file() == artifact
        assert resource.location == artifact.as_uri()


class TestDownloadingUrlResource:
    """Test remote resources."""

    def test_exists_only_after_download(self, fetcher: ContentAddressedFetcher) -> None:
        """Test that the resource reports whether it is cached."""
        resource = DownloadingUrlResource("https://example.com/app.jar", fetcher)

        assert not resource.exists()
        path = resource.as_file()

        assert resource.exists()
        assert path.read_bytes() == b"remote"
        assert resource.read_bytes() == b"remote"


class TestPackageResource:
    """Test package data resources."""

    def test_readable_but_not_file_backed(self) -> None:
        """Test that package data is never exposed as a cache file."""
        resource = PackageResourceLoader().get_resource("package:artcache/__init__.py")

        assert isinstance(resource, PackageResource)
        assert resource.exists()
        assert b"__version__" in resource.read_bytes()
        with pytest.raises(NotFileBackedError):
            resource.as_file()

    def test_missing_package(self) -> None:
        """Test that an unknown package simply does not exist."""
        assert not PackageResource("no_such_package_here", "data.bin").exists()

    def test_malformed_location(self) -> None:
        """Test that a location without a name is rejected."""
        with pytest.raises(ConfigurationError):
            PackageResourceLoader().get_resource("package:artcache")


class TestDelegatingResourceLoader:
    """Test scheme dispatch."""

    def test_dispatch_by_scheme(self, fetcher: ContentAddressedFetcher, temp_dir: Path) -> None:
        """Test that each scheme reaches its loader."""
        loader = DelegatingResourceLoader(default_loaders(fetcher))

        assert isinstance(loader.get_resource("https://example.com/a.jar"), DownloadingUrlResource)
        assert isinstance(loader.get_resource("HTTP://example.com/a.jar"), DownloadingUrlResource)
        assert isinstance(loader.get_resource(str(temp_dir / "a.jar")), FileResource)
        assert isinstance(loader.get_resource((temp_dir / "a.jar").as_uri()), FileResource)
        assert isinstance(loader.get_resource("package:artcache/__init__.py"), PackageResource)
        assert isinstance(loader, ResourceLoader)

    def test_drive_letter_is_not_a_scheme(self) -> None:
        """Test that Windows-style paths go to the default loader."""
        loader = DelegatingResourceLoader({})
        assert isinstance(loader.get_resource("C:/cache/app.jar"), FileResource)

    def test_unknown_scheme(self) -> None:
        """Test that unregistered schemes are rejected."""
        loader = DelegatingResourceLoader({"https": FileResourceLoader()})

        with pytest.raises(ConfigurationError) as exc_info:
            loader.get_resource("ftp://example.com/app.jar")

        assert "ftp" in str(exc_info.value)


class TestBuildResourceLoader:
    """Test wiring from settings."""

    def test_build_from_settings(self, mock_settings: Settings, fetcher: ContentAddressedFetcher) -> None:
        """Test that settings flow into the evicting loader."""
        loader = build_resource_loader(mock_settings, fetcher)

        assert isinstance(loader, EvictingResourceLoader)
        assert loader.target_free_space_ratio == 0.3
        assert loader.repository_root == mock_settings.REPOSITORY_ROOT.absolute()

    def test_downloads_go_through_callers_fetcher(
        self, mock_settings: Settings, fetcher: ContentAddressedFetcher
    ) -> None:
        """Test that remote locations land in the fetcher the caller owns."""
        loader = build_resource_loader(mock_settings, fetcher)

        path = loader.get_resource("https://example.com/lib-2.0.jar").as_file()

        assert path == fetcher.local_path_for("https://example.com/lib-2.0.jar")
        fetcher.close()

    def test_remote_location_end_to_end(
        self, mock_settings: Settings, fetcher: ContentAddressedFetcher
    ) -> None:
        """Test that a URL is downloaded once and tracked once."""
        loader = build_resource_loader(mock_settings, fetcher)

        first = loader.get_resource("https://example.com/app-1.0.jar").as_file()
        second = loader.get_resource("https://example.com/app-1.0.jar").as_file()

        assert first == second
        assert loader.tracked() == [first.absolute()]
