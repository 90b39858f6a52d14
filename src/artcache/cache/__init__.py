"""
Cache package for downloaded artifacts.

- file_cache.py: content-addressed download cache (ContentAddressedFetcher)
- lru.py: access-ordered registry of cached paths (AccessTracker)
- disk_space.py: free space checks per volume (SpaceGuard, VolumeStat)
- evicting_loader.py: LRU eviction around a resource loader
"""
