"""Artifact cache - content-addressed downloads with disk-space-aware LRU eviction."""

__version__ = "0.1.0"
