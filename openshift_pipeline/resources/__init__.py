"""Cluster object identity, caching, and manifest decoration.

This module handles:
- Canonical object references
- The per-session resource cache
- Label helpers and secret/config copies for manifests
- Image promotion between namespaces
"""

from openshift_pipeline.resources.cache import CacheEntry, ResourceCache
from openshift_pipeline.resources.identity import ResourceRef, parse_ref, ref_of

__all__ = ["CacheEntry", "ResourceCache", "ResourceRef", "parse_ref", "ref_of"]
