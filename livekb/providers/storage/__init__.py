"""Manifest persistence backends."""

from livekb.providers.storage.local_manifest_store import LocalManifestStore

__all__ = ["LocalManifestStore"]
