"""
Raw document content store.

Exports: S3ContentStore, parse_location
"""

from classrag.boundary.storage.s3_content_store import S3ContentStore, parse_location

__all__ = ["S3ContentStore", "parse_location"]
