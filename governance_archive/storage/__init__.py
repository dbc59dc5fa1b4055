"""
Storage access for archived documents.

Components:
    - backends: ObjectStore abstraction (file:// local, https:// storage API)
    - repair: pure path helpers and the stale-path matcher
    - cache: session-scoped memo of minted URLs
    - locator: StorageLocator (exact mint, then bounded repair search)
"""

from .backends import (
    ListedObject,
    LocalObjectStore,
    ObjectStore,
    SupabaseObjectStore,
    create_object_store,
    looks_like_not_found,
)
from .cache import SignedUrlCache
from .locator import LocatorConfig, StorageLocator, upload_bucket_candidates
from .repair import (
    candidate_directories,
    extra_dirs_for_record,
    extract_uuid_prefix,
    normalize_path,
    safe_filename,
    select_repair_candidate,
)

__all__ = [
    "ListedObject",
    "LocalObjectStore",
    "LocatorConfig",
    "ObjectStore",
    "SignedUrlCache",
    "StorageLocator",
    "SupabaseObjectStore",
    "candidate_directories",
    "create_object_store",
    "extra_dirs_for_record",
    "extract_uuid_prefix",
    "looks_like_not_found",
    "normalize_path",
    "safe_filename",
    "select_repair_candidate",
    "upload_bucket_candidates",
]
