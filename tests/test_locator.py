"""Tests for the storage locator and the signed URL cache."""

import asyncio
from typing import List
from unittest.mock import AsyncMock, MagicMock

import pytest

from governance_archive.errors import AccessError, StorageNotFound
from governance_archive.schemas.enums import Lane
from governance_archive.schemas.records import LocatedObject
from governance_archive.storage.backends import LocalObjectStore
from governance_archive.storage.cache import SignedUrlCache
from governance_archive.storage.locator import (
    StorageLocator,
    upload_bucket_candidates,
)

UUID = "3f2a9c1e-7b4d-4e8a-9c21-5d6e7f8a9b0c"


class CountingStore(LocalObjectStore):
    """LocalObjectStore that records calls and tracks listing concurrency."""

    def __init__(self, root, list_delay: float = 0.0):
        super().__init__(root)
        self.sign_calls: List[tuple] = []
        self.list_calls: List[tuple] = []
        self.list_delay = list_delay
        self.active_lists = 0
        self.max_active_lists = 0

    async def sign_url(self, bucket, path, expires_in, download_name=None):
        self.sign_calls.append((bucket, path, download_name))
        return await super().sign_url(bucket, path, expires_in, download_name)

    async def list_dir(self, bucket, prefix, limit=200):
        self.list_calls.append((bucket, prefix))
        self.active_lists += 1
        self.max_active_lists = max(self.max_active_lists, self.active_lists)
        try:
            if self.list_delay:
                await asyncio.sleep(self.list_delay)
            return await super().list_dir(bucket, prefix, limit)
        finally:
            self.active_lists -= 1


@pytest.fixture
def store(storage_root) -> CountingStore:
    return CountingStore(storage_root)


@pytest.fixture
def locator(store, locator_config) -> StorageLocator:
    return StorageLocator(store, config=locator_config)


class TestLocate:
    """Tests for exact resolution and stale-path repair."""

    @pytest.mark.asyncio
    async def test_exact_path_needs_no_repair(self, locator, store, put_object):
        put_object("minute_book", "acme/share_capital/minutes.pdf")

        located = await locator.locate("minute_book", "acme/share_capital/minutes.pdf")

        assert located.repaired is False
        assert located.resolved_bucket == "minute_book"
        assert located.resolved_path == "acme/share_capital/minutes.pdf"
        assert located.requested_path == "acme/share_capital/minutes.pdf"
        assert located.expires_at is not None
        assert store.list_calls == []

    @pytest.mark.asyncio
    async def test_path_is_normalized(self, locator, put_object):
        put_object("minute_book", "acme/share_capital/minutes.pdf")

        located = await locator.locate("minute_book", "//acme\\share_capital/minutes.pdf")

        assert located.resolved_path == "acme/share_capital/minutes.pdf"

    @pytest.mark.asyncio
    async def test_stale_path_is_repaired(self, locator, store, put_object):
        put_object("minute_book", f"acme/Resolutions/{UUID}.pdf")
        put_object("minute_book", f"acme/Resolutions/{UUID}-signed.pdf")
        stale = f"acme/share_capital/{UUID}.pdf"

        located = await locator.locate(
            "minute_book", stale, extra_dirs=["acme/Resolutions", "acme/resolutions"]
        )

        assert located.repaired is True
        assert located.requested_path == stale
        assert located.resolved_path == f"acme/Resolutions/{UUID}-signed.pdf"
        assert located.access_url.startswith("file://")
        listed_prefixes = {prefix for _, prefix in store.list_calls}
        assert listed_prefixes == {"acme/share_capital", "acme/Resolutions", "acme/resolutions"}

    @pytest.mark.asyncio
    async def test_stem_repair_in_same_directory(self, locator, put_object):
        put_object("minute_book", "e/cat/a1b2c3-1.pdf")

        located = await locator.locate("minute_book", "e/cat/1.pdf")

        assert located.resolved_path == "e/cat/a1b2c3-1.pdf"
        assert located.repaired is True

    @pytest.mark.asyncio
    async def test_exhausted_repair_raises_with_original_request(self, locator, put_object):
        put_object("minute_book", "acme/share_capital/unrelated.pdf")

        with pytest.raises(StorageNotFound) as exc_info:
            await locator.locate("minute_book", f"acme/share_capital/{UUID}.pdf")

        assert exc_info.value.bucket == "minute_book"
        assert exc_info.value.path == f"acme/share_capital/{UUID}.pdf"
        assert exc_info.value.code == "OBJECT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_access_error_is_never_repaired(self, locator_config):
        store = MagicMock()
        store.sign_url = AsyncMock(side_effect=AccessError("permission denied", code="ACCESS_DENIED"))
        store.list_dir = AsyncMock(return_value=[])
        locator = StorageLocator(store, config=locator_config)

        with pytest.raises(AccessError):
            await locator.locate("minute_book", "acme/a.pdf", extra_dirs=["acme/Resolutions"])

        store.sign_url.assert_awaited_once()
        store.list_dir.assert_not_called()

    @pytest.mark.asyncio
    async def test_repair_listings_run_concurrently(self, storage_root, locator_config, put_object):
        store = CountingStore(storage_root, list_delay=0.05)
        locator = StorageLocator(store, config=locator_config)
        put_object("minute_book", f"acme/share_capital/{UUID}-signed.pdf")

        located = await locator.locate(
            "minute_book",
            f"acme/old/{UUID}.pdf",
            extra_dirs=["acme/Resolutions", "acme/resolutions", "acme/share_capital"],
        )

        assert located.resolved_path == f"acme/share_capital/{UUID}-signed.pdf"
        assert len(store.list_calls) == 4
        assert store.max_active_lists == 4

    @pytest.mark.asyncio
    async def test_download_name_is_passed_through(self, locator, store, put_object):
        put_object("minute_book", "acme/a.pdf")

        located = await locator.locate("minute_book", "acme/a.pdf", download_name="Minutes.pdf")

        assert located.download_name == "Minutes.pdf"
        assert store.sign_calls == [("minute_book", "acme/a.pdf", "Minutes.pdf")]
        assert "download=Minutes.pdf" in located.access_url


class TestLocateWithCache:
    """Tests for session-scoped memoization in the locator."""

    @pytest.mark.asyncio
    async def test_second_locate_hits_cache(self, store, locator_config, put_object):
        put_object("minute_book", "acme/a.pdf")
        locator = StorageLocator(store, config=locator_config, cache=SignedUrlCache(600))

        first = await locator.locate("minute_book", "acme/a.pdf")
        second = await locator.locate("minute_book", "/acme/a.pdf")

        assert first == second
        assert len(store.sign_calls) == 1

    @pytest.mark.asyncio
    async def test_repaired_result_is_cached_under_requested_path(self, store, locator_config, put_object):
        put_object("minute_book", "e/cat/a1b2c3-1.pdf")
        cache = SignedUrlCache(600)
        locator = StorageLocator(store, config=locator_config, cache=cache)

        await locator.locate("minute_book", "e/cat/1.pdf")
        await locator.locate("minute_book", "e/cat/1.pdf")

        assert len(store.list_calls) == 1
        assert cache.get("minute_book", "e/cat/1.pdf").resolved_path == "e/cat/a1b2c3-1.pdf"

    @pytest.mark.asyncio
    async def test_download_name_is_part_of_the_key(self, store, locator_config, put_object):
        put_object("minute_book", "acme/a.pdf")
        locator = StorageLocator(store, config=locator_config, cache=SignedUrlCache(600))

        await locator.locate("minute_book", "acme/a.pdf")
        await locator.locate("minute_book", "acme/a.pdf", download_name="a.pdf")

        assert len(store.sign_calls) == 2


class TestLocateFirst:
    """Tests for multi-bucket resolution."""

    @pytest.mark.asyncio
    async def test_falls_through_to_next_bucket(self, locator, put_object):
        put_object("governance_sandbox", "sandbox/uploads/entry-1.pdf")

        located = await locator.locate_first(
            ["minute_book", "governance_sandbox"], "sandbox/uploads/entry-1.pdf"
        )

        assert located.resolved_bucket == "governance_sandbox"

    @pytest.mark.asyncio
    async def test_first_bucket_wins(self, locator, put_object):
        put_object("minute_book", "acme/a.pdf")
        put_object("governance_sandbox", "acme/a.pdf")

        located = await locator.locate_first(["minute_book", "governance_sandbox"], "acme/a.pdf")

        assert located.resolved_bucket == "minute_book"

    @pytest.mark.asyncio
    async def test_all_buckets_miss(self, locator):
        with pytest.raises(StorageNotFound):
            await locator.locate_first(["minute_book", "governance_sandbox"], "acme/none.pdf")

    @pytest.mark.asyncio
    async def test_access_error_stops_the_search(self, locator_config):
        store = MagicMock()
        store.sign_url = AsyncMock(side_effect=AccessError("denied"))
        store.list_dir = AsyncMock(return_value=[])
        locator = StorageLocator(store, config=locator_config)

        with pytest.raises(AccessError):
            await locator.locate_first(["minute_book", "governance_sandbox"], "acme/a.pdf")

        assert store.sign_url.await_count == 1

    @pytest.mark.asyncio
    async def test_requires_a_bucket(self, locator):
        with pytest.raises(ValueError):
            await locator.locate_first([], "acme/a.pdf")


class TestUploadBucketCandidates:
    """Tests for upload bucket inference."""

    def test_recorded_bucket_is_authoritative(self, locator_config):
        assert upload_bucket_candidates("acme/a.pdf", recorded_bucket="minute_book", config=locator_config) == [
            "minute_book"
        ]

    def test_sandbox_prefix(self, locator_config):
        assert upload_bucket_candidates("sandbox/uploads/e.pdf", config=locator_config) == [
            "governance_sandbox",
            "minute_book",
        ]

    def test_truth_prefix(self, locator_config):
        assert upload_bucket_candidates("truth/uploads/e.pdf", config=locator_config) == [
            "governance_truth",
            "minute_book",
            "governance_sandbox",
        ]

    def test_archive_segment(self, locator_config):
        assert upload_bucket_candidates("acme/archive/e.pdf", config=locator_config) == [
            "governance_sandbox",
            "minute_book",
        ]

    def test_plain_path(self, locator_config):
        assert upload_bucket_candidates("acme/e.pdf", config=locator_config) == [
            "minute_book",
            "governance_sandbox",
        ]

    def test_opposite_lane_bucket_is_dropped(self, locator_config):
        assert upload_bucket_candidates("truth/uploads/e.pdf", lane=Lane.TEST, config=locator_config) == [
            "minute_book",
            "governance_sandbox",
        ]
        assert upload_bucket_candidates("acme/e.pdf", lane=Lane.REAL, config=locator_config) == [
            "minute_book"
        ]

    def test_recorded_bucket_from_other_lane_yields_nothing(self, locator_config):
        assert (
            upload_bucket_candidates(
                "acme/e.pdf", lane=Lane.TEST, recorded_bucket="governance_truth", config=locator_config
            )
            == []
        )


def make_located(bucket="minute_book", path="acme/a.pdf", resolved_path=None, download_name=None):
    return LocatedObject(
        access_url=f"file:///{bucket}/{resolved_path or path}",
        resolved_bucket=bucket,
        resolved_path=resolved_path or path,
        requested_bucket=bucket,
        requested_path=path,
        download_name=download_name,
    )


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestSignedUrlCache:
    """Tests for the signed URL cache."""

    def test_get_after_put(self):
        cache = SignedUrlCache(600)
        located = make_located()
        cache.put(located)
        assert cache.get("minute_book", "acme/a.pdf") == located
        assert len(cache) == 1

    def test_empty_download_name_matches_none(self):
        cache = SignedUrlCache(600)
        cache.put(make_located())
        assert cache.get("minute_book", "acme/a.pdf", "") is not None

    def test_entries_expire_before_the_url(self):
        clock = FakeClock()
        cache = SignedUrlCache(600, safety_margin_seconds=30, clock=clock)
        cache.put(make_located())

        clock.now += 569
        assert cache.get("minute_book", "acme/a.pdf") is not None
        clock.now += 1
        assert cache.get("minute_book", "acme/a.pdf") is None
        assert len(cache) == 0

    def test_invalidate_by_resolved_path(self):
        cache = SignedUrlCache(600)
        cache.put(make_located(path="e/cat/1.pdf", resolved_path="e/cat/a1b2c3-1.pdf"))
        cache.put(make_located(path="acme/b.pdf"))

        assert cache.invalidate(path="e/cat/a1b2c3-1.pdf") == 1
        assert cache.get("minute_book", "e/cat/1.pdf") is None
        assert cache.get("minute_book", "acme/b.pdf") is not None

    def test_invalidate_by_bucket(self):
        cache = SignedUrlCache(600)
        cache.put(make_located(bucket="minute_book"))
        cache.put(make_located(bucket="governance_truth"))

        assert cache.invalidate(bucket="governance_truth") == 1
        assert len(cache) == 1

    def test_invalidate_everything(self):
        cache = SignedUrlCache(600)
        cache.put(make_located(path="a.pdf"))
        cache.put(make_located(path="b.pdf"))
        assert cache.invalidate() == 2
        assert len(cache) == 0

    def test_instances_do_not_share_entries(self):
        first, second = SignedUrlCache(600), SignedUrlCache(600)
        first.put(make_located())
        assert second.get("minute_book", "acme/a.pdf") is None
