"""Tests for URL record management."""

import threading

import pytest

from url_shortener.lib.errors import ErrorKind, InvalidInputError, LookupFailedError
from url_shortener.lib.models import ShortenedURL
from url_shortener.lib.records import URLRecordManager
from url_shortener.lib.storage import URLS_KEY, StoreAdapter


class TestCreate:
    """Test record creation."""

    def test_create_generated_code(self, records, clock, sample_urls):
        record = records.create(sample_urls[0])

        assert len(record.short_code) == 6
        assert record.short_code.isalnum()
        assert record.custom_code is None
        assert record.is_active
        assert record.created_at == clock.now_ms()
        assert record.expires_at == clock.now_ms() + 30 * 60_000

    def test_create_custom_code(self, records, sample_urls):
        record = records.create(sample_urls[0], custom_code="mylink")

        assert record.short_code == "mylink"
        assert record.custom_code == "mylink"

    def test_create_persists(self, records, adapter, sample_urls):
        record = records.create(sample_urls[0])

        stored = adapter.load_list(URLS_KEY, ShortenedURL)
        assert [r.id for r in stored] == [record.id]

    def test_invalid_url(self, records):
        with pytest.raises(InvalidInputError, match="Invalid URL") as exc_info:
            records.create("not-a-url")
        assert exc_info.value.kind == ErrorKind.INVALID_URL

    @pytest.mark.parametrize("ttl", [0, -5, True, "30", float("inf"), float("-inf"), float("nan"), 1e305])
    def test_invalid_ttl(self, records, sample_urls, ttl):
        with pytest.raises(InvalidInputError) as exc_info:
            records.create(sample_urls[0], ttl_minutes=ttl)
        assert exc_info.value.kind == ErrorKind.INVALID_TTL

    def test_duplicate_custom_code(self, records, sample_urls):
        records.create(sample_urls[0], custom_code="duplicate")

        with pytest.raises(InvalidInputError, match="already exists") as exc_info:
            records.create(sample_urls[1], custom_code="duplicate")
        assert exc_info.value.kind == ErrorKind.CODE_TAKEN

    def test_invalid_custom_code(self, records, sample_urls):
        with pytest.raises(InvalidInputError) as exc_info:
            records.create(sample_urls[0], custom_code="ab")
        assert exc_info.value.kind == ErrorKind.INVALID_FORMAT

    def test_expired_code_reusable(self, records, clock, sample_urls):
        old = records.create(sample_urls[0], custom_code="reuse", ttl_minutes=1)
        clock.advance(minutes=2)

        new = records.create(sample_urls[1], custom_code="reuse")

        assert new.id != old.id
        assert records.resolve("reuse").id == new.id
        assert records.get(old.id) is None
        assert len([r for r in records.list() if r.short_code == "reuse"]) == 1

    def test_deactivated_code_reusable(self, records, sample_urls):
        records.create(sample_urls[0], custom_code="revoked")
        records.deactivate("revoked")

        new = records.create(sample_urls[1], custom_code="revoked")
        assert records.resolve("revoked").id == new.id

    def test_generated_codes_unique(self, records, sample_urls):
        created = [records.create(sample_urls[i % 3]) for i in range(200)]
        codes = [r.short_code for r in created]
        assert len(set(codes)) == len(codes)

    def test_managers_sharing_a_store(self, store, clock, sample_urls):
        """Creates through separate managers over one store are all kept."""
        managers = [URLRecordManager(StoreAdapter(store), clock=clock) for _ in range(4)]

        def worker(manager):
            for i in range(25):
                manager.create(sample_urls[i % 3])

        threads = [threading.Thread(target=worker, args=(m,)) for m in managers]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stored = managers[0].list()
        assert len(stored) == 100
        assert len({r.short_code for r in stored}) == 100


class TestResolve:
    """Test lookup and lazy expiry."""

    def test_resolve(self, records, sample_urls):
        record = records.create(sample_urls[0])
        assert records.resolve(record.short_code) == record

    def test_not_found(self, records):
        with pytest.raises(LookupFailedError) as exc_info:
            records.resolve("nothere")
        assert exc_info.value.kind == ErrorKind.NOT_FOUND

    def test_expiry(self, records, clock, adapter, sample_urls):
        record = records.create(sample_urls[0], ttl_minutes=30)

        clock.advance(minutes=29)
        assert records.resolve(record.short_code).id == record.id

        clock.advance(minutes=2)
        with pytest.raises(LookupFailedError) as exc_info:
            records.resolve(record.short_code)
        assert exc_info.value.kind == ErrorKind.EXPIRED

        # Still in storage
        stored = adapter.load_list(URLS_KEY, ShortenedURL)
        assert [r.id for r in stored] == [record.id]

    def test_expires_exactly_at_deadline(self, records, clock, sample_urls):
        record = records.create(sample_urls[0], ttl_minutes=1)
        clock.set(record.expires_at - 1)
        records.resolve(record.short_code)

        clock.set(record.expires_at)
        with pytest.raises(LookupFailedError):
            records.resolve(record.short_code)

    def test_deactivated(self, records, sample_urls):
        record = records.create(sample_urls[0])
        deactivated = records.deactivate(record.short_code)

        assert not deactivated.is_active
        assert deactivated.deactivated_at is not None
        with pytest.raises(LookupFailedError) as exc_info:
            records.resolve(record.short_code)
        assert exc_info.value.kind == ErrorKind.EXPIRED

    def test_deactivate_missing(self, records):
        with pytest.raises(LookupFailedError):
            records.deactivate("missing")

    def test_find_ignores_status(self, records, clock, sample_urls):
        record = records.create(sample_urls[0], ttl_minutes=1)
        clock.advance(minutes=5)

        found = records.find(record.short_code)
        assert found.id == record.id
        assert not found.is_active
        assert records.find("missing") is None


class TestListAndPurge:
    """Test listing, purging and sweeping."""

    def test_list_newest_first(self, records, clock, sample_urls):
        first = records.create(sample_urls[0])
        clock.advance(ms=10)
        second = records.create(sample_urls[1])
        clock.advance(ms=10)
        third = records.create(sample_urls[2])

        assert [r.id for r in records.list()] == [third.id, second.id, first.id]

    def test_list_same_timestamp(self, records, sample_urls):
        first = records.create(sample_urls[0])
        second = records.create(sample_urls[1])

        assert [r.id for r in records.list()] == [second.id, first.id]

    def test_list_active_only(self, records, clock, sample_urls):
        short = records.create(sample_urls[0], ttl_minutes=1)
        long = records.create(sample_urls[1], ttl_minutes=60)
        clock.advance(minutes=2)

        all_urls = records.list()
        assert {r.id: r.is_active for r in all_urls} == {short.id: False, long.id: True}
        assert [r.id for r in records.list(active_only=True)] == [long.id]

    def test_purge_expired(self, records, clock, sample_urls):
        records.create(sample_urls[0], ttl_minutes=1)
        records.create(sample_urls[1], ttl_minutes=1)
        keep = records.create(sample_urls[2], ttl_minutes=60)
        clock.advance(minutes=2)

        assert records.purge_expired() == 2
        assert records.purge_expired() == 0
        assert [r.id for r in records.list()] == [keep.id]

    def test_sweep_updates_cached_flag(self, records, clock, adapter, sample_urls):
        record = records.create(sample_urls[0], ttl_minutes=1)
        clock.advance(minutes=2)

        assert records.sweep() == 1
        assert records.sweep() == 0
        stored = adapter.load_list(URLS_KEY, ShortenedURL)
        assert stored[0].is_active is False

        with pytest.raises(LookupFailedError) as exc_info:
            records.resolve(record.short_code)
        assert exc_info.value.kind == ErrorKind.EXPIRED

    def test_codes(self, records, clock, sample_urls):
        records.create(sample_urls[0], custom_code="gone", ttl_minutes=1)
        clock.advance(minutes=2)
        records.create(sample_urls[1], custom_code="live")

        assert records.codes() == {"gone", "live"}
        assert records.codes(live_only=True) == {"live"}

    def test_corrupt_collection_reads_empty(self, records, store, sample_urls):
        store.set(URLS_KEY, "not json at all")

        assert records.list() == []
        record = records.create(sample_urls[0])
        assert [r.id for r in records.list()] == [record.id]
