"""Tests for photogallery.core.clicks — the click recorder."""

from __future__ import annotations

import asyncio

import pytest

from photogallery.core.clicks import ClickRecorder
from photogallery.core.errors import InvalidArgument, NotFound
from photogallery.core.store import MetadataStore


class TestRecordClick:
    def test_returns_previous_count_plus_one(self, sample_store):
        before = asyncio.run(sample_store.get_counter("a"))
        assert asyncio.run(ClickRecorder(sample_store).record_click("a")) == before + 1

    def test_unknown_id_starts_new_counter(self, sample_store):
        recorder = ClickRecorder(sample_store)
        assert asyncio.run(recorder.record_click("not-in-catalog")) == 1
        assert asyncio.run(sample_store.get_counter("not-in-catalog")) == 1

    @pytest.mark.parametrize("photo_id", [None, "", 42])
    def test_missing_or_empty_id_is_rejected(self, sample_store, sample_kv, photo_id):
        before = sample_kv.snapshot()
        with pytest.raises(InvalidArgument, match="photoId is required"):
            asyncio.run(ClickRecorder(sample_store).record_click(photo_id))
        assert sample_kv.snapshot() == before

    def test_only_the_counter_is_written(self, sample_store, sample_kv):
        before = sample_kv.snapshot()
        asyncio.run(ClickRecorder(sample_store).record_click("c"))
        after = sample_kv.snapshot()
        changed = {key for key in after if after[key] != before.get(key)}
        assert changed == {"clicks-c"}

    def test_concurrent_clicks_all_count(self, make_kv):
        store = MetadataStore(make_kv([], {"a": 2}))
        recorder = ClickRecorder(store)

        async def scenario():
            await asyncio.gather(*(recorder.record_click("a") for _ in range(25)))
            return await store.get_counter("a")

        assert asyncio.run(scenario()) == 27


class TestRequireKnownPhoto:
    def test_known_photo_is_accepted(self, sample_store):
        recorder = ClickRecorder(sample_store, require_known_photo=True)
        assert asyncio.run(recorder.record_click("c")) == 10

    def test_unknown_photo_is_rejected(self, sample_store, sample_kv):
        recorder = ClickRecorder(sample_store, require_known_photo=True)
        with pytest.raises(NotFound):
            asyncio.run(recorder.record_click("ghost"))
        assert "clicks-ghost" not in sample_kv.snapshot()
