"""Tests for the in-memory diagnostic ring log."""

import threading

import pytest

from podproxy.ring_log import LogEntry, RingLog


def _fill(ring: RingLog, n: int) -> None:
    for i in range(n):
        ring.append("info", f"m{i}")


class TestAppend:
    def test_append_returns_frozen_entry(self):
        ring = RingLog()
        entry = ring.append("req", "GET /api/health", vendor="printful")
        assert isinstance(entry, LogEntry)
        assert entry.level == "req"
        assert entry.extra["vendor"] == "printful"
        with pytest.raises(AttributeError):
            entry.message = "changed"
        with pytest.raises(TypeError):
            entry.extra["vendor"] = "printify"

    def test_capacity_evicts_oldest_first(self):
        ring = RingLog(capacity=1000)
        _fill(ring, 1005)
        messages = [e.message for e in ring]
        assert len(ring) == 1000
        assert messages[0] == "m5"
        assert messages[-1] == "m1004"

    def test_small_capacity_keeps_most_recent_in_order(self):
        ring = RingLog(capacity=3)
        _fill(ring, 7)
        assert [e.message for e in ring] == ["m4", "m5", "m6"]

    def test_concurrent_appends_lose_nothing(self):
        ring = RingLog(capacity=10_000)
        threads = [threading.Thread(target=_fill, args=(ring, 500)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(ring) == 4000

    def test_zero_capacity_rejected(self):
        with pytest.raises(ValueError):
            RingLog(capacity=0)

    def test_to_dict_uses_wire_keys(self):
        entry = RingLog().append("error", "printful error: boom", detail="x")
        d = entry.to_dict()
        assert d["level"] == "error"
        assert d["msg"] == "printful error: boom"
        assert d["detail"] == "x"
        assert isinstance(d["ts"], int)

    def test_extra_cannot_shadow_core_keys(self):
        d = RingLog().append("info", "real", msg="fake").to_dict()
        assert d["msg"] == "real"


class TestRecent:
    def test_small_log_fits_one_page(self):
        ring = RingLog()
        _fill(ring, 3)
        page = ring.recent(limit=50, offset=0)
        assert [e.message for e in page.logs] == ["m0", "m1", "m2"]
        assert page.total == 3
        assert page.has_more is False

    def test_pages_count_back_from_newest(self):
        ring = RingLog()
        _fill(ring, 10)
        first = ring.recent(limit=4, offset=0)
        second = ring.recent(limit=4, offset=4)
        last = ring.recent(limit=4, offset=8)
        assert [e.message for e in first.logs] == ["m6", "m7", "m8", "m9"]
        assert [e.message for e in second.logs] == ["m2", "m3", "m4", "m5"]
        assert [e.message for e in last.logs] == ["m0", "m1"]
        assert first.has_more and second.has_more
        assert not last.has_more

    @pytest.mark.parametrize("limit,expected", [(0, 1), (-5, 1), (500, 200), (200, 200)])
    def test_limit_is_clamped(self, limit, expected):
        ring = RingLog()
        _fill(ring, 300)
        assert len(ring.recent(limit=limit).logs) == expected

    def test_negative_offset_treated_as_zero(self):
        ring = RingLog()
        _fill(ring, 5)
        assert ring.recent(limit=2, offset=-3) == ring.recent(limit=2, offset=0)

    def test_offset_past_end_is_empty(self):
        ring = RingLog()
        _fill(ring, 3)
        page = ring.recent(limit=50, offset=10)
        assert page.logs == []
        assert page.total == 3
        assert page.has_more is False

    def test_page_to_dict(self):
        ring = RingLog()
        _fill(ring, 2)
        d = ring.recent().to_dict()
        assert set(d) == {"logs", "total", "hasMore"}
        assert [e["msg"] for e in d["logs"]] == ["m0", "m1"]


@pytest.mark.parametrize("key", ["event", "ring_level", "extra", "level", "message"])
def test_append_accepts_any_extra_key(key):
    ring = RingLog()
    entry = ring.append("info", "m", **{key: "x"})
    assert entry.extra[key] == "x"
    assert len(ring) == 1
