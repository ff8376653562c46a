"""Tests for the sync cursor protocol."""

import pytest

from votelog.codec import Vote
from votelog.log import UserLog
from votelog.store import MemoryListStore, SQLiteListStore
from votelog.sync import SyncPage, iter_pages, normalize_cursor, read_since


@pytest.fixture(params=["memory", "sqlite"])
def log(request):
    """A user log over each local backend."""
    if request.param == "memory":
        yield UserLog(MemoryListStore())
        return
    store = SQLiteListStore(":memory:")
    store.connect()
    yield UserLog(store)
    store.close()


class TestNormalizeCursor:
    def test_valid_values(self):
        assert normalize_cursor(0) == 0
        assert normalize_cursor(7) == 7
        assert normalize_cursor("12") == 12
        assert normalize_cursor(" 3 ") == 3

    def test_invalid_values_become_zero(self):
        assert normalize_cursor(None) == 0
        assert normalize_cursor("") == 0
        assert normalize_cursor("abc") == 0
        assert normalize_cursor("1.5") == 0
        assert normalize_cursor(-4) == 0
        assert normalize_cursor("-4") == 0
        assert normalize_cursor(True) == 0

    def test_beyond_int64_becomes_zero(self):
        assert normalize_cursor(2**63) == 0
        assert normalize_cursor(str(2**63)) == 0
        assert normalize_cursor(str(10**30)) == 0
        assert normalize_cursor(str(2**63 - 1)) == 2**63 - 1

    def test_only_ascii_digits(self):
        assert normalize_cursor("1_000") == 0
        assert normalize_cursor("\u0661\u0662") == 0  # Arabic-Indic "12"
        assert normalize_cursor("+7") == 7


class TestReadSince:
    """Tests for single reads."""

    def test_scenario(self, log):
        """Two votes for user 15000, read in full then from cursor 1."""
        log.append_event("15000", 5, 1337)
        log.append_event("15000", 7, 9000)

        page = read_since(log, "15000")
        assert page.votes == [Vote(5, 1337), Vote(7, 9000)]
        assert page.next_sync_id == 2

        page = read_since(log, "15000", 1)
        assert page.votes == [Vote(7, 9000)]
        assert page.next_sync_id == 2

    def test_unknown_user(self, log):
        page = read_since(log, "never-seen")
        assert page.votes == []
        assert page.next_sync_id == 0

    def test_cursor_past_end(self, log):
        log.append_event("u", 1, 1)

        page = read_since(log, "u", 5)
        assert page.votes == []
        assert page.next_sync_id == 5

        page = read_since(log, "u", 1)
        assert page.votes == []
        assert page.next_sync_id == 1

    def test_invalid_cursor_reads_from_start(self, log):
        log.append_event("u", 1, 1)
        log.append_event("u", 2, 2)

        for raw in (None, "garbage", "-3", -3):
            page = read_since(log, "u", raw)
            assert page.cursor == 0
            assert page.next_sync_id == 2
            assert len(page.votes) == 2

    def test_idempotent(self, log):
        for i in range(4):
            log.append_event("u", i, i * 10)

        first = read_since(log, "u", 1)
        second = read_since(log, "u", 1)
        assert first.votes == second.votes
        assert first.next_sync_id == second.next_sync_id

    def test_next_sync_id_arithmetic(self, log):
        for i in range(6):
            log.append_event("u", i % 16, i)

        for cursor in range(8):
            page = read_since(log, "u", cursor)
            assert page.next_sync_id == cursor + min(6, max(6 - cursor, 0))
            assert page.votes == [Vote(i % 16, i) for i in range(cursor, 6)]

    def test_to_response(self):
        page = SyncPage(cursor=0, next_sync_id=2, votes=[Vote(5, 1337), Vote(7, 9000)])
        assert page.to_response() == {
            "votes": [5, 1337, 7, 9000],
            "nextSyncId": 2,
            "duration": 0,
        }


class TestPolling:
    """No loss, no duplication across chunked polls."""

    def test_interleaved_appends_and_polls(self, log):
        expected = [Vote(i % 16, 1000 + i) for i in range(10)]
        seen = []
        cursor = 0

        for chunk_start in range(0, 10, 3):
            for vote in expected[chunk_start:chunk_start + 3]:
                log.append("u", vote)
            page = read_since(log, "u", cursor)
            seen.extend(page.votes)
            cursor = page.next_sync_id

            # Polling again without new appends returns nothing
            again = read_since(log, "u", cursor)
            assert again.votes == []
            assert again.next_sync_id == cursor

        assert seen == expected
        assert cursor == 10

    def test_monotonic(self, log):
        cursor = 0
        for i in range(5):
            log.append_event("u", 1, i)
            page = read_since(log, "u", cursor)
            assert page.next_sync_id >= cursor
            cursor = page.next_sync_id


class TestIterPages:
    def test_pages_cover_log_once(self, log):
        for i in range(7):
            log.append_event("u", 3, i)

        pages = list(iter_pages(log, "u", 0, page_size=3))

        assert [len(p.votes) for p in pages] == [3, 3, 1]
        assert [p.next_sync_id for p in pages] == [3, 6, 7]
        assert pages[1].cursor == 3
        assert [v.target for p in pages for v in p.votes] == list(range(7))

    def test_single_page(self, log):
        log.append_event("u", 3, 1)
        pages = list(iter_pages(log, "u"))
        assert len(pages) == 1
        assert pages[0].next_sync_id == 1

    def test_caught_up_yields_nothing(self, log):
        log.append_event("u", 3, 1)
        assert list(iter_pages(log, "u", 1)) == []
        assert list(iter_pages(log, "u", 1, page_size=2)) == []

    def test_bad_page_size(self, log):
        with pytest.raises(ValueError):
            list(iter_pages(log, "u", page_size=0))
