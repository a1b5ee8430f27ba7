"""ScrollStreamer — 페이지 계획, 연속 조건, 절단, 취소"""

from contextlib import aclosing

import pytest
from conftest import FakeEngine, collect, make_docs

from es_stream import ResultPage, ScrollStreamer, SearchQuery, resolve_page_plan, stream_search


@pytest.mark.parametrize(
    "limit, size, expected",
    [
        (None, None, (1000, None)),
        (None, 50, (50, None)),
        (25, None, (10, 3)),
        (5, None, (5, 1)),
        (10, None, (10, 1)),
        (0, None, (0, 0)),
        (25, 4, (4, 7)),
        (3, 100, (3, 1)),
    ],
)
def test_resolve_page_plan(limit, size, expected):
    assert resolve_page_plan(limit, size) == expected


def test_resolve_page_plan_rejects_negative_limit():
    with pytest.raises(ValueError):
        resolve_page_plan(-1)


@pytest.mark.parametrize("limit, size", [(25, 0), (25, -1), (None, 0), (None, -5)])
def test_resolve_page_plan_rejects_non_positive_size(limit, size):
    with pytest.raises(ValueError):
        resolve_page_plan(limit, size)


@pytest.mark.parametrize("size", [0, -1])
async def test_non_positive_size_fails_before_any_call(size):
    engine = FakeEngine(docs=make_docs(30))

    with pytest.raises(ValueError):
        await collect(ScrollStreamer(engine).stream(SearchQuery({"index": "kw"}, limit=25, size=size)))

    assert engine.calls == []


async def test_limit_25_fetches_three_pages_and_truncates():
    engine = FakeEngine(docs=make_docs(100))
    streamer = ScrollStreamer(engine)

    hits = await collect(streamer.stream(SearchQuery({"index": "kw"}, limit=25)))

    assert [h["_id"] for h in hits] == [f"doc-{i}" for i in range(25)]
    assert [name for name, _ in engine.calls] == ["search", "scroll", "scroll"]
    assert engine.calls[0][1] == {"index": "kw", "size": 10, "scroll": "10s"}
    assert engine.calls[1][1] == {"scroll_id": "sid-1", "scroll": "10s"}


async def test_last_page_overshoot_is_truncated():
    engine = FakeEngine(docs=make_docs(100))
    streamer = ScrollStreamer(engine)

    hits = await collect(streamer.stream(SearchQuery(limit=25, size=20)))

    # page_size=20 → 2페이지(40건) 중 25건만
    assert len(hits) == 25
    assert engine.count("scroll") == 1


@pytest.mark.parametrize("limit, available", [(25, 7), (25, 25), (30, 0), (1, 100), (10, 10)])
async def test_limit_emits_min_of_limit_and_available(limit, available):
    engine = FakeEngine(docs=make_docs(available))

    hits = await collect(stream_search(engine, {"index": "kw"}, limit=limit))

    assert [h["_id"] for h in hits] == [f"doc-{i}" for i in range(min(limit, available))]


async def test_limit_zero_makes_no_remote_call():
    engine = FakeEngine(docs=make_docs(5))

    hits = await collect(stream_search(engine, {"index": "kw"}, limit=0))

    assert hits == []
    assert engine.calls == []


async def test_unbounded_streams_until_short_page():
    engine = FakeEngine(docs=make_docs(7))

    hits = await collect(stream_search(engine, {"index": "kw"}, size=3))

    assert len(hits) == 7
    # 3 + 3 + 1: 짧은 페이지 뒤에는 cursor가 있어도 멈춤
    assert [name for name, _ in engine.calls] == ["search", "scroll", "scroll"]


async def test_unbounded_uses_default_page_size():
    engine = FakeEngine(docs=make_docs(3))

    await collect(ScrollStreamer(engine).stream(SearchQuery({"index": "kw"})))

    assert engine.calls[0][1]["size"] == 1000
    assert engine.count("scroll") == 0


async def test_empty_first_page_issues_no_continuation():
    engine = FakeEngine(pages=[[]])

    hits = await collect(stream_search(engine, {"index": "kw"}))

    assert hits == []
    assert engine.count("search") == 1
    assert engine.count("scroll") == 0


async def test_full_page_then_empty_page_stops():
    engine = FakeEngine(docs=make_docs(4))

    hits = await collect(stream_search(engine, {}, size=2))

    assert len(hits) == 4
    # 2, 2, 0
    assert engine.count("scroll") == 2


async def test_short_page_stops_even_with_cursor():
    docs = make_docs(5)
    engine = FakeEngine(pages=[docs[:3], docs[3:4], docs[4:]])

    hits = await collect(stream_search(engine, {}, size=3))

    assert [h["_id"] for h in hits] == ["doc-0", "doc-1", "doc-2", "doc-3"]
    assert engine.count("scroll") == 1


async def test_missing_cursor_stops():
    engine = FakeEngine(docs=make_docs(10), cursor=False)

    hits = await collect(stream_search(engine, {}, size=3))

    assert len(hits) == 3
    assert engine.count("scroll") == 0


async def test_size_and_scroll_in_params_are_overridden():
    engine = FakeEngine(docs=make_docs(3))
    streamer = ScrollStreamer(engine, scroll="1m")

    await collect(streamer.stream(SearchQuery({"index": "kw", "size": 5, "scroll": "5s"})))

    assert engine.calls[0][1] == {"index": "kw", "size": 5, "scroll": "1m"}


async def test_search_error_propagates_unchanged():
    error = ConnectionError("es down")
    engine = FakeEngine(search_error=error)

    with pytest.raises(ConnectionError) as exc_info:
        await collect(stream_search(engine, {}))
    assert exc_info.value is error


async def test_scroll_error_fails_sequence_after_delivered_hits():
    engine = FakeEngine(docs=make_docs(10), scroll_error=TimeoutError("scroll expired"))
    received = []

    with pytest.raises(TimeoutError):
        async for hit in stream_search(engine, {}, size=4):
            received.append(hit)

    assert len(received) == 4


async def test_closing_stream_stops_further_calls():
    engine = FakeEngine(docs=make_docs(100))
    received = []

    async with aclosing(stream_search(engine, {}, size=2)) as hits:
        async for hit in hits:
            received.append(hit)
            if len(received) == 3:
                break

    assert len(received) == 3
    assert [name for name, _ in engine.calls] == ["search", "scroll"]


def test_result_page_parses_total_variants():
    legacy = ResultPage.from_response({"_scroll_id": "a", "hits": {"total": 3, "hits": [{}]}})
    modern = ResultPage.from_response({"hits": {"total": {"value": 9}, "hits": []}})

    assert (legacy.scroll_id, legacy.total, len(legacy)) == ("a", 3, 1)
    assert (modern.scroll_id, modern.total, len(modern)) == (None, 9, 0)
