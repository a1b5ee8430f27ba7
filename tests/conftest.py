"""테스트 공용 fixture — 호출을 기록하는 가짜 Elasticsearch 엔진"""

import asyncio


def make_docs(n: int, prefix: str = "doc") -> list[dict]:
    return [{"_id": f"{prefix}-{i}", "_source": {"n": i}} for i in range(n)]


def _page_response(hits: list[dict], scroll_id: str | None, total: int) -> dict:
    body = {
        "took": 1,
        "hits": {"total": {"value": total, "relation": "eq"}, "hits": hits},
    }
    if scroll_id is not None:
        body["_scroll_id"] = scroll_id
    return body


class FakeEngine:
    """
    search / scroll / bulk 를 흉내내는 가짜 엔진.

    scroll:
      - docs 모드: 요청한 size만큼 docs를 순서대로 잘라서 돌려줌 (실제 ES와 동일)
      - pages 모드: 미리 정한 페이지를 순서대로 돌려줌 (짧은 페이지, 빈 페이지 테스트용)
      - cursor=False 이면 _scroll_id를 돌려주지 않음

    bulk:
      - bulk_delays[i]: i번째 bulk 호출 지연 (초)
      - bulk_errors[i]: i번째 bulk 호출에서 던질 예외
      - item_errors=True 이면 errors=true + 첫 항목 실패 응답
    """

    def __init__(
        self,
        docs: list[dict] | None = None,
        pages: list[list[dict]] | None = None,
        cursor: bool = True,
        bulk_delays: dict[int, float] | None = None,
        bulk_errors: dict[int, Exception] | None = None,
        item_errors: bool = False,
        search_error: Exception | None = None,
        scroll_error: Exception | None = None,
    ):
        self.docs = docs or []
        self.pages = pages
        self.cursor = cursor
        self.bulk_delays = bulk_delays or {}
        self.bulk_errors = bulk_errors or {}
        self.item_errors = item_errors
        self.search_error = search_error
        self.scroll_error = scroll_error

        self.calls: list[tuple[str, dict]] = []
        self.bulk_calls: list[dict] = []
        self.in_flight = 0
        self.max_in_flight_seen = 0
        self.closed = False

        self._offset = 0
        self._page_no = 0
        self._size = 0

    # ── scroll ──
    def _next_page(self) -> dict:
        if self.pages is not None:
            hits = self.pages[self._page_no] if self._page_no < len(self.pages) else []
            total = sum(len(p) for p in self.pages)
        else:
            hits = self.docs[self._offset : self._offset + self._size]
            self._offset += len(hits)
            total = len(self.docs)
        self._page_no += 1
        scroll_id = f"sid-{self._page_no}" if self.cursor else None
        return _page_response(hits, scroll_id, total)

    async def search(self, **kwargs):
        self.calls.append(("search", kwargs))
        if self.search_error:
            raise self.search_error
        self._size = kwargs["size"]
        self._offset = 0
        self._page_no = 0
        return self._next_page()

    async def scroll(self, *, scroll_id, scroll):
        self.calls.append(("scroll", {"scroll_id": scroll_id, "scroll": scroll}))
        if self.scroll_error:
            raise self.scroll_error
        assert scroll_id == f"sid-{self._page_no}"
        return self._next_page()

    # ── bulk ──
    async def bulk(self, *, operations, **kwargs):
        call_no = len(self.bulk_calls)
        self.bulk_calls.append({"operations": operations, **kwargs})
        self.calls.append(("bulk", kwargs))

        self.in_flight += 1
        self.max_in_flight_seen = max(self.max_in_flight_seen, self.in_flight)
        try:
            await asyncio.sleep(self.bulk_delays.get(call_no, 0))
            if call_no in self.bulk_errors:
                raise self.bulk_errors[call_no]
        finally:
            self.in_flight -= 1

        items = []
        i = 0
        while i < len(operations):
            action, meta = next(iter(operations[i].items()))
            items.append({action: {"_id": meta.get("_id"), "status": 200}})
            i += 1 if action == "delete" else 2
        errors = False
        if self.item_errors and items:
            action = next(iter(items[0]))
            items[0][action] = {"status": 409, "error": {"type": "version_conflict_engine_exception"}}
            errors = True
        return {"took": 3, "errors": errors, "items": items, "batch": call_no}

    async def close(self):
        self.closed = True

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)


async def collect(aiterable) -> list:
    return [item async for item in aiterable]
