"""
Scroll 검색 → 히트 단위 비동기 스트림

    search(size, scroll) → scroll(scroll_id) → scroll(scroll_id) → ...
    각 페이지의 hits를 순서대로 펼쳐서 하나의 AsyncIterator로 내보냄.

종료 조건:
  - scroll_id 없음, 또는 페이지가 page_size보다 짧음 (빈 페이지 포함)
  - limit 지정 시: ceil(limit / page_size) 페이지 도달, 마지막은 limit 건으로 절단

사용법:
    streamer = ScrollStreamer(es)
    async for hit in streamer.stream(SearchQuery({"index": "products"}, limit=25)):
        print(hit["_id"])
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from .engine import RemoteSearchEngine, ResultPage
from .log import get_logger

logger = get_logger("scroll")

DEFAULT_SCROLL = "10s"
DEFAULT_PAGE_SIZE = 1000
MAX_PAGE_SIZE = 10


@dataclass
class SearchQuery:
    """search 호출 인자 + 페이지/총량 제한"""

    params: dict[str, Any] = field(default_factory=dict)  # index, query, sort, _source ...
    limit: int | None = None    # 총 히트 수 상한 (None = 끝까지)
    size: int | None = None     # 페이지 크기 (None = 기본값)


def resolve_page_plan(
    limit: int | None,
    size: int | None = None,
    default_size: int = DEFAULT_PAGE_SIZE,
    max_page_size: int = MAX_PAGE_SIZE,
) -> tuple[int, int | None]:
    """
    (page_size, max_pages) 결정.

    limit 있음: page_size = min(limit, size or max_page_size),
                max_pages = ceil(limit / page_size)
    limit 없음: page_size = size or default_size, max_pages = None

    limit=0 이면 (0, 0): 원격 호출 없이 빈 스트림.
    size는 지정할 경우 1 이상.
    """
    if size is not None and size < 1:
        raise ValueError(f"size는 1 이상이어야 합니다: {size}")
    if limit is not None:
        if limit < 0:
            raise ValueError(f"limit은 0 이상이어야 합니다: {limit}")
        if limit == 0:
            return 0, 0
        page_size = min(limit, size or max_page_size)
        return page_size, math.ceil(limit / page_size)

    return size or default_size, None


class ScrollStreamer:
    """
    scroll API를 히트 단위 스트림으로 변환.

    페이지 k+1은 페이지 k의 응답(scroll_id)을 받은 뒤에만 요청한다.
    소비자가 중간에 멈추면 (break / aclose / 태스크 취소) 이후 호출은 없다.
    원격 예외는 감싸지 않고 그대로 전파.
    """

    def __init__(
        self,
        engine: RemoteSearchEngine,
        scroll: str = DEFAULT_SCROLL,
        default_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        self.engine = engine
        self.scroll = scroll
        self.default_size = default_size
        self.max_page_size = max_page_size

    async def stream(self, query: SearchQuery) -> AsyncIterator[dict]:
        # size / scroll 은 여기서 결정하므로 params에서 제거
        params = dict(query.params)
        params.pop("scroll", None)
        size = params.pop("size", None)
        if query.size is not None:
            size = query.size

        page_size, max_pages = resolve_page_plan(
            query.limit, size, self.default_size, self.max_page_size
        )
        if max_pages == 0:
            return

        emitted = 0
        pages = 0
        response = await self.engine.search(
            **params, size=page_size, scroll=self.scroll
        )
        try:
            while True:
                page = ResultPage.from_response(response)
                pages += 1
                if pages == 1:
                    logger.debug(
                        f"scroll 시작: total={page.total} page_size={page_size} "
                        f"max_pages={max_pages}"
                    )
                logger.debug(f"page {pages}: {len(page)}건")

                for hit in page.hits:
                    if query.limit is not None and emitted >= query.limit:
                        break
                    yield hit
                    emitted += 1

                if not self._should_continue(page, page_size, pages, max_pages):
                    break
                response = await self.engine.scroll(
                    scroll_id=page.scroll_id, scroll=self.scroll
                )
        finally:
            logger.debug(f"scroll 종료: pages={pages} hits={emitted}")

    @staticmethod
    def _should_continue(
        page: ResultPage, page_size: int, pages: int, max_pages: int | None
    ) -> bool:
        if not page.scroll_id or len(page) < page_size:
            return False
        return max_pages is None or pages < max_pages


def stream_search(
    engine: RemoteSearchEngine,
    params: dict[str, Any],
    limit: int | None = None,
    size: int | None = None,
    scroll: str = DEFAULT_SCROLL,
) -> AsyncIterator[dict]:
    """ScrollStreamer 한 번 쓰고 버리는 경우의 단축 함수"""
    streamer = ScrollStreamer(engine, scroll=scroll)
    return streamer.stream(SearchQuery(params=dict(params), limit=limit, size=size))
