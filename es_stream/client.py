"""ScrollStreamer + BulkBatcher를 하나의 엔진에 묶은 클라이언트"""

from __future__ import annotations

from typing import Any, AsyncIterable, AsyncIterator, Iterable

from .actions import BulkAction
from .bulk import BufferFn, BulkBatcher
from .config import Config
from .engine import RemoteSearchEngine, build_es_client
from .failures import AsyncFailureLogger
from .scroll import ScrollStreamer, SearchQuery


class StreamClient:
    """
    Elasticsearch 스트리밍 클라이언트.

      - stream():      scroll 검색 → 히트 스트림
      - bulk_stream(): 액션 스트림 → bulk 응답 스트림

    사용법:
        client = StreamClient.from_config(Config(index_name="products"))
        async for hit in client.stream({"query": {"match_all": {}}}, limit=25):
            ...
        async for response in client.bulk_stream(actions):
            ...
        await client.close()
    """

    def __init__(self, es_url: str, index_name: str):
        self.config = Config(es_url=es_url, index_name=index_name)
        self.engine: RemoteSearchEngine = build_es_client(self.config)
        self._owns_engine = True

    @classmethod
    def from_config(cls, config: Config) -> StreamClient:
        """Config 객체로 클러스터 연결이 포함된 StreamClient 생성."""
        return cls.with_engine(build_es_client(config), config, owns_engine=True)

    @classmethod
    def with_engine(
        cls,
        engine: RemoteSearchEngine,
        config: Config | None = None,
        owns_engine: bool = False,
    ) -> StreamClient:
        """외부에서 만든 엔진 사용. owns_engine=False면 close()가 엔진을 닫지 않음."""
        instance = cls.__new__(cls)
        instance.config = config or Config()
        instance.engine = engine
        instance._owns_engine = owns_engine
        return instance

    # ================================================================
    # 검색
    # ================================================================

    def stream(
        self,
        params: dict[str, Any] | None = None,
        limit: int | None = None,
        size: int | None = None,
    ) -> AsyncIterator[dict]:
        """params에 index가 없으면 config.index_name 사용"""
        params = dict(params or {})
        params.setdefault("index", self.config.index_name)
        streamer = ScrollStreamer(
            self.engine,
            scroll=self.config.scroll,
            default_size=self.config.scroll_batch_size,
            max_page_size=self.config.max_page_size,
        )
        return streamer.stream(SearchQuery(params=params, limit=limit, size=size))

    # ================================================================
    # Bulk
    # ================================================================

    def bulk_batcher(
        self,
        failure_logger: AsyncFailureLogger | None = None,
        buffer: BufferFn | None = None,
    ) -> BulkBatcher:
        return BulkBatcher.from_config(
            self.engine, self.config, failure_logger=failure_logger, buffer=buffer
        )

    def bulk_stream(
        self,
        source: AsyncIterable[BulkAction | dict] | Iterable[BulkAction | dict],
        failure_logger: AsyncFailureLogger | None = None,
        buffer: BufferFn | None = None,
    ) -> AsyncIterator[Any]:
        return self.bulk_batcher(failure_logger, buffer)(source)

    async def close(self):
        if self._owns_engine:
            await self.engine.close()
