"""
es_stream — Elasticsearch scroll / bulk 비동기 스트리밍 패키지

Scroll 검색 (히트 단위 스트림):
    from es_stream import StreamClient, Config
    client = StreamClient.from_config(Config(index_name="products"))
    async for hit in client.stream({"query": {"match_all": {}}}, limit=25):
        print(hit["_id"])

Bulk 쓰기 (액션 스트림 → 배치별 응답 스트림):
    from es_stream import IndexAction, DeleteAction
    actions = [IndexAction(id="1", payload={"keyword": "ラーメン"}), DeleteAction(id="2")]
    async for response in client.bulk_stream(actions):
        print(response["errors"])

파이프라인 (동기 래퍼):
    from es_stream import run_export, run_bulk_load
    run_export(Config(), {"index": "products"}, Path("hits.jsonl"), limit=1000)
    run_bulk_load(Config(bulk_batch_size=500), Path("actions.jsonl"))
"""

from .actions import (
    BulkAction,
    CreateAction,
    DeleteAction,
    IndexAction,
    UpdateAction,
    action_from_dict,
    serialize_batch,
    to_operations,
)
from .bulk import BatchFailure, BulkBatcher, buffer_count, bulk_batch
from .client import StreamClient
from .config import Config
from .engine import RemoteSearchEngine, ResultPage, build_es_client
from .errors import ConfigError, MalformedActionError, StreamError
from .failures import AsyncFailureLogger
from .log import get_logger, setup_logging
from .pipeline import LoadStats, run_bulk_load, run_export
from .scroll import ScrollStreamer, SearchQuery, resolve_page_plan, stream_search

__all__ = [
    # Config / 연결
    "Config", "build_es_client", "RemoteSearchEngine", "ResultPage", "StreamClient",
    # 액션
    "BulkAction", "IndexAction", "CreateAction", "UpdateAction", "DeleteAction",
    "action_from_dict", "to_operations", "serialize_batch",
    # 스트림
    "ScrollStreamer", "SearchQuery", "resolve_page_plan", "stream_search",
    "BulkBatcher", "BatchFailure", "buffer_count", "bulk_batch",
    # 실패 / 예외
    "AsyncFailureLogger", "StreamError", "MalformedActionError", "ConfigError",
    # 로깅 / 파이프라인
    "setup_logging", "get_logger", "run_export", "run_bulk_load", "LoadStats",
]
