"""
액션 스트림 → 고정 크기 배치 → bulk 요청 → 응답 스트림

    actions ──buffer_count(N)──▶ [a1..aN] ──serialize_batch──▶ operations ──bulk──▶ response

  - 배치는 도착 순서대로 만들어지고, 만들어지는 즉시 전송 (최대 max_in_flight 개 동시)
  - 응답은 완료 순서와 무관하게 배치 생성 순서대로 내보냄
  - 소스가 끝나면 N개 미만의 마지막 배치도 전송

실패 정책 (on_error):
  - "raise":   첫 실패(생성 순서 기준)에서 원래 예외로 스트림 종료, 진행 중 배치는 취소
  - "isolate": 실패 배치는 BatchFailure로 내보내고 계속 진행

사용법:
    batcher = BulkBatcher(es, batch_size=100, options={"index": "products"})
    async for response in batcher(actions):
        print(response["took"], response["errors"])
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Callable, Iterable, TypeVar

from .actions import BulkAction, serialize_batch
from .config import ON_ERROR_POLICIES, Config
from .engine import RemoteSearchEngine, response_body
from .errors import ConfigError
from .failures import AsyncFailureLogger
from .log import get_logger

logger = get_logger("bulk")

T = TypeVar("T")

BufferFn = Callable[[AsyncIterable[Any]], AsyncIterable[list[Any]]]


@dataclass
class BatchFailure:
    """on_error="isolate" 일 때 응답 대신 내보내는 실패 배치"""

    batch_id: int
    actions: list[Any]
    error: BaseException


async def _aiter(source: AsyncIterable[T] | Iterable[T]) -> AsyncIterator[T]:
    if hasattr(source, "__aiter__"):
        async for item in source:
            yield item
    else:
        for item in source:
            yield item


async def buffer_count(
    source: AsyncIterable[T] | Iterable[T], size: int
) -> AsyncIterator[list[T]]:
    """size개씩 묶어서 내보냄. 소스 종료 시 남은 항목도 한 묶음으로."""
    if size < 1:
        raise ValueError(f"size는 1 이상이어야 합니다: {size}")

    batch: list[T] = []
    async for item in _aiter(source):
        batch.append(item)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


_SOURCE_DONE = object()


async def _pull(batches: AsyncIterator[list[Any]]) -> Any:
    """다음 배치 1개. 소스가 끝나면 _SOURCE_DONE."""
    try:
        return await batches.__anext__()
    except StopAsyncIteration:
        return _SOURCE_DONE


def count_item_errors(response: Any) -> int:
    """bulk 응답에서 항목 단위 실패 수"""
    body = response_body(response)
    if not body.get("errors"):
        return 0
    failed = 0
    for item in body.get("items") or []:
        for result in item.values():
            if isinstance(result, dict) and "error" in result:
                failed += 1
    return failed


class BulkBatcher:
    """
    액션 스트림을 bulk 응답 스트림으로 바꾸는 연산자.

    인스턴스 자체가 연산자: batcher(source) → AsyncIterator[response | BatchFailure]
    source는 BulkAction 또는 dict 액션의 (async) iterable.
    """

    def __init__(
        self,
        engine: RemoteSearchEngine,
        batch_size: int = 100,
        options: dict | None = None,
        max_in_flight: int = 8,
        on_error: str = "raise",
        failure_logger: AsyncFailureLogger | None = None,
        buffer: BufferFn | None = None,
    ):
        if batch_size < 1:
            raise ConfigError(f"batch_size는 1 이상이어야 합니다: {batch_size}")
        if max_in_flight < 1:
            raise ConfigError(f"max_in_flight는 1 이상이어야 합니다: {max_in_flight}")
        if on_error not in ON_ERROR_POLICIES:
            raise ConfigError(
                f"on_error는 {ON_ERROR_POLICIES} 중 하나여야 합니다: {on_error!r}"
            )
        self.engine = engine
        self.batch_size = batch_size
        self.options = dict(options or {})
        self.max_in_flight = max_in_flight
        self.on_error = on_error
        self.failure_logger = failure_logger
        self.buffer = buffer

    @classmethod
    def from_config(
        cls,
        engine: RemoteSearchEngine,
        config: Config,
        failure_logger: AsyncFailureLogger | None = None,
        buffer: BufferFn | None = None,
    ) -> BulkBatcher:
        return cls(
            engine,
            batch_size=config.bulk_batch_size,
            options=config.bulk_options(),
            max_in_flight=config.workers,
            on_error=config.on_error,
            failure_logger=failure_logger,
            buffer=buffer,
        )

    def __call__(
        self, source: AsyncIterable[BulkAction | dict] | Iterable[BulkAction | dict]
    ) -> AsyncIterator[Any]:
        return self._run(source)

    def _batches(self, source) -> AsyncIterable[list[Any]]:
        if self.buffer is not None:
            return self.buffer(_aiter(source))
        return buffer_count(source, self.batch_size)

    async def _run(self, source) -> AsyncIterator[Any]:
        batches = self._batches(source).__aiter__()
        pending: deque[tuple[int, list[Any], asyncio.Task]] = deque()
        pulling: asyncio.Task | None = None
        source_done = False
        batch_id = 0
        try:
            while pending or not source_done:
                # 창에 여유가 있을 때만 다음 배치를 당겨옴
                if pulling is None and not source_done and len(pending) < self.max_in_flight:
                    pulling = asyncio.ensure_future(_pull(batches))

                # 소스가 멈춰 있어도 맨 앞 배치가 끝나면 바로 내보냄
                waiters = [pending[0][2]] if pending else []
                if pulling is not None:
                    waiters.append(pulling)
                await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)

                if pending and pending[0][2].done():
                    yield await self._settle(*pending.popleft())
                    continue

                if pulling is not None and pulling.done():
                    done, pulling = pulling, None
                    batch = done.result()
                    if batch is _SOURCE_DONE:
                        source_done = True
                        continue
                    # 직렬화 실패(MalformedActionError)는 전송 전에 바로 전파
                    body = serialize_batch(batch)
                    task = asyncio.ensure_future(self._dispatch(batch_id, len(batch), body))
                    pending.append((batch_id, batch, task))
                    batch_id += 1
        finally:
            if pending:
                for _, _, task in pending:
                    task.cancel()
                await asyncio.gather(*(t for _, _, t in pending), return_exceptions=True)
                logger.debug(f"진행 중 배치 {len(pending)}개 취소")
            if pulling is not None:
                pulling.cancel()
                await asyncio.gather(pulling, return_exceptions=True)
            aclose = getattr(batches, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _dispatch(self, batch_id: int, count: int, body: list[Any]) -> Any:
        t0 = time.perf_counter()
        response = await self.engine.bulk(operations=body, **self.options)
        bulk_ms = (time.perf_counter() - t0) * 1000

        failed = count_item_errors(response)
        if failed:
            logger.warning(
                f"Batch {batch_id}: {count}건 중 [red]{failed}건[/red] 항목 실패 "
                f"(응답은 그대로 전달)"
            )
        else:
            logger.debug(f"Batch {batch_id}: {count}건 bulk={bulk_ms:.0f}ms")
        return response

    async def _settle(self, batch_id: int, batch: list[Any], task: asyncio.Task) -> Any:
        try:
            return await task
        except Exception as e:
            if self.on_error == "raise":
                raise
            logger.error(f"Batch {batch_id} 실패 ({len(batch)}건): {e}")
            if self.failure_logger is not None:
                await self.failure_logger.log_failure(batch_id, e, batch)
            return BatchFailure(batch_id=batch_id, actions=batch, error=e)


def bulk_batch(
    engine: RemoteSearchEngine,
    batch_size: int = 100,
    options: dict | None = None,
    **kwargs: Any,
) -> BulkBatcher:
    """BulkBatcher 생성 단축 함수: bulk_batch(es, 100)(actions)"""
    return BulkBatcher(engine, batch_size=batch_size, options=options, **kwargs)
