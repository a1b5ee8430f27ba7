"""실패 배치 기록 (JSONL)"""

import asyncio
import json
import time
from pathlib import Path
from typing import Any

from .actions import BulkAction, coerce_action
from .errors import MalformedActionError
from .log import get_logger

logger = get_logger("failures")


def _describe(item: Any) -> dict:
    """기록용 요약: action 종류 + 메타데이터 (payload 제외)"""
    try:
        action = coerce_action(item)
    except MalformedActionError:
        return {"raw": repr(item)}
    return {"action": action.action, **action.metadata()}


class AsyncFailureLogger:
    """
    비동기 안전 실패 로거 (JSONL).

    파일 형식 (1줄 = 1 실패 배치):
        {"batch_id": 3, "count": 100, "error_type": "ConnectionError",
         "error_message": "...", "timestamp": "...", "actions": [{"action": "index", "_id": 1}, ...]}

    사용 예:
        dl = AsyncFailureLogger(Path("logs/bulk_failures.jsonl"))
        await dl.log_failure(batch_id=3, error=e, actions=batch)
    """

    def __init__(self, log_path: Path, enabled: bool = True):
        self.log_path = log_path
        self.enabled = enabled
        self._lock = asyncio.Lock()
        self._count = 0
        if enabled:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    async def log_failure(
        self,
        batch_id: int,
        error: BaseException | str,
        actions: list[BulkAction | dict] | None = None,
    ):
        if not self.enabled:
            return

        error_type = type(error).__name__ if isinstance(error, BaseException) else "str"
        error_msg = str(error)
        actions = actions or []

        record = {
            "batch_id": batch_id,
            "count": len(actions),
            "error_type": error_type,
            "error_message": error_msg,
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S"),
            "actions": [_describe(a) for a in actions],
        }
        async with self._lock:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
            self._count += 1

        logger.warning(f"[red]실패 기록[/red] batch_id={batch_id}: {error_msg}")

    @property
    def count(self) -> int:
        return self._count
