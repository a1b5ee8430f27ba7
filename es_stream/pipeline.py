"""스트리밍 파이프라인 — Rich 로깅 + Progress Bar + 결과 요약

Export 모드:
    scroll 검색 → 히트를 JSONL 파일로 (1줄 = 1 히트)
Load 모드:
    JSONL 액션 파일 → BulkBatcher → bulk 응답 집계

Load 실패 정책은 Config.on_error를 따른다.
  raise:   첫 실패에서 중단 (이미 반영된 배치는 그대로)
  isolate: 실패 배치를 failure_log_path에 JSONL로 기록하고 계속
"""

import asyncio
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .bulk import BatchFailure, count_item_errors
from .client import StreamClient
from .config import Config
from .engine import response_body
from .failures import AsyncFailureLogger
from .log import get_logger, setup_logging

console = Console()
logger = get_logger("pipeline")


def _create_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        "[progress.description]{task.description}",
        BarColumn(bar_width=30),
        MofNCompleteColumn(),
        TextColumn("•"),
        TextColumn("[green]{task.fields[throughput]}[/]"),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    )


def _summary_table(title: str, rows: list[tuple[str, str]]) -> Table:
    """결과 요약 Rich Table"""
    table = Table(title=title, show_header=False, border_style="dim")
    table.add_column("항목", style="bold")
    table.add_column("값", justify="right", style="cyan")
    for label, value in rows:
        table.add_row(label, value)
    return table


def _log_file(log_path: Path | None, prefix: str) -> Path:
    log_path = log_path or Path("logs")
    return log_path / f"{prefix}_{time.strftime('%Y%m%d_%H%M%S')}.log"


# ============================================================
# Export — scroll → JSONL
# ============================================================
async def _run_export(
    config: Config,
    params: dict[str, Any],
    output_path: Path,
    limit: int | None = None,
    client: StreamClient | None = None,
) -> int:
    client = client or StreamClient.from_config(config)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"[bold]\\[1/2] scroll 검색[/bold] index={params.get('index', config.index_name)} limit={limit}")
    written = 0
    start = time.perf_counter()
    try:
        progress = _create_progress()
        with progress, open(output_path, "w", encoding="utf-8") as out:
            task_id = progress.add_task("Export", total=limit, throughput="--")
            async for hit in client.stream(params, limit=limit):
                out.write(json.dumps(hit, ensure_ascii=False) + "\n")
                written += 1
                elapsed = time.perf_counter() - start
                progress.update(
                    task_id,
                    advance=1,
                    throughput=f"{written / elapsed:,.0f} hits/s" if elapsed > 0 else "--",
                )
    finally:
        await client.close()

    wall = time.perf_counter() - start
    logger.info("[bold]\\[2/2] 완료[/bold]")
    rows = [
        ("히트 수", f"{written:,}"),
        ("결과 파일", str(output_path)),
        ("Wall time", f"{wall:.1f}초"),
    ]
    console.print(_summary_table("Export 요약", rows))
    for label, value in rows:
        logger.info(f"{label}: {value}")
    return written


# ============================================================
# Load — JSONL 액션 → bulk
# ============================================================
@dataclass
class LoadStats:
    batches: int = 0
    items: int = 0
    item_errors: int = 0
    failed_batches: int = 0
    failed_items: int = 0
    wall_sec: float = 0.0

    def rows(self, failure_log: Path | None = None) -> list[tuple[str, str]]:
        """요약 테이블 행. 실패가 있으면 추가 행 포함."""
        rows = [
            ("배치 수", f"{self.batches:,}"),
            ("액션 수", f"{self.items:,}"),
            ("Wall time", f"{self.wall_sec:.1f}초"),
        ]
        if self.wall_sec > 0:
            rows.append(("처리량", f"{self.items / self.wall_sec:,.0f} actions/sec"))
        if self.item_errors:
            rows.append(("항목 실패", f"[red]{self.item_errors:,}건[/]"))
        if self.failed_batches:
            rows.append(("실패 배치", f"[red]{self.failed_batches}배치 ({self.failed_items:,}건)[/]"))
            if failure_log is not None:
                rows.append(("실패 기록", str(failure_log)))
        return rows


def _read_actions(path: Path) -> Iterator[dict]:
    """JSONL 액션 파일을 한 줄씩 읽음 (빈 줄 무시)"""
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                yield json.loads(line)


def _count_lines(path: Path) -> int:
    with open(path, "r", encoding="utf-8") as f:
        return sum(1 for line in f if line.strip())


async def _run_bulk_load(
    config: Config,
    actions_path: Path,
    client: StreamClient | None = None,
) -> LoadStats:
    client = client or StreamClient.from_config(config)

    logger.info("[bold]\\[1/3] 액션 파일 확인[/bold]")
    total = _count_lines(actions_path)
    logger.info(f"{actions_path.name} → [cyan]{total:,}[/cyan]건")

    logger.info(
        f"[bold]\\[2/3] bulk 스트림[/bold] "
        f"(batch={config.bulk_batch_size}, workers={config.workers}, on_error={config.on_error})"
    )
    failure_logger = None
    if config.on_error == "isolate":
        failure_logger = AsyncFailureLogger(config.failure_log_path)

    stats = LoadStats()
    start = time.perf_counter()
    try:
        progress = _create_progress()
        with progress:
            task_id = progress.add_task("Bulk", total=total, throughput="--")
            async for result in client.bulk_stream(
                _read_actions(actions_path), failure_logger=failure_logger
            ):
                stats.batches += 1
                if isinstance(result, BatchFailure):
                    stats.failed_batches += 1
                    stats.failed_items += len(result.actions)
                    count = len(result.actions)
                else:
                    # 응답 items 수 = 배치 액션 수
                    count = len(response_body(result).get("items") or [])
                    stats.items += count
                    stats.item_errors += count_item_errors(result)
                elapsed = time.perf_counter() - start
                progress.update(
                    task_id,
                    advance=count,
                    throughput=f"{stats.items / elapsed:,.0f} actions/s" if elapsed > 0 else "--",
                )
    finally:
        stats.wall_sec = time.perf_counter() - start
        await client.close()

    logger.info("[bold]\\[3/3] 완료[/bold]")
    rows = stats.rows(failure_logger.log_path if failure_logger else None)
    console.print(_summary_table("Load 요약", rows))
    for label, value in rows:
        logger.info(f"{label}: {value}")
    return stats


# ============================================================
# Public API — 동기 래퍼
# ============================================================
def run_export(
    config: Config,
    params: dict[str, Any],
    output_path: Path,
    limit: int | None = None,
    log_path: Path | None = None,
) -> int:
    """scroll 검색 결과를 JSONL로 내보냄. 기록한 히트 수 반환."""
    log_file = _log_file(log_path, "es_export")
    setup_logging(log_file=log_file)
    logger.info(f"Log → {log_file}")
    console.print(Panel.fit("[bold]Export 모드[/] — scroll → JSONL", border_style="blue"))
    return asyncio.run(_run_export(config, params, output_path, limit))


def run_bulk_load(
    config: Config,
    actions_path: Path,
    log_path: Path | None = None,
) -> LoadStats:
    """JSONL 액션 파일을 bulk 스트림으로 적재."""
    log_file = _log_file(log_path, "es_load")
    setup_logging(log_file=log_file)
    logger.info(f"Log → {log_file}")
    console.print(Panel.fit("[bold]Load 모드[/] — JSONL 액션 → bulk", border_style="green"))
    return asyncio.run(_run_bulk_load(config, actions_path))
