"""
패키지 통합 로깅 설정 (Rich console + plain-text file)

설계:
  - Console: RichHandler (colored, timestamps, markup 지원)
  - File:    FileHandler (plain text, Rich markup 자동 제거)
  - logger.info() 한 번 호출로 양쪽에 동시 출력

사용법:
    from es_stream.log import setup_logging, get_logger

    logger = get_logger("scroll")       # es_stream.scroll
    setup_logging(log_file=Path("export.log"))
    logger.info("[bold green]완료![/bold green]")
"""

import logging
from pathlib import Path

from rich.logging import RichHandler
from rich.text import Text

PKG = "es_stream"


class _PlainFormatter(logging.Formatter):
    """
    Rich markup 태그를 제거하는 FileHandler용 Formatter.

    예: "[bold green]완료![/bold green]" → "완료!"
    """

    def format(self, record: logging.LogRecord) -> str:
        original_msg = record.msg
        try:
            record.msg = Text.from_markup(str(record.msg)).plain
        except (ValueError, KeyError, AttributeError):
            pass  # markup 파싱 실패 시 원본 유지
        result = super().format(record)
        record.msg = original_msg
        return result


def setup_logging(
    log_file: Path | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    패키지 루트 로거에 핸들러를 설정.

    - RichHandler: 첫 호출 시 1회만 추가 (콘솔 출력)
    - FileHandler: log_file 인자가 있을 때마다 추가 (export/load별 별도 파일)

    Args:
        log_file: 로그 파일 경로 (None이면 콘솔만)
        level:    로그 레벨 (기본: INFO)

    Returns:
        패키지 루트 로거
    """
    logger = logging.getLogger(PKG)
    logger.setLevel(level)

    has_rich = any(isinstance(h, RichHandler) for h in logger.handlers)
    if not has_rich:
        console = RichHandler(
            rich_tracebacks=True,
            show_path=False,
            markup=True,
            log_time_format="[%H:%M:%S]",
        )
        console.setLevel(level)
        logger.addHandler(console)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(_PlainFormatter("%(asctime)s  %(name)s  %(message)s"))
        fh.setLevel(level)
        logger.addHandler(fh)

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """
    패키지 하위 로거 반환.

    예: get_logger("bulk") → logging.getLogger("es_stream.bulk")
    name을 생략하면 패키지 루트 로거.
    """
    if name:
        return logging.getLogger(f"{PKG}.{name}")
    return logging.getLogger(PKG)
