"""Elasticsearch 스트리밍 설정"""

from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError

ON_ERROR_POLICIES = ("raise", "isolate")


@dataclass
class Config:
    # Elasticsearch 연결
    es_url: str = "http://localhost:9200"
    es_nodes: list[str] | None = None       # 클러스터 노드 목록 (설정 시 es_url 무시)
    es_fingerprint: str | None = None       # ES 9 TLS 인증서 SHA-256 fingerprint (클러스터 시 필수)
    es_username: str | None = None          # Basic Auth 사용자명
    es_password: str | None = None          # Basic Auth 비밀번호
    es_api_key: str | None = None           # API Key (basic_auth 대신 사용 가능)

    # 인덱스
    index_name: str = "keywords"

    # Scroll 검색
    scroll: str = "10s"             # 서버측 scroll context 유효 시간
    scroll_batch_size: int = 1000   # limit 없을 때 페이지 크기
    max_page_size: int = 10         # limit 있을 때 페이지 크기 상한

    # Bulk 쓰기
    bulk_batch_size: int = 100      # 배치당 액션 수
    workers: int = 8                # 동시에 진행 중인 bulk 요청 수
    on_error: str = "raise"         # raise=스트림 종료, isolate=배치 단위 실패 보고
    refresh: str | None = None      # bulk refresh 옵션 ("true", "wait_for" 등)

    # 실패 로깅 (on_error="isolate" 일 때 실패 배치 기록)
    failure_log_path: Path = field(
        default_factory=lambda: Path("logs") / "bulk_failures.jsonl"
    )

    def __post_init__(self):
        if self.bulk_batch_size < 1:
            raise ConfigError(f"bulk_batch_size는 1 이상이어야 합니다: {self.bulk_batch_size}")
        if self.workers < 1:
            raise ConfigError(f"workers는 1 이상이어야 합니다: {self.workers}")
        if self.max_page_size < 1 or self.scroll_batch_size < 1:
            raise ConfigError("페이지 크기는 1 이상이어야 합니다.")
        if self.on_error not in ON_ERROR_POLICIES:
            raise ConfigError(
                f"on_error는 {ON_ERROR_POLICIES} 중 하나여야 합니다: {self.on_error!r}"
            )

    def bulk_options(self) -> dict:
        """bulk 호출에 병합할 요청 옵션. _index 없는 액션은 index_name으로 간다."""
        options: dict = {"index": self.index_name}
        if self.refresh is not None:
            options["refresh"] = self.refresh
        return options
