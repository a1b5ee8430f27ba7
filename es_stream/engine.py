"""원격 검색 엔진 인터페이스 + AsyncElasticsearch 생성 + 응답 페이지 파싱"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from elasticsearch import AsyncElasticsearch

from .config import Config
from .errors import ConfigError


class RemoteSearchEngine(Protocol):
    """
    스트리밍 코어가 사용하는 최소 원격 인터페이스.

    AsyncElasticsearch가 그대로 만족한다. 테스트에서는 같은 시그니처의
    가짜 엔진을 주입한다.
    """

    async def search(self, **kwargs: Any) -> Any: ...

    async def scroll(self, *, scroll_id: str, scroll: str) -> Any: ...

    async def bulk(self, *, operations: list[dict], **kwargs: Any) -> Any: ...


def build_es_client(config: Config) -> AsyncElasticsearch:
    """Config 기반으로 AsyncElasticsearch 클라이언트를 생성.

    - 단일 노드 (HTTP): es_url 사용 — fingerprint 불필요
    - 클러스터 (HTTPS): es_nodes 사용 — fingerprint + 인증 필수

    Examples:
        config = Config(es_url="http://localhost:9200")

        config = Config(
            es_nodes=["https://es01:9200", "https://es02:9200"],
            es_fingerprint="B1:2A:...:CF",
            es_username="elastic",
            es_password="changeme",
        )
    """
    hosts = config.es_nodes or [config.es_url]
    is_cluster = config.es_nodes is not None

    if is_cluster:
        if not config.es_fingerprint:
            raise ConfigError(
                "--es_fingerprint 필수: ES 9 클러스터 연결에는 "
                "TLS 인증서 fingerprint가 필요합니다."
            )
        if not config.es_api_key and not (config.es_username and config.es_password):
            raise ConfigError(
                "인증 정보 필수: --es_api_key 또는 "
                "--es_username + --es_password를 지정하세요."
            )

    kwargs: dict = {"hosts": hosts}

    # API Key 우선, 없으면 Basic Auth
    if config.es_api_key:
        kwargs["api_key"] = config.es_api_key
    elif config.es_username and config.es_password:
        kwargs["basic_auth"] = (config.es_username, config.es_password)

    if config.es_fingerprint:
        kwargs["ssl_assert_fingerprint"] = config.es_fingerprint
        kwargs["verify_certs"] = False  # fingerprint가 CA 체인 검증을 대체

    return AsyncElasticsearch(**kwargs)


def response_body(response: Any) -> Mapping[str, Any]:
    """ObjectApiResponse면 .body, dict면 그대로"""
    return getattr(response, "body", response)


@dataclass
class ResultPage:
    """search / scroll 응답 1회분"""

    scroll_id: str | None
    hits: list[dict] = field(default_factory=list)
    total: int | None = None

    @classmethod
    def from_response(cls, response: Any) -> ResultPage:
        body = response_body(response)
        hits_block = body.get("hits") or {}

        # ES 7+ 는 {"value": n, "relation": "eq"}, 이전 버전은 정수
        total = hits_block.get("total")
        if isinstance(total, Mapping):
            total = total.get("value")

        return cls(
            scroll_id=body.get("_scroll_id"),
            hits=list(hits_block.get("hits") or []),
            total=total,
        )

    def __len__(self) -> int:
        return len(self.hits)
