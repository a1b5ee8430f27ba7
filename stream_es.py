#!/usr/bin/env python3
# stream_es.py
"""
Elasticsearch scroll export / bulk load (CLI 엔트리포인트)

실행:
  # 검색 결과 전체를 JSONL로
  python stream_es.py export --index products --out data/hits.jsonl

  # match 쿼리, 최대 25건
  python stream_es.py export --index products --query '{"match": {"keyword": "ラーメン"}}' --limit 25

  # JSONL 액션 파일 적재 (1줄 = {"action": "index", "_id": 1, "payload": {...}})
  python stream_es.py load data/actions.jsonl --batch_size 500 --workers 16

  # 실패 배치를 건너뛰고 기록
  python stream_es.py load data/actions.jsonl --on_error isolate --failure_log logs/failed.jsonl

  # ES 9 클러스터 + fingerprint 인증
  python stream_es.py export --index products --out hits.jsonl \\
      --es_nodes https://es01:9200 https://es02:9200 \\
      --es_fingerprint "B1:2A:96:..." \\
      --es_username elastic --es_password changeme
"""

import argparse
import json
from pathlib import Path

from es_stream import Config, run_bulk_load, run_export


def _add_connection_args(parser: argparse.ArgumentParser):
    parser.add_argument("--index", default="keywords")
    parser.add_argument("--es_url", default="http://localhost:9200")

    cluster = parser.add_argument_group("ES 클러스터 연결 (ES 9+)")
    cluster.add_argument(
        "--es_nodes", nargs="+", default=None,
        help="클러스터 노드 URL 목록 (설정 시 --es_url 무시)",
    )
    cluster.add_argument(
        "--es_fingerprint", default=None,
        help="TLS 인증서 SHA-256 fingerprint (--es_nodes 사용 시 필수)",
    )
    cluster.add_argument("--es_username", default=None, help="Basic Auth 사용자명")
    cluster.add_argument("--es_password", default=None, help="Basic Auth 비밀번호")
    cluster.add_argument(
        "--es_api_key", default=None,
        help="API Key (--es_username/--es_password 대신 사용)",
    )
    parser.add_argument("--log_dir", type=Path, default=None, help="로그 디렉토리 (기본: logs/)")


def main():
    parser = argparse.ArgumentParser(
        description="Elasticsearch scroll export / bulk load (async streaming)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # ── export ──
    export = sub.add_parser("export", help="scroll 검색 → JSONL")
    _add_connection_args(export)
    export.add_argument("--out", type=Path, default=Path("data") / "hits.jsonl")
    export.add_argument(
        "--query", default=None,
        help='query DSL JSON (미지정 시 match_all). 예: \'{"match": {"keyword": "東京"}}\'',
    )
    export.add_argument("--limit", type=int, default=None, help="최대 히트 수 (미지정=전체)")
    export.add_argument("--scroll", default="10s", help="scroll context 유효 시간")
    export.add_argument("--scroll_batch_size", type=int, default=1000, help="limit 없을 때 페이지 크기")

    # ── load ──
    load = sub.add_parser("load", help="JSONL 액션 → bulk")
    _add_connection_args(load)
    load.add_argument("actions", type=Path, help="JSONL 액션 파일")
    load.add_argument("--batch_size", type=int, default=100)
    load.add_argument("--workers", type=int, default=8, help="동시 bulk 요청 수")
    load.add_argument(
        "--on_error", choices=["raise", "isolate"], default="raise",
        help="raise=첫 실패에서 중단, isolate=실패 배치 기록 후 계속",
    )
    load.add_argument("--refresh", default=None, help='bulk refresh 옵션 ("true", "wait_for")')
    load.add_argument(
        "--failure_log", type=Path, default=None,
        help="실패 배치 JSONL 경로 (미지정 시 logs/bulk_failures.jsonl)",
    )

    args = parser.parse_args()

    config_kwargs = {
        "index_name": args.index,
        "es_url": args.es_url,
        "es_nodes": args.es_nodes,
        "es_fingerprint": args.es_fingerprint,
        "es_username": args.es_username,
        "es_password": args.es_password,
        "es_api_key": args.es_api_key,
    }

    if args.command == "export":
        config = Config(
            scroll=args.scroll,
            scroll_batch_size=args.scroll_batch_size,
            **config_kwargs,
        )
        query = json.loads(args.query) if args.query else {"match_all": {}}
        params = {"index": args.index, "query": query}
        run_export(config, params, args.out, limit=args.limit, log_path=args.log_dir)
    else:
        config_kwargs.update(
            bulk_batch_size=args.batch_size,
            workers=args.workers,
            on_error=args.on_error,
            refresh=args.refresh,
        )
        if args.failure_log:
            config_kwargs["failure_log_path"] = args.failure_log
        run_bulk_load(Config(**config_kwargs), args.actions, log_path=args.log_dir)


if __name__ == "__main__":
    main()
