"""
Bulk 액션 타입 + bulk 요청 본문(operations) 직렬화

액션 1개 → operations 엔트리:
    IndexAction  / CreateAction / UpdateAction  → [{"<action>": {메타}}, payload]
    DeleteAction                                → [{"delete": {메타}}]

사용 예:
    actions = [
        IndexAction(id="1", payload={"keyword": "ラーメン"}),
        DeleteAction(id="2"),
    ]
    serialize_batch(actions)
    # [{"index": {"_id": "1"}}, {"keyword": "ラーメン"}, {"delete": {"_id": "2"}}]
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Iterable, Mapping

from .errors import MalformedActionError

# dataclass 필드명 → bulk 메타데이터 키
_WIRE_KEYS = {
    "index": "_index",
    "id": "_id",
    "doc_type": "_type",
    "if_seq_no": "if_seq_no",
    "if_primary_term": "if_primary_term",
    "retry_on_conflict": "retry_on_conflict",
}
_FIELD_NAMES = {wire: name for name, wire in _WIRE_KEYS.items()}


@dataclass(frozen=True, kw_only=True)
class BulkAction:
    """bulk 액션 공통 필드. 직접 쓰지 않고 하위 클래스를 사용."""

    action: ClassVar[str] = ""
    has_payload: ClassVar[bool] = False

    id: str | int | None = None
    doc_type: str | None = None
    index: str | None = None

    def metadata(self) -> dict[str, Any]:
        """action, payload를 제외한 메타데이터 (None 필드는 생략)"""
        meta = {}
        for f in fields(self):
            if f.name == "payload":
                continue
            value = getattr(self, f.name)
            if value is not None:
                meta[_WIRE_KEYS[f.name]] = value
        return meta


@dataclass(frozen=True, kw_only=True)
class IndexAction(BulkAction):
    action: ClassVar[str] = "index"
    has_payload: ClassVar[bool] = True

    payload: Any
    if_seq_no: int | None = None
    if_primary_term: int | None = None


@dataclass(frozen=True, kw_only=True)
class CreateAction(BulkAction):
    action: ClassVar[str] = "create"
    has_payload: ClassVar[bool] = True

    payload: Any


@dataclass(frozen=True, kw_only=True)
class UpdateAction(BulkAction):
    action: ClassVar[str] = "update"
    has_payload: ClassVar[bool] = True

    payload: Any  # {"doc": {...}} 또는 {"script": {...}}
    retry_on_conflict: int | None = None


@dataclass(frozen=True, kw_only=True)
class DeleteAction(BulkAction):
    action: ClassVar[str] = "delete"

    if_seq_no: int | None = None
    if_primary_term: int | None = None


ACTION_TYPES: dict[str, type[BulkAction]] = {
    cls.action: cls for cls in (IndexAction, CreateAction, UpdateAction, DeleteAction)
}


def action_from_dict(data: Mapping[str, Any]) -> BulkAction:
    """
    dict 형태의 액션을 타입이 있는 BulkAction으로 변환.

    입력 예:
        {"action": "index", "_index": "products", "_id": 1, "payload": {...}}
        {"action": "delete", "_id": 2}

    Raises:
        MalformedActionError: 알 수 없는 action, payload 누락/불필요,
                              해당 액션에 없는 메타데이터 키
    """
    name = data.get("action")
    cls = ACTION_TYPES.get(name)
    if cls is None:
        raise MalformedActionError(f"알 수 없는 bulk action: {name!r}", data)

    if cls.has_payload and data.get("payload") is None:
        raise MalformedActionError(f"'{name}' 액션에는 payload가 필요합니다.", data)
    if not cls.has_payload and "payload" in data:
        raise MalformedActionError(f"'{name}' 액션은 payload를 가질 수 없습니다.", data)

    allowed = {f.name for f in fields(cls)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key in ("action", "payload"):
            continue
        attr = _FIELD_NAMES.get(key)
        if attr is None or attr not in allowed:
            raise MalformedActionError(
                f"'{name}' 액션에 허용되지 않는 필드: {key!r}", data
            )
        kwargs[attr] = value
    if cls.has_payload:
        kwargs["payload"] = data["payload"]
    return cls(**kwargs)


def to_operations(action: BulkAction) -> list[Any]:
    """액션 1개 → operations 엔트리 (payload 액션은 2개, delete는 1개)"""
    if not isinstance(action, BulkAction) or not action.action:
        raise MalformedActionError(f"BulkAction이 아닙니다: {action!r}", action)

    entries: list[Any] = [{action.action: action.metadata()}]
    if action.has_payload:
        payload = getattr(action, "payload", None)
        if payload is None:
            raise MalformedActionError(
                f"'{action.action}' 액션에 payload가 없습니다.", action
            )
        entries.append(payload)
    return entries


def coerce_action(item: BulkAction | Mapping[str, Any]) -> BulkAction:
    if isinstance(item, BulkAction):
        return item
    if isinstance(item, Mapping):
        return action_from_dict(item)
    raise MalformedActionError(f"bulk 액션으로 변환할 수 없습니다: {item!r}", item)


def serialize_batch(actions: Iterable[BulkAction | Mapping[str, Any]]) -> list[Any]:
    """배치 → bulk operations (입력 순서 유지)"""
    body: list[Any] = []
    for item in actions:
        body.extend(to_operations(coerce_action(item)))
    return body
