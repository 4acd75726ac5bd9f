"""쿼리 상태 값 객체 — 정렬 명세와 1회성 수정자 묶음.

Query state value objects — order specifications and the one-shot modifier
bundle a repository consumes before each terminal call.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import literal_column
from sqlalchemy.sql import operators
from sqlalchemy.sql.elements import UnaryExpression
from sqlalchemy.sql.selectable import CompoundSelect


class Direction(str, Enum):
    """정렬 방향 — Sort direction."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: "Direction | str") -> "Direction":
        """문자열을 정렬 방향으로 변환합니다.

        Normalize a direction string. "asc" and "ascending" (any case) map to
        ASC; every other value, including typos, maps to DESC.
        """
        if isinstance(value, Direction):
            return value
        # 알 수 없는 값은 DESC로 해석 — unknown values silently become DESC
        return cls.ASC if str(value).strip().lower() in ("asc", "ascending") else cls.DESC


class OrderSpec(BaseModel):
    """정렬 명세 — (컬럼, 방향) 쌍.

    Order specification: a (column, direction) pair compared by value.

    Attributes:
        column: 모델 속성 이름 (Model attribute name)
        direction: 정렬 방향 (Sort direction)
    """

    model_config = ConfigDict(frozen=True)

    column: str
    direction: Direction = Direction.ASC

    @field_validator("column", mode="before")
    @classmethod
    def _column_key(cls, value: Any) -> Any:
        # Article.title 같은 ORM 속성도 허용 — accept mapped attributes too
        return getattr(value, "key", value)

    @field_validator("direction", mode="before")
    @classmethod
    def _parse_direction(cls, value: Any) -> Direction:
        return Direction.parse(value)


class PendingModifiers(BaseModel):
    """다음 종료 호출 1회에만 적용되는 수정자 묶음.

    One-shot modifiers for the next terminal call. apply_pending_state()
    consumes the whole bundle and replaces it with a fresh one.

    Attributes:
        skip_global_scope: 전역 스코프 생략 여부 (Skip global_scope() once)
        skip_order_by: 기본 정렬 생략 여부 (Skip the default order once)
    """

    model_config = ConfigDict(frozen=True)

    skip_global_scope: bool = False
    skip_order_by: bool = False


def order_specs(query: Any) -> list[OrderSpec]:
    """SELECT 문의 ORDER BY 목록을 OrderSpec 목록으로 변환합니다.

    Read the raw ORDER BY list of a statement as OrderSpecs.
    Clauses that are not a plain (column, direction) pair are skipped.
    """
    specs: list[OrderSpec] = []
    for clause in query._order_by_clauses:
        element: Any = clause
        direction: Direction = Direction.ASC
        if isinstance(clause, UnaryExpression) and clause.modifier in (operators.asc_op, operators.desc_op):
            element = clause.element
            direction = Direction.DESC if clause.modifier is operators.desc_op else Direction.ASC
        key: str | None = getattr(element, "key", None)
        if key:
            specs.append(OrderSpec(column=key, direction=direction))
    return specs


def append_order(model: type, query: Any, order: OrderSpec) -> Any:
    """ORDER BY 목록에 없는 경우에만 정렬을 추가합니다.

    Append ``order`` to the statement's ORDER BY list unless an equal pair is
    already present. Union statements order by the selected column name
    instead of the mapped attribute.

    Returns:
        새 SELECT 문 또는 변경 없는 원본 (New statement, or ``query`` unchanged)
    """
    if order in order_specs(query):
        return query

    if isinstance(query, CompoundSelect):
        column: Any = literal_column(order.column)
    else:
        column = getattr(model, order.column)

    clause = column.asc() if order.direction is Direction.ASC else column.desc()
    return query.order_by(clause)
