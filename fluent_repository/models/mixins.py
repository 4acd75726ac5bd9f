"""모델 믹스인 — 소프트 삭제 및 쿼리 스코프 선언.

Model mixins — soft delete support and query scope declarations.

Soft delete:
    Models inheriting SoftDeleteMixin get a nullable ``deleted_at`` column.
    Repositories hide rows with a non-null ``deleted_at`` from every terminal
    call unless the statement carries the INCLUDE_TRASHED execution option
    (set by with_trashed() / only_trashed()).

Query scopes:
    Classmethods decorated with @query_scope receive the current Select and
    return a narrowed one. Repositories accept them as chaining calls.

Usage:
    class Article(SoftDeleteMixin, Base):
        ...

        @query_scope
        def published(cls, query: Select) -> Select:
            return query.where(cls.published.is_(True))
"""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Select
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.selectable import CompoundSelect

# 삭제된 행 포함 여부를 전달하는 execution option 키
# Execution option key that disables the soft delete filter for one statement
INCLUDE_TRASHED: str = "include_trashed"


class SoftDeleteMixin:
    """소프트 삭제 믹스인.

    Soft delete mixin adding a ``deleted_at`` timestamp column.
    A row is trashed when ``deleted_at`` is set; restore() clears it.
    """

    # 삭제 일시 — Soft delete timestamp (UTC), NULL while the row is live
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)

    @property
    def trashed(self) -> bool:
        """삭제된 상태인지 여부 — Whether the row is soft deleted."""
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self) -> bool:
        """소프트 삭제를 취소합니다 — Clear the soft delete timestamp."""
        self.deleted_at = None
        return True


def is_soft_deletable(model: type) -> bool:
    return isinstance(model, type) and issubclass(model, SoftDeleteMixin)


def apply_visibility(model: type, query: Any) -> Any:
    """삭제된 행을 숨기는 조건을 적용합니다.

    Hide soft deleted rows from ``query`` unless INCLUDE_TRASHED is set.
    Statements of non soft-deletable models and union statements are
    returned unchanged; union members must carry their own criteria.

    Args:
        model: 엔티티 모델 클래스 (Entity model class)
        query: 실행 직전의 SELECT 문 (Statement about to be executed)

    Returns:
        가시성 조건이 적용된 SELECT 문 (Statement with the visibility filter)
    """
    if not is_soft_deletable(model) or isinstance(query, CompoundSelect):
        return query
    if query.get_execution_options().get(INCLUDE_TRASHED, False):
        return query
    return query.where(model.deleted_at.is_(None))


def query_scope(func: Callable[..., Select]) -> classmethod:
    """모델 메서드를 레포지토리에서 체이닝 가능한 쿼리 스코프로 표시합니다.

    Mark a model method as a chainable query scope. The method receives the
    model class and the current statement (plus call arguments) and must
    return a new statement.
    """
    func.__query_scope__ = True  # type: ignore[attr-defined]
    return classmethod(func)


def declared_scopes(model: type) -> set[str]:
    """모델(및 상위 클래스)에 선언된 쿼리 스코프 이름 — Names of scopes declared on the model MRO."""
    names: set[str] = set()
    for klass in model.__mro__:
        for name, attr in vars(klass).items():
            if isinstance(attr, classmethod) and getattr(attr.__func__, "__query_scope__", False):
                names.add(name)
    return names
