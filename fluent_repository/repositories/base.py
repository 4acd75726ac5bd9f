"""기본 쿼리 레포지토리 — 모든 레포지토리의 부모 클래스.

Base query repository — Parent class for all domain repositories.
Wraps one entity's Select statement and forwards every call it does not
define itself: terminal calls execute the statement and reset it, chaining
calls replace it and return the repository.

Usage:
    class ArticleRepository(BaseRepository[Article]):
        default_order = OrderSpec(column="created_at", direction="desc")

        def __init__(self, db: AsyncSession) -> None:
            super().__init__(db, Article)

    repo = ArticleRepository(db)
    articles = await repo.where(Article.views > 10).order_by("title").get()
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, delete as sa_delete, select, update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import WriteOnlyCollection

from fluent_repository.config import settings
from fluent_repository.database import Base
from fluent_repository.models.mixins import apply_visibility, is_soft_deletable
from fluent_repository.repositories.methods import (
    MethodKind,
    RepositoryMethod,
    as_select,
    is_many,
    primary_key,
    registry_for,
)
from fluent_repository.repositories.state import (
    Direction,
    OrderSpec,
    PendingModifiers,
    append_order,
    order_specs,
)
from fluent_repository.utils.exceptions import BadRequestError, MethodNotFoundError, NotFoundError
from fluent_repository.utils.pagination import Page, paginate

logger = logging.getLogger(__name__)

# 제네릭 타입 변수 — SQLAlchemy 모델을 나타냄
# Generic type variable representing a SQLAlchemy model
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """제네릭 쿼리 레포지토리.

    Generic query repository bound to one entity model and one session.
    Instances belong to a single unit of work and must not be shared
    between concurrently running tasks.

    Attributes:
        db: 비동기 데이터베이스 세션 (Async database session)
        model: SQLAlchemy 모델 클래스 (The SQLAlchemy model class)
        default_order: 종료 호출마다 적용할 기본 정렬 (Default order for terminal calls)
        per_page: 기본 페이지 크기 (Default page size for paginate())
    """

    default_order: OrderSpec | None = None
    per_page: int | None = None

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        """레포지토리를 초기화합니다.

        Initialize the repository with a session and a model class.

        Args:
            db: 이 작업 단위의 비동기 세션 (Async session of this unit of work)
            model: 이 레포지토리가 관리할 SQLAlchemy 모델 클래스
                   (SQLAlchemy model class this repository manages)
        """
        self.db: AsyncSession = db
        self.model: type[ModelType] = model
        if not self.per_page:
            self.per_page = settings.REPOSITORY_PER_PAGE

        self._methods = registry_for(model)
        self._handle: Any = None
        self._pending: PendingModifiers = PendingModifiers()
        self.reset_query()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} model={self.model.__name__}>"

    # ------------------------------------------------------------------
    # 쿼리 상태 — Query state
    # ------------------------------------------------------------------
    @property
    def query(self) -> Any:
        """현재 쿼리 핸들 — The current (unexecuted) statement."""
        return self._query()

    @property
    def orders(self) -> list[OrderSpec]:
        """현재 핸들의 ORDER BY 목록 — ORDER BY list of the current statement."""
        return order_specs(self._query())

    @property
    def pending(self) -> PendingModifiers:
        """다음 종료 호출에 적용될 1회성 수정자 — Modifiers for the next terminal call."""
        return self._pending

    def _query(self) -> Any:
        # 관계 컬렉션은 기본 SELECT로 변환 — relationship collections resolve to their base Select
        if isinstance(self._handle, WriteOnlyCollection):
            self._handle = self._handle.select()
        return self._handle

    def reset_query(self) -> "BaseRepository[ModelType]":
        """핸들을 새 SELECT 문으로 교체하고 1회성 수정자를 초기화합니다.

        Discard the current statement, start a fresh ``select(model)`` and
        clear the pending modifiers.
        """
        self._handle = select(self.model)
        self._pending = PendingModifiers()
        return self

    def new_query(self) -> "BaseRepository[ModelType]":
        """현재 체인을 버리고 새 쿼리로 시작합니다 — Alias of reset_query()."""
        return self.reset_query()

    def through(self, collection: WriteOnlyCollection) -> "BaseRepository[ModelType]":
        """관계 컬렉션을 핸들로 사용합니다.

        Rebase the handle onto a write-only relationship collection, e.g.
        ``repo.through(author.articles).where(...)``. The next forwarded call
        runs against the collection's base Select.
        """
        self._handle = collection
        return self

    def order_by(self, column: Any, direction: Direction | str = Direction.ASC) -> "BaseRepository[ModelType]":
        """정렬을 추가합니다 (중복 추가 방지).

        Append an ORDER BY unless the same (column, direction) pair is
        already on the statement, and skip the default order for the next
        terminal call.

        Args:
            column: 모델 속성 이름 또는 속성 (Attribute name or mapped attribute)
            direction: "asc"/"ascending" 이외의 값은 DESC로 처리
                       (Anything other than "asc"/"ascending" means DESC)
        """
        order = OrderSpec(column=column, direction=direction)
        self._handle = append_order(self.model, self._query(), order)
        return self.skip_order_by()

    def skip_global_scope(self) -> "BaseRepository[ModelType]":
        """다음 종료 호출 1회에 한해 global_scope()를 생략합니다."""
        self._pending = self._pending.model_copy(update={"skip_global_scope": True})
        return self

    def skip_order_by(self) -> "BaseRepository[ModelType]":
        """다음 종료 호출 1회에 한해 기본 정렬을 생략합니다."""
        self._pending = self._pending.model_copy(update={"skip_order_by": True})
        return self

    def global_scope(self, query: Select) -> Select:
        """전역 필터 확장 지점 — Override to add cross-cutting filters.

        Called once before each terminal call unless skip_global_scope() was
        requested for it. Must return the (new) statement.
        """
        return query

    def apply_pending_state(self) -> Any:
        """1회성 수정자를 적용하고 소비합니다.

        Apply the default order (unless skipped) and the global scope
        (unless skipped) to the handle. The modifier bundle is always
        replaced by a fresh one, whether or not its flags were set.

        Returns:
            수정자가 적용된 현재 핸들 (The updated handle)
        """
        pending, self._pending = self._pending, PendingModifiers()
        query = self._query()

        if not pending.skip_order_by and self.default_order is not None:
            query = append_order(self.model, query, self.default_order)
        if not pending.skip_global_scope:
            query = self.global_scope(query)

        self._handle = query
        return query

    # ------------------------------------------------------------------
    # 호출 전달 — Call forwarding
    # ------------------------------------------------------------------
    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)

        method: RepositoryMethod | None = self._methods.resolve(name)
        if method is None:
            raise MethodNotFoundError(type(self).__name__, name)

        if method.kind is MethodKind.GET:
            async def terminal(*args: Any, **kwargs: Any) -> Any:
                return await self._execute(method, *args, **kwargs)

            terminal.__name__ = name
            return terminal

        def chain(*args: Any, **kwargs: Any) -> "BaseRepository[ModelType]":
            self._handle = method.handler(self, self._query(), *args, **kwargs)
            return self

        chain.__name__ = name
        return chain

    async def _execute(self, method: RepositoryMethod, *args: Any, **kwargs: Any) -> Any:
        """종료 메서드 실행 — 수정자 적용, 실행, 초기화.

        Run a terminal method: apply pending state, hide trashed rows, execute,
        and always start a fresh statement afterwards (also when applying the
        modifiers or the database raises, so no filter leaks into the next call).
        """
        logger.debug("%s.%s() executing terminal call", type(self).__name__, method.name)
        try:
            query = apply_visibility(self.model, self.apply_pending_state())
            return await method.handler(self, query, *args, **kwargs)
        finally:
            self.reset_query()

    async def paginate(
        self,
        per_page: int | None = None,
        page: int = 1,
        columns: Iterable[str] | None = None,
    ) -> Page:
        """페이지네이션이 적용된 레코드 목록을 조회합니다.

        Retrieve one page of records. Pending modifiers apply as for any
        terminal call, and the statement is reset afterwards.

        Args:
            per_page: 페이지당 레코드 수, None이면 레포지토리 기본값
                      (Records per page; None uses the repository default)
            page: 현재 페이지 번호, 1부터 시작 (Current page number, 1-based)
            columns: 조회할 컬럼 이름, 지정 시 항목은 딕셔너리
                     (Column names to select; items become dicts)

        Returns:
            Page: 항목과 페이지 메타데이터 (Items and pagination metadata)

        Raises:
            BadRequestError: page 또는 per_page가 1 미만인 경우
        """
        if per_page is None:
            per_page = self.per_page
        column_names = list(columns or [])

        try:
            if page < 1 or per_page < 1:
                raise BadRequestError(f"Invalid pagination: page={page}, per_page={per_page}")

            query = apply_visibility(self.model, self.apply_pending_state())
            if column_names:
                query, entity = as_select(self.model, query)
                query = query.with_only_columns(*[getattr(entity, c) for c in column_names])

            items, total = await paginate(
                self.db,
                query,
                page=page,
                per_page=per_page,
                model=self.model,
                mappings=bool(column_names),
            )
        finally:
            self.reset_query()

        return Page.build(items, total, page, per_page)

    # ------------------------------------------------------------------
    # CRUD — 다단계 조율이 필요한 작업 (Multi-step operations)
    # ------------------------------------------------------------------
    async def create(self, attributes: dict[str, Any] | None = None) -> ModelType:
        """새 레코드를 생성합니다.

        Create a new record on a fresh statement; pending modifiers are
        dropped and the repository is reset afterwards.

        Args:
            attributes: 생성할 레코드의 데이터 딕셔너리
                        (Dictionary of data for the new record)

        Returns:
            ModelType: 생성된 레코드 (The created record)
        """
        self.new_query()
        db_obj: ModelType = self.model(**(attributes or {}))
        try:
            self.db.add(db_obj)
            await self.db.flush()
            await self.db.refresh(db_obj)
        finally:
            self.reset_query()
        return db_obj

    async def destroy(self, ids: Any) -> int:
        """기본키 목록에 해당하는 모든 행을 일괄 삭제합니다.

        Remove every row whose primary key is in ``ids`` (a single id or an
        iterable of ids) with one bulk statement; per-instance ORM hooks do
        not run. Soft-deletable models are stamped with ``deleted_at``.
        The current statement and pending modifiers are not touched.

        Returns:
            int: 영향받은 행 수 (Number of affected rows)
        """
        keys = set(ids) if is_many(ids) else {ids}
        if not keys:
            return 0

        pk = primary_key(self.model)
        if is_soft_deletable(self.model):
            statement = (
                sa_update(self.model)
                .where(pk.in_(list(keys)), self.model.deleted_at.is_(None))
                .values(deleted_at=datetime.now(timezone.utc))
            )
        else:
            statement = sa_delete(self.model).where(pk.in_(list(keys)))

        result = await self.db.execute(statement.execution_options(synchronize_session="evaluate"))
        logger.debug("%s.destroy() removed %d row(s)", type(self).__name__, result.rowcount)
        return result.rowcount

    async def restore(self, record_id: Any) -> bool:
        """소프트 삭제된 레코드를 복원합니다.

        Look up ``record_id`` including trashed rows (ignoring the current
        statement and global scope) and clear its ``deleted_at``.

        Raises:
            NotFoundError: 레코드가 없는 경우 (No row with that primary key)
            MethodNotFoundError: 소프트 삭제 모델이 아닌 경우 (Model is not soft-deletable)
        """
        if not is_soft_deletable(self.model):
            raise MethodNotFoundError(type(self).__name__, "restore")

        query: Select = select(self.model).where(primary_key(self.model) == record_id)
        db_obj = (await self.db.execute(query)).scalars().first()
        if db_obj is None:
            raise NotFoundError(f"{self.model.__name__} {record_id} not found")

        restored: bool = db_obj.restore()
        await self.db.flush()
        return restored

    async def force_delete(self, record_id: Any) -> None:
        """레코드를 영구 삭제합니다. 레코드가 없으면 아무 작업도 하지 않습니다.

        Permanently delete ``record_id``. The lookup goes through the
        repository (trashed rows included, global scope applied) and resets it.
        A missing row is not an error.
        """
        db_obj = await self.with_trashed().find(record_id)
        if db_obj is None:
            return None

        await self.db.delete(db_obj)
        await self.db.flush()
        logger.debug("%s.force_delete(%r) removed row", type(self).__name__, record_id)
        return None
