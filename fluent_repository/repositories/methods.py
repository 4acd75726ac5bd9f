"""레포지토리 메서드 레지스트리 — 호출 이름 분류 및 핸들러.

Repository method registry — classifies forwarded call names and maps each
accepted name to its handler.

Kinds:
    - GET: 쿼리를 실행하고 값을 반환하는 종료 메서드 (terminal, async handler)
    - DYNAMIC: 항상 체이닝으로 처리되는 메서드 (known chaining passthroughs)
    - PROBE: 엔티티/빌더 기능 조회로 허용된 체이닝 메서드
             (chaining names found on the entity's query scopes, on a fresh
             Select, on a union statement, or on a relationship's base query)

Every handler takes ``(repository, query, *args, **kwargs)``. GET handlers are
coroutines returning a result; chaining handlers return the next handle.
The registry is built once per entity model and cached.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import TYPE_CHECKING, Any, NamedTuple

from sqlalchemy import Select, delete as sa_delete, func, update as sa_update
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import select
from sqlalchemy.orm import InstrumentedAttribute, aliased
from sqlalchemy.orm.util import AliasedClass
from sqlalchemy.sql.selectable import CompoundSelect

from fluent_repository.models.mixins import INCLUDE_TRASHED, declared_scopes, is_soft_deletable
from fluent_repository.utils.exceptions import NotFoundError

if TYPE_CHECKING:
    from fluent_repository.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class MethodKind(str, Enum):
    """호출 분류 — Call classification."""

    GET = "get"
    DYNAMIC = "dynamic"
    PROBE = "probe"


class RepositoryMethod(NamedTuple):
    """등록된 메서드 — A registered method name with its kind and handler."""

    name: str
    kind: MethodKind
    handler: Handler


# ---------------------------------------------------------------------------
# 내부 헬퍼 — Internal helpers
# ---------------------------------------------------------------------------
def primary_key(model: type) -> Any:
    """기본키 매핑 속성 — The mapped attribute of the primary key column.

    Only single-column primary keys are supported. The mapped attribute (not
    the Table column) is returned so that ORM-enabled UPDATE/DELETE can
    evaluate criteria built from it against loaded entities.
    """
    mapper = sa_inspect(model)
    return getattr(model, mapper.get_property_by_column(mapper.primary_key[0]).key)


def _column(entity: Any, column: Any) -> Any:
    if isinstance(column, str):
        return getattr(entity, column)
    # 별칭 엔티티에는 같은 이름의 속성으로 대응 — adapt mapped attributes to an aliased entity
    if isinstance(entity, AliasedClass) and isinstance(column, InstrumentedAttribute):
        return getattr(entity, column.key)
    return column


def as_select(model: type, query: Any) -> tuple[Select, Any]:
    """UNION 문을 필터 가능한 SELECT로 변환합니다.

    A CompoundSelect has no where()/with_only_columns(); wrap it as a
    subquery and select an aliased entity from it. Returns the statement and
    the entity whose attributes address its columns. Plain Selects are
    returned as they are, with the model itself.
    """
    if isinstance(query, CompoundSelect):
        entity = aliased(model, query.subquery())
        return select(entity), entity
    return query, model


def _entities(model: type, query: Any) -> Any:
    # UNION 결과를 엔티티로 로드 — load union rows as entities
    if isinstance(query, CompoundSelect):
        return select(model).from_statement(query)
    return query


def is_many(value: Any) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes))


async def _fetch_all(repo: "BaseRepository", query: Any) -> list[Any]:
    result = await repo.db.execute(_entities(repo.model, query))
    return list(result.scalars().all())


async def _fetch_first(repo: "BaseRepository", query: Any) -> Any:
    result = await repo.db.execute(_entities(repo.model, query.limit(1)))
    return result.scalars().first()


async def _persist(repo: "BaseRepository", entity: Any) -> Any:
    repo.db.add(entity)
    await repo.db.flush()
    await repo.db.refresh(entity)
    return entity


def _not_found(model: type, ident: Any = None) -> NotFoundError:
    if ident is None:
        return NotFoundError(f"No {model.__name__} matches the query")
    return NotFoundError(f"{model.__name__} {ident} not found")


# ---------------------------------------------------------------------------
# 종료 메서드 — Terminal (GET) handlers
# ---------------------------------------------------------------------------
async def _get(repo: "BaseRepository", query: Any, *columns: Any) -> list[Any]:
    """엔티티 목록을 조회합니다. 컬럼 지정 시 행 딕셔너리 목록을 반환합니다."""
    if not columns:
        return await _fetch_all(repo, query)
    query, entity = as_select(repo.model, query)
    narrowed = query.with_only_columns(*[_column(entity, c) for c in columns])
    result = await repo.db.execute(narrowed)
    return [dict(row) for row in result.mappings().all()]


async def _pluck(repo: "BaseRepository", query: Any, column: Any) -> list[Any]:
    query, entity = as_select(repo.model, query)
    result = await repo.db.execute(query.with_only_columns(_column(entity, column)))
    return list(result.scalars().all())


async def _find(repo: "BaseRepository", query: Any, ident: Any) -> Any:
    """기본키로 조회합니다. 여러 ID를 전달하면 목록을 반환합니다."""
    query, entity = as_select(repo.model, query)
    pk = _column(entity, primary_key(repo.model))
    if is_many(ident):
        return await _fetch_all(repo, query.where(pk.in_(list(ident))))
    return await _fetch_first(repo, query.where(pk == ident))


async def _find_or_new(repo: "BaseRepository", query: Any, ident: Any) -> Any:
    found = await _find(repo, query, ident)
    return found if found is not None else repo.model()


async def _find_or_fail(repo: "BaseRepository", query: Any, ident: Any) -> Any:
    found = await _find(repo, query, ident)
    if is_many(ident):
        if len(found) != len(set(ident)):
            raise _not_found(repo.model, list(ident))
        return found
    if found is None:
        raise _not_found(repo.model, ident)
    return found


async def _first(repo: "BaseRepository", query: Any) -> Any:
    return await _fetch_first(repo, query)


async def _first_or_fail(repo: "BaseRepository", query: Any) -> Any:
    found = await _fetch_first(repo, query)
    if found is None:
        raise _not_found(repo.model)
    return found


async def _first_or_new(
    repo: "BaseRepository",
    query: Any,
    attributes: dict[str, Any],
    values: dict[str, Any] | None = None,
) -> Any:
    """조건에 맞는 첫 레코드 또는 저장되지 않은 새 엔티티를 반환합니다."""
    query, _ = as_select(repo.model, query)
    found = await _fetch_first(repo, query.filter_by(**attributes))
    if found is not None:
        return found
    return repo.model(**{**attributes, **(values or {})})


async def _first_or_create(
    repo: "BaseRepository",
    query: Any,
    attributes: dict[str, Any],
    values: dict[str, Any] | None = None,
) -> Any:
    query, _ = as_select(repo.model, query)
    found = await _fetch_first(repo, query.filter_by(**attributes))
    if found is not None:
        return found
    return await _persist(repo, repo.model(**{**attributes, **(values or {})}))


async def _update_or_create(
    repo: "BaseRepository",
    query: Any,
    attributes: dict[str, Any],
    values: dict[str, Any] | None = None,
) -> Any:
    """조건에 맞는 레코드를 갱신하거나 새로 생성합니다.

    Update the first record matching ``attributes`` with ``values``, or create
    one from both dictionaries.
    """
    query, _ = as_select(repo.model, query)
    found = await _fetch_first(repo, query.filter_by(**attributes))
    if found is None:
        return await _persist(repo, repo.model(**{**attributes, **(values or {})}))
    for field, value in (values or {}).items():
        setattr(found, field, value)
    await repo.db.flush()
    await repo.db.refresh(found)
    return found


async def _matching_keys(repo: "BaseRepository", query: Any) -> list[Any]:
    """조건에 맞는 행의 기본키 목록 — Primary keys of the rows ``query`` matches."""
    query, entity = as_select(repo.model, query)
    result = await repo.db.execute(query.with_only_columns(_column(entity, primary_key(repo.model))))
    return list(result.scalars().all())


async def _update(repo: "BaseRepository", query: Any, values: dict[str, Any]) -> int:
    """조건에 맞는 모든 행을 일괄 갱신하고 영향받은 행 수를 반환합니다.

    Matching keys are selected first, then updated by key, so that loaded
    entities can be synchronized in Python ("evaluate").
    """
    keys = await _matching_keys(repo, query)
    if not keys:
        return 0
    statement = (
        sa_update(repo.model)
        .where(primary_key(repo.model).in_(keys))
        .values(**values)
        .execution_options(synchronize_session="evaluate")
    )
    result = await repo.db.execute(statement)
    return result.rowcount


async def _delete(repo: "BaseRepository", query: Any) -> int:
    """조건에 맞는 모든 행을 삭제합니다. 소프트 삭제 모델은 deleted_at만 기록합니다."""
    if is_soft_deletable(repo.model):
        return await _update(repo, query, {"deleted_at": datetime.now(timezone.utc)})
    keys = await _matching_keys(repo, query)
    if not keys:
        return 0
    statement = (
        sa_delete(repo.model)
        .where(primary_key(repo.model).in_(keys))
        .execution_options(synchronize_session="evaluate")
    )
    result = await repo.db.execute(statement)
    return result.rowcount


async def _save(repo: "BaseRepository", query: Any, entity: Any) -> Any:
    return await _persist(repo, entity)


async def _count(repo: "BaseRepository", query: Any) -> int:
    # 서브쿼리로 감싸서 COUNT 실행 — Count total via subquery
    statement = select(func.count()).select_from(query.order_by(None).subquery())
    return (await repo.db.execute(statement)).scalar() or 0


async def _exists(repo: "BaseRepository", query: Any) -> bool:
    result = await repo.db.execute(query.limit(1))
    return result.first() is not None


def _aggregate(function: Callable[[Any], Any]) -> Callable[..., Awaitable[Any]]:
    async def handler(repo: "BaseRepository", query: Any, column: Any) -> Any:
        query, entity = as_select(repo.model, query)
        statement = query.with_only_columns(function(_column(entity, column))).order_by(None)
        return (await repo.db.execute(statement)).scalar()

    return handler


async def _value(repo: "BaseRepository", query: Any, column: Any) -> Any:
    query, entity = as_select(repo.model, query)
    result = await repo.db.execute(query.with_only_columns(_column(entity, column)).limit(1))
    return result.scalars().first()


GET_METHODS: dict[str, Handler] = {
    "get": _get,
    "all": _get,
    "pluck": _pluck,
    "find": _find,
    "find_or_new": _find_or_new,
    "find_or_fail": _find_or_fail,
    "first": _first,
    "first_or_new": _first_or_new,
    "first_or_create": _first_or_create,
    "first_or_fail": _first_or_fail,
    "update_or_create": _update_or_create,
    "update": _update,
    "save": _save,
    "delete": _delete,
    "count": _count,
    "exists": _exists,
    "sum": _aggregate(func.sum),
    "max": _aggregate(func.max),
    "min": _aggregate(func.min),
    "avg": _aggregate(func.avg),
    "value": _value,
}


# ---------------------------------------------------------------------------
# 고정 체이닝 메서드 — Known chaining (DYNAMIC) handlers
# ---------------------------------------------------------------------------
def _where_not_null(repo: "BaseRepository", query: Select, column: Any) -> Select:
    return query.where(_column(repo.model, column).is_not(None))


def _with_trashed(repo: "BaseRepository", query: Select) -> Select:
    return query.execution_options(**{INCLUDE_TRASHED: True})


def _only_trashed(repo: "BaseRepository", query: Select) -> Select:
    return _with_trashed(repo, query).where(repo.model.deleted_at.is_not(None))


def _without_trashed(repo: "BaseRepository", query: Select) -> Select:
    return query.execution_options(**{INCLUDE_TRASHED: False})


DYNAMIC_METHODS: dict[str, Handler] = {
    "where_not_null": _where_not_null,
    "with_trashed": _with_trashed,
    "only_trashed": _only_trashed,
    "without_trashed": _without_trashed,
}


# ---------------------------------------------------------------------------
# 기능 조회 체이닝 — Capability (PROBE) handlers
# ---------------------------------------------------------------------------
def _scope_handler(name: str) -> Handler:
    def handler(repo: "BaseRepository", query: Select, *args: Any, **kwargs: Any) -> Any:
        return getattr(repo.model, name)(query, *args, **kwargs)

    return handler


def _builder_handler(name: str) -> Handler:
    def handler(repo: "BaseRepository", query: Any, *args: Any, **kwargs: Any) -> Any:
        return getattr(query, name)(*args, **kwargs)

    return handler


# 문장을 반환하지 않는 빌더 메서드 — builder methods that do not return a statement
NON_CHAINING_METHODS: frozenset[str] = frozenset({
    "alias",
    "as_scalar",
    "compare",
    "compile",
    "corresponding_column",
    "cte",
    "get_children",
    "get_execution_options",
    "get_final_froms",
    "get_label_style",
    "is_derived_from",
    "label",
    "lateral",
    "scalar_subquery",
    "self_group",
    "subquery",
})


def _public_methods(cls: type) -> set[str]:
    return {
        name
        for name in dir(cls)
        if not name.startswith("_")
        and name not in NON_CHAINING_METHODS
        and inspect.isfunction(getattr(cls, name, None))
    }


class MethodRegistry:
    """엔티티 모델별 메서드 레지스트리.

    Method registry for one entity model. Lookup precedence is GET, then
    DYNAMIC, then the probe targets: the model's query scopes, a fresh
    Select, and the CompoundSelect a Select becomes after a union. A
    relationship collection handle is resolved to its base Select before the
    call, so its capabilities are the Select ones.
    Builder methods that return something other than a statement
    (NON_CHAINING_METHODS) are not registered.

    Attributes:
        model: 엔티티 모델 클래스 (Entity model class)
    """

    def __init__(self, model: type) -> None:
        self.model: type = model
        self._methods: dict[str, RepositoryMethod] = {}

        probes: dict[str, Handler] = {}
        for name in _public_methods(CompoundSelect) | _public_methods(Select):
            probes[name] = _builder_handler(name)
        for name in declared_scopes(model):
            probes[name] = _scope_handler(name)

        for name, handler in probes.items():
            self._methods[name] = RepositoryMethod(name, MethodKind.PROBE, handler)
        for name, handler in DYNAMIC_METHODS.items():
            self._methods[name] = RepositoryMethod(name, MethodKind.DYNAMIC, handler)
        for name, handler in GET_METHODS.items():
            self._methods[name] = RepositoryMethod(name, MethodKind.GET, handler)

        logger.debug("Built method registry for %s with %d entries", model.__name__, len(self._methods))

    def classify(self, name: str) -> MethodKind:
        """이름을 분류합니다. 등록되지 않은 이름은 PROBE(거부 대상)입니다."""
        entry = self._methods.get(name)
        return entry.kind if entry is not None else MethodKind.PROBE

    def resolve(self, name: str) -> RepositoryMethod | None:
        return self._methods.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._methods


@lru_cache(maxsize=None)
def registry_for(model: type) -> MethodRegistry:
    """모델별 레지스트리를 1회 생성하여 캐시합니다 — Build once per model, then cache."""
    return MethodRegistry(model)
