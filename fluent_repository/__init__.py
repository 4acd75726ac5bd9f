"""fluent-repository — SQLAlchemy 쿼리 빌더 위의 제네릭 레포지토리.

Generic repository layer over SQLAlchemy Select statements: fluent call
forwarding, one-shot query modifiers (default order, global scope),
pagination and soft delete aware CRUD helpers.
"""

from fluent_repository.models.mixins import SoftDeleteMixin, query_scope
from fluent_repository.repositories.base import BaseRepository
from fluent_repository.repositories.state import Direction, OrderSpec
from fluent_repository.utils.exceptions import BadRequestError, MethodNotFoundError, NotFoundError
from fluent_repository.utils.pagination import Page

__all__ = [
    "BadRequestError",
    "BaseRepository",
    "Direction",
    "MethodNotFoundError",
    "NotFoundError",
    "OrderSpec",
    "Page",
    "SoftDeleteMixin",
    "query_scope",
]
