"""커스텀 예외 클래스 모듈.

Custom exception classes module.
NotFoundError and BadRequestError are pre-configured HTTPException subclasses
so that a FastAPI application maps them to 404/400 without extra handlers.
MethodNotFoundError is an AttributeError because it is raised from attribute
lookup on a repository (hasattr() keeps working).

Errors raised by SQLAlchemy itself (sqlalchemy.exc.SQLAlchemyError) are never
wrapped here; they propagate to the caller unchanged.

Usage:
    from fluent_repository.utils.exceptions import NotFoundError
    raise NotFoundError("Article 3 not found")
"""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """404 Not Found 예외 — 요청한 레코드를 찾을 수 없을 때 사용.

    404 Not Found exception.
    Raised by restore() and the *_or_fail terminal methods when no row matches.

    Args:
        detail: 오류 메시지 (Error message, default: "Resource not found")
    """

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestError(HTTPException):
    """400 Bad Request 예외 — 잘못된 요청 인자 시 사용.

    400 Bad Request exception.
    Raised when pagination arguments are out of range (page < 1, per_page < 1).

    Args:
        detail: 오류 메시지 (Error message, default: "Bad request")
    """

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class MethodNotFoundError(AttributeError):
    """레포지토리에서 해석할 수 없는 메서드 호출.

    Raised when a forwarded call matches no terminal method, no chaining
    method, and no capability of the entity, its query builder, its union
    form, or its relationship base query.

    Attributes:
        repository: 레포지토리 클래스 이름 (Repository class name)
        method: 호출된 메서드 이름 (Attempted method name)
    """

    def __init__(self, repository: str, method: str) -> None:
        super().__init__(f"Call to undefined method {repository}.{method}()")
        self.repository = repository
        self.method = method
