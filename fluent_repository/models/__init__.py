"""모델 패키지 — 레포지토리가 사용하는 모델 믹스인.

Models package — Mixins that entity models combine with the declarative Base.
"""

from fluent_repository.models.mixins import INCLUDE_TRASHED, SoftDeleteMixin, query_scope

__all__ = ["INCLUDE_TRASHED", "SoftDeleteMixin", "query_scope"]
