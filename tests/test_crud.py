"""CRUD 작업 테스트.

CRUD tests — create, destroy, restore and force_delete.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from fluent_repository import MethodNotFoundError, NotFoundError
from tests.models import Article, ArticleRepository, Tag, TagRepository


class TestCreate:
    """레코드 생성 테스트."""

    async def test_create_returns_persisted_entity(self, repo: ArticleRepository):
        article = await repo.create({"title": "Echo", "views": 3})
        assert article.id is not None
        assert article.title == "Echo"
        assert await repo.count() == 1

    async def test_create_discards_pending_chain(self, repo: ArticleRepository, articles):
        """생성 전에 쌓인 정렬/조건은 버려짐."""
        repo.where(Article.views > 1000).order_by("title")
        await repo.create({"title": "Echo"})
        assert repo.orders == []
        assert repo.query.whereclause is None
        assert await repo.count() == 5

    async def test_create_without_attributes(self, tag_repo: TagRepository):
        with pytest.raises(IntegrityError):
            # name은 NOT NULL
            await tag_repo.create()


class TestDestroy:
    """일괄 삭제 테스트."""

    async def test_destroy_many(self, repo: ArticleRepository, articles):
        assert await repo.destroy([1, 2, 3]) == 3
        assert await repo.pluck("title") == ["Delta"]

    async def test_destroy_synchronizes_loaded_entities(self, repo: ArticleRepository, articles):
        """일괄 삭제 후 세션에 로드된 엔티티에도 deleted_at이 반영됨."""
        assert await repo.destroy([1, 2]) == 2
        assert articles[0].trashed is True
        assert articles[1].trashed is True
        assert articles[2].trashed is False

    async def test_bulk_update_synchronizes_loaded_entities(self, repo: ArticleRepository, articles):
        assert await repo.where(Article.id.in_([3, 4])).update({"views": 7}) == 2
        assert [a.views for a in articles] == [250, 40, 7, 7]

    async def test_destroy_single_id(self, repo: ArticleRepository, articles):
        assert await repo.destroy(2) == 1
        assert await repo.find(2) is None
        assert (await repo.with_trashed().find(2)).trashed is True

    async def test_destroy_ignores_current_chain(self, repo: ArticleRepository, articles):
        """destroy는 현재 핸들의 조건을 사용하지 않음."""
        repo.where(Article.id == 4)
        assert await repo.destroy([1]) == 1
        assert await repo.where(Article.id == 4).exists() is True

    async def test_destroy_skips_already_trashed(self, repo: ArticleRepository, articles):
        await repo.destroy(1)
        assert await repo.destroy([1, 2]) == 1

    async def test_destroy_empty(self, repo: ArticleRepository, articles):
        assert await repo.destroy([]) == 0
        assert await repo.count() == 4

    async def test_destroy_hard_deletes(self, tag_repo: TagRepository, tags):
        """소프트 삭제가 없는 모델은 행을 제거."""
        assert await tag_repo.destroy([1, 5, 99]) == 2
        assert await tag_repo.pluck("id") == [2, 3, 4]


class TestRestore:
    """복원 테스트."""

    async def test_restore_trashed_row(self, repo: ArticleRepository, articles):
        await repo.destroy(3)
        assert await repo.restore(3) is True
        assert (await repo.find(3)).trashed is False
        assert await repo.count() == 4

    async def test_restore_instance_soft_delete(self, repo: ArticleRepository, articles, db):
        """인스턴스 soft_delete() 후 복원."""
        articles[1].soft_delete()
        await db.flush()
        assert await repo.find(2) is None
        assert await repo.restore(2) is True
        assert await repo.find(2) is articles[1]

    async def test_restore_missing_row(self, repo: ArticleRepository, articles):
        """존재하지 않는 레코드 복원 시 NotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            await repo.restore(99)
        assert exc_info.value.status_code == 404

    async def test_restore_ignores_global_scope(self, published_repo, articles):
        await published_repo.destroy(1)
        assert await published_repo.restore(1) is True
        assert published_repo.scope_calls == 0

    async def test_restore_requires_soft_delete(self, tag_repo: TagRepository, tags):
        with pytest.raises(MethodNotFoundError):
            await tag_repo.restore(1)


class TestForceDelete:
    """영구 삭제 테스트."""

    async def test_force_delete_existing(self, repo: ArticleRepository, articles):
        await repo.force_delete(2)
        assert await repo.with_trashed().find(2) is None
        assert await repo.with_trashed().count() == 3

    async def test_force_delete_trashed(self, repo: ArticleRepository, articles):
        """삭제된 레코드도 영구 삭제 가능."""
        await repo.destroy(4)
        await repo.force_delete(4)
        assert await repo.with_trashed().count() == 3

    async def test_force_delete_missing_is_noop(self, repo: ArticleRepository, articles):
        assert await repo.force_delete(99) is None
        assert await repo.with_trashed().count() == 4

    async def test_force_delete_uses_current_chain(self, repo: ArticleRepository, articles):
        """조회는 현재 체인을 거치므로 조건에 맞지 않으면 아무 작업도 하지 않음."""
        repo.where(Article.views > 1000)
        await repo.force_delete(1)
        assert repo.query.whereclause is None
        assert await repo.count() == 4

    async def test_force_delete_on_plain_model(self, tag_repo: TagRepository, tags):
        await tag_repo.force_delete(3)
        assert await tag_repo.find(3) is None
        assert await tag_repo.count() == 4
        assert isinstance((await tag_repo.find(2)), Tag)
