"""테스트용 FastAPI 앱.

Minimal FastAPI application used to check that repository errors map to
HTTP responses without extra exception handlers.
"""

from fastapi import Depends, FastAPI
from sqlalchemy.ext.asyncio import AsyncSession

from fluent_repository.database import get_db
from tests.models import ArticleRepository

app = FastAPI()


@app.get("/articles")
async def list_articles(page: int = 1, per_page: int = 2, db: AsyncSession = Depends(get_db)):
    result = await ArticleRepository(db).paginate(per_page=per_page, page=page, columns=["id", "title"])
    return result.model_dump()


@app.get("/articles/{article_id}")
async def show_article(article_id: int, db: AsyncSession = Depends(get_db)):
    article = await ArticleRepository(db).find_or_fail(article_id)
    return {"id": article.id, "title": article.title}


@app.post("/articles/{article_id}/restore")
async def restore_article(article_id: int, db: AsyncSession = Depends(get_db)):
    restored = await ArticleRepository(db).restore(article_id)
    return {"restored": restored}
