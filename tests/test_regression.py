"""
Regression tests for issues found during code review.

1. Unique constraint violations must return 409 (not 500)
2. A repeated view by the same user must not inflate view_count
3. X-Query-Count header must report actual query count (not always 0)
4. CORS must not set allow_credentials=true with allow_origins=*
5. Category/tag names that match case-insensitively stay distinct
6. Taxonomy cache keys are dropped only after the request commits
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.cache import TAGS_KEY, cache
from blog_api.models import Blog
from blog_api.services import interaction_service, taxonomy_service
from conftest import auth, create_blog_row, create_user, override_get_db


# ---------------------------------------------------------------------------
# 1. Unique constraint violations -> 409
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_duplicate_user_returns_409(async_client: AsyncClient):
    """Creating a user with an existing username returns 409, not 500."""
    payload = {"username": "dup_user", "email": "dup1@example.com"}
    resp1 = await async_client.post("/api/v1/users", json=payload)
    assert resp1.status_code == 201

    payload2 = {"username": "dup_user", "email": "dup2@example.com"}
    resp2 = await async_client.post("/api/v1/users", json=payload2)
    assert resp2.status_code == 409


@pytest.mark.asyncio
async def test_duplicate_email_returns_409(async_client: AsyncClient):
    """Creating a user with an existing email returns 409, not 500."""
    await async_client.post("/api/v1/users", json={
        "username": "emailuser1", "email": "same@example.com",
    })
    resp = await async_client.post("/api/v1/users", json={
        "username": "emailuser2", "email": "same@example.com",
    })
    assert resp.status_code == 409


# ---------------------------------------------------------------------------
# 2. Views are counted once per user
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_repeat_view_does_not_bump_counter(db_session: AsyncSession):
    user = await create_user(db_session, "reguser")
    blog = await create_blog_row(db_session, user)

    for _ in range(3):
        await interaction_service.record_view(db_session, blog.id, user.id)

    stored = (
        await db_session.execute(select(Blog.view_count).where(Blog.id == blog.id))
    ).scalar_one()
    assert stored == 1


# ---------------------------------------------------------------------------
# 3. X-Query-Count reports actual query count
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_query_count_header_exact_for_empty_blog_list(async_client: AsyncClient):
    """An empty blog list issues COUNT + SELECT = 2 queries."""
    resp = await async_client.get("/api/v1/blogs")
    assert resp.status_code == 200
    assert int(resp.headers["x-query-count"]) == 2


@pytest.mark.asyncio
async def test_query_count_header_grows_with_page_size(async_client: AsyncClient):
    """The per-blog formatter queries show up in the header."""
    user_resp = await async_client.post("/api/v1/users", json={
        "username": "qctest", "email": "qctest@example.com",
    })
    user_id = user_resp.json()["id"]
    await async_client.post("/api/v1/blogs", json={
        "title": "QC Blog", "description": "d", "content": "c", "image": "i",
    }, headers=auth(user_id))

    resp = await async_client.get("/api/v1/blogs")
    assert resp.status_code == 200
    assert int(resp.headers["x-query-count"]) > 2
    assert "x-response-time-ms" in resp.headers


# ---------------------------------------------------------------------------
# 4. CORS headers
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cors_no_credentials_with_wildcard_origin(async_client: AsyncClient):
    """
    When allow_origins=["*"], the response must NOT include
    Access-Control-Allow-Credentials: true, which browsers reject.
    """
    resp = await async_client.options(
        "/api/v1/blogs",
        headers={
            "Origin": "https://example.com",
            "Access-Control-Request-Method": "GET",
        },
    )
    cred_header = resp.headers.get("access-control-allow-credentials", "").lower()
    assert cred_header != "true", (
        "CORS must not combine allow_origins=* with allow_credentials=true"
    )


# ---------------------------------------------------------------------------
# 5. Case-sensitive category/tag identity
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_tags_differing_in_case_are_distinct(async_client: AsyncClient):
    user_resp = await async_client.post("/api/v1/users", json={
        "username": "caser", "email": "caser@example.com",
    })
    user_id = user_resp.json()["id"]
    resp = await async_client.post("/api/v1/blogs", json={
        "title": "Cased", "description": "d", "content": "c", "image": "i",
        "tags": ["Python", "python"],
    }, headers=auth(user_id))
    assert resp.status_code == 201
    assert resp.json()["blog"]["tags"] == ["Python", "python"]

    tags = (await async_client.get("/api/v1/tags")).json()
    assert sorted(t["name"] for t in tags) == ["Python", "python"]


# ---------------------------------------------------------------------------
# 6. Taxonomy cache is dropped after the request commits
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_new_tag_drops_cached_listing_after_request(async_client: AsyncClient, monkeypatch):
    deleted = []

    async def record_delete(*keys):
        deleted.append(keys)

    monkeypatch.setattr(cache, "delete", record_delete)
    user_resp = await async_client.post("/api/v1/users", json={
        "username": "cacher", "email": "cacher@example.com",
    })
    resp = await async_client.post("/api/v1/blogs", json={
        "title": "Cached", "description": "d", "content": "c", "image": "i",
        "tags": ["newtag"],
    }, headers=auth(user_resp.json()["id"]))
    assert resp.status_code == 201
    assert deleted == [(TAGS_KEY,)]


@pytest.mark.asyncio
async def test_failed_request_keeps_cached_listing(monkeypatch):
    """A rolled-back request must not drop keys for rows that never committed."""
    deleted = []

    async def record_delete(*keys):
        deleted.append(keys)

    monkeypatch.setattr(cache, "delete", record_delete)
    request_db = override_get_db()
    session = await request_db.__anext__()
    user = await create_user(session, "rollback")
    blog = await create_blog_row(session, user)
    await taxonomy_service.link_tags(session, blog.id, ["doomed"])

    with pytest.raises(RuntimeError):
        await request_db.athrow(RuntimeError("handler failed"))
    assert deleted == []
