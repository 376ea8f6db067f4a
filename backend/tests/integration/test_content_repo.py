from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator, Iterator
from uuid import UUID, uuid4

import asyncpg
import pytest
import pytest_asyncio

from agora.content.domain.membership_repo import MembershipDirectory
from agora.content.domain.models import ContentKind, EntityRef, EntityType, OwnerContext, PublishedStatus
from agora.content.domain.repo import ContentRepository
from agora.infra import postgres

pytestmark = pytest.mark.asyncio

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


@pytest.fixture(scope="module")
def postgres_container() -> Iterator["PostgresContainer"]:
    testcontainers = pytest.importorskip(
        "testcontainers.postgres",
        reason="testcontainers.postgres is required for integration tests",
    )
    PostgresContainer = testcontainers.PostgresContainer
    container = PostgresContainer("postgres:16-alpine")
    try:
        container.start()
    except Exception as exc:  # pragma: no cover - environment without docker
        pytest.skip(f"unable to start postgres container: {exc}")
    try:
        yield container
    finally:
        container.stop()


async def _run_migrations(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute("DROP SCHEMA IF EXISTS public CASCADE")
        await conn.execute("CREATE SCHEMA public")
        await conn.execute("GRANT ALL ON SCHEMA public TO PUBLIC")
        for path in sorted(MIGRATIONS_DIR.glob("*.sql")):
            await conn.execute(path.read_text(encoding="utf-8"))


@pytest_asyncio.fixture(scope="function")
async def postgres_pool(postgres_container) -> AsyncIterator[asyncpg.Pool]:
    url = postgres_container.get_connection_url().replace("postgresql+psycopg2", "postgresql")
    pool = await asyncpg.create_pool(dsn=url, min_size=1, max_size=8, init=postgres._init_connection)
    await _run_migrations(pool)
    postgres.set_pool(pool)
    try:
        yield pool
    finally:
        postgres.set_pool(None)
        await pool.close()


async def _user(pool: asyncpg.Pool, name: str = "Ada") -> UUID:
    user_id = uuid4()
    await pool.execute(
        "INSERT INTO app_user (id, display_name, email) VALUES ($1, $2, $3)",
        user_id,
        name,
        f"{user_id.hex[:8]}@example.org",
    )
    return user_id


async def _club(pool: asyncpg.Pool, name: str) -> UUID:
    club_id = uuid4()
    await pool.execute("INSERT INTO club (id, name) VALUES ($1, $2)", club_id, name)
    return club_id


@pytest.mark.integration
async def test_create_update_and_adoption_entries(postgres_pool):
    repo = ContentRepository()
    author = await _user(postgres_pool)
    club_id = await _club(postgres_pool, "Chess")
    target = OwnerContext(entity_type=EntityType.CLUB, entity_id=await _club(postgres_pool, "Go"))

    item = await repo.create(
        ContentKind.PROJECT,
        {
            "club_id": club_id,
            "created_by": author,
            "published_status": PublishedStatus.PUBLISHED,
            "title": "Garden",
            "budget": {"from": 10, "to": 20, "currency": "EUR"},
            "files": [{"url": "https://cdn/x", "original_name": "x.pdf", "mimetype": "application/pdf", "size": 3}],
            "relevant": [],
            "irrelevant": [],
        },
    )
    assert item.budget == {"from": 10, "to": 20, "currency": "EUR"}
    assert item.files[0].original_name == "x.pdf"

    await repo.add_adoption_entry(ContentKind.PROJECT, item.id, target)
    again = await repo.add_adoption_entry(ContentKind.PROJECT, item.id, target)
    assert [entry.club for entry in again.adopted_clubs] == [target.entity_id]

    updated = await repo.update_fields(ContentKind.PROJECT, item.id, {"published_status": PublishedStatus.ARCHIVED})
    assert updated.published_status is PublishedStatus.ARCHIVED
    assert updated.updated_at >= item.updated_at

    _, added = await repo.add_view(ContentKind.PROJECT, item.id, author)
    viewed, added_again = await repo.add_view(ContentKind.PROJECT, item.id, author)
    assert added is True
    assert added_again is False
    assert [entry.user for entry in viewed.views] == [author]


@pytest.mark.integration
async def test_run_atomically_rolls_back(postgres_pool):
    repo = ContentRepository()
    author = await _user(postgres_pool)
    club_id = await _club(postgres_pool, "Books")
    parent = await repo.create(
        ContentKind.ISSUE,
        {"club_id": club_id, "created_by": author, "published_status": PublishedStatus.PUBLISHED, "title": "Leak"},
    )
    target = OwnerContext(entity_type=EntityType.CLUB, entity_id=await _club(postgres_pool, "Films"))

    async def _work(conn):
        await repo.add_adoption_entry(ContentKind.ISSUE, parent.id, target, conn=conn)
        raise RuntimeError("insert failed")

    with pytest.raises(RuntimeError):
        await repo.run_atomically(_work)

    reloaded = await repo.get(ContentKind.ISSUE, parent.id)
    assert reloaded.adopted_clubs == []


@pytest.mark.integration
async def test_find_many_includes_proposed_to_context(postgres_pool):
    repo = ContentRepository()
    author = await _user(postgres_pool)
    club_id = await _club(postgres_pool, "Hiking")
    context = OwnerContext(entity_type=EntityType.CLUB, entity_id=club_id)
    owned = await repo.create(
        ContentKind.DEBATE,
        {"club_id": club_id, "created_by": author, "published_status": PublishedStatus.PROPOSED, "topic": "Routes"},
    )
    routed = await repo.create(
        ContentKind.DEBATE,
        {
            "created_by": author,
            "published_status": PublishedStatus.PROPOSED,
            "proposed_entity_type": EntityType.CLUB,
            "proposed_entity_id": club_id,
            "topic": "Shelters",
        },
    )
    await repo.create(
        ContentKind.DEBATE,
        {
            "club_id": club_id,
            "created_by": author,
            "published_status": PublishedStatus.PROPOSED,
            "topic": "Removed",
            "is_deleted": True,
        },
    )

    only_owned = await repo.find_many(ContentKind.DEBATE, context=context, status=PublishedStatus.PROPOSED)
    both = await repo.find_many(
        ContentKind.DEBATE, context=context, include_proposed_to=True, status=PublishedStatus.PROPOSED
    )

    assert [item.id for item in only_owned] == [owned.id]
    assert {item.id for item in both} == {owned.id, routed.id}


@pytest.mark.integration
async def test_feed_queries_join_creator(postgres_pool):
    repo = ContentRepository()
    author = await _user(postgres_pool, name="Grace")
    club_id = await _club(postgres_pool, "Robotics")
    context = OwnerContext(entity_type=EntityType.CLUB, entity_id=club_id)
    await repo.create(
        ContentKind.DEBATE,
        {"club_id": club_id, "created_by": author, "published_status": PublishedStatus.PUBLISHED, "topic": "Arms"},
    )
    await repo.create(
        ContentKind.DEBATE,
        {"club_id": club_id, "created_by": author, "published_status": PublishedStatus.DRAFT, "topic": "Legs"},
    )

    assert await repo.count_published(ContentKind.DEBATE, context) == 1
    rows = await repo.list_published_page(ContentKind.DEBATE, context, offset=0, limit=10)
    assert [row.title for row in rows] == ["Arms"]
    assert rows[0].creator_name == "Grace"
    assert rows[0].type is ContentKind.DEBATE


@pytest.mark.integration
async def test_membership_directory(postgres_pool):
    directory = MembershipDirectory()
    user_id = await _user(postgres_pool)
    alpha = await _club(postgres_pool, "Alpha")
    beta = await _club(postgres_pool, "Beta")
    await postgres_pool.execute(
        "INSERT INTO club_member (club_id, user_id, role, status) VALUES ($1, $3, 'admin', 'MEMBER'), ($2, $3, 'member', 'REQUESTED')",
        alpha,
        beta,
        user_id,
    )

    membership = await directory.find_membership(EntityType.CLUB, alpha, user_id)
    assert membership is not None
    assert membership.role == "admin"
    assert await directory.find_membership(EntityType.NODE, alpha, user_id) is None

    listed = await directory.list_user_memberships(user_id, EntityType.CLUB)
    assert [(entry.entity_id, entry.name) for entry in listed] == [(alpha, "Alpha")]


@pytest.mark.integration
async def test_comments_round_trip(postgres_pool):
    repo = ContentRepository()
    author = await _user(postgres_pool)
    item = await repo.create(
        ContentKind.ISSUE,
        {"created_by": author, "published_status": PublishedStatus.PUBLISHED, "title": "Noise"},
    )
    entity = EntityRef(kind=ContentKind.ISSUE, id=item.id)

    root = await repo.create_comment(entity=entity, author_id=author, content="Root", parent_id=None)
    reply = await repo.create_comment(entity=entity, author_id=author, content="Reply", parent_id=root.id)

    listed = await repo.list_comments(entity)
    assert [comment.id for comment in listed] == [root.id, reply.id]
    assert (await repo.get_comment(reply.id)).parent_id == root.id


@pytest.mark.integration
async def test_bookmark_folders(postgres_pool):
    repo = ContentRepository()
    owner = await _user(postgres_pool)
    item = await repo.create(
        ContentKind.PROJECT,
        {"created_by": owner, "published_status": PublishedStatus.PUBLISHED, "title": "Bridge"},
    )
    entity = EntityRef(kind=ContentKind.PROJECT, id=item.id)
    folder = await repo.create_bookmark_folder(owner, "Later")

    assert await repo.add_bookmark(folder.id, entity) is True
    assert await repo.add_bookmark(folder.id, entity) is False
    stored = await repo.get_bookmark_folder(folder.id, owner)
    assert [entry.entity for entry in stored.posts] == [entity]
    assert await repo.get_bookmark_folder(folder.id, await _user(postgres_pool, name="Eve")) is None

    listed = await repo.list_bookmark_folders(owner)
    assert [(f.title, len(f.posts)) for f in listed] == [("Later", 1)]

    assert await repo.remove_bookmark(folder.id, entity) is True
    assert await repo.remove_bookmark(folder.id, entity) is False
    assert (await repo.get_bookmark_folder(folder.id, owner)).posts == []
