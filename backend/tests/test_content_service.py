from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from ple_platform.core.errors import (
    Conflict,
    InvalidTransition,
    NotAuthenticated,
    NotAuthorized,
    NotFound,
    ValidationError,
    VersionNotFound,
)
from ple_platform.models import ActionAuditLog, ContentVersion
from ple_platform.repositories.content_repository import content_repository
from ple_platform.repositories.version_repository import version_repository
from ple_platform.services.content_service import ContentService


async def _create(service: ContentService, author, **data):
    payload = {"title": "Intro"}
    payload.update(data)
    return await service.create(author, payload)


async def _audit_actions(session_factory, content_id: str) -> list[str]:
    async with session_factory() as session:
        rows = await session.execute(
            select(ActionAuditLog.action)
            .where(ActionAuditLog.entity_id == content_id)
            .order_by(ActionAuditLog.created_at)
        )
        return list(rows.scalars().all())


# ── Create ──


@pytest.mark.asyncio
async def test_create_without_body_starts_a_draft(service, users) -> None:
    created = await _create(service, users["author"])

    assert created["slug"] == "intro"
    item = await service.get(created["id"], users["author"])
    assert item["status"] == "draft"
    assert item["version"] == 1
    assert item["body"] == ""
    assert item["visibility"] == "internal"
    assert item["content_type"] == "article"
    assert item["version_count"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("title", ["", "   ", None])
async def test_create_requires_title(service, users, title) -> None:
    with pytest.raises(ValidationError):
        await service.create(users["author"], {"title": title, "body": "text"})


@pytest.mark.asyncio
async def test_create_requires_an_author(service) -> None:
    with pytest.raises(NotAuthenticated):
        await service.create(None, {"title": "Intro"})


@pytest.mark.asyncio
async def test_create_rejects_unknown_visibility(service, users) -> None:
    with pytest.raises(ValidationError):
        await _create(service, users["author"], visibility="secret")


@pytest.mark.asyncio
async def test_slug_collisions_get_numbered_suffixes(service, users) -> None:
    first = await _create(service, users["author"], title="Hello World")
    second = await _create(service, users["author"], title="hello   world!")
    third = await _create(service, users["editor"], title="Hello-World")

    assert [first["slug"], second["slug"], third["slug"]] == ["hello-world", "hello-world-2", "hello-world-3"]


@pytest.mark.asyncio
async def test_slug_falls_back_for_symbol_only_titles(service, users) -> None:
    created = await _create(service, users["author"], title="???")
    assert created["slug"] == "content"


@pytest.mark.asyncio
async def test_create_upserts_tags_and_writes_audit_row(service, users, session_factory) -> None:
    created = await _create(service, users["author"], tags=["Python", "python", "Open Data"])

    item = await service.get(created["slug"], users["author"])
    assert [tag["slug"] for tag in item["tags"]] == ["open-data", "python"]
    assert await _audit_actions(session_factory, created["id"]) == ["content_created"]


# ── Update ──


@pytest.mark.asyncio
async def test_updates_produce_gapless_version_history(service, users) -> None:
    created = await _create(service, users["author"], body="v1 body")
    for n in range(2, 6):
        updated = await service.update(created["id"], users["author"], {"body": f"v{n} body"})
        assert updated["version"] == n

    versions = await service.list_versions(created["id"], users["author"])
    assert [v["version_number"] for v in versions] == [4, 3, 2, 1]
    assert versions[-1]["body"] == "v1 body"
    assert versions[0]["change_summary"] == "Updated"
    assert all(v["change_kind"] == "edit" for v in versions)


@pytest.mark.asyncio
async def test_update_keeps_status_and_unsupplied_fields(service, users) -> None:
    created = await _create(service, users["author"], body="body", excerpt="short")
    await service.transition(created["id"], "submit", users["author"])

    updated = await service.update(
        created["id"], users["editor"], {"title": "Intro, revised", "change_summary": "Copy edit"}
    )

    assert updated["status"] == "in_review"
    assert updated["title"] == "Intro, revised"
    assert updated["body"] == "body"
    assert updated["excerpt"] == "short"
    assert updated["slug"] == "intro"
    versions = await service.list_versions(created["id"], users["editor"])
    assert versions[0]["change_summary"] == "Copy edit"
    assert versions[0]["title"] == "Intro"


@pytest.mark.asyncio
async def test_update_tags_omitted_vs_empty(service, users) -> None:
    created = await _create(service, users["author"], tags=["alpha", "beta"])

    kept = await service.update(created["id"], users["author"], {"body": "new"})
    assert [tag["slug"] for tag in kept["tags"]] == ["alpha", "beta"]

    cleared = await service.update(created["id"], users["author"], {"tags": []})
    assert cleared["tags"] == []
    assert cleared["version"] == 3


@pytest.mark.asyncio
async def test_update_without_fields_is_rejected(service, users) -> None:
    created = await _create(service, users["author"])
    with pytest.raises(ValidationError):
        await service.update(created["id"], users["author"], {"change_summary": "nothing"})


@pytest.mark.asyncio
async def test_update_rejects_blank_title(service, users) -> None:
    created = await _create(service, users["author"])
    with pytest.raises(ValidationError):
        await service.update(created["id"], users["author"], {"title": "  "})


@pytest.mark.asyncio
async def test_update_permissions(service, users) -> None:
    created = await _create(service, users["author"])

    with pytest.raises(NotAuthorized):
        await service.update(created["id"], users["member"], {"body": "hijack"})
    with pytest.raises(NotAuthenticated):
        await service.update(created["id"], None, {"body": "anon"})
    with pytest.raises(NotFound):
        await service.update("00000000-0000-0000-0000-000000000000", users["admin"], {"body": "x"})


@pytest.mark.asyncio
async def test_archived_content_cannot_be_edited(service, users) -> None:
    created = await _create(service, users["author"])
    await service.archive(created["id"], users["author"])

    with pytest.raises(InvalidTransition):
        await service.update(created["id"], users["author"], {"body": "late edit"})


@pytest.mark.asyncio
async def test_stale_expected_version_is_a_conflict(session_factory, users) -> None:
    async with session_factory() as session:
        service = ContentService(session)
        created = await _create(service, users["author"])
        await service.update(created["id"], users["author"], {"body": "2"})
        await service.update(created["id"], users["author"], {"body": "3"})

    # Two editors both opened version 3.
    async with session_factory() as first, session_factory() as second:
        winner = await ContentService(first).update(
            created["id"], users["author"], {"title": "A"}, expected_version=3
        )
        with pytest.raises(Conflict):
            await ContentService(second).update(
                created["id"], users["editor"], {"title": "B"}, expected_version=3
            )

    assert winner["version"] == 4
    async with session_factory() as session:
        item = await ContentService(session).get(created["id"], users["author"])
        versions = await ContentService(session).list_versions(created["id"], users["author"])
    assert item["title"] == "A"
    assert item["version"] == 4
    assert [v["version_number"] for v in versions] == [3, 2, 1]


@pytest.mark.asyncio
async def test_lost_update_race_is_a_conflict_and_rolls_back(session_factory, users) -> None:
    async with session_factory() as session:
        created = await _create(ContentService(session), users["author"])
    content_id = uuid.UUID(created["id"])

    async with session_factory() as first, session_factory() as second:
        # The second writer read version 1 before the first one committed.
        stale = await content_repository.get_by_id(second, content_id)
        await second.commit()
        assert stale.version == 1
        await ContentService(first).update(created["id"], users["author"], {"title": "A"})

        with pytest.raises(Conflict):
            await version_repository.snapshot_before_update(second, stale, changed_by=users["editor"].id)
        await second.rollback()

        applied = await content_repository.guarded_update(
            second, content_id=content_id, expected_version=1, values={"title": "B", "version": 2}
        )
        assert applied is False
        await second.rollback()

    async with session_factory() as session:
        item = await ContentService(session).get(created["id"], users["author"])
    assert item["title"] == "A"
    assert item["version"] == 2
    assert item["version_count"] == 1


@pytest.mark.asyncio
async def test_update_losing_snapshot_slot_is_a_conflict(session_factory, users) -> None:
    async with session_factory() as session:
        created = await _create(ContentService(session), users["author"])
    content_id = uuid.UUID(created["id"])

    # Another writer already archived version 1 but has not bumped the row yet.
    async with session_factory() as other:
        other.add(ContentVersion(content_id=content_id, version_number=1, title="Intro", body=""))
        await other.commit()

    async with session_factory() as session:
        with pytest.raises(Conflict) as excinfo:
            await ContentService(session).update(created["id"], users["editor"], {"title": "B"})
    assert excinfo.value.status_code == 409
    assert excinfo.value.details == {"content_id": created["id"], "version": 1}

    async with session_factory() as session:
        item = await ContentService(session).get(created["id"], users["author"])
    assert item["title"] == "Intro"
    assert item["version"] == 1


# ── Lifecycle ──


@pytest.mark.asyncio
async def test_editorial_walkthrough(service, users, session_factory) -> None:
    created = await _create(service, users["author"], title="X")

    submitted = await service.transition(created["id"], "submit", users["author"])
    assert submitted["status"] == "in_review"

    with pytest.raises(NotAuthorized):
        await service.transition(created["id"], "approve", users["member"])

    approved = await service.transition(created["id"], "approve", users["editor"])
    assert approved["status"] == "approved"
    assert approved["reviewer_id"] == str(users["editor"].id)

    published = await service.transition(created["id"], "publish", users["author"])
    assert published["status"] == "published"
    assert published["published_at"] is not None
    assert published["version"] == 1

    assert await _audit_actions(session_factory, created["id"]) == [
        "content_created",
        "content_submitted",
        "content_approved",
        "content_published",
    ]


@pytest.mark.asyncio
async def test_unpublish_returns_to_draft_and_clears_published_at(service, users) -> None:
    created = await _create(service, users["author"])
    await service.transition(created["id"], "publish", users["admin"])

    unpublished = await service.transition(created["id"], "unpublish", users["editor"])
    assert unpublished["status"] == "draft"
    assert unpublished["published_at"] is None


@pytest.mark.asyncio
async def test_admin_override_publish_is_audited(service, users, session_factory) -> None:
    created = await _create(service, users["author"])
    published = await service.transition(created["id"], "publish", users["admin"])
    assert published["status"] == "published"

    async with session_factory() as session:
        row = await session.scalar(
            select(ActionAuditLog).where(
                ActionAuditLog.entity_id == created["id"],
                ActionAuditLog.action == "content_published",
            )
        )
    assert row.details_json == {"admin_override": True}
    assert row.from_state == "draft"
    assert row.to_state == "published"
    assert row.actor_name == "Admin"


@pytest.mark.asyncio
async def test_failed_transition_leaves_no_trace(service, users, session_factory) -> None:
    created = await _create(service, users["author"])

    with pytest.raises(InvalidTransition):
        await service.transition(created["id"], "approve", users["editor"])
    with pytest.raises(NotAuthorized):
        await service.transition(created["id"], "submit", users["editor"])
    with pytest.raises(ValidationError):
        await service.transition(created["id"], "promote", users["editor"])

    item = await service.get(created["id"], users["author"])
    assert item["status"] == "draft"
    assert item["version"] == 1
    assert item["version_count"] == 0
    assert await _audit_actions(session_factory, created["id"]) == ["content_created"]


@pytest.mark.asyncio
async def test_archive_permissions(service, users) -> None:
    created = await _create(service, users["author"])

    with pytest.raises(NotAuthorized):
        await service.archive(created["id"], users["editor"])

    archived = await service.archive(created["id"], users["admin"])
    assert archived["status"] == "archived"

    with pytest.raises(InvalidTransition):
        await service.archive(created["id"], users["author"])


# ── Revert ──


@pytest.mark.asyncio
async def test_revert_restores_snapshot_as_new_draft_version(service, users) -> None:
    created = await _create(service, users["author"], title="T1", body="B1")
    for n in range(2, 6):
        await service.update(created["id"], users["author"], {"title": f"T{n}", "body": f"B{n}"})
    await service.transition(created["id"], "publish", users["admin"])

    reverted = await service.revert(created["id"], 2, users["author"])

    assert reverted["version"] == 6
    assert reverted["title"] == "T2"
    assert reverted["body"] == "B2"
    assert reverted["status"] == "draft"
    assert reverted["published_at"] is None

    versions = await service.list_versions(created["id"], users["author"])
    assert [v["version_number"] for v in versions] == [5, 4, 3, 2, 1]
    latest = versions[0]
    assert (latest["title"], latest["body"]) == ("T5", "B5")
    assert latest["change_kind"] == "revert"
    assert latest["change_summary"] == "Before revert to version 2"

    # Version 5 is itself recoverable.
    restored = await service.revert(created["id"], 5, users["editor"])
    assert (restored["title"], restored["body"], restored["version"]) == ("T5", "B5", 7)


@pytest.mark.asyncio
async def test_revert_brings_archived_content_back(service, users) -> None:
    created = await _create(service, users["author"], body="first")
    await service.update(created["id"], users["author"], {"body": "second"})
    await service.archive(created["id"], users["author"])

    reverted = await service.revert(created["id"], 1, users["author"])
    assert reverted["status"] == "draft"
    assert reverted["body"] == "first"


@pytest.mark.asyncio
async def test_revert_to_missing_version(service, users, session_factory) -> None:
    created = await _create(service, users["author"])
    await service.update(created["id"], users["author"], {"body": "2"})

    with pytest.raises(VersionNotFound):
        await service.revert(created["id"], 9, users["author"])
    with pytest.raises(VersionNotFound):
        await service.revert(created["id"], 2, users["author"])

    item = await service.get(created["id"], users["author"])
    assert item["version"] == 2
    assert item["version_count"] == 1
    assert "content_reverted" not in await _audit_actions(session_factory, created["id"])


@pytest.mark.asyncio
async def test_revert_requires_author_or_editor(service, users) -> None:
    created = await _create(service, users["author"])
    await service.update(created["id"], users["author"], {"body": "2"})

    with pytest.raises(NotAuthorized):
        await service.revert(created["id"], 1, users["member"])
    with pytest.raises(ValidationError):
        await service.revert(created["id"], 0, users["author"])


# ── Read ──


@pytest.mark.asyncio
async def test_internal_published_item_is_hidden_from_anonymous(service, users) -> None:
    created = await _create(service, users["author"], visibility="internal")
    await service.transition(created["id"], "publish", users["admin"])

    with pytest.raises(NotFound):
        await service.get(created["id"], None)

    item = await service.get(created["slug"], users["member"])
    assert item["status"] == "published"
    assert "allowed_actions" in item


@pytest.mark.asyncio
async def test_public_published_item_is_visible_to_anonymous(service, users) -> None:
    created = await _create(service, users["author"], visibility="public")
    with pytest.raises(NotFound):
        await service.get(created["id"], None)

    await service.transition(created["id"], "publish", users["admin"])
    item = await service.get(created["slug"], None)
    assert item["id"] == created["id"]
    assert "allowed_actions" not in item


@pytest.mark.asyncio
async def test_archived_item_visible_to_author_and_admin_only(service, users) -> None:
    created = await _create(service, users["author"])
    await service.archive(created["id"], users["author"])

    assert (await service.get(created["id"], users["author"]))["status"] == "archived"
    assert (await service.get(created["id"], users["admin"]))["status"] == "archived"
    with pytest.raises(NotFound):
        await service.get(created["id"], users["editor"])
    with pytest.raises(NotFound):
        await service.list_versions(created["id"], users["member"])


@pytest.mark.asyncio
async def test_list_versions_requires_authentication(service, users) -> None:
    created = await _create(service, users["author"])
    with pytest.raises(NotAuthenticated):
        await service.list_versions(created["id"], None)


# ── List ──


@pytest.mark.asyncio
async def test_list_filters_and_totals(service, users) -> None:
    mine = await _create(service, users["author"], title="Python tips", tags=["python"], content_type="guide")
    await _create(service, users["author"], title="Rust tips", tags=["rust"])
    theirs = await _create(service, users["editor"], title="Editor note", body="mentions python")
    await service.transition(mine["id"], "submit", users["author"])

    by_author = await service.list_content(users["author"], author="me")
    assert by_author["total"] == 2

    by_tag = await service.list_content(users["member"], tag="python")
    assert [item["id"] for item in by_tag["items"]] == [mine["id"]]

    by_status = await service.list_content(users["member"], status="in_review,approved")
    assert [item["id"] for item in by_status["items"]] == [mine["id"]]

    by_type = await service.list_content(users["member"], content_type="guide")
    assert by_type["total"] == 1

    searched = await service.list_content(users["member"], search="PYTHON")
    assert {item["id"] for item in searched["items"]} == {mine["id"], theirs["id"]}

    paged = await service.list_content(users["member"], limit=2, offset=0)
    assert paged["total"] == 3
    assert len(paged["items"]) == 2
    assert paged["has_more"] is True
    last_page = await service.list_content(users["member"], limit=2, offset=2)
    assert len(last_page["items"]) == 1
    assert last_page["has_more"] is False


@pytest.mark.asyncio
async def test_list_is_ordered_by_last_update(service, users) -> None:
    first = await _create(service, users["author"], title="First")
    second = await _create(service, users["author"], title="Second")
    await service.update(first["id"], users["author"], {"body": "bumped"})

    listed = await service.list_content(users["author"])
    assert [item["id"] for item in listed["items"]] == [first["id"], second["id"]]


@pytest.mark.asyncio
async def test_anonymous_list_sees_only_published_public(service, users) -> None:
    public = await _create(service, users["author"], title="Public", visibility="public")
    internal = await _create(service, users["author"], title="Internal", visibility="internal")
    await _create(service, users["author"], title="Draft", visibility="public")
    await service.transition(public["id"], "publish", users["admin"])
    await service.transition(internal["id"], "publish", users["admin"])

    listed = await service.list_content(None)
    assert [item["id"] for item in listed["items"]] == [public["id"]]
    assert listed["total"] == 1

    asked_for_drafts = await service.list_content(None, status="draft")
    assert asked_for_drafts["items"] == []
    assert asked_for_drafts["total"] == 0


@pytest.mark.asyncio
async def test_archived_rows_only_when_requested(service, users) -> None:
    own = await _create(service, users["author"], title="Own")
    other = await _create(service, users["editor"], title="Other")
    await service.archive(own["id"], users["author"])
    await service.archive(other["id"], users["admin"])

    assert (await service.list_content(users["author"]))["total"] == 0

    author_view = await service.list_content(users["author"], status="archived")
    assert [item["id"] for item in author_view["items"]] == [own["id"]]

    admin_view = await service.list_content(users["admin"], status="archived")
    assert admin_view["total"] == 2


@pytest.mark.asyncio
async def test_search_treats_like_wildcards_literally(service, users) -> None:
    await _create(service, users["author"], title="abc report")
    await _create(service, users["author"], title="growth 100 points")
    literal = await _create(service, users["author"], title="100% coverage")

    assert (await service.list_content(users["author"], search="a_c"))["total"] == 0
    matched = await service.list_content(users["author"], search="100%")
    assert [item["id"] for item in matched["items"]] == [literal["id"]]


@pytest.mark.asyncio
async def test_list_paging_bounds(service, users) -> None:
    page = await service.list_content(users["author"], limit=1000)
    assert page["limit"] == 100
    assert (await service.list_content(users["author"]))["limit"] == 50

    with pytest.raises(ValidationError):
        await service.list_content(users["author"], offset=-1)
    with pytest.raises(ValidationError):
        await service.list_content(users["author"], limit=0)
    with pytest.raises(ValidationError):
        await service.list_content(users["author"], status="live")
    with pytest.raises(NotAuthenticated):
        await service.list_content(None, author="me")


@pytest.mark.asyncio
async def test_list_activity_is_newest_first(service, users) -> None:
    created = await _create(service, users["author"])
    await service.update(created["id"], users["author"], {"body": "2"})
    await service.transition(created["id"], "submit", users["author"])

    activity = await service.list_activity(created["id"], users["editor"])
    assert [row["action"] for row in activity] == ["content_submitted", "content_updated", "content_created"]
    assert activity[1]["details"] == {"from_version": 1, "to_version": 2, "fields": ["body"]}


@pytest.mark.asyncio
async def test_list_activity_is_limited_to_editorial_readers(service, users) -> None:
    created = await _create(service, users["author"])

    with pytest.raises(NotAuthorized):
        await service.list_activity(created["id"], users["author"])
    with pytest.raises(NotAuthorized):
        await service.list_activity(created["id"], users["member"])

    await service.archive(created["id"], users["author"])
    with pytest.raises(NotFound):
        await service.list_activity(created["id"], users["editor"])
    activity = await service.list_activity(created["id"], users["admin"])
    assert activity[0]["action"] == "content_archived"
