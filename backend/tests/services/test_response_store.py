"""Tests for ResponseStore: the append-only versioned answer log."""

import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import update

from app.core.exceptions import AnswerConflictError, InvalidAnswerError
from app.db.models.response import Response
from app.services.response_store import ResponseStore

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_create_question_starts_new_slot(db_session):
    store = ResponseStore(db_session)

    row = await store.create_question("user_a", "Should you always tell the truth?", stage=2)

    assert row.slot_id == row.id
    assert row.version == 1
    assert row.answer == ""
    assert row.is_answered is False
    assert row.superseded is False
    assert row.stage == 2


@pytest.mark.asyncio
async def test_get_is_scoped_to_owner(db_session):
    store = ResponseStore(db_session)
    row = await store.create_question("user_a", "Q?", stage=1)

    assert (await store.get(row.id)).id == row.id
    assert (await store.get(row.id, user_id="user_a")) is not None
    assert (await store.get(row.id, user_id="user_b")) is None
    assert (await store.get(uuid.uuid4())) is None


@pytest.mark.asyncio
async def test_record_answer_once(db_session):
    store = ResponseStore(db_session)
    row = await store.create_question("user_a", "Q?", stage=1)

    await store.record_answer(row, "  Keep your word.  ", contradiction_flag=True)

    assert row.answer == "Keep your word."
    assert row.contradiction_flag is True
    with pytest.raises(AnswerConflictError):
        await store.record_answer(row, "Changed my mind", contradiction_flag=False)


@pytest.mark.asyncio
async def test_record_blank_answer_rejected(db_session):
    store = ResponseStore(db_session)
    row = await store.create_question("user_a", "Q?", stage=1)

    with pytest.raises(InvalidAnswerError):
        await store.record_answer(row, "   ", contradiction_flag=False)


@pytest.mark.asyncio
async def test_supersede_creates_next_version(db_session):
    store = ResponseStore(db_session)
    row = await store.create_question("user_a", "Q?", stage=3)
    await store.record_answer(row, "Obey the law.", contradiction_flag=False)

    successor = await store.supersede_with(row, "Obey just laws.", contradiction_flag=False)
    await db_session.commit()

    assert successor.id != row.id
    assert successor.slot_id == row.slot_id
    assert successor.version == 2
    assert successor.stage == 3
    assert successor.question_text == "Q?"
    assert row.superseded is True

    versions = await store.list_slot_versions(row.slot_id)
    assert [v.version for v in versions] == [1, 2]
    assert [v.answer for v in versions] == ["Obey the law.", "Obey just laws."]
    assert [v.superseded for v in versions] == [True, False]


@pytest.mark.asyncio
async def test_superseding_a_retired_row_conflicts(db_session):
    store = ResponseStore(db_session)
    row = await store.create_question("user_a", "Q?", stage=1)
    await store.record_answer(row, "First", contradiction_flag=False)
    await store.supersede_with(row, "Second", contradiction_flag=False)

    with pytest.raises(AnswerConflictError):
        await store.supersede_with(row, "Third", contradiction_flag=False)

    active = [v for v in await store.list_slot_versions(row.slot_id) if not v.superseded]
    assert len(active) == 1
    assert active[0].answer == "Second"


@pytest.mark.asyncio
async def test_active_answers_skip_unanswered_and_superseded(db_session):
    store = ResponseStore(db_session)
    first = await store.create_question("user_a", "Q1?", stage=1)
    await store.record_answer(first, "One", contradiction_flag=False)
    second = await store.create_question("user_a", "Q2?", stage=1)
    await store.record_answer(second, "Two", contradiction_flag=False)
    await store.create_question("user_a", "Q3?", stage=1)
    await store.supersede_with(first, "One, revised", contradiction_flag=False)
    other = await store.create_question("user_b", "Q?", stage=1)
    await store.record_answer(other, "Not mine", contradiction_flag=False)

    active = await store.list_active_answers("user_a")
    assert [r.answer for r in active] == ["Two", "One, revised"]

    excluded = await store.list_active_answers("user_a", exclude_id=second.id)
    assert [r.answer for r in excluded] == ["One, revised"]


@pytest.mark.asyncio
async def test_history_with_and_without_superseded(db_session):
    store = ResponseStore(db_session)
    row = await store.create_question("user_a", "Q1?", stage=1)
    await store.record_answer(row, "One", contradiction_flag=False)
    await store.create_question("user_a", "Q2?", stage=1)
    await store.supersede_with(row, "One, revised", contradiction_flag=False)

    active = await store.list_history("user_a")
    assert [r.answer for r in active] == ["", "One, revised"]

    full = await store.list_history("user_a", include_superseded=True)
    assert [r.answer for r in full] == ["One", "", "One, revised"]


@pytest.mark.asyncio
async def test_purge_removes_only_that_user(db_session):
    store = ResponseStore(db_session)
    await store.create_question("user_a", "Q1?", stage=1)
    await store.create_question("user_a", "Q2?", stage=1)
    await store.create_question("user_b", "Q?", stage=1)

    assert await store.purge("user_a") == 2
    assert await store.list_history("user_a", include_superseded=True) == []
    assert len(await store.list_history("user_b")) == 1


@pytest.mark.asyncio
async def test_record_answer_with_stale_row_conflicts(session_factory):
    async with session_factory() as session:
        row = await ResponseStore(session).create_question("user_a", "Q?", stage=1)
        await session.commit()

    async with session_factory() as first, session_factory() as second:
        mine = await ResponseStore(first).get(row.id)
        theirs = await ResponseStore(second).get(row.id)
        assert theirs.answer == ""

        await ResponseStore(first).record_answer(mine, "First writer", contradiction_flag=False)
        await first.commit()

        with pytest.raises(AnswerConflictError):
            await ResponseStore(second).record_answer(theirs, "Second writer", contradiction_flag=True)

    async with session_factory() as session:
        stored = await ResponseStore(session).get(row.id)
    assert stored.answer == "First writer"
    assert stored.contradiction_flag is False


@pytest.mark.asyncio
async def test_same_timestamp_rows_have_stable_order(db_session):
    store = ResponseStore(db_session)
    rows = []
    for text in ("Alpha", "Beta", "Gamma"):
        row = await store.create_question("user_a", f"{text}?", stage=1)
        await store.record_answer(row, text, contradiction_flag=False)
        rows.append(row)
    await db_session.execute(
        update(Response)
        .where(Response.user_id == "user_a")
        .values(created_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
        .execution_options(synchronize_session=False)
    )

    expected = sorted(r.id for r in rows)
    assert [r.id for r in await store.list_active_answers("user_a")] == expected
    assert [r.id for r in await store.list_active_answers("user_a")] == expected
    assert [r.id for r in await store.list_history("user_a")] == expected
