"""Shared test fixtures for all test groups."""

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.db.base import build_session_factory, create_db_engine, create_tables
from app.llm.gateway_fake import GatewayFake


@pytest.fixture
def gateway_fake():
    """Fresh GatewayFake with happy_path scenario (default)."""
    return GatewayFake(scenario="happy_path")


@pytest.fixture
def gateway_fake_contradiction():
    """GatewayFake that reports a contradiction on every consistency check."""
    return GatewayFake(scenario="contradiction")


@pytest.fixture
def gateway_fake_unresolved():
    """GatewayFake that rejects every resolution attempt."""
    return GatewayFake(scenario="unresolved")


@pytest.fixture
def gateway_fake_failing():
    """GatewayFake with llm_failure scenario."""
    return GatewayFake(scenario="llm_failure")


@pytest.fixture
def test_db_url(tmp_path) -> str:
    """File-backed SQLite database, shareable between event loops."""
    return f"sqlite+aiosqlite:///{tmp_path / 'moral_compass_test.db'}"


@pytest.fixture
async def engine(test_db_url: str) -> AsyncEngine:
    """Create the test engine and tables, and set the global session factory.

    Tests using TestClient (api_client) re-initialize the global in their own
    event loop against the same database file.
    """
    import app.db.base as db_mod

    engine = create_db_engine(test_db_url)
    await create_tables(engine)

    db_mod._engine = engine
    db_mod._session_factory = build_session_factory(engine)

    yield engine

    db_mod._engine = None
    db_mod._session_factory = None
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed_answers(session_factory):
    """Insert answered questions directly, bypassing contradiction detection.

    Returns an async callable ``seed(user_id, answers, stage=1) -> list[Response]``.
    """
    from app.services.response_store import ResponseStore

    async def _seed(user_id: str, answers: list[str], stage: int = 1):
        rows = []
        async with session_factory() as session:
            store = ResponseStore(session)
            for text in answers:
                row = await store.create_question(user_id, f"What do you think about {text.lower()}?", stage)
                await store.record_answer(row, text, contradiction_flag=False)
                rows.append(row)
            await session.commit()
        return rows

    return _seed


@pytest.fixture
def open_question(session_factory):
    """Insert one unanswered question row. Returns an async callable ``open(user_id, stage=1)``."""
    from app.services.response_store import ResponseStore

    async def _open(user_id: str, stage: int = 1, text: str = "Is it ever right to break a promise?"):
        async with session_factory() as session:
            row = await ResponseStore(session).create_question(user_id, text, stage)
            await session.commit()
        return row

    return _open
