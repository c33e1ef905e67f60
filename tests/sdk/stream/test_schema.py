"""Integration tests for schema introspection."""

import pytest

from litepipe.sdk.stream import ColumnInfo, indexes, table_columns, tables, triggers, views

pytestmark = pytest.mark.requires_sqlite


@pytest.fixture
async def catalog(session):
    await session.execute(
        "CREATE TABLE users(id INTEGER PRIMARY KEY, name TEXT NOT NULL DEFAULT 'anon', score REAL)"
    )
    await session.execute('CREATE TABLE "odd name"(value)')
    await session.execute("CREATE VIEW top_users AS SELECT * FROM users WHERE score > 10")
    await session.execute("CREATE INDEX users_by_name ON users(name)")
    await session.execute(
        "CREATE TRIGGER users_touch AFTER INSERT ON users BEGIN SELECT 1; END"
    )
    return session


@pytest.mark.asyncio
async def test_object_lists(catalog):
    assert await tables(catalog) == ["odd name", "users"]
    assert await views(catalog) == ["top_users"]
    assert await indexes(catalog) == ["users_by_name"]
    assert await triggers(catalog) == ["users_touch"]


@pytest.mark.asyncio
async def test_internal_objects_are_hidden(session):
    await session.execute("CREATE TABLE counters(id INTEGER PRIMARY KEY AUTOINCREMENT)")
    await session.execute("CREATE TABLE pairs(a, b, UNIQUE(a, b))")
    # sqlite_sequence and sqlite_autoindex_* exist but are not reported
    assert await tables(session) == ["counters", "pairs"]
    assert await indexes(session) == []


@pytest.mark.asyncio
async def test_table_columns(catalog):
    assert await table_columns(catalog, "users") == [
        ColumnInfo(ordinal=0, name="id", type="INTEGER", primary_key=True),
        ColumnInfo(ordinal=1, name="name", type="TEXT", not_null=True, default="'anon'"),
        ColumnInfo(ordinal=2, name="score", type="REAL"),
    ]


@pytest.mark.asyncio
async def test_columns_of_quoted_table(catalog):
    assert await table_columns(catalog, "odd name") == [ColumnInfo(ordinal=0, name="value")]


@pytest.mark.asyncio
async def test_unknown_table(session):
    assert await table_columns(session, "missing") == []
