"""Integration tests for transaction bracketing."""

import pytest

from litepipe.sdk.stream import SqlSyntaxError, read_query, run_transaction, transaction

pytestmark = pytest.mark.requires_sqlite


async def _count(database, runtime):
    rows = await read_query(database, "SELECT count(*) FROM t", runtime=runtime)
    return rows[0][0]


@pytest.fixture
async def table(runtime, database):
    await read_query(database, "CREATE TABLE t(a INTEGER, b TEXT); INSERT INTO t VALUES (1, 'x')", runtime=runtime)
    return database


class TestRunTransaction:
    """Transactions on a dedicated session."""

    @pytest.mark.asyncio
    async def test_commit(self, runtime, table):
        async def body(session):
            await session.execute("INSERT INTO t VALUES (2, 'y')")
            return "done"

        assert await run_transaction(table, body, runtime=runtime) == "done"
        assert await _count(table, runtime) == 2
        assert runtime.sessions == []

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, runtime, table):
        before = await _count(table, runtime)

        async def body(session):
            await session.execute("INSERT INTO t VALUES (3, 'z')")
            raise ValueError("abort the change")

        with pytest.raises(ValueError, match="abort the change"):
            await run_transaction(table, body, runtime=runtime)
        assert await _count(table, runtime) == before
        assert runtime.sessions == []

    @pytest.mark.asyncio
    async def test_rollback_on_sql_error(self, runtime, table):
        async def body(session):
            await session.execute("INSERT INTO t VALUES (4, 'w')")
            await session.execute("INSERT INTO missing VALUES (1)")

        with pytest.raises(SqlSyntaxError):
            await run_transaction(table, body, runtime=runtime)
        assert await _count(table, runtime) == 1


class TestTransactionContext:
    """Transactions on a caller-owned session."""

    @pytest.mark.asyncio
    async def test_session_stays_open(self, populated):
        with pytest.raises(KeyError):
            async with transaction(populated):
                await populated.execute("DELETE FROM t")
                raise KeyError("stop")

        assert populated.alive
        assert await populated.invoke_query("SELECT count(*) FROM t") == [(2,)]

        async with transaction(populated) as session:
            await session.execute("DELETE FROM t")
        assert await populated.invoke_query("SELECT count(*) FROM t") == [(0,)]
