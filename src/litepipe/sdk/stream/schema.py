"""
Schema introspection through the standard sqlite3 catalog statements.

Object lists come from ``sqlite_master`` and skip the ``sqlite_`` internal
objects; column metadata comes from ``PRAGMA table_info``.
"""

from .escape import sqlite3_format
from .models import ColumnInfo
from .session import StreamSession

_OBJECT_QUERY = (
    "SELECT name FROM sqlite_master "
    "WHERE type = %T AND name NOT LIKE 'sqlite\\_%%' ESCAPE '\\' "
    "ORDER BY name"
)


async def _object_names(session: StreamSession, object_type: str) -> list[str]:
    rows = await session.invoke_query(sqlite3_format(_OBJECT_QUERY, object_type))
    return [str(row[0]) for row in rows]


async def tables(session: StreamSession) -> list[str]:
    return await _object_names(session, "table")


async def views(session: StreamSession) -> list[str]:
    return await _object_names(session, "view")


async def indexes(session: StreamSession) -> list[str]:
    return await _object_names(session, "index")


async def triggers(session: StreamSession) -> list[str]:
    return await _object_names(session, "trigger")


async def table_columns(session: StreamSession, table: str) -> list[ColumnInfo]:
    """Return the columns of ``table`` in declaration order.

    An unknown table yields an empty list, as sqlite3 itself reports no rows.
    """
    rows = await session.invoke_query(sqlite3_format("PRAGMA table_info(%I)", table))
    return [
        ColumnInfo(
            ordinal=int(cid),
            name=str(name),
            type="" if col_type is None else str(col_type),
            not_null=bool(notnull),
            default=default,
            primary_key=bool(pk),
        )
        for cid, name, col_type, notnull, default, pk in rows
    ]
