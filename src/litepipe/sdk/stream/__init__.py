"""sqlite3 stream layer.

Drives the interactive ``sqlite3`` shell over a text pipe and offers three
ways to consume results on top of one serialized request/response channel:

- ``StreamSession.invoke_query``: run a statement and return every row
- ``LazyReader``: pull rows one at a time with seek and peek
- ``start_query``: push rows to a callback from a one-shot batch process

plus ``run_transaction`` for BEGIN/COMMIT/ROLLBACK bracketing. All processes
are tracked by a ``StreamRuntime`` that the host shuts down explicitly.
"""

from .async_reader import AsyncQuery, collect_query, start_query
from .csv_parser import CsvStreamParser, DrainResult, drain
from .errors import (
    ConfigurationError,
    ProcessTerminated,
    ProgramNotFound,
    SessionClosed,
    SqlSyntaxError,
    StreamError,
    StreamTimeout,
)
from .escape import (
    escape_like,
    escape_string,
    quote_identifier,
    quote_literal,
    quote_value,
    sqlite3_format,
)
from .models import ColumnInfo, StreamConfigModel, StreamFlags
from .process import ProcessSupervisor, build_command
from .reader import LazyReader, open_reader
from .runtime import StreamRuntime, get_default_runtime, set_default_runtime
from .schema import indexes, table_columns, tables, triggers, views
from .session import StreamSession, onetime_stream, open_stream, read_query, terminate_statement
from .sync import PromptSynchronizer
from .transaction import run_transaction, transaction
from .types import Row, RowCallback, Scalar, SessionState, SyncResult
from .util import (
    check_version,
    expand_database_path,
    installed_version,
    is_sqlite_database,
    make_null_sentinel,
)

__all__ = [
    "AsyncQuery",
    "ColumnInfo",
    "ConfigurationError",
    "CsvStreamParser",
    "DrainResult",
    "LazyReader",
    "ProcessSupervisor",
    "ProcessTerminated",
    "ProgramNotFound",
    "PromptSynchronizer",
    "Row",
    "RowCallback",
    "Scalar",
    "SessionClosed",
    "SessionState",
    "SqlSyntaxError",
    "StreamConfigModel",
    "StreamError",
    "StreamFlags",
    "StreamRuntime",
    "StreamSession",
    "StreamTimeout",
    "SyncResult",
    "build_command",
    "check_version",
    "collect_query",
    "drain",
    "escape_like",
    "escape_string",
    "expand_database_path",
    "get_default_runtime",
    "indexes",
    "installed_version",
    "is_sqlite_database",
    "make_null_sentinel",
    "onetime_stream",
    "open_reader",
    "open_stream",
    "quote_identifier",
    "quote_literal",
    "quote_value",
    "read_query",
    "run_transaction",
    "set_default_runtime",
    "sqlite3_format",
    "start_query",
    "table_columns",
    "tables",
    "terminate_statement",
    "transaction",
    "triggers",
    "views",
]
