from pathlib import Path

import click

from litepipe.cli.table_renderer import render_table
from litepipe.cli.utils import (
    configure_logging,
    get_env_database,
    get_env_flag,
    output_error,
    output_result,
    run_async_cli,
)
from litepipe.config.loader import load_stream_config
from litepipe.sdk.stream import LazyReader, StreamFlags, StreamRuntime, StreamSession


@click.command(name="query")
@click.argument("sql", required=False)
@click.option("--db", "database", help="Database file (default: LITEPIPE_DATABASE or a temporary database)")
@click.option("--file", type=click.Path(exists=True), help="Path to SQL file")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--lazy", is_flag=True, help="Stream rows through a lazy reader as they arrive")
@click.option("--readonly", is_flag=True, help="Open the database in read-only mode")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def query(
    sql: str | None,
    database: str | None,
    file: str | None,
    json_output: bool,
    lazy: bool,
    readonly: bool,
    debug: bool,
) -> None:
    """Execute a single SQL statement through the sqlite3 shell.

    \b
    Examples:
        litepipe query "SELECT * FROM users" --db app.db
        litepipe query --file report.sql --db app.db --json-output
        litepipe query "SELECT * FROM events" --db app.db --lazy
    """
    configure_logging(debug)
    if not readonly:
        readonly = get_env_flag("LITEPIPE_READONLY")

    try:
        if not sql and not file:
            raise click.BadParameter("Either SQL query or --file must be provided")
        if sql and file:
            raise click.BadParameter("Cannot provide both SQL query and --file")
        query_sql = sql or Path(file).read_text()  # type: ignore[arg-type]
        if not query_sql.strip():
            raise click.BadParameter("SQL query cannot be empty")

        run_async_cli(
            _query_async(query_sql, database or get_env_database(), json_output, lazy, readonly)
        )
    except click.ClickException:
        raise
    except KeyboardInterrupt:
        if not json_output:
            click.echo("\nOperation cancelled by user", err=True)
        raise click.Abort() from None
    except Exception as e:
        output_error(e, json_output, debug)


async def _query_async(
    query_sql: str, database: str | None, json_output: bool, lazy: bool, readonly: bool
) -> None:
    """Async implementation of the query command."""
    flags = StreamFlags(readonly=readonly)
    async with StreamRuntime(load_stream_config()) as runtime:
        session = await StreamSession.open(database, flags=flags, runtime=runtime)
        try:
            if lazy:
                await _stream_rows(session, query_sql, json_output)
                return

            header, rows = await session.query_with_header(query_sql)
        finally:
            await session.close()

    if json_output:
        output_result([dict(zip(header, row)) for row in rows], json_output)
        return

    click.echo(f"\n{click.style('✅ Query executed successfully!', fg='green', bold=True)}")
    if rows:
        render_table(header, rows, title="Query Results")
        if len(rows) > 100:
            click.echo(
                f"{click.style('💡 Tip:', fg='yellow')} Use {click.style('--json-output', fg='cyan')} to export all results"
            )
    else:
        click.echo(f"\n{click.style('ℹ️  No results returned', fg='blue')}")
    click.echo()


async def _stream_rows(session: StreamSession, query_sql: str, json_output: bool) -> None:
    reader = await LazyReader.open(session, query_sql)
    async with reader:
        async for row in reader:
            if json_output:
                output_result(dict(zip(reader.header or [], row)), json_output)
            else:
                click.echo(",".join("NULL" if value is None else str(value) for value in row))
