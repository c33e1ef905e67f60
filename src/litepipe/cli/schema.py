import click

from litepipe.cli.utils import (
    configure_logging,
    get_env_database,
    output_error,
    output_result,
    run_async_cli,
)
from litepipe.config.loader import load_stream_config
from litepipe.sdk.stream import ColumnInfo, StreamRuntime, open_stream
from litepipe.sdk.stream import schema as stream_schema

_OBJECT_LISTERS = {
    "tables": stream_schema.tables,
    "views": stream_schema.views,
    "indexes": stream_schema.indexes,
    "triggers": stream_schema.triggers,
}


def _require_database(database: str | None) -> str:
    """Schema commands need an existing database; a temporary one is always empty."""
    database = database or get_env_database()
    if not database:
        raise click.UsageError("No database given: pass --db or set LITEPIPE_DATABASE")
    return database


@click.command(name="objects")
@click.argument("kind", type=click.Choice(sorted(_OBJECT_LISTERS)), default="tables")
@click.option("--db", "database", help="Database file (required unless LITEPIPE_DATABASE is set)")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def objects(kind: str, database: str | None, json_output: bool, debug: bool) -> None:
    """List schema objects (tables, views, indexes or triggers).

    \b
    Examples:
        litepipe objects --db app.db
        litepipe objects views --db app.db --json-output
    """
    configure_logging(debug)
    database = _require_database(database)
    try:
        names = run_async_cli(_list_objects(kind, database))
        if json_output:
            output_result(names, json_output)
        elif names:
            output_result(names)
        else:
            click.echo(f"No {kind} found")
    except Exception as e:
        output_error(e, json_output, debug)


async def _list_objects(kind: str, database: str) -> list[str]:
    async with StreamRuntime(load_stream_config()) as runtime:
        async with open_stream(database, runtime=runtime) as session:
            return await _OBJECT_LISTERS[kind](session)


@click.command(name="columns")
@click.argument("table")
@click.option("--db", "database", help="Database file (required unless LITEPIPE_DATABASE is set)")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def columns(table: str, database: str | None, json_output: bool, debug: bool) -> None:
    """Show column metadata of TABLE.

    \b
    Examples:
        litepipe columns users --db app.db
    """
    configure_logging(debug)
    database = _require_database(database)
    try:
        infos = run_async_cli(_table_columns(table, database))
        if json_output:
            output_result([info.model_dump() for info in infos], json_output)
            return
        if not infos:
            click.echo(f"No such table: {table}")
            return
        for info in infos:
            flags = []
            if info.primary_key:
                flags.append("PRIMARY KEY")
            if info.not_null:
                flags.append("NOT NULL")
            if info.default is not None:
                flags.append(f"DEFAULT {info.default}")
            line = f"{info.ordinal}: {info.name} {info.type}".rstrip()
            click.echo(" ".join([line, *flags]))
    except Exception as e:
        output_error(e, json_output, debug)


async def _table_columns(table: str, database: str) -> list[ColumnInfo]:
    async with StreamRuntime(load_stream_config()) as runtime:
        async with open_stream(database, runtime=runtime) as session:
            return await stream_schema.table_columns(session, table)
