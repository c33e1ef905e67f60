import click

from litepipe.cli.query import query
from litepipe.cli.schema import columns, objects
from litepipe.cli.version import version


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """litepipe CLI"""
    if ctx.invoked_subcommand is None:
        # Show help when no subcommand is provided
        click.echo(ctx.get_help())


cli.add_command(query)
cli.add_command(objects)
cli.add_command(columns)
cli.add_command(version)


if __name__ == "__main__":
    cli()
