import click

from litepipe.cli.utils import configure_logging, output_error, output_result
from litepipe.config.loader import load_stream_config
from litepipe.sdk.core.version import PACKAGE_NAME, version_report


@click.command(name="version")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def version(json_output: bool, debug: bool) -> None:
    """Show the litepipe version and the sqlite3 program it drives."""
    configure_logging(debug)
    try:
        report = version_report(load_stream_config().program)
        if json_output:
            output_result(report, json_output)
        else:
            click.echo(f"{PACKAGE_NAME} {report[PACKAGE_NAME]}")
            click.echo(f"{report['program']} {report['sqlite3']}")
    except Exception as e:
        output_error(e, json_output, debug)
