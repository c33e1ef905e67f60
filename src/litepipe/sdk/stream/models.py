"""Pydantic models for the sqlite3 stream layer.

This module contains the data structures that configure how the sqlite3
program is launched and supervised, and the records returned by schema
introspection.
"""

from pydantic import Field

from litepipe.sdk.models import SdkBaseModel


class StreamConfigModel(SdkBaseModel):
    """Configuration shared by every session of a runtime.

    Attributes:
        program: sqlite3 executable name or path
        quit_timeout: Seconds to wait for ``.quit`` before killing the process
        poll_interval: First delay between buffer checks while waiting for a prompt
        max_poll_interval: Upper bound the adaptive delay grows to
        read_size: Maximum bytes read from the pipe per chunk
        use_pty: Run the tool through a pseudo-terminal relay program
        pty_relay: Relay program used when ``use_pty`` is set
        null_sentinel: Fixed NULL sentinel; negotiated per query when unset
        convert_numbers: Return unquoted INTEGER and REAL output as int and float;
            when off every non-NULL value comes back as the text the shell printed

    Example:
        >>> config = StreamConfigModel(program="/usr/bin/sqlite3", quit_timeout=1.0)
    """

    program: str = "sqlite3"
    quit_timeout: float = Field(default=3.0, gt=0)
    poll_interval: float = Field(default=0.005, gt=0)
    max_poll_interval: float = Field(default=0.1, gt=0)
    read_size: int = Field(default=65536, gt=0)
    use_pty: bool = False
    pty_relay: str | None = None
    null_sentinel: str | None = None
    convert_numbers: bool = True


class StreamFlags(SdkBaseModel):
    """Per-launch command-line flags.

    Attributes:
        interactive: ``-interactive`` (prompting session) when true, ``-batch`` otherwise
        header: Start with header echo enabled
        readonly: Open the database with ``-readonly``
        extra_args: Additional arguments inserted before the database path
    """

    interactive: bool = True
    header: bool = False
    readonly: bool = False
    extra_args: tuple[str, ...] = ()


class ColumnInfo(SdkBaseModel):
    """One row of ``PRAGMA table_info``.

    Attributes:
        ordinal: Column index (``cid``)
        name: Column name
        type: Declared type, empty when none was declared
        not_null: Whether the column carries a NOT NULL constraint
        default: Default value expression as reported by sqlite3
        primary_key: Whether the column is part of the primary key
    """

    ordinal: int
    name: str
    type: str = ""
    not_null: bool = False
    default: str | int | float | None = None
    primary_key: bool = False
