"""List the configured DICOM servers."""

from __future__ import annotations

import click
from click import pass_context

from dicomqr.servers import ServerList
from dicomqr.utils.display import display_servers


@click.command("servers")
@pass_context
def servers(ctx: click.Context) -> None:
    """Show every configured server and whether it is checked."""
    display_servers(ServerList.from_config(ctx.obj).servers)
