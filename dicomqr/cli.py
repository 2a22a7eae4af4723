"""\b
Command-line interface entry point for *dicomqr*.

The module configures logging, loads the YAML configuration, and registers
the sub-commands (server listing, federated query, retrieve by UID).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import click

from dicomqr import __version__
from dicomqr.commands.query import query as query_cmd
from dicomqr.commands.retrieve import retrieve as retrieve_cmd
from dicomqr.commands.servers import servers as servers_cmd
from dicomqr.config import load_config
from dicomqr.errors import ConfigError
from dicomqr.utils.logging import setup_logging

_CTX: Dict[str, Any] = dict(
    help_option_names=["-h", "--help"],
    max_content_width=120,
)


@click.group(context_settings=_CTX)
@click.version_option(__version__)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to YAML configuration file.",
)
@click.option("-v", "--verbose", is_flag=True, help="INFO-level console output.")
@click.option("--debug", is_flag=True, help="DEBUG-level console output.")
@click.option(
    "--save-logfile",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Mirror log output into this plain-text file.",
)
@click.pass_context
def cli(  # noqa: D401 – imperative form is acceptable for CLI description
    ctx: click.Context,
    config_path: str | None,
    verbose: bool,
    debug: bool,
    save_logfile: Path | None,
) -> None:
    """Query several DICOM servers at once and retrieve selected studies.

    Args:
        ctx: Click context object provided by ``@click.pass_context``.
        config_path: Optional path to the YAML configuration file.
        verbose: Enable info-level logging when ``True``.
        debug: Enable debug-level logging when ``True``.
        save_logfile: Optional plain-text log mirror.
    """
    # ── 1. Configure logging ──────────────────────────────────────────
    setup_logging(verbose=verbose, debug=debug, extra_text_log=save_logfile)

    # ── 2. Load configuration ────────────────────────────────────────
    try:
        cfg = load_config(config_path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    # Expose the final configuration to sub-commands
    ctx.obj = cfg


# --------------------------------------------------------------------- #
# Sub-command registration                                              #
# --------------------------------------------------------------------- #
cli.add_command(servers_cmd)
cli.add_command(query_cmd)
cli.add_command(retrieve_cmd)

if __name__ == "__main__":
    cli()
