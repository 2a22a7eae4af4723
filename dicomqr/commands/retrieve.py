"""\b
Retrieve studies by ``StudyInstanceUID``.

The servers are queried for the requested UIDs first so that each study is
moved from the node that actually holds it.
"""

from __future__ import annotations

from typing import Tuple

import click
from click import pass_context

from dicomqr.commands._shared import (
    ConsoleObserver,
    build_orchestrator,
    cancel_on_interrupt,
    retrieve_selected,
    server_list,
)
from dicomqr.utils.display import display_query_errors


@click.command("retrieve")
@click.option("--uid", "uids", multiple=True, required=True, help="StudyInstanceUID to retrieve (repeatable).")
@click.option("-s", "--server", "server_names", multiple=True, help="Search only this server (repeatable).")
@pass_context
def retrieve(ctx: click.Context, uids: Tuple[str, ...], server_names: Tuple[str, ...]) -> None:
    """Locate each UID on the checked servers, then retrieve it."""
    wanted = list(dict.fromkeys(uids))
    servers = server_list(ctx, server_names)
    orchestrator = build_orchestrator(ctx.obj, servers, ConsoleObserver())

    try:
        # UI-valued attributes accept a backslash-separated list of UIDs
        with cancel_on_interrupt(orchestrator):
            result = orchestrator.run_query({"StudyInstanceUID": "\\".join(wanted)})
        if result.aborted:
            click.echo(f"[ERROR] {result.message}", err=True)
            ctx.exit(1)
        display_query_errors(result)

        owners = orchestrator.study_owners
        missing = [uid for uid in wanted if uid not in owners]
        for uid in missing:
            click.echo(f"[WARNING] {uid} not found on any server.", err=True)

        found = [uid for uid in wanted if uid in owners]
        if not found:
            click.echo("[ERROR] No studies to retrieve.", err=True)
            ctx.exit(1)

        for uid in found:
            click.echo(f"- {uid} ← {owners[uid].server}")
        retrieve_selected(ctx, orchestrator, found)
        if missing:
            ctx.exit(1)
    finally:
        orchestrator.close()
