"""
Helpers reused by several Click commands (*query*, *retrieve*).

They wire configuration into an :class:`~dicomqr.orchestrator.Orchestrator`,
translate run notifications into console lines and turn Ctrl-C into a
cooperative cancellation request.
"""

from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import click
from click import Context

from dicomqr.config.schema import ConfigSchema
from dicomqr.errors import DicomQRError
from dicomqr.models import RetrievePhase
from dicomqr.net.query import DicomQuery
from dicomqr.net.retrieve import DicomRetrieve
from dicomqr.orchestrator import Orchestrator
from dicomqr.progress import Observer
from dicomqr.servers import ServerList
from dicomqr.staging import StudyIndex
from dicomqr.utils.display import summarize_retrieve


class ConsoleObserver(Observer):
    """Echo run notifications to stderr."""

    def __init__(self) -> None:
        self.percent = 0.0

    def query_progress(self, server_index: int, intra_percent: int, percent: float) -> None:
        self.percent = percent

    def query_label(self, text: str) -> None:
        click.echo(f"[{self.percent:3.0f}%] {text}", err=True)

    def retrieve_event(self, study_uid: str, phase: RetrievePhase, message: str = "") -> None:
        if phase is RetrievePhase.STARTED:
            click.echo(f"> Retrieving {study_uid}")
        elif phase is RetrievePhase.SUCCEEDED:
            click.echo(f"[ Retrieve Complete ] {study_uid}")
        else:
            click.echo(f"[ERROR] Retrieve failed for {study_uid}: {message}", err=True)


def build_orchestrator(
    cfg: ConfigSchema,
    servers: ServerList,
    observer: Optional[Observer] = None,
) -> Orchestrator:
    """Create an orchestrator using the dcm4che operations from *cfg*."""
    tools = cfg.tools
    return Orchestrator(
        provider=servers,
        query_operation=DicomQuery(
            image=tools.image,
            query_tags=cfg.query_tags,
            network=tools.network,
            timeout=tools.timeout,
        ),
        retrieve_operation=DicomRetrieve(
            image=tools.image,
            network=tools.network,
            timeout=tools.timeout,
        ),
        observer=observer,
    )


def server_list(ctx: Context, names: tuple[str, ...]) -> ServerList:
    """Return the configured servers, restricted to *names* when given."""
    servers = ServerList.from_config(ctx.obj)
    if names:
        try:
            servers.restrict_to(names)
        except DicomQRError as exc:
            click.echo(f"[ERROR] {exc}", err=True)
            ctx.exit(1)
    if not servers.checked_servers():
        click.echo("[ERROR] No checked servers to query.", err=True)
        ctx.exit(1)
    return servers


@contextmanager
def cancel_on_interrupt(orchestrator: Orchestrator) -> Iterator[None]:
    """Map the first Ctrl-C to :meth:`Orchestrator.cancel`.

    A second Ctrl-C restores the default handler behaviour and interrupts
    immediately.  Outside the main thread the block runs unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum, frame):
        click.echo("\n[INFO] Cancelling after the current operation…", err=True)
        orchestrator.cancel()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def open_destination(cfg: ConfigSchema) -> StudyIndex:
    """Open the persistent index that records retrieved studies."""
    path = Path(cfg.storage.database).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return StudyIndex().open(path)


def retrieve_selected(ctx: Context, orchestrator: Orchestrator, uids: List[str]) -> None:
    """Retrieve *uids* into the configured destination and report the result.

    Exits the current command with status 1 when the batch fails.
    """
    try:
        destination = open_destination(ctx.obj)
    except DicomQRError as exc:
        click.echo(f"[ERROR] {exc}", err=True)
        ctx.exit(1)

    orchestrator.set_retrieve_destination(destination)
    try:
        with cancel_on_interrupt(orchestrator):
            result = orchestrator.run_retrieve(uids)
    finally:
        destination.close()

    summarize_retrieve(result, requested=len(uids))
    if not result.ok:
        ctx.exit(1)
