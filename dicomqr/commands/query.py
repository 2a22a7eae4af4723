"""\b
Query every checked server, list the merged results and optionally
retrieve a selection.

The flow:

1. Build the filter set from the options and query each checked server.
2. Print the staged studies plus any per-server errors.
3. With ``--retrieve``, pick rows (``--select`` or a prompt) and pull each
   study from the server that reported it.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import click
from click import pass_context

from dicomqr.commands._shared import (
    ConsoleObserver,
    build_orchestrator,
    cancel_on_interrupt,
    retrieve_selected,
    server_list,
)
from dicomqr.utils.display import display_query_errors, display_studies
from dicomqr.utils.input_helpers import prompt_input, prompt_yes_no
from dicomqr.utils.selection import parse_selection


def build_filters(**options: Optional[str]) -> Dict[str, str]:
    """Map CLI option values onto C-FIND match keywords, skipping blanks."""
    keywords = {
        "patient_name": "PatientName",
        "patient_id": "PatientID",
        "study_date": "StudyDate",
        "modality": "ModalitiesInStudy",
        "accession": "AccessionNumber",
        "description": "StudyDescription",
    }
    return {keywords[k]: v for k, v in options.items() if k in keywords and v}


@click.command("query")
@click.option("--patient-name", help="PatientName match (wildcards allowed, e.g. 'DOE^*').")
@click.option("--patient-id", help="PatientID match.")
@click.option("--study-date", help="StudyDate or range, e.g. 20240101-20240131.")
@click.option("--modality", help="ModalitiesInStudy match, e.g. MR.")
@click.option("--accession", help="AccessionNumber match.")
@click.option(
    "-d",
    "--description",
    envvar="DICOMQR_STUDY_DESCRIPTION",
    help="StudyDescription match (defaults to $DICOMQR_STUDY_DESCRIPTION).",
)
@click.option("-s", "--server", "server_names", multiple=True, help="Query only this server (repeatable).")
@click.option("--retrieve", "do_retrieve", is_flag=True, help="Retrieve a selection after the query.")
@click.option("--select", "selection", help="Rows to retrieve, e.g. '1,3-5' or 'all'.")
@pass_context
def query(
    ctx: click.Context,
    patient_name: Optional[str],
    patient_id: Optional[str],
    study_date: Optional[str],
    modality: Optional[str],
    accession: Optional[str],
    description: Optional[str],
    server_names: Tuple[str, ...],
    do_retrieve: bool,
    selection: Optional[str],
) -> None:
    """Query the checked servers and display the merged study list.

    Exits with status 1 when no study was found or the retrieve failed.
    """
    filters = build_filters(
        patient_name=patient_name,
        patient_id=patient_id,
        study_date=study_date,
        modality=modality,
        accession=accession,
        description=description,
    )
    servers = server_list(ctx, server_names)
    orchestrator = build_orchestrator(ctx.obj, servers, ConsoleObserver())

    try:
        # ------------------------------------------------------------------ #
        # 1. Query                                                            #
        # ------------------------------------------------------------------ #
        with cancel_on_interrupt(orchestrator):
            result = orchestrator.run_query(filters)
        if result.aborted:
            click.echo(f"[ERROR] {result.message}", err=True)
            ctx.exit(1)

        # ------------------------------------------------------------------ #
        # 2. Show merged results                                              #
        # ------------------------------------------------------------------ #
        display_query_errors(result)
        staging = orchestrator.staging
        studies = staging.studies()
        display_studies(studies, partial=staging.partial)
        if not orchestrator.retrieve_enabled:
            ctx.exit(1)
        if not do_retrieve:
            return

        # ------------------------------------------------------------------ #
        # 3. Select and retrieve                                              #
        # ------------------------------------------------------------------ #
        if selection is None:
            rows = prompt_input(
                "Rows to retrieve (e.g. 1,3-5 or all)",
                default="all",
                convert=lambda text: parse_selection(text, len(studies)),
            )
            if not prompt_yes_no(f"Retrieve {len(rows)} studies?", default=True):
                return
        else:
            try:
                rows = parse_selection(selection, len(studies))
            except ValueError as exc:
                click.echo(f"[ERROR] --select: {exc}", err=True)
                ctx.exit(1)

        retrieve_selected(ctx, orchestrator, [studies[i]["study_uid"] for i in rows])
    finally:
        orchestrator.close()
