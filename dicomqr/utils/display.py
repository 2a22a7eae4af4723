"""
Presentation helpers for CLI commands.

The functions here format and print server lists, staged studies and run
summaries.  Pure string/console logic lives here so that the orchestration
code remains free of I/O.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

import click
import tableprint as tp

from dicomqr.models import QueryRunResult, RetrieveRunResult, ServerDescriptor

STUDY_HEADERS = ["#", "Date", "Patient", "Patient ID", "Description", "Modalities", "Server", "UID"]

_CAPS = {"Patient": 24, "Description": 28, "UID": 40, "Server": 16}


# -----------------------------------------------------------------------------#
# Internal helpers                                                             #
# -----------------------------------------------------------------------------#
def _echo_count(kind: str, n: int) -> None:
    """Emit a one-line “Found N <kind>(s)” banner."""
    label = kind if n == 1 else kind + "s"
    click.echo(f"Found {n} {label}:")


def _print_table(rows: List[List[str]], headers: List[str]) -> None:
    rows = truncate_rows(rows, headers, _CAPS)
    widths = [
        max([len(headers[i])] + [len(r[i]) for r in rows]) + 2
        for i in range(len(headers))
    ]
    tp.table(rows, headers=headers, width=widths, align="left")


# -----------------------------------------------------------------------------#
# Public listings                                                              #
# -----------------------------------------------------------------------------#
def display_servers(servers: Sequence[ServerDescriptor]) -> None:
    """Print configured servers with their checked state."""
    if not servers:
        click.echo("[INFO] No servers configured.")
        return
    rows = [
        [s.name, s.ae_title, s.address, str(s.port), "yes" if s.checked else "no"]
        for s in servers
    ]
    _print_table(rows, ["Name", "AE Title", "Address", "Port", "Checked"])


def study_rows(studies: List[Dict[str, str]]) -> List[List[str]]:
    """Return one numbered table row per staged study."""
    return [
        [
            str(i),
            st.get("study_date") or "N/A",
            st.get("patient_name") or "",
            st.get("patient_id") or "",
            st.get("study_description") or "",
            st.get("modalities") or "",
            st.get("server") or "",
            st.get("study_uid") or "",
        ]
        for i, st in enumerate(studies, start=1)
    ]


def display_studies(studies: List[Dict[str, str]], partial: bool = False) -> None:
    """Print a numbered table of staged studies.

    Args:
        studies: Rows returned by :meth:`dicomqr.staging.StudyIndex.studies`.
        partial: Mention that the run was cancelled before every server
            answered.
    """
    _echo_count("study", len(studies))
    if studies:
        _print_table(study_rows(studies), STUDY_HEADERS)
    if partial:
        click.echo("[WARNING] Query cancelled; results are partial.", err=True)


def display_query_errors(result: QueryRunResult) -> None:
    for server, message in result.errors.items():
        click.echo(f"[ERROR] Query error: {server}: {message}", err=True)
    for uid, names in result.conflicts.items():
        click.echo(
            f"[WARNING] {uid} reported by {', '.join(names)}; using {names[-1]}",
            err=True,
        )


def summarize_retrieve(result: RetrieveRunResult, requested: int) -> None:
    """Print a one-line summary plus the failure detail, if any."""
    click.echo(f"\n=== Retrieved {len(result.retrieved)}/{requested} studies ===")
    failure = result.failure
    if failure is not None:
        click.echo(f"[ERROR] Retrieve failed for {failure.study_uid}: {failure.message}", err=True)
        skipped = requested - len(result.outcomes)
        if skipped:
            click.echo(f"[INFO] {skipped} remaining studies were not attempted.")
    elif result.cancelled:
        click.echo("[WARNING] Retrieve cancelled before all studies were attempted.", err=True)


# -----------------------------------------------------------------------------#
# Pure utility                                                                 #
# -----------------------------------------------------------------------------#
def truncate_rows(
    rows: List[List[str]],
    headers: List[str],
    caps: Dict[str, int],
) -> List[List[str]]:
    """Return a copy of *rows* with overly long cells truncated.

    Args:
        rows:     2-D list of text cells.
        headers:  Header names aligned with row indices.
        caps:     Per-header maximum length.

    Returns:
        List of new, possibly truncated, rows.
    """
    out: List[List[str]] = []
    for row in rows:
        new_row = []
        for i, cell in enumerate(row):
            limit = caps.get(headers[i])
            if limit and len(cell) > limit:
                new_row.append(cell[: limit - 1] + "…")
            else:
                new_row.append(cell)
        out.append(new_row)
    return out
