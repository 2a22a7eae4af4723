from dicomqr.models import (
    ErrorKind,
    QueryOutcome,
    QueryRunResult,
    RetrieveOutcome,
    RetrieveRunResult,
)
from dicomqr.utils.display import (
    display_query_errors,
    study_rows,
    summarize_retrieve,
    truncate_rows,
)


def test_truncate_rows_caps_long_cells():
    rows = [["short", "x" * 10]]
    out = truncate_rows(rows, ["A", "B"], {"B": 5})
    assert out == [["short", "xxxx…"]]
    assert rows[0][1] == "x" * 10


def test_study_rows_are_numbered():
    rows = study_rows([{"study_uid": "1.2", "patient_name": "DOE", "server": "A"}])
    assert rows == [["1", "N/A", "DOE", "", "", "", "A", "1.2"]]


def test_query_errors_and_conflicts(capsys):
    result = QueryRunResult(
        outcomes=[QueryOutcome(server="B", error=ErrorKind.SERVER_QUERY, message="refused")],
        conflicts={"s1": ["A", "C"]},
    )
    display_query_errors(result)
    err = capsys.readouterr().err
    assert "[ERROR] Query error: B: refused" in err
    assert "s1 reported by A, C; using C" in err


def test_retrieve_summary_mentions_skipped(capsys):
    result = RetrieveRunResult(
        outcomes=[
            RetrieveOutcome(study_uid="s1", server="A"),
            RetrieveOutcome(study_uid="s2", server="A", error=ErrorKind.STUDY_RETRIEVE, message="boom"),
        ]
    )
    summarize_retrieve(result, requested=3)
    captured = capsys.readouterr()
    assert "=== Retrieved 1/3 studies ===" in captured.out
    assert "1 remaining studies were not attempted" in captured.out
    assert "Retrieve failed for s2: boom" in captured.err
