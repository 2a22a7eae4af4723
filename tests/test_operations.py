from dicomqr.models import QueryContext, RetrieveContext
from dicomqr.net import DicomQuery, DicomRetrieve

OUTPUT = (
    "(0020,000D) UI [1.2.3] StudyInstanceUID\n(0010,0010) PN [DOE^J] PatientName\n"
    "status=ff00H\n"
    "(0020,000D) UI [4.5.6] StudyInstanceUID\nstatus=0H\n"
)


def test_query_runs_findscu_and_stages_records(staging):
    calls = []

    def runner(cmd, timeout=None, server=None):
        calls.append((cmd, timeout, server))
        return OUTPUT

    events = []
    op = DicomQuery(image="img", network=None, timeout=30, runner=runner)
    ctx = QueryContext(
        server="A",
        calling_ae_title="DICOMQR",
        called_ae_title="A_AE",
        host="a",
        port=104,
        filters={"PatientName": "DOE*"},
    )

    uids = op.query(ctx, staging, events.append)

    assert uids == {"1.2.3", "4.5.6"}
    cmd, timeout, server = calls[0]
    assert "-m" in cmd and "PatientName=DOE*" in cmd
    assert (timeout, server) == (30, "A")
    assert [e.percent for e in events] == [0, 50, 80, 100]
    assert staging.row_count() == 2


def test_retrieve_runs_movescu_and_records(destination):
    calls = []
    op = DicomRetrieve(image="img", runner=lambda cmd, **kw: calls.append(cmd) or "")
    ctx = RetrieveContext(
        study_uid="1.2.3",
        server="A",
        calling_ae_title="DICOMQR",
        called_ae_title="A_AE",
        host="a",
        port=104,
        move_destination="STORE",
        calling_port=11113,
    )

    op.retrieve_study(ctx, destination)

    assert "StudyInstanceUID=1.2.3" in calls[0]
    assert [r["study_uid"] for r in destination.retrievals()] == ["1.2.3"]
