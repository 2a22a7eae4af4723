import pytest

from dicomqr.errors import StagingStoreError
from dicomqr.models import RetrieveContext, StudyRecord
from dicomqr.staging import StudyIndex


def _ctx(uid):
    return RetrieveContext(
        study_uid=uid,
        server="A",
        calling_ae_title="DICOMQR",
        called_ae_title="A_AE",
        host="a.example.org",
        port=104,
        move_destination="LOCAL_STORE",
        calling_port=11113,
    )


def test_open_twice_is_an_error():
    index = StudyIndex().open()
    with pytest.raises(StagingStoreError):
        index.open()
    index.close()


def test_unreachable_path_is_an_error(tmp_path):
    with pytest.raises(StagingStoreError):
        StudyIndex().open(tmp_path / "missing" / "index.sqlite")


def test_insert_and_order(staging):
    staging.insert_studies(
        [
            StudyRecord(study_uid="2", patient_name="B", study_date="20240102"),
            StudyRecord(study_uid="1", patient_name="A", study_date="20240101"),
        ],
        server="A",
    )
    assert staging.row_count() == 2
    rows = staging.studies()
    assert [r["study_uid"] for r in rows] == ["1", "2"]
    assert rows[0]["server"] == "A"


def test_reinsert_replaces_row_and_owner(staging):
    staging.insert_studies([StudyRecord(study_uid="1", patient_name="OLD")], server="A")
    staging.insert_studies([StudyRecord(study_uid="1", patient_name="NEW")], server="B")
    rows = staging.studies()
    assert staging.row_count() == 1
    assert (rows[0]["patient_name"], rows[0]["server"]) == ("NEW", "B")


def test_closed_index_reports_no_rows():
    index = StudyIndex()
    assert index.row_count() == 0
    with pytest.raises(StagingStoreError):
        index.studies()


def test_retrievals_persist_in_file(tmp_path):
    path = tmp_path / "retrieved.sqlite"
    with StudyIndex().open(path) as index:
        index.record_retrieval(_ctx("1.2.3"))

    with StudyIndex().open(path) as index:
        rows = index.retrievals()
    assert [r["study_uid"] for r in rows] == ["1.2.3"]
    assert rows[0]["move_destination"] == "LOCAL_STORE"


def test_context_manager_opens_memory_index():
    with StudyIndex() as index:
        assert index.is_open
        assert index.path == ":memory:"
    assert not index.is_open
