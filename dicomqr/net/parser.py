"""Parse ``findscu`` text output into :class:`StudyRecord` objects.

Attribute tags are resolved to keywords through the pydicom data
dictionary, so the parser does not need a hand-maintained tag table.
"""

from __future__ import annotations

import re
from typing import Dict, List

from pydicom.datadict import keyword_for_tag

from dicomqr.models import StudyRecord

_ATTR_RE = re.compile(r"^\(([\da-fA-F]{4}),([\da-fA-F]{4})\)\s+(\S+)\s+\[(.*)\]")
_STATUS_RE = re.compile(r"status=([0-9a-fA-F]+)H")

# Keyword → StudyRecord field
FIELD_MAP: Dict[str, str] = {
    "StudyInstanceUID": "study_uid",
    "PatientName": "patient_name",
    "PatientID": "patient_id",
    "StudyDate": "study_date",
    "StudyTime": "study_time",
    "StudyDescription": "study_description",
    "AccessionNumber": "accession_number",
    "ModalitiesInStudy": "modalities",
}


def _flush(current: Dict[str, str], found: Dict[str, StudyRecord]) -> None:
    uid = current.get("study_uid")
    if uid:
        found[uid] = StudyRecord(**current)


def parse_study_records(output: str) -> List[StudyRecord]:
    """Convert ``findscu`` output into study records.

    The dcm4che tool emits lines such as::

        (0010,0010) PN [DOE^JOHN] PatientName
        ...
        status=ff00H   # pending: one match complete
        ...
        status=0H      # final

    One record is built per ``status`` boundary.  Records without a
    StudyInstanceUID are dropped and repeated UIDs collapse onto the last
    occurrence.

    Args:
        output: Raw stdout captured from the ``findscu`` subprocess.

    Returns:
        list[StudyRecord]: Matches in first-seen order.
    """
    found: Dict[str, StudyRecord] = {}
    current: Dict[str, str] = {}

    for line in output.splitlines():
        m = _ATTR_RE.match(line.strip())
        if m:
            tag = int(m.group(1) + m.group(2), 16)
            field = FIELD_MAP.get(keyword_for_tag(tag))
            if field:
                current[field] = m.group(4).strip()
            continue

        if _STATUS_RE.search(line):
            _flush(current, found)
            current = {}

    # Trailing record without a status line
    _flush(current, found)

    return list(found.values())
