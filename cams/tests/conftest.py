from pathlib import Path
from typing import Dict, Optional

import pytest

from cams.services.data_transfer import TransferService

EMAIL_DOMAIN = "e.ntu.edu.sg"

# One staff member running CAMP1, with one attendee, one committee member,
# one open enquiry and one pending suggestion, plus a student with no
# registrations.
SAMPLE_FILES = {
    "staff.csv": [
        "Name,Email,Faculty,Password,CreatedCamps",
        "Alice,alice@e.ntu.edu.sg,SCSE,password,CAMP1",
    ],
    "student.csv": [
        "Name,Email,Faculty,Password,RegisteredCamps,Enquiries",
        "Bob,bob@e.ntu.edu.sg,SCSE,password,CAMP1,CAMP1=1",
        "Dave,dave@e.ntu.edu.sg,SCSE,password,#NULL!,#NULL!",
    ],
    "committee.csv": [
        "Name,Email,Faculty,Password,RegisteredCamps,Enquiries,FacilitatingCamp,Suggestions,Points",
        "Carol,carol@e.ntu.edu.sg,SCSE,password,CAMP1,#NULL!,CAMP1,1,1",
    ],
    "camp.csv": [
        "Name,StartDate,EndDate,ClosingDate,Location,Faculty,StaffInCharge,TotalSlots,"
        "CommitteeSlots,Description,Attendees,CommitteeMembers,Visible,Suggestions,Enquiries",
        "CAMP1,2026-12-01,2026-12-03,2026-11-20,LT1,SCSE,alice,10,2,Orientation,bob,carol,true,1,1",
    ],
    "enquiry.csv": [
        "EnquiryID,Camp,Enquirer,Enquiry,Replier,Reply",
        "1,CAMP1,bob,When is lunch?,,",
    ],
    "suggestion.csv": [
        "SuggestionID,Camp,Author,Suggestion,Status",
        "1,CAMP1,carol,Add a quiz night,pending",
    ],
}


def write_data_files(directory: Path, files: Dict[str, list]) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    for name, lines in files.items():
        (directory / name).write_text("\n".join(lines) + "\n", encoding="utf-8")
    return directory


def make_transfer(directory: Path, files: Optional[Dict[str, list]] = None) -> TransferService:
    if files is not None:
        write_data_files(directory, files)
    return TransferService(directory, email_domain=EMAIL_DOMAIN)


@pytest.fixture
def data_dir(tmp_path):
    return write_data_files(tmp_path / "data", SAMPLE_FILES)


@pytest.fixture
def transfer(data_dir):
    service = TransferService(data_dir, email_domain=EMAIL_DOMAIN)
    service.import_all()
    return service


@pytest.fixture
def repository(transfer):
    return transfer.repository
