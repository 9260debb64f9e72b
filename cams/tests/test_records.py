from datetime import date

import pytest

from cams.data.records import (
    CampCodec,
    CommitteeCodec,
    EnquiryCodec,
    StaffCodec,
    StudentCodec,
    SuggestionCodec,
    read_table,
    user_codec_for,
    write_table,
)
from cams.errors import FormatError
from cams.schemas import Enquiry, SuggestionStatus, UserRole

from .conftest import EMAIL_DOMAIN, SAMPLE_FILES

CAMP_LINE = SAMPLE_FILES["camp.csv"][1]


def test_student_row_decodes_to_user():
    codec = StudentCodec(EMAIL_DOMAIN)

    user = codec.decode_line("Bob,bob@e.ntu.edu.sg,SCSE,pw,CAMP1|CAMP2,CAMP1=1|2*CAMP2=3", 1, "student.csv")

    assert user.user_id == "bob"
    assert user.role == UserRole.STUDENT
    assert user.registered_camps == ["CAMP1", "CAMP2"]
    assert user.enquiries == {"CAMP1": [1, 2], "CAMP2": [3]}


def test_committee_row_round_trips():
    codec = CommitteeCodec(EMAIL_DOMAIN)
    line = SAMPLE_FILES["committee.csv"][1]

    user = codec.decode_line(line, 1, "committee.csv")

    assert user.facilitating_camp == "CAMP1"
    assert user.suggestions == [1]
    assert user.points == 1
    assert codec.encode(user) == line


def test_staff_row_round_trips():
    codec = StaffCodec(EMAIL_DOMAIN)
    line = SAMPLE_FILES["staff.csv"][1]

    user = codec.decode_line(line, 1, "staff.csv")

    assert user.is_staff
    assert user.created_camps == ["CAMP1"]
    assert codec.encode(user) == line


def test_camp_row_leaves_references_unlinked():
    camp = CampCodec().decode_line(CAMP_LINE, 1, "camp.csv")

    assert camp.start_date == date(2026, 12, 1)
    assert camp.attendees == ["bob"]
    assert camp.suggestions == {1: None}
    assert camp.enquiries == {1: None}
    assert CampCodec().encode(camp) == CAMP_LINE


def test_header_matches_columns():
    assert CampCodec().header == SAMPLE_FILES["camp.csv"][0]
    assert SuggestionCodec().header == SAMPLE_FILES["suggestion.csv"][0]


def test_enquiry_without_reply_uses_empty_fields():
    enquiry = Enquiry(enquiry_id=4, camp_id="CAMP1", enquirer="bob", text="Bring a torch?")

    line = EnquiryCodec().encode(enquiry)

    assert line == "4,CAMP1,bob,Bring a torch?,,"
    decoded = EnquiryCodec().decode_line(line, 1, "enquiry.csv")
    assert decoded.replier is None
    assert decoded.reply is None


def test_suggestion_status_is_case_insensitive():
    suggestion = SuggestionCodec().decode_line("2,CAMP1,carol,More snacks,APPROVED", 1, "suggestion.csv")

    assert suggestion.status == SuggestionStatus.APPROVED


def test_short_row_names_first_missing_column():
    with pytest.raises(FormatError) as excinfo:
        StudentCodec(EMAIL_DOMAIN).decode_line("Bob,bob@e.ntu.edu.sg,SCSE,pw,#NULL!", 7, "student.csv")

    assert excinfo.value.file_name == "student.csv"
    assert excinfo.value.row == 7
    assert excinfo.value.field == "Enquiries"


def test_long_row_is_rejected():
    with pytest.raises(FormatError) as excinfo:
        StaffCodec(EMAIL_DOMAIN).decode_line("Alice,alice@e.ntu.edu.sg,SCSE,pw,#NULL!,extra", 1, "staff.csv")

    assert excinfo.value.field is None


@pytest.mark.parametrize(
    "line, column",
    [
        ("CAMP1,2026-13-01,2026-12-03,2026-11-20,LT1,SCSE,alice,10,2,,#NULL!,#NULL!,true,#NULL!,#NULL!", "StartDate"),
        ("CAMP1,2026-12-01,2026-12-03,2026-11-20,LT1,SCSE,alice,ten,2,,#NULL!,#NULL!,true,#NULL!,#NULL!", "TotalSlots"),
        ("CAMP1,2026-12-01,2026-12-03,2026-11-20,LT1,SCSE,alice,10,2,,#NULL!,#NULL!,often,#NULL!,#NULL!", "Visible"),
        ("CAMP1,2026-12-01,2026-12-03,2026-11-20,LT1,SCSE,alice,-1,2,,#NULL!,#NULL!,true,#NULL!,#NULL!", "TotalSlots"),
        ("CAMP1,2026-12-01,2026-12-03,2026-11-20,LT1,SCSE,alice,10,2,,#NULL!,#NULL!,true,#NULL!,x", "Enquiries"),
    ],
)
def test_bad_camp_fields_are_reported_by_column(line, column):
    with pytest.raises(FormatError) as excinfo:
        CampCodec().decode_line(line, 2, "camp.csv")

    assert excinfo.value.field == column


def test_committee_points_cannot_be_negative():
    line = "Carol,carol@e.ntu.edu.sg,SCSE,pw,CAMP1,#NULL!,CAMP1,#NULL!,-3"

    with pytest.raises(FormatError) as excinfo:
        CommitteeCodec(EMAIL_DOMAIN).decode_line(line, 1, "committee.csv")

    assert excinfo.value.field == "Points"


def test_malformed_email_is_reported():
    with pytest.raises(FormatError) as excinfo:
        StudentCodec(EMAIL_DOMAIN).decode_line("Bob,bob,SCSE,pw,#NULL!,#NULL!", 1, "student.csv")

    assert excinfo.value.field == "Email"


def test_user_codec_for_role():
    assert isinstance(user_codec_for(UserRole.COMMITTEE, EMAIL_DOMAIN), CommitteeCodec)
    assert isinstance(user_codec_for(UserRole.STAFF, EMAIL_DOMAIN), StaffCodec)


def test_read_table_skips_short_row_and_keeps_the_rest(tmp_path):
    path = tmp_path / "student.csv"
    path.write_text(
        "\n".join(
            [
                "Name,Email,Faculty,Password,RegisteredCamps,Enquiries",
                "A,a@e.ntu.edu.sg,SCSE,pw,#NULL!,#NULL!",
                "B,b@e.ntu.edu.sg,SCSE,pw,#NULL!,#NULL!",
                "C,c@e.ntu.edu.sg,SCSE,pw,#NULL!",
                "D,d@e.ntu.edu.sg,SCSE,pw,#NULL!,#NULL!",
                "E,e@e.ntu.edu.sg,SCSE,pw,#NULL!,#NULL!",
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    result = read_table(path, StudentCodec(EMAIL_DOMAIN))

    assert [row for row, _ in result.records] == [1, 2, 4, 5]
    assert [user.user_id for _, user in result.records] == ["a", "b", "d", "e"]
    assert len(result.errors) == 1
    assert result.errors[0].row == 3


def test_write_table_returns_temp_file_beside_target(tmp_path):
    codec = StaffCodec(EMAIL_DOMAIN)
    staff = codec.decode_line(SAMPLE_FILES["staff.csv"][1], 1, "staff.csv")
    target = tmp_path / "staff.csv"

    temp_path = write_table(target, codec, [staff])

    assert temp_path.parent == tmp_path
    assert not target.exists()
    assert temp_path.read_text(encoding="utf-8").splitlines() == SAMPLE_FILES["staff.csv"]
