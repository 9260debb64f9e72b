import pytest

from cams.errors import CampRuleError, NotFoundError
from cams.services.enquiry_service import EnquiryService


@pytest.fixture
def service(repository):
    return EnquiryService(repository, reply_points=1)


def test_create_links_enquiry(service, repository):
    enquiry = service.create("dave", "CAMP1", "Is there parking?")

    assert enquiry.enquiry_id == 2
    assert repository.camps.get("CAMP1").enquiries[2] is enquiry
    assert repository.users.get("dave").enquiries == {"CAMP1": [2]}


def test_facilitator_cannot_enquire_about_own_camp(service):
    with pytest.raises(CampRuleError):
        service.create("carol", "CAMP1", "Question?")


def test_staff_cannot_enquire(service):
    with pytest.raises(CampRuleError):
        service.create("alice", "CAMP1", "Question?")


def test_committee_reply_earns_points(service, repository):
    enquiry = service.reply("carol", 1, "At noon")

    assert enquiry.replier == "carol"
    assert enquiry.reply == "At noon"
    assert repository.users.get("carol").points == 2


def test_staff_reply_does_not_earn_points(service, repository):
    service.reply("alice", 1, "At noon")

    assert repository.users.get("alice").points == 0


def test_outsider_cannot_reply(service):
    with pytest.raises(CampRuleError):
        service.reply("dave", 1, "No idea")


def test_replied_enquiry_is_frozen(service):
    service.reply("alice", 1, "At noon")

    with pytest.raises(CampRuleError):
        service.edit("bob", 1, "When is dinner?")
    with pytest.raises(CampRuleError):
        service.delete("bob", 1)


def test_edit_and_delete_open_enquiry(service, repository):
    service.edit("bob", 1, "When is dinner?")
    assert repository.enquiries.get(1).text == "When is dinner?"

    service.delete("bob", 1)

    assert repository.camps.get("CAMP1").enquiries == {}
    assert repository.users.get("bob").enquiries == {}
    with pytest.raises(NotFoundError):
        repository.enquiries.get(1)


def test_only_enquirer_edits(service):
    with pytest.raises(CampRuleError):
        service.edit("dave", 1, "Hijacked")


def test_answered_enquiry_takes_no_second_reply(service, repository):
    service.reply("alice", 1, "At noon")

    with pytest.raises(CampRuleError):
        service.reply("carol", 1, "Actually 2pm")

    enquiry = repository.enquiries.get(1)
    assert enquiry.replier == "alice"
    assert enquiry.reply == "At noon"
    assert repository.users.get("carol").points == 1


def test_reply_must_not_be_empty(service, repository):
    with pytest.raises(CampRuleError):
        service.reply("alice", 1, "")

    assert not repository.enquiries.get(1).is_replied


@pytest.mark.parametrize("text", ["Lunch, dinner?", "#NULL!", "two\nlines"])
def test_unstorable_enquiry_text_is_rejected(service, repository, text):
    with pytest.raises(CampRuleError):
        service.create("dave", "CAMP1", text)
    with pytest.raises(CampRuleError):
        service.edit("bob", 1, text)

    assert repository.users.get("dave").enquiries == {}
    assert repository.enquiries.get(1).text == "When is lunch?"


def test_changes_after_rejected_input_still_export(service, transfer):
    with pytest.raises(CampRuleError):
        service.reply("alice", 1, "Noon, in the hall")
    service.reply("alice", 1, "Noon in the hall")

    transfer.export_all()

    assert not transfer.repository.dirty
