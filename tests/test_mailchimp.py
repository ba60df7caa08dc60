import pytest
from mailchimp_marketing.api_client import ApiClientError

from healing_hub.libs.mail import MailchimpError, MailchimpService
from healing_hub.libs.mail.mailchimp import _server_prefix, _split_name
from healing_hub.libs.schemas.settings import AppSettings
from healing_hub.libs.security import subscriber_hash


class _Lists:
    def __init__(self, member=None, fail=False):
        self.member = member
        self.fail = fail
        self.calls = []

    def get_list_member(self, list_id, member_hash):
        self.calls.append(("get", member_hash))
        if self.member is None:
            raise ApiClientError("Resource Not Found", status_code=404)
        return self.member

    def set_list_member(self, list_id, member_hash, body):
        if self.fail:
            raise ApiClientError("Invalid Resource", status_code=400)
        self.calls.append(("set", body))
        return {"id": member_hash, "email_address": body["email_address"], "status": "subscribed"}

    def update_list_member_tags(self, list_id, member_hash, body):
        self.calls.append(("tags", body))


class _Client:
    def __init__(self, lists):
        self.lists = lists


@pytest.mark.asyncio
async def test_disabled_service_is_a_no_op():
    service = MailchimpService(AppSettings())
    assert service.enabled is False
    result = await service.add_subscriber(email="luna@example.com", healing_name="Luna")
    assert result["status"] == "disabled"
    assert await service.get_subscriber_info("luna@example.com") is None
    with pytest.raises(ValueError):
        await service.update_subscriber_milestone("", "Day 7")


@pytest.mark.asyncio
async def test_existing_member_keeps_journey_start():
    lists = _Lists(member={"id": "abc", "merge_fields": {"JOURNEY_START": "2024-01-01"}})
    service = MailchimpService(AppSettings(), client=_Client(lists))

    result = await service.add_subscriber(email="Luna@Example.com", healing_name="Luna Rising")

    assert result["isNew"] is False
    assert lists.calls[0] == ("get", subscriber_hash("luna@example.com"))
    body = lists.calls[1][1]
    assert body["merge_fields"]["FNAME"] == "Luna"
    assert body["merge_fields"]["LNAME"] == "Rising"
    assert "JOURNEY_START" not in body["merge_fields"]


@pytest.mark.asyncio
async def test_api_errors_become_mailchimp_errors():
    service = MailchimpService(AppSettings(), client=_Client(_Lists(fail=True)))
    with pytest.raises(MailchimpError, match="Failed to add subscriber"):
        await service.add_subscriber(email="luna@example.com", healing_name="Luna")


@pytest.mark.asyncio
async def test_subscriber_info_maps_merge_fields():
    member = {
        "id": "abc",
        "email_address": "luna@example.com",
        "status": "subscribed",
        "merge_fields": {"HEALING_NAME": "Luna", "CURRENT_MILESTONE": "Day 7"},
        "tags": [{"name": "Sacred Healing Journey"}],
    }
    service = MailchimpService(AppSettings(), client=_Client(_Lists(member=member)))
    info = await service.get_subscriber_info("luna@example.com")
    assert info["healingName"] == "Luna"
    assert info["currentMilestone"] == "Day 7"
    assert info["tags"] == ["Sacred Healing Journey"]


def test_helpers(monkeypatch):
    monkeypatch.setenv("MAILCHIMP_API_KEY", "abc123-us21")
    assert _server_prefix(AppSettings()) == "us21"
    assert _split_name("Luna") == ("Luna", "")


class _Automations:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def add_workflow_email_subscriber(self, workflow_id, workflow_email_id, body):
        if self.fail:
            raise ApiClientError("Bad Request", status_code=400)
        self.calls.append((workflow_id, workflow_email_id, body))


class _Campaigns:
    def __init__(self, fail=False):
        self.fail = fail
        self.created = []
        self.sent = []

    def create(self, body):
        if self.fail:
            raise ApiClientError("Invalid Resource", status_code=400)
        self.created.append(body)
        return {"id": "camp-1"}

    def send(self, campaign_id):
        self.sent.append(campaign_id)


class _FullClient(_Client):
    def __init__(self, automations=None, campaigns=None):
        super().__init__(_Lists())
        self.automations = automations or _Automations()
        self.campaigns = campaigns or _Campaigns()


@pytest.mark.asyncio
async def test_trigger_automation_email_adds_workflow_subscriber():
    client = _FullClient()
    service = MailchimpService(AppSettings(), client=client)

    result = await service.trigger_automation_email("luna@example.com", "wf-1", "email-7")

    assert client.automations.calls == [("wf-1", "email-7", {"email_address": "luna@example.com"})]
    assert result["triggered"] is True
    assert result["automationId"] == "wf-1"
    assert result["emailId"] == "email-7"
    with pytest.raises(ValueError):
        await service.trigger_automation_email("luna@example.com", "", "email-7")


@pytest.mark.asyncio
async def test_send_welcome_email_targets_one_recipient(monkeypatch):
    monkeypatch.setenv("MAILCHIMP_LIST_ID", "list-9")
    monkeypatch.setenv("MAILCHIMP_WELCOME_TEMPLATE_ID", "42")
    client = _FullClient()
    service = MailchimpService(AppSettings(), client=client)

    result = await service.send_welcome_email(email="luna@example.com", healing_name="Luna Rising")

    [body] = client.campaigns.created
    assert body["type"] == "regular"
    assert body["recipients"]["list_id"] == "list-9"
    [condition] = body["recipients"]["segment_opts"]["conditions"]
    assert condition == {"condition_type": "EmailAddress", "field": "EMAIL", "op": "is", "value": "luna@example.com"}
    assert body["settings"]["subject_line"] == "Welcome to Your Sacred Healing Journey, Luna Rising"
    assert body["settings"]["reply_to"] == "support@sacredhealing.com"
    assert body["settings"]["template_id"] == 42
    assert client.campaigns.sent == ["camp-1"]
    assert result["campaignId"] == "camp-1"
    assert result["sent"] is True


@pytest.mark.asyncio
async def test_automation_and_welcome_disabled_without_config():
    service = MailchimpService(AppSettings())
    triggered = await service.trigger_automation_email("luna@example.com", "wf-1", "email-7")
    assert triggered == {"status": "disabled", "email": "luna@example.com", "triggered": False}
    welcome = await service.send_welcome_email(email="luna@example.com", healing_name="Luna")
    assert welcome == {"status": "disabled", "email": "luna@example.com", "sent": False}


@pytest.mark.asyncio
async def test_automation_and_welcome_api_errors_are_wrapped():
    client = _FullClient(automations=_Automations(fail=True), campaigns=_Campaigns(fail=True))
    service = MailchimpService(AppSettings(), client=client)
    with pytest.raises(MailchimpError, match="Failed to trigger automation email"):
        await service.trigger_automation_email("luna@example.com", "wf-1", "email-7")
    with pytest.raises(MailchimpError, match="Failed to send welcome email"):
        await service.send_welcome_email(email="luna@example.com", healing_name="Luna")
    assert client.campaigns.sent == []
