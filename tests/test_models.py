"""Tests for data models and the error taxonomy."""
from models.errors import PersistentNonDelivery, RemoteRejected, TransportError, InvalidRequest
from models.schemas import DeliveryOutcome, Identity, OutcomeKind, PendingVoicemail, Stream


class TestIdentity:
    def test_available_means_needs_bridge(self):
        identity = Identity(account=1, available=True)
        assert identity.needs_voicemail_bridge is True
        assert identity.has_direct_account is False

    def test_unavailable_account_is_direct(self):
        identity = Identity(account=1, available=False)
        assert identity.needs_voicemail_bridge is False
        assert identity.has_direct_account is True

    def test_no_account_is_never_direct(self):
        assert Identity(account=None, available=False).has_direct_account is False


class TestPendingVoicemail:
    def test_aliases_round_trip(self):
        vm = PendingVoicemail.model_validate({"from": "+1", "to": "+2", "audio_url": "https://x/a.mp3"})
        assert vm.from_number == "+1"
        assert vm.delivered is False
        dumped = vm.model_dump(by_alias=True)
        assert dumped["from"] == "+1"
        assert dumped["to"] == "+2"


class TestStream:
    def test_defaults(self):
        stream = Stream()
        assert stream.id == 0
        assert stream.others == []

    def test_ignores_unknown_fields(self):
        stream = Stream.model_validate({"id": 5, "others": [{"id": 9, "display_name": "x"}], "title": "t"})
        assert stream.others[0].id == 9


class TestDeliveryOutcome:
    def test_exactly_one_kind(self):
        for outcome in (
            DeliveryOutcome.delivered(),
            DeliveryOutcome.queued(3),
            DeliveryOutcome.failed(InvalidRequest("empty recipient")),
        ):
            flags = [outcome.is_delivered, outcome.is_queued, outcome.is_failed]
            assert flags.count(True) == 1

    def test_failed_reason(self):
        outcome = DeliveryOutcome.failed(PersistentNonDelivery("+15559998888"))
        assert outcome.kind == OutcomeKind.FAILED
        assert outcome.reason == "retried delivery but +15559998888 still doesn't have an account"

    def test_queued_carries_id(self):
        assert DeliveryOutcome.queued(7).queue_id == 7


class TestErrors:
    def test_remote_rejected_message(self):
        err = RemoteRejected("/v17/streams", 1001, 404, "Not Found")
        assert str(err) == "/v17/streams (on behalf of 1001) returned 404 Not Found"
        assert err.retryable is False

    def test_transport_error_retryable(self):
        assert TransportError("reset").retryable is True
