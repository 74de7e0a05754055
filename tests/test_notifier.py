import hashlib
import hmac
import json

from tradebench.monitoring import LogNotifier, Monitor, Notifier, WebhookNotifier, sign_payload


def test_webhook_signs_body():
    sent = []
    notifier = WebhookNotifier(
        "https://hooks.example.test/sessions",
        "s3cret",
        transport=lambda url, body, headers: sent.append((url, body, headers)),
    )

    notifier.notify("SESSION_STOPPED", {"session_id": "abc", "cash": 1010.0})

    url, body, headers = sent[0]
    assert url == "https://hooks.example.test/sessions"
    expected = hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()
    assert headers[WebhookNotifier.SIGNATURE_HEADER] == expected
    assert headers[WebhookNotifier.EVENT_HEADER] == "SESSION_STOPPED"
    decoded = json.loads(body)
    assert decoded["event"] == "SESSION_STOPPED"
    assert decoded["data"]["session_id"] == "abc"


def test_webhook_event_filter():
    sent = []
    notifier = WebhookNotifier(
        "https://hooks.example.test",
        "s3cret",
        transport=lambda url, body, headers: sent.append(body),
        events={"SESSION_ERROR"},
    )
    notifier.notify("TRADE_EXECUTED", {})
    notifier.notify("SESSION_ERROR", {"error": "boom"})
    assert len(sent) == 1


def test_sign_payload_changes_with_secret():
    assert sign_payload("a", b"body") != sign_payload("b", b"body")


def test_log_notifier_prints(capsys):
    LogNotifier().notify("SESSION_STARTED", {"session_id": "abc"})
    out = capsys.readouterr().out
    assert out.startswith("[tradebench] SESSION_STARTED")
    assert '"session_id": "abc"' in out


def test_monitor_swallows_delivery_errors():
    class Failing(Notifier):
        def notify(self, event, payload):
            raise RuntimeError("nope")

    class Recorder:
        def __init__(self):
            self.events = []

        def log(self, event, payload):
            self.events.append((event, payload))

    audit = Recorder()
    assert Monitor(Failing(), audit).emit("SESSION_STARTED", {}) is False
    assert audit.events[0][0] == "notify_failed"
