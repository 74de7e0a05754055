"""Notification backends for session lifecycle events."""

from __future__ import annotations

import hashlib
import hmac
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import requests


class Notifier:
    def notify(self, event: str, payload: dict[str, Any]) -> None:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass
class LogNotifier(Notifier):
    prefix: str = "[tradebench]"

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        print(f"{self.prefix} {event}: {json.dumps(payload, default=str, sort_keys=True)}")


Transport = Callable[[str, bytes, dict[str, str]], None]


def sign_payload(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def http_transport(url: str, body: bytes, headers: dict[str, str], timeout: float = 10.0) -> None:
    response = requests.post(url, data=body, headers=headers, timeout=timeout)
    response.raise_for_status()


class WebhookNotifier(Notifier):
    """POSTs HMAC-signed JSON; ``transport(url, body, headers)`` defaults to ``requests``."""

    SIGNATURE_HEADER = "X-Tradebench-Signature"
    EVENT_HEADER = "X-Tradebench-Event"

    def __init__(
        self,
        url: str,
        secret: str,
        transport: Optional[Transport] = None,
        events: Optional[set[str]] = None,
    ) -> None:
        self.url = url
        self.secret = secret
        self.transport = transport or http_transport
        self.events = events

    def build_request(self, event: str, payload: dict[str, Any]) -> tuple[bytes, dict[str, str]]:
        body = json.dumps(
            {
                "event": event,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "data": payload,
            },
            default=str,
            sort_keys=True,
        ).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            self.EVENT_HEADER: event,
            self.SIGNATURE_HEADER: sign_payload(self.secret, body),
        }
        return body, headers

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        if self.events is not None and event not in self.events:
            return
        body, headers = self.build_request(event, payload)
        self.transport(self.url, body, headers)
