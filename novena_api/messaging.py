"""
Push delivery through Firebase Cloud Messaging and an in-memory test double.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, List, Protocol

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

FIREBASE_APP_NAME = "novena-reminders"

RETRYABLE_ERRORS = (
    exceptions.UnavailableError,
    exceptions.InternalError,
    exceptions.DeadlineExceededError,
    exceptions.ResourceExhaustedError,
)


@dataclass(frozen=True)
class PushMessage:
    token: str
    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)
    android_priority: str = "high"
    apns_sound: str = "default"


class DeliveryFailure(Exception):
    """A single push could not be delivered."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class DeliveryClient(Protocol):
    """Sends one push notification and returns the provider's message id."""

    def send(self, message: PushMessage) -> str:
        ...


@dataclass
class InMemoryDeliveryClient:
    """
    Test double that records sent messages.

    `failures` maps a token to the failures raised on successive attempts;
    once the list is exhausted, sends to that token succeed.
    """

    sent: List[PushMessage] = field(default_factory=list)
    failures: Dict[str, List[DeliveryFailure]] = field(default_factory=dict)
    attempts: Dict[str, int] = field(default_factory=dict)

    def send(self, message: PushMessage) -> str:
        self.attempts[message.token] = self.attempts.get(message.token, 0) + 1
        pending = self.failures.get(message.token)
        if pending:
            raise pending.pop(0)
        self.sent.append(message)
        return f"in-memory/{len(self.sent)}"


def load_service_account(raw: str) -> dict:
    info = json.loads(raw)
    private_key = info.get("private_key")
    # Keys pasted into a single env var often arrive with escaped newlines.
    if private_key and "\\n" in private_key:
        info["private_key"] = private_key.replace("\\n", "\n")
    return info


def build_firebase_app(
    service_account: str | None, timeout_seconds: float = 10.0
) -> firebase_admin.App:
    """Initialize a named Firebase app from the service account JSON blob."""
    if not service_account:
        raise RuntimeError(
            "FIREBASE_SERVICE_ACCOUNT is required to send reminders"
        )
    credential = credentials.Certificate(load_service_account(service_account))
    return firebase_admin.initialize_app(
        credential,
        options={"httpTimeout": timeout_seconds},
        name=FIREBASE_APP_NAME,
    )


class FirebaseDeliveryClient:
    """FCM sender bound to an explicit Firebase app."""

    def __init__(self, app: firebase_admin.App):
        self.app = app

    def _to_fcm(self, message: PushMessage) -> messaging.Message:
        return messaging.Message(
            token=message.token,
            notification=messaging.Notification(
                title=message.title, body=message.body
            ),
            data=message.data,
            android=messaging.AndroidConfig(priority=message.android_priority),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(
                    aps=messaging.Aps(sound=message.apns_sound)
                )
            ),
        )

    def send(self, message: PushMessage) -> str:
        try:
            return messaging.send(self._to_fcm(message), app=self.app)
        except messaging.UnregisteredError as e:
            raise DeliveryFailure(f"Token no longer registered: {e}") from e
        except RETRYABLE_ERRORS as e:
            raise DeliveryFailure(str(e), retryable=True) from e
        except exceptions.FirebaseError as e:
            raise DeliveryFailure(str(e)) from e
