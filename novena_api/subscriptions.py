"""
Subscription records read by the reminder sweep.

Records live in the Firestore `users` collection and are written by the app
when a user starts a novena or marks a day as prayed. This module only reads
them; the in-memory store also supports writes for tests and local runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol

import firebase_admin
from dacite import Config, from_dict
from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter


@dataclass
class NovenaProgress:
    active: bool = False
    day: int = 1
    title: str = ""
    # Local calendar date (YYYY-MM-DD) of the last completed prayer.
    last_prayed_date: Optional[str] = None


@dataclass
class Subscription:
    user_id: str
    token: Optional[str] = None
    novena: Optional[NovenaProgress] = None


def _coerce_day(value) -> int:
    try:
        day = int(value)
    except (TypeError, ValueError):
        return 1
    return day if day >= 1 else 1


def subscription_from_document(user_id: str, data: dict) -> Subscription:
    """Map a `users/{uid}` document onto a Subscription."""
    raw_novena = data.get("novena")
    novena_data = None
    if isinstance(raw_novena, dict):
        novena_data = {
            "active": raw_novena.get("active") is True,
            "day": _coerce_day(raw_novena.get("day") or 1),
            "title": str(raw_novena.get("title") or "").strip(),
            "last_prayed_date": raw_novena.get("lastPrayedDate"),
        }
    return from_dict(
        data_class=Subscription,
        data={
            "user_id": user_id,
            "token": data.get("fcmToken") or None,
            "novena": novena_data,
        },
        config=Config(check_types=False),
    )


class SubscriptionStore(Protocol):
    """Read access to subscriptions with an active novena."""

    def list_active(self) -> Iterable[Subscription]:
        ...


class InMemorySubscriptionStore:
    """Dict-backed store holding raw user documents."""

    def __init__(self, users: Dict[str, dict] | None = None):
        self.users: Dict[str, dict] = dict(users or {})

    def put(self, user_id: str, data: dict) -> None:
        self.users[user_id] = data

    def mark_prayed(self, user_id: str, date_key: str) -> None:
        novena = self.users.get(user_id, {}).get("novena")
        if isinstance(novena, dict):
            novena["lastPrayedDate"] = date_key

    def reset(self) -> None:
        self.users.clear()

    def list_active(self) -> List[Subscription]:
        return [
            subscription_from_document(user_id, data)
            for user_id, data in self.users.items()
            if isinstance(data.get("novena"), dict)
            and data["novena"].get("active") is True
        ]


class FirestoreSubscriptionStore:
    """Queries `users` documents whose `novena.active` flag is set."""

    def __init__(self, app: firebase_admin.App, collection: str = "users"):
        self.client = firestore.client(app=app)
        self.collection = collection

    def list_active(self) -> Iterable[Subscription]:
        query = self.client.collection(self.collection).where(
            filter=FieldFilter("novena.active", "==", True)
        )
        for snapshot in query.stream():
            yield subscription_from_document(snapshot.id, snapshot.to_dict() or {})
