"""
Dependency wiring for the FastAPI app and the reminder scheduler.
"""

from __future__ import annotations

from novena_api.config import Settings, get_settings
from novena_api.messaging import (
    DeliveryClient,
    FirebaseDeliveryClient,
    InMemoryDeliveryClient,
    build_firebase_app,
)
from novena_api.reminders import ReminderScheduler, ReminderSweep, default_triggers
from novena_api.subscriptions import (
    FirestoreSubscriptionStore,
    InMemorySubscriptionStore,
    SubscriptionStore,
)
from novena_content.catalog import Catalog, load_catalog

_catalog: Catalog | None = None


def get_catalog() -> Catalog:
    """
    Return the process-wide content snapshot, loading it on first use.
    """
    global _catalog
    if _catalog is not None:
        return _catalog

    settings = get_settings()
    _catalog = load_catalog(
        settings.data_dir, allow_unknown_blocks=settings.allow_unknown_blocks
    )
    return _catalog


def build_delivery_backends(
    settings: Settings,
) -> tuple[SubscriptionStore, DeliveryClient]:
    """
    Construct the subscription store and push sender used by the sweep.

    Raises RuntimeError when real backends are requested without credentials.
    """
    if settings.use_in_memory_backends:
        return InMemorySubscriptionStore(), InMemoryDeliveryClient()

    app = build_firebase_app(
        settings.firebase_service_account,
        timeout_seconds=settings.delivery_timeout_seconds,
    )
    return (
        FirestoreSubscriptionStore(app, collection=settings.users_collection),
        FirebaseDeliveryClient(app),
    )


def build_reminder_sweep(settings: Settings) -> ReminderSweep:
    store, delivery = build_delivery_backends(settings)
    return ReminderSweep(
        store,
        delivery,
        tz_name=settings.reminder_timezone,
        max_attempts=settings.delivery_max_attempts,
        retry_base_seconds=settings.delivery_retry_base_seconds,
        workers=settings.delivery_workers,
    )


def build_reminder_scheduler(settings: Settings) -> ReminderScheduler:
    return ReminderScheduler(
        build_reminder_sweep(settings),
        default_triggers(settings.morning_time, settings.evening_time),
        tz_name=settings.reminder_timezone,
    )
