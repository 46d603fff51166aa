import unittest
from datetime import datetime, timezone
from unittest.mock import patch
from zoneinfo import ZoneInfo

from novena_api.config import Settings
from novena_api.dependencies import build_delivery_backends
from novena_api.messaging import (
    DeliveryFailure,
    InMemoryDeliveryClient,
    load_service_account,
)
from novena_api.reminders import (
    REMINDER_DATA,
    REMINDER_TITLE,
    ReminderPeriod,
    ReminderScheduler,
    ReminderSweep,
    default_triggers,
    next_fire,
    ordinal_pt,
    reminder_body,
)
from novena_api.subscriptions import InMemorySubscriptionStore, subscription_from_document

SAO_PAULO = ZoneInfo("America/Sao_Paulo")
# 2025-11-19 at 22:30 in São Paulo, already the 20th in UTC.
NOW_UTC = datetime(2025, 11, 20, 1, 30, tzinfo=timezone.utc)
TODAY = "2025-11-19"


def _user(token="tok", day=3, title="Novena de Nossa Senhora das Graças", **novena):
    data = {"active": True, "day": day, "title": title}
    data.update(novena)
    return {"fcmToken": token, "novena": data}


class ReminderSweepTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemorySubscriptionStore()
        self.delivery = InMemoryDeliveryClient()
        self.delays = []
        self.sweep = ReminderSweep(
            self.store,
            self.delivery,
            tz_name="America/Sao_Paulo",
            max_attempts=3,
            retry_base_seconds=1.0,
            workers=1,
            clock=lambda: NOW_UTC,
            sleep=self.delays.append,
        )

    def test_today_uses_local_date(self):
        self.assertEqual(self.sweep.today(), TODAY)

    def test_sends_to_users_who_have_not_prayed(self):
        self.store.put("a", _user(token="tok-a"))
        self.store.put("b", _user(token="tok-b", lastPrayedDate=TODAY))
        self.store.put("c", _user(token="tok-c", lastPrayedDate="2025-11-18"))
        self.store.put("d", {"fcmToken": "tok-d", "novena": {"active": False}})

        result = self.sweep.run(ReminderPeriod.MORNING)

        self.assertEqual(result.date, TODAY)
        self.assertEqual(result.sent, 2)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.failed, 0)
        self.assertEqual(
            sorted(message.token for message in self.delivery.sent),
            ["tok-a", "tok-c"],
        )

    def test_user_without_token_is_skipped(self):
        self.store.put("a", _user(token=""))

        result = self.sweep.run(ReminderPeriod.EVENING)

        self.assertEqual(result.sent, 0)
        self.assertEqual(result.skipped, 1)
        self.assertEqual(self.delivery.sent, [])

    def test_marking_prayed_stops_later_reminders(self):
        self.store.put("a", _user(token="tok-a"))

        self.assertEqual(self.sweep.run(ReminderPeriod.MORNING).sent, 1)
        self.store.mark_prayed("a", TODAY)
        result = self.sweep.run(ReminderPeriod.EVENING)

        self.assertEqual(result.sent, 0)
        self.assertEqual(len(self.delivery.sent), 1)

    def test_message_content(self):
        self.store.put("a", _user(token="tok-a", day=3))

        self.sweep.run(ReminderPeriod.MORNING)
        message = self.delivery.sent[0]

        self.assertEqual(message.title, REMINDER_TITLE)
        self.assertEqual(
            message.body,
            "Reze o terceiro dia da Novena de Nossa Senhora das Graças.",
        )
        self.assertEqual(message.data, REMINDER_DATA)
        self.assertEqual(message.android_priority, "high")
        self.assertEqual(message.apns_sound, "default")

    def test_retryable_failure_is_retried(self):
        self.store.put("a", _user(token="tok-a"))
        self.delivery.failures["tok-a"] = [DeliveryFailure("unavailable", retryable=True)]

        result = self.sweep.run(ReminderPeriod.MORNING)

        self.assertEqual(result.sent, 1)
        self.assertEqual(self.delivery.attempts["tok-a"], 2)
        self.assertEqual(len(self.delays), 1)
        self.assertGreaterEqual(self.delays[0], 1.0)
        self.assertLessEqual(self.delays[0], 2.0)

    def test_permanent_failure_is_not_retried(self):
        self.store.put("a", _user(token="tok-a"))
        self.delivery.failures["tok-a"] = [DeliveryFailure("unregistered")]

        result = self.sweep.run(ReminderPeriod.MORNING)

        self.assertEqual(result.failed, 1)
        self.assertEqual(self.delivery.attempts["tok-a"], 1)
        self.assertEqual(self.delays, [])

    def test_retries_are_bounded(self):
        self.store.put("a", _user(token="tok-a"))
        self.delivery.failures["tok-a"] = [
            DeliveryFailure("unavailable", retryable=True) for _ in range(5)
        ]

        with self.assertLogs("novena_api.reminders", level="ERROR"):
            result = self.sweep.run(ReminderPeriod.MORNING)

        self.assertEqual(result.failed, 1)
        self.assertEqual(self.delivery.attempts["tok-a"], 3)
        self.assertEqual(len(self.delays), 2)

    def test_one_failure_does_not_abort_the_sweep(self):
        self.store.put("a", _user(token="tok-a"))
        self.store.put("b", _user(token="tok-b"))
        self.delivery.failures["tok-a"] = [DeliveryFailure("boom")]

        result = self.sweep.run(ReminderPeriod.EVENING)

        self.assertEqual(result.sent, 1)
        self.assertEqual(result.failed, 1)
        self.assertEqual([m.token for m in self.delivery.sent], ["tok-b"])

    def test_unexpected_error_counts_as_failure(self):
        self.store.put("a", _user(token="tok-a"))

        with patch.object(self.delivery, "send", side_effect=ValueError("bad")):
            result = self.sweep.run(ReminderPeriod.MORNING)

        self.assertEqual(result.failed, 1)


class ReminderTextTests(unittest.TestCase):
    def test_ordinals(self):
        self.assertEqual(ordinal_pt(1), "primeiro")
        self.assertEqual(ordinal_pt(9), "nono")
        self.assertEqual(ordinal_pt(12), "12º")

    def test_bodies(self):
        self.assertEqual(
            reminder_body(ReminderPeriod.EVENING, 7, "Novena X"),
            "Não se esqueça de rezar o sétimo dia da Novena X.",
        )
        self.assertEqual(
            reminder_body(ReminderPeriod.MORNING, 1, "  "),
            "Reze o primeiro dia da sua novena.",
        )


class SchedulerTests(unittest.TestCase):
    def test_next_fire(self):
        triggers = default_triggers("10:00", "20:30")

        fire_at, trigger = next_fire(triggers, datetime(2025, 11, 19, 9, 0, tzinfo=SAO_PAULO))
        self.assertEqual(trigger.period, ReminderPeriod.MORNING)
        self.assertEqual((fire_at.day, fire_at.hour), (19, 10))

        fire_at, trigger = next_fire(triggers, datetime(2025, 11, 19, 10, 0, tzinfo=SAO_PAULO))
        self.assertEqual(trigger.period, ReminderPeriod.EVENING)
        self.assertEqual((fire_at.hour, fire_at.minute), (20, 30))

        fire_at, trigger = next_fire(triggers, datetime(2025, 11, 19, 21, 0, tzinfo=SAO_PAULO))
        self.assertEqual(trigger.period, ReminderPeriod.MORNING)
        self.assertEqual((fire_at.day, fire_at.hour), (20, 10))

    def test_early_wakeup_does_not_repeat_trigger(self):
        clock = iter(
            [
                datetime(2025, 11, 19, 9, 0, tzinfo=SAO_PAULO),
                datetime(2025, 11, 19, 9, 59, 59, 950000, tzinfo=SAO_PAULO),
                datetime(2025, 11, 19, 10, 0, 1, tzinfo=SAO_PAULO),
            ]
        )
        sweep = ReminderSweep(InMemorySubscriptionStore(), InMemoryDeliveryClient())
        scheduler = ReminderScheduler(sweep, default_triggers(), clock=clock.__next__)

        with patch.object(
            scheduler._stop, "wait", side_effect=[False, False, True]
        ), patch.object(scheduler, "run_trigger") as run_trigger:
            scheduler._run()

        self.assertEqual(
            [c.args[0] for c in run_trigger.call_args_list],
            [ReminderPeriod.MORNING, ReminderPeriod.EVENING],
        )

    def test_run_trigger_swallows_errors(self):
        class BrokenStore:
            def list_active(self):
                raise RuntimeError("firestore down")

        sweep = ReminderSweep(BrokenStore(), InMemoryDeliveryClient(), workers=1)
        scheduler = ReminderScheduler(sweep, default_triggers())

        with self.assertLogs("novena_api.reminders", level="ERROR"):
            self.assertIsNone(scheduler.run_trigger(ReminderPeriod.MORNING))

    def test_requires_triggers(self):
        sweep = ReminderSweep(InMemorySubscriptionStore(), InMemoryDeliveryClient())
        with self.assertRaises(ValueError):
            ReminderScheduler(sweep, [])

    def test_start_and_stop(self):
        sweep = ReminderSweep(InMemorySubscriptionStore(), InMemoryDeliveryClient())
        scheduler = ReminderScheduler(sweep, default_triggers())

        scheduler.start()
        scheduler.stop(timeout=1.0)

        self.assertIsNone(scheduler._thread)


class SubscriptionDocumentTests(unittest.TestCase):
    def test_maps_document(self):
        subscription = subscription_from_document(
            "u1",
            {
                "fcmToken": "tok",
                "novena": {
                    "active": True,
                    "day": "4",
                    "title": " Novena X ",
                    "lastPrayedDate": TODAY,
                },
            },
        )

        self.assertEqual(subscription.user_id, "u1")
        self.assertEqual(subscription.token, "tok")
        self.assertTrue(subscription.novena.active)
        self.assertEqual(subscription.novena.day, 4)
        self.assertEqual(subscription.novena.title, "Novena X")
        self.assertEqual(subscription.novena.last_prayed_date, TODAY)

    def test_coerces_bad_values(self):
        subscription = subscription_from_document(
            "u2", {"novena": {"active": "yes", "day": "abc"}}
        )

        self.assertIsNone(subscription.token)
        self.assertFalse(subscription.novena.active)
        self.assertEqual(subscription.novena.day, 1)
        self.assertIsNone(subscription_from_document("u3", {}).novena)

    def test_store_lists_only_active(self):
        store = InMemorySubscriptionStore(
            {"a": _user(), "b": {"novena": {"active": False}}, "c": {}}
        )
        self.assertEqual([s.user_id for s in store.list_active()], ["a"])


class DeliveryBackendTests(unittest.TestCase):
    def test_missing_credentials(self):
        settings = Settings(
            _env_file=None,
            use_in_memory_backends=False,
            firebase_service_account=None,
        )
        with self.assertRaises(RuntimeError):
            build_delivery_backends(settings)

    def test_in_memory_backends(self):
        settings = Settings(_env_file=None, use_in_memory_backends=True)
        store, delivery = build_delivery_backends(settings)
        self.assertIsInstance(store, InMemorySubscriptionStore)
        self.assertIsInstance(delivery, InMemoryDeliveryClient)

    def test_invalid_clock_setting(self):
        with self.assertRaises(ValueError):
            Settings(_env_file=None, morning_time="25:99")

    def test_service_account_newlines(self):
        info = load_service_account(
            '{"type": "service_account", "private_key": "-----BEGIN\\\\nKEY\\\\n"}'
        )
        self.assertEqual(info["private_key"], "-----BEGIN\nKEY\n")


if __name__ == "__main__":
    unittest.main()
