import os

os.environ["DATABASE_URL"] = "sqlite:///./jogofacil.test.db"
os.environ["DATABASE_URL_STRICT"] = "1"

import unittest
from datetime import date, datetime, timedelta

from fastapi import HTTPException

from jogofacil import booking_rules, models, plans


def _slot(**kwargs):
    defaults = dict(
        id="slot-1",
        field_id="field-1",
        date=date(2026, 11, 2),
        time="19:00",
        status="available",
        match_type="AMISTOSO",
        allowed_categories=["Sub-20"],
        is_booked=False,
    )
    defaults.update(kwargs)
    return models.MatchSlot(**defaults)


class EligibilityTests(unittest.TestCase):
    def setUp(self):
        self.teams = [
            models.SubTeam(id="t1", name="Tigres", category="Sub-20"),
            models.SubTeam(id="t2", name="Tigres Master", category="Veteranos"),
        ]

    def test_restricted_slot_filters_by_category(self):
        eligible = booking_rules.eligible_teams(_slot(), self.teams)
        self.assertEqual([t.id for t in eligible], ["t1"])

    def test_open_slot_accepts_every_team(self):
        eligible = booking_rules.eligible_teams(_slot(allowed_categories=["Livre"]), self.teams)
        self.assertEqual(len(eligible), 2)

    def test_normalize_categories_defaults_to_open(self):
        self.assertEqual(booking_rules.normalize_categories([]), ["Livre"])
        self.assertEqual(booking_rules.normalize_categories([" Sub-20 ", "Sub-20", ""]), ["Sub-20"])


class RecurringTests(unittest.TestCase):
    def test_base_plus_three_weeks(self):
        dates = booking_rules.recurring_dates(date(2026, 12, 24))
        self.assertEqual(
            dates,
            [date(2026, 12, 24), date(2026, 12, 31), date(2027, 1, 7), date(2027, 1, 14)],
        )


class TransitionTests(unittest.TestCase):
    def setUp(self):
        self.captain = models.User(id="u1", name="Cap", phone_number="11 90000-0000")
        self.team = models.SubTeam(id="t1", name="Tigres", category="Sub-20")
        self.field = models.Field(id="field-1", owner_id="owner-1", name="Arena")

    def test_book_then_clear(self):
        slot = _slot()
        booking_rules.ensure_can_book(slot, self.captain, self.team, self.field)
        booking_rules.apply_booking(slot, self.captain, self.team)
        self.assertEqual(slot.status, "pending_verification")
        self.assertTrue(slot.is_booked)
        self.assertEqual(slot.booked_by_category, "Sub-20")
        self.assertEqual(slot.booked_by_phone, "11 90000-0000")

        booking_rules.ensure_can_confirm(slot)
        booking_rules.ensure_can_reject(slot)
        booking_rules.clear_booking(slot)
        self.assertEqual(slot.status, "available")
        self.assertFalse(slot.is_booked)
        self.assertIsNone(slot.booked_by_user_id)

    def test_booked_slot_conflicts(self):
        slot = _slot(status="confirmed")
        with self.assertRaises(HTTPException) as ctx:
            booking_rules.ensure_can_book(slot, self.captain, self.team, self.field)
        self.assertEqual(ctx.exception.status_code, 409)

    def test_owner_cannot_book_own_field(self):
        owner = models.User(id="owner-1", name="Dono")
        with self.assertRaises(HTTPException) as ctx:
            booking_rules.ensure_can_book(_slot(), owner, self.team, self.field)
        self.assertEqual(ctx.exception.status_code, 400)

    def test_confirm_requires_pending(self):
        with self.assertRaises(HTTPException) as ctx:
            booking_rules.ensure_can_confirm(_slot())
        self.assertEqual(ctx.exception.status_code, 409)

    def test_rental_requires_opponent(self):
        slot = _slot(match_type="ALUGUEL")
        with self.assertRaises(HTTPException):
            booking_rules.ensure_opponent_details(slot, "Leões", "")
        booking_rules.ensure_opponent_details(slot, "Leões", "11 97777-0000")


class PlanTests(unittest.TestCase):
    def test_paid_plan_expiry(self):
        now = datetime(2026, 10, 18, 12, 0, 0)
        self.assertEqual(plans.expiry_for(models.SubscriptionPlan.weekly, now), now + timedelta(days=7))
        self.assertEqual(plans.expiry_for(models.SubscriptionPlan.annual, now), now + timedelta(days=365))
        self.assertIsNone(plans.expiry_for(models.SubscriptionPlan.free, now))

    def test_active_subscription(self):
        now = datetime(2026, 10, 18)
        owner = models.User(subscription=models.SubscriptionPlan.free)
        expired = models.User(subscription=models.SubscriptionPlan.monthly, subscription_expiry=now - timedelta(days=1))
        current = models.User(subscription=models.SubscriptionPlan.monthly, subscription_expiry=now + timedelta(days=1))
        self.assertTrue(plans.has_active_subscription(owner, now))
        self.assertFalse(plans.has_active_subscription(expired, now))
        self.assertTrue(plans.has_active_subscription(current, now))
        self.assertFalse(plans.has_active_subscription(models.User(subscription=models.SubscriptionPlan.none), now))


if __name__ == "__main__":
    unittest.main()
