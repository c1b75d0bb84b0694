import unittest
from datetime import date
from unittest.mock import MagicMock

from act_reconciler import ActReconciler
from acts_index import ActsIndex
from config_loader import DEFAULTS
from conftest import act_row
from ledger_models import Entry, ErrorKind, RepeatPayoutDecision


def _entry(article, decoding="Ленина 1", act="акт 5", wallet="Наличные"):
    return Entry(date=date(2025, 12, 17), wallet=wallet, amount=3000, article=article,
                 decoding=decoding, act=act, category="Работы", type="Расход")


class TestActReconciler(unittest.TestCase):
    def setUp(self):
        self.acts = ActsIndex.build([
            act_row("Ленина 1", "акт 5"),
            act_row("Мира 2", "акт 7", wage=True, deposit=True),
            act_row("Садовая 3", "акт 9"),
        ])
        self.reconciler = ActReconciler(self.acts, DEFAULTS)
        self.approve = MagicMock(return_value=False)

    def test_other_articles_are_not_touched(self):
        out = self.reconciler.reconcile(_entry("Зарплата"), self.approve)
        self.assertFalse(out.applies)
        self.assertTrue(out.ok)
        self.assertFalse(self.reconciler.has_changes)

    def test_wage_payout_sets_flag(self):
        out = self.reconciler.reconcile(_entry("% Мастер"), self.approve)
        self.assertTrue(out.ok)
        self.assertEqual(out.flag, "wage")
        self.assertEqual(out.act_key, "Ленина 1|акт 5")
        self.assertTrue(self.acts.lookup("Ленина 1|акт 5").wage_paid)
        self.assertEqual(self.reconciler.wage_rows, {2})
        self.assertEqual(self.reconciler.deposit_rows, set())
        self.approve.assert_not_called()

    def test_deposit_return_sets_deposit_flag(self):
        out = self.reconciler.reconcile(_entry("Возврат удержания", "Садовая 3", "акт 9"), self.approve)
        self.assertTrue(out.ok)
        self.assertTrue(self.acts.lookup("Садовая 3|акт 9").deposit_returned)
        self.assertFalse(self.acts.lookup("Садовая 3|акт 9").wage_paid)
        self.assertEqual(self.reconciler.deposit_rows, {4})

    def test_repeat_payout_is_rejected_without_approval(self):
        out = self.reconciler.reconcile(_entry("% Мастер", "Мира 2", "акт 7"), self.approve)
        self.assertEqual(out.error, ErrorKind.ALREADY_PAID_OUT)
        self.approve.assert_called_once_with(RepeatPayoutDecision("Мира 2|акт 7", "wage"))
        self.assertEqual(self.reconciler.wage_rows, set())

    def test_repeat_payout_with_approval_resets_same_flag(self):
        self.approve.return_value = True
        out = self.reconciler.reconcile(_entry("% Мастер", "Мира 2", "акт 7"), self.approve)
        self.assertTrue(out.ok)
        self.assertTrue(out.already_set)
        self.assertEqual(self.reconciler.wage_rows, {3})

    def test_second_payout_in_same_run_needs_approval(self):
        self.reconciler.reconcile(_entry("% Мастер"), self.approve)
        out = self.reconciler.reconcile(_entry("% Мастер"), self.approve)
        self.assertEqual(out.error, ErrorKind.ALREADY_PAID_OUT)

    def test_validation_order(self):
        cases = [
            (_entry("% Мастер", decoding=""), ErrorKind.MISSING_ADDRESS_FOR_ACT_ENTRY),
            (_entry("% Мастер", act=""), ErrorKind.MISSING_ACT_NUMBER),
            (_entry("% Мастер", act="№ 5"), ErrorKind.MISSING_ACT_NUMBER),
            (_entry("% Мастер", decoding="Нет такого"), ErrorKind.ACT_NOT_FOUND_IN_REGISTER),
        ]
        for entry, kind in cases:
            with self.subTest(kind=kind):
                self.assertEqual(self.reconciler.reconcile(entry, self.approve).error, kind)
        self.assertFalse(self.reconciler.has_changes)

    def test_act_keyword_is_case_insensitive(self):
        out = self.reconciler.reconcile(_entry("% Мастер", act="АКТ 5", decoding="Ленина 1"), self.approve)
        # ключ берётся как есть, поэтому "АКТ 5" не совпадает с "акт 5"
        self.assertEqual(out.error, ErrorKind.ACT_NOT_FOUND_IN_REGISTER)

    def test_register_unavailable(self):
        for index in (None, ActsIndex.build(None)):
            with self.subTest(index=index):
                rec = ActReconciler(index, DEFAULTS)
                out = rec.reconcile(_entry("% Мастер"), self.approve)
                self.assertEqual(out.error, ErrorKind.ACTS_REGISTER_UNAVAILABLE)

    def test_revenue_color_by_wallet(self):
        self.reconciler.note_revenue(_entry("Выручка по акту", "Садовая 3", "акт 9", wallet="Карта"))
        self.reconciler.note_revenue(_entry("Выручка по акту", "Нет такого", "акт 1", wallet="Карта"))
        self.reconciler.note_revenue(_entry("Зарплата", "Ленина 1", "акт 5"))
        self.assertEqual(self.reconciler.revenue_colors, {4: "#17ddee"})
        self.assertTrue(self.reconciler.has_changes)
