import unittest

from acts_index import ActLookupError, ActsIndex, contiguous_blocks, make_act_key
from conftest import act_row


class TestActsIndex(unittest.TestCase):
    def setUp(self):
        self.index = ActsIndex.build([
            act_row("Ленина 1", "акт 5"),
            act_row(" Мира 2 ", "акт 7 ", wage=True),
            act_row("Ленина 1", "акт 5", deposit=True),
            act_row("", ""),
            act_row("Садовая 3", "акт 9", wage="ИСТИНА", deposit="false", paid=True),
        ])

    def test_make_act_key_trims(self):
        self.assertEqual(make_act_key("  Ленина 1 ", " акт 5"), "Ленина 1|акт 5")
        self.assertEqual(make_act_key(None, ""), "")
        self.assertEqual(make_act_key("Ленина 1", None), "Ленина 1|")

    def test_lookup_returns_row_and_flags(self):
        info = self.index.lookup("Мира 2|акт 7")
        self.assertIsNone(info.error)
        self.assertEqual(info.row_number, 3)
        self.assertEqual(info.grid_index, 1)
        self.assertTrue(info.wage_paid)
        self.assertFalse(info.deposit_returned)
        self.assertTrue(info.flag("wage"))

    def test_first_row_wins_for_duplicate_keys(self):
        info = self.index.lookup("Ленина 1|акт 5")
        self.assertEqual(info.row_number, 2)
        self.assertFalse(info.deposit_returned)

    def test_string_flags(self):
        info = self.index.lookup("Садовая 3|акт 9")
        self.assertTrue(info.wage_paid)
        self.assertFalse(info.deposit_returned)
        self.assertTrue(info.paid)

    def test_any_mark_counts_as_set(self):
        index = ActsIndex.build([
            act_row("А", "акт 1", wage="✓", deposit="x"),
            act_row("Б", "акт 2", wage=" ", deposit="Нет", paid="ложь"),
            act_row("В", "акт 3", wage="0", deposit="01.12.2025"),
        ])
        first, second, third = (index.lookup(k) for k in ("А|акт 1", "Б|акт 2", "В|акт 3"))
        self.assertTrue(first.wage_paid)
        self.assertTrue(first.deposit_returned)
        self.assertFalse(second.wage_paid)
        self.assertFalse(second.deposit_returned)
        self.assertFalse(second.paid)
        self.assertFalse(third.wage_paid)
        self.assertTrue(third.deposit_returned)

    def test_not_found(self):
        self.assertEqual(self.index.lookup("Нет|акт 1").error, ActLookupError.NOT_FOUND)
        self.assertEqual(self.index.lookup("").error, ActLookupError.NOT_FOUND)

    def test_no_data(self):
        for rows in (None, []):
            idx = ActsIndex.build(rows)
            self.assertFalse(idx.loaded)
            self.assertEqual(idx.lookup("Ленина 1|акт 5").error, ActLookupError.NO_DATA)

    def test_set_flag_changes_only_memory_copy(self):
        info = self.index.lookup("Ленина 1|акт 5")
        self.index.set_flag(info.grid_index, "wage")
        self.assertTrue(self.index.lookup("Ленина 1|акт 5").wage_paid)
        self.assertEqual(self.index.flag_column("wage")[0], [True])

    def test_record(self):
        act = self.index.record(1)
        self.assertEqual(act.row_number, 3)
        self.assertEqual(act.address, "Мира 2")
        self.assertEqual(act.act_number, "акт 7")
        self.assertEqual(act.hands_amount, 25000)
        self.assertEqual(act.deposit, 5000)
        self.assertTrue(act.wage_paid)

    def test_short_rows_are_padded(self):
        idx = ActsIndex.build([[None, "Ленина 1", "акт 5"]])
        self.assertFalse(idx.lookup("Ленина 1|акт 5").wage_paid)


def test_contiguous_blocks():
    assert contiguous_blocks([9, 3, 4, 5]) == [(3, 3), (9, 1)]
    assert contiguous_blocks({7}) == [(7, 1)]
    assert contiguous_blocks([]) == []
