from datetime import date, datetime

from duplicate_detector import DuplicateGuard, amount_key, build_existing_keys, entry_key


def _ledger_row(d, article, decoding, amount):
    return [d, "Карта", amount, article, decoding, "", "ФОТ", "Расход", "", ""]


def test_entry_key_format():
    assert entry_key(date(2025, 12, 17), "Зарплата", "Иванов", 5000.0) == "17.12.2025|Зарплата|Иванов|5000"
    assert entry_key("17.12.2025", " Зарплата", "Иванов ", "5000") == "17.12.2025|Зарплата|Иванов|5000"
    assert amount_key(12.5) == "12.5"


def test_keys_from_mixed_cell_types():
    rows = [
        _ledger_row(datetime(2025, 12, 17), "Зарплата", "Иванов", 5000),
        _ledger_row("18.12.2025", "Аренда", "Склад", "1200.50"),
    ]
    keys = build_existing_keys(rows)
    assert "17.12.2025|Зарплата|Иванов|5000" in keys
    assert "18.12.2025|Аренда|Склад|1200.5" in keys


def test_incomplete_rows_are_skipped():
    rows = [
        _ledger_row(None, "Зарплата", "Иванов", 5000),
        _ledger_row(date(2025, 12, 17), "", "Иванов", 5000),
        _ledger_row(date(2025, 12, 17), "Зарплата", "", 5000),
        _ledger_row(date(2025, 12, 17), "Зарплата", "Иванов", None),
        [date(2025, 12, 17)],
    ]
    assert build_existing_keys(rows) == set()


def test_only_trailing_window_is_scanned():
    rows = [_ledger_row(date(2025, 12, 1), "Зарплата", f"Работник {i}", 100) for i in range(60)]
    keys = build_existing_keys(rows, window_size=50)
    assert len(keys) == 50
    assert "01.12.2025|Зарплата|Работник 9|100" not in keys
    assert "01.12.2025|Зарплата|Работник 10|100" in keys


def test_guard_checks_ledger_and_run():
    key = "17.12.2025|Зарплата|Иванов|5000"
    guard = DuplicateGuard({key})
    assert guard.is_duplicate(key, "Зарплата")

    other = "17.12.2025|Зарплата|Петров|5000"
    assert not guard.is_duplicate(other, "Зарплата")
    guard.accept(other)
    assert guard.in_run(other)
    assert guard.is_duplicate(other, "Зарплата")


def test_act_articles_are_exempt_from_ledger_check_only():
    key = "17.12.2025|% Мастер|Ленина 1|3000"
    guard = DuplicateGuard({key}, exempt_articles=["% Мастер", "Возврат удержания"])
    assert not guard.in_ledger(key, "% Мастер")
    assert not guard.is_duplicate(key, "% Мастер")
    guard.accept(key)
    assert guard.is_duplicate(key, "% Мастер")
