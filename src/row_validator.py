import math
from typing import Optional

from date_utils import parse_sheet_date
from ledger_models import ErrorKind, ValidationResult

# Колонки входного блока B..L
COL_DATE, COL_WALLET, COL_AMOUNT, COL_ARTICLE, COL_DECODING, COL_ACT, \
    COL_ALT_ARTICLE, COL_CATEGORY, COL_TYPE, COL_HINT, COL_FOREMAN = range(11)
INPUT_WIDTH = 11


def _s(value) -> str:
    return "" if value is None else str(value).strip()


def parse_amount(value) -> Optional[float]:
    """Число из ячейки суммы; None, если это не конечное число."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        s = str(value).strip()
        if not s:
            return None
        try:
            amount = float(s)
        except ValueError:
            return None
    return amount if math.isfinite(amount) else None


def is_blank_row(row) -> bool:
    return all(_s(v) == "" for v in row)


def row_article(row) -> str:
    return _s(row[COL_ARTICLE]) or _s(row[COL_ALT_ARTICLE])


def validate_row(row) -> ValidationResult:
    """Базовая проверка строки ВНЕСЕНИЯ без побочных эффектов.

    Пустая дата не ошибка: выставляется wants_today, дату подставляет вызывающий.
    """
    row = list(row) + [None] * (INPUT_WIDTH - len(row))

    if not _s(row[COL_TYPE]) or not _s(row[COL_CATEGORY]) or not row_article(row):
        return ValidationResult(ok=False, error=ErrorKind.MISSING_CLASSIFICATION)

    if not _s(row[COL_WALLET]):
        return ValidationResult(ok=False, error=ErrorKind.MISSING_WALLET)

    amount = parse_amount(row[COL_AMOUNT])
    if amount is None or amount == 0:
        return ValidationResult(ok=False, error=ErrorKind.MISSING_OR_ZERO_AMOUNT)

    wants_today = _s(row[COL_DATE]) == ""
    entry_date = None
    if not wants_today:
        entry_date = parse_sheet_date(row[COL_DATE])
        if entry_date is None:
            return ValidationResult(ok=False, error=ErrorKind.INVALID_DATE)

    return ValidationResult(
        ok=True,
        wants_today=wants_today,
        date=entry_date,
        wallet=_s(row[COL_WALLET]),
        amount=amount,
        article=row_article(row),
        decoding=_s(row[COL_DECODING]),
        act=_s(row[COL_ACT]),
        category=_s(row[COL_CATEGORY]),
        type=_s(row[COL_TYPE]),
        hint=_s(row[COL_HINT]),
        foreman=_s(row[COL_FOREMAN]),
    )
