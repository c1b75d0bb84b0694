from typing import Iterable, Optional, Set

from date_utils import format_date
from row_validator import parse_amount


def _s(value) -> str:
    return "" if value is None else str(value).strip()


def amount_key(amount: float) -> str:
    amount = float(amount)
    return str(int(amount)) if amount.is_integer() else repr(amount)


def entry_key(entry_date, article: str, decoding: str, amount) -> str:
    """Ключ дубля: дата|статья|расшифровка|сумма."""
    return f"{format_date(entry_date)}|{_s(article)}|{_s(decoding)}|{amount_key(amount)}"


def build_existing_keys(ledger_rows: Iterable[list], window_size: int = 50) -> Set[str]:
    """Ключи последних window_size строк ПРОВОДОК.

    Дубли глубже окна не ловятся, это сознательный компромисс по скорости.
    """
    rows = list(ledger_rows)
    if window_size > 0:
        rows = rows[-window_size:]
    keys = set()
    for r in rows:
        r = list(r) + [None] * (5 - len(r))
        d, article, decoding, amount = r[0], _s(r[3]), _s(r[4]), parse_amount(r[2])
        if not format_date(d) or not article or not decoding or amount is None:
            continue
        keys.add(entry_key(d, article, decoding, amount))
    return keys


class DuplicateGuard:
    """Проверка дублей: по окну ПРОВОДОК и по уже принятым в этом запуске."""

    def __init__(self, existing_keys: Set[str], exempt_articles: Optional[Iterable[str]] = None):
        self.existing = frozenset(existing_keys)
        self.exempt = frozenset(exempt_articles or ())
        self.accepted: Set[str] = set()

    def in_ledger(self, key: str, article: str) -> bool:
        # для % Мастер / Возврат удержания страж: флаг акта
        return article not in self.exempt and key in self.existing

    def in_run(self, key: str) -> bool:
        return key in self.accepted

    def is_duplicate(self, key: str, article: str) -> bool:
        return self.in_ledger(key, article) or self.in_run(key)

    def accept(self, key: str):
        self.accepted.add(key)
