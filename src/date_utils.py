"""
Даты в таблице приходят в трёх видах: date/datetime, серийное число
(дни от 30.12.1899) или строка. Здесь всё приводится к datetime.date.
"""

import calendar
import math
import re
from datetime import date, datetime, timedelta
from typing import Optional

SHEET_EPOCH = datetime(1899, 12, 30)
DATE_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")


def parse_sheet_date(value) -> Optional[date]:
    """Значение ячейки → date или None, если распознать не удалось."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            return None
        try:
            return (SHEET_EPOCH + timedelta(milliseconds=value * 86_400_000)).date()
        except OverflowError:
            return None

    s = str(value or "").strip()
    if not s:
        return None

    m = DATE_RE.match(s)
    if m:
        dd, mm, yy = int(m.group(1)), int(m.group(2)), int(m.group(3))
        try:
            # несуществующие даты (31.02) не конструируются
            return date(yy, mm, dd)
        except ValueError:
            return None

    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        return None


def format_date(value) -> str:
    d = parse_sheet_date(value)
    return d.strftime("%d.%m.%Y") if d else ""


def last_day_of_month(year: int, month0: int) -> int:
    """Число дней в месяце; month0 от 0 (январь) до 11."""
    return calendar.monthrange(year, month0 + 1)[1]


def clamp_to_current_month(d: date, today: Optional[date] = None) -> date:
    """Переносит дату в текущий месяц текущего года, день сохраняется (не больше конца месяца)."""
    today = today or date.today()
    max_day = last_day_of_month(today.year, today.month - 1)
    return date(today.year, today.month, min(d.day, max_day))


def month_offset(d: date, today: Optional[date] = None) -> int:
    """Разница в месяцах: <0 прошлый, >0 будущий, 0 текущий."""
    today = today or date.today()
    return (d.year - today.year) * 12 + (d.month - today.month)
