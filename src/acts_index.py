"""
Индекс листа РЕЕСТР АКТОВ: ключ "адрес|номер акта" → строка и флаги выплат.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from ledger_models import Act

# Номера колонок (1-based), A=1
ADDR = 2
ACTNO = 3
REVENUE = 5
WAGE_BY_ACT = 9
DEPOSIT = 10
HANDS = 11
WAGE_FLAG = 16
DEPOSIT_FLAG = 17
PAID_FLAG = 18

ACTS_WIDTH = 18
FIRST_DATA_ROW = 2

FLAG_COLUMNS = {"wage": WAGE_FLAG, "deposit": DEPOSIT_FLAG}


class ActLookupError(Enum):
    NO_DATA = "NoData"
    NOT_FOUND = "NotFound"


def make_act_key(address, act_number) -> str:
    a = "" if address is None else str(address).strip()
    n = "" if act_number is None else str(act_number).strip()
    if not a and not n:
        return ""
    return f"{a}|{n}"


FALSE_WORDS = ("FALSE", "ЛОЖЬ", "0", "НЕТ")


def _flag(value) -> bool:
    # любая отметка ("✓", "x", дата) считается выставленным флагом
    if isinstance(value, str):
        s = value.strip().upper()
        return bool(s) and s not in FALSE_WORDS
    return bool(value)


@dataclass
class ActLookup:
    row_number: int = 0
    grid_index: int = -1
    paid: bool = False
    wage_paid: bool = False
    deposit_returned: bool = False
    error: Optional[ActLookupError] = None

    def flag(self, name: str) -> bool:
        return self.wage_paid if name == "wage" else self.deposit_returned


@dataclass
class ActsIndex:
    # grid: рабочая копия реестра, флаги меняются в памяти и пишутся одним батчем
    grid: Optional[List[list]]
    key_to_row: Mapping[str, int]

    @classmethod
    def build(cls, rows: Optional[Iterable[list]]) -> "ActsIndex":
        if rows is None:
            return cls(grid=None, key_to_row=MappingProxyType({}))

        grid = [list(r) + [None] * (ACTS_WIDTH - len(r)) for r in rows]
        if not grid:
            return cls(grid=None, key_to_row=MappingProxyType({}))

        key_to_row: Dict[str, int] = {}
        for i, row in enumerate(grid):
            key = make_act_key(row[ADDR - 1], row[ACTNO - 1])
            if not key:
                continue
            # дубликаты ключа: побеждает первая строка
            key_to_row.setdefault(key, FIRST_DATA_ROW + i)
        return cls(grid=grid, key_to_row=MappingProxyType(key_to_row))

    @property
    def loaded(self) -> bool:
        return self.grid is not None

    def lookup(self, key: str) -> ActLookup:
        if self.grid is None:
            return ActLookup(error=ActLookupError.NO_DATA)
        row_number = self.key_to_row.get(key) if key else None
        if not row_number:
            return ActLookup(error=ActLookupError.NOT_FOUND)

        gi = row_number - FIRST_DATA_ROW
        row = self.grid[gi]
        return ActLookup(
            row_number=row_number,
            grid_index=gi,
            paid=_flag(row[PAID_FLAG - 1]),
            wage_paid=_flag(row[WAGE_FLAG - 1]),
            deposit_returned=_flag(row[DEPOSIT_FLAG - 1]),
        )

    def set_flag(self, grid_index: int, name: str):
        self.grid[grid_index][FLAG_COLUMNS[name] - 1] = True

    def row_number_for(self, key: str) -> Optional[int]:
        return self.key_to_row.get(key) if key else None

    def record(self, grid_index: int) -> Act:
        row = self.grid[grid_index]
        return Act(
            row_number=FIRST_DATA_ROW + grid_index,
            address=str(row[ADDR - 1] or "").strip(),
            act_number=str(row[ACTNO - 1] or "").strip(),
            revenue=row[REVENUE - 1],
            wage_by_act=row[WAGE_BY_ACT - 1],
            deposit=row[DEPOSIT - 1],
            hands_amount=row[HANDS - 1],
            wage_paid=_flag(row[WAGE_FLAG - 1]),
            deposit_returned=_flag(row[DEPOSIT_FLAG - 1]),
            paid=_flag(row[PAID_FLAG - 1]),
        )

    def flag_column(self, name: str) -> List[list]:
        """Колонка флага для записи одним батчем (строки 2..N)."""
        col = FLAG_COLUMNS[name] - 1
        return [[row[col]] for row in self.grid]


def contiguous_blocks(rows: Iterable[int]) -> List[tuple]:
    """[3,4,5,9] → [(3, 3), (9, 1)]: (первая строка, высота)."""
    ordered = sorted(set(rows))
    blocks = []
    if not ordered:
        return blocks
    start = prev = ordered[0]
    for r in ordered[1:]:
        if r != prev + 1:
            blocks.append((start, prev - start + 1))
            start = r
        prev = r
    blocks.append((start, prev - start + 1))
    return blocks
