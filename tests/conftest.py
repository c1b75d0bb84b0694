import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from config_loader import load_transfer_config
from grid_storage import InMemoryGrid
from state_store import init_db

INPUT = "⏬ ВНЕСЕНИЕ"
LEDGER = "☑️ ПРОВОДКИ"
DICT = "Справочник"
ACTS = "РЕЕСТР АКТОВ"

LEDGER_HEADER = ["Дата", "Кошелёк", "Сумма", "Статья", "Расшифровка", "Акт", "Категория", "Тип", "Подсказка", "Прораб"]
DICT_HEADER = ["Тип", "Категория", "Статья", "Расшифровка", "Акт"]
ACTS_HEADER = ["№", "Адрес", "Акт"]


def act_row(address, act_number, wage=False, deposit=False, paid=False):
    row = [None] * 18
    row[1] = address
    row[2] = act_number
    row[4] = 100000
    row[8] = 30000
    row[9] = 5000
    row[10] = 25000
    row[15] = wage
    row[16] = deposit
    row[17] = paid
    return row


def build_grid(input_rows=(), ledger_rows=(), dict_rows=(), acts_rows=None, grid_cls=InMemoryGrid):
    grid = grid_cls()
    # блок ввода начинается с B10
    grid.add_sheet(INPUT, [[None] + list(r) for r in input_rows], start_row=10)
    grid.add_sheet(LEDGER, [LEDGER_HEADER] + [list(r) for r in ledger_rows])
    grid.add_sheet(DICT, [DICT_HEADER] + [list(r) for r in dict_rows])
    if acts_rows is not None:
        grid.add_sheet(ACTS, [ACTS_HEADER] + [list(r) for r in acts_rows])
    return grid


@pytest.fixture
def cfg(tmp_path):
    return load_transfer_config(str(tmp_path / "missing.yml"))


@pytest.fixture
def state_db(tmp_path, monkeypatch):
    db = tmp_path / "state.db"
    monkeypatch.setenv("TRANSFER_STATE_DB", str(db))
    init_db()
    return db
