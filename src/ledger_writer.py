"""
Батчевые записи в таблицу: ПРОВОДКИ, очистка ВНЕСЕНИЯ, Справочник, РЕЕСТР АКТОВ.

Каждая функция делает одну операцию записи (или по одной на непрерывный блок
строк) и пробрасывает исключения хранилища наверх: решение, продолжать ли
запуск, принимает TransferRunner.
"""

from typing import Dict, Iterable, List, Optional

from acts_index import DEPOSIT, FIRST_DATA_ROW, HANDS, REVENUE, WAGE_FLAG, ActsIndex, contiguous_blocks
from grid_storage import GridStorage
from ledger_models import DictionaryRecord, Entry

NBSP = "\u00a0"


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def normalize_input(grid: GridStorage, cfg: Dict) -> int:
    """NBSP → пробел и trim в колонках B..F блока ВНЕСЕНИЯ. Формулы не трогаем.

    Возвращает число изменённых ячеек; запись одна и только если что-то поменялось.
    """
    sheet = cfg["sheets"]["input"]
    inp = cfg["input"]
    height = inp["end_row"] - inp["start_row"] + 1
    width = inp["normalize_width"]

    values = grid.read_region(sheet, inp["start_row"], inp["start_col"], height, width)
    formulas = grid.read_formulas(sheet, inp["start_row"], inp["start_col"], height, width)

    changed = 0
    for r, row in enumerate(values):
        for c, v in enumerate(row):
            if formulas[r][c]:
                row[c] = formulas[r][c]
                continue
            if isinstance(v, str):
                new_v = v.replace(NBSP, " ").strip()
                if new_v != v:
                    row[c] = new_v
                    changed += 1

    if changed:
        grid.write_region(sheet, inp["start_row"], inp["start_col"], values)
    return changed


def find_start_row(grid: GridStorage, sheet: str, hint, batch_size: int,
                   rescan_rows: int = 10, width: int = 10) -> int:
    """Первая строка для записи батча в ПРОВОДКИ.

    От сохранённой позиции отступаем rescan_rows вверх и ищем пустой промежуток,
    в который батч влезает целиком. Не нашли: пишем после последней строки.
    """
    last_row = max(grid.last_row(sheet), 1)  # строка 1: заголовок
    append_at = last_row + 1

    try:
        hint = int(hint)
    except (TypeError, ValueError):
        hint = last_row
    if hint < 2:
        hint = last_row

    scan_from = max(2, hint - rescan_rows)
    if scan_from > last_row:
        scan_from = 2
    if last_row < 2:
        return 2

    rows = grid.read_region(sheet, scan_from, 1, last_row - scan_from + 1, width)
    run_start, run_len = None, 0
    for i, row in enumerate(rows):
        if all(_is_empty(v) for v in row):
            if run_start is None:
                run_start = scan_from + i
            run_len += 1
            if run_len >= batch_size:
                return run_start
        else:
            run_start, run_len = None, 0
    return append_at


def ledger_row_colors(entries: List[Entry], cfg: Dict):
    """(фон колонки суммы по типу, фон колонки кошелька по кошельку)."""
    colors = cfg["colors"]
    types = cfg["types"]
    wallets = cfg["wallets"]
    by_type = {types["income"]: colors["income"], types["expense"]: colors["expense"]}
    amount_bg = [[by_type.get(e.type)] for e in entries]
    wallet_bg = [[wallets.get(e.wallet)] for e in entries]
    return amount_bg, wallet_bg


def write_ledger_batch(grid: GridStorage, cfg: Dict, entries: List[Entry], properties) -> int:
    """Пишет батч в ПРОВОДКИ, красит строки, сохраняет LAST_PROV_ROW. Возвращает первую строку."""
    sheet = cfg["sheets"]["ledger"]
    ledger = cfg["ledger"]
    grid.remove_filter(sheet)

    start = find_start_row(
        grid, sheet, properties.get(ledger["pointer_key"]), len(entries),
        rescan_rows=ledger["rescan_rows"], width=ledger["width"],
    )
    grid.write_region(sheet, start, 1, [e.to_row() for e in entries])

    amount_bg, wallet_bg = ledger_row_colors(entries, cfg)
    grid.set_backgrounds(sheet, start, 3, amount_bg)
    grid.set_backgrounds(sheet, start, 2, wallet_bg)

    properties.set(ledger["pointer_key"], start + len(entries) - 1)
    return start


def clear_processed_input_rows(grid: GridStorage, cfg: Dict, row_indices: Iterable[int]) -> int:
    """Очищает B..G обработанных строк ВНЕСЕНИЯ (индексы от 0 внутри блока).

    Ячейки с формулами получают свою формулу обратно.
    """
    sheet = cfg["sheets"]["input"]
    inp = cfg["input"]
    width = inp["clear_width"]
    rows = [inp["start_row"] + i for i in row_indices]
    cleared = 0
    for start, height in contiguous_blocks(rows):
        formulas = grid.read_formulas(sheet, start, inp["start_col"], height, width)
        values = [[f if f else None for f in line] for line in formulas]
        grid.write_region(sheet, start, inp["start_col"], values)
        cleared += height
    return cleared


def append_dictionary_rows(grid: GridStorage, cfg: Dict, records: List[DictionaryRecord]) -> Optional[int]:
    if not records:
        return None
    sheet = cfg["sheets"]["dictionary"]
    start = grid.last_row(sheet) + 1
    grid.write_region(sheet, start, 1, [r.to_row() for r in records])
    return start


def apply_acts_flags(grid: GridStorage, cfg: Dict, acts_index: ActsIndex):
    """Колонки "ЗП выдана" и "Депозит возвращён" целиком, одной записью."""
    wage = acts_index.flag_column("wage")
    deposit = acts_index.flag_column("deposit")
    values = [[w[0], d[0]] for w, d in zip(wage, deposit)]
    if values:
        grid.write_region(cfg["sheets"]["acts"], FIRST_DATA_ROW, WAGE_FLAG, values)


def apply_revenue_colors(grid: GridStorage, cfg: Dict, revenue_colors: Dict[int, str]):
    sheet = cfg["sheets"]["acts"]
    for row, color in sorted(revenue_colors.items()):
        grid.set_backgrounds(sheet, row, REVENUE, [[color]])


def apply_closed_style(grid: GridStorage, cfg: Dict, rows: Iterable[int], column: int):
    """Зелёный фон, тёмно-зелёный шрифт, без заметок и зачёркивание. Один вызов на блок строк."""
    sheet = cfg["sheets"]["acts"]
    bg = cfg["colors"]["closed_bg"]
    font = cfg["colors"]["closed_font"]
    for start, height in contiguous_blocks(rows):
        grid.set_backgrounds(sheet, start, column, [[bg]] * height)
        grid.set_font_colors(sheet, start, column, [[font]] * height)
        grid.set_notes(sheet, start, column, [[""]] * height)
        grid.set_font_line(sheet, start, column, height, 1, "line-through")


def apply_acts_styles(grid: GridStorage, cfg: Dict, wage_rows: Iterable[int], deposit_rows: Iterable[int]):
    # ЗП по акту закрывает "на руки", возврат удержания закрывает депозит
    apply_closed_style(grid, cfg, wage_rows, HANDS)
    apply_closed_style(grid, cfg, deposit_rows, DEPOSIT)
