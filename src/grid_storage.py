"""
Доступ к таблице: чтение/запись прямоугольных диапазонов, формулы и оформление.

Строки и колонки нумеруются с 1, как в самой таблице.
"""

from copy import copy
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

import openpyxl
from openpyxl.comments import Comment
from openpyxl.styles import PatternFill
from openpyxl.worksheet.filters import AutoFilter
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException


class GridStorageError(Exception):
    pass


def cell_ref(row: int, col: int) -> str:
    return f"{get_column_letter(col)}{row}"


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


class GridStorage:
    """Интерфейс хранилища. Адаптеры: InMemoryGrid и XlsxGrid."""

    def has_sheet(self, sheet: str) -> bool:
        raise NotImplementedError

    def last_row(self, sheet: str) -> int:
        raise NotImplementedError

    def read_region(self, sheet: str, row: int, col: int, height: int, width: int) -> List[list]:
        raise NotImplementedError

    def read_formulas(self, sheet: str, row: int, col: int, height: int, width: int) -> List[List[str]]:
        raise NotImplementedError

    def write_region(self, sheet: str, row: int, col: int, values: List[list]):
        raise NotImplementedError

    def set_backgrounds(self, sheet: str, row: int, col: int, colors: List[list]):
        raise NotImplementedError

    def set_font_colors(self, sheet: str, row: int, col: int, colors: List[list]):
        raise NotImplementedError

    def set_notes(self, sheet: str, row: int, col: int, notes: List[list]):
        raise NotImplementedError

    def set_font_line(self, sheet: str, row: int, col: int, height: int, width: int, line: str):
        raise NotImplementedError

    def remove_filter(self, sheet: str):
        raise NotImplementedError

    def save(self):
        pass

    def _check_region(self, sheet: str, row: int, col: int, height: int, width: int):
        if not self.has_sheet(sheet):
            raise GridStorageError(f"лист не найден: {sheet}")
        if row < 1 or col < 1 or height < 1 or width < 1:
            raise GridStorageError(f"некорректный диапазон {sheet}!{row}:{col} {height}x{width}")


class InMemoryGrid(GridStorage):
    """Таблица в памяти: для тестов и пробных запусков."""

    def __init__(self, sheets: Optional[Dict[str, List[list]]] = None):
        self.cells: Dict[str, Dict[Tuple[int, int], object]] = {}
        self.formulas: Dict[str, Dict[Tuple[int, int], str]] = {}
        self.backgrounds: Dict[Tuple[str, int, int], Optional[str]] = {}
        self.font_colors: Dict[Tuple[str, int, int], Optional[str]] = {}
        self.notes: Dict[Tuple[str, int, int], str] = {}
        self.font_lines: Dict[Tuple[str, int, int], str] = {}
        self.filters = set()
        self.write_calls: List[Tuple[str, int, int, int, int]] = []
        for name, rows in (sheets or {}).items():
            self.add_sheet(name, rows)

    def add_sheet(self, sheet: str, rows: Optional[List[list]] = None, start_row: int = 1):
        self.cells.setdefault(sheet, {})
        self.formulas.setdefault(sheet, {})
        for i, r in enumerate(rows or []):
            for j, v in enumerate(r):
                if not _blank(v):
                    self.cells[sheet][(start_row + i, j + 1)] = v

    def set_formula(self, sheet: str, row: int, col: int, formula: str, value=None):
        self.formulas[sheet][(row, col)] = formula
        self.cells[sheet][(row, col)] = value

    def add_filter(self, sheet: str):
        self.filters.add(sheet)

    def value(self, sheet: str, row: int, col: int):
        return self.cells[sheet].get((row, col))

    def has_sheet(self, sheet: str) -> bool:
        return sheet in self.cells

    def last_row(self, sheet: str) -> int:
        if not self.has_sheet(sheet):
            raise GridStorageError(f"лист не найден: {sheet}")
        rows = [r for (r, _), v in self.cells[sheet].items() if not _blank(v)]
        return max(rows) if rows else 0

    def read_region(self, sheet, row, col, height, width):
        self._check_region(sheet, row, col, height, width)
        data = self.cells[sheet]
        return [[data.get((row + i, col + j)) for j in range(width)] for i in range(height)]

    def read_formulas(self, sheet, row, col, height, width):
        self._check_region(sheet, row, col, height, width)
        data = self.formulas[sheet]
        return [[data.get((row + i, col + j), "") for j in range(width)] for i in range(height)]

    def write_region(self, sheet, row, col, values):
        if not values:
            return
        self._check_region(sheet, row, col, len(values), len(values[0]))
        self.write_calls.append((sheet, row, col, len(values), len(values[0])))
        for i, r in enumerate(values):
            for j, v in enumerate(r):
                key = (row + i, col + j)
                if isinstance(v, str) and v.startswith("="):
                    self.formulas[sheet][key] = v
                    continue
                self.formulas[sheet].pop(key, None)
                if _blank(v):
                    self.cells[sheet].pop(key, None)
                else:
                    self.cells[sheet][key] = v

    def _set_style(self, store, sheet, row, col, values):
        if not values:
            return
        self._check_region(sheet, row, col, len(values), len(values[0]))
        for i, r in enumerate(values):
            for j, v in enumerate(r):
                store[(sheet, row + i, col + j)] = v

    def set_backgrounds(self, sheet, row, col, colors):
        self._set_style(self.backgrounds, sheet, row, col, colors)

    def set_font_colors(self, sheet, row, col, colors):
        self._set_style(self.font_colors, sheet, row, col, colors)

    def set_notes(self, sheet, row, col, notes):
        self._set_style(self.notes, sheet, row, col, notes)

    def set_font_line(self, sheet, row, col, height, width, line):
        self._set_style(self.font_lines, sheet, row, col, [[line] * width for _ in range(height)])

    def remove_filter(self, sheet):
        self.filters.discard(sheet)


def _argb(color: Optional[str]) -> Optional[str]:
    if not color:
        return None
    s = str(color).lstrip("#").upper()
    return "FF" + s if len(s) == 6 else s


class XlsxGrid(GridStorage):
    """Книга .xlsx через openpyxl.

    Формулы хранятся в основной книге, а для чтения значений формульных ячеек
    используется кэш, сохранённый Excel/LibreOffice (data_only=True).
    """

    DATE_FORMAT = "DD.MM.YYYY"

    def __init__(self, path: str):
        self.path = path
        try:
            self.wb = openpyxl.load_workbook(path)
            self.values_wb = openpyxl.load_workbook(path, data_only=True)
        except FileNotFoundError as e:
            raise GridStorageError(f"файл не найден: {path}") from e
        except InvalidFileException as e:
            raise GridStorageError(f"не xlsx: {path}") from e

    def _ws(self, sheet: str):
        if sheet not in self.wb.sheetnames:
            raise GridStorageError(f"лист не найден: {sheet}")
        return self.wb[sheet]

    def has_sheet(self, sheet: str) -> bool:
        return sheet in self.wb.sheetnames

    def last_row(self, sheet: str) -> int:
        ws = self._ws(sheet)
        last = 0
        for i, row in enumerate(ws.iter_rows(values_only=True), start=1):
            if any(not _blank(v) for v in row):
                last = i
        return last

    def read_region(self, sheet, row, col, height, width):
        self._check_region(sheet, row, col, height, width)
        ws, vws = self.wb[sheet], self.values_wb[sheet]
        out = []
        for i in range(height):
            line = []
            for j in range(width):
                c = ws.cell(row=row + i, column=col + j)
                if c.data_type == "f":
                    line.append(vws.cell(row=row + i, column=col + j).value)
                else:
                    line.append(c.value)
            out.append(line)
        return out

    def read_formulas(self, sheet, row, col, height, width):
        self._check_region(sheet, row, col, height, width)
        ws = self.wb[sheet]
        out = []
        for i in range(height):
            line = []
            for j in range(width):
                c = ws.cell(row=row + i, column=col + j)
                line.append(str(getattr(c.value, "text", c.value)) if c.data_type == "f" else "")
            out.append(line)
        return out

    def write_region(self, sheet, row, col, values):
        if not values:
            return
        self._check_region(sheet, row, col, len(values), len(values[0]))
        ws, vws = self.wb[sheet], self.values_wb[sheet]
        for i, r in enumerate(values):
            for j, v in enumerate(r):
                if _blank(v):
                    v = None
                c = ws.cell(row=row + i, column=col + j)
                c.value = v
                if isinstance(v, (date, datetime)):
                    c.number_format = self.DATE_FORMAT
                if not (isinstance(v, str) and v.startswith("=")):
                    vws.cell(row=row + i, column=col + j).value = v

    def set_backgrounds(self, sheet, row, col, colors):
        ws = self._ws(sheet)
        for i, r in enumerate(colors):
            for j, color in enumerate(r):
                argb = _argb(color)
                fill = PatternFill(fill_type="solid", start_color=argb, end_color=argb) if argb else PatternFill(fill_type=None)
                ws.cell(row=row + i, column=col + j).fill = fill

    def set_font_colors(self, sheet, row, col, colors):
        ws = self._ws(sheet)
        for i, r in enumerate(colors):
            for j, color in enumerate(r):
                c = ws.cell(row=row + i, column=col + j)
                font = copy(c.font)
                font.color = _argb(color)
                c.font = font

    def set_notes(self, sheet, row, col, notes):
        ws = self._ws(sheet)
        for i, r in enumerate(notes):
            for j, note in enumerate(r):
                ws.cell(row=row + i, column=col + j).comment = Comment(note, "ledger-transfer") if note else None

    def set_font_line(self, sheet, row, col, height, width, line):
        ws = self._ws(sheet)
        for i in range(height):
            for j in range(width):
                c = ws.cell(row=row + i, column=col + j)
                font = copy(c.font)
                font.strike = line == "line-through"
                c.font = font

    def remove_filter(self, sheet):
        self._ws(sheet).auto_filter = AutoFilter()

    def save(self):
        self.wb.save(self.path)
