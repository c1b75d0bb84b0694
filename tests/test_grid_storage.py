from datetime import date

import openpyxl
import pytest

from grid_storage import GridStorageError, InMemoryGrid, XlsxGrid, cell_ref


def test_cell_ref():
    assert cell_ref(10, 2) == "B10"
    assert cell_ref(1, 28) == "AB1"


class TestInMemoryGrid:
    def setup_method(self):
        self.grid = InMemoryGrid({"S": [["a", "b"], [None, ""], ["c"]]})

    def test_read_region_pads_with_none(self):
        assert self.grid.read_region("S", 1, 1, 3, 3) == [["a", "b", None], [None, None, None], ["c", None, None]]
        assert self.grid.last_row("S") == 3

    def test_write_and_clear(self):
        self.grid.write_region("S", 5, 2, [["x", date(2025, 12, 17)]])
        assert self.grid.value("S", 5, 3) == date(2025, 12, 17)
        assert self.grid.last_row("S") == 5
        self.grid.write_region("S", 5, 2, [[None, ""]])
        assert self.grid.last_row("S") == 3

    def test_formulas_survive_value_reads(self):
        self.grid.set_formula("S", 2, 1, "=A1", "a")
        assert self.grid.read_region("S", 2, 1, 1, 1) == [["a"]]
        assert self.grid.read_formulas("S", 2, 1, 1, 2) == [["=A1", ""]]
        self.grid.write_region("S", 2, 1, [["plain"]])
        assert self.grid.read_formulas("S", 2, 1, 1, 1) == [[""]]

    def test_styles_and_filter(self):
        self.grid.add_filter("S")
        self.grid.set_backgrounds("S", 1, 1, [["#fff"], [None]])
        self.grid.set_font_line("S", 1, 1, 2, 1, "line-through")
        self.grid.remove_filter("S")
        assert self.grid.backgrounds[("S", 1, 1)] == "#fff"
        assert self.grid.font_lines[("S", 2, 1)] == "line-through"
        assert "S" not in self.grid.filters

    def test_errors(self):
        with pytest.raises(GridStorageError):
            self.grid.read_region("нет листа", 1, 1, 1, 1)
        with pytest.raises(GridStorageError):
            self.grid.read_region("S", 0, 1, 1, 1)
        with pytest.raises(GridStorageError):
            self.grid.last_row("нет листа")


@pytest.fixture
def workbook(tmp_path):
    path = tmp_path / "book.xlsx"
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "☑️ ПРОВОДКИ"
    ws.append(["Дата", "Кошелёк", "Сумма"])
    ws.append(["17.12.2025", "Карта", 5000])
    ws["D2"] = "=C2*2"
    ws.auto_filter.ref = "A1:C2"
    wb.create_sheet("Справочник")
    wb.save(path)
    return path


def test_xlsx_reads_values_and_formulas(workbook):
    grid = XlsxGrid(str(workbook))
    assert grid.has_sheet("Справочник")
    assert not grid.has_sheet("Нет")
    assert grid.last_row("☑️ ПРОВОДКИ") == 2
    assert grid.last_row("Справочник") == 0
    assert grid.read_region("☑️ ПРОВОДКИ", 2, 2, 1, 2) == [["Карта", 5000]]
    assert grid.read_formulas("☑️ ПРОВОДКИ", 2, 3, 1, 2) == [["", "=C2*2"]]
    # кэш формул пуст, пока файл не пересчитан в Excel
    assert grid.read_region("☑️ ПРОВОДКИ", 2, 4, 1, 1) == [[None]]


def test_xlsx_write_style_and_save(workbook):
    grid = XlsxGrid(str(workbook))
    sheet = "☑️ ПРОВОДКИ"
    grid.write_region(sheet, 3, 1, [[date(2025, 12, 18), "Наличные", 700]])
    grid.set_backgrounds(sheet, 3, 3, [["#E6F4EA"]])
    grid.set_font_colors(sheet, 3, 3, [["#385723"]])
    grid.set_notes(sheet, 3, 3, [["проверить"]])
    grid.set_font_line(sheet, 3, 3, 1, 1, "line-through")
    grid.remove_filter(sheet)

    ws = grid.wb[sheet]
    cell = ws.cell(row=3, column=3)
    assert cell.fill.fill_type == "solid"
    assert cell.fill.start_color.rgb == "FFE6F4EA"
    assert cell.font.color.rgb == "FF385723"
    assert cell.font.strike
    assert cell.comment.text == "проверить"
    assert ws.cell(row=3, column=1).number_format == "DD.MM.YYYY"
    assert not ws.auto_filter.ref
    assert grid.read_region(sheet, 3, 2, 1, 2) == [["Наличные", 700]]

    grid.set_notes(sheet, 3, 3, [[""]])
    assert ws.cell(row=3, column=3).comment is None
    grid.save()

    reloaded = openpyxl.load_workbook(workbook)
    assert reloaded[sheet].cell(row=3, column=1).value.date() == date(2025, 12, 18)
    assert reloaded[sheet].cell(row=3, column=2).value == "Наличные"


def test_xlsx_missing_file(tmp_path):
    with pytest.raises(GridStorageError):
        XlsxGrid(str(tmp_path / "none.xlsx"))
