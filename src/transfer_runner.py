"""
Перенос строк ⏬ ВНЕСЕНИЕ → ☑️ ПРОВОДКИ.

TransferRunner один раз читает блок ввода, Справочник, хвост ПРОВОДОК и (если нужно)
РЕЕСТР АКТОВ, проводит каждую строку через проверки и собирает батч. Записи в
таблицу делаются в конце, по одной на область. Ошибка в строке не останавливает
запуск; ошибка записи ПРОВОДОК отменяет все последующие записи.
"""

import time
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

import ledger_writer
from act_reconciler import ActReconciler
from acts_index import ACTS_WIDTH, FIRST_DATA_ROW, ActsIndex
from config_loader import load_transfer_config
from date_utils import clamp_to_current_month, format_date, month_offset, parse_sheet_date
from dictionary_index import (DictionaryIndex, build_dictionary_index, candidate_articles,
                              records_from_rows, similar_decodings)
from duplicate_detector import DuplicateGuard, amount_key, build_existing_keys, entry_key
from grid_storage import GridStorage, cell_ref
from ledger_models import (DictionaryRecord, DuplicateDecision, Entry, ErrorKind, PersistenceFailure,
                           RepeatPayoutDecision, RowError, RunReport)
from operator_prompt import OperatorPrompt
from row_validator import COL_AMOUNT, COL_DATE, is_blank_row, parse_amount, row_article, validate_row
from state_store import PropertyStore, write_audit
from transfer_mirror import mirror_transfer


class DecisionCache:
    """Ответы оператора: DuplicateDecision / RepeatPayoutDecision → да/нет."""

    def __init__(self):
        self._answers: Dict[object, bool] = {}

    def get(self, key) -> Optional[bool]:
        return self._answers.get(key)

    def remember(self, keys: Iterable[object], answer: bool):
        for key in keys:
            self._answers[key] = answer

    def __contains__(self, key) -> bool:
        return key in self._answers

    def __len__(self) -> int:
        return len(self._answers)


class TransferRunner:

    def __init__(self, grid: GridStorage, prompt: OperatorPrompt, cfg: Optional[Dict] = None,
                 auto: bool = False, dry_run: bool = False, today: Optional[date] = None,
                 properties=None, audit: Callable = write_audit):
        self.grid = grid
        self.prompt = prompt
        self.cfg = cfg or load_transfer_config()
        self.auto = auto
        self.dry_run = dry_run
        self.today = today or date.today()
        self.properties = properties if properties is not None else PropertyStore()
        self.audit = audit

        self.decisions = DecisionCache()
        self.suggestions: Dict[str, Set[str]] = {}
        self._t0 = 0.0

    # ---- служебное -------------------------------------------------------

    def _log_time(self, label: str):
        print(f"⏱️ [{time.time() - self._t0:.2f}s] {label}")

    def _ref(self, row_index: int) -> str:
        inp = self.cfg["input"]
        return cell_ref(inp["start_row"] + row_index, inp["start_col"])

    def _reject(self, report: RunReport, row_index: int, kind: ErrorKind, detail: str = ""):
        report.errors.append(RowError(row_index, self._ref(row_index), kind, detail))

    def _decide(self, key, title: str, message: str) -> bool:
        """Да/нет по ключу решения. Авто-режим и таймаут дают "нет"."""
        if self.auto:
            return False
        cached = self.decisions.get(key)
        if cached is not None:
            return cached
        answer = self.prompt.confirm(title, message) is True
        self.decisions.remember([key], answer)
        return answer

    # ---- чтение ----------------------------------------------------------

    def _read_input(self) -> List[list]:
        inp = self.cfg["input"]
        height = inp["end_row"] - inp["start_row"] + 1
        return self.grid.read_region(self.cfg["sheets"]["input"], inp["start_row"], inp["start_col"], height, inp["width"])

    def _read_sheet_body(self, sheet: str, width: int, first_row: int = 2, last_n: int = 0) -> List[list]:
        if not self.grid.has_sheet(sheet):
            return []
        last = self.grid.last_row(sheet)
        if last < first_row:
            return []
        start = max(first_row, last - last_n + 1) if last_n > 0 else first_row
        return self.grid.read_region(sheet, start, 1, last - start + 1, width)

    def load_dictionary(self) -> DictionaryIndex:
        rows = self._read_sheet_body(self.cfg["sheets"]["dictionary"], 5)
        dcfg = self.cfg["dictionary"]
        return build_dictionary_index(
            records_from_rows(rows),
            act_marker=self.cfg["acts"]["act_required_marker"],
            wildcard_prefix=dcfg["wildcard_prefix"],
        )

    def load_existing_keys(self) -> Set[str]:
        ledger = self.cfg["ledger"]
        window = ledger["duplicate_window"]
        rows = self._read_sheet_body(self.cfg["sheets"]["ledger"], ledger["width"], last_n=window)
        return build_existing_keys(rows, window)

    def load_acts(self) -> ActsIndex:
        rows = self._read_sheet_body(self.cfg["sheets"]["acts"], ACTS_WIDTH, first_row=FIRST_DATA_ROW)
        return ActsIndex.build(rows or None)

    def needs_acts(self, rows: List[list]) -> bool:
        arts = self.cfg["articles"]
        linked = {arts["wage_payout"], arts["deposit_return"], arts["revenue"]}
        for row in rows:
            amount = parse_amount(row[COL_AMOUNT])
            if amount and row_article(row) in linked:
                return True
        return False

    # ---- шаги до основного прохода --------------------------------------

    def precheck_month(self, rows: List[list]) -> int:
        """Даты не из текущего месяца: один вопрос, при отказе/таймауте сдвиг в текущий месяц.

        Колонка дат пишется обратно одной записью. Возвращает число сдвинутых дат.
        """
        past, future = [], []
        for i, row in enumerate(rows):
            if not parse_amount(row[COL_AMOUNT]):
                continue
            d = parse_sheet_date(row[COL_DATE])
            if d is None:
                continue
            offset = month_offset(d, self.today)
            if offset < 0:
                past.append(i)
            elif offset > 0:
                future.append(i)

        if not past and not future:
            return 0

        clamp = False
        if not self.auto:
            msg = ""
            if past:
                msg += f"Прошлый месяц: {len(past)} строк\n"
            if future:
                msg += f"Будущий месяц: {len(future)} строк\n"
            msg += "\nОставить даты как есть? (Нет: перенести в текущий месяц)"
            clamp = self.prompt.confirm("Проверка дат", msg) is not True

        moved = 0
        if clamp:
            for i in past + future:
                rows[i][COL_DATE] = clamp_to_current_month(parse_sheet_date(rows[i][COL_DATE]), self.today)
                moved += 1

        if not self.dry_run:
            sheet = self.cfg["sheets"]["input"]
            inp = self.cfg["input"]
            formulas = self.grid.read_formulas(sheet, inp["start_row"], inp["start_col"], len(rows), 1)
            column = [[formulas[i][0] or row[COL_DATE]] for i, row in enumerate(rows)]
            self.grid.write_region(sheet, inp["start_row"], inp["start_col"], column)
        return moved

    def prescan_decisions(self, rows: List[list], guard: DuplicateGuard, reconciler: ActReconciler):
        """Собирает будущие дубли и повторные выплаты и задаёт по одному вопросу на категорию."""
        duplicates: List[Tuple[DuplicateDecision, str]] = []
        repeats: List[Tuple[RepeatPayoutDecision, str]] = []
        seen_dups, seen_repeats, run_keys = set(), set(), set()

        for i, row in enumerate(rows):
            if is_blank_row(row):
                continue
            v = validate_row(row)
            if not v.ok:
                continue
            entry = v.to_entry(self.today if v.wants_today else v.date)
            key = entry_key(entry.date, entry.article, entry.decoding, entry.amount)

            if (guard.is_duplicate(key, entry.article) or key in run_keys) and key not in seen_dups:
                seen_dups.add(key)
                duplicates.append((DuplicateDecision(key), self._entry_label(entry)))
            run_keys.add(key)

            out = reconciler.check(entry)
            if out.applies and out.ok and out.already_set:
                decision = RepeatPayoutDecision(out.act_key, out.flag)
                if decision not in seen_repeats:
                    seen_repeats.add(decision)
                    repeats.append((decision, f"Строка {self._ref(i)}: {reconciler.describe_repeat(decision)}"))

        if duplicates:
            lines = [f"{n}. {label}" for n, (_, label) in enumerate(duplicates, 1)]
            msg = "Обнаружены дубли:\n\n" + "\n".join(lines) + "\n\nВнести все повторно?"
            answer = self.prompt.confirm("Дубликаты проводок", msg) is True
            self.decisions.remember([k for k, _ in duplicates], answer)

        if repeats:
            lines = [f"{n}. {label}" for n, (_, label) in enumerate(repeats, 1)]
            msg = "Обнаружены повторные выплаты по актам:\n\n" + "\n".join(lines) + "\n\nПовторить все операции?"
            answer = self.prompt.confirm("Повторные операции по актам", msg) is True
            self.decisions.remember([k for k, _ in repeats], answer)

    @staticmethod
    def _entry_label(entry: Entry) -> str:
        return f"{format_date(entry.date)} | {entry.article} | {entry.decoding} | {amount_key(entry.amount)}"

    # ---- основной проход -------------------------------------------------

    def process_row(self, i: int, row: list, report: RunReport, dictionary: DictionaryIndex,
                    guard: DuplicateGuard, reconciler: ActReconciler) -> Optional[List[Entry]]:
        """Одна строка ВНЕСЕНИЯ → проводки для записи или None (ошибка уже в отчёте)."""
        v = validate_row(row)
        if not v.ok:
            self._reject(report, i, v.error)
            return None

        entry = v.to_entry(self.today if v.wants_today else v.date)
        article, decoding = entry.article, entry.decoding

        if abs(entry.amount) > self.cfg["limits"]["big_amount"]:
            report.big_amounts.append(f"{self._ref(i)}: {article} {decoding} ({amount_key(entry.amount)})")

        if dictionary.requires_act(article) and not entry.act:
            self._reject(report, i, ErrorKind.ACT_REQUIRED_BUT_MISSING, article)
            return None

        key = entry_key(entry.date, article, decoding, entry.amount)
        if guard.is_duplicate(key, article):
            approved = self._decide(
                DuplicateDecision(key), "Дубликат проводки",
                f"{self._entry_label(entry)}\n\nВнести повторно?",
            )
            if not approved:
                self._reject(report, i, ErrorKind.DUPLICATE_REJECTED, f"{article} {decoding}".strip())
                return None

        if dictionary.is_wildcard(article) and not decoding:
            self._reject(report, i, ErrorKind.WILDCARD_ARTICLE_MISSING_DECODING, article)
            return None

        suggest = unknown = False
        if not dictionary.has_pair(article, decoding) and not dictionary.is_wildcard(article):
            if dictionary.is_known(article):
                suggest = bool(decoding)
            else:
                unknown = True

        if reconciler.applies(article):
            out = reconciler.reconcile(
                entry,
                lambda k: self._decide(k, "Повторная выплата по акту",
                                       f"{reconciler.describe_repeat(k)}\nПо акту уже стоит галочка выплаты."
                                       "\n\nПровести повторно?"),
            )
            if not out.ok:
                self._reject(report, i, out.error, out.act_key or f"{article} {decoding}".strip())
                return None

        mirror = mirror_transfer(entry, self.cfg)
        if mirror.error:
            self._reject(report, i, ErrorKind.TRANSFER_MIRROR_REJECTED, mirror.error)
            return None

        # строка принята
        guard.accept(key)
        if suggest:
            self.suggestions.setdefault(article, set()).add(decoding)
        if unknown:
            report.unknown_articles[article] = candidate_articles(dictionary, decoding)
        reconciler.note_revenue(entry)

        out_entries = [entry]
        if mirror.extra_entry:
            out_entries.append(mirror.extra_entry)
        return out_entries

    # ---- записи ----------------------------------------------------------

    def _persistence_failed(self, report: RunReport, step: str, exc: Exception):
        message = str(exc) or exc.__class__.__name__
        print(f"❌ Ошибка записи ({step}): {message}")
        report.persistence_failures.append(PersistenceFailure(step, message))
        self.audit("ERROR", "transfer", f"persist:{step}", [], 0, "failed", message)
        if not self.auto:
            self.prompt.notify("Ошибка", f"Не удалось записать ({step}): {message}")

    def _step(self, report: RunReport, step: str, fn: Callable[[], object]) -> bool:
        try:
            fn()
        except Exception as e:
            self._persistence_failed(report, step, e)
            return False
        self._log_time(f"запись: {step}")
        return True

    def add_new_decodings(self, dictionary: DictionaryIndex, report: RunReport):
        """Новые пары (статья, расшифровка) в Справочник: с вопросом или по auto_approve."""
        if not self.suggestions:
            return
        dcfg = self.cfg["dictionary"]
        if self.auto and not dcfg["auto_approve"]:
            return

        items = [(a, d) for a in sorted(self.suggestions) for d in sorted(self.suggestions[a])]
        if self.auto:
            approved = items
        else:
            listing = []
            for a, d in items:
                similar = similar_decodings(dictionary, a, d, min_similarity=dcfg["similarity"],
                                            wildcard_prefix=dcfg["wildcard_prefix"])
                hint = f" (похоже на: {', '.join(similar)})" if similar else ""
                listing.append(f"• {a} → {d}{hint}")
            want = self.prompt.confirm(
                "Новые расшифровки",
                "Я вижу новые расшифровки:\n\n" + "\n".join(listing) + "\n\nДобавить их в справочник?",
            )
            if want is not True:
                return

            mode = dcfg["add_mode"]
            if mode == "ask":
                all_at_once = self.prompt.confirm(
                    "Режим добавления", "Добавить все сразу (Да) или по одной с подтверждением (Нет)?") is True
            else:
                all_at_once = mode == "batch"

            if all_at_once:
                approved = items
            else:
                approved = []
                for a, d in items:
                    m = dictionary.meta[a]
                    msg = f"Тип: {m.type}\nКатегория: {m.category}\nСтатья: {a}\nРасшифровка: {d}\n\nДобавить эту строку?"
                    if self.prompt.confirm('Добавить в "Справочник"?', msg) is True:
                        approved.append((a, d))

        records = []
        for a, d in approved:
            m = dictionary.meta[a]
            records.append(DictionaryRecord(m.type, m.category, a, d, m.act_marker))
        ledger_writer.append_dictionary_rows(self.grid, self.cfg, records)
        report.new_decodings.extend(f"{a} → {d}" for a, d in approved)

    def persist_acts(self, acts_index: ActsIndex, reconciler: ActReconciler):
        if reconciler.wage_rows or reconciler.deposit_rows:
            ledger_writer.apply_acts_flags(self.grid, self.cfg, acts_index)
        ledger_writer.apply_revenue_colors(self.grid, self.cfg, reconciler.revenue_colors)
        ledger_writer.apply_acts_styles(self.grid, self.cfg, reconciler.wage_rows, reconciler.deposit_rows)

    def persist(self, report: RunReport, batch: List[Entry], processed: List[int], blank: List[int],
                dictionary: DictionaryIndex, acts_index: Optional[ActsIndex], reconciler: ActReconciler):
        if batch:
            def write_ledger():
                report.ledger_start_row = ledger_writer.write_ledger_batch(self.grid, self.cfg, batch, self.properties)

            if not self._step(report, "ledger", write_ledger):
                # без ПРОВОДОК остальные записи бессмысленны
                return
            report.written = list(batch)

        if processed:
            self._step(report, "input", lambda: ledger_writer.clear_processed_input_rows(
                self.grid, self.cfg, sorted(processed + blank)))

        self._step(report, "dictionary", lambda: self.add_new_decodings(dictionary, report))

        if acts_index is not None and reconciler.has_changes:
            self._step(report, "acts", lambda: self.persist_acts(acts_index, reconciler))

    # ---- запуск ----------------------------------------------------------

    def run(self) -> RunReport:
        self._t0 = time.time()
        report = RunReport(dry_run=self.dry_run)
        self.suggestions = {}
        self.decisions = DecisionCache()

        if not self.dry_run:
            ledger_writer.normalize_input(self.grid, self.cfg)
            self._log_time("нормализация B..F")

        rows = self._read_input()
        self._log_time(f"чтение блока ввода ({len(rows)} строк)")

        moved = self.precheck_month(rows)
        self._log_time(f"проверка месяца дат (сдвинуто: {moved})")

        need_acts = self.needs_acts(rows)
        dictionary = self.load_dictionary()
        self._log_time(f"справочник: {len(dictionary.meta)} статей")

        guard = DuplicateGuard(
            self.load_existing_keys(),
            exempt_articles=[self.cfg["articles"]["wage_payout"], self.cfg["articles"]["deposit_return"]],
        )
        self._log_time(f"ключи дублей: {len(guard.existing)}")

        acts_index = self.load_acts() if need_acts else None
        if need_acts:
            self._log_time(f"реестр актов: {len(acts_index.key_to_row)} актов")
        reconciler = ActReconciler(acts_index, self.cfg)

        if not self.auto:
            self.prescan_decisions(rows, guard, reconciler)
            self._log_time(f"предпроверка вопросов ({len(self.decisions)} решений)")

        batch: List[Entry] = []
        processed: List[int] = []
        blank: List[int] = []
        for i, row in enumerate(rows):
            if is_blank_row(row):
                blank.append(i)
                continue
            entries = self.process_row(i, row, report, dictionary, guard, reconciler)
            if entries:
                batch.extend(entries)
                processed.append(i)
        self._log_time(f"обработано строк: {len(processed)}, проводок: {len(batch)}")

        if self.dry_run:
            report.written = list(batch)
            print("🧪 DRY_RUN: запись в таблицу пропущена")
        else:
            self.persist(report, batch, processed, blank, dictionary, acts_index, reconciler)

        for e in report.errors:
            self.audit("WARN", "transfer", "reject", [e.cell_ref], 0, e.kind.value, e.text())
        self.audit("INFO", "transfer", "run", [], report.written_count,
                   "partial" if report.persistence_failures else "ok", report.summary())

        report.elapsed = time.time() - self._t0
        print("\n".join(report.detail_lines(self.cfg["limits"]["report_errors"])))
        if report.errors:
            print(f"Статистика ошибок: {report.stats_line()}")
        print(f"🏁 Общее время выполнения: {report.elapsed:.2f}s")
        return report
