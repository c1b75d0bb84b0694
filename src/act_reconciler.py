"""
Сверка проводок "% Мастер" и "Возврат удержания" с РЕЕСТРОМ АКТОВ.

У каждого акта два односторонних флага: ЗП выдана (wage) и депозит возвращён
(deposit). Принятая проводка ставит флаг в памяти, запись в лист делается
одним батчем в конце запуска. Повторная выплата по уже отмеченному акту
проходит только с подтверждения оператора.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Set

from acts_index import FIRST_DATA_ROW, ActLookup, ActLookupError, ActsIndex, make_act_key
from ledger_models import Act, Entry, ErrorKind, RepeatPayoutDecision


@dataclass
class ActOutcome:
    applies: bool = False
    error: Optional[ErrorKind] = None
    act_key: str = ""
    flag: Optional[str] = None
    lookup: Optional[ActLookup] = None
    already_set: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class ActReconciler:

    def __init__(self, acts_index: Optional[ActsIndex], cfg: Dict):
        self.acts_index = acts_index
        self.articles = cfg["articles"]
        self.keyword = str(cfg["acts"]["keyword"]).lower()
        self.wallet_colors = cfg["wallets"]
        self.wage_rows: Set[int] = set()
        self.deposit_rows: Set[int] = set()
        self.revenue_colors: Dict[int, str] = {}

    def flag_for(self, article: str) -> Optional[str]:
        if article == self.articles["wage_payout"]:
            return "wage"
        if article == self.articles["deposit_return"]:
            return "deposit"
        return None

    def applies(self, article: str) -> bool:
        return self.flag_for(article) is not None

    def check(self, entry: Entry) -> ActOutcome:
        """Шаги проверки без изменения состояния."""
        flag = self.flag_for(entry.article)
        if flag is None:
            return ActOutcome()

        out = ActOutcome(applies=True, flag=flag)
        if self.acts_index is None or not self.acts_index.loaded:
            out.error = ErrorKind.ACTS_REGISTER_UNAVAILABLE
            return out
        if not entry.decoding:
            out.error = ErrorKind.MISSING_ADDRESS_FOR_ACT_ENTRY
            return out
        if not entry.act or self.keyword not in entry.act.lower():
            out.error = ErrorKind.MISSING_ACT_NUMBER
            return out

        out.act_key = make_act_key(entry.decoding, entry.act)
        info = self.acts_index.lookup(out.act_key)
        if info.error == ActLookupError.NOT_FOUND:
            out.error = ErrorKind.ACT_NOT_FOUND_IN_REGISTER
            return out
        if info.error == ActLookupError.NO_DATA:
            out.error = ErrorKind.REGISTER_NOT_READY
            return out

        out.lookup = info
        out.already_set = info.flag(flag)
        return out

    def reconcile(self, entry: Entry,
                  approve_repeat: Callable[[RepeatPayoutDecision], bool]) -> ActOutcome:
        out = self.check(entry)
        if not out.applies or not out.ok:
            return out

        if out.already_set and not approve_repeat(RepeatPayoutDecision(out.act_key, out.flag)):
            out.error = ErrorKind.ALREADY_PAID_OUT
            return out

        self.acts_index.set_flag(out.lookup.grid_index, out.flag)
        if out.flag == "wage":
            self.wage_rows.add(out.lookup.row_number)
        else:
            self.deposit_rows.add(out.lookup.row_number)
        return out

    def act_record(self, act_key: str) -> Optional[Act]:
        if self.acts_index is None or not self.acts_index.loaded:
            return None
        row = self.acts_index.row_number_for(act_key)
        return self.acts_index.record(row - FIRST_DATA_ROW) if row else None

    def describe_repeat(self, decision: RepeatPayoutDecision) -> str:
        """Строка для вопроса о повторной выплате: адрес, акт и сумма по флагу."""
        act = self.act_record(decision.act_key)
        if act is None:
            return f"акт {decision.act_key}"
        if decision.flag == "wage":
            return f"{act.address}, {act.act_number}: ЗП на руки {act.hands_amount}"
        return f"{act.address}, {act.act_number}: возврат удержания {act.deposit}"

    def note_revenue(self, entry: Entry):
        """Выручка по акту: цвет кошелька для подсветки суммы в реестре. Без флага."""
        if entry.article != self.articles["revenue"] or self.acts_index is None:
            return
        row = self.acts_index.row_number_for(make_act_key(entry.decoding, entry.act))
        color = self.wallet_colors.get(entry.wallet)
        if row and color:
            self.revenue_colors[row] = color

    @property
    def has_changes(self) -> bool:
        return bool(self.wage_rows or self.deposit_rows or self.revenue_colors)
