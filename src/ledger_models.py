from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional


class ErrorKind(Enum):
    """Причины, по которым строка ВНЕСЕНИЯ не проведена."""

    MISSING_CLASSIFICATION = "MissingClassification"
    MISSING_WALLET = "MissingWallet"
    MISSING_OR_ZERO_AMOUNT = "MissingOrZeroAmount"
    INVALID_DATE = "InvalidDate"
    ACT_REQUIRED_BUT_MISSING = "ActRequiredButMissing"
    DUPLICATE_REJECTED = "DuplicateRejected"
    WILDCARD_ARTICLE_MISSING_DECODING = "WildcardArticleMissingDecoding"
    TRANSFER_MIRROR_REJECTED = "TransferMirrorRejected"
    ACTS_REGISTER_UNAVAILABLE = "ActsRegisterUnavailable"
    MISSING_ADDRESS_FOR_ACT_ENTRY = "MissingAddressForActEntry"
    MISSING_ACT_NUMBER = "MissingActNumber"
    ACT_NOT_FOUND_IN_REGISTER = "ActNotFoundInRegister"
    REGISTER_NOT_READY = "RegisterNotReady"
    ALREADY_PAID_OUT = "AlreadyPaidOut"

    @property
    def message(self) -> str:
        return _ERROR_MESSAGES[self]


_ERROR_MESSAGES = {
    ErrorKind.MISSING_CLASSIFICATION: "нет типа, категории или статьи",
    ErrorKind.MISSING_WALLET: "нет кошелька",
    ErrorKind.MISSING_OR_ZERO_AMOUNT: "нет суммы или она равна 0",
    ErrorKind.INVALID_DATE: "некорректная дата",
    ErrorKind.ACT_REQUIRED_BUT_MISSING: "для статьи нужен акт",
    ErrorKind.DUPLICATE_REJECTED: "дубль проводки",
    ErrorKind.WILDCARD_ARTICLE_MISSING_DECODING: "для статьи нужна расшифровка",
    ErrorKind.TRANSFER_MIRROR_REJECTED: "в расшифровке перевода нет известного кошелька",
    ErrorKind.ACTS_REGISTER_UNAVAILABLE: "реестр актов пуст или не найден",
    ErrorKind.MISSING_ADDRESS_FOR_ACT_ENTRY: "нет адреса объекта в расшифровке",
    ErrorKind.MISSING_ACT_NUMBER: "нет номера акта",
    ErrorKind.ACT_NOT_FOUND_IN_REGISTER: "акт не найден в реестре",
    ErrorKind.REGISTER_NOT_READY: "индекс реестра актов не построен",
    ErrorKind.ALREADY_PAID_OUT: "по этому акту уже стояла галочка выплаты",
}


@dataclass
class Entry:
    """Одна строка листа ПРОВОДКИ."""
    date: date
    wallet: str
    amount: float
    article: str
    decoding: str = ""
    act: str = ""
    category: str = ""
    type: str = ""
    hint: str = ""
    foreman: str = ""

    def to_row(self) -> list:
        amount = int(self.amount) if float(self.amount).is_integer() else self.amount
        return [
            self.date, self.wallet, amount, self.article, self.decoding,
            self.act, self.category, self.type, self.hint, self.foreman,
        ]


@dataclass
class DictionaryRecord:
    type: str
    category: str
    article: str
    decoding: str
    act_marker: str = ""

    def to_row(self) -> list:
        return [self.type, self.category, self.article, self.decoding, self.act_marker]


@dataclass(frozen=True)
class ArticleMeta:
    type: str
    category: str
    act_required: bool
    act_marker: str = ""


@dataclass
class Act:
    """Строка РЕЕСТРА АКТОВ (только чтение, кроме флагов)."""
    row_number: int
    address: str
    act_number: str
    revenue: object
    wage_by_act: object
    deposit: object
    hands_amount: object
    wage_paid: bool
    deposit_returned: bool
    paid: bool


@dataclass
class ValidationResult:
    ok: bool
    error: Optional[ErrorKind] = None
    wants_today: bool = False
    date: Optional[date] = None
    wallet: str = ""
    amount: Optional[float] = None
    article: str = ""
    decoding: str = ""
    act: str = ""
    category: str = ""
    type: str = ""
    hint: str = ""
    foreman: str = ""

    def to_entry(self, entry_date: date) -> Entry:
        return Entry(
            date=entry_date,
            wallet=self.wallet,
            amount=self.amount,
            article=self.article,
            decoding=self.decoding,
            act=self.act,
            category=self.category,
            type=self.type,
            hint=self.hint,
            foreman=self.foreman,
        )


@dataclass(frozen=True)
class DuplicateDecision:
    entry_key: str


@dataclass(frozen=True)
class RepeatPayoutDecision:
    act_key: str
    flag: str  # wage|deposit


@dataclass
class RowError:
    row_index: int
    cell_ref: str
    kind: ErrorKind
    detail: str = ""

    def text(self) -> str:
        msg = self.kind.message
        if self.detail:
            msg = f"{msg} ({self.detail})"
        return f"{self.cell_ref}: {msg}"


@dataclass
class PersistenceFailure:
    step: str
    message: str


@dataclass
class RunReport:
    written: List[Entry] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    new_decodings: List[str] = field(default_factory=list)
    big_amounts: List[str] = field(default_factory=list)
    unknown_articles: Dict[str, List[str]] = field(default_factory=dict)
    persistence_failures: List[PersistenceFailure] = field(default_factory=list)
    ledger_start_row: Optional[int] = None
    dry_run: bool = False
    elapsed: float = 0.0

    @property
    def written_count(self) -> int:
        return len(self.written)

    @property
    def ledger_failed(self) -> bool:
        return any(f.step == "ledger" for f in self.persistence_failures)

    def counts_by_kind(self) -> Dict[ErrorKind, int]:
        counts: Dict[ErrorKind, int] = {}
        for e in self.errors:
            counts[e.kind] = counts.get(e.kind, 0) + 1
        return counts

    def summary(self) -> str:
        parts = [f"Перенесено: {self.written_count}"]
        if self.errors:
            parts.append(f"Не проведено: {len(self.errors)}")
        if self.new_decodings:
            parts.append(f"Добавлено расшифровок: {len(self.new_decodings)}")
        if self.persistence_failures:
            parts.append(f"Ошибок записи: {len(self.persistence_failures)}")
        return ". ".join(parts)

    def detail_lines(self, limit: int = 30) -> List[str]:
        lines = [f"Перенесено: {self.written_count}"]
        if self.dry_run:
            lines.append("(DRY_RUN: в таблицу ничего не записано)")

        if self.new_decodings:
            lines += ["", "Добавлены новые расшифровки:"]
            lines += [f"• {d}" for d in self.new_decodings]

        if self.big_amounts:
            lines += ["", f"Крупные суммы: {len(self.big_amounts)}"]
            lines += [f"• {b}" for b in self.big_amounts]

        if self.unknown_articles:
            lines += ["", "Статьи, которых нет в справочнике:"]
            for article, candidates in self.unknown_articles.items():
                hint = f" (возможно: {', '.join(candidates)})" if candidates else ""
                lines.append(f"• {article}{hint}")

        if self.errors:
            lines += ["", "Не проведены (причины):"]
            lines += [f"• {e.text()}" for e in self.errors[:limit]]
            if len(self.errors) > limit:
                lines.append(f"... и ещё {len(self.errors) - limit}")

        if self.persistence_failures:
            lines += ["", "Ошибки записи:"]
            lines += [f"• {f.step}: {f.message}" for f in self.persistence_failures]
        return lines

    def stats_line(self) -> str:
        counts = self.counts_by_kind()
        return "; ".join(f"{kind.message}: {n}" for kind, n in counts.items())
