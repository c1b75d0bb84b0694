from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from ledger_models import Entry


@dataclass
class MirrorResult:
    extra_entry: Optional[Entry] = None
    error: Optional[str] = None
    is_transfer_article: bool = False


def canonical_wallet(name: str, wallets: Iterable[str]) -> Optional[str]:
    """Название кошелька без учёта регистра → каноническое написание."""
    needle = ("" if name is None else str(name)).strip().lower()
    if not needle:
        return None
    for w in wallets:
        if str(w).strip().lower() == needle:
            return w
    return None


def mirror_transfer(entry: Entry, cfg: Dict) -> MirrorResult:
    """Зеркальная проводка для перевода между своими кошельками.

    "Перевод на кошелек" из A в B → "Пополнение кошелька" в B из A, и наоборот.
    Если в расшифровке нет известного кошелька, строку проводить нельзя.
    """
    articles = cfg["articles"]
    types = cfg["types"]
    is_out = entry.article == articles["transfer_out"]
    is_in = entry.article == articles["transfer_in"]
    if not is_out and not is_in:
        return MirrorResult()

    target = canonical_wallet(entry.decoding, cfg["wallets"].keys())
    if target is None:
        if is_out:
            msg = f'при "{articles["transfer_out"]}" в расшифровке должен быть целевой кошелёк'
        else:
            msg = f'при "{articles["transfer_in"]}" в расшифровке должен быть исходный кошелёк'
        return MirrorResult(error=msg, is_transfer_article=True)

    mirror = Entry(
        date=entry.date,
        wallet=target,
        amount=entry.amount,
        article=articles["transfer_in"] if is_out else articles["transfer_out"],
        decoding=entry.wallet,
        act="",
        category=cfg["transfer"]["category"],
        type=types["income"] if is_out else types["expense"],
        hint="",
        foreman="",
    )
    return MirrorResult(extra_entry=mirror, is_transfer_article=True)
