import os
from typing import Optional

import yaml


DEFAULTS = {
    "sheets": {
        "input": "⏬ ВНЕСЕНИЕ",
        "ledger": "☑️ ПРОВОДКИ",
        "acts": "РЕЕСТР АКТОВ",
        "dictionary": "Справочник",
    },
    # B10:L40, нормализация B..F, очистка B..G
    "input": {"start_row": 10, "end_row": 40, "start_col": 2, "width": 11, "normalize_width": 5, "clear_width": 6},
    "ledger": {"width": 10, "duplicate_window": 50, "rescan_rows": 10, "pointer_key": "LAST_PROV_ROW"},
    "limits": {"big_amount": 1_000_000, "report_errors": 30},
    "prompt": {"timeout_seconds": 20},
    "articles": {
        "transfer_out": "Перевод на кошелек",
        "transfer_in": "Пополнение кошелька",
        "wage_payout": "% Мастер",
        "deposit_return": "Возврат удержания",
        "revenue": "Выручка по акту",
    },
    "types": {"income": "Доход", "expense": "Расход"},
    "transfer": {"category": "Перевод м/у счетами"},
    "acts": {"keyword": "акт", "act_required_marker": "акт"},
    "dictionary": {"wildcard_prefix": "#", "add_mode": "ask", "auto_approve": False, "similarity": 0.85},
    "wallets": {
        "Р/С Строймат": "#2496dd",
        "Р/С Брендмар": "#EABB3D",
        "Наличные": "#0dac50",
        "Карта": "#17ddee",
        "Карта Артема": "#E6E0EC",
        "Карта Паши": "#E6E0EC",
        "ИП Паши": "#D9D9D9",
    },
    "colors": {
        "income": "#E6F4EA",
        "expense": "#FDEAEA",
        "closed_bg": "#C6E0B4",
        "closed_font": "#385723",
    },
}


def _default_path() -> str:
    env_path = os.getenv("TRANSFER_CONFIG")
    if env_path:
        return env_path
    return os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config", "transfer.yml")


def load_transfer_config(path: Optional[str] = None) -> dict:
    path = path or _default_path()
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except FileNotFoundError:
        return {k: (dict(v) if isinstance(v, dict) else v) for k, v in DEFAULTS.items()}

    # shallow merge defaults; wallets is replaced as a whole
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in DEFAULTS.items()}
    for k, v in (cfg or {}).items():
        if k != "wallets" and isinstance(v, dict) and isinstance(merged.get(k), dict):
            mv = dict(merged[k])
            mv.update(v)
            merged[k] = mv
        else:
            merged[k] = v
    return merged
