import json
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import List, Optional


def _get_db_path() -> str:
    """Путь к БД берётся из окружения при каждом вызове (monkeypatch в тестах)."""
    return os.getenv("TRANSFER_STATE_DB", "transfer_state.db")


@contextmanager
def _conn():
    con = sqlite3.connect(_get_db_path())
    con.execute("PRAGMA journal_mode=WAL;")
    try:
        yield con
        con.commit()
    finally:
        con.close()


def init_db():
    with _conn() as con:
        # LAST_PROV_ROW и прочие значения между запусками
        con.execute(
            """
            CREATE TABLE IF NOT EXISTS properties (
              key TEXT PRIMARY KEY,
              value TEXT,
              updated_at TEXT
            );
            """
        )
        con.execute(
            """
            CREATE TABLE IF NOT EXISTS audit_log (
              ts TEXT,
              level TEXT,
              actor TEXT,
              action TEXT,
              target_ids TEXT,
              score INTEGER,
              result TEXT,
              error TEXT
            );
            """
        )


def get_property(key: str) -> Optional[str]:
    with _conn() as con:
        cur = con.execute("SELECT value FROM properties WHERE key=?", (key,))
        row = cur.fetchone()
        return row[0] if row else None


def set_property(key: str, value):
    with _conn() as con:
        con.execute(
            "INSERT OR REPLACE INTO properties(key, value, updated_at) VALUES (?,?,?)",
            (key, str(value), datetime.utcnow().isoformat()),
        )


class PropertyStore:
    """Ключ-значение поверх таблицы properties."""

    def get(self, key: str) -> Optional[str]:
        return get_property(key)

    def set(self, key: str, value):
        set_property(key, value)


def write_audit(level: str, actor: str, action: str, target_ids: list, score: int, result: str, error: Optional[str] = None):
    with _conn() as con:
        con.execute(
            "INSERT INTO audit_log(ts, level, actor, action, target_ids, score, result, error) VALUES (?,?,?,?,?,?,?,?)",
            (datetime.utcnow().isoformat(), level, actor, action, json.dumps(target_ids, ensure_ascii=False), score, result, error),
        )


def read_audit(action: Optional[str] = None) -> List[dict]:
    """Записи журнала в порядке добавления (для отчётов и тестов)."""
    with _conn() as con:
        if action:
            cur = con.execute(
                "SELECT ts, level, actor, action, target_ids, score, result, error FROM audit_log WHERE action=? ORDER BY rowid",
                (action,),
            )
        else:
            cur = con.execute(
                "SELECT ts, level, actor, action, target_ids, score, result, error FROM audit_log ORDER BY rowid"
            )
        rows = []
        for ts, level, actor, act, target_ids, score, result, error in cur.fetchall():
            rows.append({
                "ts": ts,
                "level": level,
                "actor": actor,
                "action": act,
                "target_ids": json.loads(target_ids or "[]"),
                "score": score,
                "result": result,
                "error": error,
            })
        return rows
