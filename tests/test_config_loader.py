import os

from config_loader import DEFAULTS, load_transfer_config


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_transfer_config(str(tmp_path / "nope.yml"))
    assert cfg == DEFAULTS
    cfg["ledger"]["duplicate_window"] = 1
    assert DEFAULTS["ledger"]["duplicate_window"] == 50


def test_nested_keys_merge_one_level(tmp_path):
    path = tmp_path / "transfer.yml"
    path.write_text(
        "ledger:\n  duplicate_window: 100\n"
        "dictionary:\n  add_mode: batch\n"
        "wallets:\n  Сейф: '#000000'\n",
        encoding="utf-8",
    )
    cfg = load_transfer_config(str(path))
    assert cfg["ledger"]["duplicate_window"] == 100
    assert cfg["ledger"]["pointer_key"] == "LAST_PROV_ROW"
    assert cfg["dictionary"]["add_mode"] == "batch"
    assert cfg["dictionary"]["wildcard_prefix"] == "#"
    # кошельки заменяются целиком
    assert cfg["wallets"] == {"Сейф": "#000000"}


def test_env_path(tmp_path, monkeypatch):
    path = tmp_path / "env.yml"
    path.write_text("limits:\n  big_amount: 5\n", encoding="utf-8")
    monkeypatch.setenv("TRANSFER_CONFIG", str(path))
    assert load_transfer_config()["limits"]["big_amount"] == 5


def test_repo_config_matches_defaults(monkeypatch):
    monkeypatch.delenv("TRANSFER_CONFIG", raising=False)
    repo_cfg = os.path.join(os.path.dirname(__file__), "..", "config", "transfer.yml")
    cfg = load_transfer_config(repo_cfg)
    assert cfg["wallets"] == DEFAULTS["wallets"]
    assert cfg["prompt"]["timeout_seconds"] == 20
