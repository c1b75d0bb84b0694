import argparse
import os
import sys
from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv

from config_loader import load_transfer_config
from grid_storage import GridStorageError, XlsxGrid
from operator_prompt import ConsolePrompt, UnattendedPrompt
from slack_notifier import SlackNotifier
from state_store import init_db, write_audit
from transfer_runner import TransferRunner


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").lower() == "true"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Перенос строк ⏬ ВНЕСЕНИЕ в ☑️ ПРОВОДКИ")
    parser.add_argument("--workbook", help="путь к .xlsx (по умолчанию TRANSFER_WORKBOOK)")
    parser.add_argument("--config", help="YAML с настройками (по умолчанию TRANSFER_CONFIG или config/transfer.yml)")
    parser.add_argument("--auto", action="store_true", help="без вопросов оператору (AUTO_MODE=true)")
    parser.add_argument("--dry-run", action="store_true", help="ничего не записывать (DRY_RUN=true)")
    parser.add_argument("--slack-webhook", help="Incoming Webhook для итога (по умолчанию SLACK_WEBHOOK_URL)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    workbook = args.workbook or os.getenv("TRANSFER_WORKBOOK")
    auto = args.auto or _env_flag("AUTO_MODE")
    dry_run = args.dry_run or _env_flag("DRY_RUN")
    webhook = args.slack_webhook or os.getenv("SLACK_WEBHOOK_URL")

    print("=== Перенос проводок ===")
    print(f"Время запуска: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    if not workbook:
        print("❌ Не задан файл таблицы: --workbook или TRANSFER_WORKBOOK")
        return 2

    cfg = load_transfer_config(args.config)
    if dry_run:
        print("\n*** DRY_RUN: в таблицу ничего не записывается ***\n")

    init_db()
    try:
        grid = XlsxGrid(workbook)
    except GridStorageError as e:
        print(f"❌ {e}")
        write_audit("ERROR", "transfer", "open", [workbook], 0, "failed", str(e))
        return 2

    prompt = UnattendedPrompt() if auto else ConsolePrompt(timeout=cfg["prompt"]["timeout_seconds"])
    runner = TransferRunner(grid, prompt, cfg=cfg, auto=auto, dry_run=dry_run)
    try:
        report = runner.run()
    except GridStorageError as e:
        print(f"❌ Ошибка чтения таблицы: {e}")
        write_audit("ERROR", "transfer", "run", [workbook], 0, "failed", str(e))
        return 1

    if not dry_run:
        try:
            grid.save()
            print(f"💾 Сохранено: {workbook}")
        except OSError as e:
            print(f"❌ Не удалось сохранить {workbook}: {e}")
            write_audit("ERROR", "transfer", "save", [workbook], 0, "failed", str(e))
            return 1

    if webhook and not dry_run:
        print("\nОтправка итога в Slack...")
        try:
            if not SlackNotifier(webhook).send_run_summary(report):
                print("⚠️ Slack ответил ошибкой")
        except Exception as e:
            print(f"⚠️ Slack недоступен: {e}")

    print(f"\n{report.summary()} ({report.elapsed:.2f}s)")
    return 1 if report.persistence_failures else 0


if __name__ == "__main__":
    sys.exit(main())
