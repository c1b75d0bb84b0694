from datetime import datetime

import requests

from ledger_models import RunReport


class SlackNotifier:
    """Итог запуска в Slack через Incoming Webhook."""

    MAX_ERROR_LINES = 10

    def __init__(self, webhook_url: str):
        self.webhook_url = webhook_url

    def build_message(self, report: RunReport) -> dict:
        failed = len(report.errors)
        message = {
            "text": f"Перенос проводок: перенесено {report.written_count}, не проведено {failed}",
            "blocks": [
                {
                    "type": "header",
                    "text": {"type": "plain_text", "text": "Перенос ВНЕСЕНИЕ → ПРОВОДКИ"}
                },
                {
                    "type": "section",
                    "fields": [
                        {"type": "mrkdwn", "text": f"*Перенесено:* {report.written_count}"},
                        {"type": "mrkdwn", "text": f"*Не проведено:* {failed}"},
                        {"type": "mrkdwn", "text": f"*Новых расшифровок:* {len(report.new_decodings)}"},
                        {"type": "mrkdwn", "text": f"*Время:* {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"}
                    ]
                }
            ]
        }

        details = [f"• {e.text()}" for e in report.errors]
        details += [f"• запись {f.step}: {f.message}" for f in report.persistence_failures]
        if details:
            text = "\n".join(details[:self.MAX_ERROR_LINES])
            if len(details) > self.MAX_ERROR_LINES:
                text += f"\n... и ещё {len(details) - self.MAX_ERROR_LINES}"
            message["blocks"].append({
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"*Причины:*\n{text}"}
            })

        if report.dry_run:
            message["blocks"].append({
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": "DRY_RUN: в таблицу ничего не записано"}]
            })
        return message

    def send_run_summary(self, report: RunReport) -> bool:
        response = requests.post(self.webhook_url, json=self.build_message(report), timeout=10)
        return response.status_code == 200
