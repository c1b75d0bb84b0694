"""
Вопросы оператору во время запуска.

Любой вопрос ограничен по времени: по таймауту возвращается None, и вызывающий
код трактует это как "нет".
"""

import queue
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

YES = "Да"
NO = "Нет"
OK = "Ок"


@dataclass
class PromptResponse:
    button: str
    text: str = ""


class OperatorPrompt:

    def ask(self, title: str, message: str, buttons: List[str],
            with_text_input: bool = False) -> Optional[PromptResponse]:
        raise NotImplementedError

    def confirm(self, title: str, message: str) -> Optional[bool]:
        resp = self.ask(title, message, [YES, NO])
        if resp is None:
            return None
        return resp.button == YES

    def notify(self, title: str, message: str):
        self.ask(title, message, [OK])

    def prompt_text(self, title: str, message: str) -> Optional[str]:
        resp = self.ask(title, message, [OK], with_text_input=True)
        return None if resp is None else resp.text


class ConsolePrompt(OperatorPrompt):
    """Вопросы в терминале с ограничением времени ответа.

    Stdin читает один фоновый поток на весь запуск. Строку он читает только
    пока есть открытый вопрос; ответ, опоздавший к вопросу с таймаутом, уходит
    следующему вопросу, а строки, набранные между вопросами, отбрасываются.
    """

    def __init__(self, timeout: float = 20, input_func: Callable[[str], str] = input):
        self.timeout = timeout
        self.input_func = input_func
        self._lines: "queue.Queue[Optional[str]]" = queue.Queue()
        self._wanted = threading.Event()
        self._reader: Optional[threading.Thread] = None
        self._closed = False

    def _read_loop(self):
        while True:
            self._wanted.wait()
            try:
                line = self.input_func("")
            except EOFError:
                self._closed = True
                self._lines.put(None)
                return
            self._wanted.clear()
            self._lines.put(line)

    def _drain(self):
        while True:
            try:
                self._lines.get_nowait()
            except queue.Empty:
                return

    def _read_line(self, label: str) -> Optional[str]:
        self._drain()
        if self._closed:
            return None
        if self._reader is None:
            self._reader = threading.Thread(target=self._read_loop, daemon=True)
            self._reader.start()

        print(label, end="", flush=True)
        self._wanted.set()
        try:
            return self._lines.get(timeout=self.timeout)
        except queue.Empty:
            return None

    def ask(self, title, message, buttons, with_text_input=False):
        print(f"\n❓ {title}")
        print(message)

        if with_text_input:
            text = self._read_line("> ")
            if text is None:
                print(f"⏱️ Нет ответа за {self.timeout} сек")
                return None
            return PromptResponse(button=buttons[0] if buttons else OK, text=text.strip())

        if buttons == [OK]:
            print(f"[{OK}]")
            return PromptResponse(button=OK)

        options = " / ".join(f"{i}={b}" for i, b in enumerate(buttons, 1))
        answer = self._read_line(f"{options}: ")
        if answer is None:
            print(f"⏱️ Нет ответа за {self.timeout} сек")
            return None

        answer = answer.strip()
        if answer.isdigit() and 1 <= int(answer) <= len(buttons):
            return PromptResponse(button=buttons[int(answer) - 1])
        for b in buttons:
            if answer.lower() == b.lower() or answer.lower() == b[:1].lower():
                return PromptResponse(button=b)
        # нераспознанный ответ равен отказу
        return None


class UnattendedPrompt(OperatorPrompt):
    """Автозапуск: вопросы только печатаются, ответа нет."""

    def ask(self, title, message, buttons, with_text_input=False):
        print(f"🤖 [авто] {title}: {message.splitlines()[0] if message else ''}")
        return None


class ScriptedPrompt(OperatorPrompt):
    """Заранее заданные ответы по порядку вопросов, для тестов и сценариев."""

    def __init__(self, answers: Optional[List[Optional[str]]] = None):
        self.answers = list(answers or [])
        self.asked: List[str] = []
        self.messages: List[str] = []

    def ask(self, title, message, buttons, with_text_input=False):
        self.asked.append(title)
        self.messages.append(message)
        if buttons == [OK] and not with_text_input:
            return PromptResponse(button=OK)
        if not self.answers:
            return None
        answer = self.answers.pop(0)
        if answer is None:
            return None
        if with_text_input:
            return PromptResponse(button=OK, text=answer)
        return PromptResponse(button=answer)
