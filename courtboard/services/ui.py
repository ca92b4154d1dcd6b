"""
User-feedback port used by the orchestrators.

A kiosk front end implements RegistrationUI directly.  The HTTP API uses
RecordingUI, which collects every message as a Notice for the response
body and answers confirmation prompts from the request.
"""

from __future__ import annotations

from typing import Protocol

from courtboard.models import Notice, UIAction


class RegistrationUI(Protocol):
    def toast(self, message: str, level: str = "info") -> None:
        ...

    def alert(self, message: str) -> None:
        ...

    async def confirm(self, message: str) -> bool:
        ...


def dispatch_ui_action(ui: RegistrationUI, action: UIAction | None) -> None:
    """Show a guard's UI action; ``None`` means stay silent."""
    if action is None:
        return
    if action.action == "toast":
        ui.toast(action.message, action.level)
    else:
        ui.alert(action.message)


class RecordingUI:
    def __init__(self, *, confirm_answer: bool = False) -> None:
        self.notices: list[Notice] = []
        self._confirm_answer = confirm_answer

    def toast(self, message: str, level: str = "info") -> None:
        self.notices.append(Notice(kind="toast", message=message, level=level))

    def alert(self, message: str) -> None:
        self.notices.append(Notice(kind="alert", message=message))

    async def confirm(self, message: str) -> bool:
        self.notices.append(Notice(kind="confirm", message=message))
        return self._confirm_answer
