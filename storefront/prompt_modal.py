"""Single-line text prompt modal screen."""

from __future__ import annotations

from typing import Callable

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static


class PromptModal(ModalScreen[str | None]):
    """Prompt for one line of text; dismisses with the value or None."""

    CSS = """
    PromptModal {
        align: center middle;
        background: $background 60%;
    }

    #prompt-dialog {
        width: 64;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #prompt-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #prompt-label {
        color: white;
        margin-bottom: 1;
    }

    #prompt-value {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #prompt-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #prompt-help {
        color: #dddddd;
    }
    """

    def __init__(
        self,
        title: str,
        label: str,
        initial: str = "",
        validate: Callable[[str], str | None] | None = None,
        max_length: int = 200,
    ) -> None:
        super().__init__()
        self.title_text = title
        self.label_text = label
        self.value = initial
        self.validate = validate
        self.max_length = max_length
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="prompt-dialog"):
            yield Static(self.title_text, id="prompt-title")
            yield Static(self.label_text, id="prompt-label")
            yield Static(id="prompt-value")
            yield Static(id="prompt-error")
            yield Static("Enter confirm. Backspace delete. Esc/Ctrl+C cancel.", id="prompt-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key == "backspace":
            if self.value:
                self.value = self.value[:-1]
                self.error = ""
                self._refresh_content()
            event.stop()
            return

        if event.is_printable and event.character:
            if len(self.value) < self.max_length:
                self.value += event.character
            self.error = ""
            self._refresh_content()
            event.stop()

    def _confirm(self) -> None:
        if self.validate is not None:
            error = self.validate(self.value)
            if error:
                self.error = error
                self._refresh_content()
                return
        self.dismiss(self.value)

    def _refresh_content(self) -> None:
        self.query_one("#prompt-value", Static).update(f"{self.value}|")
        self.query_one("#prompt-error", Static).update(self.error or "")


def require_text(value: str) -> str | None:
    if not value.strip():
        return "A value is required."
    return None
