"""Customer and day details form modal."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from storefront.constant import EQUIPMENT_TYPES, SERVICE_TYPES
from storefront.orders import OrderEngine


@dataclass(frozen=True)
class FormField:
    key: str
    label: str
    choices: tuple[str, ...] = ()
    digits_only: bool = False


CUSTOMER_FORM = (
    FormField("name", "Name"),
    FormField("email", "Email"),
    FormField("business", "Business"),
    FormField("contact_number", "Contact number"),
    FormField("address", "Address"),
    FormField("attendees", "Attendees", digits_only=True),
    FormField("service_type", "Service", choices=SERVICE_TYPES),
    FormField("equipment_type", "Equipment", choices=EQUIPMENT_TYPES),
    FormField("notes", "Notes"),
)

DAY_FORM = (
    FormField("day_date", "Date"),
    FormField("drop_time", "Drop time"),
    FormField("event", "Event"),
    FormField("notes", "Notes"),
)


class DetailsModal(ModalScreen[None]):
    """
    Edit a flat set of string fields.

    Enter starts typing on a text field and cycles a choice field. Every
    confirmed edit goes through `on_commit(key, value)` right away, so the
    caller's state is the source of truth and `read()` refreshes the view.
    """

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
        ("ctrl+c", "close", "Close"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("up", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("enter", "edit_current", "Edit"),
    ]

    CSS = """
    DetailsModal {
        align: center middle;
        background: $background 60%;
    }

    #details-dialog {
        width: 72;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #details-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #details-body {
        color: white;
    }

    #details-error {
        color: #ffb3b3;
        margin-top: 1;
    }

    #details-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)

    def __init__(
        self,
        title: str,
        fields: tuple[FormField, ...],
        read: Callable[[], dict[str, str]],
        on_commit: Callable[[str, str], None],
        on_close: Callable[[], None] | None = None,
    ) -> None:
        super().__init__()
        self.title_text = title
        self.fields = fields
        self.read = read
        self.on_commit = on_commit
        self.on_close = on_close
        self.typing = False
        self.input_value = ""
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="details-dialog"):
            yield Static(self.title_text, id="details-title")
            yield Static(id="details-body")
            yield Static(id="details-error")
            yield Static(id="details-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event) -> None:
        if not self.typing:
            return

        if event.key == "escape":
            self.typing = False
            self.input_value = ""
            self._refresh_content()
            event.stop()
            return

        if event.key == "enter":
            self._confirm_typing()
            event.stop()
            return

        if event.key == "backspace":
            if self.input_value:
                self.input_value = self.input_value[:-1]
            self._refresh_content()
            event.stop()
            return

        if event.is_printable and event.character:
            field = self.fields[self.cursor_index]
            if not field.digits_only or event.character.isdigit():
                self.input_value += event.character
            self._refresh_content()
            event.stop()
            return

        # Ignore all non-text keys while typing.
        event.stop()

    def action_close(self) -> None:
        if self.typing:
            self.typing = False
            self.input_value = ""
            self._refresh_content()
            return
        self.dismiss()
        if self.on_close is not None:
            self.on_close()

    def action_move_cursor(self, delta: int) -> None:
        if self.typing:
            return
        self.cursor_index = (self.cursor_index + delta) % len(self.fields)
        self.error = ""
        self._refresh_content()

    def action_edit_current(self) -> None:
        field = self.fields[self.cursor_index]
        current = self.read().get(field.key, "")
        if field.choices:
            idx = field.choices.index(current) if current in field.choices else -1
            self._commit(field.key, field.choices[(idx + 1) % len(field.choices)])
            return
        self.typing = True
        self.input_value = current
        self._refresh_content()

    def _confirm_typing(self) -> None:
        field = self.fields[self.cursor_index]
        value = self.input_value.strip()
        self.typing = False
        self.input_value = ""
        self._commit(field.key, value)

    def _commit(self, key: str, value: str) -> None:
        try:
            self.on_commit(key, value)
            self.error = ""
        except ValueError as exc:
            self.error = str(exc)
        self._refresh_content()

    def _refresh_content(self) -> None:
        body = self.query_one("#details-body", Static)
        values = self.read()
        content = Text(style="white")
        for idx, field in enumerate(self.fields):
            if idx > 0:
                content.append("\n")
            selected = idx == self.cursor_index
            pointer = "➤ " if selected else "  "
            content.append(f"{pointer}{field.label:<16}", style="bold white" if selected else "white")
            if self.typing and selected:
                content.append(f"{self.input_value}|", style="bold white")
            elif field.choices:
                content.append(f"‹ {values.get(field.key, '')} ›", style="#facc15")
            else:
                content.append(values.get(field.key, "") or "-", style="white" if values.get(field.key) else "dim")
        body.update(content)
        self.query_one("#details-error", Static).update(self.error)
        if self.typing:
            help_text = "Type text, Enter confirm, Esc cancel typing"
        else:
            help_text = "J/K/↑/↓ move, Enter edit/cycle, Esc/q/Ctrl+C close"
        self.query_one("#details-help", Static).update(help_text)


def customer_form(engine: OrderEngine, on_close: Callable[[], None] | None = None) -> DetailsModal:
    def read() -> dict[str, str]:
        customer = engine.customer_details
        return {field.key: str(getattr(customer, field.key)) for field in CUSTOMER_FORM}

    def commit(key: str, value: str) -> None:
        engine.set_customer_details(**{key: value})

    return DetailsModal("Customer Details", CUSTOMER_FORM, read, commit, on_close)


def day_form(engine: OrderEngine, day_id: str, on_close: Callable[[], None] | None = None) -> DetailsModal:
    def read() -> dict[str, str]:
        day = engine.find_day(day_id)
        if day is None:
            return {}
        return {field.key: getattr(day, field.key) for field in DAY_FORM}

    def commit(key: str, value: str) -> None:
        engine.update_day_detail(day_id, key, value)

    day = engine.find_day(day_id)
    title = f"{day.label} Details" if day is not None else "Day Details"
    return DetailsModal(title, DAY_FORM, read, commit, on_close)
