"""Order history modal screen."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from storefront.constant import ORDER_STATUSES
from storefront.errors import StoreError
from storefront.history import OrderHistoryStore, filter_orders, status_counts
from storefront.models import SavedOrder
from storefront.rendering import format_money, format_status
from storefront.subscription import Unsubscribe

STATUS_FILTERS = ("all", *ORDER_STATUSES)


class HistoryModal(ModalScreen[SavedOrder | None]):
    """Browse saved orders; Enter dismisses with the order to load into the editor."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
        ("ctrl+c", "close", "Close"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("up", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("tab", "cycle_filter", "Filter"),
        ("slash", "start_search", "Search"),
        ("s", "cycle_status", "Set status"),
        ("enter", "load_selected", "Load"),
    ]

    CSS = """
    HistoryModal {
        align: center middle;
        background: $background 60%;
    }

    #history-dialog {
        width: 96;
        height: 80%;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #history-title {
        text-style: bold;
        color: white;
    }

    #history-filters {
        margin-bottom: 1;
        color: white;
    }

    #history-list {
        height: 1fr;
        color: white;
    }

    #history-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)

    def __init__(self, history: OrderHistoryStore) -> None:
        super().__init__()
        self.history = history
        self.status_filter = "all"
        self.search = ""
        self.typing_search = False
        self._unsubscribe: Unsubscribe | None = None
        self._load_error = ""

    def compose(self) -> ComposeResult:
        with Container(id="history-dialog"):
            yield Static("Order History", id="history-title")
            yield Static(id="history-filters")
            yield Static(id="history-list")
            yield Static(id="history-help")

    def on_mount(self) -> None:
        self._unsubscribe = self.history.subscribe(self._on_orders, self._on_error)

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_orders(self, _orders: list[SavedOrder]) -> None:
        self._load_error = ""
        self._refresh_content()

    def _on_error(self, exc: Exception) -> None:
        self._load_error = f"Could not load orders: {exc}"
        self._refresh_content()

    def on_key(self, event) -> None:
        if not self.typing_search:
            return

        if event.key in {"escape", "enter"}:
            self.typing_search = False
            self._refresh_content()
            event.stop()
            return

        if event.key == "backspace":
            self.search = self.search[:-1]
            self.cursor_index = 0
            self._refresh_content()
            event.stop()
            return

        if event.is_printable and event.character:
            self.search += event.character
            self.cursor_index = 0
            self._refresh_content()
            event.stop()
            return

        event.stop()

    def action_close(self) -> None:
        if self.typing_search:
            self.typing_search = False
            self._refresh_content()
            return
        self.dismiss(None)

    def action_move_cursor(self, delta: int) -> None:
        visible = self._visible_orders()
        if not visible:
            return
        self.cursor_index = (self.cursor_index + delta) % len(visible)
        self._refresh_content()

    def action_cycle_filter(self) -> None:
        idx = STATUS_FILTERS.index(self.status_filter)
        self.status_filter = STATUS_FILTERS[(idx + 1) % len(STATUS_FILTERS)]
        self.cursor_index = 0
        self._refresh_content()

    def action_start_search(self) -> None:
        self.typing_search = True
        self._refresh_content()

    def action_cycle_status(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        idx = ORDER_STATUSES.index(order.status) if order.status in ORDER_STATUSES else -1
        try:
            self.history.set_status(order.id, ORDER_STATUSES[(idx + 1) % len(ORDER_STATUSES)])
        except StoreError as exc:
            self._load_error = str(exc)
            self._refresh_content()

    def action_load_selected(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        self.dismiss(order)

    def _visible_orders(self) -> list[SavedOrder]:
        return filter_orders(self.history.orders, self.status_filter, self.search)

    def _selected_order(self) -> SavedOrder | None:
        visible = self._visible_orders()
        if not visible:
            return None
        return visible[min(self.cursor_index, len(visible) - 1)]

    def _refresh_content(self) -> None:
        filters = self.query_one("#history-filters", Static)
        listing = self.query_one("#history-list", Static)
        help_text = self.query_one("#history-help", Static)

        counts = status_counts(self.history.orders)
        header = Text()
        for status in STATUS_FILTERS:
            count = len(self.history.orders) if status == "all" else counts.get(status, 0)
            style = "bold reverse" if status == self.status_filter else ""
            header.append(f" {status} ({count}) ", style=style)
        header.append("   Search: ")
        header.append(f"{self.search}|" if self.typing_search else (self.search or "-"))
        filters.update(header)

        visible = self._visible_orders()
        if self.cursor_index >= len(visible):
            self.cursor_index = max(0, len(visible) - 1)

        if self._load_error:
            listing.update(Text(self._load_error, style="#ffb3b3"))
        elif self.history.loading:
            listing.update("Loading...")
        elif not visible:
            listing.update("No orders found")
        else:
            content = Text()
            for idx, order in enumerate(visible):
                if idx > 0:
                    content.append("\n")
                content.append("➤ " if idx == self.cursor_index else "  ")
                content.append(f"{order.order_number}  ", style="bold")
                content.append_text(format_status(order.status))
                content.append(f"  {order.customer_details.name or '(no name)'}")
                content.append(f"  {format_money(order.totals.total)}", style="#facc15")
                content.append(f"  {order.timestamp[:16].replace('T', ' ')}", style="dim")
                if order.modified_from:
                    content.append("  (edit)", style="italic dim")
            listing.update(content)

        if self.typing_search:
            help_text.update("Type to search, Enter/Esc done")
        else:
            help_text.update("J/K move, Tab filter, / search, S cycle status, Enter load, Esc close")
