"""Main Textual app class."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable

from rich.table import Table
from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Header, Static

from storefront.catalog import new_theme
from storefront.config import DB_PATH, EXPORT_DIR
from storefront.constant import SUMMARY_DAY_ID
from storefront.details_modal import customer_form, day_form
from storefront.emailer import send_order
from storefront.errors import BusinessRuleError, EmailNotConfigured, EmailSendError
from storefront.export import build_order_document, render_order_html, suggested_filename
from storefront.export_image import save_order_document
from storefront.history_modal import HistoryModal
from storefront.media_modal import MediaModal
from storefront.models import MenuItem, SavedOrder
from storefront.pricing import OrderTotals, group_by_category
from storefront.prompt_modal import PromptModal, require_text
from storefront.rendering import MINIMUM_WARNING_LABEL, format_menu_row, format_money, format_quantity, theme_color
from storefront.session import Session, create_session
from storefront.subscription import Unsubscribe
from storefront.sync import AsyncioScheduler

logger = logging.getLogger(__name__)


def _validate_price(value: str) -> str | None:
    try:
        price = Decimal(value.strip())
    except InvalidOperation:
        return "Enter a number, e.g. 12.50"
    if not price.is_finite():
        return "Enter a number, e.g. 12.50"
    if price < 0:
        return "Price must be zero or more."
    return None


class StorefrontApp(App):
    """A Textual app for building multi-day catering orders and sending quote requests."""

    TITLE = "Catering Storefront"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #menu-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #order-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #menu-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #day-tabs {
        height: auto;
        margin-bottom: 1;
    }

    #order-lines {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #totals {
        height: auto;
        margin-top: 1;
    }

    #status-bar {
        height: 3;
        border: heavy $secondary;
        padding: 0 1;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    admin_mode = reactive(False)
    menu_index = reactive(0)

    BINDINGS = [
        ("j,down", "move_cursor(1)", "Next item"),
        ("k,up", "move_cursor(-1)", "Previous item"),
        ("plus,equals_sign", "change_quantity(1)", "Add one"),
        ("minus", "change_quantity(-1)", "Remove one"),
        ("right,right_square_bracket", "cycle_day(1)", "Next day"),
        ("left,left_square_bracket", "cycle_day(-1)", "Previous day"),
        ("a", "add_day", "Add day"),
        ("x", "remove_day", "Remove day"),
        ("c", "clear_day", "Clear day"),
        ("e", "edit_day", "Day details"),
        ("u", "edit_customer", "Customer"),
        ("h", "open_history", "History"),
        ("m", "open_media", "Media"),
        ("n", "new_menu_item", "New item"),
        ("d", "delete_menu_item", "Delete item"),
        ("v", "toggle_available", "Availability"),
        ("p", "edit_price", "Price"),
        ("r", "rename_menu_item", "Rename"),
        ("t", "cycle_theme", "Theme"),
        ("f", "set_item_image('foreground_image_id')", "Foreground"),
        ("b", "set_item_image('background_image_id')", "Background"),
        ("g", "set_theme_background", "Theme background"),
        ("y", "add_theme", "New theme"),
        ("z", "delete_theme", "Delete theme"),
        Binding("ctrl+t", "edit_title", "Title", priority=True),
        Binding("ctrl+a", "toggle_admin", "Admin", priority=True),
        Binding("ctrl+n", "new_order", "New order", priority=True),
        Binding("ctrl+s", "send_order", "Send order", priority=True),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        session: Session | None = None,
        db_path: str | Path = DB_PATH,
        export_dir: str | Path = EXPORT_DIR,
    ) -> None:
        super().__init__()
        self.session = session
        self._owns_session = session is None
        self.db_path = db_path
        self.export_dir = Path(export_dir)
        self.system_status = ""
        self._unsubscribers: list[Unsubscribe] = []
        self._log_debug("app_init")

    def _log_debug(self, message: str) -> None:
        logger.debug(message)

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="menu-pane"):
                yield Static("Menu", classes="pane-title", id="menu-title")
                yield Static(id="menu-list")
            with Vertical(id="order-pane"):
                yield Static(id="day-tabs")
                yield Static("(no items yet)", id="order-lines")
                yield Static(id="totals")
        yield Static(id="status-bar")

    def on_mount(self) -> None:
        if self.session is None:
            self.session = create_session(self.db_path, scheduler=AsyncioScheduler())
        catalog = self.session.catalog
        self._unsubscribers.extend(
            [
                catalog.menu_state.observe(lambda _menu: self._refresh_all()),
                catalog.themes_state.observe(lambda _themes: self._apply_theme()),
                catalog.active_theme_state.observe(lambda _theme_id: self._apply_theme()),
                catalog.title_state.observe(lambda _title: self._refresh_header()),
            ]
        )
        if not self.session.sender.config.is_complete:
            self.system_status = "Email not configured; sending is disabled"
        self.set_interval(0.5, self._refresh_header)
        self._log_debug(f"on_mount db={self.db_path} email_ready={self.session.sender.config.is_complete}")
        self._apply_theme()
        self._refresh_all()

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if self._owns_session and self.session is not None:
            self.session.close()
        self._log_debug("on_unmount")

    def _modal_open(self) -> bool:
        return isinstance(self.screen, ModalScreen)

    def _set_status(self, message: str) -> None:
        self.system_status = message
        self._refresh_status()

    # Menu and quantities

    def _menu_items(self) -> list[MenuItem]:
        return self.session.catalog.all_items()

    def _selected_item(self) -> MenuItem | None:
        items = self._menu_items()
        if not items:
            return None
        return items[min(self.menu_index, len(items) - 1)]

    def action_move_cursor(self, delta: int) -> None:
        if self._modal_open():
            return
        items = self._menu_items()
        if not items:
            return
        self.menu_index = (self.menu_index + delta) % len(items)
        self._refresh_menu()

    def action_change_quantity(self, delta: int) -> None:
        if self._modal_open():
            return
        engine = self.session.engine
        item = self._selected_item()
        if item is None:
            return
        if engine.is_summary:
            self._set_status("Select a day tab to change quantities")
            return
        if delta > 0 and not item.is_available:
            self._set_status(f"{item.name} is currently unavailable")
            return
        engine.change_quantity(item.id, delta)
        self._log_debug(f"quantity item={item.id} delta={delta} day={engine.active_event_day_id}")
        self.system_status = ""
        self._refresh_all()

    # Event days

    def _tab_ids(self) -> list[str]:
        return [day.id for day in self.session.engine.event_days] + [SUMMARY_DAY_ID]

    def action_cycle_day(self, delta: int) -> None:
        if self._modal_open():
            return
        engine = self.session.engine
        tabs = self._tab_ids()
        current = tabs.index(engine.active_event_day_id) if engine.active_event_day_id in tabs else 0
        engine.set_active_day(tabs[(current + delta) % len(tabs)])
        self._refresh_all()

    def action_add_day(self) -> None:
        if self._modal_open():
            return
        day = self.session.engine.add_day()
        self._log_debug(f"day_added id={day.id} label={day.label!r}")
        self._refresh_all()

    def action_remove_day(self) -> None:
        if self._modal_open():
            return
        engine = self.session.engine
        if engine.is_summary:
            self._set_status("Select a day tab to remove it")
            return
        removed = engine.active_day
        engine.remove_day(removed.id)
        self._log_debug(f"day_removed id={removed.id}")
        self._set_status(f"Removed {removed.label}")
        self._refresh_all()

    def action_clear_day(self) -> None:
        if self._modal_open():
            return
        self.session.engine.clear_active_order()
        self._refresh_all()

    def action_edit_day(self) -> None:
        if self._modal_open():
            return
        engine = self.session.engine
        if engine.is_summary:
            self._set_status("Select a day tab to edit its details")
            return
        self.push_screen(day_form(engine, engine.active_day.id, on_close=self._refresh_all))

    def action_edit_customer(self) -> None:
        if self._modal_open():
            return
        self.push_screen(customer_form(self.session.engine, on_close=self._refresh_all))

    def action_new_order(self) -> None:
        if self._modal_open():
            return
        self.session.engine.reset()
        self.menu_index = 0
        self._set_status("Started a new order")
        self._refresh_all()

    # History and media

    def action_open_history(self) -> None:
        if self._modal_open():
            return
        self.push_screen(HistoryModal(self.session.history), self._load_saved_order)

    def _load_saved_order(self, saved: SavedOrder | None) -> None:
        if saved is None:
            return
        self.session.engine.load_snapshot(saved)
        self._set_status(f"Loaded {saved.order_number}; sending again saves a modified copy")
        self._refresh_all()

    def action_open_media(self) -> None:
        if self._modal_open():
            return
        self.push_screen(MediaModal(self.session.media, self.session.catalog.is_media_referenced))

    # Sending

    def action_send_order(self) -> None:
        engine = self.session.engine
        self._log_debug(f"send_enter days={len(engine.event_days)} screen={type(self.screen).__name__}")
        if self._modal_open():
            self._log_debug("send_blocked reason=modal")
            return

        totals = engine.compute_totals(SUMMARY_DAY_ID)
        if totals.subtotal <= 0:
            self._set_status("Nothing to send")
            self._log_debug("send_blocked reason=empty")
            return

        document = build_order_document(engine)
        html = render_order_html(document, self.session.catalog.app_title)
        try:
            result = send_order(engine, self.session.sender, html)
        except (EmailNotConfigured, EmailSendError) as exc:
            self._set_status(f"Email failed: {exc}")
            self._log_debug(f"send_failed error={exc!r}")
            return

        saved = self.session.history.get(result.order_id) if result.order_id else None
        label = saved.order_number if saved is not None else "order"
        message = f"Sent {label}"
        if result.save_error:
            message = f"Sent, but not saved to history: {result.save_error}"

        target = self.export_dir / suggested_filename(document)
        try:
            save_order_document(document, target, self.session.catalog.app_title)
        except OSError as exc:
            message = f"{message}; export failed: {exc}"
            self._log_debug(f"export_failed path={target} error={exc!r}")
        else:
            message = f"{message}; saved {target}"

        self._set_status(message)
        self._log_debug(f"send_done order_id={result.order_id} export={target}")
        self._refresh_all()

    # Admin

    def action_toggle_admin(self) -> None:
        if self._modal_open():
            return
        self.admin_mode = not self.admin_mode
        self._set_status("Admin mode on" if self.admin_mode else "Admin mode off")
        self._refresh_menu()

    def _require_admin(self) -> bool:
        if self._modal_open():
            return False
        if not self.admin_mode:
            self._set_status("Admin mode is off (Ctrl+A)")
            return False
        return True

    def action_new_menu_item(self) -> None:
        if not self._require_admin():
            return
        catalog = self.session.catalog
        selected = self._selected_item()
        category = catalog.category_of(selected.id) if selected is not None else None
        if category is None and catalog.menu:
            category = catalog.menu[0]
        if category is None:
            return
        item = catalog.add_menu_item(category.id)
        if item is not None:
            ids = [each.id for each in self._menu_items()]
            self.menu_index = ids.index(item.id)
            self._set_status(f"Added an item to {category.title}")
        self._refresh_menu()

    def action_delete_menu_item(self) -> None:
        if not self._require_admin():
            return
        catalog = self.session.catalog
        item = self._selected_item()
        category = catalog.category_of(item.id) if item is not None else None
        if item is None or category is None:
            return
        catalog.delete_menu_item(category.id, item.id)
        self._set_status(f"Deleted {item.name}")
        self._refresh_all()

    def action_toggle_available(self) -> None:
        if not self._require_admin():
            return
        catalog = self.session.catalog
        item = self._selected_item()
        category = catalog.category_of(item.id) if item is not None else None
        if item is None or category is None:
            return
        catalog.update_menu_item(category.id, item.id, is_available=not item.is_available)

    def action_edit_price(self) -> None:
        if not self._require_admin():
            return
        catalog = self.session.catalog
        item = self._selected_item()
        category = catalog.category_of(item.id) if item is not None else None
        if item is None or category is None:
            return

        def apply(value: str | None) -> None:
            if value is None:
                return
            catalog.update_menu_item(category.id, item.id, price=Decimal(value.strip()))

        self.push_screen(PromptModal("Edit Price", item.name, str(item.price), _validate_price), apply)

    def action_rename_menu_item(self) -> None:
        if not self._require_admin():
            return
        catalog = self.session.catalog
        item = self._selected_item()
        category = catalog.category_of(item.id) if item is not None else None
        if item is None or category is None:
            return

        def apply(value: str | None) -> None:
            if value:
                catalog.update_menu_item(category.id, item.id, name=value.strip())

        self.push_screen(PromptModal("Rename Item", "Item name", item.name, require_text), apply)

    def action_cycle_theme(self) -> None:
        if not self._require_admin():
            return
        catalog = self.session.catalog
        themes = catalog.themes
        if not themes:
            return
        ids = [theme.id for theme in themes]
        current = catalog.current_theme().id
        idx = ids.index(current) if current in ids else -1
        catalog.set_theme(ids[(idx + 1) % len(ids)])
        self._set_status(f"Theme: {catalog.current_theme().name}")

    def _pick_image(self, apply: Callable[[str], None]) -> None:
        def picked(file_id: str | None) -> None:
            if file_id is not None:
                apply(file_id)

        self.push_screen(MediaModal(self.session.media, self.session.catalog.is_media_referenced, pick=True), picked)

    def action_set_item_image(self, field: str) -> None:
        if not self._require_admin():
            return
        catalog = self.session.catalog
        item = self._selected_item()
        category = catalog.category_of(item.id) if item is not None else None
        if item is None or category is None:
            return

        def apply(file_id: str) -> None:
            catalog.update_menu_item(category.id, item.id, **{field: file_id})
            if field == "background_image_id":
                self._set_status(f"Background image set for {category.title}")
            else:
                self._set_status(f"Foreground image set for {item.name}")
            self._log_debug(f"item_image item={item.id} field={field} file={file_id}")

        self._pick_image(apply)

    def action_set_theme_background(self) -> None:
        if not self._require_admin():
            return
        catalog = self.session.catalog
        theme = catalog.current_theme()

        def apply(file_id: str) -> None:
            catalog.update_theme(theme.id, background_image=file_id)
            self._set_status(f"Background image set for theme {theme.name}")

        self._pick_image(apply)

    def action_add_theme(self) -> None:
        if not self._require_admin():
            return
        catalog = self.session.catalog

        def apply(name: str | None) -> None:
            if not name:
                return
            theme = new_theme(name.strip())
            catalog.add_theme(theme)
            self._set_status(f"Theme: {theme.name}")

        self.push_screen(PromptModal("New Theme", "Theme name", validate=require_text), apply)

    def action_delete_theme(self) -> None:
        if not self._require_admin():
            return
        catalog = self.session.catalog
        current = catalog.current_theme()
        others = [theme for theme in catalog.themes if theme.id != current.id]
        suggestion = others[0].name if others else current.name

        def apply(name: str | None) -> None:
            if not name:
                return
            matches = [theme for theme in catalog.themes if theme.name == name.strip()]
            if not matches:
                self._set_status(f"No theme named {name.strip()}")
                return
            try:
                catalog.delete_theme(matches[0].id)
            except BusinessRuleError as exc:
                self._set_status(str(exc))
                return
            self._set_status(f"Deleted theme {matches[0].name}")

        self.push_screen(PromptModal("Delete Theme", "Theme name", suggestion, require_text), apply)

    def action_edit_title(self) -> None:
        if not self._require_admin():
            return
        catalog = self.session.catalog

        def apply(value: str | None) -> None:
            if value:
                catalog.set_app_title(value.strip())

        self.push_screen(PromptModal("App Title", "Storefront title", catalog.app_title, require_text), apply)

    # Rendering

    def _refresh_all(self) -> None:
        self._refresh_header()
        self._refresh_menu()
        self._refresh_order()
        self._refresh_status()

    def _refresh_header(self) -> None:
        if self.session is None:
            return
        catalog = self.session.catalog
        self.title = catalog.app_title
        saving = "  · saving…" if catalog.is_saving else ""
        mode = "  · ADMIN" if self.admin_mode else ""
        self.sub_title = f"{catalog.current_theme().name}{mode}{saving}"

    def _apply_theme(self) -> None:
        theme = self.session.catalog.current_theme()
        try:
            self.query_one("#menu-pane").styles.border = ("round", theme_color(theme.primary_color))
            self.query_one("#order-pane").styles.border = ("round", theme_color(theme.secondary_color, "#6366f1"))
        except NoMatches:
            return
        self._refresh_header()

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 12
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)

        rows = max(1, rows)
        if total <= rows:
            return (0, total)

        if selected is None:
            start = 0
        else:
            half = rows // 2
            start = selected - half
            start = max(0, start)
            start = min(start, total - rows)

        return (start, start + rows)

    def _refresh_menu(self) -> None:
        try:
            menu_widget = self.query_one("#menu-list", Static)
        except NoMatches:
            return
        engine = self.session.engine
        quantities = {} if engine.is_summary else engine.active_day.order
        items = self._menu_items()
        if items and self.menu_index >= len(items):
            self.menu_index = len(items) - 1
        selected_id = items[self.menu_index].id if items else None

        rows: list[Text] = []
        selected_row = None
        for category in self.session.catalog.menu:
            rows.append(Text(category.title, style="bold #facc15"))
            if not category.items:
                rows.append(Text("  (no items)", style="dim"))
            for item in category.items:
                if item.id == selected_id:
                    selected_row = len(rows)
                rows.append(
                    format_menu_row(item, quantities.get(item.id, 0), item.id == selected_id, show_images=self.admin_mode)
                )

        if not rows:
            menu_widget.update("(menu is empty)")
            return

        start, end = self._window_bounds(len(rows), self._visible_rows(menu_widget), selected_row)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            lines.append_text(rows[idx])
        if end < len(rows):
            lines.append("\n⋮", style="dim")
        menu_widget.update(lines)

    def _refresh_order(self) -> None:
        try:
            tabs_widget = self.query_one("#day-tabs", Static)
            lines_widget = self.query_one("#order-lines", Static)
            totals_widget = self.query_one("#totals", Static)
        except NoMatches:
            return
        engine = self.session.engine

        tabs = Text()
        for day in engine.event_days:
            active = day.id == engine.active_event_day_id
            tabs.append(f" {day.label} ", style="bold reverse" if active else "")
            tabs.append(" ")
        tabs.append(" Summary ", style="bold reverse" if engine.is_summary else "")
        tabs_widget.update(tabs)

        totals = engine.compute_totals()
        if engine.is_summary:
            lines_widget.update(self._summary_lines(totals))
        else:
            lines_widget.update(self._day_lines(totals))
        totals_widget.update(self._totals_table(totals))

    def _day_lines(self, totals: OrderTotals) -> Text:
        day = self.session.engine.active_day
        header = Text()
        details = [part for part in (day.day_date, day.drop_time, day.event) if part]
        if details:
            header.append(" · ".join(details), style="italic #9ca3af")
            header.append("\n")
        breakdown = totals.days[0] if totals.days else None
        if breakdown is None or not breakdown.lines:
            header.append("(no items yet)", style="dim")
            return header
        for title, lines in group_by_category(breakdown.lines).items():
            header.append(f"{title}\n", style="bold")
            for line in lines:
                header.append("  ")
                header.append_text(format_quantity(line.quantity))
                header.append(f" × {line.name}  ")
                header.append(format_money(line.amount), style="#facc15")
                header.append("\n")
        if day.notes:
            header.append(f"Notes: {day.notes}", style="italic #9ca3af")
        return header

    def _summary_lines(self, totals: OrderTotals) -> Text:
        text = Text()
        customer = self.session.engine.customer_details
        text.append(f"{customer.name or '(no customer)'}", style="bold")
        text.append(f"  {customer.service_type} · {customer.attendees} guests\n", style="#9ca3af")
        for breakdown in totals.days:
            count = sum(line.quantity for line in breakdown.lines)
            text.append(f"{breakdown.label}", style="bold")
            text.append(f"  {count} items  ")
            text.append(format_money(breakdown.subtotal), style="#facc15")
            flagged = [line.name for line in breakdown.lines if line.below_minimum]
            if flagged:
                text.append(f"  {MINIMUM_WARNING_LABEL}: {', '.join(flagged)}", style="#ef4444")
            text.append("\n")
        return text

    def _totals_table(self, totals: OrderTotals) -> Table:
        table = Table.grid(padding=(0, 2), expand=True)
        table.add_column(style="bold")
        table.add_column(justify="right")
        table.add_row("Subtotal", format_money(totals.subtotal))
        table.add_row("Service Fee", format_money(totals.service_fee))
        table.add_row("GST (10%)", format_money(totals.gst))
        table.add_row(Text("Total", style="bold #facc15"), Text(format_money(totals.total), style="bold #facc15"))
        table.add_row(f"Per head ({totals.attendees})", format_money(totals.per_head))
        return table

    def _refresh_status(self) -> None:
        try:
            bar = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        keys = "+/- qty · ←/→ day · A add day · U customer · E day details · H history · M media · Ctrl+S send"
        if self.admin_mode:
            keys = (
                "ADMIN: N new · D delete · V availability · P price · R rename · F/B item image · "
                "T theme · Y new theme · Z delete theme · G theme image · Ctrl+T title"
            )
        bar.update(f"{keys}\n{self.system_status or 'Ready'}")
