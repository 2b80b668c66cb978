"""Media library modal screen."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from storefront.constant import ROOT_FOLDER_ID
from storefront.errors import BusinessRuleError
from storefront.media import MediaTree, new_media_id, sniff_mime_type
from storefront.models import MediaFile, MediaFolder, MediaItem
from storefront.persistence import MediaSnapshot
from storefront.prompt_modal import PromptModal, require_text
from storefront.subscription import Unsubscribe


class MediaModal(ModalScreen[str | None]):
    """
    Browse and edit the media tree one folder at a time.

    In pick mode Enter on a file dismisses with its id.
    """

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
        ("ctrl+c", "close", "Close"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("up", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("enter", "open_selected", "Open"),
        ("backspace", "go_up", "Up"),
        ("n", "new_folder", "New folder"),
        ("i", "import_file", "Import"),
        ("r", "rename", "Rename"),
        ("m", "mark_for_move", "Mark"),
        ("p", "paste_here", "Move here"),
        ("u", "move_up", "Move up"),
        ("c", "duplicate", "Duplicate"),
        ("x", "delete", "Delete"),
    ]

    CSS = """
    MediaModal {
        align: center middle;
        background: $background 60%;
    }

    #media-dialog {
        width: 84;
        height: 80%;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #media-title {
        text-style: bold;
        color: white;
    }

    #media-crumbs {
        margin-bottom: 1;
        color: #facc15;
    }

    #media-list {
        height: 1fr;
        color: white;
    }

    #media-status {
        color: #ffb3b3;
    }

    #media-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)

    def __init__(self, tree: MediaTree, is_referenced: Callable[[str], bool], pick: bool = False) -> None:
        super().__init__()
        self.media_tree = tree
        self.is_referenced = is_referenced
        self.pick = pick
        self.current_folder_id = ROOT_FOLDER_ID
        self.marked_id: str | None = None
        self.status = ""
        self._unsubscribe: Unsubscribe | None = None

    def compose(self) -> ComposeResult:
        with Container(id="media-dialog"):
            yield Static("Choose Image" if self.pick else "Media Library", id="media-title")
            yield Static(id="media-crumbs")
            yield Static(id="media-list")
            yield Static(id="media-status")
            enter_help = "Enter open or pick file" if self.pick else "Enter open"
            yield Static(
                f"{enter_help}, Bksp up, N folder, I import, R rename, M mark, P move here, "
                "U move up, C duplicate, X delete, Esc close",
                id="media-help",
            )

    def on_mount(self) -> None:
        self._unsubscribe = self.media_tree.observe(self._on_snapshot)
        self._refresh_content()

    def on_unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_snapshot(self, _snapshot: MediaSnapshot) -> None:
        if self.media_tree.get_folder(self.current_folder_id) is None:
            self.current_folder_id = ROOT_FOLDER_ID
        if self.marked_id is not None and self.marked_id not in self.media_tree.items:
            self.marked_id = None
        self._refresh_content()

    def action_close(self) -> None:
        self.dismiss(None)

    def action_move_cursor(self, delta: int) -> None:
        contents = self._contents()
        if not contents:
            return
        self.cursor_index = (self.cursor_index + delta) % len(contents)
        self._refresh_content()

    def action_open_selected(self) -> None:
        item = self._selected_item()
        if self.pick and isinstance(item, MediaFile):
            self.dismiss(item.id)
            return
        if isinstance(item, MediaFolder):
            self.current_folder_id = item.id
            self.cursor_index = 0
            self.status = ""
            self._refresh_content()

    def action_go_up(self) -> None:
        folder = self.media_tree.get_folder(self.current_folder_id)
        if folder is None or not folder.parent_id:
            return
        previous = folder.id
        self.current_folder_id = folder.parent_id
        ids = [each.id for each in self._contents()]
        self.cursor_index = ids.index(previous) if previous in ids else 0
        self._refresh_content()

    def action_new_folder(self) -> None:
        parent_id = self.current_folder_id

        def create(name: str | None) -> None:
            if not name:
                return
            folder = MediaFolder(id=new_media_id("folder"), name=name.strip())
            self._report(self.media_tree.add_folder(folder, parent_id), "Could not create folder.")

        self.app.push_screen(PromptModal("New Folder", "Folder name", validate=require_text), create)

    def action_import_file(self) -> None:
        parent_id = self.current_folder_id

        def load(raw_path: str | None) -> None:
            if not raw_path:
                return
            path = Path(raw_path.strip()).expanduser()
            try:
                data = path.read_bytes()
            except OSError as exc:
                self.status = f"Cannot read {path}: {exc.strerror or exc}"
                self._refresh_content()
                return
            meta = MediaFile(id=new_media_id("file"), name=path.name, mime_type=sniff_mime_type(data))
            self._report(self.media_tree.add_file(meta, data, parent_id), "Could not import file.")

        self.app.push_screen(PromptModal("Import Image", "Path to image file", validate=require_text), load)

    def action_rename(self) -> None:
        item = self._selected_item()
        if item is None:
            return

        def apply(name: str | None) -> None:
            if not name:
                return
            self._report(self.media_tree.rename(item.id, name.strip()), "Could not rename.")

        self.app.push_screen(PromptModal("Rename", f"New name for {item.name}", item.name, require_text), apply)

    def action_mark_for_move(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        self.marked_id = None if self.marked_id == item.id else item.id
        self.status = f"Marked {item.name}; open a folder and press P" if self.marked_id else ""
        self._refresh_content()

    def action_paste_here(self) -> None:
        if self.marked_id is None:
            return
        moved = self.media_tree.move(self.marked_id, self.current_folder_id)
        if moved:
            self.marked_id = None
        self._report(moved, "Cannot move there.")

    def action_move_up(self) -> None:
        item = self._selected_item()
        folder = self.media_tree.get_folder(self.current_folder_id)
        if item is None or folder is None or not folder.parent_id:
            return
        self._report(self.media_tree.move(item.id, folder.parent_id), "Cannot move there.")

    def action_duplicate(self) -> None:
        item = self._selected_item()
        if not isinstance(item, MediaFile):
            self.status = "Only files can be duplicated."
            self._refresh_content()
            return
        self._report(self.media_tree.duplicate(item.id), "Could not duplicate.")

    def action_delete(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        try:
            deleted = self.media_tree.delete(item.id, self.is_referenced)
        except BusinessRuleError as exc:
            self.status = str(exc)
            self._refresh_content()
            return
        self._report(deleted, "Could not delete.")

    def _report(self, ok: bool, failure: str) -> None:
        if ok:
            self.status = ""
        elif self.media_tree.last_error is not None:
            self.status = f"{failure} {self.media_tree.last_error}"
        else:
            self.status = failure
        self._refresh_content()

    def _contents(self) -> list[MediaItem]:
        return self.media_tree.get_folder_contents(self.current_folder_id)

    def _selected_item(self) -> MediaItem | None:
        contents = self._contents()
        if not contents:
            return None
        return contents[min(self.cursor_index, len(contents) - 1)]

    def _refresh_content(self) -> None:
        crumbs = self.query_one("#media-crumbs", Static)
        listing = self.query_one("#media-list", Static)
        status = self.query_one("#media-status", Static)

        crumbs.update(" / ".join(item.name for item in self.media_tree.breadcrumbs(self.current_folder_id)))

        contents = self._contents()
        if self.cursor_index >= len(contents):
            self.cursor_index = max(0, len(contents) - 1)

        if self.media_tree.loading:
            listing.update("Loading...")
        elif not contents:
            listing.update("(empty folder)")
        else:
            text = Text()
            for idx, item in enumerate(contents):
                if idx > 0:
                    text.append("\n")
                text.append("➤ " if idx == self.cursor_index else "  ")
                if isinstance(item, MediaFolder):
                    text.append(f"▸ {item.name}/", style="bold #93c5fd")
                    text.append(f"  {len(item.children)} items", style="dim")
                else:
                    text.append(f"  {item.name}")
                    text.append(f"  {item.mime_type}", style="dim")
                    if self.is_referenced(item.id):
                        text.append("  in use", style="italic #facc15")
                if item.id == self.marked_id:
                    text.append("  [marked]", style="bold #facc15")
            listing.update(text)

        status.update(self.status)
