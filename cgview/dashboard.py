"""Interactive terminal dashboard: cgview's live cgroup tree.

Shows the cgroup hierarchy with one tab per metric group (General, CPU, Mem,
I/O, Pressure, Perf) using curses. A background poller refreshes the tree
snapshot; the screen redraws on every key press and every interval.

Usage:
    cgview
    cgview --interval 1 --tab CPU --sort cpu.usage_pct --filter system.slice
"""

from __future__ import annotations

import argparse
import curses
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cgview.collector import CgroupCollector, Poller
from cgview.config import dump_default_config, load_config
from cgview.fields import FieldId
from cgview.logs import configure_logging
from cgview.model import ModelHandle
from cgview.tabs import RECREATED_MARKER, TABS, Row, row_key_to_path
from cgview.view import CgroupView

logger = logging.getLogger(__name__)

# ── Constants ──────────────────────────────────────────────────────────────

PAGE_SIZE = 15
KEY_ESC = 27
KEY_TAB = 9
KEY_ENTERS = (curses.KEY_ENTER, 10, 13)
KEY_BACKSPACES = (curses.KEY_BACKSPACE, 127, 8)

# Curses colour-pair IDs
C_NORMAL = 1
C_RECREATED = 2
C_TITLE = 3
C_DIM = 4
C_SORTED = 5


# ── Colour helpers ─────────────────────────────────────────────────────────


def _init_colors() -> None:
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(C_NORMAL, -1, -1)
    curses.init_pair(C_RECREATED, curses.COLOR_GREEN, -1)
    curses.init_pair(C_TITLE, curses.COLOR_CYAN, -1)
    curses.init_pair(C_DIM, curses.COLOR_WHITE, -1)
    curses.init_pair(C_SORTED, curses.COLOR_YELLOW, -1)


def row_color(key: str) -> int:
    """Recreated cgroups are drawn in green."""
    return C_RECREATED if key.startswith(RECREATED_MARKER) else C_NORMAL


# ── List cursor ────────────────────────────────────────────────────────────


@dataclass
class ListCursor:
    """Selected row and first visible row of the scrolling list."""

    selected: int = 0
    top: int = 0

    def move(self, delta: int, count: int) -> None:
        self.selected = max(0, min(self.selected + delta, count - 1))

    def home(self) -> None:
        self.selected = 0

    def end(self, count: int) -> None:
        self.selected = max(count - 1, 0)

    def follow(self, rows: list[Row], path: str) -> None:
        """Re-select the row of *path* after the row list changed."""
        for idx, row in enumerate(rows):
            if row_key_to_path(row.key) == path:
                self.selected = idx
                return
        self.selected = max(0, min(self.selected, len(rows) - 1))

    def window(self, height: int) -> range:
        """Scroll so the selection is visible; return the visible indices."""
        height = max(height, 1)
        if self.selected < self.top:
            self.top = self.selected
        elif self.selected >= self.top + height:
            self.top = self.selected - height + 1
        return range(self.top, self.top + height)


# ── Dashboard state and key handling ───────────────────────────────────────


class Dashboard:
    """Key handling and row bookkeeping on top of a :class:`CgroupView`."""

    def __init__(self, view: CgroupView) -> None:
        self.view = view
        self.cursor = ListCursor()
        self.sort_column = 0
        self.rows: list[Row] = []
        self.editing_filter = False
        self.filter_buffer = ""

    def refresh(self) -> None:
        self.rows = self.view.get_rows()
        self.cursor.follow(self.rows, self.view.state.selected_key)
        self._sync_selection()

    def _sync_selection(self) -> None:
        if self.rows:
            self.view.select(self.rows[self.cursor.selected].key)

    def _move(self, delta: int) -> None:
        self.cursor.move(delta, len(self.rows))
        self._sync_selection()

    def _move_sort_column(self, delta: int) -> None:
        last = len(self.view.tab.view_items)
        self.sort_column = max(0, min(self.sort_column + delta, last))

    def _switch_tab(self, forward: bool) -> None:
        if forward:
            self.view.next_tab()
        else:
            self.view.prev_tab()
        self.sort_column = min(self.sort_column, len(self.view.tab.view_items))

    def handle_key(self, key: int) -> bool:
        """Apply one key press. Returns False when the user asked to quit."""
        if self.editing_filter:
            self._handle_filter_key(key)
            return True

        if key in (ord("q"), ord("Q")):
            return False
        if key == curses.KEY_DOWN:
            self._move(1)
        elif key == curses.KEY_UP:
            self._move(-1)
        elif key == curses.KEY_NPAGE:
            self._move(PAGE_SIZE)
        elif key == curses.KEY_PPAGE:
            self._move(-PAGE_SIZE)
        elif key == curses.KEY_HOME:
            self.cursor.home()
            self._sync_selection()
        elif key == curses.KEY_END:
            self.cursor.end(len(self.rows))
            self._sync_selection()
        elif key in KEY_ENTERS:
            if self.rows:
                self.view.submit(self.rows[self.cursor.selected].key)
        elif key == KEY_TAB:
            self._switch_tab(True)
        elif key == curses.KEY_BTAB:
            self._switch_tab(False)
        elif key == curses.KEY_RIGHT:
            self.view.scroll_columns(1)
        elif key == curses.KEY_LEFT:
            self.view.scroll_columns(-1)
        elif key == ord(">"):
            self._move_sort_column(1)
        elif key == ord("<"):
            self._move_sort_column(-1)
        elif key == ord("s"):
            self.view.sort_by_column(self.sort_column)
        elif key == ord("C"):
            self.view.sort_by_cpu()
        elif key == ord("M"):
            self.view.sort_by_mem()
        elif key == ord("D"):
            self.view.sort_by_disk()
        elif key == ord("/"):
            self.editing_filter = True
            self.filter_buffer = self.view.state.get_filter() or ""
        elif key == KEY_ESC:
            self.view.set_filter(None)
        else:
            return True
        self.refresh()
        return True

    def _handle_filter_key(self, key: int) -> None:
        if key in KEY_ENTERS:
            self.editing_filter = False
        elif key == KEY_ESC:
            self.editing_filter = False
            self.filter_buffer = ""
        elif key in KEY_BACKSPACES:
            self.filter_buffer = self.filter_buffer[:-1]
        elif 32 <= key < 127:
            self.filter_buffer += chr(key)
        else:
            return
        # The filter follows the prompt text live
        self.view.set_filter(self.filter_buffer)
        self.refresh()

    def status_line(self) -> str:
        if self.editing_filter:
            return f"filter: {self.filter_buffer}"
        sort = self.view.state.sort
        parts = [f"[{self.view.tab.name}]"]
        if sort.field_id is not None:
            arrow = "desc" if sort.reverse else "asc"
            parts.append(f"sort: {sort.field_id.value} {arrow}")
        current_filter = self.view.state.get_filter()
        if current_filter:
            parts.append(f"filter: {current_filter}")
        parts.append(f"cgroup: {self.view.state.selected_key or '<root>'}")
        return "  ".join(parts)


# ── Curses drawing primitives ──────────────────────────────────────────────


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


def _draw_header(win: curses.window, w: int, dash: Dashboard) -> None:
    ts = time.strftime("%H:%M:%S")
    attr = curses.color_pair(C_TITLE) | curses.A_REVERSE
    _safe(win, 0, 0, " " * (w - 1), attr)
    x = 1
    _safe(win, 0, x, "cgview", attr | curses.A_BOLD)
    x += 8
    for name in dash.view.tab_names:
        label = f" {name} "
        if name == dash.view.tab.name:
            tab_attr = curses.color_pair(C_TITLE) | curses.A_BOLD
        else:
            tab_attr = attr
        _safe(win, 0, x, label[: max(w - x - 1, 0)], tab_attr)
        x += len(label) + 1
    hint = "q: quit  /: filter"
    _safe(win, 0, max(x, w - len(hint) - 12), ts, attr)
    _safe(win, 0, max(0, w - len(hint) - 2), hint, attr)


def _draw_titles(win: curses.window, y: int, w: int, dash: Dashboard) -> None:
    titles = dash.view.get_titles()
    offset = dash.view.column_offset
    sort_field = dash.view.state.sort.field_id
    items = dash.view.tab.view_items
    x = 0
    for idx, title in enumerate(titles.titles):
        if 0 < idx <= offset:
            continue
        if x >= w - 1:
            break
        field_id = items[idx - 1].field_id if idx else FieldId.NAME
        attr = curses.color_pair(C_TITLE) | curses.A_BOLD
        if idx == dash.sort_column:
            attr |= curses.A_UNDERLINE
        if field_id == sort_field:
            attr = curses.color_pair(C_SORTED) | curses.A_BOLD
        _safe(win, y, x, title[: w - x - 1], attr)
        x += len(title) + 1


def _draw_rows(win: curses.window, y: int, h: int, w: int, dash: Dashboard) -> None:
    for line, idx in enumerate(dash.cursor.window(h)):
        if idx >= len(dash.rows):
            break
        row = dash.rows[idx]
        attr = curses.color_pair(row_color(row.key))
        if idx == dash.cursor.selected:
            attr |= curses.A_REVERSE
        _safe(win, y + line, 0, row.label[: w - 1], attr)


# ── Main loop ──────────────────────────────────────────────────────────────


def _dashboard_loop(stdscr: curses.window, dash: Dashboard, interval: float) -> None:
    _init_colors()
    curses.curs_set(0)
    stdscr.keypad(True)
    stdscr.timeout(int(interval * 1000))
    dash.refresh()

    while True:
        max_y, max_x = stdscr.getmaxyx()

        if max_y < 5 or max_x < 40:
            stdscr.erase()
            _safe(stdscr, 0, 0, "Terminal too small (need 40x5+)")
            stdscr.refresh()
            key = stdscr.getch()
            if key in (ord("q"), ord("Q")):
                return
            continue

        stdscr.erase()
        _draw_header(stdscr, max_x, dash)
        _draw_titles(stdscr, 1, max_x, dash)
        _draw_rows(stdscr, 2, max_y - 3, max_x, dash)
        _safe(
            stdscr,
            max_y - 1,
            0,
            dash.status_line()[: max_x - 1],
            curses.color_pair(C_DIM) | curses.A_BOLD,
        )
        stdscr.refresh()

        key = stdscr.getch()
        if key == -1:
            # Timeout: pick up the latest snapshot
            dash.refresh()
            continue
        if key == curses.KEY_RESIZE:
            stdscr.clear()
            continue
        if not dash.handle_key(key):
            return


# ── CLI entry point ────────────────────────────────────────────────────────


def build_view(config: dict[str, Any], handle: ModelHandle) -> CgroupView:
    """Create the cgroup view with the configured tab, sort and collapse state."""
    tab = str(config.get("default_tab", "General"))
    if tab not in TABS:
        logger.warning("unknown default_tab %r, using General", tab)
        tab = "General"
    view = CgroupView(handle, initial_tab=tab)

    sort_cfg: dict[str, Any] = config.get("sort", {})
    sort_field = str(sort_cfg.get("field", "") or "")
    if sort_field:
        if view.sort_by_name(sort_field):
            view.state.sort.reverse = bool(sort_cfg.get("reverse", True))
        else:
            logger.warning("unknown sort field %r in config, ignoring", sort_field)

    if config.get("collapse_top_level"):
        view.state.collapse.toggle_root()
    return view


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Interactive cgroup v2 dashboard with a collapsible tree view.",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between refreshes (default: 2.0)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        metavar="PATH",
        help="cgroup v2 mount point (default: /sys/fs/cgroup)",
    )
    parser.add_argument(
        "--tab",
        choices=list(TABS),
        default=None,
        help="Tab to open on start",
    )
    parser.add_argument(
        "--sort",
        default=None,
        metavar="FIELD",
        help="Initial sort field, e.g. cpu.usage_pct or mem.total",
    )
    parser.add_argument(
        "--filter",
        default=None,
        metavar="TEXT",
        help="Initial cgroup path filter",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    args = parser.parse_args()

    if args.dump_config:
        sys.stdout.write(dump_default_config())
        return

    config = load_config(args.config)
    if args.tab is not None:
        config["default_tab"] = args.tab
    if args.sort is not None:
        config["sort"] = {**config.get("sort", {}), "field": args.sort, "reverse": True}
    interval = float(args.interval if args.interval is not None else config["interval"])
    root = args.root or Path(config["cgroup_root"])

    log_cfg: dict[str, Any] = config.get("log", {})
    log_file = str(log_cfg.get("file", "") or "")
    configure_logging(log_cfg.get("level", "WARNING"), Path(log_file) if log_file else None)

    if not root.is_dir():
        print(f"cgview: cgroup root not found: {root}", file=sys.stderr)
        raise SystemExit(1)

    handle = ModelHandle()
    poller = Poller(CgroupCollector(root), handle, interval)
    poller.poll_once()

    view = build_view(config, handle)
    if args.sort is not None and view.state.sort.field_id is None:
        print(f"cgview: unknown sort field: {args.sort}", file=sys.stderr)
        raise SystemExit(2)
    if args.filter:
        view.set_filter(args.filter)

    poller.start()
    try:
        curses.wrapper(_dashboard_loop, Dashboard(view), interval)
    except KeyboardInterrupt:
        pass
    finally:
        poller.stop(timeout=interval)


if __name__ == "__main__":
    main()
