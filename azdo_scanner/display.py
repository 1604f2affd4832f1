# azdo_scanner/display.py
"""
Live console rendering of the scan result tree.

- ScanDisplay owns the result tree, the transient spinner line, and one lock.
- Every tree mutation and every frame build happens under that lock, so a frame never
  shows a category node whose children are still being appended.
- Frames are built as snapshots and handed to rich.live.Live; Live never calls back into
  ScanDisplay, which keeps the lock order one-way (ScanDisplay lock, then Live lock).
"""

import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.spinner import Spinner
from rich.text import Text
from rich.tree import Tree

from config import SPINNER_INTERVAL
from models import TreeNode


def node_text(node: TreeNode) -> Text:
    text = Text()
    if node.icon:
        text.append(f"{node.icon} ", style=node.style)
    text.append(node.label, style=node.style)
    if node.detail:
        text.append(f" ({node.detail})", style="dim")
    return text


def render_tree(node: TreeNode, parent: Optional[Tree] = None) -> Tree:
    """Build a rich Tree mirroring `node` and its descendants."""
    branch = Tree(node_text(node)) if parent is None else parent.add(node_text(node))
    for child in node.children:
        render_tree(child, branch)
    return branch


class ScanDisplay:
    """
    Push-only presentation of a scan: add nodes, show a status line, redraw.
    Use as a context manager to run the live region.
    """

    def __init__(self, title: str, console: Optional[Console] = None,
                 status_interval: float = SPINNER_INTERVAL, spinner: str = "dots"):
        self.console = console or Console()
        self.root = TreeNode(label=title, style="yellow", icon="🛡️")
        self.status_interval = status_interval
        self._spinner_name = spinner
        self._spinner: Optional[Spinner] = None
        self._lock = threading.RLock()
        self._live: Optional[Live] = None

    # --- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            if self._live is not None:
                return
            self._live = Live(self._frame(), console=self.console, auto_refresh=False,
                              redirect_stdout=True, redirect_stderr=True)
            self._live.start()

    def stop(self) -> None:
        with self._lock:
            live, self._live = self._live, None
            self._spinner = None
            if live is None:
                return
            live.update(self._frame())
            live.stop()

    def __enter__(self) -> "ScanDisplay":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # --- tree ------------------------------------------------------------------

    def add_project(self, name: str) -> TreeNode:
        with self._lock:
            node = self.root.add(name, style="yellow", icon="📁")
            self.refresh()
        return node

    def attach(self, parent: TreeNode, node: TreeNode) -> None:
        """Attach a fully built node in one step."""
        with self._lock:
            parent.children.append(node)
            self.refresh()

    # --- status line -------------------------------------------------------------

    @contextmanager
    def status(self, message: str) -> Iterator[None]:
        """
        Show an animated status line for the duration of the block.

        A repaint thread redraws the frame every `status_interval` seconds; it is
        stopped and joined before the block's exit returns.
        """
        stop = threading.Event()
        with self._lock:
            self._spinner = Spinner(self._spinner_name, text=Text(message, style="cyan"))
            self.refresh()

        def repaint() -> None:
            while not stop.wait(self.status_interval):
                self.refresh()

        painter = threading.Thread(target=repaint, name="status-repaint", daemon=True)
        painter.start()
        try:
            yield
        finally:
            stop.set()
            painter.join()
            with self._lock:
                self._spinner = None
                self.refresh()

    @property
    def status_active(self) -> bool:
        with self._lock:
            return self._spinner is not None

    # --- rendering -----------------------------------------------------------------

    def _frame(self):
        # caller holds the lock
        tree = render_tree(self.root)
        if self._spinner is None:
            return tree
        return Group(tree, self._spinner)

    def refresh(self) -> None:
        with self._lock:
            if self._live is not None:
                self._live.update(self._frame(), refresh=True)
