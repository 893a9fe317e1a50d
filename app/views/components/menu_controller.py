"""MenuController: Manages menu creation and action connections."""

from __future__ import annotations

from collections.abc import Callable

from PySide6.QtGui import QAction
from PySide6.QtWidgets import QMainWindow, QMenuBar


class MenuController:
    """Manages main window menu creation and action connections."""

    def __init__(self, main_window: QMainWindow) -> None:
        """Initialize with main window reference.

        Args:
            main_window: The QMainWindow to create menus for
        """
        self.window = main_window
        self.actions: dict[str, QAction] = {}

    def setup_menus(self) -> dict[str, QAction]:
        """Create all menus and return action references.

        Returns:
            Dictionary mapping action names to QAction instances
        """
        menubar = QMenuBar(self.window)

        # Search Menu
        search_menu = menubar.addMenu("Search")
        self.actions["previous_day"] = search_menu.addAction("Previous Day With Photos")
        self.actions["next_day"] = search_menu.addAction("Next Day With Photos")
        search_menu.addSeparator()
        self.actions["cancel"] = search_menu.addAction("Stop Loading")
        search_menu.addSeparator()
        self.actions["exit"] = search_menu.addAction("Exit")

        # Log Menu
        log_menu = menubar.addMenu("Log")
        self.actions["open_latest_log"] = log_menu.addAction("Open Latest Log")
        self.actions["open_log_directory"] = log_menu.addAction("Open Log Directory")

        self.window.setMenuBar(menubar)
        return self.actions

    def connect_actions(self, handlers: dict[str, Callable]) -> None:
        """Connect menu actions to their handler methods.

        Args:
            handlers: Dictionary mapping action names to handler callables
        """
        for name, action in self.actions.items():
            handler = handlers.get(name)
            if handler is not None:
                action.triggered.connect(handler)
            elif name == "exit":
                action.triggered.connect(self.window.close)

    def enable_action(self, name: str, enabled: bool = True) -> None:
        """Enable or disable a specific action.

        Args:
            name: Action name
            enabled: Whether to enable the action
        """
        action = self.actions.get(name)
        if action:
            action.setEnabled(enabled)
