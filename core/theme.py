"""Tema claro/oscuro de la aplicación."""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

LIGHT = "light"
DARK = "dark"
SYSTEM = "system"


class ThemeManager:
    """Guarda el tema elegido y lo aplica a los estilos ttk.

    El modo "system" usa la paleta clara: tkinter no expone la preferencia
    del sistema operativo.
    """

    def __init__(self, settings, style_manager=None, root=None):
        self.settings = settings
        self.style_manager = style_manager
        self.root = root
        self.current_theme = SYSTEM
        self._listeners: List[Callable[[str], None]] = []

    def initialize(self) -> None:
        self.current_theme = self.settings.get_theme()
        self._apply()

    @property
    def effective_theme(self) -> str:
        return DARK if self.current_theme == DARK else LIGHT

    @property
    def is_dark_mode(self) -> bool:
        return self.effective_theme == DARK

    def add_listener(self, callback: Callable[[str], None]) -> None:
        self._listeners.append(callback)

    def set_theme(self, theme: str) -> None:
        if theme == self.current_theme:
            return
        self.settings.set_theme(theme)
        self.current_theme = theme
        self._apply()
        logger.info(f"Tema cambiado a {theme}")
        for callback in list(self._listeners):
            callback(theme)

    def toggle_theme(self) -> str:
        """claro -> oscuro, oscuro -> claro, sistema -> oscuro"""
        new_theme = LIGHT if self.current_theme == DARK else DARK
        self.set_theme(new_theme)
        return new_theme

    def _apply(self) -> None:
        if self.style_manager is not None:
            self.style_manager.apply(self.effective_theme, self.root)
