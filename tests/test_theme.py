# test_theme.py
import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from core.theme import ThemeManager


class FakeStyleManager:
    def __init__(self):
        self.applied = []
        self.colors = {}

    def apply(self, palette_name, root=None):
        self.applied.append(palette_name)
        self.colors = {'background': '#000000' if palette_name == 'dark' else '#FFFFFF'}


class TestThemeManager:

    def test_initialize_uses_saved_theme(self, settings):
        settings.set_theme("dark")
        styles = FakeStyleManager()
        manager = ThemeManager(settings, styles)
        manager.initialize()
        assert manager.current_theme == "dark"
        assert manager.is_dark_mode
        assert styles.applied == ["dark"]
        assert styles.colors['background'] == '#000000'

    def test_system_resolves_to_light(self, settings):
        manager = ThemeManager(settings, FakeStyleManager())
        manager.initialize()
        assert manager.current_theme == "system"
        assert manager.effective_theme == "light"
        assert not manager.is_dark_mode

    def test_toggle_and_listeners(self, settings):
        styles = FakeStyleManager()
        manager = ThemeManager(settings, styles)
        manager.initialize()
        events = []
        manager.add_listener(events.append)

        assert manager.toggle_theme() == "dark"
        assert manager.toggle_theme() == "light"
        assert events == ["dark", "light"]
        assert settings.get_theme() == "light"

    def test_same_theme_is_noop(self, settings):
        styles = FakeStyleManager()
        manager = ThemeManager(settings, styles)
        manager.initialize()
        events = []
        manager.add_listener(events.append)
        manager.set_theme("system")
        assert events == []
        assert styles.applied == ["light"]

    def test_without_style_manager(self, settings):
        manager = ThemeManager(settings)
        manager.initialize()
        assert manager.current_theme == "system"
        manager.set_theme("dark")
        assert settings.get_theme() == "dark"
