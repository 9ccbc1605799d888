# main.py - Aplicación principal de Lyrics Scanner
import logging
import tkinter as tk
from datetime import datetime
from tkinter import ttk, messagebox

import matplotlib
matplotlib.use('TkAgg')  # Usar backend compatible con Tkinter

from core.config import AppConfig
from core.database import DatabaseManager
from core.export_service import ExportService
from core.file_processor import FileProcessor
from core.ocr_engine import OcrEngine
from core.settings import SettingsManager
from core.theme import ThemeManager
from setup_styles import style_manager  # Importar el gestor de estilos
from ui.admin import AdminPanel
from ui.collections_manager import CollectionsManager
from ui.dashboard import Dashboard
from ui.editor import Editor
from ui.hymn_view import HymnView
from ui.scan_module import ScanModule
from ui.statistics import StatisticsPanel
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


class LyricsScannerApp:
    def __init__(self, config: AppConfig = None):
        self.config = config or AppConfig()
        self.config.ensure_directories()

        self.root = tk.Tk()
        self.root.title(f"Lyrics Scanner - v{self.config.version}")
        self.root.geometry("1200x800")
        self.root.minsize(1000, 700)

        # Servicios
        self.settings = SettingsManager(self.config.settings_path, self.config.export_dir)
        self.db = DatabaseManager(self.config.database_path)
        self.ocr_engine = OcrEngine()
        self.file_processor = FileProcessor(self.db, self.ocr_engine)
        self.export_service = ExportService(self.db, self.settings,
                                            export_directory=self.config.export_dir,
                                            shares_directory=self.config.shares_dir)

        # Estilos y tema (desde setup_styles)
        self.theme_manager = ThemeManager(self.settings, style_manager, self.root)
        self.theme_manager.initialize()
        self.theme_manager.add_listener(self.on_theme_changed)
        self.colors = style_manager.colors

        # Estado de la aplicación
        self.current_module = None
        self.db_connected = False
        self.init_database()

        self.setup_ui()
        self.root.protocol("WM_DELETE_WINDOW", self.on_close)
        self.root.after(1000, self.run_auto_backup)

    def init_database(self):
        """Abrir y preparar la base de datos"""
        try:
            self.db.initialize()
            self.db_connected = True
        except Exception as e:
            logger.exception("No se pudo inicializar la base de datos")
            messagebox.showerror("Base de datos", f"No se pudo abrir la base de datos:\n{e}")
            self.db_connected = False

    def setup_ui(self):
        """Configurar interfaz principal"""
        self.main_frame = ttk.Frame(self.root, style="TFrame")
        self.main_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        self.create_header()
        self.create_main_content()
        self.create_status_bar()
        self.show_dashboard()

    def create_header(self):
        """Crear header de la aplicación"""
        header_frame = ttk.Frame(self.main_frame, style="TFrame")
        header_frame.pack(fill=tk.X, pady=(0, 10))

        title_label = ttk.Label(header_frame,
                                text="🎵 Lyrics Scanner",
                                style="Header.TLabel")
        title_label.pack(side=tk.LEFT)

        nav_frame = ttk.Frame(header_frame, style="TFrame")
        nav_frame.pack(side=tk.RIGHT)

        nav_buttons = [
            ("🏠 Inicio", self.show_dashboard),
            ("📷 Escanear", self.show_scan),
            ("➕ Nuevo", lambda: self.show_editor()),
            ("📚 Colecciones", self.show_collections),
            ("📊 Estadísticas", self.show_statistics),
            ("⚙️ Ajustes", self.show_admin),
        ]

        for text, command in nav_buttons:
            ttk.Button(nav_frame,
                       text=text,
                       command=command,
                       style="Primary.TButton").pack(side=tk.LEFT, padx=2)

        self.theme_button = ttk.Button(nav_frame, text=self._theme_button_text(),
                                       command=self.theme_manager.toggle_theme)
        self.theme_button.pack(side=tk.LEFT, padx=(8, 0))

    def create_main_content(self):
        """Crear área de contenido principal"""
        self.content_frame = ttk.Frame(self.main_frame, style="TFrame")
        self.content_frame.pack(fill=tk.BOTH, expand=True)

    def create_status_bar(self):
        """Crear barra de estado"""
        status_frame = ttk.Frame(self.main_frame, style="TFrame")
        status_frame.pack(fill=tk.X, pady=(10, 0))

        self.db_status = ttk.Label(status_frame, text="", style="Secondary.TLabel")
        self.db_status.pack(side=tk.LEFT)

        self.hymn_count = ttk.Label(status_frame, text="Himnos: 0", style="Secondary.TLabel")
        self.hymn_count.pack(side=tk.LEFT, padx=20)

        self.status_message = ttk.Label(status_frame, text="", style="Secondary.TLabel")
        self.status_message.pack(side=tk.LEFT, padx=20)

        version_label = ttk.Label(status_frame, text=f"v{self.config.version}", style="Secondary.TLabel")
        version_label.pack(side=tk.RIGHT)
        self.update_status()

    # ===== NAVEGACIÓN =====
    def show_dashboard(self):
        """Mostrar pantalla de inicio"""
        self.clear_content()
        self.current_module = Dashboard(self.content_frame, self)
        self.update_status()

    def show_scan(self):
        self.clear_content()
        self.current_module = ScanModule(self.content_frame, self)

    def show_editor(self, hymn_id=None, draft=None):
        """Editor de himnos: nuevo (sin id), existente o borrador de un escaneo"""
        self.clear_content()
        self.current_module = Editor(self.content_frame, self, hymn_id=hymn_id, draft=draft)

    def show_hymn(self, hymn_id):
        self.clear_content()
        self.current_module = HymnView(self.content_frame, self, hymn_id)

    def show_collections(self, collection_id=None):
        self.clear_content()
        self.current_module = CollectionsManager(self.content_frame, self, collection_id=collection_id)

    def show_statistics(self):
        self.clear_content()
        self.current_module = StatisticsPanel(self.content_frame, self)

    def show_admin(self):
        """Mostrar ajustes y administración"""
        self.clear_content()
        self.current_module = AdminPanel(self.content_frame, self)

    def clear_content(self):
        """Limpiar contenido actual"""
        if self.current_module is not None and hasattr(self.current_module, "destroy"):
            self.current_module.destroy()
        self.current_module = None
        for widget in self.content_frame.winfo_children():
            widget.destroy()

    # ===== ESTADO =====
    def update_status(self):
        """Actualizar barra de estado"""
        status_text = "🟢 BD lista" if self.db_connected else "🔴 BD no disponible"
        self.db_status.config(text=status_text)
        if self.db_connected:
            try:
                self.hymn_count.config(text=f"Himnos: {self.db.get_total_hymns_count()}")
            except Exception:
                logger.exception("Error contando himnos")
                self.hymn_count.config(text="Himnos: Error")

    def set_status_message(self, text, clear_after_ms=4000):
        self.status_message.config(text=text)
        if clear_after_ms:
            self.root.after(clear_after_ms, lambda: self.status_message.config(text=""))

    def _theme_button_text(self):
        return "☀️" if self.theme_manager.is_dark_mode else "🌙"

    def on_theme_changed(self, theme):
        self.theme_button.config(text=self._theme_button_text())
        # Las pantallas con widgets tk.* toman los colores al crearse
        self.show_dashboard()

    def run_auto_backup(self):
        """Backup automático al iniciar si corresponde"""
        if not self.db_connected or not self.settings.is_backup_due():
            return
        path = self.config.backup_dir / f"auto_backup_{datetime.now():%Y%m%d_%H%M%S}.db3"
        if self.export_service.create_backup(path):
            logger.info(f"Backup automático creado: {path}")
            self.set_status_message("💾 Backup automático creado")
        else:
            logger.warning("Falló el backup automático")

    def on_close(self):
        try:
            self.clear_content()
            self.db.close()
        finally:
            self.root.destroy()

    def run(self):
        """Ejecutar aplicación"""
        self.root.mainloop()


def main():
    config = AppConfig()
    setup_logging(config.log_dir)
    app = LyricsScannerApp(config)
    app.run()


if __name__ == "__main__":
    main()
