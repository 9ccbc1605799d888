import json
import logging
import tkinter as tk
from datetime import datetime
from tkinter import ttk, messagebox, filedialog, colorchooser

from core.export_service import EXPORT_FORMATS
from core.models import HymnBook, DEFAULT_LANGUAGE
from core.ocr_engine import LANGUAGE_NAMES, SUPPORTED_LANGUAGES
from core.settings import THEMES
from utils.helpers import format_bytes

logger = logging.getLogger(__name__)

THEME_LABELS = {"light": "Claro", "dark": "Oscuro", "system": "Sistema"}


class HymnBookDialog:
    """Diálogo modal para crear o editar un himnario"""

    def __init__(self, parent, book=None):
        self.result = None
        self.book = book or HymnBook(color="#1976D2")

        self.top = tk.Toplevel(parent)
        self.top.title("Editar himnario" if book else "Nuevo himnario")
        self.top.transient(parent.winfo_toplevel())
        self.top.resizable(False, False)

        frame = ttk.Frame(self.top, padding=15)
        frame.pack(fill=tk.BOTH, expand=True)

        self.name_var = tk.StringVar(value=self.book.name)
        self.language_var = tk.StringVar(value=self.book.language or DEFAULT_LANGUAGE)
        self.publisher_var = tk.StringVar(value=self.book.publisher or "")
        self.year_var = tk.StringVar(value=str(self.book.year) if self.book.year else "")
        self.color = self.book.color or "#1976D2"

        ttk.Label(frame, text="Nombre:").grid(row=0, column=0, sticky="w", pady=3)
        ttk.Entry(frame, textvariable=self.name_var, width=35).grid(row=0, column=1, columnspan=2, sticky="we")
        ttk.Label(frame, text="Idioma:").grid(row=1, column=0, sticky="w", pady=3)
        ttk.Combobox(frame, textvariable=self.language_var, values=sorted(LANGUAGE_NAMES.values()),
                     width=20).grid(row=1, column=1, sticky="w")
        ttk.Label(frame, text="Editorial:").grid(row=2, column=0, sticky="w", pady=3)
        ttk.Entry(frame, textvariable=self.publisher_var, width=35).grid(row=2, column=1, columnspan=2, sticky="we")
        ttk.Label(frame, text="Año:").grid(row=3, column=0, sticky="w", pady=3)
        ttk.Entry(frame, textvariable=self.year_var, width=8).grid(row=3, column=1, sticky="w")

        ttk.Label(frame, text="Descripción:").grid(row=4, column=0, sticky="nw", pady=3)
        self.description_text = tk.Text(frame, width=35, height=3, wrap=tk.WORD)
        self.description_text.grid(row=4, column=1, columnspan=2, sticky="we")
        self.description_text.insert('1.0', self.book.description or "")

        ttk.Label(frame, text="Color:").grid(row=5, column=0, sticky="w", pady=3)
        self.color_swatch = tk.Label(frame, width=4, bg=self.color, relief="solid", bd=1)
        self.color_swatch.grid(row=5, column=1, sticky="w")
        ttk.Button(frame, text="Elegir...", command=self.choose_color).grid(row=5, column=2, sticky="w")

        self.active_var = tk.BooleanVar(value=self.book.is_active)
        ttk.Checkbutton(frame, text="Activo", variable=self.active_var).grid(row=6, column=1, sticky="w", pady=3)

        buttons = ttk.Frame(frame)
        buttons.grid(row=7, column=0, columnspan=3, pady=(10, 0))
        ttk.Button(buttons, text="💾 Guardar", command=self.on_accept, style="Success.TButton").pack(side=tk.LEFT, padx=3)
        ttk.Button(buttons, text="Cancelar", command=self.top.destroy).pack(side=tk.LEFT, padx=3)

        self.top.bind('<Escape>', lambda e: self.top.destroy())
        self.top.grab_set()
        parent.wait_window(self.top)

    def choose_color(self):
        _, hex_color = colorchooser.askcolor(color=self.color, parent=self.top)
        if hex_color:
            self.color = hex_color.upper()
            self.color_swatch.config(bg=self.color)

    def on_accept(self):
        name = self.name_var.get().strip()
        if not name:
            messagebox.showwarning("Validación", "El nombre es obligatorio", parent=self.top)
            return
        year_text = self.year_var.get().strip()
        if year_text and not year_text.isdigit():
            messagebox.showwarning("Validación", "El año debe ser un número", parent=self.top)
            return

        self.book.name = name
        self.book.language = self.language_var.get().strip() or DEFAULT_LANGUAGE
        self.book.publisher = self.publisher_var.get().strip() or None
        self.book.year = int(year_text) if year_text else None
        self.book.description = self.description_text.get('1.0', 'end-1c').strip() or None
        self.book.color = self.color
        self.book.is_active = self.active_var.get()
        self.result = self.book
        self.top.destroy()


class AdminPanel:
    def __init__(self, parent, app):
        self.parent = parent
        self.app = app
        self.db = app.db
        self.settings = app.settings
        self.setup_ui()

    def setup_ui(self):
        """Configurar interfaz de ajustes y administración"""
        self.main_frame = ttk.Frame(self.parent, style="TFrame")
        self.main_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        title_label = ttk.Label(self.main_frame, text="⚙️ Ajustes y Administración", style="Header.TLabel")
        title_label.pack(anchor="w", pady=(0, 10))

        # Notebook para secciones
        self.notebook = ttk.Notebook(self.main_frame)
        self.notebook.pack(fill=tk.BOTH, expand=True)

        self.create_preferences_tab()
        self.create_hymn_books_tab()
        self.create_database_tab()
        self.create_about_tab()

    # ===== PREFERENCIAS =====
    def create_preferences_tab(self):
        frame = ttk.Frame(self.notebook, padding=15)
        self.notebook.add(frame, text="🎛️ Preferencias")

        s = self.settings
        self.theme_var = tk.StringVar(value=THEME_LABELS[s.get_theme()])
        self.ocr_language_var = tk.StringVar(value=s.get_default_ocr_language())
        self.auto_save_var = tk.BooleanVar(value=s.get_auto_save_after_ocr())
        self.font_size_var = tk.IntVar(value=int(s.get_font_size()))
        self.line_numbers_var = tk.BooleanVar(value=s.get_show_line_numbers())
        self.export_format_var = tk.StringVar(value=s.get_default_export_format())
        self.export_dir_var = tk.StringVar(value=s.get_export_directory() or "")
        self.case_var = tk.BooleanVar(value=s.get_case_sensitive_search())
        self.history_limit_var = tk.IntVar(value=s.get_search_history_limit())
        self.auto_backup_var = tk.BooleanVar(value=s.get_auto_backup())
        self.backup_interval_var = tk.IntVar(value=s.get_backup_interval_days())
        self.analytics_var = tk.BooleanVar(value=s.get_collect_analytics())

        appearance = ttk.LabelFrame(frame, text="Apariencia", padding=10)
        appearance.pack(fill=tk.X, pady=5)
        ttk.Label(appearance, text="Tema:").grid(row=0, column=0, sticky="w")
        ttk.Combobox(appearance, textvariable=self.theme_var, values=[THEME_LABELS[t] for t in THEMES],
                     state="readonly", width=12).grid(row=0, column=1, sticky="w", padx=5)
        ttk.Label(appearance, text="Tamaño de letra:").grid(row=1, column=0, sticky="w", pady=3)
        ttk.Spinbox(appearance, from_=8, to=48, textvariable=self.font_size_var, width=5).grid(row=1, column=1, sticky="w", padx=5)
        ttk.Checkbutton(appearance, text="Mostrar números de línea",
                        variable=self.line_numbers_var).grid(row=2, column=0, columnspan=2, sticky="w")

        ocr = ttk.LabelFrame(frame, text="OCR y búsqueda", padding=10)
        ocr.pack(fill=tk.X, pady=5)
        ttk.Label(ocr, text="Idioma OCR por defecto:").grid(row=0, column=0, sticky="w")
        ttk.Combobox(ocr, textvariable=self.ocr_language_var, values=list(SUPPORTED_LANGUAGES),
                     state="readonly", width=6).grid(row=0, column=1, sticky="w", padx=5)
        ttk.Checkbutton(ocr, text="Guardar automáticamente después del OCR",
                        variable=self.auto_save_var).grid(row=1, column=0, columnspan=2, sticky="w")
        ttk.Checkbutton(ocr, text="Búsqueda distinguiendo mayúsculas",
                        variable=self.case_var).grid(row=2, column=0, columnspan=2, sticky="w")
        ttk.Label(ocr, text="Límite del historial de búsqueda:").grid(row=3, column=0, sticky="w")
        ttk.Spinbox(ocr, from_=0, to=100, textvariable=self.history_limit_var, width=5).grid(row=3, column=1, sticky="w", padx=5)
        ttk.Button(ocr, text="🧹 Borrar historial", command=self.clear_search_history).grid(row=3, column=2, padx=5)

        export = ttk.LabelFrame(frame, text="Exportación y backup", padding=10)
        export.pack(fill=tk.X, pady=5)
        ttk.Label(export, text="Formato por defecto:").grid(row=0, column=0, sticky="w")
        ttk.Combobox(export, textvariable=self.export_format_var, values=list(EXPORT_FORMATS),
                     state="readonly", width=6).grid(row=0, column=1, sticky="w", padx=5)
        ttk.Label(export, text="Carpeta de exportación:").grid(row=1, column=0, sticky="w", pady=3)
        ttk.Entry(export, textvariable=self.export_dir_var, width=45).grid(row=1, column=1, sticky="we", padx=5)
        ttk.Button(export, text="📁", width=3, command=self.select_export_dir).grid(row=1, column=2)
        ttk.Checkbutton(export, text="Backup automático", variable=self.auto_backup_var).grid(row=2, column=0, sticky="w")
        ttk.Label(export, text="Cada (días):").grid(row=3, column=0, sticky="w")
        ttk.Spinbox(export, from_=1, to=365, textvariable=self.backup_interval_var, width=5).grid(row=3, column=1, sticky="w", padx=5)
        last_backup = s.get_last_backup_date()
        ttk.Label(export, text=f"Último backup: {last_backup:%Y-%m-%d %H:%M}" if last_backup else "Último backup: nunca",
                  style="Secondary.TLabel").grid(row=4, column=0, columnspan=2, sticky="w")

        privacy = ttk.LabelFrame(frame, text="Privacidad", padding=10)
        privacy.pack(fill=tk.X, pady=5)
        ttk.Checkbutton(privacy, text="Enviar estadísticas de uso anónimas",
                        variable=self.analytics_var).pack(anchor="w")

        buttons = ttk.Frame(frame, style="TFrame")
        buttons.pack(fill=tk.X, pady=(10, 0))
        ttk.Button(buttons, text="💾 Guardar preferencias", command=self.save_preferences,
                   style="Success.TButton").pack(side=tk.LEFT, padx=2)
        ttk.Button(buttons, text="📤 Exportar ajustes", command=self.export_settings).pack(side=tk.LEFT, padx=2)
        ttk.Button(buttons, text="📥 Importar ajustes", command=self.import_settings).pack(side=tk.LEFT, padx=2)
        ttk.Button(buttons, text="♻️ Restablecer", command=self.reset_settings,
                   style="Danger.TButton").pack(side=tk.RIGHT, padx=2)

    def select_export_dir(self):
        folder = filedialog.askdirectory(title="Carpeta de exportación", initialdir=self.export_dir_var.get() or None)
        if folder:
            self.export_dir_var.set(folder)

    def save_preferences(self):
        s = self.settings
        try:
            s.set_font_size(self.font_size_var.get())
            s.set_search_history_limit(self.history_limit_var.get())
            s.set_backup_interval_days(self.backup_interval_var.get())
        except (tk.TclError, ValueError):
            messagebox.showwarning("Validación", "Revisa los valores numéricos")
            return

        s.set_default_ocr_language(self.ocr_language_var.get())
        s.set_auto_save_after_ocr(self.auto_save_var.get())
        s.set_show_line_numbers(self.line_numbers_var.get())
        s.set_default_export_format(self.export_format_var.get())
        if self.export_dir_var.get().strip():
            s.set_export_directory(self.export_dir_var.get().strip())
        s.set_case_sensitive_search(self.case_var.get())
        s.set_auto_backup(self.auto_backup_var.get())
        s.set_collect_analytics(self.analytics_var.get())

        theme = next((key for key, label in THEME_LABELS.items() if label == self.theme_var.get()), "system")
        self.app.set_status_message("💾 Preferencias guardadas")
        # Cambiar el tema reconstruye la pantalla actual
        self.app.theme_manager.set_theme(theme)

    def clear_search_history(self):
        self.settings.clear_search_history()
        self.app.set_status_message("🧹 Historial de búsqueda borrado")

    def export_settings(self):
        path = filedialog.asksaveasfilename(title="Exportar ajustes", defaultextension=".json",
                                            initialfile="lyrics_scanner_settings.json",
                                            filetypes=[("JSON", "*.json")])
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.settings.export_settings(), f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.exception("Error exportando ajustes")
            messagebox.showerror("Error", str(e))
            return
        messagebox.showinfo("Ajustes", f"Ajustes exportados a:\n{path}")

    def import_settings(self):
        path = filedialog.askopenfilename(title="Importar ajustes", filetypes=[("JSON", "*.json")])
        if not path:
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("el archivo no contiene un objeto JSON")
        except (OSError, ValueError) as e:
            logger.exception("Error importando ajustes")
            messagebox.showerror("Error", f"Archivo de ajustes inválido:\n{e}")
            return
        applied = self.settings.import_settings(data)
        messagebox.showinfo("Ajustes", f"Se importaron {applied} ajustes")
        self.app.theme_manager.initialize()
        self.app.show_admin()

    def reset_settings(self):
        if not messagebox.askyesno("Confirmar", "¿Restablecer todas las preferencias?"):
            return
        self.settings.reset_all()
        self.app.theme_manager.initialize()
        self.app.show_admin()

    # ===== HIMNARIOS =====
    def create_hymn_books_tab(self):
        frame = ttk.Frame(self.notebook, padding=15)
        self.notebook.add(frame, text="📖 Himnarios")

        toolbar = ttk.Frame(frame, style="TFrame")
        toolbar.pack(fill=tk.X, pady=(0, 10))
        ttk.Button(toolbar, text="➕ Nuevo", command=self.new_hymn_book, style="Success.TButton").pack(side=tk.LEFT, padx=2)
        ttk.Button(toolbar, text="✏️ Editar", command=self.edit_hymn_book, style="Primary.TButton").pack(side=tk.LEFT, padx=2)
        ttk.Button(toolbar, text="🗑️ Eliminar", command=self.delete_hymn_book, style="Danger.TButton").pack(side=tk.LEFT, padx=2)
        self.show_inactive_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(toolbar, text="Mostrar inactivos", variable=self.show_inactive_var,
                        command=self.load_hymn_books).pack(side=tk.RIGHT)

        columns = ('nombre', 'idioma', 'editorial', 'anio', 'himnos', 'estado')
        self.books_tree = ttk.Treeview(frame, columns=columns, show='headings', selectmode='browse', height=12)
        column_config = {
            'nombre': ('Nombre', 200),
            'idioma': ('Idioma', 90),
            'editorial': ('Editorial', 140),
            'anio': ('Año', 60),
            'himnos': ('Himnos', 60),
            'estado': ('Estado', 80),
        }
        for col, (text, width) in column_config.items():
            self.books_tree.heading(col, text=text)
            self.books_tree.column(col, width=width)
        self.books_tree.pack(fill=tk.BOTH, expand=True)
        self.books_tree.bind('<Double-1>', lambda e: self.edit_hymn_book())
        self.load_hymn_books()

    def load_hymn_books(self):
        try:
            counts = {b.id: b.hymn_count for b in self.db.get_hymn_books_with_counts()}
            books = self.db.get_all_hymn_books() if self.show_inactive_var.get() else self.db.get_hymn_books()
        except Exception as e:
            logger.exception("Error cargando himnarios")
            messagebox.showerror("Error", str(e))
            return
        self.books_tree.delete(*self.books_tree.get_children())
        for book in books:
            self.books_tree.insert('', tk.END, iid=str(book.id), values=(
                book.name, book.language, book.publisher or "", book.year or "",
                counts.get(book.id, len(self.db.get_hymns_by_book(book.id))),
                "Activo" if book.is_active else "Inactivo",
            ))

    def _selected_book_id(self):
        selection = self.books_tree.selection()
        return int(selection[0]) if selection else None

    def new_hymn_book(self):
        dialog = HymnBookDialog(self.parent)
        if dialog.result is None:
            return
        self.db.save_hymn_book(dialog.result)
        self.load_hymn_books()

    def edit_hymn_book(self):
        book_id = self._selected_book_id()
        if book_id is None:
            messagebox.showinfo("Información", "Selecciona un himnario")
            return
        book = self.db.get_hymn_book(book_id)
        if book is None:
            return
        dialog = HymnBookDialog(self.parent, book)
        if dialog.result is None:
            return
        self.db.save_hymn_book(dialog.result)
        self.load_hymn_books()

    def delete_hymn_book(self):
        book_id = self._selected_book_id()
        if book_id is None:
            return
        book = self.db.get_hymn_book(book_id)
        in_use = len(self.db.get_hymns_by_book(book_id))
        question = f"¿Eliminar el himnario '{book.name}'?"
        if in_use:
            question += f"\n\n{in_use} himnos lo usan: se desactivará en lugar de eliminarse."
        if not messagebox.askyesno("Confirmar", question):
            return
        if self.db.delete_hymn_book(book_id):
            message = "Himnario desactivado" if in_use else "Himnario eliminado"
            self.app.set_status_message(f"📖 {message}")
        self.load_hymn_books()

    # ===== BASE DE DATOS =====
    def create_database_tab(self):
        frame = ttk.Frame(self.notebook, padding=15)
        self.notebook.add(frame, text="🗄️ Base de Datos")

        info = ttk.LabelFrame(frame, text="Información", padding=10)
        info.pack(fill=tk.X, pady=5)
        self.db_info_label = ttk.Label(info, text="")
        self.db_info_label.pack(anchor="w")
        self.refresh_db_info()

        backup = ttk.LabelFrame(frame, text="Backup y restauración", padding=10)
        backup.pack(fill=tk.X, pady=5)
        for text, command, style in (
            ("💾 Crear backup", self.create_backup, "Success.TButton"),
            ("♻️ Restaurar backup", self.restore_backup, "Warning.TButton"),
            ("📤 Exportar JSON", self.export_database, "Primary.TButton"),
            ("📥 Importar JSON", self.import_database, "Primary.TButton"),
        ):
            ttk.Button(backup, text=text, command=command, style=style).pack(side=tk.LEFT, padx=2)

        maintenance = ttk.LabelFrame(frame, text="Mantenimiento", padding=10)
        maintenance.pack(fill=tk.X, pady=5)
        ttk.Button(maintenance, text="⚡ Optimizar", command=self.optimize_database).pack(side=tk.LEFT, padx=2)
        ttk.Button(maintenance, text="🧹 Compactar (VACUUM)", command=self.vacuum_database).pack(side=tk.LEFT, padx=2)

    def refresh_db_info(self):
        db = self.db
        self.db_info_label.config(text=(
            f"Archivo: {db.db_path}\n"
            f"Tamaño: {format_bytes(db.get_database_size())}\n"
            f"Himnos: {db.get_total_hymns_count()} • Himnarios: {db.get_total_books_count()} • "
            f"Colecciones: {db.get_total_collections_count()}"
        ))

    def create_backup(self):
        path = filedialog.asksaveasfilename(
            title="Crear backup",
            initialdir=str(self.app.config.backup_dir),
            initialfile=f"lyrics_scanner_{datetime.now():%Y%m%d_%H%M%S}.db3",
            defaultextension=".db3",
            filetypes=[("Base de datos", "*.db3"), ("Todos los archivos", "*.*")],
        )
        if not path:
            return
        if self.app.export_service.create_backup(path):
            messagebox.showinfo("Backup", f"Backup creado en:\n{path}")
        else:
            messagebox.showerror("Backup", "No se pudo crear el backup")

    def restore_backup(self):
        path = filedialog.askopenfilename(title="Restaurar backup", initialdir=str(self.app.config.backup_dir),
                                          filetypes=[("Base de datos", "*.db3"), ("Todos los archivos", "*.*")])
        if not path:
            return
        if not messagebox.askyesno("Confirmar", "La base de datos actual será reemplazada. ¿Continuar?"):
            return
        if self.app.export_service.restore_backup(path):
            messagebox.showinfo("Restaurar", "Base de datos restaurada")
            self.app.update_status()
            self.app.show_admin()
        else:
            messagebox.showerror("Restaurar", "No se pudo restaurar el backup")

    def export_database(self):
        path = filedialog.asksaveasfilename(title="Exportar base de datos", defaultextension=".json",
                                            initialfile=f"lyrics_scanner_{datetime.now():%Y%m%d}.json",
                                            filetypes=[("JSON", "*.json")])
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(self.db.export_database())
        except OSError as e:
            logger.exception("Error exportando base de datos")
            messagebox.showerror("Error", str(e))
            return
        messagebox.showinfo("Exportar", f"Base de datos exportada a:\n{path}")

    def import_database(self):
        path = filedialog.askopenfilename(title="Importar base de datos", filetypes=[("JSON", "*.json")])
        if not path:
            return
        if self.db.import_database(path):
            messagebox.showinfo("Importar", "Datos importados correctamente")
            self.app.update_status()
            self.refresh_db_info()
            self.load_hymn_books()
        else:
            messagebox.showerror("Importar", "El archivo no es una exportación válida")

    def optimize_database(self):
        try:
            self.db.optimize_database()
        except Exception as e:
            logger.exception("Error optimizando base de datos")
            messagebox.showerror("Error", str(e))
            return
        messagebox.showinfo("Mantenimiento", "Base de datos optimizada")

    def vacuum_database(self):
        before = self.db.get_database_size()
        try:
            self.db.vacuum_database()
        except Exception as e:
            logger.exception("Error compactando base de datos")
            messagebox.showerror("Error", str(e))
            return
        after = self.db.get_database_size()
        self.refresh_db_info()
        messagebox.showinfo("Mantenimiento", f"Compactada: {format_bytes(before)} → {format_bytes(after)}")

    # ===== ACERCA DE =====
    def create_about_tab(self):
        frame = ttk.Frame(self.notebook, padding=20)
        self.notebook.add(frame, text="ℹ️ Acerca de")

        ttk.Label(frame, text="🎵 Lyrics Scanner", style="Header.TLabel").pack(anchor="w")
        ttk.Label(frame, text=f"Versión {self.app.config.version}", style="Secondary.TLabel").pack(anchor="w")
        ttk.Label(frame, text=(
            "Escanea letras de himnos impresos con OCR (Tesseract), organízalas en\n"
            "himnarios y colecciones, y expórtalas a TXT, DOCX, PDF, JSON o CSV."
        )).pack(anchor="w", pady=10)

        tesseract = "disponible" if self.app.ocr_engine.is_available() else "no encontrado"
        ttk.Label(frame, text=f"Tesseract: {tesseract}", style="Secondary.TLabel").pack(anchor="w")
        ttk.Label(frame, text=f"Datos: {self.app.config.data_dir}", style="Secondary.TLabel").pack(anchor="w")
        ttk.Label(frame, text=f"Logs: {self.app.config.log_dir}", style="Secondary.TLabel").pack(anchor="w")
