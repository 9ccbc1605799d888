import logging
import tkinter as tk
from tkinter import ttk, messagebox, filedialog

from core.export_service import EXPORT_FORMATS, FILE_EXTENSIONS

logger = logging.getLogger(__name__)


class HymnView:
    """Vista de lectura de un himno"""

    def __init__(self, parent, app, hymn_id):
        self.parent = parent
        self.app = app
        self.db = app.db
        self.settings = app.settings
        self.hymn = self.db.get_hymn(hymn_id)

        if self.hymn is None:
            messagebox.showerror("Error", "El himno no existe")
            self.parent.after(0, self.app.show_dashboard)
            return

        self.db.update_view_count(hymn_id)
        self.hymn.view_count += 1
        self.setup_ui()

    def setup_ui(self):
        hymn = self.hymn
        self.main_frame = ttk.Frame(self.parent, style="TFrame")
        self.main_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        header = ttk.Frame(self.main_frame, style="TFrame")
        header.pack(fill=tk.X)
        star = "⭐ " if hymn.is_favorite else ""
        ttk.Label(header, text=f"{star}{hymn.display_title}", style="Header.TLabel").pack(side=tk.LEFT)

        ttk.Label(self.main_frame, text=self.build_subtitle(), style="Secondary.TLabel").pack(anchor="w", pady=(2, 10))

        self.create_toolbar()
        self.create_lyrics_panel()

    def build_subtitle(self):
        hymn = self.hymn
        parts = [hymn.language]
        if hymn.hymn_book_id:
            book = self.db.get_hymn_book(hymn.hymn_book_id)
            if book:
                parts.append(book.display_name)
        if hymn.tags:
            parts.append(f"🏷️ {hymn.tags}")
        parts.append(f"👁️ {hymn.view_count} vistas")
        collections = self.db.get_collections_for_hymn(hymn.id)
        if collections:
            parts.append("📚 " + ", ".join(c.name for c in collections))
        return " • ".join(parts)

    def create_toolbar(self):
        toolbar = ttk.Frame(self.main_frame, style="TFrame")
        toolbar.pack(fill=tk.X, pady=(0, 10))

        actions = [
            ("⬅️ Volver", self.app.show_dashboard, "TButton"),
            ("✏️ Editar", lambda: self.app.show_editor(hymn_id=self.hymn.id), "Primary.TButton"),
            ("⭐ Favorito", self.toggle_favorite, "Warning.TButton"),
            ("🔗 Compartir", self.share_hymn, "Primary.TButton"),
            ("✉️ Email", self.email_hymn, "Primary.TButton"),
            ("📤 Exportar", self.export_hymn, "Success.TButton"),
        ]
        for text, command, style in actions:
            ttk.Button(toolbar, text=text, command=command, style=style).pack(side=tk.LEFT, padx=2)

        ttk.Label(toolbar, text="Tamaño:").pack(side=tk.RIGHT, padx=(10, 2))
        self.font_size_var = tk.IntVar(value=int(self.settings.get_font_size()))
        ttk.Spinbox(toolbar, from_=8, to=48, width=4, textvariable=self.font_size_var,
                    command=self.on_font_size_change).pack(side=tk.RIGHT)

        self.line_numbers_var = tk.BooleanVar(value=self.settings.get_show_line_numbers())
        ttk.Checkbutton(toolbar, text="Números de línea", variable=self.line_numbers_var,
                        command=self.on_line_numbers_toggle).pack(side=tk.RIGHT, padx=10)

    def create_lyrics_panel(self):
        frame = ttk.Frame(self.main_frame, style="TFrame")
        frame.pack(fill=tk.BOTH, expand=True)

        colors = self.app.colors
        self.lyrics_text = tk.Text(frame, wrap=tk.WORD, relief="flat", padx=15, pady=10,
                                   bg=colors.get('surface'), fg=colors.get('text'))
        scrollbar = ttk.Scrollbar(frame, command=self.lyrics_text.yview)
        self.lyrics_text.configure(yscrollcommand=scrollbar.set)
        self.lyrics_text.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        scrollbar.pack(side=tk.RIGHT, fill=tk.Y)
        self.lyrics_text.tag_configure("line_number", foreground=colors.get('muted'))
        self.render_lyrics()

    def render_lyrics(self):
        """Mostrar la letra con el tamaño de fuente y los números de línea elegidos"""
        self.lyrics_text.config(state=tk.NORMAL, font=('Georgia', self.font_size_var.get()))
        self.lyrics_text.delete('1.0', tk.END)

        lyrics = self.hymn.lyrics or "Sin letra disponible"
        if self.line_numbers_var.get():
            lines = lyrics.split("\n")
            width = len(str(len(lines)))
            for i, line in enumerate(lines, start=1):
                self.lyrics_text.insert(tk.END, f"{i:>{width}}  ", "line_number")
                self.lyrics_text.insert(tk.END, line + "\n")
        else:
            self.lyrics_text.insert('1.0', lyrics)
        self.lyrics_text.config(state=tk.DISABLED)

    def on_font_size_change(self):
        try:
            self.settings.set_font_size(self.font_size_var.get())
        except (tk.TclError, ValueError):
            return
        self.render_lyrics()

    def on_line_numbers_toggle(self):
        self.settings.set_show_line_numbers(self.line_numbers_var.get())
        self.render_lyrics()

    def toggle_favorite(self):
        if self.db.toggle_favorite(self.hymn.id):
            self.app.show_hymn(self.hymn.id)

    def share_hymn(self):
        fmt = self.settings.get_default_export_format()
        path = self.app.export_service.share_hymn(self.hymn, fmt)
        if not path:
            messagebox.showerror("Compartir", "No se pudo preparar el archivo para compartir")
            return
        self.app.export_service.open_file(path)
        self.app.set_status_message(f"🔗 Archivo listo para compartir: {path}", clear_after_ms=8000)

    def email_hymn(self):
        if not self.app.export_service.open_email(self.hymn):
            messagebox.showwarning("Email", "No se encontró un cliente de correo")

    def export_hymn(self):
        fmt = self.settings.get_default_export_format()
        path = filedialog.asksaveasfilename(
            title="Exportar himno",
            initialdir=self.app.export_service.get_default_export_directory(),
            initialfile=self.app.export_service.default_file_name(self.hymn, fmt),
            defaultextension=FILE_EXTENSIONS[fmt],
            filetypes=[(f, f"*{FILE_EXTENSIONS[f]}") for f in EXPORT_FORMATS],
        )
        if not path:
            return
        chosen = next((f for f, ext in FILE_EXTENSIONS.items() if path.lower().endswith(ext)), fmt)
        result = self.app.export_service.export_hymn(self.hymn, chosen, path)
        if result['success']:
            messagebox.showinfo("Exportación", f"Himno exportado a:\n{path}")
        else:
            messagebox.showerror("Exportación", f"Error exportando:\n{result['error']}")
