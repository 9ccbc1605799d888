import logging
import tkinter as tk
from tkinter import ttk, scrolledtext, messagebox, filedialog

from core.export_service import EXPORT_FORMATS, FILE_EXTENSIONS
from core.models import Hymn, DEFAULT_LANGUAGE
from core.ocr_engine import LANGUAGE_NAMES
from utils.helpers import split_tags

logger = logging.getLogger(__name__)

NO_BOOK = "(Sin himnario)"
MAX_TITLE = 200
MAX_LYRICS = 50000
MAX_TAGS = 500
MAX_NOTES = 1000


class Editor:
    """Crear o editar un himno"""

    def __init__(self, parent, app, hymn_id=None, draft=None):
        self.parent = parent
        self.app = app
        self.db = app.db
        self.hymn = None
        self.book_options = {}
        self.loading = False
        self.has_changes = False

        try:
            if hymn_id:
                self.hymn = self.db.get_hymn(hymn_id)
                if self.hymn is None:
                    messagebox.showerror("Error", "El himno ya no existe")
            if self.hymn is None:
                self.hymn = draft or Hymn()
            self.setup_ui()
            self.load_hymn()
        except Exception as e:
            logger.exception("Error inicializando editor")
            self.setup_basic_ui(e)

    @property
    def is_new(self):
        return not self.hymn.id

    def setup_basic_ui(self, error):
        """Configurar UI básica en caso de error"""
        for widget in self.parent.winfo_children():
            widget.destroy()
        error_frame = ttk.Frame(self.parent, style="TFrame")
        error_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        ttk.Label(error_frame, text="❌ Error cargando el editor", style="Header.TLabel").pack(pady=20)
        ttk.Label(error_frame, text=str(error), style="Secondary.TLabel").pack(pady=10)
        ttk.Button(error_frame, text="🏠 Volver al inicio", command=self.app.show_dashboard,
                   style="Primary.TButton").pack(pady=10)

    def setup_ui(self):
        self.main_frame = ttk.Frame(self.parent, style="TFrame")
        self.main_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        header = ttk.Frame(self.main_frame, style="TFrame")
        header.pack(fill=tk.X, pady=(0, 10))
        self.title_label = ttk.Label(header, text="", style="Header.TLabel")
        self.title_label.pack(side=tk.LEFT)
        self.counts_label = ttk.Label(header, text="", style="Secondary.TLabel")
        self.counts_label.pack(side=tk.RIGHT)

        body = ttk.PanedWindow(self.main_frame, orient=tk.HORIZONTAL)
        body.pack(fill=tk.BOTH, expand=True)
        left = ttk.Frame(body)
        body.add(left, weight=3)
        right = ttk.Frame(body)
        body.add(right, weight=1)

        self.create_fields_panel(left)
        self.create_lyrics_panel(left)
        self.create_side_panel(right)
        self.create_action_buttons()

    def create_fields_panel(self, parent):
        fields = ttk.LabelFrame(parent, text="📋 Datos del himno", padding=10)
        fields.pack(fill=tk.X)

        self.title_var = tk.StringVar()
        self.number_var = tk.StringVar()
        self.language_var = tk.StringVar()
        self.book_var = tk.StringVar(value=NO_BOOK)
        self.tags_var = tk.StringVar()
        self.favorite_var = tk.BooleanVar()

        ttk.Label(fields, text="Título:").grid(row=0, column=0, sticky="w", pady=2)
        ttk.Entry(fields, textvariable=self.title_var, width=50).grid(row=0, column=1, columnspan=3, sticky="we", pady=2)

        ttk.Label(fields, text="Número:").grid(row=1, column=0, sticky="w", pady=2)
        ttk.Entry(fields, textvariable=self.number_var, width=10).grid(row=1, column=1, sticky="w", pady=2)

        ttk.Label(fields, text="Idioma:").grid(row=1, column=2, sticky="e", padx=(10, 5))
        languages = sorted(set(LANGUAGE_NAMES.values()) | set(self.db.get_available_languages()))
        ttk.Combobox(fields, textvariable=self.language_var, values=languages, width=15).grid(row=1, column=3, sticky="w")

        ttk.Label(fields, text="Himnario:").grid(row=2, column=0, sticky="w", pady=2)
        books = self.db.get_hymn_books()
        self.book_options = {b.name: b.id for b in books}
        # Conservar el himnario actual aunque esté desactivado
        if self.hymn.hymn_book_id and self.hymn.hymn_book_id not in self.book_options.values():
            current = self.db.get_hymn_book(self.hymn.hymn_book_id)
            if current:
                self.book_options[f"{current.name} (inactivo)"] = current.id
        ttk.Combobox(fields, textvariable=self.book_var, values=[NO_BOOK] + list(self.book_options),
                     state="readonly", width=30).grid(row=2, column=1, columnspan=3, sticky="w", pady=2)

        ttk.Label(fields, text="Etiquetas:").grid(row=3, column=0, sticky="w", pady=2)
        ttk.Entry(fields, textvariable=self.tags_var, width=50).grid(row=3, column=1, columnspan=3, sticky="we", pady=2)

        ttk.Checkbutton(fields, text="⭐ Favorito", variable=self.favorite_var).grid(row=4, column=1, sticky="w", pady=2)
        fields.columnconfigure(1, weight=1)

        for var in (self.title_var, self.number_var, self.language_var, self.book_var, self.tags_var, self.favorite_var):
            var.trace_add("write", self.mark_changed)

    def create_lyrics_panel(self, parent):
        lyrics_frame = ttk.LabelFrame(parent, text="🎵 Letra", padding=10)
        lyrics_frame.pack(fill=tk.BOTH, expand=True, pady=(10, 0))

        font_size = int(self.app.settings.get_font_size())
        colors = self.app.colors
        self.lyrics_text = scrolledtext.ScrolledText(lyrics_frame, wrap=tk.WORD, undo=True,
                                                     font=('Arial', max(9, font_size - 4)),
                                                     bg=colors.get('surface'), fg=colors.get('text'),
                                                     insertbackground=colors.get('text'))
        self.lyrics_text.pack(fill=tk.BOTH, expand=True)
        self.lyrics_text.bind('<<Modified>>', self.on_lyrics_modified)

        ttk.Label(parent, text="Notas:").pack(anchor="w", pady=(8, 0))
        self.notes_text = tk.Text(parent, height=4, wrap=tk.WORD,
                                  bg=colors.get('surface'), fg=colors.get('text'),
                                  insertbackground=colors.get('text'))
        self.notes_text.pack(fill=tk.X)
        self.notes_text.bind('<<Modified>>', self.on_notes_modified)

    def create_side_panel(self, parent):
        """Colecciones del himno"""
        collections_frame = ttk.LabelFrame(parent, text="📚 Colecciones", padding=10)
        collections_frame.pack(fill=tk.BOTH, expand=True)

        self.collections_list = tk.Listbox(collections_frame, height=8, activestyle="none",
                                           bg=self.app.colors.get('surface'), fg=self.app.colors.get('text'))
        self.collections_list.pack(fill=tk.BOTH, expand=True)

        add_frame = ttk.Frame(collections_frame, style="TFrame")
        add_frame.pack(fill=tk.X, pady=(5, 0))
        self.add_collection_var = tk.StringVar()
        self.add_collection_combo = ttk.Combobox(add_frame, textvariable=self.add_collection_var,
                                                 state="readonly", width=18)
        self.add_collection_combo.pack(side=tk.LEFT, fill=tk.X, expand=True)
        ttk.Button(add_frame, text="➕", width=3, command=self.add_to_collection).pack(side=tk.LEFT, padx=2)
        ttk.Button(collections_frame, text="➖ Quitar de la colección",
                   command=self.remove_from_collection).pack(fill=tk.X, pady=(5, 0))

    def create_action_buttons(self):
        buttons = ttk.Frame(self.main_frame, style="TFrame")
        buttons.pack(fill=tk.X, pady=(10, 0))

        ttk.Button(buttons, text="💾 Guardar", command=self.save_hymn, style="Success.TButton").pack(side=tk.LEFT, padx=2)
        ttk.Button(buttons, text="↩️ Cancelar", command=self.cancel).pack(side=tk.LEFT, padx=2)
        self.export_button = ttk.Button(buttons, text="📤 Exportar", command=self.export_hymn, style="Primary.TButton")
        self.export_button.pack(side=tk.LEFT, padx=2)
        self.delete_button = ttk.Button(buttons, text="🗑️ Eliminar", command=self.delete_hymn, style="Danger.TButton")
        self.delete_button.pack(side=tk.RIGHT, padx=2)

    # ===== CARGA =====
    def load_hymn(self):
        self.loading = True
        hymn = self.hymn
        self.title_var.set(hymn.title)
        self.number_var.set(hymn.number or "")
        self.language_var.set(hymn.language or DEFAULT_LANGUAGE)
        book_name = next((name for name, bid in self.book_options.items() if bid == hymn.hymn_book_id), NO_BOOK)
        self.book_var.set(book_name)
        self.tags_var.set(hymn.tags or "")
        self.favorite_var.set(hymn.is_favorite)
        self.lyrics_text.delete('1.0', tk.END)
        self.lyrics_text.insert('1.0', hymn.lyrics)
        self.lyrics_text.edit_modified(False)
        self.notes_text.delete('1.0', tk.END)
        self.notes_text.insert('1.0', hymn.notes or "")
        self.notes_text.edit_modified(False)
        self.loading = False
        self.has_changes = False

        self.title_label.config(text="➕ Nuevo himno" if self.is_new else f"✏️ {hymn.display_title}")
        state = ["disabled"] if self.is_new else ["!disabled"]
        self.delete_button.state(state)
        self.export_button.state(state)
        self.update_counts()
        self.load_collections()

    def load_collections(self):
        self.collections_list.delete(0, tk.END)
        self.hymn_collections = []
        all_collections = self.db.get_collections()
        if not self.is_new:
            self.hymn_collections = self.db.get_collections_for_hymn(self.hymn.id)
        member_ids = {c.id for c in self.hymn_collections}
        for collection in self.hymn_collections:
            self.collections_list.insert(tk.END, collection.name)
        self.available_collections = {c.name: c.id for c in all_collections if c.id not in member_ids}
        self.add_collection_combo['values'] = list(self.available_collections)
        self.add_collection_var.set("")

    # ===== CAMBIOS =====
    def mark_changed(self, *_args):
        if not self.loading:
            self.has_changes = True

    def on_lyrics_modified(self, event=None):
        if self.lyrics_text.edit_modified():
            self.mark_changed()
            self.update_counts()
            self.lyrics_text.edit_modified(False)

    def on_notes_modified(self, event=None):
        if self.notes_text.edit_modified():
            self.mark_changed()
            self.notes_text.edit_modified(False)

    def update_counts(self):
        draft = Hymn(lyrics=self.lyrics_text.get('1.0', 'end-1c'))
        self.counts_label.config(text=f"{draft.word_count} palabras • {draft.line_count} líneas")

    def collect_form(self):
        """Pasar los valores del formulario al himno; ValueError si no son válidos"""
        title = self.title_var.get().strip()
        lyrics = self.lyrics_text.get('1.0', 'end-1c').strip()
        tags = self.tags_var.get().strip()
        notes = self.notes_text.get('1.0', 'end-1c').strip()

        if not title:
            raise ValueError("El título es obligatorio")
        if len(title) > MAX_TITLE:
            raise ValueError(f"El título no puede superar {MAX_TITLE} caracteres")
        if len(lyrics) > MAX_LYRICS:
            raise ValueError(f"La letra no puede superar {MAX_LYRICS} caracteres")
        if len(tags) > MAX_TAGS:
            raise ValueError(f"Las etiquetas no pueden superar {MAX_TAGS} caracteres")
        if len(notes) > MAX_NOTES:
            raise ValueError(f"Las notas no pueden superar {MAX_NOTES} caracteres")

        self.hymn.title = title
        self.hymn.number = self.number_var.get().strip() or None
        self.hymn.language = self.language_var.get().strip() or DEFAULT_LANGUAGE
        self.hymn.hymn_book_id = self.book_options.get(self.book_var.get())
        self.hymn.tag_list = split_tags(tags)
        self.hymn.tags = self.hymn.tags or None
        self.hymn.notes = notes or None
        self.hymn.lyrics = lyrics
        self.hymn.is_favorite = self.favorite_var.get()

    # ===== ACCIONES =====
    def save_hymn(self):
        try:
            self.collect_form()
        except ValueError as e:
            messagebox.showwarning("Validación", str(e))
            return False

        try:
            was_new = self.is_new
            self.db.save_hymn(self.hymn)
        except Exception as e:
            logger.exception("Error guardando himno")
            messagebox.showerror("Error", f"No se pudo guardar el himno:\n{e}")
            return False

        self.app.set_status_message(f"💾 Himno guardado: {self.hymn.title}")
        self.app.update_status()
        if was_new:
            self.app.show_editor(hymn_id=self.hymn.id)
        else:
            self.load_hymn()
        return True

    def cancel(self):
        if self.has_changes and not messagebox.askyesno("Cambios sin guardar",
                                                        "Hay cambios sin guardar. ¿Descartarlos?"):
            return
        if self.is_new:
            self.app.show_dashboard()
        else:
            self.app.show_hymn(self.hymn.id)

    def delete_hymn(self):
        if self.is_new:
            return
        if not messagebox.askyesno("Confirmar", f"¿Eliminar '{self.hymn.title}'?"):
            return
        try:
            self.db.delete_hymn(self.hymn.id)
        except Exception as e:
            logger.exception("Error eliminando himno")
            messagebox.showerror("Error", str(e))
            return
        self.app.show_dashboard()

    def add_to_collection(self):
        name = self.add_collection_var.get()
        if not name:
            return
        if self.is_new:
            messagebox.showinfo("Información", "Guarda el himno antes de agregarlo a una colección")
            return
        collection_id = self.available_collections.get(name)
        if collection_id and self.db.add_hymn_to_collection(self.hymn.id, collection_id):
            self.app.set_status_message(f"📚 Agregado a {name}")
        self.load_collections()

    def remove_from_collection(self):
        selection = self.collections_list.curselection()
        if not selection or self.is_new:
            return
        collection = self.hymn_collections[selection[0]]
        if self.db.remove_hymn_from_collection(self.hymn.id, collection.id):
            self.app.set_status_message(f"📚 Quitado de {collection.name}")
        self.load_collections()

    def export_hymn(self):
        if self.is_new:
            return
        if self.has_changes and messagebox.askyesno("Cambios sin guardar", "¿Guardar antes de exportar?"):
            if not self.save_hymn():
                return
        fmt = self.app.settings.get_default_export_format()
        extension = FILE_EXTENSIONS[fmt]
        path = filedialog.asksaveasfilename(
            title="Exportar himno",
            initialdir=self.app.export_service.get_default_export_directory(),
            initialfile=self.app.export_service.default_file_name(self.hymn, fmt),
            defaultextension=extension,
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
