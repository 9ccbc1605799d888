import logging
import tkinter as tk
from tkinter import ttk, messagebox, filedialog

from core.filters import ALL_OPTION, Debouncer, filter_hymns, sort_hymns
from core.export_service import FILE_EXTENSIONS

logger = logging.getLogger(__name__)

SEARCH_DELAY_MS = 500

SORT_OPTIONS = {
    "Título": "title",
    "Número": "number",
    "Creación": "created",
    "Modificación": "modified",
    "Vistas": "views",
}


class Dashboard:
    """Pantalla de inicio: búsqueda, filtros y lista de himnos"""

    def __init__(self, parent, app):
        self.parent = parent
        self.app = app
        self.db = app.db
        self.settings = app.settings
        self.hymns = []
        self.filtered_hymns = []
        self.ascending = True
        self.book_options = {}
        self.collection_options = {}

        self.setup_ui()
        self.search_debouncer = Debouncer(self.parent, SEARCH_DELAY_MS, self.perform_search)
        self.load_filter_options()
        self.perform_search()

    def setup_ui(self):
        """Configurar interfaz de inicio"""
        self.main_frame = ttk.Frame(self.parent, style="TFrame")
        self.main_frame.pack(fill=tk.BOTH, expand=True)

        self.create_header()
        self.create_filters_panel()

        main_paned = ttk.PanedWindow(self.main_frame, orient=tk.HORIZONTAL)
        main_paned.pack(fill=tk.BOTH, expand=True, pady=10)

        left_frame = ttk.Frame(main_paned)
        main_paned.add(left_frame, weight=3)
        right_frame = ttk.Frame(main_paned)
        main_paned.add(right_frame, weight=1)

        self.create_hymns_list(left_frame)
        self.create_side_lists(right_frame)
        self.create_toolbar()

    def create_header(self):
        header_frame = ttk.Frame(self.main_frame, style="TFrame")
        header_frame.pack(fill=tk.X, pady=(0, 10))

        ttk.Label(header_frame, text="🏠 Mis Himnos", style="Header.TLabel").pack(side=tk.LEFT)

        self.totals_label = ttk.Label(header_frame, text="", style="Secondary.TLabel")
        self.totals_label.pack(side=tk.RIGHT)

    def create_filters_panel(self):
        """Búsqueda con historial y filtros"""
        filters_frame = ttk.LabelFrame(self.main_frame, text="🔍 Búsqueda y Filtros", padding=10)
        filters_frame.pack(fill=tk.X)

        row1 = ttk.Frame(filters_frame, style="TFrame")
        row1.pack(fill=tk.X, pady=3)

        ttk.Label(row1, text="Buscar:").pack(side=tk.LEFT, padx=5)
        self.search_var = tk.StringVar()
        self.search_combo = ttk.Combobox(row1, textvariable=self.search_var, width=40,
                                         values=self.settings.get_search_history())
        self.search_combo.pack(side=tk.LEFT, padx=5)
        self.search_combo.bind('<KeyRelease>', self.on_search_change)
        self.search_combo.bind('<<ComboboxSelected>>', lambda e: self.perform_search())
        self.search_combo.bind('<Return>', self.on_search_submit)

        ttk.Button(row1, text="✖", width=3, command=self.clear_search).pack(side=tk.LEFT)

        self.case_var = tk.BooleanVar(value=self.settings.get_case_sensitive_search())
        ttk.Checkbutton(row1, text="Distinguir mayúsculas", variable=self.case_var,
                        command=self.on_case_toggle).pack(side=tk.LEFT, padx=10)

        row2 = ttk.Frame(filters_frame, style="TFrame")
        row2.pack(fill=tk.X, pady=3)

        ttk.Label(row2, text="Himnario:").pack(side=tk.LEFT, padx=5)
        self.book_var = tk.StringVar(value=ALL_OPTION)
        self.book_combo = ttk.Combobox(row2, textvariable=self.book_var, state="readonly", width=24)
        self.book_combo.pack(side=tk.LEFT, padx=5)
        self.book_combo.bind('<<ComboboxSelected>>', self.apply_filters)

        ttk.Label(row2, text="Idioma:").pack(side=tk.LEFT, padx=5)
        self.language_var = tk.StringVar(value=ALL_OPTION)
        self.language_combo = ttk.Combobox(row2, textvariable=self.language_var, state="readonly", width=12)
        self.language_combo.pack(side=tk.LEFT, padx=5)
        self.language_combo.bind('<<ComboboxSelected>>', self.apply_filters)

        ttk.Label(row2, text="Colección:").pack(side=tk.LEFT, padx=5)
        self.collection_var = tk.StringVar(value=ALL_OPTION)
        self.collection_combo = ttk.Combobox(row2, textvariable=self.collection_var, state="readonly", width=18)
        self.collection_combo.pack(side=tk.LEFT, padx=5)
        self.collection_combo.bind('<<ComboboxSelected>>', self.apply_filters)

        self.favorites_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(row2, text="⭐ Solo favoritos", variable=self.favorites_var,
                        command=self.apply_filters).pack(side=tk.LEFT, padx=10)

        ttk.Label(row2, text="Ordenar:").pack(side=tk.LEFT, padx=5)
        self.sort_var = tk.StringVar(value="Título")
        sort_combo = ttk.Combobox(row2, textvariable=self.sort_var, values=list(SORT_OPTIONS),
                                  state="readonly", width=12)
        sort_combo.pack(side=tk.LEFT)
        sort_combo.bind('<<ComboboxSelected>>', self.apply_filters)

        self.order_button = ttk.Button(row2, text="⬆", width=3, command=self.toggle_order)
        self.order_button.pack(side=tk.LEFT, padx=3)

        ttk.Button(row2, text="🗑️ Limpiar", command=self.clear_filters).pack(side=tk.RIGHT)

    def create_hymns_list(self, parent):
        list_frame = ttk.LabelFrame(parent, text="📝 Himnos", padding=10)
        list_frame.pack(fill=tk.BOTH, expand=True)

        columns = ('fav', 'numero', 'titulo', 'idioma', 'etiquetas', 'vistas')
        self.hymns_tree = ttk.Treeview(list_frame, columns=columns, show='headings',
                                       selectmode='extended', height=18)

        column_config = {
            'fav': ('⭐', 30),
            'numero': ('Nº', 50),
            'titulo': ('Título', 260),
            'idioma': ('Idioma', 90),
            'etiquetas': ('Etiquetas', 160),
            'vistas': ('Vistas', 60),
        }
        for col, (text, width) in column_config.items():
            self.hymns_tree.heading(col, text=text)
            self.hymns_tree.column(col, width=width, anchor="w")

        v_scrollbar = ttk.Scrollbar(list_frame, orient=tk.VERTICAL, command=self.hymns_tree.yview)
        self.hymns_tree.configure(yscrollcommand=v_scrollbar.set)
        self.hymns_tree.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        v_scrollbar.pack(side=tk.RIGHT, fill=tk.Y)

        self.hymns_tree.bind('<Double-1>', lambda e: self.open_selected())
        self.hymns_tree.bind('<Return>', lambda e: self.open_selected())
        self.hymns_tree.bind('<Delete>', lambda e: self.delete_selected())

    def create_side_lists(self, parent):
        """Listas de recientes y favoritos"""
        recent_frame = ttk.LabelFrame(parent, text="🕒 Recientes", padding=5)
        recent_frame.pack(fill=tk.BOTH, expand=True)
        self.recent_list = tk.Listbox(recent_frame, height=8, activestyle="none")
        self.recent_list.pack(fill=tk.BOTH, expand=True)
        self.recent_list.bind('<Double-1>', lambda e: self._open_from_list(self.recent_list, self.recent_ids))

        favorites_frame = ttk.LabelFrame(parent, text="⭐ Favoritos", padding=5)
        favorites_frame.pack(fill=tk.BOTH, expand=True, pady=(10, 0))
        self.favorites_list = tk.Listbox(favorites_frame, height=8, activestyle="none")
        self.favorites_list.pack(fill=tk.BOTH, expand=True)
        self.favorites_list.bind('<Double-1>', lambda e: self._open_from_list(self.favorites_list, self.favorite_ids))

        for listbox in (self.recent_list, self.favorites_list):
            listbox.configure(bg=self.app.colors.get('surface'), fg=self.app.colors.get('text'),
                              selectbackground=self.app.colors.get('secondary'))

        self.recent_ids = []
        self.favorite_ids = []

    def create_toolbar(self):
        toolbar_frame = ttk.Frame(self.main_frame, style="TFrame")
        toolbar_frame.pack(fill=tk.X)

        actions = [
            ("👁️ Abrir", self.open_selected, "Primary.TButton"),
            ("✏️ Editar", self.edit_selected, "Primary.TButton"),
            ("➕ Nuevo", lambda: self.app.show_editor(), "Success.TButton"),
            ("⭐ Favorito", self.toggle_favorite_selected, "Warning.TButton"),
            ("📤 Exportar", self.export_selected, "Success.TButton"),
            ("🗑️ Eliminar", self.delete_selected, "Danger.TButton"),
        ]
        for text, command, style in actions:
            ttk.Button(toolbar_frame, text=text, command=command, style=style).pack(side=tk.LEFT, padx=2)

    # ===== DATOS =====
    def load_filter_options(self):
        try:
            books = self.db.get_hymn_books()
            self.book_options = {b.name: b.id for b in books}
            self.book_combo['values'] = [ALL_OPTION] + list(self.book_options)

            self.language_combo['values'] = [ALL_OPTION] + self.db.get_available_languages()

            collections = self.db.get_collections()
            self.collection_options = {c.name: c.id for c in collections}
            self.collection_combo['values'] = [ALL_OPTION] + list(self.collection_options)

            self.load_side_lists()
        except Exception as e:
            logger.exception("Error cargando filtros")
            messagebox.showerror("Error", f"No se pudieron cargar los filtros:\n{e}")

    def load_side_lists(self):
        recent = self.db.get_recent_hymns(10)
        favorites = self.db.get_favorite_hymns()

        self.recent_list.delete(0, tk.END)
        self.recent_ids = [h.id for h in recent]
        for hymn in recent:
            self.recent_list.insert(tk.END, hymn.display_title)

        self.favorites_list.delete(0, tk.END)
        self.favorite_ids = [h.id for h in favorites]
        for hymn in favorites:
            self.favorites_list.insert(tk.END, hymn.display_title)

    def on_search_change(self, event=None):
        self.search_debouncer.trigger()

    def on_search_submit(self, event=None):
        self.search_debouncer.cancel()
        self.settings.add_search_history(self.search_var.get())
        self.search_combo['values'] = self.settings.get_search_history()
        self.perform_search()

    def on_case_toggle(self):
        self.settings.set_case_sensitive_search(self.case_var.get())
        self.perform_search()

    def clear_search(self):
        self.search_var.set("")
        self.perform_search()

    def perform_search(self):
        """Buscar en la base y aplicar los filtros en memoria"""
        try:
            term = self.search_var.get()
            self.hymns = self.db.search_hymns(term, self.case_var.get())
            if term.strip() and self.hymns:
                self.settings.add_search_history(term)
                self.search_combo['values'] = self.settings.get_search_history()
        except Exception as e:
            logger.exception("Error en la búsqueda")
            messagebox.showerror("Error", f"Error buscando himnos:\n{e}")
            self.hymns = []
        self.apply_filters()

    def apply_filters(self, event=None):
        collection_id = self.collection_options.get(self.collection_var.get())
        hymn_ids = None
        if collection_id:
            hymn_ids = [h.id for h in self.db.get_hymns_in_collection(collection_id)]

        filtered = filter_hymns(
            self.hymns,
            hymn_book_id=self.book_options.get(self.book_var.get()),
            language=self.language_var.get(),
            favorites_only=self.favorites_var.get(),
            hymn_ids=hymn_ids,
        )
        self.filtered_hymns = sort_hymns(filtered, SORT_OPTIONS.get(self.sort_var.get(), "title"),
                                         self.ascending)
        self.populate_tree()

    def toggle_order(self):
        self.ascending = not self.ascending
        self.order_button.config(text="⬆" if self.ascending else "⬇")
        self.apply_filters()

    def clear_filters(self):
        self.book_var.set(ALL_OPTION)
        self.language_var.set(ALL_OPTION)
        self.collection_var.set(ALL_OPTION)
        self.favorites_var.set(False)
        self.sort_var.set("Título")
        self.ascending = True
        self.order_button.config(text="⬆")
        self.clear_search()

    def populate_tree(self):
        self.hymns_tree.delete(*self.hymns_tree.get_children())
        for hymn in self.filtered_hymns:
            self.hymns_tree.insert('', tk.END, iid=str(hymn.id), values=(
                "⭐" if hymn.is_favorite else "",
                hymn.number or "",
                hymn.title,
                hymn.language,
                hymn.tags or "",
                hymn.view_count,
            ))
        self.totals_label.config(
            text=f"Mostrando {len(self.filtered_hymns)} de {self.db.get_total_hymns_count()} himnos • "
                 f"⭐ {self.db.get_favorite_hymns_count()} favoritos"
        )

    def refresh(self):
        self.load_filter_options()
        self.perform_search()
        self.app.update_status()

    # ===== ACCIONES =====
    def get_selected_ids(self):
        return [int(iid) for iid in self.hymns_tree.selection()]

    def _open_from_list(self, listbox, ids):
        selection = listbox.curselection()
        if selection:
            self.app.show_hymn(ids[selection[0]])

    def open_selected(self):
        ids = self.get_selected_ids()
        if not ids:
            messagebox.showinfo("Información", "Selecciona un himno")
            return
        self.app.show_hymn(ids[0])

    def edit_selected(self):
        ids = self.get_selected_ids()
        if not ids:
            messagebox.showinfo("Información", "Selecciona un himno para editar")
            return
        self.app.show_editor(hymn_id=ids[0])

    def toggle_favorite_selected(self):
        ids = self.get_selected_ids()
        if not ids:
            return
        try:
            for hymn_id in ids:
                self.db.toggle_favorite(hymn_id)
        except Exception as e:
            logger.exception("Error cambiando favorito")
            messagebox.showerror("Error", str(e))
        self.refresh()

    def delete_selected(self):
        ids = self.get_selected_ids()
        if not ids:
            return
        if not messagebox.askyesno("Confirmar", f"¿Eliminar {len(ids)} himno(s)? Esta acción no se puede deshacer."):
            return
        try:
            deleted = sum(1 for hymn_id in ids if self.db.delete_hymn(hymn_id))
            self.app.set_status_message(f"🗑️ {deleted} himno(s) eliminados")
        except Exception as e:
            logger.exception("Error eliminando himnos")
            messagebox.showerror("Error", f"No se pudieron eliminar:\n{e}")
        self.refresh()

    def export_selected(self):
        ids = self.get_selected_ids()
        hymns = [h for h in self.filtered_hymns if h.id in ids] if ids else list(self.filtered_hymns)
        if not hymns:
            messagebox.showinfo("Información", "No hay himnos para exportar")
            return

        fmt = self.settings.get_default_export_format()
        extension = FILE_EXTENSIONS[fmt]
        initial = self.app.export_service.default_file_name(hymns[0], fmt) if len(hymns) == 1 else f"himnos{extension}"
        path = filedialog.asksaveasfilename(
            title="Exportar himnos",
            initialdir=self.app.export_service.get_default_export_directory(),
            initialfile=initial,
            defaultextension=extension,
            filetypes=[(fmt, f"*{extension}"), ("Todos los archivos", "*.*")],
        )
        if not path:
            return

        result = self.app.export_service.export_hymns(hymns, fmt, path)
        if result['success']:
            messagebox.showinfo("Exportación", f"Se exportaron {result['items_exported']} himnos a:\n{path}")
        else:
            messagebox.showerror("Exportación", f"Error exportando:\n{result['error']}")

    def destroy(self):
        self.search_debouncer.cancel()
