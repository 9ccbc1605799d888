import logging
import tkinter as tk
from tkinter import ttk, messagebox, filedialog, colorchooser

from core.export_service import EXPORT_FORMATS, FILE_EXTENSIONS
from core.filters import Debouncer, filter_by_text
from core.models import Collection
from utils.helpers import sanitize_file_name

logger = logging.getLogger(__name__)

FILTER_DELAY_MS = 300
DEFAULT_COLOR = "#2E7D32"


class CollectionDialog:
    """Diálogo modal para crear o editar una colección"""

    def __init__(self, parent, collection=None):
        self.result = None
        self.collection = collection or Collection(color=DEFAULT_COLOR)

        self.top = tk.Toplevel(parent)
        self.top.title("Editar colección" if collection else "Nueva colección")
        self.top.transient(parent.winfo_toplevel())
        self.top.resizable(False, False)

        frame = ttk.Frame(self.top, padding=15)
        frame.pack(fill=tk.BOTH, expand=True)

        ttk.Label(frame, text="Nombre:").grid(row=0, column=0, sticky="w", pady=3)
        self.name_var = tk.StringVar(value=self.collection.name)
        name_entry = ttk.Entry(frame, textvariable=self.name_var, width=35)
        name_entry.grid(row=0, column=1, columnspan=2, sticky="we", pady=3)

        ttk.Label(frame, text="Descripción:").grid(row=1, column=0, sticky="nw", pady=3)
        self.description_text = tk.Text(frame, width=35, height=4, wrap=tk.WORD)
        self.description_text.grid(row=1, column=1, columnspan=2, sticky="we", pady=3)
        self.description_text.insert('1.0', self.collection.description or "")

        ttk.Label(frame, text="Color:").grid(row=2, column=0, sticky="w", pady=3)
        self.color = self.collection.color or DEFAULT_COLOR
        self.color_swatch = tk.Label(frame, width=4, bg=self.color, relief="solid", bd=1)
        self.color_swatch.grid(row=2, column=1, sticky="w", pady=3)
        ttk.Button(frame, text="Elegir...", command=self.choose_color).grid(row=2, column=2, sticky="w")

        buttons = ttk.Frame(frame)
        buttons.grid(row=3, column=0, columnspan=3, pady=(10, 0))
        ttk.Button(buttons, text="💾 Guardar", command=self.on_accept, style="Success.TButton").pack(side=tk.LEFT, padx=3)
        ttk.Button(buttons, text="Cancelar", command=self.top.destroy).pack(side=tk.LEFT, padx=3)

        name_entry.focus_set()
        self.top.bind('<Return>', lambda e: self.on_accept())
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
        self.collection.name = name
        self.collection.description = self.description_text.get('1.0', 'end-1c').strip() or None
        self.collection.color = self.color
        self.result = self.collection
        self.top.destroy()


class CollectionsManager:
    """Lista de colecciones y detalle de la colección seleccionada"""

    def __init__(self, parent, app, collection_id=None):
        self.parent = parent
        self.app = app
        self.db = app.db
        self.collections = []
        self.current_collection = None
        self.collection_hymns = []
        self.visible_hymns = []

        self.setup_ui()
        self.filter_debouncer = Debouncer(self.parent, FILTER_DELAY_MS, self.apply_filter)
        self.load_collections()
        if collection_id:
            self.select_collection(collection_id)

    def setup_ui(self):
        self.main_frame = ttk.Frame(self.parent, style="TFrame")
        self.main_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        header = ttk.Frame(self.main_frame, style="TFrame")
        header.pack(fill=tk.X, pady=(0, 10))
        ttk.Label(header, text="📚 Colecciones", style="Header.TLabel").pack(side=tk.LEFT)

        paned = ttk.PanedWindow(self.main_frame, orient=tk.HORIZONTAL)
        paned.pack(fill=tk.BOTH, expand=True)
        left = ttk.Frame(paned)
        paned.add(left, weight=1)
        right = ttk.Frame(paned)
        paned.add(right, weight=3)

        self.create_collections_panel(left)
        self.create_detail_panel(right)

    def create_collections_panel(self, parent):
        frame = ttk.LabelFrame(parent, text="Mis colecciones", padding=10)
        frame.pack(fill=tk.BOTH, expand=True)

        self.collections_tree = ttk.Treeview(frame, columns=('nombre', 'himnos'), show='headings',
                                             selectmode='browse', height=15)
        self.collections_tree.heading('nombre', text='Nombre')
        self.collections_tree.heading('himnos', text='Himnos')
        self.collections_tree.column('nombre', width=170)
        self.collections_tree.column('himnos', width=60, anchor="center")
        self.collections_tree.pack(fill=tk.BOTH, expand=True)
        self.collections_tree.bind('<<TreeviewSelect>>', self.on_collection_select)

        buttons = ttk.Frame(frame, style="TFrame")
        buttons.pack(fill=tk.X, pady=(8, 0))
        ttk.Button(buttons, text="➕ Nueva", command=self.create_collection, style="Success.TButton").pack(side=tk.LEFT, padx=2)
        ttk.Button(buttons, text="✏️ Editar", command=self.edit_collection).pack(side=tk.LEFT, padx=2)
        ttk.Button(buttons, text="🗑️ Eliminar", command=self.delete_collection, style="Danger.TButton").pack(side=tk.LEFT, padx=2)

    def create_detail_panel(self, parent):
        self.detail_frame = ttk.LabelFrame(parent, text="Detalle", padding=10)
        self.detail_frame.pack(fill=tk.BOTH, expand=True)

        self.detail_info = ttk.Label(self.detail_frame, text="Selecciona una colección", style="Secondary.TLabel")
        self.detail_info.pack(anchor="w")

        filter_row = ttk.Frame(self.detail_frame, style="TFrame")
        filter_row.pack(fill=tk.X, pady=5)
        ttk.Label(filter_row, text="🔍 Filtrar:").pack(side=tk.LEFT)
        self.filter_var = tk.StringVar()
        filter_entry = ttk.Entry(filter_row, textvariable=self.filter_var, width=30)
        filter_entry.pack(side=tk.LEFT, padx=5)
        filter_entry.bind('<KeyRelease>', lambda e: self.filter_debouncer.trigger())

        self.hymns_tree = ttk.Treeview(self.detail_frame, columns=('pos', 'numero', 'titulo', 'idioma'),
                                       show='headings', selectmode='browse', height=14)
        for col, text, width in (('pos', '#', 40), ('numero', 'Nº', 50), ('titulo', 'Título', 280), ('idioma', 'Idioma', 90)):
            self.hymns_tree.heading(col, text=text)
            self.hymns_tree.column(col, width=width)
        self.hymns_tree.pack(fill=tk.BOTH, expand=True)
        self.hymns_tree.bind('<Double-1>', lambda e: self.open_hymn())

        actions = ttk.Frame(self.detail_frame, style="TFrame")
        actions.pack(fill=tk.X, pady=(8, 0))
        buttons = [
            ("👁️ Abrir", self.open_hymn, "Primary.TButton"),
            ("⬆", lambda: self.move_hymn(-1), "TButton"),
            ("⬇", lambda: self.move_hymn(1), "TButton"),
            ("➖ Quitar", self.remove_hymn, "Danger.TButton"),
            ("📤 Exportar", self.export_collection, "Success.TButton"),
            ("🔗 Compartir", self.share_collection, "Primary.TButton"),
        ]
        for text, command, style in buttons:
            ttk.Button(actions, text=text, command=command, style=style).pack(side=tk.LEFT, padx=2)

    # ===== COLECCIONES =====
    def load_collections(self):
        try:
            self.collections = self.db.get_collections_with_counts()
        except Exception as e:
            logger.exception("Error cargando colecciones")
            messagebox.showerror("Error", f"No se pudieron cargar las colecciones:\n{e}")
            return
        self.collections_tree.delete(*self.collections_tree.get_children())
        for collection in self.collections:
            name = f"★ {collection.name}" if collection.is_default else collection.name
            self.collections_tree.insert('', tk.END, iid=str(collection.id), values=(name, collection.hymn_count))

    def select_collection(self, collection_id):
        iid = str(collection_id)
        if self.collections_tree.exists(iid):
            self.collections_tree.selection_set(iid)
            self.collections_tree.see(iid)

    def on_collection_select(self, event=None):
        selection = self.collections_tree.selection()
        if not selection:
            return
        self.current_collection = self.db.get_collection(int(selection[0]))
        self.load_collection_hymns()

    def load_collection_hymns(self):
        collection = self.current_collection
        if collection is None:
            return
        self.collection_hymns = self.db.get_hymns_in_collection(collection.id)
        self.detail_frame.config(text=f"📚 {collection.name}")
        info = f"{len(self.collection_hymns)} himnos • creada {collection.created_date:%Y-%m-%d}"
        if collection.description:
            info = f"{collection.description}\n{info}"
        self.detail_info.config(text=info)
        self.apply_filter()

    def apply_filter(self):
        self.visible_hymns = filter_by_text(self.collection_hymns, self.filter_var.get())
        self.hymns_tree.delete(*self.hymns_tree.get_children())
        for position, hymn in enumerate(self.visible_hymns, start=1):
            self.hymns_tree.insert('', tk.END, iid=str(hymn.id),
                                   values=(position, hymn.number or "", hymn.title, hymn.language))

    def create_collection(self):
        dialog = CollectionDialog(self.parent)
        if dialog.result is None:
            return
        dialog.result.sort_order = len(self.collections)
        try:
            self.db.save_collection(dialog.result)
        except Exception as e:
            logger.exception("Error creando colección")
            messagebox.showerror("Error", str(e))
            return
        self.load_collections()
        self.select_collection(dialog.result.id)

    def edit_collection(self):
        if self.current_collection is None:
            messagebox.showinfo("Información", "Selecciona una colección")
            return
        dialog = CollectionDialog(self.parent, self.current_collection)
        if dialog.result is None:
            return
        try:
            self.db.save_collection(dialog.result)
        except Exception as e:
            logger.exception("Error guardando colección")
            messagebox.showerror("Error", str(e))
            return
        self.load_collections()
        self.select_collection(dialog.result.id)

    def delete_collection(self):
        collection = self.current_collection
        if collection is None:
            return
        if not messagebox.askyesno("Confirmar", f"¿Eliminar la colección '{collection.name}'?\n"
                                                "Los himnos no se eliminan."):
            return
        self.db.delete_collection(collection.id)
        self.current_collection = None
        self.collection_hymns = []
        self.detail_frame.config(text="Detalle")
        self.detail_info.config(text="Selecciona una colección")
        self.apply_filter()
        self.load_collections()

    # ===== HIMNOS DE LA COLECCIÓN =====
    def _selected_hymn_id(self):
        selection = self.hymns_tree.selection()
        return int(selection[0]) if selection else None

    def open_hymn(self):
        hymn_id = self._selected_hymn_id()
        if hymn_id:
            self.app.show_hymn(hymn_id)

    def remove_hymn(self):
        hymn_id = self._selected_hymn_id()
        if hymn_id is None or self.current_collection is None:
            return
        if self.db.remove_hymn_from_collection(hymn_id, self.current_collection.id):
            self.load_collection_hymns()
            self.load_collections()
            self.select_collection(self.current_collection.id)

    def move_hymn(self, offset):
        """Mover el himno seleccionado una posición arriba o abajo"""
        hymn_id = self._selected_hymn_id()
        if hymn_id is None or self.current_collection is None:
            return
        if self.filter_var.get().strip():
            messagebox.showinfo("Información", "Quita el filtro para reordenar")
            return
        ids = [h.id for h in self.collection_hymns]
        index = ids.index(hymn_id)
        target = index + offset
        if not 0 <= target < len(ids):
            return
        ids[index], ids[target] = ids[target], ids[index]
        self.db.reorder_collection(self.current_collection.id, ids)
        self.load_collection_hymns()
        self.hymns_tree.selection_set(str(hymn_id))

    def export_collection(self):
        collection = self.current_collection
        if collection is None:
            return
        fmt = self.app.settings.get_default_export_format()
        path = filedialog.asksaveasfilename(
            title="Exportar colección",
            initialdir=self.app.export_service.get_default_export_directory(),
            initialfile=sanitize_file_name(collection.name, "coleccion") + FILE_EXTENSIONS[fmt],
            defaultextension=FILE_EXTENSIONS[fmt],
            filetypes=[(f, f"*{FILE_EXTENSIONS[f]}") for f in EXPORT_FORMATS],
        )
        if not path:
            return
        chosen = next((f for f, ext in FILE_EXTENSIONS.items() if path.lower().endswith(ext)), fmt)
        result = self.app.export_service.export_collection(collection, chosen, path)
        if result['success']:
            messagebox.showinfo("Exportación", f"Se exportaron {result['items_exported']} himnos a:\n{path}")
        else:
            messagebox.showerror("Exportación", f"Error exportando:\n{result['error']}")

    def share_collection(self):
        collection = self.current_collection
        if collection is None:
            return
        path = self.app.export_service.share_collection(collection, self.app.settings.get_default_export_format())
        if not path:
            messagebox.showerror("Compartir", "No se pudo preparar la colección para compartir")
            return
        self.app.export_service.open_file(path)
        self.app.set_status_message(f"🔗 Archivo listo para compartir: {path}", clear_after_ms=8000)

    def destroy(self):
        self.filter_debouncer.cancel()
