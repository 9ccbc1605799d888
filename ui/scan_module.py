import logging
import os
import threading
import tkinter as tk
from datetime import datetime
from tkinter import ttk, filedialog, messagebox, simpledialog, scrolledtext

from core.file_processor import IMAGE_EXTENSIONS, SUPPORTED_EXTENSIONS
from core.models import Hymn
from core.ocr_engine import LANGUAGE_NAMES, SUPPORTED_LANGUAGES

logger = logging.getLogger(__name__)

RECENT_SCANS = 5


class ScanModule:
    """Escaneo de letras: imagen/PDF/DOCX/TXT -> texto -> himno"""

    def __init__(self, parent, app):
        self.parent = parent
        self.app = app
        self.db = app.db
        self.settings = app.settings
        self.file_processor = app.file_processor
        self.selected_file = None
        self.current_draft = None
        self.processing = False
        self.recent_ids = []

        self.setup_ui()
        self.load_recent_scans()
        if not self.app.ocr_engine.is_available():
            self.status_label.config(text="⚠️ Tesseract no está instalado: solo PDF con texto, DOCX y TXT")

    def setup_ui(self):
        """Configurar interfaz de escaneo"""
        self.main_frame = ttk.Frame(self.parent, style="TFrame")
        self.main_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        ttk.Label(self.main_frame, text="📷 Escanear Letra", style="Header.TLabel").pack(anchor="w", pady=(0, 10))

        self.create_config_panel()

        body = ttk.PanedWindow(self.main_frame, orient=tk.HORIZONTAL)
        body.pack(fill=tk.BOTH, expand=True, pady=10)
        text_frame = ttk.Frame(body)
        body.add(text_frame, weight=3)
        side_frame = ttk.Frame(body)
        body.add(side_frame, weight=1)

        self.create_text_panel(text_frame)
        self.create_recent_panel(side_frame)
        self.create_action_buttons()

    def create_config_panel(self):
        config_frame = ttk.LabelFrame(self.main_frame, text="⚙️ Origen y Opciones", padding=10)
        config_frame.pack(fill=tk.X)

        row1 = ttk.Frame(config_frame, style="TFrame")
        row1.pack(fill=tk.X, pady=3)

        ttk.Button(row1, text="🖼️ Elegir archivo", command=self.select_file,
                   style="Primary.TButton").pack(side=tk.LEFT)
        ttk.Button(row1, text="📁 Varios archivos", command=self.select_batch).pack(side=tk.LEFT, padx=5)

        self.file_label = ttk.Label(row1, text="Ningún archivo seleccionado", style="Secondary.TLabel")
        self.file_label.pack(side=tk.LEFT, padx=10)

        row2 = ttk.Frame(config_frame, style="TFrame")
        row2.pack(fill=tk.X, pady=3)

        ttk.Label(row2, text="Idioma OCR:").pack(side=tk.LEFT, padx=(0, 5))
        self.language_labels = {f"{LANGUAGE_NAMES[code]} ({code})": code for code in SUPPORTED_LANGUAGES}
        default_code = self.settings.get_default_ocr_language()
        default_label = next((label for label, code in self.language_labels.items() if code == default_code),
                             "English (en)")
        self.language_var = tk.StringVar(value=default_label)
        ttk.Combobox(row2, textvariable=self.language_var, values=list(self.language_labels),
                     state="readonly", width=20).pack(side=tk.LEFT)

        self.auto_save_var = tk.BooleanVar(value=self.settings.get_auto_save_after_ocr())
        ttk.Checkbutton(row2, text="Guardar automáticamente", variable=self.auto_save_var,
                        command=lambda: self.settings.set_auto_save_after_ocr(self.auto_save_var.get())
                        ).pack(side=tk.LEFT, padx=15)

        self.scan_button = ttk.Button(row2, text="🔎 Reconocer texto", command=self.start_processing,
                                      style="Success.TButton")
        self.scan_button.pack(side=tk.RIGHT)

        progress_frame = ttk.Frame(config_frame, style="TFrame")
        progress_frame.pack(fill=tk.X, pady=(8, 0))
        self.progress_var = tk.DoubleVar(value=0)
        ttk.Progressbar(progress_frame, variable=self.progress_var, maximum=100).pack(fill=tk.X)
        self.status_label = ttk.Label(progress_frame, text="", style="Secondary.TLabel")
        self.status_label.pack(anchor="w")

    def create_text_panel(self, parent):
        text_frame = ttk.LabelFrame(parent, text="📝 Texto reconocido", padding=10)
        text_frame.pack(fill=tk.BOTH, expand=True)

        self.confidence_label = ttk.Label(text_frame, text="Confianza: -", style="Secondary.TLabel")
        self.confidence_label.pack(anchor="w")

        self.text_widget = scrolledtext.ScrolledText(text_frame, wrap=tk.WORD, font=('Arial', 11),
                                                     bg=self.app.colors.get('surface'),
                                                     fg=self.app.colors.get('text'),
                                                     insertbackground=self.app.colors.get('text'))
        self.text_widget.pack(fill=tk.BOTH, expand=True, pady=(5, 0))

    def create_recent_panel(self, parent):
        recent_frame = ttk.LabelFrame(parent, text="🕒 Escaneos recientes", padding=5)
        recent_frame.pack(fill=tk.BOTH, expand=True)
        self.recent_list = tk.Listbox(recent_frame, activestyle="none",
                                      bg=self.app.colors.get('surface'), fg=self.app.colors.get('text'))
        self.recent_list.pack(fill=tk.BOTH, expand=True)
        self.recent_list.bind('<Double-1>', self.open_recent)

    def create_action_buttons(self):
        buttons_frame = ttk.Frame(self.main_frame, style="TFrame")
        buttons_frame.pack(fill=tk.X)

        actions = [
            ("💾 Guardar", self.save_scanned_text, "Success.TButton"),
            ("✏️ Editar en editor", self.edit_scanned_text, "Primary.TButton"),
            ("🗑️ Limpiar", self.clear_scan, "Danger.TButton"),
        ]
        for text, command, style in actions:
            ttk.Button(buttons_frame, text=text, command=command, style=style).pack(side=tk.LEFT, padx=2)

    # ===== ARCHIVOS =====
    def get_file_types(self):
        images = " ".join(f"*{ext}" for ext in IMAGE_EXTENSIONS)
        supported = " ".join(f"*{ext}" for ext in SUPPORTED_EXTENSIONS)
        return [
            ("Todos los soportados", supported),
            ("Imágenes", images),
            ("PDF", "*.pdf"),
            ("Word", "*.docx"),
            ("Texto", "*.txt"),
        ]

    def select_file(self):
        path = filedialog.askopenfilename(title="Seleccionar archivo", filetypes=self.get_file_types())
        if path:
            self.selected_file = path
            self.file_label.config(text=os.path.basename(path))
            self.progress_var.set(0)
            self.status_label.config(text="Listo para reconocer")

    def get_language(self):
        return self.language_labels.get(self.language_var.get(), "en")

    # ===== PROCESAMIENTO =====
    def on_processing_progress(self, message, percent=None):
        """Callback desde el hilo de trabajo: se reenvía al hilo de Tk"""
        self.app.root.after(0, self._show_progress, message, percent)

    def _show_progress(self, message, percent):
        if percent is not None:
            self.progress_var.set(percent)
        if self.status_label.winfo_exists():
            self.status_label.config(text=message)

    def start_processing(self):
        if not self.selected_file:
            messagebox.showwarning("Advertencia", "Selecciona primero una imagen o documento")
            return
        if self.processing:
            messagebox.showwarning("Advertencia", "Procesamiento ya en curso")
            return

        self.processing = True
        self.scan_button.state(["disabled"])
        self.progress_var.set(0)
        self.file_processor.set_progress_callback(self.on_processing_progress)

        options = {'language': self.get_language()}
        worker = threading.Thread(target=self.process_file_thread,
                                  args=(self.selected_file, options), daemon=True)
        worker.start()

    def process_file_thread(self, file_path, options):
        """Procesar archivo en hilo separado"""
        try:
            result = self.file_processor.process_file(file_path, options)
        except Exception as e:
            logger.exception("Error inesperado procesando archivo")
            result = {'success': False, 'error': str(e)}
        self.app.root.after(0, self.on_processing_done, result)

    def on_processing_done(self, result):
        self.processing = False
        self.file_processor.set_progress_callback(None)
        if not self.main_frame.winfo_exists():
            return
        self.scan_button.state(["!disabled"])

        if not result['success']:
            self.status_label.config(text="❌ Error")
            messagebox.showerror("Error", f"No se pudo reconocer el texto:\n{result['error']}")
            return

        text = result['extracted_text']
        self.text_widget.delete('1.0', tk.END)
        self.text_widget.insert('1.0', text)
        self.confidence_label.config(text=f"Confianza: {result['confidence']:.0f}%")
        self.current_draft = result['hymns_found'][0] if result['hymns_found'] else None
        self.progress_var.set(100)

        if not text.strip():
            self.status_label.config(text="ℹ️ No se encontró texto")
            return

        self.status_label.config(text=f"✅ Texto reconocido ({result['processed_with']})")
        if self.auto_save_var.get():
            self.auto_save_scanned_text()

    def auto_save_scanned_text(self):
        hymn = self._build_hymn()
        if not hymn.title:
            hymn.title = f"Himno escaneado {datetime.now():%Y-%m-%d %H:%M}"
        try:
            self.db.save_hymn(hymn)
            self.app.set_status_message(f"💾 Guardado automáticamente: {hymn.title}")
            self.load_recent_scans()
            self.app.update_status()
        except Exception:
            logger.exception("Falló el guardado automático")

    def _build_hymn(self, title=None):
        """Himno a partir del texto del editor y el borrador detectado"""
        text = self.text_widget.get('1.0', tk.END).strip()
        draft = self.current_draft
        return Hymn(
            title=title or (draft.title if draft else ""),
            number=draft.number if draft else None,
            lyrics=text,
            language=LANGUAGE_NAMES.get(self.get_language(), "English"),
            notes=draft.notes if draft else None,
        )

    def select_batch(self):
        """Procesar varios archivos y guardarlos como himnos"""
        paths = filedialog.askopenfilenames(title="Seleccionar archivos", filetypes=self.get_file_types())
        if not paths or self.processing:
            return
        self.processing = True
        self.scan_button.state(["disabled"])
        self.file_processor.set_progress_callback(self.on_processing_progress)
        options = {'language': self.get_language()}
        threading.Thread(target=self.process_batch_thread, args=(list(paths), options), daemon=True).start()

    def process_batch_thread(self, paths, options):
        try:
            results = self.file_processor.process_files_batch(paths, options)
            hymns = [h for r in results['file_results'] if r['success'] for h in r.get('hymns_found', [])]
            saved = self.file_processor.save_hymns_to_database(hymns) if hymns else None
        except Exception as e:
            logger.exception("Error en procesamiento por lotes")
            results, saved = {'error': str(e)}, None
        self.app.root.after(0, self.on_batch_done, results, saved)

    def on_batch_done(self, results, saved):
        self.processing = False
        self.file_processor.set_progress_callback(None)
        if not self.main_frame.winfo_exists():
            return
        self.scan_button.state(["!disabled"])
        if 'error' in results:
            messagebox.showerror("Error", results['error'])
            return

        saved_count = saved['saved_hymns'] if saved else 0
        message = (f"Archivos procesados: {results['successful_files']}/{results['total_files']}\n"
                   f"Himnos guardados: {saved_count}")
        if saved and saved['errors']:
            message += "\n\nErrores:\n" + "\n".join(f"• {e['hymn']}: {e['error']}" for e in saved['errors'][:5])
        messagebox.showinfo("Procesamiento completado", message)
        self.load_recent_scans()
        self.app.update_status()

    # ===== ACCIONES =====
    def save_scanned_text(self):
        text = self.text_widget.get('1.0', tk.END).strip()
        if not text:
            messagebox.showwarning("Advertencia", "No hay texto para guardar")
            return

        suggested = self.current_draft.title if self.current_draft else "Himno sin título"
        title = simpledialog.askstring("Guardar himno", "Título del himno:",
                                       initialvalue=suggested, parent=self.parent)
        if not title or not title.strip():
            return

        try:
            hymn = self._build_hymn(title.strip())
            self.db.save_hymn(hymn)
        except Exception as e:
            logger.exception("Error guardando himno escaneado")
            messagebox.showerror("Error", f"No se pudo guardar el himno:\n{e}")
            return

        messagebox.showinfo("Guardado", f"Himno '{hymn.title}' guardado correctamente")
        self.app.show_editor(hymn_id=hymn.id)

    def edit_scanned_text(self):
        text = self.text_widget.get('1.0', tk.END).strip()
        if not text:
            messagebox.showwarning("Advertencia", "No hay texto para editar")
            return
        self.app.show_editor(draft=self._build_hymn())

    def clear_scan(self):
        self.text_widget.delete('1.0', tk.END)
        self.selected_file = None
        self.current_draft = None
        self.file_label.config(text="Ningún archivo seleccionado")
        self.confidence_label.config(text="Confianza: -")
        self.progress_var.set(0)
        self.status_label.config(text="")

    def load_recent_scans(self):
        try:
            recent = self.db.get_recent_hymns(RECENT_SCANS)
        except Exception:
            logger.exception("Error cargando escaneos recientes")
            return
        self.recent_ids = [h.id for h in recent]
        self.recent_list.delete(0, tk.END)
        for hymn in recent:
            self.recent_list.insert(tk.END, hymn.display_title)

    def open_recent(self, event=None):
        selection = self.recent_list.curselection()
        if selection:
            self.app.show_hymn(self.recent_ids[selection[0]])
