import tkinter as tk
from tkinter import ttk

LIGHT_PALETTE = {
    "primary": "#2E7D32",
    "secondary": "#1976D2",
    "accent": "#E53935",
    "success": "#43A047",
    "warning": "#F39C12",
    "info": "#1565C0",
    "background": "#FFFFFF",
    "surface": "#F5F5F5",
    "text": "#212121",
    "muted": "#757575",
    "white": "#FFFFFF",
}

DARK_PALETTE = {
    "primary": "#81C784",
    "secondary": "#64B5F6",
    "accent": "#EF5350",
    "success": "#66BB6A",
    "warning": "#FFB74D",
    "info": "#90CAF9",
    "background": "#121212",
    "surface": "#1E1E1E",
    "text": "#EEEEEE",
    "muted": "#9E9E9E",
    "white": "#FFFFFF",
}

PALETTES = {"light": LIGHT_PALETTE, "dark": DARK_PALETTE}


class StyleManager:
    def __init__(self):
        self.colors = dict(LIGHT_PALETTE)
        self.palette_name = "light"

    def apply(self, palette_name: str = "light", root: tk.Misc = None):
        """Aplicar una paleta a todos los estilos ttk"""
        self.palette_name = palette_name if palette_name in PALETTES else "light"
        self.colors.clear()
        self.colors.update(PALETTES[self.palette_name])
        self.setup_styles()
        if root is not None:
            root.configure(bg=self.colors["background"])

    def setup_styles(self):
        style = ttk.Style()
        try:
            style.theme_use('clam')
        except tk.TclError:
            pass

        c = self.colors

        # Frames / fondo
        style.configure("TFrame", background=c["background"])
        style.configure("Card.TFrame", background=c["surface"], relief="groove", borderwidth=1)
        style.configure("TLabelframe", background=c["background"], foreground=c["text"])
        style.configure("TLabelframe.Label", background=c["background"], foreground=c["text"])
        style.configure("TCheckbutton", background=c["background"], foreground=c["text"])
        style.configure("TRadiobutton", background=c["background"], foreground=c["text"])
        style.configure("TNotebook", background=c["background"])
        style.configure("TNotebook.Tab", padding=(10, 4))

        # Botones
        style.configure("TButton", padding=(8, 4))
        style.configure("Primary.TButton",
                        background=c["primary"],
                        foreground="white",
                        padding=(10, 5))
        style.map("Primary.TButton",
                  foreground=[('active', 'white')],
                  background=[('active', c["secondary"])])

        style.configure("Success.TButton",
                        background=c["success"],
                        foreground="white")
        style.configure("Warning.TButton",
                        background=c["warning"],
                        foreground="white")
        style.configure("Danger.TButton",
                        background=c["accent"],
                        foreground="white")

        # Labels
        style.configure("TLabel", background=c["background"], foreground=c["text"])
        style.configure("Header.TLabel",
                        font=('Arial', 16, 'bold'),
                        foreground=c["primary"],
                        background=c["background"])
        style.configure("Title.TLabel",
                        font=('Arial', 13, 'bold'),
                        foreground=c["text"],
                        background=c["background"])
        style.configure("Secondary.TLabel",
                        foreground=c["muted"],
                        background=c["background"])
        style.configure("Card.TLabel", background=c["surface"], foreground=c["text"])
        style.configure("CardValue.TLabel",
                        font=('Arial', 20, 'bold'),
                        foreground=c["primary"],
                        background=c["surface"])

        # Listas
        style.configure("Treeview",
                        background=c["surface"],
                        fieldbackground=c["surface"],
                        foreground=c["text"],
                        rowheight=24)
        style.configure("Treeview.Heading", font=('Arial', 10, 'bold'))
        style.map("Treeview",
                  background=[('selected', c["secondary"])],
                  foreground=[('selected', 'white')])


# Instancia global para usar desde main
style_manager = StyleManager()
