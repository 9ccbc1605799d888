import logging
import tkinter as tk
from tkinter import ttk, messagebox

import matplotlib.pyplot as plt
from matplotlib.backends.backend_tkagg import FigureCanvasTkAgg

from core.statistics import compute_statistics

logger = logging.getLogger(__name__)

CHART_COLORS = ['#2E7D32', '#1976D2', '#4CAF50', '#F39C12', '#9C27B0', '#E53935', '#95A5A6']


class StatisticsPanel:
    def __init__(self, parent, app):
        self.parent = parent
        self.app = app
        self.figures = []
        try:
            self.stats = compute_statistics(app.db, app.settings)
        except Exception as e:
            logger.exception("Error calculando estadísticas")
            messagebox.showerror("Error", f"No se pudieron calcular las estadísticas:\n{e}")
            return
        self.setup_ui()

    def setup_ui(self):
        """Tarjetas de resumen y gráficos"""
        self.main_frame = ttk.Frame(self.parent, style="TFrame")
        self.main_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)

        header = ttk.Frame(self.main_frame, style="TFrame")
        header.pack(fill=tk.X, pady=(0, 10))
        ttk.Label(header, text="📊 Estadísticas", style="Header.TLabel").pack(side=tk.LEFT)
        ttk.Button(header, text="🔄 Actualizar", command=self.app.show_statistics).pack(side=tk.RIGHT)

        self.create_main_stats()
        self.create_details()
        self.create_charts_section()

    def create_main_stats(self):
        stats_frame = ttk.Frame(self.main_frame, style="TFrame")
        stats_frame.pack(fill=tk.X, pady=(0, 10))

        s = self.stats
        cards = [
            ("📝", "Himnos", s['total_hymns']),
            ("⭐", "Favoritos", s['favorite_hymns']),
            ("👁️", "Vistas", s['total_views']),
            ("📚", "Colecciones", s['total_collections']),
            ("📖", "Himnarios", s['total_hymn_books']),
            ("📤", "Exportaciones", s['total_exports']),
        ]
        for i, (icon, title, value) in enumerate(cards):
            card = self.create_stat_card(stats_frame, icon, title, value)
            card.grid(row=0, column=i, padx=5, pady=5, sticky="nsew")
            stats_frame.columnconfigure(i, weight=1)

    def create_stat_card(self, parent, icon, title, value):
        """Crear tarjeta de estadística individual"""
        card = ttk.Frame(parent, style="Card.TFrame", padding=10)
        ttk.Label(card, text=f"{icon} {title}", style="Card.TLabel").pack(anchor="w")
        ttk.Label(card, text=str(value), style="CardValue.TLabel").pack(anchor="center", pady=(5, 0))
        return card

    def create_details(self):
        s = self.stats
        details = ttk.LabelFrame(self.main_frame, text="📋 Actividad", padding=10)
        details.pack(fill=tk.X)
        rows = [
            ("Agregados en los últimos 7 días:", s['recently_added']),
            ("Modificados en los últimos 7 días:", s['recently_modified']),
            ("Más visto:", s['most_viewed']),
            ("Tamaño de la base de datos:", s['database_size_text']),
        ]
        for i, (label, value) in enumerate(rows):
            ttk.Label(details, text=label).grid(row=i, column=0, sticky="w", padx=(0, 10))
            ttk.Label(details, text=str(value), style="Title.TLabel").grid(row=i, column=1, sticky="w")

    def create_charts_section(self):
        charts_frame = ttk.LabelFrame(self.main_frame, text="📈 Distribución", padding=10)
        charts_frame.pack(fill=tk.BOTH, expand=True, pady=10)

        if not self.stats['total_hymns']:
            ttk.Label(charts_frame, text="Todavía no hay himnos", style="Secondary.TLabel").pack(pady=20)
            return

        left = ttk.Frame(charts_frame)
        left.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=(0, 5))
        right = ttk.Frame(charts_frame)
        right.pack(side=tk.RIGHT, fill=tk.BOTH, expand=True, padx=(5, 0))

        self.create_pie_chart(left, "Idiomas", self.stats['language_distribution'])
        self.create_bar_chart(right, "Himnarios", self.stats['hymn_book_distribution'])

    def _embed(self, fig, parent):
        fig.tight_layout()
        canvas = FigureCanvasTkAgg(fig, parent)
        canvas.draw()
        canvas.get_tk_widget().pack(fill=tk.BOTH, expand=True)
        self.figures.append(fig)

    def _style_figure(self, fig, ax):
        colors = self.app.colors
        fig.patch.set_facecolor(colors.get('background', '#FFFFFF'))
        ax.set_facecolor(colors.get('background', '#FFFFFF'))
        ax.title.set_color(colors.get('text', '#212121'))
        ax.tick_params(colors=colors.get('text', '#212121'))

    def create_pie_chart(self, parent, title, distribution):
        fig, ax = plt.subplots(figsize=(5, 3.5))
        labels = [f"{d['name']} ({d['percentage']}%)" for d in distribution]
        ax.pie([d['count'] for d in distribution], labels=labels, colors=CHART_COLORS,
               startangle=90, textprops={'color': self.app.colors.get('text', '#212121')})
        ax.set_title(title)
        ax.axis('equal')
        self._style_figure(fig, ax)
        self._embed(fig, parent)

    def create_bar_chart(self, parent, title, distribution):
        fig, ax = plt.subplots(figsize=(5, 3.5))
        names = [d['name'] for d in distribution]
        counts = [d['count'] for d in distribution]
        bars = ax.bar(names, counts, color=CHART_COLORS[:len(names)] or CHART_COLORS)
        ax.set_ylabel('Himnos')
        ax.set_title(title)
        plt.setp(ax.get_xticklabels(), rotation=30, ha='right')

        # Añadir valores en las barras
        for bar in bars:
            height = bar.get_height()
            ax.text(bar.get_x() + bar.get_width() / 2., height, f'{int(height)}', ha='center', va='bottom',
                    color=self.app.colors.get('text', '#212121'))
        self._style_figure(fig, ax)
        self._embed(fig, parent)

    def destroy(self):
        for fig in self.figures:
            plt.close(fig)
        self.figures = []
