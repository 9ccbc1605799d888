"""Pantallas tkinter de la aplicación."""
