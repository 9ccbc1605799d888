"""Paquete utils: funciones auxiliares y logging."""
