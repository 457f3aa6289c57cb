"""Modelos y contratos de dominio."""
