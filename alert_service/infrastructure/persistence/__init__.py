"""Repositorios de datos."""
