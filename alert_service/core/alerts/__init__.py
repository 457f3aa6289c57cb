"""Procesamiento de alertas por suscriptor."""
