"""Estadísticas y métricas del núcleo."""
