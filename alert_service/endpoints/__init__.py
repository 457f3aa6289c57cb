"""Endpoints auxiliares (health)."""
