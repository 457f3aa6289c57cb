"""Dispositivos simulados."""
