"""Gateways de notificación."""
