"""Transports de ingesta."""
