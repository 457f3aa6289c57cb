"""Servicio de alertas IoT de temperatura y humedad."""
