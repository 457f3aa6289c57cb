"""Core module - Núcleo de alertas.

Estructura:
- domain/      → Muestras, configuración de umbrales y contratos
- engine/      → Motor de reglas
- alerts/      → Procesamiento de alertas y deduplicación
- polling/     → Poller periódico y cancelación cooperativa
- monitoring/  → Estadísticas y métricas
"""
