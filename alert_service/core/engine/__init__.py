"""Motor de reglas."""
