"""Polling periódico de la fuente remota."""
