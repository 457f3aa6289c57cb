"""Implementaciones de colaboradores externos."""
