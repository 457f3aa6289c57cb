"""Modelo de regla del motor."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Callable

from ..domain.sample import TelemetrySample

if TYPE_CHECKING:
    from ..alerts.processor import AlertProcessor

# Condición y acción reciben el procesador de forma explícita; las reglas
# no capturan referencias al motor ni al servicio.
Predicate = Callable[[TelemetrySample, "AlertProcessor"], bool]
Action = Callable[[TelemetrySample, "AlertProcessor"], None]


@dataclass(frozen=True)
class Rule:
    """Par condición/acción con nombre único y prioridad.

    Inmutable: habilitar o deshabilitar produce una copia, así las
    instantáneas que ya están evaluándose no cambian.
    """

    name: str
    description: str
    condition: Predicate
    action: Action
    priority: int = 0
    enabled: bool = True

    def with_enabled(self, enabled: bool) -> "Rule":
        return replace(self, enabled=enabled)
