"""Token de cancelación cooperativa.

Reemplaza el puntero global + signal handler: el host conecta las señales
del sistema a ``cancel()`` y los loops consultan el token.
"""

from __future__ import annotations

import threading
import weakref
from typing import Optional


class CancellationToken:
    """Flag compartido de parada, con espera interrumpible.

    Un token hijo se cancela cuando se cancela el padre, pero cancelar el
    hijo no afecta al padre.
    """

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self._event = threading.Event()
        # Referencias débiles: un hijo ya descartado sale solo del conjunto.
        self._children: "weakref.WeakSet[CancellationToken]" = weakref.WeakSet()
        self._lock = threading.Lock()
        if parent is not None:
            parent._register(self)

    def _register(self, child: "CancellationToken") -> None:
        with self._lock:
            self._children.add(child)
            cancelled = self._event.is_set()
        if cancelled:
            child.cancel()

    def child(self) -> "CancellationToken":
        return CancellationToken(parent=self)

    def cancel(self) -> None:
        self._event.set()
        with self._lock:
            children = list(self._children)
        for child in children:
            child.cancel()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Duerme hasta ``seconds`` o hasta la cancelación.

        Returns:
            True si el token fue cancelado.
        """
        return self._event.wait(timeout=seconds)
