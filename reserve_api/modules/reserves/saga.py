import logging
from typing import Callable, List, Tuple

from reserve_api.core.errors import StoreError

logger = logging.getLogger(__name__)


class Saga:
    """
    Runs a multi-step store sequence with compensating actions.

    Usage:
        with Saga("create series") as saga:
            row = store.insert_reserve(...)
            saga.add_compensation("delete reserve", store.delete_reserve, row["id"])

    If the block raises, registered compensations run newest first. A failing
    compensation is logged and the remaining ones still run. StoreError is
    re-raised with compensated=True; other exceptions propagate unchanged.
    """

    def __init__(self, name: str):
        self.name = name
        self._compensations: List[Tuple[str, Callable, tuple, dict]] = []

    def add_compensation(self, description: str, func: Callable, *args, **kwargs):
        self._compensations.append((description, func, args, kwargs))

    def compensate(self) -> bool:
        """Undo completed steps. Returns False if any compensation failed."""
        clean = True
        while self._compensations:
            description, func, args, kwargs = self._compensations.pop()
            try:
                func(*args, **kwargs)
                logger.info(f"[{self.name}] compensated: {description}")
            except Exception as e:
                clean = False
                logger.error(f"[{self.name}] compensation failed ({description}): {e}")
        return clean

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self._compensations.clear()
            return False
        logger.error(f"[{self.name}] aborted: {exc}")
        clean = self.compensate()
        if isinstance(exc, StoreError):
            raise StoreError(
                f"{exc.message} (changes rolled back{'' if clean else ' partially'})",
                operation=exc.operation,
                compensated=True,
            ) from exc
        return False
