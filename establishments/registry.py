from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .models import Establishment

logger = logging.getLogger(__name__)


@dataclass
class EstablishmentRegistry:
    """
    In-memory establishment configuration source.

    Missing configuration never fails a request: an unknown establishment is
    served with the documented defaults (15/30 min slots, capacity 8,
    11:00-22:00 every day).
    """
    _establishments: Dict[str, Establishment] = field(default_factory=dict)

    def register(self, establishment: Establishment) -> None:
        establishment.slot_config.validate()
        self._establishments[establishment.id] = establishment

    def get(self, establishment_id: str) -> Establishment:
        establishment = self._establishments.get(establishment_id)
        if establishment is None:
            logger.warning("No configuration for establishment %s, using defaults", establishment_id)
            return Establishment(id=establishment_id)
        return establishment

    def ids(self) -> List[str]:
        return list(self._establishments.keys())
