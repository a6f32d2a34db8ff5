"""
Standalone catalog connection.

Stands in for the catalog ingestion pipeline when providers run outside a
catalog host. As in a catalog, each provider gets its own connection; every
full mutation replaces the connection's snapshot and is logged as a diff.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

from .providers.entities import DeferredEntity, Entity, EntityMutation

logger = logging.getLogger(__name__)


class LoggingConnection:
    """EntityProviderConnection that logs mutations and keeps the last snapshot."""

    def __init__(self, provider_name: str, output_dir: Optional[str | Path] = None):
        self.provider_name = provider_name
        self.output_dir = Path(output_dir) if output_dir else None
        self.mutation_count = 0
        self._snapshot: List[DeferredEntity] = []

    async def apply_mutation(self, mutation: EntityMutation) -> None:
        previous = {d.entity.metadata.name for d in self._snapshot}
        current = {d.entity.metadata.name for d in mutation.entities}
        self._snapshot = list(mutation.entities)
        self.mutation_count += 1

        logger.info(
            f"Applied {mutation.type} mutation for {self.provider_name}: "
            f"{len(current)} entities ({len(current - previous)} added, "
            f"{len(previous - current)} removed)"
        )
        if self.output_dir:
            self._write_snapshot()

    def entities(self) -> List[Entity]:
        """Entities from the last applied mutation."""
        return [d.entity for d in self._snapshot]

    def entities_for(self, location_key: str) -> List[Entity]:
        """Entities from the last applied mutation owned by ``location_key``."""
        return [d.entity for d in self._snapshot if d.location_key == location_key]

    def _write_snapshot(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{self.provider_name}.json"
        path.write_text(json.dumps([d.entity.to_dict() for d in self._snapshot], indent=2))
        logger.debug(f"Wrote {len(self._snapshot)} entities to {path}")


__all__ = ["LoggingConnection"]
