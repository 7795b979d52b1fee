"""Drop items that have already been persisted for a source."""

from typing import List

from signal_intake.domain.models import NormalizedItem, SourceType
from signal_intake.logging import get_logger
from signal_intake.persistence.gateway import PersistenceGateway

from .exceptions import PipelineError

logger = get_logger(__name__, component="dedup")


class Deduplicator:
    """Filters a batch against one snapshot of persisted identifiers.

    An item is a duplicate when its ``external_id`` or its ``url`` is already
    stored for the source. Items within the same batch are not compared with
    each other.
    """

    def __init__(self, gateway: PersistenceGateway) -> None:
        self.gateway = gateway

    async def dedupe(self, items: List[NormalizedItem], source: SourceType) -> List[NormalizedItem]:
        """Return the items not yet persisted, in input order.

        Raises:
            PipelineError: If the identifier snapshot cannot be read
        """
        source_value = SourceType(source).value
        try:
            existing = await self.gateway.find_existing_identifiers(source_value)
        except Exception as e:
            raise PipelineError(f"Could not load existing identifiers: {e}", stage="dedup") from e

        fresh = [
            item
            for item in items
            if item.external_id not in existing and item.url not in existing
        ]

        logger.info(
            f"Deduplicated {len(items)} items to {len(fresh)}",
            extra={
                "event": "pipeline.dedup.completed",
                "input_count": len(items),
                "output_count": len(fresh),
                "duplicate_count": len(items) - len(fresh),
                "known_identifiers": len(existing),
            },
        )
        return fresh
