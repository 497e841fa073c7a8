from __future__ import annotations

import logging
import threading
from typing import Iterator, Optional, Sequence

from ..core.constants import GEOFENCE_COLLECTION
from ..core.exceptions import ValidationError
from ..documents.repository import Document, DocumentStore
from .model import Zone
from .repository import ZoneRepository

logger = logging.getLogger(__name__)


class DocumentZoneRepository(ZoneRepository):
    def __init__(self, store: DocumentStore, *, collection: str = GEOFENCE_COLLECTION):
        self._store = store
        self._collection = collection

    def list_for_organization(self, organization_id: str) -> Sequence[Zone]:
        docs = self._store.query(self._collection, {"companyId": organization_id})
        return self._to_zones(docs)

    def get_by_id(self, zone_id: str) -> Optional[Zone]:
        doc = self._store.get(self._collection, zone_id)
        if not doc:
            return None
        return Zone.from_document(doc, zone_id=zone_id)

    def save(self, zone: Zone) -> None:
        self._store.set(self._collection, zone.zone_id, zone.to_document(), merge=True)

    def delete(self, zone_id: str) -> None:
        self._store.delete(self._collection, zone_id)

    def watch(self, organization_id: str, *, stop: threading.Event | None = None) -> Iterator[Sequence[Zone]]:
        for docs in self._store.subscribe(self._collection, {"companyId": organization_id}, stop=stop):
            yield self._to_zones(docs)

    @staticmethod
    def _to_zones(docs: Sequence[Document]) -> list[Zone]:
        zones: list[Zone] = []
        for doc in docs:
            try:
                zones.append(Zone.from_document(doc))
            except ValidationError as e:
                # One malformed document must not hide the rest of the organization's zones.
                logger.warning("Skipping malformed zone document %s: %s", doc.get("id"), e)
        return zones
