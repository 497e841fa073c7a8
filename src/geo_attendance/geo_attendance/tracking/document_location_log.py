from __future__ import annotations

import uuid

from ..core.constants import LOCATION_COLLECTION
from ..sync.writer import DocumentWriter
from .model import PositionSample
from .repository import LocationLog


class DocumentLocationLog(LocationLog):
    """Persists accepted samples to `locations` for the admin live map."""

    def __init__(self, writer: DocumentWriter, *, collection: str = LOCATION_COLLECTION):
        self._writer = writer
        self._collection = collection

    def record(self, employee_id: str, sample: PositionSample) -> None:
        doc_id = str(uuid.uuid4())
        self._writer.write(self._collection, doc_id, sample.to_document(employee_id=employee_id))
