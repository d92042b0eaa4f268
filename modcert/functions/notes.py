"""Note callables: ``readNotes`` and ``createNote``.

Both are public, as in the first release of the backend.
"""

from __future__ import annotations

import logging
from typing import Any

from modcert.auth.models import CallableRequest
from modcert.errors import ValidationError
from modcert.functions.registry import Services, callable_function
from modcert.store.documents import SERVER_TIMESTAMP
from modcert.utils.validators import validate_length

logger = logging.getLogger(__name__)

NOTES_COLLECTION = "notes"

MIN_TITLE_LENGTH = 3
MIN_CONTENT_LENGTH = 10


@callable_function("readNotes")
def read_notes(request: CallableRequest, services: Services) -> dict[str, Any]:
    notes = [{"id": doc.id, **(doc.data() or {})} for doc in services.store.query(NOTES_COLLECTION).get()]
    logger.debug("Read %d notes", len(notes))
    return {"success": True, "notes": notes, "count": len(notes)}


@callable_function("createNote")
def create_note(request: CallableRequest, services: Services) -> dict[str, Any]:
    data = request.data or {}

    title = data.get("title")
    content = data.get("content")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Title is required")
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Content is required")
    title = title.strip()
    content = content.strip()
    validate_length(title, MIN_TITLE_LENGTH, field_name="Title")
    validate_length(content, MIN_CONTENT_LENGTH, field_name="Content")

    logger.info("Creating note: %s", title)
    ref = services.store.add(NOTES_COLLECTION, {
        "title": title,
        "content": content,
        "createdAt": SERVER_TIMESTAMP,
        "updatedAt": SERVER_TIMESTAMP,
        "status": "active",
    })

    note = {"id": ref.id, **(ref.get().data() or {})}
    return {"success": True, "note": note, "message": "Note created successfully"}
