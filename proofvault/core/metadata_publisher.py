"""Metadata publisher and resolver.

``MetadataPublisher.publish`` builds a schema-stable ERC-721 style record
from caller fields and pins it to the content store.  ``MetadataResolver``
does the reverse for the verification path.  Neither retries: retry policy
belongs to whoever calls them.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from proofvault.bridge.content_store import (
    ContentStore,
    ContentStoreError,
    pointer_to_gateway_url,
)
from proofvault.core.errors import MetadataUnavailable, PublishUnavailable
from proofvault.core.hasher import canonical_json_bytes
from proofvault.models.metadata import (
    TRAIT_ORDER,
    MetadataAttribute,
    MetadataRecord,
    SubjectAttributes,
    TraitTag,
)

logger = logging.getLogger(__name__)


def build_metadata_record(
    digest: str,
    attributes: SubjectAttributes,
    *,
    issued_at: datetime | None = None,
    external_url: str = "",
) -> MetadataRecord:
    """Deterministically construct the record for a document.

    Identical inputs (including *issued_at*) give identical records.
    """
    issued = (issued_at or datetime.now(timezone.utc)).isoformat()
    values = {
        TraitTag.SUBJECT_NAME: attributes.name,
        TraitTag.SUBJECT_ID: attributes.subject_id,
        TraitTag.PROGRAM: attributes.program,
        TraitTag.YEAR: attributes.year,
        TraitTag.FILE_HASH: digest,
        TraitTag.FILE_NAME: attributes.file_name,
        TraitTag.ISSUED_AT: issued,
    }
    subject = attributes.name or "Unknown"
    return MetadataRecord(
        name=f"Diploma Proof - {subject}",
        description=f"Verifiable diploma proof for {attributes.name or 'student'}",
        image="",
        attributes=[
            MetadataAttribute(trait_type=tag.value, value=values[tag] or "")
            for tag in TRAIT_ORDER
        ],
        external_url=external_url,
    )


class MetadataPublisher:
    """Serializes metadata records and hands them to a content store.

    Parameters
    ----------
    store:
        Any ``ContentStore`` backend.
    external_url:
        Value written into every record's ``external_url``.
    """

    def __init__(self, store: ContentStore, *, external_url: str = "") -> None:
        self._store = store
        self._external_url = external_url

    def publish(
        self,
        digest: str,
        attributes: SubjectAttributes,
        *,
        issued_at: datetime | None = None,
    ) -> str:
        """Publish the record for *digest* and return its MetadataPointer.

        Raises ``PublishUnavailable`` if the store is unreachable or rejects
        the record.
        """
        record = build_metadata_record(
            digest, attributes, issued_at=issued_at, external_url=self._external_url
        )
        data = canonical_json_bytes(record.model_dump(mode="json"))
        try:
            pointer = self._store.put(data)
        except ContentStoreError as exc:
            raise PublishUnavailable(
                f"Unable to publish metadata: {exc}", pointer_scheme=self._store.scheme
            ) from exc
        if not pointer:
            raise PublishUnavailable(
                "Content store returned an empty pointer", pointer_scheme=self._store.scheme
            )
        logger.info("Published metadata for %s at %s", digest[:16], pointer)
        return pointer


class MetadataResolver:
    """Fetches and parses the record a MetadataPointer refers to."""

    def __init__(self, store: ContentStore, *, gateway_url: str = "") -> None:
        self._store = store
        self._gateway_url = gateway_url

    def gateway_url_for(self, pointer: str) -> str:
        if not self._gateway_url or not pointer:
            return ""
        return pointer_to_gateway_url(pointer, self._gateway_url)

    def resolve(self, pointer: str) -> MetadataRecord:
        """Return the record at *pointer*; raise ``MetadataUnavailable`` otherwise."""
        try:
            raw = self._store.get(pointer)
        except ContentStoreError as exc:
            raise MetadataUnavailable(pointer, str(exc)) from exc
        try:
            return MetadataRecord.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            raise MetadataUnavailable(pointer, f"not a metadata record ({exc})") from exc
