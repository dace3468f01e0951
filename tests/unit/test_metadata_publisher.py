"""Unit tests for metadata record construction, publishing and resolution."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from proofvault.bridge.content_store import LocalContentStore
from proofvault.core.errors import MetadataUnavailable, PublishUnavailable
from proofvault.core.metadata_publisher import (
    MetadataPublisher,
    MetadataResolver,
    build_metadata_record,
)
from proofvault.models.metadata import (
    TRAIT_ORDER,
    MetadataRecord,
    SubjectAttributes,
    TraitTag,
)

ISSUED = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestBuildMetadataRecord:
    def test_erc721_shape(self, digest: str, attributes: SubjectAttributes):
        record = build_metadata_record(
            digest, attributes, issued_at=ISSUED, external_url="https://projectvault.io"
        )
        assert record.name == "Diploma Proof - Ada Lovelace"
        assert record.description == "Verifiable diploma proof for Ada Lovelace"
        assert record.image == ""
        assert record.external_url == "https://projectvault.io"
        assert [a.trait_type for a in record.attributes] == [t.value for t in TRAIT_ORDER]

    def test_traits_carry_caller_fields(self, digest: str, attributes: SubjectAttributes):
        traits = build_metadata_record(digest, attributes, issued_at=ISSUED).traits()
        assert traits[TraitTag.SUBJECT_NAME] == "Ada Lovelace"
        assert traits[TraitTag.SUBJECT_ID] == "S-1815"
        assert traits[TraitTag.PROGRAM] == "Analytical Engines"
        assert traits[TraitTag.YEAR] == "1843"
        assert traits[TraitTag.FILE_HASH] == digest
        assert traits[TraitTag.FILE_NAME] == "diploma.pdf"
        assert traits[TraitTag.ISSUED_AT] == ISSUED.isoformat()

    def test_missing_fields_are_empty_strings(self, digest: str):
        record = build_metadata_record(digest, SubjectAttributes(), issued_at=ISSUED)
        assert record.name == "Diploma Proof - Unknown"
        for attr in record.attributes:
            assert attr.value is not None
        assert record.trait(TraitTag.PROGRAM) == ""

    def test_deterministic_for_same_inputs(self, digest: str, attributes: SubjectAttributes):
        a = build_metadata_record(digest, attributes, issued_at=ISSUED)
        b = build_metadata_record(digest, attributes, issued_at=ISSUED)
        assert a == b


class TestMetadataPublisher:
    def test_publish_returns_pointer_to_record(
        self,
        publisher: MetadataPublisher,
        content_store: LocalContentStore,
        digest: str,
        attributes: SubjectAttributes,
    ):
        pointer = publisher.publish(digest, attributes, issued_at=ISSUED)
        assert pointer.startswith("ipfs://")
        stored = json.loads(content_store.get(pointer))
        assert stored["name"] == "Diploma Proof - Ada Lovelace"
        assert stored["external_url"] == "https://projectvault.io"

    def test_same_record_same_pointer(
        self, publisher: MetadataPublisher, digest: str, attributes: SubjectAttributes
    ):
        first = publisher.publish(digest, attributes, issued_at=ISSUED)
        assert publisher.publish(digest, attributes, issued_at=ISSUED) == first

    def test_store_failure_is_publish_unavailable(
        self, failing_store, digest: str, attributes: SubjectAttributes
    ):
        with pytest.raises(PublishUnavailable) as exc_info:
            MetadataPublisher(failing_store).publish(digest, attributes)
        assert exc_info.value.code == "PublishUnavailable"
        assert exc_info.value.pointer_scheme == "ipfs"
        assert "unreachable" in str(exc_info.value)


class TestMetadataResolver:
    def test_resolves_published_record(
        self,
        publisher: MetadataPublisher,
        resolver: MetadataResolver,
        digest: str,
        attributes: SubjectAttributes,
    ):
        pointer = publisher.publish(digest, attributes, issued_at=ISSUED)
        record = resolver.resolve(pointer)
        assert isinstance(record, MetadataRecord)
        assert record.display_name == "Ada Lovelace"

    def test_gateway_url(self, resolver: MetadataResolver):
        assert resolver.gateway_url_for("ipfs://QmAbc") == "https://ipfs.io/ipfs/QmAbc"
        assert resolver.gateway_url_for("") == ""

    def test_unreachable_store(self, failing_store):
        with pytest.raises(MetadataUnavailable) as exc_info:
            MetadataResolver(failing_store).resolve("ipfs://QmAbc")
        assert exc_info.value.pointer == "ipfs://QmAbc"

    def test_non_json_record(self, content_store: LocalContentStore, resolver: MetadataResolver):
        pointer = content_store.put(b"not json at all")
        with pytest.raises(MetadataUnavailable, match="not a metadata record"):
            resolver.resolve(pointer)

    def test_wrong_shape_record(
        self, content_store: LocalContentStore, resolver: MetadataResolver
    ):
        pointer = content_store.put(json.dumps({"attributes": "nope"}).encode())
        with pytest.raises(MetadataUnavailable):
            resolver.resolve(pointer)

    def test_third_party_record_with_numeric_values(
        self, content_store: LocalContentStore, resolver: MetadataResolver
    ):
        body = {
            "name": "Certificate",
            "attributes": [
                {"trait_type": "Year", "value": 2021},
                {"trait_type": "Colour", "value": "blue"},
            ],
        }
        record = resolver.resolve(content_store.put(json.dumps(body).encode()))
        assert record.trait(TraitTag.YEAR) == "2021"
        assert record.display_name == "Certificate"
