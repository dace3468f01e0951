"""Tests for the Pydantic data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from proofvault.models import (
    IN_FLIGHT_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    LedgerLookup,
    LifecycleState,
    MetadataAttribute,
    MetadataRecord,
    MintOutcome,
    SessionContext,
    TraitTag,
    ZERO_ADDRESS,
)


class TestLifecycleTable:
    def test_idle_only_starts_publishing(self):
        assert VALID_TRANSITIONS[LifecycleState.IDLE] == {LifecycleState.PUBLISHING_METADATA}

    def test_every_in_flight_state_can_fail(self):
        for state in IN_FLIGHT_STATES:
            assert LifecycleState.FAILED in VALID_TRANSITIONS[state]

    def test_terminal_states_only_reset(self):
        for state in TERMINAL_STATES:
            assert VALID_TRANSITIONS[state] == {LifecycleState.IDLE}

    def test_no_state_skipping(self):
        assert LifecycleState.PENDING not in VALID_TRANSITIONS[LifecycleState.PUBLISHING_METADATA]
        assert LifecycleState.CONFIRMED not in VALID_TRANSITIONS[LifecycleState.PENDING]

    def test_every_state_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(LifecycleState)


class TestMintOutcome:
    def test_succeeded(self):
        outcome = MintOutcome(
            attempt_id="att-1", state=LifecycleState.CONFIRMED, identifier="0x" + "a" * 64
        )
        assert outcome.succeeded

    def test_frozen(self):
        outcome = MintOutcome(
            attempt_id="att-1", state=LifecycleState.FAILED, identifier="0x" + "a" * 64
        )
        with pytest.raises(ValidationError):
            outcome.state = LifecycleState.CONFIRMED  # type: ignore[misc]


class TestSessionContext:
    def test_generated_session_id(self):
        assert SessionContext().session_id.startswith("pv-")
        assert SessionContext().session_id != SessionContext().session_id

    def test_is_connected(self):
        assert not SessionContext().is_connected
        assert SessionContext(acting_address="0xabc").is_connected


class TestLedgerLookup:
    def test_not_found_defaults(self):
        lookup = LedgerLookup.not_found("0x" + "b" * 64)
        assert lookup.exists is False
        assert lookup.token_id == 0
        assert lookup.owner_address == ZERO_ADDRESS
        assert lookup.metadata_pointer == ""


class TestMetadataRecord:
    def test_display_name_prefers_subject_trait(self):
        record = MetadataRecord(
            name="Diploma Proof - X",
            attributes=[MetadataAttribute(trait_type="Student Name", value="Grace Hopper")],
        )
        assert record.display_name == "Grace Hopper"

    def test_display_name_falls_back_to_name(self):
        record = MetadataRecord(
            name="Certificate of Merit",
            attributes=[MetadataAttribute(trait_type="Student Name", value="  ")],
        )
        assert record.display_name == "Certificate of Merit"

    def test_display_name_unknown(self):
        assert MetadataRecord().display_name == "Unknown"

    def test_unknown_tags_are_skipped(self):
        record = MetadataRecord(
            attributes=[
                MetadataAttribute(trait_type="student name", value="lowercase tag"),
                MetadataAttribute(trait_type="Program", value="Physics"),
            ]
        )
        assert record.traits() == {TraitTag.PROGRAM: "Physics"}

    def test_first_value_wins_for_duplicate_tags(self):
        record = MetadataRecord(
            attributes=[
                MetadataAttribute(trait_type="Year", value="2020"),
                MetadataAttribute(trait_type="Year", value="2021"),
            ]
        )
        assert record.trait(TraitTag.YEAR) == "2020"

    def test_null_value_becomes_empty_string(self):
        assert MetadataAttribute(trait_type="Year", value=None).value == ""
