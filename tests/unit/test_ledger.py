"""Unit tests for the local proof ledger."""

from __future__ import annotations

from pathlib import Path

import pytest

from proofvault.bridge.ledger import LocalProofLedger, ProofLedger
from proofvault.core.errors import (
    AlreadyExists,
    MalformedIdentifier,
    NotAuthorized,
    RegistrationRejected,
)
from proofvault.models.proofs import RegistrationReceipt

ID_A = "0x" + "a" * 64
ID_B = "0x" + "b" * 64
POINTER = "ipfs://" + "c" * 64


def _mint(ledger: LocalProofLedger, owner: str, identifier: str = ID_A):
    receipt = ledger.register(owner, identifier, POINTER)
    return receipt, ledger.wait_for_receipt(receipt)


class TestAuthority:
    def test_satisfies_protocol(self, ledger: LocalProofLedger):
        assert isinstance(ledger, ProofLedger)

    def test_read_authority(self, ledger: LocalProofLedger, authority_address: str):
        assert ledger.read_authority() == authority_address

    def test_authority_is_never_replaced(self, tmp_dir: Path, authority_address: str):
        LocalProofLedger(tmp_dir / "ledger.db", authority=authority_address)
        reopened = LocalProofLedger(tmp_dir / "ledger.db", authority="0x" + "9" * 40)
        assert reopened.read_authority() == authority_address

    def test_fresh_ledger_without_authority(self, tmp_dir: Path):
        assert LocalProofLedger(tmp_dir / "bare.db").read_authority() == ""


class TestRegister:
    def test_register_then_finalize(self, ledger: LocalProofLedger, session):
        receipt, record = _mint(ledger, session.acting_address)
        assert isinstance(receipt, RegistrationReceipt)
        assert receipt.tx_id.startswith("0x")
        assert record.token_id == 1
        assert record.identifier == ID_A
        assert record.metadata_pointer == POINTER

    def test_token_ids_are_sequential(self, ledger: LocalProofLedger, session):
        _mint(ledger, session.acting_address, ID_A)
        _, second = _mint(ledger, session.acting_address, ID_B)
        assert second.token_id == 2
        assert ledger.total_supply() == 2

    def test_pending_is_invisible_to_lookup(self, ledger: LocalProofLedger, session):
        ledger.register(session.acting_address, ID_A, POINTER)
        assert ledger.lookup(ID_A).exists is False
        assert ledger.total_supply() == 0

    def test_lookup_after_finality(self, ledger: LocalProofLedger, session):
        _mint(ledger, session.acting_address)
        lookup = ledger.lookup(ID_A)
        assert lookup.exists
        assert lookup.token_id == 1
        assert lookup.owner_address == session.acting_address
        assert lookup.metadata_pointer == POINTER

    def test_duplicate_is_already_exists(self, ledger: LocalProofLedger, session):
        _mint(ledger, session.acting_address)
        with pytest.raises(AlreadyExists) as exc_info:
            ledger.register(session.acting_address, ID_A, POINTER)
        assert exc_info.value.token_id == 1
        assert exc_info.value.code == "AlreadyExists"
        assert isinstance(exc_info.value, RegistrationRejected)

    def test_pending_registration_is_superseded(self, ledger: LocalProofLedger, session):
        stale = ledger.register(session.acting_address, ID_A, POINTER)
        retry = ledger.register(session.acting_address, ID_A, "ipfs://" + "d" * 64)
        assert retry.tx_id != stale.tx_id

        record = ledger.wait_for_receipt(retry)
        assert record.token_id == 1
        assert record.metadata_pointer == "ipfs://" + "d" * 64
        assert ledger.lookup(ID_A).exists
        assert ledger.total_supply() == 1

    def test_superseded_transaction_no_longer_resolves(
        self, ledger: LocalProofLedger, session
    ):
        stale = ledger.register(session.acting_address, ID_A, POINTER)
        ledger.register(session.acting_address, ID_A, POINTER)
        with pytest.raises(RegistrationRejected, match="unknown transaction"):
            ledger.wait_for_receipt(stale)
        assert ledger.events(ID_A) == []

    def test_outsider_not_authorized(self, ledger: LocalProofLedger, outsider_session):
        with pytest.raises(NotAuthorized) as exc_info:
            ledger.register(outsider_session.acting_address, ID_A, POINTER)
        assert exc_info.value.expected == ledger.read_authority()

    def test_no_authority_nobody_registers(self, tmp_dir: Path, session):
        with pytest.raises(NotAuthorized):
            LocalProofLedger(tmp_dir / "bare.db").register(
                session.acting_address, ID_A, POINTER
            )

    @pytest.mark.parametrize("bad", ["0xab", "a" * 64, "0x" + "A" * 64])
    def test_non_canonical_identifier(self, ledger: LocalProofLedger, session, bad: str):
        with pytest.raises(MalformedIdentifier):
            ledger.register(session.acting_address, bad, POINTER)

    def test_pointer_required(self, ledger: LocalProofLedger, session):
        with pytest.raises(RegistrationRejected, match="pointer"):
            ledger.register(session.acting_address, ID_A, "")

    def test_unknown_transaction(self, ledger: LocalProofLedger, session):
        receipt = RegistrationReceipt(
            tx_id="0xdead", identifier=ID_A, owner_address=session.acting_address,
            metadata_pointer=POINTER,
        )
        with pytest.raises(RegistrationRejected, match="unknown transaction"):
            ledger.wait_for_receipt(receipt)


class TestEvents:
    def test_event_emitted_once_per_registration(self, ledger: LocalProofLedger, session):
        receipt, _ = _mint(ledger, session.acting_address)
        ledger.wait_for_receipt(receipt)
        events = ledger.events()
        assert len(events) == 1
        event = events[0]
        assert event.token_id == 1
        assert event.identifier == ID_A
        assert event.owner_address == session.acting_address
        assert event.metadata_pointer == POINTER
        assert event.tx_id == receipt.tx_id
        assert event.timestamp > 0

    def test_events_filtered_by_identifier(self, ledger: LocalProofLedger, session):
        _mint(ledger, session.acting_address, ID_A)
        _mint(ledger, session.acting_address, ID_B)
        assert [e.identifier for e in ledger.events(ID_B)] == [ID_B]

    def test_event_chain_links(self, ledger: LocalProofLedger, session):
        _mint(ledger, session.acting_address, ID_A)
        _mint(ledger, session.acting_address, ID_B)
        first, second = ledger.events()
        assert first.previous_event_hash == ""
        assert second.previous_event_hash == first.event_hash
        assert ledger.verify_events() is True
