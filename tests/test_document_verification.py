import itertools
from datetime import datetime, timedelta, timezone

import pytest

from yardgate.schemas.processing import DocumentCheck, DocumentType, ProcessingDraft
from yardgate.services import document_verification as dv

NOW = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)


def _documents(license=None, permit=None, insurance=None, pollution=None, approved=()):
    values = {
        DocumentType.DRIVING_LICENSE: license,
        DocumentType.PERMIT: permit,
        DocumentType.INSURANCE: insurance,
        DocumentType.POLLUTION: pollution,
    }
    return {
        doc_type.value: DocumentCheck(valid_until=value, exceptionally_approved=doc_type in approved)
        for doc_type, value in values.items()
    }


def test_parse_bare_date_is_midnight_utc():
    assert dv.parse_validity_date("2026-10-20") == datetime(2026, 10, 20, tzinfo=timezone.utc)


def test_parse_datetime_with_zulu_suffix():
    assert dv.parse_validity_date("2026-10-20T10:30:00Z") == datetime(2026, 10, 20, 10, 30, tzinfo=timezone.utc)


def test_parse_rejects_empty_and_malformed():
    assert dv.parse_validity_date(None) is None
    assert dv.parse_validity_date("   ") is None
    assert dv.parse_validity_date("31/12/2026") is None
    assert dv.parse_validity_date("not-a-date") is None


def test_validity_is_strictly_after_now():
    assert dv.is_valid((NOW + timedelta(seconds=1)).isoformat(), NOW) is True
    assert dv.is_valid(NOW.isoformat(), NOW) is False
    assert dv.is_valid((NOW - timedelta(days=1)).isoformat(), NOW) is False
    assert dv.is_valid(None, NOW) is False


def test_document_expiring_today_is_already_invalid():
    # Bare date = midnight, which is before 08:00 "now"
    assert dv.is_valid("2026-10-19", NOW) is False
    assert dv.is_valid("2026-10-20", NOW) is True


def test_all_valid_documents_are_verified():
    docs = _documents("2027-01-01", "2027-01-01", "2027-01-01")
    assert dv.all_documents_valid(docs, NOW) is True
    assert dv.documents_verified(docs, NOW) is True
    assert dv.blocking_documents(docs, NOW) == []
    assert dv.needs_approval(docs, NOW) is False


def test_pollution_certificate_never_gates():
    docs = _documents("2027-01-01", "2027-01-01", "2027-01-01", pollution="2020-01-01")
    assert dv.documents_verified(docs, NOW) is True


def test_expired_permit_blocks_until_exceptionally_approved():
    docs = _documents("2027-01-01", "2020-01-01", "2027-01-01")
    assert dv.documents_verified(docs, NOW) is False
    assert dv.blocking_documents(docs, NOW) == [DocumentType.PERMIT]

    approved = _documents("2027-01-01", "2020-01-01", "2027-01-01", approved=(DocumentType.PERMIT,))
    assert dv.all_documents_valid(approved, NOW) is False
    assert dv.documents_verified(approved, NOW) is True


def test_approval_of_one_document_does_not_cover_another():
    docs = _documents("2027-01-01", "2020-01-01", None, approved=(DocumentType.PERMIT,))
    assert dv.documents_verified(docs, NOW) is False
    assert dv.blocking_documents(docs, NOW) == [DocumentType.INSURANCE]


def test_missing_documents_are_blocking():
    assert dv.blocking_documents({}, NOW) == [
        DocumentType.DRIVING_LICENSE,
        DocumentType.PERMIT,
        DocumentType.INSURANCE,
    ]


def test_recompute_refreshes_flags_in_place():
    draft = ProcessingDraft(documents=_documents("2027-01-01", "2020-01-01", "2027-01-01"))
    draft.documents_verified = True  # stale client value
    dv.recompute(draft, NOW)

    assert draft.documents[DocumentType.DRIVING_LICENSE.value].verified is True
    assert draft.documents[DocumentType.PERMIT.value].verified is False
    assert draft.documents[DocumentType.POLLUTION.value].verified is False
    assert draft.all_documents_are_valid is False
    assert draft.documents_verified is False


def test_recompute_follows_the_clock():
    draft = ProcessingDraft(documents=_documents("2026-10-20", "2027-01-01", "2027-01-01"))
    assert dv.recompute(draft, NOW).documents_verified is True
    assert dv.recompute(draft, NOW + timedelta(days=1)).documents_verified is False


MANDATORY = (DocumentType.DRIVING_LICENSE, DocumentType.PERMIT, DocumentType.INSURANCE)


@pytest.mark.parametrize(
    "valid,approved",
    [
        (valid, approved)
        for valid in itertools.product([True, False], repeat=3)
        for approved in itertools.product([True, False], repeat=3)
    ],
)
def test_documents_verified_truth_table(valid, approved):
    dates = ["2027-01-01" if ok else "2020-01-01" for ok in valid]
    docs = _documents(
        *dates,
        approved=[doc for doc, flag in zip(MANDATORY, approved) if flag],
    )
    expected = all(ok or override for ok, override in zip(valid, approved))

    assert dv.documents_verified(docs, NOW) is expected
    assert dv.all_documents_valid(docs, NOW) is all(valid)
    assert dv.needs_approval(docs, NOW) is (not expected)
