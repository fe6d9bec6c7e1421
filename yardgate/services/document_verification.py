"""
Document Verification

Decides whether the three mandatory truck documents (driving license,
permit, insurance) let the truck through step 1 of gate processing.

A document is valid when its validity date is strictly later than "now".
Each mandatory document can instead be exceptionally approved by an
administrator. The pollution certificate is recorded but never gating.

All functions are pure; callers pass ``now`` explicitly.
"""

from datetime import datetime, date, time, timezone
from typing import Dict, List, Optional

from yardgate.schemas.processing import (
    DocumentCheck,
    DocumentType,
    MANDATORY_DOCUMENTS,
    ProcessingDraft,
)


def parse_validity_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO date or datetime string into an aware UTC datetime.

    A bare date means midnight UTC of that day. Returns None for empty or
    malformed input.
    """
    if not value or not value.strip():
        return None
    text = value.strip()
    try:
        if len(text) == 10:
            parsed = datetime.combine(date.fromisoformat(text), time.min)
        else:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_valid(valid_until: Optional[str], now: datetime) -> bool:
    """True when the date is present, well-formed and strictly in the future. No grace period."""
    parsed = parse_validity_date(valid_until)
    if parsed is None:
        return False
    return parsed > now


def _mandatory(documents: Dict[str, DocumentCheck]) -> List[tuple]:
    return [
        (doc_type, documents.get(doc_type.value, DocumentCheck()))
        for doc_type in MANDATORY_DOCUMENTS
    ]


def all_documents_valid(documents: Dict[str, DocumentCheck], now: datetime) -> bool:
    return all(is_valid(check.valid_until, now) for _, check in _mandatory(documents))


def documents_verified(documents: Dict[str, DocumentCheck], now: datetime) -> bool:
    """Every mandatory document is valid or individually exceptionally approved."""
    return all(
        is_valid(check.valid_until, now) or check.exceptionally_approved
        for _, check in _mandatory(documents)
    )


def blocking_documents(documents: Dict[str, DocumentCheck], now: datetime) -> List[DocumentType]:
    """Mandatory documents that are neither valid nor exceptionally approved."""
    return [
        doc_type
        for doc_type, check in _mandatory(documents)
        if not is_valid(check.valid_until, now) and not check.exceptionally_approved
    ]


def needs_approval(documents: Dict[str, DocumentCheck], now: datetime) -> bool:
    """Whether "Send for Approval" is offered."""
    return bool(blocking_documents(documents, now))


def recompute(draft: ProcessingDraft, now: datetime) -> ProcessingDraft:
    """Refresh per-document ``verified`` flags and both aggregates in place."""
    for doc_type in DocumentType:
        check = draft.document(doc_type)
        check.verified = is_valid(check.valid_until, now)
    draft.all_documents_are_valid = all_documents_valid(draft.documents, now)
    draft.documents_verified = documents_verified(draft.documents, now)
    return draft
