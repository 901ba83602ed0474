from __future__ import annotations

from typing import Any

from civicops.domain.model import FactType, RawFact

VENDOR_ID = "EIN:12-3456789"
AGENCY_ID = "Agency:AG1"


def contract(entity_id: str, agency_id: str, amount: float | None = None, **extra: Any) -> RawFact:
    payload: dict[str, Any] = {"agency_id": agency_id, **extra}
    if amount is not None:
        payload["amount"] = amount
    return RawFact(entity_id=entity_id, fact_type=FactType.CONTRACT, payload=payload)


def donation(
    entity_id: str, recipient_id: str, amount: float | None = None, **extra: Any
) -> RawFact:
    payload: dict[str, Any] = {"recipient_id": recipient_id, **extra}
    if amount is not None:
        payload["amount"] = amount
    return RawFact(entity_id=entity_id, fact_type=FactType.DONATION, payload=payload)


def funded_by(entity_id: str, funder_id: str, amount: float | None = None, **extra: Any) -> RawFact:
    payload: dict[str, Any] = {"funder_id": funder_id, **extra}
    if amount is not None:
        payload["amount"] = amount
    return RawFact(entity_id=entity_id, fact_type=FactType.FUNDED_BY, payload=payload)


def officer_of(entity_id: str, organization_id: str, **extra: Any) -> RawFact:
    return RawFact(
        entity_id=entity_id,
        fact_type=FactType.OFFICER_OF,
        payload={"organization_id": organization_id, **extra},
    )


def scenario_a_facts() -> list[RawFact]:
    return [
        contract(VENDOR_ID, AGENCY_ID, 500_000),
        donation(VENDOR_ID, AGENCY_ID, 5_000),
    ]


def circular_facts() -> list[RawFact]:
    """Four facts forming vendor -> agency -> ngo -> person -> vendor."""

    return [
        contract("EIN:11-1111111", "Agency:AG1", 250_000),
        funded_by("Agency:AG1", "NGO:N1", 40_000, entity_type="Agency"),
        officer_of("NGO:N1", "FEC_ID:P1", entity_type="NGO", organization_type="Individual"),
        donation("FEC_ID:P1", "EIN:11-1111111", 2_500, recipient_type="Vendor"),
    ]
