"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class NodeType(StrEnum):
    INDIVIDUAL = "Individual"
    VENDOR = "Vendor"
    NGO = "NGO"
    AGENCY = "Agency"
    PAC = "PAC"
    LEGISLATOR = "Legislator"


class Relationship(StrEnum):
    CONTRACTS = "CONTRACTS"
    DONOR = "DONOR"
    OFFICER_OF = "OFFICER_OF"
    LOBBIED = "LOBBIED"
    FUNDED_BY = "FUNDED_BY"
    AFFILIATED_WITH = "AFFILIATED_WITH"


class FactType(StrEnum):
    CONTRACT = "contract"
    DONATION = "donation"
    OFFICER_OF = "officer_of"
    LOBBIED = "lobbied"
    FUNDED_BY = "funded_by"


class RiskDimension(StrEnum):
    CONFLICT_OF_INTEREST = "conflict_of_interest"
    FINANCIAL_ANOMALY = "financial_anomaly"
    REGULATORY_VIOLATION = "regulatory_violation"
    TRANSPARENCY_GAP = "transparency_gap"
    INFLUENCE_CONCENTRATION = "influence_concentration"


class ScoringMode(StrEnum):
    HYBRID = "hybrid"
    RULES_ONLY = "rules_only"
