"""Analyst engine: features, rules, statistical scorers, flags."""

from __future__ import annotations

from .engine import AnalystEngine, FeatureExtractor, violation_flags
from .features import GraphFeatureExtractor
from .rules import RuleScores, RuleSet, RuleThresholds
from .scorer import FixedScorer, PopulationAnomalyScorer

__all__ = [
    "AnalystEngine",
    "FeatureExtractor",
    "FixedScorer",
    "GraphFeatureExtractor",
    "PopulationAnomalyScorer",
    "RuleScores",
    "RuleSet",
    "RuleThresholds",
    "violation_flags",
]
