"""
Attribute Decoder: bonus equipment from the vehicle identifier.

The heuristic decoder is a placeholder business rule, not a standards-based
VIN decode: each feature is flagged when any of its marker characters occurs
anywhere in the identifier (case-insensitive). A real VIN-API integration can
replace it by implementing AttributeDecoder.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from app.schemas.valuation_response import DetectedFeature

MAX_DETECTED_FEATURES = 3
MIN_IDENTIFIER_LENGTH = 10


@dataclass(frozen=True)
class FeatureRule:
    name: str
    value: int
    markers: str


# Evaluated in this order; only the first MAX_DETECTED_FEATURES matches count.
FEATURE_RULES: tuple[FeatureRule, ...] = (
    FeatureRule("Luxury Package", 2_500, "LX"),
    FeatureRule("Sport Package", 1_800, "SM"),
    FeatureRule("Navigation System", 1_200, "NG"),
    FeatureRule("Premium Audio", 800, "PH"),
    FeatureRule("Sunroof/Panoramic Roof", 1_500, "RT"),
    FeatureRule("All-Wheel Drive", 3_000, "4W"),
)


class AttributeDecoder(Protocol):
    def detect(self, identifier: Optional[str]) -> list[DetectedFeature]: ...


class HeuristicVinDecoder:
    def __init__(self, rules: Sequence[FeatureRule] = FEATURE_RULES, limit: int = MAX_DETECTED_FEATURES) -> None:
        self.rules = tuple(rules)
        self.limit = limit

    def detect(self, identifier: Optional[str]) -> list[DetectedFeature]:
        if not identifier or len(identifier) < MIN_IDENTIFIER_LENGTH:
            return []

        upper = identifier.upper()
        detected: list[DetectedFeature] = []
        for rule in self.rules:
            if any(marker in upper for marker in rule.markers):
                detected.append(DetectedFeature(name=rule.name, value=rule.value))
                if len(detected) == self.limit:
                    break
        return detected
