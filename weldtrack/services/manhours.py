"""Manhour weights from nominal pipe size.

A component's share of the project manhour budget is proportional to its
weight. Weight grows with diameter as ``diameter ** 1.5``; reducers use the
mean of both ends and pipe measured in linear feet is scaled by
``linear_feet * 0.1``. Components without a usable size get a fixed weight.
"""
import math
import re
from dataclasses import dataclass, field
from typing import Dict, Hashable, Optional

BASIS_DIMENSION = 'dimension'
BASIS_FIXED = 'fixed'
BASIS_LINEAR_FEET = 'linear_feet'

SIZE_EXPONENT = 1.5
LINEAR_FEET_FACTOR = 0.1
FIXED_WEIGHT = 0.5
FIXED_WEIGHT_THREADED = 1.0
ALLOCATION_PRECISION = 4

_NUMBER_RE = re.compile(r'^\d+(\.\d+)?$')
_FRACTION_RE = re.compile(r'^(\d+)/(\d+)$')
_MIXED_RE = re.compile(r'^(\d+)\s+(\d+)/(\d+)$')


@dataclass(frozen=True)
class ParsedSize:
    """Nominal size read from a SIZE value.

    ``diameter`` is None when the value carries no usable size. For a
    reducer it is the mean of both ends and ``second_diameter`` holds the
    second end.
    """
    raw: str
    diameter: Optional[float] = None
    is_reducer: bool = False
    second_diameter: Optional[float] = None


@dataclass(frozen=True)
class WeightResult:
    weight: float
    basis: str
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {'weight': self.weight, 'basis': self.basis, 'metadata': self.metadata}


def _single_size(text: str) -> Optional[float]:
    text = text.strip()
    if _NUMBER_RE.match(text):
        return float(text)
    match = _FRACTION_RE.match(text)
    if match:
        denominator = int(match.group(2))
        if denominator == 0:
            return None
        return int(match.group(1)) / denominator
    return None


def parse_size(raw: str) -> ParsedSize:
    """Parse integers, decimals, fractions, ``AxB`` reducers and HALF/NOSIZE."""
    text = (raw or '').strip()
    upper = text.upper()
    if not text or upper == 'NOSIZE':
        return ParsedSize(raw=raw)
    if upper == 'HALF':
        return ParsedSize(raw=raw, diameter=0.5)

    if 'X' in upper:
        parts = re.split(r'\s*X\s*', upper)
        if len(parts) != 2:
            return ParsedSize(raw=raw)
        first, second = (_single_size(p) for p in parts)
        if first is None or second is None:
            return ParsedSize(raw=raw)
        return ParsedSize(raw=raw, diameter=(first + second) / 2,
                          is_reducer=True, second_diameter=second)

    return ParsedSize(raw=raw, diameter=_single_size(text))


def clean_size(size: str) -> Optional[str]:
    """Normalise spreadsheet spellings before parsing.

    Drops inch marks, closes up ``1 / 2``, turns mixed numbers such as
    ``1 1/2`` into decimals and tightens ``2 X 4``. Returns None for a
    reducer missing one of its ends.
    """
    text = size.strip().replace('"', '')
    text = re.sub(r'\s*/\s*', '/', text)
    mixed = _MIXED_RE.match(text)
    if mixed and int(mixed.group(3)) != 0:
        text = str(int(mixed.group(1)) + int(mixed.group(2)) / int(mixed.group(3)))
    text = re.sub(r'\s*[Xx]\s*', 'X', text)
    if 'X' in text:
        parts = text.split('X')
        if len(parts) != 2 or not all(p.strip() for p in parts):
            return None
    return text


def uses_linear_feet(component_type: str) -> bool:
    upper = (component_type or '').upper()
    return 'THREADED' in upper or upper == 'PIPE'


def fallback_weight(component_type: str) -> float:
    return FIXED_WEIGHT_THREADED if 'THREADED' in (component_type or '').upper() else FIXED_WEIGHT


def _linear_feet(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def calculate_weight(identity_key: dict, component_type: str) -> WeightResult:
    """Manhour weight of one component from its SIZE and LINEAR_FEET keys."""
    key = identity_key or {}
    fixed = fallback_weight(component_type)

    if 'size' not in key and 'SIZE' not in key:
        return WeightResult(fixed, BASIS_FIXED, {'reason': 'no_size_field'})
    size = key['size'] if 'size' in key else key['SIZE']
    if size is None:
        return WeightResult(fixed, BASIS_FIXED, {'reason': 'null_size'})
    if isinstance(size, bool) or not isinstance(size, (str, int, float)):
        return WeightResult(fixed, BASIS_FIXED, {'reason': 'invalid_size_type'})
    size = str(size)
    if not size.strip():
        return WeightResult(fixed, BASIS_FIXED, {'reason': 'empty_size'})

    cleaned = clean_size(size)
    parsed = parse_size(cleaned) if cleaned is not None else None
    if parsed is None or parsed.diameter is None or parsed.diameter <= 0:
        return WeightResult(fixed, BASIS_FIXED, {'reason': 'unparseable_size', 'size': size})

    diameter = parsed.diameter
    base = math.pow(diameter, SIZE_EXPONENT)

    raw_feet = key.get('linear_feet', key.get('LINEAR_FEET'))
    if uses_linear_feet(component_type) and raw_feet is not None:
        feet = _linear_feet(raw_feet)
        if feet is None or not math.isfinite(feet) or feet < 0:
            return WeightResult(base, BASIS_DIMENSION, {
                'reason': 'invalid_linear_feet', 'linear_feet': raw_feet, 'diameter': diameter,
            })
        return WeightResult(base * feet * LINEAR_FEET_FACTOR, BASIS_LINEAR_FEET,
                            {'diameter': diameter, 'linear_feet': feet})

    if parsed.is_reducer:
        return WeightResult(base, BASIS_DIMENSION, {
            'diameter1': diameter * 2 - parsed.second_diameter,
            'diameter2': parsed.second_diameter,
            'average_diameter': diameter,
        })
    return WeightResult(base, BASIS_DIMENSION, {'diameter': diameter})


def distribute_budget(weights: Dict[Hashable, float], total_manhours: float) -> Dict[Hashable, float]:
    """Split ``total_manhours`` across ``weights`` proportionally.

    Raises ValueError when the weights sum to zero.
    """
    total_weight = sum(weights.values())
    if total_weight <= 0:
        raise ValueError('Sum of component weights is zero')
    return {
        key: round(weight / total_weight * total_manhours, ALLOCATION_PRECISION)
        for key, weight in weights.items()
    }
