"""Column mapping and row validation for component spreadsheet imports.

Columns are matched to the expected fields in three tiers: exact name,
case-insensitive name, then a known synonym. Trailing marker characters
such as ``DRAWING*`` are ignored when matching.

Each row is then classified:

* ``valid``: will be imported
* ``skipped``: a warning only (unsupported type, zero quantity)
* ``error``: blocks the whole import (missing field, bad quantity,
  duplicate identity)
"""
import math
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from weldtrack.models.drawing import normalize_drawing_number

from .progress import COMPONENT_TYPES

FIELD_DRAWING = 'DRAWING'
FIELD_TYPE = 'TYPE'
FIELD_QTY = 'QTY'
FIELD_CMDTY_CODE = 'CMDTY CODE'
FIELD_SIZE = 'SIZE'
FIELD_SPEC = 'SPEC'
FIELD_DESCRIPTION = 'DESCRIPTION'
FIELD_COMMENTS = 'COMMENTS'
FIELD_AREA = 'AREA'
FIELD_SYSTEM = 'SYSTEM'
FIELD_TEST_PACKAGE = 'TEST_PACKAGE'

REQUIRED_FIELDS = [FIELD_DRAWING, FIELD_TYPE, FIELD_QTY, FIELD_CMDTY_CODE]
OPTIONAL_FIELDS = [
    FIELD_SIZE, FIELD_SPEC, FIELD_DESCRIPTION, FIELD_COMMENTS,
    FIELD_AREA, FIELD_SYSTEM, FIELD_TEST_PACKAGE,
]
EXPECTED_FIELDS = REQUIRED_FIELDS + OPTIONAL_FIELDS

SYNONYMS = {
    FIELD_DRAWING: ['DRAWINGS', 'DWG', 'DWG NO', 'DRAWING NO', 'DRAWING NUMBER', 'ISO', 'ISOMETRIC'],
    FIELD_TYPE: ['COMPONENT TYPE', 'COMP TYPE', 'ITEM TYPE'],
    FIELD_QTY: ['QUANTITY', 'COUNT'],
    FIELD_CMDTY_CODE: ['CMDTY', 'CMDTY_CODE', 'COMMODITY CODE', 'COMMODITY'],
    FIELD_SIZE: ['NPS', 'NOMINAL SIZE', 'DIAMETER'],
    FIELD_SPEC: ['SPECIFICATION', 'PIPE SPEC'],
    FIELD_DESCRIPTION: ['DESC'],
    FIELD_COMMENTS: ['COMMENT', 'NOTES', 'REMARKS'],
    FIELD_AREA: ['AREA NAME'],
    FIELD_SYSTEM: ['SYSTEM NAME'],
    FIELD_TEST_PACKAGE: ['TEST PACKAGE', 'TEST PKG', 'PACKAGE', 'TP'],
}

TIER_EXACT = 'exact'
TIER_CASE_INSENSITIVE = 'case-insensitive'
TIER_SYNONYM = 'synonym'

TIER_CONFIDENCE = {
    TIER_EXACT: 100,
    TIER_CASE_INSENSITIVE: 95,
    TIER_SYNONYM: 85,
}

STATUS_VALID = 'valid'
STATUS_SKIPPED = 'skipped'
STATUS_ERROR = 'error'
ROW_STATUSES = [STATUS_VALID, STATUS_SKIPPED, STATUS_ERROR]

CATEGORY_EMPTY_DRAWING = 'empty_drawing'
CATEGORY_MISSING_FIELD = 'missing_required_field'
CATEGORY_INVALID_QUANTITY = 'invalid_quantity'
CATEGORY_ZERO_QUANTITY = 'zero_quantity'
CATEGORY_UNSUPPORTED_TYPE = 'unsupported_type'
CATEGORY_DUPLICATE = 'duplicate_identity_key'

# Field welds come in through the weld register, not the component list.
IMPORTABLE_TYPES = [t for t in COMPONENT_TYPES if t != 'field_weld']

# Threaded pipe rows repeat per run; their footage is summed instead.
AGGREGATE_TYPES = ['threaded_pipe']

_MARKERS_RE = re.compile(r'[*+!#]+$')


def _clean_column(name) -> str:
    return _MARKERS_RE.sub('', str(name or '').strip()).strip()


def _match_tier(column: str, expected: str) -> Optional[str]:
    if not column:
        return None
    if column == expected:
        return TIER_EXACT
    if column.upper() == expected:
        return TIER_CASE_INSENSITIVE
    if column.upper() in SYNONYMS.get(expected, ()):
        return TIER_SYNONYM
    return None


@dataclass(frozen=True)
class ColumnMapping:
    csv_column: str
    expected_field: str
    confidence: int
    match_tier: str

    def to_dict(self) -> dict:
        return {
            'csv_column': self.csv_column,
            'expected_field': self.expected_field,
            'confidence': self.confidence,
            'match_tier': self.match_tier,
        }


@dataclass
class ColumnMappingResult:
    mappings: List[ColumnMapping]
    unmapped_columns: List[str]
    missing_required_fields: List[str]

    @property
    def has_all_required_fields(self) -> bool:
        return not self.missing_required_fields

    @property
    def lookup(self) -> Dict[str, str]:
        """CSV column name to expected field."""
        return {m.csv_column: m.expected_field for m in self.mappings}

    def to_dict(self) -> dict:
        return {
            'mappings': [m.to_dict() for m in self.mappings],
            'unmapped_columns': self.unmapped_columns,
            'missing_required_fields': self.missing_required_fields,
            'has_all_required_fields': self.has_all_required_fields,
        }


def map_columns(columns: Iterable[str]) -> ColumnMappingResult:
    """Map CSV headers to expected fields, best tier first."""
    columns = list(columns)
    mapped = {}  # expected field -> ColumnMapping
    used = set()
    for tier, confidence in TIER_CONFIDENCE.items():
        for index, column in enumerate(columns):
            if index in used:
                continue
            cleaned = _clean_column(column)
            for expected in EXPECTED_FIELDS:
                if expected not in mapped and _match_tier(cleaned, expected) == tier:
                    mapped[expected] = ColumnMapping(column, expected, confidence, tier)
                    used.add(index)
                    break

    return ColumnMappingResult(
        mappings=[mapped[f] for f in EXPECTED_FIELDS if f in mapped],
        unmapped_columns=[c for i, c in enumerate(columns) if i not in used],
        missing_required_fields=[f for f in REQUIRED_FIELDS if f not in mapped],
    )


@dataclass
class RowResult:
    row_number: int
    status: str
    reason: Optional[str] = None
    category: Optional[str] = None
    data: Optional[dict] = field(default=None)

    def to_dict(self) -> dict:
        return {
            'row_number': self.row_number,
            'status': self.status,
            'reason': self.reason,
            'category': self.category,
            'data': self.data,
        }


def normalize_size(size) -> Optional[str]:
    """``2"`` -> ``2``, ``2 x 4`` -> ``2X4``; blank is None."""
    text = str(size or '').replace('"', '').strip().upper()
    text = re.sub(r'\s*X\s*', 'X', text)
    return text or None


def identity_key(drawing_norm: str, size_norm: Optional[str], commodity_code: str,
                 component_type: str) -> str:
    return '|'.join([drawing_norm, size_norm or '', commodity_code, component_type])


def _text(row: dict, expected: str, lookup: Dict[str, str]) -> Optional[str]:
    for column, mapped in lookup.items():
        if mapped == expected:
            value = row.get(column)
            if value is None:
                return None
            value = str(value).strip()
            return value or None
    return None


def _quantity(raw: Optional[str], row_number: int):
    """Integer quantity, or the RowResult rejecting it."""
    if raw is None:
        return RowResult(row_number, STATUS_ERROR, 'Required field QTY is empty',
                         CATEGORY_MISSING_FIELD)
    try:
        qty = float(raw)
    except ValueError:
        return RowResult(row_number, STATUS_ERROR, 'QTY must be a number',
                         CATEGORY_INVALID_QUANTITY)
    if not math.isfinite(qty):
        return RowResult(row_number, STATUS_ERROR, 'QTY must be a number',
                         CATEGORY_INVALID_QUANTITY)
    if qty < 0:
        return RowResult(row_number, STATUS_ERROR, 'QTY must be >= 0', CATEGORY_INVALID_QUANTITY)
    if qty != int(qty):
        return RowResult(row_number, STATUS_ERROR, 'QTY must be an integer',
                         CATEGORY_INVALID_QUANTITY)
    return int(qty)


def _component_type(raw: str) -> Optional[str]:
    lowered = re.sub(r'\s+', '_', raw.strip().lower())
    for component_type in IMPORTABLE_TYPES:
        if component_type == lowered:
            return component_type
    return None


def validate_rows(rows: Iterable[dict], lookup: Dict[str, str]) -> List[RowResult]:
    """Classify each row; row numbers are 1-based."""
    results = []
    seen = set()
    for row_number, row in enumerate(rows, start=1):
        drawing = _text(row, FIELD_DRAWING, lookup)
        raw_type = _text(row, FIELD_TYPE, lookup)
        commodity_code = _text(row, FIELD_CMDTY_CODE, lookup)

        if drawing is None:
            results.append(RowResult(row_number, STATUS_ERROR, 'Required field DRAWING is empty',
                                     CATEGORY_EMPTY_DRAWING))
            continue
        if raw_type is None:
            results.append(RowResult(row_number, STATUS_ERROR, 'Required field TYPE is empty',
                                     CATEGORY_MISSING_FIELD))
            continue
        if commodity_code is None:
            results.append(RowResult(row_number, STATUS_ERROR,
                                     'Required field CMDTY CODE is empty', CATEGORY_MISSING_FIELD))
            continue

        qty = _quantity(_text(row, FIELD_QTY, lookup), row_number)
        if isinstance(qty, RowResult):
            results.append(qty)
            continue
        if qty == 0:
            results.append(RowResult(row_number, STATUS_SKIPPED, 'Component quantity is 0',
                                     CATEGORY_ZERO_QUANTITY))
            continue

        component_type = _component_type(raw_type)
        if component_type is None:
            results.append(RowResult(row_number, STATUS_SKIPPED,
                                     f'Unsupported component type: {raw_type}',
                                     CATEGORY_UNSUPPORTED_TYPE))
            continue

        drawing_norm = normalize_drawing_number(drawing)
        size = normalize_size(_text(row, FIELD_SIZE, lookup))
        key = identity_key(drawing_norm, size, commodity_code, component_type)
        if key in seen and component_type not in AGGREGATE_TYPES:
            results.append(RowResult(row_number, STATUS_ERROR, f'Duplicate identity key: {key}',
                                     CATEGORY_DUPLICATE))
            continue
        seen.add(key)

        results.append(RowResult(row_number, STATUS_VALID, data={
            'drawing': drawing_norm,
            'component_type': component_type,
            'qty': qty,
            'commodity_code': commodity_code,
            'size': size,
            'spec': _text(row, FIELD_SPEC, lookup),
            'description': _text(row, FIELD_DESCRIPTION, lookup),
            'comments': _text(row, FIELD_COMMENTS, lookup),
            'area': _text(row, FIELD_AREA, lookup),
            'system': _text(row, FIELD_SYSTEM, lookup),
            'test_package': _text(row, FIELD_TEST_PACKAGE, lookup),
            'unmapped_fields': {
                str(column): str(value) for column, value in row.items()
                if column not in lookup and value not in (None, '')
            },
        }))
    return results


def create_validation_summary(results: List[RowResult]) -> dict:
    """Counts per status, rows grouped by status and by category."""
    by_status = {status: [] for status in ROW_STATUSES}
    by_category = {}
    for result in results:
        by_status[result.status].append(result.to_dict())
        if result.category:
            by_category.setdefault(result.category, []).append(result.to_dict())
    return {
        'total_rows': len(results),
        'valid_count': len(by_status[STATUS_VALID]),
        'skipped_count': len(by_status[STATUS_SKIPPED]),
        'error_count': len(by_status[STATUS_ERROR]),
        'can_import': not by_status[STATUS_ERROR],
        'results_by_status': by_status,
        'results_by_category': by_category,
    }


def valid_rows(results: List[RowResult]) -> List[dict]:
    return [r.data for r in results if r.status == STATUS_VALID]


def error_details(results: List[RowResult]) -> List[dict]:
    """Row number, reason and category of each blocking row."""
    return [
        {'row_number': r.row_number, 'reason': r.reason, 'category': r.category}
        for r in results if r.status == STATUS_ERROR
    ]
