"""Database models."""
from .project import Project, Area, System
from .drawing import Drawing, normalize_drawing_number, INHERITED_FIELDS
from .component import (
    ProgressTemplate,
    Component,
    MilestoneEvent,
    EVENT_COMPLETE, EVENT_UNCOMPLETE, EVENT_UPDATE, EVENT_ROLLBACK,
    MILESTONE_EVENT_ACTIONS, MILESTONE_EVENT_LABELS,
)
from .field_weld import (
    FieldWeld,
    FieldWeldEvent,
    Welder,
    WELD_TYPE_BUTT, WELD_TYPE_SOCKET, WELD_TYPE_FILLET, WELD_TYPE_TACK,
    WELD_TYPES, WELD_TYPE_LABELS,
    STATUS_ACTIVE, STATUS_ACCEPTED, STATUS_REJECTED,
    WELD_STATUSES, WELD_STATUS_LABELS, WELD_STATUS_BADGES,
    NDE_TYPES, NDE_TYPE_LABELS, NDE_PASS, NDE_FAIL, NDE_PENDING, NDE_RESULTS,
    WELDER_UNVERIFIED, WELDER_VERIFIED, WELDER_STATUSES, STENCIL_PATTERN,
    WELD_EVENT_ASSIGN, WELD_EVENT_UPDATE, WELD_EVENT_CLEAR,
    WELD_EVENT_NDE_RECORD, WELD_EVENT_NDE_UPDATE, WELD_EVENT_NDE_CLEAR,
    WELD_EVENT_ACTIONS, WELD_EVENT_LABELS,
)
from .test_package import (
    TestPackage,
    PackageCertificate,
    PackageWorkflowStage,
    TEST_TYPES, TEST_TYPE_LABELS,
    PRESSURE_UNITS, TEMPERATURE_UNITS,
    CERTIFICATE_DRAFT, CERTIFICATE_SUBMITTED, CERTIFICATE_STATUSES,
)
from .manhour_budget import ManhourBudget
from .audit_log import AuditLog, ACTION_LABELS

__all__ = [
    # Project structure
    'Project', 'Area', 'System',
    'Drawing', 'normalize_drawing_number', 'INHERITED_FIELDS',
    # Components and progress
    'ProgressTemplate',
    'Component',
    'MilestoneEvent',
    'EVENT_COMPLETE', 'EVENT_UNCOMPLETE', 'EVENT_UPDATE', 'EVENT_ROLLBACK',
    'MILESTONE_EVENT_ACTIONS', 'MILESTONE_EVENT_LABELS',
    # Field welds
    'FieldWeld',
    'FieldWeldEvent',
    'Welder',
    'WELD_TYPE_BUTT', 'WELD_TYPE_SOCKET', 'WELD_TYPE_FILLET', 'WELD_TYPE_TACK',
    'WELD_TYPES', 'WELD_TYPE_LABELS',
    'STATUS_ACTIVE', 'STATUS_ACCEPTED', 'STATUS_REJECTED',
    'WELD_STATUSES', 'WELD_STATUS_LABELS', 'WELD_STATUS_BADGES',
    'NDE_TYPES', 'NDE_TYPE_LABELS', 'NDE_PASS', 'NDE_FAIL', 'NDE_PENDING', 'NDE_RESULTS',
    'WELDER_UNVERIFIED', 'WELDER_VERIFIED', 'WELDER_STATUSES', 'STENCIL_PATTERN',
    'WELD_EVENT_ASSIGN', 'WELD_EVENT_UPDATE', 'WELD_EVENT_CLEAR',
    'WELD_EVENT_NDE_RECORD', 'WELD_EVENT_NDE_UPDATE', 'WELD_EVENT_NDE_CLEAR',
    'WELD_EVENT_ACTIONS', 'WELD_EVENT_LABELS',
    # Test packages
    'TestPackage',
    'PackageCertificate',
    'PackageWorkflowStage',
    'TEST_TYPES', 'TEST_TYPE_LABELS',
    'PRESSURE_UNITS', 'TEMPERATURE_UNITS',
    'CERTIFICATE_DRAFT', 'CERTIFICATE_SUBMITTED', 'CERTIFICATE_STATUSES',
    # Manhours
    'ManhourBudget',
    # Audit log
    'AuditLog', 'ACTION_LABELS',
]
