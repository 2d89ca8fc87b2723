"""Test package acceptance workflow.

A submitted package walks through seven acceptance stages in order. A
stage may be completed (with stage data and the required sign-offs) or
skipped (with a reason); either unlocks the next stage.
"""
from typing import Dict, List, Optional

STAGE_NOT_STARTED = 'not_started'
STAGE_IN_PROGRESS = 'in_progress'
STAGE_COMPLETED = 'completed'
STAGE_SKIPPED = 'skipped'

STAGE_STATUSES = [STAGE_NOT_STARTED, STAGE_IN_PROGRESS, STAGE_COMPLETED, STAGE_SKIPPED]

STAGE_STATUS_LABELS = {
    STAGE_NOT_STARTED: 'Not Started',
    STAGE_IN_PROGRESS: 'In Progress',
    STAGE_COMPLETED: 'Completed',
    STAGE_SKIPPED: 'Skipped',
}

SIGNOFF_QC_REP = 'qc_rep'
SIGNOFF_CLIENT_REP = 'client_rep'
SIGNOFF_MFG_REP = 'mfg_rep'

SIGNOFF_TYPES = [SIGNOFF_QC_REP, SIGNOFF_CLIENT_REP, SIGNOFF_MFG_REP]

SIGNOFF_LABELS = {
    SIGNOFF_QC_REP: 'QC Representative',
    SIGNOFF_CLIENT_REP: 'Client Representative',
    SIGNOFF_MFG_REP: 'MFG Representative',
}

WORKFLOW_STAGES = [
    {
        'key': 'pre_hydro',
        'name': 'Pre-Hydro Acceptance',
        'order': 1,
        'fields': ['inspector', 'nde_complete'],
        'required_signoffs': [SIGNOFF_QC_REP],
    },
    {
        'key': 'test_acceptance',
        'name': 'Test Acceptance',
        'order': 2,
        'fields': ['gauge_numbers', 'calibration_dates', 'time_held'],
        'required_signoffs': [SIGNOFF_QC_REP, SIGNOFF_CLIENT_REP],
    },
    {
        'key': 'drain_flush',
        'name': 'Drain/Flush Acceptance',
        'order': 3,
        'fields': ['drain_date', 'flush_date'],
        'required_signoffs': [SIGNOFF_QC_REP],
    },
    {
        'key': 'post_hydro',
        'name': 'Post-Hydro Acceptance',
        'order': 4,
        'fields': ['inspection_date', 'defects_found', 'defect_description'],
        'required_signoffs': [SIGNOFF_QC_REP],
    },
    {
        'key': 'protective_coatings',
        'name': 'Protective Coatings Acceptance',
        'order': 5,
        'fields': ['coating_type', 'application_date', 'cure_date'],
        'required_signoffs': [SIGNOFF_QC_REP],
    },
    {
        'key': 'insulation',
        'name': 'Insulation Acceptance',
        'order': 6,
        'fields': ['insulation_type', 'installation_date'],
        'required_signoffs': [SIGNOFF_QC_REP],
    },
    {
        'key': 'final_acceptance',
        'name': 'Final Package Acceptance',
        'order': 7,
        'fields': ['final_notes'],
        'required_signoffs': [SIGNOFF_QC_REP, SIGNOFF_CLIENT_REP, SIGNOFF_MFG_REP],
    },
]

TOTAL_STAGES = len(WORKFLOW_STAGES)

_STAGES_BY_NAME = {s['name']: s for s in WORKFLOW_STAGES}


def get_stage_config(stage_name: str) -> dict:
    """Return the stage definition for ``stage_name``; KeyError if unknown."""
    return _STAGES_BY_NAME[stage_name]


def _status(stage) -> str:
    return stage['status'] if isinstance(stage, dict) else stage.status


def _order(stage) -> int:
    return stage['stage_order'] if isinstance(stage, dict) else stage.stage_order


def is_finished(status: str) -> bool:
    return status in (STAGE_COMPLETED, STAGE_SKIPPED)


def is_stage_available(stages, stage_order: int) -> bool:
    """A stage is open once the stage before it is completed or skipped.

    ``stages`` may be model instances or dicts with ``stage_order`` and
    ``status`` keys.
    """
    if stage_order <= 1:
        return True
    for stage in stages:
        if _order(stage) == stage_order - 1:
            return is_finished(_status(stage))
    return False


def missing_signoffs(stage_name: str, signoffs: Optional[Dict[str, dict]]) -> List[str]:
    """Required sign-off types not present (or unnamed) in ``signoffs``."""
    signoffs = signoffs or {}
    missing = []
    for signoff_type in get_stage_config(stage_name)['required_signoffs']:
        entry = signoffs.get(signoff_type)
        if not entry or not str(entry.get('name') or '').strip():
            missing.append(signoff_type)
    return missing


def missing_signoffs_message(missing: List[str]) -> str:
    labels = [SIGNOFF_LABELS.get(s, s) for s in missing]
    if len(labels) == 1:
        return f'{labels[0]} sign-off is required'
    return f'{" and ".join(labels)} sign-offs are required'


def get_workflow_progress(stages) -> dict:
    """Summarise a package workflow for display."""
    ordered = sorted(stages, key=_order)
    completed = sum(1 for s in ordered if _status(s) == STAGE_COMPLETED)
    skipped = sum(1 for s in ordered if _status(s) == STAGE_SKIPPED)

    current = None
    for stage in ordered:
        if not is_finished(_status(stage)):
            current = _order(stage)
            break

    return {
        'total_stages': TOTAL_STAGES,
        'completed_stages': completed,
        'skipped_stages': skipped,
        'current_stage': current,
        'percent_complete': round(completed / TOTAL_STAGES * 100),
        'can_proceed': current is not None and is_stage_available(ordered, current),
    }
