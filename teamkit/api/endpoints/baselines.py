"""
Patient Baseline Endpoints

Baseline measurements nested under a patient.

RBAC:
- List/view: patient_baselines:read
- Create: patient_baselines:create
- Update: patient_baselines:update
- Delete (soft): patient_baselines:delete

TENANT_ISOLATION: The parent patient is loaded through the same TeamScope
before anything else, so a patient id from another team is "Patient not
found". Baseline lookups then filter on team_id and patient_id together.
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, status

from teamkit.config import get_settings
from teamkit.models.baseline import PatientBaseline
from teamkit.models.patient import Patient
from teamkit.schemas.baseline import (
    BaselineCreate,
    BaselineDelete,
    BaselineListResponse,
    BaselineResponse,
    BaselineUpdate,
    as_naive_utc,
)
from teamkit.schemas.patient import Pagination
from teamkit.api.deps import authorize, get_audit_trail, require_feature
from teamkit.core.audit import AuditTrail
from teamkit.core.exceptions import InvalidInputError
from teamkit.core.permissions import Action, Resource
from teamkit.core.scoping import TeamScope
from teamkit.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/teams/{slug}/patients/{patient_id}/baselines",
    tags=["patient baselines"],
    dependencies=[Depends(require_feature("FEATURE_PATIENTS"))],
)

DEFAULT_DELETION_REASON = "Patient baseline archived"


def _patient_or_404(scope: TeamScope, patient_id: str) -> Patient:
    return scope.get_or_404(Patient, patient_id, Patient.live(), label="Patient")


def _baseline_criteria(patient_id: str):
    return (PatientBaseline.patient_id == patient_id, PatientBaseline.live())


@router.get("", response_model=BaselineListResponse)
async def list_baselines(
    patient_id: str,
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    scope: TeamScope = Depends(authorize(Resource.PATIENT_BASELINES, Action.READ)),
):
    """
    List a patient's baselines, latest recording first.

    start_date and end_date bound date_recorded (inclusive) and may be
    given on their own.
    """
    _patient_or_404(scope, patient_id)

    start_date, end_date = as_naive_utc(start_date), as_naive_utc(end_date)
    if start_date and end_date and start_date > end_date:
        raise InvalidInputError("start_date must not be after end_date")

    query = scope.query(PatientBaseline).filter(*_baseline_criteria(patient_id))
    if start_date:
        query = query.filter(PatientBaseline.date_recorded >= start_date)
    if end_date:
        query = query.filter(PatientBaseline.date_recorded <= end_date)

    total = query.count()
    baselines = query.order_by(PatientBaseline.date_recorded.desc()).offset(offset).limit(limit).all()

    return BaselineListResponse(
        data=[BaselineResponse.model_validate(baseline) for baseline in baselines],
        pagination=Pagination(
            total=total,
            has_more=offset + limit < total,
            limit=limit,
            offset=offset,
        )
    )


@router.post("", response_model=BaselineResponse, status_code=status.HTTP_201_CREATED)
async def create_baseline(
    patient_id: str,
    baseline_data: BaselineCreate,
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.PATIENT_BASELINES, Action.CREATE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    patient = _patient_or_404(scope, patient_id)

    baseline = scope.add(
        PatientBaseline,
        **baseline_data.model_dump(),
        patient_id=patient.id,
        created_by=scope.actor_id,
    )
    scope.db.commit()
    scope.db.refresh(baseline)

    logger.info(f"Baseline created: {baseline.id} patient={patient.id} team={scope.team_id}")
    background_tasks.add_task(audit.record, scope.decision, "patient_baseline.create")

    return baseline


@router.get("/{baseline_id}", response_model=BaselineResponse)
async def get_baseline(
    patient_id: str,
    baseline_id: str,
    scope: TeamScope = Depends(authorize(Resource.PATIENT_BASELINES, Action.READ)),
):
    _patient_or_404(scope, patient_id)
    return scope.get_or_404(PatientBaseline, baseline_id, *_baseline_criteria(patient_id), label="Baseline")


@router.put("/{baseline_id}", response_model=BaselineResponse)
async def update_baseline(
    patient_id: str,
    baseline_id: str,
    baseline_data: BaselineUpdate,
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.PATIENT_BASELINES, Action.UPDATE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    _patient_or_404(scope, patient_id)

    update_data = baseline_data.model_dump(exclude_unset=True)
    update_data["updated_by"] = scope.actor_id

    baseline = scope.update(
        PatientBaseline,
        baseline_id,
        update_data,
        *_baseline_criteria(patient_id),
        label="Baseline",
    )
    scope.db.commit()

    logger.info(f"Baseline updated: {baseline_id} team={scope.team_id} by {scope.actor_id}")
    background_tasks.add_task(audit.record, scope.decision, "patient_baseline.update")

    return baseline


@router.delete("/{baseline_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_baseline(
    patient_id: str,
    baseline_id: str,
    background_tasks: BackgroundTasks,
    payload: Optional[BaselineDelete] = Body(None),
    scope: TeamScope = Depends(authorize(Resource.PATIENT_BASELINES, Action.DELETE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    """Soft delete (archive) a baseline. Retention follows the patient's."""
    _patient_or_404(scope, patient_id)
    baseline = scope.get_or_404(PatientBaseline, baseline_id, *_baseline_criteria(patient_id), label="Baseline")

    reason = (payload.deletion_reason if payload else None) or DEFAULT_DELETION_REASON
    baseline.soft_delete(
        deleted_by=scope.actor_id,
        reason=reason,
        retention_years=get_settings().PATIENT_RETENTION_YEARS,
    )
    scope.db.commit()

    logger.info(f"Baseline archived: {baseline_id} team={scope.team_id} by {scope.actor_id}")
    background_tasks.add_task(audit.record, scope.decision, "patient_baseline.soft_delete")

    return None
