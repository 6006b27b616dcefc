"""
Patient Endpoints

CRUD operations for patients within a team.

RBAC:
- List/view: patients:read
- Create: patients:create
- Update: patients:update
- Delete (soft): patients:delete

TENANT_ISOLATION: Every query goes through TeamScope. A patient id that
belongs to another team is "Patient not found", exactly like an id that
does not exist.
"""
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, status
from sqlalchemy import or_

from teamkit.config import get_settings
from teamkit.models.patient import Patient
from teamkit.schemas.patient import (
    Pagination,
    PatientCreate,
    PatientDelete,
    PatientListResponse,
    PatientResponse,
    PatientUpdate,
)
from teamkit.api.deps import authorize, get_audit_trail, require_feature
from teamkit.core.audit import AuditTrail
from teamkit.core.permissions import Action, Resource
from teamkit.core.scoping import TeamScope
from teamkit.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/teams/{slug}/patients",
    tags=["patients"],
    dependencies=[Depends(require_feature("FEATURE_PATIENTS"))],
)

DEFAULT_DELETION_REASON = "Patient record soft deleted"


def like_pattern(term: str) -> str:
    """Substring pattern for ilike with the LIKE wildcards taken literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _live(scope: TeamScope):
    return scope.query(Patient).filter(Patient.live())


@router.get("", response_model=PatientListResponse)
async def list_patients(
    search: Optional[str] = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    scope: TeamScope = Depends(authorize(Resource.PATIENTS, Action.READ)),
):
    """
    List patients, newest first.

    search matches first name, last name or mobile, case-insensitively.
    """
    query = _live(scope)

    if search:
        pattern = like_pattern(search)
        query = query.filter(or_(
            Patient.first_name.ilike(pattern, escape="\\"),
            Patient.last_name.ilike(pattern, escape="\\"),
            Patient.mobile.ilike(pattern, escape="\\"),
        ))

    total = query.count()
    patients = query.order_by(Patient.created_at.desc()).offset(offset).limit(limit).all()

    logger.debug(f"Listed {len(patients)} patients for team {scope.team_id}")

    return PatientListResponse(
        data=[PatientResponse.model_validate(patient) for patient in patients],
        pagination=Pagination(
            total=total,
            has_more=offset + limit < total,
            limit=limit,
            offset=offset,
        )
    )


@router.post("", response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
async def create_patient(
    patient_data: PatientCreate,
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.PATIENTS, Action.CREATE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    patient = scope.add(
        Patient,
        **patient_data.model_dump(),
        created_by=scope.actor_id,
    )
    scope.db.commit()
    scope.db.refresh(patient)

    logger.info(f"Patient created: {patient.id} team={scope.team_id} by {scope.actor_id}")
    background_tasks.add_task(audit.record, scope.decision, "patient.create")

    return patient


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: str,
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.PATIENTS, Action.READ)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    patient = scope.get_or_404(Patient, patient_id, Patient.live(), label="Patient")

    # Clinical record views are audited too
    background_tasks.add_task(audit.record, scope.decision, "patient.view")

    return patient


@router.put("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: str,
    patient_data: PatientUpdate,
    background_tasks: BackgroundTasks,
    scope: TeamScope = Depends(authorize(Resource.PATIENTS, Action.UPDATE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    update_data = patient_data.model_dump(exclude_unset=True)
    update_data["updated_by"] = scope.actor_id

    patient = scope.update(
        Patient,
        patient_id,
        update_data,
        Patient.live(),
        label="Patient",
    )
    scope.db.commit()

    logger.info(f"Patient updated: {patient_id} team={scope.team_id} by {scope.actor_id}")
    background_tasks.add_task(audit.record, scope.decision, "patient.update")

    return patient


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_patient(
    patient_id: str,
    background_tasks: BackgroundTasks,
    payload: Optional[PatientDelete] = Body(None),
    scope: TeamScope = Depends(authorize(Resource.PATIENTS, Action.DELETE)),
    audit: AuditTrail = Depends(get_audit_trail),
):
    """
    Soft delete a patient.

    The record stays until retention_until (PATIENT_RETENTION_YEARS from
    now) so it can be recovered or produced for compliance.
    """
    patient = scope.get_or_404(Patient, patient_id, Patient.live(), label="Patient")

    reason = (payload.deletion_reason if payload else None) or DEFAULT_DELETION_REASON
    patient.soft_delete(
        deleted_by=scope.actor_id,
        reason=reason,
        retention_years=get_settings().PATIENT_RETENTION_YEARS,
    )
    scope.db.commit()

    logger.info(f"Patient soft deleted: {patient_id} team={scope.team_id} by {scope.actor_id}")
    background_tasks.add_task(audit.record, scope.decision, "patient.soft_delete")

    return None
