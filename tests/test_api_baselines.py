"""
API tests for patient baselines.

Covers:
- CRUD under the patient_baselines permissions
- Measurement ranges and date normalization
- Date-range filtering and pagination
- The parent patient is resolved inside the caller's team
- Soft delete and cascade on team deletion
"""

from datetime import datetime, timedelta

import pytest
from fastapi import status

from teamkit.config import get_settings
from teamkit.models import PatientBaseline


def baselines_url(patient_id, baseline_id=None, slug="acme"):
    url = f"/api/v1/teams/{slug}/patients/{patient_id}/baselines"
    return f"{url}/{baseline_id}" if baseline_id else url


BASELINE = {
    "date_recorded": "2024-03-01T09:30:00",
    "height": 172.5,
    "weight": 68.0,
    "blood_pressure": {"systolic": 120, "diastolic": 80},
    "heart_rate": 64,
    "oxygen_sat": 98,
    "notes": "Routine intake",
    "allergies": ["penicillin"],
}


@pytest.fixture
def make_baseline(db):
    def _make(patient, date_recorded=None, **fields):
        baseline = PatientBaseline(
            team_id=patient.team_id,
            patient_id=patient.id,
            date_recorded=date_recorded or datetime(2024, 1, 1),
            **fields,
        )
        db.add(baseline)
        db.commit()
        return baseline
    return _make


# ============================================================================
# Create
# ============================================================================

class TestCreateBaseline:

    def test_member_records_baseline(self, client, world, make_patient, auth_headers, audit_sink):
        patient = make_patient(world["acme"])

        response = client.post(baselines_url(patient.id), json=BASELINE, headers=auth_headers(world["member"]))

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["team_id"] == world["acme"].id
        assert body["patient_id"] == patient.id
        assert body["blood_pressure"] == {"systolic": 120, "diastolic": 80}
        assert body["allergies"] == ["penicillin"]
        assert body["created_by"] == world["member"].id

        assert audit_sink.events[-1].action == "patient_baseline.create"
        assert audit_sink.events[-1].crud == "c"

    def test_offset_dates_are_stored_as_utc(self, client, world, make_patient, auth_headers):
        patient = make_patient(world["acme"])
        payload = {"date_recorded": "2024-03-01T10:00:00+02:00"}

        response = client.post(baselines_url(patient.id), json=payload, headers=auth_headers(world["member"]))

        assert response.json()["date_recorded"] == "2024-03-01T08:00:00"

    @pytest.mark.parametrize("field,value", [
        ("heart_rate", 10),
        ("oxygen_sat", 101),
        ("temperature", 50),
        ("height", 0),
        ("blood_pressure", {"systolic": 120, "diastolic": 20}),
    ])
    def test_implausible_measurements(self, client, world, make_patient, auth_headers, field, value):
        patient = make_patient(world["acme"])

        response = client.post(
            baselines_url(patient.id), json={**BASELINE, field: value}, headers=auth_headers(world["member"])
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_date_recorded_is_required(self, client, world, make_patient, auth_headers):
        patient = make_patient(world["acme"])
        payload = {key: value for key, value in BASELINE.items() if key != "date_recorded"}

        response = client.post(baselines_url(patient.id), json=payload, headers=auth_headers(world["member"]))

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_other_team_patient_is_not_found(self, client, db, world, make_patient, auth_headers):
        foreign = make_patient(world["beta"])

        response = client.post(baselines_url(foreign.id), json=BASELINE, headers=auth_headers(world["admin"]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"].startswith("Patient not found")
        assert db.query(PatientBaseline).count() == 0

    def test_deleted_patient_is_not_found(self, client, db, world, make_patient, auth_headers):
        patient = make_patient(world["acme"])
        patient.soft_delete(deleted_by=world["owner"].id, reason="test", retention_years=7)
        db.commit()

        response = client.post(baselines_url(patient.id), json=BASELINE, headers=auth_headers(world["member"]))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_outsider_gets_team_not_found(self, client, world, make_patient, auth_headers):
        patient = make_patient(world["acme"])

        response = client.post(baselines_url(patient.id), json=BASELINE, headers=auth_headers(world["outsider"]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Team not found"


# ============================================================================
# List
# ============================================================================

class TestListBaselines:

    def test_latest_first_for_one_patient(self, client, world, make_patient, make_baseline, auth_headers):
        patient = make_patient(world["acme"])
        other = make_patient(world["acme"], first_name="Ben")
        make_baseline(patient, datetime(2024, 1, 1), notes="first")
        make_baseline(patient, datetime(2024, 2, 1), notes="second")
        make_baseline(other, datetime(2024, 3, 1), notes="other patient")

        response = client.get(baselines_url(patient.id), headers=auth_headers(world["member"]))

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert [b["notes"] for b in body["data"]] == ["second", "first"]
        assert body["pagination"] == {"total": 2, "has_more": False, "limit": 50, "offset": 0}

    def test_pagination(self, client, world, make_patient, make_baseline, auth_headers):
        patient = make_patient(world["acme"])
        for day in range(1, 4):
            make_baseline(patient, datetime(2024, 1, day), notes=f"day {day}")

        response = client.get(
            baselines_url(patient.id), params={"limit": 2}, headers=auth_headers(world["member"])
        )

        body = response.json()
        assert [b["notes"] for b in body["data"]] == ["day 3", "day 2"]
        assert body["pagination"]["has_more"] is True

    def test_date_range(self, client, world, make_patient, make_baseline, auth_headers):
        patient = make_patient(world["acme"])
        for month in (1, 2, 3):
            make_baseline(patient, datetime(2024, month, 15), notes=f"month {month}")
        headers = auth_headers(world["member"])

        both = client.get(
            baselines_url(patient.id),
            params={"start_date": "2024-02-01T00:00:00", "end_date": "2024-03-15T00:00:00"},
            headers=headers,
        ).json()
        from_only = client.get(
            baselines_url(patient.id), params={"start_date": "2024-03-01T00:00:00"}, headers=headers
        ).json()

        assert [b["notes"] for b in both["data"]] == ["month 3", "month 2"]
        assert [b["notes"] for b in from_only["data"]] == ["month 3"]

    def test_inverted_range_is_rejected(self, client, world, make_patient, auth_headers):
        patient = make_patient(world["acme"])

        response = client.get(
            baselines_url(patient.id),
            params={"start_date": "2024-03-01T00:00:00", "end_date": "2024-02-01T00:00:00"},
            headers=auth_headers(world["member"]),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_archived_baselines_are_hidden(self, client, db, world, make_patient, make_baseline, auth_headers):
        patient = make_patient(world["acme"])
        make_baseline(patient, notes="kept")
        archived = make_baseline(patient, notes="archived")
        archived.soft_delete(deleted_by=world["owner"].id, reason="test", retention_years=7)
        db.commit()

        response = client.get(baselines_url(patient.id), headers=auth_headers(world["member"]))

        assert [b["notes"] for b in response.json()["data"]] == ["kept"]

    def test_other_team_patient_is_not_found(self, client, world, make_patient, make_baseline, auth_headers):
        foreign = make_patient(world["beta"])
        make_baseline(foreign)

        response = client.get(baselines_url(foreign.id), headers=auth_headers(world["admin"]))

        assert response.status_code == status.HTTP_404_NOT_FOUND


# ============================================================================
# Read / Update
# ============================================================================

class TestReadAndUpdateBaseline:

    def test_get(self, client, world, make_patient, make_baseline, auth_headers):
        patient = make_patient(world["acme"])
        baseline = make_baseline(patient, heart_rate=70)

        response = client.get(baselines_url(patient.id, baseline.id), headers=auth_headers(world["member"]))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["heart_rate"] == 70

    def test_baseline_under_wrong_patient_is_not_found(self, client, world, make_patient, make_baseline, auth_headers):
        patient = make_patient(world["acme"])
        other = make_patient(world["acme"], first_name="Ben")
        baseline = make_baseline(patient)

        response = client.get(baselines_url(other.id, baseline.id), headers=auth_headers(world["member"]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"].startswith("Baseline not found")

    def test_partial_update(self, client, world, make_patient, make_baseline, auth_headers, audit_sink):
        patient = make_patient(world["acme"])
        baseline = make_baseline(patient, heart_rate=70, weight=80.0)

        response = client.put(
            baselines_url(patient.id, baseline.id),
            json={"weight": 78.5, "blood_pressure": {"systolic": 118, "diastolic": 76}},
            headers=auth_headers(world["member"]),
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["weight"] == 78.5
        assert body["heart_rate"] == 70
        assert body["blood_pressure"] == {"systolic": 118, "diastolic": 76}
        assert body["updated_by"] == world["member"].id
        assert audit_sink.events[-1].action == "patient_baseline.update"
        assert audit_sink.events[-1].crud == "u"

    def test_recording_date_cannot_be_changed(self, client, world, make_patient, make_baseline, auth_headers):
        patient = make_patient(world["acme"])
        baseline = make_baseline(patient, datetime(2024, 1, 1))

        response = client.put(
            baselines_url(patient.id, baseline.id),
            json={"date_recorded": "2020-01-01T00:00:00", "notes": "edited"},
            headers=auth_headers(world["member"]),
        )

        assert response.json()["date_recorded"] == "2024-01-01T00:00:00"
        assert response.json()["notes"] == "edited"

    def test_other_team_baseline_is_untouched(self, client, db, world, make_patient, make_baseline, auth_headers):
        foreign = make_patient(world["beta"])
        baseline = make_baseline(foreign, heart_rate=70)

        response = client.put(
            baselines_url(foreign.id, baseline.id), json={"heart_rate": 90}, headers=auth_headers(world["admin"])
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        db.expire_all()
        assert db.get(PatientBaseline, baseline.id).heart_rate == 70


# ============================================================================
# Delete
# ============================================================================

class TestDeleteBaseline:

    def test_member_cannot_delete(self, client, world, make_patient, make_baseline, auth_headers):
        patient = make_patient(world["acme"])
        baseline = make_baseline(patient)

        response = client.delete(baselines_url(patient.id, baseline.id), headers=auth_headers(world["member"]))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_soft_delete(self, client, db, world, make_patient, make_baseline, auth_headers, audit_sink):
        patient = make_patient(world["acme"])
        baseline = make_baseline(patient)
        headers = auth_headers(world["admin"])

        response = client.request(
            "DELETE",
            baselines_url(patient.id, baseline.id),
            json={"deletion_reason": "Entered twice"},
            headers=headers,
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        db.expire_all()
        stored = db.get(PatientBaseline, baseline.id)
        assert stored.deleted_by == world["admin"].id
        assert stored.deletion_reason == "Entered twice"
        assert stored.retention_until - stored.deleted_at == timedelta(days=365 * 7)
        assert audit_sink.events[-1].action == "patient_baseline.soft_delete"
        assert audit_sink.events[-1].crud == "d"

        again = client.get(baselines_url(patient.id, baseline.id), headers=headers)
        assert again.status_code == status.HTTP_404_NOT_FOUND

    def test_team_deletion_removes_baselines(self, client, db, world, make_patient, make_baseline, auth_headers):
        patient = make_patient(world["acme"])
        make_baseline(patient)

        response = client.delete("/api/v1/teams/acme", headers=auth_headers(world["owner"]))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        db.expire_all()
        assert db.query(PatientBaseline).count() == 0


class TestBaselinesFeature:

    def test_disabled_feature_hides_routes(self, client, world, make_patient, auth_headers, monkeypatch):
        patient = make_patient(world["acme"])
        monkeypatch.setattr(get_settings(), "FEATURE_PATIENTS", False)

        response = client.get(baselines_url(patient.id), headers=auth_headers(world["owner"]))

        assert response.status_code == status.HTTP_404_NOT_FOUND
