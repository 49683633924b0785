import pytest


def _event(client, appointment_id):
    events = client.get("/api/appointments").get_json()["data"]
    return next(e for e in events if e["id"] == appointment_id)


@pytest.mark.appointments
class TestAppointments:
    def test_create_requires_patient(self, client, db):
        response = client.post("/api/appointments", json={"title": "No patient"})
        assert response.status_code == 400
        assert response.get_json()["message"] == "A patient must be selected for the appointment."

    def test_naive_times_are_read_in_clinic_offset(self, client, sample_patient, sample_staff):
        response = client.post(
            "/api/appointments",
            json={
                "title": "Knee rehab",
                "start": "2025-06-02T09:00:00",
                "end": "2025-06-02T10:00:00",
                "patient_id": sample_patient,
                "therapist_id": sample_staff,
            },
        )
        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["start_time"] == "2025-06-02T02:00:00+00:00"
        assert data["end_time"] == "2025-06-02T03:00:00+00:00"
        assert data["status"] == "Scheduled"

        event = _event(client, data["id"])
        assert event["start"] == "2025-06-02T02:00:00+00:00"
        assert event["extendedProps"] == {
            "status": "Scheduled",
            "therapist": "Sokha Chan",
            "therapist_id": sample_staff,
            "patient_id": sample_patient,
        }

    def test_offset_times_are_honoured(self, client, sample_patient):
        response = client.post(
            "/api/appointments",
            json={
                "start": "2025-06-02T09:00:00+00:00",
                "end": "2025-06-02T09:45:00Z",
                "patient_id": sample_patient,
            },
        )
        data = response.get_json()["data"]
        assert data["start_time"] == "2025-06-02T09:00:00+00:00"
        assert data["end_time"] == "2025-06-02T09:45:00+00:00"

    def test_update_uses_same_normalizer(self, client, sample_patient):
        created = client.post(
            "/api/appointments",
            json={"start": "2025-06-02T09:00:00", "end": "2025-06-02T10:00:00", "patient_id": sample_patient},
        ).get_json()["data"]

        response = client.patch(
            f"/api/appointments/{created['id']}",
            json={"start": "2025-06-02T10:00:00", "end": "2025-06-02T11:00:00", "patient_id": sample_patient},
        )
        assert response.status_code == 200
        assert response.get_json()["data"]["start_time"] == "2025-06-02T03:00:00+00:00"

    def test_end_before_start_rejected(self, client, sample_patient):
        response = client.post(
            "/api/appointments",
            json={"start": "2025-06-02T10:00:00", "end": "2025-06-02T09:00:00", "patient_id": sample_patient},
        )
        assert response.status_code == 400

    def test_patch_end_checked_against_stored_start(self, client, sample_patient):
        created = client.post(
            "/api/appointments",
            json={"start": "2025-06-02T09:00:00", "end": "2025-06-02T10:00:00", "patient_id": sample_patient},
        ).get_json()["data"]

        response = client.patch(
            f"/api/appointments/{created['id']}",
            json={"end": "2025-06-02T08:00:00", "patient_id": sample_patient},
        )
        assert response.status_code == 400

    def test_invalid_status_and_timestamp(self, client, sample_patient):
        bad_status = client.post(
            "/api/appointments", json={"patient_id": sample_patient, "status": "Maybe"}
        )
        bad_time = client.post(
            "/api/appointments", json={"patient_id": sample_patient, "start": "next tuesday"}
        )
        assert bad_status.status_code == 400
        assert bad_time.status_code == 400

    def test_unknown_patient_or_therapist(self, client, sample_patient):
        assert client.post("/api/appointments", json={"patient_id": 9999}).status_code == 404
        response = client.post(
            "/api/appointments", json={"patient_id": sample_patient, "therapist_id": 9999}
        )
        assert response.status_code == 404

    def test_filter_by_patient_newest_first(self, client, sample_patient):
        other = client.post("/api/patients", json={"full_name": "Other"}).get_json()["data"]["id"]
        for start in ("2025-06-01T09:00:00", "2025-06-03T09:00:00"):
            client.post("/api/appointments", json={"start": start, "patient_id": sample_patient})
        client.post("/api/appointments", json={"start": "2025-06-02T09:00:00", "patient_id": other})

        events = client.get(f"/api/appointments?patient_id={sample_patient}").get_json()["data"]
        assert [e["start"][:10] for e in events] == ["2025-06-03", "2025-06-01"]
        assert all(e["extendedProps"]["therapist"] == "Unassigned" for e in events)

    def test_get_and_delete(self, client, sample_patient):
        created = client.post(
            "/api/appointments", json={"title": "Check", "patient_id": sample_patient}
        ).get_json()["data"]

        assert client.get(f"/api/appointments/{created['id']}").get_json()["data"]["title"] == "Check"
        assert client.delete(f"/api/appointments/{created['id']}").status_code == 200
        assert client.get(f"/api/appointments/{created['id']}").status_code == 404
