"""
Tests for the mood record endpoints.
"""
import pytest

PATIENT = {"Authorization": "Bearer patient-token"}
OTHER = {"Authorization": "Bearer other-token"}
STAFF = {"Authorization": "Bearer staff-token"}
ADMIN = {"Authorization": "Bearer admin-token"}

DAY_URL = "/users/patient-0001/moods/month/2024-01/days/05"


def test_catalog_is_public(client):
    response = client.get("/moods/catalog")

    assert response.status_code == 200
    catalog = {item["moodId"]: item for item in response.json()}
    assert catalog["tranquilidad"]["tone"] == "positive"
    assert catalog["tristeza"]["tone"] == "negative"
    assert "riskWeight" in catalog["ansiedad"]


def test_mood_routes_require_token(client):
    response = client.get("/users/patient-0001/moods/month/2024-01")

    assert response.status_code == 401


def test_invalid_token_is_rejected(client):
    response = client.get(
        "/users/patient-0001/moods/month/2024-01",
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == 401


def test_put_then_get_day(client, fake_db):
    response = client.put(
        DAY_URL,
        headers=PATIENT,
        json={"moods": [
            {"moodId": "Tranquilidad", "note": "calm morning", "at": "2024-01-05T09:00:00Z"},
            {"moodId": "cansancio"},
        ]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["day"] == "05"
    assert [m["moodId"] for m in body["saved"]] == ["tranquilidad", "cansancio"]
    assert body["saved"][0]["at"] == "2024-01-05T09:00:00.000Z"

    day = client.get(DAY_URL, headers=PATIENT).json()
    assert day["monthId"] == "2024-01"
    assert [m["moodId"] for m in day["moods"]] == ["tranquilidad", "cansancio"]
    assert day["moods"][0]["note"] == "calm morning"


def test_put_replaces_and_patch_appends(client):
    client.put(DAY_URL, headers=PATIENT, json={"moods": [{"moodId": "ira"}]})
    client.put(DAY_URL, headers=PATIENT, json={"moods": [{"moodId": "gratitud"}]})

    response = client.patch(DAY_URL, headers=PATIENT, json={"moods": [{"moodId": "euforia"}]})

    assert response.status_code == 200
    assert [m["moodId"] for m in response.json()["saved"]] == ["gratitud", "euforia"]


def test_fourth_mood_of_day_is_rejected(client, fake_db):
    fake_db.add_day("patient-0001", "2024-01-05", ["ira", "culpa", "miedo"])
    writes_before = len(fake_db.writes)

    response = client.patch(DAY_URL, headers=PATIENT, json={"moods": [{"moodId": "euforia"}]})

    assert response.status_code == 400
    assert "at most 3" in response.json()["detail"]
    assert len(fake_db.writes) == writes_before


def test_put_with_more_than_three_moods_is_rejected(client):
    moods = [{"moodId": mood} for mood in ("ira", "culpa", "miedo", "euforia")]

    response = client.put(DAY_URL, headers=PATIENT, json={"moods": moods})

    assert response.status_code == 400


def test_empty_mood_list_is_rejected(client):
    response = client.put(DAY_URL, headers=PATIENT, json={"moods": []})

    assert response.status_code == 400
    assert response.json()["detail"] == "At least one mood is required"


@pytest.mark.parametrize(
    "url",
    [
        "/users/patient-0001/moods/month/2024-13/days/05",
        "/users/patient-0001/moods/month/2024-1/days/05",
        "/users/patient-0001/moods/month/2023-02/days/29",
        "/users/patient-0001/moods/month/2024-01/days/00",
        "/users/patient-0001/moods/month/2024-01/days/ab",
    ],
)
def test_invalid_path_parameters_return_400(client, url):
    response = client.put(url, headers=PATIENT, json={"moods": [{"moodId": "ira"}]})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid")


def test_leap_day_is_accepted(client):
    response = client.put(
        "/users/patient-0001/moods/month/2024-02/days/29",
        headers=PATIENT,
        json={"moods": [{"moodId": "ira"}]},
    )

    assert response.status_code == 200


def test_get_missing_day_returns_404(client):
    response = client.get(DAY_URL, headers=PATIENT)

    assert response.status_code == 404


def test_get_missing_month_returns_empty_days(client):
    response = client.get("/users/patient-0001/moods/month/2024-03", headers=PATIENT)

    assert response.status_code == 200
    assert response.json()["days"] == {}


def test_get_year_lists_months_in_order(client, fake_db):
    fake_db.add_day("patient-0001", "2024-03-01", ["ira"])
    fake_db.add_day("patient-0001", "2024-01-10", ["gratitud"])
    fake_db.add_day("patient-0001", "2023-12-31", ["miedo"])

    response = client.get("/users/patient-0001/moods/year/2024", headers=PATIENT)

    assert response.status_code == 200
    assert [m["monthId"] for m in response.json()["months"]] == ["2024-01", "2024-03"]


def test_delete_single_mood_then_day(client, fake_db):
    fake_db.add_day("patient-0001", "2024-01-05", ["ira", "culpa"])

    response = client.delete(f"{DAY_URL}/moods/ira", headers=PATIENT)
    assert response.status_code == 200
    assert [m["moodId"] for m in client.get(DAY_URL, headers=PATIENT).json()["moods"]] == ["culpa"]

    assert client.delete(f"{DAY_URL}/moods/ira", headers=PATIENT).status_code == 404

    response = client.delete(DAY_URL, headers=PATIENT)
    assert response.status_code == 200
    assert response.json()["deleted"] is True
    assert client.get(DAY_URL, headers=PATIENT).status_code == 404


def test_removing_last_mood_removes_day(client, fake_db):
    fake_db.add_day("patient-0001", "2024-01-05", ["ira"])

    client.delete(f"{DAY_URL}/moods/ira", headers=PATIENT)

    assert client.get(DAY_URL, headers=PATIENT).status_code == 404


def test_patient_cannot_read_other_patient(client):
    response = client.get("/users/patient-0001/moods/month/2024-01", headers=OTHER)

    assert response.status_code == 403


def test_staff_reads_any_but_cannot_write(client, fake_db):
    fake_db.add_day("patient-0001", "2024-01-05", ["ira"])

    assert client.get(DAY_URL, headers=STAFF).status_code == 200
    response = client.put(DAY_URL, headers=STAFF, json={"moods": [{"moodId": "ira"}]})
    assert response.status_code == 403


def test_admin_writes_any(client):
    response = client.put(DAY_URL, headers=ADMIN, json={"moods": [{"moodId": "ira"}]})

    assert response.status_code == 200


def test_write_for_unknown_user_returns_404(client):
    response = client.put(
        "/users/ghost-user/moods/month/2024-01/days/05",
        headers=ADMIN,
        json={"moods": [{"moodId": "ira"}]},
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_analytics_for_month(client, fake_db):
    fake_db.add_day("patient-0001", "2024-01-01", ["tranquilidad"])
    fake_db.add_day("patient-0001", "2024-01-02", ["tristeza", "tranquilidad"])

    response = client.get(
        "/users/patient-0001/moods/analytics?month=2024-01&range=1", headers=PATIENT
    )

    assert response.status_code == 200
    body = response.json()
    assert body["period"]["from"] == "2024-01-01"
    assert body["period"]["to"] == "2024-01-31"
    assert body["period"]["months"] == ["2024-01"]
    assert body["summary"]["totalEntries"] == 3
    assert body["summary"]["daysTracked"] == 2
    assert body["summary"]["uniqueMoods"] == 2
    assert body["summary"]["longestStreak"] == 2
    assert body["topMoods"][0]["moodId"] == "tranquilidad"
    assert [entry["date"] for entry in body["timeline"]] == ["2024-01-01", "2024-01-02"]


@pytest.mark.parametrize("query", ["month=2024-13", "range=0", "range=13"])
def test_analytics_rejects_bad_query(client, query):
    response = client.get(f"/users/patient-0001/moods/analytics?{query}", headers=PATIENT)

    assert response.status_code == 400
