from datetime import datetime

import pytest
from beanie import PydanticObjectId

from school_app.core.identifiers import month_scope
from school_app.models.admission import Admission


@pytest.fixture
def admission_payload():
    def build(**overrides):
        payload = {
            "full_name": "Meera Nair",
            "date_of_birth": "2018-07-21T00:00:00",
            "gender": "female",
            "applying_for_class": "1st",
            "academic_year": "2025-2026",
            "email": "parent@greenvalley.edu",
            "phone": "9123456789",
            "father_name": "Suresh Nair",
            "mother_name": "Latha Nair",
            "uploaded_documents": ["birth_certificate", "photograph"],
        }
        payload.update(overrides)
        return payload
    return build


def _expected_prefix() -> str:
    scope = month_scope(datetime.now())
    return f"ADM{scope[2:4]}{scope[5:7]}"


async def test_public_submission_allocates_application_number(client, admission_payload):
    response = await client.post("/api/v1/admissions/", json=admission_payload())

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["application_number"] == f"{_expected_prefix()}0001"
    assert body["status"] == "submitted"
    assert body["applying_for_class"] == "1"
    # Class 1 needs a marksheet as well
    assert body["documents_complete"] is False


async def test_submissions_in_same_month_are_sequential(client, admission_payload):
    numbers = []
    for _ in range(3):
        response = await client.post("/api/v1/admissions/", json=admission_payload())
        numbers.append(response.json()["application_number"])
    assert numbers == [f"{_expected_prefix()}{n:04d}" for n in (1, 2, 3)]


async def test_pre_primary_does_not_need_marksheet(client, admission_payload):
    response = await client.post("/api/v1/admissions/", json=admission_payload(applying_for_class="LKG"))
    assert response.json()["documents_complete"] is True


async def test_listing_requires_staff(client, admission_payload, faculty_headers):
    await client.post("/api/v1/admissions/", json=admission_payload())

    assert (await client.get("/api/v1/admissions/")).status_code == 401
    response = await client.get("/api/v1/admissions/", headers=faculty_headers)
    assert response.status_code == 200
    assert len(response.json()) == 1


async def test_admin_updates_status(client, admission_payload, admin_headers, admin_user):
    created = (await client.post("/api/v1/admissions/", json=admission_payload(applying_for_class="LKG"))).json()
    await client.put(f"/api/v1/admissions/{created['_id']}/fee-payment", json={"transaction_id": "TXN1"}, headers=admin_headers)

    response = await client.put(
        f"/api/v1/admissions/{created['_id']}/status",
        json={"status": "approved", "remarks": "Interview cleared"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "approved"
    assert body["processed_by"] == str(admin_user.id)
    assert body["remarks"] == "Interview cleared"
    assert body["application_number"] == created["application_number"]


async def test_faculty_cannot_update_status(client, admission_payload, faculty_headers):
    created = (await client.post("/api/v1/admissions/", json=admission_payload())).json()
    response = await client.put(
        f"/api/v1/admissions/{created['_id']}/status", json={"status": "rejected"}, headers=faculty_headers
    )
    assert response.status_code == 403


async def test_admitted_application_is_final(client, admission_payload, admin_headers):
    created = (await client.post("/api/v1/admissions/", json=admission_payload())).json()
    url = f"/api/v1/admissions/{created['_id']}/status"

    assert (await client.put(url, json={"status": "admitted"}, headers=admin_headers)).status_code == 200
    assert (await client.put(url, json={"status": "rejected"}, headers=admin_headers)).status_code == 400


async def test_legacy_application_numbers_seed_the_month(db):
    created_at = datetime(2025, 6, 3, 10, 0)
    for n in (1, 2, 17):
        await Admission(
            application_number=f"ADM2506{n:04d}",
            full_name="Legacy Applicant",
            date_of_birth=datetime(2018, 1, 1),
            gender="male",
            applying_for_class="UKG",
            academic_year="2025-2026",
            email="legacy@greenvalley.edu",
            phone="9000000000",
            father_name="F",
            mother_name="M",
            created_at=created_at,
        ).insert()

    admission = Admission(
        full_name="New Applicant",
        date_of_birth=datetime(2018, 1, 1),
        gender="female",
        applying_for_class="UKG",
        academic_year="2025-2026",
        email="new@greenvalley.edu",
        phone="9000000001",
        father_name="F",
        mother_name="M",
        created_at=created_at,
    )
    await admission.insert()

    assert admission.application_number == "ADM25060018"


async def test_inconsecutive_academic_year_is_rejected(client, admission_payload):
    response = await client.post("/api/v1/admissions/", json=admission_payload(academic_year="2025-2027"))
    assert response.status_code == 422


async def test_approval_requires_documents(client, admission_payload, admin_headers):
    # Class 1 applicants also need a marksheet
    created = (await client.post("/api/v1/admissions/", json=admission_payload())).json()
    await client.put(f"/api/v1/admissions/{created['_id']}/fee-payment", json={}, headers=admin_headers)

    response = await client.put(
        f"/api/v1/admissions/{created['_id']}/status", json={"status": "approved"}, headers=admin_headers
    )

    assert response.status_code == 400
    assert "marksheet" in response.json()["detail"]
    stored = await Admission.get(PydanticObjectId(created["_id"]))
    assert stored.status.value == "submitted"


async def test_approval_requires_paid_fee(client, admission_payload, admin_headers):
    created = (await client.post("/api/v1/admissions/", json=admission_payload(applying_for_class="UKG"))).json()
    url = f"/api/v1/admissions/{created['_id']}/status"

    response = await client.put(url, json={"status": "approved"}, headers=admin_headers)
    assert response.status_code == 400
    assert "fee" in response.json()["detail"].lower()

    paid = await client.put(
        f"/api/v1/admissions/{created['_id']}/fee-payment",
        json={"payment_method": "cash", "transaction_id": "RCPT-77"},
        headers=admin_headers,
    )
    assert paid.json()["fee_payment_status"] == "completed"
    assert paid.json()["fee_transaction_id"] == "RCPT-77"
    assert (await client.put(url, json={"status": "approved"}, headers=admin_headers)).status_code == 200


async def test_approving_twice_is_rejected(client, admission_payload, admin_headers):
    created = (await client.post("/api/v1/admissions/", json=admission_payload(applying_for_class="LKG"))).json()
    await client.put(f"/api/v1/admissions/{created['_id']}/fee-payment", json={}, headers=admin_headers)
    url = f"/api/v1/admissions/{created['_id']}/status"

    assert (await client.put(url, json={"status": "approved"}, headers=admin_headers)).status_code == 200
    response = await client.put(url, json={"status": "approved"}, headers=admin_headers)
    assert response.status_code == 400


async def test_fee_cannot_be_paid_twice(client, admission_payload, admin_headers):
    created = (await client.post("/api/v1/admissions/", json=admission_payload())).json()
    url = f"/api/v1/admissions/{created['_id']}/fee-payment"

    assert (await client.put(url, json={}, headers=admin_headers)).status_code == 200
    assert (await client.put(url, json={}, headers=admin_headers)).status_code == 400
