from pymongo.errors import ConnectionFailure

from school_app.models.counter import Counter
from school_app.models.student import Student
from school_app.models.user import User, UserRole


class UnreachableCollection:
    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise ConnectionFailure("connection refused")
        return fail


async def test_requires_authentication(client):
    response = await client.get("/api/v1/students/")
    assert response.status_code == 401


async def test_faculty_cannot_manage_students(client, faculty_headers, student_payload):
    response = await client.post("/api/v1/students/", json=student_payload(), headers=faculty_headers)
    assert response.status_code == 403


async def test_create_students_allocates_sequential_ids(client, admin_headers, student_payload):
    ids = []
    for roll in ("1", "2", "3"):
        response = await client.post("/api/v1/students/", json=student_payload(roll_number=roll), headers=admin_headers)
        assert response.status_code == 201, response.text
        ids.append(response.json()["student_id"])

    assert ids == ["STU250001", "STU250002", "STU250003"]


async def test_create_student_normalizes_class_and_section(client, admin_headers, student_payload):
    response = await client.post("/api/v1/students/", json=student_payload(), headers=admin_headers)
    body = response.json()
    assert body["class_name"] == "5"
    assert body["section"] == "A"
    assert body["status"] == "active"


async def test_academic_years_have_separate_sequences(client, admin_headers, student_payload):
    first = await client.post("/api/v1/students/", json=student_payload(), headers=admin_headers)
    other_year = await client.post(
        "/api/v1/students/", json=student_payload(academic_year="2026-2027"), headers=admin_headers
    )
    assert first.json()["student_id"] == "STU250001"
    assert other_year.json()["student_id"] == "STU260001"


async def test_explicit_student_id_is_kept(client, admin_headers, student_payload):
    response = await client.post(
        "/api/v1/students/", json=student_payload(student_id="stu240777"), headers=admin_headers
    )
    assert response.status_code == 201
    assert response.json()["student_id"] == "STU240777"
    assert await Counter.find_all().count() == 0


async def test_duplicate_student_id_conflicts(client, admin_headers, student_payload):
    await client.post("/api/v1/students/", json=student_payload(student_id="STU250010"), headers=admin_headers)
    response = await client.post(
        "/api/v1/students/", json=student_payload(student_id="STU250010", roll_number="2"), headers=admin_headers
    )
    assert response.status_code == 409


async def test_generated_ids_continue_after_legacy_rows(client, admin_headers, student_payload):
    for n in range(1, 6):
        response = await client.post(
            "/api/v1/students/", json=student_payload(student_id=f"STU25{n:04d}", roll_number=str(n)), headers=admin_headers
        )
        assert response.status_code == 201

    response = await client.post("/api/v1/students/", json=student_payload(roll_number="6"), headers=admin_headers)
    assert response.json()["student_id"] == "STU250006"


async def test_allocation_failure_returns_503_and_persists_nothing(client, admin_headers, student_payload, monkeypatch):
    monkeypatch.setattr(Counter, "get_motor_collection", classmethod(lambda cls: UnreachableCollection()))

    response = await client.post("/api/v1/students/", json=student_payload(), headers=admin_headers)

    assert response.status_code == 503
    assert await Student.find_all().count() == 0


async def test_invalid_academic_year_is_rejected(client, admin_headers, student_payload):
    response = await client.post(
        "/api/v1/students/", json=student_payload(academic_year="2025-26"), headers=admin_headers
    )
    assert response.status_code == 422


async def test_list_filters_and_orders_by_student_id(client, admin_headers, student_payload):
    for roll, section in (("1", "A"), ("2", "B"), ("3", "A")):
        await client.post("/api/v1/students/", json=student_payload(roll_number=roll, section=section), headers=admin_headers)

    response = await client.get("/api/v1/students/", params={"class_name": "5th", "section": "a"}, headers=admin_headers)

    assert response.status_code == 200
    assert [s["student_id"] for s in response.json()] == ["STU250001", "STU250003"]


async def test_list_rejects_unknown_class(client, admin_headers):
    response = await client.get("/api/v1/students/", params={"class_name": "13"}, headers=admin_headers)
    assert response.status_code == 400


async def test_read_update_and_soft_delete(client, admin_headers, student_payload):
    created = (await client.post("/api/v1/students/", json=student_payload(), headers=admin_headers)).json()
    student_url = f"/api/v1/students/{created['_id']}"

    response = await client.get(student_url, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["student_id"] == created["student_id"]

    response = await client.put(student_url, json={"section": "c", "phone": "9876543210"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["section"] == "C"
    assert response.json()["student_id"] == created["student_id"]

    response = await client.delete(student_url, headers=admin_headers)
    assert response.status_code == 204

    stored = await Student.find_one(Student.student_id == created["student_id"])
    assert stored.status.value == "inactive"


async def test_read_student_bad_id(client, admin_headers):
    assert (await client.get("/api/v1/students/not-an-id", headers=admin_headers)).status_code == 400
    assert (await client.get("/api/v1/students/0123456789abcdef01234567", headers=admin_headers)).status_code == 404


async def test_inconsecutive_academic_year_is_rejected(client, admin_headers, student_payload):
    response = await client.post(
        "/api/v1/students/", json=student_payload(academic_year="2025-2027"), headers=admin_headers
    )
    assert response.status_code == 422
    assert await Counter.find_all().count() == 0


async def test_explicit_null_does_not_overwrite_fields(client, admin_headers, student_payload):
    created = (await client.post("/api/v1/students/", json=student_payload(), headers=admin_headers)).json()
    student_url = f"/api/v1/students/{created['_id']}"

    response = await client.put(student_url, json={"status": None}, headers=admin_headers)
    assert response.status_code == 400

    response = await client.put(student_url, json={"status": None, "section": "b"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "active"
    assert response.json()["section"] == "B"

    response = await client.get(student_url, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "active"


async def test_student_with_email_gets_login(client, admin_headers, student_payload):
    response = await client.post(
        "/api/v1/students/", json=student_payload(email="Asha.Verma@greenvalley.edu"), headers=admin_headers
    )

    assert response.status_code == 201
    user = await User.find_one(User.username == "asha.verma@greenvalley.edu")
    assert user is not None
    assert user.role == UserRole.STUDENT
    assert user.full_name == "Asha Verma"
    assert response.json()["user_id"] == str(user.id)


async def test_student_without_email_has_no_login(client, admin_headers, student_payload):
    response = await client.post("/api/v1/students/", json=student_payload(), headers=admin_headers)
    assert response.json()["user_id"] is None
    assert await User.find(User.role == UserRole.STUDENT).count() == 0


async def test_login_is_removed_when_student_insert_fails(client, admin_headers, student_payload):
    await client.post("/api/v1/students/", json=student_payload(student_id="STU250010"), headers=admin_headers)

    response = await client.post(
        "/api/v1/students/",
        json=student_payload(student_id="STU250010", roll_number="2", email="second@greenvalley.edu"),
        headers=admin_headers,
    )

    assert response.status_code == 409
    assert await User.find_one(User.username == "second@greenvalley.edu") is None


async def test_login_is_removed_when_allocation_fails(client, admin_headers, student_payload, monkeypatch):
    monkeypatch.setattr(Counter, "get_motor_collection", classmethod(lambda cls: UnreachableCollection()))

    response = await client.post(
        "/api/v1/students/", json=student_payload(email="late@greenvalley.edu"), headers=admin_headers
    )

    assert response.status_code == 503
    assert await User.find_one(User.username == "late@greenvalley.edu") is None


async def test_existing_login_email_conflicts(client, admin_headers, student_payload):
    response = await client.post(
        "/api/v1/students/", json=student_payload(email="admin@greenvalley.edu"), headers=admin_headers
    )
    assert response.status_code == 409
    assert await Student.find_all().count() == 0
