from datetime import timedelta

import pytest

from profrate.db import models


@pytest.fixture
def catalogue(doctor_factory, review_factory):
    now = models.now_utc()
    ada = doctor_factory("Dr. Ada Lovelace", "Computer Science", title="Professor", created_at=now - timedelta(days=3))
    alan = doctor_factory("Dr. Alan Turing", "Computer Science", created_at=now - timedelta(days=2))
    marie = doctor_factory("Dr. Marie Curie", "Physics", bio="Radioactivity", created_at=now - timedelta(days=1))
    review_factory(ada, score=5)
    review_factory(ada, score=5)
    review_factory(alan, score=2)
    return {"ada": ada, "alan": alan, "marie": marie}


def test_list_doctors_newest_first(client, catalogue):
    r = client.get("/api/doctors")
    assert r.status_code == 200
    names = [d["name"] for d in r.json()]
    assert names == ["Dr. Marie Curie", "Dr. Alan Turing", "Dr. Ada Lovelace"]


def test_list_doctors_includes_ratings(client, catalogue):
    doctors = {d["name"]: d for d in client.get("/api/doctors").json()}
    assert doctors["Dr. Ada Lovelace"]["ratings"]["overall_rating"] == 5.0
    assert doctors["Dr. Ada Lovelace"]["ratings"]["total_reviews"] == 2
    assert doctors["Dr. Marie Curie"]["ratings"] is None


@pytest.mark.parametrize(
    "sort,expected",
    [
        ("name", ["Dr. Ada Lovelace", "Dr. Alan Turing", "Dr. Marie Curie"]),
        ("rating", ["Dr. Ada Lovelace", "Dr. Alan Turing", "Dr. Marie Curie"]),
        ("reviews", ["Dr. Ada Lovelace", "Dr. Alan Turing", "Dr. Marie Curie"]),
    ],
)
def test_list_doctors_sorting(client, catalogue, sort, expected):
    names = [d["name"] for d in client.get("/api/doctors", params={"sort": sort}).json()]
    assert names == expected


def test_list_doctors_invalid_sort(client):
    assert client.get("/api/doctors", params={"sort": "random"}).status_code == 400


def test_search_matches_name_department_and_title(client, catalogue):
    by_name = client.get("/api/doctors", params={"search": "TURING"}).json()
    assert [d["name"] for d in by_name] == ["Dr. Alan Turing"]
    by_department = client.get("/api/doctors", params={"search": "physics"}).json()
    assert [d["name"] for d in by_department] == ["Dr. Marie Curie"]
    by_title = client.get("/api/doctors", params={"search": "profess"}).json()
    assert [d["name"] for d in by_title] == ["Dr. Ada Lovelace"]


def test_filter_by_department(client, catalogue):
    r = client.get("/api/doctors", params={"department": "computer science", "sort": "name"})
    assert [d["name"] for d in r.json()] == ["Dr. Ada Lovelace", "Dr. Alan Turing"]


def test_departments(client, catalogue):
    assert client.get("/api/doctors/departments").json() == ["Computer Science", "Physics"]


def test_get_doctor(client, catalogue):
    ada = catalogue["ada"]
    r = client.get(f"/api/doctors/{ada.id}")
    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "Dr. Ada Lovelace"
    assert body["ratings"]["avg_fairness"] == 5.0


@pytest.mark.parametrize("bad_id", ["abc", "0", "-3", "1.5"])
def test_get_doctor_invalid_id(client, bad_id):
    r = client.get(f"/api/doctors/{bad_id}")
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid doctor ID"


def test_get_doctor_missing(client):
    r = client.get("/api/doctors/9999")
    assert r.status_code == 404
    assert r.json()["detail"] == "Doctor not found"


def test_compare_keeps_requested_order(client, catalogue):
    ids = f"{catalogue['marie'].id},{catalogue['ada'].id}"
    r = client.get("/api/doctors/compare", params={"ids": ids})
    assert r.status_code == 200
    assert [d["name"] for d in r.json()] == ["Dr. Marie Curie", "Dr. Ada Lovelace"]


def test_compare_deduplicates_ids(client, catalogue):
    ada = catalogue["ada"].id
    r = client.get("/api/doctors/compare", params={"ids": f"{ada},{ada}"})
    assert r.status_code == 400


@pytest.mark.parametrize("ids", ["", "1", "1,2,3,4,5", "1,x"])
def test_compare_rejects_bad_id_lists(client, ids):
    assert client.get("/api/doctors/compare", params={"ids": ids}).status_code == 400


def test_compare_reports_missing(client, catalogue):
    r = client.get("/api/doctors/compare", params={"ids": f"{catalogue['ada'].id},9999"})
    assert r.status_code == 404
    assert "9999" in r.json()["detail"]


def test_create_doctor_requires_admin(student_client):
    r = student_client.post("/api/doctors", json={"name": "Dr. New", "department": "Maths"})
    assert r.status_code == 403


def test_create_doctor_requires_login(client, get_csrf):
    r = client.post("/api/doctors", json={"name": "Dr. New", "department": "Maths"}, headers=get_csrf(client))
    assert r.status_code == 401


def test_admin_creates_doctor_and_markup_is_stripped(admin_client, db_session):
    r = admin_client.post(
        "/api/doctors",
        json={"name": "<b>Dr. Grace Hopper</b>", "department": "Computer Science", "bio": "<script>x</script>Navy"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["name"] == "Dr. Grace Hopper"
    assert body["bio"] == "xNavy"
    assert body["ratings"] is None
    logged = db_session.query(models.ActivityLog).filter_by(type="doctor_create").one()
    assert logged.username == "admin"


@pytest.mark.parametrize(
    "payload",
    [
        {"department": "Maths"},
        {"name": "   ", "department": "Maths"},
        {"name": "Dr. X", "department": "<i></i>"},
        {"name": "Dr. \x00", "department": "Maths"},
    ],
)
def test_create_doctor_validation(admin_client, payload):
    assert admin_client.post("/api/doctors", json=payload).status_code == 422


def test_update_doctor(admin_client, catalogue):
    marie = catalogue["marie"]
    r = admin_client.patch(f"/api/doctors/{marie.id}", json={"title": "Nobel Laureate"})
    assert r.status_code == 200
    assert r.json()["title"] == "Nobel Laureate"
    assert r.json()["name"] == "Dr. Marie Curie"


@pytest.mark.parametrize("url", ["javascript:alert(1)", "http://evil.example/x", "data:text/html;base64,PGI+"])
def test_create_doctor_rejects_unsafe_image_url(admin_client, url):
    r = admin_client.post("/api/doctors", json={"name": "Dr. X", "department": "Maths", "profile_image_url": url})
    assert r.status_code == 422


def test_update_doctor_image_url_must_be_https(admin_client, catalogue):
    marie = catalogue["marie"]
    r = admin_client.patch(f"/api/doctors/{marie.id}", json={"profile_image_url": "http://evil.example/x"})
    assert r.status_code == 422

    r = admin_client.patch(f"/api/doctors/{marie.id}", json={"profile_image_url": "https://cdn.example.com/m.png"})
    assert r.status_code == 200
    image = admin_client.get(f"/api/profile-image/doctor/{marie.id}", follow_redirects=False)
    assert image.status_code == 307
    assert image.headers["location"] == "https://cdn.example.com/m.png"


def test_update_missing_doctor(admin_client):
    assert admin_client.patch("/api/doctors/9999", json={"title": "x"}).status_code == 404


def test_delete_doctor_cascades(admin_client, catalogue, db_session):
    ada = catalogue["ada"]
    r = admin_client.delete(f"/api/doctors/{ada.id}")
    assert r.status_code == 204
    assert admin_client.get(f"/api/doctors/{ada.id}").status_code == 404
    db_session.expire_all()
    assert db_session.query(models.Review).filter_by(doctor_id=ada.id).count() == 0
    assert db_session.query(models.DoctorRating).filter_by(doctor_id=ada.id).count() == 0


def test_delete_missing_doctor(admin_client):
    assert admin_client.delete("/api/doctors/9999").status_code == 404
