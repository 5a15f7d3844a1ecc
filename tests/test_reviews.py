from fastapi.testclient import TestClient
from salon_api.main import app

client = TestClient(app)


def _review(rating=5, name="Lucía"):
    return client.post("/api/reviews", json={"clientName": name, "rating": rating, "comment": "Excelente atención"})


def test_create_review_is_unapproved():
    response = _review()
    assert response.status_code == 201
    assert response.json()["isApproved"] is False
    assert response.json()["isRead"] is False
    assert client.get("/api/reviews").json() == []


def test_rating_bounds():
    for rating in (0, 6):
        response = _review(rating)
        assert response.status_code == 400
        assert response.json()["message"] == "La calificación debe estar entre 1 y 5"
    assert _review(1).status_code == 201


def test_moderation_flow(admin_headers):
    review = _review().json()
    assert client.get("/api/reviews/unread/count", headers=admin_headers).json() == {"count": 1}
    assert client.get("/api/reviews/pending/count", headers=admin_headers).json() == {"count": 1}

    approved = client.put(f"/api/reviews/{review['id']}/approve", headers=admin_headers)
    assert approved.json()["isApproved"] is True
    assert [r["id"] for r in client.get("/api/reviews").json()] == [review["id"]]

    replied = client.put(f"/api/reviews/{review['id']}/reply", json={"reply": "¡Gracias!"}, headers=admin_headers)
    assert replied.json()["reply"] == "¡Gracias!"
    assert replied.json()["replyDate"] is not None


def test_mark_read(admin_headers):
    review = _review().json()
    response = client.put(f"/api/reviews/{review['id']}/read", headers=admin_headers)
    assert response.json()["isRead"] is True
    assert client.get("/api/reviews/unread/count", headers=admin_headers).json() == {"count": 0}


def test_admin_listing_requires_auth(admin_headers):
    _review()
    assert client.get("/api/reviews/all").status_code == 401
    assert len(client.get("/api/reviews/all", headers=admin_headers).json()) == 1


def test_delete_review(admin_headers):
    review = _review().json()
    assert client.delete(f"/api/reviews/{review['id']}", headers=admin_headers).status_code == 204
    assert client.put(f"/api/reviews/{review['id']}/approve", headers=admin_headers).status_code == 404
