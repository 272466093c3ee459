"""Integration tests for ratings API endpoints."""

from tests.fixtures import create_rating

BODY = {
    "rating": 4,
    "title": "Solid analytics",
    "review": "Pivot summaries and charts are quick to build.",
    "categories": {"usability": 5, "performance": 3},
    "usage_context": {"industry": "Retail", "company_size": "medium", "usage_duration": "1-3_months"},
}


class TestPublicRatings:
    """Tests for GET /api/ratings/public."""

    def test_empty(self, client):
        response = client.get("/api/ratings/public")
        assert response.status_code == 200
        assert response.json() == []

    def test_testimonials(self, client, approved_rating, pending_rating):
        data = client.get("/api/ratings/public").json()
        assert len(data) == 1
        assert data[0]["name"] == "Jane Doe"
        assert data[0]["company"] == "Finance"
        assert data[0]["content"] == approved_rating.review

    def test_filters(self, client, db):
        create_rating(db, "u1", status="approved", rating=3, industry="Retail")
        create_rating(db, "u2", status="approved", rating=5, industry="Finance")

        assert len(client.get("/api/ratings/public", params={"min_rating": 3}).json()) == 2
        assert len(client.get("/api/ratings/public", params={"industry": "Retail"}).json()) == 0

    def test_limit_bounds(self, client):
        assert client.get("/api/ratings/public", params={"limit": 0}).status_code == 400
        assert client.get("/api/ratings/public", params={"limit": 51}).status_code == 400


class TestRatingStats:
    def test_stats(self, client, approved_rating):
        data = client.get("/api/ratings/stats").json()
        assert data["total_ratings"] == 1
        assert data["recent_ratings"] == 1
        assert data["verified_ratings"] == 0
        assert data["distribution"]["5"] == 1
        assert "last_updated" in data


class TestSubmitRating:
    """Tests for POST /api/ratings."""

    def test_requires_auth(self, client):
        assert client.post("/api/ratings", json=BODY).status_code == 401

    def test_invalid_token(self, client):
        response = client.post("/api/ratings", json=BODY, headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_submit(self, client, user_headers):
        response = client.post("/api/ratings", json=BODY, headers=user_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["user_id"] == "user-1"
        assert data["status"] == "pending"
        assert data["source"] == "web"
        assert data["categories"] == {"usability": 5, "performance": 3}
        assert data["avg_category_rating"] == 4.0
        assert data["usage_context"]["company_size"] == "medium"

    def test_duplicate(self, client, user_headers):
        client.post("/api/ratings", json=BODY, headers=user_headers)
        response = client.post("/api/ratings", json=BODY, headers=user_headers)
        assert response.status_code == 409

    def test_review_too_short(self, client, user_headers):
        response = client.post("/api/ratings", json={**BODY, "review": "meh"}, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["errors"][0]["loc"][-1] == "review"


class TestOwnRating:
    """Tests for GET/PUT /api/ratings/mine."""

    def test_none_yet(self, client, user_headers):
        response = client.get("/api/ratings/mine", headers=user_headers)
        assert response.status_code == 200
        assert response.json() is None

    def test_update_returns_to_moderation(self, client, db, user_headers):
        create_rating(db, "user-1", status="approved")

        response = client.put("/api/ratings/mine", json={"rating": 2}, headers=user_headers)

        assert response.status_code == 200
        assert response.json()["rating"] == 2
        assert response.json()["status"] == "pending"

    def test_update_missing(self, client, user_headers):
        response = client.put("/api/ratings/mine", json={"rating": 2}, headers=user_headers)
        assert response.status_code == 404


class TestHelpful:
    """Tests for POST /api/ratings/{id}/helpful."""

    def test_vote(self, client, approved_rating, user_headers, other_user_headers):
        client.post(f"/api/ratings/{approved_rating.id}/helpful", headers=user_headers)
        response = client.post(f"/api/ratings/{approved_rating.id}/helpful", headers=other_user_headers)
        assert response.status_code == 200
        assert response.json() == {"helpful_votes": 2}

    def test_own_rating(self, client, db, user_headers):
        rating = create_rating(db, "user-1", status="approved")
        response = client.post(f"/api/ratings/{rating.id}/helpful", headers=user_headers)
        assert response.status_code == 400

    def test_missing(self, client, user_headers):
        response = client.post("/api/ratings/missing/helpful", headers=user_headers)
        assert response.status_code == 404


class TestModeration:
    """Tests for the admin moderation endpoints."""

    def test_requires_admin(self, client, user_headers):
        response = client.get("/api/ratings/admin/pending", headers=user_headers)
        assert response.status_code == 403

    def test_list_pending(self, client, pending_rating, approved_rating, admin_headers):
        response = client.get("/api/ratings/admin/pending", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["total_pages"] == 1
        assert data["items"][0]["id"] == pending_rating.id

    def test_approve_publishes(self, client, pending_rating, admin_headers):
        response = client.post(f"/api/ratings/admin/{pending_rating.id}/approve", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        public = client.get("/api/ratings/public", params={"min_rating": 1}).json()
        assert [r["id"] for r in public] == [pending_rating.id]

    def test_reject(self, client, pending_rating, admin_headers):
        response = client.post(
            f"/api/ratings/admin/{pending_rating.id}/reject",
            json={"reason": "Off-topic"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "rejected"

    def test_approve_missing(self, client, admin_headers):
        response = client.post("/api/ratings/admin/missing/approve", headers=admin_headers)
        assert response.status_code == 404
