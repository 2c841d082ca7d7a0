# tests/api/test_reviews.py
import pytest

from devcamper.api import reviews

from conftest import auth_headers, review_payload


def add_review(client, bootcamp_id, headers, rating=8, **overrides):
    return client.post(f"/api/bootcamps/{bootcamp_id}/reviews", json=review_payload(rating, **overrides), headers=headers)


def average_rating(client, bootcamp_id):
    return client.get(f"/api/bootcamps/{bootcamp_id}").json()["data"]["average_rating"]


def test_reviews_update_average_rating(client, sample_bootcamp):
    assert add_review(client, sample_bootcamp.id, auth_headers(10), rating=7).status_code == 201
    assert add_review(client, sample_bootcamp.id, auth_headers(11), rating=10).status_code == 201

    assert average_rating(client, sample_bootcamp.id) == pytest.approx(8.5)


def test_one_review_per_user_and_bootcamp(client, sample_bootcamp, other_headers):
    assert add_review(client, sample_bootcamp.id, other_headers, rating=9).status_code == 201

    response = add_review(client, sample_bootcamp.id, other_headers, rating=1)
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Duplicate field value entered"}
    assert average_rating(client, sample_bootcamp.id) == pytest.approx(9)

    assert add_review(client, sample_bootcamp.id, auth_headers(3), rating=5).status_code == 201
    assert average_rating(client, sample_bootcamp.id) == pytest.approx(7)


@pytest.mark.parametrize("rating", [0, 11])
def test_rating_out_of_range_is_rejected(client, sample_bootcamp, other_headers, rating):
    response = add_review(client, sample_bootcamp.id, other_headers, rating=rating)
    assert response.status_code == 400
    assert "rating" in response.json()["error"]


def test_review_for_missing_bootcamp(client, other_headers):
    response = add_review(client, 321, other_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "No bootcamp with the id of 321"


def test_review_requires_identity(client, sample_bootcamp):
    assert add_review(client, sample_bootcamp.id, {}).status_code == 401


def test_list_and_get_reviews(client, make_bootcamp, make_review):
    first = make_bootcamp("First Camp")
    second = make_bootcamp("Second Camp")
    review = make_review(first, user_id=4, rating=6)
    make_review(second, user_id=4, rating=3)

    assert client.get("/api/reviews").json()["count"] == 2

    body = client.get(f"/api/bootcamps/{first.id}/reviews").json()
    assert [r["id"] for r in body["data"]] == [review.id]
    assert body["data"][0]["bootcamp"]["name"] == "First Camp"

    data = client.get(f"/api/reviews/{review.id}").json()["data"]
    assert data["rating"] == 6
    assert data["bootcamp"]["id"] == first.id

    assert client.get("/api/reviews/999").status_code == 404


def test_only_author_or_admin_may_change_a_review(client, sample_bootcamp, other_headers, owner_headers, admin_headers):
    review = add_review(client, sample_bootcamp.id, other_headers, rating=4).json()["data"]

    # the bootcamp owner is not the review author
    response = client.put(f"/api/reviews/{review['id']}", json={"rating": 10}, headers=owner_headers)
    assert response.status_code == 403

    response = client.put(f"/api/reviews/{review['id']}", json={"rating": 6}, headers=other_headers)
    assert response.status_code == 200
    assert average_rating(client, sample_bootcamp.id) == pytest.approx(6)

    response = client.delete(f"/api/reviews/{review['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert average_rating(client, sample_bootcamp.id) is None


def test_update_rejects_out_of_range_rating(client, sample_bootcamp, other_headers):
    review = add_review(client, sample_bootcamp.id, other_headers, rating=4).json()["data"]
    response = client.put(f"/api/reviews/{review['id']}", json={"rating": 42}, headers=other_headers)
    assert response.status_code == 400
    assert average_rating(client, sample_bootcamp.id) == pytest.approx(4)


def test_nested_listing_failure_is_reported_as_server_error(client, sample_bootcamp, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(reviews.review_results, "execute", broken)
    response = client.get(f"/api/bootcamps/{sample_bootcamp.id}/reviews")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to list reviews"}
