"""API tests for reviews, likes and the aggregate rating on books."""
import pytest


def test_review_lifecycle(client, user, make_user, auth_headers, make_book):
    book = make_book()
    other = make_user(name="Bob")

    first = client.post(f"/api/reviews/book/{book.id}", json={"rating": 5, "comment": "Great"}, headers=auth_headers(user))
    second = client.post(f"/api/reviews/book/{book.id}", json={"rating": 2}, headers=auth_headers(other))
    assert first.status_code == 201
    assert second.status_code == 201

    detail = client.get(f"/api/books/{book.id}").json()
    assert detail["rating_count"] == 2
    assert detail["average_rating"] == pytest.approx(3.5)

    reviews = client.get(f"/api/reviews/book/{book.id}").json()
    assert [r["user_name"] for r in reviews] == ["Ada Reader", "Bob"]

    deleted = client.delete(f"/api/reviews/{first.json()['id']}", headers=auth_headers(user))
    assert deleted.status_code == 200

    detail = client.get(f"/api/books/{book.id}").json()
    assert detail["rating_count"] == 1
    assert detail["average_rating"] == pytest.approx(2.0)


def test_duplicate_review_is_409(client, user, auth_headers, make_book):
    book = make_book()
    headers = auth_headers(user)
    client.post(f"/api/reviews/book/{book.id}", json={"rating": 4}, headers=headers)

    response = client.post(f"/api/reviews/book/{book.id}", json={"rating": 3}, headers=headers)

    assert response.status_code == 409
    assert response.json()["kind"] == "conflict"


@pytest.mark.parametrize("rating", [0, 6])
def test_out_of_range_rating_is_422(client, user, auth_headers, make_book, rating):
    book = make_book()
    response = client.post(f"/api/reviews/book/{book.id}", json={"rating": rating}, headers=auth_headers(user))
    assert response.status_code == 422


def test_other_user_cannot_delete_review(client, user, make_user, auth_headers, make_book):
    book = make_book()
    review = client.post(f"/api/reviews/book/{book.id}", json={"rating": 4}, headers=auth_headers(user)).json()

    response = client.delete(f"/api/reviews/{review['id']}", headers=auth_headers(make_user()))

    assert response.status_code == 403
    assert response.json()["kind"] == "forbidden"


def test_like_toggle(client, user, make_user, auth_headers, make_book):
    book = make_book()
    review = client.post(f"/api/reviews/book/{book.id}", json={"rating": 4}, headers=auth_headers(user)).json()
    fan = make_user()

    liked = client.post(f"/api/reviews/{review['id']}/like", headers=auth_headers(fan)).json()
    assert liked["likes"] == [str(fan.id)]
    assert liked["like_count"] == 1

    unliked = client.post(f"/api/reviews/{review['id']}/like", headers=auth_headers(fan)).json()
    assert unliked["likes"] == []
    assert unliked["like_count"] == 0
