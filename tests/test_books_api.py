"""API tests for catalog browsing, admin book management and recommendations."""
from uuid import uuid4


def test_list_and_filter_books(client, make_book):
    make_book(title="Dune", author="Frank Herbert", genres=["Sci-Fi"])
    make_book(title="Emma", author="Jane Austen", genres=["Romance"])

    assert [b["title"] for b in client.get("/api/books").json()] == ["Dune", "Emma"]
    assert [b["title"] for b in client.get("/api/books", params={"genre": "romance"}).json()] == ["Emma"]
    assert client.get("/api/books/genres").json() == ["Romance", "Sci-Fi"]


def test_invalid_sort_is_422(client):
    response = client.get("/api/books", params={"sort": "popularity"})
    assert response.status_code == 422
    assert response.json()["kind"] == "invalid_input"


def test_get_missing_book_is_404(client):
    response = client.get(f"/api/books/{uuid4()}")
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_create_book_is_admin_only(client, user, admin, auth_headers):
    payload = {"title": "Foundation", "author": "Isaac Asimov", "genres": ["Sci-Fi"], "page_count": 255}

    assert client.post("/api/books", json=payload).status_code == 401
    assert client.post("/api/books", json=payload, headers=auth_headers(user)).status_code == 403

    response = client.post("/api/books", json=payload, headers=auth_headers(admin))

    assert response.status_code == 201
    body = response.json()
    assert body["title"] == "Foundation"
    assert body["created_by"] == str(admin.id)
    assert body["average_rating"] == 0.0


def test_update_and_delete_book(client, admin, auth_headers, make_book):
    book = make_book(title="Old title")
    headers = auth_headers(admin)

    updated = client.put(f"/api/books/{book.id}", json={"title": "New title"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["title"] == "New title"

    assert client.delete(f"/api/books/{book.id}", headers=headers).status_code == 200
    assert client.get(f"/api/books/{book.id}").status_code == 404


def test_recommended_books(client, make_user, auth_headers, make_book):
    make_book(title="Hyperion", genres=["Sci-Fi"], average_rating=4.5, rating_count=10)
    make_book(title="Persuasion", genres=["Romance"], average_rating=4.8, rating_count=3)
    make_book(title="Dune", genres=["Sci-Fi"], average_rating=4.2, rating_count=50)
    reader = make_user(favourite_genres=["Sci-Fi"])

    response = client.get("/api/books/me/recommended", headers=auth_headers(reader))

    assert response.status_code == 200
    assert [b["title"] for b in response.json()] == ["Hyperion", "Dune", "Persuasion"]


def test_similar_books(client, make_book):
    dune = make_book(title="Dune", genres=["Sci-Fi"])
    make_book(title="Hyperion", genres=["Sci-Fi"])
    make_book(title="Emma", genres=["Romance"])

    response = client.get(f"/api/books/{dune.id}/similar")

    assert [b["title"] for b in response.json()] == ["Hyperion"]
