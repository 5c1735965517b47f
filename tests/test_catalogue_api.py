def test_catalogue_api_requires_a_session(client):
    for method, url in [("get", "/api/movie"), ("post", "/api/movie"), ("delete", "/api/movie?id=1"),
                        ("post", "/api/rating")]:
        r = client.request(method.upper(), url, follow_redirects=False)
        assert r.status_code == 303, url
        assert r.headers["location"].startswith("/login")


def test_add_list_rate_delete(logged_in):
    r = logged_in.post(
        "/api/books",
        json={"id": "zyTCAlFPjgYC", "title": "Dune", "releaseDate": "1965", "genres": ["sf"]},
    )
    assert r.status_code == 200
    item = r.json()["item"]
    assert r.json()["alreadyExists"] is False
    assert item["category"] == "BOOK"
    assert item["ownerId"] == "flams1"

    r = logged_in.post("/api/books", json={"id": "zyTCAlFPjgYC", "title": "Dune"})
    assert r.json()["alreadyExists"] is True

    r = logged_in.post("/api/rating", json={"movieId": item["id"], "value": 5})
    assert r.status_code == 200
    assert r.json() == {"rating": {"ownerId": "flams1", "movieId": item["id"], "value": 5.0}}

    items = logged_in.get("/api/books").json()["items"]
    assert [(i["title"], i["rating"]) for i in items] == [("Dune", 5.0)]
    assert logged_in.get("/api/movie").json() == {"items": []}

    r = logged_in.delete(f"/api/books?id={item['id']}")
    assert r.json() == {"ok": True}
    assert logged_in.get("/api/books").json() == {"items": []}


def test_catalogue_validation(logged_in):
    assert logged_in.get("/api/podcasts").status_code == 404
    assert logged_in.post("/api/movie", json={"id": 1}).status_code == 400
    assert logged_in.post("/api/movie", json={"title": "Heat"}).status_code == 400
    assert logged_in.delete("/api/movie").status_code == 400
    assert logged_in.delete("/api/movie?id=99").status_code == 404
    assert logged_in.post("/api/rating", json={"movieId": 1}).status_code == 400
    assert logged_in.post("/api/rating", json={"value": 3}).status_code == 400
    assert logged_in.post("/api/rating", json={"movieId": 12345, "value": 3}).status_code == 404


def test_items_are_scoped_to_their_owner(client):
    client.post("/login", json={"username": "flams", "password": "1234"})
    client.post("/api/movie", json={"id": 949, "title": "Heat"})
    client.delete("/login")

    client.post("/login", json={"username": "random", "password": "1234"})
    assert client.get("/api/movie").json() == {"items": []}


def test_dashboard_lists_catalogue(logged_in):
    logged_in.post("/api/anime", json={"id": 1, "title": "Cowboy Bebop"})
    r = logged_in.get("/dashboard")
    assert r.status_code == 200
    assert "Cowboy Bebop" in r.text


def test_zero_and_negative_ids_are_rejected_on_every_path(logged_in):
    for bad in (0, -5, "0", "-5"):
        r = logged_in.post("/api/movie", json={"id": bad, "title": "Heat"})
        assert r.status_code == 400, bad
        r = logged_in.post("/api/rating", json={"movieId": bad, "value": 3})
        assert r.status_code == 400, bad
    for bad in ("0", "-5"):
        r = logged_in.delete(f"/api/movie?id={bad}")
        assert r.status_code == 400, bad
        assert r.json() == {"error": "Invalid id"}
    assert logged_in.get("/api/movie").json() == {"items": []}


def test_numeric_ids_fold_the_same_from_body_and_query(logged_in):
    for body_id, query_id in ((949, "949"), ("949", "949"), ("+12", "12")):
        r = logged_in.post("/api/movie", json={"id": body_id, "title": "Heat"})
        assert r.status_code == 200
        item_id = r.json()["item"]["id"]
        assert logged_in.post("/api/rating", json={"movieId": query_id, "value": 4}).status_code == 200
        assert logged_in.delete(f"/api/movie?id={query_id}").json() == {"ok": True}
        assert logged_in.get("/api/movie").json() == {"items": []}
        assert item_id == int(query_id)
