def register(client, username):
    response = client.post("/api/auth/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": "secret123",
        "location": "Lisbon",
    })
    assert response.status_code == 200, response.text
    data = response.json()
    return {"id": data["user"]["id"], "headers": {"Authorization": f"Bearer {data['token']}"}}


def add_book(client, user, **fields):
    payload = {"title": "Dune", "author": "Frank Herbert", "condition": "good"}
    payload.update(fields)
    response = client.post("/api/books", data=payload, headers=user["headers"])
    assert response.status_code == 200, response.text
    return response.json()


def request_book(client, user, book, **fields):
    payload = {"bookId": book["id"], "message": "Would love to read this"}
    payload.update(fields)
    return client.post("/api/requests", json=payload, headers=user["headers"])
