from fastapi import status
from sqlmodel import select
from models import User, UserFollow
from auth.security import get_password_hash

def ids(users):
    return sorted(user["id"] for user in users)

def test_get_own_profile(client, create_user):
    user = create_user(email="me@example.com")

    response = client.get("/user/profile", headers=user["headers"])
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["id"] == user["id"]
    assert body["email"] == "me@example.com"
    assert body["profilePicture"] is None
    assert body["followers"] == []
    assert body["following"] == []
    assert "password_hash" not in body
    assert "createdAt" in body and "created_at" not in body

def test_get_user_by_id(client, db_session):
    user = User(email="public@example.com", password_hash=get_password_hash("testpass123"))
    db_session.add(user)
    db_session.commit()

    response = client.get(f"/user/{user.id}")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["email"] == "public@example.com"
    assert "password_hash" not in response.json()

def test_get_user_by_id_not_found(client):
    response = client.get("/user/9999")
    assert response.status_code == status.HTTP_404_NOT_FOUND

def test_get_user_by_invalid_id(client):
    response = client.get("/user/not-a-number")
    assert response.status_code == status.HTTP_400_BAD_REQUEST

def test_follow_user(client, create_user):
    alice = create_user(email="alice@example.com")
    bob = create_user(email="bob@example.com")

    response = client.post(f"/user/follow/{bob['id']}", headers=alice["headers"])
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "User followed successfully"

    alice_profile = client.get("/user/profile", headers=alice["headers"]).json()
    bob_profile = client.get(f"/user/{bob['id']}").json()
    assert ids(alice_profile["following"]) == [bob["id"]]
    assert alice_profile["followers"] == []
    assert ids(bob_profile["followers"]) == [alice["id"]]
    assert bob_profile["followers"][0]["email"] == "alice@example.com"
    assert bob_profile["following"] == []

def test_follow_then_unfollow_restores_lists(client, create_user):
    alice = create_user(email="alice@example.com")
    bob = create_user(email="bob@example.com")
    carol = create_user(email="carol@example.com")

    # Pre-existing relationships that must survive the follow/unfollow pair
    client.post(f"/user/follow/{alice['id']}", headers=carol["headers"])
    client.post(f"/user/follow/{carol['id']}", headers=bob["headers"])

    before_alice = client.get(f"/user/{alice['id']}").json()
    before_bob = client.get(f"/user/{bob['id']}").json()

    assert client.post(f"/user/follow/{bob['id']}", headers=alice["headers"]).status_code == 200
    assert client.post(f"/user/unfollow/{bob['id']}", headers=alice["headers"]).status_code == 200

    after_alice = client.get(f"/user/{alice['id']}").json()
    after_bob = client.get(f"/user/{bob['id']}").json()
    for key in ("followers", "following"):
        assert ids(after_alice[key]) == ids(before_alice[key])
        assert ids(after_bob[key]) == ids(before_bob[key])

def test_follow_self_rejected(client, create_user):
    alice = create_user(email="alice@example.com")
    response = client.post(f"/user/follow/{alice['id']}", headers=alice["headers"])
    assert response.status_code == status.HTTP_400_BAD_REQUEST

def test_follow_twice_rejected(client, create_user, db_session):
    alice = create_user(email="alice@example.com")
    bob = create_user(email="bob@example.com")

    assert client.post(f"/user/follow/{bob['id']}", headers=alice["headers"]).status_code == 200
    response = client.post(f"/user/follow/{bob['id']}", headers=alice["headers"])
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Already following this user"
    assert len(db_session.exec(select(UserFollow)).all()) == 1

def test_follow_unknown_user(client, create_user):
    alice = create_user(email="alice@example.com")
    response = client.post("/user/follow/9999", headers=alice["headers"])
    assert response.status_code == status.HTTP_404_NOT_FOUND

def test_unfollow_when_not_following(client, create_user):
    alice = create_user(email="alice@example.com")
    bob = create_user(email="bob@example.com")

    response = client.post(f"/user/unfollow/{bob['id']}", headers=alice["headers"])
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Not following this user"

def test_unfollow_self_rejected(client, create_user):
    alice = create_user(email="alice@example.com")
    response = client.post(f"/user/unfollow/{alice['id']}", headers=alice["headers"])
    assert response.status_code == status.HTTP_400_BAD_REQUEST

def test_follow_requires_auth(client, create_user):
    bob = create_user(email="bob@example.com")
    response = client.post(f"/user/follow/{bob['id']}")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
