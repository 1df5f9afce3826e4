from datetime import timedelta

from timebox.core.security import create_access_token, create_oauth_state, hash_password
from timebox.models.user import User


class TestLogin:
    def test_first_sign_in_creates_user(self, client, db):
        response = client.post("/api/auth/login", json={"email": "carol@example.com", "password": "hunter22"})

        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["access_token"]
        assert body["user"]["email"] == "carol@example.com"
        assert body["user"]["name"] == "carol"
        user = db.query(User).filter(User.email == "carol@example.com").one()
        assert user.password != "hunter22"

    def test_returning_user(self, client):
        first = client.post("/api/auth/login", json={"email": "carol@example.com", "password": "hunter22"})
        again = client.post("/api/auth/login", json={"email": "carol@example.com", "password": "hunter22"})

        assert again.status_code == 200
        assert again.json()["user"]["id"] == first.json()["user"]["id"]

    def test_wrong_password(self, client):
        client.post("/api/auth/login", json={"email": "carol@example.com", "password": "hunter22"})

        response = client.post("/api/auth/login", json={"email": "carol@example.com", "password": "nope"})

        assert response.status_code == 401

    def test_oauth_user_without_password(self, client, db):
        db.add(User(email="dave@example.com", name="Dave"))
        db.commit()

        response = client.post("/api/auth/login", json={"email": "dave@example.com", "password": "anything"})

        assert response.status_code == 401

    def test_invalid_email(self, client):
        response = client.post("/api/auth/login", json={"email": "not-an-email", "password": "x"})

        assert response.status_code == 400


class TestSession:
    def test_me(self, client, auth_headers):
        response = client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["email"] == "alice@example.com"

    def test_expired_token(self, client, settings, alice):
        token = create_access_token(settings, {"sub": str(alice[1])}, expires_delta=timedelta(minutes=-1))

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_oauth_state_is_not_a_session(self, client, settings, alice):
        token = create_oauth_state(settings, alice[1])

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_token_for_deleted_user(self, client, settings, db):
        user = User(email="erin@example.com", name="Erin", password=hash_password("pw"))
        db.add(user)
        db.commit()
        token = create_access_token(settings, {"sub": str(user.id)})
        db.delete(user)
        db.commit()

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
