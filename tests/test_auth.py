"""
Unit tests for authentication module
"""
from datetime import timedelta
from terve.auth import (
    verify_password, get_password_hash, create_access_token,
    decode_token, verify_token, refresh_access_token, create_refresh_token
)


class TestPasswordHashing:
    def test_password_hashing(self):
        """Test password hashing and verification"""
        password = "test_password_123"
        hashed = get_password_hash(password)

        assert hashed != password
        assert verify_password(password, hashed)
        assert not verify_password("wrong_password", hashed)


class TestJWTTokens:
    def test_create_access_token(self):
        """Test access token creation"""
        token = create_access_token("42")

        assert isinstance(token, str)
        assert decode_token(token) == "42"

    def test_create_refresh_token(self):
        """Test refresh token creation"""
        token = create_refresh_token("42")

        payload = verify_token(token, "refresh")
        assert payload is not None
        assert payload["sub"] == "42"
        assert payload["type"] == "refresh"

    def test_token_expiration(self):
        """Test token expiration"""
        token = create_access_token("42", expires_delta=timedelta(seconds=-1))
        assert decode_token(token) is None

    def test_invalid_token(self):
        """Test invalid token handling"""
        assert decode_token("invalid.token.here") is None

    def test_refresh_token_flow(self):
        """Test refresh token flow"""
        new_access_token = refresh_access_token(create_refresh_token("42"))
        assert new_access_token is not None
        assert decode_token(new_access_token) == "42"

    def test_wrong_token_type(self):
        """Test using wrong token type"""
        access_token = create_access_token("42")
        assert verify_token(access_token, "refresh") is None
        assert decode_token(create_refresh_token("42")) is None


class TestAuthEndpoints:
    def test_register_seeds_learning_pile(self, client, catalog):
        response = client.post("/auth/register", json={
            "email": "pekka@example.com", "password": "salasana", "name": "Pekka",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["cefr_level"] == "A1"

        headers = {"Authorization": f"Bearer {data['access_token']}"}
        stats = client.get("/flashcards/stats", headers=headers).json()
        # the starter catalog holds 30 A1 words
        assert stats["learning"] == 30
        assert stats["total"] == 30

    def test_register_duplicate_email(self, client, learner):
        response = client.post("/auth/register", json={
            "email": learner.email, "password": "salasana", "name": "Toinen",
        })
        assert response.status_code == 400

    def test_register_rejects_unknown_level(self, client):
        response = client.post("/auth/register", json={
            "email": "pekka@example.com", "password": "salasana", "name": "Pekka", "cefr_level": "D7",
        })
        assert response.status_code == 400

    def test_login(self, client, learner):
        response = client.post("/auth/login", json={"email": learner.email, "password": "salasana"})
        assert response.status_code == 200
        assert decode_token(response.json()["access_token"]) == str(learner.id)

    def test_login_wrong_password(self, client, learner):
        response = client.post("/auth/login", json={"email": learner.email, "password": "väärä"})
        assert response.status_code == 401

    def test_refresh(self, client, learner):
        response = client.post("/auth/refresh", json={"refresh_token": create_refresh_token(str(learner.id))})
        assert response.status_code == 200
        assert decode_token(response.json()["access_token"]) == str(learner.id)

    def test_me_requires_token(self, client):
        assert client.get("/auth/me").status_code == 401
        bad = {"Authorization": "Bearer invalid.token.here"}
        assert client.get("/auth/me", headers=bad).status_code == 401

    def test_update_profile(self, client, auth_headers):
        response = client.patch("/auth/me", headers=auth_headers,
                                json={"cefr_level": "b1", "preferred_story_length": "short"})
        assert response.status_code == 200
        data = response.json()
        assert data["cefr_level"] == "B1"
        assert data["preferred_story_length"] == "short"

        assert client.get("/auth/me", headers=auth_headers).json()["cefr_level"] == "B1"
