"""Tests for sessions, registration, admin user management and profiles."""

import jwt
import pytest
from bson import ObjectId

import auth
import users
from errors import Conflict, NotFound, Unauthorized, ValidationError
from schemas import ProfilePayload, RegisterPayload, UserPayload


def _register(**overrides):
    data = {"name": "Karim", "email": "Karim@Example.com ", "phone": "0170", "password": "hunter22"}
    data.update(overrides)
    return users.register(RegisterPayload(**data))


class TestSession:
    def test_token_round_trip(self):
        identity = auth.Identity(id=str(ObjectId()), email="a@example.com", role="admin")
        assert auth.decode_token(auth.issue_token(identity)) == identity

    def test_foreign_signature_rejected(self):
        token = jwt.encode({"sub": "1", "email": "a@example.com"}, "other-secret", algorithm="HS256")
        assert auth.decode_token(token) is None

    def test_secret_is_not_a_fixed_placeholder(self):
        assert auth.SESSION_SECRET != "change-me-in-production"

        token = jwt.encode({"sub": "1", "email": "a@example.com"}, "change-me-in-production", algorithm="HS256")
        assert auth.decode_token(token) is None

    def test_header_parsing(self, identity):
        token = auth.issue_token(identity)
        assert auth.current_identity(f"Bearer {token}") == identity
        assert auth.current_identity(f"Basic {token}") is None
        assert auth.current_identity(None) is None

    def test_authenticate(self, new_user):
        new_user(email="login@example.com", password="pa55word")

        token, user = auth.authenticate("LOGIN@example.com", "pa55word")

        assert user["email"] == "login@example.com"
        assert auth.decode_token(token).id == user["id"]

    def test_wrong_password(self, new_user):
        new_user(email="login@example.com", password="pa55word")
        with pytest.raises(Unauthorized):
            auth.authenticate("login@example.com", "nope")

    def test_missing_credentials(self):
        with pytest.raises(ValidationError):
            auth.authenticate("", "x")


class TestRegister:
    def test_normalizes_and_hashes(self, store):
        _register()

        user = store.user.find_one({})
        assert user["email"] == "karim@example.com"
        assert user["role"] == "customer"
        assert user["password"] != "hunter22"
        assert auth.verify_password("hunter22", user["password"])
        assert user["addresses"] == []
        assert user["wishlist"] == []

    def test_duplicate_email(self):
        _register()
        with pytest.raises(Conflict):
            _register(email="karim@example.com")

    def test_admin_role_refused(self):
        with pytest.raises(ValidationError):
            _register(role="admin")

    def test_missing_phone(self):
        with pytest.raises(ValidationError):
            _register(phone="")


class TestAdminUsers:
    def test_create_and_list_hide_password(self):
        created = users.create_user(UserPayload(name="Admin", email="ADMIN@example.com", password="pw", role="admin"))

        assert created["email"] == "admin@example.com"
        listed = users.list_users()
        assert [u["email"] for u in listed] == ["admin@example.com"]
        assert "password" not in listed[0]

    def test_update_rehashes_password(self, store):
        created = users.create_user(UserPayload(name="A", email="a@example.com", password="old", role="user"))

        users.update_user(created["id"], UserPayload(password="new"))

        stored = store.user.find_one({"_id": ObjectId(created["id"])})
        assert auth.verify_password("new", stored["password"])

    def test_get_unknown(self):
        with pytest.raises(NotFound):
            users.get_user(str(ObjectId()))


class TestProfile:
    def test_partial_update(self, identity):
        updated = users.update_profile(identity, ProfilePayload(phone="01999", gender="female"))

        assert updated["phone"] == "01999"
        assert updated["gender"] == "female"
        assert updated["name"] == "Jane Doe"
        assert "password" not in updated

    def test_requires_identity(self):
        with pytest.raises(Unauthorized):
            users.get_profile(None)


class TestUserEndpoints:
    def test_register_then_login(self, client):
        response = client.post(
            "/register",
            json={"name": "Karim", "email": "karim@example.com", "phone": "0170", "password": "hunter22"},
        )
        assert response.status_code == 201

        response = client.post("/auth/login", json={"email": "karim@example.com", "password": "hunter22"})
        assert response.status_code == 200
        token = response.json()["accessToken"]

        profile = client.get("/users/profile", headers={"Authorization": f"Bearer {token}"})
        assert profile.json()["email"] == "karim@example.com"

    def test_login_failure(self, client):
        response = client.post("/auth/login", json={"email": "x@example.com", "password": "y"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email or password"}

    def test_register_duplicate(self, client, identity):
        response = client.post(
            "/register",
            json={"name": "Jane", "email": identity.email, "phone": "1", "password": "pw"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Email already exists"}

    def test_admin_routes(self, client):
        response = client.post("/users", json={"name": "Ops", "email": "ops@example.com", "password": "pw", "role": "admin"})
        assert response.status_code == 201
        user_id = response.json()["user"]["id"]

        assert client.get(f"/users/{user_id}").json()["role"] == "admin"
        assert client.put(f"/users/{user_id}", json={"name": "Ops Team"}).json()["name"] == "Ops Team"
        assert client.delete(f"/users/{user_id}").json() == {"message": "User deleted"}
        assert client.get(f"/users/{user_id}").status_code == 404
