"""
Unit tests for user management endpoints.
"""


def get_auth_header(token: str) -> dict:
    """Helper function to create authorization header."""
    return {"Authorization": f"Bearer {token}"}


class TestUserRegistration:
    """Tests for user registration endpoint."""

    def test_register_user_success(self, client):
        """Test successful user registration."""
        response = client.post(
            "/users/register",
            json={
                "name": "New Guest",
                "username": "newguest",
                "email": "newguest@example.com",
                "password": "securepass123",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "newguest"
        assert data["role_id"] == 1
        assert "password" not in data
        assert "hashed_password" not in data

    def test_register_cannot_pick_role(self, client):
        """Test self-registration always creates a guest."""
        response = client.post(
            "/users/register",
            json={
                "name": "Sneaky",
                "username": "sneaky",
                "email": "sneaky@example.com",
                "password": "securepass123",
                "role_id": 3,
            },
        )
        assert response.status_code == 200
        assert response.json()["role_id"] == 1

    def test_register_duplicate_username(self, client, regular_user):
        response = client.post(
            "/users/register",
            json={
                "name": "Another",
                "username": "guest",
                "email": "another@example.com",
                "password": "securepass123",
            },
        )
        assert response.status_code == 400

    def test_register_short_password(self, client):
        response = client.post(
            "/users/register",
            json={"name": "Short", "username": "short", "email": "short@example.com", "password": "abc"},
        )
        assert response.status_code == 422


class TestUserLogin:
    """Tests for user login endpoint."""

    def test_login_success(self, client, regular_user):
        response = client.post("/users/login", params={"username": "guest", "password": "guestpass123"})
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]

    def test_login_wrong_password(self, client, regular_user):
        response = client.post("/users/login", params={"username": "guest", "password": "wrongpass"})
        assert response.status_code == 401


class TestCurrentUser:
    """Tests for /users/me."""

    def test_get_me(self, client, regular_user, regular_token):
        response = client.get("/users/me", headers=get_auth_header(regular_token))
        assert response.status_code == 200
        assert response.json()["username"] == "guest"

    def test_invalid_token(self, client):
        response = client.get("/users/me", headers=get_auth_header("not-a-token"))
        assert response.status_code == 401

    def test_update_me(self, client, regular_user, regular_token):
        response = client.patch(
            "/users/me", headers=get_auth_header(regular_token), json={"name": "Renamed Guest"}
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed Guest"

    def test_update_me_email_taken(self, client, regular_user, other_user, regular_token):
        response = client.patch(
            "/users/me", headers=get_auth_header(regular_token), json={"email": "otherguest@example.com"}
        )
        assert response.status_code == 400

    def test_change_password(self, client, regular_user, regular_token):
        response = client.put(
            "/users/me/password",
            headers=get_auth_header(regular_token),
            json={"current_password": "guestpass123", "new_password": "brandnew123"},
        )
        assert response.status_code == 200

        response = client.post("/users/login", params={"username": "guest", "password": "brandnew123"})
        assert response.status_code == 200

    def test_change_password_wrong_current(self, client, regular_user, regular_token):
        response = client.put(
            "/users/me/password",
            headers=get_auth_header(regular_token),
            json={"current_password": "nope-nope", "new_password": "brandnew123"},
        )
        assert response.status_code == 400


class TestUserAdministration:
    """Tests for user listing and role management."""

    def test_regular_cannot_list(self, client, regular_user, regular_token):
        response = client.get("/users/", headers=get_auth_header(regular_token))
        assert response.status_code == 403

    def test_admin_sees_guests_only(self, client, regular_user, other_user, admin_user, admin_token):
        response = client.get("/users/", headers=get_auth_header(admin_token))
        assert response.status_code == 200
        assert sorted(user["username"] for user in response.json()) == ["guest", "otherguest"]

    def test_admin_cannot_read_staff(self, client, admin_user, super_admin_user, admin_token):
        response = client.get(f"/users/{super_admin_user.id}", headers=get_auth_header(admin_token))
        assert response.status_code == 404

    def test_super_admin_filters_by_role(self, client, regular_user, admin_user, super_admin_user, super_admin_token):
        response = client.get("/users/", headers=get_auth_header(super_admin_token), params={"role_id": 2})
        assert response.status_code == 200
        assert [user["username"] for user in response.json()] == ["admin"]

    def test_super_admin_creates_admin(self, client, super_admin_user, super_admin_token):
        response = client.post(
            "/users/",
            headers=get_auth_header(super_admin_token),
            json={
                "name": "Front Desk",
                "username": "frontdesk",
                "email": "frontdesk@example.com",
                "password": "deskpass123",
                "role_id": 2,
            },
        )
        assert response.status_code == 200
        assert response.json()["role_id"] == 2

    def test_admin_cannot_create_users(self, client, admin_user, admin_token):
        response = client.post(
            "/users/",
            headers=get_auth_header(admin_token),
            json={
                "name": "Nope",
                "username": "nope",
                "email": "nope@example.com",
                "password": "nopepass123",
                "role_id": 3,
            },
        )
        assert response.status_code == 403

    def test_change_role(self, client, regular_user, super_admin_user, super_admin_token):
        response = client.put(
            f"/users/{regular_user.id}/role",
            headers=get_auth_header(super_admin_token),
            json={"role_id": 2},
        )
        assert response.status_code == 200
        assert response.json()["role_id"] == 2

    def test_cannot_change_own_role(self, client, super_admin_user, super_admin_token):
        response = client.put(
            f"/users/{super_admin_user.id}/role",
            headers=get_auth_header(super_admin_token),
            json={"role_id": 1},
        )
        assert response.status_code == 400

    def test_delete_user(self, client, other_user, super_admin_user, super_admin_token):
        response = client.delete(f"/users/{other_user.id}", headers=get_auth_header(super_admin_token))
        assert response.status_code == 200

    def test_delete_user_with_bookings(self, client, sample_booking, regular_user, super_admin_user, super_admin_token):
        response = client.delete(f"/users/{regular_user.id}", headers=get_auth_header(super_admin_token))
        assert response.status_code == 400
