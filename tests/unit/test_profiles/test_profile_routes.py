"""
Tests for /api/v1/profiles endpoints.
"""

BASE = "/api/v1/profiles"


class TestProfileRoutes:
    """Test profile reads, self-edit and the admin toggle"""

    def test_list_sorted_by_name(self, client, users):
        response = client.get(BASE, headers=users["bob"].headers)
        assert [p["name"] for p in response.json()] == ["alice", "bob", "root"]

    def test_me(self, client, users):
        response = client.get(f"{BASE}/me", headers=users["bob"].headers)
        assert response.status_code == 200
        assert response.json()["id"] == users["bob"].profile_id

    def test_me_without_profile(self, client, fake_supabase):
        _, token = fake_supabase.auth.add_user("ghost@example.com")
        response = client.get(f"{BASE}/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 404

    def test_get_missing(self, client, users):
        assert client.get(f"{BASE}/99", headers=users["alice"].headers).status_code == 404

    def test_edit_own_profile(self, client, users):
        response = client.put(
            f"{BASE}/{users['alice'].profile_id}",
            json={"organization": "physics"},
            headers=users["alice"].headers,
        )
        assert response.status_code == 200
        assert response.json()["organization"] == "physics"
        assert response.json()["name"] == "alice"

    def test_edit_other_profile_forbidden(self, client, users):
        response = client.put(
            f"{BASE}/{users['bob'].profile_id}",
            json={"name": "mallory"},
            headers=users["alice"].headers,
        )
        assert response.status_code == 403

    def test_admin_edits_any_profile(self, client, users):
        response = client.put(
            f"{BASE}/{users['bob'].profile_id}",
            json={"name": "robert"},
            headers=users["root"].headers,
        )
        assert response.status_code == 200
        assert response.json()["name"] == "robert"

    def test_admin_toggle(self, client, users):
        path = f"{BASE}/{users['alice'].profile_id}/admin"

        assert client.put(path, json={"admin": True}, headers=users["bob"].headers).status_code == 403

        response = client.put(path, json={"admin": True}, headers=users["root"].headers)
        assert response.status_code == 200
        assert response.json()["admin"] is True

        me = client.get("/api/v1/auth/me", headers=users["alice"].headers).json()
        assert me["admin"] is True
