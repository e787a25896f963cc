"""Self-service profile and organization endpoints, including RBAC."""

import asyncio

import pytest

from crm.organization.service import OrganizationService
from tests.conftest import DEFAULT_PASSWORD, auth_headers, seed_account

pytestmark = pytest.mark.unit


class TestUpdateProfile:
    def test_updates_name_and_merges_preferences(self, client, make_account):
        user = make_account()

        res = client.put(
            "/api/users/profile",
            json={"firstName": "Janet", "preferences": {"theme": "dark"}},
            headers=auth_headers(user),
        )

        assert res.status_code == 200
        updated = res.json()["data"]["user"]
        assert updated["firstName"] == "Janet"
        assert updated["lastName"] == "Doe"
        assert updated["preferences"] == {
            "theme": "dark",
            "notifications": True,
            "timezone": "UTC",
        }

    def test_null_preference_keeps_stored_value_and_login_works(self, client, make_account):
        user = make_account()

        res = client.put(
            "/api/users/profile",
            json={"preferences": {"theme": None, "notifications": False}},
            headers=auth_headers(user),
        )

        assert res.status_code == 200
        assert res.json()["data"]["user"]["preferences"] == {
            "theme": "light",
            "notifications": False,
            "timezone": "UTC",
        }

        login = client.post(
            "/api/auth/login",
            json={"email": "jane@example.com", "password": DEFAULT_PASSWORD},
        )
        assert login.status_code == 200
        assert login.json()["data"]["user"]["preferences"]["theme"] == "light"

    def test_email_and_role_cannot_be_changed(self, client, make_account):
        user = make_account(role="sales_rep")

        res = client.put(
            "/api/users/profile",
            json={"firstName": "Janet", "email": "evil@example.com", "role": "admin"},
            headers=auth_headers(user),
        )

        updated = res.json()["data"]["user"]
        assert updated["email"] == "jane@example.com"
        assert updated["role"] == "sales_rep"

    def test_empty_update_is_rejected(self, client, make_account):
        user = make_account()

        res = client.put("/api/users/profile", json={}, headers=auth_headers(user))

        assert res.status_code == 400
        assert res.json()["error"]["message"] == "No valid fields to update"

    def test_viewer_cannot_update_profile(self, client, make_account):
        user = make_account(role="viewer")

        res = client.put(
            "/api/users/profile", json={"firstName": "X"}, headers=auth_headers(user)
        )

        assert res.status_code == 403
        assert res.json()["error"]["type"] == "PermissionDenied"


class TestChangePassword:
    def test_change_password(self, client, make_account):
        user = make_account()

        res = client.post(
            "/api/users/change-password",
            json={"currentPassword": DEFAULT_PASSWORD, "newPassword": "another-one"},
            headers=auth_headers(user),
        )

        assert res.status_code == 200
        login = client.post(
            "/api/auth/login",
            json={"email": "jane@example.com", "password": "another-one"},
        )
        assert login.status_code == 200

    def test_wrong_current_password(self, client, make_account):
        user = make_account()

        res = client.post(
            "/api/users/change-password",
            json={"currentPassword": "nope-nope", "newPassword": "another-one"},
            headers=auth_headers(user),
        )

        assert res.status_code == 401
        assert res.json()["error"]["message"] == "Current password is incorrect"

    def test_new_password_must_differ(self, client, make_account):
        user = make_account()

        res = client.post(
            "/api/users/change-password",
            json={"currentPassword": DEFAULT_PASSWORD, "newPassword": DEFAULT_PASSWORD},
            headers=auth_headers(user),
        )

        assert res.status_code == 400


class TestOrganization:
    def test_any_role_reads_its_organization(self, client, make_account):
        user = make_account(role="viewer")

        res = client.get("/api/organizations/current", headers=auth_headers(user))

        assert res.status_code == 200
        org = res.json()["data"]["organization"]
        assert org["id"] == user["organization_id"]
        assert org["settings"]["dateFormat"] == "MM/DD/YYYY"

    def test_admin_updates_settings_without_touching_slug(self, client, make_account):
        user = make_account()
        before = client.get("/api/organizations/current", headers=auth_headers(user))

        res = client.put(
            "/api/organizations/current",
            json={
                "name": "Acme   Corp",
                "settings": {"currency": "EUR", "features": ["Deals", "deals", "reports"]},
            },
            headers=auth_headers(user),
        )

        assert res.status_code == 200
        org = res.json()["data"]["organization"]
        assert org["name"] == "Acme Corp"
        assert org["slug"] == before.json()["data"]["organization"]["slug"]
        assert org["settings"]["currency"] == "EUR"
        assert org["settings"]["timezone"] == "UTC"
        assert org["settings"]["features"] == ["deals", "reports"]

    def test_invalid_currency_is_rejected(self, client, make_account):
        user = make_account()

        res = client.put(
            "/api/organizations/current",
            json={"settings": {"currency": "euro"}},
            headers=auth_headers(user),
        )

        assert res.status_code == 400

    def test_null_setting_is_ignored_and_login_works(self, client, make_account, stores):
        user = make_account()

        res = client.put(
            "/api/organizations/current",
            json={"settings": {"currency": None}},
            headers=auth_headers(user),
        )

        assert res.status_code == 400
        assert res.json()["error"]["message"] == "No valid fields to update"
        org = asyncio.run(stores.organizations.find_by_id(user["organization_id"]))
        assert org["settings"]["currency"] == "USD"

        login = client.post(
            "/api/auth/login",
            json={"email": "jane@example.com", "password": DEFAULT_PASSWORD},
        )
        assert login.status_code == 200
        assert login.json()["data"]["organization"]["settings"]["currency"] == "USD"

    @pytest.mark.asyncio
    async def test_service_merge_skips_null_settings(self, stores):
        user = await seed_account(stores)
        svc = OrganizationService(stores.organizations)

        org = await svc.update_organization(
            user["organization_id"],
            {"settings": {"currency": None, "timezone": "Europe/Berlin"}},
        )

        assert org.settings.currency == "USD"
        assert org.settings.timezone == "Europe/Berlin"

    @pytest.mark.parametrize("role", ["manager", "sales_rep", "viewer"])
    def test_only_admin_updates_organization(self, client, make_account, role):
        user = make_account(role=role)

        res = client.put(
            "/api/organizations/current",
            json={"name": "Hijacked"},
            headers=auth_headers(user),
        )

        assert res.status_code == 403
