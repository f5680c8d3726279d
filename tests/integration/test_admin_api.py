"""Admin endpoints: access control, maintenance gate, KYC review and catalog."""

from httpx import AsyncClient

from fairchain.db.models import Role


class TestAdminAccess:
    async def test_user_forbidden(self, client: AsyncClient, make_account, headers_for):
        headers = headers_for(await make_account("user@example.com"))
        response = await client.get("/api/v1/admin/stats", headers=headers)
        assert response.status_code == 403
        assert response.json()["detail"] == "Admin access required"

    async def test_stale_role_claim_not_trusted(self, client: AsyncClient, make_account):
        from fairchain.auth.jwt import create_access_token

        user = await make_account("user@example.com")
        forged = {"Authorization": f"Bearer {create_access_token(user.id, 'admin')}"}
        response = await client.get("/api/v1/admin/stats", headers=forged)
        assert response.status_code == 403

    async def test_admin_stats(self, client: AsyncClient, make_account, headers_for):
        headers = headers_for(await make_account("admin@example.com", role=Role.ADMIN))
        response = await client.get("/api/v1/admin/stats", headers=headers)
        assert response.status_code == 200
        assert response.json()["total_users"] == 1


class TestMaintenanceMode:
    async def test_blocks_users_not_admins(self, client: AsyncClient, make_account, headers_for):
        admin = headers_for(await make_account("admin@example.com", role=Role.ADMIN))
        user = headers_for(await make_account("user@example.com"))

        response = await client.post("/api/v1/admin/maintenance", headers=admin, json={"enabled": True})
        assert response.status_code == 200
        assert response.json()["maintenance_mode_enabled"] is True

        response = await client.post("/api/v1/rewards/check-in", headers=user)
        assert response.status_code == 503
        assert "maintenance" in response.json()["detail"].lower()
        assert (await client.get("/api/v1/account", headers=admin)).status_code == 200

        await client.post("/api/v1/admin/maintenance", headers=admin, json={"enabled": False})
        assert (await client.post("/api/v1/rewards/check-in", headers=user)).status_code == 200


class TestKycReviewApi:
    async def test_pending_queue_and_approve(self, client: AsyncClient, make_account, headers_for):
        admin = headers_for(await make_account("admin@example.com", role=Role.ADMIN))
        user_account = await make_account("user@example.com")
        user = headers_for(user_account)
        await client.post("/api/v1/kyc", headers=user, json={
            "full_name": "User Name",
            "country": "Chile",
            "id_front_url": "https://files.example.com/f.jpg",
            "id_back_url": "https://files.example.com/b.jpg",
            "selfie_url": "https://files.example.com/s.jpg",
        })

        queue = (await client.get("/api/v1/admin/kyc", headers=admin)).json()
        assert [r["email"] for r in queue["requests"]] == ["user@example.com"]

        response = await client.post(f"/api/v1/admin/kyc/{user_account.id}/approve", headers=admin)
        assert response.status_code == 200
        assert response.json()["account"]["kyc_status"] == "approved"

        assert (await client.get("/api/v1/admin/kyc", headers=admin)).json()["total"] == 0
        response = await client.post(f"/api/v1/admin/kyc/{user_account.id}/reject", headers=admin)
        assert response.status_code == 409


class TestCatalogApi:
    async def test_task_lifecycle(self, client: AsyncClient, make_account, headers_for):
        admin = headers_for(await make_account("admin@example.com", role=Role.ADMIN))
        user = headers_for(await make_account("user@example.com"))

        response = await client.post("/api/v1/admin/tasks", headers=admin, json={
            "title": "Join the channel", "reward": "4", "verification_text": "JOINED",
        })
        assert response.status_code == 201
        task_id = response.json()["id"]

        tasks = (await client.get("/api/v1/tasks", headers=user)).json()
        assert tasks["tasks"][0]["requires_verification"] is True
        assert "verification_text" not in tasks["tasks"][0]

        response = await client.post(f"/api/v1/tasks/{task_id}/complete", headers=user, json={"verification": "nope"})
        assert response.status_code == 400
        assert response.json()["retryable"] is True

        response = await client.post(f"/api/v1/tasks/{task_id}/complete", headers=user, json={"verification": "joined"})
        assert response.status_code == 200
        assert response.json()["amount"] == 4

        assert (await client.delete(f"/api/v1/admin/tasks/{task_id}", headers=admin)).status_code == 204
        assert (await client.get("/api/v1/tasks", headers=user)).json()["total"] == 0

    async def test_daily_code_lifecycle(self, client: AsyncClient, make_account, headers_for):
        admin = headers_for(await make_account("admin@example.com", role=Role.ADMIN))
        user = headers_for(await make_account("user@example.com"))

        response = await client.post("/api/v1/admin/codes", headers=admin, json={
            "code": "SPRING", "reward_amount": "3", "valid_until": "2099-01-01T00:00:00Z",
        })
        assert response.status_code == 201
        assert response.json()["code"] == "spring"

        response = await client.post("/api/v1/codes/redeem", headers=user, json={"code": "Spring"})
        assert response.status_code == 200
        response = await client.post("/api/v1/codes/redeem", headers=user, json={"code": "spring"})
        assert response.status_code == 409
        assert response.json()["code"] == "already_redeemed"

    async def test_manual_credit_and_settings(self, client: AsyncClient, make_account, headers_for):
        admin = headers_for(await make_account("admin@example.com", role=Role.ADMIN))
        await make_account("user@example.com")

        response = await client.post("/api/v1/admin/credit", headers=admin, json={
            "email": "user@example.com", "amount": "12.5", "reason": "Bug bounty", "idempotency_key": "bb-1",
        })
        assert response.status_code == 200
        assert response.json()["account"]["verified_balance"] == 12.5

        response = await client.post("/api/v1/admin/credit", headers=admin, json={
            "email": "user@example.com", "amount": "12.5", "reason": "Bug bounty", "idempotency_key": "bb-1",
        })
        assert response.status_code == 409

        response = await client.patch("/api/v1/admin/settings", headers=admin, json={"referral_bonus": "20"})
        assert response.status_code == 200
        assert response.json()["referral_bonus"] == 20

    async def test_self_demotion_rejected(self, client: AsyncClient, make_account, headers_for):
        admin = headers_for(await make_account("admin@example.com", role=Role.ADMIN))
        response = await client.post(
            "/api/v1/admin/users/role", headers=admin, json={"email": "admin@example.com", "role": "user"}
        )
        assert response.status_code == 409
        assert response.json()["code"] == "invalid_role_change"


class TestUserAndCatalogEdits:
    async def test_user_search(self, client: AsyncClient, make_account, headers_for):
        admin = headers_for(await make_account("admin@example.com", role=Role.ADMIN))
        await make_account("alice@example.com", username="alice")
        await make_account("bob@example.com", username="bob")

        data = (await client.get("/api/v1/admin/users", headers=admin, params={"search": "ALI"})).json()
        assert data["total"] == 1
        assert data["users"][0]["email"] == "alice@example.com"

        data = (await client.get("/api/v1/admin/users", headers=admin, params={"per_page": 2})).json()
        assert data["total"] == 3
        assert len(data["users"]) == 2

    async def test_edit_task_and_code(self, client: AsyncClient, make_account, headers_for):
        admin = headers_for(await make_account("admin@example.com", role=Role.ADMIN))

        task_id = (await client.post("/api/v1/admin/tasks", headers=admin, json={
            "title": "Follow us", "reward": "1",
        })).json()["id"]
        response = await client.patch(f"/api/v1/admin/tasks/{task_id}", headers=admin, json={"reward": "2.5"})
        assert response.status_code == 200
        assert response.json()["reward"] == 2.5
        assert response.json()["title"] == "Follow us"

        await client.post("/api/v1/admin/codes", headers=admin, json={
            "code": "autumn", "reward_amount": "3", "valid_until": "2099-01-01T00:00:00Z",
        })
        response = await client.patch("/api/v1/admin/codes/AUTUMN", headers=admin, json={"reward_amount": "6"})
        assert response.status_code == 200
        assert response.json()["reward_amount"] == 6

        assert (await client.delete("/api/v1/admin/codes/autumn", headers=admin)).status_code == 204
        assert (await client.get("/api/v1/admin/codes", headers=admin)).json() == []
        response = await client.delete("/api/v1/admin/codes/autumn", headers=admin)
        assert response.status_code == 404
        assert response.json()["code"] == "code_not_found"


class TestRewardSettingsGuard:
    async def test_zero_reward_refused_and_rewards_keep_working(
        self, client: AsyncClient, make_account, headers_for
    ):
        admin = headers_for(await make_account("admin@example.com", role=Role.ADMIN))
        user = headers_for(await make_account("user@example.com"))
        await client.post("/api/v1/mining/start", headers=user)

        for key in ("daily_check_in_reward", "mining_reward", "referral_bonus"):
            response = await client.patch("/api/v1/admin/settings", headers=admin, json={key: "0"})
            assert response.status_code == 422

        settings = (await client.get("/api/v1/admin/settings", headers=admin)).json()
        assert settings["daily_check_in_reward"] == 1
        assert settings["mining_reward"] == 2

        response = await client.post("/api/v1/rewards/check-in", headers=user)
        assert response.status_code == 200
        assert response.json()["amount"] == 1
