"""Settlement endpoints end to end: rewards, transfers, ledger and referrals."""

from decimal import Decimal

from httpx import AsyncClient

from fairchain.db.models import KycStatus


class TestRewardsApi:
    async def test_check_in_then_cooldown(self, client: AsyncClient, make_account, headers_for):
        account = await make_account("alice@example.com")
        headers = headers_for(account)

        response = await client.post("/api/v1/rewards/check-in", headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["amount"] == 1
        assert data["account"]["verified_balance"] == 1
        assert data["account"]["check_in"]["ready"] is False
        assert [e["title"] for e in data["entries"]] == ["Daily Check-in"]

        response = await client.post("/api/v1/rewards/check-in", headers=headers)
        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "cooldown_active"
        assert body["retryable"] is False
        assert 0 < body["remaining_seconds"] <= 24 * 3600

    async def test_mining_status_and_start(self, client: AsyncClient, make_account, headers_for):
        headers = headers_for(await make_account("miner@example.com"))

        status = (await client.get("/api/v1/mining", headers=headers)).json()
        assert status["active"] is False
        assert status["reward"] == 2

        response = await client.post("/api/v1/mining/start", headers=headers)
        assert response.status_code == 200
        assert response.json()["account"]["mining_active"] is True

        response = await client.post("/api/v1/mining/claim", headers=headers)
        assert response.status_code == 409
        assert response.json()["code"] == "session_not_ready"

    async def test_redeem_unknown_code(self, client: AsyncClient, make_account, headers_for):
        headers = headers_for(await make_account("alice@example.com"))
        response = await client.post("/api/v1/codes/redeem", headers=headers, json={"code": "nothing"})
        assert response.status_code == 404
        assert response.json()["code"] == "code_not_found"


class TestWalletApi:
    async def test_quote(self, client: AsyncClient, make_account, headers_for):
        headers = headers_for(await make_account("alice@example.com"))
        response = await client.get("/api/v1/wallet/quote", params={"amount": "150"}, headers=headers)
        assert response.status_code == 200
        assert response.json() == {"amount": 150, "fee": 0.3, "total_debit": 150.3, "min_send_amount": 50}

    async def test_send_returns_only_sender_entry(self, client: AsyncClient, make_account, headers_for, fetch):
        sender = await make_account("sender@example.com", verified_balance="200", kyc_status=KycStatus.APPROVED)
        recipient = await make_account("recipient@example.com")

        response = await client.post(
            "/api/v1/wallet/send",
            headers=headers_for(sender),
            json={"recipient_email": "recipient@example.com", "amount": "150"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["account"]["verified_balance"] == 49.7
        assert [(e["type"], e["amount"], e["is_credit"]) for e in data["entries"]] == [("send", -150, False)]
        assert (await fetch(recipient.id)).verified_balance == Decimal("150")

    async def test_send_without_kyc(self, client: AsyncClient, make_account, headers_for):
        sender = await make_account("sender@example.com", verified_balance="200")
        await make_account("recipient@example.com")
        response = await client.post(
            "/api/v1/wallet/send",
            headers=headers_for(sender),
            json={"recipient_email": "recipient@example.com", "amount": "100"},
        )
        assert response.status_code == 403
        assert response.json()["code"] == "kyc_required"


class TestNotificationsApi:
    async def test_list_and_mark_read(self, client: AsyncClient, make_account, headers_for):
        headers = headers_for(await make_account("alice@example.com"))
        await client.post("/api/v1/rewards/check-in", headers=headers)
        await client.post("/api/v1/mining/start", headers=headers)

        listing = (await client.get("/api/v1/notifications", headers=headers)).json()
        assert listing["total"] == 1
        assert listing["notifications"][0]["is_read"] is False

        count = (await client.get("/api/v1/notifications/unread-count", headers=headers)).json()
        assert count == {"unread_count": 1}

        entry_id = listing["notifications"][0]["id"]
        response = await client.post(f"/api/v1/notifications/{entry_id}/read", headers=headers)
        assert response.status_code == 200
        count = (await client.get("/api/v1/notifications/unread-count", headers=headers)).json()
        assert count == {"unread_count": 0}

    async def test_mark_all_read(self, client: AsyncClient, make_account, headers_for):
        headers = headers_for(await make_account("alice@example.com"))
        await client.post("/api/v1/rewards/check-in", headers=headers)

        response = await client.post("/api/v1/notifications/read-all", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"detail": "Marked 1 notifications as read"}
        count = (await client.get("/api/v1/notifications/unread-count", headers=headers)).json()
        assert count == {"unread_count": 0}

    async def test_cannot_read_foreign_entry(self, client: AsyncClient, make_account, headers_for):
        alice = headers_for(await make_account("alice@example.com"))
        bob = headers_for(await make_account("bob@example.com"))
        await client.post("/api/v1/rewards/check-in", headers=alice)
        entry_id = (await client.get("/api/v1/notifications", headers=alice)).json()["notifications"][0]["id"]

        response = await client.post(f"/api/v1/notifications/{entry_id}/read", headers=bob)
        assert response.status_code == 404


class TestReferralsAndKycApi:
    async def test_referral_summary(self, client: AsyncClient, make_account, headers_for, mock_email_service):
        referrer = await make_account("referrer@example.com")
        await client.post("/api/v1/auth/register", json={
            "email": "newbie@example.com",
            "password": "SecurePass1",
            "username": "newbie",
            "referral_code": referrer.referral_code,
        })

        data = (await client.get("/api/v1/referrals", headers=headers_for(referrer))).json()
        assert data["referral_code"] == referrer.referral_code
        assert data["referral_link"].endswith(f"/signup?ref={referrer.referral_code}")
        assert data["unverified"] == 1
        assert data["held_bonus"] == 10
        assert [r["username"] for r in data["referrals"]] == ["newbie"]

    async def test_submit_kyc(self, client: AsyncClient, make_account, headers_for):
        headers = headers_for(await make_account("alice@example.com"))
        response = await client.post("/api/v1/kyc", headers=headers, json={
            "full_name": "Alice Doe",
            "country": "Portugal",
            "id_front_url": "https://files.example.com/front.jpg",
            "id_back_url": "https://files.example.com/back.jpg",
            "selfie_url": "https://files.example.com/selfie.jpg",
        })
        assert response.status_code == 201
        assert response.json()["kyc_status"] == "pending"

        status = (await client.get("/api/v1/kyc", headers=headers)).json()
        assert status["kyc_status"] == "pending"
        assert status["request"]["country"] == "Portugal"


class TestHealth:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.json() == {"status": "healthy"}

    async def test_ready_without_redis(self, client: AsyncClient):
        data = (await client.get("/ready")).json()
        assert data["status"] == "ready"
        assert data["checks"] == {"database": "ok", "redis": "disabled"}
