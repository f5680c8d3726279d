"""Registration, email verification and login over HTTP."""

from urllib.parse import parse_qs, urlparse

from httpx import AsyncClient

REGISTRATION = {
    "email": "Miner@Example.com",
    "password": "SecurePass1",
    "username": "miner_one",
    "full_name": "Miner One",
}


def _token_from(mock_email_service) -> str:
    context = mock_email_service.send_template.call_args.kwargs["context"]
    return parse_qs(urlparse(context["verify_url"]).query)["token"][0]


class TestRegistration:
    async def test_register_success(self, client: AsyncClient, mock_email_service):
        response = await client.post("/api/v1/auth/register", json=REGISTRATION)
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "miner@example.com"
        assert data["username"] == "miner_one"
        assert data["email_verified"] is False
        assert len(data["referral_code"]) == 8
        assert "access_token" not in data

    async def test_register_sends_welcome_email(self, client: AsyncClient, mock_email_service):
        await client.post("/api/v1/auth/register", json=REGISTRATION)
        mock_email_service.send_template.assert_called_once()
        call = mock_email_service.send_template.call_args.kwargs
        assert call["to"] == "miner@example.com"
        assert call["template_name"] == "welcome"

    async def test_duplicate_email_rejected(self, client: AsyncClient, mock_email_service):
        await client.post("/api/v1/auth/register", json=REGISTRATION)
        response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "username": "other"})
        assert response.status_code == 409

    async def test_duplicate_username_rejected(self, client: AsyncClient, mock_email_service):
        await client.post("/api/v1/auth/register", json=REGISTRATION)
        response = await client.post(
            "/api/v1/auth/register", json={**REGISTRATION, "email": "other@example.com", "username": "MINER_ONE"}
        )
        assert response.status_code == 409

    async def test_weak_password_rejected(self, client: AsyncClient, mock_email_service):
        response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "password": "short"})
        assert response.status_code == 400
        assert "password" in response.json()["detail"].lower()

    async def test_unknown_referral_code_rejected(self, client: AsyncClient, mock_email_service):
        response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "referral_code": "NOPE1234"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid referral code"

    async def test_missing_fields(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={"email": "x@example.com"})
        assert response.status_code == 422


class TestVerifyAndLogin:
    async def test_login_requires_verified_email(self, client: AsyncClient, mock_email_service):
        await client.post("/api/v1/auth/register", json=REGISTRATION)
        response = await client.post(
            "/api/v1/auth/login", json={"email": "miner@example.com", "password": "SecurePass1"}
        )
        assert response.status_code == 403
        assert "verify" in response.json()["detail"].lower()

    async def test_full_flow(self, client: AsyncClient, mock_email_service):
        await client.post("/api/v1/auth/register", json=REGISTRATION)

        response = await client.post("/api/v1/auth/verify-email", json={"token": _token_from(mock_email_service)})
        assert response.status_code == 200
        assert response.json() == {"status": "email_verified"}

        response = await client.post(
            "/api/v1/auth/login", json={"email": "MINER@example.com", "password": "SecurePass1"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["account"]["email_verified"] is True
        assert data["account"]["verified_balance"] == 0

        response = await client.get(
            "/api/v1/account", headers={"Authorization": f"Bearer {data['access_token']}"}
        )
        assert response.status_code == 200
        account = response.json()
        assert account["username"] == "miner_one"
        assert account["kyc_status"] == "none"
        assert account["role"] == "user"
        assert account["check_in"]["ready"] is True

    async def test_verification_token_single_use(self, client: AsyncClient, mock_email_service):
        await client.post("/api/v1/auth/register", json=REGISTRATION)
        token = _token_from(mock_email_service)
        await client.post("/api/v1/auth/verify-email", json={"token": token})
        response = await client.post("/api/v1/auth/verify-email", json={"token": token})
        assert response.status_code == 400

    async def test_bad_token(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/verify-email", json={"token": "garbage"})
        assert response.status_code == 400

    async def test_wrong_password(self, client: AsyncClient, make_account):
        await make_account("alice@example.com")
        response = await client.post(
            "/api/v1/auth/login", json={"email": "alice@example.com", "password": "WrongPass1"}
        )
        assert response.status_code == 401

    async def test_resend_verification_always_ok(self, client: AsyncClient, mock_email_service):
        response = await client.post("/api/v1/auth/resend-verification", json={"email": "ghost@example.com"})
        assert response.status_code == 200
        mock_email_service.send_template.assert_not_called()

        await client.post("/api/v1/auth/register", json=REGISTRATION)
        old_token = _token_from(mock_email_service)
        response = await client.post("/api/v1/auth/resend-verification", json={"email": "miner@example.com"})
        assert response.status_code == 200
        assert mock_email_service.send_template.call_args.kwargs["template_name"] == "verify_email"

        # Issuing a new token retires the old one.
        assert (await client.post("/api/v1/auth/verify-email", json={"token": old_token})).status_code == 400
        new_token = _token_from(mock_email_service)
        assert (await client.post("/api/v1/auth/verify-email", json={"token": new_token})).status_code == 200


class TestAccessControl:
    async def test_account_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/account")
        assert response.status_code in (401, 403)

    async def test_invalid_token(self, client: AsyncClient):
        response = await client.get("/api/v1/account", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
