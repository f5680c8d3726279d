"""Request id propagation."""

from httpx import AsyncClient

from fairchain.middleware.request_id import resolve_request_id


def test_reuses_well_formed_id():
    assert resolve_request_id("abc-123.x_y") == "abc-123.x_y"


def test_replaces_malformed_id():
    for bad in (None, "", "has space", "x" * 65, "semi;colon"):
        minted = resolve_request_id(bad)
        assert minted != bad
        assert len(minted) == 32


async def test_header_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-Id": "trace-42"})
    assert response.headers["X-Request-Id"] == "trace-42"

    response = await client.get("/health")
    assert len(response.headers["X-Request-Id"]) == 32
