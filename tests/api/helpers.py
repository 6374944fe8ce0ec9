from __future__ import annotations

from httpx import AsyncClient

from tests.factories import PASSWORD, auth_headers, make_user

V1 = "/api/v1"


async def signup_and_login(client: AsyncClient, email: str, *, business: bool = False) -> dict[str, str]:
    body = {"email": email, "password": PASSWORD, "first_name": "Jo", "last_name": "Doe"}
    if business:
        body.update(business_name="Corner Cafe", business_category="food_drink")
    r = await client.post(f"{V1}/auth/signup/{'business' if business else 'individual'}", json=body)
    assert r.status_code == 201, r.text

    r = await client.post(f"{V1}/auth/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


async def admin_headers(session_factory) -> dict[str, str]:
    async with session_factory() as session:
        admin = await make_user(session, user_type="admin")
        return auth_headers(admin)
