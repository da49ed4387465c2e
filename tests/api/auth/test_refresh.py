from jose import jwt
from core.config import settings
from services.signing_service import TokenKind


async def test_refresh_token_success(client, logged_in, test_user):
    response = await client.post("/auth/refresh", json={
        "refresh_token": logged_in["refresh_token"]
    })

    assert response.status_code == 200
    new_tokens = response.json()
    assert new_tokens["token_type"] == "bearer"
    assert new_tokens["refresh_token"] != logged_in["refresh_token"]

    payload = jwt.decode(new_tokens["access_token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert payload["sub"] == str(test_user.id)
    assert payload["type"] == "access"


async def test_refresh_accepts_camel_case_field(client, logged_in):
    response = await client.post("/auth/refresh", json={
        "refreshToken": logged_in["refresh_token"]
    })

    assert response.status_code == 200


async def test_refresh_token_multiple_use(client, logged_in):
    """Replaying a rotated token fails and also kills its successor."""
    old_refresh_token = logged_in["refresh_token"]

    response = await client.post("/auth/refresh", json={"refresh_token": old_refresh_token})
    assert response.status_code == 200
    new_refresh_token = response.json()["refresh_token"]

    response = await client.post("/auth/refresh", json={"refresh_token": old_refresh_token})
    assert response.status_code == 403
    assert "reuse" in response.json()["detail"].lower()

    response = await client.post("/auth/refresh", json={"refresh_token": new_refresh_token})
    assert response.status_code == 403


async def test_login_after_reuse_detection(client, logged_in, test_user):
    await client.post("/auth/refresh", json={"refresh_token": logged_in["refresh_token"]})
    await client.post("/auth/refresh", json={"refresh_token": logged_in["refresh_token"]})

    response = await client.post("/auth/login", json={
        "email": test_user.email,
        "password": "TestPassword123"
    })
    assert response.status_code == 200

    response = await client.post("/auth/refresh", json={"refresh_token": response.json()["refresh_token"]})
    assert response.status_code == 200


async def test_refresh_invalid_token_format(client):
    response = await client.post("/auth/refresh", json={
        "refresh_token": "invalid_token_format"
    })

    assert response.status_code == 403
    assert "invalid" in response.json()["detail"].lower()


async def test_refresh_with_access_token(client, logged_in):
    response = await client.post("/auth/refresh", json={
        "refresh_token": logged_in["access_token"]
    })

    assert response.status_code == 403
    assert "type" in response.json()["detail"].lower()


async def test_refresh_unknown_user(client, signer):
    token, _ = signer.sign(424242, TokenKind.REFRESH, signer.new_nonce())

    response = await client.post("/auth/refresh", json={"refresh_token": token})

    assert response.status_code == 404


async def test_refresh_empty_token(client):
    response = await client.post("/auth/refresh", json={"refresh_token": "  "})

    assert response.status_code == 422


async def test_refresh_missing_token(client):
    response = await client.post("/auth/refresh", json={})

    assert response.status_code == 422
