"""
Tests for authentication endpoints: registration and login.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Successful registration returns user data with the default role."""
    response = await client.post("/auth/register", json={
        "first_name": "Amina",
        "last_name": "Otieno",
        "email": "new@example.com",
        "password": "securepassword123",
        "contact_phone": "0712345678",
    })
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new@example.com"
    assert data["role"] == "user"
    assert "hashed_password" not in data  # Never expose password hash
    assert "password" not in data


@pytest.mark.asyncio
async def test_register_cannot_self_assign_admin(client: AsyncClient):
    response = await client.post("/auth/register", json={
        "first_name": "Sneaky",
        "last_name": "User",
        "email": "sneaky@example.com",
        "password": "securepassword123",
        "role": "admin",
    })
    assert response.status_code == 201
    assert response.json()["role"] == "user"


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, test_user):
    """Duplicate email returns 409."""
    response = await client.post("/auth/register", json={
        "first_name": "Another",
        "last_name": "Person",
        "email": "test@example.com",
        "password": "securepassword123",
    })
    assert response.status_code == 409
    assert response.json() == {"error": "Email already registered"}


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    """Password under 8 chars is rejected as an invalid request."""
    response = await client.post("/auth/register", json={
        "first_name": "Weak",
        "last_name": "Password",
        "email": "weak@example.com",
        "password": "short",
    })
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request"
    assert body["details"]


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, test_user):
    """Valid credentials return JWT token."""
    response = await client.post("/auth/login", json={
        "email": "test@example.com",
        "password": "testpassword123",
    })
    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_token_authenticates(client: AsyncClient, test_user):
    login = await client.post("/auth/login", json={
        "email": "test@example.com",
        "password": "testpassword123",
    })
    token = login.json()["access_token"]

    response = await client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["user_id"] == test_user.user_id


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, test_user):
    """Wrong password returns 401."""
    response = await client.post("/auth/login", json={
        "email": "test@example.com",
        "password": "wrongpassword",
    })
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}


@pytest.mark.asyncio
async def test_login_nonexistent_email(client: AsyncClient):
    """Non-existent email returns 401."""
    response = await client.post("/auth/login", json={
        "email": "nobody@example.com",
        "password": "anypassword123",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_protected_route_without_token(client: AsyncClient):
    response = await client.get("/users/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Could not validate credentials"}
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_protected_route_with_garbage_token(client: AsyncClient):
    response = await client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
