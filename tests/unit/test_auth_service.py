import pytest

from storefront.auth import service as svc


@pytest.mark.parametrize("raw,metadata,expected", [
    ({"role": "admin"}, None, "admin"),
    ({"role": "ADMIN"}, None, "admin"),
    ({}, {"role": "admin"}, "admin"),
    ({"role": "customer"}, None, "user"),
    ({}, None, "user"),
])
def test_determine_role(raw, metadata, expected):
    assert svc.determine_role(raw, metadata) == expected


@pytest.mark.asyncio
async def test_get_user_from_token_normalizes(monkeypatch):
    calls = {}
    async def fake_repo(token):
        calls["token"] = token
        return {"_id": 42, "email": "a@b.c", "user_metadata": {"full_name": "Asha", "phone": "98", "role": "admin"}}
    monkeypatch.setattr(svc, "_repo_get_user_from_token", fake_repo)

    user = await svc.get_user_from_token("jwt")

    assert calls["token"] == "jwt"
    assert user == {
        "id": "42",
        "email": "a@b.c",
        "name": "Asha",
        "phone": "98",
        "metadata": {"full_name": "Asha", "phone": "98", "role": "admin"},
        "role": "admin",
        "token": "jwt",
    }


@pytest.mark.asyncio
async def test_get_user_from_token_prefers_top_level_fields(monkeypatch):
    async def fake_repo(token):
        return {"id": "u1", "name": "Ravi", "phone": "11", "metadata": {"full_name": "Autre"}}
    monkeypatch.setattr(svc, "_repo_get_user_from_token", fake_repo)

    user = await svc.get_user_from_token("t")
    assert user["name"] == "Ravi"
    assert user["phone"] == "11"
    assert user["role"] == "user"
