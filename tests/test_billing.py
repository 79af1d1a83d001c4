from tests.conftest import create_profile, make_user_token


async def test_usage_requires_authentication(client):
    response = await client.get("/api/billing/usage")
    assert response.status_code == 401


async def test_usage_for_signed_in_user(client, db):
    profile = await create_profile(db, tier="starter", audits_limit=5, audits_used_this_month=2)
    token = make_user_token(profile.id)

    response = await client.get("/api/billing/usage", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    body = response.json()
    assert body["allowed"] is True
    assert body["auditsRemaining"] == 3
    assert body["tier"] == "starter"
    assert body["pagesLimit"] == 3


async def test_pack_checkout_is_refused_on_free_plan(client, db):
    profile = await create_profile(db, tier="free")
    token = make_user_token(profile.id)

    response = await client.post(
        "/api/billing/pack-checkout",
        json={"packSize": "small"},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Audit packs are available on paid plans"


async def test_invoices_for_unknown_profile_is_404(client):
    token = make_user_token("00000000-0000-0000-0000-000000000001")
    response = await client.get("/api/billing/invoices", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 404
