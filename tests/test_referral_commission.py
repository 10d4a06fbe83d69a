"""
Тесты реферальной комиссии.
"""

import pytest

from ad_rewards.services.referral_commission import ReferralCommissionPropagator
from ad_rewards.utils.clock import parse_timestamp

from conftest import NOW, YESTERDAY, InMemoryStore, make_account


class TestReferralCommission:
    @pytest.fixture
    def store(self):
        return InMemoryStore({
            "accounts/100": make_account("100", balance=2.0, totalEarned=2.0),
            "accounts/42": make_account("42", username="bob", referredBy="100", joinedAt=YESTERDAY.isoformat()),
            "accounts/7": make_account("7"),
        })

    @pytest.fixture
    def propagator(self, store):
        return ReferralCommissionPropagator(store, rate=0.10)

    @pytest.mark.asyncio
    async def test_commission_is_credited_to_referrer(self, propagator, store):
        assert await propagator.propagate("42", 0.5, NOW) is True

        referrer = store.data["accounts/100"]
        assert referrer["balance"] == pytest.approx(2.05)
        assert referrer["totalEarned"] == pytest.approx(2.05)

        record = store.data["referrals/100"]
        stats = record["referredUsers"]["42"]
        assert stats["totalEarned"] == pytest.approx(0.5)
        assert stats["commissionEarned"] == pytest.approx(0.05)
        assert parse_timestamp(stats["joinedAt"]) == YESTERDAY
        assert record["referralEarnings"] == pytest.approx(0.05)
        assert record["referredCount"] == 1

        transactions = [value for path, value in store.data.items() if path.startswith("transactions/")]
        assert len(transactions) == 1
        assert transactions[0]["type"] == "referral_commission"
        assert transactions[0]["accountId"] == "100"
        assert transactions[0]["amount"] == pytest.approx(0.05)

    @pytest.mark.asyncio
    async def test_commission_accumulates(self, propagator, store):
        await propagator.propagate("42", 0.5, NOW)
        await propagator.propagate("42", 0.5, NOW)

        stats = store.data["referrals/100"]["referredUsers"]["42"]
        assert stats["totalEarned"] == pytest.approx(1.0)
        assert stats["commissionEarned"] == pytest.approx(0.1)
        assert store.data["referrals/100"]["referredCount"] == 1

    @pytest.mark.asyncio
    async def test_totals_recomputed_from_all_referred_users(self, propagator, store):
        store.data["referrals/100"] = {
            "referredUsers": {"9": {"joinedAt": None, "totalEarned": 10.0, "commissionEarned": 1.0}},
            "referralEarnings": 0.0,
            "referredCount": 0,
        }

        await propagator.propagate("42", 0.5, NOW)

        record = store.data["referrals/100"]
        assert record["referredCount"] == 2
        assert record["referralEarnings"] == pytest.approx(1.05)

    @pytest.mark.asyncio
    async def test_account_without_referrer(self, propagator, store):
        assert await propagator.propagate("7", 0.5, NOW) is False
        assert not any(path.startswith("transactions/") for path in store.data)

    @pytest.mark.asyncio
    async def test_missing_referrer_is_logged_not_raised(self, propagator, store):
        store.data["accounts/42"]["referredBy"] = "999"

        assert await propagator.propagate("42", 0.5, NOW) is False
        assert "referrals/999" not in store.data

    @pytest.mark.asyncio
    async def test_store_failure_returns_false(self, propagator, store):
        store.failing.add("update")

        assert await propagator.propagate("42", 0.5, NOW) is False

    def test_default_rate_from_settings(self, store):
        assert ReferralCommissionPropagator(store).commission_for(1.0) == pytest.approx(0.1)
