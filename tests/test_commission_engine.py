"""Tests for the commission engine: tiered split across the coordinator chain."""

from decimal import Decimal

import pytest

from conftest import run
from samarpan.config.settings import settings
from samarpan.services.commission_service import calculate_commission_distribution
from samarpan.utils.errors import NotFoundError, ValidationError


def _amounts(result):
    return [(d.user_name, d.commission_amount, d.commission_percentage) for d in result.distributions]


def _check_balanced(result, amount):
    lines = sum((d.commission_amount for d in result.distributions), Decimal("0"))
    assert lines == result.total_commission
    assert lines + result.organization_fund == Decimal(str(amount))


class TestRules:
    def test_non_volunteer_without_ancestors(self, make):
        d = make.user("Dina", "DISTRICT_COORDINATOR")
        result = run(calculate_commission_distribution(d["_id"], 10000))

        assert _amounts(result) == [("Dina", Decimal("1500.00"), Decimal("15"))]
        assert result.organization_fund == Decimal("8500")
        assert result.summary.levels_involved == 0
        assert result.summary.hierarchy_commissions == 0

    def test_volunteer_with_one_ancestor(self, make):
        parent = make.user("Pia", "PRERAK")
        vol = make.user("Vik", "VOLUNTEER", parent)
        result = run(calculate_commission_distribution(vol["_id"], 10000))

        # Volunteers earn nothing personally, so they get no ledger line
        assert _amounts(result) == [("Pia", Decimal("500.00"), Decimal("5"))]
        assert result.summary.personal_commission == 0
        assert result.organization_fund == Decimal("9500")

    def test_volunteer_with_three_ancestors(self, make):
        top, mid, low, vol = make.chain("STATE_PRESIDENT", "ZONE_COORDINATOR", "PRERAK", "VOLUNTEER")
        result = run(calculate_commission_distribution(vol["_id"], 10000))

        assert [d.commission_percentage for d in result.distributions] == [5, 2, 2]
        assert [d.user_id for d in result.distributions] == [str(low["_id"]), str(mid["_id"]), str(top["_id"])]
        assert result.organization_fund == Decimal("9100")
        assert result.summary.levels_involved == 3

    def test_non_volunteer_with_two_ancestors(self, make):
        top, mid, recipient = make.chain("CENTRAL_PRESIDENT", "STATE_COORDINATOR", "BLOCK_COORDINATOR")
        result = run(calculate_commission_distribution(recipient["_id"], 10000))

        assert [d.commission_amount for d in result.distributions] == [
            Decimal("1500.00"), Decimal("200.00"), Decimal("200.00"),
        ]
        assert result.summary.personal_commission == Decimal("1500")
        assert result.summary.hierarchy_commissions == Decimal("400")
        assert result.organization_fund == Decimal("8100")

    def test_every_rate_applies_to_the_original_amount(self, make):
        users = make.chain("ADMIN", "CENTRAL_PRESIDENT", "STATE_PRESIDENT", "ZONE_COORDINATOR")
        result = run(calculate_commission_distribution(users[-1]["_id"], 1000))
        assert [d.commission_amount for d in result.distributions[1:]] == [Decimal("20.00")] * 3

    def test_rates_come_from_settings(self, make, monkeypatch):
        monkeypatch.setattr(settings, "HIERARCHY_COMMISSION", 3.0)
        monkeypatch.setattr(settings, "NON_VOLUNTEER_COMMISSION", 10.0)
        parent, child = make.chain("STATE_PRESIDENT", "DISTRICT_PRESIDENT")
        result = run(calculate_commission_distribution(child["_id"], 1000))
        assert [d.commission_amount for d in result.distributions] == [Decimal("100.00"), Decimal("30.00")]

    def test_hierarchy_level_labels(self, make):
        state, vol = make.chain("STATE_COORDINATOR", "VOLUNTEER")
        result = run(calculate_commission_distribution(vol["_id"], 100))
        assert result.distributions[0].hierarchy_level == "State Coordinator"
        assert result.distributions[0].user_role == "STATE_COORDINATOR"


class TestScenarios:
    def test_volunteer_under_state_coordinator_under_national(self, make):
        n, s, v = make.chain("CENTRAL_PRESIDENT", "STATE_COORDINATOR", "VOLUNTEER")
        result = run(calculate_commission_distribution(v["_id"], 10000))

        by_user = {d.user_id: d.commission_amount for d in result.distributions}
        assert str(v["_id"]) not in by_user
        assert by_user[str(s["_id"])] == Decimal("500")
        assert by_user[str(n["_id"])] == Decimal("200")
        assert result.organization_fund == Decimal("9300")

    def test_district_coordinator_under_zone(self, make):
        z, d = make.chain("ZONE_COORDINATOR", "DISTRICT_COORDINATOR")
        result = run(calculate_commission_distribution(d["_id"], 10000))

        by_user = {x.user_id: x.commission_amount for x in result.distributions}
        assert by_user == {str(d["_id"]): Decimal("1500"), str(z["_id"]): Decimal("200")}
        assert result.organization_fund == Decimal("8300")


class TestBalance:
    @pytest.mark.parametrize("depth", [0, 1, 7, 20])
    def test_lines_plus_fund_equal_amount(self, make, depth):
        roles = ["BLOCK_COORDINATOR"] * depth + ["VOLUNTEER"]
        users = make.chain(*roles)
        amount = Decimal("12345.67")
        result = run(calculate_commission_distribution(users[-1]["_id"], amount))

        _check_balanced(result, amount)
        assert result.summary.levels_involved == depth
        assert result.organization_fund >= 0

    def test_odd_amount_rounds_each_line_to_paise(self, make):
        z, d = make.chain("ZONE_COORDINATOR", "DISTRICT_COORDINATOR")
        result = run(calculate_commission_distribution(d["_id"], "333.33"))
        assert [x.commission_amount for x in result.distributions] == [Decimal("50.00"), Decimal("6.67")]
        _check_balanced(result, "333.33")


class TestTraversalSafety:
    def test_cycle_uses_only_the_acyclic_prefix(self, make):
        b = make.user("B", "STATE_PRESIDENT")
        c = make.user("C", "CENTRAL_PRESIDENT")
        a = make.user("A", "VOLUNTEER", b)
        make.set_parent(b, c["_id"])
        make.set_parent(c, b["_id"])

        result = run(calculate_commission_distribution(a["_id"], 10000))

        assert [d.user_name for d in result.distributions] == ["B", "C"]
        assert result.summary.levels_involved == 2
        _check_balanced(result, 10000)

    def test_cycle_back_to_recipient(self, make):
        a = make.user("A", "DISTRICT_PRESIDENT")
        b = make.user("B", "STATE_PRESIDENT", a)
        make.set_parent(a, b["_id"])

        result = run(calculate_commission_distribution(a["_id"], 1000))
        assert [d.user_name for d in result.distributions] == ["A", "B"]

    def test_self_parent_is_ignored(self, make):
        a = make.user("A", "DISTRICT_PRESIDENT")
        make.set_parent(a, a["_id"])
        result = run(calculate_commission_distribution(a["_id"], 1000))
        assert [d.user_name for d in result.distributions] == ["A"]

    def test_depth_cap(self, make):
        users = make.chain(*(["NODAL_OFFICER"] * 25 + ["VOLUNTEER"]))
        result = run(calculate_commission_distribution(users[-1]["_id"], 1000))

        assert len(result.distributions) == settings.MAX_HIERARCHY_DEPTH
        assert result.summary.levels_involved == settings.MAX_HIERARCHY_DEPTH

    def test_synthetic_root_stops_the_walk(self, make):
        top = make.user("Top", "STATE_PRESIDENT", parent_coordinator_id=settings.SYNTHETIC_ROOT_ID)
        child = make.user("Child", "BLOCK_COORDINATOR", top)
        result = run(calculate_commission_distribution(child["_id"], 1000))
        assert [d.user_name for d in result.distributions] == ["Child", "Top"]

    def test_dangling_parent_stops_the_walk(self, make):
        from bson import ObjectId

        orphan = make.user("Orphan", "BLOCK_COORDINATOR", parent_coordinator_id=ObjectId())
        result = run(calculate_commission_distribution(orphan["_id"], 1000))
        assert len(result.distributions) == 1


class TestErrors:
    def test_missing_recipient(self, db):
        with pytest.raises(NotFoundError):
            run(calculate_commission_distribution("64b7f0c2a1b2c3d4e5f60718", 1000))

    def test_malformed_recipient_id(self, db):
        with pytest.raises(NotFoundError):
            run(calculate_commission_distribution("not-an-id", 1000))

    def test_non_positive_amount(self, make):
        u = make.user("U", "PRERAK")
        with pytest.raises(ValidationError):
            run(calculate_commission_distribution(u["_id"], 0))

    @pytest.mark.parametrize("amount", ["100.005", Decimal("0.333"), 1234.5678])
    def test_sub_paise_amount_is_rejected(self, make, amount):
        u = make.user("U", "PRERAK")
        with pytest.raises(ValidationError):
            run(calculate_commission_distribution(u["_id"], amount))

    def test_trailing_zeros_are_accepted(self, make):
        u = make.user("U", "DISTRICT_COORDINATOR")
        result = run(calculate_commission_distribution(u["_id"], "200.500"))
        _check_balanced(result, "200.50")
