"""Tests for hierarchy lookups and parent reassignment."""

import pytest

from conftest import run
from samarpan.config.database import Collections
from samarpan.models.user import role_rank, hierarchy_level
from samarpan.services.hierarchy_service import (
    assign_parent,
    deactivate_user,
    get_ancestor_chain,
    get_direct_reports,
    validate_parent_assignment,
)
from samarpan.utils.errors import NotFoundError, ValidationError


def test_role_rank_ordering():
    assert role_rank("ADMIN") < role_rank("CENTRAL_PRESIDENT") < role_rank("VOLUNTEER")
    assert role_rank("SOMETHING_ELSE") > role_rank("VOLUNTEER")
    assert hierarchy_level("SOMETHING_ELSE") == "SOMETHING_ELSE"


def test_ancestor_chain_is_ordered_upwards(make):
    top, mid, low = make.chain("STATE_PRESIDENT", "DISTRICT_COORDINATOR", "PRERAK")
    chain = run(get_ancestor_chain(low["_id"]))
    assert [u["_id"] for u in chain] == [mid["_id"], top["_id"]]


def test_direct_reports_exclude_inactive(make):
    parent = make.user("Parent", "ZONE_COORDINATOR")
    active = make.user("Active", "BLOCK_COORDINATOR", parent)
    make.user("Gone", "BLOCK_COORDINATOR", parent, status="INACTIVE")

    reports = run(get_direct_reports(parent["_id"]))
    assert [r["_id"] for r in reports] == [active["_id"]]


class TestValidateParent:
    def test_accepts_higher_ranked_parent(self, make):
        parent = make.user("P", "DISTRICT_COORDINATOR", state="Bihar")
        child = make.user("C", "PRERAK", state="Bihar")
        run(validate_parent_assignment(child["_id"], parent["_id"]))

    def test_rejects_self(self, make):
        u = make.user("U", "PRERAK")
        with pytest.raises(ValidationError):
            run(validate_parent_assignment(u["_id"], u["_id"]))

    def test_rejects_lower_or_equal_rank(self, make):
        a = make.user("A", "PRERAK")
        b = make.user("B", "PRERAK")
        with pytest.raises(ValidationError):
            run(validate_parent_assignment(a["_id"], b["_id"]))

    def test_rejects_inactive_parent(self, make):
        parent = make.user("P", "STATE_PRESIDENT", status="INACTIVE")
        child = make.user("C", "PRERAK")
        with pytest.raises(ValidationError):
            run(validate_parent_assignment(child["_id"], parent["_id"]))

    def test_rejects_cross_state(self, make):
        parent = make.user("P", "STATE_PRESIDENT", state="Bihar")
        child = make.user("C", "PRERAK", state="Odisha")
        with pytest.raises(ValidationError):
            run(validate_parent_assignment(child["_id"], parent["_id"]))

    def test_rejects_descendant_as_parent(self, make):
        # admin already sits below top through a bad link
        top, mid = make.chain("STATE_PRESIDENT", "ZONE_COORDINATOR")
        admin = make.user("Admin", "ADMIN")
        make.set_parent(admin, mid["_id"])
        with pytest.raises(ValidationError):
            run(validate_parent_assignment(top["_id"], admin["_id"]))

    def test_missing_parent(self, make):
        child = make.user("C", "PRERAK")
        with pytest.raises(NotFoundError):
            run(validate_parent_assignment(child["_id"], "64b7f0c2a1b2c3d4e5f60718"))


def test_assign_and_clear_parent(make):
    parent = make.user("P", "STATE_PRESIDENT")
    child = make.user("C", "PRERAK")

    updated = run(assign_parent(child["_id"], str(parent["_id"])))
    assert updated["parent_coordinator_id"] == parent["_id"]

    cleared = run(assign_parent(child["_id"], None))
    assert cleared["parent_coordinator_id"] is None


def test_deactivate_keeps_the_user(make):
    u = make.user("U", "PRERAK")
    run(deactivate_user(u["_id"]))
    stored = make.reload(Collections.USERS, u)
    assert stored["status"] == "INACTIVE"
    assert stored["deactivated_at"] is not None
