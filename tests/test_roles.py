import pytest

from sac_portal.roles import (Role, can_grade_applications, can_grade_interviews, can_schedule,
                              check_tables, dashboard_for)


@pytest.mark.parametrize("role,dashboard", [
    ("student", "student"),
    ("exec", "exec"),
    ("teacher", "exec"),
    ("superadmin", "admin"),
])
def test_dashboard_routing(role, dashboard):
    assert dashboard_for(role) == dashboard
    assert dashboard_for(Role(role)) == dashboard


def test_capabilities():
    assert not can_grade_applications(Role.STUDENT)
    assert can_grade_applications(Role.EXEC)
    assert not can_grade_interviews(Role.EXEC)
    assert can_grade_interviews(Role.TEACHER)
    assert can_schedule(Role.SUPERADMIN)
    assert not can_schedule(Role.TEACHER)


def test_unknown_role_is_an_error():
    with pytest.raises(ValueError, match="unknown role"):
        dashboard_for("admin")
    with pytest.raises(ValueError):
        can_schedule(None)


def test_incomplete_role_table_fails_loudly():
    check_tables({r: True for r in Role})
    with pytest.raises(RuntimeError, match="superadmin"):
        check_tables({Role.STUDENT: "student", Role.EXEC: "exec", Role.TEACHER: "exec"})
