import pytest

from taskboard.permissions import PathKind, classify_path, guard_decision


@pytest.mark.parametrize(
    "path, kind",
    [
        ("/dashboard", PathKind.PROTECTED),
        ("/dashboard/", PathKind.PROTECTED),
        ("/login", PathKind.PUBLIC),
        ("/register", PathKind.PUBLIC),
        ("/", PathKind.OTHER),
        ("/api/tasks", PathKind.OTHER),
        ("/dashboards", PathKind.OTHER),
    ],
)
def test_classify_path(path, kind):
    assert classify_path(path) is kind


def test_protected_without_session_goes_to_login():
    d = guard_decision("/dashboard", has_session=False, has_cookie=False)
    assert d.redirect_to == "/login"
    assert not d.clear_cookie


def test_protected_with_dead_cookie_clears_it():
    d = guard_decision("/dashboard", has_session=False, has_cookie=True)
    assert d.redirect_to == "/login"
    assert d.clear_cookie


@pytest.mark.parametrize("path", ["/login", "/register"])
def test_public_with_session_goes_to_dashboard(path):
    assert guard_decision(path, has_session=True, has_cookie=True).redirect_to == "/dashboard"


@pytest.mark.parametrize("has_session", [True, False])
@pytest.mark.parametrize("path", ["/", "/healthz", "/api/tasks", "/about"])
def test_other_paths_always_pass(path, has_session):
    assert guard_decision(path, has_session=has_session, has_cookie=has_session).allow


def test_allowed_cases():
    assert guard_decision("/dashboard", has_session=True, has_cookie=True).allow
    assert guard_decision("/login", has_session=False, has_cookie=True).allow
