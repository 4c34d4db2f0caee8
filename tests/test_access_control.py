"""Tests for the read-only demo role — every write refused, every read allowed."""

import pytest

PUBLIC_WRITES = {"auth.login", "auth.register"}


def _write_requests(tree):
    cat = tree["category"].id
    pat = tree["pattern"].id
    prob = tree["problem"].id
    problem_body = {"title": "T", "difficulty": "Easy"}
    return [
        ("post", "/api/categories", {"name": "X"}),
        ("put", f"/api/categories/{cat}", {"name": "X"}),
        ("delete", f"/api/categories/{cat}", None),
        ("post", f"/api/categories/{cat}/patterns", {"name": "X"}),
        ("put", f"/api/patterns/{pat}", {"name": "X"}),
        ("put", f"/api/patterns/{pat}/theory", {"theory": "x"}),
        ("delete", f"/api/patterns/{pat}", None),
        ("post", f"/api/patterns/{pat}/problems", problem_body),
        ("put", f"/api/problems/{prob}", problem_body),
        ("delete", f"/api/problems/{prob}", None),
        ("put", f"/api/problems/{prob}/solutions", {"solutions": [{"language": "go", "code": "x"}]}),
        ("post", "/api/admin/import", {"categories": []}),
        ("delete", "/api/admin/data", None),
    ]


class TestDemoRole:
    def test_every_write_is_refused(self, client, demo_headers, sample_tree, db):
        for method, url, body in _write_requests(sample_tree):
            resp = getattr(client, method)(url, json=body, headers=demo_headers)
            assert resp.status_code == 403, f"{method.upper()} {url}"
            assert resp.get_json()["error"].startswith("Demo users cannot")

        # Nothing changed
        from db_stores import CategoryStoreDB, ProblemStoreDB
        assert [c.name for c in CategoryStoreDB(db).list()] == ["Arrays"]
        prob = ProblemStoreDB(db).get(sample_tree["problem"].id)
        assert [s.language for s in prob.solutions] == ["python"]

    def test_refusal_comes_before_validation(self, client, demo_headers):
        resp = client.post("/api/categories", json={}, headers=demo_headers)
        assert resp.status_code == 403

    def test_reads_are_allowed(self, client, demo_headers, sample_tree):
        cat = sample_tree["category"].id
        pat = sample_tree["pattern"].id
        urls = [
            "/api/categories",
            f"/api/categories/{cat}/patterns",
            f"/api/patterns/{pat}/problems",
            f"/api/problems/{sample_tree['problem'].id}",
            "/api/learning/topics",
            "/api/learning/topics/lld",
            "/api/me",
        ]
        for url in urls:
            assert client.get(url, headers=demo_headers).status_code == 200, url

    def test_admin_can_write(self, client, admin_headers, sample_tree):
        for method, url, body in _write_requests(sample_tree)[:2]:
            resp = getattr(client, method)(url, json=body, headers=admin_headers)
            assert resp.status_code in (200, 201), f"{method.upper()} {url}"


class TestRouteMap:
    def test_every_mutating_route_is_guarded(self, app):
        """A new write route without @writes_allowed fails here."""
        unguarded = []
        for rule in app.url_map.iter_rules():
            if not rule.rule.startswith("/api") or rule.endpoint in PUBLIC_WRITES:
                continue
            if not (rule.methods & {"POST", "PUT", "PATCH", "DELETE"}):
                continue
            view = app.view_functions[rule.endpoint]
            if not _is_marked(view):
                unguarded.append(rule.endpoint)
        assert unguarded == []

    def test_route_map_has_writes(self, app):
        writes = [r for r in app.url_map.iter_rules()
                  if r.rule.startswith("/api") and r.methods & {"POST", "PUT", "DELETE"}]
        assert len(writes) >= 13


def _is_marked(view):
    # login_required wraps the guarded function; functools.wraps copies __dict__
    while view is not None:
        if getattr(view, "mutating", False):
            return True
        view = getattr(view, "__wrapped__", None)
    return False


@pytest.mark.parametrize("email", ["DEMO@algovault.com", " demo@AlgoVault.com "])
def test_demo_login_any_case(client, email):
    resp = client.post("/api/login", json={"email": email, "password": "demo123"})
    assert resp.status_code == 200
