from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from resourcekit.api.auth import Identity, optional_identity, require_identity, resolve_identity_from_headers


def _h(user: str):
    return {"x-auth-request-user": user, "x-auth-request-email": f"{user}@example.com"}


def _app():
    app = FastAPI()

    @app.get("/open", dependencies=[Depends(optional_identity)])
    def open_route(request: Request):
        identity = request.state.identity
        return {"id": identity.id if identity else None}

    @app.get("/closed", dependencies=[Depends(require_identity)])
    def closed_route(request: Request):
        return {"id": request.state.identity.id, "name": request.state.identity.name}

    return app


def test_resolve_identity_prefers_auth_request_headers():
    user, email = resolve_identity_from_headers("alice", " Alice@Example.COM ", "bob", "bob@example.com")
    assert (user, email) == ("alice", "alice@example.com")


def test_resolve_identity_falls_back_to_forwarded_headers():
    assert resolve_identity_from_headers(None, None, "bob", "bob@example.com") == ("bob", "bob@example.com")
    assert resolve_identity_from_headers(None, "  ", None, None) == (None, None)


def test_identity_id_is_email():
    assert Identity(email="a@example.com", name="a").id == "a@example.com"


def test_optional_identity_allows_anonymous():
    client = TestClient(_app())
    assert client.get("/open").json() == {"id": None}
    assert client.get("/open", headers=_h("carol")).json() == {"id": "carol@example.com"}


def test_require_identity_rejects_anonymous():
    client = TestClient(_app())
    r = client.get("/closed")
    assert r.status_code == 401


def test_require_identity_derives_name_from_email():
    client = TestClient(_app())
    r = client.get("/closed", headers={"x-forwarded-email": "dave@example.com"})
    assert r.status_code == 200
    assert r.json() == {"id": "dave@example.com", "name": "dave"}
