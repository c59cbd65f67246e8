"""End-to-end tests for the FastAPI binding."""
import pytest
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.testclient import TestClient

from riposte import Dispatcher, Reply, ReplyError, raise_error
from riposte.core.errors import ConfigurationError
from riposte.middleware import REPLY_ID_HEADER, get_reply, install, respond


def build_app(dispatcher: Dispatcher) -> FastAPI:
    app = FastAPI()
    install(app, dispatcher)

    @app.get("/success")
    async def success(reply: Reply = Depends(get_reply)):
        reply.set_data({"name": "McLovin"})
        return await respond(reply)

    @app.get("/error")
    async def error(reply: Reply = Depends(get_reply)):
        await reply.add_errors(RuntimeError("An error occurred during the API call."))
        return await respond(reply)

    @app.get("/forbidden")
    async def forbidden(reply: Reply = Depends(get_reply)):
        return (await reply.set_forbidden()).unwrap().response

    @app.get("/missing/{page}")
    async def missing(page: str, reply: Reply = Depends(get_reply)):
        await reply.add_not_found({"message_data": {"page": page}})
        return await respond(reply)

    @app.get("/empty")
    async def empty(reply: Reply = Depends(get_reply)):
        return await respond(reply)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    @app.get("/gone")
    async def gone():
        raise_error(ReplyError("This resource is gone", http_status_code=410, code="gone"))

    @app.get("/conflict")
    async def conflict():
        raise HTTPException(status_code=409)

    @app.get("/teapot")
    async def teapot():
        raise HTTPException(status_code=418, detail="Short and stout", headers={"X-Tea": "earl-grey"})

    @app.get("/items/{item_id}")
    async def item(item_id: int, reply: Reply = Depends(get_reply)):
        reply.set_data({"id": item_id})
        return await respond(reply)

    @app.post("/echo")
    async def echo(payload: dict, reply: Reply = Depends(get_reply)):
        reply.set_data(payload)
        return await respond(reply)

    @app.get("/by-request")
    async def by_request(request: Request):
        get_reply(request).set_data("bound")
        return await respond(request)

    @app.get("/implicit")
    async def implicit(reply: Reply = Depends(get_reply)):
        reply.set_data({"sent": "without respond"})

    @app.get("/implicit-conflict")
    async def implicit_conflict(reply: Reply = Depends(get_reply)):
        await reply.add_conflict()

    @app.get("/implicit-forbidden")
    async def implicit_forbidden(reply: Reply = Depends(get_reply)):
        await reply.set_forbidden()

    @app.get("/plain")
    async def plain():
        return {"status": "healthy"}

    return app


@pytest.fixture
def client(dispatcher):
    return TestClient(build_app(dispatcher), raise_server_exceptions=False)


class TestRoutes:
    def test_success(self, client):
        response = client.get("/success")

        assert response.status_code == 200
        body = response.json()
        assert body["data"] == {"name": "McLovin"}
        assert response.headers[REPLY_ID_HEADER] == body["id"]

    def test_error(self, client):
        response = client.get("/error")

        assert response.status_code == 500
        assert response.json()["errors"][0]["message"] == "An error occurred during the API call."

    def test_forbidden_sends_immediately(self, client):
        response = client.get("/forbidden")

        assert response.status_code == 403
        assert response.json()["errors"] == [{"message": "Forbidden", "httpStatusCode": 403}]

    def test_empty_reply_is_not_found(self, client):
        response = client.get("/empty")

        assert response.status_code == 404
        assert len(response.json()["errors"]) == 1

    def test_respond_accepts_request(self, client):
        response = client.get("/by-request")

        assert response.status_code == 200
        assert response.json()["data"] == "bound"

    def test_route_returning_nothing_sends_reply(self, client, observer):
        response = client.get("/implicit")

        assert response.status_code == 200
        body = response.json()
        assert body["data"] == {"sent": "without respond"}
        assert response.headers[REPLY_ID_HEADER] == body["id"]
        assert len(observer.replies) == 1

    def test_route_returning_nothing_sends_errors(self, client):
        response = client.get("/implicit-conflict")

        assert response.status_code == 409
        assert response.json()["errors"] == [{"message": "Conflict", "httpStatusCode": 409}]

    def test_route_returning_nothing_after_set_sends_once(self, client, observer):
        response = client.get("/implicit-forbidden")

        assert response.status_code == 403
        assert len(observer.replies) == 1

    def test_route_response_passes_through_with_reply_id(self, client):
        response = client.get("/plain")

        assert response.json() == {"status": "healthy"}
        assert response.headers[REPLY_ID_HEADER]

    def test_each_request_gets_its_own_reply(self, client):
        first = client.get("/success").json()["id"]
        second = client.get("/success").json()["id"]

        assert first != second

    def test_post_body_reaches_route_and_observer(self, client, observer):
        response = client.post("/echo", json={"password": "p", "name": "n"})

        assert response.json()["data"] == {"password": "p", "name": "n"}
        _, info = observer.requests[-1]
        assert info.method == "POST"
        assert info.body == {"password": "p", "name": "n"}


class TestFaults:
    def test_uncaught_exception_becomes_500(self, client, observer):
        response = client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["errors"][0]["message"] == "kaboom"
        assert response.headers[REPLY_ID_HEADER] == body["id"]
        assert any(isinstance(error, RuntimeError) for error, _ in observer.errors)

    def test_raised_reply_error(self, client):
        response = client.get("/gone")

        assert response.status_code == 410
        assert response.json()["errors"] == [
            {"message": "This resource is gone", "httpStatusCode": 410, "code": "gone"}
        ]

    def test_http_exception_uses_factory_message(self, client):
        response = client.get("/conflict")

        assert response.status_code == 409
        assert response.json()["errors"][0]["message"] == "Conflict"

    def test_http_exception_keeps_detail_and_headers(self, client):
        response = client.get("/teapot")

        assert response.status_code == 418
        assert response.json()["errors"][0]["message"] == "Short and stout"
        assert response.headers["X-Tea"] == "earl-grey"

    def test_unmatched_route(self, client):
        response = client.get("/doesNotExist")

        assert response.status_code == 404
        assert response.json()["errors"] == [{"message": "Not found", "httpStatusCode": 404}]

    def test_method_not_allowed(self, client):
        response = client.post("/success")

        assert response.status_code == 405
        assert "GET" in response.headers["Allow"]

    def test_validation_error(self, client):
        response = client.get("/items/abc")

        assert response.status_code == 400
        error = response.json()["errors"][0]
        assert error["code"] == "int_parsing"
        assert error["referenceData"] == {"field": "path.item_id"}
        assert error["message"].startswith("path.item_id:")


class TestTranslation:
    @pytest.fixture
    def client(self, settings, observer, translator):
        dispatcher = Dispatcher({"translator": translator}, settings=settings, observer=observer)
        return TestClient(build_app(dispatcher), raise_server_exceptions=False)

    def test_default_locale(self, client):
        response = client.get("/missing/about")

        assert response.json()["errors"][0]["message"] == "The page about could not be found"

    def test_accept_language(self, client):
        response = client.get("/missing/about", headers={"Accept-Language": "fr-FR,fr;q=0.9,en;q=0.5"})

        assert response.json()["errors"][0]["message"] == "La page about est introuvable"

    def test_untranslated_key_falls_back(self, client):
        response = client.get("/forbidden", headers={"Accept-Language": "fr"})

        assert response.json()["errors"][0]["message"] == "The page is forbidden"


class TestWithoutInstall:
    def test_get_reply_needs_install(self):
        app = FastAPI()

        @app.get("/")
        async def index(reply: Reply = Depends(get_reply)):
            return await respond(reply)

        with pytest.raises(ConfigurationError, match="install"):
            TestClient(app).get("/")
