"""End-to-end tests: servlets driven through the ASGI interface."""

import logging

import pytest

from perch.config import ServletConfig
from perch.container import ContainerServlet
from perch.di import publish_application_context
from perch.errors import ServiceInitializationError
from perch.forwarding import ForwardingController
from perch.servlet import ServletContext, UIServlet
from perch.testing import TestClient
from sample_views import Views

SECRET = "test-secret"


def _container_servlet(**config: object) -> ContainerServlet:
    servlet = ContainerServlet(ServletConfig(secret_key=SECRET, **config))  # type: ignore[arg-type]
    publish_application_context(servlet.context, Views())
    return servlet


class TestUIServlet:
    async def test_default_provider_serves_every_path(self) -> None:
        servlet = UIServlet(ServletConfig(secret_key=SECRET, ui="sample_views:MainView"))

        async with TestClient(servlet) as client:
            for path in ("/", "/orders", "/anything/else"):
                response = await client.get(path)
                assert response.status == 200
                assert "<p>main</p>" in response.text

    async def test_no_provider_is_404(self) -> None:
        servlet = UIServlet(ServletConfig(secret_key=SECRET))

        async with TestClient(servlet) as client:
            response = await client.get("/")

        assert response.status == 404
        assert 'data-status="404"' in response.text

    async def test_default_service_url(self) -> None:
        servlet = UIServlet(
            ServletConfig(secret_key=SECRET, ui="sample_views:MainView", mapping="/app")
        )

        async with TestClient(servlet, root_path="/shop") as client:
            response = await client.get("/app/x")

        assert 'data-service-url="/shop/app/"' in response.text

    async def test_outside_mapping_is_404(self) -> None:
        servlet = UIServlet(
            ServletConfig(secret_key=SECRET, ui="sample_views:MainView", mapping="/app")
        )

        async with TestClient(servlet) as client:
            response = await client.get("/other")

        assert response.status == 404

    async def test_missing_secret_key_fails_activation(self) -> None:
        servlet = UIServlet(ServletConfig())

        with pytest.raises(ServiceInitializationError, match="secret_key"):
            servlet._ensure_active()
        assert servlet.active is False

    async def test_activation_failure_is_500(self, caplog: pytest.LogCaptureFixture) -> None:
        servlet = UIServlet(ServletConfig(secret_key=SECRET, ui="no_such_module_xyz:View"))
        client = TestClient(servlet)

        with caplog.at_level(logging.ERROR, logger="perch.server"):
            response = await client.get("/")

        assert response.status == 500
        assert "activation failed" in caplog.text

    async def test_setup_hooks_rejected_after_activation(self) -> None:
        servlet = UIServlet(ServletConfig(secret_key=SECRET))
        servlet._ensure_active()

        with pytest.raises(RuntimeError, match="Cannot modify the servlet"):
            servlet.on_startup(lambda: None)


class TestContainerServlet:
    async def test_resolves_views_from_container(self) -> None:
        servlet = _container_servlet(ui="sample_views:MainView")

        async with TestClient(servlet) as client:
            home = await client.get("/")
            orders = await client.get("/orders/7")
            missing = await client.get("/missing")

        assert "<p>home</p>" in home.text
        assert "<p>Hi, orders /orders/7</p>" in orders.text
        # The default provider is gone, so no fallback to MainView
        assert missing.status == 404

    async def test_listener_runs_once_per_session(self) -> None:
        servlet = _container_servlet()

        async with TestClient(servlet) as client:
            await client.get("/")
            await client.get("/orders")
            await client.get("/")

        assert len(servlet.service.sessions) == 1

    async def test_new_client_gets_new_session(self) -> None:
        servlet = _container_servlet()

        await TestClient(servlet).get("/")
        await TestClient(servlet).get("/")

        assert len(servlet.service.sessions) == 2

    async def test_tampered_cookie_starts_new_session(self) -> None:
        servlet = _container_servlet()

        async with TestClient(servlet) as client:
            await client.get("/")
            client.cookies["perch_session"] = "garbage"
            await client.get("/")

        assert len(servlet.service.sessions) == 2

    async def test_service_url_on_bootstrap_page(self) -> None:
        servlet = _container_servlet()
        servlet.service_url = "https://push.example.com/ui/"

        async with TestClient(servlet) as client:
            response = await client.get("/")

        assert 'data-service-url="https://push.example.com/ui/"' in response.text

    async def test_service_url_default(self) -> None:
        servlet = _container_servlet(mapping="/app")

        async with TestClient(servlet) as client:
            response = await client.get("/app/")

        assert 'data-service-url="/app/"' in response.text

    async def test_session_cookie_set(self) -> None:
        servlet = _container_servlet()

        async with TestClient(servlet) as client:
            response = await client.get("/")

        cookie = response.header("set-cookie")
        assert cookie is not None
        assert cookie.startswith("perch_session=")
        assert "HttpOnly" in cookie


class TestSessionLifecycle:
    async def test_failed_first_request_stores_no_session(self) -> None:
        servlet = _container_servlet()

        response = await TestClient(servlet).get("/no-such-view")

        assert response.status == 404
        assert response.header("set-cookie") is None
        assert len(servlet.service.sessions) == 0

    async def test_failed_request_keeps_existing_session(self) -> None:
        servlet = _container_servlet()

        async with TestClient(servlet) as client:
            await client.get("/")
            response = await client.get("/no-such-view")

        assert response.status == 404
        assert len(servlet.service.sessions) == 1

    async def test_expired_sessions_swept_on_new_session(self) -> None:
        servlet = _container_servlet(session_purge_interval=0)
        for _ in range(3):
            await TestClient(servlet).get("/")
        for session in list(servlet.service.sessions._sessions.values()):
            session.last_accessed -= servlet.config.session_max_age + 1

        await TestClient(servlet).get("/")

        assert len(servlet.service.sessions) == 1

    async def test_sweep_is_throttled(self) -> None:
        servlet = _container_servlet(session_purge_interval=3600)
        await TestClient(servlet).get("/")
        for session in list(servlet.service.sessions._sessions.values()):
            session.last_accessed -= servlet.config.session_max_age + 1

        await TestClient(servlet).get("/")

        assert len(servlet.service.sessions) == 2


class TestBootstrapFailureEndToEnd:
    async def test_unpublished_context_is_500(self, caplog: pytest.LogCaptureFixture) -> None:
        servlet = ContainerServlet(ServletConfig(secret_key=SECRET), context=ServletContext())

        async with TestClient(servlet) as client:
            with caplog.at_level(logging.ERROR, logger="perch.server"):
                response = await client.get("/")

        assert response.status == 500
        assert "ServiceInitializationError" in caplog.text
        assert len(servlet.service.sessions) == 0
        assert response.header("set-cookie") is None

    async def test_recovers_once_context_is_published(self) -> None:
        servlet = ContainerServlet(ServletConfig(secret_key=SECRET))

        async with TestClient(servlet) as client:
            first = await client.get("/")
            publish_application_context(servlet.context, Views())
            second = await client.get("/")

        assert first.status == 500
        assert second.status == 200
        assert len(servlet.service.sessions) == 1


class TestForwarding:
    async def test_forwarded_without_clearing_lands_on_root_view(self) -> None:
        servlet = _container_servlet()
        app = ForwardingController(servlet, mapping="/orders")

        async with TestClient(servlet):
            response = await TestClient(app).get("/orders/7")

        assert "<p>home</p>" in response.text

    async def test_forwarded_with_clearing_resolves_view(self) -> None:
        servlet = _container_servlet()
        servlet.clear_servlet_path = True
        app = ForwardingController(servlet, mapping="/orders")

        response = await TestClient(app).get("/orders/7")

        assert response.status == 200
        assert "<p>Hi, orders /orders/7</p>" in response.text
        assert 'data-service-url="/"' in response.text

    async def test_forwarding_outside_mapping_is_404(self) -> None:
        servlet = _container_servlet()
        app = ForwardingController(servlet, mapping="/orders")

        response = await TestClient(app).get("/elsewhere")

        assert response.status == 404


class TestLifespan:
    async def test_startup_activates_and_runs_hooks(self) -> None:
        servlet = _container_servlet()
        calls: list[str] = []

        @servlet.on_startup
        async def started() -> None:
            calls.append("start")

        @servlet.on_shutdown
        def stopped() -> None:
            calls.append("stop")

        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent: list[dict[str, object]] = []

        async def receive() -> dict[str, object]:
            return next(messages)

        async def send(message: dict[str, object]) -> None:
            sent.append(message)

        await servlet({"type": "lifespan"}, receive, send)

        assert servlet.active is True
        assert calls == ["start", "stop"]
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]

    async def test_startup_failure_reported(self) -> None:
        servlet = UIServlet(ServletConfig())
        messages = iter([{"type": "lifespan.startup"}])
        sent: list[dict[str, object]] = []

        async def receive() -> dict[str, object]:
            return next(messages)

        async def send(message: dict[str, object]) -> None:
            sent.append(message)

        await servlet({"type": "lifespan"}, receive, send)

        assert sent[0]["type"] == "lifespan.startup.failed"
        assert "secret_key" in str(sent[0]["message"])
