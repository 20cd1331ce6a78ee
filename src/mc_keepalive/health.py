"""Static liveness endpoint for hosting platforms that probe an HTTP port."""

from __future__ import annotations

import logging

from aiohttp import web

HEALTH_BODY = "OK"


async def _health(request: web.Request) -> web.Response:
    return web.Response(text=HEALTH_BODY)


def create_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/", _health)
    return app


class HealthServer:
    """Runs the liveness app on the current event loop."""

    def __init__(self, port: int, *, host: str = "0.0.0.0", logger: logging.Logger | None = None) -> None:
        self._host = host
        self._port = port
        self._logger = logger or logging.getLogger("mc_keepalive.health")
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        if self._runner is not None:
            return
        runner = web.AppRunner(create_app())
        await runner.setup()
        await web.TCPSite(runner, self._host, self._port).start()
        self._runner = runner
        self._logger.info("health_server_started", extra={"bind": f"{self._host}:{self._port}"})

    async def stop(self) -> None:
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        await runner.cleanup()
        self._logger.info("health_server_stopped")
