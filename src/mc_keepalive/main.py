"""CLI startup entrypoint for mc-keepalive."""

from __future__ import annotations

import asyncio
import logging

import typer
from rich import print

from mc_keepalive.adapters import ClientFactory, ClientUnavailableError, LoopbackClientFactory, ModuleClientFactory
from mc_keepalive.config import ConfigurationError, Settings, load_settings
from mc_keepalive.lifecycle import EXIT_FAILURE
from mc_keepalive.service import serve
from mc_keepalive.telemetry.logging import configure_logging
from mc_keepalive.timers import TimerScheduler

app = typer.Typer(help="Keep a scripted client connected to a Bedrock server")

logger = logging.getLogger("mc_keepalive.main")


def _load_or_exit() -> Settings:
    try:
        return load_settings()
    except ConfigurationError as exc:
        print({"error": "FATAL: invalid configuration (MC_HOST and MC_PORT must be set)", "detail": str(exc)})
        raise typer.Exit(code=EXIT_FAILURE)


@app.command()
def run(
    dry_run: bool = typer.Option(False, help="Use an in-process loopback server instead of a real client"),
) -> None:
    """Connect, idle and reconnect until stopped."""
    settings = _load_or_exit()
    configure_logging(settings.log_level)

    def builder(scheduler: TimerScheduler) -> ClientFactory:
        if dry_run:
            return LoopbackClientFactory(scheduler=scheduler)
        return ModuleClientFactory(module_name=settings.client_module)

    try:
        code = asyncio.run(serve(settings, builder))
    except ClientUnavailableError as exc:
        logger.error("client_unavailable", extra={"error": str(exc)})
        code = EXIT_FAILURE
    except Exception:  # noqa: BLE001 - any escaped fault ends the process with a failure code.
        logger.exception("fatal_error")
        code = EXIT_FAILURE
    raise typer.Exit(code=code)


@app.command("show-config")
def show_config() -> None:
    """Print the resolved runtime configuration."""
    settings = _load_or_exit()
    print(
        {
            "target": f"{settings.mc_host}:{settings.mc_port}",
            "identity": settings.bot_name,
            "versions": settings.version_candidates,
            "reconnect_mode": settings.reconnect_mode.value,
            "reconnect_delay_ms": settings.reconnect_delay_ms,
            "patrol_radius": settings.max_patrol_distance,
            "health_port": settings.port if settings.health_enabled else None,
            "client_module": settings.client_module,
        }
    )


if __name__ == "__main__":
    app()
