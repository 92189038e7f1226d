"""Main CLI entry point for Carebook."""

import asyncio

import click

from carebook import __version__
from carebook.main import create_app
from carebook.output import OutputFormatter
from carebook.services.errors import BookingError


@click.group()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.version_option(version=__version__, prog_name="carebook")
@click.pass_context
def cli(ctx: click.Context, output_json: bool) -> None:
    """Carebook - caregiver booking backed by Google Calendar.

    Run the API server or inspect availability from the command line.
    Use --json flag for machine-readable output.
    """
    ctx.ensure_object(dict)
    ctx.obj["formatter"] = OutputFormatter(json_mode=output_json)
    ctx.obj["json_mode"] = output_json


def _run(coro_factory):
    """Build the app, run one coroutine against its state, close the HTTP client."""
    app = create_app()

    async def runner():
        try:
            return await coro_factory(app.state)
        finally:
            if app.state.http_client is not None:
                await app.state.http_client.aclose()

    return asyncio.run(runner())


@cli.command("serve")
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
def serve(host: str | None, port: int | None) -> None:
    """Run the booking API server.

    Example:
        carebook serve --port 3000
    """
    import uvicorn

    from carebook.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "carebook.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


@cli.command("caregivers")
@click.pass_context
def caregivers(ctx: click.Context) -> None:
    """List configured caregivers."""
    formatter: OutputFormatter = ctx.obj["formatter"]

    async def list_caregivers(state):
        return [c.to_dict() for c in state.registry]

    formatter.caregivers(_run(list_caregivers))


@cli.command("slots")
@click.argument("date")
@click.argument("caregiver")
@click.pass_context
def slots(ctx: click.Context, date: str, caregiver: str) -> None:
    """Show the availability grid for CAREGIVER on DATE.

    Example:
        carebook slots 2025-09-25 "Lucía"
    """
    formatter: OutputFormatter = ctx.obj["formatter"]

    async def get_grid(state):
        return await state.availability_service.get_grid(date, caregiver)

    try:
        grid = _run(get_grid)
    except BookingError as e:
        formatter.error(code=e.code, message=e.message, suggestion=e.suggestion)
        return

    formatter.grid(grid.to_dict())


@cli.command("diagnose")
@click.pass_context
def diagnose(ctx: click.Context) -> None:
    """Check credentials, caregivers and calendar access."""
    formatter: OutputFormatter = ctx.obj["formatter"]

    async def run_diagnostics(state):
        from carebook.services.diagnostic_service import DiagnosticService

        service = DiagnosticService(
            settings=state.settings,
            policy=state.policy,
            registry=state.registry,
            calendar=state.calendar,
            email_service=state.email_service,
        )
        return await service.run_diagnostics()

    result = _run(run_diagnostics)
    formatter.report(result.to_dict())

    if result.overall_health == "critical":
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
