"""
kvgate CLI main module.

Provides commands to serve the HTTP API and to probe the configured Redis.
"""

import asyncio

import typer

app = typer.Typer(help="kvgate - typed access layer to a Redis-compatible store")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind to (defaults to PORT)"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
):
    """
    Run the HTTP API with uvicorn.

    Examples:
        kvgate serve
        kvgate serve --port 8080 --reload
    """
    import uvicorn

    from kvgate.core.config.settings import settings

    bind_port = port or settings.port
    typer.echo(f"🚀 Starting kvgate on http://{host}:{bind_port}")
    typer.echo(f"📖 API docs: http://{host}:{bind_port}/docs")

    uvicorn.run(
        "kvgate.core.app:create_app",
        factory=True,
        host=host,
        port=bind_port,
        reload=reload,
        log_config=None,
    )


async def _ping() -> str:
    from kvgate.core.config.settings import settings
    from kvgate.persistence.redis.redis_manager import RedisManager

    manager = RedisManager()
    manager.initialize(settings.redis_connection_config())
    try:
        await manager.activate()
        return await manager.ping()
    finally:
        await manager.deactivate()


@app.command()
def ping():
    """
    Connect to the configured Redis and send PING.

    Exits with status 1 when Redis cannot be reached.
    """
    from kvgate.persistence.redis.errors import StoreError

    try:
        reply = asyncio.run(_ping())
    except StoreError as e:
        typer.echo(f"❌ Redis unreachable: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo(reply)


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
