"""CLI entry point for taskboard.

Usage:
    taskboard serve                      # Start the HTTP server
    taskboard init-config                # Create config file
    taskboard check-store                # Verify the document store
    taskboard create-user alice --role admin
    taskboard --version                  # Show version
"""

import asyncio
import contextlib
import sys
from pathlib import Path
from typing import Any

import click

from taskboard_service import __version__
from taskboard_service.config import Settings, get_config_path, load_settings_with_toml


def get_default_config() -> dict[str, Any]:
    """Get default configuration for init-config.

    Returns:
        Default configuration dictionary
    """
    return {
        "auth": {
            "jwt_secret": "change-me",
            "jwt_algorithm": "HS256",
            "token_expire_minutes": 10,
            "bcrypt_rounds": 10,
        },
        "store": {
            "backend": "sqlite",
            "path": "~/.local/share/taskboard/taskboard.db",
        },
        "policy": {
            "enforce_task_ownership": True,
            "restrict_user_mutations": False,
            "require_group_membership": False,
            "public_task_listing": True,
            "public_user_listing": True,
            "strict_board_statuses": False,
        },
        "server": {
            "host": "127.0.0.1",
            "port": 3000,
            "log_level": "INFO",
            "log_format": "json",
        },
        "metrics": {
            "enabled": True,
        },
    }


class ErrorCategory:
    """Error categories for clear error messages."""

    CONFIGURATION = "configuration"
    STORE = "store"
    VALIDATION = "validation"


def format_error(category: str, message: str, remediation: str) -> str:
    """Format error with category and remediation.

    Args:
        category: Error category
        message: Error message
        remediation: Suggested fix

    Returns:
        Formatted error string
    """
    return f"""
Error [{category.upper()}]: {message}

Remediation: {remediation}
"""


def load_cli_settings(options: dict[str, Any]) -> Settings:
    """Settings with precedence CLI > env > config file > defaults."""
    config_path = options.get("config_path")
    try:
        settings = load_settings_with_toml(Path(config_path) if config_path else None)
    except Exception as e:
        click.echo(
            format_error(
                ErrorCategory.CONFIGURATION,
                f"Cannot load configuration: {e}",
                f"Check {config_path or get_config_path()} and TASKBOARD_* environment variables",
            ),
            err=True,
        )
        sys.exit(1)

    if options.get("log_level"):
        settings.log_level = options["log_level"]
    return settings


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=False),
    help="Override global config file path",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Override log level",
)
@click.version_option(version=__version__, prog_name="taskboard")
@click.pass_context
def main(ctx: click.Context, config: str | None, log_level: str | None) -> None:
    """Taskboard service: personal tasks, groups and group task boards.

    Configuration is loaded from (in priority order):
    1. CLI arguments
    2. Environment variables (TASKBOARD_*)
    3. Global config file (~/.config/taskboard/config.toml)
    4. Built-in defaults
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["log_level"] = log_level


@main.command()
@click.option("--host", type=str, help="Bind address (overrides config)")
@click.option("--port", type=int, help="Bind port (overrides config)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the HTTP server."""
    settings = load_cli_settings(ctx.obj)
    if host:
        settings.http_host = host
    if port:
        settings.http_port = port
    asyncio.run(run_server(settings))


@main.command()
@click.pass_context
def init_config(ctx: click.Context) -> None:
    """Create global configuration file with defaults.

    The file is created with restrictive permissions (600) because it holds
    the token signing secret.
    """
    import tomli_w

    config_path = Path(ctx.obj.get("config_path") or get_config_path())

    if config_path.exists():
        click.echo(f"Config file already exists: {config_path}")
        if not click.confirm("Overwrite?"):
            sys.exit(0)

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "wb") as f:
        tomli_w.dump(get_default_config(), f)

    # chmod may not be supported on Windows
    with contextlib.suppress(OSError):
        config_path.chmod(0o600)

    click.echo(f"Created config file: {config_path}")
    click.echo()
    click.echo("Next steps:")
    click.echo("  1. Replace auth.jwt_secret with a long random value")
    click.echo("  2. Review the [policy] switches")
    click.echo("  3. Verify the store: taskboard check-store")


@main.command()
@click.pass_context
def check_store(ctx: click.Context) -> None:
    """Verify the document store is reachable.

    Returns exit code 0 if the check passes, 1 otherwise.
    """
    settings = load_cli_settings(ctx.obj)
    ok = asyncio.run(check_store_connectivity(settings))
    sys.exit(0 if ok else 1)


@main.command()
@click.argument("username")
@click.option("--email", required=True, help="Email address")
@click.option(
    "--role",
    type=click.Choice(["admin", "manager", "user"]),
    default="user",
    show_default=True,
)
@click.password_option()
@click.pass_context
def create_user(ctx: click.Context, username: str, email: str, role: str, password: str) -> None:
    """Register a user directly in the store."""
    settings = load_cli_settings(ctx.obj)
    asyncio.run(register_user(settings, username=username, email=email, role=role, password=password))


async def run_server(settings: Settings) -> None:
    """Run the HTTP server until interrupted."""
    import uvicorn

    from taskboard_service.api.http_server import create_http_server
    from taskboard_service.core.container import ServiceContainer
    from taskboard_service.utils.logging import get_logger, setup_logging

    setup_logging(settings)
    logger = get_logger(__name__)

    if settings.jwt_secret.get_secret_value() == "change-me":
        logger.warning("default_jwt_secret_in_use")
        click.echo("Warning: auth.jwt_secret is the default value. Tokens can be forged.", err=True)

    container = ServiceContainer.build(settings)
    app = create_http_server(container, settings)

    logger.info(
        "starting_http_server",
        version=__version__,
        host=settings.http_host,
        port=settings.http_port,
        store=settings.store_backend,
    )

    config = uvicorn.Config(
        app,
        host=settings.http_host,
        port=settings.http_port,
        log_config=None,
    )
    server = uvicorn.Server(config)
    try:
        await server.serve()
    except KeyboardInterrupt:
        logger.info("http_server_interrupted")
    finally:
        logger.info("http_server_stopped")


async def check_store_connectivity(settings: Settings) -> bool:
    """Open the configured store, report counts and close it."""
    from taskboard_service.models import Group, GroupTask, PersonalTask, User
    from taskboard_service.storage import create_store

    store = create_store(settings)
    label = settings.store_backend
    if settings.store_backend == "sqlite":
        label = f"sqlite ({settings.store_path})"

    click.echo(f"Document store {label}... ", nl=False)
    try:
        await store.initialize()
        if not await store.health_check():
            raise RuntimeError("health check returned false")
        counts = {model.collection: await store.count(model.collection) for model in (User, PersonalTask, Group, GroupTask)}
    except Exception as e:
        click.echo(click.style("FAILED", fg="red"))
        click.echo(f"  Error: {e}")
        return False
    finally:
        await store.close()

    click.echo(click.style("OK", fg="green"))
    for collection, count in counts.items():
        click.echo(f"  {collection}: {count}")
    return True


async def register_user(settings: Settings, **fields: Any) -> None:
    """Register a user through the user directory."""
    from taskboard_service.core.container import ServiceContainer
    from taskboard_service.core.errors import ServiceError

    container = ServiceContainer.build(settings)
    await container.start()
    try:
        user = await container.users.register(fields)
    except ServiceError as e:
        remediation = "Choose another username or email" if e.status_code == 409 else "Check the supplied fields"
        click.echo(format_error(ErrorCategory.VALIDATION, e.message, remediation), err=True)
        sys.exit(1)
    finally:
        await container.stop()

    click.echo(f"Created user {user.username} ({user.role}) with id {user.id}")


if __name__ == "__main__":
    main()
