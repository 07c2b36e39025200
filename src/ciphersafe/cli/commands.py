from __future__ import annotations

import asyncio
import logging
import sys
from typing import Awaitable, Callable, Optional

import click

from ..common.config import Settings
from ..common.models import Project, Secret
from ..session.guard import GuardView
from .app import App, build_app


logger = logging.getLogger(__name__)


def _run(ctx: click.Context, body: Callable[[App], Awaitable[bool]], *, assume_yes: bool = False) -> None:
    """Build the app, run `body` on the event loop, exit 1 when it reports failure."""
    try:
        settings = Settings.from_env(api_url=ctx.obj["api_url"])
    except (RuntimeError, ValueError) as exc:
        raise click.UsageError(str(exc)) from exc

    async def _main() -> bool:
        async with build_app(settings, assume_yes=assume_yes) as app:
            return await body(app)

    if not asyncio.run(_main()):
        sys.exit(1)


def _require_session(app: App) -> bool:
    view = app.guard.activate()
    if view is not GuardView.PROTECTED:
        click.echo("Not logged in. Run `ciphersafe login` first.", err=True)
        return False
    return True


async def _resolve_project(app: App, ref: str) -> Optional[Project]:
    if not await app.browser.list_projects():
        return None
    for project in app.browser.projects:
        if project.name == ref or str(project.id) == ref:
            return project
    app.notifier.error(f"No project named {ref!r}")
    return None


def _find_secret(app: App, ref: str) -> Optional[Secret]:
    for secret in app.browser.secrets:
        if secret.key == ref or str(secret.id) == ref:
            return secret
    app.notifier.error(f"No secret named {ref!r}")
    return None


@click.group()
@click.option("--api-url", help="CipherSafe API base URL (overrides CIPHERSAFE_API_URL)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, api_url: Optional[str], verbose: bool) -> None:
    """CipherSafe secrets manager client."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = {"api_url": api_url}


# --------------- Account ---------------
@main.command()
@click.argument("email")
@click.password_option()
@click.pass_context
def register(ctx: click.Context, email: str, password: str) -> None:
    """Create an account. Sign in afterwards with `login`."""
    _run(ctx, lambda app: app.accounts.register(email, password))


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
@click.pass_context
def login(ctx: click.Context, email: str, password: str) -> None:
    """Sign in and keep the session for later commands."""
    _run(ctx, lambda app: app.accounts.login(email, password))


@main.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Forget the current session."""

    async def body(app: App) -> bool:
        app.guard.logout()
        return True

    _run(ctx, body)


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show whether a session is stored."""

    async def body(app: App) -> bool:
        click.echo(app.store.status.value)
        return app.store.is_authenticated

    _run(ctx, body)


# --------------- Projects ---------------
@main.group()
def projects() -> None:
    """Manage projects."""


@projects.command("list")
@click.pass_context
def projects_list(ctx: click.Context) -> None:
    async def body(app: App) -> bool:
        if not _require_session(app) or not await app.browser.list_projects():
            return False
        if not app.browser.projects:
            click.echo("No projects yet.")
        for project in app.browser.projects:
            click.echo(f"{project.id}\t{project.name}")
        return True

    _run(ctx, body)


@projects.command("create")
@click.argument("name")
@click.pass_context
def projects_create(ctx: click.Context, name: str) -> None:
    async def body(app: App) -> bool:
        if not _require_session(app):
            return False
        try:
            project = await app.browser.create_project(name)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="NAME") from exc
        if project is None:
            return False
        click.echo(f"{project.id}\t{project.name}")
        return True

    _run(ctx, body)


# --------------- Secrets ---------------
@main.group()
def secrets() -> None:
    """Manage the secrets of a project (PROJECT is a name or an id)."""


async def _open_project(app: App, ref: str) -> bool:
    if not _require_session(app):
        return False
    project = await _resolve_project(app, ref)
    if project is None:
        return False
    return await app.browser.select_project(project)


@secrets.command("list")
@click.argument("project")
@click.option("--reveal", is_flag=True, help="Print values in cleartext")
@click.pass_context
def secrets_list(ctx: click.Context, project: str, reveal: bool) -> None:
    async def body(app: App) -> bool:
        if not await _open_project(app, project):
            return False
        browser = app.browser
        if not browser.secrets:
            click.echo("No secrets yet.")
        for secret in browser.secrets:
            if reveal:
                browser.toggle_visibility(secret.id)
            click.echo(f"{secret.id}\t{secret.key}\t{browser.display_value(secret)}")
        return True

    _run(ctx, body)


@secrets.command("add")
@click.argument("project")
@click.argument("key")
@click.option("--value", prompt=True, hide_input=True)
@click.pass_context
def secrets_add(ctx: click.Context, project: str, key: str, value: str) -> None:
    async def body(app: App) -> bool:
        if not await _open_project(app, project):
            return False
        try:
            return await app.browser.create_secret(key, value)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="KEY") from exc

    _run(ctx, body)


@secrets.command("delete")
@click.argument("project")
@click.argument("secret")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def secrets_delete(ctx: click.Context, project: str, secret: str, yes: bool) -> None:
    async def body(app: App) -> bool:
        if not await _open_project(app, project):
            return False
        found = _find_secret(app, secret)
        if found is None:
            return False
        if await app.browser.delete_secret(found.id):
            return True
        # Declining is not a failure
        return app.confirmer.declined

    _run(ctx, body, assume_yes=yes)


@secrets.command("show")
@click.argument("project")
@click.argument("secret")
@click.pass_context
def secrets_show(ctx: click.Context, project: str, secret: str) -> None:
    async def body(app: App) -> bool:
        if not await _open_project(app, project):
            return False
        found = _find_secret(app, secret)
        if found is None:
            return False
        app.browser.toggle_visibility(found.id)
        click.echo(f"{found.key}={app.browser.display_value(found)}")
        return True

    _run(ctx, body)


@secrets.command("copy")
@click.argument("project")
@click.argument("secret")
@click.pass_context
def secrets_copy(ctx: click.Context, project: str, secret: str) -> None:
    """Write a secret's value to stdout, without a trailing newline."""

    async def body(app: App) -> bool:
        if not await _open_project(app, project):
            return False
        found = _find_secret(app, secret)
        if found is None:
            return False
        app.browser.copy_secret(found)
        return True

    _run(ctx, body)


__all__ = ["main"]
