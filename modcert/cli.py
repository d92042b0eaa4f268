"""modcert CLI: administration of the module certification backend."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from modcert import __version__
from modcert.config import Settings
from modcert.errors import ModcertError

console = Console()


def _services():
    from modcert.functions import Services

    return Services.from_settings(_settings())


def _settings() -> Settings:
    # CLI writes must land before the process exits.
    settings = Settings.from_env()
    settings.audit_async = False
    return settings


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Override MODCERT_LOG_LEVEL")
def main(log_level: str | None):
    """modcert: module certification backend administration.

    Seeds user profiles and certification rounds, issues bearer tokens for
    the HTTP transport, and inspects the audit log.
    """
    from modcert.logging_config import configure_logging

    configure_logging(log_level or Settings.from_env().log_level)


# ── Serve ────────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default="127.0.0.1")
@click.option("--port", default=8000, type=int)
def serve(host: str, port: int):
    """Run the HTTP API."""
    import uvicorn

    console.print(f"\n[bold blue]modcert[/] serving on http://{host}:{port}\n")
    uvicorn.run("web.backend.app.main:app", host=host, port=port, log_level="info")


# ── Users ────────────────────────────────────────────────────────────


@main.group()
def users():
    """Manage user profiles."""


@users.command("add")
@click.argument("uid")
@click.argument("email")
@click.option("--role", required=True, type=click.Choice(["sysadmin", "programOwner", "operations"]))
@click.option("--name", "display_name", required=True, help="Display name")
@click.option("--inactive", is_flag=True, help="Create the profile deactivated")
def users_add(uid: str, email: str, role: str, display_name: str, inactive: bool):
    """Create or overwrite the profile for UID."""
    from modcert.auth.authenticator import USERS_COLLECTION
    from modcert.store.documents import SERVER_TIMESTAMP
    from modcert.utils.validators import validate_user_input

    services = _services()
    try:
        validated = validate_user_input(
            {"email": email, "displayName": display_name, "role": role},
            services.settings.allowed_email_domains,
        )
    except ModcertError as e:
        console.print(f"[red]Invalid user:[/] {e.message}")
        raise SystemExit(1)

    services.store.set(USERS_COLLECTION, uid, {
        **validated,
        "active": not inactive,
        "createdAt": SERVER_TIMESTAMP,
        "updatedAt": SERVER_TIMESTAMP,
    })
    console.print(f"[green]User saved:[/] {uid} ({validated['role']})")


@users.command("list")
def users_list():
    """List user profiles."""
    from modcert.auth.authenticator import USERS_COLLECTION

    services = _services()
    docs = services.store.query(USERS_COLLECTION).get()
    if docs.empty:
        console.print("[yellow]No users found.[/]")
        return

    table = Table(title=f"Users ({len(docs)})")
    table.add_column("UID", style="cyan")
    table.add_column("Email")
    table.add_column("Name")
    table.add_column("Role", style="magenta")
    table.add_column("Active", justify="center")
    for doc in docs:
        d = doc.data() or {}
        table.add_row(
            doc.id,
            d.get("email", ""),
            d.get("displayName", ""),
            d.get("role", ""),
            "[green]yes[/]" if d.get("active") else "[red]no[/]",
        )
    console.print(table)


# ── Tokens ───────────────────────────────────────────────────────────


@main.group()
def tokens():
    """Issue bearer tokens for the HTTP API."""


@tokens.command("issue")
@click.argument("uid")
@click.option("--role", default=None, type=click.Choice(["sysadmin", "programOwner", "operations"]),
              help="Role claim embedded in the token (overrides the profile role)")
@click.option("--ttl-hours", default=None, type=int, help="Token lifetime in hours")
def tokens_issue(uid: str, role: str | None, ttl_hours: int | None):
    """Issue a bearer token for UID."""
    from modcert.auth.authenticator import USERS_COLLECTION

    services = _services()
    snapshot = services.store.get(USERS_COLLECTION, uid)
    if not snapshot.exists:
        console.print(f"[red]No user profile for {uid}.[/] Run 'modcert users add' first.")
        raise SystemExit(1)

    email = (snapshot.data() or {}).get("email", "")
    token = services.tokens.issue(
        uid, email, role=role, ttl_hours=ttl_hours or services.settings.token_ttl_hours
    )
    console.print(token)


# ── Rounds ───────────────────────────────────────────────────────────


@main.group()
def rounds():
    """Seed certification rounds (development)."""


@rounds.command("add")
@click.argument("name")
@click.option("--start", "start_date", required=True, help="Start date (ISO-8601)")
@click.option("--due", "due_date", required=True, help="Due date (ISO-8601)")
@click.option("--description", default="", help="Optional description")
@click.option("--active", is_flag=True, help="Mark the round active")
def rounds_add(name: str, start_date: str, due_date: str, description: str, active: bool):
    """Create a certification round."""
    from modcert.auth.permissions import ROUNDS_COLLECTION
    from modcert.store.documents import SERVER_TIMESTAMP
    from modcert.utils.validators import validate_certification_round_input

    try:
        validated = validate_certification_round_input({
            "name": name,
            "description": description,
            "startDate": start_date,
            "dueDate": due_date,
        })
    except ModcertError as e:
        console.print(f"[red]Invalid round:[/] {e.message}")
        raise SystemExit(1)

    services = _services()
    ref = services.store.add(ROUNDS_COLLECTION, {
        "name": validated["name"],
        "description": validated["description"],
        "startDate": validated["startDate"].isoformat(),
        "dueDate": validated["dueDate"].isoformat(),
        "status": "active" if active else "draft",
        "createdAt": SERVER_TIMESTAMP,
    })
    console.print(f"[green]Round created:[/] {ref.id} ({'active' if active else 'draft'})")


# ── Audit ────────────────────────────────────────────────────────────


@main.command()
@click.option("--user", "user_id", default=None, help="Filter by user id")
@click.option("--action", default=None, help="Filter by action (e.g. CREATE_MODULE)")
@click.option("--limit", default=50, type=int)
@click.option("--format", "fmt", default="table", type=click.Choice(["table", "json", "csv"]))
def audit(user_id: str | None, action: str | None, limit: int, fmt: str):
    """Show recent audit log entries."""
    services = _services()

    if fmt != "table":
        click.echo(services.audit.export_events(fmt, user_id=user_id, action=action, limit=limit))
        return

    entries = services.audit.get_events(user_id=user_id, action=action, limit=limit)
    if not entries:
        console.print("[yellow]No audit entries found.[/]")
        return

    table = Table(title=f"Audit Log ({len(entries)} entries)")
    table.add_column("Time", style="dim")
    table.add_column("Action", style="cyan")
    table.add_column("User")
    table.add_column("Role", style="magenta")
    table.add_column("Resource")
    for e in entries:
        table.add_row(e.timestamp, e.action, e.user_email or e.user_id, e.user_role,
                      f"{e.resource_type}/{e.resource_id}")
    console.print(table)


if __name__ == "__main__":
    main()
