"""Command-line interface for Giveroom."""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from giveroom.auth.credentials import CredentialStore
from giveroom.auth.identity import SessionIdentityStrategy
from giveroom.auth.service import AuthService
from giveroom.errors import GiveroomError
from giveroom.giveaways.ledger import ReferralLedger
from giveroom.giveaways.registry import GiveawayRegistry
from giveroom.logging_config import configure_logging, get_logger
from giveroom.settings import settings
from giveroom.storage.db import db

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="giveroom",
    help="Giveroom - giveaway rooms with referral attribution",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


@app.command("init")
def init_database(
    reset: Annotated[bool, typer.Option("--reset", help="Drop all tables first (deletes all data)")] = False,
) -> None:
    """Initialize the database and create tables."""
    if reset:
        typer.confirm("Drop all tables and delete every user, giveaway and referral?", abort=True)
        db.drop_tables()
        console.print("[bold yellow]![/bold yellow] Existing tables dropped")
    console.print("[bold blue]Initializing database...[/bold blue]")
    db.create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


@app.command("create-user")
def create_user(
    username: Annotated[str, typer.Argument(help="Username")],
    password: Annotated[str, typer.Option("--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True)],
) -> None:
    """Create a user account."""
    try:
        user = AuthService(database=db).signup(username, password)
    except GiveroomError as e:
        console.print(f"[bold red]✗[/bold red] {e.message}")
        raise typer.Exit(code=1)

    console.print(f"[bold green]✓[/bold green] Created user [cyan]{user.username}[/cyan] (id {user.id})")


@app.command("giveaways")
def list_giveaways(
    owner: Annotated[str | None, typer.Option("--owner", "-o", help="Only this user's giveaways")] = None,
) -> None:
    """List giveaways with their referral counts."""
    with db.session() as session:
        registry = GiveawayRegistry(session)
        if owner:
            user = CredentialStore(session).get_by_username(owner)
            if user is None:
                console.print(f"[bold red]✗[/bold red] Unknown user: {owner}")
                raise typer.Exit(code=1)
            giveaways = registry.list_by_owner(user.id)
        else:
            giveaways = registry.list_all()

    if not giveaways:
        console.print("[yellow]No giveaways found[/yellow]")
        return

    table = Table(title="Giveaways")
    table.add_column("ID", style="cyan")
    table.add_column("Room")
    table.add_column("Code", style="magenta")
    table.add_column("Owner")
    table.add_column("Referrals", justify="right", style="green")
    table.add_column("Created")

    for g in giveaways:
        table.add_row(
            str(g.id),
            g.room_name,
            g.code,
            str(g.owner_id),
            str(g.referral_count),
            g.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@app.command("referrals")
def list_referrals(
    code: Annotated[str, typer.Argument(help="Giveaway code")],
) -> None:
    """List a giveaway's referrals, oldest first."""
    with db.session() as session:
        giveaway = GiveawayRegistry(session).find_by_code(code)
        if giveaway is None:
            console.print(f"[bold red]✗[/bold red] Giveaway not found: {code}")
            raise typer.Exit(code=1)
        referrals = ReferralLedger(session).list_by_giveaway(giveaway.id)

    table = Table(title=f"{giveaway.room_name} ({giveaway.referral_count} referrals)")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Joined at")

    for r in referrals:
        table.add_row(str(r.id), r.referrer_name, r.created_at.strftime("%Y-%m-%d %H:%M:%S"))

    console.print(table)


@app.command("purge-sessions")
def purge_sessions() -> None:
    """Delete expired server-side sessions."""
    removed = SessionIdentityStrategy(database=db).purge_expired()
    console.print(f"[bold green]✓[/bold green] Removed {removed} expired sessions")


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Bind port")] = 8000,
) -> None:
    """Run the API server."""
    import uvicorn

    logger.info("server_starting", host=host, port=port, identity_strategy=settings.identity_strategy)
    uvicorn.run("giveroom.api.main:app", host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    app()
