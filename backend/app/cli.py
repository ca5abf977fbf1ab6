"""Ship Registry CLI: manage the ship database from the terminal.

Commands:
  init-db   create tables
  seed      load ships from YAML or generate demo ships
  list      filtered, sorted, paged listing with total count
  show      one ship by id
  delete    remove one ship by id
  serve     run the HTTP API
"""
from __future__ import annotations

import random
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from app.exceptions import ShipRegistryError
from app.models.base import ShipTypeEnum
from app.modules.ship_lifecycle import ShipOrder


app = typer.Typer(
    name="ship-registry",
    help="Starship record management.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("init-db")
def init_db_command():
    """Create database tables if they do not exist."""
    from app.database import init_db

    try:
        with console.status("[bold]Creating database..."):
            init_db()
    except Exception as e:
        console.print(f"[red]Database setup failed:[/red] {e}")
        raise typer.Exit(1)
    console.print("[green]Database ready.[/green]")


@app.command("seed")
def seed(
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="YAML list of ships (API field names)"),
    count: int = typer.Option(10, "--count", "-n", min=1, help="Demo ships to generate when no --file is given"),
):
    """Load ships through the normal create rules. Invalid entries are skipped."""
    from app.database import SessionLocal, init_db

    if file is not None:
        if not file.exists():
            console.print(f"[red]File not found:[/red] {file}")
            raise typer.Exit(1)
        entries = _load_yaml_entries(file)
    else:
        entries = _demo_ships(count)

    init_db()
    db = SessionLocal()
    try:
        created, skipped = _create_all(db, entries)
    finally:
        db.close()

    console.print(f"[green]{created} ship(s) created[/green]" + (f", [yellow]{skipped} skipped[/yellow]" if skipped else ""))


@app.command("list")
def list_ships(
    name: Optional[str] = typer.Option(None, "--name", help="Name contains (case-sensitive)"),
    planet: Optional[str] = typer.Option(None, "--planet", help="Planet contains (case-sensitive)"),
    ship_type: Optional[ShipTypeEnum] = typer.Option(None, "--type", case_sensitive=False),
    after: Optional[int] = typer.Option(None, "--after", help="Earliest production date, epoch ms, inclusive"),
    before: Optional[int] = typer.Option(None, "--before", help="Latest production date, epoch ms, inclusive"),
    is_used: Optional[bool] = typer.Option(None, "--used/--new", help="Only used or only new ships"),
    min_speed: Optional[float] = typer.Option(None, "--min-speed"),
    max_speed: Optional[float] = typer.Option(None, "--max-speed"),
    min_crew_size: Optional[int] = typer.Option(None, "--min-crew"),
    max_crew_size: Optional[int] = typer.Option(None, "--max-crew"),
    min_rating: Optional[float] = typer.Option(None, "--min-rating"),
    max_rating: Optional[float] = typer.Option(None, "--max-rating"),
    order: ShipOrder = typer.Option(ShipOrder.ID, "--order", case_sensitive=False),
    page: int = typer.Option(0, "--page"),
    size: int = typer.Option(20, "--size"),
):
    """List ships matching the filters."""
    from app.database import SessionLocal
    from app.modules import ship_lifecycle
    from app.modules.ship_filter import ShipFilter

    ship_filter = ShipFilter(
        name=name, planet=planet, ship_type=ship_type,
        after=after, before=before, is_used=is_used,
        min_speed=min_speed, max_speed=max_speed,
        min_crew_size=min_crew_size, max_crew_size=max_crew_size,
        min_rating=min_rating, max_rating=max_rating,
    )
    db = SessionLocal()
    try:
        ships = ship_lifecycle.list_ships(db, ship_filter, order, page, size)
        total = ship_lifecycle.count_ships(db, ship_filter)
    except ShipRegistryError as e:
        console.print(f"[red]{escape(e.detail)}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()

    if not ships:
        console.print(f"[yellow]No ships on this page[/yellow] ({total} matching)")
        return
    console.print(_ship_table(ships))
    console.print(f"[dim]Page {page}, {len(ships)} of {total} matching[/dim]")


@app.command("show")
def show(ship_id: str = typer.Argument(..., help="Ship id")):
    """Show one ship."""
    from app.database import SessionLocal
    from app.modules import ship_lifecycle

    db = SessionLocal()
    try:
        ship = ship_lifecycle.get_ship(db, ship_id)
        console.print(_ship_table([ship]))
    except ShipRegistryError as e:
        console.print(f"[red]{escape(e.detail)}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()


@app.command("delete")
def delete(ship_id: str = typer.Argument(..., help="Ship id")):
    """Delete one ship."""
    from app.database import SessionLocal
    from app.modules import ship_lifecycle

    db = SessionLocal()
    try:
        ship_lifecycle.delete_ship(db, ship_id)
    except ShipRegistryError as e:
        console.print(f"[red]{escape(e.detail)}[/red]")
        raise typer.Exit(1)
    finally:
        db.close()
    console.print(f"[green]Ship {ship_id} deleted[/green]")


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    console.print(f"Serving on [cyan]http://{host}:{port}[/cyan]")
    uvicorn.run("app.main:app", host=host, port=port)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_yaml_entries(path: Path) -> list[dict]:
    import yaml

    with open(path) as f:
        data = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("ships") or []
    return [entry for entry in data if isinstance(entry, dict)]


def _create_all(db, entries: list[dict]) -> tuple[int, int]:
    """Run every entry through the create rules; returns (created, skipped)."""
    from app.modules import ship_lifecycle
    from app.schemas.ship import ShipCreateRequest

    created = skipped = 0
    for i, entry in enumerate(entries):
        try:
            body = ShipCreateRequest.model_validate(entry)
            ship_lifecycle.create_ship(db, body.present_fields())
            created += 1
        except ValidationError as e:
            skipped += 1
            console.print(f"[yellow]Entry {i}: {e.error_count()} invalid field(s)[/yellow]")
        except ShipRegistryError as e:
            skipped += 1
            console.print(f"[yellow]Entry {i}: {escape(e.detail)}[/yellow]")
    return created, skipped


_DEMO_NAMES = ["Orion", "Daedalus", "Eagle", "Serenity", "Nostromo", "Rocinante", "Excelsior", "Valkyrie"]
_DEMO_PLANETS = ["Earth", "Mars", "Jupiter", "Saturn", "Neptune", "Venus", "Mercury", "Pluto"]


def _demo_ships(count: int, seed: int = 42) -> list[dict]:
    """Deterministic demo ships in API wire format."""
    rng = random.Random(seed)
    ships = []
    for i in range(count):
        year = rng.randint(2800, 3019)
        prod_date = datetime(year, rng.randint(1, 12), rng.randint(1, 28))
        ships.append({
            "name": f"{rng.choice(_DEMO_NAMES)} {i + 1}",
            "planet": rng.choice(_DEMO_PLANETS),
            "shipType": rng.choice(list(ShipTypeEnum)).value,
            "prodDate": prod_date.isoformat(),
            "isUsed": rng.random() < 0.5,
            "speed": round(rng.uniform(0.01, 0.99), 2),
            "crewSize": rng.randint(1, 9999),
        })
    return ships


def _ship_table(ships) -> Table:
    table = Table(show_header=True, header_style="bold cyan")
    for column in ("ID", "Name", "Planet", "Type", "Year", "Used", "Speed", "Crew", "Rating"):
        table.add_column(column)
    for s in ships:
        table.add_row(
            str(s.id), s.name, s.planet, s.ship_type.value, str(s.prod_date.year),
            "yes" if s.is_used else "no", f"{s.speed:.2f}", str(s.crew_size), f"{s.rating:.2f}",
        )
    return table


if __name__ == "__main__":
    app()
