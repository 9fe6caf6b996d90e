"""
Autovision operator CLI.

    python main.py serve
    python main.py create-user --email a@b.com --name Ana --password secret1 [--admin]
    python main.py list-users
    python main.py seed-vehicles --count 10
"""

import argparse
import os
import random
import sys

from rich import box
from rich.console import Console
from rich.table import Table

from autovision.auth.models import Role
from autovision.auth.service import UserDirectory
from autovision.core.config import get_settings
from autovision.core.exceptions import AutovisionError
from autovision.vehicles.models import (
    ApprovalStatus,
    FuelType,
    TransmissionType,
    Vehicle,
    VehicleStatus,
)
from autovision.vehicles.store import VehicleStore

console = Console()

SAMPLE_MODELS = [
    ("Toyota", "Corolla"),
    ("Honda", "Civic"),
    ("Volkswagen", "Golf"),
    ("Chevrolet", "Onix"),
    ("Fiat", "Argo"),
    ("Hyundai", "HB20"),
    ("Jeep", "Compass"),
    ("Renault", "Kwid"),
]
SAMPLE_COLORS = ["White", "Black", "Silver", "Red", "Blue", "Gray"]


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    environment = os.getenv("ENVIRONMENT", "development").lower()
    console.print(f"[bold blue]Starting Autovision ({environment})[/bold blue]")
    console.print(f"Access the API at http://{args.host}:{args.port}/docs")
    uvicorn.run(
        "autovision_web.main:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=environment == "development",
        log_level="info" if environment == "production" else "debug",
    )
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    settings = get_settings()
    users = UserDirectory(settings.data_dir, bcrypt_rounds=settings.bcrypt_rounds)
    user = users.create_user(
        email=args.email,
        password=args.password,
        name=args.name,
        role=Role.ADMIN if args.admin else Role.COMMON,
    )
    console.print(f"[bold green]✓ Created {user.role.value} user {user.email}[/bold green] ({user.id})")
    return 0


def cmd_list_users(args: argparse.Namespace) -> int:
    settings = get_settings()
    users = UserDirectory(settings.data_dir).list_users()
    table = Table(title="Users", box=box.SIMPLE)
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Role", style="cyan")
    table.add_column("Created")
    for user in users:
        table.add_row(user.id, user.name, user.email, user.role.value, user.created_at.strftime("%Y-%m-%d"))
    console.print(table)
    return 0


def cmd_seed_vehicles(args: argparse.Namespace) -> int:
    settings = get_settings()
    users = UserDirectory(settings.data_dir, bcrypt_rounds=settings.bcrypt_rounds)
    owner = users.get_user_by_email(settings.admin_email) or users.ensure_seed_admin(settings)
    store = VehicleStore(settings.data_dir)
    rng = random.Random(args.seed)
    for _ in range(args.count):
        make, model = rng.choice(SAMPLE_MODELS)
        year = rng.randint(2012, 2024)
        store.add(
            Vehicle(
                make=make,
                model=model,
                fabricate_year=year,
                model_year=min(year + rng.randint(0, 1), 2025),
                color=rng.choice(SAMPLE_COLORS),
                km=rng.randint(0, 150_000),
                price=str(rng.randrange(30_000, 250_000, 500)),
                transmission_type=rng.choice(list(TransmissionType)),
                fuel_type=rng.choice(list(FuelType)),
                status=rng.choice(list(VehicleStatus)),
                approval_status=rng.choice(list(ApprovalStatus)),
                created_by=owner.id if owner else None,
            )
        )
    console.print(f"[bold green]✓ Seeded {args.count} vehicles[/bold green]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="autovision", description="Autovision operator CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    serve.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    serve.set_defaults(func=cmd_serve)

    create = sub.add_parser("create-user", help="Create a user")
    create.add_argument("--email", required=True)
    create.add_argument("--name", required=True)
    create.add_argument("--password", required=True)
    create.add_argument("--admin", action="store_true")
    create.set_defaults(func=cmd_create_user)

    list_users = sub.add_parser("list-users", help="List users")
    list_users.set_defaults(func=cmd_list_users)

    seed = sub.add_parser("seed-vehicles", help="Insert sample vehicles")
    seed.add_argument("--count", type=int, default=10)
    seed.add_argument("--seed", type=int, default=None)
    seed.set_defaults(func=cmd_seed_vehicles)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except AutovisionError as e:
        console.print(f"[bold red]✗ {e.message}[/bold red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
