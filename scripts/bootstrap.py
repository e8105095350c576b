"""
Seed a fresh installation.

This script:
1. Creates the default services (or refreshes their price and description)
2. Folds the legacy "TV Essencial" / "TV Premium" services into "TV"
3. Creates the default admin in Supabase Auth when it does not exist yet

Usage:
    python -m scripts.bootstrap [--skip-admin]
"""

import argparse
import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import func, select, update

# Load environment variables
load_dotenv()

# Add the project root to the path to import the app
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.database import async_session_maker
from app.models.client_service import ClientService
from app.models.service import Service

DEFAULT_SERVICES = [
    {
        "name": "TV",
        "description": "Serviço de TV com geração automática de e-mail (até 8 acessos).",
        "price": 37.99,
        "allow_custom_price": True,
    },
    {
        "name": "Telemedicina e Telepet",
        "description": "Cobertura de telemedicina humana e pet.",
        "price": 8.35,
        "allow_custom_price": False,
    },
    {
        "name": "Cloud 150GB",
        "description": "Armazenamento em nuvem de 150 GB.",
        "price": 4.99,
        "allow_custom_price": False,
    },
    {
        "name": "HubPlay Premium",
        "description": "Plataforma HubPlay Premium.",
        "price": 39.99,
        "allow_custom_price": False,
    },
]

LEGACY_TV_NAMES = ("tv essencial", "tv premium")


async def seed_services(session) -> None:
    """Create or refresh the default services, then merge legacy TV services."""
    result = await session.execute(select(Service))
    by_name = {service.name.lower(): service for service in result.scalars().all()}

    for definition in DEFAULT_SERVICES:
        service = by_name.get(definition["name"].lower())
        if service is None and definition["name"] == "TV":
            # Reuse a legacy TV service instead of creating a second one
            service = next((by_name[name] for name in LEGACY_TV_NAMES if name in by_name), None)
            if service is not None:
                print(f"   [-] Renaming '{service.name}' to 'TV'")
                by_name.pop(service.name.lower())

        if service is None:
            service = Service(**definition)
            session.add(service)
            print(f"   [+] Created service '{definition['name']}'")
        else:
            for field, value in definition.items():
                setattr(service, field, value)
            print(f"   [=] Updated service '{definition['name']}'")
        by_name[definition["name"].lower()] = service

    await session.flush()

    tv = by_name["tv"]
    for legacy_name in LEGACY_TV_NAMES:
        legacy = by_name.get(legacy_name)
        if legacy is None or legacy.id == tv.id:
            continue
        moved = await session.scalar(
            select(func.count(ClientService.id)).where(ClientService.service_id == legacy.id)
        )
        await session.execute(
            update(ClientService)
            .where(ClientService.service_id == legacy.id)
            .values(service_id=tv.id)
        )
        await session.delete(legacy)
        print(f"   [-] Legacy service '{legacy.name}' removed ({moved} client link(s) moved to TV)")

    await session.commit()


def ensure_default_admin() -> None:
    """Create DEFAULT_ADMIN_EMAIL in Supabase Auth if it is missing."""
    from supabase import create_client

    email = os.getenv("DEFAULT_ADMIN_EMAIL")
    password = os.getenv("DEFAULT_ADMIN_PASSWORD")
    name = os.getenv("DEFAULT_ADMIN_NAME", "Admin")
    supabase_url = os.getenv("SUPABASE_URL")
    service_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

    if not email or not password:
        print("   [!] DEFAULT_ADMIN_EMAIL / DEFAULT_ADMIN_PASSWORD not set, skipping admin")
        return
    if not supabase_url or not service_key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")

    supabase = create_client(supabase_url, service_key)
    users = supabase.auth.admin.list_users(page=1, per_page=1000)
    if any((user.email or "").lower() == email.lower() for user in users):
        print(f"   [=] Admin {email} already exists")
        return

    supabase.auth.admin.create_user({
        "email": email,
        "password": password,
        "email_confirm": True,
        "user_metadata": {"role": "admin", "name": name},
    })
    print(f"   [+] Admin {email} created")


async def main(skip_admin: bool) -> None:
    print("\n" + "=" * 60)
    print(" >> BOOTSTRAP")
    print("-" * 60)

    async with async_session_maker() as session:
        await seed_services(session)

    if not skip_admin:
        ensure_default_admin()

    print(" >> BOOTSTRAP COMPLETE")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed default services and the default admin")
    parser.add_argument("--skip-admin", action="store_true", help="Do not touch Supabase Auth")
    args = parser.parse_args()
    asyncio.run(main(args.skip_admin))
