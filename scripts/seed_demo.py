#!/usr/bin/env python3
"""CLI script to seed a demo account with sample CRM data.

Usage:
    python scripts/seed_demo.py
    python scripts/seed_demo.py --email demo@mini-crm.example.com --password "Demo#1234"

Connects directly to the database using DATABASE_URL from environment or .env file.
Creates the tables if needed, then the demo user with a few contacts, notes
and deals. Does nothing if the user already exists.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure project root is on sys.path so we can import src.app
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

DEMO_EMAIL = "demo@mini-crm.example.com"
DEMO_PASSWORD = "Demo#1234"

SAMPLE_CONTACTS = [
    {
        "name": "Ada Lovelace",
        "email": "ada@analytical.example.com",
        "company": "Analytical Engines",
        "phone": "+44 20 0000 0001",
        "notes": ["Met at the data conference", "Interested in a yearly plan"],
        "deals": [("Annual license", 12000.0, "Negotiation"), ("Onboarding", 1500.0, "Won")],
    },
    {
        "name": "Grace Hopper",
        "email": "grace@compilers.example.com",
        "company": "Compilers Inc",
        "phone": "",
        "notes": ["Prefers email over calls"],
        "deals": [("Pilot project", 4000.0, "Prospect")],
    },
    {
        "name": "Alan Turing",
        "email": "alan@bletchley.example.com",
        "company": "Bletchley Labs",
        "phone": "+44 20 0000 0003",
        "notes": [],
        "deals": [("Support contract", 0.0, "Lost")],
    },
]


async def seed(email: str, password: str) -> None:
    """Create the demo user and sample data through the CRM repositories."""
    from sqlalchemy import select

    from src.app.core.database import close_db, get_engine, init_db, make_session_factory
    from src.app.core.security import hash_password
    from src.app.crm.ownership import OwnershipGuard
    from src.app.crm.repository import ContactRepository, DealRepository, NoteRepository
    from src.app.crm.schemas import ContactCreate, DealCreate, NoteCreate
    from src.app.models.user import User

    engine = get_engine()
    await init_db(engine)
    session_factory = make_session_factory(engine)

    async with session_factory() as session:
        existing = await session.scalar(select(User.id).where(User.email == email))
        if existing is not None:
            print(f"Demo user already exists: {email} (id={existing})")
            await close_db()
            return

        user = User(email=email, hashed_password=hash_password(password))
        session.add(user)
        await session.commit()
        await session.refresh(user)
        user_id = user.id

    guard = OwnershipGuard(session_factory)
    contacts = ContactRepository(session_factory, guard)
    notes = NoteRepository(session_factory, guard)
    deals = DealRepository(session_factory, guard)

    for sample in SAMPLE_CONTACTS:
        contact = await contacts.create(
            user_id,
            ContactCreate(
                name=sample["name"],
                email=sample["email"],
                company=sample["company"],
                phone=sample["phone"],
            ),
        )
        for body in sample["notes"]:
            await notes.create(user_id, contact.id, NoteCreate(body=body))
        for title, amount, stage in sample["deals"]:
            await deals.create(
                user_id,
                DealCreate(title=title, amount=amount, stage=stage, contact_id=contact.id),
            )

    print("Demo data seeded successfully:")
    print(f"  User:     {email} (id={user_id})")
    print(f"  Password: {password}")
    print(f"  Contacts: {len(SAMPLE_CONTACTS)}")

    await close_db()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the demo account")
    parser.add_argument("--email", default=DEMO_EMAIL, help="Demo user email")
    parser.add_argument("--password", default=DEMO_PASSWORD, help="Demo user password")
    args = parser.parse_args()

    if len(args.password) < 4:
        parser.error("--password must be at least 4 characters")

    asyncio.run(seed(args.email, args.password))


if __name__ == "__main__":
    main()
