#!/usr/bin/env python3
"""
Seed predefined personas from seed_data/personas.json (or --file).
Skips seeding when any predefined persona already exists.
Run from backend/: python -m scripts.seed_personas
"""
import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


async def main(args: argparse.Namespace):
    from app.database import async_session, init_db
    from app.services.persona_service import PersonaService, load_seed_file
    from app.stores.sql import SqlPersonaStore

    seeds = load_seed_file(args.file)
    print(f"Loaded {len(seeds)} predefined personas from seed file")

    await init_db()
    inserted = await PersonaService(SqlPersonaStore(async_session)).seed_predefined(seeds)
    if inserted:
        print(f"Seeded {inserted} predefined personas")
    else:
        print("Predefined personas already present. Nothing to do.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--file", default=None, help="Path to a personas JSON file")
    asyncio.run(main(parser.parse_args()))
