"""
Seed script for the Hazard Alert Hub mock DB or Firestore.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Force mock DB even if FIREBASE configured: python scripts/seed_db.py --apply --force-mock

Behavior:
  - Loads `db_seed.json` from repo root if present:
      {"users": {"<id>": {"email": ..., "password": ..., "phone": ..., "role": ...}},
       "reports": {"<id>": {...}}}
  - Plain `password` fields are hashed into `password_hash` before writing.
  - Always ensures an admin account from DEFAULT_ADMIN_EMAIL / DEFAULT_ADMIN_PASSWORD.
    Admins can only be provisioned here; the API never grants the role.
"""

import argparse
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict

from hazard_hub.config.firebase import create_firestore_client
from hazard_hub.core.settings import settings
from hazard_hub.models.user import Role
from hazard_hub.services.credential_store import normalize_email
from hazard_hub.utils.phone import normalize_phone
from hazard_hub.utils.security import hash_password


def load_seed(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def prepare_user(data: Dict[str, Any]) -> Dict[str, Any]:
    user = dict(data)
    password = user.pop("password", None)
    if password:
        user["password_hash"] = hash_password(password)
    if user.get("email"):
        user["email"] = normalize_email(user["email"])
    if user.get("phone"):
        user["phone"] = normalize_phone(user["phone"])
    user.setdefault("role", Role.REPORTER.value)
    user.setdefault("created_at", datetime.now(timezone.utc))
    return user


def default_admin() -> Dict[str, Dict[str, Any]]:
    email = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@hazardhub.local")
    password = os.getenv("DEFAULT_ADMIN_PASSWORD", "Admin@12345!")
    phone = os.getenv("DEFAULT_ADMIN_PHONE") or settings.ADMIN_PHONE_NUMBER
    admin = {"email": email, "password": password, "role": Role.ADMIN.value}
    if phone:
        admin["phone"] = phone
    return {"admin": admin}


def write_to_db(db: Any, seed: dict, apply: bool = False):
    # db is either MockFirestore or a real firestore client
    for collection, docs in seed.items():
        for doc_id, data in docs.items():
            print(f"Preparing: {collection}/{doc_id}")
            if collection == "users":
                data = prepare_user(data)
            if not apply:
                continue
            try:
                db.collection(collection).document(doc_id).set(data)
                print(f"Wrote: {collection}/{doc_id}")
            except Exception as e:
                print(f"Failed to write {collection}/{doc_id}: {e}")


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Force use of mock DB even if FIREBASE configured")
    parser.add_argument("--seed-file", default=os.path.join(os.getcwd(), "db_seed.json"))
    args = parser.parse_args()

    seed = load_seed(args.seed_file) if os.path.exists(args.seed_file) else {}
    users = seed.setdefault("users", {})
    for doc_id, admin in default_admin().items():
        users.setdefault(doc_id, admin)

    seed_settings = settings.model_copy(update={"USE_MOCK_DB": True}) if args.force_mock else settings
    if args.force_mock:
        print("Forcing mock DB usage for this run.")

    db = create_firestore_client(seed_settings)
    write_to_db(db, seed, apply=args.apply)

    if args.apply:
        print("Seeding completed.")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
