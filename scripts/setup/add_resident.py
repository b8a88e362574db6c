# scripts/setup/add_resident.py
"""
Register a resident profile. The printed id is what the resident app sends
as the X-Host-Id header when issuing passes.
Usage: python scripts/setup/add_resident.py --name "Farid Ismail" --address "No. 12, Jalan Ukay Perdana 3"
"""

import sys
import os
import argparse
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from datetime import datetime
from app.database import SessionLocal, create_tables
from app.services.record_store import PROFILES_TABLE, RecordStoreError, SqlRecordStore


def main():
    parser = argparse.ArgumentParser(description="Add a resident (pass host) profile")
    parser.add_argument("--name", required=True)
    parser.add_argument("--address", default=None, help="Shown on shared passes and at the gate")
    args = parser.parse_args()

    create_tables()
    db = SessionLocal()
    try:
        profile = SqlRecordStore(db).insert(PROFILES_TABLE, {
            "full_name": args.name.strip(),
            "address": args.address,
            "created_at": datetime.utcnow(),
        })
    except RecordStoreError as e:
        print(f"❌ Could not add resident: {e}")
        sys.exit(1)
    finally:
        db.close()

    print(f"✅ Resident added: {profile.full_name}")
    print(f"   X-Host-Id: {profile.id}")


if __name__ == "__main__":
    main()
