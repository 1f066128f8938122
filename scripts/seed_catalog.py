#!/usr/bin/env python3
"""
Load a sample template and global parameters into the database.
Idempotent: entries whose name already exists are skipped.

Usage (from project root):
  python scripts/seed_catalog.py
"""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

SAMPLE_TEMPLATE = {
    "name": "Basic metabolic panel",
    "description": "Glucose, electrolytes and renal function",
    "parameters": [
        {"name": "glucose", "states": ["supra", "normal", "extra"], "defaultRange": {"min": "70", "max": "110"}},
        {"name": "sodium", "defaultRange": {"min": "135", "max": "145"}},
        {"name": "creatinine"},
    ],
    "actions": [
        {"name": "RERUN_TEST", "type": "process"},
        {"name": "ADD_COMMENT", "type": "process"},
        {"name": "VALIDATE", "type": "result"},
        {"name": "CALL_EXPERT", "type": "result"},
    ],
}

SAMPLE_GLOBAL_PARAMETERS = [
    {"name": "age", "label": "Patient age", "type": "number"},
    {"name": "sex", "label": "Patient sex", "type": "text"},
    {"name": "ward", "label": "Requesting ward", "type": "text"},
]


def main() -> int:
    from backend.database import Base, SessionLocal, engine
    from backend.services.storage_service import ResourceKind, SqlStorage

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        storage = SqlStorage(db)
        batches = [
            (ResourceKind.TEMPLATES, [SAMPLE_TEMPLATE]),
            (ResourceKind.GLOBAL_PARAMETERS, SAMPLE_GLOBAL_PARAMETERS),
        ]
        for kind, bodies in batches:
            existing = {r["name"] for r in storage.list(kind).data or []}
            for body in bodies:
                if body["name"] in existing:
                    print(f"Skipped {kind.value}: {body['name']} (exists)")
                    continue
                response = storage.create(kind, body)
                if not response.success:
                    print(f"Failed {kind.value}: {body['name']}: {response.error}", file=sys.stderr)
                    return 1
                extra = f", code={response.data['code']}" if kind == ResourceKind.TEMPLATES else ""
                print(f"Seeded {kind.value}: {body['name']} (id={response.data['id']}{extra})")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
