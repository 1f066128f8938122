#!/usr/bin/env python3
"""
Build a small glucose algorithm with the builder engine and print the exported file.

Root: glucose equals 120 with a RERUN_TEST process action, one child on patient
age closed by VALIDATE. Then shows that the terminal child refuses new children
and that the export imports back unchanged.

Usage (from project root):
  python scripts/demo.py [OUT_PATH]
"""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

DEMO_TEMPLATE = {
    "name": "Demo panel",
    "code": "demo",
    "parameters": [{"name": "glucose"}],
    "actions": [{"name": "RERUN_TEST", "type": "process"}, {"name": "VALIDATE", "type": "result"}],
}


def main() -> int:
    from backend.exceptions import ValidationRejection
    from backend.models.builder import CounterNodeIds, DropEvent
    from backend.services.builder_service import BuilderSession
    from backend.services.serialization_service import import_algorithm
    from backend.utils.logging import configure_logging
    from shared.schemas import GlobalParameter, Template

    configure_logging()
    session = BuilderSession(
        [Template.model_validate(DEMO_TEMPLATE)],
        [GlobalParameter(name="glucose", label="Glucose"), GlobalParameter(name="age", label="Patient age")],
        ids=CounterNodeIds(),
    )
    session.select_template("demo")
    session.set_meta(name="Glucose check", description="Builder engine demo")
    root_id = session.roots[0].id
    session.update_field(root_id, "parameter", "glucose")
    session.update_field(root_id, "value", "120")
    session.add_action(root_id, "process", "RERUN_TEST")
    session.drop(DropEvent(item_kind="parameter", value="age", target_id=root_id, drop_zone="children"))
    child_id = session.node(root_id).children[0].id
    session.update_field(child_id, "operator", "greater_than")
    session.update_field(child_id, "value", "65")
    session.add_action(child_id, "result", "VALIDATE")

    try:
        session.add_condition(child_id)
        print("Unexpected: terminal node accepted a child", file=sys.stderr)
        return 1
    except ValidationRejection as e:
        print(f"Rejected as expected: {e.message}\n")

    filename, text = session.export()
    print(f"--- {filename} ---")
    print(text)

    same = import_algorithm(text) == session.to_algorithm()
    print(f"\nRe-import matches session: {'Yes' if same else 'No'}")

    if len(sys.argv) > 1:
        out = Path(sys.argv[1])
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text, encoding="utf-8")
        print(f"Written to {out}")
    return 0 if same else 1


if __name__ == "__main__":
    sys.exit(main())
