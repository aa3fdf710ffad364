import sys
from dailies.db.session import SessionLocal
from dailies.services.integrity import repair_latest_flags


def main() -> None:
    dry_run = "--dry-run" in sys.argv[1:]
    db = SessionLocal()
    try:
        violations = repair_latest_flags(db, dry_run=dry_run)
        for violation in violations:
            print(
                f"{violation.owner.label()}: latest={violation.latest_ids or 'none'} "
                f"keep={violation.kept_id} versions={len(violation.version_ids)}"
            )
        action = "Would repair" if dry_run else "Repaired"
        print(f"{action} {len(violations)} owners")
    finally:
        db.close()


if __name__ == "__main__":
    main()
