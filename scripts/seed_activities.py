import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fittrack import create_app
from fittrack.activity_catalog import seed_activities_if_needed


def main():
    parser = argparse.ArgumentParser(
        description="Create or refresh the built-in activity catalog (tennis, swimming, running)."
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-sync definitions even if this process already seeded the database.",
    )
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        changed = seed_activities_if_needed(force=args.force)
        print(f"Activities created or updated: {changed}")


if __name__ == "__main__":
    main()
