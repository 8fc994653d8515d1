"""
Seed default users and demo data.

Usage:
    python scripts/seed_demo_data.py                # Uses development DB
    python scripts/seed_demo_data.py --env prod     # Uses production DB
    python scripts/seed_demo_data.py --users-only   # Default accounts only

This script is idempotent — safe to run multiple times.
Default accounts: admin / admin123 (admin), user / user123 (readonly).
Change both passwords after the first login.
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from infosec_tools import create_app
from infosec_tools.models.auth import User
from infosec_tools.models.inventory import Server
from infosec_tools.models.tracker import Tracker
from infosec_tools.services.inventory_service import seed_servers
from infosec_tools.services.tracker_service import seed_demo_trackers
from infosec_tools.services.user_service import seed_default_users


def main():
    parser = argparse.ArgumentParser(description="Seed default users and demo data")
    parser.add_argument("--env", default="development",
                        choices=["development", "production", "prod"])
    parser.add_argument("--users-only", action="store_true",
                        help="Create the default accounts and skip demo data")
    args = parser.parse_args()

    env = "production" if args.env == "prod" else args.env
    app = create_app(env)

    with app.app_context():
        users = seed_default_users()
        servers = trackers = 0
        if not args.users_only:
            servers = seed_servers()
            trackers = seed_demo_trackers()

        print("\n" + "=" * 60)
        print("  SUMMARY")
        print("=" * 60)
        print(f"  Users:    {users} created, {User.query.count()} total")
        print(f"  Servers:  {servers} created, {Server.query.count()} total")
        print(f"  Trackers: {trackers} created, {Tracker.query.count()} total")
        print("\n✅ Seed complete!")


if __name__ == "__main__":
    main()
