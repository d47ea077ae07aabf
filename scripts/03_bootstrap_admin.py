#!/usr/bin/env python3
"""
离线创建本地管理员账号（默认取 config.auth 的 admin_email / admin_default_password）。

用法：
    python scripts/03_bootstrap_admin.py
    python scripts/03_bootstrap_admin.py --email admin@example.com --password 'S3cretPass'
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from config.settings import settings
from genfuze.auth.accounts import new_local_user
from genfuze.auth.password import PASSWORD_RULE_MESSAGE, validate_email, validate_password
from genfuze.db.engine import init_db
from genfuze.storage import StorageError, get_store


def main():
    parser = argparse.ArgumentParser(description="Bootstrap a local admin user")
    parser.add_argument("--email", default=None, help="Admin e-mail (default: from config)")
    parser.add_argument("--password", default=None, help="Admin password (default: from config)")
    parser.add_argument("--name", default="Admin User", help="Display name")
    args = parser.parse_args()

    email = args.email or settings.auth.admin_email
    password = args.password or settings.auth.admin_default_password
    if not validate_email(email):
        print(f"Error: invalid e-mail: {email}")
        sys.exit(1)
    if args.password and not validate_password(password):
        print(f"Error: {PASSWORD_RULE_MESSAGE}")
        sys.exit(1)

    init_db()
    store = get_store()
    if store.get_user_by_email(email):
        print(f"User {email} already exists.")
        return

    admin = new_local_user(email, password, args.name, display_name="Administrator", roles=["admin", "user"])
    try:
        store.create_user(admin)
    except StorageError as e:
        print(f"Error: {e}")
        sys.exit(1)
    print(f"Created admin user: {email} ({settings.storage.backend} storage)")
    if not settings.auth.enable_local_auth:
        print("Note: local auth is disabled; set ENABLE_LOCAL_AUTH=true to log in with this account.")
    print('Login: POST /api/auth/local-login with body {"email": "%s", "password": "..."}' % email)


if __name__ == "__main__":
    main()
