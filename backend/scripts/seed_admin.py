#!/usr/bin/env python
"""Ensure an admin dashboard account exists.

Usage:
    SEED_ADMIN_EMAIL=admin@example.com SEED_ADMIN_PASSWORD=... python backend/scripts/seed_admin.py
A missing SEED_ADMIN_PASSWORD generates a temporary one and prints it once.
"""
import os, sys
from _runner import run
from dentpal.services.backfills import seed_admin

if __name__ == '__main__':
    sys.exit(run(
        'Seed admin account', seed_admin,
        email=os.getenv('SEED_ADMIN_EMAIL'),
        password=os.getenv('SEED_ADMIN_PASSWORD'),
        name=os.getenv('SEED_ADMIN_NAME', 'Administrator'),
    ))
