#!/usr/bin/env python
"""One-time copy of web_users documents into Seller (merge, tagged with _migratedFrom / _migratedAt).

Usage:
    python backend/scripts/migrate_web_users_to_seller.py
    DRY_RUN=1 python backend/scripts/migrate_web_users_to_seller.py
"""
import sys
from _runner import run
from dentpal.services.backfills import migrate_web_users_to_seller

if __name__ == '__main__':
    sys.exit(run('Migrate web_users to Seller', migrate_web_users_to_seller))
