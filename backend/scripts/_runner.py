"""Shared entry point for the maintenance scripts in this directory.

Environment:
    STORE_BACKEND     sql (default) or firestore
    DATABASE_URL      SQL backend URL
    GOOGLE_APPLICATION_CREDENTIALS / FIREBASE_SERVICE_ACCOUNT   firestore credentials
    DRY_RUN           any non-empty value other than 0/false: report only, write nothing
"""
from __future__ import annotations
import os, sys, json

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dentpal import create_app, get_store, shutdown  # type: ignore


def dry_run_enabled() -> bool:
    return os.getenv('DRY_RUN', '').strip().lower() not in ('', '0', 'false', 'no')


def run(title: str, job, **kwargs) -> int:
    dry_run = dry_run_enabled()
    app = create_app()
    print(f"[INFO] {title} on {app.config['STORE_BACKEND']} store{' (dry run)' if dry_run else ''}")
    try:
        with app.app_context():
            summary = job(get_store(), dry_run=dry_run, **kwargs)
    except Exception as e:
        print(f"[ERROR] {title} failed: {e}")
        return 1
    finally:
        shutdown(app)
    print(f"[DONE] {'(dry run) ' if dry_run else ''}{json.dumps(summary, sort_keys=True)}")
    return 0
