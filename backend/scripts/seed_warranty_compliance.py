#!/usr/bin/env python
"""Seed the WarrantyandCompliance option documents (merge, safe to re-run).

Usage:
    python backend/scripts/seed_warranty_compliance.py
"""
import sys
from _runner import run
from dentpal.services.backfills import seed_warranty_compliance

if __name__ == '__main__':
    sys.exit(run('Seed warranty & compliance options', seed_warranty_compliance))
