#!/usr/bin/env python
"""Rebuild Seller/{sellerId}/reports/{orderId} from the Order and legacy orders collections.

Usage:
    python backend/scripts/sync_orders_to_reports.py
    DRY_RUN=1 python backend/scripts/sync_orders_to_reports.py
"""
import sys
from _runner import run
from dentpal.services.backfills import sync_orders_to_reports

if __name__ == '__main__':
    sys.exit(run('Sync orders to seller reports', sync_orders_to_reports))
