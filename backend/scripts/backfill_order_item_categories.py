#!/usr/bin/env python
"""Fill Order.items[].category / .subcategory from the referenced Product documents.

Usage:
    python backend/scripts/backfill_order_item_categories.py
    DRY_RUN=1 python backend/scripts/backfill_order_item_categories.py   # only log changes
"""
import sys
from _runner import run
from dentpal.services.backfills import backfill_order_item_categories

if __name__ == '__main__':
    sys.exit(run('Backfill order item categories', backfill_order_item_categories))
