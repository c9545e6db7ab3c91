from __future__ import annotations
from flask import Blueprint
from dentpal import get_store
from dentpal.decorators.auth import require_any_permission, require_permissions
from dentpal.decorators.audit import audit_log
from dentpal.services import compliance as compliance_svc

compliance_bp = Blueprint('compliance', __name__)


@compliance_bp.get('/options')
@require_any_permission('warranty', 'add-product')
def get_options():
    return compliance_svc.get_options(get_store())


@compliance_bp.post('/seed')
@require_permissions('warranty')
@audit_log('COMPLIANCE.SEED', entity='WarrantyandCompliance', meta_keys=['seeded'])
def seed():
    return {'seeded': compliance_svc.seed_defaults(get_store())}
