from __future__ import annotations
from flask import Blueprint, request, abort
from dentpal import get_store
from dentpal.decorators.auth import require_any_permission, require_permissions
from dentpal.decorators.audit import audit_log
from dentpal.services import warranty as warranty_svc

warranty_bp = Blueprint('warranty', __name__)

WARRANTY_READ = ('warranty', 'add-product')
RULE_AUDIT_META = ['warrantyType', 'warrantyDuration']


def _rule_or_404(rule):
    if rule is None:
        abort(404, description='No warranty rule')
    return rule


@warranty_bp.get('')
@require_any_permission(*WARRANTY_READ)
def list_rules():
    return {'data': warranty_svc.list_all_rules(get_store())}


@warranty_bp.get('/<category_id>')
@require_any_permission(*WARRANTY_READ)
def get_category_rule(category_id: str):
    return _rule_or_404(warranty_svc.get_category_rule(get_store(), category_id))


@warranty_bp.put('/<category_id>')
@require_permissions('warranty')
@audit_log('WARRANTY.CATEGORY.SAVE', entity='Warranty', entity_id_arg='category_id', meta_keys=RULE_AUDIT_META)
def save_category_rule(category_id: str):
    data = request.json or {}
    return warranty_svc.save_category_rule(
        get_store(), category_id,
        warranty_type=data.get('warrantyType'),
        warranty_duration=data.get('warrantyDuration'),
        category_name=data.get('categoryName'),
    )


@warranty_bp.delete('/<category_id>')
@require_permissions('warranty')
@audit_log('WARRANTY.CATEGORY.DELETE', entity='Warranty', entity_id_arg='category_id')
def delete_category_rule(category_id: str):
    warranty_svc.delete_category_rule(get_store(), category_id)
    return {'categoryId': category_id, 'deleted': True}


@warranty_bp.get('/<category_id>/subcategories/<sub_id>')
@require_any_permission(*WARRANTY_READ)
def get_subcategory_rule(category_id: str, sub_id: str):
    return _rule_or_404(warranty_svc.get_subcategory_rule(get_store(), category_id, sub_id))


@warranty_bp.put('/<category_id>/subcategories/<sub_id>')
@require_permissions('warranty')
@audit_log('WARRANTY.SUBCATEGORY.SAVE', entity='Warranty', entity_id_arg='sub_id', meta_keys=RULE_AUDIT_META)
def save_subcategory_rule(category_id: str, sub_id: str):
    data = request.json or {}
    return warranty_svc.save_subcategory_rule(
        get_store(), category_id, sub_id,
        warranty_type=data.get('warrantyType'),
        warranty_duration=data.get('warrantyDuration'),
        subcategory_name=data.get('subCategoryName'),
    )


@warranty_bp.delete('/<category_id>/subcategories/<sub_id>')
@require_permissions('warranty')
@audit_log('WARRANTY.SUBCATEGORY.DELETE', entity='Warranty', entity_id_arg='sub_id')
def delete_subcategory_rule(category_id: str, sub_id: str):
    warranty_svc.delete_subcategory_rule(get_store(), category_id, sub_id)
    return {'categoryId': category_id, 'subcategoryId': sub_id, 'deleted': True}
