from __future__ import annotations
from flask import Blueprint, request
from dentpal import get_store
from dentpal.decorators.auth import require_any_permission, require_permissions
from dentpal.decorators.audit import audit_log
from dentpal.services import categories as cat_svc

cat_bp = Blueprint('categories', __name__)

CATALOG_READ = ('categories', 'add-product', 'inventory', 'product-qc')


@cat_bp.get('')
@require_any_permission(*CATALOG_READ)
def list_categories():
    return {'data': cat_svc.list_categories(get_store())}


@cat_bp.post('')
@require_permissions('categories')
@audit_log('CATEGORY.CREATE', entity='Category', entity_id_key='id', meta_keys=['name'])
def create_category():
    data = request.json or {}
    return cat_svc.add_category(get_store(), data.get('name')), 201


@cat_bp.put('/<category_id>')
@require_permissions('categories')
@audit_log('CATEGORY.RENAME', entity='Category', entity_id_arg='category_id', meta_keys=['name'])
def rename_category(category_id: str):
    data = request.json or {}
    return cat_svc.update_category(get_store(), category_id, data.get('name'))


@cat_bp.delete('/<category_id>')
@require_permissions('categories')
@audit_log('CATEGORY.DELETE', entity='Category', entity_id_arg='category_id', meta_keys=['subcategoriesDeleted'])
def delete_category(category_id: str):
    removed = cat_svc.delete_category(get_store(), category_id)
    return {'id': category_id, 'deleted': True, 'subcategoriesDeleted': removed}


@cat_bp.get('/<category_id>/subcategories')
@require_any_permission(*CATALOG_READ)
def list_subcategories(category_id: str):
    return {'data': cat_svc.list_subcategories(get_store(), category_id)}


@cat_bp.post('/<category_id>/subcategories')
@require_permissions('categories')
@audit_log('SUBCATEGORY.CREATE', entity='SubCategory', entity_id_key='id', meta_keys=['name'])
def create_subcategory(category_id: str):
    data = request.json or {}
    return cat_svc.add_subcategory(get_store(), category_id, data.get('name')), 201


@cat_bp.put('/<category_id>/subcategories/<sub_id>')
@require_permissions('categories')
@audit_log('SUBCATEGORY.RENAME', entity='SubCategory', entity_id_arg='sub_id', meta_keys=['name'])
def rename_subcategory(category_id: str, sub_id: str):
    data = request.json or {}
    return cat_svc.update_subcategory(get_store(), category_id, sub_id, data.get('name'))


@cat_bp.delete('/<category_id>/subcategories/<sub_id>')
@require_permissions('categories')
@audit_log('SUBCATEGORY.DELETE', entity='SubCategory', entity_id_arg='sub_id')
def delete_subcategory(category_id: str, sub_id: str):
    cat_svc.delete_subcategory(get_store(), category_id, sub_id)
    return {'id': sub_id, 'deleted': True}
