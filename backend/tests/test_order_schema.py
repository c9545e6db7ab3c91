from dentpal.schema.orders import apply_product_details, items_brief, normalize_order, to_millis


def test_normalizes_legacy_field_names():
    order = normalize_order('o-1', {
        'sellerId': 's-1',
        'createdAt': '2024-06-01T10:00:00Z',
        'customerName': 'Ana',
        'trackingNumber': 'TRK-9',
        'paymentMethod': 'gcash',
        'total': 'ignored',
        'paymentInfo': {'amount': 450, 'status': 'paid', 'currency': 'PHP', 'paidAt': 1717236000000},
        'items': [{'name': 'Floss', 'quantity': '3', 'price': '50', 'productID': 99, 'imageUrl': 'f.png'}],
    })
    assert order['sellerIds'] == ['s-1']
    assert order['timestamp'] == '2024-06-01'
    assert order['customer'] == {'name': 'Ana', 'contact': ''}
    assert order['barcode'] == 'TRK-9'
    assert order['total'] == 450
    assert order['paymentType'] == 'gcash'
    assert order['status'] == 'to-ship'
    assert order['imageUrl'] == 'f.png'
    assert order['items'][0]['productId'] == '99'
    assert order['items'][0]['quantity'] == 3
    assert order['orderCount'] == 1


def test_defaults_for_sparse_documents():
    order = normalize_order('o-2', {'items': 'garbage'}, now_ms=0)
    assert order['createdAtMs'] == 0
    assert order['items'] == []
    assert order['barcode'] == 'o-2'
    assert order['customer']['name'] == 'Unknown Customer'
    assert order['currency'] == 'PHP'
    assert order['total'] is None
    assert order['status'] == 'pending'


def test_gross_margin_needs_total_and_cogs():
    order = normalize_order('o-3', {'summary': {'total': 500, 'cogs': 320}, 'createdAt': 1})
    assert order['grossMargin'] == 180
    assert normalize_order('o-4', {'summary': {'total': 500}, 'createdAt': 1})['grossMargin'] is None


def test_items_brief():
    assert items_brief([]) == ''
    assert items_brief([{'productName': 'Mirror', 'quantity': 2}]) == 'Mirror x 2'
    assert items_brief([{'name': 'Mirror', 'quantity': 2}, {}, {}]) == 'Mirror x 2 + 2 more'


def test_product_details_fill_category_from_id():
    item = {'productId': 'p-1', 'category': None, 'categoryId': None}
    out = apply_product_details(item, {'categoryID': 'z5BRrsDIy92XEK1PzdM4', 'cost': '12.5'})
    assert out['category'] == 'Equipment'
    assert out['categoryId'] == 'z5BRrsDIy92XEK1PzdM4'
    assert out['cost'] == 12.5
    assert apply_product_details(item, None) is item


def test_to_millis_inputs():
    assert to_millis(None) is None
    assert to_millis(True) is None
    assert to_millis(1700000000000) == 1700000000000
    assert to_millis('2024-06-01T00:00:00Z') == 1717200000000
    assert to_millis('june') is None
