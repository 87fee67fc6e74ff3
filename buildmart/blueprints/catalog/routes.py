from flask import jsonify, request
from buildmart.blueprints.catalog import catalog_bp
from buildmart.extensions import cache
from buildmart.models.catalog import Product
from buildmart.services.inventory_service import InventoryService
from buildmart.utils.pagination import page_args, page_payload


@catalog_bp.route('/')
@cache.cached(timeout=60, query_string=True)
def index():
    """
    公开商品列表
    支持 q (名称搜索) / category / distributor_id 筛选
    """
    query = Product.query.filter_by(is_deleted=False, is_active=True)

    search_keyword = request.args.get('q', '').strip()
    if search_keyword:
        query = query.filter(Product.name.ilike(f'%{search_keyword}%'))
    category = request.args.get('category')
    if category:
        query = query.filter_by(category=category)
    distributor_id = request.args.get('distributor_id', type=int)
    if distributor_id:
        query = query.filter_by(distributor_id=distributor_id)

    page, limit = page_args()
    pagination = query.order_by(Product.name).paginate(page=page, per_page=limit, error_out=False)
    return jsonify(page_payload(pagination, 'products'))


@catalog_bp.route('/<int:product_id>')
def view(product_id):
    product = InventoryService.get_product(product_id)
    return jsonify({'success': True, 'product': product.to_dict()})
