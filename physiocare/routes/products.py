from flask import Blueprint, current_app, request

from ..schemas import product_fields, product_to_dict
from ..services.store import get_store
from ..utils.responses import ok

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.route("", methods=["GET"])
def list_products():
    """
    List products ordered by name
    ---
    tags:
      - Products
    responses:
      200:
        description: Products with current stock levels
    """
    return ok([product_to_dict(p) for p in get_store().list_products()])


@products_bp.route("", methods=["POST"])
def create_product():
    """
    Create a product
    ---
    tags:
      - Products
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [name]
          properties:
            name:
              type: string
            sku:
              type: string
            category:
              type: string
            unit_price:
              type: number
            stock_level:
              type: integer
    responses:
      201:
        description: Product created
      400:
        description: Missing name or duplicate SKU
    """
    fields = product_fields(request.get_json(silent=True))
    store = get_store()
    product = store.add_product(**fields)
    store.commit()
    current_app.logger.info(f"Created product {product.id} ({product.sku})")
    return ok(product_to_dict(product), message="Product created!", status=201)


@products_bp.route("/<int:product_id>", methods=["GET"])
def get_product(product_id):
    return ok(product_to_dict(get_store().get_product(product_id)))


@products_bp.route("/<int:product_id>", methods=["PATCH"])
def update_product(product_id):
    fields = product_fields(request.get_json(silent=True), partial=True)
    store = get_store()
    product = store.update_product(product_id, fields)
    store.commit()
    return ok(product_to_dict(product), message="Product updated successfully!")


@products_bp.route("/<int:product_id>", methods=["DELETE"])
def delete_product(product_id):
    store = get_store()
    store.delete_product(product_id)
    store.commit()
    return ok(message="Product deleted successfully.")
