"""
Data layer: Flask-SQLAlchemy models for the procurement workflow.
"""


def register_models():
    """Import every model module so SQLAlchemy knows all tables before create_all()"""
    from procurement.data.core.user_info.user import User, user_sites  # noqa: F401
    from procurement.data.core.site import Site  # noqa: F401
    from procurement.data.core.vendor import Vendor  # noqa: F401
    from procurement.data.core.inventory_item import InventoryItem, inventory_item_vendors  # noqa: F401
    from procurement.data.core.notification import Notification  # noqa: F401
    from procurement.data.requests.request_item import RequestItem  # noqa: F401
    from procurement.data.requests.request_note import RequestNote  # noqa: F401
    from procurement.data.purchasing.cost_comparison import CostComparison  # noqa: F401
    from procurement.data.purchasing.vendor_quote import VendorQuote  # noqa: F401
    from procurement.data.purchasing.purchase_order_header import PurchaseOrderHeader  # noqa: F401
    from procurement.data.purchasing.purchase_order_line import PurchaseOrderLine  # noqa: F401
    from procurement.data.purchasing.delivery import Delivery  # noqa: F401
