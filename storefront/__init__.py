"""Client-side core of the retailer storefront: cart reconciliation and order-status workflow."""

from storefront.version import VERSION

__version__ = VERSION
