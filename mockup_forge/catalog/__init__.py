"""Catalog access: the derivative table and the Shopify gateway."""
