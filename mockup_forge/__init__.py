"""mockup-forge: derive merchandise products from artwork webhooks."""

__version__ = "0.1.0"
