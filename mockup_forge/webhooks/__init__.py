"""Webhook intake: product webhooks from the store.

Each webhook is signature-verified, filtered to artworks and queued as one
durable job. No catalog work happens on the request path.
"""
