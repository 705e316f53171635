"""Upstream forwarding and response mapping."""
