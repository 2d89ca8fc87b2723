"""Request and response helpers for the JSON API."""
