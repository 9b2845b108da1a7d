"""ASGI serving: request handling, navigation client, dev server."""
