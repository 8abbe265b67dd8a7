"""Routers mounted by the application factory."""
