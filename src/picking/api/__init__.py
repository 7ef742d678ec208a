"""Picking domain API package."""

from picking.api.routes import picking_router

__all__ = ["picking_router"]
