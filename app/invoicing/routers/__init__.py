"""
Routers package for FastAPI endpoints.

- invoices: upload, history, review and approval
"""

from . import invoices

__all__ = ["invoices"]
