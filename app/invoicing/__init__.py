"""
Invoice Ingestion Backend Application.

A FastAPI service that stores uploaded invoice PDFs, extracts structured
fields with an LLM (OpenAI), and tracks review and approval with an audit trail.
"""

__version__ = "1.0.0"
