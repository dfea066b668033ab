"""
API Gateway for Studio Ops.

Provides HTTP endpoints for:
- Webhook ingestion (GitHub, WhatsApp, ClickUp)
- Workflow triggers
- Health and run history
"""

from .gateway import APIGateway, create_app, serve

__all__ = ["create_app", "APIGateway", "serve"]
