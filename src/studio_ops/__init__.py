"""
Studio Ops — saga workflows and decision units for a small software studio.

Subpackages:
- storage: Run Ledger (workflow runs, domain events, studio entities)
- agents: Decision Units (generative attempt + rule-based fallback)
- orchestrator: Saga engine and the four workflows
- integrations: GitHub, Calendar, ClickUp, Telegram, WhatsApp clients
- api_gateway: FastAPI HTTP surface
"""

__version__ = "0.1.0"
