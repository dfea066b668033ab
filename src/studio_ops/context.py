"""
StudioContext - everything a workflow run needs, passed down explicitly.

Lifecycle: built once at process start with `open_context()`, disposed on
exit (ledger engine closed, chat polling stopped).

Usage:
    with open_context() as ctx:
        BootstrapWorkflow.from_context(ctx).run(request)
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from .config import StudioConfig, load_config
from .integrations import IntegrationClients, create_integrations
from .llm import GenerationClient, create_generation_client
from .storage import RunLedger

logger = logging.getLogger(__name__)


@dataclass
class StudioContext:
    ledger: RunLedger
    integrations: IntegrationClients
    config: StudioConfig
    llm: Optional[GenerationClient] = None

    def close(self) -> None:
        self.integrations.telegram.stop_polling()
        self.ledger.close()


def build_context(config: Optional[StudioConfig] = None) -> StudioContext:
    config = config or load_config()
    return StudioContext(
        ledger=RunLedger(config.database_url),
        integrations=create_integrations(config),
        config=config,
        llm=create_generation_client(config),
    )


@contextmanager
def open_context(config: Optional[StudioConfig] = None) -> Iterator[StudioContext]:
    """Scoped acquisition of a StudioContext."""
    ctx = build_context(config)
    logger.debug(f"Context opened (env={ctx.config.environment}, db={ctx.config.database_url})")
    try:
        yield ctx
    finally:
        ctx.close()
        logger.debug("Context closed")
