"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .access import GrantPrompter, GrantStore, PendingPromptQueue, ResourceAccessBroker
from .api.router import api_router
from .api.ws import ConnectionManager, snapshot_message
from .config import Settings, settings as default_settings
from .credentials import CredentialStore, InMemoryCredentialStore, KeyringCredentialStore
from .defaults import DefaultsStore
from .preferences import PreferencesStore
from .services.aggregator import ClientFactory, ToolRunner, VMAggregator

# Configure logging for our modules
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(name)s: %(message)s")
logging.getLogger("vmbar").setLevel(logging.DEBUG)

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    credentials: Optional[CredentialStore] = None,
    prompter: Optional[GrantPrompter] = None,
    client_factory: Optional[ClientFactory] = None,
    tool_runner: Optional[ToolRunner] = None,
) -> FastAPI:
    settings = settings or default_settings

    defaults = DefaultsStore(settings.defaults_file)
    if settings.testing:
        logger.info("Testing mode: resetting defaults and using in-memory credentials")
        defaults.reset()
        credentials = credentials or InMemoryCredentialStore()
    credentials = credentials or KeyringCredentialStore(settings.keyring_service)

    prompts = prompter if prompter is not None else PendingPromptQueue(
        timeout=settings.prompt_timeout, tool_start_dir=settings.tool_search_start
    )
    broker = ResourceAccessBroker(GrantStore(defaults), prompts)
    preferences = PreferencesStore(defaults, settings.vmrest_host, settings.vmrest_port)
    aggregator = VMAggregator(
        credentials=credentials,
        broker=broker,
        preferences=preferences,
        client_factory=client_factory,
        tool_runner=tool_runner,
        settings=settings,
    )
    connections = ConnectionManager()

    async def broadcast_snapshot(snapshot):
        await connections.broadcast(snapshot_message(snapshot))

    async def broadcast_prompts(pending):
        await connections.broadcast({
            "type": "prompts",
            "prompts": [p.model_dump(mode="json") for p in pending],
        })

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        aggregator.add_listener(broadcast_snapshot)
        if isinstance(prompts, PendingPromptQueue):
            prompts.add_listener(broadcast_prompts)
        yield
        await aggregator.close()

    app = FastAPI(
        title="vmbar",
        version="0.1.0",
        description="VMware Fusion VM status service",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.defaults = defaults
    app.state.credentials = credentials
    app.state.prompts = prompts
    app.state.broker = broker
    app.state.preferences = preferences
    app.state.aggregator = aggregator
    app.state.connections = connections

    app.include_router(api_router, prefix="/api")
    return app
