"""
data-agent — prompt-to-visualization agent for an orchestration host.

WebSocket session + intent resolver that turns natural-language prompts
into renderable data artifacts.
"""

from data_agent.agent import DataAgent
from data_agent.catalog import Catalog, CatalogSnapshot
from data_agent.config import Settings, get_settings
from data_agent.errors import (
    AuthError,
    CapabilityError,
    ConnectionError,
    DataAgentError,
    RequestTimeoutError,
    SessionError,
    ValidationError,
)
from data_agent.models.artifact import Artifact, VisualizationType
from data_agent.models.envelope import Envelope
from data_agent.resolver.pipeline import IntentResolver
from data_agent.safety import ensure_query_limit, validate_message_size

__version__ = "0.1.0"
__all__ = [
    "DataAgent",
    "Catalog",
    "CatalogSnapshot",
    "Settings",
    "get_settings",
    "DataAgentError",
    "AuthError",
    "CapabilityError",
    "ConnectionError",
    "RequestTimeoutError",
    "SessionError",
    "ValidationError",
    "Artifact",
    "VisualizationType",
    "Envelope",
    "IntentResolver",
    "ensure_query_limit",
    "validate_message_size",
]
