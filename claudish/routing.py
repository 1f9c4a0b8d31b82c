"""Model string to provider route resolution.

Accepted forms, most explicit first:

* ``provider@model`` (``glm@glm-5``, ``openrouter@z-ai/glm-5``)
* ``prefix/model`` shortcuts (``g/gemini-2.5-pro``, ``oai/gpt-4o``)
* a bare model id, sent to the configured default provider

Vendor namespaces such as ``google/`` or ``openai/`` are OpenRouter model
ids, not shortcuts, and go to the default provider unchanged.
"""

from dataclasses import dataclass

import structlog

from claudish.config.settings import ProviderSettings
from claudish.core.errors import RouteNotFoundError


logger = structlog.get_logger(__name__)

LOCAL_PROVIDERS = frozenset({"ollama", "lmstudio", "vllm", "mlx"})
ANTHROPIC_COMPAT = frozenset({"minimax", "minimax-coding", "kimi", "kimi-coding", "zai"})

PROVIDERS = frozenset(
    {
        "openrouter",
        "gemini",
        "gemini-codeassist",
        "vertex",
        "openai",
        "glm",
        "litellm",
        "poe",
        "ollamacloud",
    }
    | LOCAL_PROVIDERS
    | ANTHROPIC_COMPAT
)

# Shortcut prefixes accepted as ``prefix/model``
PREFIXES: dict[str, str] = {
    "g": "gemini",
    "gemini": "gemini",
    "go": "gemini-codeassist",
    "oai": "openai",
    "or": "openrouter",
    "openrouter": "openrouter",
    "vertex": "vertex",
    "v": "vertex",
    "litellm": "litellm",
    "ll": "litellm",
    "ollama": "ollama",
    "lmstudio": "lmstudio",
    "vllm": "vllm",
    "mlx": "mlx",
    "poe": "poe",
    "mm": "minimax",
    "kimi": "kimi",
    "glm": "glm",
    "zai": "zai",
    "oc": "ollamacloud",
}

# Extra names accepted before ``@``
ALIASES: dict[str, str] = {
    **PREFIXES,
    "google": "gemini",
    "moonshot": "kimi",
}


@dataclass(frozen=True)
class Route:
    provider: str
    model: str
    requested: str
    fallback: bool = False

    @property
    def is_local(self) -> bool:
        return self.provider in LOCAL_PROVIDERS


def _canonical_provider(name: str) -> str | None:
    name = name.lower()
    if name in PROVIDERS:
        return name
    return ALIASES.get(name)


def parse_model(model: str, default_provider: str = "openrouter") -> Route:
    """Split a model string into provider and provider-native model id."""
    name = model.strip()
    if not name:
        raise RouteNotFoundError(model, "empty model name")

    head, at, tail = name.partition("@")
    if at and "/" not in head:
        provider = _canonical_provider(head)
        if provider is None:
            raise RouteNotFoundError(model, f"unknown provider '{head}'")
        if not tail:
            raise RouteNotFoundError(model, "missing model after '@'")
        return Route(provider=provider, model=tail, requested=model)

    prefix, slash, rest = name.partition("/")
    if slash:
        provider = PREFIXES.get(prefix.lower())
        if provider is not None:
            if not rest:
                raise RouteNotFoundError(model, f"missing model after '{prefix}/'")
            return Route(provider=provider, model=rest, requested=model)

    provider = _canonical_provider(default_provider)
    if provider is None:
        raise RouteNotFoundError(model, f"unknown default provider '{default_provider}'")
    return Route(provider=provider, model=name, requested=model)


def resolve_route(model: str, providers: ProviderSettings) -> Route:
    """Parse ``model`` and fall back when the chosen provider has no credentials.

    Direct Gemini falls back to Vertex (express key, then OAuth project)
    and then to OpenRouter's ``google/`` namespace.
    """
    route = parse_model(model, providers.default_provider)
    if route.provider == "gemini" and providers.gemini_api_key is None:
        if providers.vertex_api_key is not None or providers.vertex_project:
            route = Route("vertex", route.model, route.requested, fallback=True)
        elif providers.openrouter_api_key is not None:
            route = Route(
                "openrouter", f"google/{route.model}", route.requested, fallback=True
            )
        if route.fallback:
            logger.info(
                "route_fallback",
                requested=model,
                provider=route.provider,
                model=route.model,
            )
    return route
