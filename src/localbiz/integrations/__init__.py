"""External service adapters.

Each capability (places lookup, website generation, hosting deployment) has
a live client and a synthetic client behind one Protocol. The factories pick
the synthetic client when no credential is configured.

Imports are lazy so that importing the package does not pull in every
third-party SDK.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .generators import WebsiteGenerator, create_website_generator
    from .places import PlacesClient, create_places_client
    from .vercel import HostingDeployer, create_deployer

_LAZY_ATTRIBUTES = {
    "PlacesClient": ".places",
    "create_places_client": ".places",
    "WebsiteGenerator": ".generators",
    "create_website_generator": ".generators",
    "HostingDeployer": ".vercel",
    "create_deployer": ".vercel",
}


def __getattr__(name: str):
    """Module-level __getattr__ for lazy imports."""
    module_name = _LAZY_ATTRIBUTES.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    from importlib import import_module

    module = import_module(module_name, __name__)
    return getattr(module, name)


__all__ = list(_LAZY_ATTRIBUTES)
