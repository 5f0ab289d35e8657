"""Registry of request sources.

Enumerator classes register themselves under their enumerator_type so the
CLI can pick a source by name and list the available ones in its help.
"""

from typing import Any, Dict, Type

from .base import BaseEnumerator
from ..errors import ConfigurationError


_ENUMERATOR_REGISTRY: Dict[str, Type[BaseEnumerator]] = {}


def register_enumerator(enumerator_class: Type[BaseEnumerator]) -> Type[BaseEnumerator]:
    """Class decorator adding a request source to the registry.

    Raises:
        ValueError: If the class keeps the base type name or another class
            already claimed its type name
    """
    source_type = enumerator_class.enumerator_type
    if source_type == BaseEnumerator.enumerator_type:
        raise ValueError(f"{enumerator_class.__name__} must set enumerator_type")

    registered = _ENUMERATOR_REGISTRY.get(source_type)
    if registered is not None and registered is not enumerator_class:
        raise ValueError(f"Request source {source_type!r} is already provided by {registered.__name__}")

    _ENUMERATOR_REGISTRY[source_type] = enumerator_class
    return enumerator_class


def create_enumerator(enumerator_type: str, config: Dict[str, Any]) -> BaseEnumerator:
    """Instantiate the request source registered as enumerator_type.

    Raises:
        ConfigurationError: If no source is registered under that name
    """
    enumerator_class = _ENUMERATOR_REGISTRY.get(enumerator_type)
    if enumerator_class is None:
        available = ", ".join(sorted(_ENUMERATOR_REGISTRY))
        raise ConfigurationError(f"Unknown request source {enumerator_type!r}; available: {available}")

    return enumerator_class(config)


def describe_enumerators() -> Dict[str, str]:
    """Map each registered source type to its one-line description, sorted by type."""
    return {name: _ENUMERATOR_REGISTRY[name].description for name in sorted(_ENUMERATOR_REGISTRY)}
