"""
ConfigDict for refmodel - per-model configuration.

Example:
    from refmodel import Model, ConfigDict

    class User(Model):
        model_config = ConfigDict(
            validate_assignment=True,
            rules={"is_handle": lambda v: v.startswith("@")},
        )
        __schema__ = {"name": "string", "handle": "is_handle"}
"""

from typing import Any, Callable, Dict, Optional, TypedDict

from .reactive import CollectionRef, Ref


class ConfigDict(TypedDict, total=False):
    """Configuration dictionary for Model."""

    validate_assignment: bool
    """If True, assigning a schema attribute runs set_value. Default: False."""

    frozen: bool
    """If True, instances cannot be modified after construction. Default: False."""

    rules: Optional[Dict[str, Callable[..., bool]]]
    """Model-local named rules, looked up before the global registry. Default: None."""

    reactive_factory: Callable[[Any], Any]
    """Wraps a single instance for create(). Default: Ref."""

    collection_factory: Callable[[Any], Any]
    """Wraps a list of instances for create_collection(). Default: CollectionRef."""


# Default configuration values
CONFIG_DEFAULTS: ConfigDict = {
    'validate_assignment': False,
    'frozen': False,
    'rules': None,
    'reactive_factory': Ref,
    'collection_factory': CollectionRef,
}


def get_config_value(config: Optional[ConfigDict], key: str, default: Any = None) -> Any:
    """Get a configuration value with fallback to defaults."""
    if config is None:
        return CONFIG_DEFAULTS.get(key, default)
    return config.get(key, CONFIG_DEFAULTS.get(key, default))


__all__ = ["ConfigDict", "CONFIG_DEFAULTS", "get_config_value"]
