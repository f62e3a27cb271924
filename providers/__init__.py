from typing import Callable, Dict

_REGISTRY: Dict[str, Callable] = {}

def provider_name(name: str):
    def deco(fn):
        _REGISTRY[name] = fn
        return fn
    return deco

def get_provider(name: str) -> Callable:
    # provider modules register themselves on import
    from . import phylum, veracode  # noqa: F401
    return _REGISTRY[name]
