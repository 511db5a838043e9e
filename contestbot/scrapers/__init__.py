import os
import importlib
import pkgutil
import logging

logger = logging.getLogger(__name__)

_registry = {}

_SUPPORT_MODULES = ('base', 'common', 'rate_limiter', 'platform_detect', '__init__')


def register_source(cls):
    """Decorator to register a contest source adapter."""
    _registry[cls.SOURCE_NAME] = cls
    logger.info(f"Registered source: {cls.SOURCE_NAME} ({cls.SOURCE_DISPLAY})")
    return cls


def get_source_class(source_name: str):
    return _registry.get(source_name)


def get_all_sources():
    return dict(_registry)


def get_source_instance(source_name: str, **kwargs):
    cls = _registry.get(source_name)
    if cls is None:
        raise ValueError(f"Unknown source: {source_name}")
    return cls(**kwargs)


def get_sources_for_platform(platform):
    """Source classes able to serve *platform*, in cascade order."""
    classes = [cls for cls in _registry.values() if platform in cls.PLATFORMS]
    return sorted(classes, key=lambda cls: (cls.PRIORITY.get(platform, 100), cls.SOURCE_NAME))


def _auto_discover():
    package_dir = os.path.dirname(__file__)
    for _, module_name, _ in pkgutil.iter_modules([package_dir]):
        if module_name not in _SUPPORT_MODULES:
            try:
                importlib.import_module(f'.{module_name}', package=__package__)
            except Exception as e:
                logger.error(f"Failed to load source module {module_name}: {e}")


_auto_discover()
