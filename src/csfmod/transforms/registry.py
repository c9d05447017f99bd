"""
Transformer Registry - Central registry for all source transformers.

Allows looking up transformers by name and creating them with configuration.
"""

from typing import Dict, List, Optional, Type

import structlog

from csfmod.transforms.base import BaseTransformer, TransformResult, apply_transformer
from csfmod.transforms.cleanup import RemoveLegacyImportTransformer
from csfmod.transforms.storiesof import StoriesOfTransformer
from csfmod.transforms.syntax import JSParser

logger = structlog.get_logger()


# Registry of available transformers
TRANSFORMER_REGISTRY: Dict[str, Type[BaseTransformer]] = {
    "storiesof_to_csf": StoriesOfTransformer,
    "remove_legacy_import": RemoveLegacyImportTransformer,
}


def get_transformer(
    name: str,
    **kwargs,
) -> BaseTransformer:
    """
    Get a transformer instance by name.

    Args:
        name: Name of the transformer (from registry)
        **kwargs: Arguments to pass to the transformer constructor

    Returns:
        Configured transformer instance

    Raises:
        ValueError: If transformer name not found
    """
    if name not in TRANSFORMER_REGISTRY:
        available = ", ".join(TRANSFORMER_REGISTRY.keys())
        raise ValueError(f"Unknown transformer: {name}. Available: {available}")

    transformer_class = TRANSFORMER_REGISTRY[name]
    return transformer_class(**kwargs)


def apply_transform(
    source_code: str,
    transformer_name: str,
    parser: Optional[JSParser] = None,
    **kwargs,
) -> TransformResult:
    """
    Convenience function to apply a named transformer to source code.

    Args:
        source_code: JavaScript/TypeScript source code to transform
        transformer_name: Name of the transformer (from registry)
        parser: Parser to use, grammar picked from the path by default
        **kwargs: Arguments for the transformer, ``path`` included

    Returns:
        TransformResult with original and modified code
    """
    transformer = get_transformer(transformer_name, **kwargs)
    return apply_transformer(source_code, transformer, parser)


def list_available_transformers() -> List[str]:
    """Get a list of all available transformer names."""
    return list(TRANSFORMER_REGISTRY.keys())


def register_transformer(name: str, transformer_class: Type[BaseTransformer]):
    """
    Register a new transformer in the registry.

    Args:
        name: Name to register the transformer under
        transformer_class: The transformer class
    """
    TRANSFORMER_REGISTRY[name] = transformer_class
    logger.info("transformer_registered", name=name)
