"""Transforms module - tree-sitter based codemods for story modules."""

from csfmod.transforms.base import (
    BaseTransformer,
    EmitFailure,
    ParseFailure,
    TransformError,
    TransformResult,
    apply_transformer,
    parse_module,
)
from csfmod.transforms.cleanup import (
    RemoveLegacyImportTransformer,
    remove_legacy_import,
)
from csfmod.transforms.naming import (
    IdentifierRegistry,
    sanitize_name,
    story_name_from_export,
)
from csfmod.transforms.storiesof import (
    StoriesOfTransformer,
    convert_storiesof,
    transform_file,
)
from csfmod.transforms.syntax import JSParser

__all__ = [
    # Base
    "BaseTransformer",
    "EmitFailure",
    "ParseFailure",
    "TransformError",
    "TransformResult",
    "apply_transformer",
    "parse_module",
    "JSParser",
    # Naming
    "IdentifierRegistry",
    "sanitize_name",
    "story_name_from_export",
    # storiesOf -> CSF
    "StoriesOfTransformer",
    "convert_storiesof",
    "transform_file",
    # Cleanup
    "RemoveLegacyImportTransformer",
    "remove_legacy_import",
]


# Transform registry for dynamic selection
TRANSFORM_REGISTRY = {
    "storiesof_to_csf": convert_storiesof,
    "remove_legacy_import": remove_legacy_import,
}


def get_transform(name: str):
    """Get a transform function by name."""
    return TRANSFORM_REGISTRY.get(name)


def list_transforms():
    """List available transform names."""
    return list(TRANSFORM_REGISTRY.keys())


def apply_transform_by_name(name: str, source_code: str, **kwargs) -> TransformResult:
    """Apply a transform by name."""
    transform_fn = get_transform(name)
    if not transform_fn:
        raise ValueError(f"Unknown transform: {name}")
    return transform_fn(source_code, **kwargs)
