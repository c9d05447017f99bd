"""
StoriesOf Transformer - convert the legacy storiesOf API to Component
Story Format.

For example::

    import { storiesOf } from '@storybook/react';
    import { Button } from './Button';
    storiesOf('Button', module).add('story', () => <Button label="The Button" />);

becomes::

    import { Button } from './Button';

    export default {
      title: 'Button',
    };

    export const story = () => <Button label="The Button" />;

Only files holding a single chain are rewritten. Files that already have
a default export, several chains, or a chain of an unsupported shape are
returned unchanged with a warning diagnostic.
"""

from typing import List, Optional

import structlog

from csfmod.config import TransformOptions
from csfmod.state.models import DiagnosticKind, SourceFile
from csfmod.transforms.base import (
    BaseTransformer,
    TransformResult,
    apply_edits,
    apply_transformer,
)
from csfmod.transforms.cleanup import (
    count_references,
    enclosing_import,
    import_removal_edit,
    prettify,
    remove_statement,
    strip_residual_roots,
)
from csfmod.transforms.locator import ChainFragment, LocatorResult, StoriesOfLocator
from csfmod.transforms.metadata import (
    Member,
    ModuleMetadata,
    StoryEntry,
    extract_metadata,
    extract_stories,
)
from csfmod.transforms.naming import IdentifierRegistry, story_name_from_export
from csfmod.transforms.printer import CodePrinter, Entry
from csfmod.transforms.syntax import JSParser, ParsedModule, collect_identifiers

logger = structlog.get_logger()


class StoriesOfTransformer(BaseTransformer):
    """
    Transformer rewriting one storiesOf chain into CSF exports.

    Handles:
    - ``storiesOf(...).add(...)`` expression statements
    - ``const stories = storiesOf(...).add(...)`` declarations
    - ``const stories = storiesOf(...)`` followed by ``stories.add(...)``
    - module and story level decorators and parameters
    """

    def __init__(
        self,
        path: str = "<unknown>",
        options: Optional[TransformOptions] = None,
        **overrides,
    ):
        super().__init__(path)
        if options is None:
            options = TransformOptions(**overrides)
        elif overrides:
            options = options.model_copy(update=overrides)
        self.options = options

    def get_transformer_name(self) -> str:
        return "StoriesOfToCSF"

    def transform(self, module: ParsedModule) -> str:
        original = module.source.decode("utf-8")
        located = StoriesOfLocator(
            module,
            self.options.legacy_function_name,
            self.options.legacy_package_prefix,
        ).locate()

        if not self._passes_guards(located):
            return original

        fragment = located.fragments[0]
        metadata = extract_metadata(fragment, located.exports.named)
        stories = extract_stories(fragment)

        registry = IdentifierRegistry(collect_identifiers(module.root))
        for story in stories:
            story.export_name = registry.claim_story(story.name)
            story.name_is_redundant = story_name_from_export(story.export_name) == story.name

        printer = CodePrinter(
            module,
            quote_style=self.options.quote_style,
            trailing_comma=self.options.trailing_comma,
            tab_width=self.options.tab_width,
        )
        replacement = printer.with_newlines(self._assemble(printer, metadata, stories))

        anchor = fragment.anchor
        edits = [(anchor.start_byte, anchor.end_byte, replacement)]
        edits.extend(
            remove_statement(module, statement, absorb_blank_lines=True)
            for statement in fragment.statements[:-1]
        )
        edits.extend(self._import_edits(module, located, fragment))

        source_code = apply_edits(module.source, edits)
        if self.options.strip_residual_roots:
            source_code = strip_residual_roots(
                source_code, located.legacy_name, parser=JSParser(module.grammar)
            )
        source_code = prettify(
            source_code,
            path=self.path,
            command=self.options.prettier_command,
            quote_style=self.options.quote_style,
            trailing_comma=self.options.trailing_comma,
            tab_width=self.options.tab_width,
            timeout=self.options.formatter_timeout,
        )

        self.record_change(
            f"Converted {len(stories)} '{metadata.title}' stories to named exports"
        )
        logger.info(
            "storiesof_converted",
            path=self.path,
            title=metadata.title,
            stories=len(stories),
        )
        return source_code

    def _passes_guards(self, located: LocatorResult) -> bool:
        """Check the preconditions for rewriting, warning on a veto."""
        roots = len(located.roots)
        if located.exports.has_default:
            if roots:
                self.warn(
                    DiagnosticKind.DEFAULT_EXPORT_CONFLICT,
                    f"ambiguous default export + chain found, skipping: '{self.path}'",
                    chain_count=roots,
                )
            return False
        if not roots:
            return False
        if roots > 1:
            self.warn(
                DiagnosticKind.MULTIPLE_CHAINS,
                f"multiple chains found, manual fix required: '{self.path}'",
                chain_count=roots,
            )
            return False
        if located.unsupported:
            self.warn(
                DiagnosticKind.UNSUPPORTED_SHAPE,
                f"unsupported chain shape, skipping: '{self.path}'",
                chain_count=roots,
            )
            return False
        return True

    def _import_edits(
        self,
        module: ParsedModule,
        located: LocatorResult,
        fragment: ChainFragment,
    ):
        if located.legacy_import is None:
            return []
        statement = enclosing_import(located.legacy_import)
        if count_references(module, located.legacy_name, [statement] + fragment.statements):
            return []
        self.record_change(f"Removed import of '{self.options.legacy_function_name}'")
        return [import_removal_edit(module, located.legacy_import)]

    def _assemble(
        self,
        printer: CodePrinter,
        metadata: ModuleMetadata,
        stories: List[StoryEntry],
    ) -> str:
        blocks = [self._default_export(printer, metadata)]
        blocks.extend(self._story_export(printer, story) for story in stories)
        return "\n\n".join(blocks)

    def _default_export(self, printer: CodePrinter, metadata: ModuleMetadata) -> str:
        entries = [printer.property("title", printer.string(metadata.title))]
        if metadata.decorators:
            items = [printer.node(decorator, 2) for decorator in metadata.decorators]
            entries.append(printer.property("decorators", printer.array(items, 1)))
        if metadata.parameters:
            members = [_member(printer, member, 2) for member in metadata.parameters]
            entries.append(printer.property("parameters", printer.object(members, 1)))
        if metadata.exclude_stories:
            names = [printer.string(name) for name in metadata.exclude_stories]
            entries.append(printer.property("excludeStories", printer.array(names, 1)))

        comments = [printer.module.text(comment) for comment in metadata.comments]
        return printer.statement(f"export default {printer.object(entries, 0)}", comments)

    def _story_export(self, printer: CodePrinter, story: StoryEntry) -> str:
        comments = [printer.module.text(comment) for comment in story.comments]
        render = printer.node(story.render, 0)
        lines = [printer.statement(f"export const {story.export_name} = {render}", comments)]

        annotations = []
        if self.options.preserve_story_names and not story.name_is_redundant:
            annotations.append(printer.property("name", printer.string(story.name)))
        if story.parameters is not None:
            if story.parameters.members is not None:
                members = [_member(printer, member, 2) for member in story.parameters.members]
                value = printer.object(members, 1)
            else:
                value = printer.node(story.parameters.expression, 1)
            annotations.append(printer.property("parameters", value))
        if story.decorators is not None:
            annotations.append(printer.property("decorators", printer.node(story.decorators, 1)))

        if annotations:
            target = f"{story.export_name}.{self.options.story_annotation_property}"
            lines.append(printer.statement(f"{target} = {printer.object(annotations, 0)}"))
        return "\n".join(lines)


def _member(printer: CodePrinter, member: Member, level: int) -> Entry:
    text = printer.node(member.node, level)
    if member.spread:
        text = f"...{text}"
    return Entry(text=text, is_comment=member.is_comment)


def convert_storiesof(
    source_code: str,
    path: str = "<unknown>",
    options: Optional[TransformOptions] = None,
    parser: Optional[JSParser] = None,
    **overrides,
) -> TransformResult:
    """Convert a storiesOf module to Component Story Format."""
    transformer = StoriesOfTransformer(path=path, options=options, **overrides)
    parser = parser or JSParser(transformer.options.grammar)
    return apply_transformer(source_code, transformer, parser)


def transform_file(
    file: SourceFile,
    api: Optional[JSParser] = None,
    options: Optional[TransformOptions] = None,
    diagnostics: Optional[list] = None,
) -> str:
    """
    Transform one ``{path, source}`` descriptor and return the new source.

    The original source is returned when a guard vetoes the rewrite;
    the warnings raised are appended to ``diagnostics`` when given.

    Raises:
        ParseFailure: If the source does not parse
        EmitFailure: If the rewritten source does not parse
    """
    result = convert_storiesof(file.source, path=file.path, options=options, parser=api)
    if diagnostics is not None:
        diagnostics.extend(result.diagnostics)
    return result.modified_code
