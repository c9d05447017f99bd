"""
Metadata extraction - decorators and parameters of a storiesOf chain.

Module-level metadata comes from ``.addDecorator`` and ``.addParameters``
links; story-level metadata from the optional third argument of
``.add``. Links are visited in source order, so accumulated lists keep
the order a reader sees in the chain.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from tree_sitter import Node

from csfmod.transforms.locator import ChainFragment, ChainLink
from csfmod.transforms.syntax import property_key, string_value

DECORATORS_KEY = "decorators"


@dataclass
class Member:
    """A member of a generated object literal, copied from the source."""

    node: Node
    key: Optional[str] = None
    spread: bool = False

    @property
    def is_comment(self) -> bool:
        return self.node.type == "comment"


@dataclass
class StoryParameters:
    """
    Per-story parameters: either rebuilt from ``members`` or, when the
    source needed no change, the original ``expression`` as written.
    """

    members: Optional[List[Member]] = None
    expression: Optional[Node] = None


@dataclass
class StoryEntry:
    """One story derived from an ``.add(name, render, params?)`` link."""

    name: str
    render: Node
    parameters: Optional[StoryParameters] = None
    decorators: Optional[Node] = None
    comments: List[Node] = field(default_factory=list)
    export_name: str = ""
    name_is_redundant: bool = True


@dataclass
class ModuleMetadata:
    """Metadata shared by all stories of a module."""

    title: str
    decorators: List[Node] = field(default_factory=list)
    parameters: List[Member] = field(default_factory=list)
    exclude_stories: List[str] = field(default_factory=list)
    comments: List[Node] = field(default_factory=list)


def object_members(node: Node) -> List[Member]:
    return [Member(node=child, key=property_key(child)) for child in node.named_children]


def merge_parameters(links: List[ChainLink]) -> List[Member]:
    """
    Shallow union of all ``.addParameters`` arguments.

    Later members follow earlier ones. A repeated key takes the place of
    the earlier member, keeping its position, unless a spread sits
    between them; then the earlier member is dropped and the later one
    appended so it still overrides the spread. A non-literal argument is
    merged as a spread of itself.
    """
    merged: List[Member] = []
    for link in links:
        argument = link.arguments[0]
        if argument.type == "object":
            members = object_members(argument)
        else:
            members = [Member(node=argument, spread=True)]
        for member in members:
            index = _key_index(merged, member.key)
            if index is not None:
                if not any(existing.spread for existing in merged[index + 1:]):
                    merged[index] = member
                    continue
                del merged[index]
            merged.append(member)
    return merged


def _key_index(members: List[Member], key: Optional[str]) -> Optional[int]:
    if key is None:
        return None
    return next((i for i, member in enumerate(members) if member.key == key), None)


def collect_decorators(links: List[ChainLink]) -> List[Node]:
    return [link.arguments[0] for link in links]


def split_story_parameters(argument: Node):
    """
    Separate a story's ``decorators`` from its other parameters.

    Returns:
        (StoryParameters or None, decorators expression or None)
    """
    if argument.type != "object":
        return StoryParameters(expression=argument), None

    members = object_members(argument)
    decorators = [
        member
        for member in members
        if member.key == DECORATORS_KEY
        and member.node.type in ("pair", "shorthand_property_identifier")
    ]
    if not decorators:
        return StoryParameters(expression=argument), None

    decorator_node = decorators[-1].node
    if decorator_node.type == "pair":
        decorator_node = decorator_node.child_by_field_name("value")

    remaining = [member for member in members if member not in decorators]
    if not any(not member.is_comment for member in remaining):
        return None, decorator_node
    return StoryParameters(members=remaining), decorator_node


def extract_stories(fragment: ChainFragment) -> List[StoryEntry]:
    """Story entries in ``.add`` order."""
    stories = []
    for link in fragment.adds:
        name_node, render = link.arguments[0], link.arguments[1]
        entry = StoryEntry(
            name=string_value(name_node),
            render=render,
            comments=list(link.comments),
        )
        if len(link.arguments) > 2:
            entry.parameters, entry.decorators = split_story_parameters(link.arguments[2])
        stories.append(entry)
    return stories


def extract_metadata(fragment: ChainFragment, exclude_stories: List[str]) -> ModuleMetadata:
    """Module metadata of a fragment."""
    comments = []
    for link in fragment.decorators + fragment.parameters:
        comments.extend(link.comments)
    comments.sort(key=lambda node: node.start_byte)
    return ModuleMetadata(
        title=fragment.title,
        decorators=collect_decorators(fragment.decorators),
        parameters=merge_parameters(fragment.parameters),
        exclude_stories=list(exclude_stories),
        comments=comments,
    )
