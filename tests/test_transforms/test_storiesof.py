"""Tests for the storiesOf -> CSF transformer."""

import pytest

from csfmod.config import TransformOptions
from csfmod.state.models import DiagnosticKind, SourceFile
from csfmod.transforms.base import ParseFailure
from csfmod.transforms.storiesof import convert_storiesof, transform_file
from csfmod.transforms.syntax import JSParser


def parses(code: str, path: str = "Story.stories.jsx") -> bool:
    return not JSParser().parse(code, path).has_errors


class TestSimpleChain:
    """Tests for a single inline chain."""

    def test_convert_single_story(self):
        """Test the chain becomes a default export and one named export."""
        source = """import { storiesOf } from '@storybook/react';
import { Button } from './Button';

storiesOf('Button', module).add('default', () => <Button />);
"""
        result = convert_storiesof(source, path="Button.stories.jsx")

        assert result.has_changes
        assert result.modified_code == """import { Button } from './Button';

export default {
  title: 'Button',
};

export const _default = () => <Button />;
"""
        assert result.diagnostics == []

    def test_other_imports_kept(self):
        """Test unrelated imports survive the rewrite."""
        source = """import React from 'react';
import { storiesOf } from '@storybook/react';
import { Button } from './Button';

storiesOf('Button', module).add('with text', () => <Button>Hello</Button>);
"""
        result = convert_storiesof(source, path="Button.stories.jsx")

        assert result.modified_code == """import React from 'react';
import { Button } from './Button';

export default {
  title: 'Button',
};

export const withText = () => <Button>Hello</Button>;
"""

    def test_multiline_render_reindented(self):
        """Test a multi-line render function moves to top-level indentation."""
        source = """storiesOf('Button', module)
  .add('with text', () => (
    <Button>Hello</Button>
  ));
"""
        result = convert_storiesof(source, path="Button.stories.jsx")

        assert result.modified_code == """export default {
  title: 'Button',
};

export const withText = () => (
  <Button>Hello</Button>
);
"""

    def test_stories_keep_order(self):
        """Test named exports follow the order of the .add calls."""
        source = """storiesOf('List', module)
  .add('C first', () => 1)
  .add('A second', () => 2)
  .add('B third', () => 3);
"""
        code = convert_storiesof(source).modified_code

        first = code.index("export const cFirst")
        second = code.index("export const aSecond")
        third = code.index("export const bThird")
        assert first < second < third

    def test_output_parses(self):
        """Test the rewritten module is valid source."""
        source = """import { storiesOf } from '@storybook/react';

storiesOf('Forms/Input', module)
  .addDecorator(story => <div style={{ padding: 8 }}>{story()}</div>)
  .add('empty', () => <input />)
  .add('filled', () => <input value="x" />, { notes: 'filled in' });
"""
        result = convert_storiesof(source, path="Input.stories.jsx")

        assert result.has_changes
        assert parses(result.modified_code)

    def test_comment_between_links_kept(self):
        """Test a comment before an .add call lands above its export."""
        source = """storiesOf('Button', module)
  // the basic one
  .add('basic', () => 1);
"""
        code = convert_storiesof(source).modified_code

        assert "// the basic one\nexport const basic = () => 1;" in code


class TestMetadata:
    """Tests for module and story level decorators and parameters."""

    def test_metadata_merged(self):
        """Test decorators and parameters move to the default export."""
        source = """import { storiesOf } from '@storybook/react';

storiesOf('T', module)
  .addDecorator(d1)
  .addParameters({ a: 1 })
  .add('s1', () => X, { decorators: [d2], b: 2 });
"""
        result = convert_storiesof(source)

        assert result.modified_code == """export default {
  title: 'T',
  decorators: [d1],
  parameters: {
    a: 1,
  },
};

export const s1 = () => X;
s1.story = {
  parameters: {
    b: 2,
  },
  decorators: [d2],
};
"""

    def test_decorators_accumulate_in_order(self):
        """Test several .addDecorator calls keep their order."""
        source = """storiesOf('T', module)
  .addDecorator(first)
  .add('a', () => 1)
  .addDecorator(second);
"""
        code = convert_storiesof(source).modified_code

        assert "decorators: [first, second]," in code

    def test_parameters_last_write_wins(self):
        """Test a repeated parameter key keeps the last value."""
        source = """storiesOf('T', module)
  .addParameters({ a: 1, b: 2 })
  .addParameters({ b: 3, c: 4 })
  .add('a', () => 1);
"""
        code = convert_storiesof(source).modified_code

        assert "  parameters: {\n    a: 1,\n    b: 3,\n    c: 4,\n  },\n" in code
        assert "b: 2" not in code

    def test_repeated_parameter_keeps_position(self):
        """Test a repeated key keeps the place of its first occurrence."""
        source = """storiesOf('T', module)
  .addParameters({ a: 1, b: 2 })
  .addParameters({ a: 3 })
  .add('a', () => 1);
"""
        code = convert_storiesof(source).modified_code

        assert "  parameters: {\n    a: 3,\n    b: 2,\n  },\n" in code

    def test_repeated_parameter_after_spread(self):
        """Test a key repeated after a spread still overrides the spread."""
        source = """storiesOf('T', module)
  .addParameters({ a: 1 })
  .addParameters(base)
  .addParameters({ a: 3 })
  .add('a', () => 1);
"""
        code = convert_storiesof(source).modified_code

        assert "  parameters: {\n    ...base,\n    a: 3,\n  },\n" in code

    def test_non_object_parameters_spread(self):
        """Test a parameters variable is merged as a spread."""
        source = """storiesOf('T', module)
  .addParameters(base)
  .add('a', () => 1);
"""
        code = convert_storiesof(source).modified_code

        assert "  parameters: {\n    ...base,\n  },\n" in code

    def test_story_decorators_only(self):
        """Test a story with only decorators gets no parameters."""
        source = "storiesOf('T', module).add('a', () => 1, { decorators: [d] });\n"
        code = convert_storiesof(source).modified_code

        assert "export const a = () => 1;\na.story = {\n  decorators: [d],\n};\n" in code
        assert "parameters" not in code

    def test_story_parameters_expression_kept(self):
        """Test story parameters without decorators are copied as written."""
        source = "storiesOf('T', module).add('a', () => 1, shared);\n"
        code = convert_storiesof(source).modified_code

        assert "a.story = {\n  parameters: shared,\n};\n" in code

    def test_exclude_stories(self):
        """Test existing named exports are excluded from the story list."""
        source = """import { storiesOf } from '@storybook/react';

export const helper = 1;
export function Wrapper() {}

storiesOf('T', module).add('a', () => helper);
"""
        result = convert_storiesof(source)

        assert "excludeStories: ['helper', 'Wrapper']," in result.modified_code
        assert "export const a = () => helper;" in result.modified_code


class TestNaming:
    """Tests for export name synthesis."""

    def test_name_collision(self):
        """Test two names sanitizing to the same identifier stay distinct."""
        source = """storiesOf('Button', module)
  .add('Primary Button', () => 1)
  .add('primary-button', () => 2);
"""
        code = convert_storiesof(source).modified_code

        assert "export const primaryButton = () => 1;" in code
        assert "export const _primaryButton = () => 2;" in code

    def test_existing_binding_collision(self):
        """Test a story never shadows an identifier of the module."""
        source = """const primary = { color: 'blue' };

storiesOf('Button', module).add('primary', () => primary);
"""
        code = convert_storiesof(source).modified_code

        assert "export const _primary = () => primary;" in code

    def test_property_names_do_not_collide(self):
        """Test JSX attribute names are not treated as bindings."""
        source = "storiesOf('Button', module).add('primary', () => <Button primary />);\n"
        code = convert_storiesof(source).modified_code

        assert "export const primary = () => <Button primary />;" in code

    def test_names_dropped_by_default(self):
        """Test display names are not stored unless asked for."""
        source = "storiesOf('Button', module).add('with text', () => 1);\n"
        code = convert_storiesof(source).modified_code

        assert ".story" not in code

    def test_preserve_story_names(self):
        """Test names the export cannot reproduce are kept when asked."""
        source = """storiesOf('Button', module)
  .add('with text', () => 1)
  .add('Primary Button', () => 2);
"""
        code = convert_storiesof(source, preserve_story_names=True).modified_code

        assert "withText.story = {\n  name: 'with text',\n};\n" in code
        assert "primaryButton.story" not in code

    def test_escaped_emoji_title(self):
        """Test an escaped surrogate pair title becomes one character."""
        source = "storiesOf('Party \\uD83C\\uDF89', module).add('a', () => 1);\n"
        code = convert_storiesof(source).modified_code

        assert "title: 'Party \U0001F389'," in code
        assert parses(code)

    def test_unpaired_surrogate_title_escaped(self):
        source = "storiesOf('Broken \\uD83C', module).add('a', () => 1);\n"
        code = convert_storiesof(source).modified_code

        assert "title: 'Broken \\ud83c'," in code


class TestGuards:
    """Tests for files the transformer declines to rewrite."""

    def test_default_export_conflict(self):
        """Test a module with a default export is left unchanged."""
        source = """export default { title: 'Existing' };

storiesOf('Button', module).add('a', () => 1);
"""
        result = convert_storiesof(source, path="Button.stories.js")

        assert not result.has_changes
        assert result.modified_code == source
        assert len(result.diagnostics) == 1
        diagnostic = result.diagnostics[0]
        assert diagnostic.kind == DiagnosticKind.DEFAULT_EXPORT_CONFLICT
        assert diagnostic.message == (
            "ambiguous default export + chain found, skipping: 'Button.stories.js'"
        )
        assert diagnostic.chain_count == 1

    def test_default_export_without_chain_silent(self):
        """Test a CSF module produces no warning."""
        source = "export default { title: 'Button' };\nexport const a = () => 1;\n"
        result = convert_storiesof(source)

        assert result.modified_code == source
        assert result.diagnostics == []

    def test_multiple_chains(self):
        """Test two chains in one file are left for a manual fix."""
        source = """storiesOf('A', module).add('a', () => 1);
storiesOf('B', module).add('b', () => 2);
"""
        result = convert_storiesof(source, path="Two.stories.js")

        assert result.modified_code == source
        assert result.skipped
        diagnostic = result.diagnostics[0]
        assert diagnostic.kind == DiagnosticKind.MULTIPLE_CHAINS
        assert diagnostic.chain_count == 2
        assert "multiple chains found, manual fix required: 'Two.stories.js'" == str(diagnostic)

    def test_malformed_link_unsupported(self):
        """Test an .add call without a render function is not rewritten."""
        source = "storiesOf('A', module).add('a');\n"
        result = convert_storiesof(source)

        assert result.modified_code == source
        assert result.diagnostics[0].kind == DiagnosticKind.UNSUPPORTED_SHAPE

    def test_unknown_method_unsupported(self):
        """Test a chain calling an unknown method is not rewritten."""
        source = "storiesOf('A', module).addLoader(load).add('a', () => 1);\n"
        result = convert_storiesof(source)

        assert result.modified_code == source
        assert result.diagnostics[0].kind == DiagnosticKind.UNSUPPORTED_SHAPE

    def test_nested_chain_unsupported(self):
        """Test a chain inside a function body is not rewritten."""
        source = """function register() {
  storiesOf('A', module).add('a', () => 1);
}
"""
        result = convert_storiesof(source)

        assert result.modified_code == source
        assert result.diagnostics[0].kind == DiagnosticKind.UNSUPPORTED_SHAPE

    def test_non_literal_title_ignored(self):
        """Test a call with a computed title is not a chain at all."""
        source = "storiesOf(title, module).add('a', () => 1);\n"
        result = convert_storiesof(source)

        assert result.modified_code == source
        assert result.diagnostics == []

    def test_non_matching_untouched(self):
        """Test a module without storiesOf is returned byte for byte."""
        source = "// nothing here\nexport const answer = 42;\n\n\n"
        result = convert_storiesof(source)

        assert result.modified_code == source
        assert result.changes_made == 0

    def test_parse_failure_raises(self):
        """Test unparseable input raises instead of returning text."""
        with pytest.raises(ParseFailure):
            convert_storiesof("storiesOf('A', module).add(\n", path="Broken.stories.js")


class TestBoundChain:
    """Tests for chains held in a variable."""

    def test_bound_statements(self):
        """Test ``const stories = storiesOf(...)`` with later ``stories.add``."""
        source = """import { storiesOf } from '@storybook/react';
import Button from './Button';

const stories = storiesOf('Button', module);

stories.add('primary', () => <Button primary />);
stories.add('secondary', () => <Button />);
"""
        result = convert_storiesof(source, path="Button.stories.jsx")

        assert result.modified_code == """import Button from './Button';

export default {
  title: 'Button',
};

export const primary = () => <Button primary />;

export const secondary = () => <Button />;
"""

    def test_bound_declaration_with_chain(self):
        """Test a declaration initialized with the whole chain."""
        source = "const stories = storiesOf('A', module).add('a', () => 1);\n"
        code = convert_storiesof(source).modified_code

        assert "stories" not in code
        assert "export const a = () => 1;" in code

    def test_binding_used_elsewhere_unsupported(self):
        """Test a binding that escapes the chain is not rewritten."""
        source = """const stories = storiesOf('A', module);
stories.add('a', () => 1);
register(stories);
"""
        result = convert_storiesof(source)

        assert result.modified_code == source
        assert result.diagnostics[0].kind == DiagnosticKind.UNSUPPORTED_SHAPE


class TestImports:
    """Tests for pruning the legacy import."""

    def test_shared_import_keeps_other_specifiers(self):
        """Test only the storiesOf specifier is removed."""
        source = """import { configure, storiesOf } from '@storybook/react';

storiesOf('A', module).add('a', () => 1);
"""
        code = convert_storiesof(source).modified_code

        assert code.startswith("import { configure } from '@storybook/react';\n")

    def test_import_kept_while_referenced(self):
        """Test the import stays when something else still uses it."""
        source = """import { storiesOf } from '@storybook/react';

export const legacy = storiesOf;

storiesOf('A', module).add('a', () => 1);
"""
        code = convert_storiesof(source).modified_code

        assert "import { storiesOf } from '@storybook/react';" in code
        assert "export const legacy = storiesOf;" in code

    def test_aliased_import(self):
        """Test an aliased storiesOf import is followed and pruned."""
        source = """import { storiesOf as legacy } from '@storybook/react';

legacy('X', module).add('a', () => 1);
"""
        code = convert_storiesof(source).modified_code

        assert code == """export default {
  title: 'X',
};

export const a = () => 1;
"""


class TestOptions:
    """Tests for output formatting options."""

    def test_double_quotes_no_trailing_comma(self):
        """Test quote style and trailing comma options."""
        source = "storiesOf('Button', module).add('default', () => <Button />);\n"
        options = TransformOptions(quote_style="double", trailing_comma=False)
        code = convert_storiesof(source, options=options).modified_code

        assert code == """export default {
  title: "Button"
};

export const _default = () => <Button />;
"""

    def test_tab_width(self):
        """Test the indentation width option."""
        source = "storiesOf('Button', module).add('a', () => 1);\n"
        code = convert_storiesof(source, tab_width=4).modified_code

        assert "export default {\n    title: 'Button',\n};" in code

    def test_annotation_property(self):
        """Test the per-story metadata property name is configurable."""
        source = "storiesOf('T', module).add('a', () => 1, { decorators: [d] });\n"
        code = convert_storiesof(source, story_annotation_property="parameters").modified_code

        assert "a.parameters = {" in code


class TestTypeScript:
    """Tests for TypeScript sources."""

    def test_tsx_module(self):
        """Test a TSX story module converts and still parses."""
        source = """import { storiesOf } from '@storybook/react';
import { Button, ButtonProps } from './Button';

const Template = (args: ButtonProps) => <Button {...args} />;

storiesOf('Button', module).add('primary', Template, { backgrounds: { default: 'dark' } });
"""
        result = convert_storiesof(source, path="Button.stories.tsx")

        assert "export const primary = Template;" in result.modified_code
        assert "primary.story = {\n  parameters: { backgrounds: { default: 'dark' } },\n};" in (
            result.modified_code
        )
        assert parses(result.modified_code, "Button.stories.tsx")


class TestStoryContent:
    """Tests for story text that looks like chain code."""

    SOURCE = (
        "storiesOf('Docs', module).add('usage', () => <Code>{`\n"
        "const stories = storiesOf('Button', module)\n"
        "`}</Code>);\n"
    )

    def test_template_literal_kept(self):
        """Test a chain declaration quoted in a template literal survives."""
        code = convert_storiesof(self.SOURCE, path="Docs.stories.jsx").modified_code

        assert code == (
            "export default {\n  title: 'Docs',\n};\n\n"
            "export const usage = () => <Code>{`\n"
            "const stories = storiesOf('Button', module)\n"
            "`}</Code>;\n"
        )

    def test_template_literal_kept_with_residual_pass(self):
        result = convert_storiesof(
            self.SOURCE, path="Docs.stories.jsx", strip_residual_roots=True
        )

        assert "const stories = storiesOf('Button', module)\n" in result.modified_code
        assert parses(result.modified_code)


class TestLineEndings:
    """Tests for CRLF sources."""

    def test_crlf_source(self):
        """Test generated lines follow the file's CRLF endings."""
        source = (
            "import { storiesOf } from '@storybook/react';\r\n"
            "import { Button } from './Button';\r\n"
            "\r\n"
            "storiesOf('Button', module)\r\n"
            "  .add('a', () => (\r\n"
            "    <Button />\r\n"
            "  ));\r\n"
        )
        code = convert_storiesof(source, path="Button.stories.jsx").modified_code

        assert code == (
            "import { Button } from './Button';\r\n"
            "\r\n"
            "export default {\r\n"
            "  title: 'Button',\r\n"
            "};\r\n"
            "\r\n"
            "export const a = () => (\r\n"
            "  <Button />\r\n"
            ");\r\n"
        )
        assert "\n" not in code.replace("\r\n", "")


class TestIdempotence:
    """Tests for running the transform twice."""

    def test_second_run_is_noop(self):
        """Test converting converted output changes nothing."""
        source = """import { storiesOf } from '@storybook/react';

storiesOf('T', module)
  .addDecorator(d1)
  .add('s1', () => X, { decorators: [d2], b: 2 });
"""
        first = convert_storiesof(source)
        second = convert_storiesof(first.modified_code)

        assert first.has_changes
        assert not second.has_changes
        assert second.diagnostics == []


class TestTransformFile:
    """Tests for the file descriptor entry point."""

    def test_transform_file(self):
        """Test transforming a SourceFile returns the new text."""
        file = SourceFile(
            path="A.stories.js",
            source="storiesOf('A', module).add('a', () => 1);\n",
        )
        code = transform_file(file)

        assert code.startswith("export default {\n  title: 'A',\n};")

    def test_transform_file_collects_diagnostics(self):
        """Test warnings are handed back through the diagnostics list."""
        file = SourceFile(
            path="A.stories.js",
            source="storiesOf('A', module).add('a', () => 1);\nstoriesOf('B', module);\n",
        )
        diagnostics = []
        code = transform_file(file, diagnostics=diagnostics)

        assert code == file.source
        assert [d.kind for d in diagnostics] == [DiagnosticKind.MULTIPLE_CHAINS]

    @pytest.mark.parametrize(
        "path, source",
        [
            ("Simple.stories.jsx", "storiesOf('A', module).add('a', () => <div />);\n"),
            (
                "Bound.stories.js",
                "const s = storiesOf('B', module);\ns.addDecorator(d);\ns.add('x', () => 1);\n",
            ),
            (
                "Meta.stories.js",
                "storiesOf('C', module)\n"
                "  .addParameters({ a: 1 })\n"
                "  .addDecorator(withX)\n"
                "  .add('one', () => 1, { notes: 'n', decorators: [d] });\n",
            ),
            (
                "Typed.stories.tsx",
                "import { storiesOf } from '@storybook/react';\n"
                "storiesOf('D', module).add('t', (args: Props) => <B {...args} />);\n",
            ),
            (
                "Docs.stories.jsx",
                "storiesOf('E', module).add('usage', () => <Code>{`\n"
                "const stories = storiesOf('Button', module)\n`}</Code>);\n",
            ),
            ("Emoji.stories.js", "storiesOf('F \\uD83C\\uDF89', module).add('a', () => 1);\n"),
            ("Crlf.stories.jsx", "storiesOf('G', module)\r\n  .add('a', () => 1);\r\n"),
            ("Conflict.stories.js", "export default {};\nstoriesOf('H', module).add('a', () => 1);\n"),
            ("Multi.stories.js", "storiesOf('I', module).add('a', () => 1);\nstoriesOf('J', module);\n"),
        ],
    )
    def test_every_shape_output_parses(self, path, source):
        """Test every rewritten or declined file still parses."""
        code = transform_file(SourceFile(path=path, source=source))

        assert parses(code, path)
