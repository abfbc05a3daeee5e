"""Tests for the document parser and serializer."""

import pytest

from readme_migrator.nodes import (
    Attribute,
    CodeBlock,
    Component,
    Emphasis,
    Expression,
    Html,
    Image,
    List,
    ListItem,
    Paragraph,
    RawBlock,
    Root,
    Strong,
    Text,
    ThematicBreak,
    rewrite,
    walk,
)
from readme_migrator.parser import DocumentParseError, parse, parse_attributes, parse_inline, scan_expression
from readme_migrator.serializer import serialize


class TestRoundTrip:
    """Untouched documents serialize back to their source."""

    def test_plain_markdown_is_unchanged(self):
        doc = (
            "# Title\n\n"
            "Some *emphasis* and `code` with a [link](https://example.com).\n\n"
            "* one\n* two\n\n"
            "1. first\n2. second\n\n"
            "> quoted\n\n"
            "```python\nprint('hi')\n```\n\n"
            "| a | b |\n| - | - |\n| 1 | 2 |\n\n"
            "[ref]: https://example.com\n"
        )

        assert serialize(parse(doc)) == doc

    def test_components_are_unchanged(self):
        doc = (
            '<Tabs groupId="os">\n'
            '  <TabItem value="mac" label="macOS">\n\n'
            '  Install with brew.\n\n'
            '  </TabItem>\n'
            '</Tabs>\n'
        )

        assert serialize(parse(doc)) == doc

    def test_indented_code_becomes_fenced(self):
        tree = parse("Text\n\n    code line\n")

        assert isinstance(tree.children[1], CodeBlock)
        assert serialize(tree) == "Text\n\n```\ncode line\n```\n"

    def test_thematic_break_marker_kept(self):
        doc = "Above\n\n***\n\nBelow\n\n_____\n"

        assert serialize(parse(doc)) == doc

    def test_blank_line_runs_collapse(self):
        assert serialize(parse("# T\n\n\n\nPara one.\n")) == "# T\n\nPara one.\n"

    def test_empty_document(self):
        assert serialize(parse("")) == ""


class TestBlockStructure:
    def test_component_children_are_parsed(self):
        tree = parse(
            '<Tabs groupId="os">\n'
            '  <TabItem value="mac" label="macOS">\n\n'
            '  Install with brew.\n\n'
            '  </TabItem>\n'
            '</Tabs>\n'
        )
        tabs = tree.children[0]

        assert isinstance(tabs, Component)
        assert tabs.name == 'Tabs'
        assert tabs.attributes == (Attribute('groupId', 'os'),)
        assert tabs.indent == '  '
        item = tabs.children[0]
        assert item.name == 'TabItem'
        assert item.attributes == (Attribute('value', 'mac'), Attribute('label', 'macOS'))
        assert isinstance(item.children[0], Paragraph)

    def test_self_closing_component(self):
        tree = parse("<ImageZoom src={useBaseUrl('/img/z.png')} />\n")
        node = tree.children[0]

        assert node.self_closing
        assert node.attributes == (Attribute('src', "useBaseUrl('/img/z.png')", expression=True),)

    def test_expression_block(self):
        tree = parse("{/* a comment */}\n\nText\n")

        assert tree.children[0] == Expression('{/* a comment */}')

    def test_list_items(self):
        tree = parse("- a\n- b\n")
        lst = tree.children[0]

        assert isinstance(lst, List)
        assert not lst.ordered
        assert not lst.spread
        assert [item.children[0].raw for item in lst.children] == ['a', 'b']

    def test_ordered_list_start(self):
        lst = parse("3. three\n4. four\n").children[0]

        assert lst.ordered
        assert lst.start == 3

    def test_html_block(self):
        tree = parse("<div>\nhello\n</div>\n")

        assert tree.children[0] == Html('<div>\nhello\n</div>')

    def test_reference_definitions_kept_raw(self):
        tree = parse("[a]: https://example.com\n")

        assert tree.children == (RawBlock('[a]: https://example.com'),)


class TestParseErrors:
    def test_missing_closing_tag(self):
        with pytest.raises(DocumentParseError, match='closing tag for <Foo>'):
            parse("<Foo>\n\nunclosed\n")

    def test_unterminated_opening_tag(self):
        with pytest.raises(DocumentParseError, match='opening tag <Foo>'):
            parse('<Foo bar="x"\n')

    def test_unbalanced_expression(self):
        with pytest.raises(DocumentParseError, match='end of the expression'):
            parse("{/* open\n")

    def test_lowercase_html_is_tolerated(self):
        tree = parse("<details>\n\nnever closed\n")

        assert isinstance(tree.children[0], Html)


class TestParseInline:
    def test_images_and_components(self):
        nodes = parse_inline('See ![Logo](/img/logo.png "Brand") and <Badge text="new" /> here.')

        assert nodes[0] == Text('See ')
        assert isinstance(nodes[1], Image)
        assert (nodes[1].url, nodes[1].alt, nodes[1].title) == ('/img/logo.png', 'Logo', 'Brand')
        assert nodes[2] == Text(' and ')
        assert isinstance(nodes[3], Component)
        assert nodes[3].name == 'Badge'
        assert nodes[3].self_closing
        assert nodes[4] == Text(' here.')

    def test_code_spans_stay_text(self):
        assert parse_inline('Use `<Tabs>` here') == (Text('Use `<Tabs>` here'),)

    def test_inline_html(self):
        nodes = parse_inline('a <span class="x">b</span> c')

        assert nodes == (
            Text('a '),
            Html('<span class="x">', inline=True),
            Text('b'),
            Html('</span>', inline=True),
            Text(' c'),
        )

    def test_inline_script_is_one_node(self):
        nodes = parse_inline('Click <script>if (a < b) go();</script> here.')

        assert nodes == (
            Text('Click '),
            Html('<script>if (a < b) go();</script>', inline=True),
            Text(' here.'),
        )

    def test_autolink_is_text(self):
        assert parse_inline('<https://example.com>') == (Text('<https://example.com>'),)


class TestScanning:
    def test_scan_expression_nested(self):
        src = "{a: {b: 1}} rest"

        assert scan_expression(src, 0) == len("{a: {b: 1}}")

    def test_scan_expression_unbalanced(self):
        assert scan_expression("{a: {b: 1}", 0) == -1

    def test_parse_attributes(self):
        attrs = parse_attributes("<Tab value='a' label={<b>A</b>} disabled {...rest}>")

        assert attrs == (
            Attribute('value', 'a'),
            Attribute('label', '<b>A</b>', expression=True),
            Attribute('disabled'),
            Attribute('', '...rest', expression=True),
        )


class TestRewrite:
    def test_untouched_tree_is_same_object(self):
        tree = parse("# A\n\nB\n")

        assert rewrite(tree, lambda node: node) is tree

    def test_changed_ancestors_lose_source(self):
        tree = parse("- keep\n- ![x](/a.png)\n")

        def replace(node):
            if isinstance(node, Image):
                return Image(url='/b.png', alt='x')
            return node

        new = rewrite(tree, replace)
        lst = new.children[0]
        assert lst.raw is None
        assert lst.children[0] is tree.children[0].children[0]
        assert serialize(new) == "- keep\n- ![x](/b.png)\n"

    def test_walk_visits_descendants(self):
        tree = Root(children=(Paragraph(children=(Text('a'), Image(url='/i.png'))),))

        assert [type(node).__name__ for node in walk(tree)] == ['Root', 'Paragraph', 'Text', 'Image']

    def test_dirty_list_item_render(self):
        tree = Root(children=(List(children=(
            ListItem(children=(Paragraph(children=(Text('one'),)),)),
            ListItem(children=(Paragraph(children=(Text('two'),)), Paragraph(children=(Text('more'),)))),
        ), spread=True),))

        assert serialize(tree) == "- one\n\n- two\n\n  more\n"

    def test_built_emphasis_and_strong_render(self):
        tree = Root(children=(Paragraph(children=(
            Emphasis((Text('soft'),)), Text(' and '), Strong((Text('loud'),)),
        )),))

        assert serialize(tree) == "*soft* and **loud**\n"

    def test_built_thematic_break_render(self):
        assert serialize(Root(children=(ThematicBreak(),))) == "---\n"
