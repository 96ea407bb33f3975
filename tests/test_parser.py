import unittest

import pytest

from macroview.compiler.code import CodeNode
from macroview.compiler.exceptions import InvalidTemplateError
from macroview.compiler.interpolation import InterpolationParser
from macroview.compiler.nodes import HtmlNode, TextNode
from macroview.compiler.parser import TemplateParser


class TestTemplateParser(unittest.TestCase):
    def setUp(self):
        self.parser = TemplateParser()

    def test_macros_are_separated_from_attributes(self):
        root = self.parser.parse('<p id="a" m:if="view.ok" m:ignore>x</p>')
        node = root.first_child
        self.assertIsInstance(node, HtmlNode)
        self.assertEqual(list(node.attributes), ["id"])
        self.assertEqual(list(node.macros), ["if", "ignore"])
        self.assertEqual(node.macros["if"].code, "view.ok")
        self.assertIsNone(node.macros["ignore"])

    def test_blank_macro_value_is_no_parameter(self):
        node = self.parser.parse('<p m:else="  ">x</p>').first_child
        self.assertIsNone(node.macros["else"])

    def test_custom_prefix(self):
        node = TemplateParser("x-").parse('<p x-text="view.t" m:text="no"></p>').first_child
        self.assertEqual(list(node.macros), ["text"])
        self.assertIn("m:text", node.attributes)

    def test_attribute_without_value(self):
        node = self.parser.parse("<input disabled>").first_child
        self.assertIsNone(node.attributes["disabled"])
        self.assertEqual(str(node), "<input disabled>")

    def test_literal_attribute_is_decoded(self):
        node = self.parser.parse('<a title="a &amp; b">x</a>').first_child
        self.assertEqual(node.attributes["title"].text, "a & b")
        self.assertEqual(str(node), '<a title="a &amp; b">x</a>')

    def test_interpolated_attribute(self):
        node = self.parser.parse('<a title="{{ view.t }}">x</a>').first_child
        self.assertEqual(node.attributes["title"].code, "escape_html(view.t)")

    def test_mixed_attribute(self):
        node = self.parser.parse('<a title="Hi & {{ view.n }}!">x</a>').first_child
        self.assertEqual(
            node.attributes["title"].code,
            "'Hi &amp; ' + str(escape_html(view.n)) + '!'",
        )

    def test_text_interpolation(self):
        node = self.parser.parse("<p>Hello {{ view.name }} and {! view.raw !}</p>").first_child
        children = node.get_children()
        self.assertEqual(children[0].text, "Hello ")
        self.assertEqual(children[1].code, "escape_html(view.name)")
        self.assertEqual(children[2].text, " and ")
        self.assertEqual(children[3].code, "view.raw")
        self.assertEqual(len(children), 4)

    def test_no_interpolation_in_script(self):
        node = self.parser.parse("<script>var a = {{ b }};</script>").first_child
        self.assertEqual(len(node), 1)
        self.assertIsInstance(node.first_child, TextNode)
        self.assertEqual(node.first_child.text, "var a = {{ b }};")

    def test_markup_is_preserved(self):
        source = "<!DOCTYPE html>\n<!-- note --><p>a &amp; b &#169;</p>"
        self.assertEqual(str(self.parser.parse(source)), source)

    def test_void_and_self_closing_elements(self):
        root = self.parser.parse("<br><img src='a.png' /><p>x</p>")
        self.assertEqual([node.tag for node in root], ["br", "img", "p"])
        self.assertEqual(str(root), '<br><img src="a.png"><p>x</p>')

    def test_implicit_close(self):
        root = self.parser.parse("<div><p>x</div><span></span>")
        self.assertEqual(str(root), "<div><p>x</p></div><span></span>")

    def test_unclosed_elements_at_end(self):
        self.assertEqual(str(self.parser.parse("<div><p>x")), "<div><p>x</p></div>")

    def test_stray_end_tag(self):
        with self.assertRaises(InvalidTemplateError) as ctx:
            self.parser.parse("<p>x</p>\n</div>", "page.html")
        self.assertEqual(ctx.exception.line, 2)
        self.assertTrue(str(ctx.exception).startswith("page.html:2:"))

    def test_empty_interpolation(self):
        with self.assertRaises(InvalidTemplateError):
            self.parser.parse("<p>{{ }}</p>")

    def test_line_numbers(self):
        root = self.parser.parse("<div>\n  <p>x</p>\n</div>")
        paragraph = [n for n in root.first_child if isinstance(n, HtmlNode)][0]
        self.assertEqual(root.first_child.line, 1)
        self.assertEqual(paragraph.line, 2)

    def test_parse_file(self):
        import tempfile
        from pathlib import Path

        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "t.html"
            path.write_text("<p>ü</p>", encoding="utf-8")
            self.assertEqual(str(self.parser.parse_file(path)), "<p>ü</p>")


def test_interpolation_parser():
    parser = InterpolationParser()
    parts = parser.parse("a {{ x }} b {! y !}")
    assert parts[0] == "a "
    assert isinstance(parts[1], CodeNode) and parts[1].code == "escape_html(x)"
    assert parts[2] == " b "
    assert parts[3].code == "y"
    assert parser.parse("plain") == ["plain"]
    assert parser.parse("") == []


def test_closing_delimiter_inside_string():
    parts = InterpolationParser().parse("{{ view.name + '}}' }}!")
    assert parts[0].code == "escape_html(view.name + '}}')"
    assert parts[1] == "!"


def test_closing_delimiter_inside_brackets():
    parts = InterpolationParser().parse('{{ {"a": {"b": 1}}["a"]["b"] }}')
    assert len(parts) == 1
    assert parts[0].code == 'escape_html({"a": {"b": 1}}["a"]["b"])'


def test_raw_closing_delimiter_inside_string():
    parts = InterpolationParser().parse("{! '!}' + view.x !}")
    assert [part.code for part in parts] == ["'!}' + view.x"]


def test_unterminated_interpolation():
    with pytest.raises(InvalidTemplateError, match="Unterminated"):
        TemplateParser().parse("<p>\n{{ view.name </p>")


def test_unbalanced_brackets_in_interpolation():
    with pytest.raises(InvalidTemplateError, match="Invalid interpolation"):
        TemplateParser().parse("<p>{{ view.items[0 }}</p>")


def test_comments_are_not_interpolated():
    root = TemplateParser().parse("<!-- {{ view.missing_attr }} --><p>x</p>")
    comment = root.first_child
    assert isinstance(comment, TextNode)
    assert comment.text == "<!-- {{ view.missing_attr }} -->"


def test_non_utf8_file(tmp_path):
    path = tmp_path / "bad.html"
    path.write_bytes(b"\xff\xfe<p>x</p>")
    with pytest.raises(InvalidTemplateError, match="not valid UTF-8") as excinfo:
        TemplateParser().parse_file(path)
    assert excinfo.value.file_path == str(path)
