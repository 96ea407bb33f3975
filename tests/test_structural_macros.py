import unittest

from fake_view import FakeView, render_template

from macroview.compiler.exceptions import InvalidTemplateError
from macroview.compiler.template_compiler import TemplateCompiler


class TestStructuralMacros(unittest.TestCase):
    def setUp(self):
        self.compiler = TemplateCompiler()

    def render(self, template, **data):
        return render_template(template, FakeView(**data), self.compiler)

    def test_main_selects_root(self):
        view = self.render(
            "<html><head><title>x</title></head>"
            "<body><div m:main><p>content</p></div><footer>f</footer></body></html>"
        )
        self.assertEqual(view.html, "<div><p>content</p></div>")

    def test_first_main_wins(self):
        view = self.render("<div m:main>a</div><div m:main>b</div>")
        self.assertEqual(view.html, "<div>a</div>")

    def test_ignore(self):
        view = self.render("<p>a</p><div m:ignore><p m:text='view.missing'></p></div>")
        self.assertEqual(view.html, "<p>a</p>")

    def test_import_removes_resource_tag(self):
        view = self.render(
            '<link rel="stylesheet" href="a.css" m:import="\'a.css\'"><p>x</p>'
        )
        self.assertEqual(view.html, "<p>x</p>")
        self.assertEqual(view.called("import_resource"), [("a.css",)])

    def test_import_keeps_other_elements(self):
        view = self.render("<div m:import=\"'widget.js'\">w</div>")
        self.assertEqual(view.html, "<div>w</div>")
        self.assertEqual(view.called("import_resource"), [("widget.js",)])

    def test_imports_outputs_resource_block(self):
        view = self.render(
            "<script m:imports=\"'app.js'\"></script>"
            "<p>body</p>"
            "<link m:import=\"'late.css'\">"
        )
        # Hoisted imports are prepended to the root, so the last one runs first
        self.assertEqual(view.html, "[late.css][app.js]<p>body</p>")

    def test_imports_hoisted_before_output(self):
        source = self.compiler.compile_string("<p>x</p><link m:import=\"'a.css'\">")
        self.assertLess(
            source.index("view.import_resource('a.css')"), source.index("write(")
        )

    def test_embed(self):
        view = self.render("<div m:embed=\"'sidebar.html'\">placeholder</div>")
        self.assertEqual(view.html, "[embed:sidebar.html]")
        self.assertEqual(view.called("embed"), [("sidebar.html",)])

    def test_assign_and_block(self):
        view = self.render(
            "<p m:assign=\"'side'\">S</p><main>m</main><aside m:block=\"'side'\"></aside>"
        )
        self.assertEqual(view.html, "<main>m</main><p>S</p>")
        self.assertEqual(view.blocks, {"side": "<p>S</p>"})

    def test_append_and_prepend(self):
        view = self.render(
            "<i m:assign=\"'b'\">1</i>"
            "<i m:append=\"'b'\">2</i>"
            "<i m:prepend=\"'b'\">0</i>"
        )
        self.assertEqual(view.html, "")
        self.assertEqual(view.blocks["b"], "<i>0</i><i>1</i><i>2</i>")
        self.assertEqual(
            view.called("begin"),
            [("b", "replace"), ("b", "append"), ("b", "prepend")],
        )

    def test_layout(self):
        view = self.render("<div m:layout=\"'base.html'\">x</div>")
        self.assertEqual(view.called("layout"), [("base.html",)])
        self.assertEqual(view.html, "<div>x</div>")

    def test_nolayout(self):
        view = self.render("<div m:nolayout>x</div>")
        self.assertEqual(view.called("disable_layout"), [()])

    def test_extend(self):
        view = self.render("<div m:extend=\"'parent.html'\"><p m:assign=\"'c'\">x</p></div>")
        self.assertEqual(view.called("extend"), [("parent.html",)])
        self.assertEqual(view.blocks, {"c": "<p>x</p>"})

    def test_extend_requires_parent(self):
        with self.assertRaises(InvalidTemplateError) as ctx:
            self.compiler.compile_string("<p>a</p>\n<div m:extend></div>", "page.html")
        self.assertIn("requires a parent template", ctx.exception.message)
        self.assertEqual(ctx.exception.file_path, "page.html")
        self.assertEqual(ctx.exception.line, 2)
        self.assertEqual(
            str(ctx.exception),
            "page.html:2: The extend-macro requires a parent template.",
        )


class TestMainWithWrapperMacros(unittest.TestCase):
    def render(self, template):
        return render_template(template, FakeView())

    def test_layout_on_wrapper(self):
        view = self.render("<html m:layout=\"'base'\"><body><div m:main>x</div></body></html>")
        self.assertEqual(view.html, "<div>x</div>")
        self.assertEqual(view.called("layout"), [("base",)])

    def test_import_in_wrapper_head(self):
        view = self.render(
            "<html><head><link m:import=\"'site.css'\"></head>"
            "<body><main m:main><link m:imports>y</main></body></html>"
        )
        self.assertEqual(view.called("import_resource"), [("site.css",)])
        self.assertEqual(view.html, "<main>[site.css]y</main>")

    def test_wrapper_output_is_dropped(self):
        view = self.render(
            "<div m:if=\"view.missing\"><p m:text=\"view.missing\"></p></div><p m:main>z</p>"
        )
        self.assertEqual(view.html, "<p>z</p>")
