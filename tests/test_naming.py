from __future__ import annotations

from stream_builder.naming import derive_name, fallback_name


def test_derive_name_from_function_declaration() -> None:
    assert derive_name("export default function Hero() {\n  return null;\n}") == "Hero.jsx"


def test_derive_name_from_class_declaration() -> None:
    assert derive_name("class Navbar extends React.Component {}") == "Navbar.jsx"


def test_function_wins_over_class_even_when_class_comes_first() -> None:
    content = "class Bar extends Base {}\n\nfunction Foo() { return 1; }"
    assert derive_name(content) == "Foo.jsx"


def test_derive_name_returns_none_without_declarations() -> None:
    assert derive_name(".app { color: red; }") is None
    assert derive_name("const handler = function () {};") is None
    assert derive_name("") is None


def test_classname_attribute_is_not_a_class() -> None:
    assert derive_name('<div className="card">hi</div>') is None


def test_fallback_name_uses_extension_registry() -> None:
    assert fallback_name(2, "css") == "Generated2.css"
    assert fallback_name(1, "python") == "Generated1.js"
