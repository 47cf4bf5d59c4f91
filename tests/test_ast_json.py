"""Tests for syntax tree JSON export."""

import json

from anchorscan.ast_json import SyntaxNode, ast_to_json, tree_to_model, write_ast_json
from anchorscan.context import create_context
from anchorscan.parser import parse_bytes


def test_tree_to_model_structure():
    tree = parse_bytes(b"fn main() {}\n")
    model = tree_to_model(tree.root_node)
    assert isinstance(model, SyntaxNode)
    assert model.type == "source_file"
    assert model.text is None
    function = model.children[0]
    assert function.type == "function_item"
    assert function.start_point.row == 0
    assert function.start_point.column == 0
    leaves = [c for c in function.children if c.children is None]
    assert any(leaf.text == "main" for leaf in leaves)


def test_ast_to_json_is_valid_json():
    tree = parse_bytes(b"struct S { a: u8 }\n")
    data = json.loads(ast_to_json(tree))
    assert data["type"] == "source_file"
    assert data["children"][0]["type"] == "struct_item"
    assert "text" not in data


def test_write_ast_json_beside_source(tmp_path):
    path = tmp_path / "lib.rs"
    path.write_bytes(b"fn main() {}\n")
    ctx = create_context(path)
    out = write_ast_json(ctx)
    assert out == tmp_path / "lib.json"
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["type"] == "source_file"
    assert data["children"][0]["type"] == "function_item"
