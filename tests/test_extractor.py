"""Tests for schema-tolerant OCR text extraction."""

from __future__ import annotations

import json

import pytest

from ocrlib.ocr.extractor import DEFAULT_MAX_DEPTH, extract_text


class TestExtractText:
    """Tests for extract_text over provider-shaped responses."""

    def test_lines_are_trimmed_and_joined(self):
        assert extract_text({"lines": [{"text": "A"}, {"text": "B "}]}) == "A\nB"

    @pytest.mark.parametrize("node", [{}, {"pages": []}, None, "", "   ", [], 0])
    def test_nothing_recoverable_returns_none(self, node):
        assert extract_text(node) is None

    def test_plain_string_leaf(self):
        assert extract_text("  hello  ") == "hello"

    def test_own_text_fields_precede_collections(self):
        """Own text fields (text, ocr_text, fullText) come before nested ones."""
        node = {
            "lines": [{"text": "nested"}],
            "fullText": "third",
            "ocr_text": "second",
            "text": "first",
        }
        assert extract_text(node) == "first\nsecond\nthird\nnested"

    def test_collection_field_order(self):
        """Collections are visited result -> results -> ... -> lines."""
        node = {
            "lines": ["g"],
            "page_data": ["f"],
            "pages": ["e"],
            "fields": ["d"],
            "predictions": ["c"],
            "results": ["b"],
            "result": ["a"],
        }
        assert extract_text(node) == "a\nb\nc\nd\ne\nf\ng"

    def test_nanonets_style_response(self):
        """A typical LabelFile response with predictions under result."""
        response = json.loads(
            """
            {
              "message": "Success",
              "result": [
                {
                  "page_data": [
                    {"page": 0, "raw_text": "ignored", "words": [{"text": "no"}]},
                    {"page": 1, "lines": [{"text": "Invoice 42"}, {"text": "Total: 10.00"}]}
                  ],
                  "prediction": [{"ocr_text": "singular key is ignored"}],
                  "predictions": [{"label": "total", "ocr_text": "10.00"}]
                }
              ]
            }
            """
        )
        assert extract_text(response) == "10.00\nInvoice 42\nTotal: 10.00"

    def test_non_string_text_fields_ignored(self):
        node = {"text": 42, "ocr_text": None, "fullText": ["x"], "lines": [{"text": "ok"}]}
        assert extract_text(node) == "ok"

    def test_non_list_collections_ignored(self):
        node = {"pages": {"text": "not a list"}, "lines": "also not a list"}
        assert extract_text(node) is None

    def test_unknown_element_types_contribute_nothing(self):
        node = {"results": [1, 2.5, True, None, ["nested list"], {"text": "kept"}]}
        assert extract_text(node) == "kept"

    def test_empty_fragments_dropped(self):
        node = {"lines": [{"text": ""}, {"text": "  "}, {"text": "x"}, "\n"]}
        assert extract_text(node) == "x"

    def test_idempotent(self):
        node = {"pages": [{"lines": [{"text": "one"}, {"text": "two"}]}]}
        first = extract_text(node)
        assert extract_text(node) == first == "one\ntwo"

    def test_does_not_mutate_input(self):
        node = {"lines": [{"text": " padded "}]}
        snapshot = json.dumps(node)
        extract_text(node)
        assert json.dumps(node) == snapshot


class TestDepthBound:
    """Deeply nested or cyclic input is cut off at max_depth."""

    @staticmethod
    def _nest(levels: int) -> dict:
        node: dict = {"text": "bottom"}
        for _ in range(levels):
            node = {"results": [node]}
        return node

    def test_text_beyond_depth_is_skipped(self):
        assert extract_text(self._nest(DEFAULT_MAX_DEPTH + 10)) is None

    def test_text_within_custom_depth_is_found(self):
        assert extract_text(self._nest(200), max_depth=250) == "bottom"

    def test_self_referential_structure_terminates(self):
        """A single back-reference contributes the node's text once."""
        node: dict = {"text": "loop"}
        node["results"] = [node]

        assert extract_text(node) == "loop"

    def test_branching_cycle_terminates(self):
        """Several back-references do not multiply the traversal."""
        node: dict = {"text": "a"}
        node["lines"] = [node, node, {"text": "b", "pages": [node]}]

        assert extract_text(node) == "a\nb"

    def test_indirect_cycle_terminates(self):
        parent: dict = {"text": "parent"}
        child: dict = {"text": "child", "results": [parent]}
        parent["pages"] = [child, child]

        assert extract_text(parent) == "parent\nchild\nchild"

    def test_shared_non_cyclic_node_visited_each_time(self):
        """Only cycles are cut; a node reached by two paths counts twice."""
        shared = {"text": "same"}
        assert extract_text({"lines": [shared, shared]}) == "same\nsame"
