"""Tests for SchemaValidator.

This module verifies:
- JSON decoding failures and documents with no nodes
- Internal vs. external @id resolution and duplicate ids
- Per-type required/recommended/one-of rules and their severities
- The dedicated FAQPage, HowTo, ItemList and Review checks
"""

import json

import pytest

from schemaai.validation.validator import SchemaValidator, extract_nodes, value_at, value_is_empty


def _doc(*nodes):
    return {"@context": "https://schema.org", "@graph": list(nodes)}


def _article(**overrides):
    node = {
        "@type": "BlogPosting",
        "@id": "https://example.com/post/#primary",
        "headline": "Hello",
        "datePublished": "2024-05-01T12:00:00+00:00",
        "author": {"name": "Jo"},
        "publisher": {"name": "Acme"},
        "image": "https://example.com/a.jpg",
        "description": "d",
        "mainEntityOfPage": "https://example.com/post/",
    }
    node.update(overrides)
    return node


class TestValueHelpers:
    @pytest.mark.parametrize("value", [None, "", "   ", [], {}, ()])
    def test_empty_values(self, value):
        assert value_is_empty(value)

    @pytest.mark.parametrize("value", [0, 0.0, False, "x", [None], {"a": None}])
    def test_non_empty_values(self, value):
        assert not value_is_empty(value)

    def test_value_at_dotted_path(self):
        node = {"a": {"b": {"c": 3}}}
        assert value_at(node, "a.b.c") == 3
        assert value_at(node, "a.x.c") is None
        assert value_at({"a": "scalar"}, "a.b") is None

    def test_extract_nodes_from_root(self):
        root = {"@context": "https://schema.org", "@type": "Thing", "name": "x"}
        assert extract_nodes(root) == [(root, "@root")]

    def test_extract_nodes_skips_non_objects(self):
        nodes = extract_nodes({"@graph": [{"@type": "Thing"}, "junk", 3]})
        assert [path for _, path in nodes] == ["@graph[0]"]


class TestJsonInput:
    def test_empty_text(self, validator):
        report = validator.validate_json("   ")
        assert [e.message for e in report.errors] == ["Empty JSON provided."]

    def test_invalid_json(self, validator):
        report = validator.validate_json("{not json")
        assert report.codes() == ["invalid_json"]
        assert report.errors[0].message.startswith("Invalid JSON: ")

    def test_scalar_is_rejected(self, validator):
        report = validator.validate_json("42")
        assert report.codes() == ["invalid_json"]

    def test_bare_array_has_no_nodes(self, validator):
        report = validator.validate_json("[]")
        assert report.codes() == ["no_nodes"]
        assert report.codes("warning") == ["context"]

    def test_valid_document_text(self, validator):
        report = validator.validate_json(json.dumps(_doc(_article())))
        assert report.ok
        assert report.warnings == ()
        assert report.summary == "0 errors, 0 warnings"


class TestStructure:
    def test_context_warning(self, validator):
        report = validator.validate({"@context": "https://example.org", "@graph": [_article()]})
        assert report.codes("warning") == ["context"]
        assert report.ok

    def test_context_list_accepted(self, validator):
        report = validator.validate({"@context": ["https://schema.org", {"x": "y"}], "@graph": [_article()]})
        assert "context" not in report.codes("warning")

    def test_no_nodes(self, validator):
        report = validator.validate({"@context": "https://schema.org"})
        assert [e.message for e in report.errors] == ["No schema nodes found."]

    def test_fragment_reference_unresolved(self, validator):
        report = validator.validate(_doc(_article(about={"@id": "#X"})))
        assert report.codes() == ["unresolved_id"]
        assert report.errors[0].message == "Unresolved @id reference: #X"
        assert report.errors[0].path == "@graph[0].about.@id"

    def test_site_reference_unresolved(self, validator):
        report = validator.validate(_doc(_article(author={"@id": "https://example.com/author/jo/#author"})))
        assert report.codes() == ["unresolved_id"]

    def test_foreign_reference_ignored(self, validator):
        report = validator.validate(_doc(_article(sameAs={"@id": "https://en.wikipedia.org/wiki/Lounge"})))
        assert report.ok

    def test_resolved_reference(self, validator):
        org = {"@type": "Organization", "@id": "https://example.com/#organization", "name": "Acme", "url": "u"}
        report = validator.validate(_doc(org, _article(publisher={"@id": org["@id"]})))
        assert report.ok
        assert report.warnings == ()

    def test_duplicate_id_is_warning(self, validator):
        report = validator.validate(_doc(_article(), _article()))
        assert report.ok
        assert report.codes("warning") == ["duplicate_id"]
        assert report.warnings[0].id == "https://example.com/post/#primary"

    def test_internal_id_detection(self):
        validator = SchemaValidator("https://example.com/blog/")
        assert validator.is_internal_id("#frag")
        assert validator.is_internal_id("https://example.com/other/#x")
        assert not validator.is_internal_id("https://cdn.example.net/#x")
        assert not validator.is_internal_id("urn:uuid:1234")
        assert not validator.is_internal_id("  ")


class TestTypeRules:
    def test_missing_required_is_error(self, validator):
        report = validator.validate(_doc(_article(headline="")))
        assert report.codes() == ["missing_required"]
        assert report.errors[0].message == "BlogPosting missing required property: headline"
        assert report.errors[0].path == "@graph[0].headline"

    def test_missing_recommended_is_warning(self, validator):
        node = _article()
        del node["image"]
        report = validator.validate(_doc(node))
        assert report.ok
        assert [w.message for w in report.warnings] == ["BlogPosting missing recommended property: image"]

    def test_infrastructure_types_warn(self, validator):
        report = validator.validate(_doc({"@type": "WebPage", "@id": "https://example.com/p/#webpage"}))
        assert report.ok
        assert report.codes("warning") == ["missing_required", "missing_required"]

    def test_video_one_of(self, validator):
        video = {"@type": "VideoObject", "name": "v", "thumbnailUrl": "t", "uploadDate": "2024-01-01"}
        report = validator.validate(_doc(video))
        assert report.codes() == ["missing_one_of"]
        assert report.errors[0].message == "VideoObject requires at least one of: contentUrl, embedUrl"

    def test_multi_typed_node_checked_for_each_type(self, validator):
        report = validator.validate(_doc({"@type": ["Product", "Place"]}))
        assert report.codes() == ["missing_required", "missing_required"]
        assert {e.type for e in report.errors} == {"Product", "Place"}

    def test_unknown_type_has_no_rules(self, validator):
        report = validator.validate(_doc({"@type": "Recipe"}))
        assert report.ok
        assert report.warnings == ()


class TestBespokeChecks:
    def test_faq_without_questions(self, validator):
        report = validator.validate(_doc({"@type": "FAQPage", "inLanguage": "en"}))
        assert "faq_empty" in report.codes()

    def test_faq_question_without_answer(self, validator):
        faq = {
            "@type": "FAQPage",
            "inLanguage": "en",
            "mainEntity": [
                {"@type": "Question", "name": "Q1", "acceptedAnswer": {"text": "A1"}},
                {"@type": "Question", "name": "Q2"},
            ],
        }
        report = validator.validate(_doc(faq))
        assert report.codes() == ["faq_question_invalid"]
        assert report.errors[0].path == "@graph[0].mainEntity[1]"

    def test_faq_single_question_object(self, validator):
        faq = {
            "@type": "FAQPage",
            "inLanguage": "en",
            "mainEntity": {"@type": "Question", "name": "Q", "acceptedAnswer": {"text": "A"}},
        }
        assert validator.validate(_doc(faq)).ok

    def test_howto_step_without_text(self, validator):
        howto = {
            "@type": "HowTo",
            "image": "i",
            "totalTime": "PT1H",
            "step": [{"@type": "HowToStep", "text": "Do it"}, {"@type": "HowToStep"}],
        }
        report = validator.validate(_doc(howto))
        assert report.ok
        assert report.codes("warning") == ["howto_step_missing_text"]

    def test_itemlist_entry_checks(self, validator):
        itemlist = {
            "@type": "ItemList",
            "name": "n",
            "description": "d",
            "itemListElement": [{"@type": "ListItem", "position": 1, "name": "a"}, {"@type": "ListItem"}],
        }
        report = validator.validate(_doc(itemlist))
        assert report.ok
        assert report.codes("warning") == ["itemlist_missing_position", "itemlist_missing_name"]

    def test_review_rating_without_value(self, validator):
        review = {
            "@type": "Review",
            "itemReviewed": {"@type": "Thing", "name": "x"},
            "reviewBody": "b",
            "reviewRating": {"@type": "Rating", "bestRating": 5},
            "author": {"name": "Jo"},
            "datePublished": "2024-05-01",
        }
        report = validator.validate(_doc(review))
        assert report.ok
        assert report.codes("warning") == ["review_missing_rating_value"]

    def test_review_without_item(self, validator):
        report = validator.validate(_doc({"@type": "Review", "reviewRating": {"ratingValue": 4}}))
        assert report.codes() == ["missing_required"]
