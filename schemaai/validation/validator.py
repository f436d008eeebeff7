"""Local structural and per-type validation of JSON-LD documents.

Two passes run over the flattened node list:

* structural: duplicate ``@id`` values are warnings; references to ids that
  are absent from the document are errors when the id is internal (a
  fragment, a URL on the site host, or a URL under the site URL) and
  ignored otherwise.
* type rules: `TYPE_RULES` plus dedicated checks for FAQPage, HowTo,
  ItemList and Review.

The validator works on plain mappings, so hand-edited documents that do not
round-trip through `Graph` can still be checked.
"""

import json
import logging
from collections import Counter
from typing import Any, Iterator, Mapping, Optional, Union
from urllib.parse import urlparse

from schemaai.graph.model import Graph
from schemaai.graph.values import ID_KEY, TYPE_KEY, iter_references
from schemaai.validation.report import ReportBuilder, ValidationReport
from schemaai.validation.rules import TYPE_RULES, TypeRule

logger = logging.getLogger(__name__)

ROOT_PATH = "@root"


def value_is_empty(value: Any) -> bool:
    """None, blank strings and empty containers are empty; numbers and booleans never are."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def value_at(node: Mapping[str, Any], dotted: str) -> Any:
    current: Any = node
    for part in dotted.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


def context_is_schema(context: Any) -> bool:
    if isinstance(context, str):
        return "schema.org" in context.lower()
    if isinstance(context, (list, tuple)):
        return any(isinstance(item, str) and "schema.org" in item.lower() for item in context)
    return False


def extract_nodes(document: Mapping[str, Any]) -> list[tuple[Mapping[str, Any], str]]:
    """``(node, path)`` pairs from ``@graph``, or the root itself when it is typed."""
    graph = document.get("@graph")
    if isinstance(graph, list):
        return [(node, f"@graph[{index}]") for index, node in enumerate(graph) if isinstance(node, Mapping)]
    if TYPE_KEY in document:
        return [(document, ROOT_PATH)]
    return []


def _types_of(node: Mapping[str, Any]) -> list[str]:
    raw = node.get(TYPE_KEY)
    if isinstance(raw, (list, tuple)):
        return [str(t) for t in raw if t is not None and str(t)]
    if raw is None:
        return []
    return [str(raw)] if str(raw) else []


def _as_entries(value: Any) -> Optional[list[Any]]:
    """Container value as a list; a single object counts as one entry."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping) and value:
        return [value]
    return None


class SchemaValidator:
    """Validates documents for one site; `site_url` decides which ids are internal."""

    def __init__(self, site_url: str):
        self.site_url = site_url
        self.site_host = (urlparse(site_url).hostname or "").lower()

    def is_internal_id(self, node_id: str) -> bool:
        node_id = node_id.strip()
        if not node_id:
            return False
        if node_id.startswith("#"):
            return True
        try:
            host = (urlparse(node_id).hostname or "").lower()
        except ValueError:
            return False
        if not host:
            return False
        if self.site_host and host == self.site_host:
            return True
        return bool(self.site_url) and node_id.startswith(self.site_url)

    def validate_json(self, text: str) -> ValidationReport:
        report = ReportBuilder()
        text = text.strip()
        if not text:
            report.add("error", "Empty JSON provided.", code="empty_json")
            return report.build()
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            report.add("error", f"Invalid JSON: {exc.msg}", code="invalid_json")
            return report.build()
        if isinstance(decoded, list):
            # A bare array carries neither @context nor @graph.
            decoded = {}
        if not isinstance(decoded, Mapping):
            report.add("error", "Invalid JSON: expected an object", code="invalid_json")
            return report.build()
        return self.validate_document(decoded)

    def validate(self, graph: Union[Graph, Mapping[str, Any]]) -> ValidationReport:
        if isinstance(graph, Graph):
            return self.validate_document(graph.to_jsonld())
        return self.validate_document(graph)

    def validate_document(self, document: Mapping[str, Any]) -> ValidationReport:
        report = ReportBuilder()

        if not context_is_schema(document.get("@context", "")):
            report.add("warning", "@context should reference schema.org.", code="context")

        nodes = extract_nodes(document)
        if not nodes:
            report.add("error", "No schema nodes found.", code="no_nodes")
            return report.build()

        self._check_ids(nodes, report)
        for node, path in nodes:
            for type_name in _types_of(node):
                rule = TYPE_RULES.get(type_name)
                if rule is not None:
                    self._check_rule(node, type_name, path, rule, report)
                check = self._BESPOKE_CHECKS.get(type_name)
                if check is not None:
                    check(self, node, path, report)

        built = report.build()
        logger.debug("Validated %d nodes: %s", len(nodes), built.summary)
        return built

    def _check_ids(self, nodes: list[tuple[Mapping[str, Any], str]], report: ReportBuilder) -> None:
        counts: Counter[str] = Counter()
        for node, _ in nodes:
            node_id = node.get(ID_KEY)
            if isinstance(node_id, str) and node_id:
                counts[node_id] += 1

        for node_id, count in counts.items():
            if count > 1:
                report.add("warning", f"Duplicate @id detected: {node_id}", code="duplicate_id", id=node_id)

        for target, ref_path in self._references(nodes):
            if not target or target in counts:
                continue
            if self.is_internal_id(target):
                report.add(
                    "error",
                    f"Unresolved @id reference: {target}",
                    code="unresolved_id",
                    id=target,
                    path=ref_path,
                )

    @staticmethod
    def _references(nodes: list[tuple[Mapping[str, Any], str]]) -> Iterator[tuple[str, str]]:
        for node, path in nodes:
            yield from iter_references(node, path)

    @staticmethod
    def _check_rule(
        node: Mapping[str, Any], type_name: str, path: str, rule: TypeRule, report: ReportBuilder
    ) -> None:
        for prop in rule.required:
            if value_is_empty(value_at(node, prop)):
                report.add(
                    rule.severity,
                    f"{type_name} missing required property: {prop}",
                    code="missing_required",
                    type=type_name,
                    path=f"{path}.{prop}",
                )
        for prop in rule.recommended:
            if value_is_empty(value_at(node, prop)):
                report.add(
                    "warning",
                    f"{type_name} missing recommended property: {prop}",
                    code="missing_recommended",
                    type=type_name,
                    path=f"{path}.{prop}",
                )
        if rule.one_of and all(value_is_empty(value_at(node, prop)) for prop in rule.one_of):
            report.add(
                rule.severity,
                f"{type_name} requires at least one of: {', '.join(rule.one_of)}",
                code="missing_one_of",
                type=type_name,
                path=path,
            )

    def _check_faq_page(self, node: Mapping[str, Any], path: str, report: ReportBuilder) -> None:
        questions = _as_entries(node.get("mainEntity"))
        if not questions:
            report.add(
                "error",
                "FAQPage requires at least one Question in mainEntity.",
                code="faq_empty",
                type="FAQPage",
                path=f"{path}.mainEntity",
            )
            return
        for index, question in enumerate(questions):
            if not isinstance(question, Mapping):
                continue
            answer = question.get("acceptedAnswer")
            answer_text = answer.get("text", "") if isinstance(answer, Mapping) else ""
            if value_is_empty(question.get("name", "")) or value_is_empty(answer_text):
                report.add(
                    "error",
                    "FAQPage Question must include name and acceptedAnswer.text.",
                    code="faq_question_invalid",
                    type="FAQPage",
                    path=f"{path}.mainEntity[{index}]",
                )

    def _check_howto(self, node: Mapping[str, Any], path: str, report: ReportBuilder) -> None:
        steps = _as_entries(node.get("step"))
        if not steps:
            report.add(
                "error", "HowTo requires at least one step.", code="howto_empty", type="HowTo", path=f"{path}.step"
            )
            return
        for index, step in enumerate(steps):
            if isinstance(step, Mapping) and value_is_empty(step.get("text", "")):
                report.add(
                    "warning",
                    "HowTo step is missing text.",
                    code="howto_step_missing_text",
                    type="HowTo",
                    path=f"{path}.step[{index}].text",
                )

    def _check_item_list(self, node: Mapping[str, Any], path: str, report: ReportBuilder) -> None:
        items = _as_entries(node.get("itemListElement"))
        if not items:
            report.add(
                "error",
                "ItemList requires itemListElement entries.",
                code="itemlist_empty",
                type="ItemList",
                path=f"{path}.itemListElement",
            )
            return
        for index, item in enumerate(items):
            if not isinstance(item, Mapping):
                continue
            if value_is_empty(item.get("position")):
                report.add(
                    "warning",
                    "ItemList entry is missing position.",
                    code="itemlist_missing_position",
                    type="ItemList",
                    path=f"{path}.itemListElement[{index}].position",
                )
            if value_is_empty(item.get("name", "")) and value_is_empty(item.get("item")):
                report.add(
                    "warning",
                    "ItemList entry is missing name or item reference.",
                    code="itemlist_missing_name",
                    type="ItemList",
                    path=f"{path}.itemListElement[{index}]",
                )

    def _check_review(self, node: Mapping[str, Any], path: str, report: ReportBuilder) -> None:
        rating = node.get("reviewRating")
        if isinstance(rating, Mapping) and value_is_empty(rating.get("ratingValue")):
            report.add(
                "warning",
                "Review rating is missing ratingValue.",
                code="review_missing_rating_value",
                type="Review",
                path=f"{path}.reviewRating.ratingValue",
            )

    _BESPOKE_CHECKS = {
        "FAQPage": _check_faq_page,
        "HowTo": _check_howto,
        "ItemList": _check_item_list,
        "Review": _check_review,
    }
