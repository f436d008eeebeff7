"""Tests for parsing classifier output, building requests and post-fixes."""

import pytest

from schemaai.classification import (
    AUTO_TYPE,
    ArticleDetails,
    Classification,
    ClassificationRequest,
    ItemListDetails,
    ListEntry,
    ReviewDetails,
    TripDetails,
    parse_details,
)
from schemaai.errors import ResponseShapeError
from schemaai.pipeline.post_fixes import (
    TRIP_JUSTIFICATION,
    apply_post_fixes,
    content_indicates_trip,
)

from tests.conftest import lounge_payload


def _request(title="A post", text="", **kwargs) -> ClassificationRequest:
    return ClassificationRequest(content_id=1, title=title, text=text, **kwargs)


def _airline_review(rating=None) -> Classification:
    return Classification(
        primary_type="Review",
        justification="j",
        summary="s",
        details=ReviewDetails(reviewed_type="Airline", rating=rating),
    )


class TestFromPayload:
    def test_lounge_payload(self):
        classification = Classification.from_payload(lounge_payload())

        assert classification.primary_type == "Review"
        assert classification.missing_info == ["opening hours"]
        assert isinstance(classification.details, ReviewDetails)
        assert classification.details.lounge.iata == "exi"
        assert classification.details.lounge.price_range.startswith("$50")
        assert classification.details.lounge.geo.latitude == 51.47

    def test_result_wrapper(self):
        classification = Classification.from_payload({"result": {"type": "Article", "justification": "", "summary": ""}})
        assert classification.primary_type == "Article"
        assert isinstance(classification.details, ArticleDetails)

    @pytest.mark.parametrize(
        "payload,message",
        [
            ([], "not a JSON object"),
            ({"result": "x"}, '"result" must be an object'),
            ({"type": "Article", "summary": "s"}, "missing required keys"),
        ],
    )
    def test_shape_errors(self, payload, message):
        with pytest.raises(ResponseShapeError, match=message):
            Classification.from_payload(payload)

    def test_missing_info_must_be_list(self):
        payload = {"type": "Article", "justification": "j", "summary": "s", "missing_info": "Rating"}
        assert Classification.from_payload(payload).missing_info == []

    def test_non_string_fields_coerced(self):
        payload = {"type": "Article", "justification": None, "summary": 5}
        classification = Classification.from_payload(payload)
        assert classification.justification == ""
        assert classification.summary == "5"


class TestParseDetails:
    def test_bad_field_dropped(self):
        raw = {"lounge": {"name": "L", "geo": {"latitude": "north", "lng": 1}}, "rating": 4}
        details = parse_details("Review", raw)

        assert details.rating == 4
        assert details.lounge.name == "L"
        assert details.lounge.geo.latitude is None
        assert details.lounge.geo.longitude == 1

    def test_bad_list_entry_field_dropped(self):
        details = parse_details("FAQPage", {"faq": [{"q": "Q", "a": "A"}, {"q": ["not", "text"]}]})
        assert [entry.q for entry in details.faq] == ["Q", ""]

    def test_aliases(self):
        details = parse_details("Place", {"place_name": "P", "phone": "123", "openingHours": ["Mo-Fr 9-5"]})
        assert details.telephone == "123"
        assert details.opening_hours == ["Mo-Fr 9-5"]

    def test_numbers_coerced_to_text(self):
        details = parse_details("Airline", {"airline_name": "Acme", "iata": 12})
        assert details.iata == "12"

    def test_unknown_type_uses_article_details(self):
        assert isinstance(parse_details("Recipe", {"x": 1}), ArticleDetails)

    def test_non_mapping_input(self):
        assert parse_details("Trip", "nonsense") == TripDetails()

    def test_forced_reviewed_type(self):
        classification = Classification.from_payload(lounge_payload())
        forced = classification.with_forced_reviewed_type("Hotel")

        assert forced.details.reviewed_type == "Hotel"
        assert classification.details.reviewed_type == "LocalBusiness"
        assert classification.with_forced_reviewed_type("") is classification


class TestClassificationRequest:
    def test_from_content(self, make_record):
        body = (
            "<p>Best &amp; brightest</p><script>x()</script>"
            '<ul><li><a href="/a/">Alpha</a></li><li>Beta</li><li>Gamma</li></ul>'
        )
        record = make_record(title="Rock &amp; Roll", body=body)
        request = ClassificationRequest.from_content(record, site_url="https://example.com")

        assert request.title == "Rock & Roll"
        assert "x()" not in request.text
        assert request.text.startswith("Best & brightest")
        assert [hint.name for hint in request.list_hints] == ["Alpha", "Beta", "Gamma"]
        assert request.list_hints[0].url == "https://example.com/a/"
        assert request.forced_type == AUTO_TYPE
        assert not request.has_forced_type

    def test_text_is_truncated(self, make_record):
        record = make_record(body="<p>" + "word " * 100 + "</p>")
        request = ClassificationRequest.from_content(record, "Review", "Hotel", max_chars=20)

        assert len(request.text) == 20
        assert request.has_forced_type
        assert request.forced_reviewed_type == "Hotel"


class TestPostFixes:
    def test_empty_itemlist_filled_from_hints(self):
        classification = Classification(primary_type="ItemList", details=ItemListDetails())
        request = _request(list_hints=[ListEntry(name="A"), ListEntry(name="B"), ListEntry(name="C")])

        fixed = apply_post_fixes(classification, request)

        assert [entry.name for entry in fixed.details.itemlist] == ["A", "B", "C"]

    def test_trip_report_title_reclassified(self):
        fixed = apply_post_fixes(_airline_review(), _request(title="Trip Report: Acme Air to Lisbon"))

        assert fixed.primary_type == "Trip"
        assert isinstance(fixed.details, TripDetails)
        assert fixed.details.trip_name == "Trip Report: Acme Air to Lisbon"
        assert fixed.justification == TRIP_JUSTIFICATION

    def test_review_title_kept(self):
        fixed = apply_post_fixes(_airline_review(), _request(title="Acme Air review", text="Day 1 we flew"))
        assert fixed.primary_type == "Review"

    def test_trip_signals_without_rating(self):
        fixed = apply_post_fixes(_airline_review(), _request(text="Our trip: day 1 in Lisbon, then we went on."))
        assert fixed.primary_type == "Trip"

    def test_rated_review_with_trip_signals_kept(self):
        text = "Our trip on day 2 ended with a verdict: four stars."
        fixed = apply_post_fixes(_airline_review(rating=4), _request(text=text))
        assert fixed.primary_type == "Review"

    def test_lounge_review_never_reclassified(self, lounge_classification):
        fixed = apply_post_fixes(lounge_classification, _request(title="Trip report", text="itinerary"))
        assert fixed.primary_type == "Review"

    def test_entities_decoded(self):
        classification = Classification(primary_type="Article", justification="A &amp; B", summary="&quot;hi&quot;")
        fixed = apply_post_fixes(classification, _request())
        assert fixed.justification == "A & B"
        assert fixed.summary == '"hi"'

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Our itinerary for Portugal", True),
            ("Day 3: Porto", True),
            ("We visited Sintra on a day trip", True),
            ("A journey", False),
            ("Nothing to see here", False),
        ],
    )
    def test_trip_signals(self, text, expected):
        assert content_indicates_trip(text) is expected
