import pytest

from contacts_import import csv_analysis as ca
from contacts_import.fields import SKIP_FIELD
from contacts_import.models import Confidence


@pytest.mark.parametrize(
    "header, field",
    [
        ("First Name", "first_name"),
        ("given_name", "first_name"),
        ("Surname", "last_name"),
        ("E-mail 1 - Value", "primary_email"),
        ("Email", "primary_email"),
        ("E-mail 2 - Value", "secondary_email"),
        ("Phone 1 - Value", "primary_phone"),
        ("Mobile", "primary_phone"),
        ("Work Phone", "secondary_phone"),
        ("Organization 1 - Name", "company"),
        ("Organization 1 - Title", "title"),
        ("Address 1 - Street", "street_address"),
        ("Address 1 - Postal Code", "zip_code"),
        ("Location", "location"),
        ("LinkedIn Profile", "linkedin_url"),
        ("Website 1 - Value", "website_url"),
        ("URL", "website_url"),
        ("Referred By", "referred_by"),
        ("Notes", "notes"),
    ],
)
def test_detect_field_mapping(header, field):
    match = ca.detect_field_mapping(header)
    assert match is not None
    assert match.field == field


def test_detect_field_mapping_priorities_and_misses():
    assert ca.detect_field_mapping("E-mail 2 - Value").priority == 2
    assert ca.detect_field_mapping("Email").priority == 1
    assert ca.detect_field_mapping("Favourite Colour") is None
    assert ca.detect_field_mapping("") is None


def test_en_dash_separator_is_accepted():
    assert ca.detect_field_mapping("E-mail 1 – Value").field == "primary_email"


def test_label_and_photo_columns_are_explicit_skips():
    for header in ("E-mail 1 - Type", "Phone 1 - Label", "Photo", "Group Membership", "Phonetic First Name"):
        assert ca.should_skip_column(header)
        assert ca.detect_field_mapping(header).field == SKIP_FIELD


def test_calculate_confidence():
    assert ca.calculate_confidence("E-mail 1 - Value", "jane@x.com") is Confidence.HIGH
    assert ca.calculate_confidence("E-mail 2 - Value", "jane@x.com") is Confidence.MEDIUM
    assert ca.calculate_confidence("Email", "") is Confidence.MEDIUM
    assert ca.calculate_confidence("Favourite Colour", "blue") is Confidence.LOW
    assert ca.calculate_confidence("Photo", "http://x") is Confidence.LOW


def test_analyze_column_statistics():
    rows = [["jane@x.com"], [""], ["  "], ["bob@x.com"], [], ["amy@x.com"], [""], [""]]
    column = ca.analyze_column(0, "E-mail 1 - Value", rows)
    assert column.has_data is True
    assert column.data_count == 3
    assert column.population_percent == 38
    assert column.sample_value == "jane@x.com"
    assert column.suggested_field == "primary_email"
    assert column.confidence is Confidence.HIGH


def test_population_percent_rounds_half_up():
    rows = [["x"]] + [[""]] * 7
    assert ca.analyze_column(0, "Notes", rows).population_percent == 13


def test_explicit_skip_has_no_suggestion():
    column = ca.analyze_column(0, "Phone 1 - Type", [["Mobile"]])
    assert column.explicit_skip is True
    assert column.suggested_field is None


def test_empty_and_unrecognised_columns():
    headers = ["First Name", "Blank", "Favourite Colour"]
    rows = [["Jane", "", "blue"], ["Bob", "", ""]]
    result = ca.analyze_csv(headers, rows)
    assert result.total_rows == 2
    assert result.empty_columns == ["Blank"]
    assert [column.header for column in result.populated_columns] == ["First Name", "Favourite Colour"]
    assert [column.header for column in result.mapped_columns] == ["First Name"]
    assert [column.header for column in result.unmapped_columns] == ["Favourite Colour"]
    assert result.default_mapping() == {0: "first_name"}


def test_collision_tie_keeps_first_column():
    headers = ["First Name", "Phone", "Mobile"]
    rows = [["Jane", "415-555-2671", "415-555-2672"], ["Bob", "415-555-2673", "415-555-2674"]]
    result = ca.analyze_csv(headers, rows)
    assert result.default_mapping() == {0: "first_name", 1: "primary_phone"}
    (loser,) = result.unmapped_columns
    assert loser.header == "Mobile"
    assert loser.suggested_field == "primary_phone"
    assert loser.lost_to == 1


def test_collision_prefers_better_populated_column():
    headers = ["Phone", "Mobile"]
    rows = [["", "415-555-2672"], ["415-555-2673", "415-555-2674"]]
    result = ca.analyze_csv(headers, rows)
    assert result.default_mapping() == {1: "primary_phone"}
    (loser,) = result.unmapped_columns
    assert loser.header == "Phone"
    assert loser.lost_to == 1


def test_collision_winner_never_scores_below_loser():
    headers = ["Email", "E-mail 1 - Value", "Primary Email", "Notes"]
    rows = [
        ["a@x.com", "", "c@x.com", "n"],
        ["", "b@x.com", "d@x.com", ""],
        ["", "", "e@x.com", ""],
    ]
    result = ca.analyze_csv(headers, rows)
    winners = {column.suggested_field: column for column in result.mapped_columns}
    for loser in result.unmapped_columns:
        if loser.suggested_field is None:
            continue
        winner = winners[loser.suggested_field]
        assert ca.column_score(winner) >= ca.column_score(loser)
        assert loser.lost_to == winner.index
    assert winners["primary_email"].header == "Primary Email"


def _partitions(result):
    return (
        [(column.index, column.header, column.suggested_field) for column in result.mapped_columns],
        [(column.index, column.header, column.lost_to) for column in result.unmapped_columns],
    )


def test_analysis_is_deterministic():
    headers = ["First Name", "Phone", "Mobile", "Website", "Misc"]
    rows = [["Jane", "1", "2", "https://a.dev", "x"], ["Bob", "", "3", "", ""]]
    first = ca.analyze_csv(headers, rows)
    second = ca.analyze_csv(headers, rows)
    assert _partitions(first) == _partitions(second)
    assert _partitions(first) == (
        [(0, "First Name", "first_name"), (2, "Mobile", "primary_phone"), (3, "Website", "website_url")],
        [(4, "Misc", None), (1, "Phone", 2)],
    )
    assert [column.to_dict() for column in first.populated_columns] == [
        column.to_dict() for column in second.populated_columns
    ]


def test_no_rows_yields_empty_columns():
    result = ca.analyze_csv(["First Name", "Email"], [])
    assert result.total_rows == 0
    assert result.empty_columns == ["First Name", "Email"]
    assert result.mapped_columns == []
