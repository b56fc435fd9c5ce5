from contacts_import import csv_rows as cr
from contacts_import.csv_analysis import analyze_csv
from contacts_import.fields import SKIP_FIELD
from contacts_import.models import ParsedContact


def test_mapping_applies_trimmed_values_and_skips():
    row = ["  Jane ", "Doe", "", "ignored"]
    mapping = {0: "first_name", 1: "last_name", 2: "primary_email", 3: SKIP_FIELD}
    assert cr.build_contact_from_row(row, mapping) == {"first_name": "Jane", "last_name": "Doe"}


def test_linkedin_value_in_website_column_is_rerouted():
    row = ["Jane", "https://linkedin.com/in/janedoe"]
    contact = cr.build_contact_from_row(row, {0: "first_name", 1: "website_url"})
    assert contact["linkedin_url"] == "https://linkedin.com/in/janedoe"
    assert "website_url" not in contact


def test_plain_url_in_linkedin_column_becomes_website():
    row = ["Jane", "https://jane.dev"]
    contact = cr.build_contact_from_row(row, {0: "first_name", 1: "linkedin_url"})
    assert contact["website_url"] == "https://jane.dev"
    assert "linkedin_url" not in contact


def test_rerouted_url_goes_to_notes_when_slot_is_taken():
    row = ["Jane", "https://jane.dev", "https://old.dev", "https://linkedin.com/in/a", "https://linkedin.com/in/b"]
    mapping = {0: "first_name", 1: "website_url", 2: "linkedin_url", 3: "linkedin_url", 4: "website_url"}
    contact = cr.build_contact_from_row(row, mapping)
    assert contact["website_url"] == "https://jane.dev"
    assert contact["linkedin_url"] == "https://linkedin.com/in/a"
    assert contact["notes"] == (
        "[Additional website: https://old.dev]\n"
        "[Additional LinkedIn: https://linkedin.com/in/b]"
    )


def test_rerouting_is_idempotent():
    row = ["Jane", "https://linkedin.com/in/janedoe", "https://jane.dev"]
    mapping = {0: "first_name", 1: "website_url", 2: "linkedin_url"}
    first = cr.build_contact_from_row(row, mapping)
    fields = list(first)
    again = cr.build_contact_from_row(
        [first[name] for name in fields], {index: name for index, name in enumerate(fields)}
    )
    assert again == first


def test_unmapped_columns_are_folded_into_notes():
    row = ["Jane", "Met at PyCon", "blue", "", "tall"]
    mapping = {0: "first_name", 1: "notes"}
    unmapped = [(2, "Favourite Colour"), (3, "Empty"), (4, "Height")]
    contact = cr.build_contact_from_row(row, mapping, unmapped)
    assert contact["notes"] == "Met at PyCon\n\n[Favourite Colour: blue] [Height: tall]"

    without = cr.build_contact_from_row(row, mapping, unmapped, include_unmapped=False)
    assert without["notes"] == "Met at PyCon"


def test_unmapped_columns_alone_become_notes():
    contact = cr.build_contact_from_row(["Jane", "blue"], {0: "first_name"}, [(1, "Colour")])
    assert contact["notes"] == "[Colour: blue]"


def test_multiple_note_columns_are_joined():
    contact = cr.build_contact_from_row(["Jane", "one", "two"], {0: "first_name", 1: "notes", 2: "notes"})
    assert contact["notes"] == "one\ntwo"


def test_format_unmapped_for_notes_drops_blank_values():
    assert cr.format_unmapped_for_notes([("A", "1"), ("B", "  "), ("C", "3")]) == "[A: 1] [C: 3]"
    assert cr.format_unmapped_for_notes([]) == ""


def test_has_required_fields():
    assert cr.has_required_fields({"first_name": "Jane"})
    assert not cr.has_required_fields({"first_name": "   "})
    assert not cr.has_required_fields({"last_name": "Doe"})
    assert cr.has_required_fields(ParsedContact(temp_id="t", first_name="Jane"))


def test_build_contacts_uses_default_mapping_and_splits_missing_names():
    headers = ["First Name", "Last Name", "Email", "Favourite Colour"]
    rows = [
        ["Jane", "Doe", "jane@x.com", "blue"],
        ["", "Nameless", "n@x.com", ""],
    ]
    result = cr.build_contacts(headers, rows)
    assert result.mapping == {0: "first_name", 1: "last_name", 2: "primary_email"}
    assert result.contacts == [
        {
            "first_name": "Jane",
            "last_name": "Doe",
            "primary_email": "jane@x.com",
            "notes": "[Favourite Colour: blue]",
        }
    ]
    assert result.missing_name == [(1, {"last_name": "Nameless", "primary_email": "n@x.com"})]


def test_build_contacts_respects_caller_mapping():
    headers = ["Name", "Colour"]
    rows = [["Jane", "blue"]]
    analysis = analyze_csv(headers, rows)
    result = cr.build_contacts(headers, rows, analysis, mapping={0: "first_name"})
    assert result.contacts == [{"first_name": "Jane", "notes": "[Colour: blue]"}]


def test_demoted_column_is_kept_in_notes():
    headers = ["First Name", "Phone", "Mobile"]
    rows = [["Jane", "415-555-2671", "415-555-2672"]]
    result = cr.build_contacts(headers, rows)
    (contact,) = result.contacts
    assert contact["primary_phone"] == "415-555-2671"
    assert contact["notes"] == "[Mobile: 415-555-2672]"
