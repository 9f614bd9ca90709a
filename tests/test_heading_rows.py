from datetime import date

from app.constants.workspace import HeadingStatus, WorkflowStage
from app.services.heading_rows import (
    normalize_enum,
    normalize_header,
    parse_heading_rows,
    parse_snapshot_rows,
    records_to_rows,
    to_nullable_int,
    to_nullable_string,
)


def test_normalize_header_collapses_spacing_and_punctuation():
    assert normalize_header(" Heading Name ") == "heading_name"
    assert normalize_header("Rank-Points") == "rank_points"
    assert normalize_header("Family (s)") == "family_s"
    assert normalize_header(None) == ""


def test_to_nullable_helpers():
    assert to_nullable_string("  ") is None
    assert to_nullable_string(12.0) == "12"
    assert to_nullable_string(date(2026, 2, 14)) == "2026-02-14"
    assert to_nullable_int("0042") == 42
    assert to_nullable_int("12a") is None
    assert to_nullable_int(None) is None


def test_normalize_enum_is_case_insensitive_with_default():
    assert normalize_enum("RANKED", HeadingStatus, HeadingStatus.ADDITIONAL) is HeadingStatus.RANKED
    assert normalize_enum("bogus", HeadingStatus, HeadingStatus.ADDITIONAL) is HeadingStatus.ADDITIONAL
    assert normalize_enum(None, WorkflowStage, None) is None


def test_parse_heading_rows_reads_by_header_synonyms():
    rows = [
        ["Classification", "Classification ID", "Family", "Status", "Site Link", "Workflow Stage"],
        ["Pumps", "501", "Fluids, Industrial", "Existing", "https://example.com/pumps", "Supported"],
        [None, "502", "Ignored"],
    ]

    parsed = parse_heading_rows(rows, context_family="Industrial")

    assert len(parsed) == 1
    row = parsed[0]
    assert row.heading_name == "Pumps"
    assert row.heading_id == 501
    assert row.families == ["Fluids", "Industrial"]
    assert row.status is HeadingStatus.EXISTING
    assert row.supported_link == "https://example.com/pumps"
    assert row.workflow_stage is WorkflowStage.SUPPORTED


def test_parse_heading_rows_defaults_when_columns_missing():
    parsed = parse_heading_rows([["name", "rank_points"], ["Widgets", ""]])

    assert parsed[0].heading_name == "Widgets"
    assert parsed[0].heading_id is None
    assert parsed[0].status is HeadingStatus.ADDITIONAL
    assert parsed[0].workflow_stage is None
    assert parsed[0].rank_points is None


def test_parse_heading_rows_falls_back_to_positions_without_header():
    parsed = parse_heading_rows([["Valves", "77", "Definition text", "Fluids"]])

    assert parsed[0].heading_name == "Valves"
    assert parsed[0].heading_id == 77
    assert parsed[0].definition == "Definition text"
    assert parsed[0].families == ["Fluids"]


def test_parse_heading_rows_accepts_records():
    parsed = parse_heading_rows([{"id": None, "name": "Widgets", "rank_points": ""}])

    assert [row.heading_name for row in parsed] == ["Widgets"]
    assert parsed[0].heading_id is None


def test_records_to_rows_uses_union_of_keys():
    assert records_to_rows([{"name": "A"}, {"name": "B", "id": 3}]) == [
        ["name", "id"],
        ["A", None],
        ["B", 3],
    ]


def test_parse_snapshot_rows_tracks_ranking():
    parsed = parse_snapshot_rows(
        [
            ["heading", "heading_id", "rank_points", "quality"],
            ["Widgets", "", "150", "High"],
            ["Gadgets", "12", "", None],
        ]
    )

    assert [row.heading_name for row in parsed] == ["Widgets", "Gadgets"]
    assert parsed[0].is_ranked is True
    assert parsed[0].quality == "High"
    assert parsed[1].is_ranked is False
    assert parsed[1].heading_id == 12
