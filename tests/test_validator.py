from simple_gcode.gcode_validator import (
    HAZARD_G91,
    format_validation_details,
    format_validation_report,
    validate_gcode_lines,
)
from simple_gcode.utils.config import Dialect, ParserConfig


def test_clean_program():
    report = validate_gcode_lines(["G21 G90", "G0 X1 Y1", "G1 Z-1 F100", "M30"])
    assert report.error_count == 0
    assert report.program_end
    assert report.program_lines == 4
    assert "No issues detected." in format_validation_report(report)
    assert "No issues detected." in format_validation_details(report)


def test_errors_are_counted_and_parsing_continues():
    lines = ["G21", "G0 G1 X1", "G91", "G1 X5 X6", "G1 X5", "M30"]
    report = validate_gcode_lines(lines)
    assert report.error_count == 2
    assert report.errors_by_type["ModalGroupViolationError"] == 1
    assert report.errors_by_type["RepeatedWordError"] == 1
    assert HAZARD_G91 in report.modal_hazards
    assert report.program_end
    assert [issue.line_no for issue in report.line_issues] == [2, 3, 4]


def test_dialect_specific_commands():
    lines = ["G81 X1 Y1 Z-1 R1", "G80", "M2"]
    embedded = validate_gcode_lines(lines, ParserConfig(dialect=Dialect.EMBEDDED))
    extended = validate_gcode_lines(lines)
    assert embedded.unsupported_commands["G81"] == 1
    assert embedded.dialect == "embedded"
    assert extended.error_count == 0
    assert "Unsupported in embedded dialect: G81 (1)." in format_validation_report(embedded)


def test_missing_program_end_is_reported():
    report = validate_gcode_lines(["G0 X1"])
    assert not report.program_end
    assert "No program end" in format_validation_report(report)


def test_details_list_offending_lines():
    report = validate_gcode_lines(["G0 X1", "G1 X1 U2"])
    details = format_validation_details(report)
    assert "Line 2: Command word not recognized (U2)" in details
    assert "  G1 X1 U2" in details


def test_none_report():
    assert format_validation_report(None) == "G-code validation: unavailable."
    assert format_validation_details(None) == "G-code validation details: unavailable."
