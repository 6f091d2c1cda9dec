"""
Report formatting and export utilities.

Formatters operate on the report dictionary produced by
RunReport.to_dict(), so a saved JSON report renders exactly like a live
run.
"""

import json
from pathlib import Path
from typing import Any

RULE = "=" * 80
SECTION = "-" * 80

# Human-readable descriptions of each difference kind
KIND_LABELS = {
    "value": "VALUE",
    "type": "TYPE",
    "length": "LENGTH",
    "missing_in_a": "MISSING IN A",
    "missing_in_b": "MISSING IN B",
    "boolean_format": "BOOLEAN FORMAT",
    "json_parse_error": "JSON PARSE ERROR",
    "array_parse_error": "ARRAY PARSE ERROR",
}


def export_report_json(report: dict[str, Any], output_path: str | Path) -> None:
    """
    Export report to JSON file

    Args:
        report: Report dictionary
        output_path: Path to output file
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        # Driver values in payloads (datetime, Decimal, UUID) render as text
        json.dump(report, f, indent=2, default=str)


def load_report_json(input_path: str | Path) -> dict[str, Any]:
    """
    Load a report previously written by export_report_json

    Raises:
        ValueError: If the file is not a report dictionary
    """
    with open(input_path, encoding="utf-8") as f:
        report = json.load(f)
    if not isinstance(report, dict) or "results" not in report:
        raise ValueError(f"{input_path} does not contain a parity report")
    return report


def _render(value: Any) -> str:
    return json.dumps(value, default=str)


def format_difference(difference: dict[str, Any]) -> str:
    """One-line description of a difference."""
    kind = difference["kind"]
    path = difference["path"]
    value_a = difference.get("value_a")
    value_b = difference.get("value_b")

    if kind == "type":
        return f"{path}: type mismatch ({value_a} vs {value_b})"
    if kind == "length":
        return f"{path}: length mismatch ({value_a} vs {value_b})"
    if kind == "missing_in_a":
        return f"{path}: missing in A (B has: {_render(value_b)})"
    if kind == "missing_in_b":
        return f"{path}: missing in B (A has: {_render(value_a)})"
    if kind == "boolean_format":
        return f"{path}: boolean format {_render(value_a)} vs {_render(value_b)}"
    if kind in ("json_parse_error", "array_parse_error"):
        text = value_a if isinstance(value_a, str) else value_b
        return f"{path}: unparseable JSON text {_render(text)}"
    return f"{path}: {_render(value_a)} -> {_render(value_b)}"


def format_grouped_differences(
    differences: list[dict[str, Any]],
    max_per_category: int = 10,
) -> list[str]:
    """
    Group differences by kind, showing at most max_per_category per kind

    Returns:
        Output lines; truncated groups end with the number of hidden entries
    """
    groups: dict[str, list[dict[str, Any]]] = {}
    for difference in differences:
        groups.setdefault(difference["kind"], []).append(difference)

    lines = []
    for kind, items in groups.items():
        lines.append(f"{KIND_LABELS.get(kind, kind.upper())} ({len(items)}):")
        for item in items[:max_per_category]:
            lines.append(f"  {format_difference(item)}")
        if len(items) > max_per_category:
            lines.append(
                f"  ... and {len(items) - max_per_category} more {kind} differences"
            )
    return lines


def _endpoint_line(result: dict[str, Any]) -> str:
    marker = "PASS" if result["identical"] else "FAIL"
    status = result["status"]
    name = result["endpoint"]

    if status in ("success", "different"):
        detail = f"{result['rows_compared']} rows compared"
        if result["differing_rows"]:
            detail += f", {result['differing_rows']} differ"
    elif status == "count_mismatch":
        detail = f"row count mismatch: A={result['count_a']}, B={result['count_b']}"
    elif status == "empty":
        detail = "both backends returned 0 rows"
    else:
        detail = result.get("error") or status

    return f"  [{marker}] {name}: {status} ({detail})"


def _format_sample(sample: dict[str, Any]) -> list[str]:
    lines = [
        f"  Record {sample['index'] + 1}: A={sample['key_a']} ({sample['title_a']}), "
        f"B={sample['key_b']} ({sample['title_b']})"
    ]
    for difference in sample["differences"]:
        lines.append(f"    {format_difference(difference)}")
    lines.append(f"    A payload: {_render(sample['payload_a'])}")
    lines.append(f"    B payload: {_render(sample['payload_b'])}")
    return lines


def format_report_console(report: dict[str, Any], max_per_category: int = 10) -> str:
    """
    Format report for console output

    Args:
        report: Report dictionary
        max_per_category: Differences shown per kind and endpoint

    Returns:
        Formatted string for console display
    """
    lines = []

    lines.append(RULE)
    lines.append(
        f"PARITY REPORT ({report['dataset_version'].upper()}, {report['mode']})"
    )
    lines.append(RULE)
    lines.append(f"Status: {report['status']}")
    lines.append(f"Timestamp: {report['timestamp']}")
    lines.append(f"Endpoints Compared: {report['total_endpoints']}")
    lines.append(f"Endpoints Identical: {report['endpoints_identical']}")
    lines.append(f"Endpoints Different: {report['endpoints_different']}")
    if report["boolean_format_differences"]:
        lines.append(
            f"Boolean Format Differences: {report['boolean_format_differences']}"
        )
    lines.append("")

    if report.get("backends"):
        lines.append("BACKENDS")
        lines.append(SECTION)
        for name, info in report["backends"].items():
            lines.append(
                f"  {name}: {info.get('server_version') or 'unknown version'}, "
                f"database={info.get('database')}, user={info.get('user')}, "
                f"{info.get('data_standard')}"
            )
        lines.append("")

    if report.get("warnings"):
        lines.append("WARNINGS")
        lines.append(SECTION)
        for warning in report["warnings"]:
            lines.append(f"  {warning}")
        lines.append("")

    lines.append("ENDPOINTS")
    lines.append(SECTION)
    for result in report["results"]:
        lines.append(_endpoint_line(result))
    lines.append("")

    for result in report["results"]:
        if result["identical"] or not (result["differences"] or result["samples"]):
            continue

        lines.append(f"DIFFERENCES: {result['endpoint']}")
        lines.append(SECTION)
        if result["boolean_format_differences"]:
            lines.append(
                f"{result['boolean_format_differences']} boolean format differences "
                '(OneRoster requires the strings "true"/"false")'
            )
        lines.extend(format_grouped_differences(result["differences"], max_per_category))

        if result["samples"]:
            lines.append("")
            lines.append(f"First {len(result['samples'])} differing records:")
            for sample in result["samples"]:
                lines.extend(_format_sample(sample))
        lines.append("")

    column_results = [
        r for r in report["results"]
        if r.get("column_differences")
        and (r["column_differences"]["missing_in_b"] or r["column_differences"]["extra_in_b"])
    ]
    if column_results:
        lines.append("COLUMN DIFFERENCES (informational)")
        lines.append(SECTION)
        for result in column_results:
            columns = result["column_differences"]
            lines.append(f"  {result['endpoint']}:")
            if columns["missing_in_b"]:
                lines.append(f"    Only in A: {', '.join(columns['missing_in_b'])}")
            if columns["extra_in_b"]:
                lines.append(f"    Only in B: {', '.join(columns['extra_in_b'])}")
        lines.append("")

    lines.append("SUMMARY")
    lines.append(SECTION)
    lines.append(report["summary"])
    lines.append("")

    if report.get("recommendations"):
        lines.append("RECOMMENDATIONS")
        lines.append(SECTION)
        for i, rec in enumerate(report["recommendations"], 1):
            lines.append(f"{i}. {rec}")
        lines.append("")

    lines.append(RULE)

    return "\n".join(lines)
