"""Output formatters (EDL markers, JSON, text)."""

from introscan.export.edl import EdlManager, edl_path
from introscan.export.json_out import export_json, intros_to_dict
from introscan.export.text_report import format_timestamp, intro_report, text_report
