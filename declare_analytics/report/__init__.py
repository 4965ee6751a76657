"""
Report generation for conformance analyses.
"""

from .generator import (
    ReportGenerator,
    convert_for_json,
    generate_json_report,
    generate_markdown_report,
)

__all__ = ['ReportGenerator', 'convert_for_json', 'generate_json_report', 'generate_markdown_report']
