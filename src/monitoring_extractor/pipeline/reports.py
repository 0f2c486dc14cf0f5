"""Message templates for the extraction report."""

REPORT_HEADER = """
# Cold extract
"""

REPORT_SECTION_SOURCE = """
## Source
- **Namespace:** {namespace}
- **PVC:** {pvc_name}
- **Pod:** {pod_name} (deleted)
"""

REPORT_SECTION_OUTPUT = """
## Output
Wrote **{files}** files ({size}) and **{directories}** directories to `{directory}` in {elapsed:.1f}s.
"""

REPORT_SKIPPED = """
{skipped} entries were skipped (symlinks, devices or other non-regular files).
"""

REPORT_EMPTY = """
The volume was empty; `{directory}` contains no files.
"""
