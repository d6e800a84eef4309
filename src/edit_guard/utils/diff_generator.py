"""Utilities for computing and displaying line diffs.

The diff is a greedy walk with a single line of lookahead, not an LCS/Myers
diff. It is good enough for previews and changed-line statistics but is not
guaranteed to be minimal.
"""

from edit_guard.models.diff_models import FileDiff, LineChanges


def compute_file_diff(
    old_content: str,
    new_content: str,
    file_path: str,
) -> FileDiff:
    """Compute a line-oriented diff between two versions of a file.

    Args:
        old_content: Content currently on disk ("" for a new file).
        new_content: Proposed replacement content.
        file_path: Path shown in the diff header.

    Returns:
        Frozen FileDiff with the diff text and added/removed/modified counts.
    """
    old_lines = old_content.split("\n")
    new_lines = new_content.split("\n")

    added = 0
    removed = 0
    modified = 0
    diff_lines = [
        f"--- {file_path} (original)",
        f"+++ {file_path} (modified)",
    ]

    old_idx = 0
    new_idx = 0
    while old_idx < len(old_lines) or new_idx < len(new_lines):
        if old_idx >= len(old_lines):
            diff_lines.append(f"+{new_lines[new_idx]}")
            added += 1
            new_idx += 1
        elif new_idx >= len(new_lines):
            diff_lines.append(f"-{old_lines[old_idx]}")
            removed += 1
            old_idx += 1
        elif old_lines[old_idx] == new_lines[new_idx]:
            diff_lines.append(f" {old_lines[old_idx]}")
            old_idx += 1
            new_idx += 1
        elif (
            old_idx + 1 < len(old_lines)
            and old_lines[old_idx + 1] == new_lines[new_idx]
        ):
            diff_lines.append(f"-{old_lines[old_idx]}")
            removed += 1
            old_idx += 1
        elif (
            new_idx + 1 < len(new_lines)
            and old_lines[old_idx] == new_lines[new_idx + 1]
        ):
            diff_lines.append(f"+{new_lines[new_idx]}")
            added += 1
            new_idx += 1
        else:
            diff_lines.append(f"-{old_lines[old_idx]}")
            diff_lines.append(f"+{new_lines[new_idx]}")
            modified += 1
            old_idx += 1
            new_idx += 1

    return FileDiff(
        file_path=file_path,
        old_content=old_content,
        new_content=new_content,
        unified_diff_text="\n".join(diff_lines),
        line_changes=LineChanges(added=added, removed=removed, modified=modified),
    )


def format_diff_for_display(diff: FileDiff) -> str:
    """Render a change summary followed by the diff text."""
    changes = diff.line_changes
    summary = (
        f"Changes in {diff.file_path}:\n"
        f"  +{changes.added} lines added\n"
        f"  -{changes.removed} lines removed\n"
        f"  ~{changes.modified} lines modified\n"
    )
    return summary + "\n" + diff.unified_diff_text


def detect_code_style(source_code: str) -> dict[str, str]:
    """Detect code style conventions from source code.

    Args:
        source_code: The source code to analyse.

    Returns:
        Dict with keys:
            "indent": e.g. "2 spaces", "4 spaces", "tabs"
            "quotes": "single" or "double"
    """
    indent_style = "4 spaces"
    if not source_code:
        return {"indent": indent_style, "quotes": "double"}

    indent_counts: dict[int, int] = {}
    for line in source_code.splitlines():
        if not line or not line[0].isspace():
            continue
        if line[0] == "\t":
            indent_style = "tabs"
            break
        spaces = len(line) - len(line.lstrip(" "))
        if spaces > 0:
            indent_counts[spaces] = indent_counts.get(spaces, 0) + 1

    if indent_style != "tabs" and indent_counts:
        # Smallest indent seen is the base unit
        indent_style = f"{min(indent_counts)} spaces"

    if source_code.count("'") > source_code.count('"'):
        quote_style = "single"
    else:
        quote_style = "double"

    return {"indent": indent_style, "quotes": quote_style}
