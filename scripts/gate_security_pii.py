#!/usr/bin/env python3
"""PII gate for runtime source files.

Fails if, anywhere under src/:
- print( is used (runtime code logs through get_logger)
- a logger call mentions tenant contact data or raw request bodies without
  going through safe_log_context / redact_value / hash_identifier

Usage:
    python scripts/gate_security_pii.py [SRC_DIR]
"""

from __future__ import annotations

import re
import sys
from pathlib import Path

SENSITIVE_KEYWORDS = (
    "phone",
    "recipient",
    "to_address",
    "admin_notes",
    "tenant_name",
    "message_text",
    "request.body",
    "body_bytes",
    "request.json",
    "payload",
)

PRINT_PATTERN = re.compile(r"\bprint\s*\(")
LOGGER_CALL_PATTERN = re.compile(r"logger\.(debug|info|warning|error|critical|exception)\s*\(")

REDACTION_PATTERNS = (
    "safe_log_context",
    "redact_value",
    "redact_string",
    "hash_identifier",
)


def check_file(filepath: Path) -> list[str]:
    """Return violation messages for one file."""
    try:
        content = filepath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return []

    errors: list[str] = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        code = line.split("#", 1)[0]
        if not code.strip():
            continue

        if PRINT_PATTERN.search(code):
            errors.append(f"{filepath}:{lineno}: print() not allowed in runtime code")

        if LOGGER_CALL_PATTERN.search(code):
            lowered = code.lower()
            redacted = any(pattern in code for pattern in REDACTION_PATTERNS)
            for keyword in SENSITIVE_KEYWORDS:
                if keyword in lowered and not redacted:
                    errors.append(
                        f"{filepath}:{lineno}: logger call with '{keyword}' "
                        "must use redaction (safe_log_context/hash_identifier)"
                    )
    return errors


def check_tree(src_dir: Path) -> list[str]:
    errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        errors.extend(check_file(pyfile))
    return errors


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    src_dir = Path(args[0]) if args else Path(__file__).resolve().parent.parent / "src"
    if not src_dir.exists():
        sys.stderr.write(f"Error: {src_dir} not found\n")
        return 1

    errors = check_tree(src_dir)
    if errors:
        sys.stderr.write("PII gate FAILED:\n")
        for err in errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("PII gate PASSED\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
