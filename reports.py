"""Plain-text reports for a threat check run. Pure functions, no I/O."""
from datetime import datetime
from typing import List, Optional, Tuple

from schemas import ThreatEntry, VulnerableMatch
from utils.dates import iso_now, parse_created

RULE = "====================================="
UNKNOWN = "Unknown"

DATE_HEADER = "Date Added"
ECOSYSTEM_HEADER = "Ecosystem"
NAME_HEADER = "Package Name"
VERSION_HEADER = "Package Version"

ACTION_STEPS = [
    "1. Review the above packages immediately",
    "2. Update or remove vulnerable packages",
    "3. Check for alternative secure packages",
    "4. Run security scans on affected projects",
]


def render_summary(matches: List[VulnerableMatch], generated_at: Optional[datetime] = None) -> str:
    lines: List[str] = [
        "THREAT FEED SECURITY ALERT SUMMARY",
        RULE,
        "",
        f"Generated: {iso_now(generated_at)}",
        f"Total vulnerable packages found: {len(matches)}",
        "",
    ]
    if not matches:
        lines.append("✅ No vulnerable packages found in your projects.")
        lines.append("All packages in your Veracode SCA projects are clean.")
        return "\n".join(lines) + "\n"

    lines.append("🚨 IMMEDIATE ATTENTION REQUIRED!")
    lines.append("The following packages in your projects match known threats:")
    lines.append("")
    for i, m in enumerate(matches, start=1):
        t, lib = m.threat, m.library
        lines.append(f"{i}. Package: {t.name}@{t.version}")
        lines.append(f"   Ecosystem: {t.ecosystem}")
        lines.append(f"   Threat Indicators: {', '.join(t.indicators or {})}")
        lines.append(f"   Workspace: {m.workspace.name} ({m.workspace.id})")
        lines.append(f"   Project: {m.project.name} ({m.project.id})")
        lines.append(f"   Library ID: {lib.id}")
        lines.append(f"   Library License: {lib.license}")
        lines.append(f"   Threat Created: {t.created}")
        lines.append(f"   Library Vulnerabilities: {len(lib.vulnerabilities or [])}")
        lines.append("")
    lines.append("")
    lines.append("⚠️  ACTION REQUIRED:")
    lines.extend(ACTION_STEPS)
    return "\n".join(lines) + "\n"


def newest_first(threats: List[ThreatEntry]) -> List[ThreatEntry]:
    """Copy of the feed sorted by creation date, newest first.

    Entries whose date cannot be parsed keep their relative order after all
    dated entries.
    """
    def key(t: ThreatEntry) -> Tuple[int, float]:
        dt = parse_created(t.created)
        if dt is None:
            return (1, 0.0)
        return (0, -dt.timestamp())
    return sorted(threats, key=key)


def table_row(t: ThreatEntry) -> Tuple[str, str, str, str]:
    dt = parse_created(t.created)
    date_added = dt.date().isoformat() if dt else UNKNOWN
    return (date_added, t.ecosystem or UNKNOWN, t.name or UNKNOWN, t.version or UNKNOWN)


def render_malicious_table(threats: List[ThreatEntry], generated_at: Optional[datetime] = None) -> str:
    lines: List[str] = [
        "MALICIOUS PACKAGES FROM THREAT FEED",
        RULE,
        "",
        f"Generated: {iso_now(generated_at)}",
        f"Total packages in threat feed: {len(threats)}",
        "",
    ]
    if not threats:
        lines.append("No packages found in threat feed.")
        return "\n".join(lines) + "\n"

    headers = (DATE_HEADER, ECOSYSTEM_HEADER, NAME_HEADER, VERSION_HEADER)
    rows = [table_row(t) for t in newest_first(threats)]
    widths = [max([len(h)] + [len(r[i]) for r in rows]) for i, h in enumerate(headers)]

    def fmt(cells) -> str:
        return "| " + " | ".join(c.ljust(w) for c, w in zip(cells, widths)) + " |"

    lines.append(fmt(headers))
    lines.append("|" + "|".join("-" * (w + 2) for w in widths) + "|")
    lines.extend(fmt(r) for r in rows)
    lines.append("")
    lines.append("Note: This table contains all packages from the Phylum threat feed.")
    lines.append("Packages that match your project libraries are highlighted in the summary.txt file.")
    return "\n".join(lines) + "\n"
