"""
Release-note parsing: turns a Markdown release body into deprecation facts.

Best-effort and line-oriented. Each line is checked against a fixed, ordered set
of phrasings; lines matching nothing contribute nothing. Keywords are matched
case-insensitively, identifiers are kept exactly as written.
"""

import re
from typing import List, Optional, Tuple

from .schema import DeprecationFact
from ..util.logging import logger

# Leading Markdown markup: headers, blockquotes, bullets, numbered items
LEADING_MARKUP_RE = re.compile(r"^(?:#{1,6}\s*|>\s*|[-*+•]\s+|\d+[.)]\s+)+")
BACKTICK_RE = re.compile(r"`([^`]+)`")
IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*(?:\.[A-Za-z_$][\w$]*)*(?:\([^()]*\))?$")

RENAME_RE = re.compile(
    r"\s+(?:(?:has been|have been|was|were|is|are)\s+)?renamed\s+to\s+",
    re.IGNORECASE
)
ARROW_RE = re.compile(r"\s*(?:→|->)\s*")
CHANGE_RE = re.compile(r"\s+is\s+now\s+", re.IGNORECASE)
REMOVED_AFTER_RE = re.compile(r"\s+(?:was|is|has been|have been|were)\s+removed\b", re.IGNORECASE)
REMOVED_BEFORE_RE = re.compile(r"\bremoved:?\s+", re.IGNORECASE)
ANNOTATION_RE = re.compile(r"(?i:@deprecated)\s*:?\s+(`[^`]+`|\S+)")
# Inner capital, dot, underscore or call parens: "HBBar", "Router.get", "on_close()"
IDENTIFIER_SHAPE_RE = re.compile(r"^.+[A-Z]|[._(]")

ARTICLES = ("the", "a", "an")
MAX_ARROW_LHS = 100


class ChangelogParser:
    """Extracts DeprecationFact values from release-note Markdown."""

    def parse(self, body: Optional[str], source_version: str = "") -> List[DeprecationFact]:
        """
        Parse a release body into facts, in line order.

        Precedence per line: rename, then change, then removal. Inline
        `@deprecated X` tokens are collected on top of those, skipping names
        the line already produced. Fenced code blocks are ignored.
        """
        if not body:
            return []

        facts: List[DeprecationFact] = []
        in_code_fence = False

        for line_number, raw in enumerate(body.splitlines(), start=1):
            stripped = raw.strip()
            if stripped.startswith("```"):
                in_code_fence = not in_code_fence
                continue
            if in_code_fence or not stripped:
                continue

            line = self._clean_line(stripped)
            line_facts = []

            fact = (
                self._parse_rename(line)
                or self._parse_change(line)
                or self._parse_removal(line)
            )
            if fact:
                line_facts.append(fact)

            seen = {f[1] for f in line_facts}
            for old_name in self._parse_annotations(line):
                if old_name not in seen:
                    line_facts.append(("annotated", old_name, None))
                    seen.add(old_name)

            # Section headers ("## Removed APIs") only count with a quoted name
            if stripped.startswith("#"):
                line_facts = [f for f in line_facts if f"`{f[1]}`" in stripped]

            for kind, old_name, new_name in line_facts:
                facts.append(DeprecationFact(
                    kind=kind,
                    old_name=old_name,
                    new_name=new_name,
                    raw_sentence=stripped,
                    source_version=source_version,
                    line_number=line_number
                ))

        logger.debug(f"Parsed {len(facts)} deprecation facts from release {source_version or '<unknown>'}")
        return facts

    def _clean_line(self, line: str) -> str:
        line = LEADING_MARKUP_RE.sub("", line)
        return line.replace("**", "").strip()

    def _parse_rename(self, line: str) -> Optional[Tuple[str, str, str]]:
        # "X renamed to Y"
        parts = RENAME_RE.split(line, maxsplit=1)
        if len(parts) == 2:
            old = self._name_from(parts[0], last=True)
            new = self._name_from(parts[1], last=False)
            if old and new:
                return ("renamed", old, new)

        # "X → Y" / "X -> Y"
        parts = ARROW_RE.split(line, maxsplit=1)
        if len(parts) == 2 and len(parts[0]) < MAX_ARROW_LHS:
            old = self._name_from(parts[0], last=True)
            new = self._name_from(parts[1], last=False)
            # A call on the left means a code flow, not a rename
            if old and new and "(" not in old:
                return ("renamed", old, new)

        return None

    def _parse_change(self, line: str) -> Optional[Tuple[str, str, str]]:
        # "X is now Y"
        parts = CHANGE_RE.split(line, maxsplit=1)
        if len(parts) == 2 and len(parts[0]) < MAX_ARROW_LHS:
            old = self._name_from(parts[0], last=True)
            new = self._name_from(parts[1], last=False)
            if old and new and old != new:
                return ("changed", old, new)
        return None

    def _parse_removal(self, line: str) -> Optional[Tuple[str, str, None]]:
        # "X was removed" / "X is removed"
        match = REMOVED_AFTER_RE.search(line)
        if match:
            old = self._removed_name(line[:match.start()], last=True)
            if old:
                return ("removed", old, None)

        # "Removed X": at the start of the line, or anywhere with a quoted name
        match = REMOVED_BEFORE_RE.search(line)
        if match:
            rest = line[match.end():]
            at_start = match.start() == 0 or line[:match.start()].rstrip().endswith(":")
            if rest.startswith("`") or at_start:
                first_word = rest.split(maxsplit=1)[0].lower() if rest.split() else ""
                if first_word in ARTICLES:
                    return None
                old = self._removed_name(rest, last=False)
                if old:
                    return ("removed", old, None)

        return None

    def _removed_name(self, text: str, last: bool) -> Optional[str]:
        """
        Like _name_from, but an unquoted word picked out of longer prose must
        look like an identifier ("Removed support for Swift 5.8" yields nothing).
        """
        if BACKTICK_RE.search(text):
            return self._name_from(text, last)

        tokens = text.split()
        name = self._name_from(text, last)
        if name and (len(tokens) == 1 or IDENTIFIER_SHAPE_RE.search(name)):
            return name
        return None

    def _parse_annotations(self, line: str) -> List[str]:
        names = []
        for token in ANNOTATION_RE.findall(line):
            name = self._clean_name(token)
            if name:
                names.append(name)
        return names

    def _name_from(self, text: str, last: bool) -> Optional[str]:
        """Pick the identifier nearest the keyword, preferring backtick-quoted names."""
        quoted = BACKTICK_RE.findall(text)
        if quoted:
            return self._clean_name(quoted[-1] if last else quoted[0])

        tokens = text.split()
        if not tokens:
            return None
        return self._clean_name(tokens[-1] if last else tokens[0])

    def _clean_name(self, token: str) -> Optional[str]:
        name = token.strip("`*\"'").rstrip(".,;:!?").strip("`*\"'")
        return name if IDENTIFIER_RE.match(name) else None
