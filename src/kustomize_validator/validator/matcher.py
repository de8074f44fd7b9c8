#!/usr/bin/env python3
"""
KUSTOMIZE VALIDATOR CONTENT MATCHER
-----------------------------------
Turns a check expression into a line predicate and scans rendered
resources for the first offending line.

Check expressions:
  - "PATCH_ME"            literal, case-sensitive substring
  - "glob:PATCH_*"        wildcard match (*, ?, [...], {a,b}) anywhere in the line
  - "regex:\\bPATCH_ME\\b" regular expression search; an invalid expression
                          degrades to a literal match on its raw text
"""

import re
from fnmatch import fnmatchcase
from typing import Callable, List, Optional, Tuple, Union

from kustomize_validator.core.models import ParsedResource, ViolationRecord

LinePredicate = Callable[[str], bool]

GLOB_PREFIX = "glob:"
REGEX_PREFIX = "regex:"
CONTEXT_SIZE = 2


def _literal_matcher(pattern: str) -> LinePredicate:
    return lambda line: pattern in line


def _split_alternatives(body: str) -> List[str]:
    """Splits a brace body on commas that are not nested in inner braces."""
    parts, depth, current = [], 0, []
    for ch in body:
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        current.append(ch)
    parts.append("".join(current))
    return parts


def expand_braces(pattern: str) -> List[str]:
    """
    Expands {a,b} alternation into plain globs, e.g.
    "image:*:{latest,dev}" -> ["image:*:latest", "image:*:dev"].
    Unbalanced braces are kept literally.
    """
    depth, start = 0, None
    for index, ch in enumerate(pattern):
        if ch == "{":
            if depth == 0:
                start = index
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                prefix, suffix = pattern[:start], pattern[index + 1:]
                expanded = []
                for alternative in _split_alternatives(pattern[start + 1:index]):
                    expanded.extend(expand_braces(prefix + alternative + suffix))
                return expanded
    return [pattern]


def _glob_matcher(pattern: str) -> LinePredicate:
    # The glob is unanchored: it may match any run of characters in the line
    wrapped = [f"*{alternative}*" for alternative in expand_braces(pattern)]
    return lambda line: any(fnmatchcase(line, glob) for glob in wrapped)


def _regex_matcher(pattern: str) -> LinePredicate:
    try:
        compiled = re.compile(pattern)
    except re.error:
        return _literal_matcher(pattern)
    return lambda line: compiled.search(line) is not None


def split_check(check: str) -> Tuple[str, str]:
    """Returns (mode, pattern) where mode is 'glob', 'regex' or 'literal'."""
    if check.startswith(GLOB_PREFIX):
        return "glob", check[len(GLOB_PREFIX):]
    if check.startswith(REGEX_PREFIX):
        return "regex", check[len(REGEX_PREFIX):]
    return "literal", check


def compile_check(check: str) -> LinePredicate:
    """Compiles a check expression into a predicate over single lines."""
    mode, pattern = split_check(check)
    if mode == "glob":
        return _glob_matcher(pattern)
    if mode == "regex":
        return _regex_matcher(pattern)
    return _literal_matcher(pattern)


def scan(resource: ParsedResource, check: Union[str, LinePredicate],
         pattern: Optional[str] = None) -> Optional[ViolationRecord]:
    """
    Scans the resource line by line and returns a ViolationRecord for the
    first line the check matches, or None.

    `check` is either a check expression or an already compiled predicate;
    with a predicate, `pattern` names it in the resulting record.
    """
    if isinstance(check, str):
        pattern = split_check(check)[1]
        predicate = compile_check(check)
    else:
        predicate = check
        pattern = pattern or ""

    lines = resource.raw_content.split("\n")
    for index, line in enumerate(lines):
        if not predicate(line):
            continue
        start = max(index - CONTEXT_SIZE, 0)
        end = min(index + CONTEXT_SIZE + 1, len(lines))
        return ViolationRecord(
            resource=resource,
            pattern=pattern,
            line_number=index + 1,
            matched_line=line,
            context_lines=lines[start:end],
            context_start=start + 1,
        )
    return None
