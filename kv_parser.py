# kv_parser.py
# Parse-and-convert engine for the key/value list format, plus its CLI
#
# =============================================================================
#  TWO PHASES
# =============================================================================
#
# 1. Structural: kv_grammar.parse_document() matches the whole text against
#    the `file` rule and hands back a tree of Comment / Pair nodes.
# 2. Semantic: the tree is walked, every literal is converted to a signed
#    32-bit integer and the pairs are folded into a dict.
#
# Either phase may fail; the first failure ends the call and nothing is
# returned. Repeated keys overwrite earlier ones unless allow_dup is off.
# =============================================================================

import argparse
import json
import re
import sys
from typing import Dict, List, Mapping, Sequence

from kv_grammar import (
    Document,
    Pair,
    ParseError,
    SourceText,
    is_identifier,
    lex,
    parse_document,
)

# ---------------------------------------------------------------------------
# CONSTANTS AND TUNABLES
# ---------------------------------------------------------------------------
INT_MIN = -2**31
INT_MAX = 2**31 - 1

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")

# ---------------------------------------------------------------------------
# ERRORS
# ---------------------------------------------------------------------------
class ValueConversionError(ParseError, ValueError):
    """A literal matched the grammar but is not a representable integer."""

    def __init__(self, key: str, literal: str, reason: str):
        super().__init__(f"Failed to parse number for key '{key}': {reason}")
        self.key = key
        self.literal = literal
        self.reason = reason

# ---------------------------------------------------------------------------
# CONVERSION
# ---------------------------------------------------------------------------
def _to_int(literal: str) -> int:
    """
    Convert one literal to an int inside [INT_MIN, INT_MAX].

    Raises ValueError with the reason; the caller attaches the key.
    """
    literal = literal.strip()
    if not literal:
        raise ValueError("cannot parse integer from empty string")
    if not _INTEGER_RE.fullmatch(literal):
        raise ValueError("invalid digit found in string")
    value = int(literal)
    if value > INT_MAX:
        raise ValueError("number too large to fit in target type")
    if value < INT_MIN:
        raise ValueError("number too small to fit in target type")
    return value


def _convert_pair(pair: Pair) -> List[int]:
    values: List[int] = []
    for number in pair.values.items:
        try:
            values.append(_to_int(number.literal))
        except ValueError as exc:
            raise ValueConversionError(pair.key, number.literal, str(exc)) from None
    return values

# ---------------------------------------------------------------------------
# TREE WALK
# ---------------------------------------------------------------------------
def _collect(document: Document, text: str, allow_dup: bool) -> Dict[str, List[int]]:
    result: Dict[str, List[int]] = {}
    for node in document.lines:
        if not isinstance(node, Pair):
            continue
        if not allow_dup and node.key in result:
            raise SourceText(text).error(
                node.line, node.column,
                f"expected a key not already defined, found duplicate key '{node.key}'",
                ("a key not already defined",),
            )
        result[node.key] = _convert_pair(node)
    return result

# ---------------------------------------------------------------------------
# PUBLIC API
# ---------------------------------------------------------------------------
def parse_key_value_pairs(text: str, *, allow_dup: bool = True) -> Dict[str, List[int]]:
    """
    Parse `identifier : [int, ...]` lines into a dict of int lists.

    Raises DocumentSyntaxError when the text does not fit the grammar (or
    repeats a key while allow_dup is False) and ValueConversionError when a
    listed literal is not a 32-bit signed integer.
    """
    document = parse_document(text)
    return _collect(document, text, allow_dup)


def format_key_value_pairs(mapping: Mapping[str, Sequence[int]]) -> str:
    """Render a mapping in canonical form, one `key: [a, b]` line per key."""
    out = []
    for key, values in mapping.items():
        if not isinstance(key, str) or not is_identifier(key):
            raise ValueError(f"invalid identifier {key!r}")
        for value in values:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"value {value!r} for key '{key}' is not an integer")
        out.append(f"{key}: [{', '.join(str(v) for v in values)}]\n")
    return "".join(out)

# ---------------------------------------------------------------------------
# CLI ENTRYPOINT
# ---------------------------------------------------------------------------
def _cli(argv: List[str]):
    """
    Command-line interface: parse a file and print the mapping.

    Exit code 0 on success, 1 when the file cannot be read or parsed.
    """
    ap = argparse.ArgumentParser(description="Parse a key/value list file")
    ap.add_argument("file", help="file to parse")
    ap.add_argument("--debug", action="store_true", help="dump token stream and exit")
    ap.add_argument("--reject-dup-keys", action="store_true",
                    help="treat a repeated key as an error")
    ap.add_argument("--format", choices=("json", "kv"), default="json",
                    help="output format for the parsed data")
    args = ap.parse_args(argv)

    print(f"Reading file: {args.file}")
    try:
        with open(args.file, "r", encoding="utf-8") as fh:
            data = fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error reading file '{args.file}': {exc}", file=sys.stderr)
        return 1

    try:
        if args.debug:
            for tok in lex(data):
                print(tok)
            return 0
        parsed = parse_key_value_pairs(data, allow_dup=not args.reject_dup_keys)
    except ParseError as exc:
        print(f"\nError parsing data: {exc}", file=sys.stderr)
        return 1

    print("\nSuccessfully parsed data:")
    if args.format == "kv":
        sys.stdout.write(format_key_value_pairs(parsed))
    else:
        print(json.dumps(parsed, indent=2))
    return 0


def main():
    return _cli(sys.argv[1:])

# ---------------------------------------------------------------------------
# MAIN GUARD
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    sys.exit(main())
