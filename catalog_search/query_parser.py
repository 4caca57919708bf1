"""
Query parsing module.
Splits a query string into tokens, recognizes '{name[:value]}' directives and
parses the integer and range values that directives carry.
"""

import re  # integer grammar
from typing import List, Tuple  # type annotations

from loguru import logger  # console logging

# Optional sign followed by digits, the same grammar strconv-style parsers accept
RE_INT = re.compile(r"^[+-]?\d+$")


def query_tokens(query: str) -> List[str]:
	"""
	Break a query into tokens. A token is space delimited, except inside curly
	braces: "a b {x y z} c" has exactly four tokens "a", "b", "{x y z}" and "c".
	A brace span is flushed as soon as its closing brace brings the depth back
	to zero. Unbalanced braces are not validated; leftover text becomes the
	last token.
	"""
	tokens: List[str] = []
	buf: List[str] = []
	depth = 0  # curly brace nesting
	for ch in query:
		if ch == " ":
			if depth == 0:
				if buf:
					tokens.append("".join(buf))
				buf = []
			else:
				buf.append(ch)
		elif ch == "{":
			depth += 1
			buf.append(ch)
		elif ch == "}":
			depth -= 1
			buf.append(ch)
			if depth == 0:
				tokens.append("".join(buf))
				buf = []
		else:
			buf.append(ch)
	if buf:
		tokens.append("".join(buf))
	logger.debug(f"[Parser] Tokens for '{query}': {tokens}")
	return tokens


def arg_option(token: str) -> Tuple[str, str]:
	"""
	Return the (name, value) of a '{name[:value]}' token, both trimmed.
	Tokens that are not of that form give ("", "").
	"""
	if len(token) < 3 or token[0] != "{" or token[-1] != "}":
		return "", ""
	inner = token[1:-1]
	name, sep, value = inner.partition(":")  # split on the first colon only
	if not sep:
		value = ""
	return name.strip(), value.strip()


def parse_int(text: str) -> int:
	"""Parse a base-10 integer, raising ValueError that names the offending text."""
	s = text.strip()
	if not RE_INT.match(s):
		raise ValueError(f"Could not parse '{text}' as integer")
	return int(s)


def int_range(s: str, min_value: int, max_value: int) -> Tuple[int, int]:
	"""
	Parse a range of the form "x-y" into (x, y).
	"x" gives (x, x), "x-" gives (x, max_value), "-y" gives (min_value, y) and
	"" or "-" give (min_value, max_value). start <= end is not enforced.
	"""
	s = s.strip()
	if not s:
		return min_value, max_value
	if "-" not in s:
		n = parse_int(s)
		return n, n

	left, right = (p.strip() for p in s.split("-", 1))
	start = parse_int(left) if left else min_value
	end = parse_int(right) if right else max_value
	return start, end
